from flask import Blueprint, current_app, flash, g, render_template

from gymportal.models.database import StoreError
from gymportal.models.identity import AuthError
from gymportal.models.user import UserProfile
from gymportal.utils.decorators import login_required

home_bp = Blueprint('home', __name__)


@home_bp.route('/')
@login_required
def index():
    """Dispatcher page: who is signed in, and links to both consoles"""
    profile = None
    display_name = None
    try:
        profile = UserProfile.get(g.uid)
        if profile is None:
            current_app.logger.warning("User document not found for uid %s", g.uid)
            flash("User profile not found. Please contact administrator.", 'warning')
        else:
            display_name = profile.name or "User"
    except StoreError as e:
        current_app.logger.error("Error loading user data: %s", e)
        flash("Error loading user data. Using email as fallback.", 'warning')

    if display_name is None:
        try:
            account = current_app.identity.get_account(g.uid)
        except AuthError:
            account = None
        display_name = (account.email if account else None) or "User"

    return render_template('home.html', profile=profile, display_name=display_name)
