from functools import wraps

from flask import current_app, flash, g, redirect, render_template, url_for

from gymportal.models.database import StoreError
from gymportal.models.identity import AuthError
from gymportal.models.user import Role, UserProfile

# Where each role lands when it opens a page meant for the other role
ROLE_HOME = {
    Role.ADMIN: 'admin.dashboard',
    Role.MEMBER: 'member.dashboard',
}


def _account_email(uid):
    try:
        account = current_app.identity.get_account(uid)
    except AuthError:
        return None
    return account.email if account else None


def login_required(f):
    """Decorator to require a signed-in account"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        uid = current_app.identity.current_uid()
        if not uid:
            return redirect(url_for('auth.index'))
        g.uid = uid
        return f(*args, **kwargs)
    return decorated_function


def logout_required(f):
    """Decorator for the entry page: signed-in users go to the home dispatcher"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if current_app.identity.current_uid():
            return redirect(url_for('home.index'))
        return f(*args, **kwargs)
    return decorated_function


def role_required(role):
    """
    Decorator gating a page on the role stored in the user's profile.

    - no account signed in -> entry page
    - profile missing -> home dispatcher with a warning
    - other role -> that role's own page
    - profile fetch fails -> degraded page showing the account email
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            uid = current_app.identity.current_uid()
            if not uid:
                return redirect(url_for('auth.index'))

            try:
                profile = UserProfile.get(uid)
            except StoreError as e:
                current_app.logger.exception("Profile fetch failed for uid %s: %s", uid, e)
                flash('Error loading user data. Using email as fallback.', 'warning')
                return render_template('degraded.html', email=_account_email(uid) or 'User')

            if profile is None:
                flash('User profile not found. Please contact administrator.', 'warning')
                return redirect(url_for('home.index'))

            if profile.role != role:
                current_app.logger.info("Role mismatch for uid %s: %s on %s page",
                                        uid, profile.role_name, role.value)
                target = ROLE_HOME.get(profile.role)
                if target is None:
                    flash('Access denied.', 'error')
                    return redirect(url_for('home.index'))
                return redirect(url_for(target))

            g.uid = uid
            g.profile = profile
            return f(*args, **kwargs)
        return decorated_function
    return decorator


admin_required = role_required(Role.ADMIN)
member_required = role_required(Role.MEMBER)
