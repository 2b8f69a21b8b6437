from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from gymportal.models.database import StoreError
from gymportal.models.identity import AuthError
from gymportal.models.user import Role, UserProfile
from gymportal.utils.background import run_detached
from gymportal.utils.decorators import logout_required
from gymportal.utils.validators import (ValidationError, clean, min_length, require,
                                        require_email)

auth_bp = Blueprint('auth', __name__)

# Messages shown for provider error codes; anything else gets the default prefix
_SHARED_ERRORS = {
    'auth/invalid-email': "Please enter a valid email address.",
    'auth/network-request-failed': "Network error. Please check your internet connection.",
    'permission-denied': "Database permission denied. Please check database rules.",
    'unavailable': "Service temporarily unavailable. Please try again.",
}

REGISTER_ERRORS = dict(_SHARED_ERRORS, **{
    'auth/email-already-in-use': "This email is already registered. Please login instead.",
    'auth/weak-password': "Password is too weak. Please choose a stronger password.",
})

LOGIN_ERRORS = dict(_SHARED_ERRORS, **{
    'auth/user-not-found': "No account found with this email. Please register first.",
    'auth/wrong-password': "Incorrect password. Please try again.",
    'auth/too-many-requests': "Too many failed attempts. Please try again later.",
})


def register_error_message(error):
    code = getattr(error, 'code', None)
    return REGISTER_ERRORS.get(code, f"Registration failed: {getattr(error, 'message', error)}")


def login_error_message(error):
    code = getattr(error, 'code', None)
    return LOGIN_ERRORS.get(code, f"Login failed: {getattr(error, 'message', error)}")


def refresh_last_login(uid, selected_role=None):
    """Background half of a login: note the role mismatch, stamp lastLogin."""
    profile = UserProfile.get(uid)
    if profile is None:
        current_app.logger.warning("User document not found during background update (uid=%s)", uid)
        return
    if selected_role and profile.role_name != selected_role:
        current_app.logger.warning("Role mismatch: stored=%s, selected=%s",
                                   profile.role_name, selected_role)
    UserProfile.touch_last_login(uid)


@auth_bp.route('/')
@logout_required
def index():
    """Entry page with the login and register tabs"""
    return render_template(
        'auth/index.html',
        tab=request.args.get('tab', 'login'),
        email=request.args.get('email', ''),
        role=request.args.get('role', ''),
    )


@auth_bp.route('/register', methods=['POST'])
@logout_required
def register():
    name = clean(request.form.get('name'))
    email = clean(request.form.get('email'))
    password = clean(request.form.get('password'))
    role_value = clean(request.form.get('role'))

    try:
        require(name, email, password, role_value, message="Please fill in all fields")
        min_length(password, 6, "Password must be at least 6 characters")
        require_email(email, "Please enter a valid email address")
    except ValidationError as e:
        flash(e.message, e.category)
        return render_template('auth/index.html', tab='register', email=email, role=role_value, name=name)

    role = Role.parse(role_value, default=Role.MEMBER)

    try:
        current_app.logger.info("Creating account for %s", email)
        uid = current_app.identity.create_account(email, password)
        UserProfile(uid=uid, name=name, email=email, role=role).save()
    except (AuthError, StoreError) as e:
        current_app.logger.error("Registration error: code=%s message=%s", e.code, e.message)
        flash(register_error_message(e), 'error')
        return render_template('auth/index.html', tab='register', email=email, role=role_value, name=name)

    flash("✅ Registration successful! You can now log in.", 'success')
    return redirect(url_for('auth.index', tab='login', email=email, role=role.value))


@auth_bp.route('/login', methods=['POST'])
@logout_required
def login():
    email = clean(request.form.get('email'))
    password = clean(request.form.get('password'))
    selected_role = clean(request.form.get('role'))

    if not email or not password:
        flash("Please enter both email and password", 'warning')
        return render_template('auth/index.html', tab='login', email=email, role=selected_role)

    try:
        uid = current_app.identity.sign_in(email, password)
    except AuthError as e:
        current_app.logger.error("Login error: code=%s message=%s", e.code, e.message)
        flash(login_error_message(e), 'error')
        return render_template('auth/index.html', tab='login', email=email, role=selected_role)

    # Profile check and lastLogin stamp don't hold up the redirect
    run_detached(refresh_last_login, uid, selected_role or None)

    flash("✅ Login successful! Redirecting...", 'success')
    return redirect(url_for('home.index'))


@auth_bp.route('/logout')
def logout():
    """Sign out and return to the entry page"""
    current_app.identity.sign_out()
    return redirect(url_for('auth.index'))
