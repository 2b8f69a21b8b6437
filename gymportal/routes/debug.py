"""Debug and login-test consoles.

Both pages run a diagnostic on POST and render its log.  The debug console
keeps its log in the session until cleared; the login-test console starts a
fresh log for every action.  Registered only when ENABLE_DEBUG_CONSOLES is on.
"""
import time
from datetime import datetime

from flask import (Blueprint, current_app, flash, redirect, render_template, request,
                   session, url_for)

from gymportal.models.database import StoreError, utc_now_iso
from gymportal.models.identity import AuthError
from gymportal.models.user import Role, UserProfile
from gymportal.utils.validators import clean

debug_bp = Blueprint('debug', __name__)

TEST_COLLECTION = 'test'
SESSION_LOG_KEY = 'debug_log'
MAX_LOG_ENTRIES = 40

_LEVELS = {'info': 'info', 'success': 'info', 'warning': 'warning', 'error': 'error'}


class ConsoleLog:
    """Timestamped console lines, mirrored to the application log."""

    def __init__(self, entries=None):
        self.entries = list(entries or [])

    def log(self, message, kind='info'):
        self.entries.append({
            'time': datetime.now().strftime('%H:%M:%S'),
            'message': message,
            'kind': kind,
        })
        getattr(current_app.logger, _LEVELS.get(kind, 'info'))("[console] %s", message)

    def clear(self):
        self.entries = []


def _elapsed_ms(start):
    return int((time.perf_counter() - start) * 1000)


def round_trip(console, doc_id, label):
    """Write, read back and delete ``test/{doc_id}``; True when all three succeed."""
    store = current_app.store
    try:
        store.set(TEST_COLLECTION, doc_id, {
            'test': True,
            'timestamp': utc_now_iso(),
            'message': label,
        })
        console.log("✅ Store write successful", 'success')

        if store.get(TEST_COLLECTION, doc_id).exists:
            console.log("✅ Store read successful", 'success')
        else:
            console.log("❌ Store read failed - document not found", 'error')

        store.delete(TEST_COLLECTION, doc_id)
        console.log("✅ Test document cleaned up", 'success')
    except StoreError as e:
        console.log(f"❌ Store test failed: {e.message}", 'error')
        console.log(f"Error code: {e.code}", 'error')
        return False
    return True


def check_identity(console):
    identity = getattr(current_app, 'identity', None)
    if identity is None:
        console.log("❌ Identity provider is not available", 'error')
        return False
    console.log("✅ Identity provider is available", 'success')

    seen = []
    unsubscribe = identity.on_auth_state_changed(seen.append)
    console.log(f"Auth state: {'User logged in' if identity.current_uid() else 'No user'}")
    unsubscribe()
    console.log("✅ Auth state listener working", 'success')
    return True


# -------------------- Debug console --------------------

def _session_console():
    return ConsoleLog(session.get(SESSION_LOG_KEY))


def _remember(console):
    session[SESSION_LOG_KEY] = console.entries[-MAX_LOG_ENTRIES:]
    session.modified = True


@debug_bp.route('/', methods=['GET', 'POST'])
def console():
    """Connection test console"""
    console_log = _session_console()
    if not console_log.entries:
        console_log.log("Debug console initialized")
        console_log.log(f"Browser: {request.user_agent.string or 'unknown'}")
        console_log.log(f"Current URL: {request.url}")
        if getattr(current_app, 'identity', None) is not None:
            console_log.log("✅ Identity provider is available", 'success')
        else:
            console_log.log("❌ Identity provider is not available", 'error')
        if getattr(current_app, 'store', None) is not None:
            console_log.log("✅ Document store is available", 'success')
        else:
            console_log.log("❌ Document store is not available", 'error')

    if request.method == 'POST':
        action = request.form.get('action')
        if action == 'test_connection':
            console_log.log("Testing store connection...")
            if round_trip(console_log, 'connection', 'Connection test'):
                console_log.log("🎉 Store connection test completed successfully!", 'success')
        elif action == 'test_identity':
            check_identity(console_log)
        elif action == 'clear':
            console_log.clear()
            console_log.log("Console cleared")
        else:
            console_log.log(f"⚠️ Unknown action: {action}", 'warning')

    _remember(console_log)
    return render_template('debug/console.html', entries=console_log.entries)


# -------------------- Login test console --------------------

def timed_login(console_log, email, password):
    """Sign in, fetch the profile, sign out, logging how long each step took."""
    identity = current_app.identity
    uid = None
    try:
        console_log.log("Step 1: Attempting sign in...")
        start = time.perf_counter()
        uid = identity.sign_in(email, password)
        console_log.log(f"✅ Sign in successful ({_elapsed_ms(start)}ms): {uid}", 'success')

        console_log.log("Step 2: Fetching user profile...")
        profile_start = time.perf_counter()
        profile = UserProfile.get(uid)
        if profile is not None:
            console_log.log(
                f"✅ User data found ({_elapsed_ms(profile_start)}ms): "
                f"{profile.name} ({profile.role_name})", 'success')
            console_log.log(f"Total login time: {_elapsed_ms(start)}ms", 'success')
        else:
            console_log.log("⚠️ User document not found", 'warning')
    except (AuthError, StoreError) as e:
        console_log.log(f"❌ Login test failed: {e.message}", 'error')
        console_log.log(f"Error code: {e.code}", 'error')
        return False
    finally:
        if uid is not None:
            identity.sign_out()
            console_log.log("✅ Test completed, signed out", 'success')
    return True


def quick_login(console_log, email, password):
    """Sign in for real; returns True when the user should go to the home page."""
    try:
        console_log.log("Attempting login...")
        start = time.perf_counter()
        uid = current_app.identity.sign_in(email, password)
        console_log.log(f"✅ Auth successful ({_elapsed_ms(start)}ms)", 'success')
        profile = UserProfile.get(uid)
    except (AuthError, StoreError) as e:
        console_log.log(f"❌ Quick login failed: {e.message}", 'error')
        return False

    if profile is None:
        console_log.log("⚠️ User data not found, but auth successful", 'warning')
        return False
    console_log.log(f"✅ Login successful! Welcome {profile.name}", 'success')
    return True


def create_test_account(console_log, name, email, password, role):
    try:
        console_log.log("Step 1: Creating account...")
        uid = current_app.identity.create_account(email, password)
        console_log.log(f"✅ Account created: {uid}", 'success')

        console_log.log("Step 2: Saving user profile...")
        UserProfile(uid=uid, name=name, email=email, role=role).save()
        console_log.log("✅ User profile saved", 'success')
    except (AuthError, StoreError) as e:
        console_log.log(f"❌ Account creation failed: {e.message}", 'error')
        console_log.log(f"Error code: {e.code}", 'error')
        return False

    console_log.log("🎉 Test account created successfully!", 'success')
    console_log.log(f"Name: {name}")
    console_log.log(f"Email: {email}")
    console_log.log(f"Role: {role.value}")
    console_log.log("✅ Login form filled with the test email, ready for login test", 'success')
    return True


@debug_bp.route('/login-test', methods=['GET', 'POST'])
def login_test():
    """Step-by-step checks of the sign-in path"""
    console_log = ConsoleLog()
    test_email = clean(request.form.get('test_email'))

    if request.method == 'GET':
        console_log.log("Login test console initialized")
        console_log.log("Use the buttons above to test different components")
        return render_template('debug/login_test.html', entries=console_log.entries,
                               test_email=test_email)

    action = request.form.get('action')
    password = request.form.get('test_password') or ''

    if action == 'test_auth':
        console_log.log("Testing identity provider...")
        check_identity(console_log)

    elif action == 'test_store':
        console_log.log("Testing store connection...")
        if round_trip(console_log, 'login-test', 'Login test'):
            console_log.log("🎉 Store test completed successfully!", 'success')

    elif action in ('test_login', 'quick_login'):
        if not test_email or not password:
            console_log.log("⚠️ Please enter email and password first", 'warning')
        elif action == 'test_login':
            console_log.log("Testing login process...")
            timed_login(console_log, test_email, password)
        else:
            console_log.log("Starting quick login test...")
            if quick_login(console_log, test_email, password):
                flash("✅ Login successful! Redirecting...", 'success')
                return redirect(url_for('home.index'))

    elif action == 'create_account':
        console_log.log("Creating test account...")
        name = clean(request.form.get('reg_name'))
        email = clean(request.form.get('reg_email'))
        reg_password = request.form.get('reg_password') or ''
        role = Role.parse(request.form.get('reg_role'), default=Role.MEMBER)
        if not name or not email or not reg_password:
            console_log.log("⚠️ Please fill all fields", 'warning')
        elif len(reg_password) < 6:
            console_log.log("⚠️ Password must be at least 6 characters", 'warning')
        elif create_test_account(console_log, name, email, reg_password, role):
            test_email = email

    else:
        console_log.log(f"⚠️ Unknown action: {action}", 'warning')

    return render_template('debug/login_test.html', entries=console_log.entries,
                           test_email=test_email)
