"""Identity provider: accounts, credential checks and the signed-in session."""
import logging
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone

from flask import current_app, session

from gymportal.models.database import execute_query

logger = logging.getLogger(__name__)

SESSION_KEY = 'uid'


class AuthError(Exception):
    """Identity failure carrying a provider error code such as ``auth/wrong-password``."""

    def __init__(self, code, message=None):
        self.code = code
        self.message = message or code
        super().__init__(self.message)


class Account:
    def __init__(self, uid=None, email=None, created_at=None):
        self.uid = uid
        self.email = email
        self.created_at = created_at

    def __repr__(self):
        return f"Account({self.uid!r}, {self.email!r})"


class IdentityProvider:
    """Creates accounts, verifies credentials and tracks who is signed in.

    The signed-in account id lives in the Flask session.  Listeners
    registered with :meth:`on_auth_state_changed` are called once per
    sign-in and once per sign-out, with the :class:`Account` or ``None``.
    """

    def __init__(self, db_path, bcrypt, max_failed_attempts=5, lockout_seconds=300):
        self.db_path = db_path
        self.bcrypt = bcrypt
        self.max_failed_attempts = max_failed_attempts
        self.lockout_seconds = lockout_seconds
        self._listeners = []

    # -------------------- Listeners --------------------

    def on_auth_state_changed(self, callback):
        """Subscribe to sign-in/sign-out transitions; returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe():
            if callback in self._listeners:
                self._listeners.remove(callback)
        return unsubscribe

    def _notify(self, account):
        for callback in list(self._listeners):
            try:
                callback(account)
            except Exception:
                logger.exception("Auth state listener %r failed", callback)

    # -------------------- Accounts --------------------

    def _row_for_email(self, email):
        try:
            rows = execute_query(
                '''SELECT uid, email, password_hash, failed_attempts, locked_until, created_at
                   FROM accounts WHERE email = ?''',
                (email,), self.db_path, fetch=True)
        except sqlite3.Error as e:
            raise AuthError('unavailable', str(e)) from e
        return rows[0] if rows else None

    def get_account(self, uid):
        try:
            rows = execute_query('SELECT uid, email, created_at FROM accounts WHERE uid = ?',
                                 (uid,), self.db_path, fetch=True)
        except sqlite3.Error as e:
            raise AuthError('unavailable', str(e)) from e
        if not rows:
            return None
        row = rows[0]
        return Account(uid=row['uid'], email=row['email'], created_at=row['created_at'])

    def create_account(self, email, password):
        """Register a new email/password account and return its uid."""
        email = (email or '').strip()
        if '@' not in email:
            raise AuthError('auth/invalid-email', 'The email address is badly formatted.')
        if len(password or '') < 6:
            raise AuthError('auth/weak-password', 'Password should be at least 6 characters.')
        if self._row_for_email(email):
            raise AuthError('auth/email-already-in-use', 'The email address is already in use.')

        uid = uuid.uuid4().hex
        hashed = self.bcrypt.generate_password_hash(password)
        if isinstance(hashed, bytes):
            hashed = hashed.decode('utf-8')
        try:
            execute_query('INSERT INTO accounts (uid, email, password_hash) VALUES (?, ?, ?)',
                          (uid, email, hashed), self.db_path)
        except sqlite3.IntegrityError as e:
            # lost a race with a concurrent registration
            raise AuthError('auth/email-already-in-use', 'The email address is already in use.') from e
        except sqlite3.Error as e:
            raise AuthError('unavailable', str(e)) from e
        logger.info("Account created: uid=%s", uid)
        return uid

    def _record_failure(self, row):
        attempts = (row['failed_attempts'] or 0) + 1
        locked_until = None
        if attempts >= self.max_failed_attempts:
            until = datetime.now(timezone.utc) + timedelta(seconds=self.lockout_seconds)
            locked_until = until.isoformat()
            attempts = 0
        self._update_lock(row['uid'], attempts, locked_until)

    def _update_lock(self, uid, attempts, locked_until):
        try:
            execute_query('UPDATE accounts SET failed_attempts = ?, locked_until = ? WHERE uid = ?',
                          (attempts, locked_until, uid), self.db_path)
        except sqlite3.Error as e:
            raise AuthError('unavailable', str(e)) from e

    def verify_credentials(self, email, password):
        """Check email/password without touching the session; returns the uid."""
        email = (email or '').strip()
        if '@' not in email:
            raise AuthError('auth/invalid-email', 'The email address is badly formatted.')
        row = self._row_for_email(email)
        if not row:
            raise AuthError('auth/user-not-found', 'There is no account for this email.')

        if row['locked_until']:
            locked_until = datetime.fromisoformat(row['locked_until'])
            if locked_until > datetime.now(timezone.utc):
                raise AuthError('auth/too-many-requests',
                                'Access temporarily disabled due to many failed attempts.')

        try:
            ok = self.bcrypt.check_password_hash(row['password_hash'], password or '')
        except ValueError:
            ok = False
        if not ok:
            self._record_failure(row)
            raise AuthError('auth/wrong-password', 'The password is invalid.')

        if row['failed_attempts'] or row['locked_until']:
            self._update_lock(row['uid'], 0, None)
        return row['uid']

    # -------------------- Session --------------------

    def sign_in(self, email, password):
        """Verify credentials and mark the account as signed in for this session."""
        uid = self.verify_credentials(email, password)
        session[SESSION_KEY] = uid
        current_app.logger.info("Signed in: uid=%s", uid)
        self._notify(Account(uid=uid, email=(email or '').strip()))
        return uid

    def sign_out(self):
        uid = session.pop(SESSION_KEY, None)
        session.clear()
        if uid:
            current_app.logger.info("Signed out: uid=%s", uid)
            self._notify(None)

    def current_uid(self):
        return session.get(SESSION_KEY)

    def current_account(self):
        uid = self.current_uid()
        return self.get_account(uid) if uid else None
