# tests/unit/test_identity.py
import pytest
from flask import session

from gymportal.models.identity import AuthError


def test_create_account_and_sign_in(flask_app):
    identity = flask_app.identity
    with flask_app.test_request_context("/"):
        uid = identity.create_account("amy@example.com", "secret123")
        assert identity.get_account(uid).email == "amy@example.com"

        assert identity.sign_in("amy@example.com", "secret123") == uid
        assert session["uid"] == uid
        assert identity.current_uid() == uid
        assert identity.current_account().uid == uid


@pytest.mark.parametrize("email, password, code", [
    ("no-at-sign", "secret123", "auth/invalid-email"),
    ("amy@example.com", "123", "auth/weak-password"),
])
def test_create_account_rejects_bad_input(flask_app, email, password, code):
    with flask_app.app_context():
        with pytest.raises(AuthError) as excinfo:
            flask_app.identity.create_account(email, password)
    assert excinfo.value.code == code


def test_duplicate_email_rejected(flask_app):
    with flask_app.app_context():
        flask_app.identity.create_account("dup@example.com", "secret123")
        with pytest.raises(AuthError) as excinfo:
            flask_app.identity.create_account("dup@example.com", "another1")
    assert excinfo.value.code == "auth/email-already-in-use"


def test_sign_in_error_codes(flask_app):
    identity = flask_app.identity
    with flask_app.test_request_context("/"):
        identity.create_account("bob@example.com", "secret123")

        with pytest.raises(AuthError) as excinfo:
            identity.sign_in("ghost@example.com", "secret123")
        assert excinfo.value.code == "auth/user-not-found"

        with pytest.raises(AuthError) as excinfo:
            identity.sign_in("bob@example.com", "wrong-pass")
        assert excinfo.value.code == "auth/wrong-password"
        assert "uid" not in session


def test_repeated_failures_lock_the_account(flask_app):
    identity = flask_app.identity
    with flask_app.test_request_context("/"):
        identity.create_account("lock@example.com", "secret123")
        for _ in range(identity.max_failed_attempts):
            with pytest.raises(AuthError):
                identity.sign_in("lock@example.com", "nope-nope")

        # even the right password is refused while locked
        with pytest.raises(AuthError) as excinfo:
            identity.sign_in("lock@example.com", "secret123")
        assert excinfo.value.code == "auth/too-many-requests"


def test_listeners_fire_once_per_transition(flask_app):
    identity = flask_app.identity
    seen = []
    unsubscribe = identity.on_auth_state_changed(seen.append)
    with flask_app.test_request_context("/"):
        identity.create_account("eve@example.com", "secret123")
        identity.sign_in("eve@example.com", "secret123")
        identity.sign_out()
        # signing out twice is not a transition
        identity.sign_out()

    assert len(seen) == 2
    assert seen[0].email == "eve@example.com"
    assert seen[1] is None

    unsubscribe()
    with flask_app.test_request_context("/"):
        identity.sign_in("eve@example.com", "secret123")
    assert len(seen) == 2


def test_failing_listener_does_not_break_sign_in(flask_app):
    identity = flask_app.identity

    def boom(account):
        raise RuntimeError("listener failure")

    identity.on_auth_state_changed(boom)
    with flask_app.test_request_context("/"):
        uid = identity.create_account("kim@example.com", "secret123")
        assert identity.sign_in("kim@example.com", "secret123") == uid
