import pytest

from gymportal.app import create_app
from gymportal.models.user import Role, UserProfile


# -------------------------------------------------------------------
# Flask app fixture (used by route and integration tests)
# -------------------------------------------------------------------
@pytest.fixture()
def flask_app(tmp_path):
    """App built by the real factory on a throwaway sqlite database."""
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
        "DATABASE_PATH": str(tmp_path / "test_portal.db"),
        "BCRYPT_LOG_ROUNDS": 4,
        "ENABLE_DEBUG_CONSOLES": True,
        "MAIL_SUPPRESS_SEND": True,
        "PAGE_SIZE": 25,
    })
    yield app


@pytest.fixture()
def client(flask_app):
    """Flask test client fixture."""
    return flask_app.test_client()


@pytest.fixture()
def store(flask_app):
    return flask_app.store


@pytest.fixture()
def make_user(flask_app):
    """Create an account plus profile; returns the uid."""
    def _make(email="user@example.com", password="secret123", role=Role.MEMBER, name="Test User",
              with_profile=True):
        with flask_app.app_context():
            uid = flask_app.identity.create_account(email, password)
            if with_profile:
                UserProfile(uid=uid, name=name, email=email, role=role).save()
        return uid
    return _make


@pytest.fixture()
def login_as(client, make_user):
    """Sign the test client in as a fresh user with the given role."""
    def _login(role=Role.MEMBER, email=None, name="Test User", with_profile=True):
        email = email or f"{role.value}@example.com"
        uid = make_user(email=email, role=role, name=name, with_profile=with_profile)
        with client.session_transaction() as sess:
            sess["uid"] = uid
        return uid
    return _login


@pytest.fixture()
def admin_client(client, login_as):
    login_as(Role.ADMIN, name="Admin")
    return client
