# tests/integration/test_auth_flow.py
import pytest

from gymportal.models.user import Role, UserProfile
from gymportal.routes import auth
from gymportal.utils import background


@pytest.fixture(autouse=True)
def inline_background(monkeypatch):
    """Run detached login work inline so its effects are visible to the test."""
    monkeypatch.setattr(auth, "run_detached", lambda func, *a, **k: func(*a, **k))


def register(client, **overrides):
    form = {"name": "Jane", "email": "jane@example.com", "password": "secret123", "role": "member"}
    form.update(overrides)
    return client.post("/auth/register", data=form)


def test_root_redirects_to_entry_page(client):
    res = client.get("/")
    assert res.status_code == 302
    assert res.headers["Location"].endswith("/auth/")


def test_entry_page_renders_both_tabs(client):
    assert b"loginForm" in client.get("/auth/").data
    assert b"registerForm" in client.get("/auth/?tab=register").data


@pytest.mark.parametrize("overrides, message", [
    ({"name": ""}, "Please fill in all fields"),
    ({"password": "12345"}, "Password must be at least 6 characters"),
    ({"email": "jane.example.com"}, "Please enter a valid email address"),
])
def test_register_validation(client, overrides, message):
    res = register(client, **overrides)
    assert res.status_code == 200
    assert message in res.get_data(as_text=True)


def test_register_then_login(client, flask_app):
    res = register(client, role="admin")
    assert res.status_code == 302
    location = res.headers["Location"]
    assert "tab=login" in location and "role=admin" in location

    page = client.get(location).get_data(as_text=True)
    assert "Registration successful! You can now log in." in page
    assert 'value="jane@example.com"' in page

    res = client.post("/auth/login", data={"email": "jane@example.com", "password": "secret123",
                                           "role": "admin"})
    assert res.status_code == 302
    assert res.headers["Location"].endswith("/home/")
    with client.session_transaction() as sess:
        uid = sess["uid"]

    with flask_app.app_context():
        profile = UserProfile.get(uid)
    assert profile.role is Role.ADMIN
    assert profile.name == "Jane"

    home = client.get("/home/").get_data(as_text=True)
    assert "Login successful! Redirecting..." in home
    assert "Welcome, Jane!" in home


def test_register_duplicate_email(client):
    register(client)
    res = register(client)
    assert "This email is already registered. Please login instead." in res.get_data(as_text=True)


def test_login_updates_last_login(client, flask_app, make_user, monkeypatch):
    uid = make_user(email="old@example.com")
    with flask_app.app_context():
        flask_app.store.set(UserProfile.COLLECTION, uid, {"lastLogin": "2000-01-01T00:00:00.000Z"},
                            merge=True)

    futures = []

    def submit(func, *args, **kwargs):
        future = background.run_detached(func, *args, **kwargs)
        futures.append(future)
        return future

    monkeypatch.setattr(auth, "run_detached", submit)
    client.post("/auth/login", data={"email": "old@example.com", "password": "secret123"})
    assert len(futures) == 1
    futures[0].result(timeout=10)

    with flask_app.app_context():
        assert UserProfile.get(uid).last_login > "2000-01-01T00:00:00.000Z"


@pytest.mark.parametrize("form, message", [
    ({"email": "", "password": ""}, "Please enter both email and password"),
    ({"email": "ghost@example.com", "password": "secret123"},
     "No account found with this email. Please register first."),
    ({"email": "user@example.com", "password": "badpass1"}, "Incorrect password. Please try again."),
    ({"email": "no-at-sign", "password": "secret123"}, "Please enter a valid email address."),
])
def test_login_errors(client, make_user, form, message):
    make_user()
    res = client.post("/auth/login", data=form)
    assert res.status_code == 200
    assert message in res.get_data(as_text=True)
    with client.session_transaction() as sess:
        assert "uid" not in sess


def test_unmapped_error_code_uses_default_message():
    class Odd(Exception):
        code = "auth/quota-exceeded"
        message = "Quota exceeded"
    assert auth.login_error_message(Odd()) == "Login failed: Quota exceeded"
    assert auth.register_error_message(Odd()) == "Registration failed: Quota exceeded"


def test_signed_in_user_skips_entry_page(client, login_as):
    login_as(Role.MEMBER)
    res = client.get("/auth/")
    assert res.headers["Location"].endswith("/home/")


def test_logout_clears_session(client, login_as):
    login_as(Role.MEMBER)
    res = client.get("/auth/logout")
    assert res.headers["Location"].endswith("/auth/")
    with client.session_transaction() as sess:
        assert "uid" not in sess
    assert client.get("/home/").headers["Location"].endswith("/auth/")


def test_home_without_profile_falls_back_to_email(client, login_as):
    login_as(Role.MEMBER, email="lost@example.com", with_profile=False)
    page = client.get("/home/").get_data(as_text=True)
    assert "Welcome, lost@example.com!" in page
    assert "User profile not found. Please contact administrator." in page
