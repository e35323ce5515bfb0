from petlov.extensions import db
from petlov.models.user import User
from petlov.security import issue_token


def test_health_is_public(client):
    rv = client.get("/api/health")
    assert rv.status_code == 200
    assert rv.get_json()["status"] == "OK"


def test_login_returns_token(client, make_user):
    make_user("admin@example.com", "Admin", role="admin", password="s3cret!")

    rv = client.post("/api/auth/login", json={"email": "ADMIN@example.com", "password": "s3cret!"})
    assert rv.status_code == 200
    data = rv.get_json()["data"]
    assert data["user"]["role"] == "admin"

    rv = client.get("/api/auth/me", headers={"Authorization": f"Bearer {data['token']}"})
    assert rv.status_code == 200
    assert rv.get_json()["data"]["email"] == "admin@example.com"


def test_login_rejects_bad_credentials(client, make_user):
    make_user("admin@example.com", password="s3cret!")

    rv = client.post("/api/auth/login", json={"email": "admin@example.com", "password": "wrong-one"})
    assert rv.status_code == 401
    assert rv.get_json()["error"]["message"] == "Invalid credentials"

    rv = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "whatever"})
    assert rv.status_code == 401


def test_login_rejects_inactive_user(client, make_user):
    user = make_user("old@example.com", password="s3cret!")
    user.active = False
    db.session.commit()

    rv = client.post("/api/auth/login", json={"email": "old@example.com", "password": "s3cret!"})
    assert rv.status_code == 401


def test_register_creates_admin(client):
    payload = {"name": "New Admin", "email": "new@example.com", "password": "abcdef"}
    rv = client.post("/api/auth/register", json=payload)
    assert rv.status_code == 201
    assert rv.get_json()["data"]["role"] == "admin"
    assert User.query.filter_by(email="new@example.com").one().check_password("abcdef")

    rv = client.post("/api/auth/register", json=payload)
    assert rv.status_code == 409


def test_register_disabled(app, client):
    app.config["ALLOW_REGISTRATION"] = False
    rv = client.post(
        "/api/auth/register",
        json={"name": "New Admin", "email": "new@example.com", "password": "abcdef"},
    )
    assert rv.status_code == 404


def test_me_requires_token(client):
    rv = client.get("/api/auth/me")
    assert rv.status_code == 401
    assert rv.get_json()["error"]["message"] == "Access token required"

    rv = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert rv.status_code == 401
    assert rv.get_json()["error"]["message"] == "Invalid token"


def test_expired_token(app, client, make_user):
    user = make_user("admin@example.com", role="admin")
    token = issue_token(user, app.config["JWT_SECRET_KEY"], expires_hours=-1)

    rv = client.get("/api/adoptions", headers={"Authorization": f"Bearer {token}"})
    assert rv.status_code == 401
    assert rv.get_json()["error"]["message"] == "Token expired"


def test_token_signed_with_other_key(client, make_user):
    user = make_user("admin@example.com", role="admin")
    token = issue_token(user, "some-other-secret-0123456789-abcdefghij")

    rv = client.get("/api/adoptions", headers={"Authorization": f"Bearer {token}"})
    assert rv.status_code == 401


def test_unknown_route_uses_error_envelope(client):
    rv = client.get("/api/nothing-here")
    assert rv.status_code == 404
    assert rv.get_json() == {"success": False, "error": {"message": "Route not found"}}
