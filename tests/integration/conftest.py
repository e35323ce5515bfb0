import os
import sys

import pytest
from flask.testing import FlaskClient

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from petlov import create_app
from petlov.extensions import db
from petlov.models.user import ROLE_ADMIN, ROLE_USER, User
from petlov.models.pet import Pet
from petlov.models.candidate import Candidate
from petlov.models.interest import Interest
from petlov.security import issue_token_for


def _assert_memory_db(uri: str):
    if uri != "sqlite:///:memory:":
        raise RuntimeError(
            f"Refusing to run tests on non-memory DB: {uri!r}. "
            "This guard protects your real database."
        )


@pytest.fixture(scope="function")
def app():
    os.environ.pop("DATABASE_URL", None)

    flask_app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key",
            "JWT_SECRET_KEY": "test-jwt-secret-0123456789-abcdefghij",
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "ALLOW_REGISTRATION": True,
            "LOG_LEVEL": "WARNING",
        }
    )

    _assert_memory_db(flask_app.config["SQLALCHEMY_DATABASE_URI"])

    with flask_app.app_context():
        db.create_all()
        yield flask_app
        _assert_memory_db(flask_app.config["SQLALCHEMY_DATABASE_URI"])
        db.session.remove()
        db.drop_all()

class IsolatedClient(FlaskClient):
    """Runs each request in its own app context.

    The fixture keeps one context open for direct DB access; without this the
    requests would share its `g` (Flask-Login's cached user, auth errors)
    and its scoped session.
    """

    def open(self, *args, **kwargs):
        with self.application.app_context():
            return super().open(*args, **kwargs)

@pytest.fixture()
def client(app):
    app.test_client_class = IsolatedClient
    return app.test_client()

@pytest.fixture()
def make_user(app):
    def _make_user(email: str, name: str = "Someone", role: str = ROLE_USER, password: str = "secret1"):
        u = User(email=email, name=name, role=role)
        u.set_password(password)
        db.session.add(u)
        db.session.commit()
        return u
    return _make_user

@pytest.fixture()
def auth_headers(app):
    def _auth_headers(user: User):
        return {"Authorization": f"Bearer {issue_token_for(user)}"}
    return _auth_headers

@pytest.fixture()
def admin_headers(make_user, auth_headers):
    admin = make_user("admin@example.com", "Admin", role=ROLE_ADMIN)
    return auth_headers(admin)

@pytest.fixture()
def make_pet(app):
    def _make_pet(name: str = "Thor", **fields):
        values = dict(
            type="dog",
            age="2 years",
            size="medium",
            sex="male",
            description="Friendly dog looking for a home.",
        )
        values.update(fields)
        pet = Pet(name=name, **values)
        db.session.add(pet)
        db.session.commit()
        return pet.id
    return _make_pet

@pytest.fixture()
def make_candidate(app):
    def _make_candidate(email: str, name: str = "Candidate"):
        c = Candidate(
            name=name,
            email=email,
            phone="+55 11 91234-5678",
            address="Rua das Flores 100, Sao Paulo",
            housing_type="House",
            available_time="Evenings",
            pet_experience="Had dogs before",
            motivation="Wants a companion at home.",
        )
        db.session.add(c)
        db.session.commit()
        return c.id
    return _make_candidate

@pytest.fixture()
def make_interest(app):
    def _make_interest(candidate_id: int, pet_id: int, status: str = "interested"):
        i = Interest(candidate_id=candidate_id, pet_id=pet_id, status=status)
        db.session.add(i)
        db.session.commit()
        return i.id
    return _make_interest


@pytest.fixture()
def two_suitors(make_pet, make_candidate, make_interest):
    """Pet P available, candidates A and B both interested in it."""
    pet_id = make_pet("Pipoca")
    a_id = make_candidate("a@example.com", "Alice")
    b_id = make_candidate("b@example.com", "Bruno")
    return {
        "pet": pet_id,
        "a": a_id,
        "b": b_id,
        "interest_a": make_interest(a_id, pet_id),
        "interest_b": make_interest(b_id, pet_id),
    }
