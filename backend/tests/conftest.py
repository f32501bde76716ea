"""
Pytest fixtures for the clinic backend tests.

Provides an in-memory database, a per-test table wipe, clinic/member
factories and the Flask test client.

Fixtures hand back plain ids and headers rather than ORM instances, since
a request made through the test client may end the session the instance
was loaded in.
"""

import itertools
from types import SimpleNamespace

import bcrypt
import pytest

from clinic import create_app
from clinic.extensions import db
from clinic.models import User
from clinic.permissions import ClinicRole, GlobalRole
from clinic.services import clinic_service, permission_service, session_service


TEST_PASSWORD = "Password123!"

# bcrypt at cost 4 keeps fixture setup fast; verify_password accepts any cost
_CHEAP_HASH = bcrypt.hashpw(TEST_PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'IDENTITY_ALIASES': {},
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def headers_for(user_id: int) -> dict:
    """Open a session for user_id without going through bcrypt login."""
    _, token = session_service.create_session(user_id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def make_user(db_session):
    """Factory: make_user(role=..., email=...) -> user id."""
    counter = itertools.count(1)

    def _make(role: str = GlobalRole.STAFF, email: str | None = None, name: str | None = None) -> int:
        n = next(counter)
        user = User(
            name=name or f"User {n}",
            email=email or f"user{n}@clinic.test",
            role=role,
            password_hash=_CHEAP_HASH,
        )
        db_session.add(user)
        db_session.commit()
        return user.id

    return _make


@pytest.fixture(scope='function')
def make_clinic(db_session, make_user):
    """Factory: make_clinic(name) -> namespace(id, owner_id, owner_membership_id, headers)."""
    def _make(name: str = "Clinic A") -> SimpleNamespace:
        owner_id = make_user(name=f"Owner of {name}")
        clinic = clinic_service.create_clinic(owner_id, {"name": name})
        owner_membership = permission_service.get_membership_for_user(clinic.id, owner_id)
        return SimpleNamespace(
            id=clinic.id,
            owner_id=owner_id,
            owner_membership_id=owner_membership.id,
            headers=headers_for(owner_id),
        )

    return _make


@pytest.fixture(scope='function')
def clinic_a(make_clinic):
    return make_clinic("Clinic A")


@pytest.fixture(scope='function')
def clinic_b(make_clinic):
    return make_clinic("Clinic B")


@pytest.fixture(scope='function')
def add_member(db_session, make_user):
    """
    Factory: add_member(clinic_id, role, permissions=[(module, action), ...], global_role=...)
    -> namespace(user_id, membership_id, email, headers).
    """
    def _add(
        clinic_id: int,
        role: str = ClinicRole.STAFF,
        permissions=(),
        global_role: str = GlobalRole.STAFF,
    ) -> SimpleNamespace:
        user_id = make_user(role=global_role)
        membership = clinic_service.add_member(clinic_id, user_id, role)
        if permissions:
            permission_service.copy_permissions(membership.id, [list(p) for p in permissions])
        email = db_session.get(User, user_id).email
        return SimpleNamespace(
            user_id=user_id,
            membership_id=membership.id,
            email=email,
            headers=headers_for(user_id),
        )

    return _add


@pytest.fixture(scope='function')
def financial_member(clinic_a, add_member):
    """STAFF member of clinic A holding the financial read/create/update grants."""
    return add_member(
        clinic_a.id,
        ClinicRole.STAFF,
        permissions=[("financial", "read"), ("financial", "create"), ("financial", "update")],
    )
