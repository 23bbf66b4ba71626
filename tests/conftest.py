import os

# Configure before the application modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["JWT_SECRET_KEY"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from leadcrm.core.database import Base, SessionLocal, engine
from leadcrm.core.security import create_access_token, get_password_hash
from leadcrm.main import app
from leadcrm.models import Lead, SystemClient, User

PASSWORD = "secret123"


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make(email, role="agent", manager=None, client_id=None, **extra):
        user = User(
            email=email,
            password_hash=get_password_hash(PASSWORD),
            first_name=extra.pop("first_name", email.split("@")[0]),
            role=role,
            manager_id=manager.id if manager else None,
            client_id=client_id if client_id is not None else (manager.client_id if manager else None),
            is_active=True,
            **extra,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def tenant(db):
    client = SystemClient(name="Acme", company_name="Acme Ltd")
    db.add(client)
    db.commit()
    db.refresh(client)
    return client


@pytest.fixture
def admin(make_user):
    return make_user("admin@example.com", role="admin")


@pytest.fixture
def manager(make_user, tenant):
    return make_user("manager@example.com", role="manager", client_id=tenant.id)


@pytest.fixture
def agent(make_user, manager):
    return make_user("agent@example.com", role="agent", manager=manager)


@pytest.fixture
def other_agent(make_user, manager):
    return make_user("other@example.com", role="agent", manager=manager)


@pytest.fixture
def auth_headers():
    def _headers(user):
        token = create_access_token({"sub": user.email, "id": user.id, "role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_lead(db):
    def _make(owner, **fields):
        lead = Lead(
            name=fields.pop("name", "Dana Levi"),
            phone=fields.pop("phone", "0501234567"),
            assigned_to=fields.pop("assigned_to", owner.id),
            created_by=fields.pop("created_by", owner.id),
            client_id=owner.client_id,
            **fields,
        )
        db.add(lead)
        db.commit()
        db.refresh(lead)
        return lead

    return _make
