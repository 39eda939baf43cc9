import os

# must be set before flux.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("APP_ENV", "test")
os.environ["RATE_LIMIT_ENABLED"] = "false"

import uuid
from dataclasses import dataclass

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import flux.models  # noqa: F401  registers every table on Base.metadata
from flux.db import get_db
from flux.main import create_app
from flux.models.base import Base

@pytest.fixture()
def db_session() -> Session:
    # one in-memory database per test, shared by every connection via StaticPool
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    session: Session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        engine.dispose()

@pytest.fixture()
def app(db_session: Session):
    app = create_app()

    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    return app

@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)

def _login(client, name: str, provider: str = "google") -> str:
    r = client.post(
        f"/auth/sso/{provider}/callback",
        json={
            "provider_id": f"{provider}-{name}",
            "email": f"{name}@example.com",
            "display_name": name.title(),
            "username": name,
        },
    )
    assert r.status_code == 200, r.text
    # the callback also sets a cookie; tests authenticate with explicit headers
    client.cookies.clear()
    return r.json()["access_token"]

def _auth(jwt: str) -> dict[str, str]:
    return {"authorization": f"bearer {jwt}"}

def _user_id(client, jwt: str) -> uuid.UUID:
    r = client.get("/me", headers=_auth(jwt))
    assert r.status_code == 200, r.text
    return uuid.UUID(r.json()["id"])

@dataclass
class World:
    admin: str
    leader: str
    member: str
    outsider: str
    admin_id: uuid.UUID
    leader_id: uuid.UUID
    member_id: uuid.UUID
    outsider_id: uuid.UUID
    org_id: str
    team_id: str
    task_id: str

@pytest.fixture()
def world(client) -> World:
    """An org with one team: admin, a team leader, a team member holding one task, and an outsider."""
    admin = _login(client, "admin")
    leader = _login(client, "leader")
    member = _login(client, "member")
    outsider = _login(client, "outsider")

    leader_id = _user_id(client, leader)
    member_id = _user_id(client, member)

    r = client.post("/orgs", json={"name": "acme"}, headers=_auth(admin))
    assert r.status_code == 200, r.text
    org_id = r.json()["id"]

    r = client.post(f"/orgs/{org_id}/teams", json={"name": "core"}, headers=_auth(admin))
    assert r.status_code == 200, r.text
    team_id = r.json()["id"]

    r = client.post(f"/teams/{team_id}/leader", json={"user_id": str(leader_id)}, headers=_auth(admin))
    assert r.status_code == 200, r.text
    r = client.post(f"/teams/{team_id}/members", json={"user_id": str(member_id)}, headers=_auth(admin))
    assert r.status_code == 200, r.text

    r = client.post(f"/teams/{team_id}/tasks", json={"title": "write docs"}, headers=_auth(leader))
    assert r.status_code == 200, r.text
    task_id = r.json()["id"]

    r = client.post(f"/tasks/{task_id}/assignees", json={"user_id": str(member_id)}, headers=_auth(leader))
    assert r.status_code == 200, r.text

    return World(
        admin=admin,
        leader=leader,
        member=member,
        outsider=outsider,
        admin_id=_user_id(client, admin),
        leader_id=leader_id,
        member_id=member_id,
        outsider_id=_user_id(client, outsider),
        org_id=org_id,
        team_id=team_id,
        task_id=task_id,
    )
