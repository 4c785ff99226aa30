from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from dispatch.context import DispatchContext
from dispatch.database import Base, build_engine
from dispatch.main import create_app
from dispatch.models import Mission, MissionAssignment, User


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'dispatch.sqlite3'}")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def context(session_factory):
    return DispatchContext(session_factory)


@pytest.fixture
def app(context):
    return create_app(context)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def future(days: int = 2, hour: int = 10) -> datetime:
    """Aware UTC datetime ``days`` ahead at ``hour``:00"""
    base = datetime.now(timezone.utc) + timedelta(days=days)
    return base.replace(hour=hour, minute=0, second=0, microsecond=0)


def add_user(db, name="Jean", role="technicien", email=None, **extra) -> User:
    user = User(name=name, role=role, email=email, **extra)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def add_mission(db, start: datetime, end: datetime, title="Livraison château", **extra) -> Mission:
    mission = Mission(
        type=extra.pop("type", "Livraison jeux"),
        title=title,
        date_start=start.astimezone(timezone.utc).replace(tzinfo=None),
        date_end=end.astimezone(timezone.utc).replace(tzinfo=None),
        location=extra.pop("location", "Lyon"),
        forfeit=extra.pop("forfeit", 150),
        **extra,
    )
    db.add(mission)
    db.commit()
    db.refresh(mission)
    return mission


def add_assignment(db, mission, technician, status="pending") -> MissionAssignment:
    assignment = MissionAssignment(mission_id=mission.id, technician_id=technician.id, status=status)
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment


@pytest.fixture(autouse=True)
def no_email_transport(monkeypatch):
    """Tests never reach a real mail server"""
    from dispatch import email_service

    monkeypatch.setattr(email_service, "get_default_transport", lambda: None)
