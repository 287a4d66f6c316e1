"""
Shared pytest fixtures.

Provides:
    - engine: in-memory SQLite engine with all tables (function-scoped)
    - db_session / repository: a session and the SQLAlchemy repository over it
    - case_service / application_service / notification_service
    - client: FastAPI test client wired to the same in-memory database
    - make_case: factory for persisted cases
"""
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lexmarket.cases.schemas import CaseCreate, MilestoneCreate
from lexmarket.database import Base, build_engine, get_db
from lexmarket.repositories.sql import SqlAlchemyCaseRepository
from lexmarket.services.application_service import ApplicationService
from lexmarket.services.case_service import CaseService
from lexmarket.services.notification_service import NotificationService

CLIENT_ID = "client-1"


# ── Database fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def repository(db_session):
    return SqlAlchemyCaseRepository(db_session)


# ── Service fixtures ─────────────────────────────────────────────────────


@pytest.fixture()
def notification_service(repository):
    return NotificationService(repository)


@pytest.fixture()
def case_service(repository, notification_service):
    return CaseService(repository, notification_service)


@pytest.fixture()
def application_service(repository, notification_service):
    return ApplicationService(repository, notification_service)


@pytest.fixture()
def make_case(case_service):
    """Factory fixture for creating persisted cases."""
    def _make_case(
        client_id: str = CLIENT_ID,
        case_title: str = "Tenancy dispute",
        milestones=None,
        **kwargs,
    ):
        if milestones is None:
            milestones = [
                MilestoneCreate(title="Demand letter", description="Draft and send", amount=Decimal("500")),
            ]
        return case_service.create_case(CaseCreate(
            client_id=client_id,
            case_title=case_title,
            case_description=kwargs.pop("case_description", "Landlord withheld the deposit"),
            milestones=milestones,
            **kwargs
        ))

    return _make_case


# ── HTTP fixtures ────────────────────────────────────────────────────────


@pytest.fixture()
def client(session_factory):
    """FastAPI test client sharing the in-memory database."""
    from main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
