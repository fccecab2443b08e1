"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema created/dropped per test
- Organisation and care-record factory
- HTTPX AsyncClient against the FastAPI app
"""
import os
import uuid
from datetime import date
from typing import AsyncGenerator, Generator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

# Configure before any careops import reads settings
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["CRON_SECRET"] = "test-cron-secret"
os.environ["FLEET_MAX_WORKERS"] = "1"  # One shared SQLite connection
os.environ["HOLIDAY_COUNTRY"] = ""  # Weekends only unless a test builds its own calendar
os.environ["EXTRA_HOLIDAYS"] = ""
os.environ["SENTRY_DSN"] = ""

from careops.db.base import Base  # noqa: E402
from careops.db.models import (  # noqa: E402
    Complaint,
    Incident,
    MedicationError,
    Organisation,
    Policy,
    PolicyAcknowledgement,
    ServiceUser,
    StaffMember,
)
from careops.db.session import SessionLocal, engine  # noqa: E402
from careops.main import app  # noqa: E402


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Fresh schema per test.

    Services under test commit and open their own sessions, so isolation
    comes from recreating the schema rather than rolling back.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


class Factory:
    """Creates committed records for one test session."""

    def __init__(self, db: Session):
        self.db = db

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        return obj

    def org(self, name: str = "Test Care Home", **kwargs) -> Organisation:
        return self._save(
            Organisation(id=uuid.uuid4(), name=name, slug=f"org-{uuid.uuid4().hex[:8]}", **kwargs)
        )

    def staff(self, org: Organisation, first_name: str = "Alex", **kwargs) -> StaffMember:
        kwargs.setdefault("last_name", "Carer")
        return self._save(
            StaffMember(id=uuid.uuid4(), organisation_id=org.id, first_name=first_name, **kwargs)
        )

    def service_user(self, org: Organisation, first_name: str = "Morag", **kwargs) -> ServiceUser:
        kwargs.setdefault("last_name", "Resident")
        return self._save(
            ServiceUser(id=uuid.uuid4(), organisation_id=org.id, first_name=first_name, **kwargs)
        )

    def complaint(self, org: Organisation, date_received: date, **kwargs) -> Complaint:
        kwargs.setdefault("complainant_name", "A Relative")
        return self._save(
            Complaint(
                id=uuid.uuid4(), organisation_id=org.id, date_received=date_received, **kwargs
            )
        )

    def medication_error(
        self, org: Organisation, category: str | None, error_date: date, **kwargs
    ) -> MedicationError:
        kwargs.setdefault("error_type", "WRONG_DOSE")
        return self._save(
            MedicationError(
                id=uuid.uuid4(),
                organisation_id=org.id,
                error_date=error_date,
                ncc_merp_category=category,
                **kwargs,
            )
        )

    def incident(self, org: Organisation, incident_date: date, severity: str, **kwargs) -> Incident:
        kwargs.setdefault("incident_type", "FALL")
        return self._save(
            Incident(
                id=uuid.uuid4(),
                organisation_id=org.id,
                incident_date=incident_date,
                severity=severity,
                **kwargs,
            )
        )

    def policy(self, org: Organisation, name: str, **kwargs) -> Policy:
        kwargs.setdefault("status", "active")
        return self._save(
            Policy(id=uuid.uuid4(), organisation_id=org.id, policy_name=name, **kwargs)
        )

    def acknowledgement(
        self, org: Organisation, policy: Policy, staff: StaffMember
    ) -> PolicyAcknowledgement:
        return self._save(
            PolicyAcknowledgement(
                id=uuid.uuid4(),
                organisation_id=org.id,
                policy_id=policy.id,
                staff_member_id=staff.id,
            )
        )


@pytest.fixture(scope="function")
def factory(db: Session) -> Factory:
    return Factory(db)


@pytest.fixture(scope="function")
def test_org(factory: Factory) -> Organisation:
    """Create a test organisation."""
    return factory.org()


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated AsyncClient against the app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c
