"""
Pytest configuration and shared fixtures.

Each test gets its own SQLite file so concurrent sessions really contend for
the database the way separate app instances would.
"""

import os
from datetime import date, timedelta

from passlib.context import CryptContext

ADMIN_EMAIL = "admin@example-clinic.com"
ADMIN_PASSWORD = "correct-horse-battery"

os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///./clinic-test-unused.db"
os.environ["ADMIN_EMAIL"] = ADMIN_EMAIL
os.environ["ADMIN_PASSWORD_HASH"] = CryptContext(schemes=["bcrypt"], bcrypt__rounds=4).hash(ADMIN_PASSWORD)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from clinic_booking.core.db import build_session_maker, create_engine_from_url, get_session, init_db  # noqa: E402
from clinic_booking.core.security import create_access_token  # noqa: E402
from clinic_booking.main import app  # noqa: E402
from clinic_booking.models.appointment import Appointment, AppointmentCreate, AppointmentStatus  # noqa: E402
from clinic_booking.models.service_type import ServiceType  # noqa: E402

# Fixed calendar for service-level tests: a Monday, and the Monday after it.
TODAY = date(2026, 10, 19)
MONDAY = date(2026, 10, 26)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_engine_from_url(f"sqlite:///{tmp_path / 'clinic.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest_asyncio.fixture
async def service_type(session_maker) -> ServiceType:
    async with session_maker() as session:
        service_type = ServiceType(name="General consultation", is_active=True)
        session.add(service_type)
        await session.commit()
        return service_type


@pytest.fixture
def make_request(service_type):
    """Build a reservation request; keyword arguments override the defaults."""

    def _make(**overrides) -> AppointmentCreate:
        data = {
            "name": "Maria Silva",
            "patient_id": "123.456.789-01",
            "birth_date": date(1990, 5, 17),
            "appointment_date": MONDAY,
            "appointment_time": "07:00",
            "service_type_id": service_type.id,
        }
        data.update(overrides)
        return AppointmentCreate(**data)

    return _make


@pytest.fixture
def add_appointment(session_maker, service_type):
    """Insert an appointment row directly, bypassing the reservation checks."""

    async def _add(d: date, t, status: AppointmentStatus = AppointmentStatus.scheduled, **fields) -> Appointment:
        async with session_maker() as session:
            appointment = Appointment(
                name=fields.get("name", "Joao Souza"),
                patient_id=fields.get("patient_id", "98765432100"),
                birth_date=fields.get("birth_date", date(1985, 1, 2)),
                appointment_date=d,
                appointment_time=t,
                service_type_id=service_type.id,
                status=status.value,
            )
            session.add(appointment)
            await session.commit()
            return appointment

    return _add


@pytest_asyncio.fixture
async def client(session_maker):
    async def _get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(ADMIN_EMAIL)}"}


@pytest.fixture
def next_monday() -> date:
    """The first Monday strictly after the real today."""
    today = date.today()
    return today + timedelta(days=(7 - today.weekday()) or 7)
