"""
Pytest configuration and shared fixtures for the barbershop app tests.
"""

import os
from datetime import date, datetime, timedelta
from pathlib import Path

import bcrypt
import pytest
from dotenv import load_dotenv

test_env_path = Path(__file__).parent / ".env.test"
if test_env_path.exists():
    load_dotenv(test_env_path, override=True)
else:
    print(f" WARNING: .env.test not found at {test_env_path}")

os.environ["FLASK_ENV"] = "testing"
os.environ["TESTING"] = "True"

from main import create_app  # noqa: E402
from app.config import Config  # noqa: E402
from app.extensions import db as database  # noqa: E402
from app.models import Appointment, Barber, Base, Service, User  # noqa: E402
from app.services.availability_service import create_default_availability  # noqa: E402

PASSWORD = "password123"


@pytest.fixture(scope="session")
def app():
    """Create and configure a test app instance."""
    app = create_app()
    app.config.update(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key-for-testing-only",
            "OWNER_EMAIL": "owner@example.com",
        }
    )

    if not Config().is_safe_for_testing:
        pytest.exit(f"Refusing to run tests against a production database: {Config.SQLALCHEMY_DATABASE_URI}")

    yield app


@pytest.fixture
def db_session(app):
    """Fresh tables for every test."""
    with app.app_context():
        Base.metadata.create_all(bind=database.engine)

        yield database.session

        database.session.rollback()
        database.session.remove()
        Base.metadata.drop_all(bind=database.engine)


@pytest.fixture
def client(app, db_session):
    return app.test_client()


def make_user(db_session, name, email, role="CLIENT", phone=None, gender=None):
    user = User(
        name=name,
        email=email,
        password_hash=bcrypt.hashpw(PASSWORD.encode("utf-8"), bcrypt.gensalt(rounds=4)),
        role=role,
        phone=phone,
        gender=gender,
    )
    db_session.add(user)
    db_session.commit()
    return user


def make_barber(db_session, name, email, gender="BOTH", role="BARBER"):
    user = make_user(db_session, name, email, role=role)
    barber = Barber(user_id=user.id, gender=gender, is_active=True)
    db_session.add(barber)
    db_session.flush()
    create_default_availability(barber.id)
    db_session.commit()
    return barber


def login(client, email, password=PASSWORD):
    response = client.post(
        "/api/auth/login",
        json={"email": email, "password": password},
    )
    assert response.status_code == 200, response.data
    return {"Authorization": f"Bearer {response.json['token']}"}


def next_working_day(days_ahead=3):
    """A Monday-Saturday date at least ``days_ahead`` days out."""
    day = date.today() + timedelta(days=days_ahead)
    while day.weekday() == 6:
        day += timedelta(days=1)
    return day


@pytest.fixture
def sample_admin(db_session):
    """The shop owner account (matches OWNER_EMAIL)."""
    return make_user(db_session, "Shop Owner", "owner@example.com", role="ADMIN")


@pytest.fixture
def sample_client(db_session):
    return make_user(db_session, "Test Client", "client@example.com", phone="5551234567", gender="MALE")


@pytest.fixture
def sample_barber(db_session):
    """A BARBER user with a Barber profile and the default weekly schedule."""
    return make_barber(db_session, "Test Barber", "barber@example.com")


@pytest.fixture
def sample_service(db_session, sample_barber):
    service = Service(
        name="Classic Cut",
        description="Scissor cut and style",
        duration=30,
        price=25.0,
        barber_id=sample_barber.id,
        gender="UNISEX",
        is_active=True,
    )
    db_session.add(service)
    db_session.commit()
    return service


@pytest.fixture
def booking_day():
    return next_working_day()


@pytest.fixture
def sample_appointment(db_session, sample_client, sample_barber, sample_service, booking_day):
    appointment = Appointment(
        client_id=sample_client.id,
        barber_id=sample_barber.id,
        service_id=sample_service.id,
        date=datetime(booking_day.year, booking_day.month, booking_day.day, 10, 0),
        time="10:00",
        status="CONFIRMED",
    )
    db_session.add(appointment)
    db_session.commit()
    return appointment


@pytest.fixture
def completed_appointment(db_session, sample_client, sample_barber, sample_service):
    start = (datetime.now() - timedelta(days=2)).replace(hour=11, minute=0, second=0, microsecond=0)
    appointment = Appointment(
        client_id=sample_client.id,
        barber_id=sample_barber.id,
        service_id=sample_service.id,
        date=start,
        time="11:00",
        status="COMPLETED",
    )
    db_session.add(appointment)
    db_session.commit()
    return appointment


@pytest.fixture
def test_user_data():
    """Signup payload."""
    return {
        "name": "New User",
        "email": "newuser@example.com",
        "password": "password123",
        "phone": "555-0199",
        "gender": "FEMALE",
    }


@pytest.fixture
def auth_headers(client, sample_client):
    """Bearer headers for the sample client."""
    return login(client, sample_client.email)


@pytest.fixture
def admin_headers(client, sample_admin):
    return login(client, sample_admin.email)


@pytest.fixture
def barber_headers(client, sample_barber):
    return login(client, "barber@example.com")


@pytest.fixture
def cron_headers():
    return {"Authorization": f"Bearer {os.environ['CRON_SECRET']}"}
