"""
Pytest configuration and fixtures for the chauffeur reporting back office
"""

import os
from datetime import datetime, timedelta

import factory
from factory import Faker
import pytest

# Set test environment before importing app
os.environ.update({
    'FLASK_ENV': 'testing',
    'SESSION_SECRET': 'test_secret_key_for_testing_only',
    'DATABASE_URL': 'sqlite:///:memory:',
    'LOG_DIR': '',
})

from app import create_app, db
from models import Driver, Vehicle, Booking, Testimonial

NOW = datetime(2024, 6, 30, 12, 0, 0)


@pytest.fixture(scope='function')
def app():
    """Create application for testing"""
    app = create_app({
        'TESTING': True,
        'SERVER_NAME': 'localhost.localdomain',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create database session for testing"""
    yield db.session
    db.session.rollback()


# Factory classes for test data generation
class DriverFactory(factory.alchemy.SQLAlchemyModelFactory):
    class Meta:
        model = Driver
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = "commit"

    name = Faker('name')
    email = factory.Sequence(lambda n: f"driver{n}@test.com")
    phone = Faker('phone_number')
    license_number = factory.Sequence(lambda n: f"DL{n:08d}")
    is_active = True
    is_available = True


class VehicleFactory(factory.alchemy.SQLAlchemyModelFactory):
    class Meta:
        model = Vehicle
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = "commit"

    name = factory.Sequence(lambda n: f"Mercedes S-Class {n}")
    category = 'executive'
    capacity = 3
    is_active = True
    service_status = 'active'


class BookingFactory(factory.alchemy.SQLAlchemyModelFactory):
    class Meta:
        model = Booking
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = "commit"

    customer_name = Faker('name')
    customer_email = factory.Sequence(lambda n: f"client{n}@test.com")
    pickup_location = Faker('street_address')
    dropoff_location = Faker('street_address')
    pickup_date = factory.LazyFunction(lambda: NOW.date())
    pickup_time = '09:00'
    status = 'completed'
    service_type = 'airport_transfer'
    total_price = 150
    distance_miles = 20.0
    created_at = factory.LazyFunction(lambda: NOW - timedelta(days=1))


class ReviewFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Testimonial rows"""
    class Meta:
        model = Testimonial
        sqlalchemy_session = db.session
        sqlalchemy_session_persistence = "commit"

    customer_name = Faker('name')
    content = Faker('sentence')
    rating = 5
    is_active = True


@pytest.fixture
def fixed_clock():
    """Clock pinned to NOW for services that read the current time"""
    return lambda: NOW
