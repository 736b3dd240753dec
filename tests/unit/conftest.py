"""
Record builders for the pure aggregation and export tests (no database)
"""

from datetime import timedelta
import uuid

import pytest

from services.records import BookingRecord, DriverRecord, VehicleRecord, ReportWindow
from tests.conftest import NOW


def booking_record(**overrides) -> BookingRecord:
    """BookingRecord with sensible defaults"""
    values = {
        'id': str(uuid.uuid4()),
        'pickup_date': NOW.date(),
        'status': 'completed',
        'customer_name': 'Alex Client',
        'customer_email': 'alex@example.com',
        'service_type': 'airport_transfer',
        'total_price': 100.0,
        'created_at': NOW - timedelta(days=1),
    }
    values.update(overrides)
    return BookingRecord(**values)


@pytest.fixture
def window():
    """Thirty day window ending on NOW"""
    return ReportWindow.last_days(30, NOW)


@pytest.fixture
def drivers():
    return [DriverRecord(id='d1', name='James Mitchell'), DriverRecord(id='d2', name='Sarah Thompson')]


@pytest.fixture
def vehicles():
    return [
        VehicleRecord(id='v1', name='Rolls-Royce Phantom', category='luxury'),
        VehicleRecord(id='v2', name='Range Rover', category='suv', is_active=False),
    ]
