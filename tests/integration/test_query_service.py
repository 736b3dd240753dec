"""
Integration tests for the reporting reads against an in-memory database
"""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from services.query_service import BookingQueryService, BookingFilter, QueryError
from services.records import ReportWindow
from services.transaction_helper import TransactionHelper
from tests.conftest import NOW, DriverFactory, VehicleFactory, BookingFactory, ReviewFactory


class TestBookingQueryService:

    def test_fetch_bookings_newest_pickup_first(self, db_session):
        BookingFactory(pickup_date=NOW.date() - timedelta(days=3))
        latest = BookingFactory(pickup_date=NOW.date())
        BookingFactory(pickup_date=NOW.date() - timedelta(days=1))

        bookings = BookingQueryService().fetch_bookings()

        assert len(bookings) == 3
        assert bookings[0].id == latest.id
        assert [b.pickup_date for b in bookings] == sorted((b.pickup_date for b in bookings), reverse=True)

    def test_records_carry_assignment_names(self, db_session):
        driver = DriverFactory(name='James Mitchell')
        vehicle = VehicleFactory(name='Bentley Flying Spur')
        BookingFactory(driver_id=driver.id, vehicle_id=vehicle.id, total_price=180)

        record = BookingQueryService().fetch_bookings()[0]

        assert record.driver_name == 'James Mitchell'
        assert record.vehicle_name == 'Bentley Flying Spur'
        assert record.total_price == 180.0
        assert isinstance(record.total_price, float)

    def test_created_at_window(self, db_session):
        inside = BookingFactory(created_at=NOW - timedelta(days=2))
        BookingFactory(created_at=NOW - timedelta(days=60))

        window = ReportWindow.last_days(30, NOW)
        bookings = BookingQueryService().fetch_bookings(BookingFilter(window=window))

        assert [b.id for b in bookings] == [inside.id]

    def test_pickup_date_window(self, db_session):
        BookingFactory(pickup_date=NOW.date() - timedelta(days=10))
        inside = BookingFactory(pickup_date=NOW.date() - timedelta(days=7))

        window = ReportWindow.last_days(7, NOW)
        bookings = BookingQueryService().fetch_bookings(BookingFilter(window=window, date_field='pickup_date'))

        assert [b.id for b in bookings] == [inside.id]

    def test_limit(self, db_session):
        for _ in range(5):
            BookingFactory()

        assert len(BookingQueryService().fetch_bookings(BookingFilter(limit=2))) == 2

    def test_unsupported_date_field(self):
        with pytest.raises(ValueError):
            BookingFilter(date_field='updated_at')

    def test_fetch_reference_tables(self, db_session):
        DriverFactory(name='Sarah Thompson')
        DriverFactory(name='David Chen')
        VehicleFactory(name='Rolls-Royce Phantom', is_active=False)
        ReviewFactory(rating=4)

        service = BookingQueryService()

        assert [d.name for d in service.fetch_drivers()] == ['David Chen', 'Sarah Thompson']
        assert service.fetch_vehicles()[0].is_active is False
        assert service.fetch_testimonials()[0].rating == 4

    def test_database_failure_raises_query_error(self, db_session):
        with patch.object(BookingQueryService, '_fetch_bookings', side_effect=SQLAlchemyError('boom')):
            with pytest.raises(QueryError):
                BookingQueryService().fetch_bookings()

        with patch.object(BookingQueryService, '_fetch_drivers', side_effect=SQLAlchemyError('boom')):
            with pytest.raises(QueryError):
                BookingQueryService().fetch_drivers()


class TestTransactionHelper:

    def test_transient_errors_are_retried_then_raised(self, app):
        calls = []

        @TransactionHelper.with_read_retry(max_retries=2, delay=0)
        def flaky_read():
            calls.append(1)
            raise OperationalError('SELECT 1', {}, Exception('connection reset'))

        with pytest.raises(OperationalError):
            flaky_read()
        assert len(calls) == 2

    def test_recovers_after_a_transient_error(self, app):
        calls = []

        @TransactionHelper.with_read_retry(max_retries=3, delay=0)
        def read():
            calls.append(1)
            if len(calls) == 1:
                raise OperationalError('SELECT 1', {}, Exception('connection reset'))
            return 'rows'

        assert read() == 'rows'
        assert len(calls) == 2

    def test_other_errors_are_not_retried(self, app):
        calls = []

        @TransactionHelper.with_read_retry(max_retries=3, delay=0)
        def broken_read():
            calls.append(1)
            raise ValueError('bad filter')

        with pytest.raises(ValueError):
            broken_read()
        assert len(calls) == 1
