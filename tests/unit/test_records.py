"""
Unit tests for report windows and snapshot records
"""

from datetime import datetime, date, time

import pytest

from services.records import ReportWindow, Snapshot
from tests.conftest import NOW
from tests.unit.conftest import booking_record


class TestReportWindow:

    def test_last_days_covers_whole_calendar_days(self):
        window = ReportWindow.last_days(7, NOW)
        assert window.start == datetime(2024, 6, 23)
        assert window.end == datetime.combine(date(2024, 6, 30), time.max)

    def test_end_before_start(self):
        with pytest.raises(ValueError):
            ReportWindow(start=NOW, end=datetime(2024, 1, 1))

    def test_contains_datetimes_and_dates(self):
        window = ReportWindow.for_dates(date(2024, 6, 1), date(2024, 6, 30))

        assert window.contains(datetime(2024, 6, 30, 23, 59))
        assert window.contains(date(2024, 6, 1))
        assert not window.contains(date(2024, 7, 1))
        assert not window.contains(None)

    def test_days(self):
        window = ReportWindow(start=datetime(2024, 6, 1), end=datetime(2024, 6, 8))
        assert window.days == 7


class TestBookingRecord:

    def test_revenue_statuses(self):
        assert booking_record(status='completed').is_revenue_generating
        assert booking_record(status='confirmed').is_revenue_generating
        assert not booking_record(status='cancelled').is_revenue_generating
        assert not booking_record(status=None).is_revenue_generating

    def test_has_coordinates_needs_all_four(self):
        assert not booking_record(pickup_lat=51.5, pickup_lng=-0.1, dropoff_lat=52.4).has_coordinates
        assert booking_record(pickup_lat=51.5, pickup_lng=-0.1, dropoff_lat=52.4,
                              dropoff_lng=-1.9).has_coordinates

    def test_timestamp_for(self):
        record = booking_record()
        assert record.timestamp_for('created_at') == record.created_at
        assert record.timestamp_for('pickup_date') == record.pickup_date
        with pytest.raises(ValueError):
            record.timestamp_for('updated_at')

    def test_records_are_immutable(self):
        record = booking_record()
        with pytest.raises(AttributeError):
            record.status = 'cancelled'


def test_snapshot_defaults_to_empty_tuples():
    snapshot = Snapshot(window=None)
    assert snapshot.bookings == ()
    assert snapshot.testimonials == ()
