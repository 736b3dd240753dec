"""
Query Service

Bulk reads of bookings, drivers, vehicles and testimonials for the reporting
pipeline. Rows are converted to immutable records straight away. A failed
read raises ``QueryError``; there is no best-effort fallback because a report
built on partial data would be wrong without saying so.
"""

from typing import Optional, List
import logging
from dataclasses import dataclass
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload
from models import Booking, Driver, Vehicle, Testimonial
from .records import BookingRecord, DriverRecord, VehicleRecord, TestimonialRecord, ReportWindow
from .transaction_helper import TransactionHelper

logger = logging.getLogger(__name__)

DEFAULT_FETCH_LIMIT = 500


class QueryError(Exception):
    """Raised when the store cannot be read"""
    pass


@dataclass(frozen=True)
class BookingFilter:
    """Restricts a booking fetch to a window on one of its date columns"""
    window: Optional[ReportWindow] = None
    date_field: str = 'created_at'
    limit: Optional[int] = None

    def __post_init__(self):
        if self.date_field not in ('created_at', 'pickup_date'):
            raise ValueError(f"Unsupported date field: {self.date_field}")


class BookingQueryService:
    """Service class for the reporting reads"""

    @TransactionHelper.with_read_retry()
    def _fetch_bookings(self, booking_filter: BookingFilter) -> List[BookingRecord]:
        query = Booking.query.options(joinedload(Booking.driver), joinedload(Booking.vehicle))

        window = booking_filter.window
        if window is not None:
            if booking_filter.date_field == 'pickup_date':
                query = query.filter(Booking.pickup_date.between(window.start.date(), window.end.date()))
            else:
                query = query.filter(Booking.created_at.between(window.start, window.end))

        query = query.order_by(Booking.pickup_date.desc(), Booking.created_at.desc())
        if booking_filter.limit:
            query = query.limit(booking_filter.limit)

        return [BookingRecord.from_model(booking) for booking in query.all()]

    def fetch_bookings(self, booking_filter: Optional[BookingFilter] = None) -> List[BookingRecord]:
        """
        Fetch bookings, newest pickup first.

        Args:
            booking_filter: Optional window/limit restriction

        Returns:
            List of booking records

        Raises:
            QueryError: if the database read fails
        """
        booking_filter = booking_filter or BookingFilter()
        try:
            bookings = self._fetch_bookings(booking_filter)
        except SQLAlchemyError as e:
            logger.error(f"Error fetching bookings: {str(e)}")
            raise QueryError("Failed to load bookings") from e

        logger.debug(f"Fetched {len(bookings)} bookings")
        return bookings

    @TransactionHelper.with_read_retry()
    def _fetch_drivers(self) -> List[DriverRecord]:
        return [DriverRecord.from_model(d) for d in Driver.query.order_by(Driver.name).all()]

    def fetch_drivers(self) -> List[DriverRecord]:
        try:
            return self._fetch_drivers()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching drivers: {str(e)}")
            raise QueryError("Failed to load drivers") from e

    @TransactionHelper.with_read_retry()
    def _fetch_vehicles(self) -> List[VehicleRecord]:
        return [VehicleRecord.from_model(v) for v in Vehicle.query.order_by(Vehicle.name).all()]

    def fetch_vehicles(self) -> List[VehicleRecord]:
        try:
            return self._fetch_vehicles()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching vehicles: {str(e)}")
            raise QueryError("Failed to load vehicles") from e

    @TransactionHelper.with_read_retry()
    def _fetch_testimonials(self) -> List[TestimonialRecord]:
        return [TestimonialRecord.from_model(t) for t in Testimonial.query.all()]

    def fetch_testimonials(self) -> List[TestimonialRecord]:
        try:
            return self._fetch_testimonials()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching testimonials: {str(e)}")
            raise QueryError("Failed to load testimonials") from e
