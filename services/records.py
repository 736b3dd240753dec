"""
Snapshot Records

Typed, read-only views of the rows the reporting pipeline works on.
The query layer converts ORM rows into these records once per request so the
aggregation and export code never touches the session or loosely-typed rows.
Nullable columns stay ``Optional`` here; defaults are applied where the
numbers are aggregated, not when the record is built.
"""

from dataclasses import dataclass, field
from datetime import datetime, date, time, timedelta
from typing import Optional, Tuple

# Statuses that count towards revenue and "jobs completed"
REVENUE_STATUSES = frozenset({'completed', 'confirmed'})
CANCELLED_STATUS = 'cancelled'


def _as_float(value) -> Optional[float]:
    if value is None:
        return None
    return float(value)


@dataclass(frozen=True)
class ReportWindow:
    """Inclusive ``[start, end]`` range a report is computed over"""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end < self.start:
            raise ValueError(f"Report window ends before it starts: {self.start} > {self.end}")

    @classmethod
    def last_days(cls, days: int, now: datetime) -> 'ReportWindow':
        start = datetime.combine((now - timedelta(days=days)).date(), time.min)
        end = datetime.combine(now.date(), time.max)
        return cls(start=start, end=end)

    @classmethod
    def for_dates(cls, start_date: date, end_date: date) -> 'ReportWindow':
        return cls(start=datetime.combine(start_date, time.min),
                   end=datetime.combine(end_date, time.max))

    @property
    def days(self) -> float:
        return (self.end - self.start).total_seconds() / 86400

    def contains(self, value) -> bool:
        """Check a datetime, or a calendar date by day, against the window"""
        if value is None:
            return False
        if isinstance(value, datetime):
            return self.start <= value <= self.end
        return self.start.date() <= value <= self.end.date()


@dataclass(frozen=True)
class DriverRecord:
    id: str
    name: str
    is_active: bool = True
    is_available: bool = True

    @classmethod
    def from_model(cls, driver) -> 'DriverRecord':
        return cls(
            id=driver.id,
            name=driver.name,
            is_active=bool(driver.is_active),
            is_available=bool(driver.is_available),
        )


@dataclass(frozen=True)
class VehicleRecord:
    id: str
    name: str
    category: Optional[str] = None
    is_active: bool = True
    service_status: Optional[str] = None

    @classmethod
    def from_model(cls, vehicle) -> 'VehicleRecord':
        return cls(
            id=vehicle.id,
            name=vehicle.name,
            category=vehicle.category,
            is_active=bool(vehicle.is_active),
            service_status=vehicle.service_status,
        )


@dataclass(frozen=True)
class TestimonialRecord:
    id: str
    rating: Optional[int] = None
    is_active: bool = True

    @classmethod
    def from_model(cls, testimonial) -> 'TestimonialRecord':
        return cls(
            id=testimonial.id,
            rating=testimonial.rating,
            is_active=bool(testimonial.is_active),
        )


@dataclass(frozen=True)
class BookingRecord:
    id: str
    pickup_date: date
    status: Optional[str] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    pickup_location: Optional[str] = None
    dropoff_location: Optional[str] = None
    pickup_time: Optional[str] = None
    service_type: Optional[str] = None
    total_price: Optional[float] = None
    distance_miles: Optional[float] = None
    pickup_lat: Optional[float] = None
    pickup_lng: Optional[float] = None
    dropoff_lat: Optional[float] = None
    dropoff_lng: Optional[float] = None
    wait_time_hours: Optional[float] = None
    delay_minutes: Optional[int] = None
    driver_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    driver_name: Optional[str] = None
    vehicle_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, booking) -> 'BookingRecord':
        return cls(
            id=booking.id,
            pickup_date=booking.pickup_date,
            status=booking.status,
            customer_name=booking.customer_name,
            customer_email=booking.customer_email,
            customer_phone=booking.customer_phone,
            pickup_location=booking.pickup_location,
            dropoff_location=booking.dropoff_location,
            pickup_time=booking.pickup_time,
            service_type=booking.service_type,
            total_price=_as_float(booking.total_price),
            distance_miles=_as_float(booking.distance_miles),
            pickup_lat=booking.pickup_lat,
            pickup_lng=booking.pickup_lng,
            dropoff_lat=booking.dropoff_lat,
            dropoff_lng=booking.dropoff_lng,
            wait_time_hours=_as_float(booking.wait_time_hours),
            delay_minutes=booking.delay_minutes,
            driver_id=booking.driver_id,
            vehicle_id=booking.vehicle_id,
            driver_name=booking.driver.name if booking.driver else None,
            vehicle_name=booking.vehicle.name if booking.vehicle else None,
            created_at=booking.created_at,
        )

    @property
    def is_revenue_generating(self) -> bool:
        return self.status in REVENUE_STATUSES

    @property
    def has_coordinates(self) -> bool:
        return None not in (self.pickup_lat, self.pickup_lng, self.dropoff_lat, self.dropoff_lng)

    def timestamp_for(self, date_field: str):
        """Value used to place the booking in a report window"""
        if date_field == 'created_at':
            return self.created_at
        if date_field == 'pickup_date':
            return self.pickup_date
        raise ValueError(f"Unsupported date field: {date_field}")


@dataclass(frozen=True)
class Snapshot:
    """Rows fetched for one report request, immutable for its duration"""
    window: Optional[ReportWindow]
    bookings: Tuple[BookingRecord, ...] = ()
    drivers: Tuple[DriverRecord, ...] = ()
    vehicles: Tuple[VehicleRecord, ...] = ()
    testimonials: Tuple[TestimonialRecord, ...] = ()
    fetched_at: datetime = field(default_factory=datetime.now)
