from enum import Enum
import uuid
from app import db
from sqlalchemy import Index
from timezone_utils import get_uk_time_naive

class BookingStatus(Enum):
    NEW = 'new'
    CONFIRMED = 'confirmed'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    IN_REVIEW = 'in_review'

class VehicleServiceStatus(Enum):
    ACTIVE = 'active'
    IN_SERVICE = 'in_service'
    OFF_ROAD = 'off_road'


class Driver(db.Model):
    __tablename__ = 'drivers'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(100), nullable=False, index=True)
    email = db.Column(db.String(120))
    phone = db.Column(db.String(20))
    license_number = db.Column(db.String(50))
    is_active = db.Column(db.Boolean, default=True)
    is_available = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=get_uk_time_naive)

    bookings = db.relationship('Booking', back_populates='driver')

    def __repr__(self):
        return f'<Driver {self.name}>'


class Vehicle(db.Model):
    __tablename__ = 'vehicles'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(100), nullable=False)
    category = db.Column(db.String(50), nullable=False, default='executive')
    capacity = db.Column(db.Integer, default=3)
    current_mileage = db.Column(db.Float)
    is_active = db.Column(db.Boolean, default=True)
    service_status = db.Column(db.String(20), default=VehicleServiceStatus.ACTIVE.value)
    created_at = db.Column(db.DateTime, default=get_uk_time_naive)

    bookings = db.relationship('Booking', back_populates='vehicle')

    def __repr__(self):
        return f'<Vehicle {self.name}>'


class Booking(db.Model):
    __tablename__ = 'bookings'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Customer
    customer_name = db.Column(db.String(100))
    customer_email = db.Column(db.String(120), index=True)
    customer_phone = db.Column(db.String(30))

    # Journey
    pickup_location = db.Column(db.String(255), nullable=False)
    dropoff_location = db.Column(db.String(255), nullable=False)
    pickup_date = db.Column(db.Date, nullable=False, index=True)
    pickup_time = db.Column(db.String(5), nullable=False, default='09:00')
    pickup_lat = db.Column(db.Float)
    pickup_lng = db.Column(db.Float)
    dropoff_lat = db.Column(db.Float)
    dropoff_lng = db.Column(db.Float)
    distance_miles = db.Column(db.Float)
    wait_time_hours = db.Column(db.Float)
    delay_minutes = db.Column(db.Integer)
    passengers = db.Column(db.Integer, default=1)

    # Commercial
    status = db.Column(db.String(20), default=BookingStatus.NEW.value, index=True)
    service_type = db.Column(db.String(50), index=True)
    total_price = db.Column(db.Numeric(10, 2))

    # Assignment
    driver_id = db.Column(db.String(36), db.ForeignKey('drivers.id'), nullable=True, index=True)
    vehicle_id = db.Column(db.String(36), db.ForeignKey('vehicles.id'), nullable=True, index=True)

    created_at = db.Column(db.DateTime, default=get_uk_time_naive)

    driver = db.relationship('Driver', back_populates='bookings')
    vehicle = db.relationship('Vehicle', back_populates='bookings')

    __table_args__ = (
        Index('idx_booking_status_created', 'status', 'created_at'),
    )

    def __repr__(self):
        return f'<Booking {self.id} {self.status}>'


class Testimonial(db.Model):
    __tablename__ = 'testimonials'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    customer_name = db.Column(db.String(100), nullable=False)
    content = db.Column(db.Text, nullable=False)
    rating = db.Column(db.Integer)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=get_uk_time_naive)

    def __repr__(self):
        return f'<Testimonial {self.customer_name} {self.rating}>'
