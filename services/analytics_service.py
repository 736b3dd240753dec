"""
Analytics Service

Pure aggregation over a fetched snapshot: KPIs, time-bucketed revenue and job
series, service-type breakdown, driver and fleet utilisation, plus the summary
figures behind the reports and admin dashboards.

Nothing in here talks to the database. Every function takes records and a
report window and returns plain dicts (or a ``KpiSet``) ready for a chart or
table. Missing numbers count as zero, missing labels fall back to a sentinel,
and empty inputs produce placeholder rows instead of dividing by zero.
"""

from typing import Optional, Dict, Any, List, Iterable, Sequence
import logging
import math
from collections import OrderedDict
from dataclasses import dataclass, asdict
from datetime import datetime, time, timedelta
from decimal import Decimal, ROUND_HALF_UP

from .records import (BookingRecord, DriverRecord, VehicleRecord, TestimonialRecord,
                      ReportWindow, CANCELLED_STATUS)

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3958.8
AVERAGE_SPEED_MPH = 40.0
FIXED_OVERHEAD_HOURS = 0.25
DEFAULT_JOB_HOURS = 2.0
# Stand-in shown when no booking carries delay data
ON_TIME_PLACEHOLDER_RATE = 94.0
DRIVER_TOP_N = 5
FLEET_SAMPLE_SIZE = 5

NO_DATA_LABEL = 'No data'
UNASSIGNED_LABEL = 'Unassigned'
MISSING_CATEGORY_LABEL = 'N/A'

UPCOMING_STATUSES = frozenset({'new', 'confirmed'})
CLOSE_PROTECTION_SERVICE = 'close_protection'
ENQUIRY_STATUS = 'in_review'

PERIOD_DAYS = {
    'daily': 0,
    'weekly': 7,
    'monthly': 30,
}


@dataclass(frozen=True)
class KpiSet:
    total_revenue: float
    jobs_completed: int
    avg_job_value: float
    repeat_client_rate: float
    cancellation_rate: float
    avg_rating: float
    total_reviews: int
    on_time_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def round_half_up(value: float, ndigits: int = 0) -> float:
    """Round like a spreadsheet does (0.5 always goes up)"""
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def _percentage(part: float, whole: float) -> float:
    if not whole:
        return 0.0
    return part / whole * 100


def _price(booking: BookingRecord) -> float:
    return booking.total_price or 0.0


def haversine_distance(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two coordinates.

    Returns:
        float: distance in miles, rounded to one decimal place
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return round(EARTH_RADIUS_MILES * c, 1)


def bookings_in_window(bookings: Iterable[BookingRecord], window: Optional[ReportWindow],
                       date_field: str = 'created_at') -> List[BookingRecord]:
    """Bookings whose ``date_field`` falls inside the window (all of them when no window)"""
    if window is None:
        return list(bookings)
    return [b for b in bookings if window.contains(b.timestamp_for(date_field))]


def _on_time_rate(revenue_jobs: Sequence[BookingRecord], placeholder: float) -> float:
    with_delay_data = [b for b in revenue_jobs if b.delay_minutes is not None]
    if not with_delay_data:
        return placeholder
    on_time = sum(1 for b in revenue_jobs if (b.delay_minutes or 0) <= 0)
    return round(_percentage(on_time, len(revenue_jobs)), 1)


def compute_kpis(bookings: Iterable[BookingRecord],
                 testimonials: Iterable[TestimonialRecord],
                 window: Optional[ReportWindow],
                 date_field: str = 'created_at',
                 on_time_placeholder: float = ON_TIME_PLACEHOLDER_RATE) -> KpiSet:
    """
    Headline KPIs for the analytics overview.

    Booking figures are restricted to the window; the rating figures are
    global because testimonials are not dated against bookings.

    Args:
        bookings: Booking records from the snapshot
        testimonials: Testimonial records from the snapshot
        window: Reporting window, or None for all bookings
        date_field: 'created_at' or 'pickup_date'
        on_time_placeholder: Rate reported when no delay data exists

    Returns:
        KpiSet: computed KPIs
    """
    in_window = bookings_in_window(bookings, window, date_field)
    revenue_jobs = [b for b in in_window if b.is_revenue_generating]

    total_revenue = sum(_price(b) for b in revenue_jobs)
    jobs_completed = len(revenue_jobs)
    total_bookings = len(in_window)

    # Proxy for repeat business: bookings beyond one per distinct email
    distinct_customers = len({b.customer_email for b in in_window})
    repeat_client_rate = _percentage(total_bookings - distinct_customers, total_bookings)

    cancelled = sum(1 for b in in_window if b.status == CANCELLED_STATUS)

    ratings = [t.rating for t in testimonials if t.rating is not None]
    avg_rating = sum(ratings) / len(ratings) if ratings else 0.0

    return KpiSet(
        total_revenue=round(total_revenue, 2),
        jobs_completed=jobs_completed,
        avg_job_value=round(total_revenue / jobs_completed, 2) if jobs_completed else 0.0,
        repeat_client_rate=round(repeat_client_rate, 1),
        cancellation_rate=round(_percentage(cancelled, total_bookings), 1),
        avg_rating=round(avg_rating, 1),
        total_reviews=len(ratings),
        on_time_rate=_on_time_rate(revenue_jobs, on_time_placeholder),
    )


def _bucket_label(index: int, bucket_width_days: int) -> str:
    if bucket_width_days == 7:
        return f"Week {index}"
    if bucket_width_days == 1:
        return f"Day {index}"
    return f"Period {index}"


def _as_datetime(value) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def compute_series(bookings: Iterable[BookingRecord],
                   window: ReportWindow,
                   bucket_width_days: int = 7,
                   metric: str = 'revenue',
                   date_field: str = 'created_at') -> List[Dict[str, Any]]:
    """
    Revenue or job counts per fixed-width bucket, counted back from the end
    of the window. Bucket 1 is the oldest; partial buckets at the start edge
    are folded into bucket 1.

    Returns:
        List of {'period', 'value'} in ascending bucket order, or a single
        'No data' row when nothing in the window contributes
    """
    if bucket_width_days <= 0:
        raise ValueError("bucket_width_days must be positive")
    if metric not in ('revenue', 'jobs'):
        raise ValueError(f"Unknown series metric: {metric}")

    bucket_count = max(1, math.ceil(window.days / bucket_width_days))
    values = [0.0] * bucket_count
    contributing = 0

    for booking in bookings_in_window(bookings, window, date_field):
        if not booking.is_revenue_generating:
            continue
        offset_days = (window.end - _as_datetime(booking.timestamp_for(date_field))).total_seconds() / 86400
        buckets_back = int(offset_days // bucket_width_days)
        index = max(1, bucket_count - buckets_back)
        values[index - 1] += _price(booking) if metric == 'revenue' else 1
        contributing += 1

    if not contributing:
        return [{'period': NO_DATA_LABEL, 'value': 0}]

    series = []
    for position, value in enumerate(values, start=1):
        series.append({
            'period': _bucket_label(position, bucket_width_days),
            'value': round(value, 2) if metric == 'revenue' else int(value),
        })
    return series


def compute_service_breakdown(bookings: Iterable[BookingRecord],
                              window: Optional[ReportWindow] = None,
                              date_field: str = 'created_at') -> List[Dict[str, Any]]:
    """
    Share of bookings per service type. Each percentage is rounded on its
    own, so the shares can add up to 99 or 101.
    """
    in_window = bookings_in_window(bookings, window, date_field)
    if not in_window:
        return [{'name': NO_DATA_LABEL, 'count': 0, 'value': 0}]

    counts = OrderedDict()
    for booking in in_window:
        name = booking.service_type or MISSING_CATEGORY_LABEL
        counts[name] = counts.get(name, 0) + 1

    ordered = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [
        {
            'name': name,
            'count': count,
            'value': int(round_half_up(_percentage(count, len(in_window)))),
        }
        for name, count in ordered
    ]


def estimate_job_hours(booking: BookingRecord,
                       average_speed_mph: float = AVERAGE_SPEED_MPH,
                       overhead_hours: float = FIXED_OVERHEAD_HOURS,
                       default_hours: float = DEFAULT_JOB_HOURS) -> float:
    """Driving time from the straight-line distance, or a flat default without coordinates"""
    if booking.has_coordinates:
        distance = haversine_distance(booking.pickup_lat, booking.pickup_lng,
                                      booking.dropoff_lat, booking.dropoff_lng)
        hours = distance / average_speed_mph + overhead_hours
    else:
        hours = default_hours
    return hours + (booking.wait_time_hours or 0.0)


def compute_driver_utilisation(bookings: Iterable[BookingRecord],
                               drivers: Iterable[DriverRecord],
                               window: Optional[ReportWindow] = None,
                               date_field: str = 'created_at',
                               top_n: int = DRIVER_TOP_N,
                               average_speed_mph: float = AVERAGE_SPEED_MPH,
                               overhead_hours: float = FIXED_OVERHEAD_HOURS,
                               default_hours: float = DEFAULT_JOB_HOURS) -> List[Dict[str, Any]]:
    """
    Estimated hours worked per driver across completed and confirmed jobs.

    Returns:
        Top ``top_n`` drivers as {'name', 'hours', 'jobs'}, busiest first
    """
    names = {driver.id: driver.name for driver in drivers}
    totals = OrderedDict()

    for booking in bookings_in_window(bookings, window, date_field):
        if not booking.is_revenue_generating:
            continue
        name = UNASSIGNED_LABEL
        if booking.driver_id:
            name = names.get(booking.driver_id) or booking.driver_name or UNASSIGNED_LABEL

        entry = totals.setdefault(name, {'hours': 0.0, 'jobs': 0})
        entry['hours'] += estimate_job_hours(booking, average_speed_mph, overhead_hours, default_hours)
        entry['jobs'] += 1

    ranked = sorted(
        ((name, entry) for name, entry in totals.items() if entry['hours'] > 0),
        key=lambda item: item[1]['hours'],
        reverse=True,
    )
    return [
        {'name': name, 'hours': round(entry['hours'], 1), 'jobs': entry['jobs']}
        for name, entry in ranked[:top_n]
    ]


def compute_fleet_utilisation(bookings: Iterable[BookingRecord],
                              vehicles: Iterable[VehicleRecord],
                              window: Optional[ReportWindow],
                              date_field: str = 'created_at',
                              sample_size: int = FLEET_SAMPLE_SIZE) -> List[Dict[str, Any]]:
    """Jobs and mileage per vehicle for the first ``sample_size`` vehicles"""
    in_window = bookings_in_window(bookings, window, date_field)

    report = []
    for vehicle in list(vehicles)[:sample_size]:
        vehicle_jobs = [b for b in in_window if b.vehicle_id == vehicle.id]
        report.append({
            'vehicle_id': vehicle.id,
            'vehicle': vehicle.name,
            'jobs': len(vehicle_jobs),
            'mileage': round(sum(b.distance_miles or 0.0 for b in vehicle_jobs), 1),
            'status': 'Active' if vehicle.is_active else 'Inactive',
        })
    return report


def period_window(period: str, now: datetime) -> ReportWindow:
    """Window behind the daily / weekly / monthly reports"""
    if period not in PERIOD_DAYS:
        raise ValueError(f"Unknown report period: {period}")
    return ReportWindow.last_days(PERIOD_DAYS[period], now)


def compute_period_report(bookings: Sequence[BookingRecord],
                          drivers: Sequence[DriverRecord],
                          vehicles: Sequence[VehicleRecord]) -> Dict[str, Any]:
    """
    Summary figures for the reports dashboard. ``bookings`` is expected to be
    already restricted to the period.
    """
    total_jobs = len(bookings)
    completed_jobs = sum(1 for b in bookings if b.status == 'completed')
    revenue = sum(_price(b) for b in bookings if b.is_revenue_generating)
    total_miles = sum(b.distance_miles or 0.0 for b in bookings)

    assigned_drivers = {b.driver_id for b in bookings if b.driver_id}
    assigned_vehicles = {b.vehicle_id for b in bookings if b.vehicle_id}

    return {
        'total_jobs': total_jobs,
        'completed_jobs': completed_jobs,
        'revenue': round(revenue, 2),
        'total_miles': round(total_miles, 1),
        'avg_job_value': round(revenue / total_jobs, 2) if total_jobs else 0.0,
        'driver_utilisation': round(_percentage(len(assigned_drivers), len(drivers)), 1),
        'vehicle_utilisation': round(_percentage(len(assigned_vehicles), len(vehicles)), 1),
        'completion_rate': round(_percentage(completed_jobs, total_jobs), 1),
        'avg_miles_per_job': round(total_miles / total_jobs, 1) if total_jobs else 0.0,
        'revenue_per_mile': round(revenue / total_miles, 2) if total_miles else 0.0,
    }


def compute_dashboard_metrics(bookings: Sequence[BookingRecord],
                              drivers: Sequence[DriverRecord],
                              vehicles: Sequence[VehicleRecord],
                              now: datetime) -> Dict[str, Any]:
    """Operational counters for the admin landing page"""
    week_ago = now - timedelta(days=7)

    revenue_this_week = sum(
        _price(b) for b in bookings
        if b.is_revenue_generating and b.created_at is not None and b.created_at >= week_ago
    )
    completed_jobs = sum(1 for b in bookings if b.status == 'completed')

    return {
        'upcoming_jobs': sum(1 for b in bookings if b.status in UPCOMING_STATUSES),
        'active_drivers': sum(1 for d in drivers if d.is_active and d.is_available),
        'vehicles_in_service': sum(1 for v in vehicles if v.is_active and v.service_status == 'active'),
        'revenue_this_week': round(revenue_this_week, 2),
        'total_jobs': len(bookings),
        'completed_jobs': completed_jobs,
        'completion_rate': round(_percentage(completed_jobs, len(bookings)), 1),
        'close_protection_enquiries': sum(
            1 for b in bookings
            if b.service_type == CLOSE_PROTECTION_SERVICE and b.status == ENQUIRY_STATUS
        ),
    }
