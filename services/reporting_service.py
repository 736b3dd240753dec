"""
Reporting Service

Runs the reporting pipeline: load one snapshot for the requested window,
then derive every view (KPIs, series, breakdowns, utilisation, job table)
from it. Changing filters, sort or page only re-runs the derivation.
Query failures propagate as ``QueryError`` so callers can show a single
"failed to load" state instead of half a dashboard.
"""

from typing import Optional, Dict, Any, Tuple, Callable
import logging
from dataclasses import dataclass
from datetime import datetime
from flask import current_app, has_app_context

from timezone_utils import get_uk_time_naive
from .records import ReportWindow, Snapshot
from .query_service import BookingQueryService, BookingFilter, DEFAULT_FETCH_LIMIT
from .export_service import (ViewState, PAGE_SIZE, build_table_view, export_jobs_csv,
                             export_period_report_csv, report_filename)
from .analytics_service import (compute_kpis, compute_series, compute_service_breakdown,
                                compute_driver_utilisation, compute_fleet_utilisation,
                                compute_period_report, compute_dashboard_metrics, period_window,
                                ON_TIME_PLACEHOLDER_RATE, AVERAGE_SPEED_MPH, FIXED_OVERHEAD_HOURS,
                                DEFAULT_JOB_HOURS, DRIVER_TOP_N, FLEET_SAMPLE_SIZE)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportSettings:
    """Tuning values for the analytics, normally taken from the app config"""
    on_time_placeholder: float = ON_TIME_PLACEHOLDER_RATE
    average_speed_mph: float = AVERAGE_SPEED_MPH
    overhead_hours: float = FIXED_OVERHEAD_HOURS
    default_job_hours: float = DEFAULT_JOB_HOURS
    driver_top_n: int = DRIVER_TOP_N
    fleet_sample_size: int = FLEET_SAMPLE_SIZE
    page_size: int = PAGE_SIZE
    fetch_limit: int = DEFAULT_FETCH_LIMIT

    @classmethod
    def from_config(cls, config) -> 'ReportSettings':
        return cls(
            on_time_placeholder=config.get('ANALYTICS_ON_TIME_PLACEHOLDER', ON_TIME_PLACEHOLDER_RATE),
            average_speed_mph=config.get('ANALYTICS_AVERAGE_SPEED_MPH', AVERAGE_SPEED_MPH),
            overhead_hours=config.get('ANALYTICS_OVERHEAD_HOURS', FIXED_OVERHEAD_HOURS),
            default_job_hours=config.get('ANALYTICS_DEFAULT_JOB_HOURS', DEFAULT_JOB_HOURS),
            driver_top_n=config.get('ANALYTICS_DRIVER_TOP_N', DRIVER_TOP_N),
            fleet_sample_size=config.get('ANALYTICS_FLEET_SAMPLE_SIZE', FLEET_SAMPLE_SIZE),
            page_size=config.get('REPORTS_PAGE_SIZE', PAGE_SIZE),
            fetch_limit=config.get('REPORTS_FETCH_LIMIT', DEFAULT_FETCH_LIMIT),
        )


def _window_dict(window: Optional[ReportWindow]) -> Optional[Dict[str, str]]:
    if window is None:
        return None
    return {'start': window.start.isoformat(), 'end': window.end.isoformat()}


class ReportingService:
    """Service class for reporting and analytics operations"""

    def __init__(self, query_service: Optional[BookingQueryService] = None,
                 settings: Optional[ReportSettings] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.query_service = query_service or BookingQueryService()
        if settings is None:
            settings = ReportSettings.from_config(current_app.config) if has_app_context() else ReportSettings()
        self.settings = settings
        self.clock = clock or get_uk_time_naive

    def load_snapshot(self, window: Optional[ReportWindow], date_field: str = 'created_at',
                      limit: Optional[int] = None) -> Snapshot:
        """
        Fetch everything one report needs.

        Args:
            window: Reporting window (None for all bookings)
            date_field: Booking column the window applies to
            limit: Optional cap on the number of bookings

        Returns:
            Snapshot: immutable rows for this request

        Raises:
            QueryError: if any of the reads fails
        """
        bookings = self.query_service.fetch_bookings(
            BookingFilter(window=window, date_field=date_field, limit=limit)
        )
        drivers = self.query_service.fetch_drivers()
        vehicles = self.query_service.fetch_vehicles()
        testimonials = self.query_service.fetch_testimonials()

        logger.info(f"Loaded snapshot: {len(bookings)} bookings, {len(drivers)} drivers, "
                    f"{len(vehicles)} vehicles, {len(testimonials)} testimonials")
        return Snapshot(
            window=window,
            bookings=tuple(bookings),
            drivers=tuple(drivers),
            vehicles=tuple(vehicles),
            testimonials=tuple(testimonials),
            fetched_at=self.clock(),
        )

    def derive_views(self, snapshot: Snapshot, view_state: Optional[ViewState] = None,
                     bucket_width_days: int = 7, date_field: str = 'created_at') -> Dict[str, Any]:
        """
        Build the analytics view model from a snapshot. Pure: no queries.

        Returns:
            dict: KPIs, revenue and job series, service breakdown, driver and
            fleet utilisation, and the job table for ``view_state``
        """
        if snapshot.window is None:
            raise ValueError("Analytics views need a reporting window")

        view_state = view_state or ViewState()
        window = snapshot.window
        settings = self.settings

        kpis = compute_kpis(snapshot.bookings, snapshot.testimonials, window,
                            date_field=date_field, on_time_placeholder=settings.on_time_placeholder)

        return {
            'window': _window_dict(window),
            'kpis': kpis.to_dict(),
            'revenue_series': compute_series(snapshot.bookings, window, bucket_width_days,
                                             metric='revenue', date_field=date_field),
            'jobs_series': compute_series(snapshot.bookings, window, bucket_width_days,
                                          metric='jobs', date_field=date_field),
            'service_breakdown': compute_service_breakdown(snapshot.bookings, window, date_field),
            'driver_utilisation': compute_driver_utilisation(
                snapshot.bookings, snapshot.drivers, window, date_field,
                top_n=settings.driver_top_n,
                average_speed_mph=settings.average_speed_mph,
                overhead_hours=settings.overhead_hours,
                default_hours=settings.default_job_hours,
            ),
            'fleet_utilisation': compute_fleet_utilisation(
                snapshot.bookings, snapshot.vehicles, window, date_field,
                sample_size=settings.fleet_sample_size,
            ),
            'jobs_table': build_table_view(snapshot.bookings, view_state, settings.page_size),
            'generated_at': snapshot.fetched_at.isoformat(),
        }

    def get_overview(self, days: int = 30, bucket_width_days: int = 7,
                     view_state: Optional[ViewState] = None) -> Dict[str, Any]:
        window = ReportWindow.last_days(days, self.clock())
        snapshot = self.load_snapshot(window)
        return self.derive_views(snapshot, view_state, bucket_width_days)

    def load_job_rows(self):
        """Most recent bookings for the job report table"""
        return self.query_service.fetch_bookings(BookingFilter(limit=self.settings.fetch_limit))

    def get_jobs_table(self, view_state: ViewState) -> Dict[str, Any]:
        return build_table_view(self.load_job_rows(), view_state, self.settings.page_size)

    def export_jobs(self, view_state: ViewState) -> Tuple[str, str]:
        """
        Returns:
            tuple: (csv_content, filename)
        """
        content = export_jobs_csv(self.load_job_rows(), view_state)
        return content, report_filename('jobs-report', self.clock().date())

    def get_period_report(self, period: str) -> Dict[str, Any]:
        """Daily / weekly / monthly summary on pickup dates"""
        window = period_window(period, self.clock())
        bookings = self.query_service.fetch_bookings(BookingFilter(window=window, date_field='pickup_date'))
        drivers = self.query_service.fetch_drivers()
        vehicles = self.query_service.fetch_vehicles()

        report = compute_period_report(bookings, drivers, vehicles)
        report['period'] = period
        report['window'] = _window_dict(window)
        return report

    def export_period_report(self, period: str) -> Tuple[str, str]:
        report = self.get_period_report(period)
        return export_period_report_csv(report), report_filename(f'report-{period}', self.clock().date())

    def get_dashboard_metrics(self) -> Dict[str, Any]:
        bookings = self.query_service.fetch_bookings()
        drivers = self.query_service.fetch_drivers()
        vehicles = self.query_service.fetch_vehicles()

        metrics = compute_dashboard_metrics(bookings, drivers, vehicles, self.clock())
        metrics['generated_at'] = self.clock().isoformat()
        return metrics
