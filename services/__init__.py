"""
Service Layer Architecture

Business logic for the reporting back office, kept out of the route handlers:

1. **Query Layer**: read-only bulk fetches converted to typed records
2. **Aggregation**: pure functions over a fetched snapshot
3. **Presentation/Export**: table views and CSV built from the same snapshot
4. **Error Handling**: fetch failures surface as ``QueryError``

Services Architecture:
- **BookingQueryService**: bookings, drivers, vehicles, testimonials reads
- **analytics_service**: KPIs, series, breakdowns, utilisation, haversine distance
- **export_service**: ViewState, filter/sort/paginate, CSV export
- **ReportingService**: snapshot loading and view derivation
- **TransactionHelper**: retry and rollback around database reads
"""

from .records import (BookingRecord, DriverRecord, VehicleRecord, TestimonialRecord,
                      ReportWindow, Snapshot)
from .query_service import BookingQueryService, BookingFilter, QueryError
from .export_service import ViewState
from .reporting_service import ReportingService, ReportSettings
from .transaction_helper import TransactionHelper

__all__ = [
    'BookingRecord',
    'DriverRecord',
    'VehicleRecord',
    'TestimonialRecord',
    'ReportWindow',
    'Snapshot',
    'BookingQueryService',
    'BookingFilter',
    'QueryError',
    'ViewState',
    'ReportingService',
    'ReportSettings',
    'TransactionHelper'
]
