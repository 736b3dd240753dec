"""
Export Service

Turns booking records into the job report table (search, filters, sort and
pagination driven by an immutable ``ViewState``) and into CSV downloads.
Every interaction builds a new ``ViewState`` and recomputes the view from the
in-memory snapshot; nothing is fetched again.
"""

from typing import Optional, Dict, Any, List, Sequence, Iterable
import logging
import math
from dataclasses import dataclass, replace
from datetime import date
from io import StringIO

from defusedcsv import csv

from .records import BookingRecord

logger = logging.getLogger(__name__)

PAGE_SIZE = 15
SORT_FIELDS = ('pickup_date', 'customer_name', 'total_price', 'distance_miles')
SORT_ORDERS = ('asc', 'desc')
ALL = 'all'
EMPTY_CELL = '—'

CSV_COLUMNS = ['Date', 'Job ID', 'Customer', 'Service', 'Driver', 'Vehicle', 'Revenue', 'Distance', 'Status']
SUMMARY_COLUMNS = ['Metric', 'Value']


@dataclass(frozen=True)
class ViewState:
    """Filter, sort and page selection for one job report session"""
    search: str = ''
    service_type: str = ALL
    status: str = ALL
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    sort_field: str = 'pickup_date'
    sort_order: str = 'desc'
    page: int = 1

    def __post_init__(self):
        if self.sort_field not in SORT_FIELDS:
            raise ValueError(f"Cannot sort by {self.sort_field}")
        if self.sort_order not in SORT_ORDERS:
            raise ValueError(f"Unknown sort order: {self.sort_order}")
        if self.page < 1:
            raise ValueError("Page numbers start at 1")

    def with_filters(self, **changes) -> 'ViewState':
        """New state with updated filters, back on the first page"""
        return replace(self, page=1, **changes)

    def sorted_by(self, field: str) -> 'ViewState':
        """Clicking the active column flips the order; a new column starts descending"""
        if field == self.sort_field:
            return replace(self, sort_order='asc' if self.sort_order == 'desc' else 'desc')
        return replace(self, sort_field=field, sort_order='desc')

    def on_page(self, page: int) -> 'ViewState':
        return replace(self, page=page)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'search': self.search,
            'service_type': self.service_type,
            'status': self.status,
            'date_from': self.date_from.isoformat() if self.date_from else None,
            'date_to': self.date_to.isoformat() if self.date_to else None,
            'sort_field': self.sort_field,
            'sort_order': self.sort_order,
            'page': self.page,
        }


def _matches_search(record: BookingRecord, needle: str) -> bool:
    haystacks = (record.id, record.customer_name, record.pickup_location, record.dropoff_location)
    return any(value and needle in value.lower() for value in haystacks)


def filter_rows(rows: Iterable[BookingRecord], state: ViewState) -> List[BookingRecord]:
    """Apply every active filter (all must match)"""
    needle = state.search.strip().lower()
    filtered = []
    for record in rows:
        if needle and not _matches_search(record, needle):
            continue
        if state.service_type != ALL and record.service_type != state.service_type:
            continue
        if state.status != ALL and record.status != state.status:
            continue
        if state.date_from and record.pickup_date < state.date_from:
            continue
        if state.date_to and record.pickup_date > state.date_to:
            continue
        filtered.append(record)
    return filtered


def _sort_key(field: str):
    if field == 'pickup_date':
        return lambda record: record.pickup_date or date.min
    if field == 'customer_name':
        return lambda record: (record.customer_name or '').lower()
    return lambda record: getattr(record, field) or 0.0


def sort_rows(rows: Iterable[BookingRecord], field: str, order: str = 'desc') -> List[BookingRecord]:
    """Stable sort: rows with equal keys keep their fetch order in either direction"""
    if field not in SORT_FIELDS:
        raise ValueError(f"Cannot sort by {field}")
    return sorted(rows, key=_sort_key(field), reverse=(order == 'desc'))


def paginate(rows: Sequence, page: int, page_size: int = PAGE_SIZE) -> Dict[str, Any]:
    total_rows = len(rows)
    total_pages = math.ceil(total_rows / page_size) if total_rows else 0
    page = max(1, min(page, max(total_pages, 1)))
    start = (page - 1) * page_size
    page_rows = list(rows[start:start + page_size])

    return {
        'rows': page_rows,
        'page': page,
        'page_size': page_size,
        'total_rows': total_rows,
        'total_pages': total_pages,
        'showing_from': start + 1 if page_rows else 0,
        'showing_to': start + len(page_rows),
    }


def format_amount(value: Optional[float]) -> str:
    """100.0 -> '100', 99.5 -> '99.5'"""
    return f"{float(value or 0):.2f}".rstrip('0').rstrip('.')


def _humanise(value: Optional[str], default: str = EMPTY_CELL) -> str:
    if not value:
        return default
    return value[0].upper() + value[1:].replace('_', ' ')


def format_display_row(record: BookingRecord) -> Dict[str, Any]:
    """Cells as the job report table shows them"""
    return {
        'id': record.id,
        'short_id': f"#{record.id[:8]}",
        'date': record.pickup_date.strftime('%d %b %Y'),
        'customer': record.customer_name or EMPTY_CELL,
        'service': _humanise(record.service_type),
        'driver': record.driver_name or EMPTY_CELL,
        'vehicle': record.vehicle_name or EMPTY_CELL,
        'revenue': f"£{format_amount(record.total_price)}",
        'distance': f"{format_amount(record.distance_miles)} mi" if record.distance_miles else EMPTY_CELL,
        'status': _humanise(record.status, default='New'),
        'status_key': record.status,
    }


def derive_rows(rows: Iterable[BookingRecord], state: ViewState) -> List[BookingRecord]:
    """Filtered and sorted rows (every page)"""
    return sort_rows(filter_rows(rows, state), state.sort_field, state.sort_order)


def build_table_view(rows: Iterable[BookingRecord], state: ViewState,
                     page_size: int = PAGE_SIZE) -> Dict[str, Any]:
    view = paginate(derive_rows(rows, state), state.page, page_size)
    view['rows'] = [format_display_row(record) for record in view['rows']]
    view['filters'] = state.to_dict()
    return view


def to_csv(rows: Iterable[Dict[str, Any]], column_order: Sequence[str]) -> str:
    """
    Serialise dict rows with every cell quoted and one row per line.

    Cells that a spreadsheet would evaluate as a formula are neutralised by
    the defusedcsv writer.
    """
    output = StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator='\n')
    writer.writerow(list(column_order))
    for row in rows:
        writer.writerow([row.get(column, '') for column in column_order])
    return output.getvalue().rstrip('\n')


def to_csv_row(record: BookingRecord) -> Dict[str, str]:
    return {
        'Date': record.pickup_date.strftime('%d %b %Y'),
        'Job ID': record.id,
        'Customer': record.customer_name or EMPTY_CELL,
        'Service': record.service_type or EMPTY_CELL,
        'Driver': record.driver_name or EMPTY_CELL,
        'Vehicle': record.vehicle_name or EMPTY_CELL,
        'Revenue': f"£{format_amount(record.total_price)}",
        'Distance': f"{format_amount(record.distance_miles)} mi" if record.distance_miles else EMPTY_CELL,
        'Status': record.status or EMPTY_CELL,
    }


def export_jobs_csv(rows: Iterable[BookingRecord], state: ViewState) -> str:
    """CSV of every row matching the current filters, not just the visible page"""
    exported = derive_rows(rows, state)
    logger.info(f"Exporting {len(exported)} jobs to CSV")
    return to_csv((to_csv_row(record) for record in exported), CSV_COLUMNS)


def export_period_report_csv(report: Dict[str, Any]) -> str:
    rows = [
        {'Metric': 'Total Jobs', 'Value': report['total_jobs']},
        {'Metric': 'Completed Jobs', 'Value': report['completed_jobs']},
        {'Metric': 'Revenue', 'Value': f"£{report['revenue']:.2f}"},
        {'Metric': 'Total Miles', 'Value': f"{report['total_miles']:.2f}"},
        {'Metric': 'Avg Job Value', 'Value': f"£{report['avg_job_value']:.2f}"},
        {'Metric': 'Driver Utilisation', 'Value': f"{report['driver_utilisation']:.1f}%"},
        {'Metric': 'Vehicle Utilisation', 'Value': f"{report['vehicle_utilisation']:.1f}%"},
    ]
    return to_csv(rows, SUMMARY_COLUMNS)


def report_filename(prefix: str, today: date) -> str:
    return f"{prefix}-{today.strftime('%Y-%m-%d')}.csv"
