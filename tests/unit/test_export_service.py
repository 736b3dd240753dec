"""
Unit tests for the job report table and CSV export
"""

from datetime import date

import pytest

from services.export_service import (
    ViewState, filter_rows, sort_rows, paginate, format_amount, format_display_row,
    build_table_view, to_csv, export_jobs_csv, export_period_report_csv, report_filename,
)
from tests.unit.conftest import booking_record

HEADER = '"Date","Job ID","Customer","Service","Driver","Vehicle","Revenue","Distance","Status"'


class TestViewState:

    def test_defaults(self):
        state = ViewState()
        assert state.sort_field == 'pickup_date'
        assert state.sort_order == 'desc'
        assert state.page == 1
        assert state.status == 'all'

    @pytest.mark.parametrize('kwargs', [
        {'sort_field': 'driver'},
        {'sort_order': 'sideways'},
        {'page': 0},
    ])
    def test_rejects_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            ViewState(**kwargs)

    def test_changing_filters_resets_page(self):
        state = ViewState(page=3).with_filters(search='heathrow', status='completed')
        assert state.page == 1
        assert state.search == 'heathrow'
        assert state.status == 'completed'

    def test_sorting_same_column_flips_order(self):
        state = ViewState()
        assert state.sorted_by('pickup_date').sort_order == 'asc'
        assert state.sorted_by('pickup_date').sorted_by('pickup_date').sort_order == 'desc'

    def test_sorting_new_column_starts_descending(self):
        state = ViewState(sort_order='asc').sorted_by('total_price')
        assert state.sort_field == 'total_price'
        assert state.sort_order == 'desc'

    def test_transitions_do_not_mutate(self):
        state = ViewState()
        state.on_page(4)
        assert state.page == 1


class TestFilterRows:

    @pytest.fixture
    def rows(self):
        return [
            booking_record(id='aaa-111', customer_name='Alice Smith', pickup_location='Heathrow T5',
                           service_type='airport_transfer', status='completed', pickup_date=date(2024, 6, 1)),
            booking_record(id='bbb-222', customer_name='Bob Jones', dropoff_location='Ascot',
                           service_type='events', status='cancelled', pickup_date=date(2024, 6, 10)),
            booking_record(id='ccc-333', customer_name=None, pickup_location=None,
                           service_type='corporate', status='completed', pickup_date=date(2024, 6, 20)),
        ]

    def test_no_filters_keeps_everything(self, rows):
        assert filter_rows(rows, ViewState()) == rows

    def test_search_is_case_insensitive_across_fields(self, rows):
        assert [r.id for r in filter_rows(rows, ViewState(search='HEATHROW'))] == ['aaa-111']
        assert [r.id for r in filter_rows(rows, ViewState(search='ascot'))] == ['bbb-222']
        assert [r.id for r in filter_rows(rows, ViewState(search='ccc'))] == ['ccc-333']

    def test_service_and_status_filters(self, rows):
        assert [r.id for r in filter_rows(rows, ViewState(status='completed', service_type='corporate'))] == [
            'ccc-333']

    def test_date_range_is_inclusive(self, rows):
        state = ViewState(date_from=date(2024, 6, 10), date_to=date(2024, 6, 20))
        assert [r.id for r in filter_rows(rows, state)] == ['bbb-222', 'ccc-333']


class TestSortRows:

    def test_equal_revenue_keeps_original_order(self):
        first = booking_record(id='first', total_price=100.0)
        top = booking_record(id='top', total_price=200.0)
        second = booking_record(id='second', total_price=100.0)

        assert [r.id for r in sort_rows([first, top, second], 'total_price', 'desc')] == ['top', 'first', 'second']
        assert [r.id for r in sort_rows([first, top, second], 'total_price', 'asc')] == ['first', 'second', 'top']

    def test_missing_numbers_sort_as_zero(self):
        rows = [booking_record(id='none', distance_miles=None), booking_record(id='five', distance_miles=5.0)]
        assert [r.id for r in sort_rows(rows, 'distance_miles', 'asc')] == ['none', 'five']

    def test_customer_names_ignore_case(self):
        rows = [booking_record(customer_name='bob'), booking_record(customer_name='Alice'),
                booking_record(customer_name='carol')]
        assert [r.customer_name for r in sort_rows(rows, 'customer_name', 'asc')] == ['Alice', 'bob', 'carol']

    def test_unknown_field(self):
        with pytest.raises(ValueError):
            sort_rows([], 'status')


class TestPaginate:

    def test_last_page(self):
        page = paginate(list(range(32)), page=3, page_size=15)

        assert page['rows'] == [30, 31]
        assert page['total_pages'] == 3
        assert page['showing_from'] == 31
        assert page['showing_to'] == 32

    def test_page_past_the_end_is_clamped(self):
        assert paginate(list(range(32)), page=10, page_size=15)['page'] == 3

    def test_empty(self):
        page = paginate([], page=1)
        assert page['rows'] == []
        assert page['total_pages'] == 0
        assert page['showing_from'] == 0
        assert page['showing_to'] == 0


class TestFormatting:

    def test_format_amount(self):
        assert format_amount(100.0) == '100'
        assert format_amount(99.5) == '99.5'
        assert format_amount(12.25) == '12.25'
        assert format_amount(None) == '0'

    def test_display_row(self):
        record = booking_record(id='abcdef123456', pickup_date=date(2024, 6, 30), status=None,
                                service_type='airport_transfer', total_price=100.0, distance_miles=None)

        row = format_display_row(record)

        assert row['short_id'] == '#abcdef12'
        assert row['date'] == '30 Jun 2024'
        assert row['service'] == 'Airport transfer'
        assert row['status'] == 'New'
        assert row['revenue'] == '£100'
        assert row['distance'] == '—'
        assert row['driver'] == '—'

    def test_table_view(self):
        rows = [booking_record(total_price=float(n)) for n in range(20)]

        view = build_table_view(rows, ViewState(sort_field='total_price', page=2), page_size=15)

        assert view['total_rows'] == 20
        assert len(view['rows']) == 5
        assert view['rows'][0]['revenue'] == '£4'
        assert view['filters']['page'] == 2


class TestCsvExport:

    def test_header_plus_one_line_per_row(self):
        rows = [booking_record(customer_name=f'Client {n}') for n in range(3)]

        content = export_jobs_csv(rows, ViewState())
        lines = content.split('\n')

        assert len(lines) == 4
        assert lines[0] == HEADER
        assert not content.endswith('\n')

    def test_exports_every_page_of_the_filtered_rows(self):
        rows = [booking_record(status='completed') for _ in range(20)]
        rows.append(booking_record(status='cancelled'))

        content = export_jobs_csv(rows, ViewState(status='completed', page=2))

        assert len(content.split('\n')) == 21

    def test_cells_are_quoted(self):
        record = booking_record(id='job-1', customer_name='Smith, John', pickup_date=date(2024, 6, 30),
                                service_type='corporate', total_price=150.0, distance_miles=12.5,
                                driver_name='James Mitchell', vehicle_name='Bentley')

        line = export_jobs_csv([record], ViewState()).split('\n')[1]

        assert line == ('"30 Jun 2024","job-1","Smith, John","corporate","James Mitchell","Bentley",'
                        '"£150","12.5 mi","completed"')

    def test_formula_cells_are_neutralised(self):
        content = export_jobs_csv([booking_record(customer_name='=HYPERLINK("x")')], ViewState())
        assert '"=HYPERLINK' not in content

    def test_generic_writer_uses_column_order(self):
        content = to_csv([{'b': 2, 'a': 1}], ['a', 'b'])
        assert content == '"a","b"\n"1","2"'

    def test_period_report_csv(self):
        report = {
            'total_jobs': 3, 'completed_jobs': 1, 'revenue': 150.0, 'total_miles': 15.0,
            'avg_job_value': 50.0, 'driver_utilisation': 100.0, 'vehicle_utilisation': 50.0,
        }

        lines = export_period_report_csv(report).split('\n')

        assert lines[0] == '"Metric","Value"'
        assert len(lines) == 8
        assert '"Revenue","£150.00"' in lines
        assert '"Vehicle Utilisation","50.0%"' in lines

    def test_report_filename(self):
        assert report_filename('jobs-report', date(2024, 6, 30)) == 'jobs-report-2024-06-30.csv'
