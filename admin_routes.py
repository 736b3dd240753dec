from flask import Blueprint, request, jsonify, Response
import logging
from forms import ReportFilterForm, OverviewForm, PeriodReportForm
from services.reporting_service import ReportingService
from services.query_service import QueryError

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)


def _form_errors(form):
    return jsonify({'success': False, 'message': 'Invalid report parameters', 'errors': form.errors}), 400


def _load_failed(what, error):
    logger.error(f"Failed to load {what}: {str(error)}")
    return jsonify({'success': False, 'message': f'Failed to load {what}'}), 503


def _csv_response(content, filename):
    return Response(
        content,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={filename}'}
    )


@admin_bp.route('/analytics/overview')
def analytics_overview():
    """KPIs, series, breakdown, utilisation and job table for the last N days"""
    form = OverviewForm(formdata=request.args)
    filters = ReportFilterForm(formdata=request.args)
    if not form.validate():
        return _form_errors(form)
    if not filters.validate():
        return _form_errors(filters)

    try:
        overview = ReportingService().get_overview(
            days=form.days.data or 30,
            bucket_width_days=form.granularity.data or 7,
            view_state=filters.to_view_state(),
        )
    except QueryError as e:
        return _load_failed('analytics', e)

    return jsonify({'success': True, 'overview': overview})


@admin_bp.route('/reports/jobs')
def jobs_report():
    form = ReportFilterForm(formdata=request.args)
    if not form.validate():
        return _form_errors(form)

    try:
        table = ReportingService().get_jobs_table(form.to_view_state())
    except QueryError as e:
        return _load_failed('job data', e)

    return jsonify({'success': True, 'table': table})


@admin_bp.route('/reports/jobs/export')
def export_jobs_report():
    """CSV of every job matching the current filters"""
    form = ReportFilterForm(formdata=request.args)
    if not form.validate():
        return _form_errors(form)

    try:
        content, filename = ReportingService().export_jobs(form.to_view_state())
    except QueryError as e:
        return _load_failed('job data', e)

    return _csv_response(content, filename)


@admin_bp.route('/reports/summary')
def period_report():
    form = PeriodReportForm(formdata=request.args)
    if not form.validate():
        return _form_errors(form)

    try:
        report = ReportingService().get_period_report(form.period.data)
    except QueryError as e:
        return _load_failed('reports', e)

    return jsonify({'success': True, 'report': report})


@admin_bp.route('/reports/summary/export')
def export_period_report():
    form = PeriodReportForm(formdata=request.args)
    if not form.validate():
        return _form_errors(form)

    try:
        content, filename = ReportingService().export_period_report(form.period.data)
    except QueryError as e:
        return _load_failed('reports', e)

    return _csv_response(content, filename)


@admin_bp.route('/dashboard')
def dashboard_metrics():
    try:
        metrics = ReportingService().get_dashboard_metrics()
    except QueryError as e:
        return _load_failed('dashboard metrics', e)

    return jsonify({'success': True, 'metrics': metrics})
