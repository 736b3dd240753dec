from flask_wtf import FlaskForm
from wtforms import StringField, SelectField, IntegerField, DateField
from wtforms.validators import Optional, NumberRange, Length, ValidationError
from services.export_service import ViewState, SORT_FIELDS

STATUS_CHOICES = [
    ('all', 'All statuses'),
    ('new', 'New'),
    ('confirmed', 'Confirmed'),
    ('in_progress', 'In progress'),
    ('completed', 'Completed'),
    ('cancelled', 'Cancelled'),
    ('in_review', 'In review'),
]

SORT_CHOICES = [(field, field.replace('_', ' ').title()) for field in SORT_FIELDS]


class ReportFilterForm(FlaskForm):
    """Query-string filters for the job report table and its CSV export"""
    class Meta:
        csrf = False

    search = StringField('Search', default='', validators=[Optional(), Length(max=100)])
    service_type = StringField('Service', default='all', validators=[Optional(), Length(max=50)])
    status = SelectField('Status', choices=STATUS_CHOICES, default='all')
    date_from = DateField('From', validators=[Optional()])
    date_to = DateField('To', validators=[Optional()])
    sort = SelectField('Sort by', choices=SORT_CHOICES, default='pickup_date')
    order = SelectField('Order', choices=[('asc', 'Ascending'), ('desc', 'Descending')], default='desc')
    page = IntegerField('Page', default=1, validators=[Optional(), NumberRange(min=1)])

    def validate_date_to(self, field):
        if field.data and self.date_from.data and field.data < self.date_from.data:
            raise ValidationError('End date must be on or after the start date')

    def to_view_state(self) -> ViewState:
        return ViewState(
            search=(self.search.data or '').strip(),
            service_type=self.service_type.data or 'all',
            status=self.status.data,
            date_from=self.date_from.data,
            date_to=self.date_to.data,
            sort_field=self.sort.data,
            sort_order=self.order.data,
            page=self.page.data or 1,
        )


class OverviewForm(FlaskForm):
    class Meta:
        csrf = False

    days = IntegerField('Days', default=30, validators=[Optional(), NumberRange(min=1, max=366)])
    granularity = IntegerField('Bucket width (days)', default=7, validators=[Optional(), NumberRange(min=1, max=31)])


class PeriodReportForm(FlaskForm):
    class Meta:
        csrf = False

    period = SelectField('Period', choices=[('daily', 'Daily'), ('weekly', 'Weekly'), ('monthly', 'Monthly')],
                         default='weekly')
