import os
from datetime import datetime
import pytz

def get_reporting_timezone():
    """Timezone the back office reports in (UK by default)"""
    return pytz.timezone(os.environ.get('REPORTS_TIMEZONE', 'Europe/London'))

def get_uk_time_naive():
    """Get current UK time as naive datetime for database storage"""
    return datetime.now(get_reporting_timezone()).replace(tzinfo=None)
