"""
Configuration validation for the reporting back office
Checks the analytics tuning knobs and database settings at startup
"""
import logging
from typing import List, Tuple, Mapping, Any

import pytz

logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """Raised when critical configuration is missing or invalid"""
    pass


def _number(config: Mapping[str, Any], key: str):
    value = config.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def validate_analytics_config(config: Mapping[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate the analytics and report settings.

    Args:
        config: Flask config (or any mapping with the same keys)

    Returns:
        tuple: (is_valid: bool, issues: List[str])
    """
    issues = []

    placeholder = _number(config, 'ANALYTICS_ON_TIME_PLACEHOLDER')
    if placeholder is None or not 0 <= placeholder <= 100:
        issues.append("ANALYTICS_ON_TIME_PLACEHOLDER must be a percentage between 0 and 100")

    speed = _number(config, 'ANALYTICS_AVERAGE_SPEED_MPH')
    if speed is None or speed <= 0:
        issues.append("ANALYTICS_AVERAGE_SPEED_MPH must be greater than zero")

    for key in ('ANALYTICS_OVERHEAD_HOURS', 'ANALYTICS_DEFAULT_JOB_HOURS'):
        value = _number(config, key)
        if value is None or value < 0:
            issues.append(f"{key} must not be negative")

    for key in ('ANALYTICS_DRIVER_TOP_N', 'ANALYTICS_FLEET_SAMPLE_SIZE',
                'REPORTS_PAGE_SIZE', 'REPORTS_FETCH_LIMIT'):
        value = config.get(key)
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            issues.append(f"{key} must be a positive integer")

    tz_name = config.get('REPORTS_TIMEZONE')
    if tz_name not in pytz.all_timezones_set:
        issues.append(f"REPORTS_TIMEZONE '{tz_name}' is not a known timezone")

    return len(issues) == 0, issues


def validate_database_config(config: Mapping[str, Any]) -> Tuple[bool, List[str]]:
    """
    Validate the SQLAlchemy connection settings.

    Returns:
        tuple: (is_valid: bool, issues: List[str])
    """
    issues = []
    uri = config.get('SQLALCHEMY_DATABASE_URI') or ''

    if not uri:
        issues.append("SQLALCHEMY_DATABASE_URI is not configured")
    elif not uri.startswith(('postgresql', 'sqlite')):
        issues.append("Only PostgreSQL and SQLite databases are supported")

    return len(issues) == 0, issues


def check_configuration(config: Mapping[str, Any], strict: bool = False) -> List[str]:
    """
    Run every validator and log the outcome.

    Args:
        config: Flask config
        strict: raise instead of warning when issues are found

    Returns:
        list: all issues found

    Raises:
        ConfigValidationError: strict mode and at least one issue
    """
    _, analytics_issues = validate_analytics_config(config)
    _, database_issues = validate_database_config(config)
    all_issues = analytics_issues + database_issues

    if not all_issues:
        logger.info("CONFIG: configuration check PASSED")
        return all_issues

    logger.warning(f"CONFIG: configuration check FAILED - Issues: {len(all_issues)}")
    for issue in all_issues:
        logger.warning(f"CONFIG: Issue - {issue}")

    if strict:
        raise ConfigValidationError("; ".join(all_issues))

    return all_issues
