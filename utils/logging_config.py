"""
Centralized logging configuration for the chauffeur reporting back office
Provides structured JSON logging and request timing with correlation IDs
"""

import os
import sys
import json
import uuid
import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any
from flask import has_request_context, request, g

# LogRecord attributes that are not user supplied "extra" fields
_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename', 'module',
    'exc_info', 'exc_text', 'stack_info', 'lineno', 'funcName', 'created', 'msecs',
    'relativeCreated', 'thread', 'threadName', 'processName', 'process', 'message',
    'taskName', 'correlation_id', 'request_duration',
}

SLOW_REQUEST_SECONDS = 5.0


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging
    Includes correlation ID, request path and application metadata
    """

    def __init__(self):
        super().__init__()
        self.application_name = "chauffeur_reports"
        self.environment = os.environ.get('FLASK_ENV', 'development')

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'application': self.application_name,
            'environment': self.environment,
        }

        correlation_id = getattr(record, 'correlation_id', None)
        if correlation_id:
            log_data['correlation_id'] = correlation_id

        if has_request_context():
            log_data['request'] = {
                'method': request.method,
                'path': request.path,
                'query': request.query_string.decode('utf-8', 'replace'),
                'remote_addr': request.remote_addr,
            }

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': traceback.format_exception(*record.exc_info)
            }

        extra_fields = {key: value for key, value in record.__dict__.items()
                        if key not in _RESERVED_ATTRS}
        if extra_fields:
            log_data['extra'] = extra_fields

        if record.levelno >= logging.ERROR:
            log_data['location'] = {
                'file': record.pathname,
                'function': record.funcName,
                'line': record.lineno
            }

        return json.dumps(log_data, ensure_ascii=False, default=str)


class RequestContextFilter(logging.Filter):
    """Inject the correlation ID and elapsed request time into log records"""

    def filter(self, record: logging.LogRecord) -> bool:
        if has_request_context():
            if hasattr(g, 'correlation_id'):
                record.correlation_id = g.correlation_id
            if hasattr(g, 'request_start_time'):
                record.request_duration = datetime.now().timestamp() - g.request_start_time
        return True


def _resolve_level() -> str:
    log_level = os.environ.get('LOG_LEVEL', 'INFO').upper()
    if log_level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
        log_level = 'INFO'
    return log_level


def setup_logging(app=None) -> Dict[str, logging.Logger]:
    """
    Configure root logging for the application.

    JSON output is used in production or when USE_JSON_LOGGING=true, a
    readable single-line format otherwise. Errors are additionally written
    to ``<LOG_DIR>/error.log`` unless LOG_DIR is set to an empty string.

    Returns:
        dict: the component loggers keyed by name
    """
    log_level = _resolve_level()

    use_json_logging = (
        os.environ.get('USE_JSON_LOGGING', 'false').lower() == 'true' or
        os.environ.get('FLASK_ENV') == 'production'
    )

    if use_json_logging:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter('[%(asctime)s] %(levelname)s in %(name)s: %(message)s')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    console_handler.addFilter(RequestContextFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    # Clear existing handlers to avoid duplicates when the factory runs twice
    root_logger.handlers.clear()
    root_logger.addHandler(console_handler)

    log_dir = os.environ.get('LOG_DIR', 'logs')
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        error_handler = logging.FileHandler(os.path.join(log_dir, 'error.log'))
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(formatter)
        error_handler.addFilter(RequestContextFilter())
        root_logger.addHandler(error_handler)

    loggers = {}
    for name in ('app', 'services', 'requests', 'database'):
        loggers[name] = logging.getLogger(name)
        loggers[name].setLevel(log_level)

    if os.environ.get('FLASK_ENV') == 'production':
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    if app:
        app.logger.info(f"Logging configured: level={log_level}, json_format={use_json_logging}")

    return loggers


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_request_start():
    """Mark the start of request processing and assign a correlation ID"""
    g.request_start_time = datetime.now().timestamp()
    g.correlation_id = request.headers.get('X-Correlation-ID') or uuid.uuid4().hex


def log_request_end(response):
    """Log request completion with timing and echo the correlation ID"""
    if not hasattr(g, 'request_start_time'):
        return response

    duration = datetime.now().timestamp() - g.request_start_time
    extra_data = {
        'method': request.method,
        'path': request.path,
        'status_code': response.status_code,
        'duration_ms': round(duration * 1000, 2),
    }

    if response.status_code >= 500:
        log_level = logging.ERROR
    elif response.status_code >= 400 or duration > SLOW_REQUEST_SECONDS:
        log_level = logging.WARNING
    else:
        log_level = logging.INFO

    get_logger('requests').log(log_level, f"Request completed: {request.method} {request.path}",
                               extra=extra_data)
    response.headers['X-Correlation-ID'] = g.correlation_id
    return response
