import os
import logging
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_compress import Compress
from sqlalchemy.orm import DeclarativeBase
from werkzeug.middleware.proxy_fix import ProxyFix

logger = logging.getLogger(__name__)

class Base(DeclarativeBase):
    pass

db = SQLAlchemy(model_class=Base)
compress = Compress()


def _env_float(name, default):
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return float(value)


def _env_int(name, default):
    value = os.environ.get(name)
    if value is None or not value.strip():
        return default
    return int(value)


def create_app(config_overrides=None):
    # Create the app
    app = Flask(__name__)
    app.secret_key = os.environ.get("SESSION_SECRET")
    if not app.secret_key:
        raise RuntimeError("SESSION_SECRET environment variable is required but not set")
    # Trust one proxy for X-Forwarded-For / Proto / Host
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)

    # CORS restricted to the back office origins
    production_origins = os.environ.get('ALLOWED_ORIGINS', '').split(',')
    allowed_origins = [origin.strip() for origin in production_origins if origin.strip()]
    if not allowed_origins:
        allowed_origins = ["http://localhost:8080", "http://127.0.0.1:8080"]

    CORS(app, origins=allowed_origins,
         supports_credentials=False,
         allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
         methods=["GET", "OPTIONS"])

    app.config['COMPRESS_MIMETYPES'] = ['application/json', 'text/csv', 'text/plain']
    app.config['COMPRESS_LEVEL'] = 6
    app.config['COMPRESS_MIN_SIZE'] = 500
    compress.init_app(app)

    # Configure the database - PostgreSQL in production, SQLite for development
    database_url = os.environ.get("DATABASE_URL") or "sqlite:///chauffeur_reports.db"

    if database_url.startswith(("postgresql://", "postgres://")):
        if database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql://", 1)
        database_url = database_url.replace("postgresql://", "postgresql+psycopg2://", 1)

        from urllib.parse import urlparse
        parsed = urlparse(database_url)
        logger.info(f"Connecting to PostgreSQL: host={parsed.hostname}, db={parsed.path[1:]}, user={parsed.username}")

        app.config["SQLALCHEMY_DATABASE_URI"] = database_url
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
            "pool_size": 5,
            "pool_recycle": 280,  # Slightly less than 5 minutes to prevent stale connections
            "pool_pre_ping": True,
            "max_overflow": 10,
            "pool_timeout": 20,
            "connect_args": {
                "sslmode": "require",
                "connect_timeout": 10,
                "application_name": "chauffeur_reports",
            }
        }
    else:
        app.config["SQLALCHEMY_DATABASE_URI"] = database_url
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
            "pool_pre_ping": True,
        }

    # Analytics tuning knobs
    app.config["ANALYTICS_ON_TIME_PLACEHOLDER"] = _env_float("ANALYTICS_ON_TIME_PLACEHOLDER", 94.0)
    app.config["ANALYTICS_AVERAGE_SPEED_MPH"] = _env_float("ANALYTICS_AVERAGE_SPEED_MPH", 40.0)
    app.config["ANALYTICS_OVERHEAD_HOURS"] = _env_float("ANALYTICS_OVERHEAD_HOURS", 0.25)
    app.config["ANALYTICS_DEFAULT_JOB_HOURS"] = _env_float("ANALYTICS_DEFAULT_JOB_HOURS", 2.0)
    app.config["ANALYTICS_DRIVER_TOP_N"] = _env_int("ANALYTICS_DRIVER_TOP_N", 5)
    app.config["ANALYTICS_FLEET_SAMPLE_SIZE"] = _env_int("ANALYTICS_FLEET_SAMPLE_SIZE", 5)
    app.config["REPORTS_PAGE_SIZE"] = _env_int("REPORTS_PAGE_SIZE", 15)
    app.config["REPORTS_FETCH_LIMIT"] = _env_int("REPORTS_FETCH_LIMIT", 500)
    app.config["REPORTS_TIMEZONE"] = os.environ.get("REPORTS_TIMEZONE", "Europe/London")

    if config_overrides:
        app.config.update(config_overrides)

    from utils.logging_config import setup_logging, log_request_start, log_request_end
    setup_logging(app)
    app.before_request(log_request_start)
    app.after_request(log_request_end)

    from utils.config_validator import check_configuration
    check_configuration(app.config, strict=os.environ.get('FLASK_ENV') == 'production')

    # Initialize extensions
    db.init_app(app)

    from admin_routes import admin_bp
    app.register_blueprint(admin_bp, url_prefix='/admin')

    with app.app_context():
        import models  # noqa: F401
        db.create_all()

    return app
