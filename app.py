# app.py

import logging
import os

from dotenv import load_dotenv
from flask import Flask
from sqlalchemy import event

# Load environment variables from .env file first
load_dotenv()

# Module imports after load_dotenv() - E402 is intentional
from config import DevelopmentConfig, ProductionConfig, TestingConfig  # noqa: E402
from config.monitoring import (  # noqa: E402
    DevelopmentMonitoringConfig,
    ProductionMonitoringConfig,
    TestingMonitoringConfig,
)
from config.validation import validate_and_exit  # noqa: E402
from studio_app.cli import init_pipelines  # noqa: E402
from studio_app.models import db  # noqa: E402
from studio_app.utils.logging_config import setup_logging  # noqa: E402

logger = logging.getLogger(__name__)

app = Flask(__name__)

# Validate environment variables (only in production)
flask_env = os.environ.get("FLASK_ENV", "development")
if flask_env == "production":
    validate_and_exit(flask_env)

# Load configuration based on the environment
if flask_env == "production":
    app.config.from_object(ProductionConfig)
    app.config.from_object(ProductionMonitoringConfig)
elif flask_env == "testing":
    app.config.from_object(TestingConfig)
    app.config.from_object(TestingMonitoringConfig)
else:
    app.config.from_object(DevelopmentConfig)
    app.config.from_object(DevelopmentMonitoringConfig)

db.init_app(app)
setup_logging(app)


def _configure_sqlite_connection(dbapi_connection, connection_record):  # pragma: no cover - instrumentation
    """Apply concurrency-friendly pragmas and enforce foreign keys (needed for ON DELETE SET NULL)."""
    try:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA busy_timeout=5000")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
    except Exception as exc:
        logger.warning("Failed to apply SQLite PRAGMAs: %s", exc)


def configure_sqlite(engine) -> None:
    if engine.url.drivername.startswith("sqlite") and not getattr(engine, "_sqlite_pragmas_configured", False):
        event.listen(engine, "connect", _configure_sqlite_connection)
        engine._sqlite_pragmas_configured = True  # type: ignore[attr-defined]


with app.app_context():
    configure_sqlite(db.engine)
    # Create the database tables only if not in testing mode
    if not app.config.get("TESTING", False):
        db.create_all()

# Register the migration and audit command groups
init_pipelines(app)
