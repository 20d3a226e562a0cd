# studio_app/utils/logging_config.py

"""
Logging setup shared by the web app and the pipeline CLI commands.

``setup_logging`` is safe to call repeatedly (tests re-run it after changing
config); handlers installed by a previous call are replaced, never stacked.
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler

_HANDLER_MARKER = "_studio_app_handler"
_PIPELINE_LOGGER = "studio_app"

# Attributes present on every LogRecord; anything else came in through ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys() | {"message", "asctime"}
)


class JSONFormatter(logging.Formatter):
    """Render records as one JSON object per line, including ``extra`` fields."""

    def format(self, record):
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _build_formatter(log_format):
    if str(log_format).lower() == "json":
        return JSONFormatter()
    return logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")


def _clear_handlers(logger):
    for handler in list(logger.handlers):
        if getattr(handler, _HANDLER_MARKER, False):
            logger.removeHandler(handler)
            handler.close()


def setup_logging(app):
    """Configure app and pipeline loggers from the Flask config."""
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    formatter = _build_formatter(app.config.get("LOG_FORMAT", "text"))

    handlers = []
    if app.config.get("ENABLE_CONSOLE_LOGGING", True):
        handlers.append(logging.StreamHandler())

    if app.config.get("ENABLE_FILE_LOGGING", False):
        log_dir = app.config.get("LOG_DIR", "logs")
        try:
            os.makedirs(log_dir, exist_ok=True)
            handlers.append(
                RotatingFileHandler(
                    os.path.join(log_dir, "studio_app.log"),
                    maxBytes=app.config.get("LOG_FILE_MAX_BYTES", 10485760),
                    backupCount=app.config.get("LOG_FILE_BACKUP_COUNT", 10),
                )
            )
        except OSError as exc:
            app.logger.warning("File logging disabled, cannot write to %s: %s", log_dir, exc)

    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        setattr(handler, _HANDLER_MARKER, True)

    for logger in (app.logger, logging.getLogger(_PIPELINE_LOGGER)):
        _clear_handlers(logger)
        logger.setLevel(level)
        for handler in handlers:
            logger.addHandler(handler)

    # Pipeline records are handled above; keep them out of the root logger.
    logging.getLogger(_PIPELINE_LOGGER).propagate = not handlers
    return app.logger
