# config.py
import os


def _coerce_bool(value, default=False):
    """Convert environment-style truthy/falsey values to bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    value_str = str(value).strip().lower()
    if value_str in {"1", "true", "yes", "on"}:
        return True
    if value_str in {"0", "false", "no", "off"}:
        return False
    return default


def _coerce_int(value, default, *, minimum=0):
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return max(minimum, number)


def _coerce_float(value, default, *, minimum=0.0):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return max(minimum, number)


_CONFIG_DIR = os.path.dirname(os.path.abspath(__file__))
_PROJECT_ROOT = os.path.dirname(_CONFIG_DIR)


class Config:
    # SECRET_KEY must be set via environment variable in production.
    _flask_env = os.environ.get("FLASK_ENV", "development")
    _is_testing = _flask_env == "testing"
    _is_production = _flask_env == "production"

    SECRET_KEY = os.environ.get("SECRET_KEY")

    if not SECRET_KEY and _is_production:
        raise ValueError(
            "SECRET_KEY environment variable is required in production. "
            'Generate with: python -c "import secrets; print(secrets.token_hex(32))"'
        )

    if not SECRET_KEY and not _is_testing:
        import warnings

        warnings.warn(
            "SECRET_KEY not set. Using default for development only. "
            "Set SECRET_KEY environment variable before deploying.",
            UserWarning,
        )
        SECRET_KEY = "dev-secret-key-change-in-production"

    if not SECRET_KEY:
        SECRET_KEY = "test-secret-key-placeholder"

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {}

    # Legacy migration
    LEGACY_DATABASE_URL = os.environ.get("LEGACY_DATABASE_URL")
    LEGACY_ID_PREFIX = os.environ.get("LEGACY_ID_PREFIX", "legacy_")
    MIGRATION_CLEAR_TARGET = _coerce_bool(os.environ.get("MIGRATION_CLEAR_TARGET"), default=True)

    # Profile audit
    AUDIT_EXPORT_DIR = os.environ.get(
        "AUDIT_EXPORT_DIR",
        os.path.join(_PROJECT_ROOT, "exports", "audit"),
    )
    AUDIT_POLICY_PATH = os.environ.get("AUDIT_POLICY_PATH")

    # Profile enrichment
    ENRICHMENT_USER_AGENT = os.environ.get(
        "ENRICHMENT_USER_AGENT",
        "StudioDirectory-Bot/1.0 (Profile Enrichment)",
    )
    ENRICHMENT_WEBSITE_TIMEOUT = _coerce_float(os.environ.get("ENRICHMENT_WEBSITE_TIMEOUT"), 15.0, minimum=1.0)
    ENRICHMENT_SOCIAL_TIMEOUT = _coerce_float(os.environ.get("ENRICHMENT_SOCIAL_TIMEOUT"), 10.0, minimum=1.0)
    ENRICHMENT_DELAY_SECONDS = _coerce_float(os.environ.get("ENRICHMENT_DELAY_SECONDS"), 1.0)
    ENRICHMENT_DEFAULT_LIMIT = _coerce_int(os.environ.get("ENRICHMENT_DEFAULT_LIMIT"), 100, minimum=1)

    # Geocoding
    GOOGLE_MAPS_API_KEY = os.environ.get("GOOGLE_MAPS_API_KEY")
    GEOCODING_TIMEOUT = _coerce_float(os.environ.get("GEOCODING_TIMEOUT"), 10.0, minimum=1.0)


class DevelopmentConfig(Config):
    DEBUG = True
    instance_path = os.path.join(_PROJECT_ROOT, "instance")

    if not os.path.exists(instance_path):
        os.makedirs(instance_path, exist_ok=True)

    # SQLite URI format: sqlite:///absolute/path (forward slashes on Windows too)
    db_path_normalized = os.path.join(instance_path, "studio_dev.db").replace("\\", "/")
    db_uri = f"sqlite:///{db_path_normalized}"

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", db_uri)
    SQLALCHEMY_ECHO = _coerce_bool(os.environ.get("SQLALCHEMY_ECHO"), default=False)
    if SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
        SQLALCHEMY_ENGINE_OPTIONS = {
            "connect_args": {
                "check_same_thread": False,
                "timeout": 5,
            }
        }
    else:
        SQLALCHEMY_ENGINE_OPTIONS = {}


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get("SECRET_KEY", "test-secret-key-for-testing-only")
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "connect_args": {
            "check_same_thread": False,
            "timeout": 5,
        }
    }
    ENRICHMENT_DELAY_SECONDS = 0.0


class ProductionConfig(Config):
    DEBUG = False
    uri = os.environ.get("DATABASE_URL")
    if uri and uri.startswith("postgres://"):
        uri = uri.replace("postgres://", "postgresql://", 1)
    SQLALCHEMY_DATABASE_URI = uri
    SQLALCHEMY_ECHO = False
