# conftest.py

import os
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine

# Set testing environment BEFORE importing app to prevent database corruption
# This ensures app.py uses TestingConfig when imported
os.environ["FLASK_ENV"] = "testing"

# Now import app and other modules after environment is set
from app import app as flask_app
from studio_app.migration import LegacyDatabase
from studio_app.models import Studio, StudioStatus, User, UserProfile, UserStatus, db

FIXED_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def app(tmp_path):
    """Create and configure a test Flask application"""
    flask_app.config.update(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key-for-testing-only",
            "ENABLE_FILE_LOGGING": False,
            "ENABLE_CONSOLE_LOGGING": True,
            "LOG_LEVEL": "DEBUG",
            "AUDIT_EXPORT_DIR": str(tmp_path / "audit-output"),
            "AUDIT_POLICY_PATH": None,
            "ENRICHMENT_DELAY_SECONDS": 0.0,
            "LEGACY_DATABASE_URL": None,
            "MIGRATION_CLEAR_TARGET": True,
        }
    )

    # Re-initialize logging with updated config to pick up LOG_LEVEL=DEBUG
    from studio_app.utils.logging_config import setup_logging

    setup_logging(flask_app)

    with flask_app.app_context():
        # Drop any existing tables to ensure clean state
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture(autouse=True)
def app_context(app):
    """Automatically provide app context for all tests"""
    with app.app_context():
        yield


@pytest.fixture
def runner(app):
    """Create a test CLI runner for the Flask application"""
    return app.test_cli_runner()


@pytest.fixture
def now():
    return FIXED_NOW


# ---------------------------------------------------------------------------
# Target store builders
# ---------------------------------------------------------------------------


@pytest.fixture
def make_user(app):
    """Factory that persists a ``User`` with sensible defaults."""
    counter = {"n": 0}

    def _make_user(**overrides):
        counter["n"] += 1
        n = counter["n"]
        values = {
            "email": f"owner{n}@example.com",
            "username": f"owner{n}",
            "display_name": f"Owner {n}",
            "password_hash": "$2b$12$" + "x" * 53,
            "status": UserStatus.ACTIVE,
            "email_verified": True,
            "created_at": FIXED_NOW - timedelta(days=400),
        }
        values.update(overrides)
        user = User(**values)
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def make_studio(app):
    """Factory that persists a ``Studio`` (and optionally a profile) for an owner."""

    def _make_studio(owner, *, profile=None, **overrides):
        values = {
            "owner_id": owner.id,
            "name": f"{owner.display_name} Studio",
            "status": StudioStatus.ACTIVE,
            "is_profile_visible": True,
        }
        values.update(overrides)
        studio = Studio(**values)
        db.session.add(studio)
        if profile is not None:
            db.session.add(UserProfile(user_id=owner.id, **profile))
        db.session.commit()
        return studio

    return _make_studio


# ---------------------------------------------------------------------------
# Legacy store
# ---------------------------------------------------------------------------

legacy_metadata = MetaData()

legacy_users = Table(
    "shows_users",
    legacy_metadata,
    Column("id", Integer, primary_key=True),
    Column("email", String(255)),
    Column("username", String(100)),
    Column("display_name", String(255)),
    Column("password", String(255)),
    Column("avatar_url", String(500)),
    Column("role_id", Integer),
    Column("email_verified", Integer, default=0),
    Column("status", Integer, default=1),
    Column("joined", Integer),
    Column("updated_at", Integer),
)
legacy_usermeta = Table(
    "shows_usermeta",
    legacy_metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer),
    Column("meta_key", String(100)),
    Column("meta_value", Text),
)
legacy_gallery = Table(
    "studio_gallery",
    legacy_metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", Integer),
    Column("image_filename", String(255)),
    Column("cloudinary_url", String(500)),
    Column("image_type", String(50)),
    Column("display_order", Integer),
)
legacy_contacts = Table(
    "shows_contacts",
    legacy_metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user1", Integer),
    Column("user2", Integer),
    Column("accepted", Integer, default=0),
)
legacy_comments = Table(
    "shows_comments",
    legacy_metadata,
    Column("id", Integer, primary_key=True),
    Column("user_id", Integer),
    Column("page", Integer),
    Column("content", Text),
    Column("rating", Integer),
    Column("status", Integer, default=1),
    Column("date", Integer),
    Column("updated", Integer),
)


class LegacyStore:
    """Small writer for a throwaway legacy SQLite database."""

    def __init__(self, url):
        self.url = url
        self.engine = create_engine(url)
        legacy_metadata.create_all(self.engine)

    def _insert(self, table, **values):
        with self.engine.begin() as connection:
            connection.execute(table.insert().values(**values))

    def add_user(self, user_id, *, meta=None, **values):
        values.setdefault("email", f"user{user_id}@example.com")
        values.setdefault("username", f"user{user_id}")
        values.setdefault("password", "secret")
        values.setdefault("status", 1)
        values.setdefault("joined", int(FIXED_NOW.timestamp()) - 86400 * 365)
        self._insert(legacy_users, id=user_id, **values)
        for key, value in (meta or {}).items():
            self._insert(legacy_usermeta, user_id=user_id, meta_key=key, meta_value=value)

    def add_image(self, image_id, user_id, **values):
        self._insert(legacy_gallery, id=image_id, user_id=user_id, **values)

    def add_contact(self, user1, user2, *, accepted=1):
        self._insert(legacy_contacts, user1=user1, user2=user2, accepted=accepted)

    def add_review(self, review_id, *, reviewer, owner, **values):
        values.setdefault("content", "Great sessions")
        values.setdefault("status", 1)
        values.setdefault("date", int(FIXED_NOW.timestamp()) - 86400)
        self._insert(legacy_comments, id=review_id, user_id=reviewer, page=owner, **values)

    def reader(self):
        return LegacyDatabase(self.url)

    def dispose(self):
        self.engine.dispose()


@pytest.fixture
def legacy_store(tmp_path):
    store = LegacyStore(f"sqlite:///{tmp_path / 'legacy.db'}")
    yield store
    store.dispose()


# Pytest configuration
def pytest_configure(config):
    """Ensure testing environment and register markers"""
    os.environ["FLASK_ENV"] = "testing"
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
