"""
Read-only access to the legacy studio directory database.

Uses a plain SQLAlchemy Core engine (separate from the Flask-SQLAlchemy
binding) so the legacy store can live on any backend SQLAlchemy speaks.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .metadata import (
    LegacyContactRow,
    LegacyGalleryRow,
    LegacyMetadata,
    LegacyReviewRow,
    LegacyUserRecord,
)

logger = logging.getLogger(__name__)

REQUIRED_TABLES: tuple[str, ...] = (
    "shows_users",
    "shows_usermeta",
    "shows_comments",
    "studio_gallery",
    "shows_contacts",
)

_USERS_SQL = "SELECT * FROM shows_users WHERE status = 1 ORDER BY id"
_USER_BY_ID_SQL = "SELECT * FROM shows_users WHERE id = :user_id"
_META_SQL = "SELECT user_id, meta_key, meta_value FROM shows_usermeta ORDER BY user_id"
_META_FOR_USER_SQL = "SELECT meta_key, meta_value FROM shows_usermeta WHERE user_id = :user_id"
_GALLERY_SQL = "SELECT * FROM studio_gallery ORDER BY user_id, display_order"
_CONTACTS_SQL = "SELECT user1, user2 FROM shows_contacts WHERE accepted = 1"
_REVIEWS_SQL = "SELECT * FROM shows_comments WHERE status = 1 ORDER BY id"


class LegacySourceError(RuntimeError):
    """Raised when the legacy store cannot be reached or is missing tables."""


@dataclass
class SourceValidation:
    """Outcome of the pre-flight check against the legacy store."""

    valid: bool
    table_counts: dict[str, int] = field(default_factory=dict)
    missing_tables: tuple[str, ...] = ()
    error: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "table_counts": dict(self.table_counts),
            "missing_tables": list(self.missing_tables),
            "error": self.error,
        }


class LegacyDatabase:
    """Typed accessors over the legacy tables."""

    def __init__(self, url: str | None = None, *, engine: Engine | None = None):
        if url is None and engine is None:
            raise LegacySourceError("LEGACY_DATABASE_URL is not configured.")
        self._url = url
        self._engine = engine

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            try:
                self._engine = create_engine(self._url)
            except (SQLAlchemyError, ValueError) as exc:
                raise LegacySourceError(f"Invalid legacy database URL: {exc}") from exc
        return self._engine

    def disconnect(self) -> None:
        if self._engine is not None:
            self._engine.dispose()

    def query(self, sql: str, params: Mapping[str, Any] | None = None) -> list[Mapping[str, Any]]:
        """Run a raw read query and return rows as mappings."""
        with self.engine.connect() as connection:
            result = connection.execute(text(sql), dict(params or {}))
            return [dict(row._mapping) for row in result]

    def validate(self, required_tables: Sequence[str] = REQUIRED_TABLES) -> SourceValidation:
        """Confirm the source is reachable and report row counts per table."""
        try:
            existing = set(inspect(self.engine).get_table_names())
            missing = tuple(name for name in required_tables if name not in existing)
            if missing:
                return SourceValidation(
                    valid=False,
                    missing_tables=missing,
                    error=f"Missing legacy tables: {', '.join(missing)}",
                )
            counts: dict[str, int] = {}
            with self.engine.connect() as connection:
                for name in required_tables:
                    counts[name] = int(connection.execute(text(f"SELECT COUNT(*) FROM {name}")).scalar_one())
        except (SQLAlchemyError, LegacySourceError) as exc:
            logger.error("Legacy store validation failed: %s", exc)
            return SourceValidation(valid=False, error=str(exc))
        return SourceValidation(valid=True, table_counts=counts)

    def get_users(self) -> list[LegacyUserRecord]:
        return [LegacyUserRecord.from_row(row) for row in self.query(_USERS_SQL)]

    def get_user(self, user_id: str) -> LegacyUserRecord | None:
        rows = self.query(_USER_BY_ID_SQL, {"user_id": user_id})
        return LegacyUserRecord.from_row(rows[0]) if rows else None

    def get_user_meta(self, user_id: str) -> LegacyMetadata:
        rows = self.query(_META_FOR_USER_SQL, {"user_id": user_id})
        return LegacyMetadata({row["meta_key"]: row["meta_value"] for row in rows})

    def get_all_user_meta(self) -> dict[str, LegacyMetadata]:
        grouped: dict[str, dict[str, object]] = defaultdict(dict)
        for row in self.query(_META_SQL):
            grouped[str(row["user_id"])][str(row["meta_key"])] = row["meta_value"]
        return {user_id: LegacyMetadata(values) for user_id, values in grouped.items()}

    def get_gallery_rows(self) -> list[LegacyGalleryRow]:
        return [LegacyGalleryRow.from_row(row) for row in self.query(_GALLERY_SQL)]

    def get_accepted_contacts(self) -> list[LegacyContactRow]:
        return [LegacyContactRow.from_row(row) for row in self.query(_CONTACTS_SQL)]

    def get_reviews(self) -> list[LegacyReviewRow]:
        return [LegacyReviewRow.from_row(row) for row in self.query(_REVIEWS_SQL)]
