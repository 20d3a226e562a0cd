"""
Legacy-to-target migration driver.

Stages run strictly in dependency order::

    validate -> clear -> users -> studios -> studio services -> studio images
             -> user connections -> reviews -> summarize -> disconnect

Every legacy record is written in its own transaction (commit on success,
rollback on failure) so one bad record never leaves orphaned children or
poisons its siblings. Stage statistics separate *skipped* records (a
precondition such as the owner studio was not met) from *errors* (anything
unexpected while mapping or writing).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from studio_app.models import (
    Message,
    Payment,
    PendingSubscription,
    ProfileAuditFinding,
    ProfileEnrichmentSuggestion,
    Review,
    Studio,
    StudioImage,
    StudioService,
    StudioStudioType,
    Subscription,
    SupportTicket,
    User,
    UserConnection,
    UserProfile,
    UserStatus,
)
from studio_app.utils.metrics import record_migration_record, record_migration_stage

from .legacy_reader import LegacyDatabase, SourceValidation
from .mapping import (
    hash_legacy_password,
    image_is_avatar,
    infer_services,
    map_contact,
    map_gallery_image,
    map_profile,
    map_review,
    map_studio,
    map_user,
    namespaced_id,
    resolve_unique_username,
)
from .metadata import LegacyMetadata, LegacyUserRecord

logger = logging.getLogger(__name__)

# Creation order of the migrated tables; clearing walks it backwards.
MIGRATED_TABLES = (
    User,
    UserProfile,
    Studio,
    StudioStudioType,
    StudioService,
    StudioImage,
    UserConnection,
    Review,
)
# Tables populated by normal operation that reference migrated rows.
DEPENDENT_TABLES = (
    ProfileEnrichmentSuggestion,
    ProfileAuditFinding,
    SupportTicket,
    Message,
    Payment,
    PendingSubscription,
    Subscription,
)
CLEAR_ORDER = DEPENDENT_TABLES + tuple(reversed(MIGRATED_TABLES))

STAGES = ("users", "studios", "studio_services", "studio_images", "user_connections", "reviews")


def _stamp(row, created_at, updated_at) -> None:
    """Carry legacy timestamps over instead of the insert-time defaults."""
    if created_at is not None:
        row.created_at = created_at
    if updated_at is not None:
        row.updated_at = updated_at


class MigrationAbortedError(RuntimeError):
    """Raised when the pre-flight validation fails; nothing has been written."""

    def __init__(self, message: str, validation: SourceValidation | None = None):
        super().__init__(message)
        self.validation = validation


@dataclass
class StageStats:
    total: int = 0
    migrated: int = 0
    skipped: int = 0
    errors: int = 0
    details: dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "total": self.total,
            "migrated": self.migrated,
            "skipped": self.skipped,
            "errors": self.errors,
        }
        if self.details:
            payload["details"] = dict(self.details)
        return payload


@dataclass
class MigrationReport:
    source_counts: dict[str, int] = field(default_factory=dict)
    cleared: dict[str, int] = field(default_factory=dict)
    stages: dict[str, StageStats] = field(default_factory=dict)
    duration_seconds: float = 0.0

    @property
    def total_migrated(self) -> int:
        return sum(stats.migrated for stats in self.stages.values())

    @property
    def total_skipped(self) -> int:
        return sum(stats.skipped for stats in self.stages.values())

    @property
    def total_errors(self) -> int:
        return sum(stats.errors for stats in self.stages.values())

    @property
    def succeeded(self) -> bool:
        return self.total_errors == 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "source_counts": dict(self.source_counts),
            "cleared": dict(self.cleared),
            "stages": {name: stats.as_dict() for name, stats in self.stages.items()},
            "total_migrated": self.total_migrated,
            "total_skipped": self.total_skipped,
            "total_errors": self.total_errors,
            "succeeded": self.succeeded,
            "duration_seconds": round(self.duration_seconds, 3),
        }


class LegacyMigrationOrchestrator:
    """Run the full legacy migration against an explicit target session."""

    def __init__(
        self,
        session: Session,
        legacy: LegacyDatabase,
        *,
        id_prefix: str = "legacy_",
        clear_target: bool = True,
        password_hasher: Callable[[str | None], str | None] = hash_legacy_password,
    ):
        self.session = session
        self.legacy = legacy
        self.id_prefix = id_prefix
        self.clear_target_first = clear_target
        self.password_hasher = password_hasher
        self._users: list[LegacyUserRecord] | None = None
        self._metadata: dict[str, LegacyMetadata] | None = None

    # ------------------------------------------------------------------
    # Source snapshots (fetched once per run)
    # ------------------------------------------------------------------

    @property
    def legacy_users(self) -> list[LegacyUserRecord]:
        if self._users is None:
            self._users = self.legacy.get_users()
        return self._users

    @property
    def legacy_metadata(self) -> dict[str, LegacyMetadata]:
        if self._metadata is None:
            self._metadata = self.legacy.get_all_user_meta()
        return self._metadata

    def _meta_for(self, legacy_id: str) -> LegacyMetadata:
        return self.legacy_metadata.get(legacy_id) or LegacyMetadata()

    def _target_id(self, legacy_id: object) -> str:
        return namespaced_id(legacy_id, self.id_prefix)

    # ------------------------------------------------------------------
    # Pre-flight and clearing
    # ------------------------------------------------------------------

    def validate_source(self) -> SourceValidation:
        validation = self.legacy.validate()
        if not validation.valid:
            raise MigrationAbortedError(validation.error or "Legacy source validation failed.", validation)
        logger.info("Legacy source validated", extra={"legacy_table_counts": validation.table_counts})
        return validation

    def clear_target(self) -> dict[str, int]:
        """Delete target rows children-first, mirroring the creation order."""
        deleted: dict[str, int] = {}
        try:
            for model in CLEAR_ORDER:
                deleted[model.__tablename__] = self.session.query(model).delete(synchronize_session=False)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.info("Cleared target tables", extra={"cleared_rows": deleted})
        return deleted

    # ------------------------------------------------------------------
    # Record-level write helper
    # ------------------------------------------------------------------

    def _write(self, stage: str, stats: StageStats, record_id: str, write: Callable[[], None]) -> bool:
        """Run ``write`` in its own transaction, counting the outcome."""
        try:
            write()
            self.session.commit()
        except Exception as exc:
            self.session.rollback()
            stats.errors += 1
            record_migration_record(stage, "error")
            logger.error(
                "Failed to migrate %s record %s: %s",
                stage,
                record_id,
                exc,
                extra={"migration_stage": stage, "legacy_id": record_id},
            )
            return False
        stats.migrated += 1
        record_migration_record(stage, "migrated")
        return True

    def _skip(self, stage: str, stats: StageStats, record_id: str, reason: str) -> None:
        stats.skipped += 1
        record_migration_record(stage, "skipped")
        logger.debug(
            "Skipped %s record %s: %s",
            stage,
            record_id,
            reason,
            extra={"migration_stage": stage, "legacy_id": record_id},
        )

    def _username_exists(self, username: str) -> bool:
        return User.find_by_username_ci(self.session, username) is not None

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def migrate_users(self) -> StageStats:
        stats = StageStats(total=len(self.legacy_users))
        for legacy_user in self.legacy_users:
            meta = self._meta_for(legacy_user.id)

            def write(legacy_user=legacy_user, meta=meta):
                payload = map_user(
                    legacy_user,
                    meta,
                    id_prefix=self.id_prefix,
                    password_hasher=self.password_hasher,
                )
                username = resolve_unique_username(payload.username, self._username_exists)
                user = User(
                    id=payload.id,
                    email=payload.email,
                    username=username,
                    display_name=payload.display_name,
                    password_hash=payload.password_hash,
                    avatar_url=payload.avatar_url,
                    role=payload.role,
                    status=UserStatus.ACTIVE,
                    email_verified=payload.email_verified,
                )
                profile = UserProfile(user_id=payload.id, **map_profile(payload.id, meta).fields)
                for row in (user, profile):
                    _stamp(row, payload.created_at, payload.updated_at)
                self.session.add(user)
                self.session.add(profile)

            self._write("users", stats, legacy_user.id, write)
        return stats

    def migrate_studios(self) -> StageStats:
        stats = StageStats(total=len(self.legacy_users))
        for legacy_user in self.legacy_users:
            owner_id = self._target_id(legacy_user.id)
            if self.session.get(User, owner_id) is None:
                self._skip("studios", stats, legacy_user.id, "owner not migrated")
                continue
            meta = self._meta_for(legacy_user.id)

            def write(legacy_user=legacy_user, meta=meta, owner_id=owner_id):
                payload = map_studio(legacy_user, meta, owner_id=owner_id, id_prefix=self.id_prefix)
                studio = Studio(
                    id=payload.id,
                    owner_id=payload.owner_id,
                    name=payload.name,
                    description=payload.description,
                    studio_type=payload.studio_type,
                    address=payload.address,
                    full_address=payload.address,
                    latitude=payload.latitude,
                    longitude=payload.longitude,
                    website_url=payload.website_url,
                    phone=payload.phone,
                    is_premium=payload.is_premium,
                    is_verified=payload.is_verified,
                    status=payload.status,
                )
                _stamp(studio, payload.created_at, payload.updated_at)
                self.session.add(studio)
                self.session.add(StudioStudioType(studio_id=payload.id, studio_type=payload.studio_type))

            self._write("studios", stats, legacy_user.id, write)
        return stats

    def migrate_studio_services(self) -> StageStats:
        """One record per legacy metadata bag; duplicate services collapse silently."""
        stats = StageStats(total=len(self.legacy_metadata))
        added = 0
        for legacy_id, meta in self.legacy_metadata.items():
            studio_id = self._target_id(legacy_id)
            if self.session.get(Studio, studio_id) is None:
                self._skip("studio_services", stats, legacy_id, "studio not found")
                continue
            try:
                services = infer_services(meta)
            except Exception as exc:
                stats.errors += 1
                record_migration_record("studio_services", "error")
                logger.error(
                    "Failed to infer services for %s: %s",
                    legacy_id,
                    exc,
                    extra={"migration_stage": "studio_services", "legacy_id": legacy_id},
                )
                continue
            for service in services:
                try:
                    self.session.add(StudioService(studio_id=studio_id, service=service))
                    self.session.commit()
                except IntegrityError:
                    # Already linked; the relation is a set.
                    self.session.rollback()
                    continue
                except Exception as exc:
                    self.session.rollback()
                    stats.errors += 1
                    record_migration_record("studio_services", "error")
                    logger.error(
                        "Failed to add service %s for %s: %s",
                        service.value,
                        legacy_id,
                        exc,
                        extra={"migration_stage": "studio_services", "legacy_id": legacy_id},
                    )
                    continue
                added += 1
            stats.migrated += 1
            record_migration_record("studio_services", "migrated")
        stats.details["services_added"] = added
        return stats

    def migrate_studio_images(self) -> StageStats:
        rows = self.legacy.get_gallery_rows()
        stats = StageStats(total=len(rows))
        studio_names: dict[str, str | None] = {}
        for row in rows:
            studio_id = self._target_id(row.user_id)
            if studio_id not in studio_names:
                studio = self.session.get(Studio, studio_id)
                studio_names[studio_id] = studio.name if studio is not None else None
            studio_name = studio_names[studio_id]
            if studio_name is None:
                self._skip("studio_images", stats, row.id, "studio not found")
                continue
            if image_is_avatar(row):
                self._skip("studio_images", stats, row.id, "avatar image")
                continue
            payload = map_gallery_image(row, studio_id=studio_id, studio_name=studio_name)
            if payload is None:
                self._skip("studio_images", stats, row.id, "no image url")
                continue

            def write(payload=payload):
                self.session.add(
                    StudioImage(
                        studio_id=payload.studio_id,
                        image_url=payload.image_url,
                        alt_text=payload.alt_text,
                        sort_order=payload.sort_order,
                    )
                )

            self._write("studio_images", stats, row.id, write)
        return stats

    def migrate_user_connections(self) -> StageStats:
        rows = self.legacy.get_accepted_contacts()
        stats = StageStats(total=len(rows))
        for row in rows:
            record_id = f"{row.user1}-{row.user2}"
            forward, backward = map_contact(row, id_prefix=self.id_prefix)
            if self.session.get(User, forward.user_id) is None or self.session.get(User, backward.user_id) is None:
                self._skip("user_connections", stats, record_id, "user not found")
                continue

            def write(forward=forward, backward=backward):
                for edge in (forward, backward):
                    self.session.add(
                        UserConnection(user_id=edge.user_id, connected_user_id=edge.connected_user_id, accepted=True)
                    )

            self._write("user_connections", stats, record_id, write)
        return stats

    def migrate_reviews(self) -> StageStats:
        rows = self.legacy.get_reviews()
        stats = StageStats(total=len(rows))
        for row in rows:
            reviewer = self.session.get(User, self._target_id(row.reviewer_id))
            studio = self.session.get(Studio, self._target_id(row.studio_owner_id))
            if reviewer is None or studio is None:
                self._skip("reviews", stats, row.id, "reviewer or studio not found")
                continue
            payload = map_review(
                row,
                reviewer_id=reviewer.id,
                studio_id=studio.id,
                owner_id=studio.owner_id,
                id_prefix=self.id_prefix,
            )

            def write(payload=payload):
                review = Review(
                    id=payload.id,
                    studio_id=payload.studio_id,
                    reviewer_id=payload.reviewer_id,
                    owner_id=payload.owner_id,
                    rating=payload.rating,
                    content=payload.content,
                    status=payload.status,
                )
                _stamp(review, payload.created_at, payload.updated_at)
                self.session.add(review)

            self._write("reviews", stats, row.id, write)
        return stats

    # ------------------------------------------------------------------
    # Full run
    # ------------------------------------------------------------------

    def run(self) -> MigrationReport:
        """Validate, clear, migrate every stage, then disconnect the legacy store."""
        report = MigrationReport()
        started = time.perf_counter()
        try:
            report.source_counts = dict(self.validate_source().table_counts)
            if self.clear_target_first:
                report.cleared = self.clear_target()
            stage_methods: Mapping[str, Callable[[], StageStats]] = {
                "users": self.migrate_users,
                "studios": self.migrate_studios,
                "studio_services": self.migrate_studio_services,
                "studio_images": self.migrate_studio_images,
                "user_connections": self.migrate_user_connections,
                "reviews": self.migrate_reviews,
            }
            for name in STAGES:
                stage_started = time.perf_counter()
                stats = stage_methods[name]()
                record_migration_stage(name, time.perf_counter() - stage_started)
                report.stages[name] = stats
                logger.info(
                    "Migration stage %s finished: %s migrated, %s skipped, %s errors",
                    name,
                    stats.migrated,
                    stats.skipped,
                    stats.errors,
                    extra={"migration_stage": name, "stage_stats": stats.as_dict()},
                )
        finally:
            self.legacy.disconnect()
            report.duration_seconds = time.perf_counter() - started
        return report
