from __future__ import annotations

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, text

from studio_app.audit import ProfileAuditService
from studio_app.migration import LegacyDatabase, LegacyMigrationOrchestrator, MigrationAbortedError
from studio_app.models import (
    AuditClassification,
    ProfileAuditFinding,
    Review,
    ServiceType,
    Studio,
    StudioImage,
    StudioService,
    StudioType,
    User,
    UserConnection,
    UserStatus,
    as_utc,
    db,
)

AUDIT_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def fake_hasher(password):
    return f"hashed:{password}" if password else None


def _orchestrator(legacy_store, **kwargs):
    kwargs.setdefault("password_hasher", fake_hasher)
    return LegacyMigrationOrchestrator(db.session, legacy_store.reader(), **kwargs)


def test_jane_doe_end_to_end(legacy_store):
    legacy_store.add_user(
        1,
        meta={
            "first_name": "Jane",
            "last_name": "Doe",
            "homestudio": "1",
            "connection1": "Zoom",
            "connection2": "Source Connect",
        },
    )

    report = _orchestrator(legacy_store).run()

    assert report.succeeded
    user = db.session.get(User, "legacy_1")
    assert user.display_name == "Jane Doe"
    assert user.status == UserStatus.ACTIVE
    assert user.password_hash == "hashed:secret"
    assert user.profile.first_name == "Jane"

    studio = db.session.get(Studio, "legacy_1")
    assert studio.name == "Jane Doe Studio"
    assert studio.studio_type == StudioType.HOME
    assert [row.studio_type for row in studio.studio_types] == [StudioType.HOME]
    services = {row.service for row in db.session.query(StudioService).filter_by(studio_id=studio.id)}
    assert services == {ServiceType.ZOOM, ServiceType.SOURCE_CONNECT}
    assert report.stages["studio_services"].details["services_added"] == 2


def test_duplicate_usernames_are_suffixed_in_encounter_order(legacy_store):
    legacy_store.add_user(1, username="voice")
    legacy_store.add_user(2, username="Voice")
    legacy_store.add_user(3, username="voice")

    _orchestrator(legacy_store).run()

    usernames = [db.session.get(User, f"legacy_{n}").username for n in (1, 2, 3)]
    assert usernames == ["voice", "Voice1", "voice2"]


def test_existing_bcrypt_hash_survives_migration(legacy_store):
    existing = "$2y$10$" + "b" * 53
    legacy_store.add_user(1, password=existing)

    LegacyMigrationOrchestrator(db.session, legacy_store.reader()).run()

    assert db.session.get(User, "legacy_1").password_hash == existing


def test_failed_record_is_counted_and_siblings_continue(legacy_store):
    legacy_store.add_user(1, email="shared@example.com", meta={"connection1": "Zoom"})
    legacy_store.add_user(2, email="shared@example.com", meta={"connection1": "Skype"})
    legacy_store.add_user(3)

    report = _orchestrator(legacy_store).run()

    users = report.stages["users"]
    assert (users.total, users.migrated, users.errors) == (3, 2, 1)
    studios = report.stages["studios"]
    assert (studios.migrated, studios.skipped, studios.errors) == (2, 1, 0)
    assert report.stages["studio_services"].skipped == 1
    assert report.succeeded is False
    assert report.total_errors == 1
    assert db.session.get(User, "legacy_2") is None


def test_images_connections_and_reviews(legacy_store):
    legacy_store.add_user(1, meta={"first_name": "Jane", "last_name": "Doe"})
    legacy_store.add_user(2)
    legacy_store.add_image(10, 1, cloudinary_url="https://res.cloudinary.com/1.jpg", display_order=2)
    legacy_store.add_image(11, 1, image_filename="avatar.jpg", image_type="avatar")
    legacy_store.add_image(12, 1)
    legacy_store.add_image(13, 99, image_filename="orphan.jpg")
    legacy_store.add_contact(1, 2)
    legacy_store.add_contact(1, 99)
    legacy_store.add_review(5, reviewer=2, owner=1, rating=0)
    legacy_store.add_review(6, reviewer=99, owner=1)

    report = _orchestrator(legacy_store).run()

    images = report.stages["studio_images"]
    assert (images.total, images.migrated, images.skipped) == (4, 1, 3)
    image = db.session.query(StudioImage).one()
    assert image.studio_id == "legacy_1"
    assert image.alt_text == "Studio image for Jane Doe Studio"
    assert image.sort_order == 2

    edges = {(row.user_id, row.connected_user_id) for row in db.session.query(UserConnection)}
    assert edges == {("legacy_1", "legacy_2"), ("legacy_2", "legacy_1")}
    assert report.stages["user_connections"].skipped == 1

    review = db.session.get(Review, "legacy_5")
    assert review.studio_id == "legacy_1"
    assert review.owner_id == "legacy_1"
    assert review.reviewer_id == "legacy_2"
    assert review.rating == 5
    assert report.stages["reviews"].skipped == 1
    assert report.succeeded


def test_clear_target_removes_previous_rows(legacy_store, make_user):
    stale = make_user(username="stale")
    db.session.add(
        ProfileAuditFinding(user_id=stale.id, classification=AuditClassification.JUNK, reasons=[], completeness_score=0)
    )
    db.session.commit()
    legacy_store.add_user(1)

    report = _orchestrator(legacy_store).run()

    assert report.cleared["users"] == 1
    assert report.cleared["profile_audit_findings"] == 1
    assert db.session.query(User).count() == 1


def test_keep_existing_skips_clear(legacy_store, make_user):
    make_user(username="keeper")
    legacy_store.add_user(1)

    report = _orchestrator(legacy_store, clear_target=False).run()

    assert report.cleared == {}
    assert db.session.query(User).count() == 2


def test_invalid_source_aborts_before_writing(tmp_path, make_user):
    make_user(username="untouched")
    url = f"sqlite:///{tmp_path / 'empty.db'}"
    create_engine(url).dispose()

    with pytest.raises(MigrationAbortedError) as excinfo:
        LegacyMigrationOrchestrator(db.session, LegacyDatabase(url), password_hasher=fake_hasher).run()

    assert "Missing legacy tables" in str(excinfo.value)
    assert excinfo.value.validation.valid is False
    assert db.session.query(User).count() == 1


def test_report_as_dict_shape(legacy_store):
    legacy_store.add_user(1)

    payload = _orchestrator(legacy_store).run().as_dict()

    assert set(payload["stages"]) == {
        "users",
        "studios",
        "studio_services",
        "studio_images",
        "user_connections",
        "reviews",
    }
    assert payload["stages"]["users"] == {"total": 1, "migrated": 1, "skipped": 0, "errors": 0}
    assert payload["succeeded"] is True
    assert payload["source_counts"]["shows_users"] == 1


def test_legacy_connection_is_released_after_run(legacy_store):
    legacy_store.add_user(1)
    reader = legacy_store.reader()

    LegacyMigrationOrchestrator(db.session, reader, password_hasher=fake_hasher).run()

    with reader.engine.connect() as connection:
        assert connection.execute(text("SELECT COUNT(*) FROM shows_users")).scalar_one() == 1


def test_legacy_join_date_carries_onto_studio_and_profile(legacy_store):
    joined = datetime(2015, 1, 1, tzinfo=timezone.utc)
    legacy_store.add_user(
        1,
        joined=int(joined.timestamp()),
        meta={"first_name": "Jane", "last_name": "Doe", "about": "Treated booth with a U87"},
    )

    _orchestrator(legacy_store).run()

    studio = db.session.get(Studio, "legacy_1")
    profile = db.session.get(User, "legacy_1").profile
    for row in (studio, profile):
        assert as_utc(row.created_at) == joined
        assert as_utc(row.updated_at) == joined

    (result,) = ProfileAuditService(db.session, now=AUDIT_NOW).collect()
    assert result.classification is AuditClassification.NEEDS_UPDATE
    assert "Profile not updated in 10 year(s)" in result.reasons
    assert result.metadata["days_since_update"] > 365


def test_fallback_description_does_not_count_as_about(legacy_store):
    legacy_store.add_user(1, meta={"first_name": "Jane", "last_name": "Doe"})

    _orchestrator(legacy_store).run()

    assert db.session.get(Studio, "legacy_1").description.startswith("Professional voiceover studio")
    (result,) = ProfileAuditService(db.session, now=AUDIT_NOW).collect()
    assert "about/description" in result.metadata["missing_fields"]


def test_already_linked_service_is_neither_an_error_nor_duplicated(legacy_store):
    legacy_store.add_user(1, meta={"connection1": "Zoom", "connection2": "Source Connect"})
    orchestrator = _orchestrator(legacy_store)
    orchestrator.migrate_users()
    orchestrator.migrate_studios()
    db.session.add(StudioService(studio_id="legacy_1", service=ServiceType.ZOOM))
    db.session.commit()

    stats = orchestrator.migrate_studio_services()
    orchestrator.legacy.disconnect()

    assert (stats.migrated, stats.errors) == (1, 0)
    assert stats.details["services_added"] == 1
    services = [row.service for row in db.session.query(StudioService).filter_by(studio_id="legacy_1")]
    assert sorted(service.value for service in services) == ["SOURCE_CONNECT", "ZOOM"]
