from __future__ import annotations

from datetime import datetime, timezone

import pytest

from studio_app.migration.mapping import (
    candidate_username,
    derive_display_name,
    hash_legacy_password,
    infer_services,
    infer_studio_type,
    is_bcrypt_hash,
    map_gallery_image,
    map_profile,
    map_review,
    map_studio,
    map_user,
    map_user_role,
    resolve_avatar_url,
    resolve_unique_username,
)
from studio_app.migration.metadata import (
    LegacyGalleryRow,
    LegacyMetadata,
    LegacyReviewRow,
    LegacyUserRecord,
    coerce_datetime,
)
from studio_app.models import ReviewStatus, ServiceType, StudioType, UserRole

BCRYPT_HASH = "$2y$10$" + "a" * 53


def _user(**overrides):
    values = {"id": "7", "email": "jane@example.com", "username": "jane"}
    values.update(overrides)
    return LegacyUserRecord(**values)


def test_metadata_flags_treat_zero_and_blank_as_false():
    meta = LegacyMetadata({"featured": "1", "spotlight": "0", "crb": "", "verified": "yes", "sc": None})

    assert meta.flag("featured") is True
    assert meta.flag("verified") is True
    assert meta.flag("spotlight") is False
    assert meta.flag("crb") is False
    assert meta.flag("sc") is False
    assert meta.flag("missing") is False


def test_metadata_number_and_first_lookups():
    meta = LegacyMetadata({"loc3": " 51.5 ", "loc4": "not-a-number", "homepage2": "studio.example"})

    assert meta.number("loc3") == pytest.approx(51.5)
    assert meta.number("loc4") is None
    assert meta.first("url", "homepage1", "homepage2") == "studio.example"
    assert meta.unknown_keys() == set()


def test_coerce_datetime_accepts_unix_seconds_and_sql_strings():
    assert coerce_datetime(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert coerce_datetime("2020-05-01 10:00:00") == datetime(2020, 5, 1, 10, tzinfo=timezone.utc)
    assert coerce_datetime("garbage") is None
    assert coerce_datetime("") is None


def test_duplicate_usernames_get_increasing_suffixes():
    taken = set()

    def exists(name):
        return name in taken

    resolved = []
    for _ in range(4):
        name = resolve_unique_username("voicebox", exists)
        taken.add(name)
        resolved.append(name)

    assert resolved == ["voicebox", "voicebox1", "voicebox2", "voicebox3"]


def test_candidate_username_falls_back_to_email_local_part():
    assert candidate_username(_user(username=None, email="studio.owner@example.com")) == "studio.owner"


def test_existing_bcrypt_hash_is_kept_verbatim():
    assert is_bcrypt_hash(BCRYPT_HASH)
    assert hash_legacy_password(BCRYPT_HASH) == BCRYPT_HASH
    # Running it twice never double-hashes.
    assert hash_legacy_password(hash_legacy_password(BCRYPT_HASH)) == BCRYPT_HASH


def test_plain_password_is_hashed_and_empty_is_none():
    hashed = hash_legacy_password("hunter2")

    assert hashed.startswith("$2")
    assert len(hashed) == 60
    assert hash_legacy_password("") is None
    assert hash_legacy_password(None) is None


def test_map_user_builds_display_name_from_first_and_last_name():
    meta = LegacyMetadata({"first_name": "Jane", "last_name": "Doe"})
    payload = map_user(_user(display_name="jd"), meta, id_prefix="legacy_", password_hasher=lambda value: value)

    assert payload.id == "legacy_7"
    assert payload.display_name == "Jane Doe"
    assert payload.role == UserRole.STUDIO_OWNER
    assert payload.password_hash is None


def test_display_name_requires_both_name_parts():
    meta = LegacyMetadata({"first_name": "Jane"})

    assert derive_display_name(_user(display_name="Jane's Booth"), meta) == "Jane's Booth"
    assert derive_display_name(_user(display_name=None), meta) == "jane"


def test_role_mapping_defaults_to_studio_owner():
    assert map_user_role(1) == UserRole.ADMIN
    assert map_user_role(99) == UserRole.STUDIO_OWNER
    assert map_user_role(None) == UserRole.STUDIO_OWNER


def test_avatar_prefers_trusted_media_host_then_social_avatars():
    trusted = LegacyMetadata({"avatar_image": "https://res.cloudinary.com/a.jpg", "facebook_avatar": "https://fb/a"})
    untrusted = LegacyMetadata({"avatar_image": "https://elsewhere/a.jpg", "google_avatar": "https://g/a"})

    assert resolve_avatar_url(_user(), trusted) == "https://res.cloudinary.com/a.jpg"
    assert resolve_avatar_url(_user(), untrusted) == "https://g/a"
    assert resolve_avatar_url(_user(avatar_url="https://old/a"), LegacyMetadata()) == "https://old/a"


def test_home_flag_wins_over_category_text():
    assert infer_studio_type(LegacyMetadata({"homestudio2": "1", "category": "Podcast booth"})) == StudioType.HOME
    assert infer_studio_type(LegacyMetadata({"category": "Mobile and podcast"})) == StudioType.PODCAST
    assert infer_studio_type(LegacyMetadata({"category": "Mobile rig"})) == StudioType.MOBILE
    assert infer_studio_type(LegacyMetadata({})) == StudioType.RECORDING


def test_source_connect_is_listed_once_across_both_triggers():
    meta = LegacyMetadata(
        {
            "connection1": "Source Connect Now",
            "connection3": "sourceconnect standard",
            "connection15": "Zoom",
            "sc": "1",
            "von": "1",
        }
    )

    services = infer_services(meta)

    assert services == (ServiceType.SOURCE_CONNECT, ServiceType.ZOOM)
    assert services.count(ServiceType.SOURCE_CONNECT) == 1


def test_isdn_flag_alone_adds_source_connect():
    assert infer_services(LegacyMetadata({"von": "1"})) == (ServiceType.SOURCE_CONNECT,)


def test_map_studio_reads_location_website_and_premium_flags():
    meta = LegacyMetadata(
        {
            "first_name": "Jane",
            "last_name": "Doe",
            "loc1": "1 High Street, London",
            "loc3": "51.5",
            "loc4": "-0.12",
            "homepage1": "https://janedoe.example",
            "spotlight": "1",
            "crb": "1",
        }
    )

    payload = map_studio(_user(), meta, owner_id="legacy_7", id_prefix="legacy_")

    assert payload.name == "Jane Doe Studio"
    assert payload.description == "Professional voiceover studio operated by Jane Doe Studio"
    assert payload.address == "1 High Street, London"
    assert payload.latitude == pytest.approx(51.5)
    assert payload.longitude == pytest.approx(-0.12)
    assert payload.website_url == "https://janedoe.example"
    assert payload.is_premium is True
    assert payload.is_verified is True


def test_map_profile_mirrors_twitter_into_x_and_packs_connections():
    meta = LegacyMetadata(
        {
            "twitter": "https://twitter.com/jane",
            "connection2": "Zoom",
            "connection9": "Cleanfeed",
            "about": "a" * 2500,
        }
    )

    fields = map_profile("legacy_7", meta).fields

    assert fields["x_url"] == fields["twitter_url"] == "https://twitter.com/jane"
    assert fields["connection1"] == "Zoom"
    assert fields["connection2"] == "Cleanfeed"
    assert fields["connection3"] is None
    assert len(fields["about"]) == 2000


def test_gallery_image_prefers_hosted_url():
    row = LegacyGalleryRow(
        id="1",
        user_id="7",
        image_filename="local.jpg",
        cloudinary_url="https://res.cloudinary.com/x.jpg",
        image_type="gallery",
        display_order=None,
    )

    payload = map_gallery_image(row, studio_id="legacy_7", studio_name="Jane Doe Studio")

    assert payload.image_url == "https://res.cloudinary.com/x.jpg"
    assert payload.sort_order == 0
    assert payload.alt_text == "Studio image for Jane Doe Studio"


def test_review_rating_out_of_range_defaults_to_five():
    row = LegacyReviewRow(
        id="3",
        reviewer_id="8",
        studio_owner_id="7",
        content="Lovely",
        rating=9,
        created_at=None,
        updated_at=None,
    )

    payload = map_review(row, reviewer_id="legacy_8", studio_id="legacy_7", owner_id="legacy_7", id_prefix="legacy_")

    assert payload.rating == 5
    assert payload.status == ReviewStatus.APPROVED
    assert payload.id == "legacy_3"
