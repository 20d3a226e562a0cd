"""
Pure transforms from legacy rows to target-schema payloads.

Nothing here touches a database. The only stateful rule of the migration,
username de-duplication, is expressed as ``resolve_unique_username`` taking an
``exists`` predicate so the orchestrator can apply it right before insert.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

import bcrypt

from studio_app.models.enums import (
    ReviewStatus,
    ServiceType,
    StudioStatus,
    StudioType,
    UserRole,
)

from .metadata import (
    CONNECTION_KEYS,
    LegacyContactRow,
    LegacyGalleryRow,
    LegacyMetadata,
    LegacyReviewRow,
    LegacyUserRecord,
)

BCRYPT_PREFIX = "$2"
BCRYPT_HASH_LENGTH = 60
BCRYPT_ROUNDS = 12
TRUSTED_MEDIA_HOST = "cloudinary"
ABOUT_MAX_LENGTH = 2000
PROFILE_CONNECTION_SLOTS = 12
DEFAULT_REVIEW_RATING = 5

ROLE_MAP: dict[int, UserRole] = {
    1: UserRole.ADMIN,
    2: UserRole.STUDIO_OWNER,
}
# Nearly every legacy account owned a listing, so unknown roles become owners.
DEFAULT_ROLE = UserRole.STUDIO_OWNER

# Order matters: first matching category keyword wins.
CATEGORY_STUDIO_TYPES: tuple[tuple[str, StudioType], ...] = (
    ("podcast", StudioType.PODCAST),
    ("mobile", StudioType.MOBILE),
    ("production", StudioType.PRODUCTION),
)

# Order matters: first matching phrase in a connection slot wins.
SERVICE_VOCABULARY: tuple[tuple[str, ServiceType], ...] = (
    ("source connect", ServiceType.SOURCE_CONNECT),
    ("sourceconnect", ServiceType.SOURCE_CONNECT),
    ("cleanfeed", ServiceType.CLEANFEED),
    ("sessionlink", ServiceType.SESSION_LINK_PRO),
    ("session link", ServiceType.SESSION_LINK_PRO),
    ("zoom", ServiceType.ZOOM),
    ("skype", ServiceType.SKYPE),
    ("teams", ServiceType.TEAMS),
    ("isdn", ServiceType.ISDN),
)
SOURCE_CONNECT_FLAGS = ("sc", "von")

SOCIAL_META_FIELDS: tuple[tuple[str, str], ...] = (
    ("facebook", "facebook_url"),
    ("twitter", "twitter_url"),
    ("linkedin", "linkedin_url"),
    ("instagram", "instagram_url"),
    ("youtubepage", "youtube_url"),
    ("vimeo", "vimeo_url"),
    ("soundcloud", "soundcloud_url"),
)


@dataclass(frozen=True)
class UserPayload:
    id: str
    email: str
    username: str
    display_name: str
    password_hash: str | None
    avatar_url: str | None
    role: UserRole
    email_verified: bool
    created_at: datetime | None
    updated_at: datetime | None


@dataclass(frozen=True)
class ProfilePayload:
    user_id: str
    fields: dict[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class StudioPayload:
    id: str
    owner_id: str
    name: str
    description: str
    studio_type: StudioType
    address: str | None
    latitude: float | None
    longitude: float | None
    website_url: str | None
    phone: str | None
    is_premium: bool
    is_verified: bool
    status: StudioStatus = StudioStatus.ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(frozen=True)
class ImagePayload:
    studio_id: str
    image_url: str
    alt_text: str
    sort_order: int


@dataclass(frozen=True)
class ConnectionPayload:
    user_id: str
    connected_user_id: str


@dataclass(frozen=True)
class ReviewPayload:
    id: str
    studio_id: str
    reviewer_id: str
    owner_id: str
    rating: int
    content: str | None
    status: ReviewStatus
    created_at: datetime | None
    updated_at: datetime | None


def namespaced_id(legacy_id: object, prefix: str) -> str:
    return f"{prefix}{legacy_id}"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


def candidate_username(user: LegacyUserRecord) -> str:
    """Explicit legacy username, else the local part of the email."""
    if user.username:
        return user.username
    local_part = user.email.split("@", 1)[0].strip()
    return local_part or f"user{user.id}"


def resolve_unique_username(candidate: str, exists: Callable[[str], bool]) -> str:
    """Append 1, 2, 3... to ``candidate`` until ``exists`` reports it free."""
    if not exists(candidate):
        return candidate
    counter = 1
    while exists(f"{candidate}{counter}"):
        counter += 1
    return f"{candidate}{counter}"


def is_bcrypt_hash(value: str) -> bool:
    return value.startswith(BCRYPT_PREFIX) and len(value) == BCRYPT_HASH_LENGTH


def hash_legacy_password(password: str | None) -> str | None:
    """Pass existing bcrypt hashes through; hash anything else with cost 12."""
    if not password:
        return None
    if is_bcrypt_hash(password):
        return password
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def _full_name(meta: LegacyMetadata) -> str:
    first, last = meta.text("first_name"), meta.text("last_name")
    if first and last:
        return f"{first} {last}"
    return ""


def derive_display_name(user: LegacyUserRecord, meta: LegacyMetadata) -> str:
    return _full_name(meta) or user.display_name or user.username or "User"


def resolve_avatar_url(user: LegacyUserRecord, meta: LegacyMetadata) -> str | None:
    avatar_image = meta.text("avatar_image")
    if avatar_image and TRUSTED_MEDIA_HOST in avatar_image:
        return avatar_image
    return meta.first("facebook_avatar", "google_avatar", "twitter_avatar") or user.avatar_url


def map_user_role(role_id: int | None) -> UserRole:
    if role_id is None:
        return DEFAULT_ROLE
    return ROLE_MAP.get(role_id, DEFAULT_ROLE)


def map_user(
    user: LegacyUserRecord,
    meta: LegacyMetadata,
    *,
    id_prefix: str,
    password_hasher: Callable[[str | None], str | None] = hash_legacy_password,
) -> UserPayload:
    return UserPayload(
        id=namespaced_id(user.id, id_prefix),
        email=user.email,
        username=candidate_username(user),
        display_name=derive_display_name(user, meta),
        password_hash=password_hasher(user.password),
        avatar_url=resolve_avatar_url(user, meta),
        role=map_user_role(user.role_id),
        email_verified=user.email_verified or meta.flag("verified"),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def map_profile(user_id: str, meta: LegacyMetadata) -> ProfilePayload:
    """Profile columns carried over from the metadata bag."""
    about = meta.text("about")
    fields: dict[str, object] = {
        "first_name": meta.text("first_name") or None,
        "last_name": meta.text("last_name") or None,
        "location": meta.text("location") or None,
        "phone": meta.text("phone") or None,
        "about": about[:ABOUT_MAX_LENGTH] or None,
        "short_about": meta.text("shortabout") or None,
        "equipment_list": meta.text("equipment") or None,
        "services_offered": meta.text("services") or None,
        "rate_tier_1": meta.text("rates1") or None,
        "rate_tier_2": meta.text("rates2") or None,
        "rate_tier_3": meta.text("rates3") or None,
        "show_rates": meta.flag("showrates"),
        "show_email": meta.flag("showemail"),
        "show_phone": meta.flag("showphone"),
        "show_address": meta.flag("showaddress"),
        "is_featured": meta.flag("featured"),
        "is_spotlight": meta.flag("spotlight"),
        "is_crb_checked": meta.flag("crb"),
    }
    for meta_key, column in SOCIAL_META_FIELDS:
        fields[column] = meta.text(meta_key) or None
    # The renamed network mirrors the legacy column.
    fields["x_url"] = fields["twitter_url"]
    slots = [value for value in (meta.text(key) for key in CONNECTION_KEYS) if value]
    for index in range(PROFILE_CONNECTION_SLOTS):
        fields[f"connection{index + 1}"] = slots[index] if index < len(slots) else None
    return ProfilePayload(user_id=user_id, fields=fields)


# ---------------------------------------------------------------------------
# Studios
# ---------------------------------------------------------------------------


def infer_studio_type(meta: LegacyMetadata) -> StudioType:
    if meta.flag("homestudio") or meta.flag("homestudio2"):
        return StudioType.HOME
    category = meta.text("category").lower()
    for keyword, studio_type in CATEGORY_STUDIO_TYPES:
        if keyword in category:
            return studio_type
    return StudioType.RECORDING


def derive_studio_name(user: LegacyUserRecord, meta: LegacyMetadata) -> str:
    full_name = _full_name(meta)
    if full_name:
        return f"{full_name} Studio"
    return user.display_name or user.username or f"Studio {user.id}"


def map_studio(
    user: LegacyUserRecord,
    meta: LegacyMetadata,
    *,
    owner_id: str,
    id_prefix: str,
) -> StudioPayload:
    name = derive_studio_name(user, meta)
    description = meta.first("about", "shortabout") or f"Professional voiceover studio operated by {name}"
    return StudioPayload(
        id=namespaced_id(user.id, id_prefix),
        owner_id=owner_id,
        name=name,
        description=description,
        studio_type=infer_studio_type(meta),
        address=meta.first("loc1", "location") or None,
        latitude=meta.number("loc3"),
        longitude=meta.number("loc4"),
        website_url=meta.first("url", "homepage1", "homepage2") or None,
        phone=meta.text("phone") or None,
        is_premium=meta.flag("featured") or meta.flag("spotlight"),
        is_verified=meta.flag("verified") or meta.flag("crb"),
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def map_connection_to_service(value: str) -> ServiceType | None:
    lowered = value.lower()
    for phrase, service in SERVICE_VOCABULARY:
        if phrase in lowered:
            return service
    return None


def infer_services(meta: LegacyMetadata) -> tuple[ServiceType, ...]:
    """Distinct services from the connection slots, in first-seen order."""
    services: list[ServiceType] = []
    for key in CONNECTION_KEYS:
        value = meta.text(key)
        if not value:
            continue
        service = map_connection_to_service(value)
        if service is not None and service not in services:
            services.append(service)
    if any(meta.flag(flag) for flag in SOURCE_CONNECT_FLAGS) and ServiceType.SOURCE_CONNECT not in services:
        services.append(ServiceType.SOURCE_CONNECT)
    return tuple(services)


# ---------------------------------------------------------------------------
# Studio children
# ---------------------------------------------------------------------------


def image_is_avatar(row: LegacyGalleryRow) -> bool:
    return (row.image_type or "").lower() == "avatar"


def map_gallery_image(row: LegacyGalleryRow, *, studio_id: str, studio_name: str) -> ImagePayload | None:
    image_url = row.cloudinary_url or row.image_filename
    if not image_url:
        return None
    return ImagePayload(
        studio_id=studio_id,
        image_url=image_url,
        alt_text=f"Studio image for {studio_name}",
        sort_order=row.display_order or 0,
    )


def map_connection_pair(user_id: str, connected_user_id: str) -> tuple[ConnectionPayload, ConnectionPayload]:
    return (
        ConnectionPayload(user_id=user_id, connected_user_id=connected_user_id),
        ConnectionPayload(user_id=connected_user_id, connected_user_id=user_id),
    )


def map_contact(row: LegacyContactRow, *, id_prefix: str) -> tuple[ConnectionPayload, ConnectionPayload]:
    return map_connection_pair(namespaced_id(row.user1, id_prefix), namespaced_id(row.user2, id_prefix))


def map_review(
    row: LegacyReviewRow,
    *,
    reviewer_id: str,
    studio_id: str,
    owner_id: str,
    id_prefix: str,
) -> ReviewPayload:
    rating = row.rating if row.rating and 1 <= row.rating <= 5 else DEFAULT_REVIEW_RATING
    return ReviewPayload(
        id=namespaced_id(row.id, id_prefix),
        studio_id=studio_id,
        reviewer_id=reviewer_id,
        owner_id=owner_id,
        rating=rating,
        content=row.content,
        status=ReviewStatus.APPROVED,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
