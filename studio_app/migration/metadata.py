"""
Typed views over the legacy store's rows.

The legacy ``shows_usermeta`` table is an open key/value bag. Every key the
migration reads is listed in ``KNOWN_META_KEYS`` so the transformation can be
audited in one place; ``LegacyMetadata`` only exposes safe optional lookups.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator, Mapping

NAME_KEYS = ("first_name", "last_name")
TEXT_KEYS = ("about", "shortabout", "category", "equipment", "services", "phone")
LOCATION_KEYS = ("location", "loc1", "loc3", "loc4")
WEBSITE_KEYS = ("url", "homepage1", "homepage2")
FLAG_KEYS = (
    "featured",
    "spotlight",
    "verified",
    "crb",
    "homestudio",
    "homestudio2",
    "sc",
    "von",
    "showrates",
    "showemail",
    "showphone",
    "showaddress",
)
AVATAR_KEYS = ("avatar_image", "facebook_avatar", "google_avatar", "twitter_avatar")
SOCIAL_KEYS = ("facebook", "twitter", "linkedin", "instagram", "youtubepage", "vimeo", "soundcloud")
RATE_KEYS = ("rates1", "rates2", "rates3")
CONNECTION_SLOT_COUNT = 15
CONNECTION_KEYS = tuple(f"connection{index}" for index in range(1, CONNECTION_SLOT_COUNT + 1))

KNOWN_META_KEYS = frozenset(
    NAME_KEYS
    + TEXT_KEYS
    + LOCATION_KEYS
    + WEBSITE_KEYS
    + FLAG_KEYS
    + AVATAR_KEYS
    + SOCIAL_KEYS
    + RATE_KEYS
    + CONNECTION_KEYS
)

_FALSEY_FLAGS = frozenset({"", "0", "false", "no", "off", "null"})


class LegacyMetadata(Mapping[str, str]):
    """Immutable metadata bag for one legacy user."""

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, object] | None = None):
        cleaned: dict[str, str] = {}
        for key, value in (values or {}).items():
            if value is None:
                continue
            cleaned[str(key)] = str(value)
        self._values = cleaned

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self):
        return f"LegacyMetadata({self._values!r})"

    def text(self, key: str) -> str:
        """Stripped value for ``key``; empty string when absent."""
        return self._values.get(key, "").strip()

    def first(self, *keys: str) -> str:
        """First non-empty value among ``keys``, in order."""
        for key in keys:
            value = self.text(key)
            if value:
                return value
        return ""

    def flag(self, key: str) -> bool:
        return self.text(key).lower() not in _FALSEY_FLAGS

    def number(self, key: str) -> float | None:
        value = self.text(key)
        if not value:
            return None
        try:
            return float(value)
        except ValueError:
            return None

    def unknown_keys(self) -> set[str]:
        return set(self._values) - KNOWN_META_KEYS


def coerce_datetime(value: object) -> datetime | None:
    """Parse legacy timestamps (unix seconds or SQL datetime strings) as UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    text = str(value).strip()
    if text.isdigit():
        return datetime.fromtimestamp(int(text), tz=timezone.utc)
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_int(value: object) -> int | None:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class LegacyUserRecord:
    """Row from ``shows_users``."""

    id: str
    email: str
    username: str | None = None
    display_name: str | None = None
    password: str | None = None
    avatar_url: str | None = None
    role_id: int | None = None
    email_verified: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Mapping[str, object]) -> "LegacyUserRecord":
        created_at = coerce_datetime(row.get("created_at") or row.get("joined"))
        return cls(
            id=str(row["id"]),
            email=str(row.get("email") or "").strip(),
            username=_optional_str(row.get("username")),
            display_name=_optional_str(row.get("display_name")),
            password=_optional_str(row.get("password")),
            avatar_url=_optional_str(row.get("avatar_url")),
            role_id=_optional_int(row.get("role_id")),
            email_verified=bool(_optional_int(row.get("email_verified")) or 0),
            created_at=created_at,
            updated_at=coerce_datetime(row.get("updated_at")) or created_at,
        )


@dataclass(frozen=True)
class LegacyGalleryRow:
    """Row from ``studio_gallery``."""

    id: str
    user_id: str
    image_filename: str | None
    cloudinary_url: str | None
    image_type: str | None
    display_order: int | None

    @classmethod
    def from_row(cls, row: Mapping[str, object]) -> "LegacyGalleryRow":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            image_filename=_optional_str(row.get("image_filename")),
            cloudinary_url=_optional_str(row.get("cloudinary_url")),
            image_type=_optional_str(row.get("image_type")),
            display_order=_optional_int(row.get("display_order")),
        )


@dataclass(frozen=True)
class LegacyContactRow:
    """Accepted row from ``shows_contacts``."""

    user1: str
    user2: str

    @classmethod
    def from_row(cls, row: Mapping[str, object]) -> "LegacyContactRow":
        return cls(user1=str(row["user1"]), user2=str(row["user2"]))


@dataclass(frozen=True)
class LegacyReviewRow:
    """Approved row from ``shows_comments``; ``studio_owner_id`` is the legacy page owner."""

    id: str
    reviewer_id: str
    studio_owner_id: str
    content: str | None
    rating: int | None
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_row(cls, row: Mapping[str, object]) -> "LegacyReviewRow":
        created_at = coerce_datetime(row.get("date"))
        return cls(
            id=str(row["id"]),
            reviewer_id=str(row["user_id"]),
            studio_owner_id=str(row["page"]),
            content=_optional_str(row.get("content")),
            rating=_optional_int(row.get("rating")),
            created_at=created_at,
            updated_at=coerce_datetime(row.get("updated")) or created_at,
        )
