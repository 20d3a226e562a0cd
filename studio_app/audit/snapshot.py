"""
Immutable inputs for the audit classifier.

The classifier never sees ORM objects: the audit service flattens each user,
their studio (if any) and their activity counts into these frozen dataclasses
first, so every rule is a pure function of its snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from studio_app.models import (
    DeletionStatus,
    Studio,
    StudioStatus,
    User,
    UserProfile,
    UserStatus,
    as_utc,
)

# Profile URL columns checked for scheme problems, in report order.
URL_FIELDS = (
    "website_url",
    "facebook_url",
    "twitter_url",
    "linkedin_url",
    "instagram_url",
    "youtube_url",
    "vimeo_url",
    "soundcloud_url",
)
SOCIAL_FIELDS = (
    "facebook_url",
    "x_url",
    "twitter_url",
    "linkedin_url",
    "instagram_url",
    "youtube_url",
    "vimeo_url",
    "soundcloud_url",
)


@dataclass(frozen=True)
class AccountSnapshot:
    id: str
    email: str | None
    username: str | None
    display_name: str | None
    avatar_url: str | None
    email_verified: bool
    status: UserStatus
    created_at: datetime
    deletion_requested_at: datetime | None = None
    deletion_status: DeletionStatus = DeletionStatus.ACTIVE

    @classmethod
    def from_model(cls, user: User) -> "AccountSnapshot":
        return cls(
            id=user.id,
            email=user.email,
            username=user.username,
            display_name=user.display_name,
            avatar_url=user.avatar_url,
            email_verified=bool(user.email_verified),
            status=user.status,
            created_at=as_utc(user.created_at),
            deletion_requested_at=as_utc(user.deletion_requested_at),
            deletion_status=user.deletion_status or DeletionStatus.ACTIVE,
        )


@dataclass(frozen=True)
class StudioSnapshot:
    """Studio plus the owner's profile fields the audit inspects."""

    id: str
    name: str | None
    status: StudioStatus
    is_profile_visible: bool
    updated_at: datetime
    city: str | None = None
    address: str | None = None
    full_address: str | None = None
    abbreviated_address: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    phone: str | None = None
    website_url: str | None = None
    about: str | None = None
    short_about: str | None = None
    equipment_list: str | None = None
    facebook_url: str | None = None
    twitter_url: str | None = None
    x_url: str | None = None
    linkedin_url: str | None = None
    instagram_url: str | None = None
    youtube_url: str | None = None
    vimeo_url: str | None = None
    soundcloud_url: str | None = None
    rate_tiers: tuple[str, ...] = ()
    connections: tuple[str, ...] = ()
    studio_types: tuple[str, ...] = ()
    services: tuple[str, ...] = ()
    image_count: int = 0

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def has_any_social(self) -> bool:
        return any(getattr(self, name) for name in SOCIAL_FIELDS)

    @classmethod
    def from_models(cls, studio: Studio, profile: UserProfile | None) -> "StudioSnapshot":
        def profile_value(name: str):
            return getattr(profile, name) if profile is not None else None

        rates = tuple(
            value for value in (profile_value(f"rate_tier_{index}") for index in (1, 2, 3)) if value
        )
        connections = tuple(
            value for value in (profile_value(name) for name in UserProfile.CONNECTION_FIELDS) if value
        )
        # Studio-level updates and profile edits both count as "touching" the listing.
        touched = [as_utc(studio.updated_at)]
        if profile is not None and profile.updated_at is not None:
            touched.append(as_utc(profile.updated_at))
        return cls(
            id=studio.id,
            name=studio.name,
            status=studio.status,
            is_profile_visible=bool(studio.is_profile_visible),
            updated_at=max(touched),
            city=studio.city,
            address=studio.address,
            full_address=studio.full_address,
            abbreviated_address=studio.abbreviated_address,
            latitude=studio.latitude,
            longitude=studio.longitude,
            phone=studio.phone or profile_value("phone"),
            website_url=studio.website_url,
            about=profile_value("about"),
            short_about=profile_value("short_about"),
            equipment_list=profile_value("equipment_list"),
            facebook_url=profile_value("facebook_url"),
            twitter_url=profile_value("twitter_url"),
            x_url=profile_value("x_url"),
            linkedin_url=profile_value("linkedin_url"),
            instagram_url=profile_value("instagram_url"),
            youtube_url=profile_value("youtube_url"),
            vimeo_url=profile_value("vimeo_url"),
            soundcloud_url=profile_value("soundcloud_url"),
            rate_tiers=rates,
            connections=connections,
            studio_types=tuple(row.studio_type.value for row in studio.studio_types),
            services=tuple(row.service.value for row in studio.services),
            image_count=len(studio.images),
        )


@dataclass(frozen=True)
class ActivityCounts:
    subscriptions: int = 0
    pending_subscriptions: int = 0
    payments: int = 0
    messages: int = 0
    reviews: int = 0
    support_tickets: int = 0

    @property
    def has_subscription(self) -> bool:
        return self.subscriptions > 0

    @property
    def has_payment_activity(self) -> bool:
        return self.payments > 0 or self.pending_subscriptions > 0

    @property
    def has_activity(self) -> bool:
        return any(
            (
                self.subscriptions,
                self.pending_subscriptions,
                self.payments,
                self.messages,
                self.reviews,
                self.support_tickets,
            )
        )
