"""
Admin field mapping.

An admin edit arrives as one wide patch: a few account-level keys at the top
level, a ``meta`` dictionary using the directory's historical field names, and
an optional ``profile`` dictionary. The three builders below split it into
disjoint column updates for ``User``, ``Studio`` and ``UserProfile``. A key is
copied only when it is present in the patch, so absent keys never clear data.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from .geocoding import parse_request_coordinates

CUSTOM_CONNECTION_LIMIT = 2
PROFILE_CONNECTION_SLOTS = 12

# meta key -> UserProfile column, copied verbatim
PROFILE_TEXT_FIELDS = {
    "last_name": "last_name",
    "location": "location",
    "about": "about",
    "short_about": "short_about",
    "shortabout": "short_about",
    "facebook": "facebook_url",
    "linkedin": "linkedin_url",
    "instagram": "instagram_url",
    "youtubepage": "youtube_url",
    "tiktok": "tiktok_url",
    "threads": "threads_url",
    "soundcloud": "soundcloud_url",
    "rates1": "rate_tier_1",
    "rates2": "rate_tier_2",
    "rates3": "rate_tier_3",
    "equipment_list": "equipment_list",
    "services_offered": "services_offered",
}
PROFILE_FLAG_FIELDS = {
    "showrates": "show_rates",
    "showemail": "show_email",
    "showphone": "show_phone",
    "showaddress": "show_address",
    "showdirections": "show_directions",
    "use_coordinates_for_map": "use_coordinates_for_map",
}
STUDIO_TEXT_FIELDS = {
    "studio_name": "name",
    "address": "address",
    "full_address": "full_address",
    "city": "city",
    "phone": "phone",
    "url": "website_url",
}
STUDIO_FLAG_FIELDS = {
    "show_exact_location": "show_exact_location",
    "verified": "is_verified",
    "is_profile_visible": "is_profile_visible",
}


def normalize_boolean(value: Any) -> bool:
    """``"1"``, ``True`` and numeric ``1`` (``1.0`` included) are true; anything else is false."""
    if isinstance(value, bool):
        return value
    return value == "1" or (isinstance(value, (int, float)) and value == 1)


def _meta(patch: Mapping[str, Any]) -> Mapping[str, Any]:
    return patch.get("meta") or {}


def parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def mirror_x_url(updates: Dict[str, Any], value: Any) -> None:
    """``x_url`` and the legacy ``twitter_url`` column are always written together."""
    updates["x_url"] = value
    updates["twitter_url"] = value


def build_user_update(patch: Mapping[str, Any]) -> Dict[str, Any]:
    meta = _meta(patch)
    updates: Dict[str, Any] = {}
    if "display_name" in patch:
        updates["display_name"] = patch["display_name"]
    if "username" in patch:
        updates["username"] = patch["username"]
    if "email" in patch:
        updates["email"] = patch["email"]
    if "avatar_image" in patch:
        updates["avatar_url"] = patch["avatar_image"]
    if "membership_tier" in meta:
        updates["membership_tier"] = meta["membership_tier"]
    return updates


def build_studio_update(patch: Mapping[str, Any]) -> Dict[str, Any]:
    meta = _meta(patch)
    updates: Dict[str, Any] = {}
    for key, column in STUDIO_TEXT_FIELDS.items():
        if key in meta:
            updates[column] = meta[key]
    if "latitude" in meta or "longitude" in meta:
        lat, lng = parse_request_coordinates(meta.get("latitude"), meta.get("longitude"))
        if "latitude" in meta:
            updates["latitude"] = lat
        if "longitude" in meta:
            updates["longitude"] = lng
    for key, column in STUDIO_FLAG_FIELDS.items():
        if key in meta:
            updates[column] = normalize_boolean(meta[key])
    if patch.get("status") is not None:
        updates["status"] = str(patch["status"]).upper()
    return updates


def build_profile_update(patch: Mapping[str, Any]) -> Dict[str, Any]:
    meta = _meta(patch)
    profile = patch.get("profile") or {}
    updates: Dict[str, Any] = {}

    for key, column in PROFILE_TEXT_FIELDS.items():
        if key in meta:
            updates[column] = meta[key]
    if "x" in meta:
        mirror_x_url(updates, meta["x"])

    if "featured" in meta:
        featured = normalize_boolean(meta["featured"])
        updates["is_featured"] = featured
        if not featured:
            updates["featured_until"] = None
    if "featured_expires_at" in meta:
        updates["featured_until"] = parse_timestamp(meta["featured_expires_at"])

    for key, column in PROFILE_FLAG_FIELDS.items():
        if key in meta:
            updates[column] = normalize_boolean(meta[key])

    for slot in range(1, PROFILE_CONNECTION_SLOTS + 1):
        key = f"connection{slot}"
        if key in meta:
            updates[key] = meta[key]

    if "custom_connection_methods" in meta:
        methods = meta["custom_connection_methods"]
        if isinstance(methods, (list, tuple)):
            cleaned = [method for method in methods if isinstance(method, str) and method.strip()]
            updates["custom_connection_methods"] = cleaned[:CUSTOM_CONNECTION_LIMIT]
        else:
            updates["custom_connection_methods"] = []

    # The nested profile block is applied last and wins over meta.
    for key in ("equipment_list", "services_offered"):
        if key in profile:
            updates[key] = profile[key]
    if "x_url" in profile:
        mirror_x_url(updates, profile["x_url"])
    return updates
