"""
Geocoding reconciliation for admin studio updates.

``maybe_geocode_studio_address`` decides, for one incoming update, whether the
studio's address must be geocoded and which derived fields to fill. The
decision table, in order:

1. no ``full_address`` in the update: nothing to do;
2. address changed: geocode unless the caller is explicitly moving the
   coordinates too (see :func:`detect_manual_coordinate_override`);
3. address unchanged but coordinates missing: geocode the stored address
   unless the update supplies both coordinates;
4. otherwise nothing to do.

A successful lookup sets latitude/longitude and back-fills ``city`` and
``location`` (country) when the caller did not send them. A failed lookup
clears the coordinates so they never point at a previous address.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Protocol, Tuple

import requests

from studio_app.utils.metrics import record_geocode_lookup

logger = logging.getLogger(__name__)

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"
COORDINATE_EPSILON = 0.000001

# Address component types tried for the city, most specific first.
CITY_COMPONENT_PRIORITY = (
    "locality",
    "postal_town",
    "administrative_area_level_2",
    "administrative_area_level_1",
)


class GeocodingError(RuntimeError):
    """The geocoding service could not be reached or rejected the request."""


@dataclass(frozen=True)
class GeocodeResult:
    lat: float
    lng: float
    address: str
    city: Optional[str] = None
    country: Optional[str] = None


class Geocoder(Protocol):
    def geocode(self, address: str) -> Optional[GeocodeResult]: ...


def _mask_key(key: str) -> str:
    if len(key) < 8:
        return "***"
    return f"{key[:4]}...{key[-4:]}"


def _component(components, component_type: str) -> Optional[str]:
    for component in components:
        if component_type in component.get("types", ()):
            return component.get("long_name")
    return None


class GoogleGeocoder:
    """Forward geocoding through the Google Geocoding API."""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
    ) -> None:
        self.api_key = api_key
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Mapping[str, Any], *, session: Optional[requests.Session] = None) -> "GoogleGeocoder":
        return cls(
            config.get("GOOGLE_MAPS_API_KEY"),
            session=session,
            timeout=config.get("GEOCODING_TIMEOUT", 10.0),
        )

    def _request(self, address: str) -> Mapping[str, Any]:
        try:
            response = self.session.get(
                GOOGLE_GEOCODE_URL,
                params={"address": address, "key": self.api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except (requests.RequestException, ValueError) as exc:
            raise GeocodingError(str(exc)) from exc

    def geocode(self, address: str) -> Optional[GeocodeResult]:
        """Return the first match for ``address`` or ``None`` on any failure."""
        if not self.api_key:
            logger.warning("Google Maps API key not configured")
            record_geocode_lookup("failure")
            return None
        logger.debug("Geocoding with key %s", _mask_key(self.api_key))

        try:
            data = self._request(address)
        except GeocodingError as exc:
            logger.error("Geocoding request failed: %s", exc, extra={"address": address})
            record_geocode_lookup("failure")
            return None

        status = data.get("status")
        results = data.get("results") or []
        if status != "OK" or not results:
            logger.warning(
                "Geocoding returned no usable result",
                extra={"address": address, "status": status, "error_message": data.get("error_message")},
            )
            record_geocode_lookup("no_result")
            return None

        first = results[0]
        location = first["geometry"]["location"]
        components = first.get("address_components", [])
        city = None
        for component_type in CITY_COMPONENT_PRIORITY:
            city = _component(components, component_type)
            if city:
                break
        record_geocode_lookup("success")
        return GeocodeResult(
            lat=float(location["lat"]),
            lng=float(location["lng"]),
            address=first.get("formatted_address", address),
            city=city,
            country=_component(components, "country"),
        )


def detect_manual_coordinate_override(
    existing_lat: Optional[float],
    existing_lng: Optional[float],
    request_lat: Optional[float],
    request_lng: Optional[float],
) -> bool:
    """True when the update deliberately sets coordinates.

    Setting coordinates where none were stored always counts as an override.
    """
    if (request_lat is not None or request_lng is not None) and existing_lat is None and existing_lng is None:
        return True
    lat_changed = (
        request_lat is not None and existing_lat is not None and abs(request_lat - existing_lat) > COORDINATE_EPSILON
    )
    lng_changed = (
        request_lng is not None and existing_lng is not None and abs(request_lng - existing_lng) > COORDINATE_EPSILON
    )
    return lat_changed or lng_changed


def _parse_coordinate(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return float(value)


def parse_request_coordinates(latitude: Any, longitude: Any) -> Tuple[Optional[float], Optional[float]]:
    """Accept numbers or numeric strings; blanks become ``None``."""
    return _parse_coordinate(latitude), _parse_coordinate(longitude)


def _apply_result(result: Optional[GeocodeResult], meta: Mapping[str, Any]) -> Dict[str, Any]:
    if result is None:
        return {"latitude": None, "longitude": None}
    updates: Dict[str, Any] = {"latitude": result.lat, "longitude": result.lng}
    if "city" not in meta and result.city:
        updates["city"] = result.city
    if "location" not in meta and result.country:
        updates["location"] = result.country
    return updates


def maybe_geocode_studio_address(
    existing_full_address: Optional[str],
    existing_lat: Optional[float],
    existing_lng: Optional[float],
    meta: Mapping[str, Any],
    geocoder: Geocoder,
) -> Dict[str, Any]:
    """
    Return the coordinate/city/location updates implied by ``meta``.

    ``meta`` is the wide admin patch; only ``full_address``, ``latitude``,
    ``longitude``, ``city`` and ``location`` are read. The result may contain
    ``latitude``, ``longitude``, ``city`` and ``location``.
    """
    new_address = meta.get("full_address")
    if not new_address:
        return {}

    request_lat, request_lng = parse_request_coordinates(meta.get("latitude"), meta.get("longitude"))

    if new_address != existing_full_address:
        if detect_manual_coordinate_override(existing_lat, existing_lng, request_lat, request_lng):
            logger.info("Geocoding skipped: coordinates set manually", extra={"address": new_address})
            return {}
        logger.info("Full address changed, geocoding", extra={"address": new_address})
        return _apply_result(geocoder.geocode(new_address), meta)

    if existing_lat is None or existing_lng is None:
        if request_lat is not None and request_lng is not None:
            logger.info("Geocoding skipped: request provides coordinates", extra={"address": new_address})
            return {}
        logger.info("Coordinates empty, geocoding existing address", extra={"address": new_address})
        return _apply_result(geocoder.geocode(new_address), meta)

    return {}

