"""
HTML signal extractors.

Each extractor is a plain function over the raw page text so a change to one
platform's pattern cannot break another. Pages are matched with regular
expressions rather than parsed; studio websites are small and the signals we
look for are well-known markup fragments.
"""

from __future__ import annotations

import html as html_lib
import json
import logging
import re
from typing import Any, Dict, Iterator, Mapping, Optional

from .urls import normalize_url

logger = logging.getLogger(__name__)

JSON_LD_PATTERN = re.compile(
    r"<script[^>]*type=[\"']application/ld\+json[\"'][^>]*>(.*?)</script>",
    re.IGNORECASE | re.DOTALL,
)
BUSINESS_TYPES = frozenset({"LocalBusiness", "Organization"})

OPEN_GRAPH_PATTERNS = {
    "og_title": re.compile(
        r"<meta[^>]*property=[\"']og:title[\"'][^>]*content=[\"']([^\"']*)[\"']", re.IGNORECASE
    ),
    "og_description": re.compile(
        r"<meta[^>]*property=[\"']og:description[\"'][^>]*content=[\"']([^\"']*)[\"']", re.IGNORECASE
    ),
    "og_url": re.compile(r"<meta[^>]*property=[\"']og:url[\"'][^>]*content=[\"']([^\"']*)[\"']", re.IGNORECASE),
}

MAILTO_PATTERN = re.compile(r"mailto:([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})", re.IGNORECASE)
PHONE_PATTERN = re.compile(r"(?:tel:|phone:|call:)\s*([+\d\s()-]{10,})", re.IGNORECASE)
TITLE_PATTERN = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)


def _social_pattern(domain: str) -> re.Pattern:
    return re.compile(
        r"(?:href|url)=[\"'](https?://(?:www\.)?" + domain + r"/[^\"'\s]+)[\"']",
        re.IGNORECASE,
    )


# platform -> link pattern; "twitter" covers both the old and the renamed domain
SOCIAL_LINK_PATTERNS: Mapping[str, re.Pattern] = {
    "facebook": _social_pattern(r"facebook\.com"),
    "twitter": _social_pattern(r"(?:twitter|x)\.com"),
    "linkedin": _social_pattern(r"linkedin\.com"),
    "instagram": _social_pattern(r"instagram\.com"),
    "youtube": _social_pattern(r"youtube\.com"),
    "vimeo": _social_pattern(r"vimeo\.com"),
    "soundcloud": _social_pattern(r"soundcloud\.com"),
}


def _json_ld_nodes(payload: Any) -> Iterator[Mapping[str, Any]]:
    if isinstance(payload, list):
        for item in payload:
            yield from _json_ld_nodes(item)
    elif isinstance(payload, dict):
        yield payload
        graph = payload.get("@graph")
        if graph is not None:
            yield from _json_ld_nodes(graph)


def _is_business(node: Mapping[str, Any]) -> bool:
    node_type = node.get("@type")
    if isinstance(node_type, list):
        return any(item in BUSINESS_TYPES for item in node_type)
    return node_type in BUSINESS_TYPES


def extract_json_ld(page: str) -> Dict[str, Any]:
    """Business details from the first LocalBusiness/Organization JSON-LD node."""
    for match in JSON_LD_PATTERN.finditer(page):
        try:
            payload = json.loads(match.group(1))
        except ValueError:
            logger.debug("Skipping unparseable JSON-LD block")
            continue
        for node in _json_ld_nodes(payload):
            if not _is_business(node):
                continue
            address = node.get("address")
            data: Dict[str, Any] = {
                "name": node.get("name"),
                "phone": node.get("telephone"),
                "url": node.get("url"),
            }
            if isinstance(address, dict):
                data["address"] = address.get("streetAddress")
                data["city"] = address.get("addressLocality")
            else:
                data["address"] = address
                data["city"] = None
            return {key: value for key, value in data.items() if value}
    return {}


def extract_open_graph(page: str) -> Dict[str, str]:
    found = {}
    for key, pattern in OPEN_GRAPH_PATTERNS.items():
        match = pattern.search(page)
        if match:
            found[key] = html_lib.unescape(match.group(1))
    return found


def extract_email(page: str) -> Optional[str]:
    match = MAILTO_PATTERN.search(page)
    return match.group(1) if match else None


def extract_phone(page: str) -> Optional[str]:
    match = PHONE_PATTERN.search(page)
    return match.group(1).strip() if match else None


def extract_title(page: str) -> Optional[str]:
    match = TITLE_PATTERN.search(page)
    return html_lib.unescape(match.group(1)).strip() if match else None


def extract_social_link(page: str, platform: str) -> Optional[str]:
    match = SOCIAL_LINK_PATTERNS[platform].search(page)
    return normalize_url(match.group(1)) if match else None


def extract_social_links(page: str) -> Dict[str, str]:
    """First link per platform, normalized."""
    links = {}
    for platform in SOCIAL_LINK_PATTERNS:
        link = extract_social_link(page, platform)
        if link:
            links[platform] = link
    return links


def extract_structured_data(page: str) -> Dict[str, Any]:
    """All non-social signals from a page merged into one dictionary."""
    data: Dict[str, Any] = {}
    data.update(extract_json_ld(page))
    data.update(extract_open_graph(page))
    email = extract_email(page)
    if email:
        data["email"] = email
    phone = extract_phone(page)
    if phone:
        data["extracted_phone"] = phone
    return data
