"""URL normalization shared by the enrichment engine and the audit rules."""

from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

TRACKING_PARAMS = frozenset(
    {
        "utm_source",
        "utm_medium",
        "utm_campaign",
        "utm_term",
        "utm_content",
        "fbclid",
        "gclid",
    }
)

LEGACY_SOCIAL_DOMAIN = "twitter.com"
RENAMED_SOCIAL_DOMAIN = "x.com"

# Hosts that only serve over https; plain http links to them are upgraded.
SECURE_SOCIAL_DOMAINS = (
    "x.com",
    "facebook.com",
    "linkedin.com",
    "instagram.com",
    "youtube.com",
    "vimeo.com",
    "soundcloud.com",
    "tiktok.com",
    "threads.net",
)


def _host_matches(host: str, domain: str) -> bool:
    return host == domain or host.endswith("." + domain)


def has_scheme(url: str) -> bool:
    return url.lower().startswith(("http://", "https://"))


def is_legacy_social_url(url: str | None) -> bool:
    if not url:
        return False
    host = urlsplit(url if has_scheme(url) else "https://" + url).hostname or ""
    return _host_matches(host, LEGACY_SOCIAL_DOMAIN)


def normalize_url(url: str | None) -> str | None:
    """
    Return the canonical form of ``url``.

    Adds ``https://`` when no scheme is present, rewrites twitter.com hosts to
    x.com, upgrades known social hosts to https and drops tracking query
    parameters. Applying it twice gives the same result as applying it once.
    """
    if not url:
        return url
    url = url.strip()
    if not has_scheme(url):
        url = "https://" + url

    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    netloc = parts.netloc
    host = (parts.hostname or "").lower()

    if _host_matches(host, LEGACY_SOCIAL_DOMAIN):
        new_host = host[: -len(LEGACY_SOCIAL_DOMAIN)] + RENAMED_SOCIAL_DOMAIN
        netloc = netloc.lower().replace(host, new_host, 1)
        host = new_host

    if scheme == "http" and any(_host_matches(host, domain) for domain in SECURE_SOCIAL_DOMAINS):
        scheme = "https"

    query = parts.query
    if query:
        pairs = parse_qsl(query, keep_blank_values=True)
        kept = [(key, value) for key, value in pairs if key.lower() not in TRACKING_PARAMS]
        if len(kept) != len(pairs):
            query = urlencode(kept)

    return urlunsplit((scheme, netloc, parts.path, query, parts.fragment))
