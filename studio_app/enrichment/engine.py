"""
Enrichment suggestion engine.

``EnrichmentEngine.enrich`` runs four independent strategies against one
studio listing and concatenates what they propose. Suggestions are never
applied here: they are persisted as PENDING rows for an operator to review.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from studio_app.audit.snapshot import URL_FIELDS, StudioSnapshot
from studio_app.models import EnrichmentConfidence
from studio_app.utils.metrics import record_enrichment_fetch, record_enrichment_suggestion

from .extractors import extract_social_links, extract_structured_data, extract_title
from .fetcher import FetchError, PageFetcher
from .urls import is_legacy_social_url, normalize_url

logger = logging.getLogger(__name__)

EVIDENCE_WEBSITE = "website"
EVIDENCE_URL_NORMALIZATION = "url_normalization"

# Social fields inspected for operator visibility, with the host each must point at.
SOCIAL_INSPECTION_FIELDS = (
    ("facebook_url", "facebook.com"),
    ("x_url", "x.com"),
    ("twitter_url", "twitter.com"),
    ("linkedin_url", "linkedin.com"),
    ("instagram_url", "instagram.com"),
)


def social_field_for(platform: str) -> str:
    """Profile column a discovered social link belongs in."""
    return "x_url" if platform == "twitter" else f"{platform}_url"


@dataclass(frozen=True)
class SuggestionDraft:
    field_name: str
    suggested_value: str
    confidence: EnrichmentConfidence
    current_value: Optional[str] = None
    evidence_url: Optional[str] = None
    evidence_type: Optional[str] = None


@dataclass
class EnrichmentOutcome:
    suggestions: List[SuggestionDraft] = field(default_factory=list)
    observations: List[str] = field(default_factory=list)
    fetch_failures: int = 0


class EnrichmentEngine:
    def __init__(
        self,
        fetcher: Optional[PageFetcher] = None,
        *,
        website_timeout: float = 15.0,
        social_timeout: float = 10.0,
    ) -> None:
        self.fetcher = fetcher or PageFetcher()
        self.website_timeout = website_timeout
        self.social_timeout = social_timeout

    def enrich(self, studio: Optional[StudioSnapshot]) -> EnrichmentOutcome:
        outcome = EnrichmentOutcome()
        if studio is None:
            outcome.observations.append("No studio profile - skipping")
            return outcome

        self.website_strategy(studio, outcome)
        self.normalization_strategy(studio, outcome)
        self.social_inspection_strategy(studio, outcome)
        self.geocoding_gap_strategy(studio, outcome)

        for suggestion in outcome.suggestions:
            record_enrichment_suggestion(suggestion.field_name)
        return outcome

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------
    def website_strategy(self, studio: StudioSnapshot, outcome: EnrichmentOutcome) -> None:
        """Fill empty phone, city and social fields from the studio's own website."""
        if not studio.website_url:
            return
        try:
            page = self.fetcher.fetch(normalize_url(studio.website_url), timeout=self.website_timeout)
        except FetchError as exc:
            record_enrichment_fetch("website", "failure")
            outcome.fetch_failures += 1
            logger.warning(
                "Failed to fetch website: %s", exc, extra={"studio_id": studio.id, "url": studio.website_url}
            )
            return
        record_enrichment_fetch("website", "success")

        data = extract_structured_data(page)

        def suggest(field_name: str, current: Optional[str], value: str) -> None:
            outcome.suggestions.append(
                SuggestionDraft(
                    field_name=field_name,
                    current_value=current,
                    suggested_value=value,
                    confidence=EnrichmentConfidence.HIGH,
                    evidence_url=studio.website_url,
                    evidence_type=EVIDENCE_WEBSITE,
                )
            )

        phone = data.get("phone") or data.get("extracted_phone")
        if not studio.phone and phone:
            suggest("phone", None, str(phone))
        if not studio.city and data.get("city"):
            suggest("city", studio.city or None, str(data["city"]))

        for platform, link in extract_social_links(page).items():
            field_name = social_field_for(platform)
            if not getattr(studio, field_name, None):
                suggest(field_name, None, link)

    def normalization_strategy(self, studio: StudioSnapshot, outcome: EnrichmentOutcome) -> None:
        """Propose canonical forms of populated URLs; legacy twitter links go to ``x_url``."""
        for field_name in URL_FIELDS:
            current = getattr(studio, field_name)
            if not current:
                continue
            normalized = normalize_url(current)
            if normalized == current:
                continue

            if field_name == "twitter_url" and is_legacy_social_url(current):
                existing = studio.x_url
                if existing and normalize_url(existing) != normalized:
                    outcome.observations.append(
                        f"twitter_url and x_url disagree ({normalized} vs {existing}); left for manual review"
                    )
                if existing:
                    continue
                outcome.suggestions.append(
                    SuggestionDraft(
                        field_name="x_url",
                        current_value=None,
                        suggested_value=normalized,
                        confidence=EnrichmentConfidence.HIGH,
                        evidence_type=EVIDENCE_URL_NORMALIZATION,
                    )
                )
                continue

            outcome.suggestions.append(
                SuggestionDraft(
                    field_name=field_name,
                    current_value=current,
                    suggested_value=normalized,
                    confidence=EnrichmentConfidence.HIGH,
                    evidence_type=EVIDENCE_URL_NORMALIZATION,
                )
            )

    def social_inspection_strategy(self, studio: StudioSnapshot, outcome: EnrichmentOutcome) -> None:
        """Fetch linked social pages and note their titles. Never suggests."""
        for field_name, domain in SOCIAL_INSPECTION_FIELDS:
            url = getattr(studio, field_name)
            if not url or domain not in url:
                continue
            try:
                page = self.fetcher.fetch(normalize_url(url), timeout=self.social_timeout)
            except FetchError as exc:
                record_enrichment_fetch("social", "failure")
                outcome.fetch_failures += 1
                logger.warning("Failed to fetch %s: %s", field_name, exc, extra={"studio_id": studio.id})
                continue
            record_enrichment_fetch("social", "success")
            title = extract_title(page)
            if title:
                outcome.observations.append(f"{field_name} profile title: {title}")

    def geocoding_gap_strategy(self, studio: StudioSnapshot, outcome: EnrichmentOutcome) -> None:
        if studio.has_coordinates and not studio.city:
            note = "Has coordinates but missing city - requires geocoding API"
        elif studio.city and not studio.has_coordinates:
            note = "Has city but missing coordinates - requires geocoding API"
        else:
            return
        outcome.observations.append(note)
        logger.info(note, extra={"studio_id": studio.id})
