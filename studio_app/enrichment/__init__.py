"""Profile enrichment: fetch public signals and propose field-level suggestions."""

from .engine import EnrichmentEngine, EnrichmentOutcome, SuggestionDraft
from .fetcher import FetchError, PageFetcher
from .runner import EnrichmentRunner, EnrichmentSummary
from .urls import normalize_url

__all__ = [
    "EnrichmentEngine",
    "EnrichmentOutcome",
    "EnrichmentRunner",
    "EnrichmentSummary",
    "FetchError",
    "PageFetcher",
    "SuggestionDraft",
    "normalize_url",
]
