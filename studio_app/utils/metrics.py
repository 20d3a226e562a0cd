"""Prometheus metrics helpers for the migration, audit and enrichment pipelines."""

from __future__ import annotations

from typing import Literal

from prometheus_client import Counter, Histogram

_migration_records = Counter(
    "legacy_migration_records_total",
    "Legacy records processed by migration stage and outcome.",
    ["stage", "outcome"],
)
_migration_stage_duration = Histogram(
    "legacy_migration_stage_duration_seconds",
    "Duration of a single migration stage in seconds.",
    ["stage"],
    buckets=(0.1, 0.5, 1, 5, 15, 30, 60, 120, 300, 900),
)
_audit_findings = Counter(
    "profile_audit_findings_total",
    "Audit findings produced by classification.",
    ["classification"],
)
_enrichment_fetches = Counter(
    "profile_enrichment_fetches_total",
    "Outbound enrichment fetches by strategy and outcome.",
    ["strategy", "outcome"],
)
_enrichment_suggestions = Counter(
    "profile_enrichment_suggestions_total",
    "Enrichment suggestions generated by target field.",
    ["field"],
)
_geocode_lookups = Counter(
    "studio_geocode_lookups_total",
    "Geocoding lookups by outcome.",
    ["outcome"],
)

MigrationOutcome = Literal["migrated", "skipped", "error"]


def record_migration_record(stage: str, outcome: MigrationOutcome) -> None:
    _migration_records.labels(stage=stage, outcome=outcome).inc()


def record_migration_stage(stage: str, duration_seconds: float) -> None:
    _migration_stage_duration.labels(stage=stage).observe(duration_seconds)


def record_audit_finding(classification: str) -> None:
    _audit_findings.labels(classification=classification).inc()


def record_enrichment_fetch(strategy: str, outcome: Literal["success", "failure"]) -> None:
    _enrichment_fetches.labels(strategy=strategy, outcome=outcome).inc()


def record_enrichment_suggestion(field: str) -> None:
    _enrichment_suggestions.labels(field=field).inc()


def record_geocode_lookup(outcome: Literal["success", "no_result", "failure"]) -> None:
    _geocode_lookups.labels(outcome=outcome).inc()
