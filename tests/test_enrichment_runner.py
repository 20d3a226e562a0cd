from __future__ import annotations

import json
from unittest.mock import patch

from studio_app.enrichment import EnrichmentEngine, EnrichmentRunner, PageFetcher
from studio_app.enrichment.engine import EnrichmentOutcome
from studio_app.models import (
    AuditClassification,
    PipelineRun,
    PipelineRunStatus,
    ProfileAuditFinding,
    ProfileEnrichmentSuggestion,
    SuggestionStatus,
    db,
)


class FakeResponse:
    def __init__(self, *, status_code=200, text: str = ""):
        self.status_code = status_code
        self.text = text


class FakeSession:
    def __init__(self, pages=None):
        self.pages = pages or {}
        self.get_calls = []

    def get(self, url, headers=None, timeout=None):
        self.get_calls.append(url)
        if url not in self.pages:
            return FakeResponse(status_code=503)
        return FakeResponse(text=self.pages[url])


def _finding(user, classification, score=50):
    finding = ProfileAuditFinding(
        user_id=user.id,
        classification=classification,
        reasons=[],
        completeness_score=score,
    )
    db.session.add(finding)
    db.session.commit()
    return finding


def _runner(session=None, **kwargs):
    engine = EnrichmentEngine(PageFetcher(session=session or FakeSession()))
    return EnrichmentRunner(db.session, engine, **kwargs)


def test_default_selection_is_needs_update_and_exception_least_complete_first(make_user):
    low = _finding(make_user(), AuditClassification.EXCEPTION, score=10)
    high = _finding(make_user(), AuditClassification.NEEDS_UPDATE, score=80)
    _finding(make_user(), AuditClassification.HEALTHY, score=5)

    selected = _runner().select_findings()

    assert [finding.id for finding in selected] == [low.id, high.id]


def test_user_id_filter_wins_over_classification(make_user):
    user = make_user()
    healthy = _finding(user, AuditClassification.HEALTHY)
    _finding(make_user(), AuditClassification.NEEDS_UPDATE)

    selected = _runner().select_findings(user_id=user.id, classification=AuditClassification.NEEDS_UPDATE)

    assert [finding.id for finding in selected] == [healthy.id]


def test_run_stores_pending_suggestions(make_user, make_studio):
    owner = make_user()
    make_studio(owner, website_url="janedoe.example", profile={"twitter_url": "twitter.com/jane"})
    finding = _finding(owner, AuditClassification.NEEDS_UPDATE)

    summary = _runner().run()

    assert summary.findings == 1
    assert summary.errors == 0
    stored = db.session.query(ProfileEnrichmentSuggestion).filter_by(audit_finding_id=finding.id).all()
    assert {row.field_name for row in stored} == {"website_url", "x_url"}
    assert all(row.status is SuggestionStatus.PENDING for row in stored)
    assert summary.stored == summary.suggestions == 2
    assert summary.fetch_failures == 2


def test_dry_run_stores_nothing(make_user, make_studio):
    owner = make_user()
    make_studio(owner, website_url="janedoe.example")
    _finding(owner, AuditClassification.EXCEPTION)

    summary = _runner().run(dry_run=True)

    assert summary.suggestions == 1
    assert summary.stored == 0
    assert db.session.query(ProfileEnrichmentSuggestion).count() == 0


def test_delay_is_applied_between_records_only(make_user):
    for _ in range(3):
        _finding(make_user(), AuditClassification.NEEDS_UPDATE)
    sleeps = []

    summary = _runner(delay_seconds=1.0, sleep=sleeps.append).run()

    assert summary.findings == 3
    assert sleeps == [1.0, 1.0]


def test_limit_caps_processed_findings(make_user):
    for _ in range(3):
        _finding(make_user(), AuditClassification.NEEDS_UPDATE)

    assert _runner(delay_seconds=0).run(limit=2).findings == 2


def test_record_failure_is_counted_and_run_continues(make_user, make_studio):
    first, second = make_user(), make_user()
    make_studio(second, website_url="second.example")
    _finding(first, AuditClassification.NEEDS_UPDATE, score=1)
    _finding(second, AuditClassification.NEEDS_UPDATE, score=2)
    runner = _runner(delay_seconds=0)
    real_enrich = runner.engine.enrich
    calls = []

    def flaky_enrich(snapshot):
        calls.append(snapshot)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return real_enrich(snapshot)

    with patch.object(runner.engine, "enrich", side_effect=flaky_enrich):
        summary = runner.run()

    assert summary.errors == 1
    assert summary.stored == 1
    assert db.session.query(ProfileEnrichmentSuggestion).one().field_name == "website_url"


def test_audit_enrich_cli_reports_summary(app, runner, make_user, make_studio):
    owner = make_user()
    make_studio(owner, website_url="janedoe.example")
    _finding(owner, AuditClassification.NEEDS_UPDATE)

    with patch(
        "studio_app.audit.cli.EnrichmentEngine.enrich",
        return_value=EnrichmentOutcome(observations=["No studio profile - skipping"]),
    ):
        result = runner.invoke(args=["audit", "enrich", "--classification", "needs_update", "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "DRY RUN - suggestions were not stored" in result.output
    payload = json.loads(result.output[result.output.index("{"):])
    assert payload["findings"] == 1
    assert payload["dry_run"] is True
    assert db.session.query(PipelineRun).count() == 0


def test_audit_enrich_cli_records_pipeline_run(app, runner, make_user, make_studio):
    owner = make_user()
    make_studio(owner, website_url="janedoe.example")
    _finding(owner, AuditClassification.NEEDS_UPDATE)

    with patch(
        "studio_app.audit.cli.EnrichmentEngine.enrich",
        return_value=EnrichmentOutcome(observations=["No studio profile - skipping"]),
    ):
        result = runner.invoke(args=["audit", "enrich", "--classification", "needs_update"])

    assert result.exit_code == 0, result.output
    run = db.session.query(PipelineRun).filter_by(pipeline="profile_enrichment").one()
    assert run.status == PipelineRunStatus.SUCCEEDED
    assert run.params_json["classification"].upper() == "NEEDS_UPDATE"
    assert run.counts_json["findings"] == 1


def test_audit_enrich_cli_with_no_matches(app, runner):
    result = runner.invoke(args=["audit", "enrich"])

    assert result.exit_code == 0, result.output
    assert "No profiles found matching criteria" in result.output
