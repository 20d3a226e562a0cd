import csv
import json
from datetime import datetime, timezone
from pathlib import Path

from studio_app.audit.export import export_results, export_timestamp
from studio_app.models import AuditClassification, PipelineRun, PipelineRunStatus, ProfileAuditFinding, db


def test_export_timestamp_is_filename_safe():
    stamp = export_timestamp(datetime(2025, 6, 1, 12, 30, 5, 123456, tzinfo=timezone.utc))

    assert stamp == "2025-06-01T12-30-05"


def test_export_writes_json_and_csv(tmp_path, now):
    record = {
        "user_id": "u1",
        "studio_id": None,
        "classification": "EXCEPTION",
        "reasons": ["Has coordinates but missing city", "Missing key fields: city"],
        "completeness_score": 70,
        "recommended_action": "Reverse geocode coordinates to fill city",
        "metadata": {"geodata_issue": "coords_no_city", "account_age_days": 400},
    }

    paths = export_results([record], tmp_path / "exports", now=now)

    assert paths.json_path.name == "audit-results-2025-06-01T12-00-00.json"
    assert json.loads(paths.json_path.read_text(encoding="utf-8")) == [record]
    with paths.csv_path.open(encoding="utf-8", newline="") as handle:
        rows = list(csv.reader(handle))
    assert rows[0] == [
        "User ID",
        "Studio Profile ID",
        "Classification",
        "Completeness Score",
        "Reasons",
        "Recommended Action",
        "Metadata",
    ]
    assert rows[1][1] == ""
    assert rows[1][4] == "Has coordinates but missing city; Missing key fields: city"
    assert json.loads(rows[1][6]) == record["metadata"]


def _exported_files(app):
    directory = Path(app.config["AUDIT_EXPORT_DIR"])
    return sorted(directory.glob("audit-results-*"))


def test_audit_run_stores_findings_and_exports(app, runner, make_user):
    make_user(username="browser")

    result = runner.invoke(args=["audit", "run"])

    assert result.exit_code == 0, result.output
    assert "Audited 1 accounts" in result.output
    assert "  - NOT_ADVERTISING: 1" in result.output
    assert "JSON exported to:" in result.output
    assert db.session.query(ProfileAuditFinding).count() == 1
    assert [path.suffix for path in _exported_files(app)] == [".csv", ".json"]

    run = db.session.query(PipelineRun).filter_by(pipeline="profile_audit").one()
    assert run.status == PipelineRunStatus.SUCCEEDED
    assert run.counts_json["stored"] == 1
    assert run.counts_json["json_path"].endswith(".json")


def test_audit_run_dry_run_does_not_store(app, runner, make_user):
    make_user(username="browser")

    result = runner.invoke(args=["audit", "run", "--dry-run"])

    assert result.exit_code == 0, result.output
    assert "DRY RUN - stored findings were not changed" in result.output
    assert db.session.query(ProfileAuditFinding).count() == 0
    assert len(_exported_files(app)) == 2
    assert db.session.query(PipelineRun).count() == 0


def test_audit_run_export_only_uses_stored_findings(app, runner, make_user, tmp_path):
    user = make_user(username="browser")
    db.session.add(
        ProfileAuditFinding(
            user_id=user.id,
            classification=AuditClassification.JUNK,
            reasons=["Flagged earlier"],
            completeness_score=20,
        )
    )
    db.session.commit()
    output_dir = tmp_path / "custom"

    result = runner.invoke(args=["audit", "run", "--export-only", "--output-dir", str(output_dir)])

    assert result.exit_code == 0, result.output
    assert "  - JUNK: 1" in result.output
    (json_file,) = output_dir.glob("*.json")
    payload = json.loads(json_file.read_text(encoding="utf-8"))
    assert payload[0]["reasons"] == ["Flagged earlier"]
    finding = db.session.query(ProfileAuditFinding).one()
    assert finding.classification is AuditClassification.JUNK


def test_audit_run_rejects_bad_policy_file(app, runner, tmp_path):
    policy_path = tmp_path / "policy.json"
    policy_path.write_text(json.dumps({"junk_days": 5}), encoding="utf-8")
    app.config["AUDIT_POLICY_PATH"] = str(policy_path)

    result = runner.invoke(args=["audit", "run"])

    assert result.exit_code != 0
    assert "Unknown audit policy keys: junk_days" in result.output
