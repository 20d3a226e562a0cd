import json

from studio_app.models import PipelineRun, PipelineRunStatus, Studio, User, db

HASHED = "$2y$10$" + "c" * 53


def _configure(app, legacy_store):
    app.config["LEGACY_DATABASE_URL"] = legacy_store.url


def test_legacy_validate_prints_counts(app, runner, legacy_store):
    legacy_store.add_user(1, password=HASHED)
    _configure(app, legacy_store)

    result = runner.invoke(args=["legacy", "validate"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["valid"] is True
    assert payload["table_counts"]["shows_users"] == 1


def test_legacy_validate_without_url_fails(app, runner):
    result = runner.invoke(args=["legacy", "validate"])

    assert result.exit_code != 0
    assert "LEGACY_DATABASE_URL is not configured" in result.output


def test_legacy_migrate_prints_summary_and_records_run(app, runner, legacy_store):
    legacy_store.add_user(1, password=HASHED, meta={"first_name": "Jane", "last_name": "Doe"})
    legacy_store.add_user(2, password=HASHED)
    legacy_store.add_contact(1, 2)
    _configure(app, legacy_store)

    result = runner.invoke(args=["legacy", "migrate", "--summary-json"])

    assert result.exit_code == 0, result.output
    assert "Legacy migration summary" in result.output
    assert "Status: SUCCESS" in result.output
    assert db.session.get(Studio, "legacy_1").name == "Jane Doe Studio"

    run = db.session.query(PipelineRun).filter_by(pipeline="legacy_migration").one()
    assert run.status == PipelineRunStatus.SUCCEEDED
    assert run.params_json == {"clear_target": True}
    assert run.counts_json["stages"]["user_connections"]["migrated"] == 1


def test_legacy_migrate_exits_non_zero_when_records_fail(app, runner, legacy_store):
    legacy_store.add_user(1, password=HASHED, email="dup@example.com")
    legacy_store.add_user(2, password=HASHED, email="dup@example.com")
    _configure(app, legacy_store)

    result = runner.invoke(args=["legacy", "migrate"])

    assert result.exit_code == 1
    assert "COMPLETED WITH ERRORS" in result.output
    run = db.session.query(PipelineRun).filter_by(pipeline="legacy_migration").one()
    assert run.status == PipelineRunStatus.PARTIALLY_FAILED
    assert run.counts_json["total_errors"] == 1


def test_legacy_migrate_keep_existing_preserves_target(app, runner, legacy_store, make_user):
    make_user(username="existing")
    legacy_store.add_user(1, password=HASHED)
    _configure(app, legacy_store)

    result = runner.invoke(args=["legacy", "migrate", "--keep-existing"])

    assert result.exit_code == 0, result.output
    assert db.session.query(User).count() == 2


def test_legacy_migrate_aborts_on_invalid_source(app, runner, tmp_path):
    app.config["LEGACY_DATABASE_URL"] = f"sqlite:///{tmp_path / 'missing.db'}"

    result = runner.invoke(args=["legacy", "migrate"])

    assert result.exit_code != 0
    assert "Migration aborted" in result.output
    run = db.session.query(PipelineRun).filter_by(pipeline="legacy_migration").one()
    assert run.status == PipelineRunStatus.FAILED
