"""
CLI commands for the legacy migration.

``flask legacy validate`` runs the pre-flight check only. ``flask legacy
migrate`` performs the full, destructive migration and exits non-zero when any
record failed, after printing the per-stage summary.
"""

from __future__ import annotations

import json

import click
from flask.cli import ScriptInfo

from studio_app.models import PipelineRunStatus, db
from studio_app.services.run_service import finish_run, start_run

from .legacy_reader import LegacyDatabase, LegacySourceError
from .orchestrator import STAGES, LegacyMigrationOrchestrator, MigrationAbortedError, MigrationReport

PIPELINE_NAME = "legacy_migration"


def _open_legacy(app) -> LegacyDatabase:
    url = app.config.get("LEGACY_DATABASE_URL")
    if not url:
        raise click.ClickException("LEGACY_DATABASE_URL is not configured; cannot reach the legacy store.")
    try:
        return LegacyDatabase(url)
    except LegacySourceError as exc:
        raise click.ClickException(str(exc)) from exc


def format_report(report: MigrationReport) -> str:
    lines = ["Legacy migration summary", "=" * 40]
    if report.source_counts:
        lines.append("Source rows:")
        for table, count in report.source_counts.items():
            lines.append(f"  {table:<20} {count}")
    lines.append(f"{'stage':<18}{'total':>8}{'migrated':>10}{'skipped':>9}{'errors':>8}")
    for name in STAGES:
        stats = report.stages.get(name)
        if stats is None:
            continue
        lines.append(f"{name:<18}{stats.total:>8}{stats.migrated:>10}{stats.skipped:>9}{stats.errors:>8}")
    lines.append("-" * 40)
    lines.append(
        f"Migrated {report.total_migrated} records, skipped {report.total_skipped}, "
        f"{report.total_errors} errors in {report.duration_seconds:.1f}s"
    )
    lines.append("Status: " + ("SUCCESS" if report.succeeded else "COMPLETED WITH ERRORS"))
    return "\n".join(lines)


@click.group(name="legacy")
def legacy_cli():
    """Legacy database migration commands."""


@legacy_cli.command("validate")
@click.pass_context
def legacy_validate(ctx):
    """Check the legacy store is reachable and print row counts."""
    app = ctx.ensure_object(ScriptInfo).load_app()
    legacy = _open_legacy(app)
    try:
        validation = legacy.validate()
    finally:
        legacy.disconnect()
    click.echo(json.dumps(validation.as_dict(), indent=2, sort_keys=True))
    if not validation.valid:
        raise click.ClickException(validation.error or "Legacy source validation failed.")


@legacy_cli.command("migrate")
@click.option(
    "--keep-existing",
    is_flag=True,
    help="Skip the destructive clear of target tables before migrating.",
)
@click.option("--summary-json", is_flag=True, help="Emit the report as JSON after the table summary.")
@click.pass_context
def legacy_migrate(ctx, keep_existing: bool, summary_json: bool):
    """Migrate users, studios, services, images, connections and reviews."""
    app = ctx.ensure_object(ScriptInfo).load_app()
    legacy = _open_legacy(app)
    clear_target = app.config.get("MIGRATION_CLEAR_TARGET", True) and not keep_existing

    run = start_run(db.session, PIPELINE_NAME, params={"clear_target": clear_target})
    run_id = run.id
    orchestrator = LegacyMigrationOrchestrator(
        db.session,
        legacy,
        id_prefix=app.config.get("LEGACY_ID_PREFIX", "legacy_"),
        clear_target=clear_target,
    )
    try:
        report = orchestrator.run()
    except MigrationAbortedError as exc:
        finish_run(db.session, run_id, PipelineRunStatus.FAILED, error_summary=str(exc))
        app.logger.error("Legacy migration aborted during pre-flight: %s", exc, extra={"pipeline_run_id": run_id})
        raise click.ClickException(f"Migration aborted: {exc}") from exc
    except Exception as exc:
        db.session.rollback()
        finish_run(db.session, run_id, PipelineRunStatus.FAILED, error_summary=str(exc))
        app.logger.exception("Legacy migration failed", extra={"pipeline_run_id": run_id})
        raise click.ClickException(f"Migration failed: {exc}") from exc

    status = PipelineRunStatus.SUCCEEDED if report.succeeded else PipelineRunStatus.PARTIALLY_FAILED
    finish_run(db.session, run_id, status, counts=report.as_dict())
    app.logger.info(
        "Legacy migration finished",
        extra={
            "pipeline_run_id": run_id,
            "total_migrated": report.total_migrated,
            "total_errors": report.total_errors,
        },
    )
    click.echo(format_report(report))
    if summary_json:
        click.echo(json.dumps(report.as_dict(), indent=2, sort_keys=True))
    if not report.succeeded:
        ctx.exit(1)
