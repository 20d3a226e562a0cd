"""
CLI commands for the profile audit and enrichment pipelines.

``flask audit run`` recomputes every finding and exports the results;
``flask audit enrich`` turns findings into pending enrichment suggestions.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import click
from flask.cli import ScriptInfo

from config.audit_policy import AuditPolicyConfigError, load_policy
from studio_app.enrichment import EnrichmentEngine, EnrichmentRunner, PageFetcher
from studio_app.models import AuditClassification, PipelineRunStatus, db
from studio_app.services.run_service import finish_run, start_run

from .export import export_results
from .service import ProfileAuditService, summarize

AUDIT_PIPELINE = "profile_audit"
ENRICHMENT_PIPELINE = "profile_enrichment"


def _open_run(pipeline: str, dry_run: bool, params) -> Optional[int]:
    # Dry runs write nothing, run bookkeeping included.
    if dry_run:
        return None
    return start_run(db.session, pipeline, params=params).id


def _close_run(run_id: Optional[int], status: PipelineRunStatus, **fields) -> None:
    if run_id is not None:
        finish_run(db.session, run_id, status, **fields)


def _format_classification_summary(counts) -> str:
    lines = ["Classification summary:"]
    for label, count in counts.items():
        lines.append(f"  - {label}: {count}")
    return "\n".join(lines)


@click.group(name="audit")
def audit_cli():
    """Profile audit and enrichment commands."""


@audit_cli.command("run")
@click.option("--dry-run", is_flag=True, help="Classify and export without writing to the database.")
@click.option("--export-only", is_flag=True, help="Skip classification and export the stored findings.")
@click.option(
    "--output-dir",
    type=click.Path(path_type=Path, file_okay=False),
    help="Directory for the JSON/CSV export (defaults to AUDIT_EXPORT_DIR).",
)
@click.pass_context
def audit_run(ctx, dry_run: bool, export_only: bool, output_dir: Optional[Path]):
    """Classify every account and export the findings."""
    app = ctx.ensure_object(ScriptInfo).load_app()
    try:
        policy = load_policy(app.config)
    except AuditPolicyConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    target_dir = output_dir or Path(app.config["AUDIT_EXPORT_DIR"])
    run_id = _open_run(AUDIT_PIPELINE, dry_run, {"export_only": export_only, "output_dir": str(target_dir)})
    service = ProfileAuditService(db.session, policy=policy)

    try:
        if export_only:
            findings = service.load_existing()
            records = [finding.to_dict() for finding in findings]
            counts = {"total": len(records), "by_classification": summarize(findings), "stored": 0}
        else:
            results, summary = service.run(dry_run=dry_run)
            records = [result.to_dict() for result in results]
            counts = summary.as_dict()
        paths = export_results(records, target_dir)
    except Exception as exc:
        db.session.rollback()
        _close_run(run_id, PipelineRunStatus.FAILED, error_summary=str(exc))
        app.logger.exception("Profile audit failed", extra={"pipeline_run_id": run_id})
        raise click.ClickException(f"Audit failed: {exc}") from exc

    counts["json_path"] = str(paths.json_path)
    counts["csv_path"] = str(paths.csv_path)
    _close_run(run_id, PipelineRunStatus.SUCCEEDED, counts=counts)
    app.logger.info(
        "Profile audit finished",
        extra={"pipeline_run_id": run_id, "total": counts["total"], "dry_run": dry_run, "export_only": export_only},
    )

    if dry_run:
        click.echo("DRY RUN - stored findings were not changed")
    click.echo(f"Audited {counts['total']} accounts")
    click.echo(_format_classification_summary(counts["by_classification"]))
    click.echo(f"JSON exported to: {paths.json_path}")
    click.echo(f"CSV exported to: {paths.csv_path}")


@audit_cli.command("enrich")
@click.option("--user-id", help="Enrich only the finding for this user.")
@click.option(
    "--classification",
    type=click.Choice([label.value for label in AuditClassification], case_sensitive=False),
    help="Enrich findings with this classification (default: NEEDS_UPDATE and EXCEPTION).",
)
@click.option("--dry-run", is_flag=True, help="Generate suggestions without writing to the database.")
@click.option("--limit", type=click.IntRange(min=1), help="Maximum findings to process.")
@click.pass_context
def audit_enrich(ctx, user_id: Optional[str], classification: Optional[str], dry_run: bool, limit: Optional[int]):
    """Generate enrichment suggestions for audit findings."""
    app = ctx.ensure_object(ScriptInfo).load_app()
    limit = limit or app.config.get("ENRICHMENT_DEFAULT_LIMIT", 100)
    label = AuditClassification(classification.upper()) if classification else None

    run_id = _open_run(
        ENRICHMENT_PIPELINE,
        dry_run,
        {"user_id": user_id, "classification": classification, "limit": limit},
    )
    engine = EnrichmentEngine(
        PageFetcher(user_agent=app.config["ENRICHMENT_USER_AGENT"]),
        website_timeout=app.config["ENRICHMENT_WEBSITE_TIMEOUT"],
        social_timeout=app.config["ENRICHMENT_SOCIAL_TIMEOUT"],
    )
    runner = EnrichmentRunner(db.session, engine, delay_seconds=app.config["ENRICHMENT_DELAY_SECONDS"])

    try:
        summary = runner.run(user_id=user_id, classification=label, dry_run=dry_run, limit=limit)
    except Exception as exc:
        db.session.rollback()
        _close_run(run_id, PipelineRunStatus.FAILED, error_summary=str(exc))
        app.logger.exception("Profile enrichment failed", extra={"pipeline_run_id": run_id})
        raise click.ClickException(f"Enrichment failed: {exc}") from exc

    status = PipelineRunStatus.PARTIALLY_FAILED if summary.errors else PipelineRunStatus.SUCCEEDED
    _close_run(run_id, status, counts=summary.as_dict())
    app.logger.info("Profile enrichment finished", extra={"pipeline_run_id": run_id, **summary.as_dict()})

    if summary.findings == 0:
        click.echo("No profiles found matching criteria")
        return
    if dry_run:
        click.echo("DRY RUN - suggestions were not stored")
    click.echo(json.dumps(summary.as_dict(), indent=2, sort_keys=True))
    if summary.errors:
        ctx.exit(1)
