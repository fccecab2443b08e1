"""CLI tools for compliance administration."""

import json
import logging
import uuid
from datetime import date

import click

from careops.core.config import settings
from careops.db.models import Organisation
from careops.db.session import SessionLocal
from careops.schemas.compliance import ComplianceNotificationRead
from careops.services import compliance_check_service, fleet_service, notification_service
from careops.services.compliance_state_service import TenantRunError


def _parse_date(ctx, param, value: str | None) -> date | None:
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise click.BadParameter("expected YYYY-MM-DD") from exc


def _parse_uuid(ctx, param, value: str | None) -> uuid.UUID | None:
    if value is None:
        return None
    try:
        return uuid.UUID(value)
    except ValueError as exc:
        raise click.BadParameter("expected a UUID") from exc


@click.group()
def cli():
    """CareOps CLI tools."""
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


@cli.command()
@click.option("--name", required=True, help="Organisation name")
@click.option("--slug", required=True, help="URL-friendly slug (lowercase, no spaces)")
@click.option("--timezone", "tz", default=None, help="IANA timezone (default: DEFAULT_TIMEZONE)")
def create_org(name: str, slug: str, tz: str | None):
    """
    Create an organisation (tenant).

    Example:
        careops create-org --name "Glen Care" --slug "glen-care"
    """
    db = SessionLocal()
    try:
        slug = slug.lower().strip()
        if not slug.replace("-", "").replace("_", "").isalnum():
            click.echo("❌ Slug must be alphanumeric (with optional hyphens/underscores)")
            return

        existing = db.query(Organisation).filter(Organisation.slug == slug).first()
        if existing:
            click.echo(f"❌ Organisation with slug '{slug}' already exists")
            return

        org = Organisation(name=name, slug=slug, timezone=tz)
        db.add(org)
        db.commit()

        click.echo(f"✓ Created organisation: {name}")
        click.echo(f"  ID: {org.id}")
        click.echo(f"  Slug: {slug}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
    finally:
        db.close()


@cli.command()
@click.option("--org-id", default=None, callback=_parse_uuid, help="Run a single organisation")
@click.option("--date", "run_date", default=None, callback=_parse_date, help="Run date (YYYY-MM-DD)")
@click.pass_context
def run_compliance_checks(ctx, org_id: uuid.UUID | None, run_date: date | None):
    """
    Run compliance checks and print the report as JSON.

    Exits 1 when any organisation or rule failed.

    Example:
        careops run-compliance-checks --date 2026-03-02
    """
    if org_id is None:
        report = fleet_service.run_fleet(today=run_date)
        click.echo(json.dumps(report.to_dict(), indent=2))
        if report.failed:
            ctx.exit(1)
        return

    db = SessionLocal()
    try:
        summary = compliance_check_service.run_all_checks(db, org_id, today=run_date)
    except TenantRunError as e:
        click.echo(f"❌ Error: {e}")
        ctx.exit(1)
    finally:
        db.close()

    click.echo(json.dumps(summary.to_dict(), indent=2))
    if summary.errors:
        ctx.exit(1)


@cli.command()
@click.option("--org-id", required=True, callback=_parse_uuid, help="Organisation ID")
@click.option("--rule", "rule_id", default=None, help="Only this rule id")
@click.option("--limit", default=50, help="Max rows (default: 50)")
def list_pending(org_id: uuid.UUID, rule_id: str | None, limit: int):
    """
    List active compliance notifications for an organisation as JSON.

    Example:
        careops list-pending --org-id 7d3c... --rule complaint_sla
    """
    db = SessionLocal()
    try:
        rows = notification_service.list_pending(db, org_id, rule_id=rule_id, limit=limit)
        payload = [ComplianceNotificationRead.model_validate(row).model_dump(mode="json") for row in rows]
        click.echo(json.dumps(payload, indent=2))
    finally:
        db.close()


if __name__ == "__main__":
    cli()
