"""CLI tools for Pathway Tracker administration and scheduled jobs."""

import click

from tracker.core.security import hash_password
from tracker.db.enums import IntegrationStatus, Role
from tracker.db.models import Church, IntegrationConfig, User
from tracker.db.session import SessionLocal
from tracker.services import (
    auth_service,
    integration_service,
    member_service,
    pipeline_service,
    user_service,
)
from tracker.services.ingestion_service import SheetFetchError


@click.group()
def cli():
    """Pathway Tracker CLI tools."""
    pass


def _get_church(db, slug: str) -> Church | None:
    return db.query(Church).filter(Church.slug == slug.lower().strip()).first()


@cli.command()
@click.option("--name", required=True, help="Church name")
@click.option("--admin-email", required=True, help="Owner email address")
@click.option("--first-name", required=True)
@click.option("--last-name", required=True)
@click.password_option("--password", help="Owner password (prompted if omitted)")
def create_church(name: str, admin_email: str, first_name: str, last_name: str, password: str):
    """
    Create a church, seed both pathways, and create its SUPER_ADMIN.

    Example:
        python -m tracker.cli create-church --name "Grace Church" --admin-email pastor@grace.org \\
            --first-name Jo --last-name Smith
    """
    db = SessionLocal()
    try:
        if user_service.get_user_by_email(db, admin_email):
            click.echo(f"❌ A user with email {admin_email} already exists")
            raise SystemExit(1)

        church = auth_service.create_church(db, name, email=admin_email.lower())
        db.add(
            User(
                church_id=church.id,
                email=admin_email.strip().lower(),
                first_name=first_name,
                last_name=last_name,
                role=Role.SUPER_ADMIN.value,
                password_hash=hash_password(password),
            )
        )
        db.commit()

        click.echo(f"✓ Created church: {name}")
        click.echo(f"  ID: {church.id}")
        click.echo(f"  Slug: {church.slug}")
        click.echo(f"✓ Created super admin {admin_email}")
    except Exception as e:
        db.rollback()
        click.echo(f"❌ Error: {e}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--church-slug", required=True, help="Church slug")
def seed_pathways(church_slug: str):
    """Seed default Newcomer and New Believer stages where a pathway has none."""
    db = SessionLocal()
    try:
        church = _get_church(db, church_slug)
        if not church:
            click.echo(f"❌ Church '{church_slug}' not found")
            return
        created = pipeline_service.seed_default_pathways(db, church.id)
        db.commit()
        click.echo(f"✓ Created {len(created)} stage(s) for {church.name}")
    finally:
        db.close()


@cli.command()
@click.option("--email", required=True, help="User email to revoke sessions for")
def revoke_sessions(email: str):
    """Revoke all sessions for a user by bumping token_version."""
    db = SessionLocal()
    try:
        user = user_service.get_user_by_email(db, email)
        if not user:
            click.echo(f"❌ User not found: {email}")
            return
        user_service.revoke_all_sessions(db, user.id)
        click.echo(f"✓ Revoked all sessions for {email}")
    finally:
        db.close()


@cli.command()
def sweep_stale_members():
    """Advance members past TIME_IN_STAGE limits. Intended for a daily cron."""
    db = SessionLocal()
    try:
        total = 0
        for church in db.query(Church).all():
            advanced = member_service.advance_stale_members(db, church.id)
            if advanced:
                click.echo(f"  {church.slug}: advanced {advanced} member(s)")
            total += advanced
        click.echo(f"✓ Advanced {total} member(s)")
    finally:
        db.close()


@cli.command()
@click.option("--church-slug", default=None, help="Only sync this church's integrations")
def sync_integrations(church_slug: str | None):
    """Sync every ACTIVE or ERROR sheet integration; paused ones are skipped."""
    db = SessionLocal()
    try:
        query = db.query(IntegrationConfig).filter(
            IntegrationConfig.status != IntegrationStatus.PAUSED.value
        )
        if church_slug:
            church = _get_church(db, church_slug)
            if not church:
                click.echo(f"❌ Church '{church_slug}' not found")
                return
            query = query.filter(IntegrationConfig.church_id == church.id)

        failures = 0
        for integration in query.all():
            try:
                result = integration_service.run_sync(db, integration, acting_user_id=None)
            except SheetFetchError as e:
                failures += 1
                click.echo(f"❌ {integration.source_name}: {e}")
                continue
            click.echo(
                f"✓ {integration.source_name}: {result.members_created} new, "
                f"{result.duplicates_skipped} duplicate(s)"
            )
        if failures:
            raise SystemExit(1)
    finally:
        db.close()


if __name__ == "__main__":
    cli()
