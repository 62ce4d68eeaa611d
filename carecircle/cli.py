"""CLI tools for care circle operations."""

import click

from carecircle.db.session import SessionLocal
from carecircle.db.uow import unit_of_work
from carecircle.services import notification_service, rate_limit_service, share_link_service


@click.group()
def cli():
    """Care circle CLI tools."""
    pass


@cli.command()
@click.option("--days", type=int, default=None, help="Retention in days (default: NOTIFICATION_RETENTION_DAYS)")
def purge_outbox(days: int | None):
    """
    Delete SENT/FAILED notification outbox entries past retention.

    PENDING entries are never deleted.

    Example:
        carecircle purge-outbox --days 30
    """
    with SessionLocal() as db, unit_of_work(db):
        deleted = notification_service.purge_resolved(db, older_than_days=days)
    click.echo(f"✅ Deleted {deleted} outbox entries")


@cli.command()
@click.option("--minutes", type=int, default=None, help="Retention in minutes (default: RATE_LIMIT_RETENTION_MINUTES)")
def purge_rate_limits(minutes: int | None):
    """Delete rate limit counters from finished windows."""
    with SessionLocal() as db, unit_of_work(db):
        deleted = rate_limit_service.purge_stale(db, older_than_minutes=minutes)
    click.echo(f"✅ Deleted {deleted} rate limit counters")


@cli.command()
@click.option("--days", type=int, default=None, help="Retention in days (default: SHARE_LINK_RETENTION_DAYS)")
def purge_share_links(days: int | None):
    """Delete share links that expired or were revoked before the cutoff."""
    with SessionLocal() as db, unit_of_work(db):
        deleted = share_link_service.purge_stale(db, older_than_days=days)
    click.echo(f"✅ Deleted {deleted} share links")


@cli.command()
def sweep():
    """Run every retention sweep once."""
    with SessionLocal() as db, unit_of_work(db):
        outbox = notification_service.purge_resolved(db)
        counters = rate_limit_service.purge_stale(db)
        links = share_link_service.purge_stale(db)
    click.echo(
        f"✅ Sweep complete: outbox={outbox} rate_limits={counters} share_links={links}"
    )


if __name__ == "__main__":
    cli()
