"""
Management commands for database setup and vessel maintenance
"""
import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Organization
from .services.maintenance import apply_duplicate_resolution, plan_duplicate_resolution, topping_due
from .services.production_api import ProductionStore
from .services.production_context import ProductionContext
from .services.vessel_allocation import sync_all_parent_statuses


def _load_context(org_id):
    organization = db.session.get(Organization, org_id)
    if organization is None:
        raise click.ClickException(f"Organization {org_id} not found")
    context = ProductionContext.from_organization(organization)
    return organization, context, ProductionStore.for_context(context)


@click.command('init-db')
@with_appcontext
def init_db_command():
    """Create all tables directly (local development; use `flask db upgrade` elsewhere)"""
    try:
        db.create_all()
        print('✅ Database tables created/verified')
    except Exception as e:
        print(f'❌ Database initialization failed: {str(e)}')
        db.session.rollback()
        raise


@click.command('resolve-duplicate-vessels')
@click.option('--org-id', type=int, required=True, help='Organization whose vessels should be checked')
@click.option('--dry-run', is_flag=True, help='Show the renames without saving them')
@with_appcontext
def resolve_duplicate_vessels_command(org_id, dry_run):
    """Rename vessels that share a name so every vessel name is unique"""
    organization, context, store = _load_context(org_id)
    listing = store.list_containers()
    if not listing.ok:
        raise click.ClickException(listing.error)

    resolution = plan_duplicate_resolution(listing.data)
    if not resolution.has_duplicates:
        print(f"ℹ️  No duplicate vessel names for {organization.name}")
        return

    for rename in resolution.renames:
        print(f"   - #{rename.container_id}: {rename.old_name} -> {rename.new_name}")
    if dry_run:
        print(f"ℹ️  Dry run: {len(resolution.renames)} vessels would be renamed")
        return

    report = apply_duplicate_resolution(store, context, resolution)
    for entry in report['results']:
        if not entry['success']:
            print(f"❌ {entry['old_name']} (#{entry['container_id']}): {entry['message']}")
    print(f"✅ Renamed {report['renamed']} of {len(resolution.renames)} vessels")


@click.command('topping-report')
@click.option('--org-id', type=int, required=True, help='Organization to report on')
@with_appcontext
def topping_report_command(org_id):
    """List in-use barrels that are due for topping"""
    organization, _, store = _load_context(org_id)
    listing = store.list_containers(vessel_type='barrel')
    if not listing.ok:
        raise click.ClickException(listing.error)

    due = topping_due(
        listing.data,
        interval_days=current_app.config.get('TOPPING_INTERVAL_DAYS', 30),
        urgent_days=current_app.config.get('TOPPING_URGENT_DAYS', 45),
    )
    if not due:
        print(f"✅ No barrels need topping for {organization.name}")
        return

    print(f"Barrels needing topping for {organization.name}: {len(due)}")
    for entry in due:
        days = 'never topped' if entry.days_since_topping is None else f"{entry.days_since_topping} days"
        print(f"   - {entry.container.name}: {days} [{entry.severity}]")


@click.command('sync-parent-status')
@click.option('--org-id', type=int, required=True, help='Organization whose parent lots should be synced')
@with_appcontext
def sync_parent_status_command(org_id):
    """Advance parent lots to the most advanced status among their children"""
    _, _, store = _load_context(org_id)
    report = sync_all_parent_statuses(store)
    for error in report['errors']:
        print(f"❌ {error}")
    print(f"✅ Checked {report['synced']} parent lots, updated {report['updated']}")


def register_commands(app):
    """Register CLI commands"""
    # Database initialization
    app.cli.add_command(init_db_command)

    # Production maintenance commands
    app.cli.add_command(resolve_duplicate_vessels_command)
    app.cli.add_command(topping_report_command)
    app.cli.add_command(sync_parent_status_command)
