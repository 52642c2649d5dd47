# Overview: Flask CLI command groups for bootstrap, order entry, reports, and maintenance.

# backend/bakeledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: python -m flask --app bakeledger <group> <command> [options]
#
# System bootstrap:
# - python -m flask --app bakeledger system init-db
#   Create every table (idempotent).
# - python -m flask --app bakeledger system seed-sequence [--overwrite]
#   Write catalog positions into the SKU display order.
#
# Users:
# - python -m flask --app bakeledger users create --username w1 --password secret --role worker --location "Parel"
#   Create a user (prompts if options are omitted).
# - python -m flask --app bakeledger users list
#   List users; workers in sheet order.
#
# Orders:
# - python -m flask --app bakeledger orders show --date 2024-05-02
#   Print the reconciliation view for a date.
# - python -m flask --app bakeledger orders set --date 2024-05-02 --sku "BR 400" --location parel --qty 40
#   Record one location's order and print the recomputed row.
#
# Maintenance:
# - python -m flask --app bakeledger maintenance expire-pending [--before 2024-05-01]
#   Delete pending submissions dated before the cutoff (default: today).
# - python -m flask --app bakeledger maintenance clear-pending [--date 2024-05-01] --yes
#   Delete pending submissions (all, or one date).
# - python -m flask --app bakeledger maintenance cleanup-sku-names
#   Fold old SKU spellings and drop retired SKUs.
#
# Reports:
# - python -m flask --app bakeledger reports export --start 2024-05-01 --end 2024-05-07 --out exports/
#   Write submissions/lines/totals/summary CSV files.
# - python -m flask --app bakeledger reports ranking [--date 2024-05-02]
#   Worker ranking by market returns.

import csv
import os

import click
from flask.cli import with_appcontext

from .extensions import db
from .models.auth import VALID_ROLES, ROLE_WORKER
from .services import catalog_service
from .services import maintenance_service
from .services import reconciliation_service
from .services import reporting_service
from .services import user_service
from .time_utils import today_iso
from .validation import ValidationError, format_quantity


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create every table that does not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('seed-sequence')
@click.option('--overwrite', is_flag=True, help='Reset existing positions to catalog order')
@with_appcontext
def seed_sequence(overwrite):
    """Write catalog positions into the SKU display order."""
    written = catalog_service.seed_sequence(overwrite=overwrite)
    click.echo(f"PASS Wrote {written} SKU position(s).")


@system_group.command('status')
@with_appcontext
def status():
    """Counts of users and submissions by status."""
    counts = reporting_service.status_counts()
    click.echo(f"Admins: {user_service.count_admins()}")
    click.echo(f"Workers: {reporting_service.worker_count()}")
    for name, count in counts.items():
        click.echo(f"Submissions {name}: {count}")


@click.group('users')
def users_group():
    """User management commands."""


@users_group.command('create')
@click.option('--username', prompt=True)
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True)
@click.option('--role', type=click.Choice(VALID_ROLES), default=ROLE_WORKER, show_default=True)
@click.option('--location', default=None, help='Worker location label')
@with_appcontext
def create_user(username, password, role, location):
    """Create a user."""
    try:
        user = user_service.create_user(username, password, role, location)
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}, role: {user.role}, label: {user.label})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List users; workers first in sheet order."""
    workers = user_service.list_workers()
    others = [u for u in user_service.list_users() if u.role != ROLE_WORKER]
    users = workers + others

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<12} {'Label'}")
    click.echo("="*70)
    for user in users:
        click.echo(f"{user.id:<5} {user.username:<20} {user.role:<12} {user.label}")
    click.echo("="*70 + "\n")


@click.group('orders')
def orders_group():
    """Location order commands."""


@orders_group.command('show')
@click.option('--date', 'for_date', default=None, help='YYYY-MM-DD (default: today)')
@with_appcontext
def show_orders(for_date):
    """Print the reconciliation view for a date."""
    day = for_date or today_iso()
    try:
        view = reconciliation_service.get_reconciliation_view(day)
    except ValidationError as e:
        raise click.ClickException(str(e))

    click.echo(f"\nOrders for {day}")
    click.echo("="*70)
    click.echo(f"{'SKU':<14} {'Prev':>8} {'Total':>8} {'Trays':>6}  {'Remark'}")
    click.echo("="*70)
    for name, row in view.items():
        if not row.location_sum and not row.previous_balance:
            continue
        click.echo(
            f"{name:<14} {format_quantity(row.previous_balance):>8} "
            f"{format_quantity(row.total_quantity):>8} {row.tray_order_count:>6}  {row.remark}"
        )
    click.echo("="*70 + "\n")


@orders_group.command('set')
@click.option('--date', 'for_date', required=True, help='YYYY-MM-DD')
@click.option('--sku', required=True)
@click.option('--location', required=True, help='Location label or column key')
@click.option('--qty', required=True)
@with_appcontext
def set_order(for_date, sku, location, qty):
    """Record one location's order for one SKU."""
    try:
        row = reconciliation_service.record_location_order(for_date, sku, location, qty)
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(
        f"PASS {row.sku_name}: total {format_quantity(row.total_quantity)}, "
        f"trays {row.tray_order_count}, remark {row.remark}"
    )


@click.group('maintenance')
def maintenance_group():
    """Maintenance commands."""


@maintenance_group.command('expire-pending')
@click.option('--before', 'cutoff', default=None, help='YYYY-MM-DD (default: today)')
@with_appcontext
def expire_pending(cutoff):
    """Delete pending submissions dated strictly before the cutoff."""
    day = cutoff or today_iso()
    try:
        deleted = maintenance_service.expire_pending_before(day)
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"Deleted {deleted} pending submission(s) dated before {day}.")


@maintenance_group.command('clear-pending')
@click.option('--date', 'for_date', default=None, help='Only this date (YYYY-MM-DD)')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def clear_pending(for_date, yes):
    """DANGER: delete pending submissions."""
    if not yes:
        click.confirm("WARN This will DELETE pending submissions. Are you sure?", abort=True)
    try:
        deleted = maintenance_service.clear_pending_submissions(for_date)
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"Deleted {deleted} pending submission(s).")


@maintenance_group.command('cleanup-sku-names')
@with_appcontext
def cleanup_sku_names():
    """Fold old SKU spellings into catalog names and drop retired SKUs."""
    result = maintenance_service.cleanup_sku_names()
    click.echo(f"PASS Renamed {result['renamed']} row(s), removed {result['removed']} row(s).")


@click.group('reports')
def reports_group():
    """Reporting commands."""


_EXPORT_TABLES = (
    ("submissions", reporting_service.SUBMISSION_COLUMNS),
    ("lines", reporting_service.LINE_COLUMNS),
    ("totals", reporting_service.TOTALS_COLUMNS),
    ("summary", reporting_service.SUMMARY_COLUMNS),
)


@reports_group.command('export')
@click.option('--start', required=True, help='YYYY-MM-DD')
@click.option('--end', required=True, help='YYYY-MM-DD')
@click.option('--out', 'out_dir', default='.', show_default=True, type=click.Path(file_okay=False))
@with_appcontext
def export(start, end, out_dir):
    """Write one CSV per exported table."""
    try:
        tables = reporting_service.export_range(start, end)
    except ValidationError as e:
        raise click.ClickException(str(e))

    os.makedirs(out_dir, exist_ok=True)
    summary = tables["summary"][0]
    for name, columns in _EXPORT_TABLES:
        path = os.path.join(out_dir, f"{name}_{summary['range_start']}_to_{summary['range_end']}.csv")
        with open(path, "w", newline="", encoding="utf-8") as fh:
            writer = csv.DictWriter(fh, fieldnames=columns)
            writer.writeheader()
            writer.writerows(tables[name])
        click.echo(f"PASS Wrote {len(tables[name])} row(s) to {path}")


@reports_group.command('ranking')
@click.option('--date', 'for_date', default=None, help='YYYY-MM-DD (default: all dates)')
@with_appcontext
def ranking(for_date):
    """Workers by market-return percentage, lowest first."""
    try:
        rows = reporting_service.mr_ranking(for_date)
    except ValidationError as e:
        raise click.ClickException(str(e))

    if not rows:
        click.echo("No approved submissions.")
        return
    for index, row in enumerate(rows, start=1):
        click.echo(
            f"{index:>3}. {row['worker']:<20} MR {format_quantity(row['mr_total']):>6} / "
            f"SKU {format_quantity(row['sku_total']):>6}  {row['mr_percent']:.2f}%"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(orders_group)
    app.cli.add_command(maintenance_group)
    app.cli.add_command(reports_group)
