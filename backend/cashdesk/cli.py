# Overview: Flask CLI command groups for bootstrap and shift inspection.

# backend/cashdesk/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to cashdesk (PowerShell: $env:FLASK_APP="cashdesk").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Shift inspection:
# - python -m flask shifts list --status open --limit 20
#   List recent shifts with optional status filter.
# - python -m flask shifts summary 12
#   Show a shift's ledger totals, balance and reconciliation.

import click
from flask.cli import with_appcontext

from .errors import ShiftNotFound
from .extensions import db
from .money import format_cents
from .services import shift_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables."""
    from . import models  # noqa: F401

    db.create_all()
    click.echo("PASS Database schema created")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("This will delete ALL data. Continue?", abort=True)

    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group('shifts')
def shifts_group():
    """Shift inspection commands."""


@shifts_group.command('list')
@click.option('--status', type=click.Choice(['open', 'closed']), default=None, help='Filter by status')
@click.option('--limit', type=int, default=20, show_default=True)
@with_appcontext
def list_shifts(status, limit):
    shifts = shift_service.list_shifts(status=status, limit=limit)
    if not shifts:
        click.echo("No shifts found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<6} {'Cashier':<10} {'Status':<8} {'Opening':>12} {'Difference':>12}  {'Opened'}")
    click.echo("="*80)
    for shift in shifts:
        difference = format_cents(shift.difference_cents) if shift.difference_cents is not None else "-"
        click.echo(
            f"{shift.id:<6} {shift.cashier_id:<10} {shift.status:<8} "
            f"{format_cents(shift.opening_balance_cents):>12} {difference:>12}  {shift.opened_at:%Y-%m-%d %H:%M}"
        )
    click.echo("="*80 + "\n")


@shifts_group.command('summary')
@click.argument('shift_id', type=int)
@with_appcontext
def shift_summary(shift_id):
    """Show ledger totals and reconciliation for a shift."""
    try:
        summary = shift_service.get_shift_summary(shift_id)
    except ShiftNotFound:
        raise click.ClickException(f"Shift {shift_id} not found")

    shift = summary["shift"]
    click.echo(f"Shift {shift['id']} (cashier {shift['cashier_id']}) - {shift['status']}")
    click.echo(f"  Opening balance:  {format_cents(shift['opening_balance_cents'])}")
    for tx_type, total in summary["totals_cents"].items():
        click.echo(f"  {tx_type:<16}  {format_cents(total)}")
    click.echo(f"  Transactions:     {summary['transaction_count']}")
    click.echo(f"  Current balance:  {format_cents(summary['current_balance_cents'])}")
    if summary["is_closed"]:
        click.echo(f"  Expected:         {format_cents(shift['expected_balance_cents'])}")
        click.echo(f"  Counted:          {format_cents(shift['closing_balance_cents'])}")
        click.echo(f"  Difference:       {format_cents(shift['difference_cents'])}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(shifts_group)
