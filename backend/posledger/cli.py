# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/posledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Use: flask --app posledger <group> <command> [options]
#
# System bootstrap/repair:
# - flask --app posledger system reset-db --yes [--seed]
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - flask --app posledger system seed [--user admin]
#   Idempotent: default exchange rates and the starter catalogue.
#
# Exchange rates:
# - flask --app posledger rates list
# - flask --app posledger rates set USD 37.1 [--user admin]
#
# Inventory inspection:
# - flask --app posledger items list [--search harina]
# - flask --app posledger items history <item_id>
#
# Ledger inspection:
# - flask --app posledger transactions list [--user-id cashier] [--limit 20]

import click
from flask.cli import with_appcontext

from .extensions import db
from .errors import LedgerError
from .decimal_utils import decimal_str
from .services import inventory_service, ledger_service, rates_service
from .time_utils import to_utc_z


def _fail(e: LedgerError):
    raise click.ClickException(f"{e.message} {e.details}" if e.details else e.message)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@click.option('--seed', 'with_seed', is_flag=True, help='Seed rates and starter items afterwards')
@with_appcontext
def reset_db(yes, with_seed):
    """
    DANGER: drop every ledger table and recreate the schema.

    Stock, audit history, carts and transactions are all lost.
    """
    if not yes:
        click.confirm("WARN This erases all stock, carts and transactions. Continue?", abort=True)

    click.echo("DELETE  Dropping ledger tables...")
    db.drop_all()

    click.echo("BUILD  Recreating ledger tables...")
    db.create_all()

    click.echo("PASS Database reset complete")
    if with_seed:
        _seed("admin")


@system_group.command('seed')
@click.option('--user', default='admin', help='Acting user recorded in the audit history')
@with_appcontext
def seed(user):
    """Seed default exchange rates and the starter catalogue (idempotent)."""
    _seed(user)


def _seed(user):
    try:
        rates = rates_service.ensure_default_rates(user=user)
        created = inventory_service.seed_default_items(user)
    except LedgerError as e:
        _fail(e)

    click.echo(f"PASS Rates: {rates_service.rates_to_dict(rates)}")
    if created:
        click.echo(f"PASS Created {len(created)} stock items")
    else:
        click.echo("SKIP Stock items already present")


@click.group('rates')
def rates_group():
    """Exchange rate commands."""


@rates_group.command('list')
@with_appcontext
def list_rates():
    """List configured exchange rates."""
    rates = rates_service.get_rates()
    base = rates_service.base_currency()

    if not rates:
        click.echo(f"No exchange rates configured (base currency {base}).")
        return

    click.echo(f"Base currency: {base}")
    for code, rate in sorted(rates.items()):
        click.echo(f"  1 {code:<5} = {decimal_str(rate)} {base}")


@rates_group.command('set')
@click.argument('code')
@click.argument('rate')
@click.option('--user', default='admin', help='Acting user')
@with_appcontext
def set_rate(code, rate, user):
    """Set the rate for one secondary currency."""
    try:
        rates = rates_service.set_rate(code, rate, user=user)
    except LedgerError as e:
        _fail(e)
    click.echo(f"PASS {code.upper()} = {rates_service.rates_to_dict(rates)[code.upper()]}")


@click.group('items')
def items_group():
    """Stock item inspection commands."""


@items_group.command('list')
@click.option('--search', default=None, help='Name or barcode substring')
@with_appcontext
def list_items(search):
    """List stock items."""
    items = inventory_service.search_items(search)

    if not items:
        click.echo("No stock items found.")
        return

    click.echo("\n" + "="*96)
    click.echo(f"{'ID':<34} {'Name':<24} {'Barcode':<16} {'Qty':>8} {'Unit':<7} {'Price':>8}")
    click.echo("="*96)

    for item in items:
        click.echo(
            f"{item.id:<34} {item.name[:24]:<24} {item.barcode[:16]:<16} "
            f"{decimal_str(item.quantity):>8} {item.unit:<7} {item.selling_price_cents / 100:>8.2f}"
        )

    click.echo("="*96 + "\n")


@items_group.command('history')
@click.argument('item_id')
@with_appcontext
def item_history(item_id):
    """Show an item's audit history."""
    try:
        history = inventory_service.get_history(item_id)
    except LedgerError as e:
        _fail(e)

    for record in history:
        qty = ""
        if record.previous_quantity is not None:
            qty = f" [{decimal_str(record.previous_quantity)} -> {decimal_str(record.new_quantity)}]"
        click.echo(f"{to_utc_z(record.occurred_at)} {record.action:<7} {record.user:<12} {record.details or ''}{qty}")


@click.group('transactions')
def transactions_group():
    """Transaction ledger inspection commands."""


@transactions_group.command('list')
@click.option('--user-id', default=None, help='Only this operator')
@click.option('--limit', default=20, type=int, help='Max rows')
@with_appcontext
def list_transactions(user_id, limit):
    """List recent transactions, newest first."""
    txns = ledger_service.list_transactions(user_id=user_id)[:limit]

    if not txns:
        click.echo("No transactions found.")
        return

    for txn in txns:
        click.echo(
            f"{to_utc_z(txn.occurred_at)} {txn.id} {txn.user_id:<12} "
            f"lines={len(txn.lines):<3} total={txn.total_cents / 100:.2f} paid={txn.amount_paid_cents / 100:.2f}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(rates_group)
    app.cli.add_command(items_group)
    app.cli.add_command(transactions_group)
