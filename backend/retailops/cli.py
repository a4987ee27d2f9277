# Overview: Flask CLI command groups for bootstrap, stock inspection and store-credit lookup.

# backend/retailops/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables that do not exist yet (use `flask db upgrade` for migrations).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock inspection/repair:
# - python -m flask stock reconcile
#   Create missing stock stats rows and resync available with product stock.
# - python -m flask stock low [--threshold 5]
#   List products that are in stock but below the threshold.
#
# Store credit:
# - python -m flask credits list [--email jane@example.com]
#   List open discount codes with their balances.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db, get_services
from .time_utils import to_utc_z


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create missing tables. Existing tables and data are left untouched."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete.")


@click.group('stock')
def stock_group():
    """Stock level and stock statistics commands."""


@stock_group.command('reconcile')
@with_appcontext
def reconcile_stock():
    """
    Self-heal the stock stats cache.

    Every product gets a stats row and available is forced to the product's
    stock_quantity. Counters (sold, returned, purchased) are not rebuilt.
    """
    rows = get_services().stats.get_all()
    click.echo(f"PASS Reconciled {len(rows)} stock stats rows.")


@stock_group.command('low')
@click.option('--threshold', type=int, default=None, help='Defaults to LOW_STOCK_THRESHOLD')
@with_appcontext
def low_stock(threshold):
    """List in-stock products below the low stock threshold."""
    if threshold is None:
        threshold = current_app.config["LOW_STOCK_THRESHOLD"]

    products = get_services().products.list_low_stock(threshold)
    if not products:
        click.echo(f"No products below {threshold} units.")
        return

    click.echo(f"{'SKU':<20} {'QTY':>5}  NAME")
    for p in products:
        click.echo(f"{p.sku:<20} {p.stock_quantity:>5}  {p.product_name}")


@click.group('credits')
def credits_group():
    """Store credit (discount code) commands."""


@credits_group.command('list')
@click.option('--email', default=None, help='Filter by customer email')
@with_appcontext
def list_credits(email):
    """List discount codes with remaining balance."""
    codes = get_services().discounts.list_codes(email)
    if not codes:
        click.echo("No discount codes found.")
        return

    for c in codes:
        expires = to_utc_z(c.expires_at) or "never"
        click.echo(f"{c.code:<32} {c.amount:>10}  {c.customer_email:<30} expires {expires}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(credits_group)
