# Overview: Flask CLI command groups for bootstrap and stock inspection.

# backend/stockflow/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables (if missing) and the warehouse, kitchen and counter locations.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock inspection:
# - python -m flask stock check
#   Verify every variant product's aggregate equals the sum of its variants. Exits 1 on mismatch.
# - python -m flask stock show ALMACEN [--all]
#   Print the stock held at a location (use --all to include empty rows).

import click
from flask.cli import with_appcontext

from .errors import StockflowError
from .extensions import db
from .services import catalog_service, stock_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """Create missing tables and seed the built-in locations."""
    click.echo("START Initializing stockflow...")
    db.create_all()

    locations = catalog_service.ensure_default_locations()
    for location in locations:
        click.echo(f"PASS Location {location.code} ({location.name}, {location.kind})")

    click.echo("PASS Initialization complete.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to seed locations.")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('check')
@with_appcontext
def check_stock():
    """Report aggregate/variant mismatches."""
    problems = stock_service.verify_consistency()
    if not problems:
        click.echo("PASS Stock is consistent.")
        return

    for problem in problems:
        reason = problem.get("reason", "aggregate != variant total")
        click.echo(
            f"FAIL product={problem['product_id']} location={problem['location']} "
            f"aggregate={problem['aggregate']} variants={problem['variant_total']} ({reason})"
        )
    raise SystemExit(1)


@stock_group.command('show')
@click.argument('location')
@click.option('--all', 'include_empty', is_flag=True, help='Include rows with zero quantity')
@with_appcontext
def show_stock(location, include_empty):
    """Print stock held at LOCATION."""
    try:
        rows = stock_service.list_location_stock(location, include_empty=include_empty)
    except StockflowError as e:
        raise click.ClickException(str(e))

    if not rows:
        click.echo(f"No stock at {location.upper()}.")
        return

    for row in rows:
        line = f"{row.product_id:>6}  {row.product.name:<32} {row.quantity:>6}"
        variants = row.variant_quantities()
        if variants:
            line += "  " + ", ".join(f"{name}={qty}" for name, qty in variants.items())
        click.echo(line)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
