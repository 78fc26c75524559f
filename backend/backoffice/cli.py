# Overview: Flask CLI command groups for bootstrap and stock inspection.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--company "Candle Co"]
#   Idempotent bootstrap: creates tables and the settings row.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Stock inspection:
# - python -m flask stock low [--threshold 5]
#   List products at or below the low-stock threshold, then materials at or
#   below their own alert level.

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .services import materials_service, products_service, settings_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--company', 'company_name', default=None, help='Company name stored in settings')
@with_appcontext
def init_system(company_name):
    """
    Initialize the back office: create missing tables and the settings row.

    Safe to run repeatedly; existing data and settings are left alone.
    """
    click.echo("START Initializing back office...")

    db.create_all()
    click.echo("PASS Tables ready")

    settings, created = settings_service.ensure_settings(
        company_name=company_name or current_app.config["DEFAULT_COMPANY_NAME"],
        low_stock_threshold=current_app.config["DEFAULT_LOW_STOCK_THRESHOLD"],
    )
    if created:
        click.echo(f"PASS Created settings for: {settings.company_name}")
    else:
        click.echo(f"PASS Using existing settings for: {settings.company_name}")

    current_app.logger.info("System init complete")
    click.echo("DONE Back office initialized")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('stock')
def stock_group():
    """Stock inspection commands."""


@stock_group.command('low')
@click.option('--threshold', type=int, default=None, help='Override the settings threshold')
@with_appcontext
def low_stock(threshold):
    """List products and materials that need restocking."""
    if threshold is None:
        threshold = products_service.low_stock_threshold()

    from .services.stock_service import list_low_stock_products

    products = list_low_stock_products(threshold)
    click.echo(f"Products with quantity <= {threshold}: {len(products)}")
    for p in products:
        click.echo(f"  [{p.id}] {p.name}: {p.quantity}")

    materials = materials_service.list_low_stock_materials()
    click.echo(f"Materials at or below alert level: {len(materials)}")
    for m in materials:
        click.echo(f"  [{m.id}] {m.name}: {m.current_stock} {m.unit} (alert {m.low_stock_alert})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stock_group)
