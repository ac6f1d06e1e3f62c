# backend/counterpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--namespace shop-1]
#   Idempotent bootstrap: creates missing tables and the company profile.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Catalog inspection:
# - python -m flask catalog low-stock [--namespace shop-1]
#   List simple products and variants at or below their reorder threshold.

import click
from flask import current_app, g
from flask.cli import with_appcontext

from .extensions import db
from .services.products_service import low_stock_report
from .services.profile_service import ensure_profile


def _use_namespace(namespace):
    g.namespace = namespace or current_app.config["APP_NAMESPACE"]
    return g.namespace


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--namespace', default=None, help='Namespace to initialize (defaults to APP_NAMESPACE)')
@with_appcontext
def init_system(namespace):
    """
    Initialize the shop: tables (when missing) and the company profile.

    Safe to run more than once; an existing profile is left untouched.
    """
    namespace = _use_namespace(namespace)
    click.echo(f"START Initializing namespace '{namespace}'...")

    db.create_all()
    click.echo("PASS Schema ready")

    profile = ensure_profile(namespace)
    click.echo(f"PASS Company profile: {profile.name} (invoice prefix {profile.invoice_prefix})")
    click.echo(f"     Last invoice number: {profile.last_invoice_number}")


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


@click.group('catalog')
def catalog_group():
    """Catalog inspection commands."""


@catalog_group.command('low-stock')
@click.option('--namespace', default=None, help='Namespace to inspect (defaults to APP_NAMESPACE)')
@with_appcontext
def low_stock(namespace):
    """List counters with 0 < quantity <= reorder_threshold."""
    _use_namespace(namespace)
    entries = low_stock_report()
    if not entries:
        click.echo("No products below their reorder threshold.")
        return

    click.echo(f"\n{'Name':<40} {'Qty':>6} {'Reorder at':>10}")
    click.echo("-" * 58)
    for entry in entries:
        click.echo(f"{entry['name']:<40} {entry['quantity']:>6} {entry['reorder_threshold']:>10}")
    click.echo(f"\n{len(entries)} item(s) to reorder")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(catalog_group)
