# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/pores/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Store inspection/bootstrap:
# - python -m flask stores list
#   List all stores with product/worker/sale counts.
# - python -m flask stores create --email shop@example.com --password secret1 --business-name "Mama Put"
#   Register a store (same rules as POST /api/auth/signup).
# - python -m flask stores set-keeper-password --store-id 1 --password secret1
#   Set the keeper approval password checked by PIN verification.
#
# Catalog:
# - python -m flask catalog seed
#   Upsert the built-in store types and starter products.

import click
from flask.cli import with_appcontext

from .extensions import db
from .services import auth_service, catalog_service, store_service
from .validation import ConflictError, NotFoundError, ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask catalog seed' to load the catalog.")


@click.group('stores')
def stores_group():
    """Store (tenant) management."""


@stores_group.command('list')
@click.option('--search', default=None, help='Filter by business name or email')
@click.option('--limit', type=int, default=100, help='Maximum rows')
@with_appcontext
def list_stores(search, limit):
    """List stores, newest first."""
    items, total = store_service.admin_list_stores(page=1, limit=limit, search=search)
    if not items:
        click.echo("No stores found.")
        return

    click.echo(f"\n{'ID':<6} {'Email':<32} {'Business':<28} {'Setup':<6} {'Products':<9} {'Workers':<8} {'Sales':<6}")
    click.echo("-" * 100)
    for s in items:
        counts = s["counts"]
        setup = "yes" if s["setup_completed"] else "no"
        click.echo(
            f"{s['id']:<6} {s['email']:<32} {s['business_name']:<28} {setup:<6} "
            f"{counts['products']:<9} {counts['workers']:<8} {counts['sales']:<6}"
        )
    click.echo(f"\nTotal: {total}")


@stores_group.command('create')
@click.option('--email', prompt=True, help='Login email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password (min 6 chars)')
@click.option('--business-name', prompt=True, help='Business name')
@click.option('--currency', default=None, help='Currency code (default from DEFAULT_CURRENCY)')
@with_appcontext
def create_store_cli(email, password, business_name, currency):
    """Register a store."""
    try:
        store, _ = auth_service.signup(email, password, business_name, currency)
    except (ValidationError, ConflictError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created store: {store.business_name} (ID: {store.id}, Email: {store.email})")


@stores_group.command('set-keeper-password')
@click.option('--store-id', type=int, required=True, help='Store ID')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Keeper password (min 6 chars)')
@with_appcontext
def set_keeper_password(store_id, password):
    """Set the keeper approval password for a store."""
    try:
        auth_service.store_keeper(store_id, password, action="setup")
    except ValidationError as e:
        raise click.ClickException(str(e))
    except NotFoundError:
        raise click.ClickException(f"Store {store_id} not found")
    click.echo(f"PASS Keeper password set for store {store_id}")


@click.group('catalog')
def catalog_group():
    """Reference catalog management."""


@catalog_group.command('seed')
@with_appcontext
def seed_catalog():
    """Upsert built-in store types and catalog items."""
    types_created, items_created = catalog_service.seed_defaults()
    click.echo(f"PASS Store types created: {types_created}, catalog items created: {items_created}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(stores_group)
    app.cli.add_command(catalog_group)
