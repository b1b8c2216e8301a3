# Overview: Flask CLI command groups for bootstrap, finance inspection and stock supply.

# backend/storecore/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (use `flask db upgrade` for migration-managed databases).
# - python -m flask system seed-demo
#   Idempotently create a manager, a cashier and a small demo catalog.
#
# Finance:
# - python -m flask finance overview --start 2025-01-01 --end 2025-01-31
#   Print revenue, tax, cost, profit and margin for the range.
#
# Inventory:
# - python -m flask inventory add --product-id 1 --quantity 10 --price-cents 4500 --manager-id 1
#   Record a supply entry (stock increase and purchase price update).

import json

import click
from flask.cli import with_appcontext

from .errors import CommerceError
from .extensions import db
from .models import Brand, Category, SubCategory, Supplier, Product, User
from .services import finance_service, inventory_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables for a fresh database."""
    db.create_all()
    click.echo("PASS Database tables created")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Create demo staff and catalog if missing.

    Users: manager@store.local (manager), cashier@store.local (cashier)
    """
    click.echo("START Seeding demo data...")

    for name, email, role in (
        ("Manager", "manager@store.local", "manager"),
        ("Cashier", "cashier@store.local", "cashier"),
    ):
        user = db.session.query(User).filter_by(email=email).first()
        if user:
            click.echo(f"PASS User exists: {email} (ID: {user.id})")
            continue
        user = User(name=name, email=email, role=role)
        db.session.add(user)
        db.session.flush()
        click.echo(f"PASS Created user: {email} (ID: {user.id}, role: {role})")

    if db.session.query(Product).first():
        db.session.commit()
        click.echo("PASS Catalog already seeded")
        return

    brand = Brand(name="Samsung")
    category = Category(name="Téléphones")
    sub_category = SubCategory(name="Smartphones", category=category)
    supplier = Supplier(name="Distributeur Central", phone="0500000000")
    db.session.add_all([brand, category, sub_category, supplier])
    db.session.flush()

    product = Product(
        name="Galaxy A15",
        brand_id=brand.id,
        sub_category_id=sub_category.id,
        supplier_id=supplier.id,
        purchase_price_cents=150000,
        stock=10,
        low_stock_threshold=3,
        warranty_enabled=True,
        warranty_duration_months=12,
        price_min_cents=180000,
        price_max_cents=210000,
    )
    db.session.add(product)
    db.session.commit()
    click.echo(f"PASS Created product: {product.name} (ID: {product.id}, stock: {product.stock})")


@click.group('finance')
def finance_group():
    """Finance reporting commands."""


@finance_group.command('overview')
@click.option('--start', required=True, help='Start date (YYYY-MM-DD)')
@click.option('--end', required=True, help='End date (YYYY-MM-DD)')
@with_appcontext
def finance_overview(start, end):
    """Print the financial overview for a date range as JSON."""
    try:
        overview = finance_service.get_financial_overview(start, end)
    except CommerceError as e:
        raise click.ClickException(f"{e.code}: {e.message}")
    click.echo(json.dumps(overview, indent=2, ensure_ascii=False))


@click.group('inventory')
def inventory_group():
    """Stock supply commands."""


@inventory_group.command('add')
@click.option('--product-id', type=int, required=True, help='Product ID')
@click.option('--quantity', type=int, required=True, help='Units received')
@click.option('--price-cents', type=int, required=True, help='Unit purchase price in cents')
@click.option('--manager-id', type=int, required=True, help='Manager recording the entry')
@click.option('--note', default=None, help='Optional note')
@with_appcontext
def inventory_add(product_id, quantity, price_cents, manager_id, note):
    """Record a supply entry."""
    try:
        result = inventory_service.add_inventory_entry(product_id, quantity, price_cents, note, manager_id)
    except CommerceError as e:
        raise click.ClickException(f"{e.code}: {e.message}")
    click.echo(f"PASS Entry {result['log'].id} recorded, new stock: {result['new_stock']}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(finance_group)
    app.cli.add_command(inventory_group)
