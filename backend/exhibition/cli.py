# Overview: Flask CLI command groups for bootstrap, catalog upkeep, and maintenance.

# backend/exhibition/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system cleanup-sessions
#   Delete expired and revoked session tokens older than 30 days.
#
# User inspection/bootstrap:
# - python -m flask users create-owner --username owner --email owner@example.com --password "Password123!"
#   Create the owner account (only on an empty user table).
# - python -m flask users create-employee --username emp1 --email emp1@example.com --password "Password123!"
#   Create an employee account.
# - python -m flask users list
#   List all users with role and active status.
#
# Catalog:
# - python -m flask catalog add-product --name "Paracetamol" --price 3.50 --stock 40
# - python -m flask catalog list [--all]
# - python -m flask catalog set-price 1 4.25
# - python -m flask catalog restock 1 10
# - python -m flask catalog deactivate 1

import click
from flask.cli import with_appcontext

from .errors import InvoicingError
from .extensions import db
from .money import format_cents
from .services import auth_service
from .services import inventory_service
from .services import session_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database schema is in place.")


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

    click.echo("PASS Database reset complete. Run 'python -m flask users create-owner' next.")


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"Deleted {deleted} expired or revoked session(s).")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


def _account_options(f):
    f = click.option('--phone-number', default=None, help='Phone number')(f)
    f = click.option('--full-name', default=None, help='Full name')(f)
    f = click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')(f)
    f = click.option('--email', prompt=True, help='Email address')(f)
    f = click.option('--username', prompt=True, help='Username')(f)
    return f


@users_group.command('create-owner')
@_account_options
@with_appcontext
def create_owner_cli(username, email, password, full_name, phone_number):
    """Create the owner account."""
    try:
        user = auth_service.create_owner(username, email, password, full_name, phone_number)
    except InvoicingError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created owner: {user.username} ({user.email}) (ID: {user.id})")


@users_group.command('create-employee')
@_account_options
@with_appcontext
def create_employee_cli(username, email, password, full_name, phone_number):
    """Create an employee account."""
    try:
        user = auth_service.register_employee(username, email, password, full_name, phone_number)
    except InvoicingError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS Created employee: {user.username} ({user.email}) (ID: {user.id})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their roles."""
    users = auth_service.list_users()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Email':<30} {'Role':<10} {'Active'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.email:<30} {user.role:<10} {active_str}")

    click.echo("="*80 + "\n")


@click.group('catalog')
def catalog_group():
    """Product catalog commands."""


@catalog_group.command('add-product')
@click.option('--name', required=True, help='Product name')
@click.option('--price', required=True, help='Unit price, e.g. 3.50')
@click.option('--stock', 'stock_quantity', type=int, default=0, show_default=True, help='Initial stock')
@click.option('--category', 'category_name', default=None, help='Category name (created if missing)')
@click.option('--dose', default=None)
@click.option('--location', 'location_in_store', default=None, help='Shelf or location in store')
@click.option('--notes', default=None)
@with_appcontext
def add_product(name, price, stock_quantity, category_name, dose, location_in_store, notes):
    """Create a product."""
    try:
        category_id = None
        if category_name:
            category = (
                inventory_service.find_category(category_name)
                or inventory_service.create_category(category_name)
            )
            category_id = category.id
        product = inventory_service.create_product(
            name,
            price,
            stock_quantity,
            category_id=category_id,
            dose=dose,
            notes=notes,
            location_in_store=location_in_store,
        )
    except InvoicingError as e:
        raise click.ClickException(e.message)
    click.echo(
        f"PASS Created product: {product.name} (ID: {product.id}) "
        f"price {format_cents(product.price_cents)}, stock {product.stock_quantity}"
    )


@catalog_group.command('list')
@click.option('--all', 'include_inactive', is_flag=True, help='Include inactive products')
@with_appcontext
def list_products(include_inactive):
    products = inventory_service.list_products(include_inactive=include_inactive)

    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Price':>12} {'Stock':>8}  {'Status'}")
    click.echo("="*80)

    for product in products:
        click.echo(
            f"{product.id:<5} {product.name:<30} {format_cents(product.price_cents):>12} "
            f"{product.stock_quantity:>8}  {product.status}"
        )

    click.echo("="*80 + "\n")


@catalog_group.command('set-price')
@click.argument('product_id', type=int)
@click.argument('price')
@with_appcontext
def set_price(product_id, price):
    """Change the current price. Existing invoices keep their snapshot."""
    try:
        product = inventory_service.set_price(product_id, price)
    except InvoicingError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS {product.name} now costs {format_cents(product.price_cents)}")


@catalog_group.command('restock')
@click.argument('product_id', type=int)
@click.argument('quantity', type=int)
@with_appcontext
def restock(product_id, quantity):
    try:
        product = inventory_service.restock(product_id, quantity)
    except InvoicingError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS {product.name} stock is now {product.stock_quantity}")


@catalog_group.command('deactivate')
@click.argument('product_id', type=int)
@with_appcontext
def deactivate(product_id):
    try:
        product = inventory_service.deactivate_product(product_id)
    except InvoicingError as e:
        raise click.ClickException(e.message)
    click.echo(f"PASS {product.name} is no longer sold")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
