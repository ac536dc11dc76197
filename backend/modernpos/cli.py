# Overview: Flask CLI command groups for database bootstrap and business provisioning.

# backend/modernpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP (PowerShell: $env:FLASK_APP="modernpos:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables (idempotent; use `flask db upgrade` for migrated deployments).
#
# Business provisioning:
# - python -m flask business create --owner-id uid-123 --name "Corner Cafe" --email owner@cafe.test
#   Register a business keyed by the owner's identity id.
# - python -m flask business add-employee --business-id uid-123 --name "Ann" --email ann@cafe.test
#   Provision an employee (the email links the employee to their sign-in identity).
# - python -m flask business seed-products --business-id uid-123
#   Load the demo cafe catalog (skips products that already exist by name).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Product
from .services.inventory_service import CatalogError, create_product
from .services.tenant_service import OperatorIdentity, TenantRegistrationError, add_employee, register_business

DEMO_PRODUCTS = [
    {"name": "Espresso", "price": "3.50", "category": "Beverages", "stock": 100},
    {"name": "Cappuccino", "price": "4.50", "category": "Beverages", "stock": 80},
    {"name": "Latte", "price": "4.75", "category": "Beverages", "stock": 90},
    {"name": "Mocha", "price": "5.25", "category": "Beverages", "stock": 60},
    {"name": "Croissant", "price": "3.25", "category": "Pastries", "stock": 25},
    {"name": "Muffin", "price": "2.95", "category": "Pastries", "stock": 30},
    {"name": "Bagel", "price": "2.50", "category": "Pastries", "stock": 40},
    {"name": "Cookie", "price": "1.95", "category": "Pastries", "stock": 50},
    {"name": "Sandwich", "price": "7.95", "category": "Food", "stock": 20},
    {"name": "Salad", "price": "8.50", "category": "Food", "stock": 15},
    {"name": "Soup", "price": "5.95", "category": "Food", "stock": 18},
    {"name": "Water", "price": "1.50", "category": "Beverages", "stock": 200},
]


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


@click.group('business')
def business_group():
    """Business (tenant) provisioning commands."""


@business_group.command('create')
@click.option('--owner-id', required=True, help='Identity id of the owner (becomes the business id)')
@click.option('--name', 'business_name', required=True, help='Business name')
@click.option('--email', default=None, help='Owner email')
@click.option('--phone', default=None, help='Owner phone number')
@with_appcontext
def create_business(owner_id, business_name, email, phone):
    """Register a business for an owner identity."""
    try:
        business = register_business(OperatorIdentity(id=owner_id, email=email), business_name, phone_number=phone)
    except TenantRegistrationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created business: {business.business_name} (ID: {business.id})")


@business_group.command('add-employee')
@click.option('--business-id', required=True, help='Business id')
@click.option('--name', required=True, help='Employee name')
@click.option('--email', required=True, help='Employee email')
@click.option('--phone', default=None, help='Employee phone')
@click.option('--role', default='Cashier', show_default=True, help='Employee role')
@with_appcontext
def add_employee_command(business_id, name, email, phone, role):
    """Provision an employee under a business."""
    try:
        employee = add_employee(business_id, name, email, phone=phone, role=role)
    except TenantRegistrationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Added employee: {employee.name} <{employee.email}> ({employee.role})")


@business_group.command('seed-products')
@click.option('--business-id', required=True, help='Business id')
@with_appcontext
def seed_products(business_id):
    """Load the demo cafe catalog."""
    existing = {
        name for (name,) in db.session.query(Product.name).filter_by(business_id=business_id).all()
    }
    created = 0
    for data in DEMO_PRODUCTS:
        if data["name"] in existing:
            continue
        try:
            create_product(business_id, dict(data))
        except CatalogError as e:
            raise click.ClickException(str(e))
        created += 1
    click.echo(f"PASS Seeded {created} products ({len(existing)} already present)")


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(business_group)
