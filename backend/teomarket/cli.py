# Overview: Flask CLI command groups for bootstrap, identity tokens, and exchange rates.

# backend/teomarket/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: countries, VAT rates, currencies, customer groups,
#   payment and shipping methods, and an admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users and API tokens:
# - python -m flask users list
# - python -m flask users create --email admin@teomarket.local --role admin
# - python -m flask users issue-token admin@teomarket.local --days 30
# - python -m flask users revoke-token <token>
#
# Exchange rates:
# - python -m flask currency update-rates
#   Pull the BNR reference rates into the currencies table.
# - python -m flask currency list

import click
from datetime import timedelta
from decimal import Decimal
from flask.cli import with_appcontext

from .extensions import db
from .enums import B2C_GROUP_CODE, ShippingMethodType
from .models import (
    Country, VatRate, Currency, CustomerGroup, PaymentMethod, ShippingMethod,
    User, ROLES, ROLE_ADMIN,
)
from .services import session_service
from .services import currency_service
from .services.currency_service import RateFeedError


DEFAULT_COUNTRIES = (
    # iso, name, VAT rates in basis points
    ("RO", "Romania", (1900, 900, 500)),
    ("BG", "Bulgaria", (2000,)),
    ("HU", "Hungary", (2700,)),
    ("DE", "Germany", (1900, 700)),
)

DEFAULT_CURRENCIES = (
    ("RON", None, " lei", Decimal("1.0000")),
    ("EUR", "€", None, Decimal("4.9700")),
    ("USD", "$", None, Decimal("4.5800")),
)

DEFAULT_GROUPS = ((B2C_GROUP_CODE, "Retail customers"), ("B2B", "Business customers"))

DEFAULT_PAYMENT_METHODS = (
    ("ramburs", "Cash on delivery"),
    ("card", "Card payment"),
    ("bank_transfer", "Bank transfer"),
)

DEFAULT_SHIPPING_METHODS = (
    ("courier_standard", "Standard courier", ShippingMethodType.COURIER.value, 1999, 2),
    ("easybox", "Locker pickup", ShippingMethodType.PICKUP.value, 1299, 2),
)


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default='admin@teomarket.local', help='Email of the bootstrap admin user')
@with_appcontext
def init_system(admin_email):
    """
    Seed the reference data every operation depends on.

    Creates (only what is missing):
    - Countries with their VAT rates
    - Currencies (RON at 1.0000)
    - Customer groups B2C and B2B
    - Payment and shipping methods
    - An admin user
    """
    click.echo("START Initializing Teomarket reference data...")

    for iso, name, rates in DEFAULT_COUNTRIES:
        country = db.session.query(Country).filter_by(iso_code_2=iso).first()
        if not country:
            country = Country(iso_code_2=iso, name=name, is_active=True)
            db.session.add(country)
            db.session.flush()
            for rate in rates:
                db.session.add(VatRate(country_id=country.id, rate_bps=rate, description=f"{rate / 100:.2f}%"))
            click.echo(f"PASS Created country: {name} ({iso}) with {len(rates)} VAT rate(s)")
        else:
            click.echo(f"PASS Using existing country: {name} ({iso})")

    for code, left, right, value in DEFAULT_CURRENCIES:
        if not db.session.query(Currency).filter_by(code=code).first():
            db.session.add(Currency(code=code, symbol_left=left, symbol_right=right, value=value, is_active=True))
            click.echo(f"PASS Created currency: {code}")

    for code, name in DEFAULT_GROUPS:
        if not db.session.query(CustomerGroup).filter_by(code=code).first():
            db.session.add(CustomerGroup(code=code, name=name))
            click.echo(f"PASS Created customer group: {code}")

    for code, name in DEFAULT_PAYMENT_METHODS:
        if not db.session.query(PaymentMethod).filter_by(code=code).first():
            db.session.add(PaymentMethod(code=code, name=name, is_active=True))
            click.echo(f"PASS Created payment method: {code}")

    for code, name, method_type, cost, days in DEFAULT_SHIPPING_METHODS:
        if not db.session.query(ShippingMethod).filter_by(code=code).first():
            db.session.add(ShippingMethod(
                code=code, name=name, method_type=method_type,
                cost_ron_cents=cost, estimated_days=days, is_active=True,
            ))
            click.echo(f"PASS Created shipping method: {code}")

    if not db.session.query(User).filter_by(email=admin_email).first():
        db.session.add(User(email=admin_email, first_name="Admin", role=ROLE_ADMIN, is_active=True))
        click.echo(f"PASS Created admin user: {admin_email}")

    db.session.commit()
    click.echo("DONE Reference data ready. Issue a token with: python -m flask users issue-token " + admin_email)


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
    click.echo("PASS Database reset complete")


@click.group('users')
def users_group():
    """User inspection and API token commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role and active status."""
    users = db.session.query(User).order_by(User.id).all()
    if not users:
        click.echo("No users found.")
        return
    for user in users:
        status = "active" if user.is_active else "inactive"
        customer = f" customer={user.customer_id}" if user.customer_id else ""
        click.echo(f"{user.id:>4}  {user.email:<40} {user.role:<10} {status}{customer}")


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--first-name', default=None, help='First name')
@click.option('--last-name', default=None, help='Last name')
@click.option('--role', type=click.Choice(list(ROLES)), default='customer', show_default=True, help='Role')
@click.option('--customer-id', type=int, default=None, help='Link to an existing customer record')
@with_appcontext
def create_user_cli(email, first_name, last_name, role, customer_id):
    """Create a user. Storefront users should be linked to a customer."""
    email = email.strip().lower()
    if db.session.query(User).filter_by(email=email).first():
        click.echo(f"FAIL User {email} already exists")
        return

    user = User(
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=role,
        customer_id=customer_id,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created user: {email} with role '{role}' (ID: {user.id})")


@users_group.command('issue-token')
@click.argument('email')
@click.option('--days', type=int, default=30, show_default=True, help='Token lifetime in days')
@with_appcontext
def issue_token(email, days):
    """Issue a bearer token for a user. The token is shown once."""
    user = db.session.query(User).filter_by(email=email.strip().lower()).first()
    if not user:
        click.echo(f"FAIL User {email} not found")
        return

    try:
        session, token = session_service.create_session(user.id, timedelta(days=days))
    except ValueError as e:
        click.echo(f"FAIL {e}")
        return

    click.echo(f"PASS Token for {user.email} (expires {session.expires_at:%Y-%m-%d %H:%M} UTC):")
    click.echo(token)


@users_group.command('revoke-token')
@click.argument('token')
@with_appcontext
def revoke_token(token):
    """Revoke a bearer token."""
    if session_service.revoke_session(token):
        click.echo("PASS Token revoked")
    else:
        click.echo("FAIL Token not found or already revoked")


@click.group('currency')
def currency_group():
    """Exchange rate commands."""


@currency_group.command('update-rates')
@with_appcontext
def update_rates():
    """Refresh currency values from the BNR reference rates feed."""
    try:
        result = currency_service.update_exchange_rates()
    except RateFeedError as e:
        click.echo(f"FAIL Could not fetch exchange rates: {e}")
        raise SystemExit(1)

    click.echo(f"PASS Rates of {result['date']}: updated {result['updated_count']} currencies")
    for code in result["updated"]:
        click.echo(f"     {code}")


@currency_group.command('list')
@with_appcontext
def list_currencies():
    """List currencies and their RON value."""
    for currency in db.session.query(Currency).order_by(Currency.code).all():
        status = "active" if currency.is_active else "inactive"
        click.echo(f"{currency.code}  {currency.value}  {status}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(currency_group)
