"""
Pytest fixtures for Teomarket backend tests.

Provides the in-memory app, reference data (Romania with VAT, currencies,
customer groups, payment and shipping methods), customers with bearer
tokens, and a factory that places orders through the real checkout.
"""

from decimal import Decimal

import pytest

from teomarket import create_app
from teomarket.extensions import db
from teomarket.models import (
    Country, VatRate, Currency, CustomerGroup, Customer, User,
    Product, PaymentMethod, ShippingMethod,
    ROLE_ADMIN, ROLE_MANAGER, ROLE_CUSTOMER,
)
from teomarket.services import order_service
from teomarket.services.session_service import create_session


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'SECRET_KEY': 'test-secret-key',
        'CODE_SALT': 'test-salt',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.expunge_all()

        yield db.session

        # Cleanup after test
        db.session.rollback()


# =============================================================================
# REFERENCE DATA
# =============================================================================


@pytest.fixture(scope='function')
def romania(db_session):
    """Romania with a standard (19%) and a reduced (9%) VAT rate."""
    country = Country(name="Romania", iso_code_2="RO", is_active=True)
    db_session.add(country)
    db_session.flush()
    db_session.add(VatRate(country_id=country.id, rate_bps=1900, description="Standard"))
    db_session.add(VatRate(country_id=country.id, rate_bps=900, description="Reduced"))
    db_session.commit()
    return country


@pytest.fixture(scope='function')
def bulgaria(db_session):
    """Active country without any VAT rate configured."""
    country = Country(name="Bulgaria", iso_code_2="BG", is_active=True)
    db_session.add(country)
    db_session.commit()
    return country


@pytest.fixture(scope='function')
def currencies(db_session):
    ron = Currency(code="RON", symbol_right=" lei", value=Decimal("1.0000"), is_active=True)
    eur = Currency(code="EUR", symbol_left="€", value=Decimal("5.0000"), is_active=True)
    db_session.add_all([ron, eur])
    db_session.commit()
    return {"RON": ron, "EUR": eur}


@pytest.fixture(scope='function')
def groups(db_session):
    b2c = CustomerGroup(code="B2C", name="Retail")
    b2b = CustomerGroup(code="B2B", name="Business")
    db_session.add_all([b2c, b2b])
    db_session.commit()
    return {"B2C": b2c, "B2B": b2b}


@pytest.fixture(scope='function')
def payment_methods(db_session):
    methods = {
        "ramburs": PaymentMethod(code="ramburs", name="Cash on delivery"),
        "card": PaymentMethod(code="card", name="Card"),
        "bank_transfer": PaymentMethod(code="bank_transfer", name="Bank transfer"),
    }
    db_session.add_all(methods.values())
    db_session.commit()
    return methods


@pytest.fixture(scope='function')
def courier(db_session):
    """Courier costing 23.80 RON incl. VAT (20.00 excl. 19% VAT)."""
    method = ShippingMethod(name="Courier", code="courier_standard", method_type="courier", cost_ron_cents=2380)
    db_session.add(method)
    db_session.commit()
    return method


@pytest.fixture(scope='function')
def product(db_session):
    """100.00 RON excl. VAT, bought at 60.00, 10 in stock."""
    product = Product(
        sku="MOUSE-001",
        ean="5940000000011",
        name="Wireless Mouse",
        price_ron_cents=10000,
        purchase_price_ron_cents=6000,
        stock_quantity=10,
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def address_payload(romania):
    """Builder for a valid address form body."""
    def _payload(**overrides):
        data = {
            "first_name": "Ana",
            "last_name": "Popescu",
            "phone": "0722 000 111",
            "address_line_1": "Str. Lunga 10",
            "city": "Brasov",
            "county_name": "Brasov",
            "county_code": "BV",
            "country_id": romania.id,
            "zip_code": "500001",
        }
        data.update(overrides)
        return data
    return _payload


# =============================================================================
# IDENTITIES
# =============================================================================


def _make_customer(db_session, group, email, phone, first_name="Ana", last_name="Popescu"):
    customer = Customer(customer_type="individual", customer_group_id=group.id, phone=phone)
    db_session.add(customer)
    db_session.flush()
    user = User(
        customer_id=customer.id,
        email=email,
        first_name=first_name,
        last_name=last_name,
        role=ROLE_CUSTOMER,
    )
    db_session.add(user)
    db_session.commit()
    return customer, user


@pytest.fixture(scope='function')
def customer_user(db_session, groups):
    """Retail customer Ana with her storefront user."""
    _, user = _make_customer(db_session, groups["B2C"], "ana@example.com", "0722 000 111")
    return user


@pytest.fixture(scope='function')
def customer(customer_user):
    return customer_user.customer


@pytest.fixture(scope='function')
def customer_headers(db_session, customer_user):
    _, token = create_session(customer_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def other_user(db_session, groups):
    _, user = _make_customer(db_session, groups["B2C"], "mihai@example.com", "0733 999 888", "Mihai", "Ionescu")
    return user


@pytest.fixture(scope='function')
def other_customer(other_user):
    return other_user.customer


@pytest.fixture(scope='function')
def other_headers(db_session, other_user):
    _, token = create_session(other_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def company_customer(db_session, groups):
    """Business customer priced in the B2B group."""
    customer, _ = _make_customer(db_session, groups["B2B"], "office@acme.ro", "0211 234 567", "Ion", "Acme")
    customer.customer_type = "company"
    customer.company_name = "Acme SRL"
    customer.fiscal_code = "RO12345678"
    customer.reg_number = "J40/123/2020"
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def admin_user(db_session):
    user = User(email="admin@teomarket.ro", first_name="Admin", role=ROLE_ADMIN)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_headers(db_session, admin_user):
    _, token = create_session(admin_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def manager_headers(db_session):
    user = User(email="manager@teomarket.ro", first_name="Manager", role=ROLE_MANAGER)
    db_session.add(user)
    db_session.commit()
    _, token = create_session(user.id)
    return auth_headers(token)


# =============================================================================
# ORDERS
# =============================================================================


@pytest.fixture(scope='function')
def place_order(db_session, romania, currencies, groups, payment_methods, courier, product, address_payload):
    """
    Factory placing an order through order_service.create_order.

    Defaults: 2 x product, cash on delivery, RON, guest contact
    ana@example.com / 0722 000 111. status and created_at are applied
    after checkout so tests can build history and delivered orders.
    """
    def _place(customer=None, user=None, items=None, payment="ramburs", currency="RON",
               status=None, created_at=None, **kwargs):
        address = address_payload(email="ana@example.com")
        order = order_service.create_order(
            customer,
            items or [{"product_id": product.id, "quantity": 2}],
            payment_method_id=payment_methods[payment].id,
            shipping_method_id=kwargs.pop("shipping_method_id", courier.id),
            currency_code=currency,
            billing_address=kwargs.pop("billing_address", address),
            shipping_address=kwargs.pop("shipping_address", address),
            user=user,
            **kwargs,
        )
        if status is not None or created_at is not None:
            if status is not None:
                order.status = status
            if created_at is not None:
                order.created_at = created_at
            db_session.commit()
        return order
    return _place


@pytest.fixture(scope='function')
def delivered_order(place_order, customer, customer_user):
    """Cash-on-delivery order of 2 x product, delivered to Ana."""
    return place_order(customer=customer, user=customer_user, status="delivered")


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
