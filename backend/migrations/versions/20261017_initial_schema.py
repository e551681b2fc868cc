"""Initial Teomarket schema

Revision ID: 20261017_initial
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261017_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ------------------------------------------------------------------
    # Geography and currencies
    # ------------------------------------------------------------------
    op.create_table(
        "countries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("iso_code_2", sa.String(2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("countries", schema=None) as batch_op:
        batch_op.create_index("ix_countries_iso_code_2", ["iso_code_2"], unique=True)

    op.create_table(
        "states",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("country_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("code", sa.String(8), nullable=True),
        sa.ForeignKeyConstraint(["country_id"], ["countries.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("states", schema=None) as batch_op:
        batch_op.create_index("ix_states_country_id", ["country_id"], unique=False)
        batch_op.create_index("ix_states_country_name", ["country_id", "name"], unique=False)

    op.create_table(
        "cities",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("state_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.ForeignKeyConstraint(["state_id"], ["states.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("cities", schema=None) as batch_op:
        batch_op.create_index("ix_cities_state_id", ["state_id"], unique=False)

    op.create_table(
        "vat_rates",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("country_id", sa.Integer(), nullable=False),
        sa.Column("rate_bps", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["country_id"], ["countries.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("vat_rates", schema=None) as batch_op:
        batch_op.create_index("ix_vat_rates_country_id", ["country_id"], unique=False)

    op.create_table(
        "currencies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(3), nullable=False),
        sa.Column("symbol_left", sa.String(8), nullable=True),
        sa.Column("symbol_right", sa.String(8), nullable=True),
        sa.Column("value", sa.Numeric(15, 4), nullable=False, server_default=sa.text("1")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("currencies", schema=None) as batch_op:
        batch_op.create_index("ix_currencies_code", ["code"], unique=True)

    # ------------------------------------------------------------------
    # Customers and identity
    # ------------------------------------------------------------------
    op.create_table(
        "customer_groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("customer_groups", schema=None) as batch_op:
        batch_op.create_index("ix_customer_groups_code", ["code"], unique=True)

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("customer_type", sa.String(16), nullable=False, server_default="individual"),
        sa.Column("customer_group_id", sa.Integer(), nullable=True),
        sa.Column("phone", sa.String(32), nullable=True),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("fiscal_code", sa.String(32), nullable=True),
        sa.Column("reg_number", sa.String(64), nullable=True),
        sa.Column("bank_name", sa.String(255), nullable=True),
        sa.Column("iban", sa.String(34), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["customer_group_id"], ["customer_groups.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("customers", schema=None) as batch_op:
        batch_op.create_index("ix_customers_customer_group_id", ["customer_group_id"], unique=False)

    op.create_table(
        "addresses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("address_type", sa.String(16), nullable=False, server_default="shipping"),
        sa.Column("is_preferred", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("first_name", sa.String(255), nullable=False),
        sa.Column("last_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(255), nullable=False),
        sa.Column("address_line_1", sa.String(255), nullable=False),
        sa.Column("address_line_2", sa.String(255), nullable=True),
        sa.Column("city", sa.String(255), nullable=False),
        sa.Column("county_name", sa.String(255), nullable=True),
        sa.Column("county_code", sa.String(2), nullable=True),
        sa.Column("country_id", sa.Integer(), nullable=False),
        sa.Column("zip_code", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["country_id"], ["countries.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("addresses", schema=None) as batch_op:
        batch_op.create_index("ix_addresses_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_addresses_customer_type", ["customer_id", "address_type"], unique=False)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(128), nullable=True),
        sa.Column("last_name", sa.String(128), nullable=True),
        sa.Column("role", sa.String(16), nullable=False, server_default="customer"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_users_email", ["email"], unique=True)

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("revoked_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("session_tokens", schema=None) as batch_op:
        batch_op.create_index("ix_session_tokens_user_id", ["user_id"], unique=False)
        batch_op.create_index("ix_session_tokens_token_hash", ["token_hash"], unique=True)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------
    op.create_table(
        "product_families",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "attributes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "attribute_values",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("attribute_id", sa.Integer(), nullable=False),
        sa.Column("value", sa.String(255), nullable=False),
        sa.ForeignKeyConstraint(["attribute_id"], ["attributes.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("attribute_values", schema=None) as batch_op:
        batch_op.create_index("ix_attribute_values_attribute_id", ["attribute_id"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("ean", sa.String(32), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("product_type", sa.String(16), nullable=False, server_default="simple"),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("product_family_id", sa.Integer(), nullable=True),
        sa.Column("price_ron_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("purchase_price_ron_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("stock_quantity", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["parent_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["product_family_id"], ["product_families.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_sku", ["sku"], unique=True)
        batch_op.create_index("ix_products_parent_id", ["parent_id"], unique=False)

    op.create_table(
        "product_attribute_values",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("attribute_value_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["attribute_value_id"], ["attribute_values.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_id", "attribute_value_id", name="uq_product_attribute_value"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("product_attribute_values", schema=None) as batch_op:
        batch_op.create_index("ix_product_attribute_values_product_id", ["product_id"], unique=False)

    op.create_table(
        "product_group_prices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("customer_group_id", sa.Integer(), nullable=False),
        sa.Column("min_quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("price_ron_cents", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.ForeignKeyConstraint(["customer_group_id"], ["customer_groups.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "product_id", "customer_group_id", "min_quantity",
            name="uq_product_group_prices_tier",
        ),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("product_group_prices", schema=None) as batch_op:
        batch_op.create_index("ix_product_group_prices_product_id", ["product_id"], unique=False)
        batch_op.create_index("ix_product_group_prices_customer_group_id", ["customer_group_id"], unique=False)

    # ------------------------------------------------------------------
    # Shipping and payment
    # ------------------------------------------------------------------
    op.create_table(
        "shipping_methods",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("method_type", sa.String(16), nullable=False, server_default="courier"),
        sa.Column("cost_ron_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("estimated_days", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "shipping_method_configs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("shipping_method_id", sa.Integer(), nullable=False),
        sa.Column("config_key", sa.String(64), nullable=False),
        sa.Column("config_value", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["shipping_method_id"], ["shipping_methods.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("shipping_method_id", "config_key", name="uq_shipping_method_config_key"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("shipping_method_configs", schema=None) as batch_op:
        batch_op.create_index("ix_shipping_method_configs_shipping_method_id", ["shipping_method_id"], unique=False)

    op.create_table(
        "payment_methods",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(64), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code"),
        sqlite_autoincrement=True,
    )

    # ------------------------------------------------------------------
    # Orders (snapshot tables)
    # ------------------------------------------------------------------
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("order_number", sa.String(32), nullable=False),
        sa.Column("idempotency_key", sa.String(128), nullable=True),
        sa.Column("currency", sa.String(3), nullable=False, server_default="RON"),
        sa.Column("exchange_rate", sa.Numeric(15, 4), nullable=False, server_default=sa.text("1")),
        sa.Column("vat_rate_applied_bps", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_vat_exempt", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_excl_vat_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_incl_vat_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_ron_excl_vat_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_ron_incl_vat_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("payment_method_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["payment_method_id"], ["payment_methods.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("idempotency_key"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("orders", schema=None) as batch_op:
        batch_op.create_index("ix_orders_customer_id", ["customer_id"], unique=False)
        batch_op.create_index("ix_orders_order_number", ["order_number"], unique=True)
        batch_op.create_index("ix_orders_status", ["status"], unique=False)
        batch_op.create_index("ix_orders_customer_created", ["customer_id", "created_at"], unique=False)

    op.create_table(
        "order_products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("ean", sa.String(32), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("vat_rate_bps", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("exchange_rate", sa.Numeric(15, 4), nullable=False, server_default=sa.text("1")),
        sa.Column("unit_price_currency_cents", sa.Integer(), nullable=False),
        sa.Column("unit_price_ron_cents", sa.Integer(), nullable=False),
        sa.Column("unit_purchase_price_ron_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_currency_excl_vat_cents", sa.Integer(), nullable=False),
        sa.Column("total_currency_incl_vat_cents", sa.Integer(), nullable=False),
        sa.Column("total_ron_excl_vat_cents", sa.Integer(), nullable=False),
        sa.Column("total_ron_incl_vat_cents", sa.Integer(), nullable=False),
        sa.Column("profit_ron_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_products", schema=None) as batch_op:
        batch_op.create_index("ix_order_products_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_order_products_product_id", ["product_id"], unique=False)

    op.create_table(
        "order_addresses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("address_type", sa.String(16), nullable=False),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("fiscal_code", sa.String(32), nullable=True),
        sa.Column("reg_number", sa.String(64), nullable=True),
        sa.Column("first_name", sa.String(255), nullable=False),
        sa.Column("last_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("address_line_1", sa.String(255), nullable=False),
        sa.Column("address_line_2", sa.String(255), nullable=True),
        sa.Column("city", sa.String(255), nullable=False),
        sa.Column("county_name", sa.String(255), nullable=True),
        sa.Column("county_code", sa.String(2), nullable=True),
        sa.Column("country_id", sa.Integer(), nullable=False),
        sa.Column("zip_code", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["country_id"], ["countries.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_addresses", schema=None) as batch_op:
        batch_op.create_index("ix_order_addresses_order_type", ["order_id", "address_type"], unique=False)

    op.create_table(
        "order_shipping",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("shipping_method_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("pickup_point_id", sa.String(128), nullable=True),
        sa.Column("tracking_number", sa.String(128), nullable=True),
        sa.Column("courier_data", sa.JSON(), nullable=True),
        sa.Column("cost_excl_vat_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("cost_incl_vat_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("cost_ron_excl_vat_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("cost_ron_incl_vat_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["shipping_method_id"], ["shipping_methods.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("order_id"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "order_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(64), nullable=False),
        sa.Column("old_value", sa.JSON(), nullable=True),
        sa.Column("new_value", sa.JSON(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("order_history", schema=None) as batch_op:
        batch_op.create_index("ix_order_history_order_action", ["order_id", "action"], unique=False)

    # ------------------------------------------------------------------
    # Returns
    # ------------------------------------------------------------------
    op.create_table(
        "returns",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("order_product_id", sa.Integer(), nullable=False),
        sa.Column("return_number", sa.String(32), nullable=False),
        sa.Column("first_name", sa.String(255), nullable=False),
        sa.Column("last_name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(255), nullable=True),
        sa.Column("order_number", sa.String(32), nullable=False),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("product_sku", sa.String(64), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("return_reason", sa.String(32), nullable=False),
        sa.Column("return_reason_details", sa.Text(), nullable=True),
        sa.Column("is_product_opened", sa.String(3), nullable=True),
        sa.Column("iban", sa.String(34), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("refund_amount_cents", sa.Integer(), nullable=True),
        sa.Column("restock_item", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("restocked_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"]),
        sa.ForeignKeyConstraint(["order_product_id"], ["order_products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("returns", schema=None) as batch_op:
        batch_op.create_index("ix_returns_order_id", ["order_id"], unique=False)
        batch_op.create_index("ix_returns_order_product_id", ["order_product_id"], unique=False)
        batch_op.create_index("ix_returns_return_number", ["return_number"], unique=True)
        batch_op.create_index("ix_returns_status", ["status"], unique=False)
        batch_op.create_index("ix_returns_status_created", ["status", "created_at"], unique=False)


def downgrade():
    for table in (
        "returns",
        "order_history",
        "order_shipping",
        "order_addresses",
        "order_products",
        "orders",
        "payment_methods",
        "shipping_method_configs",
        "shipping_methods",
        "product_group_prices",
        "product_attribute_values",
        "products",
        "attribute_values",
        "attributes",
        "product_families",
        "session_tokens",
        "users",
        "addresses",
        "customers",
        "customer_groups",
        "currencies",
        "vat_rates",
        "cities",
        "states",
        "countries",
    ):
        op.drop_table(table)
