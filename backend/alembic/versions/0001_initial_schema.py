"""Initial schema - microsites, carts, orders and Printful mappings

Revision ID: 0001
Revises: None
Create Date: 2025-01-15

- users: profiles synced from Supabase Auth (id = auth sub)
- microsites with content, cards, buttons and scans
- carts and cart line items
- customers, orders and order items
- Printful sync products, sync variants and variant mappings
"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _uuid_pk() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def _fk(column: str, target: str, nullable: bool = False, ondelete: str | None = "CASCADE"):
    return sa.Column(
        column,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    """Create all tables."""
    # Users
    op.create_table(
        "users",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            comment="Supabase auth user id (sub claim)",
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("company_name", sa.String(255), nullable=True),
        sa.Column("subscription_status", sa.String(50), nullable=False, server_default="free"),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "last_login",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Last API access timestamp",
        ),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Microsites
    op.create_table(
        "microsites",
        _uuid_pk(),
        _fk("user_id", "users.id"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("url", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("scan_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_scan_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("qr_data_url", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_microsites_user_id", "microsites", ["user_id"])
    op.create_index("ix_microsites_url", "microsites", ["url"], unique=True)

    op.create_table(
        "microsite_content",
        _uuid_pk(),
        _fk("microsite_id", "microsites.id"),
        sa.Column("title", sa.String(60), nullable=True),
        sa.Column("header_image_url", sa.Text(), nullable=True),
        sa.Column("theme_config", postgresql.JSONB(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("microsite_id", name="uq_microsite_content_microsite_id"),
    )

    op.create_table(
        "microsite_cards",
        _uuid_pk(),
        _fk("microsite_id", "microsites.id"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("media_url", sa.Text(), nullable=True),
        sa.Column("is_collapsed", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
    )
    op.create_index(
        "ix_microsite_cards_microsite_sort",
        "microsite_cards",
        ["microsite_id", "sort_order"],
    )

    op.create_table(
        "microsite_buttons",
        _uuid_pk(),
        _fk("card_id", "microsite_cards.id"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("label", sa.String(30), nullable=False),
        sa.Column("action_type", sa.String(10), nullable=False),
        sa.Column("action_value", sa.Text(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "action_type IN ('tel', 'mailto', 'url')",
            name="ck_microsite_buttons_action_type",
        ),
    )
    op.create_index("ix_microsite_buttons_card_id", "microsite_buttons", ["card_id"])

    op.create_table(
        "microsite_scans",
        _uuid_pk(),
        _fk("microsite_id", "microsites.id"),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.Column(
            "scanned_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_microsite_scans_microsite_id", "microsite_scans", ["microsite_id"])

    # Carts
    op.create_table(
        "carts",
        _uuid_pk(),
        _fk("user_id", "users.id"),
        *_timestamps(),
        sa.UniqueConstraint("user_id", name="uq_carts_user_id"),
    )

    op.create_table(
        "cart_line_items",
        _uuid_pk(),
        _fk("cart_id", "carts.id"),
        _fk("microsite_id", "microsites.id"),
        sa.Column("product_id", sa.String(100), nullable=False),
        sa.Column("variant_id", sa.String(100), nullable=False),
        sa.Column(
            "printful_variant_id",
            sa.String(100),
            nullable=True,
            comment="Printful sync variant id, when mapped",
        ),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("size", sa.String(20), nullable=False),
        sa.Column("material", sa.String(50), nullable=False),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("qr_data_url", sa.Text(), nullable=False),
        sa.Column("product_name", sa.String(255), nullable=False),
        sa.Column("variant_name", sa.String(255), nullable=False),
        sa.Column("product_image_url", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_cart_line_items_unique_line",
        "cart_line_items",
        ["cart_id", "microsite_id", "product_id", "variant_id"],
        unique=True,
    )

    # Orders
    op.create_table(
        "customers",
        _uuid_pk(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(255), nullable=False),
        sa.Column("last_name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_customers_email", "customers", ["email"], unique=True)

    op.create_table(
        "orders",
        _uuid_pk(),
        _fk("customer_id", "customers.id", ondelete=None),
        _fk("user_id", "users.id", nullable=True, ondelete="SET NULL"),
        _fk("microsite_id", "microsites.id", nullable=True, ondelete="SET NULL"),
        sa.Column("printful_order_id", sa.String(100), nullable=True),
        sa.Column("external_id", sa.String(255), nullable=True),
        sa.Column("status", sa.String(50), nullable=False, server_default="pending"),
        sa.Column("total_cost", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("shipping_address", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("qr_data_url", sa.Text(), nullable=True),
        sa.Column("stripe_session_id", sa.String(255), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_orders_customer_id", "orders", ["customer_id"])
    op.create_index("ix_orders_stripe_session_id", "orders", ["stripe_session_id"])

    op.create_table(
        "order_items",
        _uuid_pk(),
        _fk("order_id", "orders.id"),
        sa.Column("product_id", sa.String(100), nullable=False, server_default=""),
        sa.Column("variant_id", sa.String(100), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("size", sa.String(20), nullable=False, server_default=""),
        sa.Column("material", sa.String(50), nullable=False, server_default=""),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])

    # Printful store mappings
    op.create_table(
        "sync_products",
        _uuid_pk(),
        sa.Column("catalog_product_id", sa.String(100), nullable=False),
        sa.Column("printful_sync_product_id", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("catalog_product_id", name="uq_sync_products_catalog_product_id"),
    )

    op.create_table(
        "sync_variants",
        _uuid_pk(),
        sa.Column("catalog_variant_id", sa.String(100), nullable=False),
        sa.Column("printful_sync_variant_id", sa.String(100), nullable=False),
        _fk("sync_product_id", "sync_products.id"),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("size", sa.String(50), nullable=True),
        sa.Column("color", sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_sync_variants_catalog_variant_id",
        "sync_variants",
        ["catalog_variant_id"],
    )

    op.create_table(
        "variant_mappings",
        _uuid_pk(),
        sa.Column("catalog_variant_id", sa.String(100), nullable=False),
        sa.Column("sync_variant_id", sa.String(100), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("catalog_variant_id", name="uq_variant_mappings_catalog_variant_id"),
    )


def downgrade() -> None:
    """Drop all tables."""
    for table in (
        "variant_mappings",
        "sync_variants",
        "sync_products",
        "order_items",
        "orders",
        "customers",
        "cart_line_items",
        "carts",
        "microsite_scans",
        "microsite_buttons",
        "microsite_cards",
        "microsite_content",
        "microsites",
        "users",
    ):
        op.drop_table(table)
