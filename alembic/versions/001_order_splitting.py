"""Order splitting tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

Creates: orders, order_items, vendors, vendor_assignments, order_item_assignments, activity_logs
Enums: orderplatform, orderstatus, vendorstatus, assignmenttype, assignmentstatus, actortype
"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ── 1. Create enum types ──────────────────────────────────────────────
    op.execute("""
        CREATE TYPE orderplatform AS ENUM (
            'shopify', 'bigcommerce', 'woocommerce', 'manual'
        );
    """)
    op.execute("""
        CREATE TYPE orderstatus AS ENUM (
            'pending', 'processing', 'shipped', 'delivered', 'cancelled'
        );
    """)
    op.execute("""
        CREATE TYPE vendorstatus AS ENUM (
            'pending', 'approved', 'rejected', 'suspended'
        );
    """)
    op.execute("CREATE TYPE assignmenttype AS ENUM ('full', 'partial');")
    op.execute("""
        CREATE TYPE assignmentstatus AS ENUM (
            'assigned', 'accepted', 'in_progress',
            'completed', 'rejected', 'cancelled'
        );
    """)
    op.execute("CREATE TYPE actortype AS ENUM ('admin', 'vendor');")

    # ── 2. Create orders table ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE orders (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_number VARCHAR(50) NOT NULL,
            platform orderplatform NOT NULL DEFAULT 'manual',
            external_order_id VARCHAR(100),
            customer_name VARCHAR(255),
            customer_email VARCHAR(255),
            order_status orderstatus NOT NULL DEFAULT 'pending',
            total_amount NUMERIC(12, 2) NOT NULL,
            currency VARCHAR(3) NOT NULL DEFAULT 'USD',
            order_date TIMESTAMPTZ NOT NULL DEFAULT now(),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_orders_order_number UNIQUE (order_number)
        );
    """)
    op.execute("CREATE INDEX ix_orders_order_date ON orders (order_date);")
    op.execute(
        "CREATE INDEX ix_orders_platform_external_id ON orders (platform, external_order_id);"
    )

    # ── 3. Create order_items table ────────────────────────────────────────
    op.execute("""
        CREATE TABLE order_items (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_id UUID NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            product_name VARCHAR(255) NOT NULL,
            sku VARCHAR(100),
            quantity INTEGER NOT NULL,
            unit_price NUMERIC(10, 2) NOT NULL,
            total_price NUMERIC(12, 2) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_order_items_quantity_positive CHECK (quantity > 0),
            CONSTRAINT ck_order_items_unit_price_non_negative CHECK (unit_price >= 0)
        );
    """)
    op.execute("CREATE INDEX ix_order_items_order_id ON order_items (order_id);")

    # ── 4. Create vendors table ────────────────────────────────────────────
    op.execute("""
        CREATE TABLE vendors (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            company_name VARCHAR(255) NOT NULL,
            contact_email VARCHAR(255),
            status vendorstatus NOT NULL DEFAULT 'pending',
            commission_rate NUMERIC(5, 2) NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_vendors_commission_rate_range
                CHECK (commission_rate >= 0 AND commission_rate <= 100)
        );
    """)

    # ── 5. Create vendor_assignments table ─────────────────────────────────
    op.execute("""
        CREATE TABLE vendor_assignments (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            order_id UUID NOT NULL REFERENCES orders(id) ON DELETE CASCADE,
            vendor_id UUID NOT NULL REFERENCES vendors(id) ON DELETE CASCADE,
            assigned_by UUID,
            assignment_type assignmenttype NOT NULL DEFAULT 'full',
            commission_amount NUMERIC(10, 2) NOT NULL DEFAULT 0,
            status assignmentstatus NOT NULL DEFAULT 'assigned',
            notes TEXT,
            assigned_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            accepted_at TIMESTAMPTZ,
            completed_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_vendor_assignments_order_id ON vendor_assignments (order_id);")
    op.execute("CREATE INDEX ix_vendor_assignments_vendor_id ON vendor_assignments (vendor_id);")
    op.execute("CREATE INDEX ix_vendor_assignments_status ON vendor_assignments (status);")

    # ── 6. Create order_item_assignments table ─────────────────────────────
    op.execute("""
        CREATE TABLE order_item_assignments (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            vendor_assignment_id UUID NOT NULL
                REFERENCES vendor_assignments(id) ON DELETE CASCADE,
            order_item_id UUID NOT NULL REFERENCES order_items(id) ON DELETE CASCADE,
            quantity INTEGER NOT NULL,
            assigned_amount NUMERIC(10, 2) NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_order_item_assignments_quantity_positive CHECK (quantity > 0)
        );
    """)
    op.execute(
        "CREATE INDEX ix_order_item_assignments_vendor_assignment_id"
        " ON order_item_assignments (vendor_assignment_id);"
    )
    op.execute(
        "CREATE INDEX ix_order_item_assignments_order_item_id"
        " ON order_item_assignments (order_item_id);"
    )

    # ── 7. Create activity_logs table ──────────────────────────────────────
    op.execute("""
        CREATE TABLE activity_logs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID,
            user_type actortype NOT NULL,
            action VARCHAR(100) NOT NULL,
            entity_type VARCHAR(50),
            entity_id VARCHAR(64),
            metadata JSONB,
            ip_address VARCHAR(45),
            user_agent TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_activity_logs_entity ON activity_logs (entity_type, entity_id);")
    op.execute("CREATE INDEX ix_activity_logs_user ON activity_logs (user_type, user_id);")
    op.execute("CREATE INDEX ix_activity_logs_created_at ON activity_logs (created_at);")


def downgrade() -> None:
    op.execute("DROP INDEX IF EXISTS ix_activity_logs_created_at;")
    op.execute("DROP INDEX IF EXISTS ix_activity_logs_user;")
    op.execute("DROP INDEX IF EXISTS ix_activity_logs_entity;")
    op.execute("DROP TABLE IF EXISTS activity_logs;")

    op.execute("DROP INDEX IF EXISTS ix_order_item_assignments_order_item_id;")
    op.execute("DROP INDEX IF EXISTS ix_order_item_assignments_vendor_assignment_id;")
    op.execute("DROP TABLE IF EXISTS order_item_assignments;")

    op.execute("DROP INDEX IF EXISTS ix_vendor_assignments_status;")
    op.execute("DROP INDEX IF EXISTS ix_vendor_assignments_vendor_id;")
    op.execute("DROP INDEX IF EXISTS ix_vendor_assignments_order_id;")
    op.execute("DROP TABLE IF EXISTS vendor_assignments;")

    op.execute("DROP TABLE IF EXISTS vendors;")

    op.execute("DROP INDEX IF EXISTS ix_order_items_order_id;")
    op.execute("DROP TABLE IF EXISTS order_items;")

    op.execute("DROP INDEX IF EXISTS ix_orders_platform_external_id;")
    op.execute("DROP INDEX IF EXISTS ix_orders_order_date;")
    op.execute("DROP TABLE IF EXISTS orders;")

    # ── Drop enum types ────────────────────────────────────────────────────
    op.execute("DROP TYPE IF EXISTS actortype;")
    op.execute("DROP TYPE IF EXISTS assignmentstatus;")
    op.execute("DROP TYPE IF EXISTS assignmenttype;")
    op.execute("DROP TYPE IF EXISTS vendorstatus;")
    op.execute("DROP TYPE IF EXISTS orderstatus;")
    op.execute("DROP TYPE IF EXISTS orderplatform;")
