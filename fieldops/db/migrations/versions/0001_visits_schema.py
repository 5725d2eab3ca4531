"""Initial schema for field visits.

- agents
- customers
- visits
- inventory_items
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_visits_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "agents",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("territory", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), server_default="Pending", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_agents_email"),
    )

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("business_name", sa.Text(), nullable=False),
        sa.Column("owner_name", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        sa.Column("phone", sa.Text(), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("business_type", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), server_default="Active", nullable=False),
        sa.Column("location_lat", sa.Float(), nullable=True),
        sa.Column("location_lng", sa.Float(), nullable=True),
        sa.Column("qr_code_url", sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("email", name="uq_customers_email"),
    )
    # Supports the external name/phone substring search used before visits.
    op.create_index("ix_customers_business_name", "customers", ["business_name"])
    op.create_index("ix_customers_phone", "customers", ["phone"])

    op.create_table(
        "visits",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("agent_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("customer_name", sa.Text(), nullable=True),
        sa.Column("business_type", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("risk_assessment", sa.Text(), nullable=True),
        sa.Column("service_recommendations", sa.Text(), nullable=True),
        sa.Column("follow_up_date", sa.Date(), nullable=True),
        sa.Column("status", sa.Text(), server_default="Pending", nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["agent_id"], ["agents.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="RESTRICT"),
    )
    op.create_index("ix_visits_agent_id", "visits", ["agent_id"])
    op.create_index("ix_visits_customer_id", "visits", ["customer_id"])

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("visit_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("capacity", sa.Text(), nullable=True),
        sa.Column("quantity", sa.Integer(), server_default="1", nullable=False),
        sa.Column("install_date", sa.Date(), nullable=True),
        sa.Column("last_refill_date", sa.Date(), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("condition", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), server_default="Valid", nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["visit_id"], ["visits.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_inventory_items_customer_id", "inventory_items", ["customer_id"])
    op.create_index("ix_inventory_items_visit_id", "inventory_items", ["visit_id"])


def downgrade() -> None:
    op.drop_index("ix_inventory_items_visit_id", table_name="inventory_items")
    op.drop_index("ix_inventory_items_customer_id", table_name="inventory_items")
    op.drop_table("inventory_items")
    op.drop_index("ix_visits_customer_id", table_name="visits")
    op.drop_index("ix_visits_agent_id", table_name="visits")
    op.drop_table("visits")
    op.drop_index("ix_customers_phone", table_name="customers")
    op.drop_index("ix_customers_business_name", table_name="customers")
    op.drop_table("customers")
    op.drop_table("agents")
