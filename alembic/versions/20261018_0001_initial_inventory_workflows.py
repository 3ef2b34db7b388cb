"""initial inventory workflow schema

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261018_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True)


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True)


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("base_currency", sa.String(length=3), server_default="USD", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="1", nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=True),
        sa.Column("role", sa.String(length=30), server_default="staff", nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_tenant_id", "users", ["tenant_id"], unique=False)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_tenant_role", "users", ["tenant_id", "role"], unique=False)

    op.create_table(
        "categories",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_categories_tenant_name"),
    )
    op.create_index("ix_categories_tenant_id", "categories", ["tenant_id"], unique=False)

    op.create_table(
        "items",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("category_id", sa.String(length=36), nullable=True),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("uom", sa.String(length=20), server_default="pcs", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="1", nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "code", name="uq_items_tenant_code"),
    )
    op.create_index("ix_items_tenant_id", "items", ["tenant_id"], unique=False)
    op.create_index("ix_items_category_id", "items", ["category_id"], unique=False)

    op.create_table(
        "locations",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("parent_id", sa.String(length=36), nullable=True),
        sa.Column("code", sa.String(length=30), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("type", sa.String(length=30), server_default="WAREHOUSE", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="1", nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["parent_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "code", name="uq_locations_tenant_code"),
    )
    op.create_index("ix_locations_tenant_id", "locations", ["tenant_id"], unique=False)
    op.create_index("ix_locations_parent_id", "locations", ["parent_id"], unique=False)
    op.create_index("ix_locations_tenant_active", "locations", ["tenant_id", "is_active"], unique=False)

    op.create_table(
        "suppliers",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("code", sa.String(length=30), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="1", nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "code", name="uq_suppliers_tenant_code"),
    )
    op.create_index("ix_suppliers_tenant_id", "suppliers", ["tenant_id"], unique=False)

    op.create_table(
        "sequence_counters",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=60), nullable=False),
        sa.Column("current_value", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_sequence_counters_tenant_name"),
    )
    op.create_index("ix_sequence_counters_tenant_id", "sequence_counters", ["tenant_id"], unique=False)

    op.create_table(
        "inventory_positions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("item_id", sa.String(length=36), nullable=False),
        sa.Column("location_id", sa.String(length=36), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("average_cost", sa.Numeric(14, 4), nullable=False),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "tenant_id",
            "item_id",
            "location_id",
            name="uq_inventory_positions_tenant_item_location",
        ),
    )
    op.create_index("ix_inventory_positions_tenant_id", "inventory_positions", ["tenant_id"], unique=False)
    op.create_index("ix_inventory_positions_item_id", "inventory_positions", ["item_id"], unique=False)
    op.create_index("ix_inventory_positions_location_id", "inventory_positions", ["location_id"], unique=False)
    op.create_index(
        "ix_inventory_positions_tenant_location",
        "inventory_positions",
        ["tenant_id", "location_id"],
        unique=False,
    )

    op.create_table(
        "inventory_transactions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("item_id", sa.String(length=36), nullable=False),
        sa.Column("location_id", sa.String(length=36), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("qty_delta", sa.Numeric(14, 3), nullable=False),
        sa.Column("unit_cost", sa.Numeric(14, 4), nullable=True),
        sa.Column("reference_type", sa.String(length=30), nullable=False),
        sa.Column("reference_id", sa.String(length=36), nullable=True),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.Column("created_by_id", sa.String(length=36), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_inventory_transactions_tenant_id", "inventory_transactions", ["tenant_id"], unique=False)
    op.create_index("ix_inventory_transactions_item_id", "inventory_transactions", ["item_id"], unique=False)
    op.create_index("ix_inventory_transactions_location_id", "inventory_transactions", ["location_id"], unique=False)
    op.create_index("ix_inventory_transactions_reference_id", "inventory_transactions", ["reference_id"], unique=False)
    op.create_index(
        "ix_inventory_transactions_tenant_created_at",
        "inventory_transactions",
        ["tenant_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_inventory_transactions_tenant_item_location_created_at",
        "inventory_transactions",
        ["tenant_id", "item_id", "location_id", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_inventory_transactions_reference",
        "inventory_transactions",
        ["reference_type", "reference_id"],
        unique=False,
    )

    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("po_number", sa.String(length=30), nullable=False),
        sa.Column("supplier_id", sa.String(length=36), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("total_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), server_default="USD", nullable=False),
        sa.Column("expected_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.String(length=36), nullable=False),
        sa.Column("approved_by_id", sa.String(length=36), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["approved_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "po_number", name="uq_purchase_orders_tenant_po_number"),
    )
    op.create_index("ix_purchase_orders_tenant_id", "purchase_orders", ["tenant_id"], unique=False)
    op.create_index("ix_purchase_orders_supplier_id", "purchase_orders", ["supplier_id"], unique=False)
    op.create_index("ix_purchase_orders_created_by_id", "purchase_orders", ["created_by_id"], unique=False)
    op.create_index(
        "ix_purchase_orders_tenant_status_created_at",
        "purchase_orders",
        ["tenant_id", "status", "created_at"],
        unique=False,
    )

    op.create_table(
        "purchase_order_lines",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("purchase_order_id", sa.String(length=36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.String(length=36), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("unit_cost", sa.Numeric(14, 4), nullable=False),
        sa.Column("total_cost", sa.Numeric(14, 2), nullable=False),
        sa.Column("received_qty", sa.Numeric(14, 3), nullable=False),
        sa.Column("notes", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["purchase_order_id"], ["purchase_orders.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_purchase_order_lines_purchase_order_id",
        "purchase_order_lines",
        ["purchase_order_id"],
        unique=False,
    )
    op.create_index("ix_purchase_order_lines_item_id", "purchase_order_lines", ["item_id"], unique=False)

    op.create_table(
        "receivings",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("receiving_number", sa.String(length=30), nullable=False),
        sa.Column("purchase_order_id", sa.String(length=36), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("proc_verified_by_id", sa.String(length=36), nullable=True),
        sa.Column("proc_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("proc_notes", sa.Text(), nullable=True),
        sa.Column("qc_inspected_by_id", sa.String(length=36), nullable=True),
        sa.Column("qc_inspected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("qc_result", sa.String(length=20), nullable=True),
        sa.Column("qc_notes", sa.Text(), nullable=True),
        sa.Column("warehouse_received_by_id", sa.String(length=36), nullable=True),
        sa.Column("warehouse_received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("location_id", sa.String(length=36), nullable=True),
        sa.Column("batch_number", sa.String(length=100), nullable=True),
        sa.Column("warehouse_notes", sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["purchase_order_id"], ["purchase_orders.id"]),
        sa.ForeignKeyConstraint(["proc_verified_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["qc_inspected_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["warehouse_received_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "receiving_number", name="uq_receivings_tenant_number"),
    )
    op.create_index("ix_receivings_tenant_id", "receivings", ["tenant_id"], unique=False)
    op.create_index("ix_receivings_purchase_order_id", "receivings", ["purchase_order_id"], unique=False)
    op.create_index(
        "ix_receivings_tenant_status_created_at",
        "receivings",
        ["tenant_id", "status", "created_at"],
        unique=False,
    )

    op.create_table(
        "receiving_lines",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("receiving_id", sa.String(length=36), nullable=False),
        sa.Column("purchase_order_line_id", sa.String(length=36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.String(length=36), nullable=False),
        sa.Column("expected_qty", sa.Numeric(14, 3), nullable=False),
        sa.Column("received_qty", sa.Numeric(14, 3), nullable=False),
        sa.Column("accepted_qty", sa.Numeric(14, 3), nullable=False),
        sa.Column("rejected_qty", sa.Numeric(14, 3), nullable=False),
        sa.Column("unit_cost", sa.Numeric(14, 4), nullable=False),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(["receiving_id"], ["receivings.id"]),
        sa.ForeignKeyConstraint(["purchase_order_line_id"], ["purchase_order_lines.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_receiving_lines_receiving_id", "receiving_lines", ["receiving_id"], unique=False)
    op.create_index(
        "ix_receiving_lines_purchase_order_line_id",
        "receiving_lines",
        ["purchase_order_line_id"],
        unique=False,
    )
    op.create_index("ix_receiving_lines_item_id", "receiving_lines", ["item_id"], unique=False)

    op.create_table(
        "internal_requests",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("request_number", sa.String(length=30), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.String(length=36), nullable=False),
        sa.Column("fulfilled_by_id", sa.String(length=36), nullable=True),
        sa.Column("fulfilled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("location_id", sa.String(length=36), nullable=True),
        sa.Column("confirmed_by_id", sa.String(length=36), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("has_discrepancy", sa.Boolean(), server_default="0", nullable=False),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["fulfilled_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["confirmed_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["location_id"], ["locations.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "request_number", name="uq_internal_requests_tenant_number"),
    )
    op.create_index("ix_internal_requests_tenant_id", "internal_requests", ["tenant_id"], unique=False)
    op.create_index("ix_internal_requests_created_by_id", "internal_requests", ["created_by_id"], unique=False)
    op.create_index(
        "ix_internal_requests_tenant_status_created_at",
        "internal_requests",
        ["tenant_id", "status", "created_at"],
        unique=False,
    )

    op.create_table(
        "internal_request_lines",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("request_id", sa.String(length=36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.String(length=36), nullable=False),
        sa.Column("requested_qty", sa.Numeric(14, 3), nullable=False),
        sa.Column("issued_qty", sa.Numeric(14, 3), nullable=False),
        sa.Column("confirmed_qty", sa.Numeric(14, 3), nullable=True),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(["request_id"], ["internal_requests.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_internal_request_lines_request_id", "internal_request_lines", ["request_id"], unique=False)
    op.create_index("ix_internal_request_lines_item_id", "internal_request_lines", ["item_id"], unique=False)

    op.create_table(
        "transfers",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=False),
        sa.Column("transfer_number", sa.String(length=30), nullable=False),
        sa.Column("from_location_id", sa.String(length=36), nullable=False),
        sa.Column("to_location_id", sa.String(length=36), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("estimated_value", sa.Numeric(14, 2), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_id", sa.String(length=36), nullable=False),
        sa.Column("approved_by_id", sa.String(length=36), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("fulfilled_by_id", sa.String(length=36), nullable=True),
        sa.Column("fulfilled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_by_id", sa.String(length=36), nullable=True),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["from_location_id"], ["locations.id"]),
        sa.ForeignKeyConstraint(["to_location_id"], ["locations.id"]),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["approved_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["fulfilled_by_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["received_by_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "transfer_number", name="uq_transfers_tenant_number"),
    )
    op.create_index("ix_transfers_tenant_id", "transfers", ["tenant_id"], unique=False)
    op.create_index("ix_transfers_from_location_id", "transfers", ["from_location_id"], unique=False)
    op.create_index("ix_transfers_to_location_id", "transfers", ["to_location_id"], unique=False)
    op.create_index("ix_transfers_created_by_id", "transfers", ["created_by_id"], unique=False)
    op.create_index(
        "ix_transfers_tenant_status_created_at",
        "transfers",
        ["tenant_id", "status", "created_at"],
        unique=False,
    )

    op.create_table(
        "transfer_lines",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("transfer_id", sa.String(length=36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.String(length=36), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False),
        sa.Column("received_qty", sa.Numeric(14, 3), nullable=False),
        sa.Column("unit_cost", sa.Numeric(14, 4), nullable=False),
        sa.Column("notes", sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(["transfer_id"], ["transfers.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_transfer_lines_transfer_id", "transfer_lines", ["transfer_id"], unique=False)
    op.create_index("ix_transfer_lines_item_id", "transfer_lines", ["item_id"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tenant_id", sa.String(length=36), nullable=True),
        sa.Column("actor_user_id", sa.String(length=36), nullable=True),
        sa.Column("action", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=True),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_tenant_id", "audit_logs", ["tenant_id"], unique=False)
    op.create_index("ix_audit_logs_actor_user_id", "audit_logs", ["actor_user_id"], unique=False)
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"], unique=False)
    op.create_index("ix_audit_logs_tenant_created_at", "audit_logs", ["tenant_id", "created_at"], unique=False)
    op.create_index(
        "ix_audit_logs_tenant_action_created_at",
        "audit_logs",
        ["tenant_id", "action", "created_at"],
        unique=False,
    )
    op.create_index(
        "ix_audit_logs_tenant_entity",
        "audit_logs",
        ["tenant_id", "entity_type", "entity_id"],
        unique=False,
    )


def downgrade() -> None:
    for table_name in (
        "audit_logs",
        "transfer_lines",
        "transfers",
        "internal_request_lines",
        "internal_requests",
        "receiving_lines",
        "receivings",
        "purchase_order_lines",
        "purchase_orders",
        "inventory_transactions",
        "inventory_positions",
        "sequence_counters",
        "suppliers",
        "locations",
        "items",
        "categories",
        "users",
        "tenants",
    ):
        op.drop_table(table_name)
