"""create ledger tables

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261017_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _table_exists(inspector: sa.Inspector, table_name: str) -> bool:
    return table_name in inspector.get_table_names()


def _index_exists(inspector: sa.Inspector, table_name: str, index_name: str) -> bool:
    return index_name in {index["name"] for index in inspector.get_indexes(table_name)}


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not _table_exists(inspector, "tenants"):
        op.create_table(
            "tenants",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("name", sa.String(length=255), nullable=False),
            _created_at(),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists(inspector, "inventory_categories"):
        op.create_table(
            "inventory_categories",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("tenant_id", sa.String(length=36), nullable=False),
            sa.Column("code", sa.String(length=30), nullable=False),
            sa.Column("name", sa.String(length=120), nullable=False),
            sa.Column("field_schema", sa.JSON(), nullable=True),
            sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
            _created_at(),
            _updated_at(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("tenant_id", "code", name="uq_inventory_categories_tenant_code"),
        )

    if not _table_exists(inspector, "inventory_inbound"):
        op.create_table(
            "inventory_inbound",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("tenant_id", sa.String(length=36), nullable=False),
            sa.Column("category_id", sa.String(length=36), nullable=False),
            sa.Column("batch_no", sa.String(length=64), nullable=False),
            sa.Column("serial_no", sa.String(length=64), nullable=True),
            sa.Column("vehicle_no", sa.String(length=64), nullable=True),
            sa.Column("dispatch_date", sa.Date(), nullable=True),
            sa.Column("inbound_date", sa.Date(), nullable=True),
            sa.Column("dispatch_qty", sa.Integer(), nullable=True),
            sa.Column("dispatch_weight", sa.Numeric(14, 3), nullable=True),
            sa.Column("actual_qty", sa.Integer(), nullable=False),
            sa.Column("actual_weight", sa.Numeric(14, 3), nullable=False),
            sa.Column("broken_qty", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("dirty_qty", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("wet_qty", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("shortage_qty", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("excess_qty", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("bill_of_lading", sa.String(length=64), nullable=True),
            sa.Column("contract_no", sa.String(length=64), nullable=True),
            sa.Column("loading_method", sa.String(length=50), nullable=True),
            sa.Column("content_percent", sa.Float(), nullable=True),
            sa.Column("remarks", sa.String(length=500), nullable=True),
            sa.Column("extra_fields", sa.JSON(), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("source", sa.String(length=10), nullable=False),
            sa.Column("created_by", sa.String(length=64), nullable=False),
            sa.Column("updated_by", sa.String(length=64), nullable=True),
            sa.Column("approved_by", sa.String(length=64), nullable=True),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("applied_category_id", sa.String(length=36), nullable=True),
            sa.Column("applied_batch_no", sa.String(length=64), nullable=True),
            sa.Column("applied_qty", sa.Integer(), nullable=True),
            sa.Column("applied_weight", sa.Numeric(14, 3), nullable=True),
            _created_at(),
            _updated_at(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
            sa.ForeignKeyConstraint(["category_id"], ["inventory_categories.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists(inspector, "inventory_inbound_attachments"):
        op.create_table(
            "inventory_inbound_attachments",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("tenant_id", sa.String(length=36), nullable=False),
            sa.Column("inbound_id", sa.String(length=36), nullable=False),
            sa.Column("storage_key", sa.String(length=500), nullable=False),
            sa.Column("content_type", sa.String(length=100), nullable=True),
            sa.Column("created_by", sa.String(length=64), nullable=False),
            _created_at(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
            sa.ForeignKeyConstraint(["inbound_id"], ["inventory_inbound.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists(inspector, "inventory_outbound"):
        op.create_table(
            "inventory_outbound",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("tenant_id", sa.String(length=36), nullable=False),
            sa.Column("inbound_id", sa.String(length=36), nullable=True),
            sa.Column("category_id", sa.String(length=36), nullable=False),
            sa.Column("batch_no", sa.String(length=64), nullable=False),
            sa.Column("outbound_qty", sa.Integer(), nullable=False),
            sa.Column("outbound_weight", sa.Numeric(14, 3), nullable=False),
            sa.Column("outbound_date", sa.Date(), nullable=True),
            sa.Column("destination", sa.String(length=255), nullable=True),
            sa.Column("remarks", sa.String(length=500), nullable=True),
            sa.Column("status", sa.String(length=20), nullable=False),
            sa.Column("created_by", sa.String(length=64), nullable=False),
            sa.Column("approved_by", sa.String(length=64), nullable=False),
            sa.Column("approved_at", sa.DateTime(timezone=True), nullable=False),
            _created_at(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
            sa.ForeignKeyConstraint(["inbound_id"], ["inventory_inbound.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    if not _table_exists(inspector, "inventory_balance"):
        op.create_table(
            "inventory_balance",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("tenant_id", sa.String(length=36), nullable=False),
            sa.Column("category_id", sa.String(length=36), nullable=False),
            sa.Column("batch_no", sa.String(length=64), nullable=False),
            sa.Column("available_qty", sa.Integer(), nullable=False),
            sa.Column("available_weight", sa.Numeric(14, 3), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("tenant_id", "category_id", "batch_no", name="uq_inventory_balance_key"),
        )

    if not _table_exists(inspector, "record_history"):
        op.create_table(
            "record_history",
            sa.Column("id", sa.String(length=36), nullable=False),
            sa.Column("tenant_id", sa.String(length=36), nullable=False),
            sa.Column("record_type", sa.String(length=20), nullable=False),
            sa.Column("record_id", sa.String(length=36), nullable=False),
            sa.Column("action", sa.String(length=20), nullable=False),
            sa.Column("before", sa.JSON(), nullable=True),
            sa.Column("after", sa.JSON(), nullable=True),
            sa.Column("operator", sa.String(length=64), nullable=False),
            sa.Column("operator_role", sa.String(length=20), nullable=False),
            sa.Column("trace_id", sa.String(length=64), nullable=True),
            _created_at(),
            sa.ForeignKeyConstraint(["tenant_id"], ["tenants.id"]),
            sa.PrimaryKeyConstraint("id"),
        )

    inspector = sa.inspect(bind)
    indexes = [
        ("inventory_categories", "ix_inventory_categories_tenant_id", ["tenant_id"]),
        ("inventory_categories", "ix_inventory_categories_tenant_active", ["tenant_id", "is_active"]),
        ("inventory_inbound", "ix_inventory_inbound_tenant_id", ["tenant_id"]),
        ("inventory_inbound", "ix_inventory_inbound_category_id", ["category_id"]),
        (
            "inventory_inbound",
            "ix_inventory_inbound_tenant_status_created_at",
            ["tenant_id", "status", "created_at"],
        ),
        (
            "inventory_inbound",
            "ix_inventory_inbound_tenant_category_batch",
            ["tenant_id", "category_id", "batch_no"],
        ),
        ("inventory_inbound", "ix_inventory_inbound_tenant_inbound_date", ["tenant_id", "inbound_date"]),
        ("inventory_inbound_attachments", "ix_inventory_inbound_attachments_tenant_id", ["tenant_id"]),
        ("inventory_inbound_attachments", "ix_inventory_inbound_attachments_inbound_id", ["inbound_id"]),
        ("inventory_outbound", "ix_inventory_outbound_tenant_id", ["tenant_id"]),
        ("inventory_outbound", "ix_inventory_outbound_inbound_id", ["inbound_id"]),
        ("inventory_outbound", "ix_inventory_outbound_category_id", ["category_id"]),
        ("inventory_outbound", "ix_inventory_outbound_tenant_created_at", ["tenant_id", "created_at"]),
        (
            "inventory_outbound",
            "ix_inventory_outbound_tenant_category_batch",
            ["tenant_id", "category_id", "batch_no"],
        ),
        ("inventory_balance", "ix_inventory_balance_tenant_id", ["tenant_id"]),
        ("record_history", "ix_record_history_tenant_id", ["tenant_id"]),
        ("record_history", "ix_record_history_record", ["record_type", "record_id", "created_at"]),
        ("record_history", "ix_record_history_tenant_created_at", ["tenant_id", "created_at"]),
    ]
    for table_name, index_name, columns in indexes:
        if not _index_exists(inspector, table_name, index_name):
            op.create_index(index_name, table_name, columns, unique=False)


def downgrade() -> None:
    for table_name in (
        "record_history",
        "inventory_balance",
        "inventory_outbound",
        "inventory_inbound_attachments",
        "inventory_inbound",
        "inventory_categories",
        "tenants",
    ):
        op.drop_table(table_name)
