"""create_portal_tables

Revision ID: 5b1e0c7d2a9f
Revises:
Create Date: 2026-10-16 09:12:44.318205

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '5b1e0c7d2a9f'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

taxpayer_type = sa.Enum("NATURAL", "JURIDICA", name="taxpayertype")
taxpayer_status = sa.Enum(
    "ACTIVO", "SUSPENDIDO", "BLOQUEADO", "MOROSO", name="taxpayerstatus"
)
commercial_category = sa.Enum(
    "NONE", "CLASE_A", "CLASE_B", "CLASE_C", name="commercialcategory"
)
tax_type = sa.Enum("VEHICULO", "CONSTRUCCION", "BASURA", "COMERCIO", name="taxtype")
transaction_status = sa.Enum("PAGADO", "PENDIENTE", "ANULADO", name="transactionstatus")
payment_method = sa.Enum(
    "EFECTIVO", "TARJETA", "CHEQUE", "ONLINE", "ARREGLO_PAGO", name="paymentmethod"
)
request_type = sa.Enum(
    "VOID_TRANSACTION", "PAYMENT_ARRANGEMENT", "UPDATE_TAXPAYER", name="requesttype"
)
request_status = sa.Enum(
    "PENDING", "APPROVED", "REJECTED", "ARCHIVED", name="requeststatus"
)


def upgrade() -> None:
    """Create taxpayers, transactions, admin_requests and system_config."""
    op.create_table(
        "taxpayers",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("taxpayer_number", sa.String(length=20), nullable=False),
        sa.Column("type", taxpayer_type, nullable=False),
        sa.Column("status", taxpayer_status, nullable=False),
        sa.Column("doc_id", sa.String(length=50), nullable=False),
        sa.Column("dv", sa.String(length=4), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("address", sa.String(length=500), nullable=False),
        sa.Column("corregimiento", sa.String(length=100), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("has_commercial_activity", sa.Boolean(), nullable=False),
        sa.Column("commercial_category", commercial_category, nullable=True),
        sa.Column("commercial_name", sa.String(length=255), nullable=True),
        sa.Column("has_construction", sa.Boolean(), nullable=False),
        sa.Column("has_garbage_service", sa.Boolean(), nullable=False),
        sa.Column("vehicles", postgresql.JSONB(), nullable=False),
        sa.Column("balance", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("taxpayer_number"),
    )
    op.create_index("ix_taxpayers_doc_id", "taxpayers", ["doc_id"])

    op.create_table(
        "transactions",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("taxpayer_id", sa.String(length=36), nullable=False),
        sa.Column("tax_type", tax_type, nullable=False),
        sa.Column("amount", sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("time", sa.String(length=8), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", transaction_status, nullable=False),
        sa.Column("payment_method", payment_method, nullable=False),
        sa.Column("teller_name", sa.String(length=255), nullable=False),
        sa.Column("metadata", postgresql.JSONB(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["taxpayer_id"], ["taxpayers.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_transactions_taxpayer_id", "transactions", ["taxpayer_id"])
    op.create_index("ix_transactions_date", "transactions", ["date"])

    op.create_table(
        "admin_requests",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("type", request_type, nullable=False),
        sa.Column("status", request_status, nullable=False),
        sa.Column("requester_name", sa.String(length=255), nullable=False),
        sa.Column("taxpayer_name", sa.String(length=255), nullable=False),
        sa.Column("taxpayer_id", sa.String(length=36), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("transaction_id", sa.String(length=64), nullable=True),
        sa.Column("total_debt", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column("payload", postgresql.JSONB(), nullable=True),
        sa.Column("response_note", sa.Text(), nullable=True),
        sa.Column("approved_amount", sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column(
            "approved_total_debt", sa.Numeric(precision=12, scale=2), nullable=True
        ),
        sa.Column("installments", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_admin_requests_status", "admin_requests", ["status"])

    op.create_table(
        "system_config",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("config", postgresql.JSONB(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """Drop portal tables and their enum types."""
    op.drop_table("system_config")
    op.drop_index("ix_admin_requests_status", table_name="admin_requests")
    op.drop_table("admin_requests")
    op.drop_index("ix_transactions_date", table_name="transactions")
    op.drop_index("ix_transactions_taxpayer_id", table_name="transactions")
    op.drop_table("transactions")
    op.drop_index("ix_taxpayers_doc_id", table_name="taxpayers")
    op.drop_table("taxpayers")

    bind = op.get_bind()
    for enum_type in (
        request_status,
        request_type,
        payment_method,
        transaction_status,
        tax_type,
        commercial_category,
        taxpayer_status,
        taxpayer_type,
    ):
        enum_type.drop(bind, checkfirst=True)
