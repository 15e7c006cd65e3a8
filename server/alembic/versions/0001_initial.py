"""stock ledger, request deduplication and reports

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "stock_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sku", sa.String(length=100), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("category", sa.String(length=100)),
        sa.Column("location", sa.String(length=100)),
        sa.Column("unit", sa.String(length=30)),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("quantity_on_hand", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("min_quantity", sa.Integer()),
        sa.Column("max_quantity", sa.Integer()),
        sa.Column("reorder_point", sa.Integer()),
        sa.Column("allow_negative", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "status",
            sa.Enum("active", "inactive", name="stock_item_status"),
            nullable=False,
            server_default="active",
        ),
        sa.Column("last_adjustment_at", sa.DateTime()),
        sa.Column("last_adjustment_by_id", sa.String(length=100)),
        sa.Column("last_adjustment_by_name", sa.String(length=200)),
        sa.Column("last_adjustment_by_role", sa.String(length=50)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "stock_adjustments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("stock_items.id"), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column(
            "reason",
            sa.Enum(
                "initial",
                "increase",
                "decrease",
                "correction",
                "damage",
                "audit",
                name="stock_adjustment_reason",
            ),
            nullable=False,
        ),
        sa.Column("note", sa.Text()),
        sa.Column("actor_id", sa.String(length=100)),
        sa.Column("actor_name", sa.String(length=200)),
        sa.Column("actor_role", sa.String(length=50)),
        sa.Column("resulting_quantity", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("delta <> 0", name="ck_stock_adjustments_delta_non_zero"),
    )
    op.create_index("ix_stock_adjustments_item_created", "stock_adjustments", ["item_id", "created_at"])

    op.create_table(
        "request_deduplication",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("request_hash", sa.String(length=64), nullable=False),
        sa.Column("endpoint", sa.String(length=200), nullable=False),
        sa.Column("method", sa.String(length=10), nullable=False),
        sa.Column(
            "status",
            sa.Enum("in_progress", "completed", "failed", name="deduplication_status"),
            nullable=False,
        ),
        sa.Column("result_id", sa.String(length=100)),
        sa.Column("result_data", sa.JSON()),
        sa.Column("error", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("request_hash", "endpoint", "method", name="uq_request_deduplication_key"),
    )
    op.create_index("ix_request_deduplication_expires_at", "request_deduplication", ["expires_at"])

    op.create_table(
        "warehouse_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("folio", sa.String(length=20), nullable=False, unique=True),
        sa.Column("subsistema", sa.String(length=200), nullable=False),
        sa.Column("fecha_hora_entrega", sa.String(length=40), nullable=False),
        sa.Column("fecha_hora_recepcion", sa.String(length=40)),
        sa.Column("turno", sa.String(length=50), nullable=False),
        sa.Column("tipo_mantenimiento", sa.String(length=100), nullable=False),
        sa.Column("frecuencia", sa.String(length=50), nullable=False),
        sa.Column("template_id", sa.String(length=100)),
        sa.Column("nombre_quien_recibe", sa.String(length=200), nullable=False),
        sa.Column("nombre_almacenista", sa.String(length=200), nullable=False),
        sa.Column("nombre_quien_entrega", sa.String(length=200), nullable=False),
        sa.Column("nombre_almacenista_cierre", sa.String(length=200), nullable=False),
        sa.Column("herramientas", sa.JSON(), nullable=False),
        sa.Column("refacciones", sa.JSON(), nullable=False),
        sa.Column("observaciones_generales", sa.Text()),
        sa.Column("firma_quien_recibe", sa.String(length=500)),
        sa.Column("firma_almacenista", sa.String(length=500)),
        sa.Column("firma_quien_entrega", sa.String(length=500)),
        sa.Column("return_processed_item_ids", sa.JSON(), nullable=False),
        sa.Column("delivery_adjusted_at", sa.DateTime()),
        sa.Column("return_adjusted_at", sa.DateTime()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "work_reports",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("folio", sa.String(length=20), nullable=False, unique=True),
        sa.Column("subsistema", sa.String(length=200), nullable=False),
        sa.Column("ubicacion", sa.String(length=200), nullable=False),
        sa.Column("fecha", sa.String(length=10), nullable=False),
        sa.Column("fecha_hora_inicio", sa.String(length=40), nullable=False),
        sa.Column("fecha_hora_termino", sa.String(length=40), nullable=False),
        sa.Column("turno", sa.String(length=50), nullable=False),
        sa.Column("frecuencia", sa.String(length=50), nullable=False),
        sa.Column("tipo_mantenimiento", sa.String(length=100), nullable=False),
        sa.Column("template_ids", sa.JSON(), nullable=False),
        sa.Column("trabajadores", sa.JSON(), nullable=False),
        sa.Column("actividades_realizadas", sa.JSON(), nullable=False),
        sa.Column("inspeccion_realizada", sa.Boolean(), nullable=False),
        sa.Column("observaciones_actividad", sa.Text()),
        sa.Column("herramientas", sa.JSON(), nullable=False),
        sa.Column("refacciones", sa.JSON(), nullable=False),
        sa.Column("observaciones_generales", sa.Text()),
        sa.Column("nombre_responsable", sa.String(length=200), nullable=False),
        sa.Column("firma_responsable", sa.String(length=500)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("work_reports")
    op.drop_table("warehouse_reports")
    op.drop_index("ix_request_deduplication_expires_at", table_name="request_deduplication")
    op.drop_table("request_deduplication")
    op.drop_index("ix_stock_adjustments_item_created", table_name="stock_adjustments")
    op.drop_table("stock_adjustments")
    op.drop_table("stock_items")
    sa.Enum(name="deduplication_status").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="stock_adjustment_reason").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="stock_item_status").drop(op.get_bind(), checkfirst=True)
