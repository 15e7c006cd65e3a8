from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base


ADJUSTMENT_REASONS = ("initial", "increase", "decrease", "correction", "damage", "audit")
ITEM_STATUSES = ("active", "inactive")
DEDUPLICATION_STATUSES = ("in_progress", "completed", "failed")


class StockItem(Base):
    __tablename__ = "stock_items"

    id = Column(Integer, primary_key=True)
    sku = Column(String(100), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    location = Column(String(100), nullable=True)
    unit = Column(String(30), nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    quantity_on_hand = Column(Integer, nullable=False, default=0)
    min_quantity = Column(Integer, nullable=True)
    max_quantity = Column(Integer, nullable=True)
    reorder_point = Column(Integer, nullable=True)
    allow_negative = Column(Boolean, nullable=False, default=False)
    status = Column(Enum(*ITEM_STATUSES, name="stock_item_status"), nullable=False, default="active")
    last_adjustment_at = Column(DateTime, nullable=True)
    last_adjustment_by_id = Column(String(100), nullable=True)
    last_adjustment_by_name = Column(String(200), nullable=True)
    last_adjustment_by_role = Column(String(50), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    adjustments = relationship("StockAdjustment", back_populates="item", order_by="StockAdjustment.id")

    @property
    def available_quantity(self) -> int:
        return self.quantity_on_hand or 0

    @property
    def is_below_minimum(self) -> bool:
        return self.min_quantity is not None and self.available_quantity < self.min_quantity

    @property
    def is_above_maximum(self) -> bool:
        return self.max_quantity is not None and self.available_quantity > self.max_quantity

    @property
    def needs_reorder(self) -> bool:
        return self.reorder_point is not None and self.available_quantity <= self.reorder_point

    @property
    def last_adjustment_by(self) -> dict | None:
        if self.last_adjustment_at is None:
            return None
        return {
            "id": self.last_adjustment_by_id,
            "name": self.last_adjustment_by_name,
            "role": self.last_adjustment_by_role,
        }


class StockAdjustment(Base):
    __tablename__ = "stock_adjustments"

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey("stock_items.id"), nullable=False)
    delta = Column(Integer, nullable=False)
    reason = Column(Enum(*ADJUSTMENT_REASONS, name="stock_adjustment_reason"), nullable=False)
    note = Column(Text, nullable=True)
    actor_id = Column(String(100), nullable=True)
    actor_name = Column(String(200), nullable=True)
    actor_role = Column(String(50), nullable=True)
    resulting_quantity = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    item = relationship("StockItem", back_populates="adjustments")

    __table_args__ = (
        CheckConstraint("delta <> 0", name="ck_stock_adjustments_delta_non_zero"),
        Index("ix_stock_adjustments_item_created", "item_id", "created_at"),
    )


class RequestDeduplication(Base):
    __tablename__ = "request_deduplication"

    id = Column(Integer, primary_key=True)
    request_hash = Column(String(64), nullable=False)
    endpoint = Column(String(200), nullable=False)
    method = Column(String(10), nullable=False)
    status = Column(Enum(*DEDUPLICATION_STATUSES, name="deduplication_status"), nullable=False, default="in_progress")
    result_id = Column(String(100), nullable=True)
    result_data = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint("request_hash", "endpoint", "method", name="uq_request_deduplication_key"),
    )


class WarehouseReport(Base):
    __tablename__ = "warehouse_reports"

    id = Column(Integer, primary_key=True)
    folio = Column(String(20), nullable=False, unique=True)
    subsistema = Column(String(200), nullable=False)
    fecha_hora_entrega = Column(String(40), nullable=False)
    fecha_hora_recepcion = Column(String(40), nullable=True)
    turno = Column(String(50), nullable=False, default="")
    tipo_mantenimiento = Column(String(100), nullable=False)
    frecuencia = Column(String(50), nullable=False, default="Eventual")
    template_id = Column(String(100), nullable=True)
    nombre_quien_recibe = Column(String(200), nullable=False)
    nombre_almacenista = Column(String(200), nullable=False)
    nombre_quien_entrega = Column(String(200), nullable=False, default="")
    nombre_almacenista_cierre = Column(String(200), nullable=False, default="")
    herramientas = Column(JSON, nullable=False, default=list)
    refacciones = Column(JSON, nullable=False, default=list)
    observaciones_generales = Column(Text, nullable=True)
    firma_quien_recibe = Column(String(500), nullable=True)
    firma_almacenista = Column(String(500), nullable=True)
    firma_quien_entrega = Column(String(500), nullable=True)
    return_processed_item_ids = Column(JSON, nullable=False, default=list)
    delivery_adjusted_at = Column(DateTime, nullable=True)
    return_adjusted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def line_items(self) -> list[dict]:
        return list(self.herramientas or []) + list(self.refacciones or [])


class WorkReport(Base):
    __tablename__ = "work_reports"

    id = Column(Integer, primary_key=True)
    folio = Column(String(20), nullable=False, unique=True)
    subsistema = Column(String(200), nullable=False)
    ubicacion = Column(String(200), nullable=False)
    fecha = Column(String(10), nullable=False)
    fecha_hora_inicio = Column(String(40), nullable=False)
    fecha_hora_termino = Column(String(40), nullable=False)
    turno = Column(String(50), nullable=False, default="")
    frecuencia = Column(String(50), nullable=False)
    tipo_mantenimiento = Column(String(100), nullable=False)
    template_ids = Column(JSON, nullable=False, default=list)
    trabajadores = Column(JSON, nullable=False, default=list)
    actividades_realizadas = Column(JSON, nullable=False, default=list)
    inspeccion_realizada = Column(Boolean, nullable=False, default=False)
    observaciones_actividad = Column(Text, nullable=True)
    herramientas = Column(JSON, nullable=False, default=list)
    refacciones = Column(JSON, nullable=False, default=list)
    observaciones_generales = Column(Text, nullable=True)
    nombre_responsable = Column(String(200), nullable=False)
    firma_responsable = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
