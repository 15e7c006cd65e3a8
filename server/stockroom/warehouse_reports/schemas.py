from datetime import datetime
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


REQUIRED_REPORT_FIELDS = frozenset(
    {
        "subsistema",
        "fecha_hora_entrega",
        "turno",
        "tipo_mantenimiento",
        "frecuencia",
        "nombre_quien_recibe",
        "nombre_almacenista",
        "nombre_quien_entrega",
        "nombre_almacenista_cierre",
    }
)


class Evidence(BaseModel):
    id: str
    preview_url: str
    base64: Optional[str] = None


class WarehouseLineItem(BaseModel):
    id: str = Field(..., min_length=1)
    sku: Optional[str] = None
    name: str
    units: int = Field(..., ge=0)
    observations: str = ""
    evidences: List[Evidence] = Field(default_factory=list)


class WarehouseReportBase(BaseModel):
    subsistema: str = Field(..., min_length=1)
    fecha_hora_entrega: str = Field(..., min_length=1)
    fecha_hora_recepcion: Optional[str] = None
    turno: str
    tipo_mantenimiento: str = Field(..., min_length=1)
    frecuencia: Optional[str] = None
    template_id: Optional[str] = None
    nombre_quien_recibe: str = Field(..., min_length=1)
    nombre_almacenista: str = Field(..., min_length=1)
    nombre_quien_entrega: Optional[str] = None
    nombre_almacenista_cierre: Optional[str] = None
    observaciones_generales: Optional[str] = None
    firma_quien_recibe: Optional[str] = None
    firma_almacenista: Optional[str] = None
    firma_quien_entrega: Optional[str] = None


class WarehouseReportCreate(WarehouseReportBase):
    herramientas: List[WarehouseLineItem] = Field(default_factory=list)
    refacciones: List[WarehouseLineItem] = Field(default_factory=list)

    @model_validator(mode="after")
    def line_item_ids_unique(self):
        seen: set[str] = set()
        for item in [*self.herramientas, *self.refacciones]:
            if item.id in seen:
                raise ValueError(f"Duplicate line item id: {item.id}")
            seen.add(item.id)
        return self


class WarehouseReportUpdate(BaseModel):
    subsistema: Optional[str] = Field(default=None, min_length=1)
    fecha_hora_entrega: Optional[str] = Field(default=None, min_length=1)
    fecha_hora_recepcion: Optional[str] = None
    turno: Optional[str] = None
    tipo_mantenimiento: Optional[str] = Field(default=None, min_length=1)
    frecuencia: Optional[str] = None
    template_id: Optional[str] = None
    nombre_quien_recibe: Optional[str] = Field(default=None, min_length=1)
    nombre_almacenista: Optional[str] = Field(default=None, min_length=1)
    nombre_quien_entrega: Optional[str] = None
    nombre_almacenista_cierre: Optional[str] = None
    observaciones_generales: Optional[str] = None
    firma_quien_recibe: Optional[str] = None
    firma_almacenista: Optional[str] = None
    firma_quien_entrega: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def required_fields_not_cleared(self):
        cleared = sorted(
            name for name in self.model_fields_set if name in REQUIRED_REPORT_FIELDS and getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"Fields cannot be cleared: {', '.join(cleared)}")
        return self


class WarehouseReportReturn(BaseModel):
    fecha_hora_recepcion: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("fecha_hora_recepcion", "fechaHoraRecepcion"),
    )


class StockAdjustmentFailure(BaseModel):
    sku: str
    reason: str
    code: str


class StockAdjustmentSummaryResponse(BaseModel):
    processed: int
    failed: List[StockAdjustmentFailure] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class WarehouseReportResponse(WarehouseReportBase):
    id: int
    folio: str
    frecuencia: str
    nombre_quien_entrega: str
    nombre_almacenista_cierre: str
    herramientas: List[WarehouseLineItem]
    refacciones: List[WarehouseLineItem]
    return_processed_item_ids: List[str] = Field(default_factory=list)
    delivery_adjusted_at: Optional[datetime] = None
    return_adjusted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    fecha_entrega: str = ""
    responsable_almacen: str = ""
    responsable_recepcion: str = ""
    stock_adjustments: Optional[StockAdjustmentSummaryResponse] = None


class WarehouseReportListResponse(BaseModel):
    data: List[WarehouseReportResponse]
    total: int
    limit: int
    offset: int
