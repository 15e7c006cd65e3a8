from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ActivityDetail(BaseModel):
    template_id: Optional[str] = None
    nombre: str = Field(..., min_length=1)
    realizado: bool = True
    observaciones: Optional[str] = None
    evidencias: List[str] = Field(default_factory=list)


class WorkReportCreate(BaseModel):
    subsistema: str = Field(..., min_length=1)
    ubicacion: str = Field(..., min_length=1)
    fecha_hora_inicio: str = Field(..., min_length=10)
    fecha_hora_termino: Optional[str] = None
    turno: str = ""
    frecuencia: str = Field(..., min_length=1)
    tipo_mantenimiento: str = Field(..., min_length=1)
    template_id: Optional[str] = None
    template_ids: List[str] = Field(default_factory=list)
    trabajadores: List[str] = Field(..., min_length=1)
    actividades_realizadas: List[ActivityDetail] = Field(default_factory=list)
    inspeccion_realizada: bool = False
    observaciones_actividad: Optional[str] = None
    herramientas: List[str] = Field(default_factory=list)
    refacciones: List[str] = Field(default_factory=list)
    observaciones_generales: Optional[str] = None
    nombre_responsable: str = Field(..., min_length=1)
    firma_responsable: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("trabajadores")
    @classmethod
    def workers_not_blank(cls, value: List[str]) -> List[str]:
        cleaned = [worker.strip() for worker in value if worker and worker.strip()]
        if not cleaned:
            raise ValueError("At least one worker is required")
        return cleaned


class WorkReportResponse(BaseModel):
    id: int
    folio: str
    subsistema: str
    ubicacion: str
    fecha: str
    fecha_hora_inicio: str
    fecha_hora_termino: str
    turno: str
    frecuencia: str
    tipo_mantenimiento: str
    template_ids: List[str]
    trabajadores: List[str]
    actividades_realizadas: List[ActivityDetail]
    inspeccion_realizada: bool
    observaciones_actividad: Optional[str] = None
    herramientas: List[str]
    refacciones: List[str]
    observaciones_generales: Optional[str] = None
    nombre_responsable: str
    firma_responsable: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
