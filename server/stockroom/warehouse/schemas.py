from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


ItemStatus = Literal["active", "inactive"]
AdjustmentReason = Literal["initial", "increase", "decrease", "correction", "damage", "audit"]


class StockItemCreate(BaseModel):
    sku: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    unit: Optional[str] = None
    quantity_on_hand: int = Field(default=0, ge=0)
    min_quantity: Optional[int] = Field(default=None, ge=0)
    max_quantity: Optional[int] = Field(default=None, ge=0)
    reorder_point: Optional[int] = Field(default=None, ge=0)
    allow_negative: bool = False
    tags: List[str] = Field(default_factory=list)
    status: ItemStatus = "active"

    model_config = ConfigDict(extra="forbid")


class StockItemUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    unit: Optional[str] = None
    min_quantity: Optional[int] = Field(default=None, ge=0)
    max_quantity: Optional[int] = Field(default=None, ge=0)
    reorder_point: Optional[int] = Field(default=None, ge=0)
    allow_negative: Optional[bool] = None
    tags: Optional[List[str]] = None
    status: Optional[ItemStatus] = None

    model_config = ConfigDict(extra="forbid")


class ActorReference(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None


class StockItemResponse(BaseModel):
    id: int
    sku: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    unit: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    quantity_on_hand: int
    available_quantity: int
    min_quantity: Optional[int] = None
    max_quantity: Optional[int] = None
    reorder_point: Optional[int] = None
    allow_negative: bool
    status: ItemStatus
    is_below_minimum: bool
    is_above_maximum: bool
    needs_reorder: bool
    last_adjustment_at: Optional[datetime] = None
    last_adjustment_by: Optional[ActorReference] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StockAdjustmentCreate(BaseModel):
    delta: int = Field(..., description="Signed, non-zero quantity change.")
    reason: AdjustmentReason
    note: Optional[str] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("delta")
    @classmethod
    def delta_not_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("delta must not be zero")
        return value


class StockAdjustmentResponse(BaseModel):
    id: int
    item_id: int
    delta: int
    reason: AdjustmentReason
    note: Optional[str] = None
    actor_id: Optional[str] = None
    actor_name: Optional[str] = None
    actor_role: Optional[str] = None
    resulting_quantity: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StockAdjustmentResult(BaseModel):
    item: StockItemResponse
    adjustment: StockAdjustmentResponse
