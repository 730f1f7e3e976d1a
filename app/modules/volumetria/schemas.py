# app/modules/volumetria/schemas.py
from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict, Any, List
from datetime import datetime

from app.shared.schemas.common import BaseResponse, AnalysisPeriod
from app.shared.schemas.volumetria import (
    SupplyStatus,
    RuptureType,
    ReadingSource,
    SupplyThresholds,
    CategoryThresholds,
    SlotCapacity,
    SlotSupplyStatus,
    RuptureEventInfo,
)


# =====================================================
# REQUESTS
# =====================================================

class VolumetryProductUpsert(BaseModel):
    id: Optional[str] = Field(None, max_length=64, description="ID do produto (padrão: EAN)")
    ean: str = Field(..., min_length=1, max_length=32)
    description: str = Field(..., min_length=1, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    brand: Optional[str] = Field(None, max_length=100)
    width_cm: float = Field(..., gt=0)
    height_cm: float = Field(..., gt=0)
    depth_cm: float = Field(..., gt=0)
    weight_kg: float = Field(..., gt=0)
    stackable: bool = False
    max_vertical_layers: Optional[int] = Field(None, gt=0)
    sale_price: Optional[float] = Field(None, ge=0)
    margin_percent: Optional[float] = Field(None, ge=0, le=100)

    @field_validator('ean', 'description')
    @classmethod
    def strip_text(cls, v: str) -> str:
        if not v.strip():
            raise ValueError('O campo não pode estar vazio')
        return v.strip()


class StockReadingCreate(BaseModel):
    store_id: str = Field(..., min_length=1)
    slot_id: str = Field(..., min_length=1)
    current_quantity: int = Field(..., ge=0, description="Quantidade atual no slot")
    source: ReadingSource = ReadingSource.CONTAGEM_MANUAL
    read_at: Optional[datetime] = Field(None, description="Data/hora da leitura (padrão: agora)")


class ThresholdsUpdate(SupplyThresholds):
    pass


# =====================================================
# RESPONSES
# =====================================================

class ProductVolumetry(BaseModel):
    id: str
    ean: Optional[str] = None
    description: Optional[str] = None
    width_cm: Optional[float] = None
    height_cm: Optional[float] = None
    depth_cm: Optional[float] = None
    weight_kg: Optional[float] = None


class ProductLookupResponse(BaseModel):
    product: Optional[ProductVolumetry] = None


class CatalogProduct(BaseModel):
    id: str
    name: str
    ean: Optional[str] = None
    sku: Optional[str] = None
    volumetry: Optional[Dict[str, Optional[float]]] = None
    has_volumetry: bool = False


class ProductSearchResponse(BaseModel):
    products: List[CatalogProduct]
    total: int
    has_more: bool


class SupplyStatusResponse(BaseResponse):
    status: SlotSupplyStatus
    detailed_capacity: SlotCapacity
    product: Dict[str, Any]
    slot: Dict[str, Any]


class CriticalSlot(BaseModel):
    slot_id: str
    product_id: str
    product_description: str
    store_id: str
    supply_status: SupplyStatus
    occupancy: float
    last_reading: datetime
    recent_rupture_events: int


class CriticalSlotsResponse(BaseResponse):
    critical_slots: List[CriticalSlot]
    total_critical_slots: int
    period: Optional[AnalysisPeriod] = None


class StockReadingResponse(BaseResponse):
    reading_id: int
    status: SlotSupplyStatus
    rupture_type: Optional[RuptureType] = None
    opened_event: Optional[RuptureEventInfo] = None
    closed_event: Optional[RuptureEventInfo] = None


class ThresholdsResponse(BaseResponse):
    default: SupplyThresholds
    categories: List[CategoryThresholds]
