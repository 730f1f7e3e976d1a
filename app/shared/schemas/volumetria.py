# app/shared/schemas/volumetria.py

"""
Modelos de domínio de volumetria de gôndola e ruptura.

Entrada e saída das funções de cálculo em
app/shared/services/volumetria_calculations.py
"""

from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
from enum import Enum

# =====================================================
# ENUMS
# =====================================================

class SupplyStatus(str, Enum):
    """Nível de abastecimento de um slot"""
    BOM = "BOM"
    REGULAR = "REGULAR"
    RUIM = "RUIM"

class RuptureType(str, Enum):
    TOTAL = "total"
    FUNCIONAL = "funcional"

class ShelfLevel(str, Enum):
    OLHOS = "olhos"
    MAOS = "maos"
    PES = "pes"

class ReadingSource(str, Enum):
    CONTAGEM_MANUAL = "contagem_manual"
    APP_MOBILE = "app_mobile"
    VISAO_COMPUTACIONAL = "visao_computacional"

# =====================================================
# MODELOS DE DOMÍNIO (entrada dos cálculos)
# =====================================================

class VolumetryProductData(BaseModel):
    """Produto (SKU) com dados de volumetria"""
    product_id: str
    ean: str = ""
    description: str = ""
    category: Optional[str] = None
    brand: Optional[str] = None
    width_cm: float
    height_cm: float
    depth_cm: float
    stackable: bool = False
    max_vertical_layers: Optional[int] = None
    sale_price: float = 0.0
    margin_percent: Optional[float] = None

class ShelfData(BaseModel):
    """Estrutura física da prateleira"""
    shelf_id: str
    gondola_id: str = ""
    store_id: str = ""
    usable_width_cm: float = 0.0
    usable_depth_cm: float
    free_height_cm: float
    level: ShelfLevel = ShelfLevel.MAOS

class PlanogramSlotData(BaseModel):
    """Posição do produto na prateleira"""
    slot_id: str
    store_id: str = ""
    shelf_id: str = ""
    product_id: str = ""
    position_x_cm: float = 0.0
    slot_width_cm: float
    defined_facings: int = 1

class StockReadingData(BaseModel):
    """Leitura de estoque de gôndola"""
    reading_id: Optional[int] = None
    store_id: str
    slot_id: str
    product_id: str
    current_quantity: int
    source: ReadingSource = ReadingSource.CONTAGEM_MANUAL
    read_at: datetime

# =====================================================
# RESULTADOS DOS CÁLCULOS
# =====================================================

class SlotCapacity(BaseModel):
    max_facings: int
    max_depth_units: int
    max_layers: int
    total_capacity: int

class SupplyThresholds(BaseModel):
    """Limiares de abastecimento (fração da capacidade)"""
    good_min: float = Field(0.70, ge=0, le=1)
    regular_min: float = Field(0.40, ge=0, le=1)
    critical_max: float = Field(0.10, ge=0, le=1)

    @model_validator(mode='after')
    def validate_order(self):
        if not (self.critical_max <= self.regular_min <= self.good_min):
            raise ValueError('Os limiares devem respeitar critical_max <= regular_min <= good_min')
        return self

class CategoryThresholds(SupplyThresholds):
    category: str

    class Config:
        from_attributes = True

class SlotSupplyStatus(BaseModel):
    slot_id: str
    product_id: str
    total_capacity: int
    current_quantity: int
    occupancy: float
    supply_status: SupplyStatus
    read_at: datetime

class LossMetrics(BaseModel):
    outage_hours: float
    units_not_sold: float
    revenue_lost: float
    margin_lost: Optional[float] = None

class RuptureEventInfo(BaseModel):
    """Evento de ruptura persistido"""
    id: int
    store_id: str
    product_id: str
    slot_id: Optional[str] = None
    started_at: datetime
    ended_at: Optional[datetime] = None
    rupture_type: RuptureType
    duration_hours: Optional[float] = None
    units_not_sold: Optional[float] = None
    revenue_lost: Optional[float] = None
    margin_lost: Optional[float] = None

    class Config:
        from_attributes = True
