# app/shared/services/volumetria_calculations.py
"""
Cálculos de volumetria de gôndola e análise de ruptura.

Funções puras (sem acesso a banco) usadas pelos módulos volumetria e rupture:
- Capacidade de slot (frentes x profundidade x camadas)
- Nível de abastecimento (BOM / REGULAR / RUIM)
- Detecção de ruptura (total / funcional)
- Duração da ruptura e perda de venda
"""
import math
from datetime import datetime
from typing import Optional

from app.shared.schemas.volumetria import (
    VolumetryProductData,
    ShelfData,
    PlanogramSlotData,
    StockReadingData,
    SlotCapacity,
    SupplyStatus,
    SupplyThresholds,
    SlotSupplyStatus,
    RuptureType,
    LossMetrics,
)

DEFAULT_THRESHOLDS = SupplyThresholds(good_min=0.70, regular_min=0.40, critical_max=0.10)

SECONDS_PER_HOUR = 3600


# =====================================================
# CAPACIDADE DO SLOT
# =====================================================

def calculate_max_facings(slot_width_cm: float, product_width_cm: float) -> int:
    """Número máximo de frentes horizontais"""
    if product_width_cm <= 0:
        return 0
    return max(math.floor(slot_width_cm / product_width_cm), 0)


def calculate_max_depth_units(shelf_depth_cm: float, product_depth_cm: float) -> int:
    """Quantas unidades cabem em profundidade"""
    if product_depth_cm <= 0:
        return 0
    return max(math.floor(shelf_depth_cm / product_depth_cm), 0)


def calculate_max_layers(
    free_height_cm: float,
    product_height_cm: float,
    stackable: bool,
    max_vertical_layers: Optional[int] = None
) -> int:
    """Quantas camadas verticais podem ser empilhadas"""
    if not stackable:
        return 1
    if product_height_cm <= 0:
        return 1

    raw_layers = max(math.floor(free_height_cm / product_height_cm), 0)

    if max_vertical_layers is not None and max_vertical_layers > 0:
        return min(raw_layers, max_vertical_layers)

    return raw_layers


def calculate_slot_capacity(
    product: VolumetryProductData,
    shelf: ShelfData,
    slot: PlanogramSlotData
) -> SlotCapacity:
    """
    Capacidade total de um slot.

    capacidade = frentes × unidades em profundidade × camadas
    """
    max_facings = calculate_max_facings(slot.slot_width_cm, product.width_cm)
    max_depth_units = calculate_max_depth_units(shelf.usable_depth_cm, product.depth_cm)
    max_layers = calculate_max_layers(
        shelf.free_height_cm,
        product.height_cm,
        product.stackable,
        product.max_vertical_layers
    )

    return SlotCapacity(
        max_facings=max_facings,
        max_depth_units=max_depth_units,
        max_layers=max_layers,
        total_capacity=max_facings * max_depth_units * max_layers
    )


# =====================================================
# NÍVEL DE ABASTECIMENTO
# =====================================================

def calculate_slot_occupancy(current_quantity: float, total_capacity: float) -> float:
    if total_capacity <= 0:
        return 0.0
    return current_quantity / total_capacity


def classify_supply(
    occupancy: float,
    thresholds: SupplyThresholds = DEFAULT_THRESHOLDS
) -> SupplyStatus:
    """BOM >= good_min, REGULAR >= regular_min, RUIM abaixo disso"""
    if occupancy >= thresholds.good_min:
        return SupplyStatus.BOM
    elif occupancy >= thresholds.regular_min:
        return SupplyStatus.REGULAR
    return SupplyStatus.RUIM


def analyze_slot_supply(
    reading: StockReadingData,
    total_capacity: int,
    thresholds: Optional[SupplyThresholds] = None
) -> SlotSupplyStatus:
    """Status completo de abastecimento de um slot a partir de uma leitura"""
    occupancy = calculate_slot_occupancy(reading.current_quantity, total_capacity)
    supply_status = classify_supply(occupancy, thresholds or DEFAULT_THRESHOLDS)

    return SlotSupplyStatus(
        slot_id=reading.slot_id,
        product_id=reading.product_id,
        total_capacity=total_capacity,
        current_quantity=reading.current_quantity,
        occupancy=occupancy,
        supply_status=supply_status,
        read_at=reading.read_at
    )


# =====================================================
# RUPTURA
# =====================================================

def is_total_rupture(current_quantity: float) -> bool:
    return current_quantity == 0


def is_functional_rupture(
    occupancy: float,
    critical_max: float = DEFAULT_THRESHOLDS.critical_max
) -> bool:
    return 0 < occupancy < critical_max


def detect_rupture_type(
    current_quantity: float,
    total_capacity: float,
    critical_max: Optional[float] = None
) -> Optional[RuptureType]:
    """
    Tipo de ruptura presente no slot.

    - total: quantidade igual a zero
    - funcional: ocupação entre 0 e o limiar crítico (exclusivo)
    - None: sem ruptura
    """
    if is_total_rupture(current_quantity):
        return RuptureType.TOTAL

    if critical_max is None:
        critical_max = DEFAULT_THRESHOLDS.critical_max

    occupancy = calculate_slot_occupancy(current_quantity, total_capacity)
    if is_functional_rupture(occupancy, critical_max):
        return RuptureType.FUNCIONAL

    return None


def calculate_rupture_rate(ruptured_checks: int, total_checks: int) -> float:
    if total_checks == 0:
        return 0.0
    return ruptured_checks / total_checks


# =====================================================
# DURAÇÃO DA RUPTURA E PERDA DE VENDA
# =====================================================

def calculate_average_hourly_sales(total_sales: float, open_hours: float) -> float:
    if open_hours <= 0:
        return 0.0
    return total_sales / open_hours


def calculate_rupture_duration(started_at: datetime, ended_at: datetime) -> float:
    """Duração em horas"""
    return (ended_at - started_at).total_seconds() / SECONDS_PER_HOUR


def calculate_units_not_sold(average_hourly_sales: float, duration_hours: float) -> float:
    return average_hourly_sales * duration_hours


def calculate_revenue_lost(units_not_sold: float, sale_price: float) -> float:
    return units_not_sold * sale_price


def calculate_margin_lost(revenue_lost: float, margin_percent: float) -> float:
    """margin_percent em pontos percentuais (ex: 25 = 25%)"""
    return revenue_lost * (margin_percent / 100)


def calculate_loss_metrics(
    started_at: datetime,
    ended_at: datetime,
    average_hourly_sales: float,
    sale_price: float,
    margin_percent: Optional[float] = None
) -> LossMetrics:
    """Todas as métricas de perda de um evento de ruptura"""
    outage_hours = calculate_rupture_duration(started_at, ended_at)
    units_not_sold = calculate_units_not_sold(average_hourly_sales, outage_hours)
    revenue_lost = calculate_revenue_lost(units_not_sold, sale_price)

    margin_lost = None
    if margin_percent is not None:
        margin_lost = calculate_margin_lost(revenue_lost, margin_percent)

    return LossMetrics(
        outage_hours=outage_hours,
        units_not_sold=units_not_sold,
        revenue_lost=revenue_lost,
        margin_lost=margin_lost
    )
