# app/modules/rupture/schemas.py
from pydantic import BaseModel
from typing import Optional, List
from datetime import date
from enum import Enum

from app.shared.schemas.common import BaseResponse, AnalysisPeriod


class RuptureGrouping(str, Enum):
    HORA = "hora"
    DIA_SEMANA = "dia_semana"


class ProductRevenueLoss(BaseModel):
    """Perda de receita acumulada de um produto"""
    product_id: str
    ean: str
    description: str
    total_rupture_events: int
    total_rupture_hours: float
    units_not_sold: float
    revenue_lost: float
    margin_lost: Optional[float] = None


class LossTotals(BaseModel):
    revenue_lost: float = 0.0
    margin_lost: float = 0.0
    units_not_sold: float = 0.0


class RevenueLossResponse(BaseResponse):
    products: List[ProductRevenueLoss]
    total_products: int
    returned_products: int
    totals: LossTotals
    period: AnalysisPeriod


class RuptureBucket(BaseModel):
    """Taxa de ruptura por hora do dia ou dia da semana (0 = domingo)"""
    hour: Optional[int] = None
    weekday: Optional[int] = None
    total_checks: int
    ruptured_checks: int
    rupture_rate: float


class RuptureSummary(BaseModel):
    total_checks: int
    total_ruptures: int
    average_rupture_rate: float


class RuptureByTimeResponse(BaseResponse):
    buckets: List[RuptureBucket]
    group_by: RuptureGrouping
    summary: RuptureSummary
    period: AnalysisPeriod


class ProductSummary(BaseModel):
    id: str
    ean: Optional[str] = None
    description: Optional[str] = None


class TopLostRevenueItem(BaseModel):
    product_id: str
    product: Optional[ProductSummary] = None
    total_revenue_lost: float


class TopLostRevenueResponse(BaseResponse):
    top_lost_revenue: List[TopLostRevenueItem]


class RuptureTimeseriesPoint(BaseModel):
    day: date
    events: int
    rupture_percent: float


class RuptureTimeseriesResponse(BaseResponse):
    data: List[RuptureTimeseriesPoint]
    total_slots: int
