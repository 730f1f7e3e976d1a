# app/modules/rupture/router.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional

from app.config.database import get_db
from app.config.settings import settings
from app.core.auth.dependencies import require_roles, ensure_store_access, ALL_ROLES
from .service import RuptureService
from .schemas import (
    RuptureGrouping, RevenueLossResponse, RuptureByTimeResponse,
    TopLostRevenueResponse, RuptureTimeseriesResponse
)

router = APIRouter()

@router.get("/perda-receita", response_model=RevenueLossResponse)
async def get_revenue_loss(
    store_id: Optional[str] = Query(None, description="ID da loja"),
    period_days: int = Query(settings.loss_period_days, ge=1, le=365),
    limit: int = Query(settings.loss_default_limit, ge=1, le=500),
    db: Session = Depends(get_db)
):
    """
    SKUs ordenados pela maior perda de receita no período

    **Inclui:**
    - Eventos, horas de ruptura e unidades não vendidas por produto
    - Receita e margem perdidas
    - Totais do período (todos os produtos)
    """
    if not store_id:
        raise HTTPException(status_code=400, detail="Parâmetro store_id é obrigatório")

    service = RuptureService(db)
    return await service.get_revenue_loss(store_id, period_days, limit)

@router.get("/ruptura-horario", response_model=RuptureByTimeResponse)
async def get_rupture_by_time(
    store_id: Optional[str] = Query(None, description="ID da loja"),
    period_days: int = Query(settings.rupture_period_days, ge=1, le=365),
    group_by: str = Query("hora", description="'hora' ou 'dia_semana'"),
    db: Session = Depends(get_db)
):
    """Painel de ruptura agrupado por hora do dia ou dia da semana (0 = domingo)"""
    if not store_id:
        raise HTTPException(status_code=400, detail="Parâmetro store_id é obrigatório")

    try:
        grouping = RuptureGrouping(group_by)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail="Parâmetro group_by deve ser 'hora' ou 'dia_semana'"
        )

    service = RuptureService(db)
    return await service.get_rupture_by_time(store_id, period_days, grouping)

@router.get("/top-lost-revenue", response_model=TopLostRevenueResponse)
async def get_top_lost_revenue(
    store_id: str = Query(..., min_length=1),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    limit: int = Query(10, ge=1),
    current_user = Depends(require_roles(ALL_ROLES)),
    db: Session = Depends(get_db)
):
    """Produtos com a maior receita perdida por ruptura (padrão: últimos 30 dias)"""
    ensure_store_access(current_user, store_id)
    service = RuptureService(db)
    return await service.get_top_lost_revenue(store_id, start_date, end_date, limit)

@router.get("/timeseries", response_model=RuptureTimeseriesResponse)
async def get_rupture_timeseries(
    store_id: str = Query(..., min_length=1),
    start_date: datetime = Query(...),
    end_date: datetime = Query(...),
    current_user = Depends(require_roles(ALL_ROLES)),
    db: Session = Depends(get_db)
):
    """Percentual diário de ruptura (eventos / slots do planograma)"""
    ensure_store_access(current_user, store_id)
    service = RuptureService(db)
    return await service.get_rupture_timeseries(store_id, start_date, end_date)

@router.get("/health")
async def rupture_health():
    """Health check do módulo de ruptura"""
    return {
        "service": "rupture",
        "status": "healthy",
        "version": "1.0.0",
        "features": [
            "Perda de receita por produto",
            "Ruptura por horário",
            "Top perda de receita",
            "Série temporal de ruptura"
        ]
    }
