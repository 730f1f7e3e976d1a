# app/modules/volumetria/router.py
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional

from app.config.database import get_db
from app.config.settings import settings
from app.core.auth.dependencies import (
    require_roles, ensure_store_access, ALL_ROLES, MANAGEMENT_ROLES
)
from app.shared.schemas.volumetria import CategoryThresholds
from .service import VolumetriaService
from .schemas import (
    VolumetryProductUpsert, StockReadingCreate, ThresholdsUpdate,
    SupplyStatusResponse, CriticalSlotsResponse,
    StockReadingResponse, ThresholdsResponse
)

router = APIRouter()

@router.get("/products")
async def get_volumetry_products(
    code: Optional[str] = Query(None, description="ID ou EAN do produto"),
    search: Optional[str] = Query(None, description="Termo de busca (termo%, %termo, %termo%)"),
    db: Session = Depends(get_db)
):
    """
    Consulta de volumetria de produtos

    **Com `code`:** busca um produto por ID ou EAN (volumetria primeiro, depois catálogo).
    **Sem `code`:** busca no catálogo (máx. 200) com indicação de volumetria cadastrada.
    """
    service = VolumetriaService(db)
    if code:
        return await service.get_product(code)
    return await service.search_products(search)

@router.post("/products")
async def save_volumetry_product(
    product_data: VolumetryProductUpsert,
    current_user = Depends(require_roles(ALL_ROLES)),
    db: Session = Depends(get_db)
):
    """Cadastra ou atualiza os dados volumétricos de um produto (ID padrão: EAN)"""
    service = VolumetriaService(db)
    return await service.save_product(product_data)

@router.get("/status-abastecimento", response_model=SupplyStatusResponse)
async def get_supply_status(
    store_id: Optional[str] = Query(None, description="ID da loja"),
    slot_id: Optional[str] = Query(None, description="ID do slot"),
    product_id: Optional[str] = Query(None, description="ID do produto"),
    reference_at: Optional[datetime] = Query(None, description="Data/hora de referência (padrão: última leitura)"),
    db: Session = Depends(get_db)
):
    """
    Status de abastecimento de um slot

    **Retorna:**
    - Ocupação e classificação (BOM / REGULAR / RUIM)
    - Capacidade detalhada (frentes, profundidade, camadas)
    - Resumo do produto e do slot
    """
    if not store_id:
        raise HTTPException(status_code=400, detail="Parâmetro store_id é obrigatório")

    service = VolumetriaService(db)
    return await service.get_supply_status(store_id, slot_id, product_id, reference_at)

@router.get("/slots-criticos", response_model=CriticalSlotsResponse)
async def get_critical_slots(
    store_id: Optional[str] = Query(None, description="ID da loja"),
    period_days: int = Query(settings.critical_slots_period_days, ge=1, le=365),
    min_rupture_events: int = Query(settings.critical_slots_min_rupture_events, ge=1),
    db: Session = Depends(get_db)
):
    """
    Slots com status RUIM ou com ruptura recorrente no período

    Ordenados por criticidade (status e depois ocupação).
    """
    if not store_id:
        raise HTTPException(status_code=400, detail="Parâmetro store_id é obrigatório")

    service = VolumetriaService(db)
    return await service.get_critical_slots(store_id, period_days, min_rupture_events)

@router.post("/leituras", response_model=StockReadingResponse)
async def register_stock_reading(
    reading_data: StockReadingCreate,
    current_user = Depends(require_roles(ALL_ROLES)),
    db: Session = Depends(get_db)
):
    """
    Registra uma leitura de estoque de gôndola

    **Efeitos:**
    - Abre evento de ruptura quando o slot entra em ruptura
    - Encerra o evento aberto quando o estoque se recupera, com perda de receita estimada
    """
    ensure_store_access(current_user, reading_data.store_id)
    service = VolumetriaService(db)
    return await service.register_reading(reading_data)

@router.get("/thresholds", response_model=ThresholdsResponse)
async def get_thresholds(
    db: Session = Depends(get_db)
):
    """Limiares de abastecimento padrão e por categoria"""
    service = VolumetriaService(db)
    return await service.get_thresholds()

@router.put("/thresholds/{category}", response_model=CategoryThresholds)
async def update_thresholds(
    category: str,
    thresholds: ThresholdsUpdate,
    current_user = Depends(require_roles(MANAGEMENT_ROLES)),
    db: Session = Depends(get_db)
):
    """Define os limiares de abastecimento de uma categoria"""
    service = VolumetriaService(db)
    return await service.update_threshold(category, thresholds)

@router.get("/health")
async def volumetria_health():
    """Health check do módulo de volumetria"""
    return {
        "service": "volumetria",
        "status": "healthy",
        "version": "1.0.0",
        "features": [
            "Capacidade de slot",
            "Status de abastecimento",
            "Slots críticos",
            "Registro de leituras e eventos de ruptura",
            "Limiares por categoria"
        ],
        "default_thresholds": {
            "good_min": settings.supply_good_min,
            "regular_min": settings.supply_regular_min,
            "critical_max": settings.supply_critical_max
        }
    }
