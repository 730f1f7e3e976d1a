# app/modules/volumetria/service.py
from fastapi import HTTPException
from sqlalchemy.orm import Session
from typing import Optional, List
from datetime import datetime, timedelta
import logging

from .repository import VolumetriaRepository
from .schemas import (
    VolumetryProductUpsert, StockReadingCreate, ThresholdsUpdate,
    ProductVolumetry, ProductLookupResponse, CatalogProduct, ProductSearchResponse,
    SupplyStatusResponse, CriticalSlot, CriticalSlotsResponse,
    StockReadingResponse, ThresholdsResponse
)
from app.config.settings import settings
from app.shared.schemas.common import AnalysisPeriod
from app.shared.schemas.volumetria import (
    SupplyStatus, RuptureType, RuptureEventInfo, CategoryThresholds
)
from app.shared.services.slot_capacity_service import SlotCapacityService
from app.shared.services.volumetria_calculations import (
    analyze_slot_supply,
    detect_rupture_type,
    calculate_average_hourly_sales,
    calculate_loss_metrics,
)
from app.shared.utils.date_utils import to_naive_local, analysis_window

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 200
STATUS_ORDER = {SupplyStatus.RUIM: 0, SupplyStatus.REGULAR: 1, SupplyStatus.BOM: 2}


def build_search_pattern(search: str) -> str:
    """
    Padrão ILIKE a partir do termo de busca:
    - "termo%"   começa com
    - "%termo"   termina com
    - "%termo%"  contém
    - "termo"    contém (padrão)
    """
    if search.startswith('%') or search.endswith('%'):
        return search
    return f"%{search}%"


class VolumetriaService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = VolumetriaRepository(db)

    # ==================== PRODUTOS ====================

    async def get_product(self, code: str) -> ProductLookupResponse:
        """Busca por ID em volumetria, depois por EAN em volumetria, depois por EAN no catálogo"""
        product = self.repository.get_volumetry_product(code)
        if product is None:
            product = self.repository.get_volumetry_product_by_ean(code)

        if product is not None:
            return ProductLookupResponse(product=ProductVolumetry(
                id=product.id,
                ean=product.ean,
                description=product.description,
                width_cm=product.width_cm,
                height_cm=product.height_cm,
                depth_cm=product.depth_cm,
                weight_kg=product.weight_kg
            ))

        catalog_product = self.repository.get_catalog_product_by_ean(code)
        if catalog_product is None:
            return ProductLookupResponse(product=None)

        # Volumetria ainda não cadastrada
        return ProductLookupResponse(product=ProductVolumetry(
            id=catalog_product.id,
            ean=catalog_product.ean,
            description=catalog_product.name or catalog_product.description
        ))

    async def search_products(self, search: Optional[str]) -> ProductSearchResponse:
        search = (search or "").strip()
        pattern = build_search_pattern(search) if len(search) >= 2 else None

        rows = self.repository.search_catalog_products(pattern, SEARCH_LIMIT)
        volumetry = self.repository.get_volumetry_by_eans([r.ean for r in rows if r.ean])

        products: List[CatalogProduct] = []
        for row in rows:
            vol_row = volumetry.get(row.ean) if row.ean else None
            vol = None
            if vol_row is not None:
                vol = {
                    "width_cm": vol_row.width_cm,
                    "height_cm": vol_row.height_cm,
                    "depth_cm": vol_row.depth_cm,
                    "weight_kg": vol_row.weight_kg,
                }

            products.append(CatalogProduct(
                id=row.id,
                name=row.name or row.description or row.id,
                ean=row.ean,
                sku=row.sku,
                volumetry=vol,
                has_volumetry=bool(vol) and all(vol.values())
            ))

        return ProductSearchResponse(
            products=products,
            total=len(products),
            has_more=len(products) == SEARCH_LIMIT
        )

    async def save_product(self, product_data: VolumetryProductUpsert) -> dict:
        product_id = product_data.id or product_data.ean
        data = product_data.model_dump(exclude={'id'}, exclude_unset=True)

        try:
            self.repository.upsert_volumetry_product(product_id, data)
        except Exception as e:
            self.repository.rollback()
            logger.error(f"Erro salvando produto {product_id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Falha ao salvar produto")

        logger.info(f"Volumetria do produto {product_id} salva")
        return {"success": True, "product_id": product_id}

    # ==================== STATUS DE ABASTECIMENTO ====================

    async def get_supply_status(
        self,
        store_id: str,
        slot_id: Optional[str],
        product_id: Optional[str],
        reference_at: Optional[datetime] = None
    ) -> SupplyStatusResponse:
        if not slot_id and not product_id:
            raise HTTPException(status_code=400, detail="Informe slot_id ou product_id")

        reading_row = self.repository.get_latest_reading(
            store_id, slot_id=slot_id, product_id=product_id,
            reference_at=to_naive_local(reference_at)
        )
        if reading_row is None:
            raise HTTPException(
                status_code=404,
                detail="Nenhuma leitura de estoque encontrada (tabela: shelf_stock_readings)"
            )

        slot_row = self.repository.get_slot(reading_row.slot_id)
        if slot_row is None:
            raise HTTPException(
                status_code=404,
                detail="Slot não encontrado (tabela: planogram_slots)"
            )

        shelf_row = self.repository.get_shelf(slot_row.shelf_id)
        if shelf_row is None:
            raise HTTPException(
                status_code=404,
                detail="Prateleira não encontrada (tabela: shelves)"
            )

        product_row = self.repository.get_volumetry_product(reading_row.product_id)
        if product_row is None:
            raise HTTPException(
                status_code=404,
                detail="Dados volumétricos do produto não encontrados (tabela: volumetry_products)"
            )

        context = SlotCapacityService.build_context(slot_row, shelf_row, product_row)
        thresholds = SlotCapacityService.thresholds_for(
            context.product,
            SlotCapacityService.load_thresholds(self.db, [context.product.category])
        )

        status = analyze_slot_supply(
            SlotCapacityService.to_reading_data(reading_row),
            context.capacity.total_capacity,
            thresholds
        )

        return SupplyStatusResponse(
            success=True,
            message="Status de abastecimento calculado",
            status=status,
            detailed_capacity=context.capacity,
            product={
                "product_id": context.product.product_id,
                "ean": context.product.ean,
                "description": context.product.description,
            },
            slot={
                "slot_id": context.slot.slot_id,
                "shelf_id": context.slot.shelf_id,
            }
        )

    # ==================== SLOTS CRÍTICOS ====================

    async def get_critical_slots(
        self,
        store_id: str,
        period_days: int,
        min_rupture_events: int,
        now: Optional[datetime] = None
    ) -> CriticalSlotsResponse:
        """
        Slots com status RUIM ou com ruptura recorrente no período.
        Ordenação: status (RUIM, REGULAR, BOM) e depois ocupação crescente.
        """
        start, end = analysis_window(period_days, now)
        period = AnalysisPeriod(start=start, end=end, days=period_days)

        readings = self.repository.get_readings_since(store_id, start)
        if not readings:
            return CriticalSlotsResponse(
                success=True,
                message="Nenhuma leitura de estoque encontrada no período",
                critical_slots=[],
                total_critical_slots=0,
                period=period
            )

        # Leitura mais recente de cada slot (lista já vem ordenada desc)
        latest_by_slot = {}
        for reading in readings:
            latest_by_slot.setdefault(reading.slot_id, reading)

        events_by_slot = self.repository.count_rupture_events_by_slot(store_id, start)
        contexts = SlotCapacityService.load_slot_contexts(self.db, latest_by_slot.keys())
        thresholds = SlotCapacityService.load_thresholds(
            self.db, SlotCapacityService.categories_of(contexts.values())
        )

        critical: List[CriticalSlot] = []
        for slot_id, reading in latest_by_slot.items():
            context = contexts.get(slot_id)
            if context is None:
                logger.warning(f"Slot {slot_id} ignorado: dados de planograma incompletos")
                continue

            status = analyze_slot_supply(
                SlotCapacityService.to_reading_data(reading),
                context.capacity.total_capacity,
                SlotCapacityService.thresholds_for(context.product, thresholds)
            )
            recent_events = events_by_slot.get(slot_id, 0)

            if status.supply_status == SupplyStatus.RUIM or recent_events >= min_rupture_events:
                critical.append(CriticalSlot(
                    slot_id=slot_id,
                    product_id=reading.product_id,
                    product_description=context.product.description,
                    store_id=store_id,
                    supply_status=status.supply_status,
                    occupancy=status.occupancy,
                    last_reading=reading.read_at,
                    recent_rupture_events=recent_events
                ))

        critical.sort(key=lambda s: (STATUS_ORDER[s.supply_status], s.occupancy))

        return CriticalSlotsResponse(
            success=True,
            message=f"{len(critical)} slots críticos encontrados",
            critical_slots=critical,
            total_critical_slots=len(critical),
            period=period
        )

    # ==================== LEITURAS E EVENTOS DE RUPTURA ====================

    async def register_reading(self, reading_data: StockReadingCreate) -> StockReadingResponse:
        """
        Registra uma leitura de estoque e atualiza o ciclo de vida do evento de ruptura do slot:
        - abre um evento quando a ruptura começa
        - fecha o evento aberto quando o estoque se recupera, calculando a perda de venda
        """
        slot_row = self.repository.get_slot(reading_data.slot_id)
        if slot_row is None:
            raise HTTPException(status_code=404, detail=f"Slot {reading_data.slot_id} não encontrado")

        if slot_row.store_id != reading_data.store_id:
            raise HTTPException(
                status_code=400,
                detail=f"Slot {reading_data.slot_id} não pertence à loja {reading_data.store_id}"
            )

        context = SlotCapacityService.load_slot_contexts(self.db, [slot_row.id]).get(slot_row.id)
        if context is None:
            raise HTTPException(
                status_code=404,
                detail="Prateleira ou dados volumétricos do produto não encontrados para o slot"
            )

        read_at = to_naive_local(reading_data.read_at) or datetime.now()
        thresholds = SlotCapacityService.thresholds_for(
            context.product,
            SlotCapacityService.load_thresholds(self.db, [context.product.category])
        )

        try:
            reading = self.repository.create_reading(
                store_id=reading_data.store_id,
                slot_id=slot_row.id,
                product_id=slot_row.product_id,
                current_quantity=reading_data.current_quantity,
                source=reading_data.source.value,
                read_at=read_at
            )

            status = analyze_slot_supply(
                SlotCapacityService.to_reading_data(reading),
                context.capacity.total_capacity,
                thresholds
            )
            rupture_type = detect_rupture_type(
                reading_data.current_quantity,
                context.capacity.total_capacity,
                thresholds.critical_max
            )

            opened_event, closed_event = self._update_rupture_event(
                context, reading_data.store_id, rupture_type, read_at, reading.id
            )

            self.repository.commit()
        except HTTPException:
            self.repository.rollback()
            raise
        except Exception as e:
            self.repository.rollback()
            logger.error(f"Erro registrando leitura do slot {slot_row.id}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail=f"Erro registrando leitura: {str(e)}")

        return StockReadingResponse(
            success=True,
            message="Leitura registrada",
            reading_id=reading.id,
            status=status,
            rupture_type=rupture_type,
            opened_event=RuptureEventInfo.model_validate(opened_event) if opened_event else None,
            closed_event=RuptureEventInfo.model_validate(closed_event) if closed_event else None
        )

    def _update_rupture_event(
        self,
        context,
        store_id: str,
        rupture_type: Optional[RuptureType],
        read_at: datetime,
        reading_id: int
    ):
        open_event = self.repository.get_open_rupture_event(context.slot.slot_id)

        if rupture_type is not None:
            if open_event is None:
                # Leitura atrasada: o slot já foi lido depois dela
                latest = self.repository.get_latest_slot_reading(context.slot.slot_id, exclude_reading_id=reading_id)
                if latest is not None and latest.read_at > read_at:
                    logger.warning(
                        f"Leitura de {read_at} anterior à última leitura do slot {context.slot.slot_id} "
                        f"({latest.read_at}); ruptura não aberta"
                    )
                    return None, None

                event = self.repository.open_rupture_event(
                    store_id=store_id,
                    product_id=context.product.product_id,
                    slot_id=context.slot.slot_id,
                    rupture_type=rupture_type.value,
                    started_at=read_at
                )
                logger.info(f"Ruptura {rupture_type.value} aberta no slot {context.slot.slot_id}")
                return event, None

            # Ruptura funcional que zerou passa a ser total
            if rupture_type == RuptureType.TOTAL and open_event.rupture_type != RuptureType.TOTAL.value:
                open_event.rupture_type = RuptureType.TOTAL.value
            return None, None

        if open_event is None:
            return None, None

        if read_at < open_event.started_at:
            logger.warning(
                f"Leitura de {read_at} anterior ao início da ruptura {open_event.id}; evento mantido aberto"
            )
            return None, None

        average_hourly_sales = self._average_hourly_sales(store_id, context.product.product_id, read_at)
        loss = calculate_loss_metrics(
            open_event.started_at,
            read_at,
            average_hourly_sales,
            context.product.sale_price,
            context.product.margin_percent
        )

        event = self.repository.close_rupture_event(
            open_event,
            ended_at=read_at,
            duration_hours=loss.outage_hours,
            units_not_sold=loss.units_not_sold,
            revenue_lost=loss.revenue_lost,
            margin_lost=loss.margin_lost
        )
        logger.info(
            f"Ruptura {event.id} encerrada no slot {context.slot.slot_id}: "
            f"{loss.outage_hours:.2f}h, receita perdida {loss.revenue_lost:.2f}"
        )
        return None, event

    def _average_hourly_sales(self, store_id: str, product_id: str, reference: datetime) -> float:
        """Venda média por hora na janela de vendas anterior à data de referência"""
        window_days = settings.sales_window_days
        to_date = reference.date() - timedelta(days=1)
        from_date = reference.date() - timedelta(days=window_days)

        units = self.repository.get_units_sold(store_id, product_id, from_date, to_date)
        open_hours = window_days * settings.store_open_hours_per_day
        return calculate_average_hourly_sales(units, open_hours)

    # ==================== LIMIARES ====================

    async def get_thresholds(self) -> ThresholdsResponse:
        rows = self.repository.list_thresholds()
        return ThresholdsResponse(
            success=True,
            message="Limiares de abastecimento",
            default=SlotCapacityService.default_thresholds(),
            categories=[CategoryThresholds.model_validate(row) for row in rows]
        )

    async def update_threshold(self, category: str, thresholds: ThresholdsUpdate) -> CategoryThresholds:
        category = category.strip()
        if not category:
            raise HTTPException(status_code=400, detail="Categoria obrigatória")

        try:
            row = self.repository.upsert_threshold(
                category,
                good_min=thresholds.good_min,
                regular_min=thresholds.regular_min,
                critical_max=thresholds.critical_max
            )
        except Exception as e:
            self.repository.rollback()
            logger.error(f"Erro salvando limiares da categoria {category}: {e}", exc_info=True)
            raise HTTPException(status_code=500, detail="Falha ao salvar limiares")

        logger.info(f"Limiares da categoria {category} atualizados")
        return CategoryThresholds.model_validate(row)
