# app/shared/services/slot_capacity_service.py
from typing import Dict, List, Optional, Iterable, NamedTuple
from sqlalchemy.orm import Session
import logging

from app.config.settings import settings
from app.shared.database.models import (
    PlanogramSlot, Shelf, VolumetryProduct, ShelfStockReading, SupplyThreshold
)
from app.shared.schemas.volumetria import (
    VolumetryProductData,
    ShelfData,
    PlanogramSlotData,
    StockReadingData,
    SlotCapacity,
    SupplyThresholds,
)
from app.shared.services.volumetria_calculations import calculate_slot_capacity

logger = logging.getLogger(__name__)


class SlotContext(NamedTuple):
    """Slot com prateleira, produto e capacidade já calculada"""
    slot: PlanogramSlotData
    shelf: ShelfData
    product: VolumetryProductData
    capacity: SlotCapacity


def _as_float(value, default: float = 0.0) -> float:
    return float(value) if value is not None else default


class SlotCapacityService:
    """Conversão de linhas do banco para o domínio e cálculo de capacidade em lote"""

    @staticmethod
    def to_product_data(row: VolumetryProduct) -> VolumetryProductData:
        return VolumetryProductData(
            product_id=row.id,
            ean=row.ean or "",
            description=row.description or "",
            category=row.category,
            brand=row.brand,
            width_cm=_as_float(row.width_cm),
            height_cm=_as_float(row.height_cm),
            depth_cm=_as_float(row.depth_cm),
            stackable=bool(row.stackable),
            max_vertical_layers=row.max_vertical_layers,
            sale_price=_as_float(row.sale_price),
            margin_percent=float(row.margin_percent) if row.margin_percent is not None else None
        )

    @staticmethod
    def to_shelf_data(row: Shelf) -> ShelfData:
        return ShelfData(
            shelf_id=row.id,
            gondola_id=row.gondola_id or "",
            store_id=row.store_id or "",
            usable_width_cm=_as_float(row.usable_width_cm),
            usable_depth_cm=_as_float(row.usable_depth_cm),
            free_height_cm=_as_float(row.free_height_cm),
            level=row.level or "maos"
        )

    @staticmethod
    def to_slot_data(row: PlanogramSlot) -> PlanogramSlotData:
        return PlanogramSlotData(
            slot_id=row.id,
            store_id=row.store_id or "",
            shelf_id=row.shelf_id or "",
            product_id=row.product_id or "",
            position_x_cm=_as_float(row.position_x_cm),
            slot_width_cm=_as_float(row.slot_width_cm),
            defined_facings=row.defined_facings or 0
        )

    @staticmethod
    def to_reading_data(row: ShelfStockReading) -> StockReadingData:
        return StockReadingData(
            reading_id=row.id,
            store_id=row.store_id,
            slot_id=row.slot_id,
            product_id=row.product_id,
            current_quantity=row.current_quantity or 0,
            source=row.source,
            read_at=row.read_at
        )

    @staticmethod
    def build_context(
        slot_row: PlanogramSlot,
        shelf_row: Shelf,
        product_row: VolumetryProduct
    ) -> SlotContext:
        slot = SlotCapacityService.to_slot_data(slot_row)
        shelf = SlotCapacityService.to_shelf_data(shelf_row)
        product = SlotCapacityService.to_product_data(product_row)
        return SlotContext(slot, shelf, product, calculate_slot_capacity(product, shelf, slot))

    @staticmethod
    def load_slot_contexts(db: Session, slot_ids: Iterable[str]) -> Dict[str, SlotContext]:
        """
        Carrega slots, prateleiras e produtos em lote e calcula a capacidade de cada slot.

        Slots sem prateleira ou sem dados volumétricos do produto são ignorados
        (e registrados no log).
        """
        slot_ids = list(set(slot_ids))
        if not slot_ids:
            return {}

        slots = db.query(PlanogramSlot).filter(PlanogramSlot.id.in_(slot_ids)).all()

        shelf_ids = {s.shelf_id for s in slots}
        product_ids = {s.product_id for s in slots}

        shelves = {
            s.id: s for s in db.query(Shelf).filter(Shelf.id.in_(shelf_ids)).all()
        } if shelf_ids else {}
        products = {
            p.id: p for p in db.query(VolumetryProduct).filter(VolumetryProduct.id.in_(product_ids)).all()
        } if product_ids else {}

        contexts: Dict[str, SlotContext] = {}
        for slot_row in slots:
            shelf_row = shelves.get(slot_row.shelf_id)
            if not shelf_row:
                logger.warning(f"Slot {slot_row.id}: prateleira {slot_row.shelf_id} não encontrada")
                continue

            product_row = products.get(slot_row.product_id)
            if not product_row:
                logger.warning(f"Slot {slot_row.id}: produto {slot_row.product_id} sem volumetria")
                continue

            contexts[slot_row.id] = SlotCapacityService.build_context(slot_row, shelf_row, product_row)

        return contexts

    @staticmethod
    def default_thresholds() -> SupplyThresholds:
        return SupplyThresholds(
            good_min=settings.supply_good_min,
            regular_min=settings.supply_regular_min,
            critical_max=settings.supply_critical_max
        )

    @staticmethod
    def load_thresholds(db: Session, categories: Iterable[Optional[str]]) -> Dict[str, SupplyThresholds]:
        """Limiares configurados para as categorias informadas"""
        categories = [c for c in set(categories) if c]
        if not categories:
            return {}

        rows = db.query(SupplyThreshold).filter(SupplyThreshold.category.in_(categories)).all()
        return {
            row.category: SupplyThresholds(
                good_min=row.good_min,
                regular_min=row.regular_min,
                critical_max=row.critical_max
            )
            for row in rows
        }

    @staticmethod
    def thresholds_for(
        product: VolumetryProductData,
        by_category: Dict[str, SupplyThresholds]
    ) -> SupplyThresholds:
        if product.category and product.category in by_category:
            return by_category[product.category]
        return SlotCapacityService.default_thresholds()

    @staticmethod
    def categories_of(contexts: Iterable[SlotContext]) -> List[Optional[str]]:
        return [ctx.product.category for ctx in contexts]
