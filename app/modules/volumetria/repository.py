# app/modules/volumetria/repository.py
from sqlalchemy.orm import Session
from sqlalchemy import and_, or_, func
from typing import List, Dict, Any, Optional
from datetime import datetime, date

from app.shared.database.models import (
    Product, VolumetryProduct, PlanogramSlot, Shelf,
    ShelfStockReading, HourlySales, RuptureEvent, SupplyThreshold
)


class VolumetriaRepository:
    def __init__(self, db: Session):
        self.db = db

    # ==================== PRODUTOS ====================

    def get_volumetry_product(self, product_id: str) -> Optional[VolumetryProduct]:
        return self.db.query(VolumetryProduct).filter(VolumetryProduct.id == product_id).first()

    def get_volumetry_product_by_ean(self, ean: str) -> Optional[VolumetryProduct]:
        return self.db.query(VolumetryProduct).filter(VolumetryProduct.ean == ean).first()

    def get_catalog_product_by_ean(self, ean: str) -> Optional[Product]:
        return self.db.query(Product).filter(Product.ean == ean).first()

    def search_catalog_products(self, pattern: Optional[str], limit: int) -> List[Product]:
        """Busca no catálogo por nome, EAN ou descrição (ILIKE)"""
        query = self.db.query(Product)

        if pattern:
            query = query.filter(
                or_(
                    Product.name.ilike(pattern),
                    Product.ean.ilike(pattern),
                    Product.description.ilike(pattern)
                )
            )

        return query.order_by(Product.name.asc()).limit(limit).all()

    def get_volumetry_by_eans(self, eans: List[str]) -> Dict[str, VolumetryProduct]:
        if not eans:
            return {}
        rows = self.db.query(VolumetryProduct).filter(VolumetryProduct.ean.in_(eans)).all()
        return {row.ean: row for row in rows if row.ean}

    def upsert_volumetry_product(self, product_id: str, data: Dict[str, Any]) -> VolumetryProduct:
        product = self.get_volumetry_product(product_id)

        if product is None:
            product = VolumetryProduct(id=product_id)
            self.db.add(product)

        for field, value in data.items():
            setattr(product, field, value)
        product.updated_at = datetime.now()

        self.db.commit()
        self.db.refresh(product)

        return product

    # ==================== PLANOGRAMA ====================

    def get_slot(self, slot_id: str) -> Optional[PlanogramSlot]:
        return self.db.query(PlanogramSlot).filter(PlanogramSlot.id == slot_id).first()

    def get_shelf(self, shelf_id: str) -> Optional[Shelf]:
        return self.db.query(Shelf).filter(Shelf.id == shelf_id).first()

    # ==================== LEITURAS ====================

    def get_latest_reading(
        self,
        store_id: str,
        slot_id: Optional[str] = None,
        product_id: Optional[str] = None,
        reference_at: Optional[datetime] = None
    ) -> Optional[ShelfStockReading]:
        """Última leitura do slot (ou produto), opcionalmente até uma data de referência"""
        query = self.db.query(ShelfStockReading).filter(ShelfStockReading.store_id == store_id)

        if slot_id:
            query = query.filter(ShelfStockReading.slot_id == slot_id)
        elif product_id:
            query = query.filter(ShelfStockReading.product_id == product_id)

        if reference_at:
            query = query.filter(ShelfStockReading.read_at <= reference_at)

        return query.order_by(ShelfStockReading.read_at.desc(), ShelfStockReading.id.desc()).first()

    def get_latest_slot_reading(self, slot_id: str, exclude_reading_id: Optional[int] = None) -> Optional[ShelfStockReading]:
        """Leitura mais recente do slot, ignorando a leitura informada"""
        query = self.db.query(ShelfStockReading).filter(ShelfStockReading.slot_id == slot_id)

        if exclude_reading_id is not None:
            query = query.filter(ShelfStockReading.id != exclude_reading_id)

        return query.order_by(ShelfStockReading.read_at.desc(), ShelfStockReading.id.desc()).first()

    def get_readings_since(self, store_id: str, since: datetime) -> List[ShelfStockReading]:
        """Leituras da loja no período, mais recentes primeiro"""
        return self.db.query(ShelfStockReading).filter(
            and_(
                ShelfStockReading.store_id == store_id,
                ShelfStockReading.read_at >= since
            )
        ).order_by(ShelfStockReading.read_at.desc(), ShelfStockReading.id.desc()).all()

    def create_reading(
        self,
        store_id: str,
        slot_id: str,
        product_id: str,
        current_quantity: int,
        source: str,
        read_at: datetime
    ) -> ShelfStockReading:
        reading = ShelfStockReading(
            store_id=store_id,
            slot_id=slot_id,
            product_id=product_id,
            current_quantity=current_quantity,
            source=source,
            read_at=read_at
        )
        self.db.add(reading)
        self.db.flush()
        return reading

    # ==================== RUPTURAS ====================

    def count_rupture_events_by_slot(self, store_id: str, since: datetime) -> Dict[str, int]:
        rows = self.db.query(
            RuptureEvent.slot_id,
            func.count(RuptureEvent.id).label('events')
        ).filter(
            and_(
                RuptureEvent.store_id == store_id,
                RuptureEvent.started_at >= since,
                RuptureEvent.slot_id.isnot(None)
            )
        ).group_by(RuptureEvent.slot_id).all()

        return {row.slot_id: row.events for row in rows}

    def get_open_rupture_event(self, slot_id: str) -> Optional[RuptureEvent]:
        return self.db.query(RuptureEvent).filter(
            and_(
                RuptureEvent.slot_id == slot_id,
                RuptureEvent.ended_at.is_(None)
            )
        ).order_by(RuptureEvent.started_at.desc()).first()

    def open_rupture_event(
        self,
        store_id: str,
        product_id: str,
        slot_id: str,
        rupture_type: str,
        started_at: datetime
    ) -> RuptureEvent:
        event = RuptureEvent(
            store_id=store_id,
            product_id=product_id,
            slot_id=slot_id,
            rupture_type=rupture_type,
            started_at=started_at
        )
        self.db.add(event)
        self.db.flush()
        return event

    def close_rupture_event(
        self,
        event: RuptureEvent,
        ended_at: datetime,
        duration_hours: float,
        units_not_sold: float,
        revenue_lost: float,
        margin_lost: Optional[float]
    ) -> RuptureEvent:
        event.ended_at = ended_at
        event.duration_hours = duration_hours
        event.units_not_sold = units_not_sold
        event.revenue_lost = revenue_lost
        event.margin_lost = margin_lost
        self.db.flush()
        return event

    # ==================== VENDAS ====================

    def get_units_sold(self, store_id: str, product_id: str, from_date: date, to_date: date) -> float:
        """Total de unidades vendidas no intervalo [from_date, to_date]"""
        total = self.db.query(func.coalesce(func.sum(HourlySales.units_sold), 0)).filter(
            and_(
                HourlySales.store_id == store_id,
                HourlySales.product_id == product_id,
                HourlySales.sale_date >= from_date,
                HourlySales.sale_date <= to_date
            )
        ).scalar()
        return float(total or 0)

    # ==================== LIMIARES ====================

    def list_thresholds(self) -> List[SupplyThreshold]:
        return self.db.query(SupplyThreshold).order_by(SupplyThreshold.category).all()

    def upsert_threshold(
        self,
        category: str,
        good_min: float,
        regular_min: float,
        critical_max: float
    ) -> SupplyThreshold:
        threshold = self.db.query(SupplyThreshold).filter(SupplyThreshold.category == category).first()

        if threshold is None:
            threshold = SupplyThreshold(category=category)
            self.db.add(threshold)

        threshold.good_min = good_min
        threshold.regular_min = regular_min
        threshold.critical_max = critical_max
        threshold.updated_at = datetime.now()

        self.db.commit()
        self.db.refresh(threshold)

        return threshold

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
