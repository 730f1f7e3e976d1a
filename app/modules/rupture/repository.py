# app/modules/rupture/repository.py
from sqlalchemy.orm import Session
from sqlalchemy import and_, func
from typing import List, Dict, Optional
from datetime import datetime

from app.shared.database.models import (
    RuptureEvent, VolumetryProduct, ShelfStockReading, PlanogramSlot
)


class RuptureRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_events_since(self, store_id: str, since: datetime, until: Optional[datetime] = None) -> List[RuptureEvent]:
        query = self.db.query(RuptureEvent).filter(
            and_(
                RuptureEvent.store_id == store_id,
                RuptureEvent.started_at >= since
            )
        )
        if until is not None:
            query = query.filter(RuptureEvent.started_at <= until)

        return query.order_by(RuptureEvent.started_at.asc()).all()

    def get_readings_since(self, store_id: str, since: datetime) -> List[ShelfStockReading]:
        return self.db.query(ShelfStockReading).filter(
            and_(
                ShelfStockReading.store_id == store_id,
                ShelfStockReading.read_at >= since
            )
        ).all()

    def get_products(self, product_ids: List[str]) -> Dict[str, VolumetryProduct]:
        if not product_ids:
            return {}
        rows = self.db.query(VolumetryProduct).filter(VolumetryProduct.id.in_(product_ids)).all()
        return {row.id: row for row in rows}

    def get_top_lost_revenue(
        self,
        store_id: str,
        start: datetime,
        end: datetime,
        limit: int
    ) -> List[tuple]:
        """[(product_id, receita perdida somada)] em ordem decrescente"""
        total_revenue = func.sum(RuptureEvent.revenue_lost).label('total_revenue_lost')

        return self.db.query(
            RuptureEvent.product_id,
            total_revenue
        ).filter(
            and_(
                RuptureEvent.store_id == store_id,
                RuptureEvent.started_at >= start,
                RuptureEvent.started_at <= end,
                RuptureEvent.revenue_lost > 0
            )
        ).group_by(RuptureEvent.product_id).order_by(total_revenue.desc()).limit(limit).all()

    def count_store_slots(self, store_id: str) -> int:
        return self.db.query(func.count(PlanogramSlot.id)).filter(
            PlanogramSlot.store_id == store_id
        ).scalar() or 0
