# app/modules/rupture/service.py
from fastapi import HTTPException
from sqlalchemy.orm import Session
from typing import Optional, Dict, List
from datetime import datetime, timedelta
import logging

from .repository import RuptureRepository
from .schemas import (
    RuptureGrouping, ProductRevenueLoss, LossTotals, RevenueLossResponse,
    RuptureBucket, RuptureSummary, RuptureByTimeResponse,
    ProductSummary, TopLostRevenueItem, TopLostRevenueResponse,
    RuptureTimeseriesPoint, RuptureTimeseriesResponse
)
from app.shared.schemas.common import AnalysisPeriod
from app.shared.services.slot_capacity_service import SlotCapacityService
from app.shared.services.volumetria_calculations import (
    detect_rupture_type,
    calculate_rupture_rate,
)
from app.shared.utils.date_utils import to_naive_local, analysis_window, sunday_first_weekday

logger = logging.getLogger(__name__)

UNKNOWN_PRODUCT = "Produto desconhecido"


class RuptureService:
    def __init__(self, db: Session):
        self.db = db
        self.repository = RuptureRepository(db)

    async def get_revenue_loss(
        self,
        store_id: str,
        period_days: int,
        limit: int,
        now: Optional[datetime] = None
    ) -> RevenueLossResponse:
        """
        SKUs ordenados pela maior perda de receita no período.

        Os totais consideram todos os produtos, não apenas os retornados.
        """
        start, end = analysis_window(period_days, now)
        period = AnalysisPeriod(start=start, end=end, days=period_days)

        events = self.repository.get_events_since(store_id, start)
        if not events:
            return RevenueLossResponse(
                success=True,
                message="Nenhum evento de ruptura encontrado no período",
                products=[],
                total_products=0,
                returned_products=0,
                totals=LossTotals(),
                period=period
            )

        losses: Dict[str, dict] = {}
        for event in events:
            loss = losses.setdefault(event.product_id, {
                "events": 0,
                "hours": 0.0,
                "units": 0.0,
                "revenue": 0.0,
                "margin": None,
            })
            loss["events"] += 1
            loss["hours"] += event.duration_hours or 0
            loss["units"] += event.units_not_sold or 0
            loss["revenue"] += event.revenue_lost or 0
            if event.margin_lost is not None:
                loss["margin"] = (loss["margin"] or 0.0) + event.margin_lost

        products = self.repository.get_products(list(losses.keys()))

        items: List[ProductRevenueLoss] = []
        for product_id, loss in losses.items():
            product = products.get(product_id)
            items.append(ProductRevenueLoss(
                product_id=product_id,
                ean=product.ean if product and product.ean else "",
                description=product.description if product and product.description else UNKNOWN_PRODUCT,
                total_rupture_events=loss["events"],
                total_rupture_hours=loss["hours"],
                units_not_sold=loss["units"],
                revenue_lost=loss["revenue"],
                margin_lost=loss["margin"]
            ))

        items.sort(key=lambda item: item.revenue_lost, reverse=True)
        limited = items[:limit]

        totals = LossTotals(
            revenue_lost=sum(item.revenue_lost for item in items),
            margin_lost=sum(item.margin_lost or 0 for item in items),
            units_not_sold=sum(item.units_not_sold for item in items)
        )

        return RevenueLossResponse(
            success=True,
            message=f"{len(items)} produtos com perda de receita",
            products=limited,
            total_products=len(items),
            returned_products=len(limited),
            totals=totals,
            period=period
        )

    async def get_rupture_by_time(
        self,
        store_id: str,
        period_days: int,
        group_by: RuptureGrouping,
        now: Optional[datetime] = None
    ) -> RuptureByTimeResponse:
        """Taxa de ruptura das leituras agrupada por hora do dia ou dia da semana"""
        start, end = analysis_window(period_days, now)
        period = AnalysisPeriod(start=start, end=end, days=period_days)

        readings = self.repository.get_readings_since(store_id, start)
        if not readings:
            return RuptureByTimeResponse(
                success=True,
                message="Nenhuma leitura de estoque encontrada no período",
                buckets=[],
                group_by=group_by,
                summary=RuptureSummary(total_checks=0, total_ruptures=0, average_rupture_rate=0.0),
                period=period
            )

        contexts = SlotCapacityService.load_slot_contexts(self.db, [r.slot_id for r in readings])
        thresholds = SlotCapacityService.load_thresholds(
            self.db, SlotCapacityService.categories_of(contexts.values())
        )
        default_critical = SlotCapacityService.default_thresholds().critical_max

        groups: Dict[int, Dict[str, int]] = {}
        for reading in readings:
            key = reading.read_at.hour if group_by == RuptureGrouping.HORA else sunday_first_weekday(reading.read_at)
            group = groups.setdefault(key, {"total": 0, "ruptures": 0})
            group["total"] += 1

            context = contexts.get(reading.slot_id)
            if context is not None:
                capacity = context.capacity.total_capacity
                critical_max = SlotCapacityService.thresholds_for(context.product, thresholds).critical_max
            else:
                # Sem capacidade conhecida apenas a ruptura total é detectável
                capacity = 0
                critical_max = default_critical

            if detect_rupture_type(reading.current_quantity, capacity, critical_max) is not None:
                group["ruptures"] += 1

        buckets: List[RuptureBucket] = []
        for key in sorted(groups):
            group = groups[key]
            buckets.append(RuptureBucket(
                hour=key if group_by == RuptureGrouping.HORA else None,
                weekday=key if group_by == RuptureGrouping.DIA_SEMANA else None,
                total_checks=group["total"],
                ruptured_checks=group["ruptures"],
                rupture_rate=calculate_rupture_rate(group["ruptures"], group["total"])
            ))

        total_checks = sum(b.total_checks for b in buckets)
        total_ruptures = sum(b.ruptured_checks for b in buckets)

        return RuptureByTimeResponse(
            success=True,
            message="Ruptura por horário calculada",
            buckets=buckets,
            group_by=group_by,
            summary=RuptureSummary(
                total_checks=total_checks,
                total_ruptures=total_ruptures,
                average_rupture_rate=calculate_rupture_rate(total_ruptures, total_checks)
            ),
            period=period
        )

    async def get_top_lost_revenue(
        self,
        store_id: str,
        start_date: Optional[datetime],
        end_date: Optional[datetime],
        limit: int
    ) -> TopLostRevenueResponse:
        """Produtos com maior receita perdida (padrão: últimos 30 dias)"""
        end = to_naive_local(end_date) or datetime.now()
        start = to_naive_local(start_date) or (end - timedelta(days=30))

        if start > end:
            raise HTTPException(status_code=400, detail="start_date deve ser anterior a end_date")

        rows = self.repository.get_top_lost_revenue(store_id, start, end, limit)
        products = self.repository.get_products([row.product_id for row in rows])

        result = []
        for row in rows:
            product = products.get(row.product_id)
            result.append(TopLostRevenueItem(
                product_id=row.product_id,
                product=ProductSummary(
                    id=product.id,
                    ean=product.ean,
                    description=product.description
                ) if product else None,
                total_revenue_lost=float(row.total_revenue_lost or 0)
            ))

        return TopLostRevenueResponse(
            success=True,
            message=f"{len(result)} produtos",
            top_lost_revenue=result
        )

    async def get_rupture_timeseries(
        self,
        store_id: str,
        start_date: datetime,
        end_date: datetime
    ) -> RuptureTimeseriesResponse:
        """Eventos de ruptura por dia como percentual dos slots do planograma da loja"""
        start = to_naive_local(start_date)
        end = to_naive_local(end_date)

        if start > end:
            raise HTTPException(status_code=400, detail="start_date deve ser anterior a end_date")

        events = self.repository.get_events_since(store_id, start, end)
        total_slots = self.repository.count_store_slots(store_id)

        by_day: Dict = {}
        for event in events:
            day = event.started_at.date()
            by_day[day] = by_day.get(day, 0) + 1

        data = [
            RuptureTimeseriesPoint(
                day=day,
                events=count,
                rupture_percent=(count / total_slots) * 100 if total_slots > 0 else 0.0
            )
            for day, count in sorted(by_day.items())
        ]

        return RuptureTimeseriesResponse(
            success=True,
            message="Série temporal de ruptura",
            data=data,
            total_slots=total_slots
        )
