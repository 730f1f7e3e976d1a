"""Dados de teste: leituras, eventos de ruptura e vendas"""
from datetime import datetime, timedelta

from app.shared.database.models import ShelfStockReading, HourlySales, RuptureEvent

STORE_ID = "LOJA-001"
OTHER_STORE_ID = "LOJA-002"

LATA_ID = "7894900011517"
ARROZ_ID = "7896004000039"


def add_reading(db_session, slot_id, product_id, quantity, read_at, store_id=STORE_ID):
    reading = ShelfStockReading(
        store_id=store_id,
        slot_id=slot_id,
        product_id=product_id,
        current_quantity=quantity,
        source="contagem_manual",
        read_at=read_at
    )
    db_session.add(reading)
    db_session.commit()
    return reading


def add_event(db_session, product_id, slot_id, started_at, revenue_lost=None, margin_lost=None,
              ended_at=None, duration_hours=None, units_not_sold=None, store_id=STORE_ID,
              rupture_type="total"):
    event = RuptureEvent(
        store_id=store_id,
        product_id=product_id,
        slot_id=slot_id,
        started_at=started_at,
        ended_at=ended_at,
        rupture_type=rupture_type,
        duration_hours=duration_hours,
        units_not_sold=units_not_sold,
        revenue_lost=revenue_lost,
        margin_lost=margin_lost
    )
    db_session.add(event)
    db_session.commit()
    return event


def add_daily_sales(db_session, product_id, reference: datetime, units_per_day: float, days: int = 28,
                    store_id=STORE_ID):
    """Vendas diárias concentradas às 12h nos dias anteriores à referência"""
    for offset in range(1, days + 1):
        db_session.add(HourlySales(
            store_id=store_id,
            product_id=product_id,
            sale_date=reference.date() - timedelta(days=offset),
            hour=12,
            units_sold=units_per_day
        ))
    db_session.commit()
