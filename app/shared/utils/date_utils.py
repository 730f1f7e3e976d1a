# app/shared/utils/date_utils.py
from datetime import datetime, timedelta
from typing import Optional, Tuple


def to_naive_local(value: Optional[datetime]) -> Optional[datetime]:
    """Converte datetimes com timezone para horário local sem tzinfo.

    O banco guarda timestamps sem timezone (mesma convenção de datetime.now()).
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def analysis_window(days: int, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Janela [now - days, now]"""
    end = to_naive_local(now) or datetime.now()
    return end - timedelta(days=days), end


def sunday_first_weekday(value: datetime) -> int:
    """Dia da semana com 0 = domingo ... 6 = sábado"""
    return (value.weekday() + 1) % 7
