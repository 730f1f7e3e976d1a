# app/modules/rupture/__init__.py
"""
Módulo de Ruptura - Análises de stock-out

- Perda de receita por produto
- Taxa de ruptura por hora do dia / dia da semana
- Ranking de receita perdida
- Série temporal diária de ruptura
"""

from .router import router
from .service import RuptureService
from .repository import RuptureRepository

__all__ = [
    "router",
    "RuptureService",
    "RuptureRepository"
]
