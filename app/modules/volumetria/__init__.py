# app/modules/volumetria/__init__.py
"""
Módulo de Volumetria - Capacidade de gôndola e abastecimento

Este módulo cobre:
- Cadastro e consulta de dados volumétricos de produtos
- Status de abastecimento de slots (BOM / REGULAR / RUIM)
- Slots críticos (status RUIM ou ruptura recorrente)
- Registro de leituras de estoque e ciclo de vida de eventos de ruptura
- Limiares de abastecimento por categoria

Arquitetura:
- router.py: Endpoints de volumetria
- service.py: Lógica de negócio
- repository.py: Acesso a dados
- schemas.py: Modelos de request/response
"""

from .router import router
from .service import VolumetriaService
from .repository import VolumetriaRepository

__all__ = [
    "router",
    "VolumetriaService",
    "VolumetriaRepository"
]
