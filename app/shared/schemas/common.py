# app/shared/schemas/common.py
from pydantic import BaseModel, Field
from datetime import datetime

class BaseResponse(BaseModel):
    success: bool = True
    message: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)

class AnalysisPeriod(BaseModel):
    """Janela de análise [start, end]"""
    start: datetime
    end: datetime
    days: int
