# app/config/settings.py
from pydantic_settings import BaseSettings
from typing import List
import os

class Settings(BaseSettings):
    # App Info
    app_name: str = "Gondola Volumetria API"
    version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = os.getenv("DATABASE_URL", "postgresql+psycopg://localhost:5432/volumetria")

    # Security
    secret_key: str = os.getenv("SECRET_KEY", "change-in-production")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 10080

    # Limiares padrão de abastecimento (fração da capacidade)
    supply_good_min: float = 0.70
    supply_regular_min: float = 0.40
    supply_critical_max: float = 0.10

    # Janelas de análise (dias)
    critical_slots_period_days: int = 7
    critical_slots_min_rupture_events: int = 3
    loss_period_days: int = 30
    loss_default_limit: int = 20
    rupture_period_days: int = 30

    # Venda média por hora
    sales_window_days: int = 28
    store_open_hours_per_day: float = 14.0

    # CORS
    cors_origins: List[str] = ["*"]

    # Server
    host: str = "0.0.0.0"
    port: int = int(os.getenv("PORT", 10000))

    @property
    def database_url_with_ssl(self) -> str:
        """Adiciona SSL para conexões de produção (Supabase)"""
        if self.database_url and "supabase" in self.database_url:
            if "sslmode=" not in self.database_url:
                separator = "&" if "?" in self.database_url else "?"
                return f"{self.database_url}{separator}sslmode=require"
        return self.database_url

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = 'ignore'

settings = Settings()
