# app/main.py
from fastapi import FastAPI
from contextlib import asynccontextmanager
import logging

from app.config.settings import settings
from app.core.middleware import setup_logging, setup_middleware
from app.api.v1.router import api_router

setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"{settings.app_name} iniciando - versão {settings.version}")
    logger.info(f"Ambiente: {'Development' if settings.debug else 'Production'}")
    logger.info(
        "Limiares padrão: BOM >= %.2f, REGULAR >= %.2f, ruptura funcional < %.2f",
        settings.supply_good_min, settings.supply_regular_min, settings.supply_critical_max
    )

    yield

    # Shutdown
    logger.info(f"{settings.app_name} encerrando")

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Capacidade de gôndola, abastecimento e análise de ruptura",
    docs_url="/docs",
    redoc_url="/redoc" if settings.debug else None,
    lifespan=lifespan
)

# Setup middleware
setup_middleware(app)

# Include routers
app.include_router(api_router, prefix="/api/v1")

# Root endpoint
@app.get("/")
async def root():
    return {
        "message": f"{settings.app_name}",
        "version": settings.version,
        "status": "running",
        "environment": "production" if not settings.debug else "development",
        "docs": "/docs",
        "api": "/api/v1"
    }

@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "version": settings.version,
        "app": settings.app_name,
        "environment": "production" if not settings.debug else "development"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
