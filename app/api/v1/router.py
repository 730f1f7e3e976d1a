# app/api/v1/router.py
from fastapi import APIRouter
from app.api.v1.auth import router as auth_router
from app.modules.volumetria.router import router as volumetria_router
from app.modules.rupture.router import router as rupture_router


# Router principal da API v1
api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["authentication"])

api_router.include_router(
    volumetria_router,
    prefix="/volumetria",
    tags=["Volumetria"]
)

api_router.include_router(
    rupture_router,
    prefix="/rupture",
    tags=["Rupture Analytics"]
)

@api_router.get("/")
async def api_root():
    """Root endpoint da API"""
    return {
        "message": "Gondola Volumetria API v1",
        "status": "active",
        "docs": "/docs",
        "available_endpoints": {
            "authentication": "/api/v1/auth",
            "volumetria": "/api/v1/volumetria",
            "rupture": "/api/v1/rupture"
        }
    }
