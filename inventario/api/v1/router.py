# inventario/api/v1/router.py
from fastapi import APIRouter

from inventario.config.settings import settings
from inventario.core.tenant import tenant_resolver
from inventario.modules.movimientos import movimientos_router
from inventario.modules.catalogo import catalogo_router

# Router principal de la API v1
api_router = APIRouter()

# ==================== MÓDULOS ====================

# /api/v1/movimientos/...
api_router.include_router(movimientos_router)

# /api/v1/catalogo/...
api_router.include_router(catalogo_router)

# ==================== ENDPOINTS RAÍZ ====================

@api_router.get("/")
async def api_root():
    """Root endpoint de la API"""
    return {
        "message": f"{settings.app_name} v1",
        "version": settings.version,
        "status": "active",
        "docs": "/docs",
        "available_endpoints": {
            "movimientos": "/api/v1/movimientos",
            "catalogo": "/api/v1/catalogo",
            "tenants": "/api/v1/tenants"
        }
    }

@api_router.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": settings.version,
        "architecture": "modular_monolith",
        "tenants": list(tenant_resolver.schemas)
    }

@api_router.get("/tenants")
async def list_tenants():
    """Tenants configurados (clave, nombre visible y esquema)"""
    return {
        "success": True,
        "default": tenant_resolver.default,
        "tenants": tenant_resolver.available_tenants()
    }
