import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from inventario.config.settings import settings
from inventario.config.database import create_tenant_schemas
from inventario.core.middleware import setup_middleware
from inventario.api.v1.router import api_router

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"{settings.app_name} starting...")
    logger.info(f"Version: {settings.version}")
    logger.info(f"Environment: {'Development' if settings.debug else 'Production'}")
    logger.info(f"Tenants: {', '.join(settings.tenant_schemas)} (default: {settings.default_tenant})")

    if settings.create_schemas_on_startup:
        create_tenant_schemas()

    yield

    # Shutdown
    logger.info(f"{settings.app_name} shutting down...")

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Kardex multi-tenant: movimientos, stock e inventario por bodega",
    docs_url="/docs" if settings.debug else None,
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
        "message": f"{settings.app_name} - Kardex multi-tenant",
        "version": settings.version,
        "status": "running",
        "docs": "/docs" if settings.debug else "Disabled in production",
        "api": "/api/v1"
    }

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "inventario.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
