# inventario/modules/catalogo/router.py
from fastapi import APIRouter, Depends

from inventario.core.auth.dependencies import get_current_user, get_tenant, require_roles
from inventario.core.auth.schemas import CallerIdentity
from .service import CatalogService
from .schemas import BodegaInfo, ProductoInfo, DeleteResponse

router = APIRouter(prefix="/catalogo", tags=["Catálogo"])

# ==================== CONSULTAS ====================

@router.get("/bodegas/{bodega_id}", response_model=BodegaInfo)
async def get_bodega(
    bodega_id: int,
    current_user: CallerIdentity = Depends(get_current_user),
    tenant: str = Depends(get_tenant)
):
    """Obtener una bodega del tenant activo"""
    return CatalogService(tenant).get_bodega(bodega_id)

@router.get("/productos/codigo/{codigo}", response_model=ProductoInfo)
async def get_producto_por_codigo(
    codigo: str,
    current_user: CallerIdentity = Depends(get_current_user),
    tenant: str = Depends(get_tenant)
):
    """Buscar un producto por su código exacto"""
    return CatalogService(tenant).get_producto_por_codigo(codigo)

# ==================== BORRADOS PROTEGIDOS ====================

@router.delete("/bodegas/{bodega_id}", response_model=DeleteResponse)
async def eliminar_bodega(
    bodega_id: int,
    current_user: CallerIdentity = Depends(require_roles(["admin"])),
    tenant: str = Depends(get_tenant)
):
    """
    Eliminar bodega

    **Reglas:**
    - Solo administradores
    - Rechazada con 409 si existen movimientos que la referencian
    """
    return CatalogService(tenant).eliminar_bodega(bodega_id)

@router.delete("/clientes/{cliente_id}", response_model=DeleteResponse)
async def eliminar_cliente(
    cliente_id: int,
    current_user: CallerIdentity = Depends(require_roles(["admin"])),
    tenant: str = Depends(get_tenant)
):
    """
    Eliminar cliente/proveedor

    **Reglas:**
    - Solo administradores
    - Rechazada con 409 si existen movimientos que lo referencian
    """
    return CatalogService(tenant).eliminar_cliente(cliente_id)
