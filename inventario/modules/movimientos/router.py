# inventario/modules/movimientos/router.py
from fastapi import APIRouter, Depends, Query
from typing import Optional
from datetime import date
from decimal import Decimal

from inventario.core.auth.dependencies import get_current_user, get_tenant, require_roles
from inventario.core.auth.schemas import CallerIdentity
from inventario.modules.catalogo.schemas import DeleteResponse
from .service import MovimientosService
from .importer import BulkImportService
from .schemas import *

router = APIRouter(prefix="/movimientos", tags=["Movimientos - Kardex"])

# ==================== ENTRADAS Y SALIDAS ====================

@router.post("/entrada", response_model=MovimientoResponse, status_code=201)
async def crear_entrada(
    entrada: EntradaCreate,
    current_user: CallerIdentity = Depends(get_current_user),
    tenant: str = Depends(get_tenant)
):
    """
    Registrar entrada de mercancía

    **Validaciones:**
    - Producto, bodega y usuario deben existir en el tenant
    - Si se indica cliente, debe ser proveedor o 'ambos'
    - Sin precondición de stock
    """
    return MovimientosService(tenant).crear_entrada(entrada, current_user.id)

@router.post("/salida", response_model=MovimientoResponse, status_code=201)
async def crear_salida(
    salida: SalidaCreate,
    current_user: CallerIdentity = Depends(get_current_user),
    tenant: str = Depends(get_tenant)
):
    """
    Registrar salida de mercancía

    **Validaciones:**
    - Producto, bodega y usuario deben existir en el tenant
    - Si se indica cliente, debe ser cliente o 'ambos'
    - El stock de (producto, bodega) debe cubrir la cantidad
    """
    return MovimientosService(tenant).crear_salida(salida, current_user.id)

# ==================== OPERACIONES COMPUESTAS ====================

@router.post("/dividir", response_model=DivisionResponse, status_code=201)
async def dividir_producto(
    division: DividirProductoCreate,
    current_user: CallerIdentity = Depends(get_current_user),
    tenant: str = Depends(get_tenant)
):
    """
    Dividir un producto en varios productos destino

    **Proceso (una sola transacción):**
    - Salida del producto origen por la cantidad total
    - Una entrada por cada producto destino

    Si el origen no tiene stock suficiente no se registra ningún movimiento.
    """
    return MovimientosService(tenant).dividir_producto(division, current_user.id)

@router.post("/crear-combo", response_model=ComboResponse, status_code=201)
async def crear_combo(
    combo: CrearComboCreate,
    current_user: CallerIdentity = Depends(get_current_user),
    tenant: str = Depends(get_tenant)
):
    """
    Armar un combo a partir de ingredientes

    **Proceso (una sola transacción):**
    - Una salida por ingrediente (cada uno validado contra su propio stock)
    - Entrada del combo por la suma de las cantidades de ingredientes
    """
    return MovimientosService(tenant).crear_combo(combo, current_user.id)

# ==================== CARGA MASIVA ====================

@router.post("/importar", response_model=ImportResult)
async def importar_movimientos(
    request: ImportRequest,
    current_user: CallerIdentity = Depends(get_current_user),
    tenant: str = Depends(get_tenant)
):
    """
    Carga masiva de movimientos ya parseados

    Las filas con error se reportan como "Fila N: mensaje" y no detienen el lote.
    """
    return BulkImportService(tenant).importar(request.filas, current_user.id)

# ==================== CONSULTAS ====================

@router.get("/", response_model=MovimientoListResponse)
async def listar_movimientos(
    tipo: Optional[MovementKind] = Query(None, description="Tipo de movimiento"),
    producto_id: Optional[int] = Query(None),
    producto_codigo: Optional[str] = Query(None, description="Código parcial"),
    bodega_id: Optional[int] = Query(None),
    cliente_id: Optional[int] = Query(None),
    usuario_id: Optional[int] = Query(None),
    fecha_desde: Optional[date] = Query(None, description="YYYY-MM-DD"),
    fecha_hasta: Optional[date] = Query(None, description="YYYY-MM-DD (inclusive)"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: CallerIdentity = Depends(get_current_user),
    tenant: str = Depends(get_tenant)
):
    """Listado paginado de movimientos, del más reciente al más antiguo"""
    filters = MovimientoFilter(
        tipo=tipo,
        producto_id=producto_id,
        producto_codigo=producto_codigo,
        bodega_id=bodega_id,
        cliente_id=cliente_id,
        usuario_id=usuario_id,
        fecha_desde=fecha_desde,
        fecha_hasta=fecha_hasta,
        page=page,
        limit=limit
    )
    return MovimientosService(tenant).find_all(filters)

@router.get("/producto/{codigo}", response_model=MovimientosPorCodigo)
async def movimientos_por_codigo(
    codigo: str,
    current_user: CallerIdentity = Depends(get_current_user),
    tenant: str = Depends(get_tenant)
):
    """Movimientos de un producto buscado por código"""
    return MovimientosService(tenant).find_by_codigo(codigo)

@router.get("/inventario", response_model=InventarioGeneralResponse)
async def inventario_general(
    bodega_id: Optional[int] = Query(None),
    producto_id: Optional[int] = Query(None),
    stock_minimo: Optional[Decimal] = Query(None),
    solo_stock_bajo: bool = Query(False),
    incluir_ceros: bool = Query(False),
    current_user: CallerIdentity = Depends(get_current_user),
    tenant: str = Depends(get_tenant)
):
    """
    Inventario general por producto y bodega

    **Incluye:**
    - Stock, entradas, salidas y último movimiento de cada línea
    - Estadísticas generales y conteo de stock bajo
    - Resúmenes por bodega y por producto

    Por defecto omite las líneas con stock cero o negativo.
    """
    filters = InventarioFilter(
        bodega_id=bodega_id,
        producto_id=producto_id,
        stock_minimo=stock_minimo,
        solo_stock_bajo=solo_stock_bajo,
        incluir_ceros=incluir_ceros
    )
    return MovimientosService(tenant).get_inventario_general(filters)

@router.get("/stock", response_model=StockResponse)
async def stock_producto_bodega(
    producto_id: int = Query(..., gt=0),
    bodega_id: int = Query(..., gt=0),
    current_user: CallerIdentity = Depends(get_current_user),
    tenant: str = Depends(get_tenant)
):
    """Stock actual de un producto en una bodega (0 si no tiene movimientos)"""
    return MovimientosService(tenant).stock_of(producto_id, bodega_id)

@router.get("/kardex/{producto_id}", response_model=KardexResponse)
async def kardex_producto(
    producto_id: int,
    bodega_id: Optional[int] = Query(None),
    current_user: CallerIdentity = Depends(get_current_user),
    tenant: str = Depends(get_tenant)
):
    """Kardex del producto con saldo acumulado en orden cronológico"""
    return MovimientosService(tenant).get_kardex(producto_id, bodega_id)

@router.get("/{movimiento_id}", response_model=MovimientoResponse)
async def obtener_movimiento(
    movimiento_id: int,
    current_user: CallerIdentity = Depends(get_current_user),
    tenant: str = Depends(get_tenant)
):
    return MovimientosService(tenant).find_one(movimiento_id)

# ==================== CORRECCIONES (ADMIN) ====================

@router.patch("/{movimiento_id}", response_model=MovimientoResponse)
async def corregir_movimiento(
    movimiento_id: int,
    cambios: MovimientoUpdate,
    current_user: CallerIdentity = Depends(require_roles(["admin"])),
    tenant: str = Depends(get_tenant)
):
    """
    Corrección administrativa de un movimiento

    Al aumentar la cantidad de una salida, la nueva cantidad no puede superar
    el stock calculado sin ese movimiento.
    """
    return MovimientosService(tenant).update(movimiento_id, cambios)

@router.delete("/{movimiento_id}", response_model=DeleteResponse)
async def eliminar_movimiento(
    movimiento_id: int,
    current_user: CallerIdentity = Depends(require_roles(["admin"])),
    tenant: str = Depends(get_tenant)
):
    return MovimientosService(tenant).remove(movimiento_id)
