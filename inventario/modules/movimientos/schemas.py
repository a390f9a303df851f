# inventario/modules/movimientos/schemas.py
from pydantic import BaseModel, Field
from typing import List, Optional, Union
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from inventario.modules.catalogo.schemas import ProductoInfo, BodegaInfo, UsuarioInfo, ClienteInfo

class MovementKind(str, Enum):
    """Tipos de movimiento del kardex"""
    ENTRADA = "entrada"    # Suma al stock
    SALIDA = "salida"      # Resta del stock

# ==================== MOVIMIENTOS SIMPLES ====================

class EntradaCreate(BaseModel):
    """Registrar entrada de mercancía"""
    producto_id: int = Field(..., gt=0, description="ID del producto")
    bodega_id: int = Field(..., gt=0, description="ID de la bodega")
    cantidad: Decimal = Field(..., gt=0, decimal_places=2, description="Cantidad que ingresa")
    precio: Decimal = Field(Decimal("0"), ge=0, decimal_places=2, description="Precio unitario")
    cliente_id: Optional[int] = Field(None, gt=0, description="ID del proveedor (opcional)")
    observacion: Optional[str] = Field(None, max_length=500, description="Observaciones")

class SalidaCreate(BaseModel):
    """Registrar salida de mercancía"""
    producto_id: int = Field(..., gt=0, description="ID del producto")
    bodega_id: int = Field(..., gt=0, description="ID de la bodega")
    cantidad: Decimal = Field(..., gt=0, decimal_places=2, description="Cantidad que sale")
    precio: Decimal = Field(Decimal("0"), ge=0, decimal_places=2, description="Precio unitario (opcional)")
    cliente_id: Optional[int] = Field(None, gt=0, description="ID del cliente (opcional)")
    observacion: Optional[str] = Field(None, max_length=500, description="Observaciones")

# ==================== OPERACIONES COMPUESTAS ====================

class ProductoDestino(BaseModel):
    producto_id: int = Field(..., gt=0, description="ID del producto destino")
    cantidad: Decimal = Field(..., gt=0, decimal_places=2, description="Cantidad que ingresa del producto destino")

class DividirProductoCreate(BaseModel):
    """Dividir un producto (combo) en varios productos destino"""
    producto_origen_id: int = Field(..., gt=0, description="ID del producto origen")
    bodega_id: int = Field(..., gt=0, description="ID de la bodega")
    cantidad_total: Decimal = Field(..., gt=0, decimal_places=2, description="Cantidad a descontar del origen")
    productos_destino: List[ProductoDestino] = Field(..., min_length=1, description="Productos destino")

class Ingrediente(BaseModel):
    producto_id: int = Field(..., gt=0, description="ID del producto ingrediente")
    cantidad: Decimal = Field(..., gt=0, decimal_places=2, description="Cantidad del ingrediente a descontar")

class CrearComboCreate(BaseModel):
    """Armar un producto combo a partir de ingredientes"""
    bodega_id: int = Field(..., gt=0, description="ID de la bodega")
    producto_combo_id: int = Field(..., gt=0, description="ID del producto combo (entrada)")
    ingredientes: List[Ingrediente] = Field(..., min_length=1, description="Ingredientes (salidas)")

# ==================== CORRECCIONES ADMINISTRATIVAS ====================

class MovimientoUpdate(BaseModel):
    """Corrección administrativa de un movimiento"""
    cantidad: Optional[Decimal] = Field(None, gt=0, decimal_places=2, description="Nueva cantidad")
    precio: Optional[Decimal] = Field(None, ge=0, decimal_places=2, description="Nuevo precio")
    observacion: Optional[str] = Field(None, max_length=500, description="Nueva observación")

# ==================== FILTROS ====================

class MovimientoFilter(BaseModel):
    """Filtros para el listado paginado de movimientos"""
    tipo: Optional[MovementKind] = Field(None, description="Tipo de movimiento")
    producto_id: Optional[int] = Field(None, description="ID de producto")
    producto_codigo: Optional[str] = Field(None, description="Código de producto (parcial)")
    bodega_id: Optional[int] = Field(None, description="ID de bodega")
    cliente_id: Optional[int] = Field(None, description="ID de cliente/proveedor")
    usuario_id: Optional[int] = Field(None, description="ID de usuario")
    fecha_desde: Optional[date] = Field(None, description="Desde fecha (YYYY-MM-DD)")
    fecha_hasta: Optional[date] = Field(None, description="Hasta fecha inclusive (YYYY-MM-DD)")
    page: int = Field(1, ge=1, description="Número de página")
    limit: int = Field(10, ge=1, le=100, description="Elementos por página")

class InventarioFilter(BaseModel):
    """Filtros para el inventario general"""
    bodega_id: Optional[int] = Field(None, description="ID de bodega")
    producto_id: Optional[int] = Field(None, description="ID de producto")
    stock_minimo: Optional[Decimal] = Field(None, description="Stock mínimo")
    solo_stock_bajo: bool = Field(False, description="Solo líneas con stock bajo")
    incluir_ceros: bool = Field(False, description="Incluir líneas con stock cero o negativo")

# ==================== RESPUESTAS ====================

class MovimientoResponse(BaseModel):
    id: int
    tipo: MovementKind
    cantidad: float
    precio: float
    fecha: datetime
    observacion: Optional[str]
    producto: ProductoInfo
    bodega: BodegaInfo
    usuario: UsuarioInfo
    cliente: Optional[ClienteInfo]

class PaginationMeta(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int

class MovimientoListResponse(BaseModel):
    data: List[MovimientoResponse]
    meta: PaginationMeta

class MovimientosPorCodigo(BaseModel):
    codigo: str
    movimientos: List[MovimientoResponse]
    total_movimientos: int

class StockResponse(BaseModel):
    producto_id: int
    bodega_id: int
    stock: float

class DivisionResponse(BaseModel):
    salida: MovimientoResponse
    entradas: List[MovimientoResponse]
    mensaje: str

class ComboResponse(BaseModel):
    salidas: List[MovimientoResponse]
    entrada: MovimientoResponse
    mensaje: str

# ==================== KARDEX ====================

class KardexEntry(BaseModel):
    id: int
    fecha: datetime
    tipo: MovementKind
    cantidad: float
    precio: float
    saldo: float
    observacion: Optional[str]
    bodega: BodegaInfo
    usuario: UsuarioInfo
    cliente: Optional[ClienteInfo]

class KardexResponse(BaseModel):
    producto: ProductoInfo
    kardex: List[KardexEntry]
    stock_actual: float
    total_movimientos: int

# ==================== INVENTARIO GENERAL ====================

class InventarioItem(BaseModel):
    producto: ProductoInfo
    bodega: BodegaInfo
    stock: float
    total_movimientos: int
    ultimo_movimiento: Optional[datetime]
    total_entradas: float
    total_salidas: float

class EstadisticasInventario(BaseModel):
    total_productos_diferentes: int
    total_bodegas: int
    stock_total_unidades: float
    total_registros: int
    productos_stock_bajo: int
    ultima_actualizacion: datetime

class ResumenBodega(BaseModel):
    bodega: BodegaInfo
    total_productos: int
    stock_total: float

class ResumenProducto(BaseModel):
    producto: ProductoInfo
    stock_total: float
    bodegas: int
    ultimo_movimiento: Optional[datetime]

class InventarioGeneralResponse(BaseModel):
    inventario: List[InventarioItem]
    estadisticas: EstadisticasInventario
    resumen_por_bodega: List[ResumenBodega]
    resumen_por_producto: List[ResumenProducto]
    total_items: int

# ==================== CARGA MASIVA ====================

class ImportRow(BaseModel):
    """Fila ya parseada de la plantilla de carga masiva (tipos sin validar)"""
    tipo: Optional[str] = Field(None, description="entrada | salida")
    codigo_producto: Optional[str] = Field(None, description="Código del producto")
    cantidad: Optional[Union[Decimal, str]] = Field(None, description="Cantidad")
    precio: Optional[Union[Decimal, str]] = Field(None, description="Precio unitario")
    bodega_id: Optional[Union[int, str]] = Field(None, description="ID de la bodega")
    cliente_id: Optional[Union[int, str]] = Field(None, description="ID de cliente/proveedor")
    observacion: Optional[str] = Field(None, description="Observaciones")

class ImportRequest(BaseModel):
    filas: List[ImportRow] = Field(..., description="Filas de la plantilla en orden")

class ImportResult(BaseModel):
    exitosos: int
    fallidos: int
    errores: List[str]
    movimientos: List[MovimientoResponse]
