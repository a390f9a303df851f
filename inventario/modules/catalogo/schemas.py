# inventario/modules/catalogo/schemas.py
from pydantic import BaseModel
from typing import Optional

# ==================== RESÚMENES DE CATÁLOGO ====================

class ProductoInfo(BaseModel):
    id: int
    codigo: str
    descripcion: str
    unidad_medida: Optional[str] = None

class BodegaInfo(BaseModel):
    id: int
    nombre: str
    ubicacion: Optional[str] = None

class UsuarioInfo(BaseModel):
    id: int
    nombre: str

class ClienteInfo(BaseModel):
    id: int
    nombre: str
    tipo: str

class DeleteResponse(BaseModel):
    success: bool = True
    message: str
    id: int

# ==================== CONSTRUCTORES ====================

def producto_info(product) -> ProductoInfo:
    return ProductoInfo(
        id=product.id,
        codigo=product.codigo,
        descripcion=product.descripcion,
        unidad_medida=product.unit_of_measure.nombre if product.unit_of_measure else None
    )

def bodega_info(warehouse) -> BodegaInfo:
    return BodegaInfo(id=warehouse.id, nombre=warehouse.nombre, ubicacion=warehouse.ubicacion)

def usuario_info(user) -> UsuarioInfo:
    return UsuarioInfo(id=user.id, nombre=user.nombre)

def cliente_info(counterparty) -> Optional[ClienteInfo]:
    if counterparty is None:
        return None
    return ClienteInfo(id=counterparty.id, nombre=counterparty.nombre, tipo=counterparty.tipo)
