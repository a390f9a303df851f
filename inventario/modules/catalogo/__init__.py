# inventario/modules/catalogo/__init__.py

"""
Módulo Catálogo - Lecturas de productos, bodegas, usuarios y clientes

El catálogo lo administra otro servicio; aquí solo se consulta dentro del
esquema del tenant y se protegen los borrados que dejarían movimientos huérfanos:

- Consultar bodega por ID
- Consultar producto por código
- Eliminar bodega sin movimientos asociados (409 si los tiene)
- Eliminar cliente/proveedor sin movimientos asociados (409 si los tiene)

Arquitectura:
- router.py: Endpoints FastAPI
- service.py: Lógica de negocio
- repository.py: Acceso a datos (también usado por el motor de movimientos)
- schemas.py: Modelos Pydantic de respuesta
"""

from .router import router as catalogo_router
from .service import CatalogService
from .repository import CatalogRepository

__all__ = [
    "catalogo_router",
    "CatalogService",
    "CatalogRepository"
]
