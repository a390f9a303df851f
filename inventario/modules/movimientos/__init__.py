# inventario/modules/movimientos/__init__.py

"""
Módulo Movimientos - Kardex e inventario

El stock no se almacena: es la suma firmada de los movimientos de cada
(producto, bodega), calculada en cada consulta.

- Entrada simple (con validación de proveedor)
- Salida simple (con validación de cliente y de stock)
- División de un producto en varios destinos (atómica)
- Armado de combo desde ingredientes (atómica)
- Carga masiva con reporte de errores por fila
- Kardex con saldo acumulado
- Inventario general con estadísticas y resúmenes
- Listado paginado y búsqueda por código
- Corrección y eliminación administrativa

Arquitectura:
- router.py: Endpoints FastAPI
- service.py: Motor de movimientos y lecturas
- importer.py: Carga masiva
- repository.py: Ledger (acceso a datos)
- schemas.py: Modelos Pydantic de request/response
"""

from .router import router as movimientos_router
from .service import MovimientosService, MovementEngine
from .importer import BulkImportService
from .repository import MovementRepository

__all__ = [
    "movimientos_router",
    "MovimientosService",
    "MovementEngine",
    "BulkImportService",
    "MovementRepository"
]
