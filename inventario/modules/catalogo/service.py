# inventario/modules/catalogo/service.py
import logging

from inventario.core.exceptions import ConflictError, NotFoundError
from inventario.modules.catalogo.repository import CatalogRepository
from inventario.modules.catalogo.schemas import (
    BodegaInfo, ProductoInfo, DeleteResponse, bodega_info, producto_info
)
from inventario.shared.database.tenant_scope import tenant_session, tenant_transaction

logger = logging.getLogger(__name__)


class CatalogService:

    def __init__(self, tenant: str):
        self.tenant = tenant

    def get_bodega(self, bodega_id: int) -> BodegaInfo:
        with tenant_session(self.tenant) as db:
            warehouse = CatalogRepository(db).get_warehouse_by_id(bodega_id)
            if not warehouse:
                raise NotFoundError("Bodega", bodega_id, tenant=self.tenant)
            return bodega_info(warehouse)

    def get_producto_por_codigo(self, codigo: str) -> ProductoInfo:
        with tenant_session(self.tenant) as db:
            product = CatalogRepository(db).get_product_by_code(codigo)
            if not product:
                raise NotFoundError(
                    "Producto", codigo, tenant=self.tenant,
                    message=f"Producto con código {codigo} no encontrado en {self.tenant}"
                )
            return producto_info(product)

    # ===== BORRADOS PROTEGIDOS =====

    def eliminar_bodega(self, bodega_id: int) -> DeleteResponse:
        """Eliminar bodega solo si ningún movimiento la referencia"""
        with tenant_transaction(self.tenant) as db:
            repository = CatalogRepository(db)
            warehouse = repository.get_warehouse_by_id(bodega_id)
            if not warehouse:
                raise NotFoundError("Bodega", bodega_id, tenant=self.tenant)

            referencias = repository.count_movements_by_warehouse(bodega_id)
            if referencias > 0:
                raise ConflictError(
                    f"No se puede eliminar la bodega porque tiene {referencias} movimientos asociados",
                    movimientos=referencias
                )

            repository.delete(warehouse)

        logger.info(f"Bodega {bodega_id} eliminada en {self.tenant}")
        return DeleteResponse(message="Bodega eliminada", id=bodega_id)

    def eliminar_cliente(self, cliente_id: int) -> DeleteResponse:
        """Eliminar cliente/proveedor solo si ningún movimiento lo referencia"""
        with tenant_transaction(self.tenant) as db:
            repository = CatalogRepository(db)
            counterparty = repository.get_counterparty_by_id(cliente_id)
            if not counterparty:
                raise NotFoundError("Cliente", cliente_id, tenant=self.tenant)

            referencias = repository.count_movements_by_counterparty(cliente_id)
            if referencias > 0:
                raise ConflictError(
                    f"No se puede eliminar el cliente porque tiene {referencias} movimientos asociados",
                    movimientos=referencias
                )

            repository.delete(counterparty)

        logger.info(f"Cliente {cliente_id} eliminado en {self.tenant}")
        return DeleteResponse(message="Cliente eliminado", id=cliente_id)
