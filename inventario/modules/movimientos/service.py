# inventario/modules/movimientos/service.py
import logging
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from math import ceil
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from inventario.config.settings import settings
from inventario.core.exceptions import (
    InsufficientStockError, InvalidOperationError, NotFoundError
)
from inventario.modules.catalogo.repository import CatalogRepository
from inventario.modules.catalogo.schemas import (
    BodegaInfo, DeleteResponse, ProductoInfo,
    bodega_info, cliente_info, producto_info, usuario_info
)
from inventario.modules.movimientos.repository import MovementRepository, to_decimal
from inventario.modules.movimientos.schemas import (
    EntradaCreate, SalidaCreate, DividirProductoCreate, CrearComboCreate,
    MovimientoUpdate, MovimientoFilter, InventarioFilter,
    MovimientoResponse, MovimientoListResponse, MovimientosPorCodigo, PaginationMeta,
    StockResponse, DivisionResponse, ComboResponse, KardexEntry, KardexResponse,
    InventarioItem, EstadisticasInventario, ResumenBodega, ResumenProducto,
    InventarioGeneralResponse
)
from inventario.shared.database.models import AMOUNT_DECIMALS, Counterparty, Movement, Product, User, Warehouse
from inventario.shared.database.tenant_scope import tenant_session, tenant_transaction

logger = logging.getLogger(__name__)


def exceeds_decimals(value) -> bool:
    """Más decimales de los que guarda la columna"""
    return to_decimal(value).normalize().as_tuple().exponent < -AMOUNT_DECIMALS


def movement_response(movement: Movement) -> MovimientoResponse:
    return MovimientoResponse(
        id=movement.id,
        tipo=movement.tipo,
        cantidad=float(movement.cantidad),
        precio=float(movement.precio or 0),
        fecha=movement.fecha,
        observacion=movement.observacion,
        producto=producto_info(movement.product),
        bodega=bodega_info(movement.warehouse),
        usuario=usuario_info(movement.user),
        cliente=cliente_info(movement.counterparty)
    )


class MovementEngine:
    """
    Reglas de escritura del kardex sobre una transacción de tenant abierta.

    Cada operación sigue el mismo orden: validar entidades, bloquear los
    productos que se descuentan, verificar stock y solo entonces escribir.
    Si algo falla no se ha escrito nada.
    """

    def __init__(self, db: Session, tenant: str):
        self.db = db
        self.tenant = tenant
        self.repository = MovementRepository(db)
        self.catalog = CatalogRepository(db)

    # ===== VALIDACIONES =====

    def require_product(self, product_id: int, entity: str = "Producto") -> Product:
        product = self.catalog.get_product_by_id(product_id)
        if not product:
            raise NotFoundError(entity, product_id, tenant=self.tenant)
        return product

    def require_product_by_code(self, code: str) -> Product:
        product = self.catalog.get_product_by_code(code)
        if not product:
            raise NotFoundError(
                "Producto", code, tenant=self.tenant,
                message=f'Producto "{code}" no encontrado en {self.tenant}'
            )
        return product

    def require_warehouse(self, warehouse_id: int) -> Warehouse:
        warehouse = self.catalog.get_warehouse_by_id(warehouse_id)
        if not warehouse:
            raise NotFoundError("Bodega", warehouse_id, tenant=self.tenant)
        return warehouse

    def require_user(self, user_id: int) -> User:
        user = self.catalog.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("Usuario", user_id, tenant=self.tenant)
        return user

    def require_counterparty(self, counterparty_id: Optional[int], kind: str) -> Optional[Counterparty]:
        """El proveedor solo firma entradas y el cliente solo salidas; 'ambos' firma las dos"""
        if not counterparty_id:
            return None

        counterparty = self.catalog.get_counterparty_by_id(counterparty_id)
        if not counterparty:
            raise NotFoundError("Cliente", counterparty_id, tenant=self.tenant)

        if kind == "entrada" and not counterparty.can_supply():
            raise InvalidOperationError(
                f"El cliente {counterparty.nombre} no es un proveedor válido",
                cliente_id=counterparty_id
            )
        if kind == "salida" and not counterparty.can_buy():
            raise InvalidOperationError(
                f"El cliente {counterparty.nombre} no es un cliente válido",
                cliente_id=counterparty_id
            )
        return counterparty

    @staticmethod
    def check_amounts(quantity: Decimal, price: Optional[Decimal] = None) -> None:
        if quantity is None or quantity <= 0:
            raise InvalidOperationError(
                f"Cantidad inválida: {quantity}. Debe ser mayor a 0", cantidad=quantity
            )
        if exceeds_decimals(quantity):
            raise InvalidOperationError(
                f"Cantidad inválida: {quantity}. Máximo {AMOUNT_DECIMALS} decimales", cantidad=quantity
            )
        if price is not None and price < 0:
            raise InvalidOperationError(
                f"Precio inválido: {price}. Debe ser mayor o igual a 0", precio=price
            )
        if price is not None and exceeds_decimals(price):
            raise InvalidOperationError(
                f"Precio inválido: {price}. Máximo {AMOUNT_DECIMALS} decimales", precio=price
            )

    def require_stock(self, product: Product, warehouse: Warehouse,
                      quantity: Decimal, label: Optional[str] = None) -> Decimal:
        available = self.repository.stock_of(product.id, warehouse.id)
        if available < quantity:
            raise InsufficientStockError(
                available, quantity,
                product_id=product.id, warehouse_id=warehouse.id,
                label=label, tenant=self.tenant
            )
        return available

    # ===== ESCRITURA =====

    def record(self, kind: str, product: Product, warehouse: Warehouse, user: User,
               quantity: Decimal, price: Decimal = Decimal("0"),
               counterparty: Optional[Counterparty] = None,
               note: Optional[str] = None) -> Movement:
        movement = self.repository.create_movement({
            "tipo": kind,
            "cantidad": quantity,
            "precio": price,
            "observacion": note,
            "producto_id": product.id,
            "bodega_id": warehouse.id,
            "usuario_id": user.id,
            "cliente_id": counterparty.id if counterparty else None,
        })
        logger.info(f"Movimiento {movement.id}: {kind} {quantity} {product.codigo} en {warehouse.nombre} ({self.tenant})")
        return movement

    # ===== OPERACIONES =====

    def entrada(self, product_id: int, warehouse_id: int, quantity: Decimal,
                price: Decimal, user_id: int, counterparty_id: Optional[int] = None,
                note: Optional[str] = None, product: Optional[Product] = None) -> Movement:
        """Entrada simple: sin precondición de stock"""
        self.check_amounts(quantity, price)

        product = product or self.require_product(product_id)
        warehouse = self.require_warehouse(warehouse_id)
        user = self.require_user(user_id)
        counterparty = self.require_counterparty(counterparty_id, "entrada")

        return self.record("entrada", product, warehouse, user, quantity, price, counterparty, note)

    def salida(self, product_id: int, warehouse_id: int, quantity: Decimal,
               price: Optional[Decimal], user_id: int, counterparty_id: Optional[int] = None,
               note: Optional[str] = None, product: Optional[Product] = None) -> Movement:
        """Salida simple: exige stock >= cantidad"""
        price = price if price is not None else Decimal("0")
        self.check_amounts(quantity, price)

        product = product or self.require_product(product_id)
        warehouse = self.require_warehouse(warehouse_id)
        user = self.require_user(user_id)
        counterparty = self.require_counterparty(counterparty_id, "salida")

        self.repository.lock_products([product.id])
        self.require_stock(product, warehouse, quantity)

        return self.record("salida", product, warehouse, user, quantity, price, counterparty, note)

    def dividir(self, origin_id: int, warehouse_id: int, total_quantity: Decimal,
                destinations: Sequence[Tuple[int, Decimal]], user_id: int,
                strict_balance: bool = False) -> Tuple[Movement, List[Movement]]:
        """Una salida del origen por la cantidad total y una entrada por destino"""
        if not destinations:
            raise InvalidOperationError("Debe indicar al menos un producto destino")
        self.check_amounts(total_quantity)
        for _, quantity in destinations:
            self.check_amounts(quantity)

        if strict_balance:
            distributed = sum((quantity for _, quantity in destinations), Decimal("0"))
            if distributed != total_quantity:
                raise InvalidOperationError(
                    f"La suma de los destinos ({distributed}) no coincide con la cantidad total ({total_quantity})",
                    cantidad_total=total_quantity,
                    suma_destinos=distributed
                )

        origin = self.require_product(origin_id, "Producto origen")
        warehouse = self.require_warehouse(warehouse_id)
        user = self.require_user(user_id)
        targets = [
            (self.require_product(product_id, "Producto destino"), quantity)
            for product_id, quantity in destinations
        ]

        self.repository.lock_products([origin.id])
        self.require_stock(origin, warehouse, total_quantity, label="del producto origen")

        salida = self.record(
            "salida", origin, warehouse, user, total_quantity,
            note=f"División de producto combo - {len(targets)} productos destino"
        )
        entradas = [
            self.record(
                "entrada", product, warehouse, user, quantity,
                note=f"División desde producto combo {origin.codigo} (ID: {origin.id})"
            )
            for product, quantity in targets
        ]
        return salida, entradas

    def armar_combo(self, combo_id: int, warehouse_id: int,
                    ingredients: Sequence[Tuple[int, Decimal]],
                    user_id: int) -> Tuple[List[Movement], Movement]:
        """Una salida por ingrediente y una entrada del combo por la suma de ingredientes"""
        if not ingredients:
            raise InvalidOperationError("Debe indicar al menos un ingrediente")
        for _, quantity in ingredients:
            self.check_amounts(quantity)

        warehouse = self.require_warehouse(warehouse_id)
        user = self.require_user(user_id)
        combo = self.require_product(combo_id, "Producto combo")
        parts = [
            (self.require_product(product_id, "Ingrediente"), quantity)
            for product_id, quantity in ingredients
        ]

        self.repository.lock_products([product.id for product, _ in parts])
        # Cada ingrediente se verifica contra su propio stock; un producto
        # repetido acumula lo ya pedido en las líneas anteriores
        requested = {}
        for product, quantity in parts:
            requested[product.id] = requested.get(product.id, Decimal("0")) + quantity
            self.require_stock(
                product, warehouse, requested[product.id],
                label=f"del ingrediente {product.codigo}"
            )

        salidas = [
            self.record(
                "salida", product, warehouse, user, quantity,
                note=f"Ingrediente para crear combo {combo.codigo} (ID: {combo.id})"
            )
            for product, quantity in parts
        ]
        total = sum((quantity for _, quantity in parts), Decimal("0"))
        entrada = self.record(
            "entrada", combo, warehouse, user, total,
            note=f"Combo creado desde {len(parts)} ingredientes"
        )
        return salidas, entrada


class MovimientosService:
    """Operaciones de movimientos para un tenant ya resuelto"""

    def __init__(self, tenant: str, strict_balance: Optional[bool] = None):
        self.tenant = tenant
        self.strict_balance = (
            settings.decompose_requires_balance if strict_balance is None else strict_balance
        )

    # ==================== ESCRITURA ====================

    def crear_entrada(self, data: EntradaCreate, user_id: int) -> MovimientoResponse:
        with tenant_transaction(self.tenant) as db:
            movement = MovementEngine(db, self.tenant).entrada(
                data.producto_id, data.bodega_id, data.cantidad, data.precio, user_id,
                counterparty_id=data.cliente_id, note=data.observacion
            )
            response = movement_response(movement)

        logger.info(
            f"Entrada en {self.tenant}: {response.cantidad} {response.producto.codigo} -> {response.bodega.nombre}"
        )
        return response

    def crear_salida(self, data: SalidaCreate, user_id: int) -> MovimientoResponse:
        with tenant_transaction(self.tenant) as db:
            movement = MovementEngine(db, self.tenant).salida(
                data.producto_id, data.bodega_id, data.cantidad, data.precio, user_id,
                counterparty_id=data.cliente_id, note=data.observacion
            )
            response = movement_response(movement)

        logger.info(
            f"Salida en {self.tenant}: {response.cantidad} {response.producto.codigo} <- {response.bodega.nombre}"
        )
        return response

    def dividir_producto(self, data: DividirProductoCreate, user_id: int) -> DivisionResponse:
        with tenant_transaction(self.tenant) as db:
            salida, entradas = MovementEngine(db, self.tenant).dividir(
                data.producto_origen_id, data.bodega_id, data.cantidad_total,
                [(destino.producto_id, destino.cantidad) for destino in data.productos_destino],
                user_id,
                strict_balance=self.strict_balance
            )
            response = DivisionResponse(
                salida=movement_response(salida),
                entradas=[movement_response(entrada) for entrada in entradas],
                mensaje=f"Producto {salida.product.codigo} dividido exitosamente en {len(entradas)} productos"
            )

        logger.info(
            f"División en {self.tenant}: {response.salida.cantidad} {response.salida.producto.codigo} "
            f"-> {len(response.entradas)} destinos"
        )
        return response

    def crear_combo(self, data: CrearComboCreate, user_id: int) -> ComboResponse:
        with tenant_transaction(self.tenant) as db:
            salidas, entrada = MovementEngine(db, self.tenant).armar_combo(
                data.producto_combo_id, data.bodega_id,
                [(ingrediente.producto_id, ingrediente.cantidad) for ingrediente in data.ingredientes],
                user_id
            )
            response = ComboResponse(
                salidas=[movement_response(salida) for salida in salidas],
                entrada=movement_response(entrada),
                mensaje=f"Combo {entrada.product.codigo} creado exitosamente con {len(salidas)} ingredientes"
            )

        logger.info(
            f"Combo en {self.tenant}: {response.entrada.cantidad} {response.entrada.producto.codigo} "
            f"desde {len(response.salidas)} ingredientes"
        )
        return response

    # ==================== CORRECCIONES ADMINISTRATIVAS ====================

    def update(self, movimiento_id: int, data: MovimientoUpdate) -> MovimientoResponse:
        """Corregir un movimiento; una salida no puede superar el stock sin ella misma"""
        changes = {
            field: value for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field == "observacion"
        }

        with tenant_transaction(self.tenant) as db:
            repository = MovementRepository(db)
            movement = repository.get_movement_by_id(movimiento_id)
            if not movement:
                raise NotFoundError("Movimiento", movimiento_id, tenant=self.tenant)

            new_quantity = changes.get("cantidad")
            if (movement.tipo == "salida" and new_quantity is not None
                    and new_quantity != to_decimal(movement.cantidad)):
                repository.lock_products([movement.producto_id])
                available = repository.stock_of(
                    movement.producto_id, movement.bodega_id, exclude_movement_id=movement.id
                )
                if new_quantity > available:
                    raise InsufficientStockError(
                        available, new_quantity,
                        product_id=movement.producto_id, warehouse_id=movement.bodega_id,
                        tenant=self.tenant
                    )

            if changes:
                repository.update_movement(movement, changes)
            response = movement_response(movement)

        logger.info(f"Movimiento {movimiento_id} corregido en {self.tenant}: {sorted(changes)}")
        return response

    def remove(self, movimiento_id: int) -> DeleteResponse:
        with tenant_transaction(self.tenant) as db:
            repository = MovementRepository(db)
            movement = repository.get_movement_by_id(movimiento_id)
            if not movement:
                raise NotFoundError("Movimiento", movimiento_id, tenant=self.tenant)
            repository.delete_movement(movement)

        logger.info(f"Movimiento {movimiento_id} eliminado en {self.tenant}")
        return DeleteResponse(message="Movimiento eliminado", id=movimiento_id)

    # ==================== LECTURAS ====================

    def stock_of(self, producto_id: int, bodega_id: int) -> StockResponse:
        with tenant_session(self.tenant) as db:
            stock = MovementRepository(db).stock_of(producto_id, bodega_id)
        return StockResponse(producto_id=producto_id, bodega_id=bodega_id, stock=float(stock))

    def find_one(self, movimiento_id: int) -> MovimientoResponse:
        with tenant_session(self.tenant) as db:
            movement = MovementRepository(db).get_movement_by_id(movimiento_id)
            if not movement:
                raise NotFoundError("Movimiento", movimiento_id, tenant=self.tenant)
            return movement_response(movement)

    def find_by_codigo(self, codigo: str) -> MovimientosPorCodigo:
        with tenant_session(self.tenant) as db:
            movements = MovementRepository(db).find_by_product_code(codigo)
            return MovimientosPorCodigo(
                codigo=codigo,
                movimientos=[movement_response(movement) for movement in movements],
                total_movimientos=len(movements)
            )

    def find_all(self, filters: MovimientoFilter) -> MovimientoListResponse:
        with tenant_session(self.tenant) as db:
            movements, total = MovementRepository(db).get_movements_paginated(filters)
            data = [movement_response(movement) for movement in movements]

        return MovimientoListResponse(
            data=data,
            meta=PaginationMeta(
                total=total,
                page=filters.page,
                limit=filters.limit,
                total_pages=ceil(total / filters.limit) if total else 0
            )
        )

    def get_kardex(self, producto_id: int, bodega_id: Optional[int] = None) -> KardexResponse:
        """Historial cronológico del producto con saldo acumulado"""
        with tenant_session(self.tenant) as db:
            catalog = CatalogRepository(db)
            product = catalog.get_product_by_id(producto_id)
            if not product:
                raise NotFoundError("Producto", producto_id, tenant=self.tenant)
            if bodega_id is not None and not catalog.get_warehouse_by_id(bodega_id):
                raise NotFoundError("Bodega", bodega_id, tenant=self.tenant)

            balance = Decimal("0")
            kardex = []
            for movement in MovementRepository(db).get_kardex_movements(producto_id, bodega_id):
                balance += to_decimal(movement.signed_quantity)
                kardex.append(KardexEntry(
                    id=movement.id,
                    fecha=movement.fecha,
                    tipo=movement.tipo,
                    cantidad=float(movement.cantidad),
                    precio=float(movement.precio or 0),
                    saldo=float(balance),
                    observacion=movement.observacion,
                    bodega=bodega_info(movement.warehouse),
                    usuario=usuario_info(movement.user),
                    cliente=cliente_info(movement.counterparty)
                ))

            return KardexResponse(
                producto=producto_info(product),
                kardex=kardex,
                stock_actual=float(balance),
                total_movimientos=len(kardex)
            )

    def get_inventario_general(self, filters: InventarioFilter) -> InventarioGeneralResponse:
        """Stock por producto y bodega con estadísticas y resúmenes"""
        with tenant_session(self.tenant) as db:
            rows = MovementRepository(db).get_inventory_rows(filters)

        threshold = Decimal(settings.low_stock_threshold)
        inventario = []
        por_bodega = OrderedDict()
        por_producto = OrderedDict()
        stock_total = Decimal("0")
        stock_bajo = 0

        for row in rows:
            stock = to_decimal(row.stock)
            producto = producto_info_from_row(row)
            bodega = bodega_info_from_row(row)

            inventario.append(InventarioItem(
                producto=producto,
                bodega=bodega,
                stock=float(stock),
                total_movimientos=row.total_movimientos,
                ultimo_movimiento=row.ultimo_movimiento,
                total_entradas=float(to_decimal(row.total_entradas)),
                total_salidas=float(to_decimal(row.total_salidas))
            ))
            stock_total += stock
            if stock <= threshold:
                stock_bajo += 1

            resumen = por_bodega.setdefault(row.bodega_id, {"bodega": bodega, "productos": 0, "stock": Decimal("0")})
            resumen["productos"] += 1
            resumen["stock"] += stock

            resumen = por_producto.setdefault(
                row.producto_id,
                {"producto": producto, "stock": Decimal("0"), "bodegas": 0, "ultimo": None}
            )
            resumen["stock"] += stock
            resumen["bodegas"] += 1
            if row.ultimo_movimiento and (resumen["ultimo"] is None or row.ultimo_movimiento > resumen["ultimo"]):
                resumen["ultimo"] = row.ultimo_movimiento

        return InventarioGeneralResponse(
            inventario=inventario,
            estadisticas=EstadisticasInventario(
                total_productos_diferentes=len(por_producto),
                total_bodegas=len(por_bodega),
                stock_total_unidades=float(stock_total),
                total_registros=len(inventario),
                productos_stock_bajo=stock_bajo,
                ultima_actualizacion=datetime.now()
            ),
            resumen_por_bodega=[
                ResumenBodega(bodega=item["bodega"], total_productos=item["productos"], stock_total=float(item["stock"]))
                for item in sorted(por_bodega.values(), key=lambda item: item["bodega"].nombre)
            ],
            resumen_por_producto=[
                ResumenProducto(
                    producto=item["producto"], stock_total=float(item["stock"]),
                    bodegas=item["bodegas"], ultimo_movimiento=item["ultimo"]
                )
                for item in por_producto.values()
            ],
            total_items=len(inventario)
        )


def producto_info_from_row(row) -> ProductoInfo:
    return ProductoInfo(
        id=row.producto_id,
        codigo=row.producto_codigo,
        descripcion=row.producto_descripcion,
        unidad_medida=row.unidad_medida
    )


def bodega_info_from_row(row) -> BodegaInfo:
    return BodegaInfo(id=row.bodega_id, nombre=row.bodega_nombre, ubicacion=row.bodega_ubicacion)
