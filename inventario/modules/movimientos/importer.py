# inventario/modules/movimientos/importer.py
import logging
from decimal import Decimal, InvalidOperation as DecimalError
from typing import List, Optional

from inventario.core.exceptions import InventoryError, InvalidOperationError
from inventario.modules.movimientos.schemas import ImportRow, ImportResult
from inventario.modules.movimientos.service import MovementEngine, movement_response
from inventario.shared.database.models import MOVEMENT_KINDS, Movement
from inventario.shared.database.tenant_scope import tenant_transaction

logger = logging.getLogger(__name__)

# Las filas de datos empiezan después del encabezado de la plantilla
FIRST_DATA_ROW = 2


def _text(value) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _parse_decimal(value, message: str) -> Decimal:
    try:
        number = Decimal(_text(value))
    except DecimalError:
        raise InvalidOperationError(message)
    if not number.is_finite():
        raise InvalidOperationError(message)
    return number


def _parse_int(value, message: str) -> int:
    """Acepta enteros escritos como decimales ("3.0"), como los exporta una hoja de cálculo"""
    number = _parse_decimal(value, message)
    if number != number.to_integral_value():
        raise InvalidOperationError(message)
    return int(number)


class BulkImportService:
    """
    Carga masiva de movimientos ya parseados.

    Todo el lote corre en una sola transacción. Un error de validación en una
    fila se registra como ``"Fila N: mensaje"`` y se pasa a la siguiente; esa
    fila no escribe nada. Las filas sin tipo, código o cantidad se ignoran.
    """

    def __init__(self, tenant: str):
        self.tenant = tenant

    def importar(self, rows: List[ImportRow], user_id: int) -> ImportResult:
        usable = [
            row for row in rows
            if _text(row.tipo) and _text(row.codigo_producto) and _text(row.cantidad)
        ]
        if not usable:
            raise InvalidOperationError("La carga no contiene movimientos válidos")

        exitosos = 0
        errores = []
        movimientos = []

        with tenant_transaction(self.tenant) as db:
            engine = MovementEngine(db, self.tenant)
            engine.require_user(user_id)

            for index, row in enumerate(usable):
                row_number = index + FIRST_DATA_ROW
                try:
                    movement = self._apply(engine, row, user_id)
                except InventoryError as e:
                    mensaje = f"Fila {row_number}: {e.message}"
                    errores.append(mensaje)
                    logger.warning(f"Carga masiva en {self.tenant}: {mensaje}")
                    continue

                exitosos += 1
                movimientos.append(movement_response(movement))

            result = ImportResult(
                exitosos=exitosos,
                fallidos=len(errores),
                errores=errores,
                movimientos=movimientos
            )

        logger.info(
            f"Carga masiva completada en {self.tenant}: {result.exitosos} exitosos, {result.fallidos} fallidos"
        )
        return result

    def _apply(self, engine: MovementEngine, row: ImportRow, user_id: int) -> Movement:
        tipo = _text(row.tipo).lower()
        if tipo not in MOVEMENT_KINDS:
            raise InvalidOperationError(f'Tipo inválido: "{tipo}". Debe ser "entrada" o "salida"')

        codigo = _text(row.codigo_producto)
        cantidad = _parse_decimal(row.cantidad, f"Cantidad inválida: {_text(row.cantidad)}. Debe ser mayor a 0")
        precio = _parse_decimal(
            row.precio if _text(row.precio) else 0,
            f"Precio inválido: {_text(row.precio)}. Debe ser mayor o igual a 0"
        )
        bodega_id = _parse_int(row.bodega_id, "ID de bodega es requerido y debe ser un número")
        cliente_id: Optional[int] = None
        if _text(row.cliente_id):
            cliente_id = _parse_int(row.cliente_id, f"ID de cliente inválido: {_text(row.cliente_id)}")
        observacion = _text(row.observacion) or None

        engine.check_amounts(cantidad, precio)
        product = engine.require_product_by_code(codigo)

        if tipo == "entrada":
            return engine.entrada(
                product.id, bodega_id, cantidad, precio, user_id,
                counterparty_id=cliente_id, note=observacion, product=product
            )
        return engine.salida(
            product.id, bodega_id, cantidad, precio, user_id,
            counterparty_id=cliente_id, note=observacion, product=product
        )
