from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from inventario.core.exceptions import (
    InsufficientStockError, InvalidOperationError, NotFoundError, TransactionFailureError
)
from inventario.modules.movimientos.repository import MovementRepository
from inventario.modules.movimientos.schemas import (
    CrearComboCreate, DividirProductoCreate, EntradaCreate, MovimientoUpdate, SalidaCreate
)
from inventario.modules.movimientos.service import MovementEngine, MovimientosService

from conftest import add_movement, movement_count, stock


def entrada(product_id, cantidad, bodega_id=1, **kwargs):
    return EntradaCreate(producto_id=product_id, bodega_id=bodega_id, cantidad=Decimal(str(cantidad)), **kwargs)


def salida(product_id, cantidad, bodega_id=1, **kwargs):
    return SalidaCreate(producto_id=product_id, bodega_id=bodega_id, cantidad=Decimal(str(cantidad)), **kwargs)


def division(origin, total, destinos, bodega_id=1):
    return DividirProductoCreate(
        producto_origen_id=origin,
        bodega_id=bodega_id,
        cantidad_total=Decimal(str(total)),
        productos_destino=[{"producto_id": p, "cantidad": Decimal(str(q))} for p, q in destinos],
    )


def combo(combo_id, ingredientes, bodega_id=1):
    return CrearComboCreate(
        producto_combo_id=combo_id,
        bodega_id=bodega_id,
        ingredientes=[{"producto_id": p, "cantidad": Decimal(str(q))} for p, q in ingredientes],
    )


# ==================== ENTRADAS Y SALIDAS ====================

def test_inbound_outbound_scenario(catalog, service):
    created = service.crear_entrada(entrada(catalog.p1, 100, precio=Decimal("10")), catalog.user)
    assert created.tipo == "entrada"
    assert created.precio == 10
    assert created.usuario.id == catalog.user
    assert stock("principal", catalog.p1, catalog.w1) == 100

    service.crear_salida(salida(catalog.p1, 30), catalog.user)
    assert stock("principal", catalog.p1, catalog.w1) == 70

    with pytest.raises(InsufficientStockError) as exc:
        service.crear_salida(salida(catalog.p1, 100), catalog.user)

    assert exc.value.available == Decimal("70")
    assert exc.value.requested == Decimal("100")
    assert exc.value.detail["code"] == "INSUFFICIENT_STOCK"
    assert stock("principal", catalog.p1, catalog.w1) == 70


def test_outbound_allows_exact_stock(catalog, service):
    add_movement("principal", "entrada", catalog.p1, catalog.w1, 5)
    service.crear_salida(salida(catalog.p1, 5), catalog.user)
    assert stock("principal", catalog.p1, catalog.w1) == 0


def test_outbound_checks_stock_per_warehouse(catalog, service):
    add_movement("principal", "entrada", catalog.p1, catalog.w2, 50)

    with pytest.raises(InsufficientStockError):
        service.crear_salida(salida(catalog.p1, 1, bodega_id=catalog.w1), catalog.user)


@pytest.mark.parametrize("field, value, entity", [
    ("producto_id", 99, "Producto"),
    ("bodega_id", 99, "Bodega"),
    ("cliente_id", 99, "Cliente"),
])
def test_missing_entities_are_not_found(catalog, service, field, value, entity):
    data = entrada(catalog.p1, 1).model_copy(update={field: value})

    with pytest.raises(NotFoundError) as exc:
        service.crear_entrada(data, catalog.user)

    assert exc.value.entity == entity
    assert exc.value.entity_id == 99
    assert "principal" in exc.value.message
    assert movement_count("principal") == 0


def test_missing_actor_is_not_found(catalog, service):
    with pytest.raises(NotFoundError) as exc:
        service.crear_entrada(entrada(catalog.p1, 1), user_id=999)
    assert exc.value.entity == "Usuario"


def test_counterparty_roles(catalog, service):
    add_movement("principal", "entrada", catalog.p1, catalog.w1, 100)

    with pytest.raises(InvalidOperationError):
        service.crear_entrada(entrada(catalog.p1, 1, cliente_id=catalog.cliente), catalog.user)
    with pytest.raises(InvalidOperationError):
        service.crear_salida(salida(catalog.p1, 1, cliente_id=catalog.proveedor), catalog.user)

    service.crear_entrada(entrada(catalog.p1, 1, cliente_id=catalog.proveedor), catalog.user)
    service.crear_entrada(entrada(catalog.p1, 1, cliente_id=catalog.ambos), catalog.user)
    service.crear_salida(salida(catalog.p1, 1, cliente_id=catalog.cliente), catalog.user)
    sold = service.crear_salida(salida(catalog.p1, 1, cliente_id=catalog.ambos), catalog.user)

    assert sold.cliente.tipo == "ambos"
    assert stock("principal", catalog.p1, catalog.w1) == 100


# ==================== DIVISIÓN ====================

def test_decompose_scenario(catalog, service):
    add_movement("principal", "entrada", catalog.combo, catalog.w1, 50)

    result = service.dividir_producto(division(catalog.combo, 50, [(catalog.a, 25), (catalog.b, 25)]), catalog.user)

    assert result.salida.cantidad == 50
    assert [e.producto.id for e in result.entradas] == [catalog.a, catalog.b]
    assert stock("principal", catalog.combo, catalog.w1) == 0
    assert stock("principal", catalog.a, catalog.w1) == 25
    assert stock("principal", catalog.b, catalog.w1) == 25


def test_decompose_insufficient_origin_writes_nothing(catalog, service):
    add_movement("principal", "entrada", catalog.combo, catalog.w1, 40)
    before = movement_count("principal")

    with pytest.raises(InsufficientStockError):
        service.dividir_producto(division(catalog.combo, 50, [(catalog.a, 25), (catalog.b, 25)]), catalog.user)

    assert movement_count("principal") == before
    assert stock("principal", catalog.combo, catalog.w1) == 40
    assert stock("principal", catalog.a, catalog.w1) == 0
    assert stock("principal", catalog.b, catalog.w1) == 0


def test_decompose_missing_destination_writes_nothing(catalog, service):
    add_movement("principal", "entrada", catalog.combo, catalog.w1, 50)

    with pytest.raises(NotFoundError) as exc:
        service.dividir_producto(division(catalog.combo, 10, [(catalog.a, 5), (99, 5)]), catalog.user)

    assert exc.value.entity == "Producto destino"
    assert movement_count("principal") == 1


def test_decompose_is_permissive_by_default(catalog, service):
    add_movement("principal", "entrada", catalog.combo, catalog.w1, 50)

    service.dividir_producto(division(catalog.combo, 50, [(catalog.a, 30), (catalog.b, 30)]), catalog.user)

    assert stock("principal", catalog.a, catalog.w1) == 30
    assert stock("principal", catalog.b, catalog.w1) == 30


def test_decompose_balance_toggle(catalog):
    add_movement("principal", "entrada", catalog.combo, catalog.w1, 50)
    strict = MovimientosService("principal", strict_balance=True)

    with pytest.raises(InvalidOperationError):
        strict.dividir_producto(division(catalog.combo, 50, [(catalog.a, 30), (catalog.b, 30)]), catalog.user)
    assert movement_count("principal") == 1

    strict.dividir_producto(division(catalog.combo, 50, [(catalog.a, 20), (catalog.b, 30)]), catalog.user)
    assert stock("principal", catalog.combo, catalog.w1) == 0


# ==================== COMBOS ====================

def test_assemble_scenario(catalog, service):
    add_movement("principal", "entrada", catalog.x, catalog.w1, 5)
    add_movement("principal", "entrada", catalog.y, catalog.w1, 3)

    result = service.crear_combo(combo(catalog.combo, [(catalog.x, 2), (catalog.y, 2)]), catalog.user)

    assert [s.producto.id for s in result.salidas] == [catalog.x, catalog.y]
    assert result.entrada.cantidad == 4
    assert stock("principal", catalog.x, catalog.w1) == 3
    assert stock("principal", catalog.y, catalog.w1) == 1
    assert stock("principal", catalog.combo, catalog.w1) == 4


def test_assemble_insufficient_ingredient_writes_nothing(catalog, service):
    add_movement("principal", "entrada", catalog.x, catalog.w1, 5)
    add_movement("principal", "entrada", catalog.y, catalog.w1, 1)

    with pytest.raises(InsufficientStockError) as exc:
        service.crear_combo(combo(catalog.combo, [(catalog.x, 2), (catalog.y, 2)]), catalog.user)

    assert exc.value.product_id == catalog.y
    assert stock("principal", catalog.x, catalog.w1) == 5
    assert stock("principal", catalog.y, catalog.w1) == 1
    assert stock("principal", catalog.combo, catalog.w1) == 0


def test_assemble_repeated_ingredient_cannot_oversell(catalog, service):
    add_movement("principal", "entrada", catalog.x, catalog.w1, 3)

    with pytest.raises(InsufficientStockError):
        service.crear_combo(combo(catalog.combo, [(catalog.x, 2), (catalog.x, 2)]), catalog.user)

    assert stock("principal", catalog.x, catalog.w1) == 3


# ==================== ATOMICIDAD E INFRAESTRUCTURA ====================

def test_failure_partway_through_writes_rolls_back(catalog, service, monkeypatch):
    add_movement("principal", "entrada", catalog.combo, catalog.w1, 50)
    original = MovementRepository.create_movement
    calls = []

    def failing_create(self, data):
        calls.append(data)
        if len(calls) == 2:
            raise RuntimeError("fallo forzado")
        return original(self, data)

    monkeypatch.setattr(MovementRepository, "create_movement", failing_create)

    with pytest.raises(RuntimeError):
        service.dividir_producto(division(catalog.combo, 50, [(catalog.a, 25), (catalog.b, 25)]), catalog.user)

    monkeypatch.undo()
    assert movement_count("principal") == 1
    assert stock("principal", catalog.combo, catalog.w1) == 50


def test_database_failure_is_transaction_failure(catalog, service, monkeypatch):
    add_movement("principal", "entrada", catalog.x, catalog.w1, 5)
    add_movement("principal", "entrada", catalog.y, catalog.w1, 5)
    original = MovementRepository.create_movement
    calls = []

    def failing_create(self, data):
        calls.append(data)
        if len(calls) == 3:
            raise OperationalError("INSERT", {}, Exception("database is gone"))
        return original(self, data)

    monkeypatch.setattr(MovementRepository, "create_movement", failing_create)

    with pytest.raises(TransactionFailureError):
        service.crear_combo(combo(catalog.combo, [(catalog.x, 1), (catalog.y, 1)]), catalog.user)

    monkeypatch.undo()
    assert movement_count("principal") == 2


def test_non_negativity_over_a_sequence(catalog, service):
    add_movement("principal", "entrada", catalog.p1, catalog.w1, 10)

    for cantidad in (4, 4, 4, 4):
        try:
            service.crear_salida(salida(catalog.p1, cantidad), catalog.user)
        except InsufficientStockError:
            pass
        assert stock("principal", catalog.p1, catalog.w1) >= 0

    assert stock("principal", catalog.p1, catalog.w1) == 2


# ==================== AISLAMIENTO ====================

def test_tenant_isolation(catalog):
    principal = MovimientosService("principal")
    sucursal = MovimientosService("sucursal")

    principal.crear_entrada(entrada(catalog.p1, 100), catalog.user)

    assert stock("principal", catalog.p1, catalog.w1) == 100
    assert stock("sucursal", catalog.p1, catalog.w1) == 0
    assert sucursal.get_kardex(catalog.p1).total_movimientos == 0

    with pytest.raises(InsufficientStockError) as exc:
        sucursal.crear_salida(salida(catalog.p1, 1), catalog.user)
    assert "sucursal" in exc.value.message


# ==================== CORRECCIONES ====================

def test_update_outbound_quantity_within_stock(catalog, service):
    add_movement("principal", "entrada", catalog.p1, catalog.w1, 10)
    movement_id = add_movement("principal", "salida", catalog.p1, catalog.w1, 4)

    updated = service.update(movement_id, MovimientoUpdate(cantidad=Decimal("10"), observacion="ajuste"))

    assert updated.cantidad == 10
    assert updated.observacion == "ajuste"
    assert stock("principal", catalog.p1, catalog.w1) == 0


def test_update_outbound_quantity_above_stock_is_rejected(catalog, service):
    add_movement("principal", "entrada", catalog.p1, catalog.w1, 10)
    movement_id = add_movement("principal", "salida", catalog.p1, catalog.w1, 4)

    with pytest.raises(InsufficientStockError) as exc:
        service.update(movement_id, MovimientoUpdate(cantidad=Decimal("11")))

    assert exc.value.available == Decimal("10")
    assert stock("principal", catalog.p1, catalog.w1) == 6


def test_update_price_only_skips_stock_check(catalog, service):
    movement_id = add_movement("principal", "entrada", catalog.p1, catalog.w1, 10)

    updated = service.update(movement_id, MovimientoUpdate(precio=Decimal("7.5")))

    assert updated.precio == 7.5
    assert updated.cantidad == 10


def test_update_and_delete_missing_movement(catalog, service):
    with pytest.raises(NotFoundError):
        service.update(99, MovimientoUpdate(precio=Decimal("1")))
    with pytest.raises(NotFoundError):
        service.remove(99)


def test_delete_has_no_stock_precondition(catalog, service):
    entrada_id = add_movement("principal", "entrada", catalog.p1, catalog.w1, 10)
    add_movement("principal", "salida", catalog.p1, catalog.w1, 10)

    result = service.remove(entrada_id)

    assert result.id == entrada_id
    assert stock("principal", catalog.p1, catalog.w1) == -10


# ==================== PRECISIÓN ====================

@pytest.mark.parametrize("cantidad", ["0.004", "1.005"])
def test_quantities_beyond_two_decimals_are_rejected(cantidad):
    with pytest.raises(ValidationError):
        entrada(1, cantidad)

    with pytest.raises(InvalidOperationError) as exc:
        MovementEngine.check_amounts(Decimal(cantidad))
    assert "Máximo 2 decimales" in exc.value.message


def test_trailing_zeros_are_not_extra_decimals():
    MovementEngine.check_amounts(Decimal("1.500"), Decimal("2.10"))

    with pytest.raises(InvalidOperationError):
        MovementEngine.check_amounts(Decimal("1"), Decimal("0.001"))
