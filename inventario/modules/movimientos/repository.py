# inventario/modules/movimientos/repository.py
from datetime import datetime, time
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func, case, desc, asc, select

from inventario.config.settings import settings
from inventario.shared.database.models import (
    Movement, Product, Warehouse, UnitOfMeasure
)
from inventario.modules.movimientos.schemas import MovimientoFilter, InventarioFilter

# Contribución firmada de cada movimiento al stock
SIGNED_QUANTITY = case(
    (Movement.tipo == "entrada", Movement.cantidad),
    else_=-Movement.cantidad
)


def lock_statement(product_ids: List[int]):
    """SELECT ... FOR UPDATE de productos en orden ascendente de ID"""
    return select(Product.id).where(
        Product.id.in_(product_ids)
    ).order_by(Product.id).with_for_update()


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class MovementRepository:
    """
    Ledger de movimientos.

    El stock nunca se guarda: siempre se calcula sumando los movimientos
    agrupados por (producto, bodega).
    """

    def __init__(self, db: Session):
        self.db = db

    # ===== ESCRITURA =====

    def create_movement(self, movement_data: dict) -> Movement:
        """Insertar un movimiento y hacerlo visible a las sumas siguientes"""
        movement = Movement(**movement_data)
        self.db.add(movement)
        self.db.flush()
        self.db.refresh(movement)
        return movement

    def update_movement(self, movement: Movement, changes: dict) -> Movement:
        for field, value in changes.items():
            setattr(movement, field, value)
        self.db.flush()
        return movement

    def delete_movement(self, movement: Movement) -> None:
        self.db.delete(movement)
        self.db.flush()

    # ===== BLOQUEOS =====

    def lock_products(self, product_ids: Iterable[int]) -> None:
        """
        Bloquear las filas de producto cuyo stock se va a descontar.

        Orden ascendente de ID para que dos transacciones nunca se esperen en
        sentido contrario. En SQLite el FOR UPDATE se omite.
        """
        ids = sorted(set(product_ids))
        if not ids or not settings.lock_stock_rows:
            return
        self.db.execute(lock_statement(ids)).all()

    # ===== STOCK =====

    def stock_of(self, product_id: int, warehouse_id: int,
                 exclude_movement_id: Optional[int] = None) -> Decimal:
        """Stock de (producto, bodega); 0 si no hay movimientos"""
        query = self.db.query(func.coalesce(func.sum(SIGNED_QUANTITY), 0)).filter(
            Movement.producto_id == product_id,
            Movement.bodega_id == warehouse_id
        )
        if exclude_movement_id is not None:
            query = query.filter(Movement.id != exclude_movement_id)
        return to_decimal(query.scalar())

    # ===== CONSULTAS =====

    def get_movement_by_id(self, movement_id: int) -> Optional[Movement]:
        return self._with_relations(self.db.query(Movement)).filter(
            Movement.id == movement_id
        ).first()

    def find_by_product_code(self, code: str) -> List[Movement]:
        return self._with_relations(self.db.query(Movement)).join(
            Product, Movement.producto_id == Product.id
        ).filter(
            Product.codigo == code
        ).order_by(desc(Movement.fecha), desc(Movement.id)).all()

    def get_kardex_movements(self, product_id: int,
                             warehouse_id: Optional[int] = None) -> List[Movement]:
        """Movimientos del producto en orden cronológico (fecha, id)"""
        query = self.db.query(Movement).options(
            joinedload(Movement.warehouse),
            joinedload(Movement.user),
            joinedload(Movement.counterparty)
        ).filter(Movement.producto_id == product_id)

        if warehouse_id is not None:
            query = query.filter(Movement.bodega_id == warehouse_id)

        return query.order_by(asc(Movement.fecha), asc(Movement.id)).all()

    def get_movements_paginated(self, filters: MovimientoFilter) -> Tuple[List[Movement], int]:
        """Listado filtrado, del más reciente al más antiguo"""
        query = self._with_relations(self.db.query(Movement))

        if filters.tipo:
            query = query.filter(Movement.tipo == filters.tipo.value)
        if filters.producto_id:
            query = query.filter(Movement.producto_id == filters.producto_id)
        if filters.producto_codigo:
            query = query.join(Product, Movement.producto_id == Product.id).filter(
                Product.codigo.ilike(f"%{filters.producto_codigo}%")
            )
        if filters.bodega_id:
            query = query.filter(Movement.bodega_id == filters.bodega_id)
        if filters.cliente_id:
            query = query.filter(Movement.cliente_id == filters.cliente_id)
        if filters.usuario_id:
            query = query.filter(Movement.usuario_id == filters.usuario_id)
        if filters.fecha_desde:
            query = query.filter(Movement.fecha >= datetime.combine(filters.fecha_desde, time.min))
        if filters.fecha_hasta:
            # Día completo: hasta las 23:59:59
            query = query.filter(Movement.fecha <= datetime.combine(filters.fecha_hasta, time(23, 59, 59)))

        total = query.count()
        items = query.order_by(desc(Movement.fecha), desc(Movement.id)).offset(
            (filters.page - 1) * filters.limit
        ).limit(filters.limit).all()

        return items, total

    def get_inventory_rows(self, filters: InventarioFilter):
        """Stock por (producto, bodega) con contadores de entradas y salidas"""
        stock = func.sum(SIGNED_QUANTITY)

        query = self.db.query(
            Product.id.label("producto_id"),
            Product.codigo.label("producto_codigo"),
            Product.descripcion.label("producto_descripcion"),
            UnitOfMeasure.nombre.label("unidad_medida"),
            Warehouse.id.label("bodega_id"),
            Warehouse.nombre.label("bodega_nombre"),
            Warehouse.ubicacion.label("bodega_ubicacion"),
            stock.label("stock"),
            func.count(Movement.id).label("total_movimientos"),
            func.max(Movement.fecha).label("ultimo_movimiento"),
            func.sum(case((Movement.tipo == "entrada", Movement.cantidad), else_=0)).label("total_entradas"),
            func.sum(case((Movement.tipo == "salida", Movement.cantidad), else_=0)).label("total_salidas"),
        ).select_from(Movement).join(
            Product, Movement.producto_id == Product.id
        ).join(
            Warehouse, Movement.bodega_id == Warehouse.id
        ).outerjoin(
            UnitOfMeasure, Product.unidad_medida_id == UnitOfMeasure.id
        )

        if filters.bodega_id:
            query = query.filter(Movement.bodega_id == filters.bodega_id)
        if filters.producto_id:
            query = query.filter(Movement.producto_id == filters.producto_id)

        query = query.group_by(
            Product.id, Product.codigo, Product.descripcion, UnitOfMeasure.nombre,
            Warehouse.id, Warehouse.nombre, Warehouse.ubicacion
        )

        if not filters.incluir_ceros:
            query = query.having(stock > 0)
        if filters.stock_minimo is not None and not filters.solo_stock_bajo:
            query = query.having(stock >= filters.stock_minimo)
        if filters.solo_stock_bajo:
            query = query.having(stock <= settings.low_stock_threshold)

        return query.order_by(asc(Product.codigo), asc(Warehouse.nombre)).all()

    def _with_relations(self, query):
        return query.options(
            joinedload(Movement.product).joinedload(Product.unit_of_measure),
            joinedload(Movement.warehouse),
            joinedload(Movement.user),
            joinedload(Movement.counterparty)
        )
