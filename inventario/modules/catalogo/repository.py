# inventario/modules/catalogo/repository.py
from typing import Optional
from sqlalchemy.orm import Session, joinedload
from sqlalchemy import func

from inventario.shared.database.models import (
    Product, Warehouse, User, Counterparty, Movement
)

class CatalogRepository:
    """Lecturas de catálogo dentro del esquema del tenant activo"""

    def __init__(self, db: Session):
        self.db = db

    # ===== LOOKUPS =====

    def get_product_by_id(self, product_id: int) -> Optional[Product]:
        return self.db.query(Product).options(
            joinedload(Product.unit_of_measure)
        ).filter(Product.id == product_id).first()

    def get_product_by_code(self, code: str) -> Optional[Product]:
        return self.db.query(Product).options(
            joinedload(Product.unit_of_measure)
        ).filter(Product.codigo == code).first()

    def get_warehouse_by_id(self, warehouse_id: int) -> Optional[Warehouse]:
        return self.db.query(Warehouse).filter(Warehouse.id == warehouse_id).first()

    def get_user_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_counterparty_by_id(self, counterparty_id: int) -> Optional[Counterparty]:
        return self.db.query(Counterparty).filter(Counterparty.id == counterparty_id).first()

    # ===== REFERENCIAS =====

    def count_movements_by_warehouse(self, warehouse_id: int) -> int:
        return self.db.query(func.count(Movement.id)).filter(
            Movement.bodega_id == warehouse_id
        ).scalar() or 0

    def count_movements_by_counterparty(self, counterparty_id: int) -> int:
        return self.db.query(func.count(Movement.id)).filter(
            Movement.cliente_id == counterparty_id
        ).scalar() or 0

    def delete(self, instance) -> None:
        self.db.delete(instance)
        self.db.flush()
