# inventario/core/exceptions.py
"""
Errores del motor de inventario.

Cada tipo de error expone un ``code`` estable para que los clientes ramifiquen
por tipo y no por texto. Heredan de ``HTTPException`` para que FastAPI los
traduzca directamente a la respuesta: ``{"detail": {"code": ..., "message": ...}}``.
"""

from decimal import Decimal
from typing import Any, Optional

from fastapi import HTTPException, status


class InventoryError(HTTPException):
    """Base de todos los errores de dominio"""

    code = "INVENTORY_ERROR"
    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **extra: Any):
        self.message = message
        self.extra = extra
        detail = {"code": self.code, "message": message}
        detail.update({k: _jsonable(v) for k, v in extra.items()})
        super().__init__(status_code=self.status_code_default, detail=detail)

    def __str__(self) -> str:
        return self.message


class NotFoundError(InventoryError):
    code = "NOT_FOUND"
    status_code_default = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: Any, tenant: Optional[str] = None,
                 message: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        self.tenant = tenant
        if message is None:
            message = f"{entity} con ID {entity_id} no encontrado"
            if tenant:
                message += f" en {tenant}"
        super().__init__(message, entity=entity, entity_id=entity_id, tenant=tenant)


class ConflictError(InventoryError):
    code = "CONFLICT"
    status_code_default = status.HTTP_409_CONFLICT


class InvalidOperationError(InventoryError):
    code = "INVALID_OPERATION"
    status_code_default = status.HTTP_400_BAD_REQUEST


class InvalidTenantError(InvalidOperationError):
    def __init__(self, tenant: str):
        self.tenant = tenant
        super().__init__(f"Tenant inválido: {tenant}", tenant=tenant)


class InsufficientStockError(InventoryError):
    code = "INSUFFICIENT_STOCK"
    status_code_default = status.HTTP_400_BAD_REQUEST

    def __init__(self, available: Decimal, requested: Decimal,
                 product_id: Optional[int] = None, warehouse_id: Optional[int] = None,
                 label: Optional[str] = None, tenant: Optional[str] = None):
        self.available = available
        self.requested = requested
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        prefix = f"Stock insuficiente {label}" if label else "Stock insuficiente"
        if tenant:
            prefix += f" en {tenant}"
        super().__init__(
            f"{prefix}. Stock disponible: {_fmt(available)}, solicitado: {_fmt(requested)}",
            available=available,
            requested=requested,
            product_id=product_id,
            warehouse_id=warehouse_id,
        )


class TransactionFailureError(InventoryError):
    code = "TRANSACTION_FAILURE"
    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR


def _fmt(value) -> str:
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return str(value)


def _jsonable(value):
    if isinstance(value, Decimal):
        return float(value)
    return value
