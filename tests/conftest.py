"""
Pytest configuration and fixtures.

Runs against in-memory SQLite: each tenant schema is an attached database, so
the same tenant scope used in production pins every query to its tenant.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DECOMPOSE_REQUIRES_BALANCE"] = "false"
os.environ["CREATE_SCHEMAS_ON_STARTUP"] = "false"

from decimal import Decimal
from types import SimpleNamespace

import jwt
import pytest
from fastapi.testclient import TestClient

from inventario.config.database import create_tenant_schemas, drop_tenant_schemas
from inventario.config.settings import settings
from inventario.modules.movimientos.repository import MovementRepository
from inventario.modules.movimientos.service import MovimientosService
from inventario.shared.database.models import (
    Counterparty, Movement, Product, UnitOfMeasure, User, Warehouse
)
from inventario.shared.database.tenant_scope import tenant_session, tenant_transaction

TENANTS = ("principal", "sucursal")


def seed_catalog(tenant):
    """Catálogo mínimo; los IDs son iguales en todos los tenants"""
    with tenant_transaction(tenant) as db:
        unidad = UnitOfMeasure(nombre="UND", descripcion="Unidad")
        db.add(unidad)
        db.flush()

        db.add_all([
            User(nombre="Ana Bodega", correo=f"ana@{tenant}.test", rol="bodeguero"),
            User(nombre="Admin", correo=f"admin@{tenant}.test", rol="admin"),
        ])
        db.add_all([
            Warehouse(nombre="Bodega Central", ubicacion="Centro"),
            Warehouse(nombre="Bodega Norte", ubicacion="Norte"),
        ])
        db.add_all([
            Product(codigo=codigo, descripcion=descripcion, unidad_medida_id=unidad.id)
            for codigo, descripcion in (
                ("P-001", "Producto base"),
                ("A-001", "Destino A"),
                ("B-001", "Destino B"),
                ("C-001", "Combo"),
                ("X-001", "Ingrediente X"),
                ("Y-001", "Ingrediente Y"),
            )
        ])
        db.add_all([
            Counterparty(nombre="Proveedor SA", tipo="proveedor"),
            Counterparty(nombre="Cliente SA", tipo="cliente"),
            Counterparty(nombre="Mixto SA", tipo="ambos"),
        ])


@pytest.fixture(autouse=True)
def database():
    """Tablas nuevas por test en ambos tenants"""
    create_tenant_schemas()
    yield
    drop_tenant_schemas()


@pytest.fixture
def catalog():
    for tenant in TENANTS:
        seed_catalog(tenant)
    return SimpleNamespace(
        user=1, admin=2,
        w1=1, w2=2,
        p1=1, a=2, b=3, combo=4, x=5, y=6,
        proveedor=1, cliente=2, ambos=3,
    )


@pytest.fixture
def service():
    return MovimientosService("principal")


def stock(tenant, product_id, warehouse_id):
    with tenant_session(tenant) as db:
        return MovementRepository(db).stock_of(product_id, warehouse_id)


def movement_count(tenant):
    with tenant_session(tenant) as db:
        return db.query(Movement).count()


def add_movement(tenant, tipo, product_id, warehouse_id, cantidad, user_id=1, precio=0):
    """Escribir directamente en el ledger, sin reglas del motor"""
    with tenant_transaction(tenant) as db:
        movement = MovementRepository(db).create_movement({
            "tipo": tipo,
            "cantidad": Decimal(str(cantidad)),
            "precio": Decimal(str(precio)),
            "producto_id": product_id,
            "bodega_id": warehouse_id,
            "usuario_id": user_id,
        })
        return movement.id


def make_token(user_id=1, tenant=None, role="bodeguero"):
    payload = {"sub": str(user_id), "rol": role, "correo": f"user{user_id}@test"}
    if tenant is not None:
        payload["bodegaId"] = tenant
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def auth_headers(**kwargs):
    return {"Authorization": f"Bearer {make_token(**kwargs)}"}


@pytest.fixture
def client():
    from inventario.main import app

    with TestClient(app) as test_client:
        yield test_client
