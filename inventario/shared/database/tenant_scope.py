# inventario/shared/database/tenant_scope.py
"""
Contexto de ejecución por tenant.

Única puerta de entrada a los datos de un tenant. Cada ámbito abre una conexión,
fija el espacio de nombres al esquema del tenant (seguido del esquema
compartido), ejecuta la unidad de trabajo y libera la conexión siempre, incluso
si hubo error. Ninguna conexión sobrevive a la petición que la abrió.
"""

import logging
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from inventario.config.database import SessionLocal, engine as default_engine
from inventario.config.settings import settings
from inventario.core.exceptions import TransactionFailureError
from inventario.core.tenant import TenantResolver, tenant_resolver

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _pin_schema(connection: Connection, schema: str) -> Connection:
    """Configurar el espacio de nombres antes de cualquier consulta"""
    connection = connection.execution_options(schema_translate_map={None: schema})
    if connection.dialect.name == "postgresql":
        # El esquema viene de la whitelist, nunca de la petición
        connection.execute(text(f'SET search_path TO "{schema}", "{settings.shared_schema}"'))
    return connection


def _rollback(transaction) -> None:
    if transaction.is_active:
        transaction.rollback()


@contextmanager
def tenant_session(
    tenant: str,
    engine: Optional[Engine] = None,
    resolver: Optional[TenantResolver] = None
) -> Iterator[Session]:
    """Sesión de solo lectura fijada al esquema del tenant"""
    schema = (resolver or tenant_resolver).schema_for(tenant)
    connection = (engine or default_engine).connect()
    try:
        scoped = _pin_schema(connection, schema)
        logger.debug(f"Sesión abierta en esquema: {schema}")
        db = SessionLocal(bind=scoped)
        try:
            yield db
        finally:
            db.close()
    finally:
        connection.close()
        logger.debug(f"Conexión liberada para esquema: {schema}")


@contextmanager
def tenant_transaction(
    tenant: str,
    engine: Optional[Engine] = None,
    resolver: Optional[TenantResolver] = None
) -> Iterator[Session]:
    """
    Sesión transaccional fijada al esquema del tenant.

    Confirma al salir normalmente; ante cualquier excepción revierte y la
    relanza. Los fallos de la propia base de datos se relanzan como
    ``TransactionFailureError`` encadenando el error original.
    """
    schema = (resolver or tenant_resolver).schema_for(tenant)
    connection = (engine or default_engine).connect()
    try:
        if settings.transaction_isolation and connection.dialect.name != "sqlite":
            connection = connection.execution_options(isolation_level=settings.transaction_isolation)
        transaction = connection.begin()
        db = None
        try:
            scoped = _pin_schema(connection, schema)
            logger.debug(f"Iniciando transacción en esquema: {schema}")
            db = SessionLocal(bind=scoped)
            yield db
            db.flush()
            transaction.commit()
            logger.debug(f"Transacción confirmada en esquema: {schema}")
        except SQLAlchemyError as e:
            _rollback(transaction)
            logger.error(f"Transacción revertida en esquema {schema}: {e}")
            raise TransactionFailureError(
                f"No se pudo completar la transacción en {tenant}",
                tenant=tenant
            ) from e
        except BaseException:
            _rollback(transaction)
            logger.debug(f"Transacción revertida en esquema: {schema}")
            raise
        finally:
            if db is not None:
                db.close()
    finally:
        connection.close()
        logger.debug(f"Conexión liberada para esquema: {schema}")


def with_tenant_session(tenant: str, fn: Callable[[Session], T], **kwargs) -> T:
    with tenant_session(tenant, **kwargs) as db:
        return fn(db)


def with_tenant_transaction(tenant: str, fn: Callable[[Session], T], **kwargs) -> T:
    with tenant_transaction(tenant, **kwargs) as db:
        return fn(db)
