import logging

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from .settings import settings

logger = logging.getLogger(__name__)

def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # Desarrollo/tests: una sola conexión compartida para que los
        # esquemas adjuntos en memoria sobrevivan entre sesiones
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {"pool_pre_ping": True, "pool_recycle": 300}

# Create engine
engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    **_engine_options(settings.database_url)
)

if engine.dialect.name == "sqlite":
    @event.listens_for(engine, "connect")
    def _attach_tenant_schemas(dbapi_connection, connection_record):
        """SQLite no tiene esquemas: cada tenant es una base adjunta"""
        cursor = dbapi_connection.cursor()
        for schema in settings.tenant_schemas.values():
            cursor.execute(f"ATTACH DATABASE ':memory:' AS {schema}")
        cursor.close()

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()

def create_tenant_schemas(bind=None):
    """Crear esquema y tablas para cada tenant configurado"""
    from inventario.shared.database import models  # noqa: F401 registra las tablas

    bind = bind or engine
    with bind.begin() as connection:
        for schema in settings.tenant_schemas.values():
            if connection.dialect.name == "postgresql":
                connection.execute(text(f'CREATE SCHEMA IF NOT EXISTS "{schema}"'))
            scoped = connection.execution_options(schema_translate_map={None: schema})
            Base.metadata.create_all(bind=scoped)
            logger.info(f"Esquema listo: {schema}")

def drop_tenant_schemas(bind=None):
    """Eliminar las tablas de todos los tenants (solo desarrollo/tests)"""
    from inventario.shared.database import models  # noqa: F401

    bind = bind or engine
    with bind.begin() as connection:
        for schema in settings.tenant_schemas.values():
            scoped = connection.execution_options(schema_translate_map={None: schema})
            Base.metadata.drop_all(bind=scoped)
