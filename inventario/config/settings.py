from pydantic import Field
from pydantic_settings import BaseSettings
from typing import Dict, List, Literal, Optional

class Settings(BaseSettings):
    # App Info
    app_name: str = "Inventario API"
    version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str

    # Security (el token lo emite el servicio de identidad; aquí solo se valida)
    secret_key: str
    algorithm: str = "HS256"
    allowed_origins: List[str] = ["http://localhost:3000"]

    # Tenants: clave lógica -> esquema físico
    tenant_schemas: Dict[str, str] = Field(
        default={
            "principal": "inventario_principal",
            "sucursal": "inventario_sucursal",
        },
        description="Whitelist de tenants y su esquema"
    )
    tenant_names: Dict[str, str] = {
        "principal": "Bodega Principal",
        "sucursal": "Bodega Sucursal",
    }
    default_tenant: str = "principal"
    shared_schema: str = "public"
    create_schemas_on_startup: bool = False

    # Inventario
    low_stock_threshold: int = 10
    decompose_requires_balance: bool = Field(
        default=False,
        description="Exigir que la suma de destinos sea igual a la cantidad total al dividir"
    )

    # Concurrencia: el bloqueo de productos solo evita sobreventas en estos niveles
    transaction_isolation: Optional[Literal["READ COMMITTED", "SERIALIZABLE"]] = "READ COMMITTED"
    lock_stock_rows: bool = True

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    class Config:
        env_file = ".env"
        case_sensitive = False

settings = Settings()
