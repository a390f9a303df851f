# inventario/core/tenant.py
"""
Resolución de tenant.

Un tenant es un concepto de enrutamiento: una clave corta que apunta a un
esquema físico. La whitelist es configuración estática, no un dato en BD.

Precedencia: tenant del usuario autenticado > tenant del middleware > default.
Si la pista elegida no está en la whitelist se usa el tenant por defecto.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel

from inventario.config.settings import settings
from inventario.core.exceptions import InvalidTenantError


class TenantHints(BaseModel):
    """Pistas de tenant disponibles para una petición"""
    user_tenant: Optional[str] = None
    middleware_tenant: Optional[str] = None


class TenantResolver:

    def __init__(self, schemas: Optional[Dict[str, str]] = None,
                 default: Optional[str] = None,
                 names: Optional[Dict[str, str]] = None):
        self.schemas = dict(schemas if schemas is not None else settings.tenant_schemas)
        self.default = default or settings.default_tenant
        self.names = dict(names if names is not None else settings.tenant_names)
        if self.default not in self.schemas:
            raise InvalidTenantError(self.default)

    def is_valid(self, candidate: Optional[str]) -> bool:
        return candidate is not None and candidate in self.schemas

    def resolve(self, hints: TenantHints) -> str:
        hint = hints.user_tenant or hints.middleware_tenant
        if hint and self.is_valid(hint):
            return hint
        return self.default

    def schema_for(self, tenant: str) -> str:
        try:
            return self.schemas[tenant]
        except KeyError:
            raise InvalidTenantError(tenant)

    def available_tenants(self) -> List[Dict[str, str]]:
        return [
            {"id": key, "nombre": self.names.get(key, key), "esquema": schema}
            for key, schema in self.schemas.items()
        ]


tenant_resolver = TenantResolver()
