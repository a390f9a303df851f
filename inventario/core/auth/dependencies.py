# inventario/core/auth/dependencies.py
import logging
from typing import List, Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from inventario.config.settings import settings
from inventario.core.auth.schemas import CallerIdentity
from inventario.core.tenant import TenantHints, tenant_resolver

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict:
    """Validar firma y expiración del token emitido por el servicio de identidad"""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme != "Bearer" or not token:
        return None
    return token


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> CallerIdentity:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No autenticado",
            headers={"WWW-Authenticate": "Bearer"}
        )

    try:
        payload = decode_token(credentials.credentials)
        return CallerIdentity.from_payload(payload)
    except (jwt.PyJWTError, KeyError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token inválido o expirado",
            headers={"WWW-Authenticate": "Bearer"}
        )


def require_roles(roles: List[str]):
    """Dependency que exige uno de los roles indicados"""

    async def role_checker(current_user: CallerIdentity = Depends(get_current_user)) -> CallerIdentity:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Rol '{current_user.role}' sin permisos. Requerido: {', '.join(roles)}"
            )
        return current_user

    return role_checker


async def get_tenant(
    request: Request,
    current_user: CallerIdentity = Depends(get_current_user)
) -> str:
    """Tenant de la petición: usuario autenticado > middleware > por defecto"""
    hints = TenantHints(
        user_tenant=current_user.tenant_hint,
        middleware_tenant=getattr(request.state, "tenant_hint", None)
    )
    tenant = tenant_resolver.resolve(hints)
    logger.debug(f"Tenant resuelto: {tenant} (usuario={hints.user_tenant}, middleware={hints.middleware_tenant})")
    return tenant
