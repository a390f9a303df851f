from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from inventario.config.settings import settings
from inventario.core.auth.dependencies import decode_token, extract_bearer_token
import jwt
import time
import logging

logger = logging.getLogger(__name__)

def setup_middleware(app: FastAPI):
    """Configure all middleware for the application"""

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "Accept",
            "Origin",
            "X-Requested-With"
        ],
        max_age=3600  # Cache preflight requests for 1 hour
    )

    @app.middleware("http")
    async def detect_tenant(request, call_next):
        # Pre-lectura del token: nunca rechaza la petición, solo deja una pista
        request.state.tenant_hint = tenant_hint_from_header(
            request.headers.get("authorization")
        )
        return await call_next(request)

    @app.middleware("http")
    async def log_requests(request, call_next):
        start_time = time.time()

        response = await call_next(request)

        process_time = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Time: {process_time:.4f}s"
        )

        return response

def tenant_hint_from_header(authorization):
    """Tenant indicado en el token, o None si no hay token válido"""
    token = extract_bearer_token(authorization)
    if not token:
        return None
    try:
        payload = decode_token(token)
    except jwt.PyJWTError:
        logger.debug("Token inválido, sin pista de tenant")
        return None
    return payload.get("bodegaId")
