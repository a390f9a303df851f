from pydantic import BaseModel
from typing import Optional

class CallerIdentity(BaseModel):
    """Identidad ya autenticada por el servicio de identidad"""
    id: int
    role: str = "bodeguero"
    email: Optional[str] = None
    tenant_hint: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "CallerIdentity":
        return cls(
            id=int(payload["sub"]),
            role=payload.get("rol", "bodeguero"),
            email=payload.get("correo"),
            tenant_hint=payload.get("bodegaId"),
        )
