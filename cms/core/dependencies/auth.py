from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError

from cms.core.security import decode_access_token

bearer_scheme = HTTPBearer(auto_error=False)


class Role(str, Enum):
    ADMIN = "admin"
    DRIVER = "driver"
    ABASTECEDOR = "abastecedor"
    CLIENTE = "cliente"


@dataclass
class TokenData:
    id: int
    role: Role
    claims: Dict[str, Any] = field(default_factory=dict)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token_data(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> TokenData:
    if credentials is None:
        raise _unauthorized("Token de acesso não fornecido")
    try:
        payload = decode_access_token(credentials.credentials)
        subject = payload.get("sub")
        role = Role(payload.get("role"))
        if not subject:
            raise _unauthorized("Token inválido")
        return TokenData(id=int(subject), role=role, claims=payload)
    except (JWTError, ValueError):
        raise _unauthorized("Token inválido ou expirado")


def require_role(role: Role):
    def dependency(token: TokenData = Depends(get_token_data)) -> TokenData:
        if token.role != role:
            raise _unauthorized(f"Acesso restrito ao perfil {role.value}")
        return token
    return dependency


require_admin = require_role(Role.ADMIN)
require_driver = require_role(Role.DRIVER)
require_abastecedor = require_role(Role.ABASTECEDOR)
require_cliente = require_role(Role.CLIENTE)
