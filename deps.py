# deps.py
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import Settings
from db.models import Role
from errors import Forbidden, NotAuthenticated
from schemas import TokenClaims
from security import PasswordHasher, TokenIssuer

# auto_error=False so a missing header goes through our own 401 envelope
_bearer = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_verified_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> TokenClaims:
    if credentials is None or not credentials.credentials:
        raise NotAuthenticated()

    claims = issuer.verify(credentials.credentials)
    request.state.user = claims
    return claims


def require_roles(*roles: Role) -> Callable[..., TokenClaims]:
    """Build a dependency admitting only tokens whose role is in ``roles``."""
    if not roles:
        raise ValueError("require_roles needs at least one role")
    allowed = frozenset(roles)

    def role_gate(identity: TokenClaims = Depends(get_verified_identity)) -> TokenClaims:
        if identity.role not in allowed:
            raise Forbidden()
        return identity

    return role_gate
