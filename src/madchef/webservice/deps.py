"""Dependency providers for MadChef webservice."""

from typing import Callable, Dict, Optional, Protocol

from fastapi import Depends, Header, HTTPException

from madchef.madchef_api.db_api import DBAPI
from madchef.commons.vocabulary import Role
from madchef.webservice.schemas.common import Caller


class InvalidTokenError(Exception):
    """Raised by identity providers for expired, forged or unknown tokens."""


class IdentityProvider(Protocol):
    """Narrow interface to the external identity provider."""

    def verify_token(self, token: str) -> Caller:
        """Return the caller a bearer token was issued to, or raise :class:`InvalidTokenError`."""
        ...

    def set_custom_claims(self, uid: str, claims: Dict) -> None:
        """Replace the role/package claims carried by the user's future tokens."""
        ...


def get_db_api() -> DBAPI:
    """Return the shared DB API facade."""
    return DBAPI()


def get_identity_provider() -> Optional[IdentityProvider]:
    """Return the configured identity provider, or ``None``.

    Deployments register theirs through ``app.dependency_overrides``.
    """
    return None


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def _verify(token: str, identity: Optional[IdentityProvider]) -> Caller:
    if identity is None:
        raise HTTPException(status_code=503, detail="Identity provider is not configured.")
    try:
        return identity.verify_token(token)
    except InvalidTokenError as exc:
        raise HTTPException(status_code=403, detail=str(exc) or "Invalid token.") from exc


def get_caller(
    authorization: Optional[str] = Header(default=None),
    identity: Optional[IdentityProvider] = Depends(get_identity_provider),
) -> Caller:
    """Authenticated caller; 401 without a bearer token, 403 when the token is rejected."""
    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Authentication required.")
    return _verify(token, identity)


def get_optional_caller(
    authorization: Optional[str] = Header(default=None),
    identity: Optional[IdentityProvider] = Depends(get_identity_provider),
) -> Optional[Caller]:
    """Caller when a bearer token is sent, ``None`` for anonymous requests."""
    token = _bearer_token(authorization)
    if token is None:
        return None
    return _verify(token, identity)


def require_roles(*roles: Role) -> Callable[..., Caller]:
    """Dependency factory allowing only callers whose role is in ``roles``."""
    allowed = ", ".join(role.value for role in roles)

    def _check(caller: Caller = Depends(get_caller)) -> Caller:
        if caller.role not in roles:
            raise HTTPException(status_code=403, detail=f"Access denied. Only {allowed} roles are allowed.")
        return caller

    return _check
