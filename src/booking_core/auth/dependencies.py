"""FastAPI dependencies for authentication and authorization."""

import logging
from typing import Any, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import Request

from booking_core.auth.actors import Actor, Role, actor_from_claims
from booking_core.auth.jwt import JWTTokenHandler, get_jwt_handler
from booking_core.auth.revocation import TokenRevocationStore
from booking_core.exceptions import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)

# HTTP Bearer token security scheme
security = HTTPBearer(auto_error=False)


def get_token_handler(request: Request) -> JWTTokenHandler:
    """Token handler configured on the app, or the global one."""
    return getattr(request.app.state, "jwt_handler", None) or get_jwt_handler()


def get_revocation_store(request: Request) -> TokenRevocationStore:
    return request.app.state.revocation_store


async def get_token_from_header(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Extract the bearer token from the Authorization header."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Authentication required")
    return credentials.credentials


async def get_current_claims(
    token: str = Depends(get_token_from_header),
    handler: JWTTokenHandler = Depends(get_token_handler),
    revocations: TokenRevocationStore = Depends(get_revocation_store),
) -> Dict[str, Any]:
    """Decoded claims of a valid, unrevoked token."""
    claims = handler.decode_token(token)
    jti = claims.get("jti")
    if jti and await revocations.is_revoked(jti):
        logger.info(f"Rejected revoked token for user {claims.get('sub')}")
        raise AuthenticationError("Token has been revoked")
    return claims


async def get_current_actor(claims: Dict[str, Any] = Depends(get_current_claims)) -> Actor:
    """
    Resolve the calling actor.

    Raises:
        AuthenticationError: missing, invalid, revoked or malformed token
    """
    return actor_from_claims(claims)


def require_roles(*roles: Role):
    """
    FastAPI dependency factory for role-based access control.

    Example:
        @router.put("/salons/{salon_id}/booking-policy")
        async def update_policy(actor: Actor = Depends(require_roles(Role.OWNER, Role.ADMIN))):
            ...
    """
    allowed = {Role(role) for role in roles}

    async def role_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed:
            logger.warning(
                f"User {actor.user_id} with role {actor.role.value} denied; "
                f"requires one of {sorted(r.value for r in allowed)}"
            )
            raise AuthorizationError("You do not have permission to perform this action")
        return actor

    return role_checker
