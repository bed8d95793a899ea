"""JWT token handling for actor authentication."""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from booking_core.auth.actors import Actor, Role, actor_from_claims
from booking_core.config import JWTSettings, get_settings
from booking_core.exceptions import AuthenticationError

logger = logging.getLogger(__name__)


class JWTTokenHandler:
    """Handler for JWT token generation and validation."""

    def __init__(self, config: Optional[JWTSettings] = None):
        self.config = config or get_settings().jwt
        self.secret_key = self.config.secret_key
        self.algorithm = self.config.algorithm

    def create_access_token(
        self,
        user_id: str,
        role: Role,
        expires_delta: Optional[timedelta] = None,
        **extra_claims: Any,
    ) -> str:
        """Create an access token for a user acting in ``role``.

        Staff tokens must pass ``staff_id`` and ``salon_id`` as extra claims.
        """
        now = datetime.now(timezone.utc)
        expires_at = now + (expires_delta or timedelta(minutes=self.config.access_token_expire_minutes))
        claims: Dict[str, Any] = {
            "sub": user_id,
            "role": Role(role).value,
            "jti": uuid.uuid4().hex,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        claims.update(extra_claims)
        try:
            token = jwt.encode(claims, self.secret_key, algorithm=self.algorithm)
        except JWTError as e:
            logger.error(f"Error encoding JWT token: {e}")
            raise AuthenticationError("Failed to generate token")
        logger.debug(f"Generated JWT token for user: {user_id}")
        return token

    def decode_token(self, token: str) -> Dict[str, Any]:
        """Decode and validate a JWT token, returning its claims."""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning(f"JWT token validation failed: {e}")
            raise AuthenticationError(f"Invalid token: {str(e)}")

    def decode_actor(self, token: str) -> Actor:
        return actor_from_claims(self.decode_token(token))


_jwt_handler: Optional[JWTTokenHandler] = None


def get_jwt_handler() -> JWTTokenHandler:
    """Get global JWT token handler instance."""
    global _jwt_handler
    if _jwt_handler is None:
        _jwt_handler = JWTTokenHandler()
    return _jwt_handler


def create_access_token(user_id: str, role: Role, **kwargs: Any) -> str:
    return get_jwt_handler().create_access_token(user_id, role, **kwargs)


def decode_token(token: str) -> Dict[str, Any]:
    return get_jwt_handler().decode_token(token)
