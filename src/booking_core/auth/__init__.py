"""Authentication utilities."""

from booking_core.auth.actors import (
    Actor,
    AdminActor,
    CustomerActor,
    OwnerActor,
    Role,
    StaffActor,
    actor_from_claims,
)
from booking_core.auth.jwt import (
    JWTTokenHandler,
    create_access_token,
    decode_token,
    get_jwt_handler,
)
from booking_core.auth.revocation import InMemoryTokenRevocationStore, TokenRevocationStore

__all__ = [
    # Actors
    "Actor",
    "AdminActor",
    "CustomerActor",
    "OwnerActor",
    "Role",
    "StaffActor",
    "actor_from_claims",
    # JWT
    "JWTTokenHandler",
    "create_access_token",
    "decode_token",
    "get_jwt_handler",
    # Revocation
    "InMemoryTokenRevocationStore",
    "TokenRevocationStore",
]
