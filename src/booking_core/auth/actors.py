"""Caller identities.

Each role is its own frozen dataclass carrying only the fields that role has, so
service code can branch with ``isinstance`` instead of inspecting optional ids.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Union

from booking_core.exceptions import AuthenticationError


class Role(str, Enum):
    """Actor roles."""

    CUSTOMER = "customer"
    OWNER = "owner"
    STAFF = "staff"
    ADMIN = "admin"


@dataclass(frozen=True)
class CustomerActor:
    user_id: str
    role = Role.CUSTOMER


@dataclass(frozen=True)
class OwnerActor:
    """A salon owner. Ownership is checked per salon against ``Salon.owner_id``."""

    user_id: str
    role = Role.OWNER


@dataclass(frozen=True)
class StaffActor:
    """A staff member employed by exactly one salon."""

    user_id: str
    staff_id: str
    salon_id: str
    role = Role.STAFF


@dataclass(frozen=True)
class AdminActor:
    user_id: str
    role = Role.ADMIN


Actor = Union[CustomerActor, OwnerActor, StaffActor, AdminActor]


def actor_from_claims(claims: Mapping[str, Any]) -> Actor:
    """Build an actor from decoded token claims.

    Raises:
        AuthenticationError: the claims lack a subject, carry an unknown role, or
            a staff token lacks its staff/salon ids.
    """
    user_id = claims.get("sub")
    if not user_id:
        raise AuthenticationError("Token has no subject")

    try:
        role = Role(claims.get("role"))
    except ValueError:
        raise AuthenticationError(f"Unknown role: {claims.get('role')!r}")

    if role is Role.CUSTOMER:
        return CustomerActor(user_id=user_id)
    if role is Role.OWNER:
        return OwnerActor(user_id=user_id)
    if role is Role.ADMIN:
        return AdminActor(user_id=user_id)

    staff_id = claims.get("staff_id")
    salon_id = claims.get("salon_id")
    if not staff_id or not salon_id:
        raise AuthenticationError("Staff token must carry staff_id and salon_id")
    return StaffActor(user_id=user_id, staff_id=staff_id, salon_id=salon_id)
