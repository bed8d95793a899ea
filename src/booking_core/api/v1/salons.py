"""Salon booking policy endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from booking_core.auth.actors import Actor, Role
from booking_core.auth.dependencies import require_roles
from booking_core.dependencies import get_salons_service
from booking_core.models.salons import BookingPolicyResponse, BookingPolicyUpdateRequest
from booking_core.services.salons_service import SalonsService

router = APIRouter(prefix="/salons", tags=["salons"])


@router.get(
    "/{salon_id}/booking-policy",
    response_model=BookingPolicyResponse,
    summary="Get a salon's effective booking policy",
)
async def get_booking_policy(
    salon_id: str,
    service: SalonsService = Depends(get_salons_service),
) -> BookingPolicyResponse:
    return await service.get_booking_policy(salon_id)


@router.put(
    "/{salon_id}/booking-policy",
    response_model=BookingPolicyResponse,
    summary="Update a salon's booking policy",
    description="Partial update: omitted settings and weekdays keep their current values.",
)
async def update_booking_policy(
    salon_id: str,
    request: BookingPolicyUpdateRequest,
    actor: Actor = Depends(require_roles(Role.OWNER, Role.ADMIN)),
    service: SalonsService = Depends(get_salons_service),
) -> BookingPolicyResponse:
    return await service.update_booking_policy(actor, salon_id, request)
