"""Session endpoints for authenticated actors."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from booking_core.auth.actors import actor_from_claims
from booking_core.auth.dependencies import get_current_claims, get_revocation_store
from booking_core.auth.revocation import TokenRevocationStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", summary="Describe the calling actor")
async def who_am_i(claims: Dict[str, Any] = Depends(get_current_claims)) -> Dict[str, Any]:
    actor = actor_from_claims(claims)
    return {"user_id": actor.user_id, "role": actor.role.value}


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT, summary="Revoke the current token")
async def logout(
    claims: Dict[str, Any] = Depends(get_current_claims),
    revocations: TokenRevocationStore = Depends(get_revocation_store),
) -> None:
    jti = claims.get("jti")
    if jti:
        await revocations.revoke(jti, expires_at=claims.get("exp"))
        logger.info(f"Token revoked for user {claims.get('sub')}")
