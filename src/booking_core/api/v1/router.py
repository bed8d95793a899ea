"""API v1 router aggregation.

All v1 endpoints are prefixed with `/api/v1`.

Routers included:
- Authentication (`/api/v1/auth/*`)
- Slot availability (`/api/v1/slots`)
- Appointments (`/api/v1/appointments/*`)
- Salon booking policy (`/api/v1/salons/*`)
- Notifications (`/api/v1/notifications/*`)

Authentication:
- Bearer tokens are required everywhere except slot availability and reading a
  salon's booking policy.
"""

from fastapi import APIRouter

from booking_core.api.v1 import appointments, auth, notifications, salons, slots

# Create v1 API router with version prefix
router = APIRouter(
    prefix="/api/v1",
    tags=["v1"],
    responses={
        404: {"description": "Not found"},
        422: {"description": "Validation error"},
        500: {"description": "Internal server error"},
    },
)

router.include_router(auth.router)
router.include_router(slots.router)
router.include_router(appointments.router)
router.include_router(salons.router)
router.include_router(notifications.router)


@router.get("/", summary="API Information", tags=["v1"])
async def api_info():
    """Get API v1 version and status information."""
    return {
        "version": "v1",
        "status": "active",
        "endpoints": {
            "auth": "/api/v1/auth",
            "slots": "/api/v1/slots",
            "appointments": "/api/v1/appointments",
            "salons": "/api/v1/salons",
            "notifications": "/api/v1/notifications",
        },
    }
