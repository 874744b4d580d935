"""
API v1 router setup
Organized into: public (anonymous customers) and admin (actor resolved upstream)
"""
from fastapi import APIRouter

from booking_api.api.v1.public import businesses
from booking_api.api.v1.admin import appointments as admin_appointments, blocks

api_v1_router = APIRouter()

# ============================================================================
# PUBLIC ROUTES (No authentication required)
# ============================================================================
api_v1_router.include_router(
    businesses.router,
    # No prefix needed - router already has "/public/businesses" prefix
    tags=["Public"]
)

# ============================================================================
# ADMIN ROUTES (X-Actor-Role forwarded by the gateway)
# ============================================================================
api_v1_router.include_router(
    admin_appointments.router,
    tags=["Admin"]
)

api_v1_router.include_router(
    blocks.router,
    tags=["Admin"]
)


# ============================================================================
# ROOT ENDPOINT - API Info
# ============================================================================
@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """API information and route groups"""
    return {
        "version": "1.0",
        "authentication": {
            "public": "No authentication required",
            "admin": "X-Actor-Role header (platform_admin, owner, staff) set by the gateway; "
                     "staff also send X-Actor-Resource-Id",
        }
    }
