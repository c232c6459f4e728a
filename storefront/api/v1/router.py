"""
API v1 router setup
Organized into: customer support chat, staff support desk and cart pricing
"""
from fastapi import APIRouter

from storefront.api.v1 import admin_support, cart, support

api_v1_router = APIRouter()

# ============================================================================
# CUSTOMER ROUTES
# ============================================================================
api_v1_router.include_router(support.router, tags=["Support"])
api_v1_router.include_router(cart.router, tags=["Cart"])

# ============================================================================
# STAFF ROUTES
# ============================================================================
api_v1_router.include_router(admin_support.router, tags=["Admin"])


@api_v1_router.get("/", tags=["Info"])
async def api_info():
    """API information and available route groups."""
    return {
        "version": "1.0",
        "groups": {
            "support": "/api/v1/customers/{customer_id}/support",
            "admin_support": "/api/v1/admin/support",
            "cart": "/api/v1/carts",
        },
    }
