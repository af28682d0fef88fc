"""API v1 router aggregator.

All v1 endpoint routers are included here. The account endpoints are
mounted at the application root (/register, /login, /me, ...), where the
frontend expects them.
"""

from fastapi import APIRouter

from aidhub.api.v1 import accounts, me

router = APIRouter()

# =============================================================================
# Registration, login, password reset
# =============================================================================

router.include_router(accounts.router, tags=["accounts"])

# =============================================================================
# Current user
# =============================================================================

router.include_router(me.router, prefix="/me", tags=["me"])
