from fastapi import APIRouter

from monety.api.routes.auth import router as auth_router
from monety.api.routes.health import router as health_router
from monety.api.routes.investments import router as investments_router
from monety.api.routes.operator import router as operator_router
from monety.api.routes.profile import router as profile_router
from monety.api.routes.referrals import router as referrals_router
from monety.api.routes.rewards import router as rewards_router
from monety.api.routes.wallet import router as wallet_router

router = APIRouter()
router.include_router(health_router, tags=["health"])
router.include_router(auth_router, prefix="/auth", tags=["auth"])
router.include_router(profile_router, prefix="/profile", tags=["profile"])
router.include_router(investments_router, prefix="/investments", tags=["investments"])
router.include_router(rewards_router, prefix="/rewards", tags=["rewards"])
router.include_router(wallet_router, prefix="/wallet", tags=["wallet"])
router.include_router(referrals_router, prefix="/referrals", tags=["referrals"])
router.include_router(operator_router, prefix="/operator", tags=["operator"])
