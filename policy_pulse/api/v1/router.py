from fastapi import APIRouter
from policy_pulse.api.v1.endpoints import affected_meds, compare, notifications, policies, recommendations

# Create API router
api_router = APIRouter()

# Include routers
api_router.include_router(compare.router, prefix="/pdf", tags=["Compare"])
api_router.include_router(affected_meds.router, prefix="/affected-meds", tags=["Affected Medications"])
api_router.include_router(policies.router, prefix="/policies", tags=["Policies"])
api_router.include_router(recommendations.router, prefix="/recommendations", tags=["Recommendations"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])

__all__ = ["api_router"]
