from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request

from policy_pulse.api.dependencies import get_recommendation_service
from policy_pulse.schemas.requests import BestByCoverageRequest
from policy_pulse.schemas.responses import ApiResponse
from policy_pulse.services.recommendation.recommendation_service import RecommendationService
from policy_pulse.utils.logging import get_logger
from policy_pulse.utils.responses import create_api_response, raise_for_failure

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/best-by-coverage",
    response_model=ApiResponse,
    summary="Rank policies by coverage of a medication list",
    operation_id="rank_policies_by_coverage",
)
async def best_by_coverage(
    request: Request,
    body: BestByCoverageRequest,
    service: Annotated[RecommendationService, Depends(get_recommendation_service)],
) -> ApiResponse:
    LOGGER.info(
        "Coverage ranking requested",
        extra={"user_id": body.user_id, "candidate_file_count": len(body.candidate_files or [])},
    )
    result = await service.best_by_coverage(
        medications=body.medications,
        user_id=body.user_id,
        candidate_files=body.candidate_files,
        top_k=body.top_k,
    )
    raise_for_failure(result, request)
    return create_api_response(
        data=result.data,
        message=f"{len(result.data.ranking)} policies ranked",
        request=request,
    )


@router.get(
    "/{user_id}/better",
    response_model=ApiResponse,
    summary="Policies that beat the user's current policy",
    operation_id="recommend_better_than_current",
)
async def better_than_current(
    request: Request,
    user_id: str,
    service: Annotated[RecommendationService, Depends(get_recommendation_service)],
    min_improvement: float = Query(0.0, alias="minImprovement"),
    current_policy_id: Optional[str] = Query(None, alias="currentPolicyId"),
) -> ApiResponse:
    result = await service.better_than_current(
        user_id,
        min_improvement=min_improvement,
        current_policy_id=current_policy_id,
    )
    raise_for_failure(result, request)
    return create_api_response(
        data=result.data,
        message=f"{result.data.count} better options found",
        request=request,
    )
