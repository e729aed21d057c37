"""Policy diff, impact history and cost endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from policy_pulse.api.dependencies import get_impact_resolver, get_policy_directory
from policy_pulse.repositories.base import PolicyDirectory
from policy_pulse.schemas.requests import CostRequest, PolicyDiffRequest
from policy_pulse.schemas.responses import ApiResponse
from policy_pulse.services.coverage.cost_calculator import compute_cost
from policy_pulse.services.impact.impact_resolver import ImpactResolver
from policy_pulse.utils.logging import get_logger
from policy_pulse.utils.responses import create_api_response, create_error_detail, raise_for_failure

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/diff",
    response_model=ApiResponse,
    summary="Diff the coverage maps of two stored policies",
    operation_id="diff_policies",
)
async def diff_policies(
    request: Request,
    body: PolicyDiffRequest,
    resolver: Annotated[ImpactResolver, Depends(get_impact_resolver)],
) -> ApiResponse:
    if body.old_policy_id and body.new_policy_id:
        result = await resolver.diff_policies(body.old_policy_id, body.new_policy_id)
    else:
        result = await resolver.diff_policies_by_file(body.old_file, body.new_file)
    raise_for_failure(result, request)

    return create_api_response(
        data=result.data,
        message=f"{len(result.data.changed_medications)} medications changed",
        request=request,
    )


@router.get(
    "/{policy_id}/impacts",
    response_model=ApiResponse,
    summary="List stored impact reports for a policy",
    operation_id="list_policy_impacts",
)
async def list_impacts(
    request: Request,
    policy_id: str,
    resolver: Annotated[ImpactResolver, Depends(get_impact_resolver)],
    limit: int = Query(1, ge=1, le=100),
) -> ApiResponse:
    """Most recent reports first."""
    reports = await resolver.list_reports(policy_id, limit=limit)
    return create_api_response(
        data={"policy_id": policy_id, "reports": [report.model_dump(mode="json") for report in reports]},
        message=f"{len(reports)} impact reports found",
        request=request,
    )


@router.post(
    "/{policy_id}/cost",
    response_model=ApiResponse,
    summary="Compute patient cost for priced medications under a policy",
    operation_id="compute_policy_cost",
)
async def compute_policy_cost(
    request: Request,
    policy_id: str,
    body: CostRequest,
    policies: Annotated[PolicyDirectory, Depends(get_policy_directory)],
) -> ApiResponse:
    LOGGER.info(f"Cost requested for policy {policy_id}", extra={"item_count": len(body.items)})
    policy = await policies.get_policy(policy_id)
    if policy is None:
        error_detail = create_error_detail(
            title="Policy Not Found",
            status=status.HTTP_404_NOT_FOUND,
            detail=f"Policy {policy_id} not found",
            request=request,
            code="policy_not_found",
        )
        raise HTTPException(status_code=404, detail=error_detail.model_dump(mode="json"))

    breakdown = compute_cost(policy.coverage_map, body.items)
    data = breakdown.model_dump(mode="json")
    data["policy"] = policy.to_summary().model_dump(mode="json")
    return create_api_response(data=data, message="Cost computed", request=request)
