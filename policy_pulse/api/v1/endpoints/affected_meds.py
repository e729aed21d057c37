from typing import Annotated

from fastapi import APIRouter, Depends, Request

from policy_pulse.api.dependencies import get_impact_resolver
from policy_pulse.schemas.requests import AffectedMedsRequest
from policy_pulse.schemas.responses import ApiResponse
from policy_pulse.services.impact.impact_resolver import ImpactResolver
from policy_pulse.utils.logging import get_logger
from policy_pulse.utils.responses import create_api_response, raise_for_failure

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/run-by-id",
    response_model=ApiResponse,
    summary="Find patients affected by a policy version change",
    operation_id="run_affected_meds_by_id",
)
async def run_by_ids(
    request: Request,
    body: AffectedMedsRequest,
    resolver: Annotated[ImpactResolver, Depends(get_impact_resolver)],
) -> ApiResponse:
    """Diff two policy versions and report which insured patients take a changed medication."""
    LOGGER.info(
        f"Impact run requested: {body.old_policy_id} -> {body.new_policy_id}",
        extra={"scope_policy_id": body.insured_policy_id, "persist": body.persist},
    )
    result = await resolver.run(
        body.old_policy_id,
        body.new_policy_id,
        scope_policy_id=body.insured_policy_id,
        persist=body.persist,
    )
    raise_for_failure(result, request)

    report = result.data
    return create_api_response(
        data=report,
        message=report.note or f"{report.affected_count} affected patients found",
        request=request,
    )
