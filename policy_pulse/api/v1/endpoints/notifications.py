from fastapi import APIRouter, Request

from policy_pulse.schemas.requests import NotificationPreviewRequest
from policy_pulse.schemas.responses import ApiResponse
from policy_pulse.services.impact.notification_renderer import (
    render_plan_change_message,
    render_report_messages,
)
from policy_pulse.utils.logging import get_logger
from policy_pulse.utils.responses import create_api_response

LOGGER = get_logger(__name__)

router = APIRouter()


@router.post(
    "/preview",
    response_model=ApiResponse,
    summary="Render plan-change messages without sending them",
    operation_id="preview_plan_change_messages",
)
async def preview_messages(request: Request, body: NotificationPreviewRequest) -> ApiResponse:
    LOGGER.debug("Rendering plan-change preview", extra={"from_report": body.report is not None})
    if body.report is not None:
        messages = render_report_messages(body.report, subject=body.subject)
    else:
        messages = [render_plan_change_message(body.patient, subject=body.subject)]

    return create_api_response(
        data={"count": len(messages), "messages": [message.model_dump(mode="json") for message in messages]},
        message=f"Rendered {len(messages)} messages",
        request=request,
    )
