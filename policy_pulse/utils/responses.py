from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import HTTPException, Request

from policy_pulse.schemas.responses import ApiResponse, ErrorDetail, ResponseMeta
from policy_pulse.schemas.results import ServiceError, ServiceResult

# Failure codes that are the caller's fault; everything else is a 500
FAILURE_STATUS: Dict[str, int] = {
    "validation_error": 400,
    "not_a_patient": 400,
    "current_policy_unresolved": 400,
    "no_medications": 400,
    "document_unreadable": 422,
}


def _request_id(request: Optional[Request]) -> str:
    if request is not None and hasattr(request.state, "request_id"):
        return request.state.request_id
    return str(uuid4())


def create_api_response(
    data: Any,
    message: str = "Operation successful",
    status: bool = True,
    request: Optional[Request] = None,
    api_version: str = "v1"
) -> Dict[str, Any]:
    """Create a standardized API response as a dictionary.

    Returns a dict to be compatible with FastAPI's response_model=dict.
    """
    meta = ResponseMeta(
        timestamp=datetime.now(timezone.utc),
        request_id=_request_id(request),
        api_version=api_version
    )

    data_dict: Dict[str, Any] = {}
    if isinstance(data, dict):
        data_dict = data
    elif hasattr(data, "model_dump"):
        data_dict = data.model_dump(mode="json")
    elif isinstance(data, list):
        data_dict = {
            "items": [item.model_dump(mode="json") if hasattr(item, "model_dump") else item for item in data]
        }
    elif data is not None:
        data_dict = {"value": data}

    response = ApiResponse(
        status=status,
        message=message,
        data=data_dict,
        meta=meta
    )
    return response.model_dump(mode="json")


def create_error_detail(
    title: str,
    status: int,
    detail: str,
    request: Optional[Request] = None,
    code: Optional[str] = None,
    instance: Optional[str] = None
) -> ErrorDetail:
    """Create a standardized error detail (RFC 7807)."""
    return ErrorDetail(
        title=title,
        status=status,
        detail=detail,
        code=code,
        instance=instance or (request.url.path if request else None),
        request_id=_request_id(request),
        timestamp=datetime.now(timezone.utc)
    )


def status_for_failure(error: ServiceError) -> int:
    if error.code.endswith("not_found"):
        return 404
    return FAILURE_STATUS.get(error.code, 500)


def raise_for_failure(result: ServiceResult, request: Optional[Request] = None) -> None:
    """Raise an HTTPException carrying an error detail when ``result`` is a failure."""
    if result.ok:
        return
    error = result.error or ServiceError(code="internal_error", message="Operation failed")
    status_code = status_for_failure(error)
    detail = create_error_detail(
        title=error.code.replace("_", " ").capitalize(),
        status=status_code,
        detail=error.message,
        request=request,
        code=error.code,
    )
    raise HTTPException(status_code=status_code, detail=detail.model_dump(mode="json"))
