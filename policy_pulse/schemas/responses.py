"""Common API response envelope."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ResponseMeta(BaseModel):
    timestamp: datetime
    request_id: str
    api_version: str = "v1"


class ApiResponse(BaseModel):
    """Envelope wrapping every JSON endpoint response."""

    status: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Human-readable outcome")
    data: Dict[str, Any] = Field(default_factory=dict)
    meta: ResponseMeta


class ErrorDetail(BaseModel):
    """RFC 7807 style problem detail."""

    title: str
    status: int
    detail: str
    code: Optional[str] = None
    instance: Optional[str] = None
    request_id: Optional[str] = None
    timestamp: datetime
