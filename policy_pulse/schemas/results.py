"""Discriminated success/failure results returned by public service operations."""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

from policy_pulse.core.exceptions import AppError

T = TypeVar("T")


class ServiceError(BaseModel):
    """Machine-readable failure description."""

    code: str = Field(..., description="Stable failure code, e.g. policy_not_found")
    message: str = Field(..., description="Human-readable failure message")
    details: Optional[dict[str, Any]] = Field(None, description="Optional debugging context")


class ServiceResult(BaseModel, Generic[T]):
    """Either ``ok=True`` with ``data`` or ``ok=False`` with ``error``."""

    ok: bool
    data: Optional[T] = None
    error: Optional[ServiceError] = None

    @classmethod
    def success(cls, data: T) -> "ServiceResult[T]":
        return cls(ok=True, data=data)

    @classmethod
    def failure(
        cls,
        code: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ) -> "ServiceResult[T]":
        return cls(ok=False, error=ServiceError(code=code, message=message, details=details))

    @classmethod
    def from_error(cls, error: AppError) -> "ServiceResult[T]":
        return cls.failure(code=error.code, message=error.message)
