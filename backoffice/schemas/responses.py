"""Response envelopes shared by every endpoint."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope: ``{success, message, data}``."""

    success: bool = True
    message: str | None = None
    data: T | None = None


class ErrorDetail(BaseModel):
    """A single field-level or contextual error detail."""

    field: str | None = None
    message: str


class ErrorBody(BaseModel):
    code: str
    details: list[ErrorDetail] = []
    request_id: str = Field(alias="requestId")
    detail: str | None = None

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """Error envelope: ``{success: false, message, error}``."""

    success: bool = False
    message: str
    error: ErrorBody
