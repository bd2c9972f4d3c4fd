"""Common schemas used across the API."""

from pydantic import BaseModel


class ResultResponse(BaseModel):
    """Uniform result body returned by every workflow endpoint."""

    success: bool
    message: str


class ErrorResponse(ResultResponse):
    """Failure body; ``success`` is always false."""

    success: bool = False
