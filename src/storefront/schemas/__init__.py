"""Pydantic schemas for API requests/responses."""

from storefront.schemas.common import ErrorResponse, ResultResponse

__all__ = [
    "ErrorResponse",
    "ResultResponse",
]
