"""Common schemas used across multiple endpoints."""

from pydantic import BaseModel


class ErrorDetail(BaseModel):
    code: int
    message: str


class ErrorResponse(BaseModel):
    """Response model for errors."""
    status: str = "error"
    error: ErrorDetail
