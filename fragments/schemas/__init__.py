"""Pydantic schemas for API requests and responses."""

from fragments.schemas.fragments import (
    FragmentMetadata,
    FragmentResponse,
    FragmentInfoResponse,
    ListFragmentsResponse,
    DeleteFragmentResponse
)
from fragments.schemas.common import ErrorDetail, ErrorResponse

__all__ = [
    "FragmentMetadata",
    "FragmentResponse",
    "FragmentInfoResponse",
    "ListFragmentsResponse",
    "DeleteFragmentResponse",
    "ErrorDetail",
    "ErrorResponse"
]
