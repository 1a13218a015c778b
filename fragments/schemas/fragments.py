"""Pydantic schemas for fragment endpoints."""

from typing import List, Union

from pydantic import BaseModel, ConfigDict, Field


class FragmentMetadata(BaseModel):
    """Fragment metadata as returned to clients."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    owner_id: str = Field(alias="ownerId")
    created: str
    updated: str
    type: str
    size: int


class FragmentResponse(BaseModel):
    """Response model for a single fragment's metadata."""
    status: str = "ok"
    fragment: FragmentMetadata


class FragmentInfoResponse(FragmentResponse):
    """Response model for fragment info, including producible formats."""
    formats: List[str]


class ListFragmentsResponse(BaseModel):
    """Response model for fragment listing (ids, or metadata when expanded)."""
    status: str = "ok"
    fragments: Union[List[FragmentMetadata], List[str]]


class DeleteFragmentResponse(BaseModel):
    """Response model for fragment deletion."""
    status: str = "ok"
