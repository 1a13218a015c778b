"""Fragment API routes."""

from fastapi import APIRouter, Depends, Header, Query, Request, Response, status

from common.constants import API_PREFIX
from fragments import config
from fragments.auth import get_current_owner
from fragments.exceptions import PayloadTooLargeError
from fragments.fragment import Fragment
from fragments.schemas.common import ErrorResponse
from fragments.schemas.fragments import (
    DeleteFragmentResponse,
    FragmentInfoResponse,
    FragmentMetadata,
    FragmentResponse,
    ListFragmentsResponse,
)
from fragments.services.fragment_service import FragmentService
from fragments.storage.base import StorageBackend

router = APIRouter(
    prefix=f"{API_PREFIX}/fragments",
    tags=["Fragments"],
    responses={
        401: {"model": ErrorResponse, "description": "Invalid or missing credentials"},
        404: {"model": ErrorResponse, "description": "Fragment not found"},
    },
)


def get_storage(request: Request) -> StorageBackend:
    """
    FastAPI dependency returning the storage backend created at startup.
    """
    return request.app.state.storage


def get_fragment_service(storage: StorageBackend = Depends(get_storage)) -> FragmentService:
    return FragmentService(storage)


async def read_body(request: Request, limit: int) -> bytes:
    """
    Read the raw request body, stopping once it grows past limit.

    Raises:
        PayloadTooLargeError: If Content-Length or the streamed body exceeds limit
    """
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > limit:
        raise PayloadTooLargeError(f"Request body of {declared} bytes exceeds the {limit} byte limit")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            raise PayloadTooLargeError(f"Request body exceeds the {limit} byte limit")
    return bytes(body)


def _metadata(fragment: Fragment) -> FragmentMetadata:
    return FragmentMetadata(**fragment.to_record())


@router.get("", response_model=ListFragmentsResponse)
async def list_fragments(
    expand: bool = Query(False, description="Return full metadata instead of ids"),
    current_owner: str = Depends(get_current_owner),
    service: FragmentService = Depends(get_fragment_service),
):
    """
    List the current user's fragments.

    Parameters:
        - expand: Return metadata objects instead of ids
        - Authorization header: Basic credentials (required)

    Returns:
        - fragments: List of fragment ids, or metadata when expanded

    Raises:
        - 401: Invalid or missing credentials
    """
    fragments = await service.list_fragments(current_owner, expand)

    if expand:
        return ListFragmentsResponse(fragments=[_metadata(fragment) for fragment in fragments])
    return ListFragmentsResponse(fragments=fragments)


@router.post("", response_model=FragmentResponse, status_code=status.HTTP_201_CREATED)
async def create_fragment(
    request: Request,
    response: Response,
    content_type: str = Header(None),
    current_owner: str = Depends(get_current_owner),
    service: FragmentService = Depends(get_fragment_service),
):
    """
    Create a fragment from the raw request body.

    Parameters:
        - body: Raw fragment data
        - Content-Type header: Supported fragment type (required)
        - Authorization header: Basic credentials (required)

    Returns:
        - fragment: Metadata of the new fragment, with its URL in the Location header

    Raises:
        - 400: Empty body
        - 401: Invalid or missing credentials
        - 413: Body too large
        - 415: Unsupported Content-Type
    """
    body = await read_body(request, service.max_body_bytes)

    fragment = await service.create_fragment(current_owner, content_type, body)

    base_url = config.API_URL.rstrip("/") or str(request.base_url).rstrip("/")
    response.headers["Location"] = f"{base_url}{API_PREFIX}/fragments/{fragment.id}"

    return FragmentResponse(fragment=_metadata(fragment))


@router.get("/{fragment_id}/info", response_model=FragmentInfoResponse)
async def get_fragment_info(
    fragment_id: str,
    current_owner: str = Depends(get_current_owner),
    service: FragmentService = Depends(get_fragment_service),
):
    """
    Get a fragment's metadata and the formats it can be served as.

    Raises:
        - 401: Invalid or missing credentials
        - 404: Fragment not found
    """
    fragment = await service.get_fragment_info(current_owner, fragment_id)

    return FragmentInfoResponse(fragment=_metadata(fragment), formats=fragment.formats)


@router.get("/{fragment_id}")
async def get_fragment(
    fragment_id: str,
    current_owner: str = Depends(get_current_owner),
    service: FragmentService = Depends(get_fragment_service),
):
    """
    Get a fragment's data, converted when the id ends in an extension.

    Parameters:
        - fragment_id: Fragment id, optionally with an extension (e.g., "<id>.html")
        - Authorization header: Basic credentials (required)

    Returns:
        - Raw data with the matching Content-Type

    Raises:
        - 401: Invalid or missing credentials
        - 404: Fragment not found
        - 415: Extension unknown or not producible from the stored type
        - 422: Data could not be converted
    """
    result = await service.get_fragment_content(current_owner, fragment_id)

    return Response(content=result.data, media_type=result.content_type)


@router.put("/{fragment_id}", response_model=FragmentResponse)
async def update_fragment(
    fragment_id: str,
    request: Request,
    content_type: str = Header(None),
    current_owner: str = Depends(get_current_owner),
    service: FragmentService = Depends(get_fragment_service),
):
    """
    Replace a fragment's data. The Content-Type must match the stored type.

    Raises:
        - 400: Empty body or type mismatch
        - 401: Invalid or missing credentials
        - 404: Fragment not found
        - 413: Body too large
        - 415: Unsupported Content-Type
    """
    body = await read_body(request, service.max_body_bytes)

    fragment = await service.update_fragment(current_owner, fragment_id, content_type, body)

    return FragmentResponse(fragment=_metadata(fragment))


@router.delete("/{fragment_id}", response_model=DeleteFragmentResponse)
async def delete_fragment(
    fragment_id: str,
    current_owner: str = Depends(get_current_owner),
    service: FragmentService = Depends(get_fragment_service),
):
    """
    Delete a fragment's metadata and data.

    Raises:
        - 401: Invalid or missing credentials
        - 404: Fragment not found
    """
    await service.delete_fragment(current_owner, fragment_id)

    return DeleteFragmentResponse()
