"""
FastAPI Endpoints for the Short Links Service

This module defines all REST API endpoints with minimal logic.
Endpoints only handle:
- Resolving the session, actor and shared collaborators (dependencies)
- Mapping service results to HTTP responses
- Delegating to service layer

All business logic is in services.

Design Principles:
- Thin endpoints: no validation or authorization decisions here
- Mutations always answer with the {success, data | error} envelope
- The redirect path answers with a bare {error} body on failure
"""

import logging
from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.api.schemas import ActionResponse, LinkInput, LinkRead, RedirectError
from shortlinks.core.auth import get_current_actor
from shortlinks.core.outcome import ActionResult, ErrorKind
from shortlinks.core.rate_limit import RATE_LIMITS, RateLimiter, get_rate_limiter, limiter
from shortlinks.db.session import get_session
from shortlinks.services.link_service import LinkService
from shortlinks.services.listing_cache import LinkListingCache, get_listing_cache
from shortlinks.services.redirect_service import RedirectService

logger = logging.getLogger(__name__)

router = APIRouter()

ERROR_STATUS_CODES = {
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.RATE_LIMITED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNSAFE_URL: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.SLUG_TAKEN: status.HTTP_409_CONFLICT,
    ErrorKind.PERSISTENCE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


LINK_INPUT_OPENAPI = {
    "requestBody": {
        "required": True,
        "content": {"application/json": {"schema": LinkInput.model_json_schema()}},
    }
}


async def read_link_input(request: Request) -> dict[str, Any]:
    """
    Submitted url and slug, without type checks.

    A missing or malformed body yields None fields so the service decides
    the outcome, after authentication and rate limiting.
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        payload = {}
    return {"url": payload.get("url"), "slug": payload.get("slug")}


def parse_link_id(link_id: str) -> Any:
    """Path id as int when it is one, else unchanged for the service to reject."""
    if link_id.isascii() and link_id.isdigit():
        return int(link_id)
    return link_id


def get_link_service(
    session: AsyncSession = Depends(get_session),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    listing_cache: LinkListingCache = Depends(get_listing_cache),
) -> LinkService:
    return LinkService(session, rate_limiter=rate_limiter, listing_cache=listing_cache)


def to_response(
    result: ActionResult,
    serialize: Optional[Callable[[Any], Any]] = None,
    success_status: int = status.HTTP_200_OK,
) -> JSONResponse:
    """
    Convert a service result into the {success, data | error} envelope.

    Args:
        result: Outcome of a link operation
        serialize: Converts result.data for the response body
        success_status: HTTP status used when the operation succeeded
    """
    if result.success:
        data = serialize(result.data) if serialize and result.data is not None else result.data
        body = {"success": True, "data": data}
        return JSONResponse(status_code=success_status, content=jsonable_encoder(body))

    return JSONResponse(
        status_code=ERROR_STATUS_CODES[result.kind],
        content={"success": False, "error": result.error},
    )


@router.post(
    "/api/links",
    response_model=ActionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a short link",
    description="Creates a link with a custom slug owned by the authenticated actor",
    openapi_extra=LINK_INPUT_OPENAPI,
)
async def create_link(
    data: dict[str, Any] = Depends(read_link_input),
    actor_id: Optional[str] = Depends(get_current_actor),
    service: LinkService = Depends(get_link_service),
) -> JSONResponse:
    result = await service.create_link(actor_id, data)
    return to_response(result, LinkRead.from_link, success_status=status.HTTP_201_CREATED)


@router.get(
    "/api/links",
    response_model=ActionResponse,
    summary="List the actor's links",
    description="Returns the authenticated actor's links, newest first"
)
@limiter.limit(RATE_LIMITS["list_links"])
async def list_links(
    request: Request,  # Required for rate limiting (slowapi expects parameter named 'request')
    actor_id: Optional[str] = Depends(get_current_actor),
    service: LinkService = Depends(get_link_service),
) -> JSONResponse:
    result = await service.list_links(actor_id)
    return to_response(result, lambda links: [LinkRead.from_link(link) for link in links])


@router.put(
    "/api/links/{link_id}",
    response_model=ActionResponse,
    summary="Update a short link",
    description="Changes the slug and destination of a link owned by the authenticated actor",
    openapi_extra=LINK_INPUT_OPENAPI,
)
async def update_link(
    link_id: str,
    data: dict[str, Any] = Depends(read_link_input),
    actor_id: Optional[str] = Depends(get_current_actor),
    service: LinkService = Depends(get_link_service),
) -> JSONResponse:
    result = await service.update_link(actor_id, {"id": parse_link_id(link_id), **data})
    return to_response(result, LinkRead.from_link)


@router.delete(
    "/api/links/{link_id}",
    response_model=ActionResponse,
    summary="Delete a short link",
    description="Permanently deletes a link owned by the authenticated actor"
)
async def delete_link(
    link_id: str,
    actor_id: Optional[str] = Depends(get_current_actor),
    service: LinkService = Depends(get_link_service),
) -> JSONResponse:
    result = await service.delete_link(actor_id, parse_link_id(link_id))
    return to_response(result)


@router.get(
    "/l/{slug}",
    status_code=status.HTTP_307_TEMPORARY_REDIRECT,
    summary="Redirect to destination URL",
    description="Resolves a slug and temporarily redirects to its destination",
    responses={
        404: {"model": RedirectError},
        400: {"model": RedirectError},
        500: {"model": RedirectError},
    },
)
async def redirect_to_destination(
    slug: str,
    session: AsyncSession = Depends(get_session),
):
    """
    Redirect to the destination URL of slug.

    Returns:
        RedirectResponse (HTTP 307) to the destination URL

    Error responses:
        404: If the slug is unknown
        400: If the stored destination fails re-validation
        500: On unexpected failure
    """
    try:
        result = await RedirectService(session).resolve(slug)
    except Exception:
        logger.exception(f"Error in redirect handler for slug '{slug}'")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )

    if not result.success:
        status_code = (
            status.HTTP_404_NOT_FOUND
            if result.kind is ErrorKind.NOT_FOUND
            else status.HTTP_400_BAD_REQUEST
        )
        return JSONResponse(status_code=status_code, content={"error": result.error})

    return RedirectResponse(
        url=result.data,
        status_code=status.HTTP_307_TEMPORARY_REDIRECT
    )
