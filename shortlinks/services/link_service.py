"""
Link Service

This service owns the link lifecycle: creating, updating, deleting and
listing an actor's links.

Every mutation passes the same ordered gates and stops at the first
failure:
1. Authenticate the actor
2. Apply the actor's per-operation rate limit
3. Validate input shape (first violated rule wins)
4. Check the destination scheme against the allow-list
5. Verify the link exists and belongs to the actor (update/delete)
6. Check slug uniqueness (create, or update with a new slug)
7. Persist
8. Invalidate the actor's cached listing

Design Decisions:
- Results are ActionResult values; no exception reaches the caller
- Step 6 is a pre-check only: the unique index on slug decides races, and
  a lost race is reported as a taken slug rather than overwriting
- Store failures are logged with full detail and reported generically
"""

import logging
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.core.exceptions import SlugConflictError
from shortlinks.core.outcome import ActionResult, ErrorKind
from shortlinks.core.rate_limit import (
    OperationLimit,
    RateLimiter,
    default_mutation_limits,
    rate_limit_key,
)
from shortlinks.core.validators import (
    CREATE_LINK_RULES,
    LINK_ID_RULES,
    UPDATE_LINK_RULES,
    UrlVerdict,
    check_url_scheme,
    first_violation,
)
from shortlinks.db.models import Link
from shortlinks.services.link_repository import LinkRepository
from shortlinks.services.listing_cache import LinkListingCache

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = "Too many requests. Please wait a moment and try again."
NOT_FOUND_MESSAGE = "Link not found"
SLUG_TAKEN_MESSAGE = "This slug is already taken"

SCHEME_MESSAGES = {
    UrlVerdict.UNSAFE_SCHEME: "Only HTTP and HTTPS URLs are allowed",
    UrlVerdict.MALFORMED: "Invalid URL format",
}


class LinkService:
    """
    Mutation core for links.

    Handles authentication, rate limiting, validation, ownership and
    persistence for each operation. Separated from the API layer so any
    caller gets the same guarantees.
    """

    def __init__(
        self,
        session: AsyncSession,
        rate_limiter: RateLimiter,
        listing_cache: Optional[LinkListingCache] = None,
        limits: Optional[Mapping[str, OperationLimit]] = None,
    ):
        """
        Initialize the link service.

        Args:
            session: Database session
            rate_limiter: Limiter shared by all requests of this process
            listing_cache: Cache of actor listings to invalidate on change
            limits: Per-operation limits (default: from settings)
        """
        self.session = session
        self.repository = LinkRepository(session)
        self.rate_limiter = rate_limiter
        self.listing_cache = listing_cache
        self.limits = dict(limits) if limits is not None else default_mutation_limits()

    async def create_link(self, actor_id: Optional[str], data: Mapping[str, Any]) -> ActionResult[Link]:
        """
        Create a link owned by actor_id.

        Args:
            actor_id: Authenticated actor, or None
            data: Submitted fields "url" and "slug"
        """
        denied = self._check_actor(actor_id, "create")
        if denied:
            return denied

        invalid = self._check_input(CREATE_LINK_RULES, data)
        if invalid:
            return invalid

        url, slug = data["url"], data["slug"]

        try:
            if await self.repository.get_by_slug(slug) is not None:
                return ActionResult.fail(ErrorKind.SLUG_TAKEN, SLUG_TAKEN_MESSAGE)

            link = await self.repository.create(owner_id=actor_id, slug=slug, url=url)
        except SlugConflictError:
            logger.info(f"Slug '{slug}' was taken concurrently during create")
            return ActionResult.fail(ErrorKind.SLUG_TAKEN, SLUG_TAKEN_MESSAGE)
        except Exception:
            logger.exception("Error creating link")
            return self._persistence_error("create")

        self._invalidate(actor_id)
        logger.info(f"Link {link.id} created with slug '{slug}'")
        return ActionResult.ok(link)

    async def update_link(self, actor_id: Optional[str], data: Mapping[str, Any]) -> ActionResult[Link]:
        """
        Change slug and destination of one of actor_id's links.

        Args:
            actor_id: Authenticated actor, or None
            data: Submitted fields "id", "url" and "slug"
        """
        denied = self._check_actor(actor_id, "update")
        if denied:
            return denied

        invalid = self._check_input(UPDATE_LINK_RULES, data)
        if invalid:
            return invalid

        link_id, url, slug = data["id"], data["url"], data["slug"]

        try:
            existing = await self.repository.get_by_id(link_id)
            refused = self._check_ownership(existing, actor_id, "update")
            if refused:
                return refused

            if existing.slug != slug:
                holder = await self.repository.get_by_slug(slug)
                if holder is not None and holder.id != link_id:
                    return ActionResult.fail(ErrorKind.SLUG_TAKEN, SLUG_TAKEN_MESSAGE)

            link = await self.repository.update(link_id, slug=slug, url=url)
        except SlugConflictError:
            logger.info(f"Slug '{slug}' was taken concurrently during update of link {link_id}")
            return ActionResult.fail(ErrorKind.SLUG_TAKEN, SLUG_TAKEN_MESSAGE)
        except Exception:
            logger.exception(f"Error updating link {link_id}")
            return self._persistence_error("update")

        if link is None:
            # Deleted between the ownership check and the write
            return ActionResult.fail(ErrorKind.NOT_FOUND, NOT_FOUND_MESSAGE)

        self._invalidate(actor_id)
        logger.info(f"Link {link_id} updated")
        return ActionResult.ok(link)

    async def delete_link(self, actor_id: Optional[str], link_id: Any) -> ActionResult[None]:
        """
        Permanently delete one of actor_id's links.

        Args:
            actor_id: Authenticated actor, or None
            link_id: Id of the link to delete
        """
        denied = self._check_actor(actor_id, "delete")
        if denied:
            return denied

        invalid = self._check_input(LINK_ID_RULES, {"id": link_id}, check_scheme=False)
        if invalid:
            return invalid

        try:
            existing = await self.repository.get_by_id(link_id)
            refused = self._check_ownership(existing, actor_id, "delete")
            if refused:
                return refused

            await self.repository.delete(link_id)
        except Exception:
            logger.exception(f"Error deleting link {link_id}")
            return self._persistence_error("delete")

        self._invalidate(actor_id)
        logger.info(f"Link {link_id} deleted")
        return ActionResult.ok(None)

    async def list_links(self, actor_id: Optional[str]) -> ActionResult[Sequence[Link]]:
        """
        All links of actor_id, newest first.

        Served from the listing cache when the actor has not changed
        anything since the last listing.
        """
        if not actor_id:
            return ActionResult.fail(
                ErrorKind.UNAUTHENTICATED, "You must be logged in to view links"
            )

        token = 0
        if self.listing_cache is not None:
            cached = self.listing_cache.get(actor_id)
            if cached is not None:
                return ActionResult.ok(cached)
            token = self.listing_cache.begin_read(actor_id)

        try:
            links = await self.repository.list_by_owner(actor_id)
        except Exception:
            logger.exception("Error listing links")
            return ActionResult.fail(
                ErrorKind.PERSISTENCE_ERROR, "Failed to load links. Please try again."
            )

        if self.listing_cache is not None:
            self.listing_cache.set(actor_id, links, token)
        return ActionResult.ok(links)

    def _check_actor(self, actor_id: Optional[str], operation: str) -> Optional[ActionResult]:
        """Authentication and rate limit gates."""
        if not actor_id:
            return ActionResult.fail(
                ErrorKind.UNAUTHENTICATED, f"You must be logged in to {operation} links"
            )

        limit = self.limits[operation]
        key = rate_limit_key(operation, actor_id)
        if not self.rate_limiter.allow(key, limit.max_requests, limit.window_ms):
            logger.warning(f"Rate limit exceeded for {key}")
            return ActionResult.fail(ErrorKind.RATE_LIMITED, RATE_LIMITED_MESSAGE)

        return None

    def _check_input(
        self, rules, data: Mapping[str, Any], check_scheme: bool = True
    ) -> Optional[ActionResult]:
        """Shape validation and scheme allow-list gates."""
        if not isinstance(data, Mapping):
            data = {}

        message = first_violation(rules, data)
        if message:
            return ActionResult.fail(ErrorKind.INVALID_INPUT, message)

        if check_scheme:
            verdict = check_url_scheme(data["url"])
            if verdict is not UrlVerdict.SAFE:
                return ActionResult.fail(ErrorKind.UNSAFE_URL, SCHEME_MESSAGES[verdict])

        return None

    def _check_ownership(
        self, link: Optional[Link], actor_id: str, operation: str
    ) -> Optional[ActionResult]:
        if link is None:
            return ActionResult.fail(ErrorKind.NOT_FOUND, NOT_FOUND_MESSAGE)

        if link.owner_id != actor_id:
            logger.warning(f"Actor {actor_id} attempted to {operation} link {link.id} they do not own")
            return ActionResult.fail(
                ErrorKind.FORBIDDEN, f"You don't have permission to {operation} this link"
            )

        return None

    def _invalidate(self, actor_id: str) -> None:
        if self.listing_cache is not None:
            self.listing_cache.invalidate(actor_id)

    @staticmethod
    def _persistence_error(operation: str) -> ActionResult:
        return ActionResult.fail(
            ErrorKind.PERSISTENCE_ERROR, f"Failed to {operation} link. Please try again."
        )
