"""
Redirect Service

This service resolves a public slug to the destination it redirects to.

Design Decisions:
- The stored URL is re-validated against the scheme allow-list on every
  resolution; a record is not trusted just because it was validated on write
- A missing link and an unsafe destination are different outcomes, so the
  HTTP layer can answer 404 and 400 respectively
- No rate limiting and no side effects: resolution is the hot public path
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.core.outcome import ActionResult, ErrorKind
from shortlinks.core.validators import UrlVerdict, check_url_scheme, is_valid_slug
from shortlinks.services.link_repository import LinkRepository

logger = logging.getLogger(__name__)

UNSAFE_DESTINATION_MESSAGES = {
    UrlVerdict.UNSAFE_SCHEME: "Invalid URL protocol",
    UrlVerdict.MALFORMED: "Invalid URL format",
}


class RedirectService:
    """
    Service for handling slug redirections.

    Store errors are not converted here; they propagate to the caller,
    which answers with a generic server error.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the redirect service with a database session.

        Args:
            session: Async database session for database operations
        """
        self.session = session
        self.repository = LinkRepository(session)

    async def resolve(self, slug: str) -> ActionResult[str]:
        """
        Get the destination URL for slug.

        Returns:
            Success with the destination URL, or a failure of kind
            NOT_FOUND or UNSAFE_URL
        """
        # Slugs that could never have been created need no lookup
        if not is_valid_slug(slug):
            return ActionResult.fail(ErrorKind.NOT_FOUND, "Link not found")

        link = await self.repository.get_by_slug(slug)
        if link is None:
            return ActionResult.fail(ErrorKind.NOT_FOUND, "Link not found")

        verdict = check_url_scheme(link.original_url)
        if verdict is not UrlVerdict.SAFE:
            logger.warning(
                f"Refusing to redirect slug '{slug}' (link {link.id}): stored URL is {verdict.value}"
            )
            return ActionResult.fail(ErrorKind.UNSAFE_URL, UNSAFE_DESTINATION_MESSAGES[verdict])

        return ActionResult.ok(link.original_url)
