"""
Link Repository

Plain data-access operations on the links table, keyed by numeric id or
unique slug. No business rules live here: authorization, validation and
rate limiting are the link service's job.

Store failures are raised as DatabaseError; a write rejected by the unique
index on slug is raised as SlugConflictError so callers can tell a lost
check-then-act race apart from other failures.
"""

from typing import Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shortlinks.core.exceptions import DatabaseError, SlugConflictError
from shortlinks.db.models import Link, utc_now

# SQLite reports the column, PostgreSQL the index name
SLUG_CONSTRAINT_MARKERS = ("links.slug", "ix_links_slug")


def _is_slug_conflict(error: IntegrityError) -> bool:
    """True if error is a violation of the unique slug index."""
    message = str(error.orig)
    return any(marker in message for marker in SLUG_CONSTRAINT_MARKERS)


class LinkRepository:
    """CRUD operations for Link rows."""

    def __init__(self, session: AsyncSession):
        """
        Args:
            session: Async database session for database operations
        """
        self.session = session

    async def create(self, owner_id: str, slug: str, url: str) -> Link:
        """
        Insert a new link.

        Raises:
            SlugConflictError: If another link already holds slug
            DatabaseError: If the insert fails for any other reason
        """
        link = Link(owner_id=owner_id, slug=slug, original_url=url)
        self.session.add(link)
        await self._commit(slug, "create link")
        await self.session.refresh(link)
        return link

    async def get_by_slug(self, slug: str) -> Optional[Link]:
        statement = select(Link).where(Link.slug == slug).limit(1)
        return await self._scalar(statement, "look up link by slug")

    async def get_by_id(self, link_id: int) -> Optional[Link]:
        statement = select(Link).where(Link.id == link_id).limit(1)
        return await self._scalar(statement, "look up link by id")

    async def update(self, link_id: int, slug: str, url: str) -> Optional[Link]:
        """
        Replace slug and URL of a link and refresh updated_at.

        Returns:
            The updated Link, or None if no link has link_id

        Raises:
            SlugConflictError: If another link already holds slug
            DatabaseError: If the update fails for any other reason
        """
        link = await self.get_by_id(link_id)
        if link is None:
            return None

        link.slug = slug
        link.original_url = url
        link.updated_at = utc_now()
        self.session.add(link)
        await self._commit(slug, "update link")
        await self.session.refresh(link)
        return link

    async def delete(self, link_id: int) -> None:
        """Permanently remove a link. Deleting a missing id is a no-op."""
        try:
            await self.session.execute(delete(Link).where(Link.id == link_id))
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise DatabaseError(f"Failed to delete link {link_id}", original_error=e)

    async def list_by_owner(self, owner_id: str) -> Sequence[Link]:
        """All links of owner_id, newest first."""
        statement = (
            select(Link)
            .where(Link.owner_id == owner_id)
            .order_by(Link.created_at.desc(), Link.id.desc())
        )
        try:
            result = await self.session.execute(statement)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to list links of {owner_id}", original_error=e)

    async def _scalar(self, statement, action: str) -> Optional[Link]:
        try:
            result = await self.session.execute(statement)
            return result.scalars().first()
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to {action}", original_error=e)

    async def _commit(self, slug: str, action: str) -> None:
        try:
            await self.session.flush()
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if _is_slug_conflict(e):
                raise SlugConflictError(slug, original_error=e)
            raise DatabaseError(f"Failed to {action}", original_error=e)
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise DatabaseError(f"Failed to {action}", original_error=e)
