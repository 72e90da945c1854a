"""
Database Models for the Short Links Service

This module defines the SQLModel schema for Link, the only entity:
a slug owned by one actor that redirects to a destination URL.

Design Decisions:
- Unique index on slug: the store, not the service, is the final
  authority on slug uniqueness
- Index on owner_id for the dashboard listing
- Index on created_at for newest-first ordering
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlmodel import Column, Field, SQLModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Link(SQLModel, table=True):
    """
    Short link owned by an actor.

    Fields:
    - id: Auto-incrementing primary key
    - owner_id: Opaque id of the actor that created the link (immutable)
    - slug: Unique short path segment (3-50 chars of [A-Za-z0-9_-])
    - original_url: Destination URL (http/https only)
    - created_at: Creation timestamp (immutable)
    - updated_at: Refreshed on every successful mutation
    """
    __tablename__ = "links"

    id: Optional[int] = Field(default=None, primary_key=True)
    owner_id: str = Field(
        sa_column=Column(String(255), nullable=False, index=True)
    )
    slug: str = Field(
        sa_column=Column(String(50), nullable=False, unique=True, index=True),
        max_length=50
    )
    original_url: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
