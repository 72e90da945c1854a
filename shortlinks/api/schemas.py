"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Separated from endpoints to keep concerns separated and enable reuse.

Design Principles:
- LinkInput documents the request body; endpoints read it without type
  checks so the link service applies authentication and the ordered
  validation rules first
- Response models define output structure
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from shortlinks.core.setting import settings
from shortlinks.db.models import Link


class LinkInput(BaseModel):
    """Request body for creating or updating a link."""
    url: Optional[str] = Field(None, description="Destination URL (http or https)")
    slug: Optional[str] = Field(None, description="Short path segment, 3-50 chars of [A-Za-z0-9_-]")


class LinkRead(BaseModel):
    """Serialized link as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    slug: str
    original_url: str
    short_url: str = Field(..., description="The complete short URL")
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_link(cls, link: Link) -> "LinkRead":
        return cls(
            id=link.id,
            owner_id=link.owner_id,
            slug=link.slug,
            original_url=link.original_url,
            short_url=f"{settings.BASE_URL}/l/{link.slug}",
            created_at=link.created_at,
            updated_at=link.updated_at,
        )


class ActionResponse(BaseModel):
    """Envelope shared by all link operations."""
    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None


class RedirectError(BaseModel):
    """Error body of the public redirect endpoint."""
    error: str
