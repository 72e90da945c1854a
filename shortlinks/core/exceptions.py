"""
Custom Exceptions

This module defines the exceptions raised below the service boundary.
The link service converts them into ActionResult values, so API
consumers never see them directly.

Benefits:
- Repository code can signal store failures without business knowledge
- Unique constraint violations are distinguishable from other store errors
- The original driver error is kept for server-side logging
"""


class ShortLinksException(Exception):
    """Base exception for the short links service."""
    pass


class DatabaseError(ShortLinksException):
    """Raised when database operations fail."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")


class SlugConflictError(DatabaseError):
    """Raised when the store's unique constraint on slug rejects a write."""

    def __init__(self, slug: str, original_error: Exception = None):
        self.slug = slug
        super().__init__(f"slug '{slug}' violates unique constraint", original_error=original_error)
