"""
Input Validators

This module implements the validation policy for links:
- Shape validation: ordered rules over the submitted fields, reporting
  the message of the first rule that fails
- Scheme allow-list: only http and https destinations are accepted

Security Considerations:
- The scheme check runs on create, on update and again on every redirect,
  since a stored URL may have bypassed the write path
- Slug character set prevents path traversal in /l/{slug}
- Length limits prevent DoS attacks
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Sequence
from urllib.parse import SplitResult, urlsplit

from shortlinks.core.setting import settings

SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 50
SLUG_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

ALLOWED_SCHEMES = frozenset({"http", "https"})

# Schemes whose URLs are meaningless without a host
HIERARCHICAL_SCHEMES = frozenset({"http", "https", "ftp", "ws", "wss", "file"})

_SCHEME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*$")
_WHITESPACE_OR_CONTROL = re.compile(r"[\s\x00-\x1f\x7f]")


class UrlVerdict(Enum):
    SAFE = "safe"
    UNSAFE_SCHEME = "unsafe_scheme"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class Rule:
    """A named predicate over one input field."""
    field: str
    message: str
    check: Callable[[Any], bool]


def parse_absolute_url(url: Any) -> Optional[SplitResult]:
    """
    Parse url as an absolute URL.

    Stricter than browser URL parsers: whitespace is never trimmed or
    encoded, and hierarchical schemes need an authority, so
    "http:example.com" is rejected.

    Returns:
        The split URL if it has a valid scheme (and a host, for
        hierarchical schemes), None otherwise
    """
    if not isinstance(url, str) or not url:
        return None

    if _WHITESPACE_OR_CONTROL.search(url):
        return None

    try:
        result = urlsplit(url)
        # Accessing hostname/port validates bracketed hosts and port numbers
        hostname = result.hostname
        result.port
    except ValueError:
        return None

    if not result.scheme or not _SCHEME_PATTERN.match(result.scheme):
        return None

    if result.scheme.lower() in HIERARCHICAL_SCHEMES:
        if not hostname:
            return None
    elif not (result.netloc or result.path):
        return None

    return result


def check_url_scheme(url: Any) -> UrlVerdict:
    """
    Check that url is an absolute http(s) URL.

    Args:
        url: The URL to check (submitted or stored)

    Returns:
        UrlVerdict.SAFE, UNSAFE_SCHEME, or MALFORMED if it does not parse
    """
    parsed = parse_absolute_url(url)
    if parsed is None:
        return UrlVerdict.MALFORMED
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return UrlVerdict.UNSAFE_SCHEME
    return UrlVerdict.SAFE


def is_valid_slug(slug: Any) -> bool:
    """True if slug has the shape of a link slug."""
    return (
        isinstance(slug, str)
        and SLUG_MIN_LENGTH <= len(slug) <= SLUG_MAX_LENGTH
        and SLUG_PATTERN.match(slug) is not None
    )


def validate_url_length(url: str, max_length: Optional[int] = None) -> bool:
    """
    Validate URL length to prevent DoS attacks.

    Args:
        url: The URL to validate
        max_length: Maximum allowed length (default: settings.MAX_URL_LENGTH)

    Returns:
        True if URL length is valid, False otherwise
    """
    limit = max_length if max_length is not None else settings.MAX_URL_LENGTH
    return len(url) <= limit


URL_RULES = (
    Rule("url", "Please enter a valid URL", lambda v: isinstance(v, str)),
    Rule(
        "url",
        f"URL must be at most {settings.MAX_URL_LENGTH} characters",
        validate_url_length,
    ),
    Rule("url", "Please enter a valid URL", lambda v: parse_absolute_url(v) is not None),
)

SLUG_RULES = (
    Rule("slug", "Slug is required", lambda v: isinstance(v, str)),
    Rule(
        "slug",
        f"Slug must be at least {SLUG_MIN_LENGTH} characters",
        lambda v: len(v) >= SLUG_MIN_LENGTH,
    ),
    Rule(
        "slug",
        f"Slug must be less than {SLUG_MAX_LENGTH} characters",
        lambda v: len(v) <= SLUG_MAX_LENGTH,
    ),
    Rule(
        "slug",
        "Slug can only contain letters, numbers, hyphens, and underscores",
        lambda v: SLUG_PATTERN.match(v) is not None,
    ),
)

LINK_ID_RULES = (
    Rule(
        "id",
        "Link id must be a number",
        lambda v: isinstance(v, int) and not isinstance(v, bool),
    ),
)

CREATE_LINK_RULES = URL_RULES + SLUG_RULES
UPDATE_LINK_RULES = LINK_ID_RULES + URL_RULES + SLUG_RULES


def first_violation(rules: Sequence[Rule], values: Mapping[str, Any]) -> Optional[str]:
    """
    Evaluate rules in order and return the first failing rule's message.

    Evaluation stops at the first failure, so a rule may assume the
    earlier rules for its field (e.g. the type check) held.

    Returns:
        The message of the first violated rule, or None if all pass
    """
    for rule in rules:
        if not rule.check(values.get(rule.field)):
            return rule.message
    return None
