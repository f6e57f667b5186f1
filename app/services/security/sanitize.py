"""
Input Sanitization

Basic XSS stripping for request bodies and query strings. Plain strings lose
angle brackets, script protocols and inline event handlers; rich text fields
are cleaned with bleach against an allow-list of formatting tags.
"""

import re
from typing import Any

import bleach

RICH_TEXT_TAGS = [
    "p", "br", "strong", "b", "em", "i", "u", "ul", "ol", "li",
    "h2", "h3", "h4", "blockquote", "a", "table", "thead", "tbody", "tr", "th", "td",
]
RICH_TEXT_ATTRIBUTES = {"a": ["href", "title", "rel", "target"]}
RICH_TEXT_PROTOCOLS = ["http", "https", "mailto", "tel"]

_ANGLE_BRACKETS = re.compile(r"[<>]")
_SCRIPT_PROTOCOLS = re.compile(r"(javascript|vbscript|data):", re.IGNORECASE)
_EVENT_HANDLERS = re.compile(r"on\w+\s*=", re.IGNORECASE)


def sanitize_string(value: Any) -> Any:
    """Strip markup-ish content from a plain string. Non-strings pass through."""
    if not isinstance(value, str):
        return value
    value = value.strip()
    value = _ANGLE_BRACKETS.sub("", value)
    value = _SCRIPT_PROTOCOLS.sub("", value)
    value = _EVENT_HANDLERS.sub("", value)
    return value


def sanitize_html(value: Any) -> Any:
    """Clean rich text down to safe formatting tags. Non-strings pass through."""
    if not isinstance(value, str):
        return value
    cleaned = bleach.clean(
        value,
        tags=RICH_TEXT_TAGS,
        attributes=RICH_TEXT_ATTRIBUTES,
        protocols=RICH_TEXT_PROTOCOLS,
        strip=True,
    )
    return cleaned.strip()


def is_exempt_field(name: str) -> bool:
    """Passwords are never altered."""
    return "password" in name.lower()
