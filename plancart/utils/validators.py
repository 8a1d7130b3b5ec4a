"""Identifier and contact validation helpers."""
import re
import uuid

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")

# Opaque shopper session token issued by the storefront (uuid4 hex or dashed)
SESSION_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{16,64}$")


def is_catalog_id(value) -> bool:
    """
    Check that a value is a syntactically valid catalog identifier.

    Catalog rows are keyed by UUID in canonical form (lowercase, dashed).
    Anything else (legacy slugs, tampered snapshots, braced, urn or
    uppercase spellings) must never reach the catalog query.
    """
    if not isinstance(value, str) or not value:
        return False
    try:
        parsed = uuid.UUID(value)
    except ValueError:
        return False
    return str(parsed) == value


def is_valid_email(value: str | None) -> bool:
    """Loose e-mail check, same rule the checkout form applies."""
    if not value:
        return False
    return bool(EMAIL_PATTERN.match(value.strip()))


def is_session_token(value: str | None) -> bool:
    """Validate the X-Cart-Session header value."""
    if not value:
        return False
    return bool(SESSION_TOKEN_PATTERN.match(value))
