# Utilities Module
from .validators import is_catalog_id, is_session_token, is_valid_email

__all__ = [
    "is_catalog_id",
    "is_session_token",
    "is_valid_email",
]
