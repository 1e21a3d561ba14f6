"""Authentication module."""
from .jwt import create_access_token, verify_token, get_current_user
from .passwords import hash_password, verify_password

__all__ = [
    "create_access_token",
    "verify_token",
    "get_current_user",
    "hash_password",
    "verify_password",
]
