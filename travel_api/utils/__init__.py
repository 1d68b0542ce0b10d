"""
Utility functions package.
"""
from travel_api.utils.security import (
    hash_password,
    verify_password,
    TokenIssuer,
)

__all__ = [
    "hash_password",
    "verify_password",
    "TokenIssuer",
]
