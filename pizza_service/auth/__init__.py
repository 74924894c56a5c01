"""Authentication / authorization helpers.

- Password hashes via passlib (pbkdf2_sha256)
- JWT access tokens, sent as `Authorization: Bearer <token>`
- Server-side sessions: a token is valid only while the `auth` table holds
  its signature segment, so logout revokes it immediately
- `policy` decides who may do what and issues the grants the data layer checks
"""

from .deps import get_current_user, get_optional_user, get_token
from .security import create_access_token, get_token_signature, hash_password, verify_password

__all__ = [
    "get_current_user",
    "get_optional_user",
    "get_token",
    "create_access_token",
    "get_token_signature",
    "hash_password",
    "verify_password",
]
