"""Password hashing and the bearer tokens handed to clients.

Tokens are HS256 JWTs. A valid signature is not enough to authenticate:
the session table must also hold the token's signature segment, which is
how logout revokes a token before it expires.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt
from passlib.context import CryptContext

from pizza_service.models import User


_pwd = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
_JWT_ALG = "HS256"


def hash_password(password: str) -> str:
    if not password:
        raise ValueError("password_blank")
    return _pwd.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    if not (password and password_hash):
        return False
    try:
        return _pwd.verify(password, password_hash)
    except (ValueError, TypeError):
        # stored value is not a hash passlib recognizes
        return False


def get_token_signature(token: str) -> str:
    parts = (token or "").split(".")
    return parts[2] if len(parts) > 2 else ""


def create_access_token(*, secret: str, user: User, expires_minutes: int) -> str:
    if not secret:
        raise ValueError("jwt_secret_blank")

    issued = datetime.now(timezone.utc)
    claims: Dict[str, Any] = {
        "sub": str(user.id),
        "name": user.name,
        "email": user.email,
        "roles": [r.to_dict() for r in user.roles],
        # two logins in the same second must still get distinct signatures
        "jti": uuid.uuid4().hex,
        "iat": issued,
        "exp": issued + timedelta(minutes=max(1, int(expires_minutes))),
    }
    return jwt.encode(claims, secret, algorithm=_JWT_ALG)


def decode_access_token(*, token: str, secret: str) -> Dict[str, Any]:
    """Verify signature and expiry; raises jwt.InvalidTokenError subclasses on failure."""
    if not (token and secret):
        raise ValueError("token_or_secret_blank")
    return jwt.decode(token, secret, algorithms=[_JWT_ALG])
