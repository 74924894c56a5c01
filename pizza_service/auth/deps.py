from __future__ import annotations

from typing import Any, Optional

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from pizza_service.models import User

from .security import decode_access_token


_bearer = HTTPBearer(auto_error=False)


def _unauthorized() -> HTTPException:
    return HTTPException(status_code=401, detail="unauthorized", headers={"WWW-Authenticate": "Bearer"})


def _state(request: Request, name: str) -> Any:
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=500, detail=f"server_{name}_missing")
    return value


def get_token(credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> Optional[str]:
    if credentials is None or not credentials.credentials:
        return None
    return credentials.credentials


def get_optional_user(request: Request, token: Optional[str] = Depends(get_token)) -> Optional[User]:
    """Resolve the bearer token to a user, or None.

    A token only authenticates while its session row exists (i.e. until logout)
    and while its JWT signature and expiry are valid.
    """
    if not token:
        return None

    cfg = _state(request, "cfg")
    db = _state(request, "db")

    if not db.is_logged_in(token):
        return None

    try:
        payload = decode_access_token(token=token, secret=cfg.AUTH_JWT_SECRET)
    except (jwt.InvalidTokenError, ValueError):
        return None

    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None

    return db.get_user_by_id(user_id)


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise _unauthorized()
    return user
