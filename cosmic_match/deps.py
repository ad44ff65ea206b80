"""Request authentication: bearer JWTs issued by the auth provider."""

from __future__ import annotations

import logging
from typing import Any, Dict

import jwt
from fastapi import Header, HTTPException, status

from .config import get_settings

LOGGER = logging.getLogger("uvicorn.error")


class AuthError(Exception):
    """Raised when a token cannot be verified."""


def decode_token(token: str) -> Dict[str, Any]:
    settings = get_settings()
    if not settings.jwt_secret:
        raise AuthError("JWT_SECRET is not configured")
    options: Dict[str, Any] = {"require": ["sub"]}
    kwargs: Dict[str, Any] = {}
    if settings.jwt_audience:
        kwargs["audience"] = settings.jwt_audience
    else:
        options["verify_aud"] = False
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=["HS256"], options=options, **kwargs)
    except jwt.ExpiredSignatureError as exc:
        raise AuthError("Expired token") from exc
    except jwt.InvalidSignatureError as exc:
        raise AuthError("Invalid signature") from exc
    except jwt.DecodeError as exc:
        raise AuthError("Malformed token") from exc
    except jwt.PyJWTError as exc:
        raise AuthError("Invalid token") from exc


def user_id_from_token(token: str) -> str:
    if not token:
        raise AuthError("Missing token")
    user_id = str(decode_token(token).get("sub") or "").strip()
    if not user_id:
        raise AuthError("Invalid token payload")
    return user_id


def _extract_token(authorization: str) -> str:
    if not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing bearer token")
    token = authorization.split(" ", 1)[1].strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing bearer token")
    return token


async def get_current_user_id(authorization: str = Header(default="")) -> str:
    if not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="authorization required")
    try:
        return user_id_from_token(_extract_token(authorization))
    except AuthError as exc:
        LOGGER.warning("Rejected request token: %s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid token") from exc


__all__ = ["AuthError", "decode_token", "get_current_user_id", "user_id_from_token"]
