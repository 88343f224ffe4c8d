from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from jwt.exceptions import InvalidTokenError

from repo_recon.config import settings


class TokenError(Exception):
    """Raised when a user token is malformed, forged or expired."""


def encode_token(payload: dict[str, Any], *, expires_at: datetime | None = None) -> str:
    if expires_at is None:
        expires_at = datetime.now(timezone.utc) + timedelta(hours=settings.jwt_expiration_hours)

    claims = dict(payload)
    claims["exp"] = expires_at
    claims.setdefault("iat", datetime.now(timezone.utc))
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except InvalidTokenError as e:
        # ExpiredSignatureError is a subclass of InvalidTokenError.
        raise TokenError(str(e)) from e
