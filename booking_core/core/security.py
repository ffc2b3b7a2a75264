"""
Bearer tokens for the booking API.

Tokens are HS256 JWTs issued by the site's login flow (outside this
package) and only verified here. Claims:

    sub   user id as a string (clients book under this id)
    role  "client" or "admin"
    type  always "access"
    iss   TOKEN_ISSUER
    exp   expiry, 24 hours after issue by default
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

ROLE_CLIENT = "client"
ROLE_ADMIN = "admin"
ROLES = (ROLE_CLIENT, ROLE_ADMIN)

JWT_ALGORITHM = "HS256"
JWT_EXPIRATION_HOURS = 24
TOKEN_ISSUER = "booking-core"

_DEV_SECRET = "dev-jwt-secret-change-me"
_KNOWN_WEAK_SECRETS = {_DEV_SECRET, "dev-secret-change-me", "secret123"}
_MIN_PRODUCTION_SECRET_LENGTH = 32


def get_jwt_secret_key() -> str:
    """Signing key from JWT_SECRET_KEY.

    Raises:
        ValueError: FLASK_ENV is production and the key is a known default
            or shorter than 32 characters
    """
    secret = os.getenv("JWT_SECRET_KEY", _DEV_SECRET)
    if os.getenv("FLASK_ENV") == "production" and (
        secret in _KNOWN_WEAK_SECRETS or len(secret) < _MIN_PRODUCTION_SECRET_LENGTH
    ):
        raise ValueError(
            "JWT_SECRET_KEY must be set to a random value of at least "
            f"{_MIN_PRODUCTION_SECRET_LENGTH} characters in production"
        )
    return secret


def create_access_token(
    claims: Dict[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    """Sign ``claims`` adding ``iss`` and ``exp``."""
    payload = dict(claims)
    payload["iss"] = TOKEN_ISSUER
    payload["exp"] = datetime.now(timezone.utc) + (
        expires_delta or timedelta(hours=JWT_EXPIRATION_HOURS)
    )
    return jwt.encode(payload, get_jwt_secret_key(), algorithm=JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Verified claims, or None for a bad signature, issuer or expiry."""
    try:
        return jwt.decode(
            token,
            get_jwt_secret_key(),
            algorithms=[JWT_ALGORITHM],
            issuer=TOKEN_ISSUER,
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError:
        return None


def create_user_token(user_id: int, role: str = ROLE_CLIENT) -> str:
    if role not in ROLES:
        raise ValueError(f"Unknown role '{role}'")
    return create_access_token({"sub": str(user_id), "role": role, "type": "access"})


def get_user_from_token(token: str) -> Optional[Dict[str, Any]]:
    """``{"user_id": int, "role": str}`` for a valid access token, else None."""
    claims = decode_access_token(token)
    if claims is None or claims.get("type", "access") != "access":
        return None

    try:
        user_id = int(claims["sub"])
    except (TypeError, ValueError):
        return None

    role = claims.get("role", ROLE_CLIENT)
    if role not in ROLES:
        return None
    return {"user_id": user_id, "role": role}
