"""
JWT Service — signs and verifies employee session tokens.

One token kind only (``type: "access"``), HS256, lifetime
``JWT_ACCESS_EXPIRES`` seconds (7 days by default). The token travels in the
``auth-token`` cookie or an ``Authorization: Bearer`` header.

Claims: ``sub`` (employee id), ``email``, ``role``, ``type``, ``iat``,
``exp``, ``jti``.
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app

ALGORITHM = "HS256"
TOKEN_TYPE = "access"
DEFAULT_ACCESS_EXPIRES = 7 * 24 * 3600


def _signing_key() -> str:
    # Falls back to SECRET_KEY so a dev setup needs only one secret.
    return current_app.config.get("JWT_SECRET_KEY") or current_app.config["SECRET_KEY"]


def get_access_expires() -> int:
    return int(current_app.config.get("JWT_ACCESS_EXPIRES", DEFAULT_ACCESS_EXPIRES))


def generate_access_token(employee_id: str, email: str, role: str) -> str:
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": employee_id,
        "email": email,
        "role": role,
        "type": TOKEN_TYPE,
        "iat": issued,
        "exp": issued + timedelta(seconds=get_access_expires()),
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(claims, _signing_key(), algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature, expiry and token type; return the claims.

    Raises:
        jwt.ExpiredSignatureError: token past ``exp``.
        jwt.InvalidTokenError: bad signature, malformed, or not an access token.
    """
    claims = jwt.decode(token, _signing_key(), algorithms=[ALGORITHM])
    if claims.get("type") != TOKEN_TYPE:
        raise jwt.InvalidTokenError(f"Not an access token (type={claims.get('type')!r})")
    return claims
