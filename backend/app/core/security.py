"""Bearer token signing and verification (HS256 JWT)."""

import time

from jose import JWTError, jwt

from app.core.config import settings


def decode_access_token(token: str) -> dict:
    """Verify an access token and return its claims.

    Raises ``JWTError`` when the signature, expiry or token type is wrong.
    """
    claims = jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.JWT_ALGORITHM],
        options={"verify_aud": False},
    )
    if claims.get("token_use") != "access":
        raise JWTError("Not an access token")
    return claims


def create_access_token(
    sub: str,
    email: str | None = None,
    expires_in: int | None = None,
) -> str:
    """Issue an access token for ``sub``. Used by local tooling and tests."""
    now = int(time.time())
    payload = {
        "sub": sub,
        "email": email,
        "token_use": "access",
        "iat": now,
        "exp": now + (expires_in or settings.ACCESS_TOKEN_EXPIRE_SECONDS),
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
