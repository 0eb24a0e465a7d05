"""Verification of identity provider access tokens."""

from jose import jwt

from app.config import settings


def decode_token(token: str) -> dict:
    """Decode and verify an access token issued by the identity provider.

    Checks the signature, expiry, audience and issuer claims.

    Args:
        token: Encoded JWT string.

    Returns:
        Decoded payload dictionary.

    Raises:
        jose.JWTError: If the token is invalid, expired, or malformed.
    """
    return jwt.decode(
        token,
        settings.identity_jwt_secret,
        algorithms=[settings.identity_jwt_algorithm],
        audience=settings.identity_jwt_audience,
        issuer=settings.identity_issuer,
    )
