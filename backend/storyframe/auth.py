from __future__ import annotations
"""Bearer credential extraction and verification.

The caller identity is the ``sub`` claim of an HS/RS-signed JWT passed either
in ``X-Client-Auth`` (takes precedence, for clients behind a gateway that owns
``Authorization``) or as ``Authorization: Bearer <token>``.
"""

import logging
from typing import Any

import jwt
from fastapi import Depends, Header

from storyframe.config import Settings, get_settings
from storyframe.errors import AuthenticationError

logger = logging.getLogger(__name__)

_NON_USER_ROLES = {"anon", "service_role"}


def extract_bearer_token(value: str | None) -> str | None:
    """Pull the raw token out of a header value.

    Accepts ``Bearer <token>`` in any case, or a bare JWT (``ey...``).
    """
    if not value:
        return None
    value = value.strip()
    scheme, _, rest = value.partition(" ")
    if scheme.lower() == "bearer" and rest.strip():
        return rest.strip()
    if value.startswith("ey") and " " not in value:
        return value
    return None


def mask_token(token: str) -> str:
    if len(token) <= 12:
        return "***"
    return f"{token[:6]}...{token[-4:]}"


def verify_token(token: str, settings: Settings) -> dict[str, Any]:
    """Decode and validate a user token, returning its claims.

    Raises AuthenticationError with a human-readable reason.
    """
    if not settings.AUTH_JWT_SECRET:
        logger.error("AUTH_JWT_SECRET is not configured; rejecting all requests")
        raise AuthenticationError("Authentication is not configured")

    options = {"require": ["exp", "sub"], "verify_aud": bool(settings.AUTH_JWT_AUDIENCE)}
    try:
        claims = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            issuer=settings.AUTH_JWT_ISSUER or None,
            audience=settings.AUTH_JWT_AUDIENCE or None,
            options=options,
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidIssuerError:
        raise AuthenticationError("Token issuer mismatch")
    except jwt.InvalidAudienceError:
        raise AuthenticationError("Token audience mismatch")
    except jwt.MissingRequiredClaimError as e:
        raise AuthenticationError(f"Token missing claim: {e.claim}")
    except jwt.InvalidTokenError as e:
        logger.info("Rejected token %s: %s", mask_token(token), e)
        raise AuthenticationError("Invalid token")

    if claims.get("role") in _NON_USER_ROLES or not str(claims.get("sub") or "").strip():
        raise AuthenticationError("Anonymous tokens are not allowed")
    return claims


async def get_current_user_id(
    authorization: str | None = Header(None),
    x_client_auth: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> str:
    """FastAPI dependency resolving the authenticated owner id."""
    token = extract_bearer_token(x_client_auth) or extract_bearer_token(authorization)
    if not token:
        raise AuthenticationError("Missing bearer token")
    claims = verify_token(token, settings)
    return str(claims["sub"])
