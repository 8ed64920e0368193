"""Shared FastAPI dependencies."""

import logging

import jwt
from fastapi import Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from subdomain_registry.config import settings
from subdomain_registry.schemas.common import raise_api_error
from subdomain_registry.schemas.identity import Actor
from subdomain_registry.utils.rate_limiter import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def decode_identity_token(token: str) -> Actor:
    """
    Verify an Identity Provider bearer token and extract the caller.

    Args:
        token: Encoded JWT

    Returns:
        Actor built from the sub, email and admin claims

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or has no subject
    """
    options = {"require": ["sub"]}
    payload = jwt.decode(
        token,
        settings.AUTH_JWT_SECRET,
        algorithms=[settings.AUTH_JWT_ALGORITHM],
        audience=settings.AUTH_JWT_AUDIENCE,
        options=options if settings.AUTH_JWT_AUDIENCE else {**options, "verify_aud": False},
    )
    subject = str(payload["sub"]).strip()
    if not subject:
        raise jwt.InvalidTokenError("Token has an empty subject")

    return Actor(
        id=subject,
        email=payload.get("email"),
        is_admin=payload.get(settings.AUTH_ADMIN_CLAIM) is True,
    )


def get_current_actor(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Actor:
    """Verify the bearer token and return the caller identity."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise_api_error(
            code="UNAUTHORIZED",
            message="Unauthorized: No token provided",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    try:
        actor = decode_identity_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        logger.warning("Bearer token expired")
        raise_api_error(
            code="UNAUTHORIZED",
            message="Unauthorized: Token expired",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    except jwt.InvalidTokenError as e:
        logger.warning(f"Token verification failed: {e}")
        raise_api_error(
            code="UNAUTHORIZED",
            message="Unauthorized: Invalid token",
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    request.state.actor = actor
    return actor


def get_rate_limiter(request: Request) -> SlidingWindowRateLimiter:
    """Return the application's create rate limiter."""
    return request.app.state.rate_limiter


async def enforce_create_rate_limit(
    actor: Actor = Depends(get_current_actor),
    limiter: SlidingWindowRateLimiter = Depends(get_rate_limiter),
) -> Actor:
    """Count a create request against the caller's window, rejecting with 429 when exhausted."""
    key = f"user:{actor.id}"
    result = await limiter.hit(key)
    if not result.allowed:
        logger.warning(f"Rate limit exceeded for {key}")
        raise_api_error(
            code="RATE_LIMIT_EXCEEDED",
            message="Too many requests. Please try again later.",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"limit": result.limit, "reset_after": round(result.reset_after, 1)},
        )
    return actor
