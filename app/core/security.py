import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from urllib.parse import urlencode
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from app.core.cache import CacheService
from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.dependencies import get_cache_service
from app.schemas.auth import OwnerContext

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

REVOKED_SESSION_PREFIX = "auth:revoked:"


def build_login_url(next_path: str) -> str:
    """Login route with the originally requested path kept for the return trip."""
    return f"{settings.LOGIN_PATH}?{urlencode({'next': next_path})}"


def create_access_token(
    user_id: UUID,
    email: Optional[str] = None,
    session_id: Optional[str] = None,
    expires_minutes: int = 60,
) -> str:
    """Issue a token shaped like the identity provider's (seed script and tests)."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    claims = {
        "sub": str(user_id),
        "aud": settings.AUTH_JWT_AUDIENCE,
        "exp": expire,
    }
    if email:
        claims["email"] = email
    if session_id:
        claims["session_id"] = session_id
    return jwt.encode(claims, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)


def decode_access_token(token: str) -> OwnerContext:
    """Verify *token* and turn its claims into an :class:`OwnerContext`.

    Raises:
        AuthenticationError: Bad signature, wrong audience, expired, or no
            usable ``sub`` claim.
    """
    try:
        payload = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=[settings.AUTH_JWT_ALGORITHM],
            audience=settings.AUTH_JWT_AUDIENCE,
        )
    except JWTError as exc:
        raise AuthenticationError("Invalid or expired token") from exc

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError as exc:
        raise AuthenticationError("Token has no valid subject") from exc

    exp = payload.get("exp")
    return OwnerContext(
        user_id=user_id,
        email=payload.get("email"),
        session_id=payload.get("session_id"),
        expires_at=datetime.fromtimestamp(exp, tz=timezone.utc) if exp else None,
    )


async def is_session_revoked(owner: OwnerContext, cache: CacheService) -> bool:
    """Check the revocation list; an unreachable Redis fails closed.

    Raises:
        SessionStoreUnavailableError: Redis is unreachable.
    """
    if not owner.session_id:
        return False
    key = f"{REVOKED_SESSION_PREFIX}{owner.session_id}"
    return await cache.get(key, strict=True) is not None


async def revoke_session(owner: OwnerContext, cache: CacheService) -> None:
    """Deny the owner's session id until its token would have expired anyway.

    Raises:
        SessionStoreUnavailableError: Redis is unreachable.
    """
    if not owner.session_id:
        logger.info("Logout for %s without a session id; nothing to revoke", owner.user_id)
        return
    ttl = settings.REDIS_CACHE_TTL
    if owner.expires_at is not None:
        remaining = (owner.expires_at - datetime.now(timezone.utc)).total_seconds()
        ttl = max(1, int(remaining))
    await cache.set(
        f"{REVOKED_SESSION_PREFIX}{owner.session_id}", "1", ttl=ttl, strict=True
    )
    logger.info("Revoked session %s of owner %s", owner.session_id, owner.user_id)


async def get_optional_owner(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    cache: CacheService = Depends(get_cache_service),
) -> Optional[OwnerContext]:
    """The signed-in owner, or ``None`` for anonymous or unusable tokens.

    Raises:
        SessionStoreUnavailableError: Revocation cannot be checked.
    """
    if credentials is None:
        return None
    try:
        owner = decode_access_token(credentials.credentials)
    except AuthenticationError as exc:
        logger.info("Ignoring unusable token: %s", exc.detail)
        return None
    if await is_session_revoked(owner, cache):
        return None
    return owner


async def get_current_owner(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    cache: CacheService = Depends(get_cache_service),
) -> OwnerContext:
    """Require a signed-in owner.

    Raises:
        AuthenticationError: No token, an invalid one, or a revoked session.
            ``login_url`` carries the requested path.
        SessionStoreUnavailableError: Revocation cannot be checked.
    """
    login_url = build_login_url(request.url.path)
    if credentials is None:
        raise AuthenticationError("Authentication required", login_url=login_url)
    try:
        owner = decode_access_token(credentials.credentials)
    except AuthenticationError as exc:
        exc.login_url = login_url
        raise
    if await is_session_revoked(owner, cache):
        raise AuthenticationError("Session has been signed out", login_url=login_url)
    return owner
