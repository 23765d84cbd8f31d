"""Shared dependencies for Roadmap Progress Service."""

from typing import Optional, Dict, Any
from aiocache import Cache
import structlog
from jose import jwt, JWTError
from datetime import datetime, timedelta
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import settings

logger = structlog.get_logger()

# Global instances
_redis_cache: Optional[Cache] = None

# Security
security = HTTPBearer(auto_error=False)

ADMIN_ROLE = "admin"
STAFF_ROLES = {"admin", "instructor"}


async def get_redis_cache() -> Cache:
    """Get Redis cache instance."""
    global _redis_cache

    if _redis_cache is None:
        try:
            _redis_cache = Cache.from_url(settings.REDIS_URL)
            await _redis_cache.exists("test")  # Test connection
            logger.info("Cache connection established", url=settings.REDIS_URL)
        except Exception as e:
            logger.warning("Redis cache not available, using memory", error=str(e))
            _redis_cache = Cache(Cache.MEMORY)

    return _redis_cache


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)

    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    return encoded_jwt


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Dict[str, Any]:
    """Get current user from JWT token."""
    if credentials is None:
        raise _unauthorized()

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        raise _unauthorized()

    user_id = payload.get("sub")
    if user_id is None:
        raise _unauthorized()

    roles = payload.get("roles") or []
    if isinstance(roles, str):
        roles = [roles]
    return {"sub": str(user_id), "roles": list(roles)}


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[Dict[str, Any]]:
    """Anonymous callers are allowed; a bad token is still rejected."""
    if credentials is None:
        return None
    return await get_current_user(credentials)


def is_admin(current_user: Optional[Dict[str, Any]]) -> bool:
    if not current_user:
        return False
    return ADMIN_ROLE in current_user.get("roles", [])


def is_staff(current_user: Dict[str, Any]) -> bool:
    return bool(STAFF_ROLES.intersection(current_user.get("roles", [])))


async def require_admin(current_user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    """Only admins can edit the roadmap catalog."""
    if not is_admin(current_user):
        raise HTTPException(status_code=403, detail="Not authorized")
    return current_user


def ensure_can_view(current_user: Dict[str, Any], user_id: str):
    """Users see their own progress, staff see everyone's."""
    if current_user["sub"] != user_id and not is_staff(current_user):
        raise HTTPException(status_code=403, detail="Not authorized")


def ensure_is_self(current_user: Dict[str, Any], user_id: str):
    """Only the learner can change their own progress."""
    if current_user["sub"] != user_id:
        raise HTTPException(status_code=403, detail="Not authorized")
