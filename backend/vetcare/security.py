from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, FrozenSet, List, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt, JWTError

from vetcare.config import get_settings
from vetcare.constants import Permission, Role, ROLE_PERMISSIONS
from vetcare.deps import get_directory
from vetcare.errors import ProcessingError
from vetcare.services.directory import DirectoryGateway
from vetcare.utils.logger import get_logger

logger = get_logger("security")
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Caller:
    """Authenticated identity handed explicitly to every service call."""

    id: str
    role: Role
    permissions: FrozenSet[Permission] = field(default_factory=frozenset)

    def has(self, permission: Permission) -> bool:
        return permission in self.permissions


# ------------------------ JWT helpers ------------------------


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token (1 hour by default)."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type. Expected access",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def _effective_permissions(role: Role, granted: List[str]) -> FrozenSet[Permission]:
    extra = set()
    for name in granted:
        try:
            extra.add(Permission(name))
        except ValueError:
            logger.warning(f"⚠️ Ignoring unknown permission '{name}'")
    return ROLE_PERMISSIONS.get(role, frozenset()) | frozenset(extra)


async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    directory: DirectoryGateway = Depends(get_directory),
) -> Caller:
    """Decode the bearer token and resolve the caller against the user directory.
    Raises 401 if the token is missing, invalid or the user is unknown.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    payload = decode_token(credentials.credentials)
    user_id: str | None = payload.get("sub")
    if not user_id:
        raise credentials_exception

    try:
        user = await directory.get_user(user_id)
    except ProcessingError as e:
        logger.error(f"❌ Could not load caller {user_id}: {e.message}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="User directory unavailable")
    if user is None:
        raise credentials_exception

    return Caller(id=user.id, role=user.role, permissions=_effective_permissions(user.role, user.permissions))


# ------------------------ RBAC helpers ------------------------


def require_roles(allowed: List[Role]) -> Callable:
    """Usage: Depends(require_roles([Role.CLIENT]))"""

    async def checker(caller: Caller = Depends(get_current_caller)) -> Caller:
        if caller.role not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return caller

    return checker


def require_permissions(*required: Permission) -> Callable:
    """Caller must hold every permission listed."""

    async def checker(caller: Caller = Depends(get_current_caller)) -> Caller:
        missing = [p.value for p in required if not caller.has(p)]
        if missing:
            raise HTTPException(status_code=403, detail=f"Missing permission: {', '.join(missing)}")
        return caller

    return checker
