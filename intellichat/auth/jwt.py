"""JWT token handling."""
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt

from intellichat.config import get_settings
from intellichat.db import Store, get_db
from intellichat.db.models import User
from intellichat.errors import AuthFailed


ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_DAYS = 30

security = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS))

    to_encode = {
        "sub": user_id,
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[str]:
    """Verify JWT token and return user_id."""
    settings = get_settings()

    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    store: Store = Depends(get_db),
) -> User:
    """Get current authenticated user from the Bearer token."""
    if credentials is None:
        raise AuthFailed("Not authorized, no token")

    user_id = verify_token(credentials.credentials)
    if user_id is None:
        raise AuthFailed("Not authorized, token failed")

    user = await store.get_user_by_id(user_id)
    if user is None:
        raise AuthFailed("Not authorized, user not found")

    return user
