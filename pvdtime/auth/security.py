from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from pvdtime.core.commands import CommandSource
from pvdtime.core.config import ACCESS_TOKEN_EXPIRE_MINUTES, ADMIN_PERMISSION_LEVEL, JWT_ALGORITHM, JWT_SECRET

# Tokens are optional: anonymous callers act with permission level 0
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)

ANONYMOUS = CommandSource(name="anonymous", permission_level=0)


def create_access_token(subject: str, permission_level: int = 0, expires_minutes: Optional[int] = None) -> str:
    """Mint a bearer token whose 'perm' claim is the host permission level of `subject`."""
    expire_delta = expires_minutes if expires_minutes is not None else ACCESS_TOKEN_EXPIRE_MINUTES
    expire = datetime.now(timezone.utc) + timedelta(minutes=expire_delta)
    to_encode: Dict[str, Any] = {
        "sub": subject,
        "perm": int(permission_level),
        "exp": expire,
        "jti": str(uuid.uuid4()),
    }
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])


async def get_command_source(token: Optional[str] = Depends(oauth2_scheme)) -> CommandSource:
    if not token:
        return ANONYMOUS
    try:
        payload = decode_token(token)
        sub = payload.get("sub")
        if sub is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token payload")
        perm = int(payload.get("perm", 0))
    except (JWTError, ValueError, TypeError):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Could not validate credentials")
    return CommandSource(name=str(sub), permission_level=perm)


async def require_admin(source: CommandSource = Depends(get_command_source)) -> CommandSource:
    if source.permission_level < ADMIN_PERMISSION_LEVEL:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden: admin permission required")
    return source


__all__ = [
    "ANONYMOUS",
    "create_access_token",
    "decode_token",
    "get_command_source",
    "require_admin",
]
