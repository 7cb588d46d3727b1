from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from fastapi import Depends, Header
from jose import jwt, JWTError

from app.core import config
from app.core.errors import AuthError, ForbiddenError


class UserContext:
    """
    Caller identity taken from a verified bearer token
    """
    def __init__(self, payload: dict):
        self.user_id = payload.get("sub")
        self.role = payload.get("role", "user")
        self.payload = payload

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# ==================== PASSWORDS ====================

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


# ==================== TOKENS ====================

def create_access_token(user_id: str, role: str, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.utcnow() + (expires_delta or timedelta(days=config.JWT_EXPIRE_DAYS))
    payload = {"sub": user_id, "role": role, "exp": expire}
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise AuthError("Invalid or Expired Token")
    if not payload.get("sub"):
        raise AuthError("Invalid token: missing user_id")
    return payload


# ==================== DEPENDENCY FUNCTIONS ====================

def get_current_user(authorization: str = Header(None)) -> UserContext:
    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError()

    token = authorization.split(" ", 1)[1].strip()
    return UserContext(decode_access_token(token))


def get_current_admin(user: UserContext = Depends(get_current_user)) -> UserContext:
    if not user.is_admin:
        raise ForbiddenError()
    return user
