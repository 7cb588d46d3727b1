import logging
import uuid

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from app.auth.auth_utils import create_access_token, hash_password, verify_password
from app.auth.models import AuthResponse, LoginRequest, RegisterRequest, User, UserRole
from app.core import config
from app.core.database import get_db
from app.core.errors import AuthError, ConflictError, NotFoundError, store_errors

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


def _user_out(user: dict) -> dict:
    return {
        "id": user["user_id"],
        "name": user["name"],
        "email": user["email"],
        "role": user["role"],
    }


@store_errors
async def create_user(db: AsyncIOMotorDatabase, data: RegisterRequest) -> dict:
    """Insert a new user; email is unique"""
    existing = await db.users.find_one({"email": data.email})
    if existing:
        raise ConflictError("User already exists")

    role = UserRole.USER
    if data.role == UserRole.ADMIN and config.ALLOW_ADMIN_SIGNUP:
        role = UserRole.ADMIN

    user = User(
        user_id=f"USR_{uuid.uuid4().hex[:12].upper()}",
        name=data.name.strip(),
        email=data.email,
        password_hash=hash_password(data.password),
        role=role,
    ).model_dump()
    user["role"] = role.value

    try:
        await db.users.insert_one(user)
    except DuplicateKeyError:
        raise ConflictError("User already exists")

    logger.info("Registered %s user %s", user["role"], user["user_id"])
    return user


@router.post("/register", response_model=AuthResponse)
async def register(data: RegisterRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await create_user(db, data)
    return {
        "message": "User registered successfully",
        "user": _user_out(user),
        "token": create_access_token(user["user_id"], user["role"]),
    }


@router.post("/login", response_model=AuthResponse)
async def login(data: LoginRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await db.users.find_one({"email": data.email})
    if not user:
        raise NotFoundError("User not found")

    if not verify_password(data.password, user.get("password_hash", "")):
        raise AuthError("Invalid credentials")

    return {
        "message": "Login successful",
        "user": _user_out(user),
        "token": create_access_token(user["user_id"], user["role"]),
    }
