# shoppy/auth.py
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime, timedelta, timezone
from jose import jwt

from sqlalchemy.ext.asyncio import AsyncSession
from .config import JWT_SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from .db import get_db
from .deps import get_current_user
from .models import User
from .rate_limit import login_limiter, register_limiter
from .responses import success_response
from . import crud

router = APIRouter(prefix="/auth", tags=["auth"])

class RegisterIn(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=6)

class LoginIn(BaseModel):
    emailOrUsername: str = Field(min_length=1)
    password: str = Field(min_length=1)

def create_access_token(data: dict, expires_delta: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_delta)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=ALGORITHM)

@router.post("/register", status_code=201, dependencies=[Depends(register_limiter)])
async def register(payload: RegisterIn, db: AsyncSession = Depends(get_db)):
    if await crud.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=400, detail="Email already registered")
    username = payload.username.strip()
    if await crud.get_user_by_username(db, username):
        raise HTTPException(status_code=400, detail="Username already taken")

    user = await crud.create_user(db, payload.email, username, payload.password)
    token = create_access_token({"sub": user.user_id})
    return success_response(
        {"user": crud.serialize_user(user), "token": token},
        "User registered successfully",
    )

@router.post("/login", dependencies=[Depends(login_limiter)])
async def login(payload: LoginIn, db: AsyncSession = Depends(get_db)):
    user = await crud.get_user_by_login(db, payload.emailOrUsername.strip())
    if not user or not crud.verify_password(payload.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = create_access_token({"sub": user.user_id})
    return success_response({"user": crud.serialize_user(user), "token": token}, "Login successful")

@router.get("/me")
async def me(user: User = Depends(get_current_user)):
    return success_response({"user": crud.serialize_user(user)})
