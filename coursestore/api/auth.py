# FILE: coursestore/api/auth.py
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from coursestore.core.database import get_db
from coursestore.crud import crud_users
from coursestore.schemas.auth import RegisterRequest, LoginRequest, RegisterResponse, LoginResponse, UserResponse
from coursestore.services.auth_service import hash_password, verify_password, normalize_email, normalize_role

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger("coursestore.auth")


def _blank(value) -> bool:
    return value is None or not str(value).strip()


@router.post("/register", response_model=RegisterResponse)
async def register(data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    if _blank(data.name) or _blank(data.email) or _blank(data.password):
        raise HTTPException(status_code=400, detail="invalid_input")

    email = normalize_email(data.email)
    if await crud_users.get_by_email(db, email):
        raise HTTPException(status_code=409, detail="email_in_use")

    try:
        user = await crud_users.create(
            db,
            name=data.name.strip(),
            email=email,
            password_hash=hash_password(data.password),
            role=normalize_role(data.role),
        )
        await db.commit()
    except IntegrityError:
        # concurrent registration with the same email
        await db.rollback()
        raise HTTPException(status_code=409, detail="email_in_use")

    logger.info("Registered user id=%s role=%s", user.id, user.role)
    return RegisterResponse(message="registered", id=user.id)


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)):
    if _blank(data.email) or _blank(data.password):
        raise HTTPException(status_code=400, detail="invalid_input")

    user = await crud_users.get_by_email(db, data.email)
    if not user or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=401, detail="invalid_credentials")

    return LoginResponse(
        user=UserResponse(id=user.id, name=user.name, email=user.email, role=user.role),
    )
