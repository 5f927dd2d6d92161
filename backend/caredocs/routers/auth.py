"""관리자 인증: 비밀번호 확인 후 access_token 발급, 비밀번호 변경"""
import secrets
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from caredocs.database import get_db
from caredocs.security import require_admin, set_admin_password, verify_admin_password

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    password: str


class LoginResponse(BaseModel):
    access_token: str
    role: str = "admin"


class MeResponse(BaseModel):
    role: str = "admin"


class PasswordChange(BaseModel):
    new_password: str = Field(..., min_length=4)


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    """관리자 비밀번호가 맞으면 access_token, 아니면 401"""
    if await verify_admin_password(db, body.password):
        return LoginResponse(access_token=secrets.token_urlsafe(32))
    raise HTTPException(status_code=401, detail="비밀번호가 올바르지 않습니다")


@router.get("/me", response_model=MeResponse, dependencies=[Depends(require_admin)])
async def me():
    """X-Admin-Password 헤더가 맞으면 관리자, 아니면 403"""
    return MeResponse()


@router.put("/password", dependencies=[Depends(require_admin)])
async def change_password(body: PasswordChange, db: AsyncSession = Depends(get_db)):
    await set_admin_password(db, body.new_password)
    return {"message": "관리자 비밀번호가 변경되었습니다."}
