"""관리자 비밀번호 해시(passlib). DB에 해시가 없으면 설정의 초기 비밀번호와 비교."""
from typing import Optional
from fastapi import Depends, Header, HTTPException
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from caredocs import crud
from caredocs.config import settings
from caredocs.database import get_db

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return _pwd_context.hash(password)


async def verify_admin_password(db: AsyncSession, password: Optional[str]) -> bool:
    if not password:
        return False
    stored = await crud.get_setting(db, crud.SETTING_ADMIN_PASSWORD_HASH)
    if stored:
        return _pwd_context.verify(password, stored)
    return password == settings.admin_password


async def set_admin_password(db: AsyncSession, password: str) -> None:
    await crud.set_setting(db, crud.SETTING_ADMIN_PASSWORD_HASH, hash_password(password))


async def require_admin(
    x_admin_password: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> None:
    """관리자 전용 API: X-Admin-Password 헤더가 관리자 비밀번호와 같아야 함"""
    if not await verify_admin_password(db, x_admin_password):
        raise HTTPException(status_code=403, detail="관리자만 사용할 수 있는 기능입니다.")
