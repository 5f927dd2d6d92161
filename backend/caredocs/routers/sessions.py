"""접속 기록 API: 로그인/로그아웃 표시와 동시 작업 경고(잠금 아님)"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from caredocs import crud, schemas
from caredocs.database import get_db
from caredocs.security import require_admin
from caredocs.services.sessions import active_users, concurrent_warning

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


async def _active(db: AsyncSession, current_user: Optional[str]) -> schemas.ActiveUsersResponse:
    users = active_users(await crud.list_access_logs(db), current_user=current_user)
    return schemas.ActiveUsersResponse(active_users=users, warning=concurrent_warning(users))


@router.post("/login", response_model=schemas.ActiveUsersResponse, summary="작업 시작 표시(다른 작업자 경고 반환)")
async def login(data: schemas.AccessLogCreate, db: AsyncSession = Depends(get_db)):
    await crud.add_access_log(db, data.user_name, "login")
    return await _active(db, data.user_name)


@router.post("/logout", response_model=schemas.ActiveUsersResponse, summary="작업 종료 표시")
async def logout(data: schemas.AccessLogCreate, db: AsyncSession = Depends(get_db)):
    await crud.add_access_log(db, data.user_name, "logout")
    return await _active(db, data.user_name)


@router.get("/active", response_model=schemas.ActiveUsersResponse)
async def get_active(x_user_name: Optional[str] = Header(None), db: AsyncSession = Depends(get_db)):
    return await _active(db, x_user_name)


@router.post("/force-logout", response_model=schemas.ActiveUsersResponse, summary="모든 작업자 강제 종료 표시(관리자)")
async def force_logout(db: AsyncSession = Depends(get_db), _admin: None = Depends(require_admin)):
    for user in active_users(await crud.list_access_logs(db)):
        await crud.add_access_log(db, user, "logout")
    return await _active(db, None)


@router.get("/logs", response_model=List[schemas.AccessLogRead])
async def list_logs(limit: int = 100, db: AsyncSession = Depends(get_db)):
    return await crud.list_access_logs(db, limit=limit)
