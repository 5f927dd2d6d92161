"""기준 연/월 설정: 현황표의 입력 가능/해당없음 판단 기준"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from caredocs import crud, schemas
from caredocs.database import get_db

router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("/base-period", response_model=schemas.BasePeriod)
async def get_base_period(db: AsyncSession = Depends(get_db)):
    year, month = await crud.get_base_period(db)
    return schemas.BasePeriod(base_year=year, base_month=month)


@router.put("/base-period", response_model=schemas.BasePeriod)
async def update_base_period(body: schemas.BasePeriod, db: AsyncSession = Depends(get_db)):
    """base_month 는 0=1월"""
    await crud.set_base_period(db, body.base_year, body.base_month)
    return body
