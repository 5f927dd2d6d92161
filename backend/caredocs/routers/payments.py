"""결제 내역 API: 연도별 엑셀 업로드(연도 단위 교체), 목록, 미등록 결제, 소급/예외 결제와 증빙 체크"""
import logging
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from caredocs import crud, schemas
from caredocs.config import settings
from caredocs.database import get_db
from caredocs.services.payment_sheet import (
    PaymentSheetError,
    abnormal_payments,
    parse_payment_sheet,
    read_payment_workbook,
    retroactive_payments,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payments", tags=["payments"])

RESPONSE_404 = {
    404: {
        "description": "리소스 없음",
        "content": {"application/json": {"example": {"detail": "결제 내역을 찾을 수 없습니다"}}},
    }
}


async def _year_or_base(db: AsyncSession, year: Optional[int]) -> int:
    if year is not None:
        return year
    base_year, _ = await crud.get_base_period(db)
    return base_year


@router.post("/import", response_model=schemas.PaymentImportResult, summary="결제 내역 엑셀 업로드(해당 연도 전체 교체)")
async def import_payments(
    file: UploadFile = File(..., description="결제 내역 .xlsx"),
    year: int = Form(..., ge=2000, le=2099, description="대상 연도(다른 연도 행은 제외)"),
    layout: str = Form("header", description="header: 헤더 이름으로 열 찾기, fixed: 고정 열 순서"),
    db: AsyncSession = Depends(get_db),
):
    """
    파일 전체를 먼저 해석한 뒤 저장한다. 파일 오류이거나 대상 연도 행이 하나도 없으면 400이고
    기존 데이터는 그대로 남는다.
    """
    raw = await file.read()
    if len(raw) > settings.max_upload_size_mb * 1024 * 1024:
        raise HTTPException(status_code=400, detail=f"파일은 {settings.max_upload_size_mb}MB를 넘을 수 없습니다.")
    try:
        rows = read_payment_workbook(raw, file.filename or "", layout=layout)
    except PaymentSheetError as e:
        raise HTTPException(status_code=400, detail=str(e))
    items = parse_payment_sheet(rows, year, uploaded_at=datetime.now())
    if not items:
        raise HTTPException(status_code=400, detail=f"{year}년에 해당하는 결제 내역이 없습니다. 파일과 연도를 확인하세요.")

    replaced = await crud.replace_payment_items(db, year, items)
    reset_flags = await crud.reconcile_year_retroactive(db, year)
    clients = await crud.list_clients(db)
    logger.info(
        "결제 내역 %s년 업로드: %d건(기존 %d건 교체, 소급결제 표시 %d건 재계산)",
        year, len(items), replaced, reset_flags,
    )
    return schemas.PaymentImportResult(
        year=year,
        imported=len(items),
        skipped=len(rows) - len(items),
        abnormal_count=len(abnormal_payments(items, clients, year)),
        retroactive_count=len(retroactive_payments(items, year)),
    )


@router.get("", response_model=List[schemas.PaymentItemRead], summary="결제 내역 목록")
async def list_payments(year: Optional[int] = None, db: AsyncSession = Depends(get_db)):
    year = await _year_or_base(db, year)
    return [crud.payment_item_read(it) for it in await crud.list_payment_items(db, year=year)]


@router.get("/abnormal", response_model=List[schemas.PaymentItemRead], summary="명부에 없는 이용인의 결제")
async def list_abnormal(year: Optional[int] = None, db: AsyncSession = Depends(get_db)):
    year = await _year_or_base(db, year)
    items = await crud.list_payment_items(db, year=year)
    clients = await crud.list_clients(db)
    return [crud.payment_item_read(it) for it in abnormal_payments(items, clients, year)]


@router.get("/retroactive", response_model=List[schemas.PaymentItemRead], summary="소급/예외 결제")
async def list_retroactive(year: Optional[int] = None, db: AsyncSession = Depends(get_db)):
    year = await _year_or_base(db, year)
    items = await crud.list_payment_items(db, year=year)
    return [crud.payment_item_read(it) for it in retroactive_payments(items, year)]


@router.put(
    "/{item_id}/check",
    response_model=schemas.RetroactiveCheckResult,
    summary="결제 건 증빙 체크(지원사 소급결제 표시 자동 갱신)",
    responses=RESPONSE_404,
)
async def set_check(item_id: str, data: schemas.RetroactiveCheckUpdate, db: AsyncSession = Depends(get_db)):
    item = await crud.get_payment_item(db, item_id)
    if not item:
        raise HTTPException(status_code=404, detail="결제 내역을 찾을 수 없습니다")
    updated = await crud.set_retroactive_check(db, item, data.checked)
    return schemas.RetroactiveCheckResult(item=crud.payment_item_read(item), updated_workers=updated)
