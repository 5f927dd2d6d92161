"""서류 제출 현황 API: 미제출 현황표, 이용인 월 상세, 제출 저장"""
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException, Path
from sqlalchemy.ext.asyncio import AsyncSession

from caredocs import crud, schemas
from caredocs.database import get_db
from caredocs.services.periods import active_workers, is_client_active_in_month
from caredocs.services.sessions import active_users, concurrent_warning
from caredocs.services.submission_status import (
    build_month_detail,
    build_status_grid,
    effective_base_month,
    get_status,
    is_no_work_editable,
)

router = APIRouter(prefix="/api/submissions", tags=["submissions"])

RESPONSE_404 = {
    404: {
        "description": "리소스 없음",
        "content": {"application/json": {"example": {"detail": "이용인을 찾을 수 없습니다"}}},
    }
}
RESPONSE_409 = {
    409: {
        "description": "업무 규칙 충돌",
        "content": {"application/json": {"example": {"detail": "입력할 수 없는 칸입니다(해당없음)"}}},
    }
}


@router.get("/status", response_model=schemas.StatusGridResponse, summary="미제출 현황표(기준 연도)")
async def status_grid(
    only_unsubmitted: bool = False,
    client: str = "",
    worker: str = "",
    db: AsyncSession = Depends(get_db),
):
    """
    이름순 이용인 × 12개월 × 일정표/주간업무보고/소급결제.
    only_unsubmitted=true 이면 무 또는 지원사 X 칸이 하나라도 있는 이용인만.
    client / worker 는 이름 검색(초성 가능).
    """
    base_year, base_month = await crud.get_base_period(db)
    rows = build_status_grid(
        await crud.list_clients(db),
        await crud.load_submission_data(db, year=base_year),
        await crud.list_payment_items(db, year=base_year),
        base_year,
        base_month,
        only_unsubmitted=only_unsubmitted,
        client_query=client,
        worker_query=worker,
    )
    return schemas.StatusGridResponse(base_year=base_year, base_month=base_month, rows=rows)


@router.get(
    "/{client_id}/{year}/{month}",
    response_model=schemas.MonthDetailResponse,
    summary="이용인 한 달 상세(지원사별 서류·결제·소급 건)",
    responses=RESPONSE_404,
)
async def month_detail(
    client_id: str,
    year: int,
    month: int = Path(..., ge=0, le=11),
    db: AsyncSession = Depends(get_db),
):
    client = await crud.get_client(db, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="이용인을 찾을 수 없습니다")
    base_year, base_month = await crud.get_base_period(db)
    return build_month_detail(
        client,
        year,
        month,
        await crud.load_submission_data(db, year=year),
        await crud.list_payment_items(db, year=year),
        await crud.load_retro_checks(db),
        effective_base_month(year, base_year, base_month),
    )


@router.put(
    "/{client_id}/{year}/{month}",
    response_model=schemas.SaveSubmissionResponse,
    summary="제출 저장(근무 없음 또는 지원사 서류 한 칸)",
    responses={**RESPONSE_404, **RESPONSE_409},
)
async def save_submission(
    client_id: str,
    year: int,
    data: schemas.SubmissionUpdate,
    month: int = Path(..., ge=0, le=11),
    x_user_name: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """
    입력 가능 여부는 현황표와 같은 규칙으로 검사하고, 입력할 수 없는 칸이면 409.
    근무 없음=true 저장 시 그 달 지원사 서류 표시가 모두 해제된다.
    """
    client = await crud.get_client(db, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="이용인을 찾을 수 없습니다")
    base_year, base_month = await crud.get_base_period(db)
    eff_month = effective_base_month(year, base_year, base_month)

    if data.no_work is not None:
        if not (is_no_work_editable(month, eff_month) and is_client_active_in_month(client, month, year)):
            raise HTTPException(status_code=409, detail="이 달은 근무 없음을 입력할 수 없습니다")
    else:
        if data.worker_id not in {w.id for w in active_workers(client, month, year)}:
            raise HTTPException(status_code=409, detail="이 달에 활동 중인 지원사가 아닙니다")
        submission_data = await crud.load_submission_data(db, year=year)
        cell = get_status(
            client, month, data.doc_type, submission_data,
            await crud.list_payment_items(db, year=year), year, eff_month,
        )
        if not cell.editable or cell.label == "no-work":
            raise HTTPException(status_code=409, detail=f"입력할 수 없는 칸입니다({cell.text})")

    record = await crud.save_submission(db, client_id, year, month, data)
    users = active_users(await crud.list_access_logs(db), current_user=x_user_name)
    warning = concurrent_warning(users)
    return schemas.SaveSubmissionResponse(record=record, warnings=[warning] if warning else [])
