"""이용인 명부 API: 목록/조회/등록/수정/삭제, 지원사 교체, 명부 Excel 내보내기/가져오기"""
from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from caredocs import crud, schemas
from caredocs.config import settings
from caredocs.database import get_db
from caredocs.security import require_admin
from caredocs.services.roster_excel import RosterImportError, build_roster_workbook, parse_roster_workbook
from caredocs.utils.http_headers import build_content_disposition

router = APIRouter(prefix="/api/clients", tags=["clients"])

RESPONSE_404 = {
    404: {
        "description": "리소스 없음",
        "content": {"application/json": {"example": {"detail": "이용인을 찾을 수 없습니다"}}},
    }
}
RESPONSE_409 = {
    409: {
        "description": "업무 규칙 충돌",
        "content": {"application/json": {"example": {"detail": "이미 존재하는 이용인 id입니다"}}},
    }
}


async def _get_client_or_404(db: AsyncSession, client_id: str):
    client = await crud.get_client(db, client_id)
    if not client:
        raise HTTPException(status_code=404, detail="이용인을 찾을 수 없습니다")
    return client


@router.get("", response_model=List[schemas.ClientRead], summary="이용인 목록(이름순, 초성 검색)")
async def list_clients(search: Optional[str] = None, db: AsyncSession = Depends(get_db)):
    return await crud.list_clients(db, search=search)


@router.get("/export", summary="명부 Excel 다운로드")
async def export_clients(db: AsyncSession = Depends(get_db)):
    clients = await crud.list_clients(db)
    if not clients:
        raise HTTPException(status_code=404, detail="다운로드할 데이터가 없습니다.")
    buf, filename = build_roster_workbook(clients)
    return StreamingResponse(
        buf,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": build_content_disposition(f"이용인명부_{filename[8:]}", filename)},
    )


@router.post("/import", summary="명부 Excel 가져오기(기존 명부 전체 교체, 관리자)", dependencies=[Depends(require_admin)])
async def import_clients(
    file: UploadFile = File(..., description="명부 .xlsx(id, name, dob, contractStart, contractEnd, familySupport, supportWorkers, contractHistory)"),
    confirm: str = Form(..., description="기존 명부를 대체하려면 yes"),
    db: AsyncSession = Depends(get_db),
):
    if confirm.strip().lower() != "yes":
        raise HTTPException(status_code=400, detail="기존 명부를 대체하려면 confirm=yes 를 보내야 합니다.")
    if not file.filename or not file.filename.lower().endswith(".xlsx"):
        raise HTTPException(status_code=400, detail="엑셀 파일(.xlsx)만 업로드할 수 있습니다.")
    raw = await file.read()
    if len(raw) > settings.max_upload_size_mb * 1024 * 1024:
        raise HTTPException(status_code=400, detail=f"파일은 {settings.max_upload_size_mb}MB를 넘을 수 없습니다.")
    try:
        clients = parse_roster_workbook(raw)
    except RosterImportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not clients:
        raise HTTPException(status_code=400, detail="파일에서 유효한 이용인 정보를 찾을 수 없습니다.")
    deleted = await crud.delete_all_clients(db)
    for c in clients:
        await crud.create_client(db, c)
    return {"imported": len(clients), "replaced": deleted, "message": "명단이 성공적으로 업데이트되었습니다."}


@router.get("/{client_id}", response_model=schemas.ClientRead, responses=RESPONSE_404)
async def get_client(client_id: str, db: AsyncSession = Depends(get_db)):
    return await _get_client_or_404(db, client_id)


@router.post("", response_model=schemas.ClientRead, status_code=201, responses=RESPONSE_409)
async def create_client(data: schemas.ClientCreate, db: AsyncSession = Depends(get_db)):
    if data.id and await crud.get_client(db, data.id):
        raise HTTPException(status_code=409, detail="이미 존재하는 이용인 id입니다")
    try:
        client = await crud.create_client(db, data)
    except (ValueError, IntegrityError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    return await crud.get_client(db, client.id)


@router.patch("/{client_id}", response_model=schemas.ClientRead, responses=RESPONSE_404)
async def update_client(client_id: str, data: schemas.ClientUpdate, db: AsyncSession = Depends(get_db)):
    client = await _get_client_or_404(db, client_id)
    return await crud.update_client(db, client, data)


@router.put("/{client_id}/workers", response_model=schemas.ClientRead, responses={**RESPONSE_404, **RESPONSE_409})
async def replace_workers(client_id: str, data: schemas.WorkersReplace, db: AsyncSession = Depends(get_db)):
    client = await _get_client_or_404(db, client_id)
    try:
        return await crud.replace_workers(db, client, data.support_workers)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.delete("/{client_id}", status_code=204, responses=RESPONSE_404)
async def delete_client(client_id: str, db: AsyncSession = Depends(get_db)):
    client = await _get_client_or_404(db, client_id)
    await crud.delete_client(db, client)
