"""전체 데이터 백업/복원(JSON 문서). 복원·이력은 관리자 전용."""
import json
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Header, HTTPException, UploadFile
from fastapi.responses import FileResponse, StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from caredocs import crud
from caredocs.config import settings
from caredocs.database import get_db
from caredocs.security import require_admin
from caredocs.services.backup_job import build_backup_buffer, get_backup_path, list_backup_files
from caredocs.services.data_document import DocumentError, apply_document, build_document
from caredocs.services.sessions import active_users, concurrent_warning

router = APIRouter(prefix="/api/backup", tags=["backup-restore"])


@router.get("/export")
async def export_backup(db: AsyncSession = Depends(get_db)):
    """전체 데이터 JSON 문서 다운로드. 파일명 caredocs_backup_YYYYMMDD_HHMMSS.json"""
    buf, filename = build_backup_buffer(await build_document(db))
    return StreamingResponse(
        buf,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/history", dependencies=[Depends(require_admin)])
async def backup_history():
    """자동 백업 파일 목록(최신순)"""
    return list_backup_files()


@router.get("/download/{filename}", dependencies=[Depends(require_admin)])
async def download_backup(filename: str):
    """자동 백업 파일 다운로드. 파일명은 caredocs_backup_YYYYMMDD_HHMMSS.json 형식만 허용."""
    path = get_backup_path(filename)
    if not path:
        raise HTTPException(status_code=404, detail="백업 파일이 없거나 파일명이 올바르지 않습니다.")
    return FileResponse(path, filename=path.name, media_type="application/json")


@router.post("/restore", dependencies=[Depends(require_admin)])
async def restore_backup(
    file: UploadFile = File(...),
    confirm: str = Form(..., description="기존 데이터를 덮어쓰려면 yes"),
    x_user_name: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
):
    """
    이 시스템(또는 구버전 도구)이 만든 JSON 문서로 전체 데이터를 교체한다. confirm=yes 필요.
    다른 작업자가 접속 중이면 warnings 로 알려 주지만 막지는 않는다(마지막 저장이 이김).
    """
    if confirm.strip().lower() != "yes":
        raise HTTPException(status_code=400, detail="복원하려면 확인란에 yes 를 입력하세요.")
    raw = await file.read()
    if len(raw) > settings.max_upload_size_mb * 1024 * 1024:
        raise HTTPException(status_code=400, detail=f"파일은 {settings.max_upload_size_mb}MB를 넘을 수 없습니다.")
    try:
        doc = json.loads(raw.decode("utf-8-sig"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"JSON 파일을 읽을 수 없습니다: {e}")

    users = active_users(await crud.list_access_logs(db), current_user=x_user_name)
    try:
        summary = await apply_document(db, doc)
    except DocumentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    warning = concurrent_warning(users)
    return {
        "message": "복원 완료",
        "restored": summary,
        "saved_at": doc.get("savedAt"),
        "warnings": [warning] if warning else [],
    }
