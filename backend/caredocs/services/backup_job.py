"""전체 데이터 자동 백업: JSON 문서를 backup_dir에 쓰고 최근 N개만 보관. 파일 잠금으로 다중 인스턴스 중복 실행 방지."""
import json
import logging
import re
import time
from contextlib import contextmanager
from datetime import datetime
from io import BytesIO
from pathlib import Path

from caredocs.config import settings, BASE_DIR
from caredocs.services.data_document import build_document

logger = logging.getLogger(__name__)

# 허용 목록: 이 시스템이 만든 백업 파일명만(경로 조작 방지)
BACKUP_FILENAME_PATTERN = re.compile(r"^caredocs_backup_\d{8}_\d{6}\.json$")
BACKUP_GLOB = "caredocs_backup_*.json"
LOCK_NAME = ".caredocs_backup.lock"
LOCK_STALE_SECONDS = 600


def build_backup_buffer(document: dict) -> tuple[BytesIO, str]:
    """문서 → (UTF-8 JSON BytesIO, 파일명)"""
    buf = BytesIO(json.dumps(document, ensure_ascii=False, indent=2).encode("utf-8"))
    buf.seek(0)
    filename = f"caredocs_backup_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
    return buf, filename


def _get_backup_dir() -> Path:
    """백업 경로: 절대 경로 또는 backend 루트(BASE_DIR) 기준 상대 경로"""
    p = settings.backup_dir
    if not p.is_absolute():
        p = BASE_DIR / p
    return p


def _prune_old_backups(backup_dir: Path, keep: int) -> None:
    files = sorted(backup_dir.glob(BACKUP_GLOB), key=lambda f: f.stat().st_mtime, reverse=True)
    for f in files[keep:]:
        try:
            f.unlink()
        except OSError:
            logger.warning("오래된 백업 삭제 실패: %s", f.name)


@contextmanager
def backup_lock(backup_dir: Path):
    """잠금 파일로 한 번에 한 인스턴스만 백업. 얻으면 True, 아니면 False를 내준다.
    LOCK_STALE_SECONDS 보다 오래된 잠금은 비정상 종료로 보고 가져온다."""
    lock_path = backup_dir / LOCK_NAME
    try:
        lock_path.touch(exist_ok=False)
    except FileExistsError:
        try:
            stale = time.time() - lock_path.stat().st_mtime > LOCK_STALE_SECONDS
        except OSError:
            stale = False
        if not stale:
            yield False
            return
        lock_path.touch()
    try:
        yield True
    finally:
        try:
            lock_path.unlink(missing_ok=True)
        except OSError:
            logger.warning("백업 잠금 파일 해제 실패: %s", lock_path)


async def run_scheduled_backup(session_factory=None) -> str | None:
    """자동 백업 1회 실행. 쓴 파일명, 다른 인스턴스가 실행 중이면 None."""
    if session_factory is None:
        from caredocs.database import AsyncSessionLocal as session_factory
    backup_dir = _get_backup_dir()
    backup_dir.mkdir(parents=True, exist_ok=True)

    with backup_lock(backup_dir) as acquired:
        if not acquired:
            logger.info("다른 인스턴스가 백업 중이라 건너뜀")
            return None
        async with session_factory() as db:
            document = await build_document(db)
        buf, filename = build_backup_buffer(document)
        (backup_dir / filename).write_bytes(buf.getvalue())
        _prune_old_backups(backup_dir, settings.backup_retention_count)
    logger.info("자동 백업 완료: %s", filename)
    return filename


def list_backup_files() -> list[dict]:
    """backup_dir의 백업 파일, 최신순"""
    backup_dir = _get_backup_dir()
    if not backup_dir.exists():
        return []
    files = sorted(backup_dir.glob(BACKUP_GLOB), key=lambda f: f.stat().st_mtime, reverse=True)
    return [
        {
            "filename": f.name,
            "created_at": datetime.fromtimestamp(f.stat().st_mtime).isoformat(),
            "size": f.stat().st_size,
        }
        for f in files
    ]


def get_backup_path(filename: str) -> Path | None:
    """허용 목록에 맞는 파일명만 전체 경로로. 그 외는 None."""
    if not filename or not BACKUP_FILENAME_PATTERN.match(filename):
        return None
    path = _get_backup_dir() / filename
    return path if path.is_file() else None
