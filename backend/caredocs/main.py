"""활동지원사 서류 제출 확인 API"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from caredocs import config as app_config
from caredocs.database import init_db
from caredocs.routers import (
    auth,
    backup_restore,
    clients,
    payments,
    sessions,
    settings,
    submissions,
)
from caredocs.services.backup_job import run_scheduled_backup

logger = logging.getLogger(__name__)
_scheduler: AsyncIOScheduler | None = None


async def _daily_backup_job():
    try:
        await run_scheduled_backup()
    except Exception:
        logger.exception("일일 자동 백업 실패")


def _parse_schedule_time(value: str) -> tuple[int, int]:
    """"HH:MM" → (시, 분). 형식 오류는 00:00"""
    try:
        parts = value.strip().split(":")
        hour = int(parts[0])
        minute = int(parts[1]) if len(parts) > 1 else 0
    except (ValueError, IndexError):
        logger.warning("backup_schedule_time 형식 오류(%s), 00:00 으로 실행", value)
        return 0, 0
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        logger.warning("backup_schedule_time 범위 오류(%s), 00:00 으로 실행", value)
        return 0, 0
    return hour, minute


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    backup_dir = app_config.settings.backup_dir
    if not backup_dir.is_absolute():
        backup_dir = app_config.BASE_DIR / backup_dir
    backup_dir.mkdir(parents=True, exist_ok=True)
    global _scheduler
    _scheduler = AsyncIOScheduler()
    hour, minute = _parse_schedule_time(app_config.settings.backup_schedule_time)
    _scheduler.add_job(
        _daily_backup_job,
        "cron",
        hour=hour,
        minute=minute,
        id="caredocs_daily_backup",
        replace_existing=True,
    )
    _scheduler.start()
    yield
    if _scheduler:
        _scheduler.shutdown(wait=False)


app = FastAPI(
    title="활동지원사 서류 제출 확인",
    description="이용인·활동지원사 월별 서류(일정표, 주간업무보고, 소급결제) 제출 현황",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=app_config.settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(settings.router)
app.include_router(clients.router)
app.include_router(submissions.router)
app.include_router(payments.router)
app.include_router(sessions.router)
app.include_router(backup_restore.router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    if isinstance(exc, HTTPException):
        raise exc
    logger.exception("처리되지 않은 오류: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": str(exc) or "Internal Server Error"})


@app.get("/")
def home():
    return {"message": "서류 제출 확인 시스템 실행 중"}
