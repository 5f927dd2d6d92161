"""Alembic 환경: caredocs 모델 metadata와 설정의 database_url로 마이그레이션.
기본 DB가 SQLite라 ALTER 는 batch 모드로 실행한다."""
from pathlib import Path
import sys

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine

BACKEND_ROOT = Path(__file__).resolve().parent.parent
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from caredocs.config import settings
from caredocs.database import Base
from caredocs import models  # noqa: F401

config = context.config
if config.config_file_name is not None and Path(config.config_file_name).exists():
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def sync_database_url(url: str) -> str:
    """앱은 비동기 드라이버, Alembic 은 동기 드라이버.
    sqlite+aiosqlite → sqlite(상대 경로는 backend 기준 절대 경로), postgres 계열 → psycopg2"""
    url = url.strip()
    if url.startswith("sqlite"):
        url = url.replace("sqlite+aiosqlite", "sqlite", 1)
        prefix = "sqlite:///"
        path = url[len(prefix):]
        if path and path != ":memory:" and not Path(path).is_absolute():
            url = prefix + (BACKEND_ROOT / path).resolve().as_posix()
        return url
    for scheme in ("postgresql+asyncpg://", "postgresql://", "postgres://"):
        if url.startswith(scheme):
            return "postgresql+psycopg2://" + url[len(scheme):]
    return url


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def run_migrations_offline() -> None:
    """SQL 스크립트만 출력"""
    url = sync_database_url(settings.database_url)
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=_is_sqlite(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    url = sync_database_url(settings.database_url)
    connectable = create_engine(url)
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            compare_type=True,
            render_as_batch=_is_sqlite(url),
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
