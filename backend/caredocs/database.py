"""
DB 엔진과 세션(Async SQLAlchemy).
기본은 SQLite(aiosqlite) 파일 하나. PostgreSQL URL은 asyncpg 드라이버로 바꿔 연결한다.
운영 DB는 Alembic으로 관리하고 auto_create_tables=False로 둔다.
"""
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from caredocs.config import settings

_POSTGRES_SCHEMES = ("postgres://", "postgresql://", "postgresql+psycopg2://")


def async_database_url(url: str) -> str:
    url = (url or "").strip()
    for scheme in _POSTGRES_SCHEMES:
        if url.startswith(scheme):
            return "postgresql+asyncpg://" + url[len(scheme):]
    if url.startswith("sqlite://"):
        return "sqlite+aiosqlite://" + url[len("sqlite://"):]
    return url


db_url = async_database_url(settings.database_url)

engine = create_async_engine(
    db_url,
    echo=settings.debug,
    # SQLite 파일 DB는 끊길 연결이 없다
    pool_pre_ping=not db_url.startswith("sqlite"),
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    pass


async def get_db():
    """요청 단위 세션: 정상 종료 시 commit, 예외 시 rollback"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    """개발용 테이블 자동 생성(auto_create_tables). 이미 있는 테이블은 건드리지 않는다."""
    if not settings.auto_create_tables:
        return
    from caredocs import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
