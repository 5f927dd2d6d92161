"""데모 명부 2명(김이용/이도움)을 넣는다. 같은 id가 이미 있으면 건너뜀."""
import asyncio
import sys
from pathlib import Path
from datetime import date

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from caredocs import crud
from caredocs.database import AsyncSessionLocal, init_db
from caredocs.schemas import ClientCreate, ContractPeriodSchema, SupportWorkerCreate

DEMO_CLIENTS = [
    ClientCreate(
        id="1",
        name="김이용",
        dob="1988-05-15",
        family_support=True,
        contract_periods=[ContractPeriodSchema(start=date(2025, 1, 1), end=date(2025, 12, 31))],
        support_workers=[
            SupportWorkerCreate(
                id="sw1", name="박지원", dob="1990-01-01",
                service_start=date(2025, 1, 1), service_end=date(2025, 12, 31),
            )
        ],
    ),
    ClientCreate(
        id="2",
        name="이도움",
        dob="2001-11-20",
        family_support=False,
        contract_periods=[ContractPeriodSchema(start=date(2025, 3, 1), end=date(2025, 10, 1))],
    ),
]


async def run():
    await init_db()
    added = 0
    async with AsyncSessionLocal() as db:
        for c in DEMO_CLIENTS:
            if await crud.get_client(db, c.id):
                continue
            await crud.create_client(db, c)
            added += 1
        await db.commit()
    print(f"데모 이용인 {added}명 추가. GET /api/submissions/status 로 확인하세요.")


if __name__ == "__main__":
    asyncio.run(run())
