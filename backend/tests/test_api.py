"""
API 통합 테스트: httpx AsyncClient + ASGITransport, get_db는 메모리 SQLite로 교체.
기준 연/월은 기본값(2025년, 4=5월).
"""
import json
from io import BytesIO

import pytest
from httpx import ASGITransport, AsyncClient
from openpyxl import Workbook
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from caredocs.database import Base, get_db
from caredocs.main import app

ADMIN = {"X-Admin-Password": "admin"}
XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

CLIENT = {
    "id": "c1",
    "name": "김이용",
    "dob": "900105",
    "contract_periods": [{"start": "2025-01-01", "end": None}],
    "support_workers": [
        {"id": "w1", "name": "이도움", "dob": "1975-07-07", "service_start": "2025-01-01"},
        {"id": "w2", "name": "박도움", "dob": "1980-03-03", "service_start": "2025-04-01"},
    ],
}


@pytest.fixture
async def client():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    await engine.dispose()


def _payment_xlsx() -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.append(["대상자명", "생년월일", "서비스시작시간", "서비스종료시간", "제공인력명", "생년월일", "결제구분", "반납구분", "사유"])
    ws.append(["김이용", "900105", "2025-03-05 09:00", "2025-03-05 13:00", "이도움", "750707", "소급결제", None, "누락"])
    ws.append(["박없음", "1970-01-01", "2025-03-06 09:00", "2025-03-06 13:00", "이도움", "750707", "일반", None, None])
    ws.append(["김이용", "900105", "2024-12-30 09:00", "2024-12-30 13:00", "이도움", "750707", "일반", None, None])
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


async def _create_client(ac):
    r = await ac.post("/api/clients", json=CLIENT)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_home(client):
    r = await client.get("/")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_create_and_read_client(client):
    body = await _create_client(client)
    assert body["dob"] == "1990-01-05"
    assert body["contract_start"] == "2025-01-01"
    assert body["contract_end"] == "2099-12-31"
    assert [w["id"] for w in body["support_workers"]] == ["w1", "w2"]

    r = await client.post("/api/clients", json=CLIENT)
    assert r.status_code == 409

    r = await client.get("/api/clients", params={"search": "ㄱㅇㅇ"})
    assert [c["id"] for c in r.json()] == ["c1"]
    assert (await client.get("/api/clients/nope")).status_code == 404


@pytest.mark.asyncio
async def test_update_workers_and_delete(client):
    await _create_client(client)
    r = await client.put("/api/clients/c1/workers", json={"support_workers": [{"id": "w9", "name": "최도움", "dob": "19700101"}]})
    assert r.status_code == 200
    assert [w["id"] for w in r.json()["support_workers"]] == ["w9"]

    r = await client.patch("/api/clients/c1", json={"family_support": True})
    assert r.json()["family_support"] is True

    assert (await client.delete("/api/clients/c1")).status_code == 204
    assert (await client.get("/api/clients/c1")).status_code == 404


@pytest.mark.asyncio
async def test_status_grid_and_save_submission(client):
    await _create_client(client)
    r = await client.put("/api/submissions/c1/2025/3", json={"worker_id": "w1", "doc_type": "schedule", "value": True})
    assert r.status_code == 200, r.text
    assert r.json()["record"]["worker_submissions"]["w1"]["schedule"] is True
    assert r.json()["warnings"] == []
    await client.put("/api/submissions/c1/2025/3", json={"worker_id": "w2", "doc_type": "schedule", "value": True})

    r = await client.get("/api/submissions/status")
    body = r.json()
    assert (body["base_year"], body["base_month"]) == (2025, 4)
    months = body["rows"][0]["months"]
    assert months[3]["cells"]["schedule"]["label"] == "submitted"
    assert months[3]["cells"]["weeklyReport"]["label"] == "missing"
    assert months[5]["cells"]["schedule"]["editable"] is True
    assert months[5]["cells"]["weeklyReport"]["label"] == "not-applicable"
    assert months[6]["cells"]["schedule"]["text"] == "해당없음"


@pytest.mark.asyncio
async def test_save_submission_rejects_closed_cells(client):
    await _create_client(client)
    # 기준월+1(6월) 주간업무보고
    r = await client.put("/api/submissions/c1/2025/5", json={"worker_id": "w1", "doc_type": "weeklyReport", "value": True})
    assert r.status_code == 409
    # 기준월+1 근무 없음
    r = await client.put("/api/submissions/c1/2025/5", json={"no_work": True})
    assert r.status_code == 409
    # 3월에는 w2 활동 전
    r = await client.put("/api/submissions/c1/2025/2", json={"worker_id": "w2", "doc_type": "schedule", "value": True})
    assert r.status_code == 409
    # 소급/예외 결제가 없으면 소급결제 입력 불가
    r = await client.put("/api/submissions/c1/2025/2", json={"worker_id": "w1", "doc_type": "retroactivePayment", "value": True})
    assert r.status_code == 409
    r = await client.put("/api/submissions/c1/2025/12", json={"no_work": True})
    assert r.status_code == 422
    r = await client.put("/api/submissions/c1/2025/2", json={"no_work": True, "worker_id": "w1", "doc_type": "schedule", "value": True})
    assert r.status_code == 422
    r = await client.put("/api/submissions/none/2025/2", json={"no_work": True})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_no_work_clears_flags(client):
    await _create_client(client)
    await client.put("/api/submissions/c1/2025/2", json={"worker_id": "w1", "doc_type": "schedule", "value": True})
    r = await client.put("/api/submissions/c1/2025/2", json={"no_work": True})
    assert r.status_code == 200
    record = r.json()["record"]
    assert record["no_work"] is True
    assert record["worker_submissions"]["w1"]["schedule"] is False

    detail = (await client.get("/api/submissions/c1/2025/2")).json()
    assert detail["no_work"] is True
    assert detail["statuses"]["schedule"]["label"] == "no-work"
    assert detail["workers"][0]["editable"]["schedule"] is False


@pytest.mark.asyncio
async def test_payment_import_and_retroactive_check(client):
    await _create_client(client)
    r = await client.post(
        "/api/payments/import",
        files={"file": ("결제내역.xlsx", _payment_xlsx(), XLSX)},
        data={"year": "2025"},
    )
    assert r.status_code == 200, r.text
    assert r.json() == {"year": 2025, "imported": 2, "skipped": 1, "abnormal_count": 1, "retroactive_count": 1}

    abnormal = (await client.get("/api/payments/abnormal", params={"year": 2025})).json()
    assert [it["client_name"] for it in abnormal] == ["박없음"]
    retro = (await client.get("/api/payments/retroactive", params={"year": 2025})).json()
    assert len(retro) == 1
    item_id = retro[0]["id"]
    assert retro[0]["month"] == 2

    r = await client.put(f"/api/payments/{item_id}/check", json={"checked": True})
    assert r.status_code == 200
    assert r.json()["updated_workers"] == {"w1": True}
    assert r.json()["item"]["checked"] is True

    detail = (await client.get("/api/submissions/c1/2025/2")).json()
    assert detail["statuses"]["retroactivePayment"]["label"] == "submitted"
    w1 = detail["workers"][0]
    assert w1["flags"]["retroactive_payment"] is True
    assert [it["id"] for it in w1["retroactive_items"]] == [item_id]

    assert (await client.put("/api/payments/none/check", json={"checked": True})).status_code == 404


@pytest.mark.asyncio
async def test_payment_import_errors_keep_existing_data(client):
    r = await client.post(
        "/api/payments/import",
        files={"file": ("결제내역.xlsx", _payment_xlsx(), XLSX)},
        data={"year": "2025"},
    )
    assert r.status_code == 200
    r = await client.post(
        "/api/payments/import",
        files={"file": ("결제내역.xlsx", _payment_xlsx(), XLSX)},
        data={"year": "2023"},
    )
    assert r.status_code == 400
    r = await client.post(
        "/api/payments/import",
        files={"file": ("결제내역.xlsx", b"broken", XLSX)},
        data={"year": "2025"},
    )
    assert r.status_code == 400
    items = (await client.get("/api/payments", params={"year": 2025})).json()
    assert len(items) == 2


@pytest.mark.asyncio
async def test_base_period_settings(client):
    r = await client.put("/api/settings/base-period", json={"base_year": 2025, "base_month": 7})
    assert r.status_code == 200
    assert (await client.get("/api/settings/base-period")).json() == {"base_year": 2025, "base_month": 7}
    r = await client.put("/api/settings/base-period", json={"base_year": 2025, "base_month": 12})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_sessions_warn_about_other_users(client):
    r = await client.post("/api/sessions/login", json={"user_name": "홍길동"})
    assert r.json() == {"active_users": [], "warning": None}
    r = await client.post("/api/sessions/login", json={"user_name": "김철수"})
    assert r.json()["active_users"] == ["홍길동"]
    assert r.json()["warning"]

    await _create_client(client)
    r = await client.put(
        "/api/submissions/c1/2025/2",
        json={"worker_id": "w1", "doc_type": "schedule", "value": True},
        headers={"X-User-Name": "김철수"},
    )
    assert len(r.json()["warnings"]) == 1

    assert (await client.post("/api/sessions/force-logout")).status_code == 403
    r = await client.post("/api/sessions/force-logout", headers=ADMIN)
    assert r.json()["active_users"] == []


@pytest.mark.asyncio
async def test_admin_login_and_password_change(client):
    assert (await client.post("/api/auth/login", json={"password": "wrong"})).status_code == 401
    r = await client.post("/api/auth/login", json={"password": "admin"})
    assert r.status_code == 200
    assert r.json()["access_token"]

    assert (await client.get("/api/auth/me")).status_code == 403
    assert (await client.get("/api/auth/me", headers=ADMIN)).json() == {"role": "admin"}

    r = await client.put("/api/auth/password", json={"new_password": "n3w-pass"}, headers=ADMIN)
    assert r.status_code == 200
    assert (await client.post("/api/auth/login", json={"password": "admin"})).status_code == 401
    assert (await client.post("/api/auth/login", json={"password": "n3w-pass"})).status_code == 200


@pytest.mark.asyncio
async def test_backup_export_and_restore(client):
    await _create_client(client)
    await client.put("/api/submissions/c1/2025/2", json={"worker_id": "w1", "doc_type": "schedule", "value": True})
    r = await client.get("/api/backup/export")
    assert r.status_code == 200
    assert "caredocs_backup_" in r.headers["content-disposition"]
    doc = json.loads(r.content)
    assert doc["submissionData"]["c1-2025-2"]["workerSubmissions"]["w1"]["schedule"] is True

    await client.delete("/api/clients/c1")
    files = {"file": ("backup.json", json.dumps(doc).encode("utf-8"), "application/json")}
    r = await client.post("/api/backup/restore", files=files, data={"confirm": "yes"})
    assert r.status_code == 403
    r = await client.post("/api/backup/restore", files=files, data={"confirm": "no"}, headers=ADMIN)
    assert r.status_code == 400
    r = await client.post("/api/backup/restore", files=files, data={"confirm": "yes"}, headers=ADMIN)
    assert r.status_code == 200, r.text
    assert r.json()["restored"]["clients"] == 1
    assert (await client.get("/api/clients/c1")).status_code == 200

    bad = {"file": ("backup.json", b"{not json", "application/json")}
    r = await client.post("/api/backup/restore", files=bad, data={"confirm": "yes"}, headers=ADMIN)
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_roster_export_and_import(client):
    assert (await client.get("/api/clients/export")).status_code == 404
    await _create_client(client)
    r = await client.get("/api/clients/export")
    assert r.status_code == 200
    assert "filename*=UTF-8''" in r.headers["content-disposition"]

    files = {"file": ("clients.xlsx", r.content, XLSX)}
    r = await client.post("/api/clients/import", files=files, data={"confirm": "yes"}, headers=ADMIN)
    assert r.status_code == 200, r.text
    assert r.json()["imported"] == 1
    assert r.json()["replaced"] == 1
    body = (await client.get("/api/clients/c1")).json()
    assert [w["id"] for w in body["support_workers"]] == ["w1", "w2"]
