"""
전체 데이터 JSON 문서(백업 파일) 생성과 복원.

문서 필드: baseYear, baseMonth, clients[], submissionData{}, paymentItems[],
retroactiveSubmissions{}, accessLogs[], adminSettings{}, savedAt.
구버전 문서 호환: paymentItems 대신 retroactiveData, contractHistory 없는 이용인,
연도 없는 제출 키("{id}-{month}"), loginTime/logoutTime 형태의 접속 기록.
복원은 전체 덮어쓰기(마지막 저장이 이김). 문서 검증이 끝나기 전에는 아무것도 지우지 않는다.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from caredocs import crud
from caredocs.security import hash_password
from caredocs.schemas import (
    ClientCreate, ContractPeriodSchema, MonthRecord, PaymentItemCreate, SupportWorkerCreate, WorkerFlags,
)
from caredocs.services.dob import normalize_dob, parse_submission_key
from caredocs.services.document_migration import migrate_legacy_keys
from caredocs.services.payment_sheet import parse_timestamp
from caredocs.services.periods import OPEN_END_SENTINEL, to_date

logger = logging.getLogger(__name__)


class DocumentError(ValueError):
    """복원할 수 없는 문서"""


def _iso(d) -> str:
    return d.isoformat() if d else ""


# ---------- 내보내기 ----------
def client_to_document(client) -> dict:
    periods = sorted(client.contract_periods, key=lambda p: p.start)
    latest = periods[-1] if periods else None
    return {
        "id": client.id,
        "name": client.name,
        "dob": client.dob,
        "contractStart": _iso(latest.start) if latest else "",
        "contractEnd": _iso(latest.end) if latest else "",
        "contractHistory": [{"start": _iso(p.start), "end": _iso(p.end)} for p in periods],
        "familySupport": bool(client.family_support),
        "supportWorkers": [
            {
                "id": w.id,
                "name": w.name,
                "dob": w.dob,
                "servicePeriod": {"start": _iso(w.service_start), "end": _iso(w.service_end)},
            }
            for w in client.support_workers
        ],
    }


def record_to_document(record: MonthRecord) -> dict:
    return {
        "noWork": record.no_work,
        "workerSubmissions": {
            wid: {
                "schedule": f.schedule,
                "weeklyReport": f.weekly_report,
                "retroactivePayment": f.retroactive_payment,
            }
            for wid, f in record.worker_submissions.items()
        },
    }


def payment_item_to_document(item) -> dict:
    return {
        "id": item.id,
        "clientName": item.client_name,
        "clientDob": item.client_dob,
        "serviceStart": item.service_start.isoformat(),
        "serviceEnd": item.service_end.isoformat() if item.service_end else "",
        "workerName": item.worker_name,
        "workerDob": item.worker_dob,
        "paymentType": item.payment_type,
        "returnType": item.return_type,
        "reason": item.reason or "",
        "month": item.month,
        "year": item.year,
    }


async def build_document(db: AsyncSession) -> dict:
    base_year, base_month = await crud.get_base_period(db)
    clients = await crud.list_clients(db)
    submission_data = await crud.load_submission_data(db)
    items = await crud.list_payment_items(db)
    checks = await crud.load_retro_checks(db)
    logs = await crud.list_access_logs(db)
    password_hash = await crud.get_setting(db, crud.SETTING_ADMIN_PASSWORD_HASH)
    return {
        "baseYear": base_year,
        "baseMonth": base_month,
        "clients": [client_to_document(c) for c in clients],
        "submissionData": {k: record_to_document(v) for k, v in sorted(submission_data.items())},
        "paymentItems": [payment_item_to_document(it) for it in items],
        "retroactiveSubmissions": checks,
        "accessLogs": [
            {"userName": log.user_name, "type": log.type, "timestamp": log.timestamp.isoformat()}
            for log in logs
        ],
        "adminSettings": {"passwordHash": password_hash} if password_hash else {},
        "savedAt": datetime.utcnow().isoformat(),
    }


# ---------- 복원 ----------
def client_from_document(data: dict) -> ClientCreate:
    history = data.get("contractHistory") or []
    if not history and data.get("contractStart"):
        history = [{"start": data.get("contractStart"), "end": data.get("contractEnd")}]
    periods = []
    for p in history:
        if not isinstance(p, dict):
            continue
        start = to_date(p.get("start"))
        if start is None:
            continue
        periods.append(ContractPeriodSchema(start=start, end=to_date(p.get("end")) or OPEN_END_SENTINEL))
    workers = []
    for w in data.get("supportWorkers") or []:
        if not isinstance(w, dict):
            continue
        sp = w.get("servicePeriod") or {}
        workers.append(
            SupportWorkerCreate(
                id=str(w.get("id") or "") or None,
                name=str(w.get("name") or "").strip() or "(이름 없음)",
                dob=w.get("dob") or "",
                service_start=to_date(sp.get("start")),
                service_end=to_date(sp.get("end")),
            )
        )
    return ClientCreate(
        id=str(data.get("id") or "") or None,
        name=str(data.get("name") or "").strip(),
        dob=data.get("dob") or "",
        family_support=bool(data.get("familySupport")),
        contract_periods=periods,
        support_workers=workers,
    )


def record_from_document(data: dict) -> MonthRecord:
    return MonthRecord(
        no_work=bool(data.get("noWork")),
        worker_submissions={
            str(wid): WorkerFlags(
                schedule=bool(f.get("schedule")),
                weekly_report=bool(f.get("weeklyReport")),
                retroactive_payment=bool(f.get("retroactivePayment")),
            )
            for wid, f in (data.get("workerSubmissions") or {}).items()
            if isinstance(f, dict)
        },
    )


def payment_item_from_document(data: dict) -> Optional[PaymentItemCreate]:
    start = parse_timestamp(data.get("serviceStart"))
    if start is None or not data.get("id") or not data.get("clientName"):
        return None
    return PaymentItemCreate(
        id=str(data["id"]),
        year=start.year,
        month=start.month - 1,
        client_name=str(data["clientName"]).strip(),
        client_dob=normalize_dob(data.get("clientDob")),
        service_start=start,
        service_end=parse_timestamp(data.get("serviceEnd")),
        worker_name=str(data.get("workerName") or "").strip(),
        worker_dob=normalize_dob(data.get("workerDob")),
        payment_type=str(data.get("paymentType") or ""),
        return_type=str(data.get("returnType") or ""),
        reason=data.get("reason") or None,
    )


def access_logs_from_document(entries: List[dict]) -> List[tuple]:
    """(user_name, type, timestamp) 목록. 구버전 loginTime/logoutTime 형태도 변환."""
    result = []
    for e in entries or []:
        user = str(e.get("userName") or "").strip()
        if not user:
            continue
        if e.get("type") in ("login", "logout"):
            ts = parse_timestamp(e.get("timestamp"))
            if ts:
                result.append((user, e["type"], ts))
            continue
        login = parse_timestamp(e.get("loginTime"))
        if login:
            result.append((user, "login", login))
        logout = parse_timestamp(e.get("logoutTime"))
        if logout:
            result.append((user, "logout", logout))
    return result


def parse_document(doc: Any) -> dict:
    """문서 검증·정리. 쓰기 전에 실패해야 하는 오류는 DocumentError."""
    if not isinstance(doc, dict) or not isinstance(doc.get("clients"), list):
        raise DocumentError("올바른 데이터 파일이 아닙니다: clients 목록이 없습니다.")
    now = datetime.now()
    try:
        base_year = int(doc.get("baseYear") or now.year)
        base_month = int(doc.get("baseMonth") if doc.get("baseMonth") is not None else now.month - 1)
    except (TypeError, ValueError) as e:
        raise DocumentError(f"기준 연/월이 올바르지 않습니다: {e}") from e
    if not 0 <= base_month <= 11:
        raise DocumentError(f"기준 월이 올바르지 않습니다: {base_month}")

    clients = []
    for i, c in enumerate(doc["clients"], 1):
        if not isinstance(c, dict):
            raise DocumentError(f"이용인 {i}번째 항목이 올바르지 않습니다.")
        try:
            clients.append(client_from_document(c))
        except ValueError as e:
            raise DocumentError(f"이용인 {i}번째 항목 처리 중 오류: {e}") from e
    ids = [c.id for c in clients if c.id]
    if len(ids) != len(set(ids)):
        raise DocumentError("이용인 id가 중복되었습니다.")

    raw_submissions, _ = migrate_legacy_keys(doc.get("submissionData") or {}, base_year)
    records = {}
    for key, value in raw_submissions.items():
        parsed = parse_submission_key(key)
        if parsed is None or not isinstance(value, dict):
            logger.warning("해석할 수 없는 제출 키 건너뜀: %s", key)
            continue
        records[parsed] = record_from_document(value)

    raw_items = doc.get("paymentItems")
    if raw_items is None:
        raw_items = doc.get("retroactiveData") or []
    items = []
    seen_ids = set()
    for raw in raw_items:
        item = payment_item_from_document(raw) if isinstance(raw, dict) else None
        if item is None or item.id in seen_ids:
            continue
        seen_ids.add(item.id)
        items.append(item)

    checks = {
        str(k): bool(v) for k, v in (doc.get("retroactiveSubmissions") or {}).items() if str(k) in seen_ids
    }
    return {
        "base_year": base_year,
        "base_month": base_month,
        "clients": clients,
        "records": records,
        "items": items,
        "checks": checks,
        "access_logs": access_logs_from_document(doc.get("accessLogs") or []),
        "admin_settings": doc.get("adminSettings") or {},
    }


async def apply_document(db: AsyncSession, doc: Any) -> Dict[str, int]:
    """문서로 전체 데이터 교체. 반환: 항목별 복원 건수."""
    parsed = parse_document(doc)
    await crud.delete_all_clients(db)
    await crud.delete_all_submissions(db)
    await crud.delete_all_payment_items(db)
    await crud.delete_all_access_logs(db)

    for c in parsed["clients"]:
        await crud.create_client(db, c)
    for (client_id, year, month), record in parsed["records"].items():
        await crud.replace_month_record(db, client_id, year, month, record)
    years = sorted({it.year for it in parsed["items"]})
    for year in years:
        await crud.replace_payment_items(db, year, [it for it in parsed["items"] if it.year == year])
    for item_id, checked in parsed["checks"].items():
        item = await crud.get_payment_item(db, item_id)
        if item is not None:
            await crud.set_retro_check_value(db, item, checked)
    for user, log_type, ts in parsed["access_logs"]:
        await crud.add_access_log(db, user, log_type, ts)
    await crud.set_base_period(db, parsed["base_year"], parsed["base_month"])

    admin = parsed["admin_settings"]
    if admin.get("passwordHash"):
        await crud.set_setting(db, crud.SETTING_ADMIN_PASSWORD_HASH, str(admin["passwordHash"]))
    elif admin.get("password"):
        await crud.set_setting(db, crud.SETTING_ADMIN_PASSWORD_HASH, hash_password(str(admin["password"])))

    summary = {
        "clients": len(parsed["clients"]),
        "submissions": len(parsed["records"]),
        "payment_items": len(parsed["items"]),
        "retroactive_checks": len(parsed["checks"]),
        "access_logs": len(parsed["access_logs"]),
    }
    logger.info("데이터 문서 복원 완료: %s", summary)
    return summary
