"""CRUD - 명부, 월별 제출 데이터, 결제 내역/소급 확인, 접속 기록, 설정"""
import uuid
from datetime import datetime
from typing import Optional, List, Dict, Tuple
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from caredocs.config import settings
from caredocs.models import (
    Client, ContractPeriod, SupportWorker, MonthlySubmission, WorkerSubmission,
    PaymentItem, RetroactiveCheck, AccessLog, AppSetting, ACCESS_LOG_TYPES,
)
from caredocs.schemas import (
    ClientCreate, ClientUpdate, SupportWorkerCreate, MonthRecord, WorkerFlags,
    SubmissionUpdate, PaymentItemCreate, PaymentItemRead,
)
from caredocs.services.dob import get_submission_key, normalize_dob
from caredocs.services.payment_sheet import find_client_for_item
from caredocs.services.periods import normalize_contract_periods
from caredocs.services.submission_status import apply_submission_update, reconcile_retroactive
from caredocs.utils.hangul import is_match

SETTING_BASE_YEAR = "base_year"
SETTING_BASE_MONTH = "base_month"
SETTING_ADMIN_PASSWORD_HASH = "admin_password_hash"


def new_id() -> str:
    return uuid.uuid4().hex


# ---------- 이용인 / 활동지원사 ----------
def _client_query():
    return select(Client).options(
        selectinload(Client.contract_periods),
        selectinload(Client.support_workers),
    )


async def get_client(db: AsyncSession, client_id: str) -> Optional[Client]:
    r = await db.execute(_client_query().where(Client.id == client_id))
    return r.scalar_one_or_none()


async def list_clients(db: AsyncSession, search: Optional[str] = None) -> List[Client]:
    """이름순. search는 이름 부분 일치/초성 검색."""
    r = await db.execute(_client_query().order_by(Client.name, Client.id))
    clients = list(r.scalars().all())
    if search:
        clients = [c for c in clients if is_match(c.name, search)]
    return clients


def _build_periods(periods) -> List[ContractPeriod]:
    return [ContractPeriod(start=s, end=e) for s, e in normalize_contract_periods(periods)]


def _build_workers(workers: List[SupportWorkerCreate]) -> List[SupportWorker]:
    result = []
    seen = set()
    for pos, w in enumerate(workers):
        wid = (w.id or "").strip() or new_id()
        if wid in seen:
            raise ValueError(f"지원사 id가 중복되었습니다: {wid}")
        seen.add(wid)
        result.append(
            SupportWorker(
                id=wid,
                position=pos,
                name=w.name,
                dob=normalize_dob(w.dob),
                service_start=w.service_start,
                service_end=w.service_end,
            )
        )
    return result


async def create_client(db: AsyncSession, data: ClientCreate) -> Client:
    client = Client(
        id=(data.id or "").strip() or new_id(),
        name=data.name,
        dob=data.dob,
        family_support=data.family_support,
    )
    client.contract_periods = _build_periods(data.contract_periods)
    client.support_workers = _build_workers(data.support_workers)
    db.add(client)
    await db.flush()
    return client


async def update_client(db: AsyncSession, client: Client, data: ClientUpdate) -> Client:
    update_data = data.model_dump(exclude_unset=True, exclude={"contract_periods"})
    for k, v in update_data.items():
        if v is not None:
            setattr(client, k, v)
    if data.contract_periods is not None:
        client.contract_periods = _build_periods(data.contract_periods)
    await db.flush()
    return client


async def replace_workers(db: AsyncSession, client: Client, workers: List[SupportWorkerCreate]) -> Client:
    """지원사 목록 전체 교체(id를 유지해 보내면 제출 기록이 이어진다)"""
    client.support_workers = _build_workers(workers)
    await db.flush()
    return client


async def delete_client(db: AsyncSession, client: Client) -> None:
    await db.delete(client)


async def delete_all_clients(db: AsyncSession) -> int:
    """명부 전체 삭제(명부 가져오기·문서 복원 전). cascade로 계약 기간·지원사도 삭제. 삭제 건수 반환."""
    r = await db.execute(_client_query())
    rows = list(r.scalars().all())
    for c in rows:
        await db.delete(c)
    await db.flush()
    return len(rows)


# ---------- 월별 제출 데이터 ----------
def _record_from_row(row: Optional[MonthlySubmission]) -> MonthRecord:
    if row is None:
        return MonthRecord()
    return MonthRecord(
        no_work=row.no_work,
        worker_submissions={
            ws.worker_id: WorkerFlags(
                schedule=ws.schedule,
                weekly_report=ws.weekly_report,
                retroactive_payment=ws.retroactive_payment,
            )
            for ws in row.worker_submissions
        },
    )


async def _get_monthly_row(db: AsyncSession, client_id: str, year: int, month: int) -> Optional[MonthlySubmission]:
    r = await db.execute(
        select(MonthlySubmission)
        .options(selectinload(MonthlySubmission.worker_submissions))
        .where(
            MonthlySubmission.client_id == client_id,
            MonthlySubmission.year == year,
            MonthlySubmission.month == month,
        )
    )
    return r.scalar_one_or_none()


async def get_month_record(db: AsyncSession, client_id: str, year: int, month: int) -> MonthRecord:
    return _record_from_row(await _get_monthly_row(db, client_id, year, month))


async def load_submission_data(db: AsyncSession, year: Optional[int] = None) -> Dict[str, MonthRecord]:
    """{제출 키: MonthRecord}. year 지정 시 그 연도만."""
    q = select(MonthlySubmission).options(selectinload(MonthlySubmission.worker_submissions))
    if year is not None:
        q = q.where(MonthlySubmission.year == year)
    r = await db.execute(q)
    return {
        get_submission_key(row.client_id, row.year, row.month): _record_from_row(row)
        for row in r.scalars().all()
    }


async def replace_month_record(
    db: AsyncSession, client_id: str, year: int, month: int, record: MonthRecord
) -> MonthRecord:
    """한 달 레코드를 통째로 교체(없으면 생성)"""
    row = await _get_monthly_row(db, client_id, year, month)
    if row is None:
        row = MonthlySubmission(client_id=client_id, year=year, month=month, worker_submissions=[])
        db.add(row)
    row.no_work = record.no_work
    # 같은 worker_id 행은 제자리 갱신(삭제 후 재삽입하면 flush 순서상 unique 제약 위반)
    existing = {ws.worker_id: ws for ws in row.worker_submissions}
    for wid, ws in existing.items():
        if wid not in record.worker_submissions:
            row.worker_submissions.remove(ws)
    for wid, flags in record.worker_submissions.items():
        ws = existing.get(wid)
        if ws is None:
            ws = WorkerSubmission(worker_id=wid)
            row.worker_submissions.append(ws)
        ws.schedule = flags.schedule
        ws.weekly_report = flags.weekly_report
        ws.retroactive_payment = flags.retroactive_payment
    row.updated_at = datetime.utcnow()
    await db.flush()
    return record


async def save_submission(
    db: AsyncSession, client_id: str, year: int, month: int, update: SubmissionUpdate
) -> MonthRecord:
    """
    현재 레코드에 update를 반영한 복사본으로 교체. no_work=True면 지원사 플래그 전부 해제.
    no_work=False로 풀면 소급결제 플래그를 결제 체크 기준으로 다시 맞춘다.
    """
    key = get_submission_key(client_id, year, month)
    current = await get_month_record(db, client_id, year, month)
    record = apply_submission_update({key: current}, client_id, year, month, update)[key]
    if update.no_work is False:
        client = await get_client(db, client_id)
        if client is not None:
            changes = reconcile_retroactive(
                client, year, month,
                await list_payment_items(db, year=year), await load_retro_checks(db), record,
            )
            record = _with_retroactive_flags(record, changes)
    return await replace_month_record(db, client_id, year, month, record)


def _with_retroactive_flags(record: MonthRecord, changes: List[Tuple[str, bool]]) -> MonthRecord:
    if not changes:
        return record
    record = record.model_copy(deep=True)
    for worker_id, value in changes:
        flags = record.worker_submissions.get(worker_id) or WorkerFlags()
        flags.retroactive_payment = value
        record.worker_submissions[worker_id] = flags
    return record


async def delete_all_submissions(db: AsyncSession) -> int:
    r = await db.execute(select(MonthlySubmission).options(selectinload(MonthlySubmission.worker_submissions)))
    rows = list(r.scalars().all())
    for row in rows:
        await db.delete(row)
    await db.flush()
    return len(rows)


# ---------- 결제 내역 / 소급 확인 ----------
def payment_item_read(item: PaymentItem) -> PaymentItemRead:
    read = PaymentItemRead.model_validate(item)
    read.checked = bool(item.retroactive_check and item.retroactive_check.checked)
    return read


async def list_payment_items(db: AsyncSession, year: Optional[int] = None) -> List[PaymentItem]:
    q = select(PaymentItem).options(selectinload(PaymentItem.retroactive_check))
    if year is not None:
        q = q.where(PaymentItem.year == year)
    r = await db.execute(q.order_by(PaymentItem.service_start, PaymentItem.id))
    return list(r.scalars().all())


async def get_payment_item(db: AsyncSession, item_id: str) -> Optional[PaymentItem]:
    r = await db.execute(
        select(PaymentItem)
        .options(selectinload(PaymentItem.retroactive_check))
        .where(PaymentItem.id == item_id)
    )
    return r.scalar_one_or_none()


async def replace_payment_items(db: AsyncSession, year: int, items: List[PaymentItemCreate]) -> int:
    """해당 연도 결제 내역(및 소급 확인)을 지우고 새 목록으로 교체. 다른 연도는 그대로. 기존 삭제 건수 반환."""
    year_ids = select(PaymentItem.id).where(PaymentItem.year == year)
    await db.execute(delete(RetroactiveCheck).where(RetroactiveCheck.payment_item_id.in_(year_ids)))
    r = await db.execute(delete(PaymentItem).where(PaymentItem.year == year))
    for it in items:
        db.add(PaymentItem(**it.model_dump()))
    await db.flush()
    return r.rowcount or 0


async def delete_all_payment_items(db: AsyncSession) -> None:
    await db.execute(delete(RetroactiveCheck))
    await db.execute(delete(PaymentItem))
    await db.flush()


async def load_retro_checks(db: AsyncSession) -> Dict[str, bool]:
    r = await db.execute(select(RetroactiveCheck))
    return {c.payment_item_id: c.checked for c in r.scalars().all()}


async def set_retro_check_value(db: AsyncSession, item: PaymentItem, checked: bool) -> None:
    if item.retroactive_check is None:
        item.retroactive_check = RetroactiveCheck(payment_item_id=item.id, checked=checked)
    else:
        item.retroactive_check.checked = checked
    await db.flush()


async def set_retroactive_check(db: AsyncSession, item: PaymentItem, checked: bool) -> Dict[str, bool]:
    """
    결제 건 증빙 체크 저장 후, 그 이용인·월의 지원사 소급결제 플래그를 재계산해 바뀐 것만 저장.
    반환: {worker_id: 새 값}. 명부에 없는 이용인의 결제이거나 근무 없음인 달이면 체크만 저장하고 빈 dict.
    """
    await set_retro_check_value(db, item, checked)
    client = find_client_for_item(item, await list_clients(db))
    if client is None:
        return {}
    items = await list_payment_items(db, year=item.year)
    checks = await load_retro_checks(db)
    record = await get_month_record(db, client.id, item.year, item.month)
    changes = reconcile_retroactive(client, item.year, item.month, items, checks, record)
    for worker_id, value in changes:
        await save_submission(
            db, client.id, item.year, item.month,
            SubmissionUpdate(worker_id=worker_id, doc_type="retroactivePayment", value=value),
        )
    return dict(changes)


async def reconcile_year_retroactive(db: AsyncSession, year: int) -> int:
    """
    결제 내역 교체 후 그 연도 전체의 소급결제 플래그를 새 결제/체크 기준으로 다시 맞춘다.
    결제가 없어진 지원사의 켜진 플래그도 해제. 반환: 바뀐 플래그 수.
    """
    items = await list_payment_items(db, year=year)
    checks = await load_retro_checks(db)
    submission_data = await load_submission_data(db, year=year)
    changed = 0
    for client in await list_clients(db):
        for month in range(12):
            record = submission_data.get(get_submission_key(client.id, year, month))
            changes = reconcile_retroactive(
                client, year, month, items, checks, record, clear_without_items=True,
            )
            if changes:
                await replace_month_record(
                    db, client.id, year, month, _with_retroactive_flags(record or MonthRecord(), changes)
                )
                changed += len(changes)
    return changed


# ---------- 접속 기록 ----------
async def add_access_log(
    db: AsyncSession, user_name: str, log_type: str, timestamp: Optional[datetime] = None
) -> AccessLog:
    if log_type not in ACCESS_LOG_TYPES:
        raise ValueError(f"log type must be one of {ACCESS_LOG_TYPES}")
    log = AccessLog(user_name=user_name.strip(), type=log_type, timestamp=timestamp or datetime.utcnow())
    db.add(log)
    await db.flush()
    return log


async def list_access_logs(db: AsyncSession, limit: Optional[int] = None) -> List[AccessLog]:
    """시간순(오래된 것부터). limit 지정 시 최근 limit건."""
    q = select(AccessLog).order_by(AccessLog.timestamp.desc(), AccessLog.id.desc())
    if limit:
        q = q.limit(limit)
    r = await db.execute(q)
    return list(reversed(r.scalars().all()))


async def delete_all_access_logs(db: AsyncSession) -> None:
    await db.execute(delete(AccessLog))
    await db.flush()


# ---------- 설정 ----------
async def get_setting(db: AsyncSession, key: str) -> Optional[str]:
    r = await db.execute(select(AppSetting).where(AppSetting.key == key))
    row = r.scalar_one_or_none()
    return row.value if row else None


async def set_setting(db: AsyncSession, key: str, value: str) -> None:
    r = await db.execute(select(AppSetting).where(AppSetting.key == key))
    row = r.scalar_one_or_none()
    if row is None:
        db.add(AppSetting(key=key, value=value))
    else:
        row.value = value
    await db.flush()


async def get_base_period(db: AsyncSession) -> Tuple[int, int]:
    """(기준 연도, 기준 월 0~11). DB에 없으면 설정 기본값."""
    year = await get_setting(db, SETTING_BASE_YEAR)
    month = await get_setting(db, SETTING_BASE_MONTH)
    return (
        int(year) if year is not None else settings.default_base_year,
        int(month) if month is not None else settings.default_base_month,
    )


async def set_base_period(db: AsyncSession, year: int, month: int) -> None:
    await set_setting(db, SETTING_BASE_YEAR, str(year))
    await set_setting(db, SETTING_BASE_MONTH, str(month))
