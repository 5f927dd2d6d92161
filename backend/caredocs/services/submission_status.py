"""
이용인 × 월 × 서류 상태 판정과 제출 데이터 갱신(순수 함수).

상태는 아래 우선순위로 처음 해당하는 것 하나:
  1. 계약 없음 → 미계약
  2. 기준월+1 초과 → 해당없음
  3. 기준월+1 의 주간업무보고/소급결제 → 해당없음(일정표만 미리 제출 가능)
  4. 활동 지원사 없음 → 지원사 X
  5. 근무 없음 표시 → 근무없음
  6. 소급결제: 소급/예외 결제가 있는 지원사가 없으면 해당없음, 있으면 전원 체크 시 유
  7. 일정표/주간업무보고: 활동 지원사 전원 체크 시 유
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from caredocs.schemas import (
    ClientStatusRow, MonthDetailResponse, MonthRecord, MonthStatus, PaymentItemRead, StatusCell,
    SubmissionUpdate, WorkerFlags, WorkerMonthDetail,
)
from caredocs.services.dob import get_submission_key
from caredocs.services.payment_sheet import client_month_payments
from caredocs.services.periods import active_workers, is_client_active_in_month
from caredocs.utils.hangul import is_match

DOC_TYPES = {
    "schedule": "일정표",
    "weeklyReport": "주간업무보고",
    "retroactivePayment": "소급결제",
}
# 문서 키 → WorkerFlags 필드명
DOC_TYPE_FIELDS = {
    "schedule": "schedule",
    "weeklyReport": "weekly_report",
    "retroactivePayment": "retroactive_payment",
}
NEXT_MONTH_DOC_TYPES = ("schedule",)

STATUS_TEXT = {
    "submitted": "유",
    "missing": "무",
    "not-applicable": "해당없음",
    "no-workers": "지원사 X",
    "no-contract": "미계약",
    "no-work": "근무없음",
}
UNSUBMITTED_LABELS = ("missing", "no-workers")

SubmissionData = Mapping[str, MonthRecord]


def _cell(label: str, editable: bool = False) -> StatusCell:
    return StatusCell(label=label, text=STATUS_TEXT[label], editable=editable)


def is_cell_editable(month: int, doc_type: str, base_month: int) -> bool:
    """기준월 이하, 또는 기준월+1 의 일정표만 입력 가능"""
    return month <= base_month or (month == base_month + 1 and doc_type in NEXT_MONTH_DOC_TYPES)


def is_no_work_editable(month: int, base_month: int) -> bool:
    return month <= base_month


def month_record(submission_data: SubmissionData, client_id: str, year: int, month: int) -> MonthRecord:
    return submission_data.get(get_submission_key(client_id, year, month)) or MonthRecord()


def worker_flag(record: MonthRecord, worker_id: str, doc_type: str) -> bool:
    flags = record.worker_submissions.get(worker_id)
    return bool(flags and getattr(flags, DOC_TYPE_FIELDS[doc_type]))


def workers_with_retroactive_items(
    client: Any, month: int, year: int, payment_items: Iterable[Any]
) -> List[Tuple[Any, list]]:
    """활동 지원사 중 그 달 소급/예외 결제(반납/과오 제외)가 1건 이상인 지원사와 그 결제 목록"""
    items = list(payment_items)
    result = []
    for worker in active_workers(client, month, year):
        qualifying = client_month_payments(client, worker, year, month, items, retro_only=True)
        if qualifying:
            result.append((worker, qualifying))
    return result


def get_status(
    client: Any,
    month: int,
    doc_type: str,
    submission_data: SubmissionData,
    payment_items: Iterable[Any],
    base_year: int,
    base_month: int,
) -> StatusCell:
    if doc_type not in DOC_TYPES:
        raise ValueError(f"알 수 없는 서류 종류: {doc_type}")
    if not is_client_active_in_month(client, month, base_year):
        return _cell("no-contract")
    if month > base_month + 1:
        return _cell("not-applicable")
    if month == base_month + 1 and doc_type not in NEXT_MONTH_DOC_TYPES:
        return _cell("not-applicable")

    editable = is_cell_editable(month, doc_type, base_month)
    workers = active_workers(client, month, base_year)
    if not workers:
        return _cell("no-workers", editable)
    record = month_record(submission_data, client.id, base_year, month)
    if record.no_work:
        return _cell("no-work", editable)

    if doc_type == "retroactivePayment":
        targets = [w for w, _ in workers_with_retroactive_items(client, month, base_year, payment_items)]
        if not targets:
            return _cell("not-applicable")
    else:
        targets = workers
    submitted = all(worker_flag(record, w.id, doc_type) for w in targets)
    return _cell("submitted" if submitted else "missing", editable)


def apply_submission_update(
    submission_data: SubmissionData,
    client_id: str,
    year: int,
    month: int,
    update: SubmissionUpdate,
) -> Dict[str, MonthRecord]:
    """제출 데이터에 한 건 반영한 새 매핑을 돌려준다(원본 불변). no_work=True면 그 달 지원사 플래그 전부 해제."""
    key = get_submission_key(client_id, year, month)
    result = {k: v.model_copy(deep=True) for k, v in submission_data.items()}
    record = result.get(key) or MonthRecord()
    if update.no_work is not None:
        record.no_work = update.no_work
        if update.no_work:
            record.worker_submissions = {wid: WorkerFlags() for wid in record.worker_submissions}
    else:
        flags = record.worker_submissions.get(update.worker_id) or WorkerFlags()
        setattr(flags, DOC_TYPE_FIELDS[update.doc_type], update.value)
        record.worker_submissions[update.worker_id] = flags
    result[key] = record
    return result


def reconcile_retroactive(
    client: Any,
    year: int,
    month: int,
    payment_items: Iterable[Any],
    retro_checks: Mapping[str, bool],
    record: Optional[MonthRecord] = None,
    clear_without_items: bool = False,
) -> List[Tuple[str, bool]]:
    """
    결제 건별 증빙 체크 → 지원사 소급결제 플래그 재계산.
    소급/예외 결제가 있는 활동 지원사마다 "그 결제가 전부 체크됨"을 계산하고,
    저장된 플래그와 다른 것만 (worker_id, 값)으로 돌려준다. 결제가 없는 지원사는 건드리지 않는다.
    clear_without_items=True면 결제가 없는데 플래그가 켜진 지원사도 False로 돌린다(연도 재업로드).
    근무 없음인 달은 플래그를 쓰지 않는다.
    """
    record = record or MonthRecord()
    if record.no_work:
        return []
    changes = []
    with_items = set()
    for worker, items in workers_with_retroactive_items(client, month, year, payment_items):
        with_items.add(worker.id)
        all_checked = all(retro_checks.get(it.id, False) for it in items)
        if worker_flag(record, worker.id, "retroactivePayment") != all_checked:
            changes.append((worker.id, all_checked))
    if clear_without_items:
        for worker_id, flags in record.worker_submissions.items():
            if worker_id not in with_items and flags.retroactive_payment:
                changes.append((worker_id, False))
    return changes


def build_status_grid(
    clients: Iterable[Any],
    submission_data: SubmissionData,
    payment_items: Iterable[Any],
    base_year: int,
    base_month: int,
    only_unsubmitted: bool = False,
    client_query: str = "",
    worker_query: str = "",
) -> List[ClientStatusRow]:
    """미제출 현황표: 이름순 이용인 × 12개월 × 3개 서류"""
    items = list(payment_items)
    rows = []
    for client in sorted(clients, key=lambda c: c.name):
        if client_query and not is_match(client.name, client_query):
            continue
        if worker_query and not any(is_match(w.name, worker_query) for w in client.support_workers):
            continue
        months = []
        for month in range(12):
            cells = {
                doc: get_status(client, month, doc, submission_data, items, base_year, base_month)
                for doc in DOC_TYPES
            }
            months.append(
                MonthStatus(
                    month=month,
                    no_work_editable=(
                        is_no_work_editable(month, base_month)
                        and is_client_active_in_month(client, month, base_year)
                    ),
                    cells=cells,
                )
            )
        if only_unsubmitted and not any(
            cell.label in UNSUBMITTED_LABELS for m in months for cell in m.cells.values()
        ):
            continue
        rows.append(
            ClientStatusRow(client_id=client.id, client_name=client.name, client_dob=client.dob, months=months)
        )
    return rows


def effective_base_month(year: int, base_year: int, base_month: int) -> int:
    """지난 연도는 12월까지 마감된 것으로 본다. 다음 연도 이후는 -2(모든 달 해당없음)."""
    if year < base_year:
        return 11
    if year > base_year:
        return -2
    return base_month


def _item_read(item: Any, retro_checks: Mapping[str, bool]) -> PaymentItemRead:
    read = PaymentItemRead.model_validate(item)
    read.checked = bool(retro_checks.get(read.id, False))
    return read


def build_month_detail(
    client: Any,
    year: int,
    month: int,
    submission_data: SubmissionData,
    payment_items: Iterable[Any],
    retro_checks: Mapping[str, bool],
    base_month: int,
) -> MonthDetailResponse:
    """이용인 한 달 상세: 활동 지원사별 플래그·입력 가능 여부, 그 달 결제와 소급 건(체크 상태 포함)"""
    items = list(payment_items)
    record = month_record(submission_data, client.id, year, month)
    statuses = {
        doc: get_status(client, month, doc, submission_data, items, year, base_month) for doc in DOC_TYPES
    }
    workers = []
    for w in active_workers(client, month, year):
        payments = client_month_payments(client, w, year, month, items)
        retro = client_month_payments(client, w, year, month, items, retro_only=True)
        editable = {
            doc: statuses[doc].editable and not record.no_work and (doc != "retroactivePayment" or bool(retro))
            for doc in DOC_TYPES
        }
        workers.append(
            WorkerMonthDetail(
                worker_id=w.id,
                name=w.name,
                dob=w.dob,
                flags=record.worker_submissions.get(w.id) or WorkerFlags(),
                editable=editable,
                payments=[_item_read(it, retro_checks) for it in payments],
                retroactive_items=[_item_read(it, retro_checks) for it in retro],
            )
        )
    return MonthDetailResponse(
        client_id=client.id,
        client_name=client.name,
        year=year,
        month=month,
        no_work=record.no_work,
        no_work_editable=is_no_work_editable(month, base_month) and is_client_active_in_month(client, month, year),
        statuses=statuses,
        workers=workers,
    )
