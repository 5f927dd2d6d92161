"""
현황표 상태 판정·제출 갱신·소급결제 재계산 단위 테스트(DB 없음).
기준: 2025년, 기준월 4(5월). 기준월+1(6월)은 일정표만 미리 입력 가능.
"""
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from caredocs.schemas import MonthRecord, PaymentItemCreate, SubmissionUpdate, WorkerFlags
from caredocs.services.dob import get_submission_key
from caredocs.services.submission_status import (
    apply_submission_update,
    build_month_detail,
    build_status_grid,
    effective_base_month,
    get_status,
    is_cell_editable,
    reconcile_retroactive,
)

BASE_YEAR = 2025
BASE_MONTH = 4


def _worker(wid, name, dob, start, end=None):
    return SimpleNamespace(id=wid, name=name, dob=dob, service_start=start, service_end=end)


def _client(cid="c1", name="김이용", dob="1990-01-05", periods=None, workers=None):
    return SimpleNamespace(
        id=cid,
        name=name,
        dob=dob,
        contract_periods=periods if periods is not None else [(date(2025, 2, 1), None)],
        support_workers=workers if workers is not None else [
            _worker("w1", "이도움", "1975-07-07", date(2025, 1, 1)),
            _worker("w2", "박도움", "1980-03-03", date(2025, 4, 1), date(2025, 8, 31)),
        ],
    )


def _item(iid, month, worker_name="이도움", worker_dob="1975-07-07", payment_type="소급결제", return_type=""):
    start = datetime(BASE_YEAR, month + 1, 10, 9, 0)
    return PaymentItemCreate(
        id=iid, year=BASE_YEAR, month=month,
        client_name="김이용", client_dob="1990-01-05", service_start=start,
        worker_name=worker_name, worker_dob=worker_dob,
        payment_type=payment_type, return_type=return_type,
    )


def _data(month, no_work=False, **flags_by_worker):
    record = MonthRecord(no_work=no_work, worker_submissions={
        wid: WorkerFlags(**flags) for wid, flags in flags_by_worker.items()
    })
    return {get_submission_key("c1", BASE_YEAR, month): record}


def _status(client, month, doc, data=None, items=()):
    return get_status(client, month, doc, data or {}, list(items), BASE_YEAR, BASE_MONTH)


# ---------- 우선순위 ----------
def test_no_contract_comes_first():
    """계약 없는 달은 기준월 이후여도 미계약"""
    client = _client(periods=[(date(2025, 2, 1), date(2025, 3, 31))])
    assert _status(client, 0, "schedule").label == "no-contract"
    assert _status(client, 8, "schedule").label == "no-contract"
    assert _status(client, 8, "schedule").text == "미계약"


def test_no_contract_even_with_no_work_and_flags():
    client = _client(periods=[(date(2025, 6, 1), None)])
    data = _data(2, no_work=True, w1={"schedule": True})
    assert _status(client, 2, "schedule", data).label == "no-contract"


def test_months_after_base_plus_one_not_applicable():
    client = _client()
    for doc in ("schedule", "weeklyReport", "retroactivePayment"):
        cell = _status(client, 6, doc)
        assert cell.label == "not-applicable"
        assert cell.editable is False


def test_next_month_only_schedule_open():
    """6월: 일정표는 무(입력 가능), 주간업무보고는 해당없음"""
    client = _client()
    schedule = _status(client, 5, "schedule")
    weekly = _status(client, 5, "weeklyReport")
    assert schedule.label == "missing"
    assert schedule.editable is True
    assert weekly.label == "not-applicable"
    assert weekly.editable is False
    assert _status(client, 5, "retroactivePayment").label == "not-applicable"


def test_no_workers_in_month():
    client = _client(workers=[_worker("w1", "이도움", "1975-07-07", date(2025, 4, 1))])
    cell = _status(client, 2, "schedule")
    assert cell.label == "no-workers"
    assert cell.text == "지원사 X"
    assert cell.editable is True


def test_no_work_overrides_worker_flags():
    client = _client()
    data = _data(3, no_work=True, w1={"schedule": False})
    assert _status(client, 3, "schedule", data).label == "no-work"
    assert _status(client, 3, "weeklyReport", data).text == "근무없음"


def test_all_active_workers_must_be_checked():
    """4월: w1, w2 둘 다 활동 중"""
    client = _client()
    partial = _data(3, w1={"schedule": True})
    assert _status(client, 3, "schedule", partial).label == "missing"
    both = _data(3, w1={"schedule": True}, w2={"schedule": True})
    assert _status(client, 3, "schedule", both).label == "submitted"
    assert _status(client, 3, "schedule", both).text == "유"
    assert _status(client, 3, "weeklyReport", both).label == "missing"


def test_inactive_worker_flags_are_ignored():
    """3월에는 w2가 활동 전이므로 w1만 보면 된다"""
    client = _client()
    data = _data(2, w1={"weekly_report": True})
    assert _status(client, 2, "weeklyReport", data).label == "submitted"


# ---------- 소급결제 ----------
def test_retroactive_not_applicable_without_qualifying_items():
    client = _client()
    items = [
        _item("p1", 3, payment_type="일반"),
        _item("p2", 3, return_type="반납"),
        _item("p3", 2),
    ]
    cell = _status(client, 3, "retroactivePayment", items=items)
    assert cell.label == "not-applicable"
    assert cell.editable is False


def test_retroactive_only_workers_with_items_count():
    client = _client()
    items = [_item("p1", 3)]
    assert _status(client, 3, "retroactivePayment", items=items).label == "missing"
    data = _data(3, w1={"retroactive_payment": True})
    assert _status(client, 3, "retroactivePayment", data, items).label == "submitted"


def test_unknown_doc_type_raises():
    with pytest.raises(ValueError):
        _status(_client(), 3, "receipt")


def test_is_cell_editable():
    assert is_cell_editable(4, "weeklyReport", 4)
    assert is_cell_editable(5, "schedule", 4)
    assert not is_cell_editable(5, "weeklyReport", 4)
    assert not is_cell_editable(6, "schedule", 4)


# ---------- 제출 갱신 ----------
def test_apply_update_sets_single_flag_without_mutating_source():
    source = _data(3, w1={"schedule": True})
    update = SubmissionUpdate(worker_id="w2", doc_type="weeklyReport", value=True)
    result = apply_submission_update(source, "c1", BASE_YEAR, 3, update)
    key = get_submission_key("c1", BASE_YEAR, 3)
    assert result[key].worker_submissions["w2"].weekly_report is True
    assert result[key].worker_submissions["w1"].schedule is True
    assert "w2" not in source[key].worker_submissions


def test_apply_no_work_clears_all_worker_flags():
    source = _data(3, w1={"schedule": True, "weekly_report": True}, w2={"retroactive_payment": True})
    result = apply_submission_update(source, "c1", BASE_YEAR, 3, SubmissionUpdate(no_work=True))
    record = result[get_submission_key("c1", BASE_YEAR, 3)]
    assert record.no_work is True
    assert all(f == WorkerFlags() for f in record.worker_submissions.values())


def test_submission_update_requires_one_form():
    with pytest.raises(ValueError):
        SubmissionUpdate(no_work=True, worker_id="w1", doc_type="schedule", value=True)
    with pytest.raises(ValueError):
        SubmissionUpdate(worker_id="w1", doc_type="schedule")
    with pytest.raises(ValueError):
        SubmissionUpdate()


# ---------- 소급 재계산 ----------
def test_reconcile_marks_worker_when_all_items_checked():
    client = _client()
    items = [_item("p1", 3), _item("p2", 3, payment_type="예외")]
    assert reconcile_retroactive(client, BASE_YEAR, 3, items, {"p1": True}) == []
    assert reconcile_retroactive(client, BASE_YEAR, 3, items, {"p1": True, "p2": True}) == [("w1", True)]


def test_reconcile_unchecks_and_skips_workers_without_items():
    client = _client()
    items = [_item("p1", 3)]
    record = MonthRecord(worker_submissions={
        "w1": WorkerFlags(retroactive_payment=True),
        "w2": WorkerFlags(retroactive_payment=True),
    })
    changes = reconcile_retroactive(client, BASE_YEAR, 3, items, {"p1": False}, record)
    assert changes == [("w1", False)]


def test_reconcile_ignores_returned_items():
    client = _client()
    items = [_item("p1", 3), _item("p2", 3, return_type="반납")]
    assert reconcile_retroactive(client, BASE_YEAR, 3, items, {"p1": True}) == [("w1", True)]


def test_reconcile_never_writes_in_no_work_month():
    client = _client()
    record = MonthRecord(no_work=True, worker_submissions={"w1": WorkerFlags()})
    assert reconcile_retroactive(client, BASE_YEAR, 3, [_item("p1", 3)], {"p1": True}, record) == []


def test_reconcile_clears_flags_without_items_on_request():
    client = _client()
    record = MonthRecord(worker_submissions={
        "w1": WorkerFlags(retroactive_payment=True),
        "w2": WorkerFlags(schedule=True, retroactive_payment=True),
    })
    changes = reconcile_retroactive(client, BASE_YEAR, 3, [_item("p1", 3)], {}, record, clear_without_items=True)
    assert changes == [("w1", False), ("w2", False)]
    assert reconcile_retroactive(client, BASE_YEAR, 3, [], {}, record, clear_without_items=True) == [
        ("w1", False), ("w2", False),
    ]


# ---------- 현황표 / 월 상세 ----------
def test_status_grid_sorted_filtered_and_searchable():
    done = _client(
        cid="c2", name="가나다",
        workers=[_worker("w9", "최도움", "1970-01-01", date(2025, 1, 1))],
        periods=[(date(2025, 7, 1), None)],
    )
    pending = _client()
    rows = build_status_grid([pending, done], {}, [], BASE_YEAR, BASE_MONTH)
    assert [r.client_name for r in rows] == ["가나다", "김이용"]
    assert len(rows[0].months) == 12
    assert set(rows[0].months[0].cells) == {"schedule", "weeklyReport", "retroactivePayment"}

    unsubmitted = build_status_grid([pending, done], {}, [], BASE_YEAR, BASE_MONTH, only_unsubmitted=True)
    assert [r.client_id for r in unsubmitted] == ["c1"]

    assert [r.client_id for r in build_status_grid([pending, done], {}, [], BASE_YEAR, BASE_MONTH, client_query="ㄱㅇ")] == ["c1"]
    assert [r.client_id for r in build_status_grid([pending, done], {}, [], BASE_YEAR, BASE_MONTH, worker_query="최")] == ["c2"]


def test_status_grid_no_work_editable():
    rows = build_status_grid([_client()], {}, [], BASE_YEAR, BASE_MONTH)
    months = rows[0].months
    assert months[0].no_work_editable is False
    assert months[4].no_work_editable is True
    assert months[5].no_work_editable is False


def test_effective_base_month():
    assert effective_base_month(2025, 2025, 4) == 4
    assert effective_base_month(2024, 2025, 4) == 11
    assert effective_base_month(2026, 2025, 4) == -2


def test_month_detail_lists_workers_payments_and_checks():
    client = _client()
    items = [_item("p1", 3), _item("p2", 3, payment_type="일반"), _item("p3", 3, worker_name="박도움", worker_dob="1980-03-03", payment_type="일반")]
    detail = build_month_detail(client, BASE_YEAR, 3, _data(3, w1={"schedule": True}), items, {"p1": True}, BASE_MONTH)
    assert detail.no_work_editable is True
    assert [w.worker_id for w in detail.workers] == ["w1", "w2"]
    w1, w2 = detail.workers
    assert w1.flags.schedule is True
    assert [p.id for p in w1.payments] == ["p1", "p2"]
    assert [p.id for p in w1.retroactive_items] == ["p1"]
    assert w1.retroactive_items[0].checked is True
    assert w1.editable["retroactivePayment"] is True
    assert w2.editable["retroactivePayment"] is False
    assert w2.editable["schedule"] is True
    assert detail.statuses["retroactivePayment"].label == "missing"
