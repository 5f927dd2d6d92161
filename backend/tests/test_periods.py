"""계약 기간·서비스 기간의 월 활성 판단 테스트(month 0=1월)"""
from datetime import date
from types import SimpleNamespace

from caredocs.services.periods import (
    OPEN_END_SENTINEL,
    active_workers,
    client_periods,
    current_contract,
    is_active_in_month,
    is_client_active_in_month,
    is_worker_active_in_month,
    last_day_of_month,
    normalize_contract_periods,
    to_date,
)


def test_last_day_of_month_leap_year():
    assert last_day_of_month(2024, 1) == date(2024, 2, 29)
    assert last_day_of_month(2025, 1) == date(2025, 2, 28)
    assert last_day_of_month(2025, 11) == date(2025, 12, 31)


def test_to_date():
    assert to_date("2025-03-15") == date(2025, 3, 15)
    assert to_date("2025.3.5") == date(2025, 3, 5)
    assert to_date("2025-03-15T00:00:00") == date(2025, 3, 15)
    assert to_date("") is None
    assert to_date(None) is None
    assert to_date("2025-02-30") is None
    assert to_date("미정") is None


def test_period_overlap_by_month():
    """3/15 ~ 5/10: 3·4·5월만 활성"""
    periods = [(date(2025, 3, 15), date(2025, 5, 10))]
    assert not is_active_in_month(periods, 2025, 1)
    assert is_active_in_month(periods, 2025, 2)
    assert is_active_in_month(periods, 2025, 3)
    assert is_active_in_month(periods, 2025, 4)
    assert not is_active_in_month(periods, 2025, 5)


def test_period_touching_month_edges():
    """하루만 겹쳐도 활성"""
    assert is_active_in_month([(date(2025, 1, 31), date(2025, 6, 30))], 2025, 0)
    assert is_active_in_month([(date(2024, 6, 1), date(2025, 3, 1))], 2025, 2)
    assert not is_active_in_month([(date(2024, 6, 1), date(2025, 2, 28))], 2025, 2)


def test_open_end_and_missing_start():
    assert is_active_in_month([(date(2025, 1, 1), None)], 2030, 6)
    assert is_active_in_month([("2025-01-01", "")], 2099, 11)
    assert not is_active_in_month([(None, date(2025, 12, 31))], 2025, 5)
    assert not is_active_in_month([("미정", None)], 2025, 5)
    assert not is_active_in_month([], 2025, 5)


def test_multiple_periods_any_overlap_order_independent():
    periods = [
        {"start": "2025-09-01", "end": "2025-12-31"},
        {"start": "2025-01-01", "end": "2025-03-31"},
    ]
    assert is_active_in_month(periods, 2025, 1)
    assert not is_active_in_month(periods, 2025, 5)
    assert is_active_in_month(periods, 2025, 9)
    assert is_active_in_month(list(reversed(periods)), 2025, 9)


def test_client_periods_legacy_fallback():
    """기간 목록이 없으면 contract_start/contract_end 한 건"""
    legacy = {"contract_start": "2025-02-01", "contract_end": None, "contract_periods": []}
    assert client_periods(legacy) == [("2025-02-01", None)]
    assert is_client_active_in_month(legacy, 1, 2025)
    assert not is_client_active_in_month(legacy, 0, 2025)


def test_worker_activity_and_order():
    w1 = SimpleNamespace(id="w1", service_start=date(2025, 1, 1), service_end=date(2025, 4, 30))
    w2 = SimpleNamespace(id="w2", service_start=date(2025, 3, 1), service_end=None)
    w3 = SimpleNamespace(id="w3", service_start=None, service_end=None)
    client = SimpleNamespace(support_workers=[w1, w2, w3])
    assert is_worker_active_in_month(w1, 3, 2025)
    assert not is_worker_active_in_month(w1, 4, 2025)
    assert not is_worker_active_in_month(w3, 4, 2025)
    assert [w.id for w in active_workers(client, 3, 2025)] == ["w1", "w2"]
    assert [w.id for w in active_workers(client, 5, 2025)] == ["w2"]


def test_normalize_contract_periods_and_current():
    periods = [
        {"start": "2025-07-01", "end": ""},
        {"start": "", "end": "2025-03-31"},
        {"start": "2024-01-01", "end": "2024-12-31"},
    ]
    assert normalize_contract_periods(periods) == [
        (date(2024, 1, 1), date(2024, 12, 31)),
        (date(2025, 7, 1), OPEN_END_SENTINEL),
    ]
    assert current_contract(periods) == (date(2025, 7, 1), OPEN_END_SENTINEL)
    assert current_contract([]) is None
