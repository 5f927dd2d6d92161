"""
계약 기간·서비스 기간의 월 단위 활성 판단(전부 순수 함수).

한 달(연, 월 0~11)과 기간 [start, end]가 하루라도 겹치면 활성.
종료일이 비어 있으면 2099-12-31까지로 본다. 시작일이 없거나 해석 불가면 그 기간은 매칭되지 않는다.
"""
import calendar
import re
from datetime import date, datetime
from typing import Any, Iterable, List, Optional, Tuple

OPEN_END_SENTINEL = date(2099, 12, 31)

_DATE_PREFIX = re.compile(r"^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})")


def first_day_of_month(year: int, month: int) -> date:
    """month: 0=1월"""
    return date(year, month + 1, 1)


def last_day_of_month(year: int, month: int) -> date:
    """month: 0=1월"""
    _, last = calendar.monthrange(year, month + 1)
    return date(year, month + 1, last)


def to_date(value: Any) -> Optional[date]:
    """date/datetime/"YYYY-MM-DD[...]" → date. 빈 값·해석 불가는 None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    m = _DATE_PREFIX.match(text)
    if not m:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _period_bounds(period: Any) -> Tuple[Any, Any]:
    if isinstance(period, (tuple, list)):
        start = period[0] if len(period) > 0 else None
        end = period[1] if len(period) > 1 else None
        return start, end
    return _field(period, "start"), _field(period, "end")


def is_active_in_month(periods: Iterable[Any], year: int, month: int) -> bool:
    """기간 목록 중 하나라도 (year, month)와 겹치면 True. 목록 순서와 무관."""
    month_start = first_day_of_month(year, month)
    month_end = last_day_of_month(year, month)
    for period in periods or []:
        raw_start, raw_end = _period_bounds(period)
        start = to_date(raw_start)
        if start is None:
            continue
        end = to_date(raw_end) or OPEN_END_SENTINEL
        if start <= month_end and end >= month_start:
            return True
    return False


def client_periods(client: Any) -> List[Tuple[Any, Any]]:
    """이용인 계약 기간 목록. 기간 목록이 없으면 contract_start/contract_end 한 건으로 대체."""
    periods = _field(client, "contract_periods") or []
    if periods:
        return [_period_bounds(p) for p in periods]
    return [(_field(client, "contract_start"), _field(client, "contract_end"))]


def is_client_active_in_month(client: Any, month: int, year: int) -> bool:
    return is_active_in_month(client_periods(client), year, month)


def is_worker_active_in_month(worker: Any, month: int, year: int) -> bool:
    period = (_field(worker, "service_start"), _field(worker, "service_end"))
    return is_active_in_month([period], year, month)


def active_workers(client: Any, month: int, year: int) -> list:
    """해당 월에 활동 중인 지원사(명부 순서 유지)"""
    return [
        w for w in (_field(client, "support_workers") or [])
        if is_worker_active_in_month(w, month, year)
    ]


def normalize_contract_periods(periods: Iterable[Any]) -> List[Tuple[date, date]]:
    """
    저장용 정리: 시작일 없는 기간 제거, 빈 종료일은 2099-12-31, 시작일 오름차순.
    """
    result: List[Tuple[date, date]] = []
    for period in periods or []:
        raw_start, raw_end = _period_bounds(period)
        start = to_date(raw_start)
        if start is None:
            continue
        end = to_date(raw_end) or OPEN_END_SENTINEL
        result.append((start, end))
    result.sort(key=lambda p: p[0])
    return result


def current_contract(periods: Iterable[Any]) -> Optional[Tuple[date, date]]:
    """표시용 "현재" 계약: 시작일이 가장 늦은 기간"""
    normalized = normalize_contract_periods(periods)
    return normalized[-1] if normalized else None
