"""
결제 내역 엑셀 → 결제 항목(PaymentItem) 변환과 분류.

읽기(read_payment_workbook)는 pandas로 첫 번째 시트를 헤더 없이 읽어 행 dict 목록을 만든다.
- header: 처음 10행 안에서 대상자명 열이 있는 행을 헤더로 보고, 별칭으로 열을 찾는다
  (같은 헤더가 두 번 나오면 "생년월일", "생년월일_1"처럼 서로 다른 키로 구분).
- fixed: 첫 행을 건너뛰고 열 위치로 읽는다.
파일 자체를 못 읽거나 필수 열이 없으면 PaymentSheetError(업로드 전체 중단, 기존 데이터 유지).

변환(parse_payment_sheet)은 행 단위: 대상자명·시작시간 없는 행, 다른 연도 행은 조용히 제외.
분류는 항상 부분 문자열 포함 여부로 판단한다("소급"/"예외", "반납"/"과오").
"""
import logging
import re
from collections import Counter
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd
from openpyxl.utils.datetime import from_excel

from caredocs.schemas import PaymentItemCreate
from caredocs.services.dob import normalize_dob, simple_hash

logger = logging.getLogger(__name__)

RETURNED_MARKERS = ("반납", "과오")
RETROACTIVE_MARKERS = ("소급", "예외")

# 필드 → 허용 헤더 별칭(공백 제거 후 비교). 순서대로 매칭, 한 열은 한 필드에만 배정
COLUMN_ALIASES: Dict[str, List[str]] = {
    "client_name": ["대상자명", "이용인명", "수급자명", "이용인이름"],
    "worker_name": ["제공인력명", "활동지원사명", "활동지원사이름"],
    "worker_dob": ["제공인력생년월일", "활동지원사생년월일", "생년월일_1"],
    "client_dob": ["대상자생년월일", "이용인생년월일", "생년월일"],
    "service_start": ["서비스시작시간", "시작시간"],
    "service_end": ["서비스종료시간", "종료시간"],
    "payment_type": ["결제구분"],
    "return_type": ["반납구분"],
    "reason": ["사유", "소급결제사유"],
}
REQUIRED_FIELDS = ("client_name", "service_start")
REQUIRED_LABELS = {"client_name": "대상자명", "service_start": "서비스시작시간"}

# 고정 위치 양식(첫 행은 제목/헤더로 건너뜀)
FIXED_COLUMNS = [
    "client_name", "client_dob", "service_start", "service_end",
    "worker_name", "worker_dob", "payment_type", "return_type", "reason",
]
HEADER_SCAN_ROWS = 10
ALLOWED_EXTENSIONS = (".xlsx",)

_WHITESPACE = re.compile(r"\s+")
_TIMESTAMP = re.compile(
    r"^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})(?:[T\s]+(\d{1,2}):(\d{2})(?::(\d{2}))?)?"
)
# 20250315, 20250315 0900, 20250315 09:00, 20250315090000
_TIMESTAMP_COMPACT = re.compile(r"^(\d{4})(\d{2})(\d{2})(?:[T\s]*(\d{2}):?(\d{2})(?::?(\d{2}))?)?$")


class PaymentSheetError(ValueError):
    """결제 내역 엑셀을 해석할 수 없음(파일 손상, 필수 열 없음 등)"""


# ---------- 셀 값 ----------
def _cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, float) and value != value:
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, str):
        s = value.strip()
        return s or None
    return value


def _text(value: Any) -> str:
    value = _cell(value)
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _header_key(value: Any) -> str:
    return _WHITESPACE.sub("", _text(value))


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    서비스 시작/종료 시간 해석. datetime/date, 엑셀 일련번호, "YYYY-MM-DD[ HH:MM[:SS]]"
    ('-', '/', '.' 구분, 'T' 허용), 붙여 쓴 "YYYYMMDD[ HHMM[SS]]". 해석 불가면 None.
    """
    value = _cell(value)
    if value is None:
        return None
    if isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, value.hour, value.minute, value.second)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        # 숫자 셀 20250315 는 일련번호 범위를 훨씬 넘으므로 날짜로 읽는다
        if float(value).is_integer() and 10_000_000 <= value < 100_000_000:
            value = str(int(value))
        else:
            return _from_serial(float(value))
    text = str(value).strip()
    m = _TIMESTAMP.match(text) or _TIMESTAMP_COMPACT.match(text)
    if m:
        y, mo, d, hh, mm, ss = m.groups()
        try:
            return datetime(int(y), int(mo), int(d), int(hh or 0), int(mm or 0), int(ss or 0))
        except ValueError:
            return None
    try:
        return _from_serial(float(text))
    except ValueError:
        return None


def _from_serial(serial: float) -> Optional[datetime]:
    # 1900-01-01 ~ 9999-12-31 범위의 엑셀 일련번호만 인정
    if not 1 <= serial < 2958466:
        return None
    result = from_excel(serial)
    if isinstance(result, datetime):
        return result.replace(microsecond=0)
    if isinstance(result, date):
        return datetime(result.year, result.month, result.day)
    return None


# ---------- 엑셀 읽기 ----------
def _dedupe_headers(cells: Iterable[Any]) -> List[str]:
    seen: Counter = Counter()
    headers = []
    for c in cells:
        key = _header_key(c)
        if key:
            n = seen[key]
            seen[key] += 1
            if n:
                key = f"{key}_{n}"
        headers.append(key)
    return headers


def resolve_columns(headers: List[str]) -> Dict[str, int]:
    """헤더 목록 → {필드: 열 index}. 완전 일치를 먼저, 남은 필드는 부분 일치. 한 열은 한 번만 배정."""
    mapping: Dict[str, int] = {}
    used: set = set()
    for field, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            idx = next((i for i, h in enumerate(headers) if h == alias and i not in used), None)
            if idx is not None:
                mapping[field] = idx
                used.add(idx)
                break
    for field, aliases in COLUMN_ALIASES.items():
        if field in mapping:
            continue
        for alias in aliases:
            idx = next((i for i, h in enumerate(headers) if h and alias in h and i not in used), None)
            if idx is not None:
                mapping[field] = idx
                used.add(idx)
                break
    return mapping


def _find_header_row(df: pd.DataFrame) -> Optional[int]:
    client_aliases = COLUMN_ALIASES["client_name"]
    for r in range(min(HEADER_SCAN_ROWS, len(df))):
        keys = [_header_key(v) for v in df.iloc[r].tolist()]
        if any(k and any(a in k for a in client_aliases) for k in keys):
            return r
    return None


def _rows_from_mapping(df: pd.DataFrame, start_row: int, mapping: Dict[str, int]) -> List[dict]:
    rows = []
    for r in range(start_row, len(df)):
        values = df.iloc[r].tolist()
        row = {field: None for field in FIXED_COLUMNS}
        for field, col in mapping.items():
            row[field] = _cell(values[col]) if col < len(values) else None
        if all(v is None for v in row.values()):
            continue
        rows.append(row)
    return rows


def read_payment_workbook(content: bytes, filename: str = "", layout: str = "header") -> List[dict]:
    """업로드 파일 → 행 dict 목록(키는 FIXED_COLUMNS의 필드명). 실패 시 PaymentSheetError."""
    ext = Path(filename or "").suffix.lower()
    if filename and ext not in ALLOWED_EXTENSIONS:
        raise PaymentSheetError("엑셀 파일(.xlsx)만 업로드할 수 있습니다.")
    if layout not in ("header", "fixed"):
        raise PaymentSheetError(f"지원하지 않는 양식입니다: {layout}")
    try:
        df = pd.read_excel(BytesIO(content), sheet_name=0, header=None, engine="openpyxl", dtype=object)
    except Exception as e:
        raise PaymentSheetError(f"엑셀 파일을 읽을 수 없습니다: {e}") from e

    if layout == "fixed":
        mapping = {field: i for i, field in enumerate(FIXED_COLUMNS)}
        return _rows_from_mapping(df, 1, mapping)

    header_row = _find_header_row(df)
    if header_row is None:
        raise PaymentSheetError("헤더 행을 찾을 수 없습니다. '대상자명' 열이 있는지 확인하세요.")
    headers = _dedupe_headers(df.iloc[header_row].tolist())
    mapping = resolve_columns(headers)
    missing = [REQUIRED_LABELS[f] for f in REQUIRED_FIELDS if f not in mapping]
    if missing:
        raise PaymentSheetError(f"필수 열이 없습니다: {', '.join(missing)}")
    logger.info("결제 내역 열 매핑: %s", {f: headers[i] for f, i in mapping.items()})
    return _rows_from_mapping(df, header_row + 1, mapping)


# ---------- 행 → 결제 항목 ----------
def parse_payment_sheet(
    rows: List[dict],
    expected_year: int,
    uploaded_at: Optional[datetime] = None,
) -> List[PaymentItemCreate]:
    """
    행 dict 목록 → 결제 항목. 대상자명/시작시간 없는 행, 시작 연도가 expected_year가 아닌 행은 제외.
    id = 해시-행번호-업로드시각(ms): 같은 업로드 안에서는 완전히 같은 행도 id가 겹치지 않는다.
    """
    batch_ms = int((uploaded_at or datetime.now()).timestamp() * 1000)
    items: List[PaymentItemCreate] = []
    skipped_invalid = 0
    skipped_year = 0
    for index, row in enumerate(rows):
        client_name = _text(row.get("client_name"))
        start = parse_timestamp(row.get("service_start"))
        if not client_name or start is None:
            skipped_invalid += 1
            continue
        if start.year != expected_year:
            skipped_year += 1
            continue
        client_dob = normalize_dob(_cell(row.get("client_dob")))
        worker_name = _text(row.get("worker_name"))
        canonical = "|".join([client_name, client_dob, start.isoformat(), worker_name, str(index)])
        items.append(
            PaymentItemCreate(
                id=f"{simple_hash(canonical)}-{index}-{batch_ms}",
                year=start.year,
                month=start.month - 1,
                client_name=client_name,
                client_dob=client_dob,
                service_start=start,
                service_end=parse_timestamp(row.get("service_end")),
                worker_name=worker_name,
                worker_dob=normalize_dob(_cell(row.get("worker_dob"))),
                payment_type=_text(row.get("payment_type")),
                return_type=_text(row.get("return_type")),
                reason=_text(row.get("reason")) or None,
            )
        )
    if skipped_invalid or skipped_year:
        logger.warning(
            "결제 내역 %s년: 필수값 누락 %d행, 다른 연도 %d행 제외",
            expected_year, skipped_invalid, skipped_year,
        )
    return items


# ---------- 분류 / 명부 매칭 ----------
def person_key(name: Any, dob: Any) -> Tuple[str, str]:
    """명부 ↔ 결제 내역 연결 키: (이름 trim, 정규화 생년월일)"""
    return (str(name or "").strip(), normalize_dob(dob))


def matches_person(name: Any, dob: Any, person: Any) -> bool:
    """결제 내역의 (이름, 생년월일)이 명부의 이용인/지원사와 같은 사람인지. 모든 매칭은 이 함수만 사용."""
    return person_key(name, dob) == person_key(getattr(person, "name", None), getattr(person, "dob", None))


def is_returned(item: Any) -> bool:
    """반납/과오 건: 모든 준수 판단에서 제외"""
    rt = getattr(item, "return_type", "") or ""
    return any(m in rt for m in RETURNED_MARKERS)


def is_retroactive_or_exception(item: Any) -> bool:
    pt = getattr(item, "payment_type", "") or ""
    return any(m in pt for m in RETROACTIVE_MARKERS)


def find_client_for_item(item: Any, clients: Iterable[Any]) -> Optional[Any]:
    return next((c for c in clients if matches_person(item.client_name, item.client_dob, c)), None)


def abnormal_payments(items: Iterable[Any], clients: Iterable[Any], year: int) -> list:
    """명부에 없는 이용인의 결제(반납/과오 제외)"""
    clients = list(clients)
    return [
        it for it in items
        if it.year == year and not is_returned(it) and find_client_for_item(it, clients) is None
    ]


def retroactive_payments(items: Iterable[Any], year: int) -> list:
    """소급/예외 결제(반납/과오 제외)"""
    return [
        it for it in items
        if it.year == year and not is_returned(it) and is_retroactive_or_exception(it)
    ]


def client_month_payments(
    client: Any,
    worker: Any,
    year: int,
    month: int,
    items: Iterable[Any],
    retro_only: bool = False,
) -> list:
    """이용인·지원사·월에 해당하는 결제(반납/과오 제외). retro_only=True면 소급/예외만."""
    result = []
    for it in items:
        if it.year != year or it.month != month or is_returned(it):
            continue
        if retro_only and not is_retroactive_or_exception(it):
            continue
        if not matches_person(it.client_name, it.client_dob, client):
            continue
        if not matches_person(it.worker_name, it.worker_dob, worker):
            continue
        result.append(it)
    return result
