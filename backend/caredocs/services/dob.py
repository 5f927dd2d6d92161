"""
생년월일 정규화와 제출 키 생성(순수 함수).

엑셀마다 생년월일 형식이 제각각(날짜 셀, 1990-01-01, 1990.1.1, 19900101, 900101, 900101.0)이라
모든 비교 전에 YYYY-MM-DD로 맞춘다. 해석할 수 없는 값은 예외 없이 원문(trim)을 그대로 돌려준다.

6자리 YYMMDD의 세기 판단은 "동적 규칙"으로 통일한다:
먼저 20YY로 보고, 그 연도가 올해보다 크면 19YY로 본다.
(고정 임계값 규칙 `<50 → 20xx`과는 "300101" 같은 값에서 결과가 달라진다. 테스트로 고정.)
"""
import re
from datetime import date, datetime
from typing import Any, Optional, Tuple

# 구분자(-, /, .)가 있는 연-월-일. 뒤에 시간이 붙어도 앞부분만 사용
_YMD_SEPARATED = re.compile(r"^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})(?!\d)")
# 구분자 없는 YYYYMMDD(뒤에 시간 등이 붙은 경우 포함)
_YMD_COMPACT = re.compile(r"^(\d{4})(\d{2})(\d{2})(?!\d)")
_NON_DIGIT = re.compile(r"[^0-9]")


def _format_ymd(year: int | str, month: int | str, day: int | str) -> str:
    return f"{int(year):04d}-{int(month):02d}-{int(day):02d}"


def _century_year(yy: int, today: Optional[date] = None) -> int:
    """2자리 연도 → 4자리. 20YY가 올해를 넘으면 19YY."""
    current_year = (today or date.today()).year
    year = 2000 + yy
    if year > current_year:
        year = 1900 + yy
    return year


def normalize_dob(value: Any, today: Optional[date] = None) -> str:
    """
    생년월일 입력을 "YYYY-MM-DD"로 정규화.
    - None/빈 값 → ""
    - date/datetime(pandas Timestamp 포함) → 달력 필드로 바로 포맷
    - YYYY-MM-DD 계열(-, /, . 구분 또는 구분자 없음) → 숫자 그룹 추출, 0 채움
    - 숫자만 8자리 → YYYYMMDD, 6자리 → YYMMDD(동적 세기 규칙)
    - 그 외 → trim한 원문
    today: 세기 판단 기준일(테스트용). 기본은 오늘.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        return _format_ymd(value.year, value.month, value.day)
    if isinstance(value, date):
        return _format_ymd(value.year, value.month, value.day)
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float):
        if value != value:  # NaN
            return ""
        if value.is_integer():
            value = int(value)
    text = str(value).strip()
    if not text:
        return ""

    m = _YMD_SEPARATED.match(text) or _YMD_COMPACT.match(text)
    if m:
        return _format_ymd(*m.groups())

    digits = _NON_DIGIT.sub("", text)
    if len(digits) == 8:
        return _format_ymd(digits[:4], digits[4:6], digits[6:8])
    if len(digits) == 6:
        year = _century_year(int(digits[:2]), today)
        return _format_ymd(year, digits[2:4], digits[4:6])
    return text


def format_dob_to_yymmdd(dob: Any, today: Optional[date] = None) -> str:
    """정규화된 생년월일 → 6자리(YYMMDD). 추출 불가 시 입력 그대로."""
    if dob is None or dob == "":
        return ""
    normalized = normalize_dob(dob, today)
    parts = normalized.split("-")
    if len(parts) == 3 and len(parts[0]) == 4:
        return parts[0][2:] + parts[1] + parts[2]
    digits = _NON_DIGIT.sub("", normalized)
    if len(digits) == 6:
        return digits
    return dob


def get_submission_key(client_id: str, year: int, month_index: int) -> str:
    """제출 데이터 키: "{client_id}-{year}-{month_index}" (month_index 0=1월)"""
    return f"{client_id}-{year}-{month_index}"


def parse_submission_key(key: str) -> Optional[Tuple[str, int, int]]:
    """
    제출 키 → (client_id, year, month_index). 오른쪽부터 분리하므로 id에 '-'가 있어도 복원된다.
    연도가 4자리가 아니거나 월이 0~11이 아니면 None.
    """
    parts = str(key).rsplit("-", 2)
    if len(parts) != 3:
        return None
    client_id, year_s, month_s = parts
    if not client_id or len(year_s) != 4 or not year_s.isdigit() or not month_s.isdigit():
        return None
    month = int(month_s)
    if not 0 <= month <= 11:
        return None
    return client_id, int(year_s), month


def simple_hash(text: str) -> str:
    """31배 누적 해시(UTF-16 코드 단위 기준, signed 32-bit 랩어라운드)의 10진 문자열"""
    h = 0
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        code_unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + code_unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return str(h)
