"""
구버전 문서 키 변환: "{id}-{month}" → "{id}-{baseYear}-{month}".

뒤에서 두 번째 조각이 4자리 연도가 아닌 키만 대상. 이미 새 형식 키가 있으면 덮어쓰지 않고 옛 키만 버린다.
여러 번 실행해도 결과가 같다(새 형식 키는 다시 건드리지 않음).
"""
import logging
import re
from typing import Any, Dict, Mapping, Tuple

from caredocs.services.dob import get_submission_key

logger = logging.getLogger(__name__)

_YEAR = re.compile(r"^\d{4}$")
_MONTH = re.compile(r"^\d+")


def is_legacy_key(key: str) -> bool:
    parts = str(key).split("-")
    return not (len(parts) > 1 and _YEAR.match(parts[-2]))


def migrate_legacy_keys(mapping: Mapping[str, Any], base_year: int) -> Tuple[Dict[str, Any], int]:
    """키 변환 결과와 변환한 키 수. 월 조각이 숫자가 아닌 옛 키는 그대로 둔다."""
    result = dict(mapping)
    migrated = 0
    for key in list(mapping.keys()):
        if not is_legacy_key(key):
            continue
        parts = str(key).split("-")
        m = _MONTH.match(parts[-1])
        if not m or len(parts) < 2:
            continue
        new_key = get_submission_key("-".join(parts[:-1]), base_year, int(m.group(0)))
        if new_key not in result:
            result[new_key] = result[key]
        del result[key]
        migrated += 1
    if migrated:
        logger.info("구버전 키 %d개를 %s년 기준으로 변환", migrated, base_year)
    return result, migrated
