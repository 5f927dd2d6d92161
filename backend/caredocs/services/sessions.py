"""
동시 작업 경고용 접속 기록 해석.
잠금이 아니라 참고용: 다른 사용자의 마지막 기록이 login이면 "작업 중"으로 보고 경고만 한다.
저장은 마지막에 쓴 사람이 이긴다.
"""
from typing import Any, Iterable, List, Optional


def active_users(logs: Iterable[Any], current_user: Optional[str] = None) -> List[str]:
    """사용자별 마지막 기록이 login인 사용자(현재 사용자 제외). 기록 순서 기준, 처음 나타난 순서로 반환."""
    last_type = {}
    for log in logs:
        last_type[log.user_name] = log.type
    current = (current_user or "").strip()
    return [user for user, t in last_type.items() if t == "login" and user != current]


def concurrent_warning(users: List[str]) -> Optional[str]:
    if not users:
        return None
    return f"현재 다른 사용자({', '.join(users)})가 작업 중일 수 있습니다. 저장하면 마지막 저장 내용으로 덮어씁니다."
