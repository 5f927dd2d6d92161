"""
한글 이름 검색: 일반 부분 일치 + 초성 검색("ㄱㄷㅇ" → "김도윤").
검색어의 자음 글자는 대상 글자의 초성과, 나머지 글자는 그대로 비교한다.
"""

CHOSUNG = [
    "ㄱ", "ㄲ", "ㄴ", "ㄷ", "ㄸ", "ㄹ", "ㅁ", "ㅂ", "ㅃ", "ㅅ",
    "ㅆ", "ㅇ", "ㅈ", "ㅉ", "ㅊ", "ㅋ", "ㅌ", "ㅍ", "ㅎ",
]
_CHOSUNG_SET = frozenset(CHOSUNG)
_SYLLABLE_FIRST = 0xAC00
_SYLLABLE_LAST = 0xD7A3
_SYLLABLES_PER_CHOSUNG = 21 * 28


def chosung_of(ch: str) -> str:
    """완성형 한글 음절의 초성. 한글 음절이 아니면 그대로."""
    code = ord(ch)
    if _SYLLABLE_FIRST <= code <= _SYLLABLE_LAST:
        return CHOSUNG[(code - _SYLLABLE_FIRST) // _SYLLABLES_PER_CHOSUNG]
    return ch


def _char_matches(target_ch: str, query_ch: str) -> bool:
    if target_ch == query_ch:
        return True
    return query_ch in _CHOSUNG_SET and chosung_of(target_ch) == query_ch


def is_match(target: str, query: str) -> bool:
    """target 안에 query가 연속으로 나타나는지(대소문자 무시, 초성 허용). 빈 검색어는 항상 True."""
    query = (query or "").strip().lower()
    if not query:
        return True
    target = (target or "").lower()
    if query in target:
        return True
    n = len(query)
    for start in range(len(target) - n + 1):
        if all(_char_matches(target[start + i], query[i]) for i in range(n)):
            return True
    return False
