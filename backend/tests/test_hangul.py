"""한글 이름 검색(부분 일치, 초성)"""
from caredocs.utils.hangul import chosung_of, is_match


def test_chosung_of():
    assert chosung_of("김") == "ㄱ"
    assert chosung_of("도") == "ㄷ"
    assert chosung_of("힣") == "ㅎ"
    assert chosung_of("A") == "A"


def test_is_match_plain_and_chosung():
    assert is_match("김도윤", "도윤")
    assert is_match("김도윤", "ㄱㄷㅇ")
    assert is_match("김도윤", "ㄷㅇ")
    assert is_match("김도윤", "김ㄷ")
    assert not is_match("김도윤", "ㄱㅇ")
    assert not is_match("김도윤", "박")


def test_is_match_empty_query_and_case():
    assert is_match("김도윤", "")
    assert is_match("김도윤", "  ")
    assert is_match("Kim Doyun", "doyun")
