"""
다운로드 응답의 Content-Disposition(RFC 5987).
헤더는 latin-1만 허용하므로 한글 파일명은 filename*=UTF-8''... 로 보내고,
filename= 에는 ASCII 대체 이름을 넣는다.
"""
import re
from typing import Optional
from urllib.parse import quote

_NON_ASCII = re.compile(r"[^\x20-\x7e]+")


def ascii_fallback(filename: str) -> str:
    """ASCII 밖의 글자 묶음은 '_' 로, 따옴표·역슬래시는 제거"""
    name = _NON_ASCII.sub("_", filename).replace('"', "").replace("\\", "")
    return name.strip("_ ") or "download"


def build_content_disposition(filename: str, fallback: Optional[str] = None) -> str:
    """예: build_content_disposition("이용인명부_20250501.xlsx", "clients_20250501.xlsx")"""
    ascii_name = ascii_fallback(fallback or filename)
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename, safe='')}"
