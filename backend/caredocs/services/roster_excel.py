"""이용인 명부 Excel 내보내기/가져오기(openpyxl). 지원사·계약 이력은 JSON 문자열 열로 보관."""
import json
from datetime import date, datetime
from io import BytesIO
from typing import List, Tuple

from openpyxl import Workbook, load_workbook

from caredocs.schemas import ClientCreate
from caredocs.services.data_document import client_from_document, client_to_document

ROSTER_COLUMNS = [
    "id", "name", "dob", "contractStart", "contractEnd",
    "familySupport", "supportWorkers", "contractHistory",
]
REQUIRED_COLUMNS = ("name", "dob", "contractStart", "contractEnd")
COLUMN_WIDTHS = [30, 15, 15, 15, 15, 12, 100, 50]
TRUE_VALUES = ("1", "true", "True", "TRUE", "yes", "Y", "y")


class RosterImportError(ValueError):
    """명부 파일을 가져올 수 없음"""


def build_roster_workbook(clients: list) -> Tuple[BytesIO, str]:
    """명부 → (xlsx BytesIO, 파일명)"""
    wb = Workbook()
    ws = wb.active
    ws.title = "Clients"
    for col, name in enumerate(ROSTER_COLUMNS, 1):
        ws.cell(row=1, column=col, value=name)
    for r, client in enumerate(clients, 2):
        d = client_to_document(client)
        values = [
            d["id"], d["name"], d["dob"], d["contractStart"], d["contractEnd"],
            bool(d["familySupport"]),
            json.dumps(d["supportWorkers"], ensure_ascii=False, indent=2),
            json.dumps(d["contractHistory"], ensure_ascii=False) if d["contractHistory"] else "",
        ]
        for c, val in enumerate(values, 1):
            ws.cell(row=r, column=c, value=val)
    for i, width in enumerate(COLUMN_WIDTHS):
        ws.column_dimensions[chr(ord("A") + i)].width = width

    buf = BytesIO()
    wb.save(buf)
    buf.seek(0)
    filename = f"clients_{datetime.now().strftime('%Y%m%d_%H%M%S')}.xlsx"
    return buf, filename


def _cell_text(v) -> str:
    if v is None:
        return ""
    if isinstance(v, datetime):
        return v.date().isoformat()
    if isinstance(v, date):
        return v.isoformat()
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v).strip()


def _json_list(raw: str, column: str) -> list:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"{column} JSON 형식 오류: {e.msg}") from e
    return value if isinstance(value, list) else []


def parse_roster_workbook(content: bytes) -> List[ClientCreate]:
    """xlsx → 이용인 목록. 한 행이라도 잘못되면 RosterImportError("Row N 처리 중 오류: ...")."""
    try:
        wb = load_workbook(BytesIO(content), read_only=True, data_only=True)
    except Exception as e:
        raise RosterImportError(f"엑셀 파일을 읽을 수 없습니다: {e}") from e
    try:
        ws = wb.worksheets[0]
        rows = list(ws.iter_rows(values_only=True))
    finally:
        wb.close()
    if not rows:
        return []
    headers = [_cell_text(h) for h in rows[0]]

    clients: List[ClientCreate] = []
    for index, values in enumerate(rows[1:]):
        row = {h: _cell_text(v) for h, v in zip(headers, values) if h}
        if not any(row.values()):
            continue
        try:
            missing = [c for c in REQUIRED_COLUMNS if not row.get(c)]
            if missing:
                raise ValueError(f"필수 필드({', '.join(REQUIRED_COLUMNS)})가 없습니다.")
            history = _json_list(row.get("contractHistory", ""), "contractHistory")
            if not history:
                history = [{"start": row["contractStart"], "end": row["contractEnd"]}]
            clients.append(
                client_from_document(
                    {
                        "id": row.get("id") or None,
                        "name": row["name"],
                        "dob": row["dob"],
                        "familySupport": row.get("familySupport", "") in TRUE_VALUES,
                        "contractHistory": history,
                        "supportWorkers": _json_list(row.get("supportWorkers", ""), "supportWorkers"),
                    }
                )
            )
        except ValueError as e:
            raise RosterImportError(f"Row {index + 2} 처리 중 오류: {e}") from e
    ids = [c.id for c in clients if c.id]
    if len(ids) != len(set(ids)):
        raise RosterImportError("이용인 id가 중복되었습니다.")
    return clients
