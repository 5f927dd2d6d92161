"""
구버전 JSON 데이터 파일의 제출 키("{id}-{month}")를 "{id}-{year}-{month}"로 변환해 새 파일로 저장.
여러 번 실행해도 결과가 같다. DB는 건드리지 않는다(복원은 /api/backup/restore).

사용: python scripts/migrate_legacy_document.py data.json [--year 2025] [-o out.json]
"""
import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from caredocs.services.document_migration import migrate_legacy_keys

LEGACY_KEYED_FIELDS = ("submissionData", "retroactiveHashes")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="구버전 제출 키 변환")
    parser.add_argument("path", type=Path)
    parser.add_argument("--year", type=int, help="기준 연도(기본: 문서의 baseYear)")
    parser.add_argument("-o", "--output", type=Path, help="저장 경로(기본: 원본 덮어쓰기)")
    args = parser.parse_args(argv)

    doc = json.loads(args.path.read_text(encoding="utf-8-sig"))
    year = args.year or doc.get("baseYear")
    if not year:
        print("기준 연도를 알 수 없습니다. --year 를 지정하세요.", file=sys.stderr)
        return 1
    total = 0
    for field in LEGACY_KEYED_FIELDS:
        if isinstance(doc.get(field), dict):
            doc[field], count = migrate_legacy_keys(doc[field], int(year))
            total += count
    out = args.output or args.path
    out.write_text(json.dumps(doc, ensure_ascii=False, indent=2), encoding="utf-8")
    print(f"{total}개 키를 {year}년 기준으로 변환 → {out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
