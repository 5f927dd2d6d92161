"""구버전 제출 키("{id}-{month}") → "{id}-{year}-{month}" 변환 테스트"""
from caredocs.services.document_migration import is_legacy_key, migrate_legacy_keys


def test_is_legacy_key():
    assert is_legacy_key("c1-3")
    assert is_legacy_key("client-a-11")
    assert not is_legacy_key("c1-2025-3")
    assert not is_legacy_key("client-a-2025-11")


def test_migrate_legacy_keys_converts_with_base_year():
    result, migrated = migrate_legacy_keys({"c1-3": "old", "client-a-0": "a"}, 2025)
    assert result == {"c1-2025-3": "old", "client-a-2025-0": "a"}
    assert migrated == 2


def test_existing_new_key_wins():
    """새 형식 키가 이미 있으면 옛 값은 버린다"""
    result, migrated = migrate_legacy_keys({"c1-3": "old", "c1-2025-3": "new"}, 2025)
    assert result == {"c1-2025-3": "new"}
    assert migrated == 1


def test_migration_is_idempotent():
    once, _ = migrate_legacy_keys({"c1-3": "x", "c2-2024-1": "y"}, 2025)
    twice, migrated = migrate_legacy_keys(once, 2025)
    assert twice == once
    assert migrated == 0


def test_non_numeric_month_left_alone():
    result, migrated = migrate_legacy_keys({"c1-memo": "x"}, 2025)
    assert result == {"c1-memo": "x"}
    assert migrated == 0
