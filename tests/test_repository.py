import json
from datetime import date
from pathlib import Path

import pytest

from perfboard.core.entries import Entry, PayloadDecodeError
from perfboard.core.repository import InMemoryRepository, JsonFileRepository, StorageError


def test_json_repository_without_slot_file_has_no_data(tmp_path: Path) -> None:
    repository = JsonFileRepository(directory=tmp_path / "data", slot="userData")

    assert repository.read_payload() is None
    assert repository.load() == []


def test_json_repository_saves_and_loads_entries(tmp_path: Path) -> None:
    repository = JsonFileRepository(directory=tmp_path / "data", slot="userData")
    entries = [
        Entry(name="张三", date=date(2024, 3, 1), websites=10, orders=2),
        Entry(name="Bob", date=date(2024, 3, 2), tbt_amount=99.5),
    ]

    repository.save(entries)

    assert repository.path == tmp_path / "data" / "userData.json"
    stored = json.loads(repository.path.read_text(encoding="utf-8"))
    assert stored[0]["name"] == "张三"
    assert "张三" in repository.path.read_text(encoding="utf-8")
    assert repository.load() == entries


def test_json_repository_clear_removes_slot(tmp_path: Path) -> None:
    repository = JsonFileRepository(directory=tmp_path, slot="userData")
    repository.save([Entry(name="A", date=date(2024, 1, 1))])

    repository.clear()
    repository.clear()

    assert not repository.path.exists()
    assert repository.load() == []


def test_repository_load_propagates_decode_errors() -> None:
    repository = InMemoryRepository(payload="{oops")

    with pytest.raises(PayloadDecodeError):
        repository.load()


def test_in_memory_repository_applies_unknown_name() -> None:
    repository = InMemoryRepository(payload='[{"websites": 3}]', unknown_name="未知")

    entries = repository.load(today=date(2024, 1, 1))

    assert entries == [Entry(name="未知", date=date(2024, 1, 1), websites=3)]


def test_json_repository_reports_non_utf8_slot_as_decode_error(tmp_path: Path) -> None:
    repository = JsonFileRepository(directory=tmp_path, slot="userData")
    repository.path.write_bytes(b"\xff\xfe[not utf8")

    with pytest.raises(PayloadDecodeError):
        repository.read_payload()


def test_json_repository_wraps_read_errors(tmp_path: Path) -> None:
    (tmp_path / "userData.json").mkdir()
    repository = JsonFileRepository(directory=tmp_path, slot="userData")

    with pytest.raises(StorageError):
        repository.read_payload()


def test_json_repository_wraps_write_errors(tmp_path: Path) -> None:
    blocker = tmp_path / "data"
    blocker.write_text("x", encoding="utf-8")
    repository = JsonFileRepository(directory=blocker, slot="userData")

    with pytest.raises(StorageError):
        repository.save([Entry(name="A", date=date(2024, 1, 1))])


def test_json_repository_wraps_remove_errors(tmp_path: Path) -> None:
    (tmp_path / "userData.json").mkdir()
    repository = JsonFileRepository(directory=tmp_path, slot="userData")

    with pytest.raises(StorageError):
        repository.clear()
