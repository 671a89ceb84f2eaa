"""Tests for the storage backends."""
import json
import threading
from dataclasses import replace
from datetime import date

import pytest

from domain import Break, ShiftInput
from repository import (
    JsonFileShiftRepository,
    SqlShiftRepository,
    StorageError,
    open_repository,
)
from services import ShiftCalculator


def sample(day=date(2025, 3, 14), start="10:00 PM", end="2:00 AM"):
    return ShiftCalculator().derive_shift(ShiftInput(
        date=day, start=start, end=end, gross="120", miles_start="45,000", miles_end="45,080",
        breaks=(Break("11:30 PM", "12:00 AM"),),
    ))


@pytest.fixture(params=["sql", "json"])
def repo(request, tmp_path):
    if request.param == "sql":
        return SqlShiftRepository(f"sqlite:///{(tmp_path / 'shifts.db').as_posix()}")
    return JsonFileShiftRepository(tmp_path / "entries.json")


class TestCrud:
    """Both backends honour the same contract."""

    def test_add_assigns_id_and_lists(self, repo):
        rec = sample()
        saved = repo.add(rec)
        assert rec.id is None
        assert saved.id is not None
        assert repo.list_all() == [saved]

    def test_round_trip_keeps_every_field(self, repo):
        saved = repo.add(sample())
        loaded = repo.list_all()[0]
        assert loaded.breaks == (Break("11:30 PM", "12:00 AM"),)
        assert loaded.hourly == saved.hourly
        assert loaded.gallons == saved.gallons
        assert loaded == saved

    def test_hourly_none_survives(self, repo):
        saved = repo.add(sample(start="", end=""))
        assert repo.list_all()[0].hourly is None
        assert saved.hourly is None

    def test_list_in_insertion_order(self, repo):
        a = repo.add(sample(day=date(2025, 3, 14)))
        b = repo.add(sample(day=date(2025, 3, 1)))
        assert [r.id for r in repo.list_all()] == [a.id, b.id]

    def test_update(self, repo):
        saved = repo.add(sample())
        changed = ShiftCalculator().derive_shift(ShiftInput(
            date=saved.date, start="9:00 AM", end="5:00 PM", gross="200"))
        changed = replace(changed, id=saved.id)
        repo.update(changed)
        assert repo.list_all() == [changed]

    def test_update_unknown_raises(self, repo):
        rec = replace(sample(), id=999)
        with pytest.raises(StorageError):
            repo.update(rec)

    def test_delete(self, repo):
        a = repo.add(sample())
        b = repo.add(sample(day=date(2025, 3, 15)))
        repo.delete(a.id)
        assert repo.list_all() == [b]
        repo.delete(12345)  # unknown id is a no-op
        assert repo.list_all() == [b]


def test_json_file_format(tmp_path):
    path = tmp_path / "entries.json"
    JsonFileShiftRepository(path).add(sample())
    rows = json.loads(path.read_text())
    assert rows[0]["id"] == 1
    assert rows[0]["date"] == "2025-03-14"
    assert rows[0]["breaks"] == [{"start": "11:30 PM", "end": "12:00 AM"}]


def test_json_corrupt_file_is_storage_error(tmp_path):
    path = tmp_path / "entries.json"
    path.write_text("{not json")
    with pytest.raises(StorageError):
        JsonFileShiftRepository(path).list_all()


def test_open_repository_prefers_database(tmp_path):
    repo = open_repository(f"sqlite:///{(tmp_path / 'db.sqlite').as_posix()}", tmp_path / "f.json")
    assert isinstance(repo, SqlShiftRepository)


def test_open_repository_falls_back_to_local_file(tmp_path, caplog):
    bad_url = f"sqlite:///{(tmp_path / 'missing' / 'dir' / 'db.sqlite').as_posix()}"
    with caplog.at_level("WARNING"):
        repo = open_repository(bad_url, tmp_path / "f.json")
    assert isinstance(repo, JsonFileShiftRepository)
    assert "falling back" in caplog.text


def test_json_row_without_id_is_storage_error(tmp_path):
    path = tmp_path / "entries.json"
    repo = JsonFileShiftRepository(path)
    repo.add(sample())
    rows = json.loads(path.read_text())
    del rows[0]["id"]
    path.write_text(json.dumps(rows))
    with pytest.raises(StorageError):
        repo.add(sample(day=date(2025, 3, 15)))


def test_json_parallel_adds_get_distinct_ids(tmp_path):
    repo = JsonFileShiftRepository(tmp_path / "entries.json")
    ids = []

    def work():
        for _ in range(20):
            ids.append(repo.add(sample()).id)

    threads = [threading.Thread(target=work) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(ids) == list(range(1, 121))
    assert [r.id for r in repo.list_all()] == list(range(1, 121))
    assert list(tmp_path.glob("*.tmp")) == []
