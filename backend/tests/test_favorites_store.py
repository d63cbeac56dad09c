import errno
import json
import threading
from pathlib import Path

import pytest

from app.storage.favorites_store import FavoritesStore


def _store(tmp_path) -> FavoritesStore:
    return FavoritesStore(tmp_path / "favorites.json")


def test_missing_file_loads_as_empty(tmp_path):
    store = _store(tmp_path)
    assert store.load() == {}
    assert store.list(42) == set()
    assert store.contains(42, 100) is False


def test_add_is_idempotent(tmp_path):
    store = _store(tmp_path)
    assert store.add(42, 100) is True
    assert store.add(42, 100) is False
    assert store.list(42) == {100}

    raw = json.loads((tmp_path / "favorites.json").read_text())
    assert raw == {"42": [100]}


def test_add_then_list(tmp_path):
    store = _store(tmp_path)
    store.add(42, 100)
    store.add(42, 7)
    store.add(99, 100)
    assert store.list(42) == {7, 100}
    assert store.list(99) == {100}
    assert store.contains(42, 7) is True
    assert store.contains(99, 7) is False


def test_remove_last_favorite_compacts_user_entry(tmp_path):
    store = _store(tmp_path)
    store.add(42, 100)
    assert store.remove(42, 100) is True
    assert store.list(42) == set()
    assert 42 not in store.load()
    assert json.loads((tmp_path / "favorites.json").read_text()) == {}


def test_remove_absent_returns_false(tmp_path):
    store = _store(tmp_path)
    assert store.remove(42, 100) is False
    store.add(42, 1)
    assert store.remove(42, 100) is False
    assert store.list(42) == {1}


def test_save_then_load_round_trip(tmp_path):
    store = _store(tmp_path)
    favorites = {1: {3, 2, 1}, 2: {10}}
    store.save(favorites)
    assert store.load() == favorites


def test_save_drops_empty_entries(tmp_path):
    store = _store(tmp_path)
    store.save({1: set(), 2: {5}})
    assert store.load() == {2: {5}}
    assert json.loads((tmp_path / "favorites.json").read_text()) == {"2": [5]}


def test_save_leaves_no_temp_files(tmp_path):
    store = _store(tmp_path)
    store.add(1, 1)
    store.add(1, 2)
    assert sorted(path.name for path in tmp_path.iterdir()) == ["favorites.json"]


def test_load_accepts_legacy_layout_with_duplicates_and_empty_lists(tmp_path):
    path = tmp_path / "favorites.json"
    path.write_text(json.dumps({"42": [100, 100, 7], "5": []}))
    store = FavoritesStore(path)
    assert store.load() == {42: {100, 7}}


def test_corrupt_file_loads_as_empty_and_is_backed_up(tmp_path):
    path = tmp_path / "favorites.json"
    path.write_text("{not json")
    store = FavoritesStore(path)

    assert store.load() == {}

    backups = [p for p in tmp_path.iterdir() if p.name.startswith("favorites.json.corrupt-")]
    assert len(backups) == 1
    assert backups[0].read_text() == "{not json"
    assert not path.exists()


def test_wrong_shape_is_treated_as_corrupt(tmp_path):
    for content in ['["a"]', '{"42": "100"}', '{"abc": [1]}', '{"42": [1.5]}', '{"42": [true]}']:
        path = tmp_path / "favorites.json"
        path.write_text(content)
        assert FavoritesStore(path).load() == {}, content


def test_invalid_utf8_is_treated_as_corrupt_and_backed_up(tmp_path):
    path = tmp_path / "favorites.json"
    path.write_bytes(b'{"42": [1]}\xff\xfe')
    store = FavoritesStore(path)

    assert store.list(42) == set()

    backups = [p for p in tmp_path.iterdir() if p.name.startswith("favorites.json.corrupt-")]
    assert len(backups) == 1
    assert backups[0].read_bytes() == b'{"42": [1]}\xff\xfe'
    assert store.add(42, 7) is True
    assert json.loads(path.read_text()) == {"42": [7]}


def test_add_after_corruption_starts_fresh(tmp_path):
    path = tmp_path / "favorites.json"
    path.write_text("garbage")
    store = FavoritesStore(path)
    assert store.add(42, 100) is True
    assert json.loads(path.read_text()) == {"42": [100]}


def test_concurrent_adds_do_not_lose_updates(tmp_path):
    store = _store(tmp_path)
    users = range(8)
    shows = range(25)

    def _worker(user_id: int) -> None:
        for show_id in shows:
            store.add(user_id, show_id)

    threads = [threading.Thread(target=_worker, args=(user_id,)) for user_id in users]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    reloaded = FavoritesStore(tmp_path / "favorites.json").load()
    assert reloaded == {user_id: set(shows) for user_id in users}


def _fail_first_read(monkeypatch, path: Path) -> None:
    real_read_bytes = Path.read_bytes
    failures = {"left": 1}

    def _read_bytes(self):
        if self == path and failures["left"]:
            failures["left"] -= 1
            raise OSError(errno.EIO, "Input/output error")
        return real_read_bytes(self)

    monkeypatch.setattr(Path, "read_bytes", _read_bytes)


def test_read_error_during_add_keeps_other_users(tmp_path, monkeypatch):
    path = tmp_path / "favorites.json"
    path.write_text(json.dumps({"1": [10], "2": [20]}))
    store = FavoritesStore(path)
    _fail_first_read(monkeypatch, path)

    with pytest.raises(OSError):
        store.add(3, 30)

    assert json.loads(path.read_text()) == {"1": [10], "2": [20]}
    assert store.add(3, 30) is True
    assert store.load() == {1: {10}, 2: {20}, 3: {30}}


def test_read_error_during_remove_keeps_file(tmp_path, monkeypatch):
    path = tmp_path / "favorites.json"
    path.write_text(json.dumps({"1": [10], "2": [20]}))
    store = FavoritesStore(path)
    _fail_first_read(monkeypatch, path)

    with pytest.raises(OSError):
        store.remove(1, 10)

    assert json.loads(path.read_text()) == {"1": [10], "2": [20]}


def test_read_error_during_list_degrades_to_empty(tmp_path, monkeypatch):
    path = tmp_path / "favorites.json"
    path.write_text(json.dumps({"1": [10]}))
    store = FavoritesStore(path)
    _fail_first_read(monkeypatch, path)

    assert store.list(1) == set()
    assert store.list(1) == {10}
    assert path.exists()
