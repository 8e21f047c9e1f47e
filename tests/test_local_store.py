# tests/test_local_store.py

from __future__ import annotations

from taskline.storage.local_store import JsonFileStore


def test_values_survive_a_new_instance(tmp_path) -> None:
    path = tmp_path / "guest" / "store.json"
    store = JsonFileStore(path)

    assert store.get("tasks") is None
    store.set("tasks", [{"id": "local-1", "title": "a"}])
    store.set("other", 1)

    again = JsonFileStore(path)
    assert again.get("tasks") == [{"id": "local-1", "title": "a"}]

    again.delete("tasks")
    assert JsonFileStore(path).get("tasks") is None
    assert JsonFileStore(path).get("other") == 1


def test_corrupt_file_reads_as_empty(tmp_path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{not json", "utf-8")
    store = JsonFileStore(path)

    assert store.get("tasks") is None

    store.set("tasks", [])
    assert store.get("tasks") == []
