import json

import pytest

from taskalloc.errors import PersistenceFailure
from taskalloc.store.persistence import InMemoryDocumentStore, JsonFileDocumentStore


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    """Both DocumentStore implementations must behave identically."""
    if request.param == "memory":
        return InMemoryDocumentStore()
    return JsonFileDocumentStore(tmp_path / "store")


def test_replace_all_and_get_all_preserve_order(store):
    # --- Act ---
    store.replace_all("tasks", [{"id": "b", "TaskID": "T2"}, {"id": "a", "TaskID": "T1"}])

    # --- Assert ---
    assert [item["id"] for item in store.get_all("tasks")] == ["b", "a"]
    assert store.get_all("clients") == []


def test_replace_all_is_all_or_nothing(store):
    """
    @brief
    A batch with an item lacking an internal id commits nothing.
    """
    # --- Arrange ---
    store.replace_all("clients", [{"id": "x", "ClientID": "C1"}])

    # --- Act ---
    with pytest.raises(PersistenceFailure):
        store.replace_all("clients", [{"id": "y", "ClientID": "C2"}, {"ClientID": "C3"}])

    # --- Assert ---
    assert store.get_all("clients") == [{"id": "x", "ClientID": "C1"}]


def test_replace_all_rejects_repeated_internal_ids(store):
    with pytest.raises(PersistenceFailure):
        store.replace_all("workers", [{"id": "x"}, {"id": "x"}])


def test_upsert_merges_and_appends(store):
    # --- Arrange ---
    store.replace_all("workers", [{"id": "w1", "WorkerID": "W1", "Skills": ["python"]}])

    # --- Act ---
    store.upsert("workers", "w1", {"Skills": ["sql"]})
    store.upsert("workers", "w2", {"WorkerID": "W2"})

    # --- Assert ---
    items = store.get_all("workers")
    assert items[0] == {"id": "w1", "WorkerID": "W1", "Skills": ["sql"]}
    assert items[1] == {"id": "w2", "WorkerID": "W2"}


def test_upsert_requires_internal_id(store):
    with pytest.raises(PersistenceFailure):
        store.upsert("workers", "", {"WorkerID": "W1"})


def test_documents_round_trip(store):
    assert store.get_document("rules") is None

    store.put_document("rules", {"rules": [{"id": "r1", "type": "CO_RUN"}]})

    assert store.get_document("rules") == {"rules": [{"id": "r1", "type": "CO_RUN"}]}


def test_in_memory_store_returns_copies():
    # --- Arrange ---
    store = InMemoryDocumentStore()
    store.replace_all("tasks", [{"id": "a", "RequiredSkills": ["python"]}])

    # --- Act ---
    store.get_all("tasks")[0]["RequiredSkills"].append("sql")

    # --- Assert ---
    assert store.get_all("tasks")[0]["RequiredSkills"] == ["python"]


def test_json_store_layout_and_corrupt_file(tmp_path):
    """
    @brief
    Collections live in <collection>.json, documents in config/<name>.json.
    A corrupt file surfaces as PersistenceFailure.
    """
    # --- Arrange ---
    root = tmp_path / "store"
    store = JsonFileDocumentStore(root)
    store.replace_all("tasks", [{"id": "a", "TaskID": "T1"}])
    store.put_document("priorities", {"priorities": {"fulfill": 1}})

    # --- Assert ---
    assert json.loads((root / "tasks.json").read_text(encoding="utf-8")) == [
        {"id": "a", "TaskID": "T1"}
    ]
    assert (root / "config" / "priorities.json").exists()

    # --- Act: corrupt ---
    (root / "tasks.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(PersistenceFailure):
        store.get_all("tasks")


def test_json_store_rejects_unserializable_data(tmp_path):
    store = JsonFileDocumentStore(tmp_path)
    with pytest.raises(PersistenceFailure):
        store.put_document("rules", {"rules": {1, 2}})
    assert store.get_document("rules") is None
