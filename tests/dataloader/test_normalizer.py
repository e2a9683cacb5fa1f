import pytest

from taskalloc.dataloader.normalizer import (
    as_list,
    coerce_list,
    map_header,
    normalize_row,
    parse_int,
    split_text,
)
from taskalloc.errors import DataError
from taskalloc.schemas.models import Client, Task, Worker


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("ClientID", "ClientID"),
        ("client_id", "ClientID"),
        ("Client ID", "ClientID"),
        ("priority level", "PriorityLevel"),
        ("co-run task ids", "CoRunTaskIDs"),
        ("MAXCONCURRENT", "MaxConcurrent"),
        ("Notes", "Notes"),
    ],
)
def test_map_header(raw, expected):
    """
    @brief
    Header spellings differing only in case, spaces, '_' or '-' map to one field.
    """
    assert map_header(raw) == expected


def test_split_text_trims_and_drops_empty_items():
    assert split_text(" T1, T2,, ,T3 ") == ["T1", "T2", "T3"]
    assert split_text("") == []


def test_as_list_views_every_representation():
    assert as_list(None) == []
    assert as_list("a, b") == ["a", "b"]
    assert as_list(("a", 1)) == ["a", 1]
    assert as_list(7) == [7]


@pytest.mark.parametrize(
    "value, expected",
    [
        ("12", 12),
        (" 7 ", 7),
        ("3.9", 3),
        ("4 units", 4),
        ("-2", -2),
        ("abc", 0),
        ("", 0),
        (None, 0),
        (5, 5),
        (2.7, 2),
    ],
)
def test_parse_int_leading_integer_or_zero(value, expected):
    assert parse_int(value) == expected


def test_parse_int_strict_raises():
    # --- Act / Assert ---
    with pytest.raises(DataError) as exc:
        parse_int("abc", strict=True, field="Duration")

    assert "Duration" in str(exc.value)


def test_coerce_list_bracketed_fields():
    """
    @brief
    Brackets are stripped and digit-only items become ints; other items are
    kept verbatim for the validator to report.
    """
    assert coerce_list("AvailableSlots", "[1, x2, 3]") == [1, "x2", 3]
    assert coerce_list("PreferredPhases", "1-3, 5") == ["1-3", 5]
    assert coerce_list("AvailableSlots", ["1", " 2 ", ""]) == [1, 2]


def test_coerce_list_plain_fields_stay_text():
    assert coerce_list("Skills", "python, [sql]") == ["python", "[sql]"]
    assert coerce_list("RequestedTaskIDs", ["T1", 2]) == ["T1", "2"]


def test_normalize_row_client():
    # --- Arrange ---
    raw = {
        "client id": " C1 ",
        "PriorityLevel": "3",
        "RequestedTaskIDs": "T1, T2,,",
        "AttributesJSON": "",
        "Comment": "dropped",
    }

    # --- Act ---
    client = normalize_row("clients", raw)

    # --- Assert ---
    assert isinstance(client, Client)
    assert client.client_id == "C1"
    assert client.priority_level == 3
    assert client.requested_task_ids == ["T1", "T2"]
    assert client.attributes_json is None
    assert client.client_group is None


def test_normalize_row_worker_lenient_numbers():
    # --- Act ---
    worker = normalize_row(
        "workers",
        {
            "WorkerID": "W1",
            "Skills": "python,sql",
            "AvailableSlots": "[1, x2, 3]",
            "MaxConcurrent": "abc",
            "MaxLoadPerPhase": "",
        },
    )

    # --- Assert ---
    assert isinstance(worker, Worker)
    assert worker.skills == ["python", "sql"]
    assert worker.available_slots == [1, "x2", 3]
    assert worker.max_concurrent == 0
    assert worker.max_load_per_phase is None


def test_normalize_row_task_phases_and_blank_id():
    task = normalize_row("tasks", {"TaskID": "  ", "PreferredPhases": "[1-3, 5]", "Duration": "2"})

    assert isinstance(task, Task)
    assert task.task_id == ""
    assert task.preferred_phases == ["1-3", 5]
    assert task.duration == 2
    assert task.required_skills == []


def test_normalize_row_strict_numeric_raises():
    with pytest.raises(DataError):
        normalize_row("tasks", {"TaskID": "T1", "Duration": "long"}, strict=True)
