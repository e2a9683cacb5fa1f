from pathlib import Path

import pandas as pd
import pytest

from taskalloc.dataloader.entities_loader import EntitiesLoader
from taskalloc.errors import DataError

CLIENTS_CSV = (
    "client_id,Client Group,priority level,RequestedTaskIDs,AttributesJSON\n"
    'C1,A,3,"T1,T2","{""k"": 1}"\n'
    ",,,,\n"
    "C2,B,,T3,\n"
    "C1,A,7,,\n"
)


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_load_csv_maps_headers_and_keeps_duplicates(tmp_path):
    """
    @brief
    Loads a CSV with non-canonical headers.

    @details
    Blank spreadsheet lines are dropped; duplicated ids are kept so the
    validator can report them.
    """
    # --- Arrange ---
    path = _write(tmp_path, "clients.csv", CLIENTS_CSV)

    # --- Act ---
    result = EntitiesLoader().load(path, "clients")

    # --- Assert ---
    assert result.success
    assert result.total_rows == 4
    assert result.kept_rows == 3
    assert [c.client_id for c in result.entities] == ["C1", "C2", "C1"]
    first = result.entities[0]
    assert first.client_group == "A"
    assert first.priority_level == 3
    assert first.requested_task_ids == ["T1", "T2"]
    assert first.attributes_json == '{"k": 1}'
    assert result.entities[1].priority_level is None


def test_load_xlsx(tmp_path):
    # --- Arrange ---
    path = tmp_path / "tasks.xlsx"
    pd.DataFrame(
        [{"TaskID": "T1", "RequiredSkills": "python", "PreferredPhases": "[1,2]", "Duration": "3"}]
    ).to_excel(path, index=False)

    # --- Act ---
    result = EntitiesLoader().load(path, "tasks")

    # --- Assert ---
    assert result.success
    task = result.entities[0]
    assert task.task_id == "T1"
    assert task.preferred_phases == [1, 2]
    assert task.duration == 3


def test_strict_numeric_collects_issues(tmp_path):
    # --- Arrange ---
    path = _write(tmp_path, "tasks.csv", "TaskID,Duration\nT1,2\nT2,long\n")

    # --- Act ---
    result = EntitiesLoader(strict_numeric=True).load(path, "tasks")

    # --- Assert ---
    assert not result.success
    assert result.entities == []
    assert len(result.errors) == 1
    issue = result.errors[0]
    assert issue["kind"] == "invalid_number"
    assert issue["line_no"] == 3
    assert issue["domain_id"] == "T2"


def test_lenient_numeric_falls_back_to_zero(tmp_path):
    path = _write(tmp_path, "tasks.csv", "TaskID,Duration\nT1,long\n")

    result = EntitiesLoader().load(path, "tasks")

    assert result.success
    assert result.entities[0].duration == 0


def test_missing_file_raises(tmp_path):
    with pytest.raises(DataError):
        EntitiesLoader().load(tmp_path / "absent.csv", "clients")


def test_unsupported_extension_raises(tmp_path):
    path = _write(tmp_path, "clients.txt", "ClientID\nC1\n")
    with pytest.raises(DataError):
        EntitiesLoader().load(path, "clients")


def test_empty_file_raises(tmp_path):
    path = _write(tmp_path, "clients.csv", "")
    with pytest.raises(DataError) as exc:
        EntitiesLoader().load(path, "clients")
    assert "header" in str(exc.value)


def test_header_only_file_loads_nothing(tmp_path):
    path = _write(tmp_path, "workers.csv", "WorkerID,Skills\n")

    result = EntitiesLoader().load(path, "workers")

    assert result.success
    assert result.entities == []
    assert result.total_rows == 0
