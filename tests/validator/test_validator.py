import json

import pytest

from taskalloc.schemas.models import Client, EngineConfig, Task, Worker
from taskalloc.store.entity_store import EntityStore
from taskalloc.validator.validator import GLOBAL_ID, Validator, validate


def snapshot(clients=(), workers=(), tasks=()):
    return {"clients": tuple(clients), "workers": tuple(workers), "tasks": tuple(tasks)}


def fields(outcome):
    return [(e.entity_type, e.id, e.field) for e in outcome.errors]


def test_empty_store_yields_nothing():
    # --- Act ---
    errors, suggestions = validate(snapshot())

    # --- Assert ---
    assert errors == []
    assert suggestions == []


def test_duplicate_client_id_reported_once():
    """
    @brief
    The first occurrence of an id is never flagged; the repeat is.
    """
    # --- Arrange ---
    snap = snapshot(clients=[Client(ClientID="C1"), Client(ClientID="C1")])

    # --- Act ---
    outcome = validate(snap)

    # --- Assert ---
    assert len(outcome.errors) == 1
    issue = outcome.errors[0]
    assert (issue.entity_type, issue.id, issue.field) == ("clients", "C1", "ClientID")
    assert issue.message == "Duplicate ID found: C1."


def test_unique_ids_are_clean():
    outcome = validate(snapshot(clients=[Client(ClientID="C1")], workers=[Worker(WorkerID="W1")]))
    assert outcome.valid


def test_missing_id_reported_under_internal_id():
    # --- Arrange ---
    task = Task(TaskID="")

    # --- Act ---
    outcome = validate(snapshot(tasks=[task]))

    # --- Assert ---
    assert fields(outcome) == [("tasks", task.id, "TaskID")]
    assert outcome.errors[0].message == "Required ID is missing."


@pytest.mark.parametrize("level, flagged", [(0, True), (6, True), (3, False), (1, False), (5, False)])
def test_priority_level_range(level, flagged):
    outcome = validate(snapshot(clients=[Client(ClientID="C1", PriorityLevel=level)]))

    expected = [("clients", "C1", "PriorityLevel")] if flagged else []
    assert fields(outcome) == expected
    if flagged:
        assert outcome.errors[0].message == "Must be between 1-5."


def test_non_numeric_priority_level_is_flagged_not_raised():
    """
    @brief
    Values that bypassed model validation become diagnostics, never exceptions.
    """
    client = Client.model_construct(client_id="C1", priority_level="high")

    outcome = validate(snapshot(clients=[client]))

    assert fields(outcome) == [("clients", "C1", "PriorityLevel")]


def test_attributes_json():
    # --- Arrange ---
    clients = [
        Client(ClientID="C1", AttributesJSON='{"a": 1}'),
        Client(ClientID="C2", AttributesJSON="{bad"),
        Client(ClientID="C3", AttributesJSON=""),
        Client(ClientID="C4", AttributesJSON="NaN"),
    ]

    # --- Act ---
    outcome = validate(snapshot(clients=clients))

    # --- Assert ---
    assert fields(outcome) == [
        ("clients", "C2", "AttributesJSON"),
        ("clients", "C4", "AttributesJSON"),
    ]
    assert outcome.errors[0].message == "Invalid JSON format."


def test_unknown_requested_task():
    # --- Arrange ---
    snap = snapshot(
        clients=[Client(ClientID="C1", RequestedTaskIDs="T1, T9")],
        tasks=[Task(TaskID="T1")],
    )

    # --- Act ---
    outcome = validate(snap)

    # --- Assert ---
    assert fields(outcome) == [("clients", "C1", "RequestedTaskIDs")]
    assert outcome.errors[0].message == "Unknown TaskID: T9."


def test_non_numeric_slots_carry_digit_suggestion():
    """
    @brief
    AvailableSlots ["1", "x2", "3"] is flagged with the suggestion "1, 2, 3".
    """
    # --- Arrange ---
    worker = Worker(WorkerID="W1", AvailableSlots=["1", "x2", "3"])

    # --- Act ---
    outcome = validate(snapshot(workers=[worker]))

    # --- Assert ---
    assert len(outcome.errors) == 1
    issue = outcome.errors[0]
    assert issue.field == "AvailableSlots"
    assert issue.message == "Contains non-numeric values."
    assert issue.suggestion == "1, 2, 3"


def test_numeric_slots_in_any_representation_are_clean():
    workers = [
        Worker(WorkerID="W1", AvailableSlots=[1, 2.5, "3"]),
        Worker(WorkerID="W2", AvailableSlots="1, 2"),
        Worker(WorkerID="W3", AvailableSlots=["Infinity", "0x10", " ", "1e2"]),
    ]
    assert validate(snapshot(workers=workers)).valid


def test_worker_load_limits():
    # --- Arrange ---
    worker = Worker(WorkerID="W1", MaxLoadPerPhase=-1, MaxConcurrent=0)

    # --- Act ---
    outcome = validate(snapshot(workers=[worker]))

    # --- Assert ---
    assert [e.field for e in outcome.errors] == ["MaxLoadPerPhase", "MaxConcurrent"]
    assert [e.message for e in outcome.errors] == ["Cannot be negative.", "Must be at least 1."]


def test_task_duration():
    outcome = validate(snapshot(tasks=[Task(TaskID="T1", Duration=0), Task(TaskID="T2", Duration=1)]))

    assert fields(outcome) == [("tasks", "T1", "Duration")]
    assert outcome.errors[0].message == "Must be at least 1."


def test_uncovered_skill_reported_per_task_and_globally():
    # --- Arrange ---
    snap = snapshot(
        workers=[Worker(WorkerID="W1", Skills=["python"])],
        tasks=[Task(TaskID="T1", RequiredSkills=["python", "Rust"])],
    )

    # --- Act ---
    outcome = validate(snap)

    # --- Assert ---
    assert fields(outcome) == [
        ("tasks", "T1", "RequiredSkills"),
        ("tasks", GLOBAL_ID, "Skill Coverage"),
    ]
    assert outcome.errors[0].message == "No worker has the required skill: Rust."
    assert outcome.errors[1].message == (
        "The skill 'Rust' is required by a task but not provided by any worker."
    )


def test_global_skill_reported_once_for_many_tasks():
    snap = snapshot(tasks=[Task(TaskID="T1", RequiredSkills=["go"]), Task(TaskID="T2", RequiredSkills="go")])

    outcome = validate(snap)

    assert [e.id for e in outcome.errors] == ["T1", "T2", GLOBAL_ID]


@pytest.mark.parametrize(
    "phases, flagged",
    [
        ([1, "2-4"], False),
        ("1-3, 5", False),
        ("[1-3]", False),
        (["1to3"], True),
        ("1-", True),
        (["2", "1-3"], False),
        ("2", False),
    ],
)
def test_preferred_phase_ranges(phases, flagged):
    outcome = validate(snapshot(tasks=[Task(TaskID="T1", PreferredPhases=phases)]))

    expected = [("tasks", "T1", "PreferredPhases")] if flagged else []
    assert fields(outcome) == expected
    if flagged:
        assert outcome.errors[0].message == 'Invalid range format. Use "start-end".'


def _mixed_snapshot():
    return snapshot(
        clients=[
            Client(ClientID="C1", PriorityLevel=9, RequestedTaskIDs=["T1", "TX"]),
            Client(ClientID="C1"),
        ],
        workers=[Worker(WorkerID="W1", Skills=["python"], AvailableSlots=["a"])],
        tasks=[Task(TaskID="T1", RequiredSkills=["python", "go"], Duration=0)],
    )


def test_errors_follow_fixed_group_order():
    """
    @brief
    Identity, clients, workers, tasks, then global skill coverage.
    """
    # --- Act ---
    outcome = validate(_mixed_snapshot())

    # --- Assert ---
    assert [e.field for e in outcome.errors] == [
        "ClientID",
        "PriorityLevel",
        "RequestedTaskIDs",
        "AvailableSlots",
        "Duration",
        "RequiredSkills",
        "Skill Coverage",
    ]
    assert outcome.errors[3].suggestion == ""


def test_validation_is_idempotent_and_parallel_matches_sequential():
    # --- Arrange ---
    snap = _mixed_snapshot()

    # --- Act ---
    first = validate(snap)
    second = validate(snap)
    parallel = validate(snap, EngineConfig(parallel_checks=True))

    # --- Assert ---
    assert first == second
    assert parallel == first


def test_advisory_for_overloaded_top_priority_client():
    # --- Arrange ---
    tasks = [Task(TaskID=f"T{i}") for i in range(1, 7)]
    busy = Client(ClientID="C1", PriorityLevel=1, RequestedTaskIDs=[t.task_id for t in tasks])
    calm = Client(ClientID="C2", PriorityLevel=1, RequestedTaskIDs=[t.task_id for t in tasks[:5]])

    # --- Act ---
    outcome = validate(snapshot(clients=[busy, calm], tasks=tasks))

    # --- Assert ---
    assert outcome.errors == ()
    assert outcome.valid
    assert outcome.suggestions == (
        "Client C1 has PriorityLevel 1 with 6 requested tasks; "
        "consider splitting the request or lowering its priority.",
    )


def test_advisory_threshold_is_configurable():
    tasks = [Task(TaskID="T1"), Task(TaskID="T2")]
    client = Client(ClientID="C1", PriorityLevel=2, RequestedTaskIDs=["T1", "T2"])
    cfg = EngineConfig(advisory_priority_level=2, advisory_max_requested=1)

    _, suggestions = validate(snapshot(clients=[client], tasks=tasks), cfg)

    assert len(suggestions) == 1


def test_validate_accepts_entity_store():
    store = EntityStore()
    store.replace_all("clients", [Client(ClientID="C1"), Client(ClientID="C1")])

    assert len(validate(store).errors) == 1


def test_report_build_and_save(tmp_path):
    """
    @brief
    The report is serializable and written atomically to the output directory.
    """
    # --- Arrange ---
    validator = Validator(_mixed_snapshot())
    validator.run_all_checks()

    # --- Act ---
    report = validator.build_report()
    path = validator.save_report(report, out_dir=tmp_path)

    # --- Assert ---
    assert report["valid"] is False
    assert report["counts"] == {"clients": 3, "workers": 1, "tasks": 3}
    assert report["checks"] == {
        "Identity": False,
        "Clients": False,
        "Workers": False,
        "Tasks": False,
        "SkillCoverage": False,
    }
    assert report["errors"][0] == {
        "entityType": "clients",
        "id": "C1",
        "field": "ClientID",
        "message": "Duplicate ID found: C1.",
    }
    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["errors"] == report["errors"]
    assert path.name == "validation_report.json"


@pytest.mark.parametrize("text", ["NaN", "Infinity", "-Infinity", '{"a": NaN}'])
def test_attributes_json_rejects_non_standard_constants(text):
    """
    @brief
    NaN / Infinity are not JSON, even though Python's json module reads them.
    """
    outcome = validate(snapshot(clients=[Client(ClientID="C1", AttributesJSON=text)]))

    assert fields(outcome) == [("clients", "C1", "AttributesJSON")]


def test_phase_verdict_does_not_depend_on_representation():
    as_list_ = Task(TaskID="T1", PreferredPhases=["2"])
    as_text = Task(TaskID="T2", PreferredPhases="2")

    outcome = validate(snapshot(tasks=[as_list_, as_text]))

    assert outcome.valid


@pytest.mark.parametrize("slot", ["NaN", "-0x10", "infinity", "1_000"])
def test_slots_outside_number_syntax_are_flagged(slot):
    outcome = validate(snapshot(workers=[Worker(WorkerID="W1", AvailableSlots=[slot])]))

    assert fields(outcome) == [("workers", "W1", "AvailableSlots")]


def test_issues_carry_the_flagged_record():
    """
    @brief
    Every per-record issue names the exact record it was raised on, so two
    records sharing a domain id stay distinguishable; global issues name none.
    """
    # --- Arrange ---
    first = Worker(WorkerID="W1", AvailableSlots=[1, 2])
    second = Worker(WorkerID="W1", AvailableSlots=["x3"])
    task = Task(TaskID="T1", RequiredSkills=["go"])

    # --- Act ---
    outcome = validate(snapshot(workers=[first, second], tasks=[task]))

    # --- Assert ---
    assert [(e.field, e.internal_id) for e in outcome.errors] == [
        ("WorkerID", second.id),
        ("AvailableSlots", second.id),
        ("RequiredSkills", task.id),
        ("Skill Coverage", None),
    ]
    assert "internal_id" not in outcome.errors[0].to_dict()
