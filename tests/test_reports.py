import json

from projsync.reports import (
    CountMismatch, compare_counts, director_summaries, format_histogram, format_transitions, write_report,
)


def test_director_summaries(seed_projects):
    rows = director_summaries(seed_projects)
    by_name = {r["directorName"]: r for r in rows}

    # blank director rows are left out
    assert len(rows) == 5
    assert rows[0]["projectCount"] == 1
    assert by_name["ANCHY VERO"] == {
        "directorName": "ANCHY VERO",
        "projectCount": 1,
        "totalContractAmount": 1_000_000.0,
        "totalBilledAmount": 250_000.0,
        "totalOutstandingBalance": 750_000.0,
        "openProjectCount": 1,
        "averageProjectSize": 1_000_000.0,
    }


def test_director_summaries_groups_and_sorts():
    records = [
        {"project_director": "B", "updated_contract_amount": 10, "contract_billed": 5, "project_status": "OPEN"},
        {"project_director": "A", "updated_contract_amount": "n/a"},
        {"project_director": "B", "updated_contract_amount": 30, "contract_billed": None, "project_status": "CLOSED"},
    ]
    rows = director_summaries(records)
    assert [r["directorName"] for r in rows] == ["B", "A"]
    b = rows[0]
    assert b["projectCount"] == 2
    assert b["totalContractAmount"] == 40.0
    assert b["totalBilledAmount"] == 5.0
    assert b["openProjectCount"] == 1
    assert b["averageProjectSize"] == 20.0
    assert rows[1]["totalContractAmount"] == 0.0


def test_director_summaries_empty():
    assert director_summaries([]) == []
    assert director_summaries([{"other": 1}]) == []


def test_compare_counts():
    out = compare_counts({"A": 2, "B": 1}, {"A": 2, "B": 3, "C": 1})
    assert out == [CountMismatch("B", 1, 3), CountMismatch("C", 0, 1)]
    assert compare_counts({"A": 1}, {"A": 1}) == []


def test_text_renderings():
    assert format_transitions({"X -> x": 3}) == ["  X -> x: 3 projects"]
    assert format_histogram({"x": 1}) == ["  x: 1 projects"]


def test_write_report_creates_dirs(tmp_path):
    path = write_report(tmp_path / "out" / "run.json", {"mismatch": CountMismatch("A", 1, 2)})
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data == {"mismatch": {"value": "A", "expected": 1, "actual": 2}}
