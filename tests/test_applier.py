import pytest
import requests

from projsync.applier import apply_batches, batch_count, bulk_create_batches, chunked
from projsync.errors import ApplyFailure
from projsync.planner import PendingChange


def _changes(n):
    return [PendingChange(i, "name", f"old{i}", f"new{i}") for i in range(1, n + 1)]


class Sleeps:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.mark.parametrize("n,k", [(0, 3), (1, 1), (5, 2), (6, 3), (7, 50), (100, 20)])
def test_chunked_partitions_in_order(n, k):
    items = list(range(n))
    batches = list(chunked(items, k))
    assert len(batches) == batch_count(n, k)
    assert [x for b in batches for x in b] == items
    assert all(1 <= len(b) <= k for b in batches)


def test_chunked_rejects_non_positive_size():
    with pytest.raises(ValueError):
        list(chunked([1, 2], 0))


def test_five_changes_in_batches_of_two():
    seen = []
    sleeps = Sleeps()
    summary = apply_batches(_changes(5), 2, lambda c: True, 0.05,
                            sleep=sleeps, on_batch=seen.append)
    assert [b.attempted for b in seen] == [2, 2, 1]
    assert [b.batch_index for b in seen] == [1, 2, 3]
    assert summary.batches == 3
    assert summary.total_attempted == 5 and summary.total_succeeded == 5
    # pause between batches only, not after the last one
    assert sleeps.calls == [0.05, 0.05]


def test_failure_does_not_stop_the_batch_or_the_run():
    applied = []

    def apply_one(c):
        applied.append(c.id)
        if c.id == 2:
            return False
        if c.id == 4:
            raise ApplyFailure("HTTP 500", record_id=c.id, status=500)
        return True

    seen = []
    summary = apply_batches(_changes(6), 3, apply_one, 0, sleep=Sleeps(), on_batch=seen.append)
    assert applied == [1, 2, 3, 4, 5, 6]
    assert summary.total_attempted == 6
    assert summary.total_succeeded == 4
    assert [c.id for c in summary.failed_changes] == [2, 4]
    assert [b.failed_ids for b in seen] == [[2], [4]]
    assert summary.describe() == "Updated 4 of 6 projects"


def test_zero_delay_never_sleeps():
    sleeps = Sleeps()
    apply_batches(_changes(4), 1, lambda c: True, 0, sleep=sleeps)
    assert sleeps.calls == []


def test_empty_plan_reports_no_changes():
    summary = apply_batches([], 20, lambda c: pytest.fail("nothing to apply"), 0.1, sleep=Sleeps())
    assert summary.no_changes
    assert summary.batches == 0
    assert summary.describe() == "No updates needed"


def test_bulk_create_continues_after_failed_batch():
    sent = []

    def create_batch(batch):
        sent.append(len(batch))
        if len(sent) == 2:
            raise ApplyFailure("HTTP 500")
        return {"addedCount": len(batch) - 1, "errors": ["Row 1: bad"]}

    records = [{"project_name": f"p{i}"} for i in range(7)]
    sleeps = Sleeps()
    summary = bulk_create_batches(records, 3, create_batch, 0.1, sleep=sleeps)
    assert sent == [3, 3, 1]
    assert summary.failed_batches == [2]
    assert summary.total_added == 2 + 0
    assert summary.errors == ["Row 1: bad", "Row 1: bad"]
    assert summary.total_records == 7
    assert len(sleeps.calls) == 2


def test_transport_error_is_a_per_change_failure():
    applied = []

    def apply_one(c):
        applied.append(c.id)
        if c.id == 1:
            raise requests.ConnectionError("connection reset")
        if c.id == 2:
            raise OSError("broken pipe")
        return True

    summary = apply_batches(_changes(3), 2, apply_one, 0, sleep=Sleeps())
    assert applied == [1, 2, 3]
    assert [c.id for c in summary.failed_changes] == [1, 2]
    assert summary.describe() == "Updated 1 of 3 projects"


def test_bulk_create_transport_error_is_a_failed_batch():
    def create_batch(batch):
        raise requests.ConnectionError("connection reset")

    summary = bulk_create_batches([{"project_name": "a"}, {"project_name": "b"}], 1, create_batch, 0, sleep=Sleeps())
    assert summary.failed_batches == [1, 2]
    assert summary.total_added == 0
