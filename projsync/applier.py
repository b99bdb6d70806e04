"""
Batched applier.

Pending changes are cut into consecutive fixed-size batches and applied
one at a time, waiting for each write before issuing the next. A short
pause between batches keeps the write rate down on the projects service.
A failed write is recorded and the run moves on: no retry, no rollback.
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Sequence, TypeVar

import requests

from projsync.errors import ApplyFailure
from projsync.normalizers.types import Record
from projsync.planner import PendingChange

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class BatchResult:
    batch_index: int          # 1-based
    attempted: int
    succeeded: int
    failed_ids: List[Any]


@dataclass
class RunSummary:
    total_attempted: int = 0
    total_succeeded: int = 0
    failed_changes: List[PendingChange] = field(default_factory=list)
    batches: int = 0

    @property
    def no_changes(self) -> bool:
        return self.total_attempted == 0

    @property
    def total_failed(self) -> int:
        return len(self.failed_changes)

    def describe(self) -> str:
        if self.no_changes:
            return "No updates needed"
        return f"Updated {self.total_succeeded} of {self.total_attempted} projects"


@dataclass
class MigrationSummary:
    total_records: int = 0
    total_added: int = 0
    errors: List[Any] = field(default_factory=list)
    failed_batches: List[int] = field(default_factory=list)
    batches: int = 0

    def describe(self) -> str:
        return f"Migrated {self.total_added} out of {self.total_records} projects"


def chunked(seq: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    for i in range(0, len(seq), size):
        yield seq[i:i+size]


def batch_count(n: int, size: int) -> int:
    return (n + size - 1) // size


def _pause(sleep, delay: float, index: int, total: int):
    # no pause after the last batch
    if delay > 0 and index < total:
        sleep(delay)


def apply_batches(
    pending: Sequence[PendingChange],
    batch_size: int,
    apply_one: Callable[[PendingChange], bool],
    inter_batch_delay: float,
    *,
    sleep: Callable[[float], None] = time.sleep,
    on_batch: Callable[[BatchResult], None] | None = None,
) -> RunSummary:
    """
    Apply `pending` in order, `batch_size` at a time.

    `apply_one` returns True on success; False, an ApplyFailure or a
    transport error (requests/OSError) marks the change failed. Either way the rest of the batch, and every later batch,
    is still attempted. `inter_batch_delay` is in seconds.
    """
    summary = RunSummary()
    total = batch_count(len(pending), batch_size) if pending else 0

    for i, batch in enumerate(chunked(pending, batch_size), start=1):
        start = (i - 1) * batch_size
        log.info("batch %d/%d: projects %d to %d", i, total, start + 1, start + len(batch))

        ok = 0
        failed_ids: List[Any] = []
        for change in batch:
            try:
                success = bool(apply_one(change))
            except (ApplyFailure, requests.RequestException, OSError) as e:
                log.error("failed to update project %s: %s", change.id, e)
                success = False
            else:
                if not success:
                    log.error("failed to update project %s", change.id)
            if success:
                ok += 1
            else:
                failed_ids.append(change.id)
                summary.failed_changes.append(change)

        summary.total_attempted += len(batch)
        summary.total_succeeded += ok
        summary.batches += 1
        result = BatchResult(i, len(batch), ok, failed_ids)
        if on_batch:
            on_batch(result)

        _pause(sleep, inter_batch_delay, i, total)

    return summary


def bulk_create_batches(
    records: Sequence[Record],
    batch_size: int,
    create_batch: Callable[[List[Record]], Dict[str, Any]],
    inter_batch_delay: float,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> MigrationSummary:
    """
    Initial-migration variant: send whole batches of full records.

    `create_batch` returns {"addedCount": int, "errors": [...]}. A batch that
    raises ApplyFailure is recorded by index and the next batch still goes out.
    """
    summary = MigrationSummary(total_records=len(records))
    total = batch_count(len(records), batch_size) if records else 0

    for i, batch in enumerate(chunked(records, batch_size), start=1):
        start = (i - 1) * batch_size
        log.info("migrating batch %d/%d: projects %d to %d", i, total, start + 1, start + len(batch))
        summary.batches += 1
        try:
            resp = create_batch(list(batch))
        except (ApplyFailure, requests.RequestException, OSError) as e:
            log.error("failed to migrate batch %d: %s", i, e)
            summary.failed_batches.append(i)
        else:
            added = int(resp.get("addedCount", 0) or 0)
            summary.total_added += added
            errors = resp.get("errors") or []
            if errors:
                log.warning("batch %d warnings (first 3 of %d): %s", i, len(errors), errors[:3])
                summary.errors.extend(errors)
            log.info("migrated %d project(s) (total: %d)", added, summary.total_added)

        _pause(sleep, inter_batch_delay, i, total)

    return summary
