import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Tuple

from projsync.normalizers.table import normalize
from projsync.normalizers.types import NormalizationTable, Record

log = logging.getLogger(__name__)

# "current -> proposed" -> how many records make that transition
TransitionSummary = Dict[str, int]


@dataclass(frozen=True)
class PendingChange:
    """A computed, not-yet-applied update of one field on one record."""
    id: Any
    field_name: str
    current_value: Any
    proposed_value: Any

    def payload(self) -> Dict[str, Any]:
        """Body for the single-record update call."""
        return {self.field_name: self.proposed_value}


def transition_key(current: Any, proposed: Any) -> str:
    return f"{current} -> {proposed}"


def plan(
    records: Iterable[Record], field_name: str, table: NormalizationTable
) -> Tuple[List[PendingChange], TransitionSummary]:
    """
    Diff every record's `field_name` against its table lookup.

    Output order follows input order. Records whose field is absent or
    null are skipped; values equal to their lookup produce nothing.
    """
    changes: List[PendingChange] = []
    summary: TransitionSummary = {}

    for rec in records:
        current = rec.get(field_name)
        if current is None:
            continue
        proposed = normalize(current, table)
        if proposed is None or proposed == current:
            continue
        rid = rec.get("id")
        if rid is None:
            # the store owns ids; without one there is nothing to address
            log.warning("skipping record without id: %s=%r", field_name, current)
            continue

        changes.append(PendingChange(rid, field_name, current, proposed))
        key = transition_key(current, proposed)
        summary[key] = summary.get(key, 0) + 1

    return changes, summary


def value_histogram(records: Iterable[Record], field_name: str) -> Dict[str, int]:
    """Occurrences of each non-null value, most common first (ties by value)."""
    counts = Counter(str(r[field_name]) for r in records if r.get(field_name) is not None)
    return dict(sorted(counts.items(), key=lambda kv: (-kv[1], kv[0])))
