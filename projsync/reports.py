import json
import logging
from dataclasses import asdict, dataclass, is_dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List

import pandas as pd

from projsync.normalizers.types import Record

log = logging.getLogger(__name__)


# -------------------------------------------------------------------
# Text renderings for the console
# -------------------------------------------------------------------
def format_transitions(summary: Dict[str, int]) -> List[str]:
    """One line per 'current -> proposed' transition, in plan order."""
    return [f"  {change}: {count} projects" for change, count in summary.items()]


def format_histogram(hist: Dict[str, int]) -> List[str]:
    return [f"  {value}: {count} projects" for value, count in hist.items()]


# -------------------------------------------------------------------
# Per-director rollups
# -------------------------------------------------------------------
def director_summaries(
    records: Iterable[Record],
    field: str = "project_director",
    contract_field: str = "updated_contract_amount",
    billed_field: str = "contract_billed",
    status_field: str = "project_status",
    open_status: str = "OPEN",
) -> List[Dict[str, Any]]:
    """
    Group records by `field` and total their contract figures.

    Returns one dict per distinct non-blank value, most projects first:
    directorName, projectCount, totalContractAmount, totalBilledAmount,
    totalOutstandingBalance, openProjectCount, averageProjectSize.
    Missing or non-numeric amounts count as 0.
    """
    df = pd.DataFrame(list(records))
    if df.empty or field not in df.columns:
        return []

    df = df[df[field].notna() & (df[field].astype(str).str.strip() != "")].copy()
    if df.empty:
        return []

    for col in (contract_field, billed_field):
        df[col] = pd.to_numeric(df[col], errors="coerce").fillna(0) if col in df.columns else 0
    df["_open"] = (df[status_field] == open_status) if status_field in df.columns else False

    g = df.groupby(field, sort=False).agg(
        projectCount=("_open", "size"),
        totalContractAmount=(contract_field, "sum"),
        totalBilledAmount=(billed_field, "sum"),
        openProjectCount=("_open", "sum"),
    )
    g["totalOutstandingBalance"] = g["totalContractAmount"] - g["totalBilledAmount"]
    g["averageProjectSize"] = g["totalContractAmount"] / g["projectCount"]
    g = g.reset_index().rename(columns={field: "directorName"})
    g = g.sort_values(["projectCount", "directorName"], ascending=[False, True])

    cols = ["directorName", "projectCount", "totalContractAmount", "totalBilledAmount",
            "totalOutstandingBalance", "openProjectCount", "averageProjectSize"]
    out = []
    for row in g[cols].to_dict(orient="records"):
        row["projectCount"] = int(row["projectCount"])
        row["openProjectCount"] = int(row["openProjectCount"])
        for k in ("totalContractAmount", "totalBilledAmount", "totalOutstandingBalance", "averageProjectSize"):
            row[k] = float(row[k])
        out.append(row)
    return out


# -------------------------------------------------------------------
# Source vs store comparison
# -------------------------------------------------------------------
@dataclass(frozen=True)
class CountMismatch:
    value: str
    expected: int   # count in the (normalized) source
    actual: int     # count in the store


def compare_counts(expected: Dict[str, int], actual: Dict[str, int]) -> List[CountMismatch]:
    """Every value whose count differs between the two histograms, sorted by value."""
    out = []
    for value in sorted(set(expected) | set(actual)):
        e, a = expected.get(value, 0), actual.get(value, 0)
        if e != a:
            out.append(CountMismatch(value, e, a))
    return out


# -------------------------------------------------------------------
# Persisted artifacts
# -------------------------------------------------------------------
def _jsonable(obj: Any):
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    return str(obj)


def write_report(path: str | Path, payload: Dict[str, Any]) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, default=_jsonable)
    log.info("wrote report to %s", p)
    return p
