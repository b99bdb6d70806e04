"""Source loader: one ordered list of records from the store or a local snapshot."""
import datetime
import json
import logging
import math
from pathlib import Path
from typing import Any, Dict, List, Mapping

import numpy as np
import pandas as pd

from projsync.client import ProjectStoreClient
from projsync.errors import ConfigurationError, SourceUnavailable
from projsync.normalizers.types import Record

log = logging.getLogger(__name__)

# .xls (BIFF) needs xlrd, which is not part of the stack
SPREADSHEET_SUFFIXES = {".xlsx", ".xlsm"}


def is_remote(source: str) -> bool:
    return str(source).lower().startswith(("http://", "https://"))


def is_spreadsheet(source) -> bool:
    return Path(str(source)).suffix.lower() in SPREADSHEET_SUFFIXES


def load_records(source, *, client=None, sheet: str | int | None = None) -> List[Record]:
    """
    Read every record from `source`, in source order.

    `source` is either a URL or a path to a .json / .xlsx / .csv snapshot.
    A URL is read through `client` when it points at the same service,
    otherwise through a new client for the URL's host. No dedup and no
    field validation happen here; missing fields are simply absent.
    Raises SourceUnavailable on any read failure.
    """
    if is_remote(source):
        base_url = _base_url_of(str(source))
        if client is None or client.base_url != base_url:
            client = ProjectStoreClient(base_url)
        return client.list_projects()

    path = Path(source)
    if not path.exists():
        raise SourceUnavailable(f"source file not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".json":
        records = _load_json(path)
    elif suffix in SPREADSHEET_SUFFIXES:
        records = _load_sheet(path, sheet)
    elif suffix == ".csv":
        records = _load_csv(path)
    else:
        raise SourceUnavailable(f"unsupported source type {suffix!r}: {path}")

    log.info("loaded %d record(s) from %s", len(records), path)
    return records


def _base_url_of(url: str) -> str:
    # accept both "http://host:3001" and "http://host:3001/api/projects"
    return url.split("/api/", 1)[0].rstrip("/")


def _load_json(path: Path) -> List[Record]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        # ValueError covers JSONDecodeError and UnicodeDecodeError
        raise SourceUnavailable(f"could not parse {path}: {e}") from e

    if isinstance(data, dict) and "projects" in data:
        data = data["projects"]
    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        raise SourceUnavailable(f"{path} must hold a JSON array of objects")
    return data


def _load_sheet(path: Path, sheet) -> List[Record]:
    try:
        df = pd.read_excel(path, sheet_name=0 if sheet is None else sheet)
    except (OSError, ValueError, KeyError) as e:
        # ValueError covers a missing sheet name and unreadable workbooks
        raise SourceUnavailable(f"could not read workbook {path} (sheet={sheet!r}): {e}") from e
    return frame_to_records(df)


def _load_csv(path: Path) -> List[Record]:
    try:
        df = pd.read_csv(path)
    except (OSError, ValueError) as e:
        raise SourceUnavailable(f"could not read csv {path}: {e}") from e
    return frame_to_records(df)


def frame_to_records(df: pd.DataFrame) -> List[Record]:
    """DataFrame rows -> plain dicts, blank cells as None."""
    # drop rows where every cell is empty (trailing formatting in spreadsheets)
    df = df.dropna(how="all")
    return [{str(k): _clean_cell(v) for k, v in row.items()} for row in df.to_dict(orient="records")]


def _clean_cell(v: Any) -> Any:
    if v is None or v is pd.NaT:
        return None
    if isinstance(v, np.generic):
        v = v.item()
    if isinstance(v, float) and math.isnan(v):
        return None
    # date/time cells are passed on as ISO text, not interpreted;
    # mixed columns ("TBD" next to dates) keep plain datetime objects
    if isinstance(v, (datetime.date, datetime.time)):
        return v.isoformat()
    return v


def rename_columns(records: List[Record], column_map: Mapping[str, str]) -> List[Record]:
    """
    Rename spreadsheet headers to store field names.
    Columns not in the map are dropped, so the store only sees known fields.
    """
    out: List[Record] = []
    for rec in records:
        out.append({field: rec.get(header) for header, field in column_map.items()})
    return out


def load_column_map(path) -> Dict[str, str]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"could not read column map {path}: {e}") from e
    if not isinstance(data, dict) or not all(isinstance(k, str) and isinstance(v, str) for k, v in data.items()):
        raise ConfigurationError(f"column map {path} must be an object of header -> field strings")
    return data
