from copy import deepcopy
from types import MappingProxyType
from typing import Any, Mapping
from .base import Normalizer
from .types import NormalizationTable, Record

class TableNormalizer(Normalizer):
    """
    Lookup-table normalizer:
    maps a raw field value to its canonical spelling by exact match.
    The table is an allow-list of known corrections; anything not
    listed is passed through untouched.
    """
    def __init__(self, table: Mapping[str, str]):
        # private frozen copy, so the caller can't change it mid-run
        self.table: NormalizationTable = MappingProxyType(dict(table))

    def normalize(self, value: Any) -> Any:
        return normalize(value, self.table)

    def normalize_record(self, field: str, rec: Record) -> Record:
        r = deepcopy(rec)  # work on a copy so we don't mutate the input
        if r.get(field) is not None:
            r[field] = self.normalize(r[field])
        return r


def normalize(value: Any, table: NormalizationTable) -> Any:
    """
    Exact-match lookup. No trimming and no case-folding happen here:
    "NAME", "Name" and "NAME " must each be listed as their own key.
    Unmapped (and non-string) values come back unchanged.
    """
    if not isinstance(value, str):
        return value
    return table.get(value, value)
