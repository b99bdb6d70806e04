# projsync/normalizers/base.py
from typing import Any, Protocol
from .types import Record

class Normalizer(Protocol):
    def normalize(self, value: Any) -> Any:
        """Return the canonical form of `value`, or `value` itself when unknown."""
        ...

    def normalize_record(self, field: str, rec: Record) -> Record:
        """Return a NEW record with `field` normalized. Do not mutate `rec`."""
        ...
