# projsync/normalizers/types.py
from typing import Any, Dict, Mapping

# One project entry as the store returns it (field name -> scalar or None)
Record = Dict[str, Any]

# Exact-match correction list: raw observed value -> canonical value
NormalizationTable = Mapping[str, str]
