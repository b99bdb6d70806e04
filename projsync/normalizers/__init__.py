from .table import TableNormalizer, normalize
from .profiles import NormalizationProfile, load_profiles, parse_profiles, get_profile
from .types import NormalizationTable, Record
from .base import Normalizer

__all__ = [
    "TableNormalizer",
    "normalize",
    "NormalizationProfile",
    "load_profiles",
    "parse_profiles",
    "get_profile",
    "NormalizationTable",
    "Record",
    "Normalizer",
]
