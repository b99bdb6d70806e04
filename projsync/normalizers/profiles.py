"""Named normalization profiles loaded from a JSON config file.

File shape::

    {
      "profiles": {
        "title-case": {
          "field": "project_director",
          "description": "...",
          "mapping": {"ANCHY VERO": "Anchy Vero", ...}
        },
        ...
      }
    }

Two profiles may map the same names in opposite directions; which one a
run uses is always an explicit choice made by the caller.
"""
import json
import logging
from pathlib import Path
from typing import Dict

from pydantic import BaseModel, ValidationError, field_validator

from projsync.errors import ConfigurationError
from .table import TableNormalizer

log = logging.getLogger(__name__)


class NormalizationProfile(BaseModel):
    name: str
    field: str = "project_director"   # record field the mapping applies to
    description: str | None = None
    mapping: Dict[str, str]

    @field_validator("field")
    @classmethod
    def _field_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("field name must not be empty")
        return v

    @field_validator("mapping")
    @classmethod
    def _mapping_not_empty(cls, v: Dict[str, str]) -> Dict[str, str]:
        if not v:
            raise ValueError("mapping must contain at least one entry")
        return v

    def normalizer(self) -> TableNormalizer:
        return TableNormalizer(self.mapping)


def parse_profiles(data) -> Dict[str, NormalizationProfile]:
    """Validate already-decoded config data into profiles keyed by name."""
    if not isinstance(data, dict) or not isinstance(data.get("profiles"), dict):
        raise ConfigurationError("profile config must be an object with a 'profiles' object")

    out: Dict[str, NormalizationProfile] = {}
    for name, body in data["profiles"].items():
        if not isinstance(body, dict):
            raise ConfigurationError(f"profile {name!r} must be an object")
        try:
            # strict=True: a number where a name should be is a config mistake, not something to coerce
            out[name] = NormalizationProfile.model_validate({**body, "name": name}, strict=True)
        except ValidationError as e:
            raise ConfigurationError(f"profile {name!r} is invalid: {e}") from e
    return out


def load_profiles(path: str | Path) -> Dict[str, NormalizationProfile]:
    p = Path(path)
    try:
        with open(p, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"profile file not found: {p}") from e
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"could not read profile file {p}: {e}") from e

    profiles = parse_profiles(data)
    log.debug("loaded %d profile(s) from %s: %s", len(profiles), p, ", ".join(profiles))
    return profiles


def get_profile(profiles: Dict[str, NormalizationProfile], name: str) -> NormalizationProfile:
    try:
        return profiles[name]
    except KeyError:
        known = ", ".join(sorted(profiles)) or "<none>"
        raise ConfigurationError(f"unknown profile {name!r} (known: {known})") from None
