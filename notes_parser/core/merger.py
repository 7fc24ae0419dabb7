"""
Merging partial profiles.

merge_profiles() folds a strategy's partial result into the accumulator field
by field with a "better value wins" rule:

  - an empty existing value always loses to a non-empty new value
  - lists: the longer one wins
  - strings: the longer one wins, provided it is under MAX_STRING_LENGTH
  - nested objects (sources, briefing_info): more populated keys wins
  - anything else keeps the existing value

A populated field is never cleared by a merge.
"""

from typing import Any

from pydantic import BaseModel

from notes_parser.core.schemas import ClientProfile


MAX_STRING_LENGTH = 100


def is_empty(value: Any) -> bool:
    if isinstance(value, BaseModel):
        return populated_keys(value) == 0
    return not value


def populated_keys(model: BaseModel) -> int:
    return sum(1 for value in model.model_dump().values() if value)


def is_better_value(existing: Any, new: Any) -> bool:
    """
    Examples:
      ('', 'Acme')                  -> True
      ('Acme', '')                  -> False
      (['A'], ['A', 'B'])           -> True
      ('Acme', 'Acme Corporation')  -> True
      ('Acme', 'x' * 150)           -> False
    """
    if is_empty(new):
        return False
    if is_empty(existing):
        return True
    if isinstance(existing, list) and isinstance(new, list):
        return len(new) > len(existing)
    if isinstance(existing, str) and isinstance(new, str):
        return len(new) > len(existing) and len(new) < MAX_STRING_LENGTH
    if isinstance(existing, BaseModel) and isinstance(new, BaseModel):
        return populated_keys(new) > populated_keys(existing)
    return False


def merge_profiles(existing: ClientProfile, new: ClientProfile) -> ClientProfile:
    """Return a new profile; neither input is modified."""
    merged = existing.model_copy(deep=True)
    for field_name in ClientProfile.model_fields:
        current = getattr(existing, field_name)
        candidate = getattr(new, field_name)
        if is_better_value(current, candidate):
            value = candidate.model_copy(deep=True) if isinstance(candidate, BaseModel) else _copy(candidate)
            setattr(merged, field_name, value)
    return merged


def _copy(value: Any) -> Any:
    if isinstance(value, list):
        return [item.model_copy(deep=True) if isinstance(item, BaseModel) else item for item in value]
    return value
