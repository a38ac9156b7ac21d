"""Deep merge of a caller payload into a rendered body template."""
import copy
from typing import Any, Dict, Optional


def merge(template: Dict[str, Any], payload: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Overlay `payload` onto a copy of `template`.

    - None values in the payload are ignored (the placeholder stays)
    - dict onto dict recurses; anything else replaces wholesale, lists included
    - keys unknown to the template are added

    The template is never mutated.
    """
    merged = copy.deepcopy(template)
    if payload:
        _merge_into(merged, payload)
    return merged


def _merge_into(target: Dict[str, Any], payload: Dict[str, Any]) -> None:
    for key, value in payload.items():
        if value is None:
            continue
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            _merge_into(current, value)
        else:
            target[key] = copy.deepcopy(value)
