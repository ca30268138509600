"""State-side rewrite of access conditions.

v4 state stores every selector of a condition in one object, with unused
selectors present as empty lists or ``false``. v5 stores one selector per
object. The provider normalizes object keys alphabetically, so the output
is sorted the same way to avoid a spurious diff.
"""

import logging
from typing import Any, Dict, List

from engine.selectors import (
    ARRAY_SELECTORS,
    BOOLEAN_SELECTORS,
    COMPOUND_SELECTORS,
    OVERFLOW_SELECTORS,
    CompoundSelector,
)
from engine.state.fields import Path, get_object
from engine.utils.ip_utils import normalize_cidr

logger = logging.getLogger(__name__)

KNOWN_SELECTORS = (
    set(ARRAY_SELECTORS) | set(BOOLEAN_SELECTORS) | set(OVERFLOW_SELECTORS) | set(COMPOUND_SELECTORS)
)


def contract_conditions(conditions: Any) -> Any:
    """Rewrite a v4 state condition list into v5 single-selector objects.

    Args:
        conditions: List of condition dicts from state

    Returns:
        New list; non-list input is returned unchanged
    """
    if not isinstance(conditions, list):
        return conditions
    result: List[Any] = []
    for element in conditions:
        if not isinstance(element, dict):
            result.append(element)
            continue
        for selector in _explode(element):
            if _keep(selector):
                result.append(_sorted(selector))
    return result


def contract_condition_fields(doc: Any, parent_path: Path, *names: str) -> Any:
    """Apply ``contract_conditions`` to each named field under ``parent_path``."""
    parent = get_object(doc, parent_path)
    if parent is None:
        return doc
    for name in names:
        if name in parent:
            parent[name] = contract_conditions(parent[name])
    return doc


def _explode(element: Dict[str, Any]) -> List[Dict[str, Any]]:
    selectors: List[Dict[str, Any]] = []
    for key, inner in ARRAY_SELECTORS.items():
        if key in element:
            selectors.extend(_explode_array(key, inner, element[key]))
    for key in BOOLEAN_SELECTORS:
        value = element.get(key)
        if value is True:
            selectors.append({key: {}})
        elif isinstance(value, dict):
            selectors.append({key: value})
    for key, (target, inner) in OVERFLOW_SELECTORS.items():
        if key in element:
            selectors.extend(_explode_array(target, inner, element[key]))
    for key, selector in COMPOUND_SELECTORS.items():
        if key in element:
            selectors.extend(_explode_compound(selector, element[key]))
    for key, value in element.items():
        if key not in KNOWN_SELECTORS and not _is_unset(value):
            selectors.append({key: value})
    return selectors


def _is_unset(value: Any) -> bool:
    # v4 placeholders for unused selectors; zero is a real value.
    if value is None or value is False:
        return True
    return isinstance(value, (str, list, dict)) and not value


def _explode_array(key: str, inner: str, value: Any) -> List[Dict[str, Any]]:
    if value is None or value == "" or value == []:
        return []
    if isinstance(value, dict):
        return [{key: value}] if value else []
    values = value if isinstance(value, list) else [value]
    selectors = []
    for item in values:
        if isinstance(item, dict):
            selectors.append({key: item})
            continue
        if key == "ip":
            item = normalize_cidr(item)
        selectors.append({key: {inner: item}})
    return selectors


def _explode_compound(selector: CompoundSelector, value: Any) -> List[Dict[str, Any]]:
    objects = value if isinstance(value, list) else [value]
    selectors = []
    for obj in objects:
        if not isinstance(obj, dict):
            continue
        fields = {k: v for k, v in obj.items() if v is not None and v != [] and v != ""}
        if selector.array_field is None:
            selectors.append({selector.target: fields})
            continue
        values = fields.pop(selector.array_field, None)
        if isinstance(values, list):
            entries = values[:1] if selector.first_only else values
        elif values is None:
            entries = []
        else:
            entries = [values]
        if not entries:
            selectors.append({selector.target: fields})
        for entry in entries:
            selectors.append({selector.target: dict(fields, **{selector.value_field: entry})})
    return selectors


def _keep(selector: Dict[str, Any]) -> bool:
    ((key, value),) = selector.items()
    if key in BOOLEAN_SELECTORS:
        return True
    if isinstance(value, dict):
        return any(v is not None for v in value.values())
    return value is not None


def _sorted(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _sorted(value[key]) for key in sorted(value)}
    if isinstance(value, list):
        return [_sorted(item) for item in value]
    return value

