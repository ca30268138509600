"""Type coercion for state values.

The v5 schemas use a single numeric type, so integers written by v4 must
be stored as floats (``30`` becomes ``30.0``). Values that cannot be
converted are returned unchanged.
"""

import math
from typing import Any

from engine.state.fields import Path, get_object


def convert_to_float(value: Any) -> Any:
    """Return ``value`` as a float where it is numeric.

    Args:
        value: Any JSON value

    Returns:
        float for ints, floats and numeric strings; None for None; anything
        else unchanged. Strings such as "NaN" or "inf", and integers too large
        for a float, are returned unchanged.
    """
    if value is None or isinstance(value, (bool, float)):
        return value
    if not isinstance(value, (int, str)):
        return value
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return value
    if not math.isfinite(number):
        return value
    return number


def convert_enabled_disabled_to_bool(value: Any) -> Any:
    """Map ``"enabled"``/``"disabled"`` to True/False."""
    if value == "enabled":
        return True
    if value == "disabled":
        return False
    return value


def convert_fields(doc: Any, parent_path: Path, converter, *names: str) -> Any:
    """Apply ``converter`` to each named field under ``parent_path``."""
    parent = get_object(doc, parent_path)
    if parent is None:
        return doc
    for name in names:
        if name in parent:
            parent[name] = converter(parent[name])
    return doc


def convert_fields_to_float(doc: Any, parent_path: Path, *names: str) -> Any:
    return convert_fields(doc, parent_path, convert_to_float, *names)
