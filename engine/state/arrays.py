"""Singleton array and object conversions for state.

v4 modelled many nested attributes as lists limited to one element; v5
stores them as plain objects. ``array_to_object`` performs that change and
``object_to_array`` the inverse.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from engine.state.fields import Path, get_object

logger = logging.getLogger(__name__)


@dataclass
class ArrayToObjectOptions:
    """Per-field adjustments applied while converting.

    Attributes:
        skip_fields: Keys dropped from the object
        rename_fields: Old key to new key
        default_fields: Keys added when missing
        field_transforms: Converters applied to a key's value (after renaming)
        ensure_object: Write ``{}`` for an empty array, null or missing field
    """

    skip_fields: List[str] = field(default_factory=list)
    rename_fields: Dict[str, str] = field(default_factory=dict)
    default_fields: Dict[str, Any] = field(default_factory=dict)
    field_transforms: Dict[str, Callable[[Any], Any]] = field(default_factory=dict)
    ensure_object: bool = True


def transform_object(source: Dict[str, Any], options: ArrayToObjectOptions) -> Dict[str, Any]:
    """Copy ``source`` applying skips, renames, transforms and defaults."""
    result: Dict[str, Any] = {}
    for key, value in source.items():
        if key in options.skip_fields:
            continue
        key = options.rename_fields.get(key, key)
        transform = options.field_transforms.get(key)
        result[key] = transform(value) if transform else value
    for key, value in options.default_fields.items():
        result.setdefault(key, copy.deepcopy(value))
    return result


def array_to_object(
    doc: Any, parent_path: Path, name: str, options: ArrayToObjectOptions = None
) -> Any:
    """Turn a singleton array field into a bare object.

    - ``[obj]`` becomes ``obj`` (with ``options`` applied)
    - ``[]``, null or a missing field becomes ``{}`` when ``ensure_object``
      is set, and is removed otherwise
    - an object is kept, with ``options`` applied
    - arrays with more than one element and scalars are left untouched
    """
    options = options or ArrayToObjectOptions()
    parent = get_object(doc, parent_path)
    if parent is None:
        return doc
    value = parent.get(name)
    if value is None or value == []:
        if options.ensure_object:
            parent[name] = transform_object({}, options)
        elif name in parent and value == []:
            del parent[name]
        return doc
    if isinstance(value, list):
        if len(value) != 1 or not isinstance(value[0], dict):
            logger.debug("Leaving %s as a %d element array", name, len(value))
            return doc
        parent[name] = transform_object(value[0], options)
    elif isinstance(value, dict):
        parent[name] = transform_object(value, options)
    return doc


def flatten_array_field(doc: Any, parent_path: Path, name: str) -> Any:
    """Replace a one-element array with its element."""
    parent = get_object(doc, parent_path)
    if parent is None:
        return doc
    value = parent.get(name)
    if isinstance(value, list) and len(value) == 1:
        parent[name] = value[0]
    return doc


def object_to_array(doc: Any, parent_path: Path, name: str) -> Any:
    """Wrap an object field in a one-element array."""
    parent = get_object(doc, parent_path)
    if parent is None:
        return doc
    value = parent.get(name)
    if isinstance(value, dict):
        parent[name] = [value]
    return doc
