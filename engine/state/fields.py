"""Path-based edits on parsed state JSON.

Paths are dotted strings (``"attributes.data.0.ttl"``) or lists of
segments; numeric segments index into lists. Every function edits the
document in place and returns it. A path that does not exist is a no-op.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

logger = logging.getLogger(__name__)

Path = Union[str, List[Union[str, int]]]

MISSING = object()


def split_path(path: Path) -> List[Union[str, int]]:
    """Split a dotted path into segments, turning digits into list indexes."""
    if isinstance(path, (list, tuple)):
        return list(path)
    if not path:
        return []
    segments: List[Union[str, int]] = []
    for part in path.split("."):
        segments.append(int(part) if part.isdigit() else part)
    return segments


def _step(node: Any, segment: Union[str, int]) -> Any:
    if isinstance(node, dict):
        return node.get(segment, MISSING) if isinstance(segment, str) else node.get(str(segment), MISSING)
    if isinstance(node, list) and isinstance(segment, int):
        return node[segment] if 0 <= segment < len(node) else MISSING
    return MISSING


def get_path(doc: Any, path: Path, default: Any = None) -> Any:
    """Return the value at ``path`` or ``default`` if any segment is missing."""
    node = doc
    for segment in split_path(path):
        node = _step(node, segment)
        if node is MISSING:
            return default
    return node


def has_path(doc: Any, path: Path) -> bool:
    """True when ``path`` exists, even if its value is null."""
    node = doc
    for segment in split_path(path):
        node = _step(node, segment)
        if node is MISSING:
            return False
    return True


def get_object(doc: Any, path: Path) -> Optional[Dict[str, Any]]:
    """Return the dict at ``path``, or None if absent or not an object."""
    node = get_path(doc, path) if split_path(path) else doc
    return node if isinstance(node, dict) else None


def set_path(doc: Any, path: Path, value: Any) -> Any:
    """Set ``value`` at ``path``, creating intermediate objects.

    Nothing is written if an intermediate value exists but is not a
    container.
    """
    segments = split_path(path)
    if not segments:
        return doc
    node = doc
    for segment in segments[:-1]:
        child = _step(node, segment)
        if child is MISSING:
            if not isinstance(node, dict):
                return doc
            child = {}
            node[str(segment)] = child
        if not isinstance(child, (dict, list)):
            logger.debug("Cannot set %s: %r is not a container", path, segment)
            return doc
        node = child
    last = segments[-1]
    if isinstance(node, dict):
        node[str(last)] = value
    elif isinstance(node, list) and isinstance(last, int) and 0 <= last < len(node):
        node[last] = value
    return doc


def delete_path(doc: Any, path: Path) -> Any:
    """Remove the value at ``path`` if present."""
    segments = split_path(path)
    if not segments:
        return doc
    parent = get_path(doc, segments[:-1]) if len(segments) > 1 else doc
    last = segments[-1]
    if isinstance(parent, dict):
        parent.pop(str(last), None)
    elif isinstance(parent, list) and isinstance(last, int) and 0 <= last < len(parent):
        parent.pop(last)
    return doc


def rename_field(doc: Any, parent_path: Path, old: str, new: str) -> Any:
    """Rename a key under ``parent_path``.

    When both keys exist the existing ``new`` value is kept and ``old`` is
    dropped.
    """
    parent = get_object(doc, parent_path)
    if parent is None or old not in parent:
        return doc
    value = parent.pop(old)
    if new not in parent:
        parent[new] = value
    return doc


def rename_fields(doc: Any, parent_path: Path, renames: Dict[str, str]) -> Any:
    for old, new in renames.items():
        rename_field(doc, parent_path, old, new)
    return doc


def remove_fields(doc: Any, parent_path: Path, *names: str) -> Any:
    parent = get_object(doc, parent_path)
    if parent is None:
        return doc
    for name in names:
        parent.pop(name, None)
    return doc


def ensure_field(doc: Any, parent_path: Path, name: str, default: Any) -> Any:
    """Insert ``name: default`` only if ``name`` is absent.

    An existing value, including an explicit null, is never overwritten.
    """
    parent = get_object(doc, parent_path)
    if parent is not None and name not in parent:
        parent[name] = default
    return doc


def set_schema_version(doc: Dict[str, Any], version: int) -> Dict[str, Any]:
    if isinstance(doc, dict):
        doc["schema_version"] = version
    return doc


def move_fields_to_object(
    doc: Any, parent_path: Path, wrapper: str, names: Iterable[str]
) -> Any:
    """Move fields under ``parent_path`` into a nested object ``wrapper``.

    Absent fields are skipped. The wrapper is created only if at least one
    field moved, and merged into an existing wrapper object.
    """
    parent = get_object(doc, parent_path)
    if parent is None:
        return doc
    moved = {name: parent.pop(name) for name in names if name in parent}
    if not moved:
        return doc
    target = parent.get(wrapper)
    if isinstance(target, dict):
        target.update(moved)
    else:
        parent[wrapper] = moved
    return doc


def is_empty_value(value: Any) -> bool:
    """Zero values: null, false, 0, "", [] and objects whose values are all empty."""
    if value is None or value is False:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, (str, list)):
        return len(value) == 0
    if isinstance(value, dict):
        return all(is_empty_value(v) for v in value.values())
    return False


def cleanup_empty_field(doc: Any, path: Path) -> Any:
    """Delete the field at ``path`` if it is ``""``, ``[]`` or ``{}``."""
    if not has_path(doc, path):
        return doc
    value = get_path(doc, path)
    if value in ("", [], {}):
        delete_path(doc, path)
    return doc


def remove_object_if_all_null(doc: Any, path: Path, names: Iterable[str]) -> Any:
    """Delete the object at ``path`` if every listed field is null or missing."""
    obj = get_path(doc, path, MISSING)
    if obj is MISSING:
        return doc
    if isinstance(obj, dict) and any(obj.get(name) is not None for name in names):
        return doc
    if obj is not None and not isinstance(obj, dict):
        return doc
    return delete_path(doc, path)


def ensure_timestamps(
    doc: Any, parent_path: Path, default_time: str = "2024-01-01T00:00:00Z"
) -> Any:
    """Make sure ``created_on`` and ``modified_on`` exist.

    A missing ``modified_on`` copies ``created_on`` when that exists.
    """
    parent = get_object(doc, parent_path)
    if parent is None:
        return doc
    created_exists = "created_on" in parent
    if not created_exists:
        parent["created_on"] = default_time
    if "modified_on" not in parent:
        parent["modified_on"] = parent["created_on"] if created_exists else default_time
    return doc
