"""Config-aware normalization of empty state values.

v4 wrote zero values (``""``, ``false``, ``0``, ``[]``) for optional fields
the user never set, while v5 stores null. Rewriting them to null avoids a
diff, but only when the configuration does not set the field itself:
a user who wrote ``enabled = false`` must keep ``false`` in state.
"""

import logging
from typing import Any, Iterable, Optional

from engine.diagnostics import Context
from engine.hcl.document import Body
from engine.hcl.expressions import Object, parse_or_preserve
from engine.state.fields import Path, get_object, is_empty_value

logger = logging.getLogger(__name__)


def attribute_set_in_config(body: Optional[Body], name: str, nested: str = "") -> bool:
    """Check whether the configuration sets ``name``.

    Args:
        body: Resource body from the configuration, or None when unknown
        name: Attribute name
        nested: Object-valued attribute that holds ``name`` as a key, or ""
            for a top-level attribute

    Returns:
        True if the attribute (or nested key) appears in the configuration
    """
    if body is None:
        return False
    if not nested:
        return body.get_attribute(name) is not None
    attr = body.get_attribute(nested)
    if attr is not None:
        value = parse_or_preserve(attr.expr_tokens)
        return isinstance(value, Object) and value.has(name)
    block = body.first_block(nested)
    return block is not None and block.body.get_attribute(name) is not None


def normalize_empty_to_null(
    ctx: Context,
    doc: Any,
    parent_path: Path,
    config_body: Optional[Body],
    fields: Optional[Iterable[str]] = None,
    nested: str = "",
    address: str = "",
) -> Any:
    """Rewrite zero values to null unless the configuration sets them.

    Args:
        ctx: Context receiving one warning per rewritten field
        doc: State instance
        parent_path: Path of the object whose fields are checked
        config_body: Parsed configuration body for the same resource
        fields: Names to check; all fields of the object when None
        nested: Config attribute holding these fields (for nested objects)
        address: Resource address used in diagnostics

    Returns:
        The instance, edited in place
    """
    parent = get_object(doc, parent_path)
    if parent is None:
        return doc
    names = list(parent) if fields is None else [name for name in fields if name in parent]
    for name in names:
        value = parent[name]
        if value is None or not is_empty_value(value):
            continue
        if attribute_set_in_config(config_body, name, nested):
            logger.debug("Keeping %s: set explicitly in configuration", name)
            continue
        parent[name] = None
        ctx.warn(
            f"Transforming state for attribute {name} from empty value to null",
            "This will show as an in-place update on the next plan.",
            address,
        )
    return doc
