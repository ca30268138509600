"""Attribute-level rewrite primitives.

Every function here is total: a missing attribute is a no-op, and a value
that cannot be parsed leaves the attribute exactly as written. When a
Context is passed, parse problems are recorded on it as diagnostics.
"""

import logging
from typing import List, Optional

from engine.diagnostics import Context
from engine.exceptions import HclParseError
from engine.hcl.document import Attribute, Body
from engine.hcl.expressions import (
    Expression,
    Literal,
    Object,
    ObjectItem,
    build_tokens_from_expression,
    object_key,
    parse_or_preserve,
)
from engine.hcl.lexer import Token

logger = logging.getLogger(__name__)


def get_attribute(body: Body, name: str) -> Optional[Attribute]:
    return body.get_attribute(name)


def has_attribute(body: Body, name: str) -> bool:
    return body.get_attribute(name) is not None


def attribute_value(
    body: Body, name: str, ctx: Optional[Context] = None, address: str = ""
) -> Optional[Expression]:
    """Return the parsed value of an attribute.

    Args:
        body: Body holding the attribute
        name: Attribute name
        ctx: Optional context that receives a diagnostic on parse failure
        address: Resource address for the diagnostic

    Returns:
        Parsed expression, or None if absent or unparseable
    """
    attr = body.get_attribute(name)
    if attr is None:
        return None
    try:
        return attr.expression()
    except HclParseError as e:
        logger.warning("Could not parse attribute %s: %s", name, e)
        if ctx is not None:
            ctx.warn(
                f"Could not parse attribute {name}; it was left unchanged",
                str(e),
                address,
            )
        return None


def string_value(body: Body, name: str) -> Optional[str]:
    """Return the value of a string literal attribute, else None."""
    value = attribute_value(body, name)
    if isinstance(value, Literal) and value.is_string():
        return value.value
    return None


def set_attribute_value(
    body: Body, name: str, expr: Expression, before=None
) -> Attribute:
    """Bind ``name`` to an expression, replacing any existing value."""
    return body.set_attribute_tokens(name, build_tokens_from_expression(expr), before)


def set_attribute_raw(body: Body, name: str, tokens: List[Token], before=None) -> Attribute:
    """Bind ``name`` to raw tokens, replacing any existing value."""
    return body.set_attribute_tokens(name, tokens, before)


def ensure_attribute(body: Body, name: str, expr: Expression) -> bool:
    """Set ``name`` only when it is absent.

    Returns:
        True if the attribute was added
    """
    if body.get_attribute(name) is not None:
        return False
    set_attribute_value(body, name, expr)
    return True


def rename_attribute(body: Body, old: str, new: str) -> bool:
    """Rename an attribute, keeping the value's source formatting.

    If ``new`` already exists the renamed attribute takes precedence and the
    previous ``new`` attribute is removed.

    Returns:
        True if ``old`` existed
    """
    attr = body.get_attribute(old)
    if attr is None:
        return False
    existing = body.get_attribute(new)
    if existing is not None and existing is not attr:
        body.remove_attribute(new)
    attr.rename(new)
    body.modified = True
    return True


def remove_attributes(body: Body, *names: str) -> List[str]:
    """Delete each named attribute if present.

    Returns:
        Names that were actually removed
    """
    removed = []
    for name in names:
        if body.remove_attribute(name) is not None:
            removed.append(name)
    return removed


def remove_attributes_with_diagnostic(
    ctx: Context, body: Body, address: str, *names: str
) -> List[str]:
    """Remove legacy attributes and warn once per removed attribute."""
    removed = remove_attributes(body, *names)
    for name in removed:
        ctx.warn(
            f"Attribute {name} has no {ctx.target_version} equivalent and was removed",
            "Review the resource after migration.",
            address,
        )
    return removed


def move_attributes_to_nested_object(body: Body, wrapper_name: str, *attr_names: str) -> bool:
    """Move attributes into a new object-valued attribute.

    Attributes are moved in the order given, keeping their value tokens.
    Absent attributes are skipped, never inserted as null. If none of the
    attributes exist, nothing is created.

    Returns:
        True if the wrapper attribute was created
    """
    present = [body.get_attribute(name) for name in attr_names]
    present = [attr for attr in present if attr is not None]
    if not present:
        return False
    items = []
    existing = body.get_attribute(wrapper_name)
    if existing is not None:
        current = _verbatim(existing)
        if isinstance(current, Object):
            items.extend(current.items)
            present.insert(0, existing)
    for attr in present:
        if attr is not existing:
            items.append(ObjectItem(object_key(attr.name), _verbatim(attr)))
    index = min(body.items.index(attr) for attr in present)
    for attr in present:
        body.remove_attribute(attr.name)
    wrapper = Attribute.new(wrapper_name, build_tokens_from_expression(Object(items)))
    body.insert_attribute(wrapper, min(index, len(body.items)))
    return True


def _verbatim(attr: Attribute) -> Expression:
    return parse_or_preserve(attr.expr_tokens)


def rename_attribute_in_nested_object(body: Body, attr_name: str, old: str, new: str) -> bool:
    """Rename a key inside an object-valued attribute."""
    value = attribute_value(body, attr_name)
    if not isinstance(value, Object) or not value.has(old):
        return False
    for item in value.items:
        if item.name == old:
            item.key = object_key(new)
    set_attribute_value(body, attr_name, value)
    return True
