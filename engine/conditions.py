"""Condition expansion for access policies and groups.

v4 conditions pack several values into one object::

    include = [{ everyone = true, email = ["a@x.com", "b@x.com"] }]

v5 wants one single-key object per value::

    include = [
      { email = { email = "a@x.com" } },
      { email = { email = "b@x.com" } },
      { everyone = {} },
    ]

Within one input object the expanded selectors come first, in the order
their keys appear, followed by every other key as its own object in source
order. Objects already in v5 shape pass through unchanged, so expanding an
expanded condition is a no-op.
"""

import logging
from typing import List, Optional, Sequence

from engine.diagnostics import Context
from engine.exceptions import HclParseError, ShapeMismatchError
from engine.hcl.attributes import set_attribute_value
from engine.hcl.document import Body
from engine.hcl.expressions import (
    Expression,
    Literal,
    Object,
    ObjectItem,
    Reference,
    Template,
    Tuple,
)
from engine.selectors import (
    ARRAY_SELECTORS,
    BOOLEAN_SELECTORS,
    COMPOUND_KEY_ORDER,
    COMPOUND_SELECTORS,
    CONDITION_ATTRIBUTES,
    OVERFLOW_SELECTORS,
    CompoundSelector,
)
from engine.utils.ip_utils import normalize_cidr

logger = logging.getLogger(__name__)

SCALARS = (Literal, Reference, Template)


def expand_conditions(expr: Expression) -> Expression:
    """Expand a v4 condition list into v5 single-selector objects.

    Args:
        expr: Value of an include/exclude/require attribute

    Returns:
        A new Tuple, or ``expr`` itself when it is not a Tuple
    """
    if not isinstance(expr, Tuple):
        logger.debug("Condition value is %s, not a list; left unchanged", type(expr).__name__)
        return expr
    items: List[Expression] = []
    for element in expr.items:
        if isinstance(element, Object):
            items.extend(expand_condition_object(element))
        else:
            items.append(element)
    return Tuple(items)


def expand_condition_object(obj: Object) -> List[Expression]:
    """Expand one condition object into a list of single-key objects."""
    if not obj.items:
        return [obj]
    expanded: List[Expression] = []
    remaining: List[ObjectItem] = []
    for item in obj.items:
        key = item.name
        if key in BOOLEAN_SELECTORS:
            converted = _convert_boolean(item)
            if converted is not None:
                remaining.append(converted)
            continue
        result = _expand_item(key, item.value)
        if result is None:
            remaining.append(item)
        else:
            expanded.extend(result)
    return expanded + [Object([item]) for item in remaining]


def _convert_boolean(item: ObjectItem) -> Optional[ObjectItem]:
    value = item.value
    if isinstance(value, Literal) and isinstance(value.value, bool):
        if not value.value:
            return None
        return ObjectItem(item.key, Object([]))
    return item


def _expand_item(key: str, value: Expression) -> Optional[List[Expression]]:
    """Return the expanded objects for one selector, or None to leave it alone."""
    if key in ARRAY_SELECTORS:
        return _expand_array(key, ARRAY_SELECTORS[key], value)
    if key in OVERFLOW_SELECTORS:
        target, inner = OVERFLOW_SELECTORS[key]
        return _expand_array(target, inner, value)
    if key in COMPOUND_SELECTORS:
        return _expand_compound(key, COMPOUND_SELECTORS[key], value)
    return None


def _wrap(key: str, inner: str, value: Expression) -> Object:
    if key == "ip" and isinstance(value, Literal) and value.is_string():
        value = Literal(normalize_cidr(value.value))
    return Object([ObjectItem(key, Object([ObjectItem(inner, value)]))])


def _is_expanded(value: Expression, inner: str) -> bool:
    return isinstance(value, Object) and value.keys() == [inner]


def _expand_array(key: str, inner: str, value: Expression) -> Optional[List[Expression]]:
    if isinstance(value, Tuple):
        result: List[Expression] = []
        for element in value.items:
            if _is_expanded(element, inner):
                result.append(Object([ObjectItem(key, element)]))
            else:
                result.append(_wrap(key, inner, element))
        return result
    if isinstance(value, SCALARS):
        return [_wrap(key, inner, value)]
    # Already-expanded objects and opaque expressions stay as they are.
    return None


def _expand_compound(
    key: str, selector: CompoundSelector, value: Expression
) -> Optional[List[Expression]]:
    if isinstance(value, Tuple):
        objects = [element for element in value.items if isinstance(element, Object)]
        if len(objects) != len(value.items):
            return None
    elif isinstance(value, Object):
        objects = [value]
    else:
        return None
    if selector.array_field is None:
        if isinstance(value, Object):
            return None
        return [Object([ObjectItem(selector.target, obj)]) for obj in objects]
    if key == selector.target and not any(
        isinstance(obj.get(selector.array_field), Tuple) for obj in objects
    ):
        return None
    result: List[Expression] = []
    for obj in objects:
        result.extend(_expand_compound_object(selector, obj))
    return result


def _expand_compound_object(selector: CompoundSelector, obj: Object) -> List[Expression]:
    values = obj.get(selector.array_field)
    others = [item for item in obj.items if item.name != selector.array_field]
    if isinstance(values, Tuple):
        entries = values.items[:1] if selector.first_only else values.items
    elif values is None:
        entries = []
    else:
        entries = [values]
    if not entries:
        return [Object([ObjectItem(selector.target, Object(_ordered(others)))])]
    result: List[Expression] = []
    for entry in entries:
        fields = others + [ObjectItem(selector.value_field, entry)]
        result.append(Object([ObjectItem(selector.target, Object(_ordered(fields)))]))
    return result


def _ordered(items: List[ObjectItem]) -> List[ObjectItem]:
    """Put well-known compound keys first, keeping the rest in source order."""
    rank = {name: index for index, name in enumerate(COMPOUND_KEY_ORDER)}
    known = sorted(
        (item for item in items if item.name in rank), key=lambda item: rank[item.name]
    )
    return known + [item for item in items if item.name not in rank]


def _condition_list(body: Body, name: str) -> Tuple:
    """Return a condition attribute's value as a parsed list.

    Raises:
        HclParseError: If the value cannot be parsed
        ShapeMismatchError: If the value is not a list
    """
    value = body.get_attribute(name).expression()
    if not isinstance(value, Tuple):
        raise ShapeMismatchError(
            f"{name} is not a list", {"attribute": name, "found": type(value).__name__}
        )
    return value


def expand_condition_attributes(
    ctx: Context,
    body: Body,
    names: Sequence[str] = CONDITION_ATTRIBUTES,
    address: str = "",
) -> List[str]:
    """Expand condition attributes of a resource body in place.

    Attributes that cannot be parsed, or that are not lists, are left as
    written and reported on ``ctx``.

    Returns:
        Names of the attributes that were rewritten
    """
    rewritten = []
    for name in names:
        if body.get_attribute(name) is None:
            continue
        try:
            value = _condition_list(body, name)
        except HclParseError as e:
            logger.warning("Skipping condition %s: %s", name, e)
            ctx.warn(f"Could not parse {name}; it was left unchanged", str(e), address)
            continue
        except ShapeMismatchError as e:
            logger.debug("Skipping condition %s: %s", name, e)
            ctx.warn(
                f"{e.message}; it was left unchanged",
                "Conditions built from expressions must be migrated by hand.",
                address,
            )
            continue
        expanded = expand_conditions(value)
        if expanded != value:
            set_attribute_value(body, name, expanded)
            rewritten.append(name)
    return rewritten
