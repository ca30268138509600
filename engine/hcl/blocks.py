"""Block-level rewrite primitives and moved directive synthesis."""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from engine.hcl.document import Attribute, Block, Body
from engine.hcl.expressions import (
    Expression,
    Object,
    ObjectItem,
    Reference,
    Tuple,
    build_tokens_from_expression,
    object_key,
    parse_or_preserve,
)

logger = logging.getLogger(__name__)

META_ARGUMENTS = ("count", "for_each", "provider", "depends_on")
META_BLOCKS = ("lifecycle",)


@dataclass(frozen=True)
class MovedDirective:
    """An old resource address paired with its new address."""

    from_address: str
    to_address: str


def create_moved_directive(from_address: str, to_address: str) -> MovedDirective:
    return MovedDirective(from_address, to_address)


def create_moved_block(from_address: str, to_address: str) -> Block:
    """Render a moved directive as a ``moved { from = ... to = ... }`` block."""
    block = Block.new("moved")
    body = block.body
    body.set_attribute_tokens("from", build_tokens_from_expression(Reference(from_address)))
    body.set_attribute_tokens("to", build_tokens_from_expression(Reference(to_address)))
    return block


def resource_address(block: Block) -> str:
    """Return ``type.name`` for resources and ``data.type.name`` for data sources."""
    labels = block.labels()
    if len(labels) < 2:
        return ".".join(labels)
    address = f"{labels[0]}.{labels[1]}"
    if block.type == "data":
        return "data." + address
    return address


def resource_type(block: Block) -> Optional[str]:
    labels = block.labels()
    return labels[0] if labels else None


def resource_name(block: Block) -> Optional[str]:
    labels = block.labels()
    return labels[1] if len(labels) > 1 else None


def rename_resource_type(block: Block, old_type: str, new_type: str) -> bool:
    """Rewrite the first label of a resource or data block if it equals ``old_type``."""
    labels = block.labels()
    if not labels or labels[0] != old_type:
        return False
    labels[0] = new_type
    block.set_labels(labels)
    return True


def find_blocks(body: Body, block_type: str) -> List[Block]:
    return body.blocks(block_type)


def remove_blocks(body: Body, block_type: str) -> int:
    """Remove every direct child block of a type. Returns how many were removed."""
    found = body.blocks(block_type)
    for block in found:
        body.remove_block(block)
    return len(found)


def block_to_object(block: Block, recurse: bool = False) -> Object:
    """Convert a block body into an Object expression.

    Attributes become keys in source order. Nested blocks are grouped by type
    after the attributes. With ``recurse`` each nested block type becomes a
    tuple of objects; without it a single nested block becomes a bare object
    and repeated nested blocks become a tuple.
    """
    items: List[ObjectItem] = []
    for attr in block.body.attributes():
        items.append(ObjectItem(object_key(attr.name), parse_or_preserve(attr.expr_tokens)))
    nested: Dict[str, List[Block]] = {}
    for child in block.body.blocks():
        nested.setdefault(child.type, []).append(child)
    for child_type, children in nested.items():
        converted = [block_to_object(child, recurse) for child in children]
        if recurse or len(converted) > 1:
            value: Expression = Tuple(list(converted))
        else:
            value = converted[0]
        items.append(ObjectItem(object_key(child_type), value))
    return Object(items)


def convert_blocks_to_array_attribute(body: Body, block_name: str, recurse: bool = False) -> bool:
    """Replace every ``block_name`` block with one tuple-of-objects attribute.

    Zero matching blocks leaves the body unchanged.

    Returns:
        True if an attribute was created
    """
    found = body.blocks(block_name)
    if not found:
        return False
    value = Tuple([block_to_object(block, recurse) for block in found])
    _replace_blocks_with_attribute(body, found, block_name, value)
    return True


def convert_single_block_to_attribute(body: Body, block_name: str, attr_name: str) -> bool:
    """Replace a MaxItems-1 block with a bare object attribute.

    Only the first matching block is converted; any further blocks of the
    same type are removed.
    """
    found = body.blocks(block_name)
    if not found:
        return False
    value = block_to_object(found[0])
    _replace_blocks_with_attribute(body, found, attr_name, value)
    return True


def convert_blocks_with(
    body: Body,
    block_name: str,
    attr_name: str,
    prepare: Callable[[Block], None],
    as_array: bool = False,
) -> bool:
    """Convert blocks after letting ``prepare`` edit each block body first."""
    for block in body.blocks(block_name):
        prepare(block)
    if as_array:
        converted = convert_blocks_to_array_attribute(body, block_name)
        if converted and attr_name != block_name:
            body.get_attribute(block_name).rename(attr_name)
        return converted
    return convert_single_block_to_attribute(body, block_name, attr_name)


def convert_block_to_map_attribute(
    body: Body, block_name: str, key_attr: str, value_attr: str, attr_name: str
) -> bool:
    """Collapse keyed blocks into one map attribute.

    ``header { header = "Host"  values = ["a"] }`` becomes
    ``header = { "Host" = ["a"] }``. Blocks missing either attribute are
    dropped.
    """
    found = body.blocks(block_name)
    if not found:
        return False
    items = []
    for block in found:
        key = block.body.get_attribute(key_attr)
        value = block.body.get_attribute(value_attr)
        if key is None or value is None:
            logger.debug("Skipping %s block without %s/%s", block_name, key_attr, value_attr)
            continue
        items.append(ObjectItem(key.value_text(), parse_or_preserve(value.expr_tokens)))
    if not items:
        for block in found:
            body.remove_block(block)
        return False
    _replace_blocks_with_attribute(body, found, attr_name, Object(items))
    return True


def map_attribute_from_blocks(
    body: Body, block_name: str, key_attr: str, value_attr: str
) -> Optional[Object]:
    """Build the map that ``convert_block_to_map_attribute`` would create."""
    items = []
    for block in body.blocks(block_name):
        key = block.body.get_attribute(key_attr)
        value = block.body.get_attribute(value_attr)
        if key is not None and value is not None:
            items.append(ObjectItem(key.value_text(), parse_or_preserve(value.expr_tokens)))
    return Object(items) if items else None


def _replace_blocks_with_attribute(
    body: Body, blocks: List[Block], attr_name: str, value: Expression
) -> None:
    tokens = build_tokens_from_expression(value)
    existing = body.get_attribute(attr_name)
    if existing is not None:
        existing.set_expression_tokens(tokens)
    else:
        attr = Attribute.new(attr_name, tokens)
        attr.lead = blocks[0].lead
        body.items.insert(body.items.index(blocks[0]), attr)
    for block in blocks:
        body.remove_block(block)
    body.modified = True


def hoist_attribute_from_block(body: Body, block_type: str, attr_name: str) -> bool:
    """Copy an attribute from the first nested block that has it to ``body``.

    Nothing happens when ``body`` already has the attribute.
    """
    if body.get_attribute(attr_name) is not None:
        return False
    for block in body.blocks(block_type):
        attr = block.body.get_attribute(attr_name)
        if attr is not None:
            body.insert_attribute(attr.copy())
            return True
    return False


def create_derived_block(
    original: Block,
    new_type: str,
    new_name: str,
    copy_attributes: List[str] = (),
    rename: Optional[Dict[str, str]] = None,
    copy_meta_arguments: bool = True,
) -> Block:
    """Build a new resource block from selected parts of another.

    Args:
        original: Source resource block
        new_type: Resource type of the new block
        new_name: Resource name of the new block
        copy_attributes: Attribute names copied unchanged
        rename: Attribute names copied under a new name
        copy_meta_arguments: Also copy count/for_each/provider/depends_on/lifecycle

    Returns:
        Generated block ready to insert
    """
    block = Block.new(original.type, [new_type, new_name])
    source = original.body
    names = list(META_ARGUMENTS) if copy_meta_arguments else []
    for name in names[:2]:
        _copy_attribute(source, block.body, name, name)
    for name in copy_attributes:
        _copy_attribute(source, block.body, name, name)
    for old, new in (rename or {}).items():
        _copy_attribute(source, block.body, old, new)
    for name in names[2:]:
        _copy_attribute(source, block.body, name, name)
    if copy_meta_arguments:
        for meta in META_BLOCKS:
            for child in source.blocks(meta):
                block.body.append_block(child.copy())
    return block


def _copy_attribute(source: Body, target: Body, name: str, new_name: str) -> None:
    attr = source.get_attribute(name)
    if attr is None:
        return
    copied = attr.copy()
    copied.rename(new_name)
    target.insert_attribute(copied)
