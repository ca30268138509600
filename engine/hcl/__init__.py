"""Syntax tree primitives for HCL configuration.

This package contains the token-preserving lexer, the mutable document
model, the closed expression set and the rewrite primitives that migration
rules call.
"""

from .document import Attribute, Block, Body, Document, Unstructured
from .expressions import (
    Expression,
    Literal,
    Object,
    ObjectItem,
    Reference,
    Template,
    Tuple,
    Unknown,
    build_tokens_from_expression,
    expression_text,
    parse_expression,
    parse_expression_text,
)
from .attributes import (
    attribute_value,
    ensure_attribute,
    get_attribute,
    has_attribute,
    move_attributes_to_nested_object,
    remove_attributes,
    remove_attributes_with_diagnostic,
    rename_attribute,
    rename_attribute_in_nested_object,
    set_attribute_raw,
    set_attribute_value,
    string_value,
)
from .blocks import (
    MovedDirective,
    convert_block_to_map_attribute,
    convert_blocks_to_array_attribute,
    convert_single_block_to_attribute,
    create_derived_block,
    create_moved_block,
    create_moved_directive,
    find_blocks,
    hoist_attribute_from_block,
    remove_blocks,
    rename_resource_type,
    resource_address,
)

__all__ = [
    # Document model
    "Attribute",
    "Block",
    "Body",
    "Document",
    "Unstructured",
    # Expressions
    "Expression",
    "Literal",
    "Object",
    "ObjectItem",
    "Reference",
    "Template",
    "Tuple",
    "Unknown",
    "build_tokens_from_expression",
    "expression_text",
    "parse_expression",
    "parse_expression_text",
    # Attribute primitives
    "attribute_value",
    "ensure_attribute",
    "get_attribute",
    "has_attribute",
    "move_attributes_to_nested_object",
    "remove_attributes",
    "remove_attributes_with_diagnostic",
    "rename_attribute",
    "rename_attribute_in_nested_object",
    "set_attribute_raw",
    "set_attribute_value",
    "string_value",
    # Block primitives
    "MovedDirective",
    "convert_block_to_map_attribute",
    "convert_blocks_to_array_attribute",
    "convert_single_block_to_attribute",
    "create_derived_block",
    "create_moved_block",
    "create_moved_directive",
    "find_blocks",
    "hoist_attribute_from_block",
    "remove_blocks",
    "rename_resource_type",
    "resource_address",
]
