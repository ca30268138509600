"""State tree primitives.

Operations on parsed JSON state instances: path edits, numeric coercion,
singleton array handling, condition contraction and config-aware null
normalization.
"""

from .fields import (
    cleanup_empty_field,
    delete_path,
    ensure_field,
    ensure_timestamps,
    get_path,
    has_path,
    is_empty_value,
    move_fields_to_object,
    remove_fields,
    remove_object_if_all_null,
    rename_field,
    rename_fields,
    set_path,
    set_schema_version,
)
from .coercion import (
    convert_enabled_disabled_to_bool,
    convert_fields,
    convert_fields_to_float,
    convert_to_float,
)
from .arrays import ArrayToObjectOptions, array_to_object, flatten_array_field, object_to_array
from .conditions import contract_condition_fields, contract_conditions
from .empty_values import attribute_set_in_config, normalize_empty_to_null

__all__ = [
    # Path and field edits
    "cleanup_empty_field",
    "delete_path",
    "ensure_field",
    "ensure_timestamps",
    "get_path",
    "has_path",
    "is_empty_value",
    "move_fields_to_object",
    "remove_fields",
    "remove_object_if_all_null",
    "rename_field",
    "rename_fields",
    "set_path",
    "set_schema_version",
    # Coercion
    "convert_enabled_disabled_to_bool",
    "convert_fields",
    "convert_fields_to_float",
    "convert_to_float",
    # Arrays
    "ArrayToObjectOptions",
    "array_to_object",
    "flatten_array_field",
    "object_to_array",
    # Conditions
    "contract_condition_fields",
    "contract_conditions",
    # Empty values
    "attribute_set_in_config",
    "normalize_empty_to_null",
]
