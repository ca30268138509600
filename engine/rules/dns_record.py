"""DNS record: ``cloudflare_record`` to ``cloudflare_dns_record``.

Simple record types keep their target in ``value`` in v4 and in
``content`` in v5. Structured record types (SRV, CAA, URI, LOC, ...) keep
a ``data`` block in v4 that becomes an object attribute in v5.
"""

import logging
from typing import Any, Dict, Optional

from engine.diagnostics import Context
from engine.hcl.attributes import (
    ensure_attribute,
    remove_attributes,
    remove_attributes_with_diagnostic,
    rename_attribute,
    rename_attribute_in_nested_object,
    string_value,
)
from engine.hcl.blocks import convert_blocks_with, hoist_attribute_from_block, resource_address
from engine.hcl.document import Block
from engine.hcl.expressions import Literal
from engine.rules.base import MigrationRule, TransformResult
from engine.state.arrays import ArrayToObjectOptions, array_to_object
from engine.state.coercion import convert_fields_to_float, convert_to_float
from engine.state.fields import (
    cleanup_empty_field,
    delete_path,
    ensure_field,
    ensure_timestamps,
    remove_fields,
    remove_object_if_all_null,
    rename_field,
)

logger = logging.getLogger(__name__)

SIMPLE_RECORD_TYPES = ("A", "AAAA", "CNAME", "MX", "NS", "PTR", "TXT", "OPENPGPKEY")
PRIORITY_RECORD_TYPES = ("SRV", "MX", "URI")
REMOVED_ATTRIBUTES = ("allow_overwrite", "hostname")

# Numeric fields of the data object, stored as floats in v5.
NUMERIC_DATA_FIELDS = (
    "algorithm",
    "key_tag",
    "type",
    "usage",
    "selector",
    "matching_type",
    "weight",
    "priority",
    "port",
    "protocol",
    "digest_type",
    "order",
    "preference",
    "altitude",
    "lat_degrees",
    "lat_minutes",
    "lat_seconds",
    "long_degrees",
    "long_minutes",
    "long_seconds",
    "precision_horz",
    "precision_vert",
    "size",
)


def is_simple_record_type(record_type: Optional[str]) -> bool:
    return record_type in SIMPLE_RECORD_TYPES


def dynamic_flags(value: Any) -> Any:
    """Wrap CAA flags in the dynamic value shape v5 stores.

    Numbers (and numeric strings) become ``{"value": n, "type": "number"}``,
    other strings ``{"value": s, "type": "string"}``; empty values become
    null.
    """
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return {"value": value, "type": "number"}
    if isinstance(value, str):
        number = convert_to_float(value)
        if isinstance(number, float):
            return {"value": int(number) if number.is_integer() else number, "type": "number"}
        return {"value": value, "type": "string"}
    return None


def _number_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class DnsRecordRule(MigrationRule):
    TARGET_TYPE = "cloudflare_dns_record"
    SOURCE_TYPES = ("cloudflare_record", "cloudflare_dns_record")

    def transform_config(self, ctx: Context, block: Block) -> TransformResult:
        address = resource_address(block)
        body = block.body
        ensure_attribute(body, "ttl", Literal(1))

        record_type = string_value(body, "type")
        if record_type is None and body.get_attribute("type") is not None:
            logger.debug("Record type of %s is not a literal", address)
        if not record_type or is_simple_record_type(record_type):
            rename_attribute(body, "value", "content")

        remove_attributes_with_diagnostic(ctx, body, address, *REMOVED_ATTRIBUTES)

        hoist = record_type in PRIORITY_RECORD_TYPES
        if hoist:
            hoist_attribute_from_block(body, "data", "priority")

        def prepare(data: Block) -> None:
            if record_type == "CAA":
                rename_attribute(data.body, "content", "value")
            if hoist:
                remove_attributes(data.body, "priority")

        convert_blocks_with(body, "data", "data", prepare)
        if record_type == "CAA":
            rename_attribute_in_nested_object(body, "data", "content", "value")
        return self.renamed_result(block)

    def transform_state(
        self, ctx: Context, instance: Dict[str, Any], resource_path: str, resource_name: str
    ) -> Dict[str, Any]:
        attributes = instance.get("attributes")
        if not isinstance(attributes, dict):
            return instance
        if not all(name in attributes for name in ("name", "type", "zone_id")):
            logger.debug("Skipping %s: not a DNS record instance", resource_path)
            return instance

        cleanup_empty_field(instance, "attributes.meta")
        remove_object_if_all_null(
            instance, "attributes.settings", ("flatten_cname", "ipv4_only", "ipv6_only")
        )
        ensure_timestamps(instance, "attributes")

        rename_field(instance, "attributes", "value", "content")
        ensure_field(instance, "attributes", "ttl", 1.0)
        convert_fields_to_float(instance, "attributes", "ttl")
        remove_fields(instance, "attributes", "hostname", "allow_overwrite", "timeouts")

        self._migrate_data(instance, attributes)
        convert_fields_to_float(instance, "attributes", "priority")
        return instance

    def _migrate_data(self, instance: Dict[str, Any], attributes: Dict[str, Any]) -> None:
        record_type = attributes.get("type")
        data = attributes.get("data")
        is_array = isinstance(data, list)
        if is_simple_record_type(record_type) and not (is_array and record_type == "MX"):
            delete_path(instance, "attributes.data")
            return

        first = data[0] if is_array and data and isinstance(data[0], dict) else {}
        options = ArrayToObjectOptions(
            skip_fields=["name", "proto"],
            field_transforms={name: convert_to_float for name in NUMERIC_DATA_FIELDS},
        )
        if record_type == "CAA":
            options.rename_fields["content"] = "value"
            options.default_fields["flags"] = None
            options.field_transforms["flags"] = dynamic_flags
        if record_type in PRIORITY_RECORD_TYPES:
            options.skip_fields.append("priority")
        array_to_object(instance, "attributes", "data", options)

        if record_type == "CAA" and "tag" in first and "content" in first:
            flags = first.get("flags")
            flags_text = "0" if flags is None or flags == "" else _number_text(flags)
            attributes["content"] = f"{flags_text} {first['tag']} {first['content']}"

        if record_type in PRIORITY_RECORD_TYPES and "priority" in first:
            priority = first["priority"]
            attributes["priority"] = convert_to_float(priority)
            if record_type == "MX" and "target" in first:
                attributes["content"] = f"{_number_text(priority)} {first['target']}"
            elif record_type == "URI" and "weight" in first and "target" in first:
                attributes["content"] = (
                    f"{_number_text(priority)} {_number_text(first['weight'])} {first['target']}"
                )
