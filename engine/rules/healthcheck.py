"""Standalone healthcheck: protocol settings move into ``http_config``/``tcp_config``."""

import logging
from typing import Any, Dict, List

from engine.diagnostics import Context
from engine.hcl.attributes import (
    attribute_value,
    move_attributes_to_nested_object,
    set_attribute_value,
    string_value,
)
from engine.hcl.blocks import map_attribute_from_blocks, remove_blocks
from engine.hcl.document import Block
from engine.hcl.expressions import Object, ObjectItem
from engine.rules.base import MigrationRule, TransformResult
from engine.state.coercion import convert_fields_to_float
from engine.state.fields import set_schema_version

logger = logging.getLogger(__name__)

HTTP_FIELDS = (
    "method",
    "port",
    "path",
    "expected_codes",
    "expected_body",
    "follow_redirects",
    "allow_insecure",
)
TCP_FIELDS = ("method", "port")
NUMERIC_FIELDS = (
    "consecutive_fails",
    "consecutive_successes",
    "retries",
    "timeout",
    "interval",
    "port",
)


def is_tcp(check_type: Any) -> bool:
    return isinstance(check_type, str) and check_type.upper() == "TCP"


def header_set_to_map(headers: Any) -> Dict[str, List[str]]:
    """Turn ``[{"header": "Host", "values": ["a"]}]`` into ``{"Host": ["a"]}``."""
    result: Dict[str, List[str]] = {}
    if not isinstance(headers, list):
        return result
    for item in headers:
        if not isinstance(item, dict):
            continue
        name = item.get("header")
        values = item.get("values")
        if not name or not isinstance(values, list):
            continue
        values = [str(value) for value in values]
        if values:
            result[name] = values
    return result


class HealthcheckRule(MigrationRule):
    TARGET_TYPE = "cloudflare_healthcheck"

    def transform_config(self, ctx: Context, block: Block) -> TransformResult:
        body = block.body
        if is_tcp(string_value(body, "type")):
            move_attributes_to_nested_object(body, "tcp_config", *TCP_FIELDS)
            return TransformResult([block])

        headers = map_attribute_from_blocks(body, "header", "header", "values")
        moved = move_attributes_to_nested_object(body, "http_config", *HTTP_FIELDS)
        if headers is not None:
            config = attribute_value(body, "http_config") if moved else None
            if isinstance(config, Object):
                config.set("header", headers)
            else:
                config = Object([ObjectItem("header", headers)])
            set_attribute_value(body, "http_config", config)
        remove_blocks(body, "header")
        return TransformResult([block])

    def transform_state(
        self, ctx: Context, instance: Dict[str, Any], resource_path: str, resource_name: str
    ) -> Dict[str, Any]:
        attributes = instance.get("attributes")
        if not isinstance(attributes, dict):
            return set_schema_version(instance, 0)

        convert_fields_to_float(instance, "attributes", *NUMERIC_FIELDS)
        if is_tcp(attributes.get("type")):
            tcp_config = {name: attributes.pop(name) for name in TCP_FIELDS if name in attributes}
            if tcp_config:
                attributes["tcp_config"] = tcp_config
        else:
            http_config = {name: attributes[name] for name in HTTP_FIELDS if name in attributes}
            header = header_set_to_map(attributes.get("header"))
            if header:
                http_config["header"] = header
            if http_config:
                for name in HTTP_FIELDS + ("header",):
                    attributes.pop(name, None)
                attributes["http_config"] = http_config
        return set_schema_version(instance, 0)
