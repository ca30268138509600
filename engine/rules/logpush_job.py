"""Logpush job: ``output_options`` becomes an object and legacy fields go away."""

import logging
from typing import Any, Dict

from engine.diagnostics import Context
from engine.hcl.attributes import (
    remove_attributes_with_diagnostic,
    rename_attribute,
    set_attribute_value,
    string_value,
)
from engine.hcl.blocks import convert_single_block_to_attribute, resource_address
from engine.hcl.document import Block
from engine.hcl.expressions import Literal
from engine.rules.base import MigrationRule, TransformResult
from engine.state.arrays import ArrayToObjectOptions, array_to_object
from engine.state.coercion import (
    convert_enabled_disabled_to_bool,
    convert_fields,
    convert_fields_to_float,
)
from engine.state.empty_values import normalize_empty_to_null
from engine.state.fields import get_object, remove_fields

logger = logging.getLogger(__name__)

NUMERIC_FIELDS = ("max_upload_bytes", "max_upload_records", "max_upload_interval_seconds")
REMOVED_STATE_FIELDS = ("error_message", "last_complete", "last_error")
NULLABLE_FIELDS = ("filter", "logpull_options", "name", "ownership_challenge")
RENAMED_OUTPUT_OPTIONS = {"cve20214428": "cve_2021_44228"}
INSTANT_LOGS = "instant-logs"


class LogpushJobRule(MigrationRule):
    TARGET_TYPE = "cloudflare_logpush_job"

    def transform_config(self, ctx: Context, block: Block) -> TransformResult:
        body = block.body
        remove_attributes_with_diagnostic(ctx, body, resource_address(block), "frequency")

        options = body.first_block("output_options")
        if options is not None:
            for old, new in RENAMED_OUTPUT_OPTIONS.items():
                rename_attribute(options.body, old, new)
            convert_single_block_to_attribute(body, "output_options", "output_options")

        if string_value(body, "kind") == INSTANT_LOGS:
            set_attribute_value(body, "kind", Literal(""))
        return TransformResult([block])

    def transform_state(
        self, ctx: Context, instance: Dict[str, Any], resource_path: str, resource_name: str
    ) -> Dict[str, Any]:
        attributes = instance.get("attributes")
        if not isinstance(attributes, dict):
            return instance

        convert_fields_to_float(instance, "attributes", *NUMERIC_FIELDS)
        convert_fields(instance, "attributes", convert_enabled_disabled_to_bool, "enabled")

        array_to_object(
            instance,
            "attributes",
            "output_options",
            ArrayToObjectOptions(rename_fields=dict(RENAMED_OUTPUT_OPTIONS), ensure_object=False),
        )
        output_options = get_object(instance, "attributes.output_options")
        if output_options is not None:
            numeric = [
                key
                for key, value in output_options.items()
                if isinstance(value, (int, float)) and not isinstance(value, bool)
            ]
            convert_fields_to_float(instance, "attributes.output_options", *numeric)

        remove_fields(instance, "attributes", "frequency", *REMOVED_STATE_FIELDS)
        if attributes.get("kind") == INSTANT_LOGS:
            attributes["kind"] = ""

        normalize_empty_to_null(
            ctx,
            instance,
            "attributes",
            self.config_body_for(ctx, resource_name),
            NULLABLE_FIELDS,
            address=resource_path,
        )
        return instance
