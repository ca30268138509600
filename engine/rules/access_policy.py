"""Access policy: ``cloudflare_access_policy`` to ``cloudflare_zero_trust_access_policy``.

v5 policies are standalone and reusable, so the application binding
(``application_id``, ``precedence``, ``zone_id``) is dropped. Block-style
attributes become attribute syntax and conditions are expanded to one
selector per object.
"""

import logging
from typing import Any, Dict

from engine.diagnostics import Context
from engine.hcl.attributes import remove_attributes_with_diagnostic, rename_attribute
from engine.hcl.blocks import (
    convert_blocks_to_array_attribute,
    convert_single_block_to_attribute,
    resource_address,
)
from engine.hcl.document import Block
from engine.rules.access_common import migrate_condition_config, migrate_condition_state
from engine.rules.base import MigrationRule, TransformResult
from engine.state.arrays import ArrayToObjectOptions, array_to_object
from engine.state.coercion import convert_fields_to_float
from engine.state.fields import ensure_field, remove_fields, rename_field, set_schema_version
from engine.utils.string_utils import normalize_duration

logger = logging.getLogger(__name__)

REMOVED_ATTRIBUTES = ("application_id", "precedence", "zone_id")
DEFAULT_SESSION_DURATION = "24h"


class AccessPolicyRule(MigrationRule):
    TARGET_TYPE = "cloudflare_zero_trust_access_policy"
    SOURCE_TYPES = ("cloudflare_access_policy", "cloudflare_zero_trust_access_policy")

    def transform_config(self, ctx: Context, block: Block) -> TransformResult:
        address = resource_address(block)
        body = block.body
        remove_attributes_with_diagnostic(ctx, body, address, *REMOVED_ATTRIBUTES)

        # approval_group { ... } blocks become approval_groups = [{ ... }]
        if convert_blocks_to_array_attribute(body, "approval_group"):
            rename_attribute(body, "approval_group", "approval_groups")

        rules = body.first_block("connection_rules")
        if rules is not None:
            convert_single_block_to_attribute(rules.body, "ssh", "ssh")
        convert_single_block_to_attribute(body, "connection_rules", "connection_rules")

        migrate_condition_config(ctx, body, address)
        return self.renamed_result(block)

    def transform_state(
        self, ctx: Context, instance: Dict[str, Any], resource_path: str, resource_name: str
    ) -> Dict[str, Any]:
        attributes = instance.get("attributes")
        if not isinstance(attributes, dict):
            return set_schema_version(instance, 0)

        rename_field(instance, "attributes", "approval_group", "approval_groups")
        remove_fields(instance, "attributes", *REMOVED_ATTRIBUTES)
        groups = attributes.get("approval_groups")
        if isinstance(groups, list):
            for index in range(len(groups)):
                convert_fields_to_float(
                    instance, f"attributes.approval_groups.{index}", "approvals_needed"
                )

        no_default = ArrayToObjectOptions(ensure_object=False)
        array_to_object(instance, "attributes", "connection_rules", no_default)
        array_to_object(instance, "attributes.connection_rules", "ssh", no_default)

        ensure_field(instance, "attributes", "session_duration", DEFAULT_SESSION_DURATION)
        if attributes.get("session_duration") is not None:
            attributes["session_duration"] = normalize_duration(attributes["session_duration"])

        migrate_condition_state(attributes)
        logger.debug("Migrated access policy state %s", resource_path)
        return set_schema_version(instance, 0)
