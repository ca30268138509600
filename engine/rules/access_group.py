"""Access group: ``cloudflare_access_group`` to ``cloudflare_zero_trust_access_group``."""

import logging
from typing import Any, Dict

from engine.diagnostics import Context
from engine.hcl.blocks import resource_address
from engine.hcl.document import Block
from engine.rules.access_common import migrate_condition_config, migrate_condition_state
from engine.rules.base import MigrationRule, TransformResult
from engine.state.empty_values import normalize_empty_to_null
from engine.state.fields import set_schema_version

logger = logging.getLogger(__name__)

# Optional top-level fields v4 wrote as zero values when unset.
NULLABLE_FIELDS = ("is_default",)


class AccessGroupRule(MigrationRule):
    TARGET_TYPE = "cloudflare_zero_trust_access_group"
    SOURCE_TYPES = ("cloudflare_access_group", "cloudflare_zero_trust_access_group")

    def transform_config(self, ctx: Context, block: Block) -> TransformResult:
        migrate_condition_config(ctx, block.body, resource_address(block))
        return self.renamed_result(block)

    def transform_state(
        self, ctx: Context, instance: Dict[str, Any], resource_path: str, resource_name: str
    ) -> Dict[str, Any]:
        attributes = instance.get("attributes")
        if not isinstance(attributes, dict):
            return set_schema_version(instance, 0)
        migrate_condition_state(attributes)
        normalize_empty_to_null(
            ctx,
            instance,
            "attributes",
            self.config_body_for(ctx, resource_name),
            NULLABLE_FIELDS,
            address=resource_path,
        )
        return set_schema_version(instance, 0)
