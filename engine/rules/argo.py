"""Argo: ``cloudflare_argo`` splits into smart routing and tiered caching resources.

v4 managed both settings in one resource. v5 has one resource per setting,
each with a single ``value`` attribute.
"""

import logging
from typing import Any, Dict, List

from engine.diagnostics import Context
from engine.hcl.attributes import ensure_attribute
from engine.hcl.blocks import create_derived_block, create_moved_block, resource_name
from engine.hcl.document import Block
from engine.hcl.expressions import Literal
from engine.rules.base import STATE_TYPE_KEY, MigrationRule, TransformResult
from engine.state.fields import remove_fields, rename_field, set_schema_version

logger = logging.getLogger(__name__)

SOURCE_TYPE = "cloudflare_argo"
SMART_ROUTING_TYPE = "cloudflare_argo_smart_routing"
TIERED_CACHING_TYPE = "cloudflare_argo_tiered_caching"


def _is_set(value: Any) -> bool:
    return value is not None and value != ""


class ArgoRule(MigrationRule):
    TARGET_TYPE = SMART_ROUTING_TYPE
    SOURCE_TYPES = (SOURCE_TYPE,)

    def transform_config(self, ctx: Context, block: Block) -> TransformResult:
        name = resource_name(block)
        has_smart = block.body.get_attribute("smart_routing") is not None
        has_tiered = block.body.get_attribute("tiered_caching") is not None

        blocks: List[Block] = []
        if has_tiered and not has_smart:
            blocks.extend(self._derive(block, TIERED_CACHING_TYPE, "tiered_caching", name, True))
        else:
            blocks.extend(self._derive(block, SMART_ROUTING_TYPE, "smart_routing", name, True))
            if has_tiered:
                blocks.extend(
                    self._derive(block, TIERED_CACHING_TYPE, "tiered_caching", f"{name}_tiered", False)
                )
        logger.debug("Split %s.%s into %d blocks", SOURCE_TYPE, name, len(blocks))
        return TransformResult(blocks, remove_original=True)

    def _derive(
        self, block: Block, new_type: str, setting: str, new_name: str, moved: bool
    ) -> List[Block]:
        derived = create_derived_block(
            block, new_type, new_name, copy_attributes=["zone_id"], rename={setting: "value"}
        )
        if new_type == SMART_ROUTING_TYPE:
            ensure_attribute(derived.body, "value", Literal("off"))
        result = [derived]
        if moved:
            result.append(
                create_moved_block(
                    f"{SOURCE_TYPE}.{resource_name(block)}", f"{new_type}.{new_name}"
                )
            )
        return result

    def transform_state(
        self, ctx: Context, instance: Dict[str, Any], resource_path: str, resource_name: str
    ) -> Dict[str, Any]:
        attributes = instance.get("attributes")
        target = SMART_ROUTING_TYPE
        if isinstance(attributes, dict):
            has_smart = _is_set(attributes.get("smart_routing"))
            has_tiered = _is_set(attributes.get("tiered_caching"))
            if has_tiered and not has_smart:
                target = TIERED_CACHING_TYPE
                rename_field(instance, "attributes", "tiered_caching", "value")
                remove_fields(instance, "attributes", "smart_routing")
            else:
                if "smart_routing" in attributes:
                    rename_field(instance, "attributes", "smart_routing", "value")
                else:
                    attributes["value"] = "off"
                remove_fields(instance, "attributes", "tiered_caching")
            if "zone_id" in attributes:
                attributes["id"] = attributes["zone_id"]
            attributes["editable"] = True
            attributes["modified_on"] = None
        ctx.metadata[STATE_TYPE_KEY.format(resource_name)] = target
        return set_schema_version(instance, 0)
