"""Workers KV namespace: configuration is unchanged, the provider upgrades state."""

from typing import Any, Dict

from engine.diagnostics import Context
from engine.hcl.document import Block
from engine.rules.base import MigrationRule, TransformResult


class WorkersKvNamespaceRule(MigrationRule):
    TARGET_TYPE = "cloudflare_workers_kv_namespace"

    def transform_config(self, ctx: Context, block: Block) -> TransformResult:
        return TransformResult([block])

    def transform_state(
        self, ctx: Context, instance: Dict[str, Any], resource_path: str, resource_name: str
    ) -> Dict[str, Any]:
        return instance

    def uses_external_state_upgrader(self) -> bool:
        return True
