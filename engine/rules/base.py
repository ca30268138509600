"""
Migration rule contract.

A MigrationRule describes how one resource type moves from the source
schema to the target schema. Rules are small: each one is a fixed sequence
of calls into the configuration primitives (engine.hcl) and the state
primitives (engine.state), plus the field lists particular to its
resource. Rules hold no mutable state and are shared by every file and
state instance processed in a run.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from engine.diagnostics import Context
from engine.hcl.blocks import (
    create_moved_block,
    rename_resource_type,
    resource_address,
    resource_type,
)
from engine.hcl.document import Block
from engine.utils.string_utils import format_address

logger = logging.getLogger(__name__)

# Context metadata key a rule sets when one state instance changes to a
# type other than target_type().
STATE_TYPE_KEY = "resource_type:{}"


@dataclass
class TransformResult:
    """
    Outcome of transforming one configuration block.

    Args:
        blocks: Blocks to place where the original block was. The first
            entry is normally the (edited) original block itself.
        remove_original: True when the original block must be discarded
            and replaced by ``blocks``. Set whenever a moved directive has
            been synthesized so the old address only appears inside it.
    """

    blocks: List[Block] = field(default_factory=list)
    remove_original: bool = False


class MigrationRule(ABC):
    """
    Base class for per-resource migration rules.

    Subclasses set ``TARGET_TYPE`` and ``SOURCE_TYPES`` and implement the
    two transform methods. The remaining methods have defaults that suit
    most resources.
    """

    TARGET_TYPE: str = ""
    SOURCE_TYPES: Tuple[str, ...] = ()

    def target_type(self) -> str:
        """Canonical resource type name in the target schema."""
        return self.TARGET_TYPE

    def source_types(self) -> Tuple[str, ...]:
        """Resource type names accepted from the source schema."""
        return self.SOURCE_TYPES or (self.TARGET_TYPE,)

    def can_handle(self, type_name: str) -> bool:
        return type_name in self.source_types()

    def preprocess(self, text: str) -> str:
        """Narrow text substitutions applied before the file is parsed."""
        return text

    @abstractmethod
    def transform_config(self, ctx: Context, block: Block) -> TransformResult:
        """Rewrite one resource or data block."""

    @abstractmethod
    def transform_state(
        self, ctx: Context, instance: Dict[str, Any], resource_path: str, resource_name: str
    ) -> Dict[str, Any]:
        """Rewrite one state instance and return it."""

    def uses_external_state_upgrader(self) -> bool:
        """True when the provider upgrades this resource's state itself."""
        return False

    def resource_rename(self) -> Optional[Tuple[str, str]]:
        """Return ``(old_type, new_type)`` when the resource type changes."""
        for source in self.source_types():
            if source != self.target_type():
                return source, self.target_type()
        return None

    # Helpers shared by rule implementations

    def rename_block_type(self, block: Block) -> Optional[Block]:
        """
        Move a block to the target type.

        Returns:
            A moved block from the old address to the new one, or None if
            the block already had the target type. Data sources never get
            a moved block.
        """
        current = resource_type(block)
        if current is None or current == self.target_type():
            return None
        old_address = resource_address(block)
        rename_resource_type(block, current, self.target_type())
        logger.debug("Renamed %s to %s", old_address, resource_address(block))
        if block.type != "resource":
            return None
        return create_moved_block(old_address, resource_address(block))

    def renamed_result(self, block: Block) -> TransformResult:
        """Finish a transform: rename the type and attach a moved block."""
        moved = self.rename_block_type(block)
        if moved is None:
            return TransformResult([block])
        return TransformResult([block, moved], remove_original=True)

    def config_body_for(self, ctx: Context, resource_name: str):
        """Look up the parsed configuration body of this resource, if known."""
        for type_name in (self.target_type(),) + tuple(self.source_types()):
            body = ctx.config_body(format_address(type_name, resource_name))
            if body is not None:
                return body
        return None
