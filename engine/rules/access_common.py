"""Condition handling shared by the access policy and access group rules."""

import logging
from typing import Any, Dict, List

from engine.conditions import expand_condition_attributes
from engine.diagnostics import Context
from engine.hcl.blocks import convert_blocks_to_array_attribute
from engine.hcl.document import Body
from engine.selectors import CONDITION_ATTRIBUTES
from engine.state.conditions import contract_conditions

logger = logging.getLogger(__name__)


def migrate_condition_config(ctx: Context, body: Body, address: str) -> List[str]:
    """Turn include/exclude/require blocks into expanded list attributes.

    Returns:
        Names of the condition attributes that were rewritten
    """
    for name in CONDITION_ATTRIBUTES:
        if convert_blocks_to_array_attribute(body, name):
            logger.debug("Converted %s blocks to an attribute on %s", name, address)
    return expand_condition_attributes(ctx, body, CONDITION_ATTRIBUTES, address)


def migrate_condition_state(attributes: Dict[str, Any]) -> None:
    """Contract condition lists in state; a list left empty is removed."""
    for name in CONDITION_ATTRIBUTES:
        value = attributes.get(name)
        if not isinstance(value, list):
            continue
        contracted = contract_conditions(value)
        if contracted:
            attributes[name] = contracted
        else:
            del attributes[name]
