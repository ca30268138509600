"""
Rule registry.

Maps ``(resource type, source version, target version)`` to a migration
rule. Registration happens once, in a fixed order, through
``build_registry``; the result is frozen into a read-only mapping so
lookups need no locking.
"""

import logging
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from engine.exceptions import RegistryError
from engine.rules import (
    AccessGroupRule,
    AccessPolicyRule,
    ArgoRule,
    DnsRecordRule,
    HealthcheckRule,
    LogpushJobRule,
    MigrationRule,
    WorkersKvNamespaceRule,
)

logger = logging.getLogger(__name__)

RegistryKey = Tuple[str, str, str]

SUPPORTED_MIGRATIONS = (("v4", "v5"),)


def default_rules() -> List[MigrationRule]:
    """Return one instance of every shipped rule, in registration order."""
    return [
        AccessPolicyRule(),
        AccessGroupRule(),
        DnsRecordRule(),
        HealthcheckRule(),
        ArgoRule(),
        WorkersKvNamespaceRule(),
        LogpushJobRule(),
    ]


class Registry:
    """Read-only lookup from source resource type to rule."""

    def __init__(
        self, rules: Mapping[RegistryKey, MigrationRule], source_version: str, target_version: str
    ):
        self._rules = MappingProxyType(dict(rules))
        self.source_version = source_version
        self.target_version = target_version

    @property
    def rules(self) -> Mapping[RegistryKey, MigrationRule]:
        return self._rules

    def lookup(self, type_name: str) -> Optional[MigrationRule]:
        """Return the rule for a source resource type, or None."""
        return self._rules.get((type_name, self.source_version, self.target_version))

    def target_type(self, type_name: str) -> Optional[str]:
        """Resolve a source type (or deprecated alias) to its canonical target type."""
        rule = self.lookup(type_name)
        return rule.target_type() if rule is not None else None

    def source_types(self) -> List[str]:
        return sorted(key[0] for key in self._rules)

    def unique_rules(self) -> List[MigrationRule]:
        """Distinct rules in registration order."""
        seen: List[MigrationRule] = []
        for rule in self._rules.values():
            if not any(rule is other for other in seen):
                seen.append(rule)
        return seen

    def __contains__(self, type_name: str) -> bool:
        return self.lookup(type_name) is not None

    def __len__(self) -> int:
        return len(self._rules)


def build_registry(
    source_version: str = "v4",
    target_version: str = "v5",
    rules: Optional[Iterable[MigrationRule]] = None,
) -> Registry:
    """Register rules under every source type they accept and freeze the result.

    Args:
        source_version: Schema generation migrated from
        target_version: Schema generation migrated to
        rules: Rules to register; the shipped rules when None

    Returns:
        A frozen Registry

    Raises:
        RegistryError: If the version pair has no rules, or two rules claim
            the same source type
    """
    if rules is None and (source_version, target_version) not in SUPPORTED_MIGRATIONS:
        raise RegistryError(
            "No migration rules for this version pair",
            {"source": source_version, "target": target_version},
        )
    entries: Dict[RegistryKey, MigrationRule] = {}
    for rule in default_rules() if rules is None else rules:
        for type_name in rule.source_types():
            key = (type_name, source_version, target_version)
            if key in entries:
                raise RegistryError(
                    "Duplicate migration rule",
                    {
                        "type": type_name,
                        "existing": type(entries[key]).__name__,
                        "new": type(rule).__name__,
                    },
                )
            entries[key] = rule
            logger.debug("Registered %s for %s (%s -> %s)", type(rule).__name__, *key)
    return Registry(entries, source_version, target_version)
