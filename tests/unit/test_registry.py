"""Unit tests for engine/registry.py and the rule contract."""

import sys
import unittest
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from engine.exceptions import MigrationError, RegistryError
from engine.registry import build_registry
from engine.rules import ArgoRule, DnsRecordRule, HealthcheckRule


class TestBuildRegistry(unittest.TestCase):
    """Test build_registry() and Registry lookups."""

    def setUp(self):
        self.registry = build_registry()

    def test_alias_and_canonical_resolve_to_same_rule(self):
        """Old and new type names share one rule and one target type."""
        old = self.registry.lookup("cloudflare_record")
        new = self.registry.lookup("cloudflare_dns_record")
        self.assertIs(old, new)
        self.assertEqual(self.registry.target_type("cloudflare_record"), "cloudflare_dns_record")
        self.assertEqual(self.registry.target_type("cloudflare_dns_record"), "cloudflare_dns_record")

    def test_unknown_type(self):
        self.assertIsNone(self.registry.lookup("aws_instance"))
        self.assertIsNone(self.registry.target_type("aws_instance"))
        self.assertNotIn("aws_instance", self.registry)

    def test_split_targets_are_not_registered(self):
        """Argo's v5 types are outputs only."""
        self.assertIn("cloudflare_argo", self.registry)
        self.assertNotIn("cloudflare_argo_smart_routing", self.registry)

    def test_counts(self):
        self.assertEqual(len(self.registry), 10)
        self.assertEqual(len(self.registry.unique_rules()), 7)
        self.assertEqual(self.registry.source_types(), sorted(self.registry.source_types()))

    def test_rules_are_read_only(self):
        with self.assertRaises(TypeError):
            self.registry.rules[("x", "v4", "v5")] = DnsRecordRule()

    def test_duplicate_registration_raises(self):
        with self.assertRaises(RegistryError) as cm:
            build_registry(rules=[DnsRecordRule(), DnsRecordRule()])
        self.assertEqual(cm.exception.context["type"], "cloudflare_record")

    def test_unsupported_versions_raise(self):
        with self.assertRaises(RegistryError):
            build_registry("v3", "v4")

    def test_registry_error_is_migration_error(self):
        self.assertTrue(issubclass(RegistryError, MigrationError))

    def test_custom_rules(self):
        registry = build_registry(rules=[HealthcheckRule()])
        self.assertEqual(registry.source_types(), ["cloudflare_healthcheck"])


class TestMigrationRuleContract(unittest.TestCase):
    """Test the defaults every rule inherits."""

    def test_resource_rename(self):
        self.assertEqual(DnsRecordRule().resource_rename(), ("cloudflare_record", "cloudflare_dns_record"))
        self.assertEqual(ArgoRule().resource_rename(), ("cloudflare_argo", "cloudflare_argo_smart_routing"))
        self.assertIsNone(HealthcheckRule().resource_rename())

    def test_can_handle(self):
        rule = DnsRecordRule()
        self.assertTrue(rule.can_handle("cloudflare_record"))
        self.assertTrue(rule.can_handle("cloudflare_dns_record"))
        self.assertFalse(rule.can_handle("cloudflare_argo"))

    def test_default_source_types(self):
        self.assertEqual(HealthcheckRule().source_types(), ("cloudflare_healthcheck",))

    def test_preprocess_is_identity(self):
        self.assertEqual(DnsRecordRule().preprocess("text"), "text")


if __name__ == "__main__":
    unittest.main()
