"""Unit tests for engine/conditions.py and engine/state/conditions.py"""

import sys
import unittest
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from engine.conditions import expand_condition_attributes, expand_conditions
from engine.diagnostics import Context
from engine.hcl.document import Document
from engine.hcl.expressions import expression_text, parse_expression_text, to_python
from engine.state.conditions import contract_condition_fields, contract_conditions


def expand(text):
    return to_python(expand_conditions(parse_expression_text(text)))


class TestExpandConditions(unittest.TestCase):
    """Test expand_conditions() on configuration expressions."""

    def test_boolean_and_array_mix(self):
        """Expanded selectors come first, then converted booleans."""
        result = expand('[{ everyone = true, email = ["a@x.com"], group = ["g1"] }]')
        self.assertEqual(
            result,
            [{"email": {"email": "a@x.com"}}, {"group": {"id": "g1"}}, {"everyone": {}}],
        )

    def test_false_boolean_is_dropped(self):
        self.assertEqual(expand('[{ everyone = false, email = ["a@x.com"] }]'), [{"email": {"email": "a@x.com"}}])

    def test_cardinality(self):
        """Each array value yields one object, plus one per other key."""
        result = expand(
            '[{ email = ["a@x.com", "b@x.com", "c@x.com"], email_domain = ["x.com", "y.com"], '
            'certificate = true, login_method = ["m1"] }]'
        )
        self.assertEqual(len(result), 3 + 2 + 1 + 1)
        self.assertEqual(result[3], {"email_domain": {"domain": "x.com"}})
        self.assertEqual(result[-1], {"certificate": {}})

    def test_unknown_keys_kept_in_source_order(self):
        result = expand('[{ something = "x", email = ["a@x.com"], other = 1 }]')
        self.assertEqual(
            result,
            [{"email": {"email": "a@x.com"}}, {"something": "x"}, {"other": 1}],
        )

    def test_ip_values_get_prefix(self):
        result = expand('[{ ip = ["203.0.113.5", "10.0.0.0/8"] }]')
        self.assertEqual(result, [{"ip": {"ip": "203.0.113.5/32"}}, {"ip": {"ip": "10.0.0.0/8"}}])

    def test_references_are_wrapped(self):
        result = expand("[{ group = [var.admins] }]")
        self.assertEqual(result, [{"group": {"id": "var.admins"}}])

    def test_github_teams_expand(self):
        result = expand('[{ github = [{ name = "org", teams = ["a", "b"], identity_provider_id = "idp" }] }]')
        self.assertEqual(
            result,
            [
                {"github_organization": {"name": "org", "team": "a", "identity_provider_id": "idp"}},
                {"github_organization": {"name": "org", "team": "b", "identity_provider_id": "idp"}},
            ],
        )

    def test_gsuite_keeps_first_email(self):
        result = expand('[{ gsuite = [{ email = ["a@x.com", "b@x.com"], identity_provider_id = "idp" }] }]')
        self.assertEqual(result, [{"gsuite": {"email": "a@x.com", "identity_provider_id": "idp"}}])

    def test_already_expanded_is_unchanged(self):
        text = '[{ email = { email = "a@x.com" } }, { everyone = {} }]'
        self.assertEqual(expand(text), to_python(parse_expression_text(text)))

    def test_idempotent(self):
        once = expand_conditions(
            parse_expression_text('[{ everyone = true, email = ["a@x.com"], ip = ["10.0.0.1"] }]')
        )
        twice = expand_conditions(parse_expression_text(expression_text(once)))
        self.assertEqual(to_python(twice), to_python(once))

    def test_non_list_is_returned_unchanged(self):
        expr = parse_expression_text("var.conditions")
        self.assertIs(expand_conditions(expr), expr)


class TestExpandConditionAttributes(unittest.TestCase):
    """Test expand_condition_attributes() on a resource body."""

    def test_rewrites_condition_attributes(self):
        doc = Document.parse(
            'resource "a" "b" {\n'
            '  include = [{ email = ["a@x.com"] }]\n'
            '  exclude = [{ email = { email = "b@x.com" } }]\n'
            "}\n"
        )
        ctx = Context()
        rewritten = expand_condition_attributes(ctx, doc.blocks()[0].body, address="a.b")
        self.assertEqual(rewritten, ["include"])
        self.assertIn('      email = {\n        email = "a@x.com"\n      }\n', doc.render())
        self.assertEqual(ctx.diagnostics, [])

    def test_expression_value_is_reported(self):
        text = 'resource "a" "b" {\n  include = var.rules\n}\n'
        doc = Document.parse(text)
        ctx = Context()
        self.assertEqual(expand_condition_attributes(ctx, doc.blocks()[0].body, address="a.b"), [])
        self.assertEqual(doc.render(), text)
        self.assertEqual(len(ctx.warnings()), 1)

    def test_string_value_is_a_shape_mismatch(self):
        """A scalar where a list belongs is reported and left alone."""
        text = 'resource "a" "b" {\n  include = "everyone"\n}\n'
        doc = Document.parse(text)
        ctx = Context()
        self.assertEqual(expand_condition_attributes(ctx, doc.blocks()[0].body, address="a.b"), [])
        self.assertEqual(doc.render(), text)
        (warning,) = ctx.warnings()
        self.assertEqual(warning.summary, "include is not a list; it was left unchanged")
        self.assertEqual(warning.address, "a.b")


class TestContractConditions(unittest.TestCase):
    """Test contract_conditions() on state values."""

    def test_explodes_packed_state(self):
        result = contract_conditions(
            [{"email": ["a@x.com", "b@x.com"], "everyone": False, "group": [], "ip": ["10.0.0.1"]}]
        )
        self.assertEqual(
            result,
            [
                {"email": {"email": "a@x.com"}},
                {"email": {"email": "b@x.com"}},
                {"ip": {"ip": "10.0.0.1/32"}},
            ],
        )

    def test_boolean_true_becomes_empty_object(self):
        self.assertEqual(contract_conditions([{"everyone": True, "email": []}]), [{"everyone": {}}])

    def test_keys_are_sorted(self):
        """Nested keys come out in alphabetical order."""
        result = contract_conditions(
            [{"okta": [{"name": ["eng"], "identity_provider_id": "idp"}]}]
        )
        self.assertEqual(result, [{"okta": {"identity_provider_id": "idp", "name": "eng"}}])
        self.assertEqual(list(result[0]["okta"]), ["identity_provider_id", "name"])

    def test_unknown_zero_values_are_kept(self):
        """Zero is a value; false, empty and null are placeholders."""
        result = contract_conditions(
            [{"auth_level": 0, "weight": 0.0, "disabled": False, "note": "", "extra": None}]
        )
        self.assertEqual(result, [{"auth_level": 0}, {"weight": 0.0}])

    def test_non_list_unchanged(self):
        self.assertIsNone(contract_conditions(None))

    def test_contract_fields(self):
        doc = {"attributes": {"include": [{"email_domain": ["x.com"]}], "name": "n"}}
        contract_condition_fields(doc, "attributes", "include", "exclude")
        self.assertEqual(doc["attributes"]["include"], [{"email_domain": {"domain": "x.com"}}])
        self.assertNotIn("exclude", doc["attributes"])


if __name__ == "__main__":
    unittest.main()
