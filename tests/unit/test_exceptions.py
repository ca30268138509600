"""Unit tests for custom exception types and run diagnostics."""

import sys
import unittest
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from engine.diagnostics import Context, Diagnostic, Severity
from engine.exceptions import (
    HclParseError,
    MigrationError,
    RegistryError,
    SettingsError,
    ShapeMismatchError,
    StateFileError,
)


class TestMigrationError(unittest.TestCase):
    """Test base MigrationError exception class."""

    def test_basic_error_message(self):
        """Test error with message only."""
        error = MigrationError("Test error message")
        self.assertEqual(error.message, "Test error message")
        self.assertEqual(error.context, {})
        self.assertEqual(str(error), "Test error message")

    def test_error_with_context(self):
        """Test error with message and context dict."""
        error = MigrationError("Cannot read state file", {"path": "terraform.tfstate", "error": "denied"})
        self.assertEqual(error.context["path"], "terraform.tfstate")
        self.assertEqual(
            str(error),
            "Cannot read state file (context: path=terraform.tfstate, error=denied)",
        )

    def test_subclasses(self):
        """Every specific error is a MigrationError."""
        for cls in (
            HclParseError,
            ShapeMismatchError,
            RegistryError,
            StateFileError,
            SettingsError,
        ):
            with self.subTest(cls=cls.__name__):
                with self.assertRaises(MigrationError):
                    raise cls("boom", {"offset": 3})

    def test_catch_specific(self):
        with self.assertRaises(HclParseError) as cm:
            raise HclParseError("Unexpected closing brace", {"offset": 12})
        self.assertEqual(cm.exception.context["offset"], 12)


class TestDiagnostic(unittest.TestCase):
    """Test Diagnostic formatting."""

    def test_summary_only(self):
        self.assertEqual(str(Diagnostic(Severity.WARNING, "Dropped field")), "WARNING: Dropped field")

    def test_full(self):
        diagnostic = Diagnostic(Severity.ERROR, "Could not migrate", "bad value", "cloudflare_record.www")
        self.assertEqual(
            str(diagnostic),
            "ERROR: Could not migrate [cloudflare_record.www]\n  bad value",
        )


class TestContext(unittest.TestCase):
    """Test Context helpers."""

    def test_defaults(self):
        ctx = Context()
        self.assertEqual(ctx.source_version, "v4")
        self.assertEqual(ctx.target_version, "v5")
        self.assertEqual(ctx.diagnostics, [])
        self.assertFalse(ctx.has_errors())

    def test_warn_and_error(self):
        ctx = Context()
        warning = ctx.warn("Field removed", address="cloudflare_record.www")
        ctx.error("Parse failed")
        self.assertIs(warning.severity, Severity.WARNING)
        self.assertTrue(ctx.has_errors())
        self.assertEqual(ctx.warnings(), [warning])
        self.assertEqual(len(ctx.diagnostics), 2)

    def test_config_body(self):
        ctx = Context()
        ctx.config_bodies["cloudflare_record.www"] = "body"
        self.assertEqual(ctx.config_body("cloudflare_record.www"), "body")
        self.assertIsNone(ctx.config_body("cloudflare_record.api"))

    def test_contexts_do_not_share_state(self):
        first, second = Context(), Context()
        first.warn("only here")
        self.assertEqual(second.diagnostics, [])


if __name__ == "__main__":
    unittest.main()
