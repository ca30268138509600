"""Unit tests for engine/settings.py"""

import os
import sys
import tempfile
import unittest
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from engine.exceptions import SettingsError
from engine.settings import Settings, load_settings, settings_from_dict


class TestSettingsFromDict(unittest.TestCase):
    """Test settings_from_dict() validation."""

    def test_defaults(self):
        settings = settings_from_dict(None)
        self.assertEqual(settings, Settings())
        self.assertTrue(settings.backup)
        self.assertTrue(settings.validate_output)

    def test_values(self):
        settings = settings_from_dict({"resources": ["cloudflare_record"], "recursive": True, "backup": False})
        self.assertEqual(settings.resources, ["cloudflare_record"])
        self.assertTrue(settings.recursive)
        self.assertFalse(settings.backup)

    def test_resources_string_is_split(self):
        settings = settings_from_dict({"resources": "cloudflare_record, cloudflare_argo"})
        self.assertEqual(settings.resources, ["cloudflare_record", "cloudflare_argo"])

    def test_null_resources(self):
        self.assertEqual(settings_from_dict({"resources": None}).resources, [])

    def test_unknown_keys_raise(self):
        with self.assertRaises(SettingsError) as cm:
            settings_from_dict({"recurse": True, "colour": "red"})
        self.assertIn("colour, recurse", str(cm.exception))

    def test_bad_types_raise(self):
        with self.assertRaises(SettingsError):
            settings_from_dict({"backup": "yes"})
        with self.assertRaises(SettingsError):
            settings_from_dict({"resources": 5})
        with self.assertRaises(SettingsError):
            settings_from_dict(["not", "a", "mapping"])

    def test_versions_are_strings(self):
        self.assertEqual(settings_from_dict({"source_version": 4}).source_version, "4")


class TestSettingsHelpers(unittest.TestCase):
    """Test Settings.merged() and Settings.wants()."""

    def test_merged_ignores_none(self):
        settings = Settings(recursive=True).merged(recursive=None, backup=False)
        self.assertTrue(settings.recursive)
        self.assertFalse(settings.backup)

    def test_wants(self):
        self.assertTrue(Settings().wants("anything"))
        filtered = Settings(resources=["cloudflare_record"])
        self.assertTrue(filtered.wants("cloudflare_record"))
        self.assertFalse(filtered.wants("cloudflare_argo"))


class TestLoadSettings(unittest.TestCase):
    """Test load_settings() from YAML files."""

    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def write(self, text):
        path = os.path.join(self.tmpdir, "tfmigrate.yml")
        with open(path, "w") as f:
            f.write(text)
        return path

    def test_load(self):
        path = self.write("resources: [cloudflare_record]\nrecursive: true\n")
        settings = load_settings(path)
        self.assertEqual(settings.resources, ["cloudflare_record"])
        self.assertTrue(settings.recursive)

    def test_empty_file(self):
        self.assertEqual(load_settings(self.write("")), Settings())

    def test_invalid_yaml(self):
        with self.assertRaises(SettingsError):
            load_settings(self.write("resources: [unclosed\n"))

    def test_missing_file(self):
        with self.assertRaises(SettingsError):
            load_settings(os.path.join(self.tmpdir, "missing.yml"))


if __name__ == "__main__":
    unittest.main()
