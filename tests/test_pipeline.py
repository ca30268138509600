"""Tests for the migration driver on configuration text, state documents and files."""

import json
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
from engine.diagnostics import Context
from engine.exceptions import MigrationError, StateFileError
from engine.pipeline import (
    BACKUP_SUFFIX,
    find_config_files,
    migrate_config_directory,
    migrate_config_file,
    migrate_config_text,
    migrate_state,
    migrate_state_file,
    read_state_file,
)
from engine.registry import build_registry
from engine.rules import DnsRecordRule
from engine.settings import Settings

RECORD_CONFIG = """\
variable "zone_id" {}

resource "cloudflare_record" "www" {
  zone_id = var.zone_id
  name    = "www"
  value   = "203.0.113.10"
  type    = "A"
}

resource "aws_instance" "web" {
  ami = "ami-123"
}
"""

STATE = {
    "version": 4,
    "terraform_version": "1.5.7",
    "resources": [
        {
            "mode": "managed",
            "type": "cloudflare_record",
            "name": "www",
            "provider": 'provider["registry.terraform.io/cloudflare/cloudflare"]',
            "instances": [
                {
                    "schema_version": 3,
                    "attributes": {
                        "id": "r1",
                        "zone_id": "z",
                        "name": "www",
                        "type": "A",
                        "value": "203.0.113.10",
                        "ttl": 300,
                    },
                }
            ],
        },
        {
            "mode": "data",
            "type": "cloudflare_zones",
            "name": "all",
            "instances": [{"attributes": {"id": "x"}}],
        },
        {
            "mode": "managed",
            "type": "cloudflare_argo",
            "name": "main",
            "instances": [{"attributes": {"zone_id": "z", "tiered_caching": "on"}}],
        },
        {
            "mode": "managed",
            "type": "cloudflare_workers_kv_namespace",
            "name": "kv",
            "instances": [{"schema_version": 0, "attributes": {"title": "cache"}}],
        },
        {
            "mode": "managed",
            "type": "aws_instance",
            "name": "web",
            "instances": [{"attributes": {"ami": "ami-123"}}],
        },
    ],
}


@pytest.fixture
def registry():
    return build_registry()


def fresh_state():
    return json.loads(json.dumps(STATE))


class FailingDnsRule(DnsRecordRule):
    """Edits its input, then fails part way through."""

    def transform_config(self, ctx, block):
        block.body.remove_attribute("value")
        raise KeyError("value")

    def transform_state(self, ctx, instance, resource_path, resource_name):
        instance["attributes"].pop("value")
        raise ValueError("bad record")


# ── configuration text ──


class TestMigrateConfigText:
    def test_migrates_matching_blocks_only(self, registry):
        """Unrelated blocks render exactly as written."""
        ctx = Context()
        out = migrate_config_text(ctx, RECORD_CONFIG, registry)
        assert 'resource "cloudflare_dns_record" "www"' in out
        assert '  content = "203.0.113.10"\n' in out
        assert 'resource "aws_instance" "web" {\n  ami = "ami-123"\n}\n' in out
        assert out.startswith('variable "zone_id" {}\n')
        assert not ctx.has_errors()

    def test_output_is_valid_hcl(self, registry):
        """Rendered output passes python-hcl2 validation."""
        ctx = Context()
        migrate_config_text(ctx, RECORD_CONFIG, registry, Settings(validate_output=True))
        assert not ctx.has_errors()

    def test_untouched_file_is_identical(self, registry):
        text = 'resource "aws_instance" "web" {\n  ami = "ami-123" # pinned\n}\n'
        assert migrate_config_text(Context(), text, registry) == text

    def test_parse_error_returns_input(self, registry):
        text = 'resource "cloudflare_record" "www" {\n  name = "www"\n'
        ctx = Context(filename="broken.tf")
        assert migrate_config_text(ctx, text, registry) == text
        assert ctx.has_errors()
        assert ctx.diagnostics[0].address == "broken.tf"

    def test_resource_filter(self, registry):
        settings = Settings(resources=["cloudflare_argo"])
        assert migrate_config_text(Context(), RECORD_CONFIG, registry, settings) == RECORD_CONFIG

    def test_config_bodies_recorded(self, registry):
        ctx = Context()
        migrate_config_text(ctx, RECORD_CONFIG, registry)
        body = ctx.config_body("cloudflare_record.www")
        assert body is not None
        # The stored body is the configuration as written.
        assert body.get_attribute("value") is not None

    def test_unicode_identifiers(self, registry):
        """Non-ASCII attribute names are carried through, not a crash."""
        text = 'resource "cloudflare_record" "r" {\n  zone_id = "z"\n  type    = "A"\n  café = 1\n}\n'
        ctx = Context()
        out = migrate_config_text(ctx, text, registry, Settings(validate_output=False))
        assert 'resource "cloudflare_dns_record" "r"' in out
        assert "  café = 1\n" in out
        assert not ctx.has_errors()

    def test_failing_rule_leaves_block_as_written(self):
        ctx = Context()
        out = migrate_config_text(ctx, RECORD_CONFIG, build_registry(rules=[FailingDnsRule()]))
        assert out == RECORD_CONFIG
        assert ctx.has_errors()
        assert ctx.diagnostics[0].address == "cloudflare_record.www"


# ── state ──


class TestMigrateState:
    def test_types_and_instances(self, registry):
        ctx = Context()
        state = migrate_state(ctx, fresh_state(), registry)
        types = [resource["type"] for resource in state["resources"]]
        assert types == [
            "cloudflare_dns_record",
            "cloudflare_argo_tiered_caching",
            "cloudflare_workers_kv_namespace",
            "aws_instance",
        ]
        record = state["resources"][0]["instances"][0]["attributes"]
        assert record["content"] == "203.0.113.10"
        assert record["ttl"] == 300.0
        argo = state["resources"][1]["instances"][0]
        assert argo["attributes"]["value"] == "on"
        assert argo["schema_version"] == 0
        assert ctx.metadata == {}

    def test_provider_upgraded_state_untouched(self, registry):
        state = migrate_state(Context(), fresh_state(), registry)
        kv = state["resources"][2]
        assert kv["instances"] == [{"schema_version": 0, "attributes": {"title": "cache"}}]

    def test_unrelated_resources_untouched(self, registry):
        state = migrate_state(Context(), fresh_state(), registry)
        assert state["resources"][3] == STATE["resources"][4]
        assert state["terraform_version"] == "1.5.7"

    def test_resource_filter(self, registry):
        state = migrate_state(Context(), fresh_state(), registry, Settings(resources=["cloudflare_argo"]))
        assert state["resources"][0]["type"] == "cloudflare_record"
        assert state["resources"][1]["type"] == "cloudflare_argo_tiered_caching"

    def test_state_uses_configuration(self, registry):
        """A value written in configuration is not normalized to null."""
        ctx = Context()
        migrate_config_text(
            ctx,
            'resource "cloudflare_access_group" "staff" {\n  name       = "staff"\n  is_default = false\n}\n',
            registry,
        )
        state = {
            "resources": [
                {
                    "mode": "managed",
                    "type": "cloudflare_access_group",
                    "name": "staff",
                    "instances": [{"attributes": {"name": "staff", "is_default": False}}],
                }
            ]
        }
        migrate_state(ctx, state, registry)
        assert state["resources"][0]["type"] == "cloudflare_zero_trust_access_group"
        assert state["resources"][0]["instances"][0]["attributes"]["is_default"] is False

    def test_failing_rule_leaves_resource_as_written(self):
        ctx = Context()
        state = migrate_state(ctx, fresh_state(), build_registry(rules=[FailingDnsRule()]))
        assert state["resources"][0] == STATE["resources"][0]
        assert ctx.has_errors()
        assert ctx.diagnostics[0].address == "cloudflare_record.www"

    def test_state_without_resources(self, registry):
        assert migrate_state(Context(), {"version": 4}, registry) == {"version": 4}


# ── files ──


class TestFiles:
    def write(self, path, text):
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            f.write(text)

    def test_find_config_files(self, tmp_path):
        self.write(str(tmp_path / "main.tf"), "")
        self.write(str(tmp_path / "notes.txt"), "")
        self.write(str(tmp_path / "modules" / "dns.tf"), "")
        self.write(str(tmp_path / ".terraform" / "cached.tf"), "")
        assert find_config_files(str(tmp_path)) == [str(tmp_path / "main.tf")]
        assert find_config_files(str(tmp_path), recursive=True) == [
            str(tmp_path / "main.tf"),
            str(tmp_path / "modules" / "dns.tf"),
        ]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(MigrationError):
            find_config_files(str(tmp_path / "nope"))

    def test_file_rewritten_with_backup(self, tmp_path, registry):
        path = str(tmp_path / "main.tf")
        self.write(path, RECORD_CONFIG)
        assert migrate_config_file(Context(), path, registry)
        with open(path) as f:
            assert "cloudflare_dns_record" in f.read()
        with open(path + BACKUP_SUFFIX) as f:
            assert f.read() == RECORD_CONFIG

    def test_dry_run_leaves_files(self, tmp_path, registry):
        path = str(tmp_path / "main.tf")
        self.write(path, RECORD_CONFIG)
        changed = migrate_config_directory(Context(), str(tmp_path), registry, dry_run=True, progress=False)
        assert changed == [path]
        with open(path) as f:
            assert f.read() == RECORD_CONFIG
        assert not os.path.exists(path + BACKUP_SUFFIX)

    def test_no_backup(self, tmp_path, registry):
        path = str(tmp_path / "main.tf")
        self.write(path, RECORD_CONFIG)
        migrate_config_file(Context(), path, registry, Settings(backup=False))
        assert not os.path.exists(path + BACKUP_SUFFIX)

    def test_state_file(self, tmp_path, registry):
        path = str(tmp_path / "terraform.tfstate")
        self.write(path, json.dumps(STATE))
        migrated = migrate_state_file(Context(), path, registry)
        assert migrated["resources"][0]["type"] == "cloudflare_dns_record"
        with open(path) as f:
            text = f.read()
        assert text.endswith("}\n")
        assert '\n  "resources": [' in text
        assert read_state_file(path + BACKUP_SUFFIX) == STATE

    def test_bad_state_file(self, tmp_path):
        path = str(tmp_path / "terraform.tfstate")
        self.write(path, "{not json")
        with pytest.raises(StateFileError):
            read_state_file(path)
        with pytest.raises(StateFileError):
            read_state_file(str(tmp_path / "missing.tfstate"))
