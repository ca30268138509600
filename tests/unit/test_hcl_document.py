"""Unit tests for engine/hcl lexer and document model."""

import sys
import unittest
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from engine.exceptions import HclParseError
from engine.hcl.attributes import set_attribute_value
from engine.hcl.document import Block, Document
from engine.hcl.expressions import Literal
from engine.hcl.lexer import TokenType, render_tokens, tokenize

SAMPLE = """# Managed by the platform team
terraform {
  required_providers {
    cloudflare = {
      source  = "cloudflare/cloudflare"
      version = "~> 4.0"
    }
  }
}

resource "cloudflare_record" "www" {
  zone_id = var.zone_id # production zone
  name    = "www"
  value   = "203.0.113.10"
  type    = "A"
  comment = "owner: ${var.team}"

  /* legacy */
  policy = <<EOT
line one
EOT
}
locals { enabled = true }
"""


class TestLexer(unittest.TestCase):
    """Test tokenize() round trips and token kinds."""

    def test_render_reproduces_source(self):
        """Concatenating all tokens gives back the source text."""
        self.assertEqual(render_tokens(tokenize(SAMPLE)), SAMPLE)

    def test_crlf_round_trip(self):
        """Windows line endings survive tokenization."""
        text = 'a = "b"\r\nc = 1\r\n'
        tokens = tokenize(text)
        self.assertEqual(render_tokens(tokens), text)
        self.assertIn(TokenType.NEWLINE, [t.type for t in tokens])

    def test_unicode_identifiers(self):
        """Non-ASCII letters lex as identifiers; stray symbols as operators."""
        text = "locals {\n  café = 1\n  straße = ²\n}\n"
        tokens = tokenize(text)
        self.assertEqual(render_tokens(tokens), text)
        idents = [t.text for t in tokens if t.type == TokenType.IDENT]
        self.assertEqual(idents, ["locals", "café", "straße"])
        self.assertIn("²", [t.text for t in tokens if t.type == TokenType.OP])

        doc = Document.parse(text)
        self.assertEqual(doc.render(), text)
        self.assertIsNotNone(doc.blocks("locals")[0].body.get_attribute("café"))

    def test_heredoc_is_single_token(self):
        """Heredoc bodies are kept as one opaque token."""
        tokens = tokenize("x = <<EOT\nhello ${name}\nEOT\n")
        heredocs = [t for t in tokens if t.type == TokenType.HEREDOC]
        self.assertEqual(len(heredocs), 1)
        self.assertTrue(heredocs[0].text.startswith("<<EOT"))
        self.assertTrue(heredocs[0].text.endswith("EOT"))

    def test_template_interpolation(self):
        """Interpolations inside strings are split into their own tokens."""
        types = [t.type for t in tokenize('"a${var.b}c"')]
        self.assertIn(TokenType.TEMPLATE_INTERP, types)
        self.assertIn(TokenType.TEMPLATE_SEQ_END, types)
        self.assertEqual(types[-1], TokenType.EOF)

    def test_escaped_interpolation_stays_literal(self):
        """$${ is an escape, not an interpolation."""
        types = [t.type for t in tokenize('"$${literal}"')]
        self.assertNotIn(TokenType.TEMPLATE_INTERP, types)

    def test_ends_with_eof(self):
        tokens = tokenize("")
        self.assertEqual(len(tokens), 1)
        self.assertEqual(tokens[0].type, TokenType.EOF)


class TestDocumentRoundTrip(unittest.TestCase):
    """Test that unmodified documents render byte for byte."""

    def test_sample_round_trip(self):
        """Parse then render reproduces comments, heredocs and spacing."""
        self.assertEqual(Document.parse(SAMPLE).render(), SAMPLE)

    def test_no_trailing_newline(self):
        text = 'resource "a" "b" {\n  x = 1\n}'
        self.assertEqual(Document.parse(text).render(), text)

    def test_empty_document(self):
        self.assertEqual(Document.parse("").render(), "")

    def test_blocks_are_found(self):
        """Top-level blocks are exposed with their labels."""
        doc = Document.parse(SAMPLE)
        resources = doc.blocks("resource")
        self.assertEqual(len(resources), 1)
        self.assertEqual(resources[0].labels(), ["cloudflare_record", "www"])
        self.assertEqual([b.type for b in doc.blocks()], ["terraform", "resource", "locals"])

    def test_comment_attaches_to_following_item(self):
        """A comment directly above a block is kept with that block."""
        doc = Document.parse(SAMPLE)
        terraform = doc.blocks("terraform")[0]
        self.assertIn("Managed by", render_tokens(terraform.lead))

    def test_unclosed_block_raises(self):
        with self.assertRaises(HclParseError):
            Document.parse('resource "a" "b" {\n  x = 1\n')

    def test_stray_closing_brace_raises(self):
        with self.assertRaises(HclParseError):
            Document.parse("}\n")


class TestDocumentEdits(unittest.TestCase):
    """Test rendering after edits."""

    def test_added_attribute_uses_body_indent(self):
        """A new attribute is indented like its siblings and the rest is untouched."""
        text = 'resource "a" "b" {\n    name = "x"\n}\n'
        doc = Document.parse(text)
        body = doc.blocks()[0].body
        set_attribute_value(body, "ttl", Literal(1))
        self.assertEqual(doc.render(), 'resource "a" "b" {\n    name = "x"\n    ttl = 1\n}\n')

    def test_renamed_label_keeps_body(self):
        doc = Document.parse('resource "old" "n" {\n  a = 1\n}\n')
        block = doc.blocks()[0]
        block.set_labels(["new", "n"])
        self.assertEqual(doc.render(), 'resource "new" "n" {\n  a = 1\n}\n')

    def test_generated_block_aligns_attributes(self):
        """Fresh blocks render canonically with aligned equals signs."""
        block = Block.new("resource", ["t", "n"])
        set_attribute_value(block.body, "zone_id", Literal("z"))
        set_attribute_value(block.body, "value", Literal("on"))
        self.assertEqual(
            block.render(""),
            'resource "t" "n" {\n  zone_id = "z"\n  value   = "on"\n}\n',
        )

    def test_empty_generated_block(self):
        self.assertEqual(Block.new("moved").render(""), "moved {}\n")

    def test_replace_spaces_blocks(self):
        """Replacement blocks are separated by blank lines."""
        doc = Document.parse('resource "a" "b" {\n  x = 1\n}\n')
        original = doc.blocks()[0]
        extra = Block.new("moved")
        doc.body.replace(original, [original, extra])
        self.assertEqual(doc.render(), 'resource "a" "b" {\n  x = 1\n}\n\nmoved {}\n')

    def test_remove_attribute_collapses_blank_lines(self):
        text = 'resource "a" "b" {\n  x = 1\n\n  y = 2\n\n  z = 3\n}\n'
        doc = Document.parse(text)
        body = doc.blocks()[0].body
        body.remove_attribute("y")
        self.assertEqual(doc.render(), 'resource "a" "b" {\n  x = 1\n\n  z = 3\n}\n')

    def test_validate_accepts_rendered_output(self):
        """python-hcl2 accepts a parsed and re-rendered document."""
        Document.parse('resource "a" "b" {\n  x = [1, 2]\n}\n').validate()


if __name__ == "__main__":
    unittest.main()
