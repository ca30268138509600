"""Mutable, formatting-preserving HCL document model.

A Document is parsed from source text into a tree of Body, Attribute, Block
and Unstructured nodes. Each parsed node keeps the exact tokens it was built
from, so rendering an unmodified document reproduces the input byte for
byte. Nodes that are edited or created are marked fresh and rendered in
canonical layout using the indentation of the body that holds them.
"""

import copy
import logging
from typing import Iterator, List, Optional, Union

import hcl2

from engine.exceptions import HclParseError
from engine.hcl.lexer import Token, TokenType, render_tokens, tokenize

logger = logging.getLogger(__name__)

INDENT_STEP = "  "

OPENERS = {
    TokenType.OBRACE,
    TokenType.OBRACK,
    TokenType.OPAREN,
    TokenType.TEMPLATE_INTERP,
    TokenType.TEMPLATE_CONTROL,
}
CLOSERS = {
    TokenType.CBRACE,
    TokenType.CBRACK,
    TokenType.CPAREN,
    TokenType.TEMPLATE_SEQ_END,
}


def _clone(tokens: List[Token]) -> List[Token]:
    return [Token(t.type, t.text, t.spaces_before) for t in tokens]


def _split_lines(tokens: List[Token]) -> List[List[Token]]:
    lines: List[List[Token]] = [[]]
    for token in tokens:
        lines[-1].append(token)
        if token.type == TokenType.NEWLINE:
            lines.append([])
    if not lines[-1]:
        lines.pop()
    return lines


def reindent(tokens: List[Token], indent: str) -> List[Token]:
    """Re-indent continuation lines of a multi-line token sequence.

    The first line is left alone. Every following line is indented by
    ``indent`` plus one step per bracket level still open at its start.
    Brackets opened together on one line count as a single level, so
    ``[{`` followed later by ``}, {`` and ``}]`` keeps a compact layout.

    Args:
        tokens: Tokens to re-indent (modified in place)
        indent: Base indentation of the first line

    Returns:
        The same token list
    """
    stack: List[int] = []
    for index, line in enumerate(_split_lines(tokens)):
        content = [t for t in line if t.type != TokenType.NEWLINE]
        leading = 0
        while leading < len(content) and content[leading].type in CLOSERS:
            leading += 1
        partial = _consume(stack, leading)
        level = len(stack) - (1 if partial else 0)
        if index > 0 and content:
            content[0].spaces_before = indent + INDENT_STEP * max(level, 0)
        net = 0
        for token in content[leading:]:
            if token.type in OPENERS:
                net += 1
            elif token.type in CLOSERS:
                net -= 1
        if net > 0:
            if partial:
                stack[-1] += net
            else:
                stack.append(net)
        elif net < 0:
            _consume(stack, -net)
    return tokens


def _consume(stack: List[int], count: int) -> bool:
    """Pop ``count`` open brackets off the stack.

    Returns True when the top entry was only partially consumed.
    """
    partial = False
    while count > 0 and stack:
        take = min(count, stack[-1])
        stack[-1] -= take
        count -= take
        if stack[-1] == 0:
            stack.pop()
            partial = False
        else:
            partial = True
    return partial


class Unstructured:
    """A blank line, comment line or unparseable line kept verbatim."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens

    def is_blank(self) -> bool:
        return all(t.type == TokenType.NEWLINE for t in self.tokens)

    def render(self, indent: str, fresh: bool = False) -> str:
        if not fresh:
            return render_tokens(self.tokens)
        if self.is_blank():
            return "\n"
        tokens = _clone(self.tokens)
        tokens[0].spaces_before = indent
        text = render_tokens(tokens)
        return text if text.endswith("\n") else text + "\n"


class Attribute:
    """A ``name = expression`` line in a body."""

    def __init__(
        self,
        name_token: Token,
        eq_token: Token,
        expr_tokens: List[Token],
        line_end: Optional[List[Token]] = None,
        lead: Optional[List[Token]] = None,
    ):
        self.name_token = name_token
        self.eq_token = eq_token
        self.expr_tokens = expr_tokens
        self.line_end = line_end or []
        self.lead = lead or []
        self.modified = False

    @classmethod
    def new(cls, name: str, expr_tokens: List[Token]) -> "Attribute":
        """Create a fresh attribute from expression tokens."""
        attr = cls(
            Token(TokenType.IDENT, name),
            Token(TokenType.EQUAL, "=", " "),
            _clone(expr_tokens),
            [Token(TokenType.NEWLINE, "\n")],
        )
        attr.modified = True
        return attr

    @property
    def name(self) -> str:
        return self.name_token.text

    def rename(self, new_name: str) -> None:
        self.name_token = Token(TokenType.IDENT, new_name, self.name_token.spaces_before)
        self.modified = True

    def expression(self):
        """Parse the value into the closed expression set."""
        from engine.hcl.expressions import parse_expression

        return parse_expression(self.expr_tokens)

    def set_expression_tokens(self, tokens: List[Token]) -> None:
        self.expr_tokens = _clone(tokens)
        self.modified = True

    def value_text(self) -> str:
        """Return the value source text without surrounding whitespace."""
        return render_tokens(self.expr_tokens).strip()

    def is_multiline(self) -> bool:
        return any(t.type == TokenType.NEWLINE or "\n" in t.text for t in self.expr_tokens)

    def copy(self) -> "Attribute":
        """Return a detached copy that renders fresh wherever it is inserted."""
        attr = copy.deepcopy(self)
        attr.lead = []
        attr.modified = True
        return attr

    def render(self, indent: str, fresh: bool = False, align: int = 0) -> str:
        if not (fresh or self.modified):
            return render_tokens(self.lead) + render_tokens(
                [self.name_token, self.eq_token] + self.expr_tokens + self.line_end
            )
        lead = ""
        for line in _split_lines(self.lead):
            lead += Unstructured(line).render(indent, fresh=True)
        name = Token(TokenType.IDENT, self.name, indent)
        eq = Token(TokenType.EQUAL, "=", " " * max(align - len(self.name), 0) + " ")
        expr = _clone(self.expr_tokens)
        if expr:
            expr[0].spaces_before = " "
        line_end = _clone(self.line_end)
        if not any(t.type == TokenType.NEWLINE for t in line_end):
            line_end.append(Token(TokenType.NEWLINE, "\n"))
        tokens = reindent([name, eq] + expr + line_end, indent)
        return lead + render_tokens(tokens)


class Block:
    """A ``type "label" ... { body }`` node."""

    def __init__(
        self,
        type_token: Token,
        label_tokens: List[List[Token]],
        open_tokens: List[Token],
        body: "Body",
        close_tokens: List[Token],
        lead: Optional[List[Token]] = None,
    ):
        self.type_token = type_token
        self.label_tokens = label_tokens
        self.open_tokens = open_tokens
        self.body = body
        self.close_tokens = close_tokens
        self.lead = lead or []
        self.header_modified = False
        self.generated = False

    @classmethod
    def new(cls, block_type: str, labels: Optional[List[str]] = None) -> "Block":
        """Create an empty generated block."""
        block = cls(
            Token(TokenType.IDENT, block_type),
            [],
            [Token(TokenType.OBRACE, "{", " "), Token(TokenType.NEWLINE, "\n")],
            Body(indent=None),
            [Token(TokenType.CBRACE, "}"), Token(TokenType.NEWLINE, "\n")],
        )
        block.set_labels(labels or [])
        block.generated = True
        return block

    @property
    def type(self) -> str:
        return self.type_token.text

    def set_type(self, block_type: str) -> None:
        self.type_token = Token(TokenType.IDENT, block_type, self.type_token.spaces_before)

    def labels(self) -> List[str]:
        values = []
        for tokens in self.label_tokens:
            if tokens[0].type == TokenType.OQUOTE:
                values.append("".join(t.text for t in tokens[1:-1]))
            else:
                values.append(tokens[0].text)
        return values

    def set_labels(self, labels: List[str]) -> None:
        self.label_tokens = [
            [
                Token(TokenType.OQUOTE, '"', " "),
                Token(TokenType.QUOTED_LIT, label),
                Token(TokenType.CQUOTE, '"'),
            ]
            for label in labels
        ]
        self.header_modified = True

    def copy(self) -> "Block":
        """Return a detached copy that renders fresh wherever it is inserted."""
        block = copy.deepcopy(self)
        block.lead = []
        block.generated = True
        return block

    def _is_inline(self) -> bool:
        return not any(t.type == TokenType.NEWLINE for t in self.open_tokens)

    def render(self, indent: str, fresh: bool = False) -> str:
        fresh = fresh or self.generated
        if self._is_inline() and self.body.modified:
            fresh = True
        if fresh:
            lead = ""
            for line in _split_lines(self.lead):
                lead += Unstructured(line).render(indent, fresh=True)
            header = indent + self.type
            for tokens in self.label_tokens:
                header += " " + render_tokens(tokens).strip()
            if not self.body.items:
                return lead + header + " {}\n"
            text = lead + header + " {\n" + self.body.render(indent, fresh=True)
            return text + indent + "}\n"
        if self.header_modified:
            type_token = Token(TokenType.IDENT, self.type, self.type_token.spaces_before)
            header = [type_token]
            for tokens in self.label_tokens:
                label = _clone(tokens)
                label[0].spaces_before = " "
                header.extend(label)
            head = render_tokens(header)
        else:
            head = render_tokens([self.type_token] + [t for ts in self.label_tokens for t in ts])
        text = render_tokens(self.lead) + head + render_tokens(self.open_tokens)
        text += self.body.render(indent)
        if self._is_inline():
            return text + render_tokens(self.close_tokens)
        closing = _clone(self.close_tokens)
        if self.body.modified and closing and closing[0].type == TokenType.CBRACE:
            closing[0].spaces_before = indent
        return text + render_tokens(closing)


Node = Union[Attribute, Block, Unstructured]


class Body:
    """An ordered list of attributes, blocks and unstructured lines."""

    def __init__(self, items: Optional[List[Node]] = None, indent: Optional[str] = None):
        self.items: List[Node] = items or []
        self.indent = indent
        self.modified = False

    def child_indent(self, parent_indent: str) -> str:
        if self.indent is not None:
            return self.indent
        return parent_indent + INDENT_STEP

    # Attributes

    def attributes(self) -> List[Attribute]:
        return [item for item in self.items if isinstance(item, Attribute)]

    def get_attribute(self, name: str) -> Optional[Attribute]:
        for item in self.items:
            if isinstance(item, Attribute) and item.name == name:
                return item
        return None

    def set_attribute_tokens(
        self, name: str, tokens: List[Token], before: Optional[Node] = None
    ) -> Attribute:
        """Bind ``name`` to raw expression tokens.

        An existing attribute is updated in place. Otherwise a new one is
        inserted before ``before`` when given, or after the last attribute.
        """
        existing = self.get_attribute(name)
        if existing is not None:
            existing.set_expression_tokens(tokens)
            self.modified = True
            return existing
        attr = Attribute.new(name, tokens)
        if before is not None and before in self.items:
            index = self.items.index(before)
        else:
            index = self._attribute_insert_index()
        self.items.insert(index, attr)
        self.modified = True
        return attr

    def _attribute_insert_index(self) -> int:
        last = None
        for index, item in enumerate(self.items):
            if isinstance(item, Attribute):
                last = index
        if last is not None:
            return last + 1
        for index, item in enumerate(self.items):
            if not isinstance(item, Unstructured):
                return index
        return len(self.items)

    def insert_attribute(self, attr: Attribute, index: Optional[int] = None) -> None:
        self.items.insert(self._attribute_insert_index() if index is None else index, attr)
        self.modified = True

    def remove_attribute(self, name: str) -> Optional[Attribute]:
        attr = self.get_attribute(name)
        if attr is not None:
            self._remove_item(attr)
        return attr

    # Blocks

    def blocks(self, block_type: Optional[str] = None) -> List[Block]:
        return [
            item
            for item in self.items
            if isinstance(item, Block) and (block_type is None or item.type == block_type)
        ]

    def first_block(self, block_type: str) -> Optional[Block]:
        found = self.blocks(block_type)
        return found[0] if found else None

    def append_block(self, block: Block) -> Block:
        if self.items and isinstance(self.items[-1], (Attribute, Block)):
            self.items.append(Unstructured([Token(TokenType.NEWLINE, "\n")]))
        self.items.append(block)
        self.modified = True
        return block

    def insert_after(self, anchor: Node, nodes: List[Node]) -> None:
        """Insert nodes after ``anchor``, each separated by a blank line."""
        index = self.items.index(anchor) + 1
        for node in nodes:
            self.items.insert(index, Unstructured([Token(TokenType.NEWLINE, "\n")]))
            self.items.insert(index + 1, node)
            index += 2
        self.modified = True

    def replace(self, node: Node, replacements: List[Node]) -> None:
        """Replace ``node`` with ``replacements`` separated by blank lines."""
        index = self.items.index(node)
        self.items.pop(index)
        spaced: List[Node] = []
        for position, replacement in enumerate(replacements):
            if position:
                spaced.append(Unstructured([Token(TokenType.NEWLINE, "\n")]))
            spaced.append(replacement)
        self.items[index:index] = spaced
        if not replacements:
            self._collapse_blank(index)
        self.modified = True

    def remove_block(self, block: Block) -> None:
        if block in self.items:
            self._remove_item(block)

    def _remove_item(self, node: Node) -> None:
        index = self.items.index(node)
        self.items.pop(index)
        self._collapse_blank(index)
        self.modified = True

    def _collapse_blank(self, index: int) -> None:
        if 0 < index < len(self.items):
            before, after = self.items[index - 1], self.items[index]
            if (
                isinstance(before, Unstructured)
                and isinstance(after, Unstructured)
                and before.is_blank()
                and after.is_blank()
            ):
                self.items.pop(index)
        elif index == len(self.items) and index > 0:
            last = self.items[-1]
            if isinstance(last, Unstructured) and last.is_blank() and len(self.items) > 1:
                self.items.pop()

    # Rendering

    def render(self, parent_indent: str, fresh: bool = False) -> str:
        if parent_indent is None:
            indent = ""
        elif fresh:
            indent = parent_indent + INDENT_STEP
        else:
            indent = self.child_indent(parent_indent)
        fresh_or_new = fresh or self.modified
        widths = self._alignment(fresh) if fresh_or_new else {}
        parts: List[str] = []
        for item in self.items:
            if isinstance(item, Attribute):
                text = item.render(indent, fresh, widths.get(id(item), 0))
            else:
                text = item.render(indent, fresh)
            if parts and not parts[-1].endswith("\n"):
                parts[-1] += "\n"
            parts.append(text)
        return "".join(parts)

    def _alignment(self, fresh: bool) -> dict:
        """Compute ``=`` alignment for runs of fresh single-line attributes."""
        widths = {}
        run: List[Attribute] = []

        def flush():
            width = max((len(a.name) for a in run), default=0)
            for attr in run:
                widths[id(attr)] = width
            run.clear()

        for item in self.items:
            if (
                isinstance(item, Attribute)
                and (fresh or item.modified)
                and not item.is_multiline()
                and not item.lead
            ):
                run.append(item)
            else:
                flush()
        flush()
        return widths

    def walk_blocks(self) -> Iterator[Block]:
        for block in self.blocks():
            yield block
            yield from block.body.walk_blocks()


class _Parser:
    """Recursive-descent parser from tokens to the document model."""

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0

    def peek(self, offset: int = 0) -> Token:
        index = min(self.pos + offset, len(self.tokens) - 1)
        return self.tokens[index]

    def next(self) -> Token:
        token = self.tokens[self.pos]
        if token.type != TokenType.EOF:
            self.pos += 1
        return token

    def parse_body(self, in_block: bool) -> Body:
        body = Body()
        pending: List[List[Token]] = []
        while True:
            token = self.peek()
            if token.type == TokenType.EOF:
                break
            if token.type == TokenType.CBRACE:
                if in_block:
                    break
                raise HclParseError("Unexpected closing brace", {"offset": self.pos})
            if token.type == TokenType.NEWLINE:
                pending.append([self.next()])
                continue
            if token.type == TokenType.COMMENT:
                line = [self.next()]
                if self.peek().type == TokenType.NEWLINE:
                    line.append(self.next())
                pending.append(line)
                continue
            lead = self._take_lead(pending, body)
            node = self._parse_item(in_block, lead)
            body.items.append(node)
        body.items.extend(Unstructured(line) for line in pending)
        for item in body.items:
            if isinstance(item, Attribute):
                body.indent = item.name_token.spaces_before
                break
            if isinstance(item, Block):
                body.indent = item.type_token.spaces_before
                break
        return body

    @staticmethod
    def _take_lead(pending: List[List[Token]], body: Body) -> List[Token]:
        """Attach comment lines directly above an item to that item."""
        split = len(pending)
        while split > 0 and pending[split - 1][0].type == TokenType.COMMENT:
            split -= 1
        body.items.extend(Unstructured(line) for line in pending[:split])
        lead = [t for line in pending[split:] for t in line]
        pending.clear()
        return lead

    def _parse_item(self, in_block: bool, lead: List[Token]) -> Node:
        start = self.pos
        first = self.peek()
        if first.type == TokenType.IDENT:
            if self.peek(1).type == TokenType.EQUAL:
                return self._parse_attribute(in_block, lead)
            block = self._try_parse_block(lead)
            if block is not None:
                return block
        self.pos = start
        return self._parse_unstructured(in_block, lead)

    def _parse_attribute(self, in_block: bool, lead: List[Token]) -> Attribute:
        name = self.next()
        eq = self.next()
        expr: List[Token] = []
        depth = 0
        while True:
            token = self.peek()
            if token.type == TokenType.EOF:
                break
            if depth == 0:
                if token.type in (TokenType.NEWLINE, TokenType.COMMENT):
                    break
                if token.type == TokenType.CBRACE and in_block:
                    break
            if token.type in OPENERS:
                depth += 1
            elif token.type in CLOSERS:
                depth -= 1
            expr.append(self.next())
        return Attribute(name, eq, expr, self._line_end(), lead)

    def _line_end(self) -> List[Token]:
        tokens: List[Token] = []
        if self.peek().type == TokenType.COMMENT:
            tokens.append(self.next())
        if self.peek().type == TokenType.NEWLINE:
            tokens.append(self.next())
        return tokens

    def _try_parse_block(self, lead: List[Token]) -> Optional[Block]:
        type_token = self.next()
        labels: List[List[Token]] = []
        while True:
            token = self.peek()
            if token.type == TokenType.IDENT:
                labels.append([self.next()])
            elif token.type == TokenType.OQUOTE:
                label = [self.next()]
                while self.peek().type == TokenType.QUOTED_LIT:
                    label.append(self.next())
                if self.peek().type != TokenType.CQUOTE:
                    return None
                label.append(self.next())
                labels.append(label)
            else:
                break
        if self.peek().type != TokenType.OBRACE:
            return None
        open_tokens = [self.next()]
        if self.peek().type == TokenType.COMMENT:
            open_tokens.append(self.next())
        if self.peek().type == TokenType.NEWLINE:
            open_tokens.append(self.next())
        body = self.parse_body(in_block=True)
        if self.peek().type != TokenType.CBRACE:
            raise HclParseError(
                "Unclosed block", {"block": type_token.text, "labels": len(labels)}
            )
        close = [self.next()] + self._line_end()
        return Block(type_token, labels, open_tokens, body, close, lead)

    def _parse_unstructured(self, in_block: bool, lead: List[Token]) -> Unstructured:
        tokens = list(lead)
        while True:
            token = self.peek()
            if token.type == TokenType.EOF:
                break
            if token.type == TokenType.CBRACE and in_block:
                break
            tokens.append(self.next())
            if token.type == TokenType.NEWLINE:
                break
        logger.debug("Keeping unrecognised line verbatim: %r", render_tokens(tokens))
        return Unstructured(tokens)


class Document:
    """A parsed configuration file."""

    def __init__(self, body: Body, trailing: Optional[List[Token]] = None):
        self.body = body
        self.trailing = trailing or []

    @classmethod
    def parse(cls, text: str) -> "Document":
        """Parse configuration text.

        Args:
            text: HCL source

        Returns:
            Document whose render() reproduces ``text`` until it is modified

        Raises:
            HclParseError: If a block is not closed or a brace is unmatched
        """
        tokens = tokenize(text)
        parser = _Parser(tokens)
        body = parser.parse_body(in_block=False)
        trailing = []
        eof = parser.peek()
        if eof.spaces_before:
            trailing.append(eof)
        body.indent = ""
        return cls(body, trailing)

    def render(self) -> str:
        text = self.body.render(None)
        return text + render_tokens(self.trailing)

    def blocks(self, block_type: Optional[str] = None) -> List[Block]:
        return self.body.blocks(block_type)

    def validate(self) -> None:
        """Check the rendered text with python-hcl2.

        Raises:
            HclParseError: If python-hcl2 rejects the output
        """
        text = self.render()
        try:
            hcl2.loads(text)
        except Exception as e:
            raise HclParseError(f"Rendered configuration is not valid HCL: {e}") from e
