"""Closed set of HCL expression variants.

Attribute values are parsed into one of six dataclasses. Anything that is
not a literal, traversal, tuple, object or plain template (function calls,
for-expressions, operators, conditionals, heredocs, template directives) is
kept as ``Unknown`` with its original tokens so it round-trips unchanged.

The reverse direction, ``build_tokens_from_expression``, renders any
variant back into tokens in canonical layout.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional, Union

from engine.exceptions import HclParseError
from engine.hcl.lexer import Token, TokenType, render_tokens, tokenize

logger = logging.getLogger(__name__)

OPENERS = {
    TokenType.OBRACE,
    TokenType.OBRACK,
    TokenType.OPAREN,
    TokenType.TEMPLATE_INTERP,
    TokenType.TEMPLATE_CONTROL,
    TokenType.OQUOTE,
}
CLOSERS = {
    TokenType.CBRACE,
    TokenType.CBRACK,
    TokenType.CPAREN,
    TokenType.TEMPLATE_SEQ_END,
    TokenType.CQUOTE,
}
TRIVIA = {TokenType.NEWLINE, TokenType.COMMENT}


@dataclass
class Literal:
    """A string, number, bool or null literal.

    ``raw`` keeps the source spelling of parsed literals (``1.50``, escapes).
    """

    value: Any
    raw: Optional[str] = None

    def is_string(self) -> bool:
        return isinstance(self.value, str)


@dataclass
class Reference:
    """A variable or resource traversal such as ``var.zone_id``."""

    text: str


@dataclass
class Tuple:
    items: List["Expression"] = field(default_factory=list)


@dataclass
class ObjectItem:
    """One ``key = value`` pair. ``key`` is the key as written."""

    key: str
    value: "Expression"

    @property
    def name(self) -> str:
        if len(self.key) >= 2 and self.key[0] == '"' and self.key[-1] == '"':
            return self.key[1:-1]
        return self.key


@dataclass
class Object:
    items: List[ObjectItem] = field(default_factory=list)

    def keys(self) -> List[str]:
        return [item.name for item in self.items]

    def get(self, name: str) -> Optional["Expression"]:
        for item in self.items:
            if item.name == name:
                return item.value
        return None

    def has(self, name: str) -> bool:
        return any(item.name == name for item in self.items)

    def set(self, name: str, value: "Expression") -> None:
        for item in self.items:
            if item.name == name:
                item.value = value
                return
        self.items.append(ObjectItem(object_key(name), value))

    def remove(self, name: str) -> Optional["Expression"]:
        for index, item in enumerate(self.items):
            if item.name == name:
                return self.items.pop(index).value
        return None


@dataclass
class Template:
    """A quoted string containing ``${...}`` interpolation, kept as written."""

    raw: str


@dataclass
class Unknown:
    """Any other expression, preserved token for token."""

    tokens: List[Token]

    @property
    def text(self) -> str:
        return render_tokens(self.tokens).strip()


Expression = Union[Literal, Reference, Tuple, Object, Template, Unknown]

IDENT_KEY_CHARS = set("abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_-")


def object_key(name: str) -> str:
    """Return ``name`` as an object key, quoting it when needed."""
    if name and (name[0].isalpha() or name[0] == "_") and set(name) <= IDENT_KEY_CHARS:
        return name
    return quote_string(name)


def quote_string(value: str) -> str:
    """Quote a Python string as an HCL string literal."""
    text = json.dumps(value, ensure_ascii=False)
    return text.replace("${", "$${").replace("%{", "%%{")


def _unquote(text: str) -> str:
    body = text[1:-1] if len(text) >= 2 else ""
    body = body.replace("$${", "${").replace("%%{", "%{")
    try:
        return json.loads(f'"{body}"')
    except ValueError:
        return body


# Parsing


def parse_expression(tokens: List[Token]) -> Expression:
    """Parse expression tokens into the closed expression set.

    Args:
        tokens: Tokens of one expression (as stored on an Attribute)

    Returns:
        The parsed expression; unrecognised syntax becomes Unknown

    Raises:
        HclParseError: For empty or structurally malformed input
    """
    span = _strip(tokens)
    if not span:
        raise HclParseError("Empty expression")
    _check_balanced(span)
    return _parse_span(span)


def parse_expression_text(text: str) -> Expression:
    """Parse an expression from source text."""
    tokens = tokenize(text)[:-1]
    return parse_expression(tokens)


def _strip(tokens: List[Token]) -> List[Token]:
    start, end = 0, len(tokens)
    while start < end and tokens[start].type in TRIVIA:
        start += 1
    while end > start and tokens[end - 1].type in TRIVIA:
        end -= 1
    return tokens[start:end]


def _check_balanced(tokens: List[Token]) -> None:
    depth = 0
    for token in tokens:
        if token.type in OPENERS:
            depth += 1
        elif token.type in CLOSERS:
            depth -= 1
        if depth < 0:
            raise HclParseError("Unbalanced brackets", {"expression": render_tokens(tokens).strip()})
    if depth != 0:
        raise HclParseError("Unbalanced brackets", {"expression": render_tokens(tokens).strip()})


def _matching(tokens: List[Token], start: int) -> int:
    depth = 0
    for index in range(start, len(tokens)):
        if tokens[index].type in OPENERS:
            depth += 1
        elif tokens[index].type in CLOSERS:
            depth -= 1
            if depth == 0:
                return index
    return -1


def _parse_span(span: List[Token]) -> Expression:
    first = span[0]
    if any(t.type == TokenType.COMMENT for t in span):
        return Unknown(span)
    if first.type in (TokenType.OBRACK, TokenType.OBRACE) and _matching(span, 0) == len(span) - 1:
        inner = span[1:-1]
        inner_start = _strip(inner)
        if inner_start and inner_start[0].type == TokenType.IDENT and inner_start[0].text == "for":
            return Unknown(span)
        if first.type == TokenType.OBRACK:
            return Tuple([_parse_element(part) for part in _split_elements(inner, newline_separates=False)])
        return Object([_parse_item(part) for part in _split_elements(inner, newline_separates=True)])
    if len(span) == 1:
        if first.type == TokenType.NUMBER:
            return Literal(_number(first.text), first.text)
        if first.type == TokenType.IDENT:
            if first.text in ("true", "false"):
                return Literal(first.text == "true", first.text)
            if first.text == "null":
                return Literal(None, "null")
            return Reference(first.text)
    if len(span) == 2 and first.type == TokenType.OP and first.text == "-" and span[1].type == TokenType.NUMBER:
        return Literal(-_number(span[1].text), "-" + span[1].text)
    if first.type == TokenType.OQUOTE and _matching(span, 0) == len(span) - 1:
        raw = render_tokens(span).strip()
        if all(t.type == TokenType.QUOTED_LIT for t in span[1:-1]):
            return Literal(_unquote(raw), raw)
        if any(t.type == TokenType.TEMPLATE_CONTROL for t in span):
            return Unknown(span)
        return Template(raw)
    if first.type == TokenType.IDENT and _is_traversal(span):
        return Reference(render_tokens(span).strip())
    return Unknown(span)


def _number(text: str) -> Union[int, float]:
    try:
        return int(text)
    except ValueError:
        return float(text)


def _is_traversal(span: List[Token]) -> bool:
    index = 1
    while index < len(span):
        token = span[index]
        if token.type == TokenType.DOT:
            if index + 1 >= len(span):
                return False
            nxt = span[index + 1]
            if nxt.type not in (TokenType.IDENT, TokenType.NUMBER) and not (
                nxt.type == TokenType.OP and nxt.text == "*"
            ):
                return False
            index += 2
        elif token.type == TokenType.OBRACK:
            close = _matching(span, index)
            if close < 0:
                return False
            index = close + 1
        else:
            return False
    return True


def _split_elements(tokens: List[Token], newline_separates: bool) -> List[List[Token]]:
    """Split the inside of a tuple or object into element token spans."""
    parts: List[tuple] = []
    current: List[Token] = []
    depth = 0
    for token in tokens:
        if depth == 0 and token.type == TokenType.COMMA:
            parts.append((current, True))
            current = []
            continue
        if depth == 0 and newline_separates and token.type == TokenType.NEWLINE:
            parts.append((current, False))
            current = []
            continue
        if token.type in OPENERS:
            depth += 1
        elif token.type in CLOSERS:
            depth -= 1
        current.append(token)
    parts.append((current, False))
    elements = []
    for part, had_comma in parts:
        content = _strip(part)
        if content:
            elements.append(content)
        elif had_comma and not newline_separates:
            raise HclParseError("Empty element in tuple", {"expression": render_tokens(tokens).strip()})
    return elements


def _parse_element(span: List[Token]) -> Expression:
    _check_balanced(span)
    return _parse_span(span)


def _parse_item(span: List[Token]) -> ObjectItem:
    depth = 0
    for index, token in enumerate(span):
        if token.type in OPENERS:
            depth += 1
        elif token.type in CLOSERS:
            depth -= 1
        elif depth == 0 and (token.type == TokenType.EQUAL or token.type == TokenType.COLON):
            key_tokens = _strip(span[:index])
            value_tokens = _strip(span[index + 1:])
            if not key_tokens or not value_tokens:
                break
            return ObjectItem(render_tokens(key_tokens).strip(), _parse_element(value_tokens))
    raise HclParseError("Object item without value", {"item": render_tokens(span).strip()})


# Rendering


def expression_text(expr: Expression) -> str:
    """Render an expression to canonical text with relative indentation."""
    if isinstance(expr, Literal):
        if expr.raw is not None:
            return expr.raw
        return literal_text(expr.value)
    if isinstance(expr, Reference):
        return expr.text
    if isinstance(expr, Template):
        return expr.raw
    if isinstance(expr, Unknown):
        return expr.text
    if isinstance(expr, Tuple):
        return _tuple_text(expr)
    if isinstance(expr, Object):
        return _object_text(expr)
    logger.warning("Unsupported expression type %s", type(expr).__name__)
    return f"/* unsupported expression: {type(expr).__name__} */ null"


def literal_text(value: Any) -> str:
    if value is None:
        return "null"
    if value is True:
        return "true"
    if value is False:
        return "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return repr(value)
    return quote_string(str(value))


def _is_compound(expr: Expression) -> bool:
    return isinstance(expr, (Tuple, Object)) and bool(expr.items)


def _tuple_text(expr: Tuple) -> str:
    if not expr.items:
        return "[]"
    rendered = [expression_text(item) for item in expr.items]
    if not any(_is_compound(item) for item in expr.items) and not any("\n" in r for r in rendered):
        return "[" + ", ".join(rendered) + "]"
    lines = ["["]
    for text in rendered:
        lines.append(text + ",")
    lines.append("]")
    return "\n".join(lines)


def _object_text(expr: Object) -> str:
    if not expr.items:
        return "{}"
    rendered = [(item.key, expression_text(item.value)) for item in expr.items]
    widths = _key_widths(rendered)
    lines = ["{"]
    for (key, value), width in zip(rendered, widths):
        lines.append(key.ljust(width) + " = " + value)
    lines.append("}")
    return "\n".join(lines)


def _key_widths(rendered: List[tuple]) -> List[int]:
    """Align ``=`` across consecutive single-line items."""
    widths = [len(key) for key, _ in rendered]
    start = 0
    for index in range(len(rendered) + 1):
        if index == len(rendered) or "\n" in rendered[index][1]:
            run = range(start, index)
            width = max((len(rendered[i][0]) for i in run), default=0)
            for i in run:
                widths[i] = width
            start = index + 1
    return widths


def build_tokens_from_expression(expr: Expression) -> List[Token]:
    """Serialize any expression variant into tokens.

    Args:
        expr: Expression from the closed set

    Returns:
        Token list without a trailing EOF, suitable for set_attribute_tokens
    """
    return tokenize(expression_text(expr))[:-1]


def to_python(expr: Expression) -> Any:
    """Convert literal-only expressions to plain Python values.

    Non-literal leaves are returned as their source text.
    """
    if isinstance(expr, Literal):
        return expr.value
    if isinstance(expr, Tuple):
        return [to_python(item) for item in expr.items]
    if isinstance(expr, Object):
        return {item.name: to_python(item.value) for item in expr.items}
    return expression_text(expr)


def from_python(value: Any) -> Expression:
    """Build an expression from plain Python values."""
    if isinstance(value, (list, tuple)):
        return Tuple([from_python(item) for item in value])
    if isinstance(value, dict):
        return Object([ObjectItem(object_key(k), from_python(v)) for k, v in value.items()])
    return Literal(value)


def parse_or_preserve(tokens: List[Token]) -> Expression:
    """Parse tokens, keeping them verbatim as Unknown when they do not parse."""
    try:
        return parse_expression(tokens)
    except HclParseError:
        return Unknown(_strip(tokens))
