"""Token-preserving lexer for HCL configuration text.

The lexer never discards input: concatenating ``spaces_before + text`` of
every token reproduces the source exactly. That property is what lets the
document model re-render untouched regions byte for byte.

Heredocs are kept as a single opaque token, and template strings are split
into literal segments and interpolation sequences so that expressions
inside ``${ ... }`` can be inspected.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List


class TokenType(Enum):
    """Kinds of token produced by the lexer."""

    IDENT = "ident"
    NUMBER = "number"
    OQUOTE = "oquote"
    CQUOTE = "cquote"
    QUOTED_LIT = "quoted_lit"
    TEMPLATE_INTERP = "template_interp"
    TEMPLATE_CONTROL = "template_control"
    TEMPLATE_SEQ_END = "template_seq_end"
    HEREDOC = "heredoc"
    OBRACE = "obrace"
    CBRACE = "cbrace"
    OBRACK = "obrack"
    CBRACK = "cbrack"
    OPAREN = "oparen"
    CPAREN = "cparen"
    EQUAL = "equal"
    COMMA = "comma"
    DOT = "dot"
    COLON = "colon"
    QUESTION = "question"
    ELLIPSIS = "ellipsis"
    OP = "op"
    COMMENT = "comment"
    NEWLINE = "newline"
    EOF = "eof"


@dataclass
class Token:
    """A lexical token plus the horizontal whitespace that preceded it."""

    type: TokenType
    text: str
    spaces_before: str = ""

    def render(self) -> str:
        return self.spaces_before + self.text


IDENT_RE = re.compile(r"[^\W\d][\w\-]*")
NUMBER_RE = re.compile(r"[0-9]+(\.[0-9]+)?([eE][+-]?[0-9]+)?")
HEREDOC_RE = re.compile(r"<<(-?)([A-Za-z_][A-Za-z0-9_\-]*)[ \t]*(\r?\n)")

TWO_CHAR_OPS = ("==", "!=", "<=", ">=", "&&", "||", "=>")

SINGLE_CHAR_TOKENS = {
    "[": TokenType.OBRACK,
    "]": TokenType.CBRACK,
    "(": TokenType.OPAREN,
    ")": TokenType.CPAREN,
    "=": TokenType.EQUAL,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    ":": TokenType.COLON,
    "?": TokenType.QUESTION,
}


class Lexer:
    """Splits HCL source text into a flat list of tokens."""

    def __init__(self, source: str):
        self.src = source
        self.pos = 0
        self.tokens: List[Token] = []
        self.pending = ""

    def tokenize(self) -> List[Token]:
        self._lex_normal(nested=False)
        self._emit(TokenType.EOF, "")
        return self.tokens

    def _emit(self, token_type: TokenType, text: str) -> None:
        self.tokens.append(Token(token_type, text, self.pending))
        self.pending = ""

    def _startswith(self, prefix: str) -> bool:
        return self.src.startswith(prefix, self.pos)

    def _lex_normal(self, nested: bool) -> None:
        """Lex expression/structural tokens.

        When ``nested`` is true this is the inside of a template sequence and
        lexing stops after the matching closing brace.
        """
        src = self.src
        depth = 0
        while self.pos < len(src):
            ch = src[self.pos]
            if ch in " \t":
                self.pending += ch
                self.pos += 1
            elif ch == "\n" or self._startswith("\r\n"):
                text = "\n" if ch == "\n" else "\r\n"
                self._emit(TokenType.NEWLINE, text)
                self.pos += len(text)
            elif ch == "#" or self._startswith("//"):
                end = self._line_end(self.pos)
                self._emit(TokenType.COMMENT, src[self.pos:end])
                self.pos = end
            elif self._startswith("/*"):
                end = src.find("*/", self.pos + 2)
                end = len(src) if end < 0 else end + 2
                self._emit(TokenType.COMMENT, src[self.pos:end])
                self.pos = end
            elif ch == '"':
                self._emit(TokenType.OQUOTE, '"')
                self.pos += 1
                self._lex_template()
            elif ch == "<" and HEREDOC_RE.match(src, self.pos):
                self._lex_heredoc()
            elif ch.isdigit():
                self._lex_word(NUMBER_RE, TokenType.NUMBER)
            elif ch.isalpha() or ch == "_":
                self._lex_word(IDENT_RE, TokenType.IDENT)
            elif self._startswith("..."):
                self._emit(TokenType.ELLIPSIS, "...")
                self.pos += 3
            elif ch == "{":
                depth += 1
                self._emit(TokenType.OBRACE, "{")
                self.pos += 1
            elif ch == "}":
                self.pos += 1
                if nested and depth == 0:
                    self._emit(TokenType.TEMPLATE_SEQ_END, "}")
                    return
                depth -= 1
                self._emit(TokenType.CBRACE, "}")
            elif src[self.pos:self.pos + 2] in TWO_CHAR_OPS:
                self._emit(TokenType.OP, src[self.pos:self.pos + 2])
                self.pos += 2
            elif ch in SINGLE_CHAR_TOKENS:
                self._emit(SINGLE_CHAR_TOKENS[ch], ch)
                self.pos += 1
            else:
                self._emit(TokenType.OP, ch)
                self.pos += 1

    def _lex_word(self, pattern, token_type: TokenType) -> None:
        # Characters like "²" pass isdigit() without being numbers.
        match = pattern.match(self.src, self.pos)
        if match is None:
            self._emit(TokenType.OP, self.src[self.pos])
            self.pos += 1
            return
        self._emit(token_type, match.group(0))
        self.pos = match.end()

    def _line_end(self, pos: int) -> int:
        end = self.src.find("\n", pos)
        if end < 0:
            return len(self.src)
        if end > pos and self.src[end - 1] == "\r":
            return end - 1
        return end

    def _lex_template(self) -> None:
        """Lex the body of a quoted template after its opening quote."""
        src = self.src
        literal = ""
        while self.pos < len(src):
            ch = src[self.pos]
            if ch == "\\" and self.pos + 1 < len(src):
                literal += src[self.pos:self.pos + 2]
                self.pos += 2
            elif self._startswith("$${") or self._startswith("%%{"):
                literal += src[self.pos:self.pos + 3]
                self.pos += 3
            elif self._startswith("${") or self._startswith("%{"):
                if literal:
                    self._emit(TokenType.QUOTED_LIT, literal)
                    literal = ""
                if ch == "$":
                    self._emit(TokenType.TEMPLATE_INTERP, "${")
                else:
                    self._emit(TokenType.TEMPLATE_CONTROL, "%{")
                self.pos += 2
                self._lex_normal(nested=True)
            elif ch == '"':
                if literal:
                    self._emit(TokenType.QUOTED_LIT, literal)
                self._emit(TokenType.CQUOTE, '"')
                self.pos += 1
                return
            elif ch == "\n" or ch == "\r":
                break
            else:
                literal += ch
                self.pos += 1
        # Unterminated string: the rest of the line stays a literal.
        if literal:
            self._emit(TokenType.QUOTED_LIT, literal)

    def _lex_heredoc(self) -> None:
        src = self.src
        match = HEREDOC_RE.match(src, self.pos)
        marker = match.group(2)
        cursor = match.end()
        while cursor < len(src):
            end = self._line_end(cursor)
            if src[cursor:end].strip() == marker:
                cursor = end
                break
            cursor = src.find("\n", cursor)
            cursor = len(src) if cursor < 0 else cursor + 1
        self._emit(TokenType.HEREDOC, src[self.pos:cursor])
        self.pos = cursor


def tokenize(source: str) -> List[Token]:
    """Tokenize HCL source text.

    Args:
        source: Configuration text

    Returns:
        List of tokens ending with an EOF token
    """
    return Lexer(source).tokenize()


def render_tokens(tokens: List[Token]) -> str:
    """Concatenate tokens back into text."""
    return "".join(token.render() for token in tokens)
