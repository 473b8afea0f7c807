"""
DDL Lexer - tokenize SQL DDL text for the CREATE TABLE parser.

Understands bare words, quoted identifiers ("x", `x`, [x]), string literals,
numbers and punctuation. Anything else becomes a single-character OTHER token,
so tokenizing never fails.
"""
import re
from enum import Enum
from dataclasses import dataclass
from typing import List


class TokenKind(str, Enum):
    WORD = "word"
    QUOTED = "quoted"
    STRING = "string"
    NUMBER = "number"
    PUNCT = "punct"
    OTHER = "other"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str   # unquoted identifier / literal text
    text: str    # source text as written

    @property
    def upper(self) -> str:
        return self.value.upper() if self.kind == TokenKind.WORD else ""

    def is_word(self, *words: str) -> bool:
        return self.kind == TokenKind.WORD and self.value.upper() in words

    def is_punct(self, char: str) -> bool:
        return self.kind == TokenKind.PUNCT and self.value == char

    @property
    def is_identifier(self) -> bool:
        return self.kind in (TokenKind.WORD, TokenKind.QUOTED)


_TOKEN_PATTERN = re.compile(r"""
      (?P<ws>\s+)
    | (?P<string>'(?:[^']|'')*')
    | (?P<dquoted>"(?:[^"]|"")*")
    | (?P<bquoted>`(?:[^`]|``)*`)
    | (?P<squoted>\[(?:[^\]]|\]\])+\])
    | (?P<number>\d+(?:\.\d+)?)
    | (?P<word>[A-Za-z_][A-Za-z0-9_$#]*)
    | (?P<punct>[(),.;])
    | (?P<other>\S)
""", re.VERBOSE)


def remove_comments(ddl: str) -> str:
    """Remove SQL comments."""
    # Remove single-line comments
    ddl = re.sub(r'--.*$', '', ddl, flags=re.MULTILINE)
    # Remove multi-line comments
    ddl = re.sub(r'/\*.*?\*/', '', ddl, flags=re.DOTALL)
    return ddl


def tokenize(text: str) -> List[Token]:
    tokens = []
    for match in _TOKEN_PATTERN.finditer(text):
        kind = match.lastgroup
        raw = match.group()
        if kind == "ws":
            continue
        if kind == "dquoted":
            tokens.append(Token(TokenKind.QUOTED, raw[1:-1].replace('""', '"'), raw))
        elif kind == "bquoted":
            tokens.append(Token(TokenKind.QUOTED, raw[1:-1].replace("``", "`"), raw))
        elif kind == "squoted":
            tokens.append(Token(TokenKind.QUOTED, raw[1:-1].replace("]]", "]"), raw))
        else:
            tokens.append(Token(TokenKind(kind), raw, raw))
    return tokens


def split_statements(tokens: List[Token]) -> List[List[Token]]:
    """Split a token stream on ';' and drop empty statements."""
    statements, current = [], []
    for token in tokens:
        if token.is_punct(";"):
            if current:
                statements.append(current)
            current = []
        else:
            current.append(token)
    if current:
        statements.append(current)
    return statements


def split_top_level(tokens: List[Token], separator: str = ",") -> List[List[Token]]:
    """Split on separators at parenthesis depth 0, handling nested parentheses."""
    result = []
    current = []
    depth = 0

    for token in tokens:
        if token.is_punct("("):
            depth += 1
            current.append(token)
        elif token.is_punct(")"):
            depth -= 1
            current.append(token)
        elif token.is_punct(separator) and depth == 0:
            result.append(current)
            current = []
        else:
            current.append(token)

    result.append(current)
    return [part for part in result if part]


def render(tokens: List[Token]) -> str:
    """Join tokens back into compact SQL text (no space around punctuation)."""
    out = ""
    prev = None
    for token in tokens:
        glue = prev is not None and not (
            token.kind == TokenKind.PUNCT or (prev.kind == TokenKind.PUNCT and prev.value in "(.,")
            or (prev.kind == TokenKind.OTHER and token.kind == TokenKind.NUMBER and prev.value in "+-")
        )
        out += (" " if glue else "") + token.text
        prev = token
    return out


__all__ = ['TokenKind', 'Token', 'remove_comments', 'tokenize',
           'split_statements', 'split_top_level', 'render']
