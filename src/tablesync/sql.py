"""
SQL text helpers shared by statement generation and execution.

- `quote_identifier()` - quote table/column names for a dialect
- `bind_name()` - placeholder name for a parameter key
- `tokenize_sql()` - single-pass tokenizer aware of literals and identifiers
- `split_statements()` - split a semicolon separated batch
- `placeholder_names()` - named `:param` placeholders used by a statement
- `render_query()` - substitute bound values for debug logging
"""
import datetime
import decimal
import re
import zlib
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    QUOTED_IDENTIFIER = auto()
    COMMENT = auto()
    NAMED_PH = auto()           # :name
    SEMICOLON = auto()


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    start: int
    end: int


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^'\\]|\\.|'')*'|"(?:[^"\\]|\\.|"")*")
    |(?P<ident>`(?:[^`]|``)*`)
    |(?P<comment>--[^\n]*|\#[^\n]*|/\*.*?\*/)
    |(?P<named>(?<![:\w]):(?P<pname>[A-Za-z_]\w*))
    |(?P<semicolon>;)
""", re.VERBOSE | re.DOTALL)

_QUOTES = {'mysql': '`', 'sqlite': '`'}
_BIND_NAME = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')


def quote_identifier(identifier: str, dialect: str = 'mysql') -> str:
    """Safely quote database identifiers.

    Raises
        ValueError: If dialect is unsupported
    """
    try:
        q = _QUOTES[dialect]
    except KeyError:
        raise ValueError(f'Unknown dialect: {dialect}') from None
    return q + identifier.replace(q, q * 2) + q


def bind_name(key: str) -> str:
    """Return the placeholder name a parameter key binds under.

    Keys that are already valid placeholder names are returned unchanged.
    In other keys each character outside ``[A-Za-z0-9_]`` becomes ``_`` and
    a CRC32 of the original key is appended (``unit price`` binds as
    ``unit_price_<crc32>``), so distinct keys keep distinct names.
    """
    if _BIND_NAME.fullmatch(key):
        return key
    safe = re.sub(r'[^A-Za-z0-9_]', '_', key)
    if not safe[:1].isalpha():
        safe = f'p_{safe}'
    return f'{safe}_{zlib.crc32(key.encode()):08x}'


def tokenize_sql(sql: str) -> list[Token]:
    """Parse SQL into tokens in a single pass.

    Returns
        List of tokens preserving all SQL text
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start], last_end, start))

        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        elif match.group('ident'):
            ttype = TokenType.QUOTED_IDENTIFIER
        elif match.group('comment'):
            ttype = TokenType.COMMENT
        elif match.group('named'):
            ttype = TokenType.NAMED_PH
        elif match.group('semicolon'):
            ttype = TokenType.SEMICOLON
        else:
            continue

        tokens.append(Token(ttype, match.group(0), start, end))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def split_statements(sql: str) -> list[str]:
    """Split a batch on semicolons outside literals, identifiers and comments.

    Empty statements are dropped.
    """
    statements = []
    current: list[str] = []
    for token in tokenize_sql(sql):
        if token.type is TokenType.SEMICOLON:
            statements.append(''.join(current))
            current = []
        else:
            current.append(token.text)
    statements.append(''.join(current))
    return [s.strip() for s in statements if s.strip()]


def placeholder_names(sql: str) -> list[str]:
    """Return the named placeholders of a statement in order of first use.
    """
    names: list[str] = []
    for token in tokenize_sql(sql):
        if token.type is TokenType.NAMED_PH and token.text[1:] not in names:
            names.append(token.text[1:])
    return names


def sql_literal(value: Any) -> str:
    """Render a bound value as a SQL literal for display.
    """
    if value is None:
        return 'NULL'
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, int | float | decimal.Decimal):
        return str(value)
    if isinstance(value, datetime.date | datetime.datetime):
        value = value.isoformat()
    return "'" + str(value).replace("'", "''") + "'"


def render_query(sql: str, params: Mapping[str, Any] | None = None) -> str:
    """Substitute bound values into statement text.

    Used for query logging only; the result is never executed.
    """
    if not params:
        return sql
    parts = []
    for token in tokenize_sql(sql):
        name = token.text[1:]
        if token.type is TokenType.NAMED_PH and name in params:
            parts.append(sql_literal(params[name]))
        else:
            parts.append(token.text)
    return ''.join(parts)
