"""SQL label normalization.

Turns a raw SQL string into its canonical shape: literal values become '?'
placeholders while table and column names (including quoted identifiers) are
preserved, so structurally identical statements share one fingerprint.

The work is split into pure passes run in a fixed order:

    protect_identifiers -> replace_literals -> canonicalize_constructs
    -> restore_identifiers -> collapse_whitespace

Example:
    normalize("SELECT * FROM users WHERE id IN (1, 2, 3) AND name = 'bob'")
    # "SELECT * FROM users WHERE id IN (?, ?, ?) AND name = ?"
"""

import re
from typing import Dict, Optional, Tuple

PLACEHOLDER = '?'

_BACKTICK_IDENTIFIER = re.compile(r'`([^`]+)`')
_DOUBLE_QUOTED_SPAN = re.compile(r'"([^"]+)"')
_BARE_IDENTIFIER = re.compile(r'[a-zA-Z_][a-zA-Z0-9_]*')
_IDENTIFIER_TOKEN = re.compile(r'__IDENTIFIER_(\d+)__')

# Replacement order matters: floats before integers, strings after numbers
_LITERAL_PATTERNS = (
  re.compile(r'(?<![a-zA-Z_])\b\d+\.\d+\b(?![a-zA-Z_])'),
  re.compile(r'(?<![a-zA-Z_])\b\d+\b(?![a-zA-Z_])'),
  re.compile(r"'(?:[^']|'')*'"),
  re.compile(r'"(?:[^"]|"")*"'),
  re.compile(r'\b(true|false)\b', re.IGNORECASE),
)

# A subquery inside IN (...) collapses to a single placeholder like any one-item list
_IN_LIST = re.compile(r'\bIN\s*\(\s*([^)]+)\)', re.IGNORECASE)
_WHITESPACE = re.compile(r'\s+')

_SQL_TYPES = ('SELECT', 'INSERT', 'UPDATE', 'DELETE', 'WITH', 'CREATE', 'ALTER', 'DROP')


def looks_like_identifier(content: str) -> bool:
  """True for bare identifiers ('user_id') and dotted names ('users.id')."""
  return bool(_BARE_IDENTIFIER.fullmatch(content)) or '.' in content


def protect_identifiers(text: str) -> Tuple[str, Dict[str, str]]:
  """Swap quoted identifiers for opaque tokens.

  Backtick spans are always protected. Double-quoted spans are protected only
  when they look like identifiers; anything else is left for the literal pass.

  Returns:
      (text with tokens, mapping of token -> original quoted text)
  """
  mapping: Dict[str, str] = {}

  def _protect(original: str) -> str:
    token = f'__IDENTIFIER_{len(mapping)}__'
    mapping[token] = original
    return token

  protected = _BACKTICK_IDENTIFIER.sub(lambda m: _protect(m.group(0)), text)

  def _protect_double_quoted(match: 're.Match') -> str:
    if looks_like_identifier(match.group(1)):
      return _protect(match.group(0))
    return match.group(0)

  protected = _DOUBLE_QUOTED_SPAN.sub(_protect_double_quoted, protected)
  return protected, mapping


def replace_literals(text: str) -> str:
  """Replace numeric, string and boolean literals with '?'."""
  for pattern in _LITERAL_PATTERNS:
    text = pattern.sub(PLACEHOLDER, text)
  return text


def _count_list_items(content: str) -> int:
  # Trailing empty items are not counted ('1, 2,' has two values)
  items = content.split(',')
  while items and items[-1] == '':
    items.pop()
  return len(items)


def canonicalize_constructs(text: str) -> str:
  """Rewrite every IN (...) list as one '?' per supplied item.

  BETWEEN ? AND ? needs no rewriting once literals are replaced.
  """

  def _rewrite(match: 're.Match') -> str:
    count = _count_list_items(match.group(1))
    return f'IN ({", ".join([PLACEHOLDER] * count)})'

  return _IN_LIST.sub(_rewrite, text)


def restore_identifiers(text: str, mapping: Dict[str, str]) -> str:
  """Put the original quoted identifiers back in place of their tokens."""
  if not mapping:
    return text
  return _IDENTIFIER_TOKEN.sub(lambda m: mapping.get(m.group(0), m.group(0)), text)


def collapse_whitespace(text: str) -> str:
  return _WHITESPACE.sub(' ', text).strip()


def normalize(raw: Optional[str]) -> Optional[str]:
  """Return the canonical shape of a SQL string.

  None is returned unchanged and the empty string stays empty. Never raises
  for string input.
  """
  if raw is None:
    return None
  if raw == '':
    return ''

  text, mapping = protect_identifiers(raw)
  text = replace_literals(text)
  text = canonicalize_constructs(text)
  text = restore_identifiers(text, mapping)
  return collapse_whitespace(text)


class SqlQueryNormalizer:
  """Object wrapper around normalize() for call sites that hold a query.

  Usage:
      SqlQueryNormalizer(sql).normalize()
      SqlQueryNormalizer.normalize_sql(sql)
  """

  def __init__(self, query: Optional[str]):
    self.query = query

  def normalize(self) -> Optional[str]:
    return normalize(self.query)

  @classmethod
  def normalize_sql(cls, query: Optional[str]) -> Optional[str]:
    return cls(query).normalize()


def get_sql_type(sql: Optional[str]) -> str:
  """Return the statement keyword (SELECT, INSERT, ...) or 'OTHER'."""
  if not sql:
    return 'OTHER'
  first_word = sql.strip().split(None, 1)[0].upper() if sql.strip() else ''
  return first_word if first_word in _SQL_TYPES else 'OTHER'
