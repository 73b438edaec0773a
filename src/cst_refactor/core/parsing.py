"""
Textual Fragment Parsing.

Turns pattern and replacement text into kind-tagged fragments using LibCST's
parser. Text is dedented first, so patterns can be written as indented
triple-quoted strings. LibCST syntax errors are re-raised as
``PatternSyntaxError``.
"""

import keyword
import textwrap
from typing import Callable, Dict, Optional

import libcst as cst

from cst_refactor.core.errors import PatternSyntaxError
from cst_refactor.core.fragment import Fragment
from cst_refactor.core.metavars import MetavarSyntax
from cst_refactor.core.structure import STATEMENT_POSITION, dotted_name, is_item
from cst_refactor.enums import FragmentKind


def _clean(text: str) -> str:
  return textwrap.dedent(text).strip()


def _expression(text: str, kind: FragmentKind) -> cst.BaseExpression:
  source = _clean(text)
  try:
    return cst.parse_expression(source)
  except cst.ParserSyntaxError as exc:
    raise PatternSyntaxError(kind.value, text, exc.message) from exc


def _statements(text: str, kind: FragmentKind):
  source = textwrap.dedent(text).strip("\n")
  if source:
    source += "\n"
  try:
    return tuple(cst.parse_module(source).body)
  except cst.ParserSyntaxError as exc:
    raise PatternSyntaxError(kind.value, text, exc.message) from exc


def parse_expr(text: str) -> Fragment:
  """
  Parses an expression.

  Args:
      text: Source such as ``"__x + 1"``.

  Returns:
      Fragment: An ``EXPR`` fragment.

  Raises:
      PatternSyntaxError: If the text is not a single expression.
  """
  return Fragment(FragmentKind.EXPR, _expression(text, FragmentKind.EXPR))


def parse_type(text: str) -> Fragment:
  """Parses a type annotation expression (``List[__t]``) into a ``TYPE`` fragment."""
  return Fragment(FragmentKind.TYPE, _expression(text, FragmentKind.TYPE))


def parse_path(text: str) -> Fragment:
  """Parses a dotted path (``os.path.join``) into a ``PATH`` fragment."""
  node = _expression(text, FragmentKind.PATH)
  if dotted_name(node) is None:
    raise PatternSyntaxError(FragmentKind.PATH.value, text, "not a dotted name")
  return Fragment(FragmentKind.PATH, node)


def parse_ident(text: str) -> Fragment:
  """Parses a bare identifier into an ``IDENT`` fragment."""
  ident = text.strip()
  if not ident.isidentifier() or keyword.iskeyword(ident):
    raise PatternSyntaxError(FragmentKind.IDENT.value, text, "not an identifier")
  return Fragment(FragmentKind.IDENT, cst.Name(ident))


def parse_pattern(text: str) -> Fragment:
  """
  Parses the pattern of a ``case`` clause (``Point(x=__x)``, ``[__a, *__rest]``).

  Args:
      text: The pattern source.

  Returns:
      Fragment: A ``PATTERN`` fragment.

  Raises:
      PatternSyntaxError: If the text is not a single match pattern.
  """
  source = f"match _:\n    case {_clean(text)}:\n        pass\n"
  try:
    module = cst.parse_module(source)
  except cst.ParserSyntaxError as exc:
    raise PatternSyntaxError(FragmentKind.PATTERN.value, text, exc.message) from exc

  stmt = module.body[0] if len(module.body) == 1 else None
  if not isinstance(stmt, cst.Match) or len(stmt.cases) != 1 or stmt.cases[0].guard is not None:
    raise PatternSyntaxError(FragmentKind.PATTERN.value, text, "not a single match pattern")
  return Fragment(FragmentKind.PATTERN, stmt.cases[0].pattern)


def parse_stmts(text: str) -> Fragment:
  """
  Parses zero or more statements.

  Args:
      text: Statement source; may be indented as a block.

  Returns:
      Fragment: A ``STMTS`` fragment.
  """
  return Fragment(FragmentKind.STMTS, _statements(text, FragmentKind.STMTS))


def parse_stmt(text: str) -> Fragment:
  """Parses exactly one statement into a ``STMT`` fragment."""
  body = _statements(text, FragmentKind.STMT)
  if len(body) != 1:
    raise PatternSyntaxError(FragmentKind.STMT.value, text, f"expected one statement, got {len(body)}")
  return Fragment(FragmentKind.STMT, body[0])


def _check_items(body, text: str, syntax: MetavarSyntax) -> None:
  for stmt in body:
    if not is_item(stmt) and syntax.name_at(stmt, STATEMENT_POSITION) is None:
      raise PatternSyntaxError(FragmentKind.ITEM.value, text, "expected def, class or import statements")


def parse_item(text: str, syntax: Optional[MetavarSyntax] = None) -> Fragment:
  """
  Parses one definition-like statement: a def, a class or an import line.

  A lone metavariable statement (``__item``) is also accepted.
  """
  body = _statements(text, FragmentKind.ITEM)
  if len(body) != 1:
    raise PatternSyntaxError(FragmentKind.ITEM.value, text, f"expected one item, got {len(body)}")
  _check_items(body, text, syntax or MetavarSyntax())
  return Fragment(FragmentKind.ITEM, body[0])


def parse_items(text: str, syntax: Optional[MetavarSyntax] = None) -> Fragment:
  """Parses a run of definition-like statements into a ``STMTS`` fragment."""
  body = _statements(text, FragmentKind.ITEM)
  _check_items(body, text, syntax or MetavarSyntax())
  return Fragment(FragmentKind.STMTS, body)


_PARSERS: Dict[FragmentKind, Callable[[str], Fragment]] = {
  FragmentKind.EXPR: parse_expr,
  FragmentKind.TYPE: parse_type,
  FragmentKind.PATTERN: parse_pattern,
  FragmentKind.IDENT: parse_ident,
  FragmentKind.PATH: parse_path,
  FragmentKind.STMT: parse_stmt,
  FragmentKind.STMTS: parse_stmts,
}


def parse_fragment(text: str, kind: FragmentKind, syntax: Optional[MetavarSyntax] = None) -> Fragment:
  """
  Parses text as a fragment of the requested kind.

  Args:
      text: Pattern or replacement source.
      kind: The kind to parse as. ``ANY`` is not a parseable kind.
      syntax: Metavariable spelling rules (used by item validation).

  Returns:
      Fragment: The parsed fragment.

  Raises:
      PatternSyntaxError: If the text cannot be parsed as ``kind``.
  """
  kind = FragmentKind(kind)
  if kind is FragmentKind.ITEM:
    return parse_item(text, syntax)
  parser = _PARSERS.get(kind)
  if parser is None:
    raise PatternSyntaxError(kind.value, text, "no parser for this kind")
  return parser(text)
