"""
Metavariable Syntax and Kind Compatibility.

A metavariable is an identifier with a reserved prefix (``__x`` by default).
It occurs as a ``Name`` in expression, type or identifier position, as an
expression statement consisting of just that name in statement position, or
as a bare capture pattern (``case __p:``) in pattern position. Identifiers
with the multi prefix (``__m_body``) capture runs of statements.

Dunder names such as ``__init__`` are never metavariables.
"""

from dataclasses import dataclass
from typing import Optional

import libcst as cst

from cst_refactor.core.structure import Position, dotted_name, is_item
from cst_refactor.enums import FragmentKind

# Kinds bound to a single expression-like node
VALUE_KINDS = (FragmentKind.EXPR, FragmentKind.TYPE, FragmentKind.IDENT, FragmentKind.PATH)


@dataclass(frozen=True)
class MetavarSyntax:
  """
  The spelling rules for metavariables.

  Attributes:
      prefix (str): Prefix marking an identifier as a metavariable.
      multi_prefix (str): Prefix marking a statement-sequence metavariable.
  """

  prefix: str = "__"
  multi_prefix: str = "__m_"

  def is_metavar(self, ident: str) -> bool:
    """
    Checks whether an identifier spells a metavariable.

    Args:
        ident: The identifier text.

    Returns:
        bool: True if the identifier is a metavariable name.
    """
    return len(ident) > len(self.prefix) and ident.startswith(self.prefix) and not ident.endswith("__")

  def is_multi(self, ident: str) -> bool:
    """True if the identifier is a statement-sequence metavariable."""
    return self.is_metavar(ident) and ident.startswith(self.multi_prefix)

  def default_kind(self, ident: str) -> FragmentKind:
    """The kind an undeclared metavariable may capture."""
    return FragmentKind.STMTS if self.is_multi(ident) else FragmentKind.ANY

  def name_at(self, node: cst.CSTNode, position: Position) -> Optional[str]:
    """
    Returns the metavariable a node stands for at a given position.

    Args:
        node: The pattern or template node.
        position: The position the node occupies.

    Returns:
        Optional[str]: The metavariable name, or None if the node is ordinary syntax.
    """
    kind = position.kind
    if kind is None:
      return None

    ident: Optional[str] = None
    if kind is FragmentKind.STMT:
      ident = _statement_ident(node)
    elif kind is FragmentKind.PATTERN:
      if isinstance(node, cst.MatchAs) and node.pattern is None and node.name is not None:
        ident = node.name.value
    elif isinstance(node, cst.Name):
      ident = node.value

    if ident is not None and self.is_metavar(ident):
      return ident
    return None

  def mentions_metavar(self, node: cst.CSTNode) -> bool:
    """
    Checks a ``Name``/``Attribute`` chain for metavariable segments.

    Args:
        node: A path-like node.

    Returns:
        bool: True if any segment is a metavariable.
    """
    current = node
    while isinstance(current, cst.Attribute):
      if self.is_metavar(current.attr.value):
        return True
      current = current.value
    return isinstance(current, cst.Name) and self.is_metavar(current.value)


def _statement_ident(node: cst.CSTNode) -> Optional[str]:
  if not isinstance(node, cst.SimpleStatementLine) or len(node.body) != 1:
    return None
  small = node.body[0]
  if isinstance(small, cst.Expr) and isinstance(small.value, cst.Name):
    return small.value.value
  return None


def accepts(declared: FragmentKind, position: Position, candidate: cst.CSTNode) -> bool:
  """
  Decides whether a metavariable of a declared kind may capture a candidate.

  Args:
      declared: The kind the metavariable is tagged with.
      position: The position of the metavariable occurrence.
      candidate: The node found at that position.

  Returns:
      bool: True if the capture is permitted.
  """
  kind = position.kind
  if declared is FragmentKind.ANY:
    return kind is not None
  if declared is FragmentKind.EXPR:
    return kind is FragmentKind.EXPR
  if declared is FragmentKind.TYPE:
    return kind is FragmentKind.TYPE
  if declared is FragmentKind.IDENT:
    return kind in (FragmentKind.EXPR, FragmentKind.TYPE, FragmentKind.IDENT) and isinstance(candidate, cst.Name)
  if declared is FragmentKind.PATH:
    return kind in (FragmentKind.EXPR, FragmentKind.TYPE) and dotted_name(candidate) is not None
  if declared is FragmentKind.PATTERN:
    return kind is FragmentKind.PATTERN
  if declared is FragmentKind.ITEM:
    return kind is FragmentKind.STMT and is_item(candidate)
  if declared in (FragmentKind.STMT, FragmentKind.STMTS):
    return kind is FragmentKind.STMT
  return False


def captured_kind(declared: FragmentKind, position: Position) -> FragmentKind:
  """The kind of the fragment produced by a permitted capture."""
  if declared is FragmentKind.ANY:
    return position.kind
  return declared
