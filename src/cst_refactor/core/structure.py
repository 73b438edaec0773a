"""
Tree Shape Utilities.

This module describes LibCST nodes in the terms the matcher and the walker
need:

1.  **Significant Fields**: Which dataclass fields carry meaning. Whitespace,
    comments, parentheses and punctuation tokens are formatting and are never
    compared or traversed.
2.  **Positions**: The fragment kind of each child slot (expression, type,
    pattern, identifier, statement) and the context it inherits (type
    annotations propagate a type context to nested expressions; import
    statements are opaque).
3.  **Path Helpers**: Flattening ``Name``/``Attribute`` chains into dotted strings.
"""

import dataclasses
from enum import Enum
from functools import lru_cache
from typing import Any, Iterator, NamedTuple, Optional, Tuple

import libcst as cst

from cst_refactor.enums import FragmentKind


class Context(str, Enum):
  """Inherited traversal context of a position."""

  CODE = "code"
  TYPE = "type"
  OPAQUE = "opaque"


class Position(NamedTuple):
  """
  The kind of a tree position plus its inherited context.

  ``kind`` is None for structural nodes that are never a fragment on their own
  (arguments, parameters, operators, small statements, ...).
  """

  kind: Optional[FragmentKind]
  context: Context


STATEMENT_POSITION = Position(FragmentKind.STMT, Context.CODE)

# Fields that only hold formatting (in addition to every "*whitespace*" field).
_FORMATTING_FIELDS = frozenset(
  {
    "lpar",
    "rpar",
    "leading_lines",
    "lines_after_decorators",
    "header",
    "footer",
    "comma",
    "semicolon",
    "colon",
    "dot",
    "equal",
    "indicator",
    "lbracket",
    "rbracket",
    "lbrace",
    "rbrace",
    "newline",
    "trailing_whitespace",
    "indent",
    "encoding",
    "default_indent",
    "default_newline",
    "has_trailing_newline",
  }
)

# Literals compare by evaluated value, so `0x10` equals `16` and `'a'` equals `"a"`.
_LITERAL_TYPES = (cst.Integer, cst.Float, cst.Imaginary, cst.SimpleString)

_LEADING_FIELDS = ("decorators",)
_TRAILING_FIELDS = ("body", "handlers", "orelse", "finalbody")

# (parent type, field) slots that hold a bare identifier rather than an expression.
_IDENT_SLOTS = frozenset(
  {
    (cst.Attribute, "attr"),
    (cst.FunctionDef, "name"),
    (cst.ClassDef, "name"),
    (cst.Arg, "keyword"),
    (cst.Param, "name"),
    (cst.NameItem, "name"),
    (cst.MatchAs, "name"),
    (cst.MatchStar, "name"),
    (cst.MatchMapping, "rest"),
    (cst.MatchKeywordElement, "key"),
  }
)


@lru_cache(maxsize=None)
def significant_fields(node_type: type) -> Tuple[str, ...]:
  """
  Lists the dataclass fields of a node type that carry meaning.

  Args:
      node_type: A ``cst.CSTNode`` subclass.

  Returns:
      Tuple[str, ...]: Field names in source order.
  """
  names = []
  for field in dataclasses.fields(node_type):
    name = field.name
    if name.startswith("_") or "whitespace" in name or name in _FORMATTING_FIELDS:
      continue
    names.append(name)

  # Dataclass order puts decorators last and bodies before bases or return annotations
  lead = [n for n in names if n in _LEADING_FIELDS]
  trail = [n for n in _TRAILING_FIELDS if n in names]
  middle = [n for n in names if n not in lead and n not in trail]
  return tuple(lead + middle + trail)


def is_node_value(value: Any) -> bool:
  """True if a field value is a child node or a sequence of child nodes."""
  return isinstance(value, (cst.CSTNode, list, tuple))


def normalize_scalar(value: Any) -> Any:
  """Maps the various spellings of 'absent' (MaybeSentinel, empty string) to None."""
  if value is cst.MaybeSentinel.DEFAULT or value == "":
    return None
  return value


def scalars_equal(left: cst.CSTNode, right: cst.CSTNode) -> bool:
  """
  Compares the non-node fields of two nodes of the same type.

  Args:
      left: First node.
      right: Second node, of exactly the same type.

  Returns:
      bool: True if every significant scalar field is equal.
  """
  if isinstance(left, _LITERAL_TYPES):
    return left.evaluated_value == right.evaluated_value

  for name in significant_fields(type(left)):
    lval = getattr(left, name)
    rval = getattr(right, name)
    if is_node_value(lval) or is_node_value(rval):
      continue
    if normalize_scalar(lval) != normalize_scalar(rval):
      return False
  return True


def node_fields(node: cst.CSTNode) -> Iterator[Tuple[str, Any]]:
  """
  Yields ``(name, value)`` for every significant field that holds children.

  Optional children that are absent are yielded as None so that two nodes can
  be aligned field by field.
  """
  for name in significant_fields(type(node)):
    value = getattr(node, name)
    if value is None or value is cst.MaybeSentinel.DEFAULT:
      yield name, None
    elif is_node_value(value):
      yield name, value


def is_statement_run(parent: Optional[cst.CSTNode], field: str) -> bool:
  """True if ``parent.field`` is a statement sequence (module or block body)."""
  return isinstance(parent, (cst.Module, cst.IndentedBlock)) and field == "body"


def child_position(parent: cst.CSTNode, field: str, child: cst.CSTNode, context: Context) -> Position:
  """
  Computes the position of a child node.

  Args:
      parent: The node owning the slot.
      field: The field name of the slot.
      child: The node in the slot.
      context: The context inherited by the parent.

  Returns:
      Position: Kind and context of the child.
  """
  if context is Context.OPAQUE or isinstance(parent, (cst.Import, cst.ImportFrom)):
    return Position(None, Context.OPAQUE)

  if isinstance(child, cst.BaseStatement):
    return STATEMENT_POSITION

  if isinstance(child, cst.MatchPattern):
    return Position(FragmentKind.PATTERN, Context.CODE)

  if isinstance(child, cst.Name) and (type(parent), field) in _IDENT_SLOTS:
    return Position(FragmentKind.IDENT, context)

  if isinstance(parent, cst.Annotation) and field == "annotation":
    context = Context.TYPE

  if isinstance(child, cst.BaseExpression):
    kind = FragmentKind.TYPE if context is Context.TYPE else FragmentKind.EXPR
    return Position(kind, context)

  return Position(None, context)


def root_position(kind: FragmentKind) -> Position:
  """
  The position a pattern of the given kind is matched at.

  Args:
      kind: The pattern fragment kind.

  Returns:
      Position: The equivalent tree position.
  """
  if kind is FragmentKind.TYPE:
    return Position(FragmentKind.TYPE, Context.TYPE)
  if kind is FragmentKind.PATTERN:
    return Position(FragmentKind.PATTERN, Context.CODE)
  if kind is FragmentKind.IDENT:
    return Position(FragmentKind.IDENT, Context.CODE)
  if kind.is_sequence:
    return STATEMENT_POSITION
  return Position(FragmentKind.EXPR, Context.CODE)


def dotted_name(node: cst.CSTNode) -> Optional[str]:
  """
  Flattens a ``Name``/``Attribute`` chain into a dotted string.

  Args:
      node: The CST node to stringify.

  Returns:
      Optional[str]: Dotted path (e.g. "a.b.c") or None if the node is not a plain path.
  """
  parts = []
  current = node
  while isinstance(current, cst.Attribute):
    parts.append(current.attr.value)
    current = current.value
  if not isinstance(current, cst.Name):
    return None
  parts.append(current.value)
  return ".".join(reversed(parts))


def build_path(path: str) -> cst.BaseExpression:
  """
  Creates a LibCST node structure from a dotted string.

  Args:
      path: The dotted name (e.g. 'numpy.linalg.norm').

  Returns:
      cst.BaseExpression: A nested Attribute (or Name) node.
  """
  parts = path.split(".")
  node: cst.BaseExpression = cst.Name(parts[0])
  for part in parts[1:]:
    node = cst.Attribute(value=node, attr=cst.Name(part))
  return node


def is_item(node: cst.CSTNode) -> bool:
  """True for definition-like statements: def, class, or a line of imports."""
  if isinstance(node, (cst.FunctionDef, cst.ClassDef)):
    return True
  if isinstance(node, cst.SimpleStatementLine) and node.body:
    return all(isinstance(small, (cst.Import, cst.ImportFrom)) for small in node.body)
  return False


def position_of(node: cst.CSTNode) -> Position:
  """
  Infers the position of a detached root node from its type.

  Args:
      node: A node that is not part of a larger tree.

  Returns:
      Position: The position the node would occupy on its own.
  """
  if isinstance(node, cst.BaseStatement):
    return STATEMENT_POSITION
  if isinstance(node, cst.MatchPattern):
    return Position(FragmentKind.PATTERN, Context.CODE)
  if isinstance(node, cst.BaseExpression):
    return Position(FragmentKind.EXPR, Context.CODE)
  return Position(None, Context.CODE)


# Expressions that bind looser than an operand slot.
_COMPOUND_EXPRS = (
  cst.BinaryOperation,
  cst.BooleanOperation,
  cst.UnaryOperation,
  cst.Comparison,
  cst.IfExp,
  cst.Lambda,
  cst.NamedExpr,
  cst.Await,
  cst.Yield,
)

# (parent type, field) slots that hold an operand.
_OPERAND_SLOTS = frozenset(
  {
    (cst.BinaryOperation, "left"),
    (cst.BinaryOperation, "right"),
    (cst.BooleanOperation, "left"),
    (cst.BooleanOperation, "right"),
    (cst.UnaryOperation, "expression"),
    (cst.Comparison, "left"),
    (cst.ComparisonTarget, "comparator"),
    (cst.IfExp, "test"),
    (cst.IfExp, "body"),
    (cst.IfExp, "orelse"),
    (cst.Attribute, "value"),
    (cst.Call, "func"),
    (cst.Subscript, "value"),
    (cst.Await, "expression"),
  }
)

# Statement-level slots where a tuple may stand without parentheses.
_BARE_TUPLE_SLOTS = frozenset(
  {
    (cst.Expr, "value"),
    (cst.Assign, "value"),
    (cst.AssignTarget, "target"),
    (cst.AugAssign, "value"),
    (cst.Return, "value"),
    (cst.For, "target"),
  }
)


def needs_parens(parent: cst.CSTNode, field: str, child: cst.CSTNode) -> bool:
  """
  Decides whether a spliced expression must be parenthesized in its new slot.

  Over-approximates: every compound expression in an operand slot is wrapped,
  and so is a bare tuple anywhere but a statement-level value. A bare generator
  is left alone only as a call argument; ``group_generator_args`` handles calls
  with more than one argument.

  Args:
      parent: The node owning the slot.
      field: The field name of the slot.
      child: The expression placed there.

  Returns:
      bool: True if the child needs explicit parentheses.
  """
  if not isinstance(child, cst.BaseExpression) or child.lpar:
    return False
  slot = (type(parent), field)
  if isinstance(child, cst.Tuple):
    return slot not in _BARE_TUPLE_SLOTS
  if isinstance(child, cst.GeneratorExp):
    return slot != (cst.Arg, "value")
  if isinstance(child, _COMPOUND_EXPRS):
    return slot in _OPERAND_SLOTS
  return False


def parenthesize(node: cst.BaseExpression) -> cst.BaseExpression:
  """Wraps an expression in a pair of parentheses."""
  return node.with_changes(lpar=[cst.LeftParen()], rpar=[cst.RightParen()])


def group_generator_args(call: cst.Call) -> cst.Call:
  """
  Parenthesizes bare generator arguments of a call that has several arguments.

  Only a sole argument may be written ``f(x for x in xs)``.

  Args:
      call: The rebuilt call.

  Returns:
      cst.Call: The call, with every bare generator argument grouped.
  """
  if len(call.args) < 2:
    return call
  args = []
  changed = False
  for arg in call.args:
    if isinstance(arg.value, cst.GeneratorExp) and not arg.value.lpar:
      arg = arg.with_changes(value=parenthesize(arg.value))
      changed = True
    args.append(arg)
  return call.with_changes(args=args) if changed else call
