"""
Kind-Tagged Syntax Fragments.

A ``Fragment`` pairs a LibCST node (or a tuple of statements) with the kind of
tree position it belongs to. LibCST nodes are frozen dataclasses, so a fragment
can be duplicated freely; rewrites build new nodes instead of mutating shared ones.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional, Tuple, Union

import libcst as cst

from cst_refactor.core.structure import is_item
from cst_refactor.enums import FragmentKind, Origin
from cst_refactor.utils.node_diff import capture_node_source

if TYPE_CHECKING:
  from cst_refactor.core.bindings import Bindings
  from cst_refactor.core.metavars import MetavarSyntax

FragmentNode = Union[cst.CSTNode, Tuple[cst.BaseStatement, ...]]


@dataclass(frozen=True, eq=False)
class Fragment:
  """
  An owned, kind-tagged syntax tree value.

  Attributes:
      kind (FragmentKind): The kind of the fragment. Never ``ANY``.
      node (FragmentNode): A single node, or a tuple of statements for ``STMTS``.
      origin (Origin): Whether the nodes were parsed or synthesized by substitution.
      generated (Tuple[cst.CSTNode, ...]): Roots of synthesized subtrees spliced
          into this fragment by a rewrite pass.
  """

  kind: FragmentKind
  node: FragmentNode
  origin: Origin = Origin.PARSED
  generated: Tuple[cst.CSTNode, ...] = field(default=())

  def __post_init__(self) -> None:
    if self.kind is FragmentKind.ANY:
      raise ValueError("A fragment must have a concrete kind")
    if self.kind is FragmentKind.STMTS:
      if isinstance(self.node, cst.CSTNode):
        raise TypeError("A statement sequence fragment holds a tuple of statements")
      object.__setattr__(self, "node", tuple(self.node))
    elif not isinstance(self.node, cst.CSTNode):
      raise TypeError(f"A {self.kind.value} fragment holds a single node, got {type(self.node).__name__}")

  @classmethod
  def of(cls, value: Any, kind: Optional[FragmentKind] = None) -> "Fragment":
    """
    Wraps a node, statement sequence, or module into a fragment.

    Args:
        value: A Fragment, CSTNode, ``cst.Module``, or a sequence of statements.
        kind: Explicit kind. Inferred from the node type when omitted.

    Returns:
        Fragment: The wrapped value.

    Raises:
        TypeError: If the value cannot be a fragment.
    """
    if isinstance(value, Fragment):
      if kind is None or kind is value.kind:
        return value
      return cls(kind, value.node, value.origin, value.generated)

    if isinstance(value, cst.Module):
      value = tuple(value.body)
    elif isinstance(value, cst.Annotation):
      value = value.annotation
      kind = kind or FragmentKind.TYPE

    if kind is not None:
      return cls(kind, value)

    if isinstance(value, (list, tuple)):
      return cls(FragmentKind.STMTS, tuple(value))
    if isinstance(value, cst.BaseStatement):
      return cls(FragmentKind.ITEM if is_item(value) else FragmentKind.STMT, value)
    if isinstance(value, cst.MatchPattern):
      return cls(FragmentKind.PATTERN, value)
    if isinstance(value, cst.BaseExpression):
      return cls(FragmentKind.EXPR, value)
    raise TypeError(f"Cannot build a fragment from {type(value).__name__}")

  @property
  def nodes(self) -> Tuple[cst.CSTNode, ...]:
    """The fragment's nodes as a tuple (one element unless ``STMTS``)."""
    if isinstance(self.node, tuple):
      return self.node
    return (self.node,)

  @property
  def code(self) -> str:
    """Rendered source text (for display only)."""
    return capture_node_source(self.node)

  def deep_equals(self, other: "Fragment") -> bool:
    """
    Compares two fragments by representation (including formatting).

    Args:
        other: Fragment to compare against.

    Returns:
        bool: True if both hold the same node shapes and text.
    """
    mine, theirs = self.nodes, other.nodes
    if len(mine) != len(theirs):
      return False
    return all(a.deep_equals(b) for a, b in zip(mine, theirs))

  def is_generated(self, node: cst.CSTNode) -> bool:
    """True if the node is the root of a subtree produced by substitution."""
    if self.origin is Origin.SYNTHESIZED and any(node is n for n in self.nodes):
      return True
    return any(node is g for g in self.generated)

  def subst(self, bindings: "Bindings", syntax: Optional["MetavarSyntax"] = None) -> "Fragment":
    """
    Instantiates this fragment as a template.

    Args:
        bindings: Values for the template's metavariables.
        syntax: Metavariable spelling rules.

    Returns:
        Fragment: The substituted copy.
    """
    from cst_refactor.core.subst import substitute

    return substitute(self, bindings, syntax)

  def __repr__(self) -> str:
    return f"Fragment({self.kind.value}, {self.code.strip()!r})"
