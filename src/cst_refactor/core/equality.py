"""
Structural and Semantic Equality.

``TreeComparator`` walks two trees in lockstep with an explicit work stack, so
arbitrarily deep machine-generated trees never exhaust the interpreter stack.
Formatting is ignored (see ``structure.significant_fields``) and path-like
nodes are submitted to the resolution oracle before falling back to their
spelling. The matcher specializes this comparator with metavariable capture.
"""

from typing import List, Optional, Sequence, Tuple

import libcst as cst

from cst_refactor.core.oracle import ResolutionOracle, SyntacticOracle
from cst_refactor.core.structure import (
  STATEMENT_POSITION,
  Position,
  child_position,
  dotted_name,
  node_fields,
  root_position,
  scalars_equal,
)
from cst_refactor.enums import FragmentKind

# Work items: ("pair", left, right, position) or ("run", left_items, right_items, None)
_WorkItem = Tuple[str, object, object, Optional[Position]]

_PATH_TYPES = (cst.Name, cst.Attribute)


class TreeComparator:
  """
  Pairwise comparison of two trees, left to right, short-circuiting on the first difference.

  Attributes:
      oracle (ResolutionOracle): Semantic equality service for path-like nodes.
  """

  def __init__(self, oracle: Optional[ResolutionOracle] = None):
    self.oracle: ResolutionOracle = oracle or SyntacticOracle()

  def compare(self, left: cst.CSTNode, right: cst.CSTNode, position: Position) -> bool:
    """
    Compares two nodes occupying the given position.

    Args:
        left: Reference (pattern) node.
        right: Candidate node.
        position: Position both nodes occupy.

    Returns:
        bool: True if the trees are equivalent.
    """
    work: List[_WorkItem] = [("pair", left, right, position)]
    while work:
      tag, lval, rval, pos = work.pop()
      if tag == "run":
        if not self._compare_run(lval, rval):
          return False
        continue

      verdict = self._visit_pair(lval, rval, pos)
      if verdict is False:
        return False
      if verdict is True:
        continue

      pending = self._expand(lval, rval, pos)
      if pending is None:
        return False
      # Reverse so the leftmost child is compared first
      work.extend(reversed(pending))
    return True

  def compare_runs(self, left: Sequence[cst.CSTNode], right: Sequence[cst.CSTNode]) -> bool:
    """
    Compares two statement sequences.

    Args:
        left: Reference statements.
        right: Candidate statements.

    Returns:
        bool: True if the runs are equivalent.
    """
    return self._compare_run(tuple(left), tuple(right))

  def _visit_pair(self, left: cst.CSTNode, right: cst.CSTNode, position: Position) -> Optional[bool]:
    """
    Decides a pair without looking at its structure, or returns None to descend.
    """
    if position.kind not in (FragmentKind.EXPR, FragmentKind.TYPE):
      return None
    if not isinstance(left, _PATH_TYPES) or not isinstance(right, _PATH_TYPES):
      return None
    if dotted_name(left) is None or dotted_name(right) is None:
      return None
    return self.oracle.same_definition(left, right)

  def _expand(self, left: cst.CSTNode, right: cst.CSTNode, position: Position) -> Optional[List[_WorkItem]]:
    """
    Aligns the children of two nodes of the same shape.

    Returns:
        The child work items in lexical order, or None on shape/arity mismatch.
    """
    if type(left) is not type(right):
      return None
    if not scalars_equal(left, right):
      return None

    pending: List[_WorkItem] = []
    for name, lval in node_fields(left):
      rval = getattr(right, name)
      if rval is cst.MaybeSentinel.DEFAULT:
        rval = None

      if lval is None or rval is None:
        if lval is not rval:
          return None
        continue

      if isinstance(lval, cst.CSTNode):
        if not isinstance(rval, cst.CSTNode):
          return None
        pending.append(("pair", lval, rval, child_position(left, name, lval, position.context)))
        continue

      if not isinstance(rval, (list, tuple)):
        return None
      if not self._expand_sequence(left, name, lval, rval, position, pending):
        return None
    return pending

  def _expand_sequence(
    self,
    parent: cst.CSTNode,
    name: str,
    left: Sequence[cst.CSTNode],
    right: Sequence[cst.CSTNode],
    position: Position,
    pending: List[_WorkItem],
  ) -> bool:
    if len(left) != len(right):
      return False
    for lchild, rchild in zip(left, right):
      pending.append(("pair", lchild, rchild, child_position(parent, name, lchild, position.context)))
    return True

  def _compare_run(self, left: Sequence[cst.CSTNode], right: Sequence[cst.CSTNode]) -> bool:
    if len(left) != len(right):
      return False
    return all(self.compare(lstmt, rstmt, STATEMENT_POSITION) for lstmt, rstmt in zip(left, right))


def nodes_equal(left: cst.CSTNode, right: cst.CSTNode, oracle: Optional[ResolutionOracle] = None) -> bool:
  """
  Structural equality of two expression-position nodes, ignoring formatting.

  Args:
      left: First node.
      right: Second node.
      oracle: Optional resolution service.

  Returns:
      bool: True if equivalent.
  """
  position = STATEMENT_POSITION if isinstance(left, cst.BaseStatement) else root_position(FragmentKind.EXPR)
  return TreeComparator(oracle).compare(left, right, position)


def fragments_equal(left, right, oracle: Optional[ResolutionOracle] = None) -> bool:
  """
  Structural/semantic equality of two fragments.

  Args:
      left (Fragment): First fragment; its kind determines the comparison position.
      right (Fragment): Second fragment.
      oracle: Optional resolution service.

  Returns:
      bool: True if the fragments denote the same code.
  """
  comparator = TreeComparator(oracle)
  if left.kind.is_sequence or right.kind.is_sequence:
    return comparator.compare_runs(left.nodes, right.nodes)
  return comparator.compare(left.node, right.node, root_position(left.kind))
