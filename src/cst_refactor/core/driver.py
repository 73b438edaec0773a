"""
Fold-Match and Find-First Drivers.

``fold_match`` walks a target tree in pre-order, matches a pattern at every
eligible position, and replaces each match with whatever a callback builds
from the matched fragment and its bindings. A replaced position is never
entered again, so a replacement that contains the pattern is not rewritten a
second time in the same pass.

Statement patterns match windows of consecutive statements inside module and
block bodies. At each statement, windows starting there are tried (longest
first when the pattern contains sequence-metavariables) before the statement
itself is descended.

``find_first`` runs the same search lazily and stops at the first match
without rebuilding anything.
"""

import logging
from typing import Any, Callable, Iterator, List, Optional, Sequence, Tuple, Union

import libcst as cst

from cst_refactor.core.bindings import Bindings
from cst_refactor.core.errors import RewriteError
from cst_refactor.core.fragment import Fragment
from cst_refactor.core.matcher import MatchCtxt
from cst_refactor.core.oracle import ResolutionOracle
from cst_refactor.core.structure import (
  Position,
  build_path,
  dotted_name,
  is_item,
  position_of,
  root_position,
)
from cst_refactor.core.walk import Rewriter, TreeWalker, iter_preorder
from cst_refactor.enums import FragmentKind, Origin

logger = logging.getLogger(__name__)

Target = Union[Fragment, cst.CSTNode, Sequence[cst.BaseStatement]]
Callback = Callable[[Fragment, Bindings], Any]
Match = Tuple[Fragment, Bindings]


def _eligible(kind: FragmentKind, node: cst.CSTNode, position: Position) -> bool:
  """
  Whether a single-node pattern of the given kind may match at a position.
  """
  at = position.kind
  if kind is FragmentKind.EXPR:
    return at is FragmentKind.EXPR
  if kind is FragmentKind.TYPE:
    return at is FragmentKind.TYPE
  if kind is FragmentKind.PATTERN:
    return at is FragmentKind.PATTERN
  if kind is FragmentKind.IDENT:
    return at is not None and isinstance(node, cst.Name)
  if kind is FragmentKind.PATH:
    return at in (FragmentKind.EXPR, FragmentKind.TYPE)
  return False


def _window_lengths(mcx: MatchCtxt, pattern: Fragment, available: int) -> range:
  """Candidate window lengths at one start index, in the order they are tried."""
  if pattern.kind is not FragmentKind.STMTS:
    return range(min(available, 1), 0, -1)
  if mcx.is_variadic(pattern):
    return range(available, 0, -1)
  size = len(pattern.nodes)
  if size == 0 or size > available:
    return range(0)
  return range(size, size - 1, -1)


def _window_fragment(kind: FragmentKind, window: Tuple[cst.BaseStatement, ...]) -> Fragment:
  if kind is FragmentKind.STMTS:
    return Fragment(kind, window)
  return Fragment(kind, window[0])


def _match_window(
  mcx: MatchCtxt, pattern: Fragment, items: Tuple[cst.BaseStatement, ...], index: int
) -> Optional[Tuple[Fragment, Bindings]]:
  for size in _window_lengths(mcx, pattern, len(items) - index):
    window = items[index : index + size]
    if pattern.kind is FragmentKind.ITEM and not is_item(window[0]):
      continue
    bindings = mcx.fork().match(pattern, window)
    if bindings is not None:
      return _window_fragment(pattern.kind, window), bindings
  return None


def _match_node(mcx: MatchCtxt, pattern: Fragment, node: cst.CSTNode, position: Position) -> Optional[Match]:
  if not _eligible(pattern.kind, node, position):
    return None
  bindings = mcx.fork().match(pattern, node, position)
  if bindings is None:
    return None
  return Fragment(pattern.kind, node), bindings


class _FoldRewriter(Rewriter):
  """
  Replaces each match with the callback's result and records synthesized roots.
  """

  def __init__(self, mcx: MatchCtxt, pattern: Fragment, callback: Callback):
    self.mcx = mcx
    self.pattern = pattern
    self.callback = callback
    self.generated: List[cst.CSTNode] = []
    self.count = 0

  def rewrite_node(self, node: cst.CSTNode, position: Position) -> Optional[Sequence[cst.CSTNode]]:
    if self.pattern.kind.is_sequence:
      return None
    found = _match_node(self.mcx, self.pattern, node, position)
    if found is None:
      return None
    return self._replace(*found)

  def rewrite_run(self, items, index):
    if not self.pattern.kind.is_sequence:
      return None
    found = _match_window(self.mcx, self.pattern, items, index)
    if found is None:
      return None
    matched, bindings = found
    return len(matched.nodes), self._replace(matched, bindings)

  def _replace(self, matched: Fragment, bindings: Bindings) -> Tuple[cst.CSTNode, ...]:
    self.count += 1
    logger.debug("Match #%d: %s with %s", self.count, matched, bindings)
    result = self.callback(matched, bindings)
    nodes = _result_nodes(result)
    if isinstance(result, Fragment):
      if result.origin is Origin.SYNTHESIZED:
        self.generated.extend(nodes)
      self.generated.extend(result.generated)
    return nodes


def _result_nodes(result: Any) -> Tuple[cst.CSTNode, ...]:
  if isinstance(result, Fragment):
    return result.nodes
  if isinstance(result, cst.Module):
    return tuple(result.body)
  if isinstance(result, cst.CSTNode):
    return (result,)
  if isinstance(result, (list, tuple)) and all(isinstance(n, cst.CSTNode) for n in result):
    return tuple(result)
  raise RewriteError(f"A rewrite callback returned {type(result).__name__}, expected a fragment or nodes")


def _fold(walker: TreeWalker, target: Target, statement_patterns: bool):
  """Rewrites a target while preserving its shape."""
  if isinstance(target, Fragment):
    if target.kind.is_sequence:
      nodes = walker.walk_run(target.nodes)
      if target.kind is FragmentKind.STMTS:
        return Fragment(target.kind, nodes, target.origin, target.generated)
    else:
      nodes = walker.walk_node(target.node, root_position(target.kind))
    if len(nodes) != 1:
      raise RewriteError(f"A {target.kind.value} fragment was rewritten into {len(nodes)} nodes")
    return Fragment(target.kind, nodes[0], target.origin, target.generated)

  if isinstance(target, (list, tuple)):
    return walker.walk_run(target)

  if isinstance(target, cst.BaseStatement) and statement_patterns:
    nodes = walker.walk_run((target,))
  else:
    nodes = walker.walk_node(target, position_of(target))
  if len(nodes) != 1:
    raise RewriteError(f"The root {type(target).__name__} was rewritten into {len(nodes)} nodes")
  return nodes[0]


def fold_match_with(init_mcx: MatchCtxt, pattern: Any, target: Target, callback: Callback):
  """
  Rewrites every non-overlapping match of a pattern, starting from a context.

  Each match is attempted in a fork of ``init_mcx``, so bindings captured at
  one position never leak into another.

  Args:
      init_mcx: Initial context (prior bindings, declared types, oracle).
      pattern: The pattern fragment (or raw node / statements).
      target: A Fragment, a node, or a tuple of statements.
      callback: ``callback(matched, bindings)`` returning the replacement
          (a Fragment, a node, or a sequence of nodes).

  Returns:
      The rewritten target, of the same shape as ``target``. A Fragment result
      lists the roots of synthesized replacements in ``generated``.
  """
  pattern = Fragment.of(pattern)
  rewriter = _FoldRewriter(init_mcx, pattern, callback)
  result = _fold(TreeWalker(rewriter), target, pattern.kind.is_sequence)
  if isinstance(result, Fragment) and rewriter.generated:
    result = Fragment(result.kind, result.node, result.origin, result.generated + tuple(rewriter.generated))
  logger.debug("Fold replaced %d matches", rewriter.count)
  return result


def fold_match(pattern: Any, target: Target, callback: Callback, oracle: Optional[ResolutionOracle] = None):
  """
  Rewrites every non-overlapping match of a pattern.

  Args:
      pattern: The pattern.
      target: The tree to rewrite.
      callback: Builds the replacement of each match.
      oracle: Optional resolution service.

  Returns:
      The rewritten target, of the same shape as ``target``.
  """
  return fold_match_with(MatchCtxt(oracle), pattern, target, callback)


def iter_matches_with(init_mcx: MatchCtxt, pattern: Any, target: Target) -> Iterator[Match]:
  """
  Lazily yields matches in pre-order, including overlapping ones.

  Args:
      init_mcx: Initial context.
      pattern: The pattern.
      target: The tree to search.

  Yields:
      Tuple[Fragment, Bindings]: Each matched fragment with its bindings.
  """
  pattern = Fragment.of(pattern)
  if isinstance(target, Fragment):
    root = target.nodes if target.kind.is_sequence else target.node
    position = root_position(target.kind)
  else:
    root = target
    position = None if isinstance(target, (list, tuple)) else position_of(target)

  for visit in iter_preorder(root, position):
    if pattern.kind.is_sequence:
      if visit.run is not None:
        found = _match_window(init_mcx, pattern, visit.run, visit.index)
      elif isinstance(visit.node, cst.BaseStatement):
        found = _match_window(init_mcx, pattern, (visit.node,), 0)
      else:
        found = None
    else:
      found = _match_node(init_mcx, pattern, visit.node, visit.position)
    if found is not None:
      yield found


def find_first_with(init_mcx: MatchCtxt, pattern: Any, target: Target) -> Optional[Match]:
  """
  Finds the earliest match in pre-order.

  Args:
      init_mcx: Initial context.
      pattern: The pattern.
      target: The tree to search. It is never modified.

  Returns:
      Optional[Tuple[Fragment, Bindings]]: The first match, or None.
  """
  return next(iter_matches_with(init_mcx, pattern, target), None)


def find_first(pattern: Any, target: Target, oracle: Optional[ResolutionOracle] = None) -> Optional[Match]:
  """Finds the earliest match in pre-order (see ``find_first_with``)."""
  return find_first_with(MatchCtxt(oracle), pattern, target)


def find_all_with(init_mcx: MatchCtxt, pattern: Any, target: Target) -> List[Match]:
  """
  Collects every non-overlapping match, with the same semantics as a fold.

  Returns:
      List[Tuple[Fragment, Bindings]]: Matches in pre-order.
  """
  found: List[Match] = []

  def record(matched: Fragment, bindings: Bindings) -> Fragment:
    found.append((matched, bindings))
    return matched

  fold_match_with(init_mcx, pattern, target, record)
  return found


def find_all(pattern: Any, target: Target, oracle: Optional[ResolutionOracle] = None) -> List[Match]:
  """Collects every non-overlapping match (see ``find_all_with``)."""
  return find_all_with(MatchCtxt(oracle), pattern, target)


class _PathRewriter(Rewriter):
  def __init__(self, oracle: ResolutionOracle, callback: Callable[[str, cst.CSTNode], Any]):
    self.oracle = oracle
    self.callback = callback
    self.count = 0

  def rewrite_node(self, node, position):
    if position.kind not in (FragmentKind.EXPR, FragmentKind.TYPE) or dotted_name(node) is None:
      return None
    qualified = self.oracle.resolve(node)
    if qualified is None:
      return None
    replacement = self.callback(qualified, node)
    if replacement is None:
      return None
    self.count += 1
    if isinstance(replacement, str):
      replacement = build_path(replacement)
    return _result_nodes(replacement)


def fold_resolved_paths(target: Target, oracle: ResolutionOracle, callback: Callable[[str, cst.CSTNode], Any]):
  """
  Rewrites path expressions by their resolved identity.

  Every ``Name``/``Attribute`` chain in expression or type position is resolved
  through the oracle. If the callback maps the qualified name to a replacement
  (a node, or a dotted string), the path is replaced; otherwise the search
  continues inside the path. With a ``QualifiedNameOracle`` the target must be
  ``oracle.module``.

  Args:
      target: The tree to rewrite.
      oracle: Resolution service.
      callback: ``callback(qualified_name, node)`` returning a replacement or None.

  Returns:
      The rewritten target, of the same shape as ``target``.
  """
  walker = TreeWalker(_PathRewriter(oracle, callback))
  return _fold(walker, target, False)
