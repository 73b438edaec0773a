"""
Pattern Matcher.

Unifies a pattern tree containing free metavariables against a candidate
tree. Matching descends both trees pairwise (left to right, short-circuiting)
and records captured fragments in a ``Bindings`` store. A metavariable that
occurs more than once must capture equivalent fragments each time.

Statement runs whose pattern contains sequence-metavariables (``__m_body``)
are matched by backtracking over run lengths, shortest first.

A failed match is a negative result, never an exception, and never alters the
bindings of the context it was attempted in.
"""

from typing import Dict, List, Optional, Sequence, Tuple, Union

import libcst as cst

from cst_refactor.core.bindings import Bindings
from cst_refactor.core.equality import TreeComparator
from cst_refactor.core.fragment import Fragment
from cst_refactor.core.metavars import VALUE_KINDS, MetavarSyntax, accepts, captured_kind
from cst_refactor.core.oracle import ResolutionOracle
from cst_refactor.core.structure import (
  STATEMENT_POSITION,
  Position,
  is_statement_run,
  root_position,
)
from cst_refactor.enums import FragmentKind

MatchInput = Union[Fragment, cst.CSTNode, Sequence[cst.CSTNode]]


class MatchCtxt:
  """
  Matching context: accumulated bindings plus the services a match consults.

  Attributes:
      bindings (Bindings): Captures committed so far.
      oracle (Optional[ResolutionOracle]): Semantic equality service (read-only).
      types (Dict[str, FragmentKind]): Declared metavariable kinds.
      syntax (MetavarSyntax): Metavariable spelling rules.
  """

  def __init__(
    self,
    oracle: Optional[ResolutionOracle] = None,
    bindings: Optional[Bindings] = None,
    types: Optional[Dict[str, FragmentKind]] = None,
    syntax: Optional[MetavarSyntax] = None,
  ):
    self.oracle = oracle
    self.bindings = bindings if bindings is not None else Bindings()
    self.syntax = syntax or MetavarSyntax()
    self.types: Dict[str, FragmentKind] = {}
    for name, kind in (types or {}).items():
      self.set_type(name, kind)

  def fork(self) -> "MatchCtxt":
    """
    Derives a context for one match attempt.

    The fork shares the oracle and the declared types, and starts from a copy
    of this context's bindings.
    """
    forked = MatchCtxt(self.oracle, self.bindings.copy(), syntax=self.syntax)
    forked.types = self.types
    return forked

  def set_type(self, name: str, kind: Union[FragmentKind, str]) -> None:
    """
    Declares the kind a metavariable may capture.

    Args:
        name: Metavariable name (e.g. ``__x``).
        kind: A FragmentKind or its string value.

    Raises:
        ValueError: If the name is not a metavariable or the kind is unknown.
    """
    if not self.syntax.is_metavar(name):
      raise ValueError(f"'{name}' is not a metavariable (expected prefix '{self.syntax.prefix}')")
    self.types[name] = FragmentKind(kind)

  def kind_of(self, name: str) -> FragmentKind:
    """The declared kind of a metavariable, or its default."""
    return self.types.get(name) or self.syntax.default_kind(name)

  def variadic_name(self, stmt: cst.CSTNode) -> Optional[str]:
    """Returns the sequence-metavariable a pattern statement stands for, if any."""
    name = self.syntax.name_at(stmt, STATEMENT_POSITION)
    if name is not None and self.kind_of(name) is FragmentKind.STMTS:
      return name
    return None

  def is_variadic(self, pattern: Fragment) -> bool:
    """True if a statement pattern can match runs of varying length."""
    if not pattern.kind.is_sequence:
      return False
    return any(self.variadic_name(stmt) is not None for stmt in pattern.nodes)

  def match(
    self, pattern: MatchInput, target: MatchInput, position: Optional[Position] = None
  ) -> Optional[Bindings]:
    """
    Matches a pattern against a candidate, starting from this context's bindings.

    Args:
        pattern: The pattern fragment (or a raw node / statement sequence).
        target: The candidate fragment (or a raw node / statement sequence).
        position: Position the candidate occupies. Defaults to the pattern kind's position.

    Returns:
        Optional[Bindings]: The extended bindings, or None if the match fails.
    """
    pfrag = Fragment.of(pattern)
    unifier = _Unifier(self, self.bindings.copy())

    if pfrag.kind.is_sequence:
      candidates = _as_statements(target)
      if candidates is None or not unifier.compare_runs(pfrag.nodes, candidates):
        return None
      return unifier.bindings

    candidate = target.node if isinstance(target, Fragment) else target
    if not isinstance(candidate, cst.CSTNode):
      return None
    if not unifier.compare(pfrag.node, candidate, position or root_position(pfrag.kind)):
      return None
    return unifier.bindings

  def try_match(self, pattern: MatchInput, target: MatchInput, position: Optional[Position] = None) -> bool:
    """
    Matches and commits the extended bindings on success.

    Returns:
        bool: True if matched. On failure the context is unchanged.
    """
    result = self.match(pattern, target, position)
    if result is None:
      return False
    self.bindings = result
    return True


def match(pattern: MatchInput, candidate: MatchInput, ctx: Optional[MatchCtxt] = None) -> Optional[Bindings]:
  """
  Matches a pattern against a candidate.

  Args:
      pattern: The pattern, possibly containing metavariables.
      candidate: The tree to match.
      ctx: Context carrying prior bindings, declared types and the oracle.

  Returns:
      Optional[Bindings]: The bindings on success, None otherwise.
  """
  return (ctx or MatchCtxt()).match(pattern, candidate)


def _as_statements(target: MatchInput) -> Optional[Tuple[cst.CSTNode, ...]]:
  if isinstance(target, Fragment):
    return target.nodes if target.kind.is_sequence else None
  if isinstance(target, cst.Module):
    return tuple(target.body)
  if isinstance(target, cst.BaseStatement):
    return (target,)
  if isinstance(target, (list, tuple)):
    return tuple(target)
  return None


class _Unifier(TreeComparator):
  """
  A tree comparison that captures metavariables into a bindings store.
  """

  def __init__(self, ctxt: MatchCtxt, bindings: Bindings):
    super().__init__(ctxt.oracle)
    self.ctxt = ctxt
    self.bindings = bindings

  def _visit_pair(self, left: cst.CSTNode, right: cst.CSTNode, position: Position) -> Optional[bool]:
    syntax = self.ctxt.syntax
    name = syntax.name_at(left, position)
    if name is not None:
      declared = self.ctxt.kind_of(name)
      if position.kind is FragmentKind.STMT and declared in VALUE_KINDS:
        # A lone `__e` statement unifies its inner expression
        return None
      if not accepts(declared, position, right):
        return False
      kind = captured_kind(declared, position)
      value = (right,) if kind is FragmentKind.STMTS else right
      return self.bindings.try_bind(name, Fragment(kind, value), self.ctxt.oracle)

    # Paths with metavariable segments unify structurally
    if isinstance(left, (cst.Name, cst.Attribute)) and syntax.mentions_metavar(left):
      return None
    return super()._visit_pair(left, right, position)

  def _expand_sequence(self, parent, name, left, right, position, pending) -> bool:
    if is_statement_run(parent, name) and any(self.ctxt.variadic_name(stmt) for stmt in left):
      pending.append(("run", tuple(left), tuple(right), None))
      return True
    return super()._expand_sequence(parent, name, left, right, position, pending)

  def _compare_run(self, left: Sequence[cst.CSTNode], right: Sequence[cst.CSTNode]) -> bool:
    variadic = [self.ctxt.variadic_name(stmt) for stmt in left]
    if not any(variadic):
      return super()._compare_run(left, right)

    solved = self._solve_run(left, right, variadic)
    if solved is None:
      return False
    self.bindings = solved
    return True

  def _solve_run(
    self,
    patterns: Sequence[cst.CSTNode],
    candidates: Sequence[cst.CSTNode],
    variadic: List[Optional[str]],
  ) -> Optional[Bindings]:
    """
    Aligns a pattern run with sequence-metavariables against a candidate run.

    Each sequence-metavariable tries the shortest run first. Choice points are
    kept on an explicit stack; the first complete alignment wins.
    """
    # fixed_after[i]: statements patterns[i:] consume at minimum
    fixed_after = [0] * (len(patterns) + 1)
    for i in range(len(patterns) - 1, -1, -1):
      fixed_after[i] = fixed_after[i + 1] + (0 if variadic[i] else 1)

    stack: List[Tuple[int, int, Bindings]] = [(0, 0, self.bindings)]
    while stack:
      pi, ci, current = stack.pop()
      if pi == len(patterns):
        if ci == len(candidates):
          return current
        continue
      if len(candidates) - ci < fixed_after[pi]:
        continue

      name = variadic[pi]
      if name is None:
        sub = _Unifier(self.ctxt, current.copy())
        if sub.compare(patterns[pi], candidates[ci], STATEMENT_POSITION):
          stack.append((pi + 1, ci + 1, sub.bindings))
        continue

      longest = len(candidates) - ci - fixed_after[pi + 1]
      # Pushed longest first so the shortest run is popped first
      for take in range(longest, -1, -1):
        trial = current.copy()
        run = Fragment(FragmentKind.STMTS, tuple(candidates[ci : ci + take]))
        if trial.try_bind(name, run, self.ctxt.oracle):
          stack.append((pi + 1, ci + take, trial))
    return None
