"""
Convenience Refactoring API.

Thin wrappers that parse pattern and replacement text once, then run a fold
(or a search) over a target. Targets may be source strings, LibCST modules or
nodes, statement sequences, or fragments; the result has the same shape as
the target (a string target yields rewritten source).

Example::

    replace_expr("__x.has_key(__k)", "__k in __x", "if d.has_key(1): pass\\n")
"""

from typing import Any, Dict, List, Optional, Tuple, Union

import libcst as cst

from cst_refactor.core.bindings import Bindings
from cst_refactor.core.driver import find_all_with, find_first_with, fold_match_with
from cst_refactor.core.errors import UnboundVariableError
from cst_refactor.core.fragment import Fragment
from cst_refactor.core.matcher import MatchCtxt
from cst_refactor.core.metavars import MetavarSyntax
from cst_refactor.core.oracle import ResolutionOracle
from cst_refactor.core.parsing import parse_fragment
from cst_refactor.core.subst import substitute, template_metavars
from cst_refactor.enums import FragmentKind

Kind = Union[FragmentKind, str]
Types = Optional[Dict[str, Kind]]


def compile_fragment(value: Any, kind: Kind, syntax: Optional[MetavarSyntax] = None) -> Fragment:
  """
  Turns pattern text (or an already built node/fragment) into a fragment.

  Args:
      value: Source text, a Fragment, or LibCST node(s).
      kind: The kind to parse text as.
      syntax: Metavariable spelling rules.

  Returns:
      Fragment: The compiled fragment.
  """
  kind = FragmentKind(kind)
  if isinstance(value, str):
    return parse_fragment(value, kind, syntax)
  if isinstance(value, Fragment):
    return value
  return Fragment.of(value, kind)


def compile_rewrite(
  pattern: Any, replacement: Any, kind: Kind = FragmentKind.EXPR, syntax: Optional[MetavarSyntax] = None
) -> Tuple[Fragment, Fragment]:
  """
  Compiles a pattern/replacement pair.

  Statement-kind replacements are parsed as statement sequences, so a rule
  may expand one statement into several (or delete it with an empty replacement).

  Returns:
      Tuple[Fragment, Fragment]: The pattern and the replacement template.

  Raises:
      PatternSyntaxError: If either text does not parse.
      UnboundVariableError: If the replacement uses a metavariable the pattern never binds.
  """
  kind = FragmentKind(kind)
  pfrag = compile_fragment(pattern, kind, syntax)
  rkind = FragmentKind.STMTS if kind.is_sequence else kind
  rfrag = compile_fragment(replacement, rkind, syntax)

  unbound = sorted(template_metavars(rfrag, syntax) - template_metavars(pfrag, syntax))
  if unbound:
    raise UnboundVariableError(unbound[0])
  return pfrag, rfrag


def make_context(
  oracle: Optional[ResolutionOracle] = None, types: Types = None, syntax: Optional[MetavarSyntax] = None
) -> MatchCtxt:
  """Builds an empty match context with declared metavariable kinds."""
  return MatchCtxt(oracle=oracle, types=types, syntax=syntax)


def replace_all(
  pattern: Any,
  replacement: Any,
  target: Any,
  kind: Kind = FragmentKind.EXPR,
  oracle: Optional[ResolutionOracle] = None,
  types: Types = None,
  syntax: Optional[MetavarSyntax] = None,
):
  """
  Replaces every non-overlapping match of a pattern.

  Args:
      pattern: Pattern text (or fragment).
      replacement: Replacement text (or fragment) using the pattern's metavariables.
      target: Source text, a LibCST node, statements, or a Fragment.
      kind: The kind of the pattern.
      oracle: Optional resolution service.
      types: Declared metavariable kinds (e.g. ``{"__f": "ident"}``).
      syntax: Metavariable spelling rules.

  Returns:
      The rewritten target, of the same shape (source text for a string target).
  """
  pfrag, rfrag = compile_rewrite(pattern, replacement, kind, syntax)
  mcx = make_context(oracle, types, syntax)

  def rebuild(_matched: Fragment, bindings: Bindings) -> Fragment:
    return substitute(rfrag, bindings, mcx.syntax)

  if isinstance(target, str):
    module = cst.parse_module(target)
    return fold_match_with(mcx, pfrag, module, rebuild).code
  return fold_match_with(mcx, pfrag, target, rebuild)


def replace_expr(pattern: Any, replacement: Any, target: Any, **kwargs):
  """Replaces expressions (see ``replace_all``)."""
  return replace_all(pattern, replacement, target, FragmentKind.EXPR, **kwargs)


def replace_type(pattern: Any, replacement: Any, target: Any, **kwargs):
  """Replaces type annotations (see ``replace_all``)."""
  return replace_all(pattern, replacement, target, FragmentKind.TYPE, **kwargs)


def replace_pattern(pattern: Any, replacement: Any, target: Any, **kwargs):
  """Replaces ``case`` patterns (see ``replace_all``)."""
  return replace_all(pattern, replacement, target, FragmentKind.PATTERN, **kwargs)


def replace_stmts(pattern: Any, replacement: Any, target: Any, **kwargs):
  """Replaces runs of statements (see ``replace_all``)."""
  return replace_all(pattern, replacement, target, FragmentKind.STMTS, **kwargs)


def replace_items(pattern: Any, replacement: Any, target: Any, **kwargs):
  """Replaces definitions and import lines (see ``replace_all``)."""
  return replace_all(pattern, replacement, target, FragmentKind.ITEM, **kwargs)


def _searchable(target: Any) -> Any:
  return cst.parse_module(target) if isinstance(target, str) else target


def find_first(
  pattern: Any,
  target: Any,
  kind: Kind = FragmentKind.EXPR,
  oracle: Optional[ResolutionOracle] = None,
  types: Types = None,
  syntax: Optional[MetavarSyntax] = None,
) -> Optional[Tuple[Fragment, Bindings]]:
  """
  Finds the earliest match of a pattern in pre-order.

  Args:
      pattern: Pattern text (or fragment).
      target: Source text, a LibCST node, statements, or a Fragment. Never modified.
      kind: The kind of the pattern.
      oracle: Optional resolution service.
      types: Declared metavariable kinds.
      syntax: Metavariable spelling rules.

  Returns:
      Optional[Tuple[Fragment, Bindings]]: The matched fragment and its bindings, or None.
  """
  pfrag = compile_fragment(pattern, kind, syntax)
  return find_first_with(make_context(oracle, types, syntax), pfrag, _searchable(target))


def find_all(
  pattern: Any,
  target: Any,
  kind: Kind = FragmentKind.EXPR,
  oracle: Optional[ResolutionOracle] = None,
  types: Types = None,
  syntax: Optional[MetavarSyntax] = None,
) -> List[Tuple[Fragment, Bindings]]:
  """Collects every non-overlapping match of a pattern (see ``find_first``)."""
  pfrag = compile_fragment(pattern, kind, syntax)
  return find_all_with(make_context(oracle, types, syntax), pfrag, _searchable(target))
