"""
Template Substitution.

Instantiates a template fragment by replacing every metavariable occurrence
with the fragment bound to it. Substitution is all-or-nothing: an unbound
metavariable, or a binding that cannot stand at its occurrence, aborts the
whole instantiation.
"""

from typing import Optional, Sequence, Set

import libcst as cst

from cst_refactor.core.bindings import Bindings
from cst_refactor.core.errors import RewriteError, TemplateError, UnboundVariableError
from cst_refactor.core.fragment import Fragment
from cst_refactor.core.metavars import VALUE_KINDS, MetavarSyntax
from cst_refactor.core.structure import Position, root_position
from cst_refactor.core.walk import Rewriter, TreeWalker, clone_tree, iter_preorder
from cst_refactor.enums import FragmentKind, Origin


class _Substituter(Rewriter):
  def __init__(self, bindings: Bindings, syntax: MetavarSyntax):
    self.bindings = bindings
    self.syntax = syntax

  def rewrite_node(self, node: cst.CSTNode, position: Position) -> Optional[Sequence[cst.CSTNode]]:
    name = self.syntax.name_at(node, position)
    if name is None:
      return None
    fragment = self.bindings.get(name)
    if fragment is None:
      raise UnboundVariableError(name)
    return _place(name, fragment, position)


def _place(name: str, fragment: Fragment, position: Position) -> Optional[Sequence[cst.CSTNode]]:
  """
  Chooses the nodes that replace a metavariable occurrence.

  Returns None when the occurrence should be descended instead, which lets an
  expression binding fill the expression inside a ``__x`` statement, and a
  name binding fill the name inside a ``case __x:`` capture.
  """
  kind = position.kind
  bound = fragment.kind

  if kind is FragmentKind.STMT:
    if bound.is_sequence:
      return fragment.nodes
    if bound in VALUE_KINDS:
      return None

  elif kind in (FragmentKind.EXPR, FragmentKind.TYPE):
    if bound in VALUE_KINDS:
      return (fragment.node,)

  elif kind is FragmentKind.IDENT:
    if isinstance(fragment.node, cst.Name):
      return (fragment.node,)

  elif kind is FragmentKind.PATTERN:
    if bound is FragmentKind.PATTERN:
      return (fragment.node,)
    if isinstance(fragment.node, cst.Name):
      return None
    if bound in (FragmentKind.EXPR, FragmentKind.PATH):
      return (cst.MatchValue(value=fragment.node),)

  raise TemplateError(f"Cannot place '{name}' (bound to {bound.value}) at a {kind.value} position")


def substitute(template: Fragment, bindings: Bindings, syntax: Optional[MetavarSyntax] = None) -> Fragment:
  """
  Instantiates a template with a set of bindings.

  Args:
      template: The template fragment, possibly containing metavariables.
      bindings: Values for the metavariables.
      syntax: Metavariable spelling rules.

  Returns:
      Fragment: A freshly cloned fragment marked ``Origin.SYNTHESIZED``.

  Raises:
      UnboundVariableError: If the template references an unbound metavariable.
      TemplateError: If a binding cannot be placed at its occurrence.
  """
  walker = TreeWalker(_Substituter(bindings, syntax or MetavarSyntax()))
  try:
    if template.kind.is_sequence:
      nodes = walker.walk_run(template.nodes)
    else:
      nodes = walker.walk_node(template.node, root_position(template.kind))
  except RewriteError as exc:
    raise TemplateError(str(exc)) from exc

  nodes = tuple(clone_tree(node) for node in nodes)
  if template.kind is FragmentKind.STMTS or (template.kind.is_sequence and len(nodes) != 1):
    return Fragment(FragmentKind.STMTS, nodes, Origin.SYNTHESIZED)
  if len(nodes) != 1:
    raise TemplateError(f"A {template.kind.value} template must produce exactly one node, got {len(nodes)}")
  return Fragment(template.kind, nodes[0], Origin.SYNTHESIZED)


def template_metavars(template: Fragment, syntax: Optional[MetavarSyntax] = None) -> Set[str]:
  """
  Collects the metavariables a template or pattern mentions.

  Args:
      template: The fragment to scan.
      syntax: Metavariable spelling rules.

  Returns:
      Set[str]: Metavariable names.
  """
  syntax = syntax or MetavarSyntax()
  if template.kind.is_sequence:
    visits = iter_preorder(template.nodes)
  else:
    visits = iter_preorder(template.node, root_position(template.kind))

  found = set()
  for visit in visits:
    name = syntax.name_at(visit.node, visit.position)
    if name is not None:
      found.add(name)
  return found
