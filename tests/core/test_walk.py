"""
Tests for the Tree Walker and Deep Trees.

Machine-generated code can nest far deeper than the interpreter's recursion
limit. Matching, folding and substitution must all handle such trees.
"""

import libcst as cst

from cst_refactor.core.driver import find_first, fold_match
from cst_refactor.core.matcher import match
from cst_refactor.core.parsing import parse_expr
from cst_refactor.core.subst import substitute
from cst_refactor.core.walk import clone_tree

DEPTH = 5000


def deep_sum(depth: int = DEPTH) -> cst.BinaryOperation:
  """Builds ``x + 1 + 1 + ...`` as a left-leaning chain."""
  node = cst.Name("x")
  for _ in range(depth):
    node = cst.BinaryOperation(left=node, operator=cst.Add(), right=cst.Integer("1"))
  return node


def chain_depth(node: cst.CSTNode):
  depth = 0
  while isinstance(node, cst.BinaryOperation):
    node = node.left
    depth += 1
  return depth, node


def test_clone_tree_copies_everything():
  module = cst.parse_module("# header\nx = f(a, b)  # trailing\n")
  clone = clone_tree(module)

  assert clone is not module
  assert clone.deep_equals(module)
  assert clone.code == module.code
  assert clone.header[0] is not module.header[0]
  assert clone.body[0].body[0].value is not module.body[0].body[0].value


def test_match_deep_trees():
  left, right = deep_sum(), deep_sum()
  candidate = cst.Comparison(
    left=left,
    comparisons=[cst.ComparisonTarget(operator=cst.Equal(), comparator=right)],
  )
  bindings = match(parse_expr("__x == __x"), candidate)
  assert bindings is not None
  assert bindings.node("__x") is left


def test_find_first_deep_tree():
  found = find_first(parse_expr("x + 1"), deep_sum())
  assert found is not None
  matched, _ = found
  assert chain_depth(matched.node) == (1, matched.node.left)


def test_fold_deep_tree():
  tree = deep_sum()
  out = fold_match(parse_expr("x + 1"), tree, lambda matched, bindings: cst.Name("y"))
  depth, leaf = chain_depth(out)
  assert depth == DEPTH - 1
  assert leaf.value == "y"


def test_substitute_deep_binding():
  deep = deep_sum()
  target = cst.Call(func=cst.Name("f"), args=[cst.Arg(value=deep)])

  out = fold_match(
    parse_expr("f(__x)"),
    target,
    lambda matched, bindings: substitute(parse_expr("g(__x)"), bindings),
  )

  assert out.func.value == "g"
  copied = out.args[0].value
  assert copied is not deep
  depth, leaf = chain_depth(copied)
  assert depth == DEPTH
  assert leaf.value == "x"
