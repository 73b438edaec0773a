"""
Tests for the Bindings Store and Fragments.

Verifies:
1. Binding is grow-only and rebinding requires equivalence.
2. Merging detects conflicts.
3. Fragment construction rules per kind.
"""

import libcst as cst
import pytest

from cst_refactor.core.bindings import Bindings
from cst_refactor.core.errors import InconsistentBindingError
from cst_refactor.core.fragment import Fragment
from cst_refactor.core.oracle import ImportAliasOracle
from cst_refactor.enums import FragmentKind, Origin


def expr(code: str) -> Fragment:
  return Fragment(FragmentKind.EXPR, cst.parse_expression(code))


def test_try_bind_new_and_equivalent():
  b = Bindings()
  assert b.try_bind("__x", expr("a + 1"))
  # Formatting differences are not significant
  assert b.try_bind("__x", expr("(a +   1)"))
  assert len(b) == 1
  assert b.as_code() == {"__x": "a + 1"}


def test_try_bind_conflict_keeps_first():
  b = Bindings()
  b.try_bind("__x", expr("a"))
  assert not b.try_bind("__x", expr("b"))
  assert b["__x"].code == "a"


def test_bind_raises_on_conflict():
  b = Bindings()
  b.bind("__x", expr("a"))
  with pytest.raises(InconsistentBindingError) as exc:
    b.bind("__x", expr("b"))
  assert exc.value.name == "__x"


def test_rebind_through_oracle():
  """Aliased paths are the same binding when the oracle says so."""
  oracle = ImportAliasOracle({"np": "numpy"})
  b = Bindings()
  b.try_bind("__f", expr("numpy.sum"))
  assert not b.try_bind("__f", expr("np.sum"))
  assert b.try_bind("__f", expr("np.sum"), oracle)


def test_copy_is_independent():
  b = Bindings()
  b.try_bind("__x", expr("1"))
  c = b.copy()
  c.try_bind("__y", expr("2"))
  assert "__y" in c
  assert "__y" not in b


def test_merge():
  left = Bindings({"__x": expr("1")})
  right = Bindings({"__x": expr("1"), "__y": expr("2")})
  merged = left.merge(right)
  assert merged is not None
  assert list(merged.names()) == ["__x", "__y"]

  assert left.merge(Bindings({"__x": expr("3")})) is None
  # Neither input is modified
  assert len(left) == 1


def test_node_accessor():
  b = Bindings({"__x": expr("f(1)"), "__m_body": Fragment(FragmentKind.STMTS, ())})
  assert isinstance(b.node("__x"), cst.Call)
  with pytest.raises(TypeError):
    b.node("__m_body")
  with pytest.raises(KeyError):
    b.node("__missing")


def test_fragment_kind_rules():
  with pytest.raises(ValueError):
    Fragment(FragmentKind.ANY, cst.Name("x"))
  with pytest.raises(TypeError):
    Fragment(FragmentKind.EXPR, (cst.parse_statement("x = 1"),))
  with pytest.raises(TypeError):
    Fragment(FragmentKind.STMTS, cst.Name("x"))


def test_fragment_of_infers_kind():
  assert Fragment.of(cst.parse_expression("x")).kind is FragmentKind.EXPR
  assert Fragment.of(cst.parse_statement("x = 1")).kind is FragmentKind.STMT
  assert Fragment.of(cst.parse_statement("import os")).kind is FragmentKind.ITEM

  frag = Fragment.of(cst.parse_module("a = 1\nb = 2\n"))
  assert frag.kind is FragmentKind.STMTS
  assert len(frag.nodes) == 2
  assert frag.code == "a = 1\nb = 2\n"


def test_fragment_provenance():
  node = cst.parse_expression("x")
  frag = Fragment(FragmentKind.EXPR, node, Origin.SYNTHESIZED)
  assert frag.is_generated(node)
  assert not frag.is_generated(cst.parse_expression("x"))
  assert not Fragment(FragmentKind.EXPR, node).is_generated(node)


def test_deep_equals_includes_formatting():
  assert expr("a + 1").deep_equals(expr("a + 1"))
  assert not expr("a + 1").deep_equals(expr("a+1"))
