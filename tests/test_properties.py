"""
Behavioural Guarantees of Matching and Rewriting.

Each test pins one guarantee the engine makes regardless of the rule:
consistency of repeated metavariables, non-overlapping replacement,
no-op and identity rewrites, side-effect-free search, and fail-fast
templates.
"""

import libcst as cst
import pytest
from hypothesis import given, settings, strategies as st

from cst_refactor.api import find_all, find_first, replace_expr, replace_stmts
from cst_refactor.core.driver import fold_match
from cst_refactor.core.errors import UnboundVariableError
from cst_refactor.core.parsing import parse_expr, parse_stmts

SAMPLE = """\
import os

def f(a, b=1):
    # comment
    total = os.path.join(a, str(b)) * 2  # trailing
    if total:
        return [x for x in total if x]
    return None
"""


def test_repeated_metavariable_is_consistent():
  assert replace_expr("__x + __x", "2 * __x", "a = y + y\nb = y + z\n") == "a = 2 * y\nb = y + z\n"


def test_outermost_match_wins():
  assert replace_expr("f(__x)", "g(__x)", "f(f(x))\n") == "g(f(x))\n"


def test_rewrite_without_match_is_noop():
  assert replace_expr("never_called(__x)", "other(__x)", SAMPLE) == SAMPLE
  assert replace_stmts("never_called()", "", SAMPLE) == SAMPLE


@pytest.mark.parametrize("pattern", ["__x", "os.path.join(__a, __b)", "__f(__x)"])
def test_identity_rewrite_preserves_source(pattern):
  assert replace_expr(pattern, pattern, SAMPLE) == SAMPLE


def test_identity_callback_returns_same_tree():
  module = cst.parse_module(SAMPLE)
  assert fold_match(parse_expr("__f(__x)"), module, lambda matched, bindings: matched) is module
  assert fold_match(parse_stmts("return __r"), module, lambda matched, bindings: matched) is module


def test_find_first_is_earliest_and_pure():
  module = cst.parse_module(SAMPLE)
  before = module.deep_clone()
  matched, bindings = find_first("__f(__x, __y)", module)
  assert matched.code == "os.path.join(a, str(b))"
  assert bindings.as_code() == {"__f": "os.path.join", "__x": "a", "__y": "str(b)"}
  assert module.deep_equals(before)


def test_unbound_template_fails_before_rewriting():
  with pytest.raises(UnboundVariableError) as exc:
    replace_expr("f(__x)", "g(__y)", "f(1)\n")
  assert exc.value.name == "__y"


# Randomized expressions: names, attributes, integers, operators, calls and lists
_atoms = st.one_of(st.sampled_from(["a", "b", "xs", "obj.attr"]), st.integers(min_value=0, max_value=99).map(str))


def _compose(children):
  return st.one_of(
    st.tuples(children, st.sampled_from(["+", "*", "-"]), children).map(lambda t: f"({t[0]} {t[1]} {t[2]})"),
    st.tuples(st.sampled_from(["f", "g", "h.k"]), st.lists(children, max_size=3)).map(
      lambda t: f"{t[0]}({', '.join(t[1])})"
    ),
    children.map(lambda c: f"[{c}]"),
  )


sources = st.recursive(_atoms, _compose, max_leaves=12).map(lambda e: f"y = {e}\nz = {e}\n")


@given(src=sources)
@settings(max_examples=50)
def test_generated_identity_rewrite(src):
  assert replace_expr("__x", "__x", src) == src


@given(src=sources)
@settings(max_examples=50)
def test_generated_noop_rewrite(src):
  assert replace_expr("never(__x)", "other(__x)", src) == src


@given(src=sources)
@settings(max_examples=50)
def test_generated_rewrites_equal_matches(src):
  module = cst.parse_module(src)
  count = 0

  def count_and_keep(matched, bindings):
    nonlocal count
    count += 1
    return matched

  fold_match(parse_expr("f(__x)"), module, count_and_keep)
  assert count == len(find_all("f(__x)", module))


@given(src=sources)
@settings(max_examples=50)
def test_generated_search_is_pure(src):
  module = cst.parse_module(src)
  before = module.deep_clone()
  find_first("__a + __b", module)
  assert module.deep_equals(before)
