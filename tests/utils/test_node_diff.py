"""
Tests for Node Diff Utility.
"""

import libcst as cst

from cst_refactor.utils.node_diff import capture_node_source, diff_nodes, unified_diff


def test_capture_simple_call():
  """Verify source code capture for a detached Call node."""
  node = cst.Call(func=cst.Name("my_func"), args=[cst.Arg(cst.Integer("1"))])
  assert capture_node_source(node) == "my_func(1)"


def test_capture_statement_sequence():
  body = tuple(cst.parse_module("a = 1\nif a:\n    b()\n").body)
  assert capture_node_source(body) == "a = 1\nif a:\n    b()\n"


def test_diff_nodes_detection():
  """Verify diff logic returns correct boolean."""
  before, after, changed = diff_nodes(cst.Call(func=cst.Name("foo")), cst.Call(func=cst.Name("bar")))
  assert changed is True
  assert before == "foo()"
  assert after == "bar()"


def test_diff_nodes_no_change():
  _, _, changed = diff_nodes(cst.Call(func=cst.Name("foo")), cst.Call(func=cst.Name("foo")))
  assert changed is False


def test_capture_fallback():
  """Objects that cannot be rendered produce a placeholder instead of raising."""
  res = capture_node_source("NotANode")  # type: ignore
  assert "<Unrepresentable Node: str>" in res


def test_unified_diff():
  diff = unified_diff("x = 1\ny = 2\n", "x = 1\ny = 3\n", "mod.py")
  assert diff.startswith("--- a/mod.py\n+++ b/mod.py\n")
  assert "-y = 2\n" in diff
  assert "+y = 3\n" in diff
  assert unified_diff("same\n", "same\n") == ""
