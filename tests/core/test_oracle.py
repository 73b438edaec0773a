"""
Tests for Resolution Oracles.
"""

import libcst as cst

from cst_refactor.core.driver import find_first
from cst_refactor.core.equality import nodes_equal
from cst_refactor.core.oracle import ImportAliasOracle, QualifiedNameOracle, SyntacticOracle, callee
from cst_refactor.core.parsing import parse_expr


def test_syntactic_oracle_knows_nothing():
  oracle = SyntacticOracle()
  assert oracle.same_definition(cst.Name("a"), cst.Name("a")) is None
  assert oracle.resolve(cst.Name("a")) is None


def test_import_aliases_collected():
  module = cst.parse_module("import numpy as np\nimport os.path\nfrom torch import nn as tnn\nfrom . import local\n")
  oracle = ImportAliasOracle.from_module(module)
  assert oracle.aliases == {"np": "numpy", "os": "os", "tnn": "torch.nn"}


def test_import_alias_resolution():
  oracle = ImportAliasOracle({"np": "numpy"})
  assert oracle.resolve(cst.parse_expression("np.linalg.norm")) == "numpy.linalg.norm"
  assert oracle.resolve(cst.parse_expression("other.fn")) == "other.fn"
  assert oracle.resolve(cst.parse_expression("f()")) is None
  assert oracle.same_definition(cst.parse_expression("numpy.sum"), cst.parse_expression("np.sum"))
  assert not oracle.same_definition(cst.parse_expression("numpy.sum"), cst.parse_expression("np.mean"))


def test_equality_through_oracle():
  oracle = ImportAliasOracle({"np": "numpy"})
  left = cst.parse_expression("numpy.sum(a, axis=0)")
  right = cst.parse_expression("np.sum(a, axis=0)")
  assert not nodes_equal(left, right)
  assert nodes_equal(left, right, oracle)


def test_callee():
  oracle = ImportAliasOracle({"np": "numpy"})
  assert callee(cst.parse_expression("np.sum(x)"), oracle) == "numpy.sum"


def test_qualified_name_oracle_resolves_imports():
  oracle = QualifiedNameOracle.from_module(cst.parse_module("from os import path\nx = path.join(a, b)\n"))
  tree = oracle.module
  call = tree.body[1].body[0].value
  assert oracle.resolve(call.func) == "os.path.join"

  found = find_first(parse_expr("os.path.join(__a, __b)"), tree, oracle)
  assert found is not None
  assert found[1].as_code() == {"__a": "a", "__b": "b"}


def test_qualified_name_oracle_builtins():
  oracle = QualifiedNameOracle.from_module(cst.parse_module("n = len(items)\n"))
  assert find_first(parse_expr("len(__x)"), oracle.module, oracle) is not None


def test_qualified_name_oracle_ignores_shadowed_locals():
  code = "def f(path):\n    return path.join(a, b)\n"
  oracle = QualifiedNameOracle.from_module(cst.parse_module(code))
  assert find_first(parse_expr("os.path.join(__a, __b)"), oracle.module, oracle) is None
