"""
Tests for the Refactor Engine.

Verifies:
1. Rules apply in order, each to the output of the previous one.
2. Failing rules are skipped, or fail the module in strict mode.
3. Resolver modes, find-only rules and renames.
"""

from cst_refactor.config import RuntimeConfig
from cst_refactor.core.engine import RefactorEngine
from cst_refactor.core.tracer import TraceEventType
from cst_refactor.enums import ResolverMode
from cst_refactor.rules import RewriteRule


def rule(name, pattern, replacement=None, **kw) -> RewriteRule:
  return RewriteRule(name=name, pattern=pattern, replacement=replacement, **kw)


def test_rules_are_chained():
  engine = RefactorEngine(
    [
      rule("has-key", "__d.has_key(__k)", "__k in __d"),
      rule("in-to-contains", "__k in __d", "__d.__contains__(__k)"),
    ],
    config=RuntimeConfig(),
  )
  res = engine.run("ok = cache.has_key(k)\n")
  assert res.success
  assert res.code == "ok = cache.__contains__(k)\n"
  assert res.rewrites == {"has-key": 1, "in-to-contains": 1}
  assert res.total_rewrites == 2


def test_parse_error_fails_module():
  engine = RefactorEngine([rule("r", "a", "b")], config=RuntimeConfig())
  res = engine.run("def broken(:\n")
  assert not res.success
  assert res.code == "def broken(:\n"
  assert "Parse Error" in res.errors[0]


def test_bad_rule_is_skipped():
  engine = RefactorEngine(
    [rule("bad", "f(", "g()"), rule("good", "f()", "g()")],
    config=RuntimeConfig(),
  )
  res = engine.run("f()\n")
  assert res.success
  assert res.code == "g()\n"
  assert len(res.errors) == 1
  assert "bad" in res.errors[0]


def test_strict_mode_returns_original_code():
  engine = RefactorEngine(
    [rule("good", "f()", "g()"), rule("unbound", "h()", "k(__y)")],
    config=RuntimeConfig(strict_mode=True),
  )
  res = engine.run("f()\nh()\n")
  assert not res.success
  assert res.code == "f()\nh()\n"
  assert "unbound" in res.errors[0]


def test_template_error_is_reported():
  """A statement-sequence binding cannot fill an expression slot."""
  engine = RefactorEngine(
    [rule("wrap", "__m_body", "print(__m_body)", kind="stmts")],
    config=RuntimeConfig(strict_mode=True),
  )
  res = engine.run("a()\n")
  assert not res.success


def test_find_only_rule_counts_matches():
  engine = RefactorEngine([rule("prints", "print(__x)")], config=RuntimeConfig())
  res = engine.run("print(1)\nprint(2)\nx = 3\n")
  assert res.code == "print(1)\nprint(2)\nx = 3\n"
  assert res.matches == {"prints": 2}
  assert res.total_rewrites == 0
  matches = [e for e in res.trace_events if e["type"] == TraceEventType.MATCH]
  assert [e["metadata"]["bindings"] for e in matches] == [{"__x": "1"}, {"__x": "2"}]


def test_import_resolver_matches_aliases():
  rules = [rule("sum", "numpy.sum(__x)", "jnp.sum(__x)")]
  code = "import numpy as np\ny = np.sum(a)\n"

  res = RefactorEngine(rules, config=RuntimeConfig(resolver=ResolverMode.IMPORTS)).run(code)
  assert res.code == "import numpy as np\ny = jnp.sum(a)\n"

  res = RefactorEngine(rules, config=RuntimeConfig(resolver=ResolverMode.SYNTACTIC)).run(code)
  assert res.code == code


def test_qualified_resolver():
  rules = [rule("join", "os.path.join(__a, __b)", "__a / __b")]
  code = "from os import path\np = path.join(root, name)\n"
  res = RefactorEngine(rules, config=RuntimeConfig(resolver=ResolverMode.QUALIFIED)).run(code)
  assert res.code == "from os import path\np = root / name\n"


def test_rule_types_restrict_capture():
  engine = RefactorEngine(
    [rule("call", "__f(0)", "__f()", types={"__f": "ident"})],
    config=RuntimeConfig(),
  )
  assert engine.run("a(0)\nb.c(0)\n").code == "a()\nb.c(0)\n"


def test_rename():
  engine = RefactorEngine([], config=RuntimeConfig())
  res = engine.rename("import numpy as np\nx = np.sum(a)\ny = np.mean(a)\n", "numpy.sum", "jnp.sum")
  assert res.success
  assert res.code == "import numpy as np\nx = jnp.sum(a)\ny = np.mean(a)\n"
  assert res.rewrites == {"rename": 1}


def test_trace_contains_rule_phases():
  engine = RefactorEngine([rule("r", "f()", "g()")], config=RuntimeConfig())
  events = engine.run("f()\n").trace_events
  phases = [e["description"] for e in events if e["type"] == TraceEventType.PHASE_START]
  assert phases == ["Refactor Session", "Preprocessing", "Rule: r"]
  rewrites = [e for e in events if e["type"] == TraceEventType.REWRITE]
  assert rewrites[0]["metadata"] == {"before": "f()", "after": "g()"}
