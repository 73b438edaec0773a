"""
cst-refactor Package.

A tree pattern-matching and substitution engine for Python source, built on
LibCST. Patterns are ordinary Python fragments in which identifiers starting
with ``__`` (``__x``, ``__m_body``) are metavariables.

Usage
-----

Simple String Rewrites
^^^^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    import cst_refactor as cr
    code = "if d.has_key(k):\\n    pass\\n"
    print(cr.replace_expr("__d.has_key(__k)", "__k in __d", code))
    # if k in d:
    #     pass

Rule Files (Engine)
^^^^^^^^^^^^^^^^^^^

.. code-block:: python

    from cst_refactor import RefactorEngine, RuleSet, RuntimeConfig

    config = RuntimeConfig(strict_mode=True)
    engine = RefactorEngine(RuleSet.load("rules.toml").rules, config=config)
    res = engine.run(source)

    if res.success:
        print(res.code)
    else:
        print(f"Errors: {res.errors}")
"""

from cst_refactor.api import (
  find_all,
  find_first,
  replace_all,
  replace_expr,
  replace_items,
  replace_pattern,
  replace_stmts,
  replace_type,
)
from cst_refactor.config import RuntimeConfig
from cst_refactor.core.bindings import Bindings
from cst_refactor.core.conversion_result import ConversionResult
from cst_refactor.core.driver import fold_match, fold_match_with
from cst_refactor.core.engine import RefactorEngine
from cst_refactor.core.errors import (
  InconsistentBindingError,
  PatternSyntaxError,
  RefactorError,
  RewriteError,
  TemplateError,
  UnboundVariableError,
)
from cst_refactor.core.fragment import Fragment
from cst_refactor.core.matcher import MatchCtxt, match
from cst_refactor.core.subst import substitute
from cst_refactor.enums import FragmentKind, Origin, ResolverMode
from cst_refactor.rules import RewriteRule, RuleSet

__version__ = "0.1.0"


def refactor(code: str, rules, strict: bool = False) -> str:
  """
  Applies a list of rules to a string of Python code.

  This is a high-level convenience wrapper around the `RefactorEngine`.

  Args:
      code (str): The source code to rewrite.
      rules: RewriteRule objects (or dicts with the same fields).
      strict (bool): If True, any failing rule fails the conversion.

  Returns:
      str: The rewritten source code.

  Raises:
      ValueError: If the conversion fails (syntax errors, or rule errors in strict mode).
  """
  rule_set = RuleSet(rules=list(rules))
  engine = RefactorEngine(rule_set.rules, config=RuntimeConfig(strict_mode=strict))
  result = engine.run(code)

  if not result.success:
    error_msg = "\n".join(result.errors)
    raise ValueError(f"Refactoring failed:\n{error_msg}")

  return result.code


__all__ = [
  "Bindings",
  "ConversionResult",
  "Fragment",
  "FragmentKind",
  "InconsistentBindingError",
  "MatchCtxt",
  "Origin",
  "PatternSyntaxError",
  "RefactorEngine",
  "RefactorError",
  "ResolverMode",
  "RewriteError",
  "RewriteRule",
  "RuleSet",
  "RuntimeConfig",
  "TemplateError",
  "UnboundVariableError",
  "find_all",
  "find_first",
  "fold_match",
  "fold_match_with",
  "match",
  "refactor",
  "replace_all",
  "replace_expr",
  "replace_items",
  "replace_pattern",
  "replace_stmts",
  "replace_type",
  "substitute",
  "__version__",
]
