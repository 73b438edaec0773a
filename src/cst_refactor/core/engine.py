"""
Orchestration Engine for Rule-Based Rewrites.

This module provides the `RefactorEngine`, which runs a rule set over one
module of Python source:

1.  **Ingestion Phase**: Parses source code into a LibCST tree.
2.  **Rule Phases**: For each rule, in declaration order:
    - Compiles the pattern and replacement texts.
    - Builds a resolution oracle for the current tree (per `RuntimeConfig.resolver`).
    - Folds the rule over the tree (rewrite rules) or collects matches (find-only rules).
3.  **Output Generation**: Renders the final tree back to source.

Every rule sees the output of the previous one. A failing rule is skipped with
a warning, or, in strict mode, fails the whole module.
"""

import logging
from typing import List, Optional, Sequence, Tuple

import libcst as cst

from cst_refactor.config import RuntimeConfig
from cst_refactor.core.bindings import Bindings
from cst_refactor.core.conversion_result import ConversionResult
from cst_refactor.core.driver import find_all_with, fold_match_with, fold_resolved_paths
from cst_refactor.core.errors import RefactorError
from cst_refactor.core.fragment import Fragment
from cst_refactor.core.oracle import ImportAliasOracle, QualifiedNameOracle, ResolutionOracle, SyntacticOracle
from cst_refactor.core.structure import dotted_name
from cst_refactor.core.subst import substitute
from cst_refactor.core.tracer import TraceLogger
from cst_refactor.enums import ResolverMode
from cst_refactor.rules import CompiledRule, RewriteRule, RuleSet

logger = logging.getLogger(__name__)


class RefactorEngine:
  """
  Runs a sequence of rewrite rules over single modules.
  """

  def __init__(self, rules: Optional[Sequence[RewriteRule]] = None, config: Optional[RuntimeConfig] = None):
    """
    Initializes the Engine.

    Args:
        rules: The rules to apply. Loaded from ``config.rules_file`` when omitted.
        config: The runtime configuration. Loaded from pyproject.toml when omitted.
    """
    self.config = config or RuntimeConfig.load()
    if rules is not None:
      self.rules: List[RewriteRule] = list(rules)
    elif self.config.rules_file:
      self.rules = RuleSet.load(self.config.rules_file).rules
    else:
      self.rules = []
    self.syntax = self.config.syntax
    self.strict_mode = self.config.strict_mode

  def parse(self, code: str) -> cst.Module:
    """
    Parses source string into a LibCST Module.

    Raises:
        libcst.ParserSyntaxError: If the input code is invalid Python.
    """
    return cst.parse_module(code)

  def build_oracle(self, tree: cst.Module) -> Tuple[ResolutionOracle, cst.Module]:
    """
    Creates the resolution oracle for a tree.

    Args:
        tree: The current module.

    Returns:
        Tuple[ResolutionOracle, cst.Module]: The oracle and the tree to traverse.
        Scope analysis works on its own copy of the module, which must then be
        traversed instead of ``tree``.
    """
    mode = self.config.resolver
    if mode is ResolverMode.QUALIFIED:
      oracle = QualifiedNameOracle.from_module(tree)
      return oracle, oracle.module
    if mode is ResolverMode.IMPORTS:
      return ImportAliasOracle.from_module(tree), tree
    return SyntacticOracle(), tree

  def _apply(self, compiled: CompiledRule, tree: cst.Module, tracer: TraceLogger, result: ConversionResult) -> cst.Module:
    rule = compiled.rule
    oracle, tree = self.build_oracle(tree)
    mcx = compiled.context(oracle, self.config.types, self.syntax)

    if compiled.replacement is None:
      found = find_all_with(mcx, compiled.pattern, tree)
      for matched, bindings in found:
        tracer.log_match(rule.name, matched.code.strip(), bindings.as_code())
      result.matches[rule.name] = len(found)
      return tree

    template = compiled.replacement
    count = 0

    def rebuild(matched: Fragment, bindings: Bindings) -> Fragment:
      nonlocal count
      replacement = substitute(template, bindings, self.syntax)
      count += 1
      tracer.log_match(rule.name, matched.code.strip(), bindings.as_code())
      tracer.log_rewrite(rule.name, matched.code.strip(), replacement.code.strip())
      return replacement

    tree = fold_match_with(mcx, compiled.pattern, tree, rebuild)
    result.rewrites[rule.name] = count
    logger.debug("Rule %s rewrote %d matches", rule.name, count)
    return tree

  def rename(self, code: str, old: str, new: str) -> ConversionResult:
    """
    Rewrites every path that resolves to ``old`` into the dotted path ``new``.

    Paths are resolved by the configured oracle, so with the import resolver
    ``np.sum`` is renamed when ``old`` is ``numpy.sum``. Import statements are
    left untouched.

    Args:
        code (str): The input source string.
        old (str): Fully qualified name to replace.
        new (str): Replacement dotted path.

    Returns:
        ConversionResult: The rewritten code, with the count under ``rewrites["rename"]``.
    """
    tracer = TraceLogger()
    tracer.start_phase("Rename", f"{old} -> {new}")
    try:
      tree = self.parse(code)
    except cst.ParserSyntaxError as e:
      return ConversionResult(code=code, errors=[f"Parse Error: {e.message}"], success=False)

    oracle, tree = self.build_oracle(tree)
    count = 0

    def rename_one(qualified: str, node: cst.CSTNode) -> Optional[str]:
      nonlocal count
      if qualified != old:
        return None
      count += 1
      tracer.log_rewrite("rename", dotted_name(node) or qualified, new)
      return new

    tree = fold_resolved_paths(tree, oracle, rename_one)
    tracer.end_phase()
    return ConversionResult(code=tree.code, rewrites={"rename": count}, trace_events=tracer.export())

  def run(self, code: str) -> ConversionResult:
    """
    Executes every rule over a module.

    Args:
        code (str): The input source string.

    Returns:
        ConversionResult: Object containing rewritten code, counters and error logs.
    """
    tracer = TraceLogger()
    tracer.start_phase("Refactor Session", f"{len(self.rules)} rules (Strict: {self.strict_mode})")

    tracer.start_phase("Preprocessing", "Parsing")
    try:
      tree = self.parse(code)
    except cst.ParserSyntaxError as e:
      tracer.log_warning(f"Parse Error: {e.message}")
      return ConversionResult(
        code=code,
        errors=[f"Parse Error: {e.message} (line {e.raw_line}, column {e.raw_column})"],
        success=False,
        trace_events=tracer.export(),
      )
    tracer.end_phase()

    result = ConversionResult()
    for rule in self.rules:
      tracer.start_phase(f"Rule: {rule.name}", rule.pattern)
      try:
        tree = self._apply(rule.compile(self.syntax), tree, tracer, result)
      except (RefactorError, ValueError) as e:
        message = f"Rule '{rule.name}': {e}"
        tracer.log_warning(message)
        tracer.end_phase()
        result.errors.append(message)
        if self.strict_mode:
          result.success = False
          result.code = code
          result.trace_events = tracer.export()
          return result
        logger.warning("Skipping %s", message)
        continue
      tracer.end_phase()

    tracer.end_phase()
    result.code = tree.code
    result.trace_events = tracer.export()
    return result
