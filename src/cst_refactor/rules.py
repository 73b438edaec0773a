"""
Rewrite Rule Files.

Rules are declared in TOML (``[[rule]]`` tables) or JSON (``{"rules": [...]}``)::

    [[rule]]
    name = "has-key"
    kind = "expr"
    pattern = "__d.has_key(__k)"
    replacement = "__k in __d"

    [[rule]]
    name = "find-print"
    kind = "stmt"
    pattern = "print(__x)"
    types = { __x = "expr" }

A rule without a replacement only reports its matches.
"""

import json
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from cst_refactor.api import compile_fragment, compile_rewrite, make_context
from cst_refactor.core.fragment import Fragment
from cst_refactor.core.matcher import MatchCtxt
from cst_refactor.core.metavars import MetavarSyntax
from cst_refactor.core.oracle import ResolutionOracle
from cst_refactor.enums import FragmentKind


@dataclass(frozen=True)
class CompiledRule:
  """
  A rule whose texts have been parsed.

  Attributes:
      rule (RewriteRule): The source declaration.
      pattern (Fragment): The parsed pattern.
      replacement (Optional[Fragment]): The parsed template, None for find-only rules.
  """

  rule: "RewriteRule"
  pattern: Fragment
  replacement: Optional[Fragment]

  def context(
    self,
    oracle: Optional[ResolutionOracle] = None,
    extra_types: Optional[Dict[str, FragmentKind]] = None,
    syntax: Optional[MetavarSyntax] = None,
  ) -> MatchCtxt:
    """Builds the initial match context; the rule's own types win over ``extra_types``."""
    types = {**(extra_types or {}), **self.rule.types}
    return make_context(oracle, types, syntax)


class RewriteRule(BaseModel):
  """
  Declaration of a single pattern/replacement pair.
  """

  name: str = Field(..., description="Unique rule identifier.")
  kind: FragmentKind = Field(FragmentKind.EXPR, description="Kind of tree position the pattern matches.")
  pattern: str = Field(..., description="Pattern source with metavariables.")
  replacement: Optional[str] = Field(None, description="Replacement template. Omit for find-only rules.")
  types: Dict[str, FragmentKind] = Field(default_factory=dict, description="Declared metavariable kinds.")
  description: Optional[str] = Field(None, description="Human readable summary.")

  @field_validator("kind")
  @classmethod
  def validate_kind(cls, v: FragmentKind) -> FragmentKind:
    """
    Rejects kinds that cannot be parsed from text.

    Raises:
        ValueError: For ``any``.
    """
    if v is FragmentKind.ANY:
      raise ValueError("A rule pattern needs a concrete kind")
    return v

  @property
  def is_search(self) -> bool:
    """True for find-only rules."""
    return self.replacement is None

  def compile(self, syntax: Optional[MetavarSyntax] = None) -> CompiledRule:
    """
    Parses the pattern (and replacement) once.

    Args:
        syntax: Metavariable spelling rules.

    Returns:
        CompiledRule: The parsed rule.

    Raises:
        PatternSyntaxError: If a text does not parse as the rule's kind.
        UnboundVariableError: If the replacement uses a metavariable the pattern never binds.
    """
    if self.replacement is None:
      return CompiledRule(self, compile_fragment(self.pattern, self.kind, syntax), None)
    pattern, replacement = compile_rewrite(self.pattern, self.replacement, self.kind, syntax)
    return CompiledRule(self, pattern, replacement)


class RuleSet(BaseModel):
  """
  An ordered collection of rules, applied one after the other.
  """

  rules: List[RewriteRule] = Field(default_factory=list)

  @field_validator("rules")
  @classmethod
  def validate_unique_names(cls, v: List[RewriteRule]) -> List[RewriteRule]:
    seen = set()
    for rule in v:
      if rule.name in seen:
        raise ValueError(f"Duplicate rule name: '{rule.name}'")
      seen.add(rule.name)
    return v

  @classmethod
  def from_dict(cls, data: Dict[str, Any]) -> "RuleSet":
    """
    Validates a decoded rule document.

    Accepts both the TOML layout (``rule`` array of tables) and ``rules``.
    """
    return cls.model_validate({"rules": data.get("rule", data.get("rules", []))})

  @classmethod
  def load(cls, path: Path) -> "RuleSet":
    """
    Reads a rule file.

    Args:
        path: A ``.toml`` or ``.json`` file.

    Returns:
        RuleSet: The validated rules.

    Raises:
        ValueError: For unsupported file types or invalid content.
        OSError: If the file cannot be read.
    """
    path = Path(path)
    if path.suffix == ".json":
      with open(path, "rt", encoding="utf-8") as f:
        data = json.load(f)
    elif path.suffix == ".toml":
      with open(path, "rb") as f:
        data = tomllib.load(f)
    else:
      raise ValueError(f"Unsupported rule file type: '{path.suffix}' (expected .toml or .json)")
    return cls.from_dict(data)
