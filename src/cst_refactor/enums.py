"""
Enumerations for cst-refactor.

This module defines the closed set of fragment kinds the engine can match and
substitute, plus the small enums used by configuration and tracing.
"""

from enum import Enum


class FragmentKind(str, Enum):
  """
  Categorization of syntax tree fragments.

  Every matchable position in a tree has exactly one kind, and every
  metavariable is tagged with the kind it may capture. ``PATH`` and ``ANY``
  only appear as declared metavariable types.
  """

  EXPR = "expr"
  TYPE = "type"
  PATTERN = "pattern"
  IDENT = "ident"
  PATH = "path"
  STMT = "stmt"
  STMTS = "stmts"  # Statement sequence (also the kind of multi-statement metavariables)
  ITEM = "item"  # def / class / import line
  ANY = "any"

  @property
  def is_sequence(self) -> bool:
    """True for kinds whose fragments are matched against statement runs."""
    return self in (FragmentKind.STMT, FragmentKind.STMTS, FragmentKind.ITEM)


class Origin(str, Enum):
  """
  Provenance of a fragment's nodes.
  """

  PARSED = "parsed"
  SYNTHESIZED = "synthesized"


class ResolverMode(str, Enum):
  """
  Which resolution oracle the engine builds for a module.
  """

  SYNTACTIC = "syntactic"  # No semantic knowledge; structure only
  IMPORTS = "imports"  # Import alias table
  QUALIFIED = "qualified"  # LibCST scope analysis
