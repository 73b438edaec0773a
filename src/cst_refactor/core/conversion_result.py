"""
Data structures representing the output of a refactoring session.

This module defines the `ConversionResult` Pydantic model, which encapsulates
the rewritten code, any errors encountered, per-rule counters and the trace log.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, Field


class ConversionResult(BaseModel):
  """
  Container for the results of running a rule set over one module.
  """

  code: str = Field(default="", description="The rewritten source code.")
  errors: List[str] = Field(default_factory=list, description="List of error messages encountered.")
  success: bool = Field(
    default=True,
    description="True if the session completed without fatal failures.",
  )
  rewrites: Dict[str, int] = Field(default_factory=dict, description="Replacements made, per rule.")
  matches: Dict[str, int] = Field(default_factory=dict, description="Matches found, per find-only rule.")
  trace_events: List[Dict[str, Any]] = Field(default_factory=list, description="Execution trace log data.")

  @property
  def has_errors(self) -> bool:
    """
    Check if the result contains any error messages.

    Returns:
        True if one or more errors are present.
    """
    return len(self.errors) > 0

  @property
  def total_rewrites(self) -> int:
    """Number of replacements across all rules."""
    return sum(self.rewrites.values())
