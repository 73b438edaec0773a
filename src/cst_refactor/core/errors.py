"""
Error Taxonomy.

Only usage errors are exceptions. A pattern that does not match a candidate,
or a metavariable that would be rebound inconsistently during matching, is a
normal negative result (``None`` / ``False``) and never raised.
"""

from typing import Optional


class RefactorError(Exception):
  """Base class for every error raised by the engine."""


class PatternSyntaxError(RefactorError, ValueError):
  """
  Raised when pattern or replacement text cannot be parsed as the requested kind.

  Attributes:
      kind (str): The fragment kind the text was parsed as.
      text (str): The offending source text.
  """

  def __init__(self, kind: str, text: str, message: str):
    self.kind = kind
    self.text = text
    super().__init__(f"Cannot parse {kind} from {text!r}: {message}")


class UnboundVariableError(RefactorError):
  """
  Raised when a template references a metavariable absent from the bindings.

  Attributes:
      name (str): The unbound metavariable.
  """

  def __init__(self, name: str):
    self.name = name
    super().__init__(f"Unbound metavariable in template: '{name}'")


class TemplateError(RefactorError):
  """Raised when a bound fragment cannot be placed at its template position."""


class InconsistentBindingError(RefactorError):
  """
  Raised by an explicit ``Bindings.bind`` that conflicts with an existing binding.

  Attributes:
      name (str): The metavariable being rebound.
  """

  def __init__(self, name: str, detail: Optional[str] = None):
    self.name = name
    msg = f"Metavariable '{name}' is already bound to a different fragment"
    if detail:
      msg = f"{msg}: {detail}"
    super().__init__(msg)


class RewriteError(RefactorError):
  """Raised when a rewrite callback returns a value that does not fit its position."""
