"""
Bindings Store.

Maps metavariable names to the fragments they captured. A store only grows:
an entry, once set, is never removed or replaced. Rebinding a name succeeds
only when the new fragment is equivalent to the existing one.
"""

from typing import Dict, Iterator, Mapping, Optional

import libcst as cst

from cst_refactor.core.equality import fragments_equal
from cst_refactor.core.errors import InconsistentBindingError
from cst_refactor.core.fragment import Fragment
from cst_refactor.core.oracle import ResolutionOracle


class Bindings:
  """
  The accumulated mapping from metavariable name to captured fragment.
  """

  def __init__(self, entries: Optional[Mapping[str, Fragment]] = None):
    self._entries: Dict[str, Fragment] = dict(entries or {})

  def __contains__(self, name: object) -> bool:
    return name in self._entries

  def __len__(self) -> int:
    return len(self._entries)

  def __iter__(self) -> Iterator[str]:
    return iter(self._entries)

  def __getitem__(self, name: str) -> Fragment:
    return self._entries[name]

  def __repr__(self) -> str:
    inner = ", ".join(f"{name}={frag.code.strip()!r}" for name, frag in self._entries.items())
    return f"Bindings({inner})"

  def get(self, name: str) -> Optional[Fragment]:
    """Returns the fragment bound to ``name``, or None."""
    return self._entries.get(name)

  def node(self, name: str) -> cst.CSTNode:
    """
    Returns the single node bound to ``name``.

    Raises:
        KeyError: If the name is unbound.
        TypeError: If the name is bound to a statement sequence.
    """
    fragment = self._entries[name]
    if isinstance(fragment.node, tuple):
      raise TypeError(f"'{name}' is bound to a statement sequence")
    return fragment.node

  def names(self) -> Iterator[str]:
    """Iterates bound names in binding order."""
    return iter(self._entries)

  def copy(self) -> "Bindings":
    """Returns an independent store with the same entries."""
    return Bindings(self._entries)

  def try_bind(self, name: str, fragment: Fragment, oracle: Optional[ResolutionOracle] = None) -> bool:
    """
    Binds ``name`` unless it is already bound to a different fragment.

    Args:
        name: Metavariable name.
        fragment: Captured fragment.
        oracle: Semantic equality service for the consistency check.

    Returns:
        bool: True if the store now maps ``name`` to an equivalent fragment.
    """
    existing = self._entries.get(name)
    if existing is None:
      self._entries[name] = fragment
      return True
    return fragments_equal(existing, fragment, oracle)

  def bind(self, name: str, fragment: Fragment, oracle: Optional[ResolutionOracle] = None) -> None:
    """
    Binds ``name``, raising on a conflicting rebind.

    Raises:
        InconsistentBindingError: If ``name`` is bound to a different fragment.
    """
    if not self.try_bind(name, fragment, oracle):
      raise InconsistentBindingError(name, f"{self._entries[name].code.strip()!r} vs {fragment.code.strip()!r}")

  def merge(self, other: "Bindings", oracle: Optional[ResolutionOracle] = None) -> Optional["Bindings"]:
    """
    Combines two stores.

    Args:
        other: Bindings to fold in.
        oracle: Semantic equality service for names bound in both.

    Returns:
        Optional[Bindings]: The union, or None if a shared name maps to unequal fragments.
    """
    merged = self.copy()
    for name, fragment in other._entries.items():
      if not merged.try_bind(name, fragment, oracle):
        return None
    return merged

  def as_code(self) -> Dict[str, str]:
    """Renders every binding as source text (for display)."""
    return {name: frag.code.strip() for name, frag in self._entries.items()}
