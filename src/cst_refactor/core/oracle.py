"""
Resolution Oracles.

The matcher never decides from spelling alone whether two paths denote the
same definition. It asks an oracle, passed explicitly through the ``MatchCtxt``:

*   ``SyntacticOracle`` knows nothing and always defers to structure.
*   ``ImportAliasOracle`` resolves names through the module's import table
    (``import numpy as np`` makes ``np.sum`` denote ``numpy.sum``).
*   ``QualifiedNameOracle`` uses LibCST scope analysis
    (``QualifiedNameProvider``) and only trusts import and builtin bindings.

An oracle answers ``True``/``False`` when it knows, and ``None`` otherwise.
Oracles are read-only once constructed.
"""

import logging
from typing import Collection, Dict, Optional, Protocol, Set

import libcst as cst
from libcst.metadata import MetadataWrapper, QualifiedName, QualifiedNameProvider, QualifiedNameSource

from cst_refactor.core.structure import dotted_name

logger = logging.getLogger(__name__)


class ResolutionOracle(Protocol):
  """Semantic equality / resolution service consulted by the matcher."""

  def same_definition(self, pattern: cst.CSTNode, candidate: cst.CSTNode) -> Optional[bool]:
    """Whether two path-like nodes denote the same definition, or None if unknown."""
    ...

  def resolve(self, node: cst.CSTNode) -> Optional[str]:
    """The fully qualified identity of the definition a path denotes, or None."""
    ...


class SyntacticOracle:
  """An oracle without semantic knowledge."""

  def same_definition(self, pattern: cst.CSTNode, candidate: cst.CSTNode) -> Optional[bool]:
    return None

  def resolve(self, node: cst.CSTNode) -> Optional[str]:
    return None


class _ImportCollector(cst.CSTVisitor):
  """
  Scans ``import`` statements to populate an alias map.

  Example: ``import torch.nn as nn`` -> ``aliases['nn'] = 'torch.nn'``.
  """

  def __init__(self) -> None:
    self.aliases: Dict[str, str] = {}

  def visit_Import(self, node: cst.Import) -> Optional[bool]:
    for alias in node.names:
      full_name = dotted_name(alias.name)
      if not full_name:
        continue

      if alias.asname and isinstance(alias.asname.name, cst.Name):
        self.aliases[alias.asname.name.value] = full_name
      else:
        root = full_name.split(".")[0]
        self.aliases[root] = root
    return False

  def visit_ImportFrom(self, node: cst.ImportFrom) -> Optional[bool]:
    # Relative imports have no stable absolute identity
    if node.relative or node.module is None:
      return False
    if isinstance(node.names, cst.ImportStar):
      return False

    module_name = dotted_name(node.module)
    if not module_name:
      return False

    for alias in node.names:
      imported_name = dotted_name(alias.name)
      if not imported_name:
        continue
      if alias.asname and isinstance(alias.asname.name, cst.Name):
        local_name = alias.asname.name.value
      else:
        local_name = imported_name
      self.aliases[local_name] = f"{module_name}.{imported_name}"
    return False


class ImportAliasOracle:
  """
  Resolves paths through a module's import aliases.

  Resolution is linear and module-wide: the last import of a local name wins.
  """

  def __init__(self, aliases: Optional[Dict[str, str]] = None):
    self.aliases: Dict[str, str] = dict(aliases or {})

  @classmethod
  def from_module(cls, module: cst.Module) -> "ImportAliasOracle":
    """
    Builds the alias table from every import statement in a module.

    Args:
        module: The parsed module.

    Returns:
        ImportAliasOracle: The populated oracle.
    """
    collector = _ImportCollector()
    module.visit(collector)
    logger.debug("Collected %d import aliases", len(collector.aliases))
    return cls(collector.aliases)

  def qualify(self, path: str) -> str:
    """
    Expands the root segment of a dotted path through the alias table.

    Example:
        If ``import torch.nn as nn`` exists, ``nn.Linear`` qualifies to ``torch.nn.Linear``.
    """
    root, _, rest = path.partition(".")
    canonical = self.aliases.get(root)
    if canonical is None:
      return path
    return f"{canonical}.{rest}" if rest else canonical

  def resolve(self, node: cst.CSTNode) -> Optional[str]:
    path = dotted_name(node)
    if path is None:
      return None
    return self.qualify(path)

  def same_definition(self, pattern: cst.CSTNode, candidate: cst.CSTNode) -> Optional[bool]:
    left = self.resolve(pattern)
    right = self.resolve(candidate)
    if left is None or right is None:
      return None
    return left == right


class QualifiedNameOracle:
  """
  Resolves paths with LibCST's scope analysis.

  Only names bound by imports or builtins are trusted; local variables resolve
  to scope-relative names and are left to structural comparison. Nodes must
  belong to ``self.module`` (the wrapper's copy of the parsed module) to be known.
  """

  def __init__(self, wrapper: MetadataWrapper):
    self._wrapper = wrapper
    self._names = wrapper.resolve(QualifiedNameProvider)

  @classmethod
  def from_module(cls, module: cst.Module) -> "QualifiedNameOracle":
    """Analyses a module. Traverse ``oracle.module``, not the argument."""
    return cls(MetadataWrapper(module))

  @property
  def module(self) -> cst.Module:
    """The analysed module instance whose nodes this oracle can resolve."""
    return self._wrapper.module

  def _external(self, node: cst.CSTNode) -> Set[str]:
    names: Collection[QualifiedName] = self._names.get(node, ())
    found = set()
    for qname in names:
      if qname.source is QualifiedNameSource.IMPORT:
        found.add(qname.name)
      elif qname.source is QualifiedNameSource.BUILTIN:
        found.add(qname.name)
        found.add(qname.name.partition("builtins.")[2] or qname.name)
    return found

  def resolve(self, node: cst.CSTNode) -> Optional[str]:
    names = sorted(q.name for q in self._names.get(node, ()) if q.source is not QualifiedNameSource.LOCAL)
    return names[0] if names else None

  def same_definition(self, pattern: cst.CSTNode, candidate: cst.CSTNode) -> Optional[bool]:
    left = self._external(pattern)
    right = self._external(candidate)
    if left and right:
      return bool(left & right)
    if not left and not right:
      return None

    # One side is outside the analysed module (typically the pattern)
    known, other = (right, pattern) if right else (left, candidate)
    text = dotted_name(other)
    if text is None:
      return None
    if text == dotted_name(candidate if other is pattern else pattern):
      return True
    return text in known


def callee(call: cst.Call, oracle: ResolutionOracle) -> Optional[str]:
  """
  Resolves the definition called by a ``Call`` expression.

  Args:
      call: The call node.
      oracle: Resolution service.

  Returns:
      Optional[str]: Qualified identity of the callee, or None if unresolvable.
  """
  return oracle.resolve(call.func)
