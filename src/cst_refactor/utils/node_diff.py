"""
Fragment Rendering and Visual Diffs.

This utility module converts detached LibCST nodes (and statement sequences)
into source text "in vacuum", and produces unified diffs between two versions
of a file. Rendering is only used for display and tracing; the engine never
compares rendered text.
"""

import difflib
from typing import Sequence, Tuple, Union

import libcst as cst

# A dummy module used as a context to render detached nodes.
_RENDER_CTX = cst.parse_module("")


def capture_node_source(node: Union[cst.CSTNode, Sequence[cst.CSTNode]]) -> str:
  """
  Renders a LibCST node (or a run of statements) into Python source.

  Args:
      node: The CST node, or a sequence of statement nodes, to serialise.

  Returns:
      str: The Python code string.
  """
  if isinstance(node, (list, tuple)):
    return "".join(capture_node_source(n) for n in node)
  try:
    return _RENDER_CTX.code_for_node(node)
  except Exception:
    # Partial nodes (e.g. a Param outside Parameters) may refuse codegen
    return f"<Unrepresentable Node: {type(node).__name__}>"


def diff_nodes(original: cst.CSTNode, modified: cst.CSTNode) -> Tuple[str, str, bool]:
  """
  Compares two nodes and returns their source strings if they differ.

  Args:
      original: The node before transformation.
      modified: The node after transformation.

  Returns:
      tuple: (source_before, source_after, has_changed)
  """
  src_before = capture_node_source(original)
  src_after = capture_node_source(modified)
  is_diff = src_before.strip() != src_after.strip()
  return src_before, src_after, is_diff


def unified_diff(before: str, after: str, path: str = "<source>") -> str:
  """
  Builds a unified diff between two versions of a file.

  Args:
      before: Original source code.
      after: Rewritten source code.
      path: File label used in the diff header.

  Returns:
      str: The diff text (empty when nothing changed).
  """
  lines = difflib.unified_diff(
    before.splitlines(keepends=True),
    after.splitlines(keepends=True),
    fromfile=f"a/{path}",
    tofile=f"b/{path}",
  )
  return "".join(lines)
