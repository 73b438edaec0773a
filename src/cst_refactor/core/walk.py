"""
Rebuild-on-Write Tree Walker.

``TreeWalker`` traverses a LibCST tree in pre-order and asks a ``Rewriter``
whether each position should be replaced. Replaced positions are not entered
again; everything else is descended. Only the ancestors of a replaced node are
rebuilt (with ``with_changes``), so untouched subtrees are shared with the input.

Traversal is driven by an explicit stack of generator frames, one per node
being rebuilt, so its depth is bounded by the heap rather than the interpreter
stack.

Statement runs (module and block bodies) are handled lazily with a cursor: a
run hook may consume several consecutive statements at once, after which the
cursor skips past them.
"""

import dataclasses
from typing import Any, Generator, Iterator, List, NamedTuple, Optional, Sequence, Tuple

import libcst as cst

from cst_refactor.core.errors import RewriteError
from cst_refactor.core.structure import (
  STATEMENT_POSITION,
  Context,
  Position,
  child_position,
  group_generator_args,
  is_statement_run,
  needs_parens,
  node_fields,
  parenthesize,
)

Nodes = Tuple[cst.CSTNode, ...]
# A frame yields (child, position) and receives (nodes, was_replaced).
_Frame = Generator[Tuple[cst.CSTNode, Position], Tuple[Nodes, bool], object]


class Rewriter:
  """
  Hooks consulted by the walker. The defaults rewrite nothing.
  """

  def rewrite_node(self, node: cst.CSTNode, position: Position) -> Optional[Sequence[cst.CSTNode]]:
    """
    Returns the replacement for a node, or None to descend into it.
    """
    return None

  def rewrite_run(
    self, items: Tuple[cst.BaseStatement, ...], index: int
  ) -> Optional[Tuple[int, Sequence[cst.BaseStatement]]]:
    """
    Returns ``(consumed, replacement)`` for the statements starting at ``items[index]``.

    Called before ``rewrite_node`` for every statement in a module or block body.
    ``consumed`` must be at least 1.
    """
    return None


class TreeWalker:
  """
  Pre-order rebuild-on-write traversal driven by a ``Rewriter``.
  """

  def __init__(self, rewriter: Rewriter):
    self.rewriter = rewriter

  def walk_node(self, node: cst.CSTNode, position: Position) -> Nodes:
    """
    Rewrites a tree rooted at a single node.

    Args:
        node: The root node.
        position: The position of the root.

    Returns:
        Nodes: The rewritten root (usually exactly one node).
    """
    replacement = self.rewriter.rewrite_node(node, position)
    if replacement is not None:
      return tuple(replacement)
    return (self._drive(self._rebuild(node, position)),)

  def walk_run(self, items: Sequence[cst.BaseStatement]) -> Nodes:
    """
    Rewrites a statement sequence.

    Args:
        items: The statements.

    Returns:
        Nodes: The rewritten statements.
    """
    items = tuple(items)
    result = self._drive(self._sequence(None, "body", items, STATEMENT_POSITION, True))
    return items if result is None else result

  def _drive(self, root: _Frame):
    stack: List[_Frame] = [root]
    reply = None
    while True:
      try:
        child, position = stack[-1].send(reply)
      except StopIteration as stop:
        stack.pop()
        if not stack:
          return stop.value
        reply = ((stop.value,), False)
        continue

      replacement = self.rewriter.rewrite_node(child, position)
      if replacement is not None:
        reply = (tuple(replacement), True)
        continue
      stack.append(self._rebuild(child, position))
      reply = None

  def _rebuild(self, node: cst.CSTNode, position: Position) -> _Frame:
    if position.context is Context.OPAQUE:
      return node

    changes = {}
    for field, value in node_fields(node):
      if value is None:
        continue

      if isinstance(value, cst.CSTNode):
        nodes, replaced = yield value, child_position(node, field, value, position.context)
        if len(nodes) != 1:
          raise RewriteError(
            f"{type(node).__name__}.{field} holds one node, got {len(nodes)} from a rewrite"
          )
        new = nodes[0]
        if new is not value:
          if replaced and needs_parens(node, field, new):
            new = parenthesize(new)
          changes[field] = new
        continue

      items = yield from self._sequence(node, field, tuple(value), position, is_statement_run(node, field))
      if items is not None:
        changes[field] = items

    if not changes:
      return node
    try:
      rebuilt = node.with_changes(**changes)
    except (cst.CSTValidationError, TypeError) as exc:
      raise RewriteError(f"Rewritten {type(node).__name__} is invalid: {exc}") from exc
    if isinstance(rebuilt, cst.Call) and "args" in changes:
      rebuilt = group_generator_args(rebuilt)
    return rebuilt

  def _sequence(
    self,
    parent: Optional[cst.CSTNode],
    field: str,
    items: Tuple[cst.CSTNode, ...],
    position: Position,
    run: bool,
  ) -> _Frame:
    out: List[cst.CSTNode] = []
    changed = False
    index = 0
    while index < len(items):
      item = items[index]
      if run:
        hit = self.rewriter.rewrite_run(items, index)
        if hit is not None:
          consumed, nodes = hit
          if consumed < 1:
            raise RewriteError("A statement run rewrite must consume at least one statement")
          nodes = tuple(nodes)
          original = items[index : index + consumed]
          if len(nodes) != len(original) or any(a is not b for a, b in zip(nodes, original)):
            changed = True
          out.extend(nodes)
          index += consumed
          continue

      if parent is None:
        child_pos = STATEMENT_POSITION
      else:
        child_pos = child_position(parent, field, item, position.context)
      nodes, _ = yield item, child_pos
      if len(nodes) != 1 or nodes[0] is not item:
        changed = True
      out.extend(nodes)
      index += 1
    return tuple(out) if changed else None


class Visit(NamedTuple):
  """
  A node reached by ``iter_preorder``.

  ``run`` is the enclosing statement sequence (and ``index`` the node's place
  in it) when the node is a statement of a module or block body.
  """

  node: cst.CSTNode
  position: Position
  run: Optional[Tuple[cst.BaseStatement, ...]] = None
  index: int = 0


def iter_preorder(root, position: Optional[Position] = None) -> Iterator[Visit]:
  """
  Lazily enumerates a tree in pre-order.

  Args:
      root: A node, or a sequence of statements.
      position: Position of a root node.

  Yields:
      Visit: Each node with its position.
  """
  if isinstance(root, (list, tuple)):
    items = tuple(root)
    stack = [Visit(item, STATEMENT_POSITION, items, i) for i, item in reversed(list(enumerate(items)))]
  else:
    stack = [Visit(root, position or Position(None, Context.CODE))]

  while stack:
    visit = stack.pop()
    yield visit
    node, context = visit.node, visit.position.context
    if context is Context.OPAQUE:
      continue

    children: List[Visit] = []
    for field, value in node_fields(node):
      if value is None:
        continue
      if isinstance(value, cst.CSTNode):
        children.append(Visit(value, child_position(node, field, value, context)))
        continue
      seq = tuple(value)
      run = seq if is_statement_run(node, field) else None
      for i, item in enumerate(seq):
        children.append(Visit(item, child_position(node, field, item, context), run, i))
    stack.extend(reversed(children))


def _clone_slots(node: cst.CSTNode) -> List[Tuple[str, Any]]:
  slots: List[Tuple[str, Any]] = []
  for field in dataclasses.fields(node):
    if field.name.startswith("_"):
      continue
    value = getattr(node, field.name)
    if isinstance(value, cst.CSTNode):
      slots.append((field.name, value))
    elif isinstance(value, (list, tuple)) and all(isinstance(item, cst.CSTNode) for item in value):
      slots.append((field.name, tuple(value)))
  return slots


def clone_tree(root: cst.CSTNode) -> cst.CSTNode:
  """
  Copies a tree node by node, formatting included.

  Equivalent to ``CSTNode.deep_clone`` but driven by an explicit stack, so
  arbitrarily deep trees can be copied. The copy shares no node with the input.

  Args:
      root: The tree to copy.

  Returns:
      cst.CSTNode: A tree equal by representation, distinct by identity.
  """
  # Each entry is a node and, once its children are scheduled, its slots
  work: List[Tuple[cst.CSTNode, Optional[List[Tuple[str, Any]]]]] = [(root, None)]
  built: List[cst.CSTNode] = []
  while work:
    node, slots = work.pop()
    if slots is None:
      slots = _clone_slots(node)
      work.append((node, slots))
      children: List[cst.CSTNode] = []
      for _, value in slots:
        children.extend(value if isinstance(value, tuple) else (value,))
      work.extend((child, None) for child in reversed(children))
      continue

    count = sum(len(value) if isinstance(value, tuple) else 1 for _, value in slots)
    copies = built[len(built) - count :]
    del built[len(built) - count :]
    changes = {}
    cursor = 0
    for name, value in slots:
      if isinstance(value, tuple):
        changes[name] = tuple(copies[cursor : cursor + len(value)])
        cursor += len(value)
      else:
        changes[name] = copies[cursor]
        cursor += 1
    built.append(node.with_changes(**changes))
  return built[0]
