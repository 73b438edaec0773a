"""
Rewrite Trace Logger.

Records the step-by-step execution of a refactoring session:
1. Lifecycle Phases (Parsing, one phase per rule).
2. Matches (pattern found, with its bindings).
3. Rewrites (matched code before and after substitution).

The output is a structured list of event dictionaries suitable for JSON serialization.
"""

import time
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class TraceEventType(str, Enum):
  PHASE_START = "phase_start"
  PHASE_END = "phase_end"
  MATCH = "match"
  REWRITE = "rewrite"
  WARNING = "warning"


@dataclass
class TraceEvent:
  id: str
  type: TraceEventType
  timestamp: float
  description: str
  parent_id: Optional[str] = None
  metadata: Dict[str, Any] = field(default_factory=dict)


class TraceLogger:
  """
  Records session events. Owned by one engine run.

  Phases nest: every event's ``parent_id`` is the innermost open phase, and a
  phase end points back at the phase it closes.
  """

  def __init__(self):
    self._events: List[TraceEvent] = []
    self._open_phases: List[str] = []

  @property
  def depth(self) -> int:
    """Number of phases currently open."""
    return len(self._open_phases)

  def start_phase(self, name: str, description: str = "") -> str:
    """Opens a phase (e.g. 'Rule: rename-helper') and returns its ID."""
    event = self._record(TraceEventType.PHASE_START, name, {"detail": description})
    self._open_phases.append(event.id)
    return event.id

  def end_phase(self):
    """Closes the innermost phase. Unbalanced calls are ignored."""
    if self._open_phases:
      closed = self._open_phases.pop()
      self._record(TraceEventType.PHASE_END, "End Phase", {}, parent_id=closed)

  def log_match(self, rule: str, matched: str, bindings: Dict[str, str]):
    """Logs a pattern match with its rendered bindings."""
    self._record(TraceEventType.MATCH, f"Matched {rule}", {"rule": rule, "matched": matched, "bindings": bindings})

  def log_rewrite(self, rule: str, before: str, after: str):
    self._record(TraceEventType.REWRITE, f"Rewrote {rule}", {"before": before, "after": after})

  def log_warning(self, message: str):
    self._record(TraceEventType.WARNING, message, {"level": "warning"})

  def _record(
    self, evt_type: TraceEventType, desc: str, meta: Dict[str, Any], parent_id: Optional[str] = None
  ) -> TraceEvent:
    if parent_id is None and self._open_phases:
      parent_id = self._open_phases[-1]
    event = TraceEvent(
      id=uuid.uuid4().hex,
      type=evt_type,
      timestamp=time.time(),
      description=desc,
      parent_id=parent_id,
      metadata=meta,
    )
    self._events.append(event)
    return event

  def export(self) -> List[Dict[str, Any]]:
    """Returns the events as plain dicts, ready for ``json.dump``."""
    return [asdict(e) for e in self._events]
