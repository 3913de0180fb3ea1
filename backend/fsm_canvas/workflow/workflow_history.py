"""
Workflow History — per-workflow undo/redo over whole snapshots.

Each workflow id owns a bounded pair of stacks. ``add_entry`` stores
the state *before* a user-intentional edit and invalidates redo;
``undo`` hands back that snapshot and parks the caller's current state
on the redo stack. Stacks are keyed strictly by workflow id so open
tabs never share history, and ``drop`` tears one down when its tab
closes. Snapshots are deep copies in both directions so a caller
mutating a returned workflow cannot corrupt the history.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from logging import getLogger
from typing import Deque, Dict, List, Optional

from fsm_canvas.config import EditorConfig, get_config
from fsm_canvas.workflow.workflow_model import UIWorkflowData, utc_now

logger = getLogger(__name__)

DEFAULT_DESCRIPTION = "Workflow updated"


@dataclass
class HistoryEntry:
    workflow: UIWorkflowData
    description: str = DEFAULT_DESCRIPTION
    timestamp: str = field(default_factory=utc_now)


class WorkflowHistory:
    """Undo/redo stacks for a single workflow."""

    def __init__(self, max_entries: int):
        self.max_entries = max(1, max_entries)
        self.undo_stack: Deque[HistoryEntry] = deque(maxlen=self.max_entries)
        self.redo_stack: Deque[HistoryEntry] = deque(maxlen=self.max_entries)

    def record(self, snapshot: UIWorkflowData, description: str) -> None:
        self.undo_stack.append(HistoryEntry(snapshot.model_copy(deep=True), description))
        self.redo_stack.clear()

    def undo(self, current: Optional[UIWorkflowData]) -> Optional[HistoryEntry]:
        if not self.undo_stack:
            return None
        entry = self.undo_stack.pop()
        if current is not None:
            self.redo_stack.append(HistoryEntry(current.model_copy(deep=True), entry.description))
        return entry

    def redo(self, current: Optional[UIWorkflowData]) -> Optional[HistoryEntry]:
        if not self.redo_stack:
            return None
        entry = self.redo_stack.pop()
        if current is not None:
            self.undo_stack.append(HistoryEntry(current.model_copy(deep=True), entry.description))
        return entry

    def clear(self) -> None:
        self.undo_stack.clear()
        self.redo_stack.clear()


class HistoryService:
    """Registry of ``WorkflowHistory`` keyed by workflow id.

    Owned by whichever component manages open workflows (see
    ``WorkflowWorkspace``) rather than held in a module singleton.
    """

    def __init__(self, max_entries: Optional[int] = None):
        if max_entries is None:
            max_entries = get_config(EditorConfig).history_max_entries
        self.max_entries = max(1, max_entries)
        self._histories: Dict[str, WorkflowHistory] = {}

    def _history(self, workflow_id: str) -> WorkflowHistory:
        history = self._histories.get(workflow_id)
        if history is None:
            history = WorkflowHistory(self.max_entries)
            self._histories[workflow_id] = history
        return history

    # ── Recording ──

    def add_entry(
        self,
        workflow_id: str,
        snapshot: UIWorkflowData,
        description: str = DEFAULT_DESCRIPTION,
    ) -> None:
        """Record the pre-edit ``snapshot``; clears the redo stack."""
        self._history(workflow_id).record(snapshot, description)
        logger.debug(f"[{workflow_id}] history += {description!r}")

    def undo(
        self,
        workflow_id: str,
        current: Optional[UIWorkflowData] = None,
    ) -> Optional[UIWorkflowData]:
        """Pop the last snapshot; ``current`` (the state being replaced) goes to redo.

        Returns ``None`` when there is nothing to undo.
        """
        history = self._histories.get(workflow_id)
        entry = history.undo(current) if history else None
        if entry is None:
            return None
        logger.debug(f"[{workflow_id}] undo {entry.description!r}")
        return entry.workflow.model_copy(deep=True)

    def redo(
        self,
        workflow_id: str,
        current: Optional[UIWorkflowData] = None,
    ) -> Optional[UIWorkflowData]:
        history = self._histories.get(workflow_id)
        entry = history.redo(current) if history else None
        if entry is None:
            return None
        logger.debug(f"[{workflow_id}] redo {entry.description!r}")
        return entry.workflow.model_copy(deep=True)

    # ── Queries ──

    def can_undo(self, workflow_id: str) -> bool:
        return self.get_undo_count(workflow_id) > 0

    def can_redo(self, workflow_id: str) -> bool:
        return self.get_redo_count(workflow_id) > 0

    def get_undo_count(self, workflow_id: str) -> int:
        history = self._histories.get(workflow_id)
        return len(history.undo_stack) if history else 0

    def get_redo_count(self, workflow_id: str) -> int:
        history = self._histories.get(workflow_id)
        return len(history.redo_stack) if history else 0

    def get_undo_descriptions(self, workflow_id: str) -> List[str]:
        """Descriptions of undoable edits, most recent first."""
        history = self._histories.get(workflow_id)
        if history is None:
            return []
        return [entry.description for entry in reversed(history.undo_stack)]

    def workflow_ids(self) -> List[str]:
        return list(self._histories)

    # ── Teardown ──

    def clear(self, workflow_id: str) -> None:
        history = self._histories.get(workflow_id)
        if history is not None:
            history.clear()

    def drop(self, workflow_id: str) -> bool:
        """Forget a workflow's history entirely (tab closed)."""
        removed = self._histories.pop(workflow_id, None) is not None
        if removed:
            logger.debug(f"[{workflow_id}] history dropped")
        return removed
