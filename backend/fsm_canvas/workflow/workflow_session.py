"""
Workflow Session — the editing lifecycle around one open workflow.

``WorkflowSession`` holds the current ``UIWorkflowData`` of one tab and
routes every change through ``apply``, which decides whether the
change is history-worthy. ``WorkflowWorkspace`` manages the set of
open tabs, sharing one ``HistoryService`` between them and dropping a
workflow's history when its tab closes.
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Callable, Dict, List, Optional

from fsm_canvas.workflow.auto_layout import AutoLayoutEngine, auto_layout_workflow
from fsm_canvas.workflow.workflow_history import DEFAULT_DESCRIPTION, HistoryService
from fsm_canvas.workflow.workflow_model import UIWorkflowData
from fsm_canvas.workflow.workflow_store import WorkflowStore
from fsm_canvas.workflow.workflow_sync import WorkflowView, build_view

logger = getLogger(__name__)

_VOLATILE_LAYOUT_FIELDS = {"updated_at", "version"}


def has_meaningful_changes(before: UIWorkflowData, after: UIWorkflowData) -> bool:
    """True unless the two differ only in timestamps / layout version."""
    if before.configuration.model_dump() != after.configuration.model_dump():
        return True
    return (
        before.layout.model_dump(exclude=_VOLATILE_LAYOUT_FIELDS)
        != after.layout.model_dump(exclude=_VOLATILE_LAYOUT_FIELDS)
    )


class WorkflowSession:
    """Current state plus undo/redo for a single workflow."""

    def __init__(
        self,
        workflow: UIWorkflowData,
        history: Optional[HistoryService] = None,
        store: Optional[WorkflowStore] = None,
        layout_engine: Optional[AutoLayoutEngine] = None,
    ) -> None:
        self._workflow = workflow
        self.history = history or HistoryService()
        self.store = store
        self.layout_engine = layout_engine

    @property
    def workflow_id(self) -> str:
        return self._workflow.id

    @property
    def workflow(self) -> UIWorkflowData:
        return self._workflow

    # ── Updates ──

    def apply(
        self,
        workflow: UIWorkflowData,
        description: str = DEFAULT_DESCRIPTION,
        track_history: bool = True,
    ) -> bool:
        """Make ``workflow`` current; returns whether history was recorded.

        The prior state is recorded only when ``track_history`` is set
        and something other than timestamps changed.
        """
        if workflow.id != self._workflow.id:
            raise ValueError(
                f"Workflow id mismatch: session holds {self._workflow.id}, got {workflow.id}"
            )
        recorded = False
        if track_history and has_meaningful_changes(self._workflow, workflow):
            self.history.add_entry(self._workflow.id, self._workflow, description)
            recorded = True
        self._workflow = workflow
        return recorded

    def edit(
        self,
        operation: Callable[..., UIWorkflowData],
        *args: Any,
        description: str = DEFAULT_DESCRIPTION,
        **kwargs: Any,
    ) -> UIWorkflowData:
        """Run an editor operation against the current workflow and apply it.

        Example::

            session.edit(add_transition, "a", "b", description="Connected a to b")
        """
        result = operation(self._workflow, *args, **kwargs)
        if result is not self._workflow:
            self.apply(result, description)
        return self._workflow

    def undo(self) -> Optional[UIWorkflowData]:
        snapshot = self.history.undo(self._workflow.id, self._workflow)
        if snapshot is None:
            return None
        self.apply(snapshot, track_history=False)
        return snapshot

    def redo(self) -> Optional[UIWorkflowData]:
        snapshot = self.history.redo(self._workflow.id, self._workflow)
        if snapshot is None:
            return None
        self.apply(snapshot, track_history=False)
        return snapshot

    def auto_layout(self, description: str = "Applied auto-layout") -> UIWorkflowData:
        return self.edit(auto_layout_workflow, self.layout_engine, description=description)

    # ── Queries ──

    def can_undo(self) -> bool:
        return self.history.can_undo(self._workflow.id)

    def can_redo(self) -> bool:
        return self.history.can_redo(self._workflow.id)

    def get_undo_count(self) -> int:
        return self.history.get_undo_count(self._workflow.id)

    def get_redo_count(self) -> int:
        return self.history.get_redo_count(self._workflow.id)

    def view(self, resolve_handles: bool = False) -> WorkflowView:
        return build_view(self._workflow, resolve_handles=resolve_handles)

    # ── Persistence ──

    def save(self) -> None:
        if self.store is None:
            raise ValueError(f"Session {self._workflow.id} has no store attached")
        self.store.save(self._workflow)


class WorkflowWorkspace:
    """Open workflows ("tabs") sharing a single history service."""

    def __init__(
        self,
        store: Optional[WorkflowStore] = None,
        history: Optional[HistoryService] = None,
        layout_engine: Optional[AutoLayoutEngine] = None,
    ) -> None:
        self.store = store
        self.history = history or HistoryService()
        self.layout_engine = layout_engine
        self._sessions: Dict[str, WorkflowSession] = {}
        self._active_id: Optional[str] = None

    # ── Tabs ──

    def open(self, workflow: UIWorkflowData) -> WorkflowSession:
        """Open (or focus) a workflow and make it active."""
        session = self._sessions.get(workflow.id)
        if session is None:
            session = WorkflowSession(workflow, self.history, self.store, self.layout_engine)
            self._sessions[workflow.id] = session
            logger.info(f"Opened workflow {workflow.configuration.name} ({workflow.id})")
        self._active_id = workflow.id
        return session

    def open_from_store(self, workflow_id: str) -> Optional[WorkflowSession]:
        if self.store is None:
            raise ValueError("Workspace has no store attached")
        workflow = self.store.load(workflow_id)
        if workflow is None:
            logger.warning(f"Workflow {workflow_id} not found in store")
            return None
        return self.open(workflow)

    def get(self, workflow_id: str) -> Optional[WorkflowSession]:
        return self._sessions.get(workflow_id)

    def close(self, workflow_id: str) -> bool:
        """Close a tab and drop its history; focus moves to the right neighbour."""
        if workflow_id not in self._sessions:
            return False
        order = list(self._sessions)
        position = order.index(workflow_id)
        del self._sessions[workflow_id]
        self.history.drop(workflow_id)

        if self._active_id == workflow_id:
            remaining = list(self._sessions)
            self._active_id = remaining[min(position, len(remaining) - 1)] if remaining else None
        logger.info(f"Closed workflow {workflow_id}")
        return True

    def close_all(self) -> None:
        for workflow_id in list(self._sessions):
            self.close(workflow_id)

    # ── Active tab ──

    @property
    def active_workflow_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active(self) -> Optional[WorkflowSession]:
        return self._sessions.get(self._active_id) if self._active_id else None

    def set_active(self, workflow_id: str) -> None:
        if workflow_id not in self._sessions:
            raise ValueError(f"Workflow {workflow_id} is not open")
        self._active_id = workflow_id

    def workflow_ids(self) -> List[str]:
        return list(self._sessions)
