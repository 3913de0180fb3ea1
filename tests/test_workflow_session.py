# tests/test_workflow_session.py
import pytest

from fsm_canvas.workflow import (
    HistoryService,
    WorkflowSession,
    WorkflowWorkspace,
    add_state,
    add_transition,
    delete_state,
)
from fsm_canvas.workflow.workflow_session import has_meaningful_changes


def test_edit_records_history_and_undo_redo(simple_workflow):
    session = WorkflowSession(simple_workflow, HistoryService(max_entries=10))

    session.edit(add_transition, "b", "a", description="Connected b to a")
    assert session.can_undo()
    assert session.history.get_undo_descriptions(session.workflow_id) == ["Connected b to a"]
    assert len(session.workflow.configuration.states["b"].transitions) == 1

    restored = session.undo()
    assert restored.configuration == simple_workflow.configuration
    assert session.workflow.configuration.states["b"].transitions == []
    assert session.can_redo()
    # undo itself is not recorded
    assert session.get_undo_count() == 0

    session.redo()
    assert len(session.workflow.configuration.states["b"].transitions) == 1
    assert session.get_undo_count() == 1
    assert session.get_redo_count() == 0


def test_noop_edits_are_not_recorded(simple_workflow):
    session = WorkflowSession(simple_workflow, HistoryService())
    session.edit(delete_state, "ghost", description="Delete ghost")
    assert not session.can_undo()
    assert session.workflow is simple_workflow


def test_timestamp_only_changes_are_not_recorded(simple_workflow):
    session = WorkflowSession(simple_workflow, HistoryService())
    touched = simple_workflow.model_copy(deep=True)
    touched.touch()
    touched.layout.touch()

    assert not has_meaningful_changes(simple_workflow, touched)
    assert session.apply(touched, "Recompute") is False
    assert session.workflow is touched
    assert not session.can_undo()


def test_apply_without_tracking(simple_workflow):
    session = WorkflowSession(simple_workflow, HistoryService())
    assert session.apply(add_state(simple_workflow), track_history=False) is False
    assert not session.can_undo()


def test_apply_rejects_foreign_workflow(simple_workflow, fan_workflow):
    session = WorkflowSession(simple_workflow, HistoryService())
    with pytest.raises(ValueError):
        session.apply(fan_workflow)


def test_undo_on_fresh_session(simple_workflow):
    session = WorkflowSession(simple_workflow, HistoryService())
    assert session.undo() is None
    assert session.redo() is None
    assert session.workflow is simple_workflow


def test_view_and_auto_layout(simple_workflow, engine):
    session = WorkflowSession(simple_workflow, HistoryService(), layout_engine=engine)
    assert [s.id for s in session.view().states] == ["a", "b"]

    session.auto_layout()
    assert session.can_undo()
    positions = {s.id: s.position for s in session.view().states}
    assert positions["b"].x > positions["a"].x


def test_save_requires_store(simple_workflow, store):
    with pytest.raises(ValueError):
        WorkflowSession(simple_workflow, HistoryService()).save()

    WorkflowSession(simple_workflow, HistoryService(), store=store).save()
    assert store.exists(simple_workflow.id)


# ── Workspace ──


def test_workspace_tabs(simple_workflow, fan_workflow):
    workspace = WorkflowWorkspace(history=HistoryService())
    first = workspace.open(simple_workflow)
    workspace.open(fan_workflow)
    assert workspace.active_workflow_id == fan_workflow.id
    assert workspace.open(simple_workflow) is first
    assert workspace.active_workflow_id == simple_workflow.id
    assert workspace.workflow_ids() == [simple_workflow.id, fan_workflow.id]


def test_workspace_close_drops_history(simple_workflow, fan_workflow):
    workspace = WorkflowWorkspace(history=HistoryService())
    session = workspace.open(simple_workflow)
    workspace.open(fan_workflow)
    session.edit(add_state, "extra")
    workspace.set_active(simple_workflow.id)

    assert workspace.close(simple_workflow.id) is True
    assert simple_workflow.id not in workspace.history.workflow_ids()
    assert workspace.active_workflow_id == fan_workflow.id
    assert workspace.get(simple_workflow.id) is None
    assert workspace.close(simple_workflow.id) is False

    workspace.close_all()
    assert workspace.active_workflow_id is None
    assert workspace.active is None


def test_workspace_open_from_store(simple_workflow, store):
    store.save(simple_workflow)
    workspace = WorkflowWorkspace(store=store, history=HistoryService())

    session = workspace.open_from_store(simple_workflow.id)
    assert session.workflow.configuration == simple_workflow.configuration
    assert workspace.open_from_store("missing") is None

    with pytest.raises(ValueError):
        workspace.set_active("missing")
    with pytest.raises(ValueError):
        WorkflowWorkspace(history=HistoryService()).open_from_store("x")
