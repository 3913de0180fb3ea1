# tests/test_workflow_history.py
import pytest

from fsm_canvas.workflow import HistoryService, move_state, rename_state


@pytest.fixture()
def history():
    return HistoryService(max_entries=50)


def test_undo_returns_recorded_snapshot_and_redo_returns_current(history, simple_workflow):
    before = simple_workflow
    after = rename_state(before, "b", "c")

    history.add_entry(before.id, before, "Renamed b")
    undone = history.undo(before.id, after)
    assert undone.model_dump() == before.model_dump()
    assert undone is not before

    redone = history.redo(before.id, undone)
    assert redone.model_dump() == after.model_dump()
    assert history.get_undo_count(before.id) == 1
    assert history.get_redo_count(before.id) == 0


def test_empty_stacks_return_none(history):
    assert history.undo("nothing") is None
    assert history.redo("nothing") is None
    assert not history.can_undo("nothing")
    assert not history.can_redo("nothing")
    # queries do not create entries
    assert history.workflow_ids() == []


def test_new_entry_clears_redo(history, simple_workflow):
    wid = simple_workflow.id
    history.add_entry(wid, simple_workflow, "one")
    history.undo(wid, simple_workflow)
    assert history.can_redo(wid)

    history.add_entry(wid, simple_workflow, "two")
    assert not history.can_redo(wid)
    assert history.get_undo_descriptions(wid) == ["two"]


def test_history_is_bounded(simple_workflow):
    history = HistoryService(max_entries=3)
    wid = simple_workflow.id
    for i in range(5):
        history.add_entry(wid, move_state(simple_workflow, "a", (i, i)), f"move {i}")

    assert history.get_undo_count(wid) == 3
    assert history.get_undo_descriptions(wid) == ["move 4", "move 3", "move 2"]
    oldest = None
    while history.can_undo(wid):
        oldest = history.undo(wid, simple_workflow)
    assert oldest.layout.get_state("a").position.x == 2
    assert history.get_redo_count(wid) == 3


def test_default_bound_comes_from_editor_config(monkeypatch):
    from fsm_canvas.config import reset_configs

    monkeypatch.setenv("FSM_CANVAS_HISTORY_MAX_ENTRIES", "7")
    reset_configs()
    assert HistoryService().max_entries == 7


def test_histories_are_isolated_per_workflow(history, simple_workflow, fan_workflow):
    history.add_entry(simple_workflow.id, simple_workflow, "simple edit")
    assert history.can_undo(simple_workflow.id)
    assert not history.can_undo(fan_workflow.id)
    assert history.undo(fan_workflow.id, fan_workflow) is None


def test_snapshots_are_copies(history, simple_workflow):
    snapshot = simple_workflow.model_copy(deep=True)
    history.add_entry(snapshot.id, snapshot, "edit")
    snapshot.configuration.name = "mutated afterwards"

    restored = history.undo(snapshot.id)
    assert restored.configuration.name == "Simple"
    # without a current state nothing is parked for redo
    assert not history.can_redo(snapshot.id)


def test_clear_and_drop(history, simple_workflow):
    wid = simple_workflow.id
    history.add_entry(wid, simple_workflow, "edit")
    history.clear(wid)
    assert history.get_undo_count(wid) == 0
    assert wid in history.workflow_ids()

    assert history.drop(wid) is True
    assert wid not in history.workflow_ids()
    assert history.drop(wid) is False
