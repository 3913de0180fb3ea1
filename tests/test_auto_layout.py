# tests/test_auto_layout.py
import pytest

from fsm_canvas.config import LayoutConfig
from fsm_canvas.workflow import (
    AutoLayoutEngine,
    LayoutTransitionEntry,
    Position,
    UIWorkflowData,
    WorkflowConfiguration,
    auto_layout_workflow,
    can_auto_layout,
    create_empty_workflow,
)
from fsm_canvas.workflow.auto_layout import INITIAL_MARKERS, TERMINAL_MARKERS, has_marker


def _states(spec):
    """Build a states mapping from {state: [targets]}."""
    return WorkflowConfiguration.model_validate({
        "states": {
            sid: {"transitions": [{"name": f"{sid}->{t}", "next": t} for t in targets]}
            for sid, targets in spec.items()
        },
    }).states


# ── Levels ──


def test_levels_scenario(engine, simple_configuration):
    assert engine.compute_levels(simple_configuration.states, "a") == {"a": 0, "b": 1}


def test_levels_use_shortest_path(engine):
    states = _states({"a": ["b", "c"], "b": ["c"], "c": []})
    assert engine.compute_levels(states, "a") == {"a": 0, "b": 1, "c": 1}


def test_cycles_terminate(engine):
    states = _states({"a": ["b"], "b": ["c"], "c": ["a"]})
    assert engine.compute_levels(states, "a") == {"a": 0, "b": 1, "c": 2}


def test_self_loops_do_not_create_levels(engine):
    states = _states({"a": ["a", "b"], "b": ["b"]})
    assert engine.compute_levels(states, "a") == {"a": 0, "b": 1}


def test_unreachable_states_get_their_own_levels(engine):
    states = _states({"a": ["b"], "b": [], "c": [], "d": ["c"]})
    assert engine.compute_levels(states, "a") == {"a": 0, "b": 1, "c": 2, "d": 3}


def test_terminal_like_states_trail(engine):
    states = _states({"start": ["done", "work"], "work": [], "done": []})
    levels = engine.compute_levels(states, "start")
    assert levels["start"] == 0
    assert levels["work"] == 1
    assert levels["done"] == 2


def test_missing_initial_falls_back_to_first_state(engine):
    states = _states({"x": ["y"], "y": []})
    assert engine.compute_levels(states, "nope") == {"x": 0, "y": 1}
    assert engine.compute_levels(states, None)["x"] == 0


def test_empty_graph(engine):
    assert engine.compute_levels({}, "a") == {}
    assert engine.layout({}, None) == {}


@pytest.mark.parametrize("state_id, markers, expected", [
    ("order_completed", TERMINAL_MARKERS, True),
    ("isDone", TERMINAL_MARKERS, True),
    ("closed", TERMINAL_MARKERS, True),
    ("pending", TERMINAL_MARKERS, False),
    ("newOrder", INITIAL_MARKERS, True),
    ("renew", INITIAL_MARKERS, False),
    ("draft-v2", INITIAL_MARKERS, True),
])
def test_has_marker(state_id, markers, expected):
    assert has_marker(state_id, markers) is expected


# ── Positions ──


def test_layout_scenario(engine, simple_configuration):
    positions = engine.layout(simple_configuration.states, "a")
    assert set(positions) == {"a", "b"}
    assert positions["b"].x > positions["a"].x


def test_layout_covers_unreachable_states(engine):
    states = _states({"a": ["b"], "b": [], "island": [], "other": ["island"]})
    positions = engine.layout(states, "a")
    assert set(positions) == {"a", "b", "island", "other"}


def test_seeded_layout_is_reproducible(simple_configuration):
    first = AutoLayoutEngine(LayoutConfig(), seed=3).layout(simple_configuration.states, "a")
    second = AutoLayoutEngine(LayoutConfig(), seed=3).layout(simple_configuration.states, "a")
    assert first == second


def test_final_states_sort_first_within_level():
    engine = AutoLayoutEngine(LayoutConfig(jitter=0), seed=1)
    states = _states({"a": ["c", "b"], "c": ["d"], "b": [], "d": []})
    positions = engine.layout(states, "a")
    assert positions["b"].y < positions["c"].y


def test_optimize_separates_coincident_nodes():
    engine = AutoLayoutEngine(LayoutConfig())
    result = engine.optimize_positions({"a": Position(x=0, y=0), "b": Position(x=0, y=0)})
    assert result["a"] == Position(x=0, y=-90)
    assert result["b"] == Position(x=0, y=90)


def test_back_edges_push_by_slot_parity():
    engine = AutoLayoutEngine(LayoutConfig(jitter=0, optimize_passes=0))
    # level 1 holds c (slot 0, final) and b (slot 1, back edge to a)
    states = _states({"a": ["b", "c"], "b": ["a"], "c": []})
    positions = engine.layout(states, "a")

    assert positions["a"] == Position(x=0, y=0)
    assert positions["c"] == Position(x=300, y=-75)
    assert positions["b"] == Position(x=300, y=75 - 60)


def test_self_loops_push_even_slots_down():
    engine = AutoLayoutEngine(LayoutConfig(jitter=0, optimize_passes=0))
    positions = engine.layout(_states({"a": ["a", "b"], "b": []}), "a")

    assert positions["a"] == Position(x=0, y=60)
    assert positions["b"] == Position(x=300, y=0)


def test_optimize_pulls_nearby_nodes_together():
    engine = AutoLayoutEngine(LayoutConfig(optimize_passes=1))
    result = engine.optimize_positions({"a": Position(x=0, y=0), "b": Position(x=250, y=0)})
    # (250 - 180) * 0.05 / 2 moved from each side
    assert result == {"a": Position(x=2, y=0), "b": Position(x=248, y=0)}


def test_optimize_runs_exactly_the_configured_passes():
    pair = {"a": Position(x=0, y=0), "b": Position(x=250, y=0)}
    once = AutoLayoutEngine(LayoutConfig(optimize_passes=1)).optimize_positions(pair)
    twice = AutoLayoutEngine(LayoutConfig(optimize_passes=2)).optimize_positions(pair)

    assert once != twice
    assert twice == {"a": Position(x=3, y=0), "b": Position(x=247, y=0)}


def test_optimize_with_zero_passes_only_rounds():
    engine = AutoLayoutEngine(LayoutConfig(optimize_passes=0))
    result = engine.optimize_positions({"a": Position(x=0.4, y=0), "b": Position(x=1.6, y=0)})
    assert result == {"a": Position(x=0, y=0), "b": Position(x=2, y=0)}


def test_optimize_pulls_vertical_outliers_back():
    engine = AutoLayoutEngine(LayoutConfig(max_vertical_spread=100, vertical_pullback=0.5, optimize_passes=1))
    result = engine.optimize_positions({
        "a": Position(x=0, y=0),
        "b": Position(x=1000, y=1000),
        "c": Position(x=2000, y=-1000),
    })
    assert result["a"].y == 0
    assert result["b"].y == 550
    assert result["c"].y == -550


# ── Workflow helpers ──


def test_can_auto_layout(simple_workflow):
    assert can_auto_layout(simple_workflow)
    assert not can_auto_layout(create_empty_workflow())
    assert not can_auto_layout(None)


def test_auto_layout_workflow(simple_workflow, engine):
    workflow = simple_workflow.model_copy(deep=True)
    workflow.layout.states[0].properties = {"color": "blue"}
    workflow.layout.transitions[0].source_handle = "bottom-center-source"
    workflow.layout.transitions.append(LayoutTransitionEntry(id="a-transition-9"))

    arranged = auto_layout_workflow(workflow, engine)

    assert [s.id for s in arranged.layout.states] == ["a", "b"]
    assert arranged.layout.get_state("a").properties == {"color": "blue"}
    entry = arranged.layout.get_transition("a-transition-0")
    assert entry.source_handle is None
    assert entry.label_position == Position(x=5, y=-5)
    assert arranged.layout.get_transition("a-transition-9") is None
    assert arranged.layout.version > workflow.layout.version
    assert arranged.configuration == workflow.configuration
    # input untouched
    assert workflow.layout.transitions[0].source_handle == "bottom-center-source"


def test_auto_layout_empty_workflow_is_noop(engine):
    empty = create_empty_workflow()
    assert auto_layout_workflow(empty, engine) is empty
    assert isinstance(empty, UIWorkflowData)
    assert auto_layout_workflow(None, engine) is None
