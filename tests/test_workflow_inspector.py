# tests/test_workflow_inspector.py
import pytest

from fsm_canvas.workflow import (
    add_state,
    create_order_lifecycle_template,
    get_workflow_stats,
    inspect_workflow,
)


@pytest.fixture()
def order_report(engine):
    return inspect_workflow(create_order_lifecycle_template(), engine)


def test_order_template_stats():
    stats = get_workflow_stats(create_order_lifecycle_template().configuration)
    assert stats == {
        "total_states": 7,
        "total_transitions": 9,
        "terminal_states": 2,
        "conditional_transitions": 2,
        "self_loops": 1,
        "total_processors": 2,
        "manual_transitions": 4,
        "automatic_transitions": 5,
    }


def test_summary(order_report):
    summary = order_report["summary"]
    assert summary["workflow_id"] == "template-order-lifecycle"
    assert summary["initial_state"] == "draft"
    assert summary["depth"] == 5
    assert summary["unreachable_states"] == 0
    assert summary["is_valid"] is True
    assert summary["total_states"] == 7


def test_state_details(order_report):
    by_id = {d["id"]: d for d in order_report["states"]}
    assert {sid: d["level"] for sid, d in by_id.items()} == {
        "draft": 0,
        "submitted": 1,
        "paid": 2,
        "cancelled": 2,
        "shipped": 3,
        "delivered": 4,
        "returned": 4,
    }
    assert by_id["draft"]["role"] == "initial"
    assert by_id["delivered"]["role"] == "final"
    assert by_id["paid"]["role"] == "intermediate"
    # capture_payment and restock
    assert by_id["paid"]["incoming"] == 2
    assert by_id["submitted"]["outgoing"] == 3


def test_transition_directions(order_report):
    by_name = {d["name"]: d for d in order_report["transitions"]}
    assert by_name["retry_payment"]["direction"] == "self_loop"
    assert by_name["restock"]["direction"] == "backward"
    assert by_name["submit"]["direction"] == "forward"
    assert by_name["restock"]["criterion_type"] == "group"
    assert by_name["capture_payment"]["processors"] == ["charge_card"]
    assert by_name["capture_payment"]["id"] == "submitted-transition-0"
    assert by_name["submit"]["manual"] is True


def test_unreachable_states_are_reported(simple_workflow, engine):
    report = inspect_workflow(add_state(simple_workflow, "island"), engine)
    assert report["summary"]["unreachable_states"] == 1
    island = next(d for d in report["states"] if d["id"] == "island")
    assert island["reachable"] is False
    assert island["level"] == 2
    assert report["validation"]["valid"] is True
    assert report["validation"]["warnings"][0]["path"] == "states.island"


def test_dangling_transition_is_invalid(simple_workflow, engine):
    broken = simple_workflow.model_copy(deep=True)
    broken.configuration.states["b"].transitions.append(
        broken.configuration.states["a"].transitions[0].model_copy(update={"next": "ghost"})
    )
    report = inspect_workflow(broken, engine)
    assert report["transitions"][-1]["direction"] == "dangling"
    assert report["summary"]["is_valid"] is False
    assert report["validation"]["errors"][0]["path"] == "states.b.transitions[0].next"
