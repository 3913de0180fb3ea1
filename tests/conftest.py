# tests/conftest.py
import os

import pytest

from fsm_canvas.config import LayoutConfig, reset_configs
from fsm_canvas.workflow import (
    AutoLayoutEngine,
    CanvasLayout,
    LayoutState,
    LayoutTransitionEntry,
    Position,
    UIWorkflowData,
    WorkflowConfiguration,
    WorkflowStore,
)


@pytest.fixture(autouse=True)
def _fresh_configs(monkeypatch):
    """Every test starts from built-in config defaults."""
    for name in list(os.environ):
        if name.startswith("FSM_CANVAS_"):
            monkeypatch.delenv(name, raising=False)
    reset_configs()
    yield
    reset_configs()


@pytest.fixture()
def simple_configuration():
    """a --go--> b, the smallest interesting workflow."""
    return WorkflowConfiguration.model_validate({
        "version": "1.0",
        "name": "Simple",
        "initialState": "a",
        "states": {
            "a": {"transitions": [{"name": "go", "next": "b", "manual": False}]},
            "b": {"transitions": []},
        },
    })


@pytest.fixture()
def simple_workflow(simple_configuration):
    return UIWorkflowData(
        id="wf-simple",
        configuration=simple_configuration,
        layout=CanvasLayout(
            states=[
                LayoutState(id="a", position=Position(x=0, y=0)),
                LayoutState(id="b", position=Position(x=400, y=0)),
            ],
            transitions=[
                LayoutTransitionEntry(id="a-transition-0", label_position=Position(x=5, y=-5)),
            ],
        ),
    )


@pytest.fixture()
def fan_workflow():
    """a has three outgoing transitions whose label x equals their index."""
    configuration = WorkflowConfiguration.model_validate({
        "name": "Fan",
        "initialState": "a",
        "states": {
            "a": {"transitions": [
                {"name": "to_b", "next": "b", "manual": False},
                {"name": "to_c", "next": "c", "manual": False},
                {"name": "to_d", "next": "d", "manual": True},
            ]},
            "b": {"transitions": []},
            "c": {"transitions": []},
            "d": {"transitions": []},
        },
    })
    return UIWorkflowData(
        id="wf-fan",
        configuration=configuration,
        layout=CanvasLayout(
            states=[LayoutState(id=sid, position=Position(x=i * 300, y=0))
                    for i, sid in enumerate(["a", "b", "c", "d"])],
            transitions=[
                LayoutTransitionEntry(id=f"a-transition-{i}", label_position=Position(x=i, y=0))
                for i in range(3)
            ],
        ),
    )


@pytest.fixture()
def engine():
    """Seeded engine with default geometry."""
    return AutoLayoutEngine(config=LayoutConfig(), seed=7)


@pytest.fixture()
def store(tmp_path):
    return WorkflowStore(storage_dir=tmp_path / "workflows")
