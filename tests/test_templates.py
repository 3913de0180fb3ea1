# tests/test_templates.py
import pytest

from fsm_canvas.workflow import (
    build_view,
    cleanup_workflow_state,
    install_templates,
    validate_configuration,
)
from fsm_canvas.workflow.templates import ALL_TEMPLATES


@pytest.mark.parametrize("factory", ALL_TEMPLATES)
def test_templates_are_valid(factory):
    workflow = factory()
    result = validate_configuration(workflow.configuration)
    assert result.is_valid, result.to_dict()
    assert result.warnings == []


@pytest.mark.parametrize("factory", ALL_TEMPLATES)
def test_template_layouts_are_consistent(factory):
    workflow = factory()
    assert cleanup_workflow_state(workflow) is workflow
    assert [s.id for s in workflow.layout.states] == list(workflow.configuration.states)


def test_order_template_self_loop_label():
    workflow = ALL_TEMPLATES[0]()
    view = build_view(workflow)
    retry = view.get_transition("submitted-transition-1")
    assert retry.is_loopback
    assert retry.definition.name == "retry_payment"
    assert retry.label_position.x == 30


def test_templates_are_fresh_objects():
    assert ALL_TEMPLATES[1]() is not ALL_TEMPLATES[1]()


def test_install_templates(store):
    assert install_templates(store) == 2
    assert sorted(w.id for w in store.list_all()) == ["template-approval", "template-order-lifecycle"]
    # reinstalling overwrites rather than duplicating
    assert install_templates(store) == 2
    assert len(store.list_all()) == 2
