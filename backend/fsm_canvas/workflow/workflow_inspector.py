"""
Workflow Inspector — structured report of a workflow's states and
transitions.

Produces the statistics shown in the editor's stats panel and a
per-state / per-transition breakdown (levels as auto-layout sees
them, roles, wiring) together with the schema validation result.
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Dict, List, Optional, Set

from fsm_canvas.workflow.auto_layout import AutoLayoutEngine
from fsm_canvas.workflow.transition_ids import generate_transition_id
from fsm_canvas.workflow.workflow_model import UIWorkflowData, WorkflowConfiguration
from fsm_canvas.workflow.workflow_validation import validate_configuration

logger = getLogger(__name__)


# ====================================================================
# Statistics
# ====================================================================


def get_workflow_stats(configuration: WorkflowConfiguration) -> Dict[str, int]:
    stats = {
        "total_states": len(configuration.states),
        "total_transitions": 0,
        "terminal_states": 0,
        "conditional_transitions": 0,
        "self_loops": 0,
        "total_processors": 0,
        "manual_transitions": 0,
        "automatic_transitions": 0,
    }
    for state_id, state in configuration.states.items():
        if state.is_final:
            stats["terminal_states"] += 1
        stats["total_transitions"] += len(state.transitions)
        for transition in state.transitions:
            stats["total_processors"] += len(transition.processors or [])
            if transition.is_conditional:
                stats["conditional_transitions"] += 1
            if transition.next == state_id:
                stats["self_loops"] += 1
            if transition.manual:
                stats["manual_transitions"] += 1
            else:
                stats["automatic_transitions"] += 1
    return stats


# ====================================================================
# Public API
# ====================================================================


def inspect_workflow(
    workflow: UIWorkflowData,
    engine: Optional[AutoLayoutEngine] = None,
) -> Dict[str, Any]:
    """Inspect a workflow and produce a report.

    Returns a dict containing:
        - ``summary``    : High-level stats
        - ``states``     : Per-state detail list
        - ``transitions``: Per-transition detail list
        - ``validation`` : Validation result
    """
    configuration = workflow.configuration
    initial_state = configuration.resolve_initial_state()
    engine = engine or AutoLayoutEngine()
    levels = engine.compute_levels(configuration.states, initial_state)
    reachable = _reachable_from(configuration, initial_state)
    validation = validate_configuration(configuration)

    state_details = _build_state_details(configuration, initial_state, levels, reachable)
    transition_details = _build_transition_details(configuration, levels)

    return {
        "summary": {
            "workflow_name": configuration.name,
            "workflow_id": workflow.id,
            "initial_state": initial_state,
            "depth": max(levels.values(), default=-1) + 1,
            "unreachable_states": sum(1 for d in state_details if not d["reachable"]),
            "layout_version": workflow.layout.version,
            "is_valid": validation.is_valid,
            **get_workflow_stats(configuration),
        },
        "states": state_details,
        "transitions": transition_details,
        "validation": {
            "valid": validation.is_valid,
            "errors": [issue.to_dict() for issue in validation.errors],
            "warnings": [issue.to_dict() for issue in validation.warnings],
        },
    }


# ====================================================================
# Detail builders
# ====================================================================


def _reachable_from(configuration: WorkflowConfiguration, initial_state: Optional[str]) -> Set[str]:
    if initial_state is None:
        return set()
    seen = {initial_state}
    stack = [initial_state]
    while stack:
        state = configuration.states.get(stack.pop())
        if state is None:
            continue
        for transition in state.transitions:
            if transition.next in configuration.states and transition.next not in seen:
                seen.add(transition.next)
                stack.append(transition.next)
    return seen


def _build_state_details(
    configuration: WorkflowConfiguration,
    initial_state: Optional[str],
    levels: Dict[str, int],
    reachable: Set[str],
) -> List[Dict[str, Any]]:
    details = []
    for state_id, state in configuration.states.items():
        if state_id == initial_state:
            role = "initial"
        elif state.is_final:
            role = "final"
        else:
            role = "intermediate"
        details.append({
            "id": state_id,
            "name": state.name or state_id,
            "role": role,
            "level": levels.get(state_id),
            "reachable": state_id in reachable,
            "outgoing": len(state.transitions),
            "incoming": len(configuration.get_transitions_to(state_id)),
        })
    return details


def _build_transition_details(
    configuration: WorkflowConfiguration,
    levels: Dict[str, int],
) -> List[Dict[str, Any]]:
    details = []
    for state_id, state in configuration.states.items():
        for index, transition in enumerate(state.transitions):
            target_level = levels.get(transition.next)
            if transition.next == state_id:
                direction = "self_loop"
            elif target_level is None:
                direction = "dangling"
            elif target_level <= levels[state_id]:
                direction = "backward"
            else:
                direction = "forward"
            details.append({
                "id": generate_transition_id(state_id, index),
                "name": transition.name,
                "source": state_id,
                "target": transition.next,
                "direction": direction,
                "manual": transition.manual,
                "disabled": bool(transition.disabled),
                "conditional": transition.is_conditional,
                "criterion_type": transition.criterion.type if transition.criterion else None,
                "processors": [p.name for p in transition.processors or []],
            })
    return details
