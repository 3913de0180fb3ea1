"""
Workflow Sync — reconcile the layout with the configuration and derive
view records for rendering.

The configuration is authoritative. Layout entries are derived
metadata: any entry that no longer refers to an existing state or
transition is pruned here without raising.

Every function is pure: it returns a new ``UIWorkflowData`` (or the
same object when nothing changed) and never mutates its input.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import Dict, List, Mapping, Optional, Set

from fsm_canvas.config import EditorConfig, get_config
from fsm_canvas.workflow.edge_handles import resolve_edge_handles
from fsm_canvas.workflow.transition_ids import (
    generate_layout_transition_id,
    generate_transition_id,
    migrate_layout_transition_id,
    parse_transition_id,
    resolve_layout_transition_id,
    validate_transition_exists,
)
from fsm_canvas.workflow.workflow_model import (
    LayoutState,
    LayoutTransitionEntry,
    Position,
    StateDefinition,
    UIStateData,
    UITransitionData,
    UIWorkflowData,
)

logger = getLogger(__name__)

DEFAULT_POSITION = Position(x=100, y=100)


# ============================================================================
# Reconciliation
# ============================================================================


def is_layout_transition_valid(
    layout_id: str,
    states: Mapping[str, StateDefinition],
) -> bool:
    """Whether a layout transition entry still refers to something real.

    Canonical ids must resolve to an existing transition; legacy
    endpoint ids only need both endpoint states to exist.
    """
    if parse_transition_id(layout_id) is not None:
        return validate_transition_exists(layout_id, states)
    return resolve_layout_transition_id(layout_id, states) is not None


def cleanup_workflow_state(workflow: UIWorkflowData) -> UIWorkflowData:
    """Prune layout entries that no longer match the configuration.

    Idempotent; returns ``workflow`` itself when nothing is stale.
    """
    states = workflow.configuration.states
    layout = workflow.layout

    kept_states = [s for s in layout.states if s.id in states]
    kept_transitions = [
        t for t in layout.transitions if is_layout_transition_valid(t.id, states)
    ]

    removed_states = len(layout.states) - len(kept_states)
    removed_transitions = len(layout.transitions) - len(kept_transitions)
    if not removed_states and not removed_transitions:
        return workflow

    logger.debug(
        f"[{workflow.id}] cleanup pruned {removed_states} state and "
        f"{removed_transitions} transition layout entries"
    )
    cleaned_layout = layout.model_copy(update={
        "states": kept_states,
        "transitions": kept_transitions,
    })
    return workflow.model_copy(update={"layout": cleaned_layout})


def backfill_layout(
    workflow: UIWorkflowData,
    config: Optional[EditorConfig] = None,
) -> UIWorkflowData:
    """Give every configuration state without a layout entry a grid position."""
    cfg = config or get_config(EditorConfig)
    placed: Set[str] = {s.id for s in workflow.layout.states}
    missing = [sid for sid in workflow.configuration.states if sid not in placed]
    if not missing:
        return workflow

    new_entries = []
    for index, state_id in enumerate(missing):
        x, y = cfg.grid_position(index)
        new_entries.append(LayoutState(id=state_id, position=Position(x=x, y=y), properties={}))

    layout = workflow.layout.model_copy(update={
        "states": list(workflow.layout.states) + new_entries,
    })
    return workflow.model_copy(update={"layout": layout})


def migrate_legacy_layout(workflow: UIWorkflowData) -> UIWorkflowData:
    """Re-key legacy ``source-to-target`` layout entries to canonical ids.

    Entries that cannot be migrated, or whose canonical id already has
    an entry, are dropped.
    """
    states = workflow.configuration.states
    taken: Set[str] = {
        t.id for t in workflow.layout.transitions if parse_transition_id(t.id) is not None
    }
    migrated: List[LayoutTransitionEntry] = []
    changed = False

    for entry in workflow.layout.transitions:
        if parse_transition_id(entry.id) is not None:
            migrated.append(entry)
            continue
        changed = True
        canonical = migrate_layout_transition_id(entry.id, states)
        if canonical is None or canonical in taken:
            logger.debug(f"[{workflow.id}] dropping legacy layout entry {entry.id}")
            continue
        taken.add(canonical)
        migrated.append(entry.model_copy(update={"id": canonical}))

    if not changed:
        return workflow
    layout = workflow.layout.model_copy(update={"transitions": migrated})
    return workflow.model_copy(update={"layout": layout})


# ============================================================================
# Derivation
# ============================================================================


def derive_transitions(workflow: UIWorkflowData) -> List[UITransitionData]:
    """Build one view record per transition, in configuration order.

    Layout metadata is looked up under the canonical id first and the
    legacy endpoint id second.
    """
    layout_by_id: Dict[str, LayoutTransitionEntry] = {
        t.id: t for t in workflow.layout.transitions
    }
    transitions: List[UITransitionData] = []

    for source_id, state in workflow.configuration.states.items():
        for index, definition in enumerate(state.transitions):
            transition_id = generate_transition_id(source_id, index)
            layout = layout_by_id.get(transition_id) or layout_by_id.get(
                generate_layout_transition_id(source_id, definition.next)
            )
            transitions.append(UITransitionData(
                id=transition_id,
                source_state_id=source_id,
                target_state_id=definition.next,
                definition=definition,
                position=layout.position if layout else None,
                size=layout.size if layout else None,
                label_position=layout.label_position if layout else None,
                source_handle=layout.source_handle if layout else None,
                target_handle=layout.target_handle if layout else None,
                is_loopback=definition.next == source_id,
            ))

    return transitions


def derive_states(
    workflow: UIWorkflowData,
    transitions: List[UITransitionData],
) -> List[UIStateData]:
    layout_by_id: Dict[str, LayoutState] = {s.id: s for s in workflow.layout.states}
    initial_state = workflow.configuration.resolve_initial_state()

    transition_ids: Dict[str, List[str]] = {}
    for transition in transitions:
        transition_ids.setdefault(transition.source_state_id, []).append(transition.id)

    result: List[UIStateData] = []
    for state_id, definition in workflow.configuration.states.items():
        layout = layout_by_id.get(state_id)
        result.append(UIStateData(
            id=state_id,
            name=definition.name or state_id,
            position=layout.position if layout else DEFAULT_POSITION.model_copy(),
            properties=layout.properties if layout else None,
            is_initial=state_id == initial_state,
            is_final=definition.is_final,
            transition_ids=transition_ids.get(state_id, []),
        ))
    return result


@dataclass
class WorkflowView:
    """Reconciled, render-ready records for one workflow."""

    workflow: UIWorkflowData
    states: List[UIStateData] = field(default_factory=list)
    transitions: List[UITransitionData] = field(default_factory=list)

    def get_state(self, state_id: str) -> Optional[UIStateData]:
        for state in self.states:
            if state.id == state_id:
                return state
        return None

    def get_transition(self, transition_id: str) -> Optional[UITransitionData]:
        for transition in self.transitions:
            if transition.id == transition_id:
                return transition
        return None


def build_view(workflow: UIWorkflowData, resolve_handles: bool = False) -> WorkflowView:
    """Clean up, then derive state and transition records.

    With ``resolve_handles`` transitions lacking stored anchors get
    position-based ones (see ``edge_handles``).
    """
    cleaned = cleanup_workflow_state(workflow)
    transitions = derive_transitions(cleaned)
    states = derive_states(cleaned, transitions)
    if resolve_handles:
        transitions = resolve_edge_handles(states, transitions)
    return WorkflowView(workflow=cleaned, states=states, transitions=transitions)
