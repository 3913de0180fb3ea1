"""
Workflow Editor — mutation operations used by editing actions.

Every operation takes the current ``UIWorkflowData`` and returns a new
one; the input is never modified. Operations that reference a missing
state or transition are no-ops: they log a warning and return the
input object unchanged (``result is workflow``). Callers that need
strict behaviour should check existence first.

Transition ids are index based (see ``transition_ids``). Whenever a
state's transition list is spliced or reordered, the layout entries
of that state are re-keyed so they keep following their transitions.
"""

from __future__ import annotations

from logging import getLogger
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from fsm_canvas.config import EditorConfig, get_config
from fsm_canvas.workflow.auto_layout import (
    AutoLayoutEngine,
    auto_layout_workflow,
    can_auto_layout,
)
from fsm_canvas.workflow.edge_handles import is_valid_handle
from fsm_canvas.workflow.transition_ids import (
    ParsedTransitionId,
    generate_layout_transition_id,
    generate_transition_id,
    parse_transition_id,
    resolve_layout_transition_id,
    validate_transition_exists,
)
from fsm_canvas.workflow.workflow_model import (
    CanvasLayout,
    EntityModelIdentifier,
    LayoutState,
    LayoutTransitionEntry,
    Position,
    Size,
    StateDefinition,
    TransitionDefinition,
    UIWorkflowData,
    WorkflowConfiguration,
)
from fsm_canvas.workflow.workflow_sync import (
    backfill_layout,
    cleanup_workflow_state,
    migrate_legacy_layout,
)
from fsm_canvas.workflow.workflow_validation import parse_configuration

logger = getLogger(__name__)

DEFAULT_STATE_ID = "new_state"
NEW_TRANSITION_NAME = "New Transition"
LOOPBACK_TRANSITION_NAME = "Loop-back Transition"
DEFAULT_TRANSITION_NAMES = (NEW_TRANSITION_NAME, LOOPBACK_TRANSITION_NAME)
LOOPBACK_LABEL_OFFSET = (30, -30)

PositionLike = Union[Position, Mapping[str, float], Tuple[float, float]]


class _Unset:
    def __repr__(self) -> str:
        return "<unset>"


_UNSET: Any = _Unset()


# ============================================================================
# Internal helpers
# ============================================================================


def _clone(workflow: UIWorkflowData) -> UIWorkflowData:
    return workflow.model_copy(deep=True)


def _stamp(workflow: UIWorkflowData) -> UIWorkflowData:
    workflow.layout.touch()
    workflow.touch()
    return workflow


def _as_position(value: PositionLike) -> Position:
    if isinstance(value, Position):
        return value.model_copy()
    if isinstance(value, Mapping):
        return Position.model_validate(value)
    x, y = value
    return Position(x=x, y=y)


def _resolve_transition(
    workflow: UIWorkflowData,
    transition_id: str,
    action: str,
) -> Optional[ParsedTransitionId]:
    if not validate_transition_exists(transition_id, workflow.configuration.states):
        logger.warning(f"[{workflow.id}] {action}: transition '{transition_id}' not found")
        return None
    return parse_transition_id(transition_id)


def _rekey_layout_transitions(
    layout: CanvasLayout,
    state_id: str,
    index_map: Mapping[int, int],
) -> None:
    """Re-key ``state_id``'s canonical layout entries in place.

    ``index_map`` maps old index → new index; entries whose old index is
    absent are dropped.
    """
    kept: List[LayoutTransitionEntry] = []
    for entry in layout.transitions:
        parsed = parse_transition_id(entry.id)
        if parsed is None or parsed.source_state_id != state_id:
            kept.append(entry)
            continue
        new_index = index_map.get(parsed.transition_index)
        if new_index is None:
            continue
        entry.id = generate_transition_id(state_id, new_index)
        kept.append(entry)
    layout.transitions = kept


def _remove_transitions(
    workflow: UIWorkflowData,
    state_id: str,
    indexes: Set[int],
) -> None:
    """Drop ``indexes`` from a state's transitions (in place, on a clone)."""
    state = workflow.configuration.states[state_id]
    index_map: Dict[int, int] = {}
    remaining: List[TransitionDefinition] = []
    for index, transition in enumerate(state.transitions):
        if index in indexes:
            continue
        index_map[index] = len(remaining)
        remaining.append(transition)
    state.transitions = remaining
    _rekey_layout_transitions(workflow.layout, state_id, index_map)


def _upsert_transition_layout(layout: CanvasLayout, transition_id: str) -> LayoutTransitionEntry:
    entry = layout.get_transition(transition_id)
    if entry is None:
        entry = LayoutTransitionEntry(id=transition_id)
        layout.transitions.append(entry)
    return entry


def _check_handles(
    workflow: UIWorkflowData,
    source_handle: Optional[str],
    target_handle: Optional[str],
    action: str,
) -> bool:
    if source_handle and not is_valid_handle(source_handle, "source"):
        logger.warning(f"[{workflow.id}] {action}: invalid source handle '{source_handle}'")
        return False
    if target_handle and not is_valid_handle(target_handle, "target"):
        logger.warning(f"[{workflow.id}] {action}: invalid target handle '{target_handle}'")
        return False
    return True


# ============================================================================
# States
# ============================================================================


def next_state_id(workflow: UIWorkflowData, base: str = DEFAULT_STATE_ID) -> str:
    """First free id among ``base``, ``base_1``, ``base_2``, ...

    Residual layout ids count as taken so a new state never inherits
    an orphaned position.
    """
    taken = set(workflow.configuration.states) | {s.id for s in workflow.layout.states}
    if base not in taken:
        return base
    counter = 1
    while f"{base}_{counter}" in taken:
        counter += 1
    return f"{base}_{counter}"


def add_state(
    workflow: UIWorkflowData,
    state_id: Optional[str] = None,
    position: Optional[PositionLike] = None,
    name: Optional[str] = None,
) -> UIWorkflowData:
    """Add an empty (final) state; the id is suffixed when already taken."""
    new_id = next_state_id(workflow, (state_id or "").strip() or DEFAULT_STATE_ID)
    updated = _clone(workflow)
    configuration = updated.configuration

    if position is None:
        x, y = get_config(EditorConfig).grid_position(len(configuration.states))
        position = Position(x=x, y=y)

    if configuration.states:
        # pin a dangling initial state to its effective fallback
        configuration.initial_state = configuration.resolve_initial_state()
    else:
        configuration.initial_state = new_id
    configuration.states[new_id] = StateDefinition(name=name or None, transitions=[])

    updated.layout.states.append(
        LayoutState(id=new_id, position=_as_position(position), properties={})
    )
    logger.debug(f"[{workflow.id}] added state '{new_id}'")
    return _stamp(updated)


def rename_state(workflow: UIWorkflowData, state_id: str, new_state_id: str) -> UIWorkflowData:
    """Change a state's id everywhere it is referenced.

    Updates every transition ``next``, ``initial_state``, the layout
    state entry, and both canonical and legacy layout transition ids.
    State order is preserved.
    """
    states = workflow.configuration.states
    new_state_id = (new_state_id or "").strip()
    if state_id not in states:
        logger.warning(f"[{workflow.id}] rename_state: state '{state_id}' not found")
        return workflow
    if not new_state_id or new_state_id == state_id:
        logger.warning(f"[{workflow.id}] rename_state: invalid new id '{new_state_id}'")
        return workflow
    if new_state_id in states:
        logger.warning(f"[{workflow.id}] rename_state: state '{new_state_id}' already exists")
        return workflow

    updated = _clone(workflow)
    configuration = updated.configuration
    configuration.states = {
        (new_state_id if sid == state_id else sid): state
        for sid, state in configuration.states.items()
    }
    for state in configuration.states.values():
        for transition in state.transitions:
            if transition.next == state_id:
                transition.next = new_state_id
    if configuration.initial_state == state_id:
        configuration.initial_state = new_state_id

    layout = updated.layout
    layout.states = [s for s in layout.states if s.id != new_state_id]
    for entry in layout.states:
        if entry.id == state_id:
            entry.id = new_state_id

    def rename(sid: str) -> str:
        return new_state_id if sid == state_id else sid

    for entry in layout.transitions:
        parsed = parse_transition_id(entry.id)
        if parsed is not None:
            if parsed.source_state_id == state_id:
                entry.id = generate_transition_id(new_state_id, parsed.transition_index)
            continue
        legacy = resolve_layout_transition_id(entry.id, states)
        if legacy is not None and state_id in legacy:
            entry.id = generate_layout_transition_id(
                rename(legacy.source_state_id), rename(legacy.target_state_id),
            )

    logger.debug(f"[{workflow.id}] renamed state '{state_id}' -> '{new_state_id}'")
    return _stamp(updated)


def set_state_name(workflow: UIWorkflowData, state_id: str, name: Optional[str]) -> UIWorkflowData:
    """Set the display name; blank clears it so the id is shown."""
    if state_id not in workflow.configuration.states:
        logger.warning(f"[{workflow.id}] set_state_name: state '{state_id}' not found")
        return workflow
    updated = _clone(workflow)
    updated.configuration.states[state_id].name = (name or "").strip() or None
    return _stamp(updated)


def delete_states(workflow: UIWorkflowData, state_ids: Iterable[str]) -> UIWorkflowData:
    """Remove states, every transition targeting them, and their layout."""
    states = workflow.configuration.states
    doomed: Set[str] = set()
    for state_id in state_ids:
        if state_id in states:
            doomed.add(state_id)
        else:
            logger.warning(f"[{workflow.id}] delete_state: state '{state_id}' not found")
    if not doomed:
        return workflow

    updated = _clone(workflow)
    configuration = updated.configuration
    for sid, state in configuration.states.items():
        if sid in doomed:
            continue
        stale = {i for i, t in enumerate(state.transitions) if t.next in doomed}
        if stale:
            _remove_transitions(updated, sid, stale)

    configuration.states = {
        sid: state for sid, state in configuration.states.items() if sid not in doomed
    }
    if configuration.initial_state not in configuration.states:
        configuration.initial_state = next(iter(configuration.states), "")

    updated = cleanup_workflow_state(updated)
    logger.debug(f"[{workflow.id}] deleted states {sorted(doomed)}")
    return _stamp(updated)


def delete_state(workflow: UIWorkflowData, state_id: str) -> UIWorkflowData:
    return delete_states(workflow, [state_id])


def move_state(workflow: UIWorkflowData, state_id: str, position: PositionLike) -> UIWorkflowData:
    if state_id not in workflow.configuration.states:
        logger.warning(f"[{workflow.id}] move_state: state '{state_id}' not found")
        return workflow
    updated = _clone(workflow)
    entry = updated.layout.get_state(state_id)
    if entry is None:
        updated.layout.states.append(
            LayoutState(id=state_id, position=_as_position(position), properties={})
        )
    else:
        entry.position = _as_position(position)
    return _stamp(updated)


# ============================================================================
# Transitions
# ============================================================================


def add_transition(
    workflow: UIWorkflowData,
    source_state_id: str,
    target_state_id: str,
    name: Optional[str] = None,
    manual: bool = False,
    source_handle: Optional[str] = None,
    target_handle: Optional[str] = None,
) -> UIWorkflowData:
    """Append a transition to the source state (connect gesture).

    The new transition's id is
    ``generate_transition_id(source, len(transitions) - 1)``.
    """
    states = workflow.configuration.states
    for state_id in (source_state_id, target_state_id):
        if state_id not in states:
            logger.warning(f"[{workflow.id}] add_transition: state '{state_id}' not found")
            return workflow
    if not _check_handles(workflow, source_handle, target_handle, "add_transition"):
        return workflow

    is_loopback = source_state_id == target_state_id
    default_name = LOOPBACK_TRANSITION_NAME if is_loopback else NEW_TRANSITION_NAME

    updated = _clone(workflow)
    source = updated.configuration.states[source_state_id]
    source.transitions.append(TransitionDefinition(
        name=name or default_name,
        next=target_state_id,
        manual=manual,
        disabled=False,
    ))

    transition_id = generate_transition_id(source_state_id, len(source.transitions) - 1)
    label_x, label_y = LOOPBACK_LABEL_OFFSET if is_loopback else (0, 0)
    updated.layout.transitions = [
        t for t in updated.layout.transitions if t.id != transition_id
    ]
    updated.layout.transitions.append(LayoutTransitionEntry(
        id=transition_id,
        label_position=Position(x=label_x, y=label_y),
        source_handle=source_handle or None,
        target_handle=target_handle or None,
    ))
    logger.debug(f"[{workflow.id}] added transition {transition_id} -> '{target_state_id}'")
    return _stamp(updated)


def update_transition(
    workflow: UIWorkflowData,
    transition_id: str,
    definition: Union[TransitionDefinition, Mapping[str, Any]],
) -> UIWorkflowData:
    """Replace a transition's definition; its target must exist."""
    parsed = _resolve_transition(workflow, transition_id, "update_transition")
    if parsed is None:
        return workflow
    if not isinstance(definition, TransitionDefinition):
        definition = TransitionDefinition.model_validate(definition)
    if definition.next not in workflow.configuration.states:
        logger.warning(
            f"[{workflow.id}] update_transition: target state '{definition.next}' not found"
        )
        return workflow

    updated = _clone(workflow)
    state = updated.configuration.states[parsed.source_state_id]
    state.transitions[parsed.transition_index] = definition.model_copy(deep=True)
    return _stamp(updated)


def reconnect_transition(
    workflow: UIWorkflowData,
    transition_id: str,
    target_state_id: str,
    source_handle: Optional[str] = None,
    target_handle: Optional[str] = None,
) -> UIWorkflowData:
    """Point an existing transition at a new target.

    The stored handles are replaced; the label offset is kept. A
    default name is swapped for the other default when the edge turns
    into (or stops being) a loop-back.
    """
    parsed = _resolve_transition(workflow, transition_id, "reconnect_transition")
    if parsed is None:
        return workflow
    if target_state_id not in workflow.configuration.states:
        logger.warning(
            f"[{workflow.id}] reconnect_transition: state '{target_state_id}' not found"
        )
        return workflow
    if not _check_handles(workflow, source_handle, target_handle, "reconnect_transition"):
        return workflow

    updated = _clone(workflow)
    transition = updated.configuration.states[parsed.source_state_id].transitions[
        parsed.transition_index
    ]
    transition.next = target_state_id
    if transition.name in DEFAULT_TRANSITION_NAMES:
        is_loopback = target_state_id == parsed.source_state_id
        transition.name = LOOPBACK_TRANSITION_NAME if is_loopback else NEW_TRANSITION_NAME

    entry = _upsert_transition_layout(updated.layout, transition_id)
    entry.source_handle = source_handle or None
    entry.target_handle = target_handle or None
    entry.segment_handles = None
    if entry.label_position is None:
        entry.label_position = Position(x=0, y=0)
    return _stamp(updated)


def delete_transitions(workflow: UIWorkflowData, transition_ids: Iterable[str]) -> UIWorkflowData:
    """Delete several transitions addressed by their *current* ids."""
    by_state: Dict[str, Set[int]] = {}
    for transition_id in transition_ids:
        parsed = _resolve_transition(workflow, transition_id, "delete_transition")
        if parsed is not None:
            by_state.setdefault(parsed.source_state_id, set()).add(parsed.transition_index)
    if not by_state:
        return workflow

    updated = _clone(workflow)
    for state_id, indexes in by_state.items():
        _remove_transitions(updated, state_id, indexes)
    logger.debug(
        f"[{workflow.id}] deleted {sum(len(i) for i in by_state.values())} transition(s)"
    )
    return _stamp(updated)


def delete_transition(workflow: UIWorkflowData, transition_id: str) -> UIWorkflowData:
    return delete_transitions(workflow, [transition_id])


def move_transition(workflow: UIWorkflowData, transition_id: str, new_index: int) -> UIWorkflowData:
    """Reorder a transition within its source state (index is clamped)."""
    parsed = _resolve_transition(workflow, transition_id, "move_transition")
    if parsed is None:
        return workflow

    count = len(workflow.configuration.states[parsed.source_state_id].transitions)
    target_index = min(max(0, new_index), count - 1)
    if target_index == parsed.transition_index:
        return workflow

    order = list(range(count))
    order.insert(target_index, order.pop(parsed.transition_index))

    updated = _clone(workflow)
    state = updated.configuration.states[parsed.source_state_id]
    state.transitions = [state.transitions[old] for old in order]
    _rekey_layout_transitions(
        updated.layout,
        parsed.source_state_id,
        {old: new for new, old in enumerate(order)},
    )
    return _stamp(updated)


# ============================================================================
# Transition layout (presentation only)
# ============================================================================


def move_transition_node(
    workflow: UIWorkflowData,
    transition_id: str,
    position: PositionLike,
) -> UIWorkflowData:
    if _resolve_transition(workflow, transition_id, "move_transition_node") is None:
        return workflow
    updated = _clone(workflow)
    _upsert_transition_layout(updated.layout, transition_id).position = _as_position(position)
    return _stamp(updated)


def move_transition_label(
    workflow: UIWorkflowData,
    transition_id: str,
    label_position: PositionLike,
) -> UIWorkflowData:
    if _resolve_transition(workflow, transition_id, "move_transition_label") is None:
        return workflow
    updated = _clone(workflow)
    entry = _upsert_transition_layout(updated.layout, transition_id)
    entry.label_position = _as_position(label_position)
    return _stamp(updated)


def resize_transition_node(
    workflow: UIWorkflowData,
    transition_id: str,
    width: float,
    height: float,
) -> UIWorkflowData:
    if width <= 0 or height <= 0:
        logger.warning(
            f"[{workflow.id}] resize_transition_node: invalid size {width}x{height}"
        )
        return workflow
    if _resolve_transition(workflow, transition_id, "resize_transition_node") is None:
        return workflow
    updated = _clone(workflow)
    entry = _upsert_transition_layout(updated.layout, transition_id)
    entry.size = Size(width=width, height=height)
    return _stamp(updated)


def update_transition_layout(
    workflow: UIWorkflowData,
    transition_id: str,
    label_position: Any = _UNSET,
    source_handle: Any = _UNSET,
    target_handle: Any = _UNSET,
) -> UIWorkflowData:
    """Set label offset and/or anchor handles; ``None`` clears a value."""
    if _resolve_transition(workflow, transition_id, "update_transition_layout") is None:
        return workflow
    if not _check_handles(
        workflow,
        None if source_handle is _UNSET else source_handle,
        None if target_handle is _UNSET else target_handle,
        "update_transition_layout",
    ):
        return workflow

    updated = _clone(workflow)
    entry = _upsert_transition_layout(updated.layout, transition_id)
    if label_position is not _UNSET:
        entry.label_position = None if label_position is None else _as_position(label_position)
    if source_handle is not _UNSET:
        entry.source_handle = source_handle or None
    if target_handle is not _UNSET:
        entry.target_handle = target_handle or None
    return _stamp(updated)


# ============================================================================
# Whole-workflow operations
# ============================================================================


def _as_configuration(
    configuration: Union[WorkflowConfiguration, Mapping[str, Any], str],
) -> WorkflowConfiguration:
    return parse_configuration(configuration)


def _as_entity_model(
    entity_model: Union[EntityModelIdentifier, Mapping[str, Any], None],
) -> EntityModelIdentifier:
    if entity_model is None:
        return EntityModelIdentifier()
    if isinstance(entity_model, EntityModelIdentifier):
        return entity_model.model_copy()
    return EntityModelIdentifier.model_validate(entity_model)


def create_workflow(
    configuration: Union[WorkflowConfiguration, Mapping[str, Any], str],
    layout: Union[CanvasLayout, Mapping[str, Any], None] = None,
    workflow_id: Optional[str] = None,
    entity_model: Union[EntityModelIdentifier, Mapping[str, Any], None] = None,
) -> UIWorkflowData:
    """Bundle a configuration with a (possibly partial) layout.

    Legacy layout ids are migrated, stale entries pruned, and missing
    state positions backfilled on the grid.
    """
    if layout is None:
        layout_model = CanvasLayout()
    elif isinstance(layout, CanvasLayout):
        layout_model = layout.model_copy(deep=True)
    else:
        layout_model = CanvasLayout.model_validate(layout)

    fields: Dict[str, Any] = {
        "entity_model": _as_entity_model(entity_model),
        "configuration": _as_configuration(configuration),
        "layout": layout_model,
    }
    if workflow_id:
        fields["id"] = workflow_id
    workflow = UIWorkflowData(**fields)
    return backfill_layout(cleanup_workflow_state(migrate_legacy_layout(workflow)))


def create_empty_workflow(
    name: str = "Untitled Workflow",
    workflow_id: Optional[str] = None,
    entity_model: Union[EntityModelIdentifier, Mapping[str, Any], None] = None,
) -> UIWorkflowData:
    return create_workflow(
        WorkflowConfiguration(name=name),
        workflow_id=workflow_id,
        entity_model=entity_model,
    )


def import_configuration(
    configuration: Union[WorkflowConfiguration, Mapping[str, Any], str],
    workflow_id: Optional[str] = None,
    entity_model: Union[EntityModelIdentifier, Mapping[str, Any], None] = None,
    auto_layout: bool = True,
    engine: Optional[AutoLayoutEngine] = None,
) -> UIWorkflowData:
    """Wrap a bare configuration (remote import) with a fresh layout."""
    workflow = create_workflow(configuration, workflow_id=workflow_id, entity_model=entity_model)
    if auto_layout and can_auto_layout(workflow):
        workflow = auto_layout_workflow(workflow, engine)
    logger.info(
        f"[{workflow.id}] imported configuration '{workflow.configuration.name}' "
        f"({len(workflow.configuration.states)} states)"
    )
    return workflow


def apply_external_configuration(
    workflow: UIWorkflowData,
    configuration: Union[WorkflowConfiguration, Mapping[str, Any], str],
    reset_layout: bool = False,
    engine: Optional[AutoLayoutEngine] = None,
) -> UIWorkflowData:
    """Replace the configuration (JSON editor save).

    Layout entries still valid under the new configuration are kept
    and new states get grid positions. With ``reset_layout`` the layout
    is discarded and auto-layout places every state instead.
    """
    updated = _clone(workflow)
    updated.configuration = _as_configuration(configuration)
    if reset_layout:
        updated.layout.states = []
        updated.layout.transitions = []
        updated = backfill_layout(updated)
        if can_auto_layout(updated):
            return auto_layout_workflow(updated, engine)
    else:
        updated = backfill_layout(cleanup_workflow_state(migrate_legacy_layout(updated)))
    return _stamp(updated)
