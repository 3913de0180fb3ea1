"""
Transition Identity — derive, parse, and validate transition ids.

Transitions are positional entries in their source state's
``transitions`` list and store no id. The canonical id is derived from
``(source_state_id, index)``::

    "<source_state_id>-transition-<index>"

Ids are NOT stable across reordering or deletion: removing an earlier
transition shifts the ids of every later one. Consumers must re-derive
ids from the current configuration instead of caching them.

Older persisted layouts keyed transitions by their endpoints
(``"<source>-to-<target>"``). That scheme is kept only for lookup and
migration of such layouts.

None of these functions raise on malformed or stale ids; they return
``None`` / ``False`` so reconciliation can drop stale layout silently.
"""

from __future__ import annotations

from typing import Iterator, Mapping, NamedTuple, Optional

from fsm_canvas.workflow.workflow_model import StateDefinition, TransitionDefinition

TRANSITION_SEPARATOR = "-transition-"
LAYOUT_SEPARATOR = "-to-"


class ParsedTransitionId(NamedTuple):
    source_state_id: str
    transition_index: int


class ParsedLayoutTransitionId(NamedTuple):
    source_state_id: str
    target_state_id: str


# ============================================================================
# Canonical (index-based) ids
# ============================================================================


def generate_transition_id(source_state_id: str, index: int) -> str:
    return f"{source_state_id}{TRANSITION_SEPARATOR}{index}"


def parse_transition_id(transition_id: object) -> Optional[ParsedTransitionId]:
    """Inverse of ``generate_transition_id``; ``None`` when malformed.

    The index is taken after the *last* separator, so state ids that
    happen to contain the separator still round-trip.
    """
    if not isinstance(transition_id, str):
        return None
    source, separator, index_text = transition_id.rpartition(TRANSITION_SEPARATOR)
    if not separator or not source:
        return None
    if not (index_text.isascii() and index_text.isdigit()):
        return None
    index = int(index_text)
    # "a-transition-01" is never produced by generate_transition_id
    if str(index) != index_text:
        return None
    return ParsedTransitionId(source, index)


def validate_transition_exists(
    transition_id: object,
    states: Mapping[str, StateDefinition],
) -> bool:
    """True iff the id parses and resolves to an existing transition."""
    return get_transition_definition(transition_id, states) is not None


def get_transition_definition(
    transition_id: object,
    states: Mapping[str, StateDefinition],
) -> Optional[TransitionDefinition]:
    parsed = parse_transition_id(transition_id)
    if parsed is None:
        return None
    state = states.get(parsed.source_state_id)
    if state is None or parsed.transition_index >= len(state.transitions):
        return None
    return state.transitions[parsed.transition_index]


# ============================================================================
# Legacy (endpoint-based) layout ids
# ============================================================================


def generate_layout_transition_id(source_state_id: str, target_state_id: str) -> str:
    return f"{source_state_id}{LAYOUT_SEPARATOR}{target_state_id}"


def parse_layout_transition_id(layout_id: object) -> Optional[ParsedLayoutTransitionId]:
    """Split a legacy id at its first separator.

    Canonical ids are rejected so the two schemes never overlap.
    Use ``resolve_layout_transition_id`` when state ids may themselves
    contain the separator.
    """
    if not isinstance(layout_id, str) or parse_transition_id(layout_id) is not None:
        return None
    source, separator, target = layout_id.partition(LAYOUT_SEPARATOR)
    if not separator or not source or not target:
        return None
    return ParsedLayoutTransitionId(source, target)


def _layout_id_splits(layout_id: str) -> Iterator[ParsedLayoutTransitionId]:
    start = layout_id.find(LAYOUT_SEPARATOR)
    while start != -1:
        source = layout_id[:start]
        target = layout_id[start + len(LAYOUT_SEPARATOR):]
        if source and target:
            yield ParsedLayoutTransitionId(source, target)
        start = layout_id.find(LAYOUT_SEPARATOR, start + 1)


def resolve_layout_transition_id(
    layout_id: object,
    states: Mapping[str, StateDefinition],
) -> Optional[ParsedLayoutTransitionId]:
    """Find the split of a legacy id whose endpoints both exist in ``states``."""
    if not isinstance(layout_id, str) or parse_transition_id(layout_id) is not None:
        return None
    for candidate in _layout_id_splits(layout_id):
        if candidate.source_state_id in states and candidate.target_state_id in states:
            return candidate
    return None


def migrate_layout_transition_id(
    layout_id: object,
    states: Mapping[str, StateDefinition],
) -> Optional[str]:
    """Convert a legacy layout id to the canonical id it now refers to.

    Maps to the first transition of the source whose ``next`` is the
    target. Canonical ids pass through when still valid. Returns
    ``None`` when nothing in the current configuration matches.
    """
    if parse_transition_id(layout_id) is not None:
        return layout_id if validate_transition_exists(layout_id, states) else None  # type: ignore[return-value]
    if not isinstance(layout_id, str):
        return None
    for candidate in _layout_id_splits(layout_id):
        state = states.get(candidate.source_state_id)
        if state is None:
            continue
        for index, transition in enumerate(state.transitions):
            if transition.next == candidate.target_state_id:
                return generate_transition_id(candidate.source_state_id, index)
    return None
