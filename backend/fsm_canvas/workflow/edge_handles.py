"""
Edge Handles — anchor-point ids and automatic anchor selection.

State nodes expose eight anchor positions. A handle id is the position
followed by ``-source`` or ``-target`` (e.g. ``"right-center-source"``).
Stored handles in the layout always win; these helpers only fill in
anchors for transitions that have none.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Tuple

from fsm_canvas.workflow.workflow_model import Position, UIStateData, UITransitionData

HANDLE_POSITIONS = (
    "top-left",
    "top-center",
    "top-right",
    "left-center",
    "right-center",
    "bottom-left",
    "bottom-center",
    "bottom-right",
)

SOURCE_SUFFIX = "-source"
TARGET_SUFFIX = "-target"

# Vertical routing wins once |dy| exceeds this share of |dx|.
_VERTICAL_RATIO = 0.6


def is_valid_handle(handle: Optional[str], kind: str) -> bool:
    """Check a handle id of the given ``kind`` (``"source"`` or ``"target"``)."""
    suffix = SOURCE_SUFFIX if kind == "source" else TARGET_SUFFIX
    if not handle or not handle.endswith(suffix):
        return False
    return handle[: -len(suffix)] in HANDLE_POSITIONS


def has_bidirectional_connection(
    source_state_id: str,
    target_state_id: str,
    transitions: Iterable[UITransitionData],
) -> bool:
    return any(
        t.source_state_id == target_state_id and t.target_state_id == source_state_id
        for t in transitions
    )


def calculate_optimal_handles(
    source_pos: Position,
    target_pos: Position,
    is_bidirectional: bool = False,
    is_return_path: bool = False,
) -> Tuple[str, str]:
    """Pick ``(source_handle, target_handle)`` from relative node positions.

    Bidirectional pairs on a vertical axis use the left/right offset
    anchors so the two edges do not overlap.
    """
    delta_x = target_pos.x - source_pos.x
    delta_y = target_pos.y - source_pos.y
    vertical = abs(delta_y) > abs(delta_x) * _VERTICAL_RATIO

    if is_bidirectional and vertical:
        if is_return_path:
            return "bottom-left-source", "top-left-target"
        return "bottom-right-source", "top-right-target"

    if vertical:
        if delta_y > 0:
            return "bottom-center-source", "top-center-target"
        return "top-center-source", "bottom-center-target"

    if delta_x > 0 or is_bidirectional:
        return "right-center-source", "left-center-target"
    return "left-center-source", "right-center-target"


def resolve_edge_handles(
    states: List[UIStateData],
    transitions: List[UITransitionData],
) -> List[UITransitionData]:
    """Return transitions with missing anchors filled from node positions.

    Self-loops keep whatever the layout stores. The "return path" of a
    bidirectional pair is the edge whose source id sorts after its target.
    """
    positions: Dict[str, Position] = {s.id: s.position for s in states}
    resolved: List[UITransitionData] = []

    for transition in transitions:
        if transition.is_loopback or (transition.source_handle and transition.target_handle):
            resolved.append(transition)
            continue

        source_pos = positions.get(transition.source_state_id)
        target_pos = positions.get(transition.target_state_id)
        if source_pos is None or target_pos is None:
            resolved.append(transition)
            continue

        bidirectional = has_bidirectional_connection(
            transition.source_state_id, transition.target_state_id, transitions,
        )
        return_path = bidirectional and transition.source_state_id > transition.target_state_id
        source_handle, target_handle = calculate_optimal_handles(
            source_pos, target_pos, bidirectional, return_path,
        )
        resolved.append(transition.model_copy(update={
            "source_handle": transition.source_handle or source_handle,
            "target_handle": transition.target_handle or target_handle,
        }))

    return resolved
