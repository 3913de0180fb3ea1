"""
Auto Layout — hierarchical placement of workflow states.

Layout runs in four steps:

1. **Levels**: breadth-first distance from the initial state, ignoring
   self-loops. States whose id reads as terminal are clamped to a
   minimum level so they trail the graph; unreachable states each get
   their own level after the deepest one.
2. **Ordering**: states sharing a level are sorted by priority (final
   and terminal-like states first, then initial-like, conditional,
   self-looping, and busier states; id as tiebreak) and spread evenly
   around the level's centre line.
3. **Offsets**: states with a self-loop or a backward transition are
   pushed up or down by slot parity so their loop edges do not stack.
4. **Relaxation**: a fixed number of passes pushes close pairs apart,
   pulls loose pairs slightly together, and reins in vertical outliers.

Small random jitter keeps repeated runs from looking identical; pass a
seed (or set ``FSM_CANVAS_LAYOUT_SEED``) for reproducible output.
"""

from __future__ import annotations

import math
import random
import re
from collections import deque
from logging import getLogger
from typing import Dict, List, Mapping, Optional

from fsm_canvas.config import LayoutConfig, get_config
from fsm_canvas.workflow.workflow_model import (
    LayoutState,
    Position,
    StateDefinition,
    UIWorkflowData,
)
from fsm_canvas.workflow.workflow_sync import cleanup_workflow_state

logger = getLogger(__name__)

TERMINAL_MARKERS = ("end", "final", "complete", "terminal", "done", "closed")
INITIAL_MARKERS = ("initial", "start", "new", "draft")

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^0-9a-zA-Z]+")


def _id_tokens(state_id: str) -> List[str]:
    spaced = _CAMEL_BOUNDARY.sub(r"\1 \2", state_id)
    return [token for token in _NON_ALNUM.split(spaced.lower()) if token]


def has_marker(state_id: str, markers) -> bool:
    """Whether any word of ``state_id`` starts with one of ``markers``.

    Matching is per word ("order_completed", "isDone") so ids such as
    "pending" or "renew" do not read as terminal or initial.
    """
    return any(
        token.startswith(marker)
        for token in _id_tokens(state_id)
        for marker in markers
    )


class AutoLayoutEngine:
    """Computes canvas positions from workflow topology alone."""

    def __init__(self, config: Optional[LayoutConfig] = None, seed: Optional[int] = None):
        self.config = config or get_config(LayoutConfig)
        self.seed = seed if seed is not None else self.config.seed

    # ========================================================================
    # Graph & levels
    # ========================================================================

    @staticmethod
    def build_adjacency(states: Mapping[str, StateDefinition]) -> Dict[str, List[str]]:
        """Successor lists without self-loops or unknown targets."""
        adjacency: Dict[str, List[str]] = {}
        for state_id, state in states.items():
            successors: List[str] = []
            for transition in state.transitions:
                target = transition.next
                if target == state_id or target not in states or target in successors:
                    continue
                successors.append(target)
            adjacency[state_id] = successors
        return adjacency

    def compute_levels(
        self,
        states: Mapping[str, StateDefinition],
        initial_state: Optional[str],
    ) -> Dict[str, int]:
        """Level per state id; the initial state is always level 0."""
        if not states:
            return {}

        start = initial_state if initial_state in states else next(iter(states))
        adjacency = self.build_adjacency(states)

        levels: Dict[str, int] = {start: 0}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            candidate = levels[current] + 1
            for neighbor in adjacency[current]:
                # Reached at or before this level already; stops cycles.
                if neighbor in levels and levels[neighbor] <= candidate:
                    continue
                levels[neighbor] = candidate
                queue.append(neighbor)

        floor = self.config.terminal_min_level
        for state_id in levels:
            if state_id != start and has_marker(state_id, TERMINAL_MARKERS):
                levels[state_id] = max(levels[state_id], floor)

        deepest = max(levels.values())
        for state_id in states:
            if state_id not in levels:
                deepest += 1
                levels[state_id] = deepest

        return levels

    # ========================================================================
    # Placement
    # ========================================================================

    @staticmethod
    def _priority(state_id: str, state: StateDefinition, initial_state: str) -> tuple:
        has_conditional = any(t.is_conditional for t in state.transitions)
        has_self_loop = any(t.next == state_id for t in state.transitions)
        return (
            not state.is_final,
            not has_marker(state_id, TERMINAL_MARKERS),
            state_id != initial_state,
            not has_marker(state_id, INITIAL_MARKERS),
            not has_conditional,
            not has_self_loop,
            -len(state.transitions),
            state_id,
        )

    def layout(
        self,
        states: Mapping[str, StateDefinition],
        initial_state: Optional[str],
    ) -> Dict[str, Position]:
        """Return one position for every id in ``states``."""
        if not states:
            return {}

        cfg = self.config
        rng = random.Random(self.seed)
        start = initial_state if initial_state in states else next(iter(states))
        levels = self.compute_levels(states, start)

        by_level: Dict[int, List[str]] = {}
        for state_id, level in levels.items():
            by_level.setdefault(level, []).append(state_id)

        raw: Dict[str, List[float]] = {}
        for level in sorted(by_level):
            members = sorted(
                by_level[level],
                key=lambda sid: self._priority(sid, states[sid], start),
            )
            center = (len(members) - 1) / 2
            for slot, state_id in enumerate(members):
                x = level * cfg.level_spacing + rng.uniform(-cfg.jitter, cfg.jitter)
                y = (slot - center) * cfg.node_spacing + rng.uniform(-cfg.jitter, cfg.jitter)
                if self._needs_loop_offset(state_id, states[state_id], levels):
                    y += cfg.loop_push if slot % 2 == 0 else -cfg.loop_push
                raw[state_id] = [x, y]

        positions = self.optimize_positions(
            {sid: Position(x=xy[0], y=xy[1]) for sid, xy in raw.items()}
        )
        logger.debug(
            f"Auto-layout placed {len(positions)} states on {len(by_level)} levels"
        )
        return positions

    @staticmethod
    def _needs_loop_offset(
        state_id: str,
        state: StateDefinition,
        levels: Mapping[str, int],
    ) -> bool:
        own_level = levels[state_id]
        for transition in state.transitions:
            if transition.next == state_id:
                return True
            target_level = levels.get(transition.next)
            if target_level is not None and target_level <= own_level:
                return True
        return False

    def optimize_positions(self, positions: Mapping[str, Position]) -> Dict[str, Position]:
        """Run exactly ``optimize_passes`` relaxation passes over ``positions``."""
        cfg = self.config
        ids = list(positions)
        points = {sid: [positions[sid].x, positions[sid].y] for sid in ids}

        for _ in range(max(0, cfg.optimize_passes)):
            for i, first_id in enumerate(ids):
                for second_id in ids[i + 1:]:
                    a = points[first_id]
                    b = points[second_id]
                    dx = b[0] - a[0]
                    dy = b[1] - a[1]
                    distance = math.hypot(dx, dy)

                    if distance < cfg.min_distance:
                        angle = math.atan2(dy, dx) if distance > 0 else math.pi / 2
                        shift = (cfg.min_distance - distance) / 2
                    elif distance < cfg.preferred_distance:
                        angle = math.atan2(dy, dx)
                        shift = -(distance - cfg.min_distance) * cfg.attraction / 2
                    else:
                        continue

                    offset_x = math.cos(angle) * shift
                    offset_y = math.sin(angle) * shift
                    a[0] -= offset_x
                    a[1] -= offset_y
                    b[0] += offset_x
                    b[1] += offset_y

            if points:
                mean_y = sum(p[1] for p in points.values()) / len(points)
                for point in points.values():
                    deviation = point[1] - mean_y
                    excess = abs(deviation) - cfg.max_vertical_spread
                    if excess > 0:
                        point[1] -= math.copysign(excess * cfg.vertical_pullback, deviation)

        return {
            sid: Position(x=round(point[0]), y=round(point[1]))
            for sid, point in points.items()
        }


# ============================================================================
# Workflow-level helpers
# ============================================================================


def can_auto_layout(workflow: Optional[UIWorkflowData]) -> bool:
    return workflow is not None and bool(workflow.configuration.states)


def auto_layout_workflow(
    workflow: Optional[UIWorkflowData],
    engine: Optional[AutoLayoutEngine] = None,
) -> Optional[UIWorkflowData]:
    """Return a copy of ``workflow`` with every state repositioned.

    Existing state ``properties`` and transition label offsets survive;
    stored anchor handles are cleared because they depend on positions.
    """
    if workflow is None:
        logger.warning("auto-layout skipped: no workflow")
        return workflow
    if not can_auto_layout(workflow):
        logger.warning(f"[{workflow.id}] auto-layout skipped: workflow has no states")
        return workflow

    engine = engine or AutoLayoutEngine()
    configuration = workflow.configuration
    positions = engine.layout(configuration.states, configuration.resolve_initial_state())

    updated = cleanup_workflow_state(workflow).model_copy(deep=True)
    existing = {entry.id: entry for entry in updated.layout.states}
    placed: List[LayoutState] = []
    for state_id in configuration.states:
        entry = existing.get(state_id) or LayoutState(id=state_id, properties={})
        entry.position = positions[state_id]
        placed.append(entry)
    updated.layout.states = placed

    for entry in updated.layout.transitions:
        entry.source_handle = None
        entry.target_handle = None
        entry.segment_handles = None

    updated.layout.touch()
    updated.touch()
    logger.info(f"[{workflow.id}] auto-layout applied to {len(placed)} states")
    return updated
