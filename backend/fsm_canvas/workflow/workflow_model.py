"""
Workflow Data Models — configuration, canvas layout, and view records.

A workflow is kept as two parallel structures: the
``WorkflowConfiguration`` (states and their ordered transition lists)
that carries the meaning, and the ``CanvasLayout`` that only carries
presentation. ``UIWorkflowData`` bundles both; it is persisted by
``WorkflowStore`` and snapshotted by ``HistoryService``.

All records serialize with camelCase keys (``initialState``,
``labelPosition``, ...) and accept either spelling on input.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CanvasModel(BaseModel):
    """Base for records serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )


class Position(CanvasModel):
    x: float = 0
    y: float = 0


class Size(CanvasModel):
    width: float
    height: float


# ============================================================================
# Configuration (semantic) models
# ============================================================================


class Processor(CanvasModel):
    """A processor invoked when a transition fires."""

    model_config = ConfigDict(extra="allow")

    name: str = ""
    execution_mode: Optional[str] = None
    config: Optional[Dict[str, Any]] = None


class Criterion(CanvasModel):
    """Guard condition of a transition (``simple``, ``group`` or ``function``)."""

    model_config = ConfigDict(extra="allow")

    type: str = "simple"
    json_path: Optional[str] = None
    operation: Optional[str] = None
    value: Optional[Any] = None
    operator: Optional[str] = None
    conditions: Optional[List[Dict[str, Any]]] = None
    function: Optional[Dict[str, Any]] = None


class TransitionDefinition(CanvasModel):
    """A directed edge from its owning state to ``next``.

    Transitions carry no id. They are addressed by their index in the
    owning state's ``transitions`` list (see ``transition_ids``).
    """

    model_config = ConfigDict(extra="allow")

    name: str = ""
    next: str
    manual: bool = False
    disabled: Optional[bool] = None
    processors: Optional[List[Processor]] = None
    criterion: Optional[Criterion] = None

    @property
    def is_conditional(self) -> bool:
        return self.criterion is not None


class StateDefinition(CanvasModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    transitions: List[TransitionDefinition] = Field(default_factory=list)

    @property
    def is_final(self) -> bool:
        return len(self.transitions) == 0


class WorkflowConfiguration(CanvasModel):
    """The canonical, exportable state-machine definition.

    ``states`` keeps insertion order; the first key is the fallback
    initial state whenever ``initial_state`` is empty or dangling.
    """

    version: str = "1.0"
    name: str = "Untitled Workflow"
    description: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("description", "desc"),
    )
    initial_state: str = ""
    active: bool = True
    states: Dict[str, StateDefinition] = Field(default_factory=dict)

    def resolve_initial_state(self) -> Optional[str]:
        """Return the effective initial state id (``None`` when there are no states)."""
        if self.initial_state in self.states:
            return self.initial_state
        return next(iter(self.states), None)

    def get_state(self, state_id: str) -> Optional[StateDefinition]:
        return self.states.get(state_id)

    def get_transitions_to(
        self, state_id: str,
    ) -> List[Tuple[str, int, TransitionDefinition]]:
        """All ``(source_state_id, index, transition)`` triples targeting a state."""
        return [
            (source_id, index, transition)
            for source_id, state in self.states.items()
            for index, transition in enumerate(state.transitions)
            if transition.next == state_id
        ]

    def get_final_states(self) -> List[str]:
        return [sid for sid, state in self.states.items() if state.is_final]


# ============================================================================
# Layout (presentation) models
# ============================================================================


class LayoutState(CanvasModel):
    id: str
    position: Position = Field(default_factory=Position)
    properties: Optional[Dict[str, Any]] = None


class LayoutTransitionEntry(CanvasModel):
    """Visual metadata for one transition, keyed by its transition id.

    ``segment_handles`` holds the older per-segment anchor overrides
    (source→node and node→target) some persisted layouts still carry.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    position: Optional[Position] = None
    size: Optional[Size] = None
    label_position: Optional[Position] = None
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    segment_handles: Optional[Dict[str, Optional[str]]] = None


class CanvasLayout(CanvasModel):
    states: List[LayoutState] = Field(default_factory=list)
    transitions: List[LayoutTransitionEntry] = Field(default_factory=list)
    updated_at: str = Field(default_factory=utc_now)
    version: int = 1

    def touch(self) -> None:
        """Stamp ``updated_at`` and bump ``version``."""
        self.updated_at = utc_now()
        self.version += 1

    def get_state(self, state_id: str) -> Optional[LayoutState]:
        for entry in self.states:
            if entry.id == state_id:
                return entry
        return None

    def get_transition(self, transition_id: str) -> Optional[LayoutTransitionEntry]:
        for entry in self.transitions:
            if entry.id == transition_id:
                return entry
        return None


# ============================================================================
# Workflow bundle
# ============================================================================


class EntityModelIdentifier(CanvasModel):
    model_name: str = ""
    model_version: int = 1


class UIWorkflowData(CanvasModel):
    """Configuration + layout for one open workflow."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    entity_model: EntityModelIdentifier = Field(default_factory=EntityModelIdentifier)
    configuration: WorkflowConfiguration = Field(default_factory=WorkflowConfiguration)
    layout: CanvasLayout = Field(default_factory=CanvasLayout)
    created_at: str = Field(default_factory=utc_now)
    updated_at: str = Field(default_factory=utc_now)

    def touch(self) -> None:
        """Update the ``updated_at`` timestamp."""
        self.updated_at = utc_now()


# ============================================================================
# View records (derived, read-only)
# ============================================================================


class UIStateData(CanvasModel):
    id: str
    name: str
    position: Position
    properties: Optional[Dict[str, Any]] = None
    is_initial: bool = False
    is_final: bool = False
    transition_ids: List[str] = Field(default_factory=list)


class UITransitionData(CanvasModel):
    id: str
    source_state_id: str
    target_state_id: str
    definition: TransitionDefinition
    position: Optional[Position] = None
    size: Optional[Size] = None
    label_position: Optional[Position] = None
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    is_loopback: bool = False
