"""
Workflow Canvas Core — state-machine definitions on an editable canvas.

Keeps the semantic configuration and the visual layout of a workflow
in sync, derives render-ready records, and edits both immutably.

Architecture:
    workflow_model      — Configuration, layout and view-record models
    transition_ids      — Positional transition identity (canonical + legacy ids)
    workflow_sync       — Layout reconciliation and view derivation
    edge_handles        — Anchor handle ids and automatic anchor choice
    workflow_editor     — Mutation operations (states, transitions, layout)
    auto_layout         — Level-based automatic layout with relaxation
    workflow_history    — Per-workflow bounded undo/redo
    workflow_session    — Open-workflow lifecycle (session + workspace)
    workflow_validation — Schema validation and configuration parsing
    workflow_inspector  — Statistics and structured reports
    workflow_store      — JSON-file persistence
    templates           — Pre-built workflow templates
"""

from fsm_canvas.workflow.workflow_model import (
    CanvasLayout,
    Criterion,
    EntityModelIdentifier,
    LayoutState,
    LayoutTransitionEntry,
    Position,
    Processor,
    Size,
    StateDefinition,
    TransitionDefinition,
    UIStateData,
    UITransitionData,
    UIWorkflowData,
    WorkflowConfiguration,
)
from fsm_canvas.workflow.transition_ids import (
    generate_layout_transition_id,
    generate_transition_id,
    get_transition_definition,
    migrate_layout_transition_id,
    parse_layout_transition_id,
    parse_transition_id,
    validate_transition_exists,
)
from fsm_canvas.workflow.workflow_sync import (
    WorkflowView,
    backfill_layout,
    build_view,
    cleanup_workflow_state,
    derive_states,
    derive_transitions,
    migrate_legacy_layout,
)
from fsm_canvas.workflow.edge_handles import (
    calculate_optimal_handles,
    has_bidirectional_connection,
    is_valid_handle,
    resolve_edge_handles,
)
from fsm_canvas.workflow.auto_layout import (
    AutoLayoutEngine,
    auto_layout_workflow,
    can_auto_layout,
)
from fsm_canvas.workflow.workflow_editor import (
    add_state,
    add_transition,
    apply_external_configuration,
    create_empty_workflow,
    create_workflow,
    delete_state,
    delete_states,
    delete_transition,
    delete_transitions,
    import_configuration,
    move_state,
    move_transition,
    move_transition_label,
    move_transition_node,
    next_state_id,
    reconnect_transition,
    rename_state,
    resize_transition_node,
    set_state_name,
    update_transition,
    update_transition_layout,
)
from fsm_canvas.workflow.workflow_history import HistoryEntry, HistoryService
from fsm_canvas.workflow.workflow_session import WorkflowSession, WorkflowWorkspace
from fsm_canvas.workflow.workflow_validation import (
    ValidationIssue,
    ValidationResult,
    WorkflowValidationError,
    export_configuration_json,
    parse_configuration,
    validate_configuration,
)
from fsm_canvas.workflow.workflow_inspector import get_workflow_stats, inspect_workflow
from fsm_canvas.workflow.workflow_store import WorkflowStore, get_workflow_store
from fsm_canvas.workflow.templates import (
    create_approval_template,
    create_order_lifecycle_template,
    install_templates,
)

__all__ = [
    "CanvasLayout",
    "Criterion",
    "EntityModelIdentifier",
    "LayoutState",
    "LayoutTransitionEntry",
    "Position",
    "Processor",
    "Size",
    "StateDefinition",
    "TransitionDefinition",
    "UIStateData",
    "UITransitionData",
    "UIWorkflowData",
    "WorkflowConfiguration",
    "generate_layout_transition_id",
    "generate_transition_id",
    "get_transition_definition",
    "migrate_layout_transition_id",
    "parse_layout_transition_id",
    "parse_transition_id",
    "validate_transition_exists",
    "WorkflowView",
    "backfill_layout",
    "build_view",
    "cleanup_workflow_state",
    "derive_states",
    "derive_transitions",
    "migrate_legacy_layout",
    "calculate_optimal_handles",
    "has_bidirectional_connection",
    "is_valid_handle",
    "resolve_edge_handles",
    "AutoLayoutEngine",
    "auto_layout_workflow",
    "can_auto_layout",
    "add_state",
    "add_transition",
    "apply_external_configuration",
    "create_empty_workflow",
    "create_workflow",
    "delete_state",
    "delete_states",
    "delete_transition",
    "delete_transitions",
    "import_configuration",
    "move_state",
    "move_transition",
    "move_transition_label",
    "move_transition_node",
    "next_state_id",
    "reconnect_transition",
    "rename_state",
    "resize_transition_node",
    "set_state_name",
    "update_transition",
    "update_transition_layout",
    "HistoryEntry",
    "HistoryService",
    "WorkflowSession",
    "WorkflowWorkspace",
    "ValidationIssue",
    "ValidationResult",
    "WorkflowValidationError",
    "export_configuration_json",
    "parse_configuration",
    "validate_configuration",
    "get_workflow_stats",
    "inspect_workflow",
    "WorkflowStore",
    "get_workflow_store",
    "create_approval_template",
    "create_order_lifecycle_template",
    "install_templates",
]
