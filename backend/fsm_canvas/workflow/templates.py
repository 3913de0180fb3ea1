"""
Pre-built Workflow Templates.

Factory functions returning ready-made ``UIWorkflowData`` objects with
hand-tuned canvas positions. ``install_templates`` writes them to a
``WorkflowStore`` so users can clone or study them.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fsm_canvas.workflow.transition_ids import generate_transition_id
from fsm_canvas.workflow.workflow_model import (
    CanvasLayout,
    Criterion,
    EntityModelIdentifier,
    LayoutState,
    LayoutTransitionEntry,
    Position,
    Processor,
    StateDefinition,
    TransitionDefinition,
    UIWorkflowData,
    WorkflowConfiguration,
)


class _TemplateBuilder:
    """Collects states, transitions and positions for one template."""

    def __init__(self) -> None:
        self.states: Dict[str, StateDefinition] = {}
        self.layout_states: List[LayoutState] = []
        self.layout_transitions: List[LayoutTransitionEntry] = []

    def state(self, sid: str, name: str, x: float, y: float) -> None:
        self.states[sid] = StateDefinition(name=name, transitions=[])
        self.layout_states.append(LayoutState(id=sid, position=Position(x=x, y=y), properties={}))

    def edge(
        self,
        src: str,
        tgt: str,
        name: str,
        manual: bool = False,
        processors: Optional[List[Processor]] = None,
        criterion: Optional[Criterion] = None,
        label: Optional[Dict[str, float]] = None,
    ) -> None:
        transitions = self.states[src].transitions
        transitions.append(TransitionDefinition(
            name=name, next=tgt, manual=manual,
            processors=processors, criterion=criterion,
        ))
        if label is not None:
            self.layout_transitions.append(LayoutTransitionEntry(
                id=generate_transition_id(src, len(transitions) - 1),
                label_position=Position(**label),
            ))

    def build(self, workflow_id: str, entity: str, **configuration: Any) -> UIWorkflowData:
        return UIWorkflowData(
            id=workflow_id,
            entity_model=EntityModelIdentifier(model_name=entity, model_version=1),
            configuration=WorkflowConfiguration(states=self.states, **configuration),
            layout=CanvasLayout(states=self.layout_states, transitions=self.layout_transitions),
        )


# ============================================================================
# Order Lifecycle Template
# ============================================================================


def create_order_lifecycle_template() -> UIWorkflowData:
    """Order processing from draft to delivery.

    Topology::
        draft → submitted → paid → shipped → delivered
        submitted ↺ (retry payment)   submitted/paid → cancelled
        shipped → returned → paid (refund path loops back)
    """
    b = _TemplateBuilder()

    # ── States ──
    b.state("draft",     "Draft",      0,    160)
    b.state("submitted", "Submitted",  300,  160)
    b.state("paid",      "Paid",       600,  160)
    b.state("shipped",   "Shipped",    900,  160)
    b.state("delivered", "Delivered",  1200, 160)
    b.state("cancelled", "Cancelled",  600,  400)
    b.state("returned",  "Returned",   900,  -80)

    # ── Transitions ──
    b.edge("draft", "submitted", "submit", manual=True)
    b.edge("submitted", "paid", "capture_payment", processors=[
        Processor(name="charge_card", execution_mode="SYNC",
                  config={"retryPolicy": "EXPONENTIAL", "responseTimeoutMs": 5000}),
    ])
    b.edge("submitted", "submitted", "retry_payment",
           criterion=Criterion(type="simple", json_path="$.payment.status",
                               operation="EQUALS", value="DECLINED"),
           label={"x": 30, "y": -30})
    b.edge("submitted", "cancelled", "cancel", manual=True)
    b.edge("paid", "shipped", "ship", processors=[
        Processor(name="create_shipment", execution_mode="ASYNC_NEW_TX", config={}),
    ])
    b.edge("paid", "cancelled", "refund_and_cancel", manual=True)
    b.edge("shipped", "delivered", "confirm_delivery")
    b.edge("shipped", "returned", "return", manual=True)
    b.edge("returned", "paid", "restock",
           criterion=Criterion(type="group", operator="AND", conditions=[
               {"type": "simple", "jsonPath": "$.return.inspected",
                "operation": "EQUALS", "value": True},
               {"type": "simple", "jsonPath": "$.return.damaged",
                "operation": "EQUALS", "value": False},
           ]))

    return b.build(
        "template-order-lifecycle",
        "order",
        name="Order Lifecycle",
        description="Order processing with payment retry, cancellation and returns.",
        initial_state="draft",
    )


# ============================================================================
# Approval Template
# ============================================================================


def create_approval_template() -> UIWorkflowData:
    """Single-reviewer approval with rework loop."""
    b = _TemplateBuilder()

    b.state("draft",          "Draft",          0,   150)
    b.state("pending_review", "Pending Review", 300, 150)
    b.state("approved",       "Approved",       600, 0)
    b.state("rejected",       "Rejected",       600, 300)

    b.edge("draft", "pending_review", "submit_for_review", manual=True)
    b.edge("pending_review", "approved", "approve", manual=True)
    b.edge("pending_review", "rejected", "reject", manual=True)
    b.edge("pending_review", "pending_review", "request_info", manual=True,
           label={"x": 30, "y": -30})
    b.edge("rejected", "draft", "rework", manual=True, label={"x": 0, "y": 40})

    return b.build(
        "template-approval",
        "document",
        name="Document Approval",
        description="Submit, review, then approve or send back for rework.",
        initial_state="draft",
    )


# ============================================================================
# Template Registry
# ============================================================================

ALL_TEMPLATES = [
    create_order_lifecycle_template,
    create_approval_template,
]


def install_templates(store) -> int:
    """Install built-in templates into the workflow store.

    Always overwrites existing templates to keep them up-to-date.
    Returns the number of templates installed.
    """
    installed = 0
    for factory in ALL_TEMPLATES:
        store.save(factory())
        installed += 1
    return installed
