"""
Workflow Validation — schema checks for raw configuration data.

Used at the text/JSON editor boundary. ``validate_configuration``
never raises; it collects ``ValidationIssue`` records with a dotted
path (``states.a.transitions[0].next``) so an editor can point at the
offending spot. ``parse_configuration`` turns raw input into a
``WorkflowConfiguration``, substituting safe fallbacks unless called
with ``strict=True``.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from logging import getLogger
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from fsm_canvas.workflow.workflow_model import UIWorkflowData, WorkflowConfiguration

logger = getLogger(__name__)

SEVERITY_ERROR = "error"
SEVERITY_WARNING = "warning"

EXECUTION_MODES = ("SYNC", "ASYNC_NEW_TX", "ASYNC_SAME_TX")
RETRY_POLICIES = ("FIXED", "EXPONENTIAL", "LINEAR")
CRITERION_TYPES = ("function", "group", "simple")
CRITERION_OPERATIONS = (
    "EQUALS",
    "GREATER_THAN",
    "GREATER_OR_EQUAL",
    "LESS_THAN",
    "LESS_OR_EQUAL",
    "NOT_EQUALS",
)
GROUP_OPERATORS = ("AND", "OR")


@dataclass
class ValidationIssue:
    path: str
    message: str
    severity: str = SEVERITY_ERROR

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


@dataclass
class ValidationResult:
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def error(self, path: str, message: str) -> None:
        self.errors.append(ValidationIssue(path, message, SEVERITY_ERROR))

    def warn(self, path: str, message: str) -> None:
        self.warnings.append(ValidationIssue(path, message, SEVERITY_WARNING))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "errors": [issue.to_dict() for issue in self.errors],
            "warnings": [issue.to_dict() for issue in self.warnings],
        }


class WorkflowValidationError(ValueError):
    """Raised by strict parsing when the input is not a usable configuration."""

    def __init__(self, issues: List[ValidationIssue], message: Optional[str] = None):
        self.issues = issues
        if message is None:
            first = issues[0] if issues else None
            message = f"{first.path}: {first.message}" if first else "Invalid workflow configuration"
            if len(issues) > 1:
                message += f" (+{len(issues) - 1} more)"
        super().__init__(message)


# ============================================================================
# Schema validation
# ============================================================================


def validate_configuration(data: Any) -> ValidationResult:
    """Validate a raw configuration mapping (or a ``WorkflowConfiguration``)."""
    if isinstance(data, WorkflowConfiguration):
        data = data.model_dump(by_alias=True, exclude_none=True)

    result = ValidationResult()
    if not isinstance(data, Mapping):
        result.error("root", "Workflow data must be an object")
        return result

    if not data.get("version") or not isinstance(data.get("version"), str):
        result.error("version", "Version is required and must be a string")
    if not data.get("name") or not isinstance(data.get("name"), str):
        result.error("name", "Name is required and must be a string")

    initial_state = data.get("initialState") or data.get("initial_state")
    if not initial_state or not isinstance(initial_state, str):
        result.error("initialState", "initialState is required and must be a string")
        initial_state = None

    states = data.get("states")
    if not isinstance(states, Mapping):
        result.error("states", "States is required and must be an object")
        return result
    if not states:
        result.error("states", "Workflow must define at least one state")

    if initial_state and initial_state not in states:
        result.error("initialState", f'Initial state "{initial_state}" not found in states')

    for state_id, state in states.items():
        _validate_state(str(state_id), state, states, result)

    if initial_state in states:
        for state_id in _unreachable_states(initial_state, states):
            result.warn(f"states.{state_id}", f'State "{state_id}" is unreachable from "{initial_state}"')

    return result


def _validate_state(
    state_id: str,
    state: Any,
    states: Mapping[str, Any],
    result: ValidationResult,
) -> None:
    base = f"states.{state_id}"
    if not isinstance(state, Mapping):
        result.error(base, "State data must be an object")
        return
    transitions = state.get("transitions")
    if not isinstance(transitions, list):
        result.error(f"{base}.transitions", "Transitions must be an array")
        return
    for index, transition in enumerate(transitions):
        _validate_transition(f"{base}.transitions[{index}]", transition, states, result)


def _validate_transition(
    path: str,
    transition: Any,
    states: Mapping[str, Any],
    result: ValidationResult,
) -> None:
    if not isinstance(transition, Mapping):
        result.error(path, "Transition must be an object")
        return

    if not transition.get("name") or not isinstance(transition.get("name"), str):
        result.error(f"{path}.name", "Transition name is required and must be a string")

    target = transition.get("next")
    if not target or not isinstance(target, str):
        result.error(f"{path}.next", "Transition next is required and must be a string")
    elif target not in states:
        result.error(f"{path}.next", f'Target state "{target}" not found')

    if not isinstance(transition.get("manual"), bool):
        result.error(f"{path}.manual", "Transition manual is required and must be a boolean")

    processors = transition.get("processors")
    if processors is not None:
        if not isinstance(processors, list):
            result.error(f"{path}.processors", "Processors must be an array")
        else:
            for index, processor in enumerate(processors):
                _validate_processor(f"{path}.processors[{index}]", processor, result)

    criterion = transition.get("criterion")
    if criterion is not None:
        _validate_criterion(f"{path}.criterion", criterion, result)


def _validate_processor(path: str, processor: Any, result: ValidationResult) -> None:
    if not isinstance(processor, Mapping):
        result.error(path, "Processor must be an object")
        return

    if not processor.get("name") or not isinstance(processor.get("name"), str):
        result.error(f"{path}.name", "Processor name is required and must be a string")

    if processor.get("executionMode") not in EXECUTION_MODES:
        result.error(
            f"{path}.executionMode",
            f"Processor executionMode must be one of: {', '.join(EXECUTION_MODES)}",
        )

    config = processor.get("config")
    if not isinstance(config, Mapping):
        result.error(f"{path}.config", "Processor config is required and must be an object")
        return
    retry_policy = config.get("retryPolicy")
    if retry_policy and retry_policy not in RETRY_POLICIES:
        result.error(
            f"{path}.config.retryPolicy",
            f"retryPolicy must be one of: {', '.join(RETRY_POLICIES)}",
        )


def _validate_criterion(path: str, criterion: Any, result: ValidationResult) -> None:
    if not isinstance(criterion, Mapping):
        result.error(path, "Criterion must be an object")
        return

    criterion_type = criterion.get("type")
    if criterion_type not in CRITERION_TYPES:
        result.error(f"{path}.type", f"Criterion type must be one of: {', '.join(CRITERION_TYPES)}")
        return

    if criterion_type == "simple":
        _validate_simple_criterion(path, criterion, result)

    elif criterion_type == "group":
        if criterion.get("operator") not in GROUP_OPERATORS:
            result.error(
                f"{path}.operator",
                f"Group operator must be one of: {', '.join(GROUP_OPERATORS)}",
            )
        conditions = criterion.get("conditions")
        if not isinstance(conditions, list):
            result.error(f"{path}.conditions", "Group criterion requires conditions array")
        else:
            for index, condition in enumerate(conditions):
                condition_path = f"{path}.conditions[{index}]"
                if not isinstance(condition, Mapping) or condition.get("type") != "simple":
                    result.error(f"{condition_path}.type", 'Group conditions must be of type "simple"')
                else:
                    _validate_simple_criterion(condition_path, condition, result)

    else:
        function = criterion.get("function")
        if not isinstance(function, Mapping):
            result.error(f"{path}.function", "Function criterion requires function object")
            return
        if not function.get("name") or not isinstance(function.get("name"), str):
            result.error(f"{path}.function.name", "Function name is required")
        if not isinstance(function.get("config"), Mapping):
            result.error(f"{path}.function.config", "Function config is required")


def _validate_simple_criterion(path: str, criterion: Mapping, result: ValidationResult) -> None:
    if not criterion.get("jsonPath") or not isinstance(criterion.get("jsonPath"), str):
        result.error(f"{path}.jsonPath", "Simple criterion requires jsonPath string")
    if criterion.get("operation") not in CRITERION_OPERATIONS:
        result.error(
            f"{path}.operation",
            f"Operation must be one of: {', '.join(CRITERION_OPERATIONS)}",
        )
    if "value" not in criterion:
        result.error(f"{path}.value", "Simple criterion requires value")


def _unreachable_states(initial_state: str, states: Mapping[str, Any]) -> List[str]:
    seen = {initial_state}
    stack = [initial_state]
    while stack:
        state = states.get(stack.pop())
        if not isinstance(state, Mapping) or not isinstance(state.get("transitions"), list):
            continue
        for transition in state["transitions"]:
            target = transition.get("next") if isinstance(transition, Mapping) else None
            if isinstance(target, str) and target in states and target not in seen:
                seen.add(target)
                stack.append(target)
    return [str(state_id) for state_id in states if state_id not in seen]


# ============================================================================
# Parsing & export
# ============================================================================


def parse_configuration(
    data_or_text: Union[str, bytes, Mapping[str, Any], WorkflowConfiguration],
    strict: bool = False,
) -> WorkflowConfiguration:
    """Build a ``WorkflowConfiguration`` from JSON text or a mapping.

    Lenient mode fills ``version``/``name`` defaults, accepts the legacy
    ``initial_state`` key, and falls back to the first state when the
    initial state is missing or dangling. Strict mode raises
    ``WorkflowValidationError`` on any schema error instead.
    """
    if isinstance(data_or_text, WorkflowConfiguration):
        data: Any = data_or_text.model_dump(by_alias=True, exclude_none=True)
    elif isinstance(data_or_text, (str, bytes)):
        try:
            data = json.loads(data_or_text)
        except json.JSONDecodeError as e:
            raise WorkflowValidationError(
                [ValidationIssue("root", f"Invalid JSON: {e.msg} (line {e.lineno})")]
            ) from e
    else:
        data = data_or_text

    if not isinstance(data, Mapping):
        raise WorkflowValidationError([ValidationIssue("root", "Workflow data must be an object")])

    if strict:
        result = validate_configuration(data)
        if not result.is_valid:
            raise WorkflowValidationError(result.errors)

    normalized: Dict[str, Any] = dict(data)
    initial_state = normalized.pop("initialState", None) or normalized.pop("initial_state", None) or ""
    normalized.pop("initial_state", None)
    normalized["initialState"] = initial_state
    normalized["version"] = normalized.get("version") or "1.0"
    normalized["name"] = normalized.get("name") or "Untitled Workflow"
    if normalized.get("states") is None:
        normalized["states"] = {}

    try:
        configuration = WorkflowConfiguration.model_validate(normalized)
    except ValidationError as e:
        issues = [
            ValidationIssue(".".join(str(part) for part in err["loc"]) or "root", err["msg"])
            for err in e.errors()
        ]
        raise WorkflowValidationError(issues) from e

    resolved = configuration.resolve_initial_state() or ""
    if resolved != configuration.initial_state:
        logger.warning(
            f"Initial state '{configuration.initial_state}' not found, "
            f"falling back to '{resolved}'"
        )
        configuration.initial_state = resolved
    return configuration


def export_configuration_json(
    workflow: Union[UIWorkflowData, WorkflowConfiguration],
    indent: int = 2,
) -> str:
    """Pretty camelCase JSON of the configuration alone (no layout)."""
    configuration = workflow.configuration if isinstance(workflow, UIWorkflowData) else workflow
    return json.dumps(
        configuration.model_dump(by_alias=True, exclude_none=True),
        indent=indent,
        ensure_ascii=False,
    )
