"""
Workflow Store — JSON-file persistence for canvas workflows.

Each ``UIWorkflowData`` (configuration + layout) is written verbatim,
camelCase, to its own file under the configured storage directory.
Loading migrates legacy endpoint-keyed layout ids and prunes stale
layout entries so callers always receive a reconciled workflow.
"""

from __future__ import annotations

import json
from logging import getLogger
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from fsm_canvas.config import EditorConfig, get_config
from fsm_canvas.workflow.workflow_model import UIWorkflowData
from fsm_canvas.workflow.workflow_sync import cleanup_workflow_state, migrate_legacy_layout

logger = getLogger(__name__)


class WorkflowStore:
    """Persist and load UIWorkflowData objects as JSON files."""

    def __init__(self, storage_dir: Optional[Path] = None) -> None:
        self._dir = Path(storage_dir) if storage_dir else get_config(EditorConfig).resolve_storage_dir()
        self._dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"WorkflowStore initialized at {self._dir}")

    @property
    def storage_dir(self) -> Path:
        return self._dir

    # ── CRUD ──

    def save(self, workflow: UIWorkflowData) -> None:
        """Save (create or update) a workflow; stamps ``updated_at``."""
        workflow.touch()
        path = self._path_for(workflow.id)
        path.write_text(
            workflow.model_dump_json(indent=2, by_alias=True, exclude_none=True),
            encoding="utf-8",
        )
        logger.info(f"Workflow saved: {workflow.configuration.name} ({workflow.id})")

    def load(self, workflow_id: str) -> Optional[UIWorkflowData]:
        """Load a single workflow by ID (``None`` if missing or unreadable)."""
        path = self._path_for(workflow_id)
        if not path.exists():
            return None
        try:
            return self._read(path)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load workflow {workflow_id}: {e}")
            return None

    def delete(self, workflow_id: str) -> bool:
        path = self._path_for(workflow_id)
        if path.exists():
            path.unlink()
            logger.info(f"Workflow deleted: {workflow_id}")
            return True
        return False

    def list_all(self) -> List[UIWorkflowData]:
        """List all saved workflows, skipping malformed files."""
        workflows: List[UIWorkflowData] = []
        for path in sorted(self._dir.glob("*.json")):
            try:
                workflows.append(self._read(path))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping malformed workflow file {path.name}: {e}")
        return workflows

    def exists(self, workflow_id: str) -> bool:
        return self._path_for(workflow_id).exists()

    # ── Internals ──

    @staticmethod
    def _read(path: Path) -> UIWorkflowData:
        data = json.loads(path.read_text(encoding="utf-8"))
        try:
            workflow = UIWorkflowData.model_validate(data)
        except ValidationError as e:
            raise ValueError(f"invalid workflow data: {e.error_count()} error(s)") from e
        return cleanup_workflow_state(migrate_legacy_layout(workflow))

    def _path_for(self, workflow_id: str) -> Path:
        # Sanitize ID for filesystem
        safe_id = "".join(c for c in workflow_id if c.isalnum() or c in "-_")
        return self._dir / f"{safe_id}.json"


# ── Singleton ──

_store_instance: Optional[WorkflowStore] = None


def get_workflow_store() -> WorkflowStore:
    """Return the global WorkflowStore singleton."""
    global _store_instance
    if _store_instance is None:
        _store_instance = WorkflowStore()
    return _store_instance
