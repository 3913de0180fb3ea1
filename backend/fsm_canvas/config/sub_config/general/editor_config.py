"""
Editor Configuration.

Controls undo history depth, workflow storage location, and the
default grid used to place states that have no layout entry.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List

from fsm_canvas.config.base import BaseConfig, ConfigField, FieldType, register_config
from fsm_canvas.config.sub_config.general.env_utils import read_env_defaults

_DEFAULT_STORAGE_DIR = Path(__file__).resolve().parents[4] / "workflows"


@register_config
@dataclass
class EditorConfig(BaseConfig):
    """History, storage, and default placement settings."""

    history_max_entries: int = 50
    storage_dir: str = ""
    default_state_x: float = 100.0
    default_state_y: float = 100.0
    grid_columns: int = 3
    grid_spacing_x: float = 250.0
    grid_spacing_y: float = 150.0

    _ENV_MAP = {
        "history_max_entries": "FSM_CANVAS_HISTORY_MAX_ENTRIES",
        "storage_dir": "FSM_CANVAS_STORAGE_DIR",
        "default_state_x": "FSM_CANVAS_DEFAULT_STATE_X",
        "default_state_y": "FSM_CANVAS_DEFAULT_STATE_Y",
        "grid_columns": "FSM_CANVAS_GRID_COLUMNS",
        "grid_spacing_x": "FSM_CANVAS_GRID_SPACING_X",
        "grid_spacing_y": "FSM_CANVAS_GRID_SPACING_Y",
    }

    @classmethod
    def get_default_instance(cls) -> "EditorConfig":
        defaults = read_env_defaults(cls._ENV_MAP, cls.__dataclass_fields__)
        return cls(**defaults)

    @classmethod
    def get_config_name(cls) -> str:
        return "editor"

    @classmethod
    def get_display_name(cls) -> str:
        return "Workflow Editor"

    @classmethod
    def get_description(cls) -> str:
        return "Undo history depth, storage directory, and default state placement."

    def resolve_storage_dir(self) -> Path:
        return Path(self.storage_dir) if self.storage_dir else _DEFAULT_STORAGE_DIR

    def grid_position(self, index: int) -> tuple:
        """Default ``(x, y)`` for the ``index``-th state placed on the grid."""
        columns = max(1, self.grid_columns)
        return (
            self.default_state_x + (index % columns) * self.grid_spacing_x,
            self.default_state_y + (index // columns) * self.grid_spacing_y,
        )

    @classmethod
    def get_fields_metadata(cls) -> List[ConfigField]:
        return [
            ConfigField(
                name="history_max_entries",
                field_type=FieldType.NUMBER,
                label="History Depth",
                description="Maximum undo (and redo) entries kept per workflow",
                default=50,
                min_value=1,
                max_value=1000,
                group="history",
            ),
            ConfigField(
                name="storage_dir",
                field_type=FieldType.PATH,
                label="Storage Directory",
                description="Where workflow JSON files are written (empty = backend/workflows)",
                placeholder="/var/lib/fsm-canvas/workflows",
                group="storage",
            ),
            ConfigField(
                name="default_state_x",
                field_type=FieldType.NUMBER,
                label="Default X",
                description="X of the first grid slot for unplaced states",
                default=100.0,
                group="placement",
            ),
            ConfigField(
                name="default_state_y",
                field_type=FieldType.NUMBER,
                label="Default Y",
                description="Y of the first grid slot for unplaced states",
                default=100.0,
                group="placement",
            ),
            ConfigField(
                name="grid_columns",
                field_type=FieldType.NUMBER,
                label="Grid Columns",
                description="States per grid row when backfilling positions",
                default=3,
                min_value=1,
                group="placement",
            ),
            ConfigField(
                name="grid_spacing_x",
                field_type=FieldType.NUMBER,
                label="Grid Spacing X",
                default=250.0,
                min_value=0,
                group="placement",
            ),
            ConfigField(
                name="grid_spacing_y",
                field_type=FieldType.NUMBER,
                label="Grid Spacing Y",
                default=150.0,
                min_value=0,
                group="placement",
            ),
        ]
