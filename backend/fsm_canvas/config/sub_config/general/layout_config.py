"""
Auto-Layout Configuration.

Controls level spacing, relaxation distances, and jitter used by
``AutoLayoutEngine`` when arranging states on the canvas.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from fsm_canvas.config.base import BaseConfig, ConfigField, FieldType, register_config
from fsm_canvas.config.sub_config.general.env_utils import read_env_defaults


@register_config
@dataclass
class LayoutConfig(BaseConfig):
    """Auto-layout geometry and relaxation settings."""

    level_spacing: float = 300.0
    node_spacing: float = 150.0
    jitter: float = 12.0
    loop_push: float = 60.0
    min_distance: float = 180.0
    preferred_distance: float = 260.0
    attraction: float = 0.05
    optimize_passes: int = 5
    max_vertical_spread: float = 450.0
    vertical_pullback: float = 0.5
    terminal_min_level: int = 2
    seed: Optional[int] = None

    _ENV_MAP = {
        "level_spacing": "FSM_CANVAS_LAYOUT_LEVEL_SPACING",
        "node_spacing": "FSM_CANVAS_LAYOUT_NODE_SPACING",
        "jitter": "FSM_CANVAS_LAYOUT_JITTER",
        "loop_push": "FSM_CANVAS_LAYOUT_LOOP_PUSH",
        "min_distance": "FSM_CANVAS_LAYOUT_MIN_DISTANCE",
        "preferred_distance": "FSM_CANVAS_LAYOUT_PREFERRED_DISTANCE",
        "attraction": "FSM_CANVAS_LAYOUT_ATTRACTION",
        "optimize_passes": "FSM_CANVAS_LAYOUT_OPTIMIZE_PASSES",
        "max_vertical_spread": "FSM_CANVAS_LAYOUT_MAX_VERTICAL_SPREAD",
        "vertical_pullback": "FSM_CANVAS_LAYOUT_VERTICAL_PULLBACK",
        "terminal_min_level": "FSM_CANVAS_LAYOUT_TERMINAL_MIN_LEVEL",
        "seed": "FSM_CANVAS_LAYOUT_SEED",
    }

    @classmethod
    def get_default_instance(cls) -> "LayoutConfig":
        defaults = read_env_defaults(cls._ENV_MAP, cls.__dataclass_fields__)
        return cls(**defaults)

    @classmethod
    def get_config_name(cls) -> str:
        return "layout"

    @classmethod
    def get_display_name(cls) -> str:
        return "Auto Layout"

    @classmethod
    def get_description(cls) -> str:
        return "Spacing, overlap resolution, and jitter for automatic state arrangement."

    @classmethod
    def get_fields_metadata(cls) -> List[ConfigField]:
        return [
            ConfigField(
                name="level_spacing",
                field_type=FieldType.NUMBER,
                label="Level Spacing",
                description="Horizontal distance between consecutive BFS levels",
                default=300.0,
                min_value=50,
                group="geometry",
            ),
            ConfigField(
                name="node_spacing",
                field_type=FieldType.NUMBER,
                label="Node Spacing",
                description="Vertical distance between states sharing a level",
                default=150.0,
                min_value=20,
                group="geometry",
            ),
            ConfigField(
                name="jitter",
                field_type=FieldType.NUMBER,
                label="Jitter",
                description="Maximum random offset applied to each coordinate",
                default=12.0,
                min_value=0,
                max_value=100,
                group="geometry",
            ),
            ConfigField(
                name="loop_push",
                field_type=FieldType.NUMBER,
                label="Loop Push",
                description="Extra vertical offset for states with self-loops or backward transitions",
                default=60.0,
                min_value=0,
                group="geometry",
            ),
            ConfigField(
                name="min_distance",
                field_type=FieldType.NUMBER,
                label="Minimum Distance",
                description="States closer than this are pushed apart",
                default=180.0,
                min_value=0,
                group="relaxation",
            ),
            ConfigField(
                name="preferred_distance",
                field_type=FieldType.NUMBER,
                label="Preferred Distance",
                description="States between minimum and preferred distance are pulled together slightly",
                default=260.0,
                min_value=0,
                group="relaxation",
            ),
            ConfigField(
                name="attraction",
                field_type=FieldType.NUMBER,
                label="Attraction",
                description="Fraction of the excess distance removed per pass",
                default=0.05,
                min_value=0,
                max_value=1,
                group="relaxation",
            ),
            ConfigField(
                name="optimize_passes",
                field_type=FieldType.NUMBER,
                label="Relaxation Passes",
                description="Exact number of pairwise correction passes",
                default=5,
                min_value=0,
                max_value=100,
                group="relaxation",
            ),
            ConfigField(
                name="max_vertical_spread",
                field_type=FieldType.NUMBER,
                label="Max Vertical Spread",
                description="Distance from the mean y beyond which states are pulled back",
                default=450.0,
                min_value=0,
                group="relaxation",
            ),
            ConfigField(
                name="vertical_pullback",
                field_type=FieldType.NUMBER,
                label="Vertical Pullback",
                description="Fraction of the excess vertical spread removed",
                default=0.5,
                min_value=0,
                max_value=1,
                group="relaxation",
            ),
            ConfigField(
                name="terminal_min_level",
                field_type=FieldType.NUMBER,
                label="Terminal Minimum Level",
                description="Lowest level for states named like terminal states",
                default=2,
                min_value=0,
                group="leveling",
            ),
            ConfigField(
                name="seed",
                field_type=FieldType.NUMBER,
                label="Random Seed",
                description="Fixes jitter for reproducible layouts (empty = random)",
                group="leveling",
            ),
        ]
