"""
Editor configuration.

Importing this package registers every built-in config.
"""

from fsm_canvas.config.base import (
    BaseConfig,
    ConfigField,
    FieldType,
    get_config,
    get_registered_configs,
    register_config,
    reset_configs,
)
from fsm_canvas.config.sub_config.general.editor_config import EditorConfig
from fsm_canvas.config.sub_config.general.layout_config import LayoutConfig

__all__ = [
    "BaseConfig",
    "ConfigField",
    "FieldType",
    "get_config",
    "get_registered_configs",
    "register_config",
    "reset_configs",
    "EditorConfig",
    "LayoutConfig",
]
