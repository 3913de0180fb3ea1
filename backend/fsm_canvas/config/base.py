"""
Config Base — registry and field metadata for editor configuration.

Each config is a dataclass deriving from ``BaseConfig`` and registered
with ``@register_config``. Defaults come from the dataclass fields and
can be overridden from environment variables through the class-level
``_ENV_MAP`` (see ``env_utils.read_env_defaults``).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from logging import getLogger
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

logger = getLogger(__name__)

ConfigT = TypeVar("ConfigT", bound="BaseConfig")


class FieldType(str, Enum):
    """Editor widget type for a config field."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    PATH = "path"
    SELECT = "select"


@dataclass
class ConfigField:
    """Display and validation metadata for a single config field."""
    name: str
    field_type: FieldType
    label: str
    description: str = ""
    default: Any = None
    required: bool = False
    placeholder: str = ""
    options: Optional[List[Dict[str, Any]]] = None
    group: str = "general"
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    apply_change: Optional[Callable[[Any], None]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.field_type.value,
            "label": self.label,
            "description": self.description,
            "default": self.default,
            "required": self.required,
            "placeholder": self.placeholder,
            "options": self.options or [],
            "group": self.group,
            "min": self.min_value,
            "max": self.max_value,
        }


class BaseConfig:
    """Common interface for registered configs.

    Subclasses are dataclasses and must implement
    ``get_default_instance`` and ``get_config_name``.
    """

    _ENV_MAP: Dict[str, str] = {}

    @classmethod
    def get_default_instance(cls: Type[ConfigT]) -> ConfigT:
        raise NotImplementedError

    @classmethod
    def get_config_name(cls) -> str:
        raise NotImplementedError

    @classmethod
    def get_display_name(cls) -> str:
        return cls.get_config_name().title()

    @classmethod
    def get_description(cls) -> str:
        return ""

    @classmethod
    def get_category(cls) -> str:
        return "general"

    @classmethod
    def get_fields_metadata(cls) -> List[ConfigField]:
        return []

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)  # type: ignore[call-overload]

    def validate(self) -> List[str]:
        """Check field values against their metadata bounds.

        Returns a list of error messages (empty = valid).
        """
        errors: List[str] = []
        for meta in self.get_fields_metadata():
            value = getattr(self, meta.name, None)
            if meta.required and value in (None, ""):
                errors.append(f"{meta.label} is required.")
                continue
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                continue
            if meta.min_value is not None and value < meta.min_value:
                errors.append(f"{meta.label} must be >= {meta.min_value} (got {value}).")
            if meta.max_value is not None and value > meta.max_value:
                errors.append(f"{meta.label} must be <= {meta.max_value} (got {value}).")
        return errors

    def describe(self) -> Dict[str, Any]:
        """Serialize config values together with their field metadata."""
        return {
            "name": self.get_config_name(),
            "display_name": self.get_display_name(),
            "description": self.get_description(),
            "category": self.get_category(),
            "values": self.to_dict(),
            "fields": [f.to_dict() for f in self.get_fields_metadata()],
        }


# ── Registry ──

_CONFIG_REGISTRY: Dict[str, Type[BaseConfig]] = {}
_CONFIG_INSTANCES: Dict[str, BaseConfig] = {}


def register_config(cls: Type[ConfigT]) -> Type[ConfigT]:
    """Class decorator adding a config to the global registry."""
    name = cls.get_config_name()
    if name in _CONFIG_REGISTRY and _CONFIG_REGISTRY[name] is not cls:
        logger.warning(f"Config '{name}' re-registered by {cls.__name__}")
    _CONFIG_REGISTRY[name] = cls
    return cls


def get_registered_configs() -> Dict[str, Type[BaseConfig]]:
    return dict(_CONFIG_REGISTRY)


def get_config(cls: Type[ConfigT]) -> ConfigT:
    """Return the cached default instance of a config class."""
    name = cls.get_config_name()
    instance = _CONFIG_INSTANCES.get(name)
    if instance is None:
        instance = cls.get_default_instance()
        for error in instance.validate():
            logger.warning(f"[{name}] {error}")
        _CONFIG_INSTANCES[name] = instance
    return instance  # type: ignore[return-value]


def reset_configs() -> None:
    """Drop cached config instances so the next lookup re-reads the environment."""
    _CONFIG_INSTANCES.clear()
