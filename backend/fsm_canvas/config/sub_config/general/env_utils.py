"""
Environment helpers for config defaults.
"""

from __future__ import annotations

import os
from logging import getLogger
from typing import Any, Dict, Mapping

logger = getLogger(__name__)

_TRUE_VALUES = ("1", "true", "yes", "on")


def read_env_defaults(
    env_map: Mapping[str, str],
    fields: Mapping[str, Any],
) -> Dict[str, Any]:
    """Collect constructor overrides from environment variables.

    ``env_map`` maps dataclass field names to environment variable
    names. Unset or empty variables are skipped so the dataclass
    default applies. Values are coerced using the field's annotation.
    """
    defaults: Dict[str, Any] = {}
    for field_name, env_name in env_map.items():
        raw = os.environ.get(env_name)
        if raw is None or raw.strip() == "":
            continue
        field = fields.get(field_name)
        if field is None:
            continue
        try:
            defaults[field_name] = _coerce(raw.strip(), field.type)
        except ValueError:
            logger.warning(f"Ignoring invalid value for {env_name}: {raw!r}")
    return defaults


def _coerce(raw: str, type_hint: Any) -> Any:
    # Annotations are strings under ``from __future__ import annotations``.
    hint = type_hint if isinstance(type_hint, str) else getattr(type_hint, "__name__", str(type_hint))
    if "bool" in hint:
        return raw.lower() in _TRUE_VALUES
    if "int" in hint:
        return int(raw)
    if "float" in hint:
        return float(raw)
    return raw
