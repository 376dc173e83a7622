"""Engine configuration loaded from YAML.

Example ``bamboo.yaml``:

    bamboo:
      basedirs:
        - themes/dark/
        - themes/default/
      suffix: .html.j2
      defaults:
        site_name: Example
      variables:
        pages/home:
          title: Welcome
      function_dirs:
        - helpers/

Configuration sources (highest to lowest priority):
1. Environment variables: BAMBOO_*
2. The YAML file passed to ``load_config``
3. Built-in defaults (``EngineConfig`` field defaults)

Relative ``basedirs`` and ``function_dirs`` are resolved against the
directory holding the config file.
"""
from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from jsonschema import Draft202012Validator

from .data import get_data_path
from .exceptions import ConfigError
from .renderer import DEFAULT_MAX_DEPTH

logger = logging.getLogger(__name__)

ENV_PREFIX = "BAMBOO_"
DEFAULT_SUFFIX = ".j2"
SCHEMA_NAME = "engine.schema.yaml"

_LIST_KEYS = ("basedirs", "function_dirs")
_ENV_KEYS = ("suffix", "autoescape", "strict_undefined", "max_depth") + _LIST_KEYS


@dataclass(frozen=True)
class EngineConfig:
    """Immutable engine settings."""

    basedirs: Tuple[str, ...]
    suffix: str = DEFAULT_SUFFIX
    variables: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    defaults: Dict[str, Any] = field(default_factory=dict)
    function_dirs: Tuple[str, ...] = ()
    autoescape: bool = False
    strict_undefined: bool = False
    max_depth: int = DEFAULT_MAX_DEPTH

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, base_dir: Optional[Path] = None) -> "EngineConfig":
        """Validate ``data`` and build a config from it.

        Raises:
            ConfigError: If ``data`` does not match the engine schema
        """
        validate_config(data)
        return cls(
            basedirs=tuple(_expand_dir(d, base_dir) for d in data["basedirs"]),
            suffix=data.get("suffix", DEFAULT_SUFFIX),
            variables={str(k): dict(v) for k, v in (data.get("variables") or {}).items()},
            defaults=dict(data.get("defaults") or {}),
            function_dirs=tuple(
                _expand_dir(d, base_dir, trailing_sep=False) for d in data.get("function_dirs") or ()
            ),
            autoescape=bool(data.get("autoescape", False)),
            strict_undefined=bool(data.get("strict_undefined", False)),
            max_depth=int(data.get("max_depth", DEFAULT_MAX_DEPTH)),
        )


def load_schema() -> Dict[str, Any]:
    schema = read_yaml(get_data_path("schemas", SCHEMA_NAME))
    if not isinstance(schema, dict):
        raise ConfigError(f"Schema must be a YAML mapping, got {type(schema).__name__}")
    return schema


def validate_config(data: Any) -> None:
    """Validate a config mapping, reporting every violation at once."""
    validator = Draft202012Validator(load_schema())
    errors: List[str] = []
    for error in sorted(validator.iter_errors(data), key=lambda e: str(e.path)):
        if error.path:
            path_str = ".".join(str(p) for p in error.path)
            errors.append(f"{path_str}: {error.message}")
        else:
            errors.append(error.message)
    if errors:
        raise ConfigError(
            "Invalid bamboo configuration:\n" + "\n".join(f"- {e}" for e in errors),
            context={"errors": errors},
        )


def read_yaml(path: Path) -> Any:
    """Read a YAML file, failing closed on missing or malformed input."""
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}", context={"path": str(path)})
    try:
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}", context={"path": str(path)}) from exc


def load_config(path: Path, *, environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """Load, override, and validate engine configuration from ``path``.

    Args:
        path: YAML file; settings live under a top-level ``bamboo`` key
            (a bare mapping is accepted too)
        environ: Environment to read ``BAMBOO_*`` overrides from
            (defaults to ``os.environ``)

    Raises:
        ConfigError: If the file is missing, unparsable, or invalid
    """
    path = Path(path)
    raw = read_yaml(path) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config root must be a mapping in {path}", context={"path": str(path)})

    data = raw.get("bamboo", raw)
    if not isinstance(data, dict):
        raise ConfigError(f"'bamboo' section must be a mapping in {path}", context={"path": str(path)})

    data = apply_env_overrides(data, os.environ if environ is None else environ)
    config = EngineConfig.from_mapping(data, base_dir=path.parent)
    logger.debug("Loaded bamboo config from %s: basedirs=%s", path, list(config.basedirs))
    return config


def apply_env_overrides(data: Mapping[str, Any], environ: Mapping[str, str]) -> Dict[str, Any]:
    """Return a copy of ``data`` with ``BAMBOO_*`` variables applied."""
    result = dict(data)
    for key in _ENV_KEYS:
        env_key = ENV_PREFIX + key.upper()
        if env_key not in environ:
            continue
        raw = environ[env_key]
        if key in _LIST_KEYS:
            result[key] = _as_list(raw)
        elif key == "suffix":
            result[key] = raw
        else:
            result[key] = _coerce_type(raw)
        logger.debug("Config override from %s", env_key)
    return result


def _as_bool(v: str) -> Optional[bool]:
    low = v.strip().lower()
    if low in {"true", "false"}:
        return low == "true"
    return None


def _as_int(v: str) -> Optional[int]:
    if re.fullmatch(r"[-+]?\d+", v.strip() or " "):
        return int(v)
    return None


def _as_json(v: str) -> Optional[Any]:
    s = v.strip()
    if (s.startswith("{") and s.endswith("}")) or (s.startswith("[") and s.endswith("]")):
        try:
            return json.loads(s)
        except json.JSONDecodeError:
            return None
    return None


def _coerce_type(value: str) -> Any:
    for caster in (_as_bool, _as_int, _as_json):
        result = caster(value)
        if result is not None:
            return result
    return value.strip()


def _as_list(value: str) -> List[str]:
    parsed = _as_json(value)
    if isinstance(parsed, list):
        return [str(item) for item in parsed]
    return [part for part in value.split(os.pathsep) if part.strip()]


def _expand_dir(raw: str, base_dir: Optional[Path], *, trailing_sep: bool = True) -> str:
    s = os.path.expanduser(os.path.expandvars(str(raw).strip()))
    if base_dir is not None and not os.path.isabs(s):
        # Relative paths are config-file-relative for portability.
        s = os.path.join(str(base_dir), s)
    if trailing_sep and not s.endswith(("/", os.sep)):
        s += os.sep
    return s


__all__ = [
    "EngineConfig",
    "ENV_PREFIX",
    "DEFAULT_SUFFIX",
    "load_config",
    "load_schema",
    "validate_config",
    "apply_env_overrides",
    "read_yaml",
]
