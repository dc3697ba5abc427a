"""
Configuration for plotfactory.

Settings are resolved in three layers: dataclass defaults, an optional
YAML file, then PLOTFACTORY_* environment variables.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "PLOTFACTORY_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class PlotFactoryConfig:
    """Configuration for chart output and dataset loading."""

    # Output settings
    output_dir: str = "plots"
    image_format: str = "png"
    width: float = 7.0
    height: float = 5.0
    dpi: int = 150

    # Appearance
    style: str = "whitegrid"
    palette: str = "viridis"
    font_family: Optional[str] = None

    # Dataset settings
    categorical_threshold: int = 50

    # Batch settings
    fail_fast: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @property
    def figsize(self) -> tuple:
        return (self.width, self.height)

    @classmethod
    def from_mapping(
        cls,
        values: Dict[str, Any],
        base: Optional["PlotFactoryConfig"] = None,
    ) -> "PlotFactoryConfig":
        """
        Build a config from a plain mapping, starting from a copy of ``base``.

        Values are checked against the field types here, so a bad setting
        fails at load time. Unknown keys are ignored with a warning.
        """
        known = {f.name: f for f in fields(cls)}
        changes = {}
        for key, raw in values.items():
            if key not in known:
                logger.warning("Ignoring unknown config key: %s", key)
                continue
            changes[key] = _coerce(key, raw, known[key].default)
        return replace(base or cls(), **changes)

    @classmethod
    def from_env(
        cls,
        base: Optional["PlotFactoryConfig"] = None,
        environ: Optional[Dict[str, str]] = None,
    ) -> "PlotFactoryConfig":
        """Load settings from PLOTFACTORY_* environment variables."""
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            env_name = ENV_PREFIX + f.name.upper()
            if env_name in environ:
                values[f.name] = environ[env_name]
        return cls.from_mapping(values, base=base)

    @classmethod
    def from_yaml(
        cls,
        path: Union[str, Path],
        base: Optional["PlotFactoryConfig"] = None,
    ) -> "PlotFactoryConfig":
        """Load settings from a YAML file containing a flat mapping."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Error parsing config file {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")

        logger.info("Loaded config from %s with %d keys", path, len(data))
        return cls.from_mapping(data, base=base)


def load_config(path: Optional[Union[str, Path]] = None) -> PlotFactoryConfig:
    """
    Resolve the effective configuration.

    Args:
        path: Optional YAML file. Falls back to PLOTFACTORY_CONFIG when unset.

    Returns:
        PlotFactoryConfig with defaults, YAML values and env overrides applied
    """
    config = PlotFactoryConfig()

    path = path or os.getenv(ENV_PREFIX + "CONFIG")
    if path:
        config = PlotFactoryConfig.from_yaml(path, base=config)

    return PlotFactoryConfig.from_env(base=config)


def _coerce(key: str, raw: Any, default: Any) -> Any:
    """
    Convert a raw value to the type of the field's default.

    Strings (from the environment) are parsed; typed values (from YAML)
    must already have the right type. Fields defaulting to None accept a
    string or None.
    """
    if default is None:
        if raw is None or isinstance(raw, str):
            return raw
        raise ConfigError(f"Invalid value for {key}: expected a string, got {raw!r}")

    if isinstance(default, bool):
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, str):
            lowered = raw.strip().lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
        raise ConfigError(f"Invalid boolean for {key}: {raw!r}")

    if isinstance(default, (int, float)):
        target = type(default)
        if isinstance(raw, str):
            try:
                return target(raw)
            except ValueError as e:
                raise ConfigError(f"Invalid value for {key}: {raw!r}") from e
        # bool is an int subclass
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            raise ConfigError(f"Invalid value for {key}: {raw!r}")
        if target is int and not isinstance(raw, int):
            raise ConfigError(f"Invalid value for {key}: expected an integer, got {raw!r}")
        return target(raw)

    if not isinstance(raw, str):
        raise ConfigError(f"Invalid value for {key}: expected a string, got {raw!r}")
    return raw
