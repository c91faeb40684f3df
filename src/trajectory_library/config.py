"""
Trajectory Loader Configuration

Defines the source naming scheme, label parsing and validation tolerances
used when loading trajectories, plus file/environment configuration loading.

Configuration loading follows this priority (highest to lowest):
1. Environment variables (from .env file or system)
2. Config file (YAML or JSON)
3. Default values
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Table roles, in load order
ROLES = ("state", "input", "gain", "affine", "rollout")


def get_default_config() -> dict:
    """
    Get default configuration values.

    Returns:
        Dictionary with default configuration values.
    """
    return {
        "time_invariant": False,
        "label_width": 5,  # trailing digits of the prefix holding the number
        "timestep_tolerance_eps": 5.0,  # multiples of machine epsilon per step
        "suffixes": {
            "state": "-x.csv",
            "input": "-u.csv",
            "gain": "-controller.csv",
            "affine": "-affine.csv",
            "rollout": "-rollout.csv",
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        },
    }


def load_config(
    config_path: str | Path | None = None,
    load_env: bool = True,
) -> dict:
    """
    Build the loader configuration from defaults, an optional file and env.

    Recognized environment variables:
    - TRAJLIB_TIME_INVARIANT (bool)
    - TRAJLIB_LABEL_WIDTH (int)
    - TRAJLIB_TIMESTEP_TOLERANCE_EPS (float)
    - TRAJLIB_LOG_LEVEL (level name)

    Args:
        config_path: YAML (.yaml/.yml) or JSON file layered over the defaults.
        load_env: Read a .env file and apply TRAJLIB_* variables.

    Returns:
        Configuration dictionary shaped like get_default_config().

    Raises:
        FileNotFoundError: If config_path does not exist.
        ValueError: If config_path is not a readable YAML/JSON mapping.
    """
    config = get_default_config()
    if config_path is not None:
        config = _deep_merge(config, _read_config_file(Path(config_path)))

    if load_env:
        load_dotenv()
        config = _apply_env_overrides(config)

    return config


def _read_config_file(path: Path) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    if not path.is_file():
        raise ValueError(f"Configuration path is not a file: {path}")

    if path.suffix in (".yaml", ".yml"):
        parse = yaml.safe_load
    elif path.suffix == ".json":
        parse = json.load
    else:
        raise ValueError(f"Unsupported config format: {path.suffix}")

    try:
        with open(path) as f:
            contents = parse(f)
    except PermissionError as e:
        raise PermissionError(f"Cannot read configuration file: {path}") from e
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ValueError(f"Malformed configuration file: {path}") from e

    # An empty YAML document loads as None
    if contents is None:
        return {}
    if not isinstance(contents, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return contents


def _deep_merge(base: dict, override: dict) -> dict:
    """Return base with override layered on top, merging nested mappings."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _apply_env_overrides(config: dict) -> dict:
    """
    Apply environment variable overrides to configuration.

    Args:
        config: Configuration dictionary.

    Returns:
        Configuration with env var overrides applied.
    """
    env_mappings = {
        "TRAJLIB_TIME_INVARIANT": ("time_invariant", _parse_bool),
        "TRAJLIB_LABEL_WIDTH": ("label_width", int),
        "TRAJLIB_TIMESTEP_TOLERANCE_EPS": ("timestep_tolerance_eps", float),
    }

    for env_var, (config_key, type_fn) in env_mappings.items():
        value = os.getenv(env_var)
        if value is not None:
            try:
                config[config_key] = type_fn(value)
            except ValueError:
                logger.warning(
                    "Invalid value for %s: '%s', using default", env_var, value
                )

    log_level = os.getenv("TRAJLIB_LOG_LEVEL")
    if log_level is not None:
        if isinstance(logging.getLevelName(log_level.upper()), int):
            config["logging"]["level"] = log_level.upper()
        else:
            logger.warning(
                "Invalid value for %s: '%s', using default",
                "TRAJLIB_LOG_LEVEL",
                log_level,
            )

    return config


@dataclass
class SourceSuffixes:
    """Suffixes appended to a trajectory prefix to name each table source."""

    state: str = "-x.csv"
    input: str = "-u.csv"
    gain: str = "-controller.csv"
    affine: str = "-affine.csv"
    rollout: str = "-rollout.csv"

    def for_role(self, role: str) -> str:
        if role not in ROLES:
            raise ValueError(f"Unknown table role: '{role}'")
        return getattr(self, role)


@dataclass
class LoaderConfig:
    """
    Complete trajectory loader configuration.

    Attributes:
        time_invariant: Whether trajectories carry a precomputed rollout
            table when no explicit flag is given at load time.
        label_width: Number of trailing prefix characters holding the
            trajectory number.
        timestep_tolerance_eps: Allowed time-step residual, in multiples of
            machine epsilon.
        suffixes: Source suffix for each table role.
    """

    time_invariant: bool = False
    label_width: int = 5
    timestep_tolerance_eps: float = 5.0
    suffixes: SourceSuffixes = field(default_factory=SourceSuffixes)

    def __post_init__(self):
        if self.label_width < 1:
            raise ValueError(f"label_width must be positive, got {self.label_width}")
        if self.timestep_tolerance_eps < 0:
            raise ValueError(
                "timestep_tolerance_eps must be non-negative, "
                f"got {self.timestep_tolerance_eps}"
            )

    @classmethod
    def from_dict(cls, config_dict: dict) -> "LoaderConfig":
        """
        Create LoaderConfig from a dictionary (e.g., from load_config).

        Args:
            config_dict: Configuration dictionary.

        Returns:
            LoaderConfig instance.

        Raises:
            ValueError: If a value is out of range, or suffixes is not a
                mapping of role to string.
        """
        suffix_dict = config_dict.get("suffixes") or {}
        if not isinstance(suffix_dict, dict):
            raise ValueError(
                f"suffixes must be a mapping of role to suffix, got {suffix_dict!r}"
            )
        for role, suffix in suffix_dict.items():
            if not isinstance(suffix, str):
                raise ValueError(
                    f"suffix for role '{role}' must be a string, got {suffix!r}"
                )
        defaults = SourceSuffixes()

        return cls(
            time_invariant=bool(config_dict.get("time_invariant", False)),
            label_width=int(config_dict.get("label_width", 5)),
            timestep_tolerance_eps=float(
                config_dict.get("timestep_tolerance_eps", 5.0)
            ),
            suffixes=SourceSuffixes(
                **{role: suffix_dict.get(role, getattr(defaults, role)) for role in ROLES}
            ),
        )

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return {
            "time_invariant": self.time_invariant,
            "label_width": self.label_width,
            "timestep_tolerance_eps": self.timestep_tolerance_eps,
            "suffixes": {role: self.suffixes.for_role(role) for role in ROLES},
        }
