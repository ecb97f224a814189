"""Configuration loader for vlogflow."""

from __future__ import annotations

import warnings
from dataclasses import dataclass, fields
from functools import lru_cache
from pathlib import Path
from typing import Any

import tomllib

from vlogflow.base.exceptions import ConfigError

DEFAULT_MODELS: dict[str, str] = {
    "gemini": "gemini-3-flash-preview",
    "openai": "gpt-4o",
}


@dataclass(frozen=True)
class SamplingConfig:
    """Frame sampling settings.

    Attributes:
        target_frame_count: Maximum number of frames captured per video
        max_width: Maximum output width in pixels, larger videos are scaled down
        min_interval: Smallest gap in seconds between two captures
        jpeg_quality: JPEG quality (0-1) of the preview sent to the model
        blob_quality: JPEG quality (0-1) of the retained high fidelity copy
    """

    target_frame_count: int = 120
    max_width: int = 960
    min_interval: float = 0.5
    jpeg_quality: float = 0.6
    blob_quality: float = 0.92


@dataclass(frozen=True)
class AnalysisConfig:
    """External analysis call settings.

    Attributes:
        backend: Backend name ('gemini' or 'openai')
        model: Model name, None picks the backend default
        temperature: Sampling temperature
        thinking_budget: Reasoning token budget (gemini only)
        timeout: Upper bound in seconds for one analysis request
    """

    backend: str = "gemini"
    model: str | None = None
    temperature: float = 0.2
    thinking_budget: int = 2048
    timeout: float = 180.0

    def model_for(self, backend: str | None = None) -> str:
        """Configured model, or the default model of `backend` (the configured backend when omitted)."""
        return self.model or DEFAULT_MODELS.get(backend or self.backend, DEFAULT_MODELS["gemini"])


def _find_config_file() -> Path | None:
    """Find the configuration file in current directory.

    Looks for:
    1. vlogflow.toml in current directory
    2. pyproject.toml in current directory

    Returns:
        Path to config file if found, None otherwise.
    """
    cwd = Path.cwd()

    vlogflow_toml = cwd / "vlogflow.toml"
    if vlogflow_toml.exists():
        return vlogflow_toml

    pyproject_toml = cwd / "pyproject.toml"
    if pyproject_toml.exists():
        return pyproject_toml

    return None


def _load_toml(path: Path) -> dict[str, Any]:
    """Load and parse a TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _extract_config(data: dict[str, Any], filename: str) -> dict[str, Any]:
    """Extract vlogflow config from parsed TOML data.

    Args:
        data: Parsed TOML data
        filename: Name of the file (to determine extraction method)

    Returns:
        The vlogflow configuration section, or empty dict if not found.
    """
    if filename == "vlogflow.toml":
        return data
    elif filename == "pyproject.toml":
        return data.get("tool", {}).get("vlogflow", {})
    return {}


@lru_cache(maxsize=1)
def _get_cached_config() -> dict[str, Any]:
    """Load and cache the configuration.

    Returns:
        The loaded configuration, or empty dict if no config file found.
    """
    config_path = _find_config_file()
    if config_path is None:
        return {}

    try:
        data = _load_toml(config_path)
        return _extract_config(data, config_path.name)
    except tomllib.TOMLDecodeError as e:
        warnings.warn(f"Invalid TOML in config file {config_path}: {e}", RuntimeWarning)
        return {}
    except OSError as e:
        warnings.warn(f"Cannot read config file {config_path}: {e}", RuntimeWarning)
        return {}


def get_config() -> dict[str, Any]:
    """Get the current raw configuration dictionary."""
    return _get_cached_config()


def _build_section(cls: type, section: str) -> Any:
    values = get_config().get(section, {})
    if not isinstance(values, dict):
        raise ConfigError(f"[{section}] must be a table, got {type(values).__name__}")

    known = {f.name for f in fields(cls)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"Unknown keys in [{section}]: {', '.join(sorted(unknown))}")
    return cls(**values)


def get_sampling_config() -> SamplingConfig:
    """Sampling settings from the config file, falling back to defaults."""
    return _build_section(SamplingConfig, "sampling")


def get_analysis_config() -> AnalysisConfig:
    """Analysis settings from the config file, falling back to defaults."""
    return _build_section(AnalysisConfig, "analysis")


def clear_config_cache() -> None:
    """Clear the configuration cache. Useful for testing."""
    _get_cached_config.cache_clear()
