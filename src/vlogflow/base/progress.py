from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from tqdm import tqdm

__all__ = ["configure", "progress_bar"]


@dataclass
class _BaseConfig:
    progress: bool = False


_CONFIG = _BaseConfig()


def configure(*, progress: bool | None = None) -> None:
    """Configure base module progress behavior."""
    if progress is not None:
        _CONFIG.progress = bool(progress)


def progress_bar(*, total: int, desc: str | None = None) -> Any:
    """Return a manually updated progress bar, disabled unless progress is enabled."""
    return tqdm(total=total, desc=desc, unit="frame", disable=not _CONFIG.progress, leave=False)
