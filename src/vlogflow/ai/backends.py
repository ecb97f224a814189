"""Backend utilities for vlogflow.ai module."""

from __future__ import annotations

import os
from typing import Literal

from vlogflow.ai.exceptions import API_KEY_ENV_VARS, MissingAPIKeyError

AnalysisBackend = Literal["gemini", "openai"]
SUPPORTED_BACKENDS: list[str] = ["gemini", "openai"]


def get_api_key(provider: str, api_key: str | None = None) -> str:
    """Get API key for a provider.

    Args:
        provider: Provider name (e.g., 'gemini', 'openai')
        api_key: Optional explicit API key. If provided, returns this directly.

    Returns:
        The API key string.

    Raises:
        MissingAPIKeyError: If no API key is found.
    """
    if api_key:
        return api_key

    for env_var in API_KEY_ENV_VARS.get(provider, ()):
        key = os.environ.get(env_var)
        if key:
            return key

    raise MissingAPIKeyError(provider)
