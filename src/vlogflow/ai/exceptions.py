"""Exception hierarchy for vlogflow.ai module."""

from vlogflow.base.exceptions import ConfigError, VlogFlowError  # noqa: F401

# Environment variable names per provider, first match wins
API_KEY_ENV_VARS: dict[str, tuple[str, ...]] = {
    "gemini": ("GOOGLE_API_KEY", "GEMINI_API_KEY"),
    "openai": ("OPENAI_API_KEY",),
}


class BackendError(Exception):
    """Base exception for backend-related errors."""

    pass


class MissingAPIKeyError(BackendError):
    """Raised when a required API key is not found."""

    def __init__(self, provider: str):
        env_vars = API_KEY_ENV_VARS.get(provider, (f"{provider.upper()}_API_KEY",))
        super().__init__(
            f"API key for '{provider}' not found. Set the {' or '.join(env_vars)} environment variable "
            "or pass api_key parameter."
        )
        self.provider = provider


class UnsupportedBackendError(BackendError):
    """Raised when an unsupported backend is requested."""

    def __init__(self, backend: str, supported: list[str]):
        super().__init__(f"Backend '{backend}' is not supported. Supported backends: {', '.join(supported)}")
        self.backend = backend
        self.supported = supported


class AnalysisError(VlogFlowError):
    """Base exception for failures of the external analysis step."""

    pass


class EmptyResponseError(AnalysisError):
    """Raised when the model returned no parsable payload."""

    pass


class MalformedResponseError(AnalysisError):
    """Raised when the payload does not have the expected top-level shape."""

    pass


class AnalysisTimeoutError(AnalysisError):
    """Raised when the external analysis call exceeds its time budget."""

    def __init__(self, timeout: float):
        super().__init__(f"Analysis request timed out after {timeout:g} seconds")
        self.timeout = timeout
