"""External multimodal analysis backends."""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Any, Protocol

from vlogflow.ai.backends import SUPPORTED_BACKENDS, AnalysisBackend, get_api_key
from vlogflow.ai.exceptions import AnalysisError, AnalysisTimeoutError, UnsupportedBackendError
from vlogflow.ai.request import AnalysisRequest
from vlogflow.config import AnalysisConfig, get_analysis_config

__all__ = ["Analyzer", "VideoAnalyzer"]

logger = logging.getLogger(__name__)


class Analyzer(Protocol):
    """Anything that sends an `AnalysisRequest` and returns the raw response text."""

    async def analyze(self, request: AnalysisRequest) -> str | None: ...


class VideoAnalyzer:
    """Sends frame sequences to Gemini or OpenAI with structured JSON output.

    The call is bounded by `timeout` seconds and never retried. Transport and
    authentication errors from the provider SDK propagate unchanged.
    """

    SUPPORTED_BACKENDS: list[str] = SUPPORTED_BACKENDS

    def __init__(
        self,
        backend: AnalysisBackend | None = None,
        model: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        config: AnalysisConfig | None = None,
    ):
        """Initialize the analyzer.

        Args:
            backend: Backend to use ('gemini' or 'openai'), defaults to the configured one.
            model: Model name, defaults to the configured or backend default model.
            api_key: API key, read from the environment when omitted.
            timeout: Seconds allowed for one request, defaults to the configured timeout.
            config: Analysis settings, loaded from the config file when omitted.
        """
        config = config or get_analysis_config()
        resolved_backend: str = backend if backend is not None else config.backend
        if resolved_backend not in self.SUPPORTED_BACKENDS:
            raise UnsupportedBackendError(resolved_backend, self.SUPPORTED_BACKENDS)

        self.backend: AnalysisBackend = resolved_backend  # type: ignore[assignment]
        self.model = model if model is not None else config.model_for(self.backend)
        self.api_key = api_key
        self.timeout = config.timeout if timeout is None else timeout

    async def _analyze_gemini(self, request: AnalysisRequest) -> str | None:
        """Analyze frames using Google Gemini with a response schema and thinking budget."""
        from google import genai
        from google.genai import types

        api_key = get_api_key("gemini", self.api_key)
        client = genai.Client(api_key=api_key)

        contents: list[Any] = [types.Part.from_text(text=request.instruction)]
        contents.extend(
            types.Part.from_bytes(data=base64.b64decode(image.data), mime_type=image.mime_type)
            for image in request.images
        )

        response = await client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=types.GenerateContentConfig(
                response_mime_type=request.generation.response_mime_type,
                response_json_schema=request.response_schema,
                temperature=request.generation.temperature,
                thinking_config=types.ThinkingConfig(thinking_budget=request.generation.thinking_budget),
            ),
        )
        return response.text

    async def _analyze_openai(self, request: AnalysisRequest) -> str | None:
        """Analyze frames using OpenAI with structured outputs."""
        from openai import AsyncOpenAI

        api_key = get_api_key("openai", self.api_key)
        client = AsyncOpenAI(api_key=api_key)

        content: list[dict[str, Any]] = [{"type": "text", "text": request.instruction}]
        content.extend(
            {"type": "image_url", "image_url": {"url": f"data:{image.mime_type};base64,{image.data}"}}
            for image in request.images
        )

        response = await client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": content}],
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": "travel_timeline",
                    # Optional fields in the schema are not allowed in strict mode
                    "strict": False,
                    "schema": request.response_schema,
                },
            },
            temperature=request.generation.temperature,
        )
        return response.choices[0].message.content

    async def analyze(self, request: AnalysisRequest) -> str | None:
        """Send `request` to the configured backend.

        Args:
            request: Request built from the frame sequence.

        Returns:
            Raw response text, None if the model returned nothing.

        Raises:
            AnalysisError: If the request carries no frames.
            AnalysisTimeoutError: If the call does not finish within `timeout` seconds.
        """
        if request.frame_count == 0:
            raise AnalysisError("Refusing to send an analysis request without frames")

        if self.backend == "gemini":
            call = self._analyze_gemini(request)
        elif self.backend == "openai":
            call = self._analyze_openai(request)
        else:
            raise UnsupportedBackendError(self.backend, self.SUPPORTED_BACKENDS)

        logger.info("Sending %d frames to %s (%s)", request.frame_count, self.backend, self.model)
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except TimeoutError as e:
            raise AnalysisTimeoutError(self.timeout) from e
