"""
LLM client for OpenAI-compatible chat completion APIs.

Provides async interface for LLM calls with:
- Structured logging of requests/responses
- Timeout handling and a bounded retry on timeout / rate limit
- Usage tracking (tokens)
- Optional JSON-object response mode
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
import structlog

from mvp_builder.core.config import settings
from mvp_builder.core.exceptions import LLMRateLimitError, LLMTimeoutError

log = structlog.get_logger(__name__)


# =============================================================================
# Response and Base Classes
# =============================================================================


@dataclass
class LLMResponse:
    """Standardized LLM response."""

    content: str
    model: str
    usage: Dict[str, int] = field(default_factory=dict)
    latency_ms: float = 0.0
    raw_response: Optional[Dict[str, Any]] = None


class LLMClient(ABC):
    """Abstract base for LLM providers."""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """
        Generate a completion from the LLM.

        Args:
            prompt: User message/prompt
            system: Optional system prompt
            temperature: Sampling temperature (0.0-2.0)
            max_tokens: Maximum tokens in response
            json_mode: Ask the provider to return a single JSON object
            timeout: Optional timeout override in seconds

        Returns:
            LLMResponse with content and metadata
        """
        pass


# =============================================================================
# OpenAI-Compatible Client
# =============================================================================


class OpenAICompatibleClient(LLMClient):
    """
    Client for APIs that follow the OpenAI chat completions format.

    Retries are opt-in via ``max_retries``; the AI gateway uses 0 so that one
    stage transition issues exactly one request.
    """

    def __init__(
        self,
        model: str,
        temperature: float,
        max_tokens: int,
        timeout: float,
        base_url: str,
        api_key: Optional[str],
        provider_name: str = "openai",
        max_retries: int = 0,
        base_delay: float = 1.0,
    ):
        """
        Raises:
            ValueError: If API key is not configured
        """
        if not api_key:
            raise ValueError(f"API key for {provider_name} not configured. Set it in .env.")

        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.provider_name = provider_name
        self.max_retries = max_retries
        self.base_delay = base_delay

        log.info(
            "llm_client_initialized",
            provider=self.provider_name,
            model=self.model,
            timeout=self.timeout,
        )

    async def complete(
        self,
        prompt: str,
        system: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        json_mode: bool = False,
        timeout: Optional[float] = None,
    ) -> LLMResponse:
        """
        Call the chat completions endpoint.

        Raises:
            LLMTimeoutError: After all attempts time out
            LLMRateLimitError: After all attempts are rate limited (429)
            httpx.HTTPStatusError: On other API errors (no retry)
            httpx.RequestError: On connection failures (no retry)
        """
        if max_tokens is None:
            max_tokens = self.max_tokens
        if temperature is None:
            temperature = self.temperature
        if timeout is None:
            timeout = self.timeout

        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        for attempt in range(self.max_retries + 1):
            start = time.perf_counter()

            log.debug(
                "llm_call_start",
                provider=self.provider_name,
                model=self.model,
                prompt_length=len(prompt),
                system_length=len(system) if system else 0,
                json_mode=json_mode,
                attempt=attempt + 1,
            )

            try:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(
                        f"{self.base_url}/chat/completions",
                        headers=headers,
                        json=payload,
                    )
                    response.raise_for_status()
                    data = response.json()

                latency_ms = (time.perf_counter() - start) * 1000

                content = ""
                if data.get("choices"):
                    content = data["choices"][0].get("message", {}).get("content") or ""

                usage = {
                    "input_tokens": data.get("usage", {}).get("prompt_tokens", 0),
                    "output_tokens": data.get("usage", {}).get("completion_tokens", 0),
                }

                log.info(
                    "llm_call_complete",
                    provider=self.provider_name,
                    model=self.model,
                    latency_ms=round(latency_ms, 2),
                    input_tokens=usage["input_tokens"],
                    output_tokens=usage["output_tokens"],
                    attempt=attempt + 1,
                )

                return LLMResponse(
                    content=content,
                    model=data.get("model", self.model),
                    usage=usage,
                    latency_ms=latency_ms,
                    raw_response=data,
                )

            except httpx.TimeoutException as e:
                log.warning(
                    "llm_timeout",
                    provider=self.provider_name,
                    attempt=attempt + 1,
                    timeout_seconds=timeout,
                )
                if attempt >= self.max_retries:
                    raise LLMTimeoutError(
                        f"LLM call timed out after {attempt + 1} attempt(s) "
                        f"(timeout={timeout}s)"
                    ) from e

            except httpx.HTTPStatusError as e:
                status_code = e.response.status_code
                if status_code != 429:
                    log.error(
                        "llm_http_error",
                        provider=self.provider_name,
                        status_code=status_code,
                    )
                    raise
                log.warning(
                    "llm_rate_limit", provider=self.provider_name, attempt=attempt + 1
                )
                if attempt >= self.max_retries:
                    raise LLMRateLimitError(
                        f"Rate limit exceeded after {attempt + 1} attempt(s)"
                    ) from e

            delay = self.base_delay * (2**attempt)
            log.info("llm_retry", delay_seconds=delay, next_attempt=attempt + 2)
            await asyncio.sleep(delay)

        # Unreachable: loop either returns LLMResponse or raises an exception
        assert False, "unreachable"


class OpenAIClient(OpenAICompatibleClient):
    """OpenAI chat completions client configured from settings."""

    def __init__(self, api_key: Optional[str] = None, max_retries: int = 0):
        super().__init__(
            model=settings.llm_model,
            temperature=settings.llm_temperature,
            max_tokens=settings.llm_max_tokens,
            timeout=settings.llm_timeout,
            base_url=settings.llm_base_url,
            api_key=api_key or settings.openai_api_key,
            provider_name="openai",
            max_retries=max_retries,
        )


def get_llm_client() -> LLMClient:
    """
    Factory for the wizard's LLM client.

    Raises:
        ValueError: If OPENAI_API_KEY is not configured
    """
    return OpenAIClient()
