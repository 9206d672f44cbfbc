"""
AI gateway: one model call per stage, returning an explicit result.

generate_artifact() never raises. Network failures, a missing API key, an
unparseable response and a response that does not fit the artifact schema all
come back as GenerationResult(ok=False) with a typed error, and the caller
decides what to do (the stage controller materialises the stage default and
logs the fallback separately from genuine successes).
"""

from dataclasses import dataclass
from typing import Any, Callable, Literal, Mapping, Optional

import httpx
import pydantic
import structlog
from pydantic import BaseModel

from mvp_builder.core.exceptions import LLMError
from mvp_builder.llm.client import LLMClient
from mvp_builder.llm.prompts.stages import (
    get_stage_system_prompt,
    get_stage_user_prompt,
    parse_stage_response,
)
from mvp_builder.services.artifacts import artifact_from_payload
from mvp_builder.stages.catalog import Stage, get_stage_def

log = structlog.get_logger(__name__)

GenerationErrorKind = Literal["not_configured", "network", "parse", "schema"]


@dataclass(frozen=True)
class GenerationError:
    kind: GenerationErrorKind
    message: str


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one generation attempt: an artifact or an error, never both."""

    artifact: Optional[BaseModel] = None
    error: Optional[GenerationError] = None
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.artifact is not None and self.error is None


class AIGateway:
    """Generates stage artifacts with the configured LLM client.

    Args:
        client_factory: Returns the LLM client. Called lazily on each request so
            a missing API key surfaces as a "not_configured" result instead of
            a startup failure.
    """

    def __init__(self, client_factory: Callable[[], LLMClient]):
        self._client_factory = client_factory

    async def complete_text(self, prompt: str, system: str, json_mode: bool) -> str:
        """Raw completion for callers that build their own prompts.

        Raises:
            ValueError: LLM client is not configured
            LLMError, httpx.HTTPError: transport failures
        """
        client = self._client_factory()
        response = await client.complete(prompt, system=system, json_mode=json_mode)
        return response.content

    async def generate_artifact(
        self,
        stage: Stage,
        user_input: Mapping[str, Any],
        prior_artifacts: Mapping[str, Any],
    ) -> GenerationResult:
        """Produce the artifact for `stage` from the founder's input.

        Args:
            stage: Stage to generate (must be an AI-generated stage)
            user_input: Founder answers keyed by field id
            prior_artifacts: Artifacts of the stages `stage` depends on

        Returns:
            GenerationResult with the artifact, or with the reason it failed
        """
        stage_def = get_stage_def(stage)
        system = get_stage_system_prompt(stage_def)
        prompt = get_stage_user_prompt(stage_def, user_input, prior_artifacts)

        try:
            client = self._client_factory()
        except ValueError as e:
            return self._failed(stage, "not_configured", str(e))

        try:
            response = await client.complete(prompt, system=system, json_mode=True)
        except (LLMError, httpx.HTTPError) as e:
            return self._failed(stage, "network", str(e) or type(e).__name__)

        try:
            payload = parse_stage_response(response.content)
        except ValueError as e:
            return self._failed(stage, "parse", str(e), latency_ms=response.latency_ms)

        try:
            artifact = artifact_from_payload(stage, payload, user_input)
        except (pydantic.ValidationError, ValueError) as e:
            return self._failed(
                stage, "schema", str(e).splitlines()[0], latency_ms=response.latency_ms
            )

        log.info(
            "artifact_generated",
            stage=stage.value,
            latency_ms=round(response.latency_ms, 2),
        )
        return GenerationResult(artifact=artifact, latency_ms=response.latency_ms)

    @staticmethod
    def _failed(
        stage: Stage,
        kind: GenerationErrorKind,
        message: str,
        latency_ms: float = 0.0,
    ) -> GenerationResult:
        log.warning(
            "artifact_generation_failed", stage=stage.value, error_kind=kind, error=message
        )
        return GenerationResult(
            error=GenerationError(kind=kind, message=message), latency_ms=latency_ms
        )
