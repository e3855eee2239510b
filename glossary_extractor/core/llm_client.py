"""Extraction client: the only place that talks to the hosted model.

Absorbs the boilerplate every call needs:
- Message building and JSON-schema response format
- Per-attempt timeout, retry with exponential backoff
- JSON parsing with repair fallback, pydantic validation
- Usage tracking

A malformed or schema-invalid answer counts as a failed attempt, the same
as a timeout or an API error. After the last attempt the client raises
ExtractionServiceError carrying the last underlying error.

Usage:
    client = ExtractionClient(usage_tracker=tracker)
    response = await client.extract_terms(prompt)
    for term in response.terms:
        ...
"""

import asyncio
import json
import logging
from typing import TypeVar

from json_repair import repair_json
from litellm import acompletion
from pydantic import BaseModel, ValidationError

from glossary_extractor.core.config import AIConfig
from glossary_extractor.core.errors import ExtractionServiceError, ResponseShapeError
from glossary_extractor.core.usage_tracker import UsageTracker
from glossary_extractor.pydantic_models.glossary_models import (
    RuleExtractionResponse,
    TermExtractionResponse,
)

logger = logging.getLogger(__name__)

# Suppress LiteLLM debug noise (done once at module load)
logging.getLogger("litellm").setLevel(logging.ERROR)
logging.getLogger("httpx").setLevel(logging.ERROR)

ModelT = TypeVar("ModelT", bound=BaseModel)


def json_schema_format(response_model: type[BaseModel]) -> dict:
    """Build a litellm response_format that pins the answer to a schema."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": response_model.__name__,
            "schema": response_model.model_json_schema(),
        },
    }


def parse_response(raw_content: str | None, response_model: type[ModelT]) -> ModelT:
    """Parse and validate a model answer.

    Raises:
        ResponseShapeError: If the answer is empty, not a JSON object, or
            does not validate against ``response_model``.
    """
    if not raw_content or not raw_content.strip():
        raise ResponseShapeError("Empty response from extraction service", raw_content)

    try:
        content = json.loads(raw_content)
    except json.JSONDecodeError:
        logger.warning("JSON parse failed, attempting repair")
        content = repair_json(raw_content, return_objects=True)

    if not isinstance(content, dict):
        raise ResponseShapeError(
            f"Expected a JSON object, got {type(content).__name__}", raw_content
        )

    try:
        return response_model.model_validate(content)
    except ValidationError as e:
        raise ResponseShapeError(
            f"Response did not match {response_model.__name__}: {e.error_count()} validation errors",
            raw_content,
        ) from e


class ExtractionClient:
    """Client for structured and free-text calls to the hosted model.

    Args:
        model: litellm model identifier.
        max_attempts: Attempts per call before giving up.
        retry_delay_ms: Base backoff, doubled after each failed attempt.
        request_timeout_ms: Upper bound on a single attempt.
        temperature: Sampling temperature for structured calls.
        usage_tracker: Optional tracker; every successful call is recorded.
    """

    def __init__(
        self,
        model: str = AIConfig.MODEL,
        max_attempts: int = AIConfig.MAX_ATTEMPTS,
        retry_delay_ms: int = AIConfig.RETRY_DELAY_MS,
        request_timeout_ms: int = AIConfig.REQUEST_TIMEOUT_MS,
        temperature: float = AIConfig.TEMPERATURE,
        usage_tracker: UsageTracker | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.model = model
        self.max_attempts = max_attempts
        self.retry_delay_ms = retry_delay_ms
        self.request_timeout_ms = request_timeout_ms
        self.temperature = temperature
        self.usage_tracker = usage_tracker

    async def extract_terms(self, prompt: str, run_id: str | None = None) -> TermExtractionResponse:
        """Send a glossary prompt and return the validated terms."""
        return await self.complete_structured(prompt, TermExtractionResponse, purpose="terms", run_id=run_id)

    async def extract_rules(self, prompt: str, run_id: str | None = None) -> RuleExtractionResponse:
        """Send a policy prompt and return the validated rules."""
        return await self.complete_structured(prompt, RuleExtractionResponse, purpose="rules", run_id=run_id)

    async def complete_structured(
        self,
        prompt: str,
        response_model: type[ModelT],
        purpose: str = "",
        run_id: str | None = None,
    ) -> ModelT:
        """Make a call whose answer must validate against ``response_model``.

        Args:
            prompt: Full prompt, sent as the single user message.
            response_model: Pydantic model used for the schema and validation.
            purpose: Label for usage tracking and logs.
            run_id: Extraction run the call is billed to.

        Returns:
            Validated instance of response_model.

        Raises:
            ExtractionServiceError: After max_attempts failed attempts.
        """
        messages = [{"role": "user", "content": prompt}]
        response_format = json_schema_format(response_model)

        async def attempt() -> ModelT:
            raw_content = await self._call_llm(
                messages, purpose, self.temperature, response_format, run_id
            )
            return parse_response(raw_content, response_model)

        return await self._with_retries(attempt, purpose)

    async def complete_text(
        self,
        messages: list[dict[str, str]],
        purpose: str = "chat",
        temperature: float = AIConfig.CHAT_TEMPERATURE,
        run_id: str | None = None,
    ) -> str:
        """Make a free-text call with full message history (same retry policy).

        Raises:
            ExtractionServiceError: After max_attempts failed attempts.
        """

        async def attempt() -> str:
            content = await self._call_llm(messages, purpose, temperature, None, run_id)
            if not content or not content.strip():
                raise ResponseShapeError("Empty response from extraction service", content)
            return content.strip()

        return await self._with_retries(attempt, purpose)

    async def _with_retries(self, attempt, purpose: str):
        last_error: BaseException | None = None
        for attempt_no in range(1, self.max_attempts + 1):
            try:
                return await asyncio.wait_for(attempt(), timeout=self.request_timeout_ms / 1000)
            except asyncio.TimeoutError:
                last_error = TimeoutError(
                    f"Extraction service timed out after {self.request_timeout_ms}ms"
                )
            except Exception as e:
                last_error = e

            logger.warning(
                "Extraction call failed (purpose=%s, attempt %d/%d): %s",
                purpose or "unknown", attempt_no, self.max_attempts, last_error,
            )
            if attempt_no < self.max_attempts:
                await asyncio.sleep(self.retry_delay_ms / 1000 * 2 ** (attempt_no - 1))

        raise ExtractionServiceError(self.max_attempts, last_error) from last_error

    async def _call_llm(
        self,
        messages: list[dict[str, str]],
        purpose: str,
        temperature: float,
        response_format: dict | None,
        run_id: str | None = None,
    ) -> str | None:
        """Internal method that performs a single litellm call."""
        kwargs = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }
        if response_format is not None:
            kwargs["response_format"] = response_format

        response = await acompletion(**kwargs)

        if self.usage_tracker:
            self.usage_tracker.record(
                self.model, getattr(response, "usage", None), purpose=purpose, run_id=run_id
            )

        return response.choices[0].message.content
