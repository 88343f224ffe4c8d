from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TypeVar

from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from repo_recon.config import settings

logger = logging.getLogger("repo_recon.llm")

T = TypeVar("T", bound=BaseModel)


class LLMResponseError(Exception):
    """The model returned something that does not match the requested schema."""


@dataclass(frozen=True)
class LLMUsage:
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0

    def __add__(self, other: "LLMUsage") -> "LLMUsage":
        return LLMUsage(
            model=self.model or other.model,
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            cost_usd=self.cost_usd + other.cost_usd,
        )


def usage_cost(input_tokens: int, output_tokens: int) -> float:
    return (
        input_tokens * settings.openai_input_price_per_million
        + output_tokens * settings.openai_output_price_per_million
    ) / 1_000_000


class LLMClient:
    """JSON-mode chat completions validated into Pydantic models."""

    def __init__(self, *, client: AsyncOpenAI | None = None, model: str | None = None) -> None:
        self.model = model or settings.openai_model
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        # Built on first use so jobs that never call the model need no API key.
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                timeout=settings.openai_timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()

    async def complete_json(self, *, system: str, user: str, schema: type[T]) -> tuple[T, LLMUsage]:
        schema_hint = json.dumps(schema.model_json_schema())
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": f"{system}\n\nRespond with JSON matching this schema:\n{schema_hint}"},
                {"role": "user", "content": user},
            ],
            response_format={"type": "json_object"},
            temperature=0.2,
        )

        content = response.choices[0].message.content or "{}"
        try:
            parsed = schema.model_validate_json(content)
        except ValidationError as e:
            logger.warning("llm_schema_mismatch schema=%s", schema.__name__)
            raise LLMResponseError(f"LLM output did not match {schema.__name__}") from e

        input_tokens = response.usage.prompt_tokens if response.usage else 0
        output_tokens = response.usage.completion_tokens if response.usage else 0
        usage = LLMUsage(
            model=self.model,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=usage_cost(input_tokens, output_tokens),
        )
        logger.info(
            "llm_call schema=%s input_tokens=%s output_tokens=%s cost_usd=%.6f",
            schema.__name__,
            input_tokens,
            output_tokens,
            usage.cost_usd,
        )
        return parsed, usage


def build_llm_client() -> LLMClient:
    return LLMClient()
