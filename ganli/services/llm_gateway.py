"""LLM Gateway — one remote model call, typed result or AnalysisUnavailable.

Every failure mode of the call (provider/network error, timeout, empty body,
invalid JSON, a body that does not match the requested schema) surfaces as
a single ``AnalysisUnavailable``. No retries; callers treat the call as
fail-fast.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, TypeVar, overload

from litellm import acompletion
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ganli.core.config import get_settings
from ganli.core.errors import AnalysisUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

DEFAULT_TEMPERATURE = 0.3


@dataclass(frozen=True)
class Prompt:
    """System instructions plus user content for one call."""
    system: str
    user: str

    def __post_init__(self) -> None:
        if not self.system.strip() or not self.user.strip():
            raise ValueError("Prompt system and user content must be non-empty")

    def to_messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


def strict_json_schema(model: type[BaseModel]) -> dict[str, Any]:
    """JSON schema for *model* with every key required and no extra keys.

    Providers that support structured output in strict mode reject schemas
    with optional properties, so defaults are ignored here.
    """
    schema = copy.deepcopy(model.model_json_schema())

    def _tighten(node: Any) -> None:
        if isinstance(node, dict):
            if node.get("type") == "object" and "properties" in node:
                node["required"] = list(node["properties"])
                node["additionalProperties"] = False
                for prop in node["properties"].values():
                    prop.pop("default", None)
            for value in node.values():
                _tighten(value)
        elif isinstance(node, list):
            for item in node:
                _tighten(item)

    _tighten(schema)
    return schema


def _strip_fences(text: str) -> str:
    """Remove a ```json ... ``` wrapper some models add despite instructions."""
    stripped = text.strip()
    if stripped.startswith("```"):
        stripped = stripped.split("\n", 1)[1] if "\n" in stripped else ""
        if stripped.rstrip().endswith("```"):
            stripped = stripped.rstrip()[:-3]
    return stripped.strip()


class LLMGateway:
    """Thin wrapper around LiteLLM ``acompletion``."""

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        api_base: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        self.model = model
        self.api_key = api_key or None
        self.api_base = api_base or None
        self.timeout = timeout

    @overload
    async def invoke(
        self, prompt: Prompt, schema: None = None, temperature: float = ...,
    ) -> str: ...

    @overload
    async def invoke(
        self, prompt: Prompt, schema: type[T], temperature: float = ...,
    ) -> T: ...

    async def invoke(
        self,
        prompt: Prompt,
        schema: type[BaseModel] | None = None,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> str | BaseModel:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "messages": prompt.to_messages(),
            "temperature": temperature,
            "timeout": self.timeout,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base
        if schema is not None:
            kwargs["response_format"] = {
                "type": "json_schema",
                "json_schema": {
                    "name": schema.__name__,
                    "strict": True,
                    "schema": strict_json_schema(schema),
                },
            }

        try:
            response = await acompletion(**kwargs)
        except Exception as exc:
            logger.warning("LLM call to %s failed: %s", self.model, exc)
            raise AnalysisUnavailable() from exc

        try:
            content = response.choices[0].message.content or ""
        except (AttributeError, IndexError) as exc:
            logger.warning("LLM response from %s had no message: %s", self.model, exc)
            raise AnalysisUnavailable() from exc

        if not content.strip():
            logger.warning("LLM response from %s was empty", self.model)
            raise AnalysisUnavailable()

        if schema is None:
            return content.strip()

        try:
            return schema.model_validate_json(_strip_fences(content))
        except PydanticValidationError as exc:
            logger.warning(
                "LLM response from %s did not match %s: %s",
                self.model, schema.__name__, exc,
            )
            raise AnalysisUnavailable() from exc


def get_llm_gateway() -> LLMGateway:
    """FastAPI dependency; tests override it with a scripted fake."""
    settings = get_settings()
    return LLMGateway(
        model=settings.llm_model,
        api_key=settings.llm_api_key,
        api_base=settings.llm_api_base,
        timeout=settings.llm_timeout_seconds,
    )
