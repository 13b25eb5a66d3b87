"""Azure OpenAI chat client used for style guides, rewrites and repairs."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, cast

from openai import APIConnectionError, AzureOpenAI

from config import AppConfig
from services.resilience import EmptyCompletionError, ResiliencePolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LLMResult:
    """Normalized LLM response payload."""

    model: str
    content: str
    finish_reason: str | None
    raw_response: dict[str, Any]


class AzureOpenAIClient:
    """Chat completions against one Azure OpenAI deployment."""

    def __init__(self, config: AppConfig) -> None:
        self._deployment = config.azure_openai_deployment
        self._client = AzureOpenAI(
            api_key=config.azure_openai_api_key,
            azure_endpoint=config.azure_openai_endpoint,
            api_version=config.azure_api_version,
            timeout=float(config.request_timeout_seconds),
            max_retries=0,
        )
        self._resilience = ResiliencePolicy(
            name="azure_openai_chat",
            max_attempts=config.max_external_retries,
            retry_on=(APIConnectionError,),
        )

    def chat(
        self,
        *,
        system_prompt: str | None,
        user_prompt: str,
        temperature: float = 0.0,
        max_tokens: int | None = None,
    ) -> LLMResult:
        """Execute a chat completion request and normalize output."""

        def _operation() -> Any:
            messages: list[dict[str, str]] = []
            if system_prompt:
                messages.append({"role": "system", "content": system_prompt})
            messages.append({"role": "user", "content": user_prompt})

            kwargs: dict[str, Any] = {
                "model": self._deployment,
                "messages": cast(Any, messages),
                "temperature": temperature,
            }
            if max_tokens is not None:
                kwargs["max_tokens"] = max_tokens
            return self._client.chat.completions.create(**kwargs)

        response = self._resilience.execute(_operation)
        result = _normalize_response(model=self._deployment, response=response)
        if not result.content:
            logger.warning(
                "LLM returned empty content for deployment=%s (finish_reason=%s)",
                self._deployment,
                result.finish_reason,
            )
            raise EmptyCompletionError(
                f"{self._resilience.name} returned an empty completion",
                service=self._resilience.name,
            )
        return result

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        """Return completion text; the interface the rewrite pipeline depends on."""
        return self.chat(system_prompt=system_prompt, user_prompt=user_prompt).content


def _normalize_response(*, model: str, response: Any) -> LLMResult:
    raw_dict = (
        response.model_dump() if hasattr(response, "model_dump") else _coerce_to_dict(response)
    )
    choices = getattr(response, "choices", None) or []
    content = ""
    finish_reason = None
    if choices:
        finish_reason = getattr(choices[0], "finish_reason", None)
        message = getattr(choices[0], "message", None)
        value = getattr(message, "content", "") if message is not None else ""
        content = value if isinstance(value, str) else str(value or "")
    return LLMResult(
        model=model,
        content=content,
        finish_reason=finish_reason,
        raw_response=raw_dict,
    )


def _coerce_to_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value

    if hasattr(value, "__dict__"):
        return {k: v for k, v in vars(value).items() if not k.startswith("_")}

    try:
        return json.loads(str(value))
    except json.JSONDecodeError:
        return {"raw": str(value)}
