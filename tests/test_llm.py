"""Tests for the Azure OpenAI client wrapper."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest

from services.llm import AzureOpenAIClient
from services.resilience import EmptyCompletionError, ExternalServiceError


@dataclass
class _FakeMessage:
    content: str | None


@dataclass
class _FakeChoice:
    message: _FakeMessage
    finish_reason: str = "stop"


class _FakeResponse:
    def __init__(self, content: str | None) -> None:
        self.choices = [_FakeChoice(message=_FakeMessage(content=content))]

    def model_dump(self) -> dict[str, Any]:
        return {"choices": [{"message": {"content": self.choices[0].message.content}}]}


class _FakeCompletions:
    def __init__(self, content: str | None) -> None:
        self._content = content
        self.requests: list[dict[str, Any]] = []

    def create(self, **kwargs: Any) -> _FakeResponse:
        self.requests.append(kwargs)
        return _FakeResponse(self._content)


class _FakeChat:
    def __init__(self, content: str | None) -> None:
        self.completions = _FakeCompletions(content)


class _FakeOpenAIClient:
    def __init__(self, content: str | None) -> None:
        self.chat = _FakeChat(content)


def test_generate_sends_system_and_user_messages(app_config: Any) -> None:
    client = AzureOpenAIClient(app_config)
    fake = _FakeOpenAIClient("<div>ok</div>")
    client._client = fake  # type: ignore[assignment]

    text = client.generate("system rules", "rewrite this")

    assert text == "<div>ok</div>"
    request = fake.chat.completions.requests[0]
    assert request["model"] == "gpt-4o"
    assert request["temperature"] == 0.0
    assert request["messages"] == [
        {"role": "system", "content": "system rules"},
        {"role": "user", "content": "rewrite this"},
    ]


def test_chat_normalizes_result(app_config: Any) -> None:
    client = AzureOpenAIClient(app_config)
    client._client = _FakeOpenAIClient("guide")  # type: ignore[assignment]

    result = client.chat(system_prompt=None, user_prompt="hi", max_tokens=50)

    assert result.content == "guide"
    assert result.finish_reason == "stop"
    assert result.raw_response["choices"][0]["message"]["content"] == "guide"


def test_empty_completion_is_a_collaborator_failure(app_config: Any) -> None:
    client = AzureOpenAIClient(app_config)
    client._client = _FakeOpenAIClient(None)  # type: ignore[assignment]

    with pytest.raises(EmptyCompletionError, match="empty completion") as exc_info:
        client.generate("s", "u")
    assert isinstance(exc_info.value, ExternalServiceError)
