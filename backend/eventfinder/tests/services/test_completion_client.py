from __future__ import annotations

import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from eventfinder.errors import CompletionError
from eventfinder.infra.llm.completion_client import CompletionClient


class _FakeCompletions:
    def __init__(self, content=None, error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.kwargs: dict = {}

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions: _FakeCompletions) -> CompletionClient:
    fake = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return CompletionClient("key", model="test-model", client=fake)


def test_requests_json_mode_and_parses_content():
    completions = _FakeCompletions('{"topic_keywords": ["jazz"]}')
    result = asyncio.run(_client(completions).complete_json("sys", "user", temperature=0.1))
    assert result == {"topic_keywords": ["jazz"]}
    assert completions.kwargs["response_format"] == {"type": "json_object"}
    assert completions.kwargs["model"] == "test-model"
    assert completions.kwargs["temperature"] == 0.1
    assert completions.kwargs["messages"][0] == {"role": "system", "content": "sys"}


@pytest.mark.parametrize("content", [None, "", "definitely not json"])
def test_malformed_content_becomes_empty_dict(content):
    assert asyncio.run(_client(_FakeCompletions(content)).complete_json("s", "u")) == {}


def test_sdk_errors_become_completion_errors():
    request = httpx.Request("POST", "https://api.groq.test/openai/v1/chat/completions")
    completions = _FakeCompletions(error=openai.APIConnectionError(request=request))
    with pytest.raises(CompletionError):
        asyncio.run(_client(completions).complete_json("s", "u"))


class _ClosableClient:
    def __init__(self) -> None:
        self.closed = False

    async def close(self) -> None:
        self.closed = True


def test_aclose_releases_owned_client_only():
    owned = CompletionClient("key", base_url="https://llm.test/v1")
    fake = _ClosableClient()
    owned._client = fake
    asyncio.run(owned.aclose())
    assert fake.closed

    injected = _ClosableClient()
    asyncio.run(CompletionClient("key", client=injected).aclose())
    assert not injected.closed
