import asyncio
from types import SimpleNamespace

import pytest
from openai import OpenAIError

from services import gpt_client
from services.errors import ExtractionError


class FakeCompletions:
    def __init__(self, outcome):
        self.outcome = outcome
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


def reply(content, finish_reason="stop"):
    return SimpleNamespace(
        choices=[SimpleNamespace(finish_reason=finish_reason, message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=120, completion_tokens=40),
    )


@pytest.fixture
def install_client(monkeypatch):
    def install(outcome):
        completions = FakeCompletions(outcome)
        monkeypatch.setattr(gpt_client, "_client", SimpleNamespace(chat=SimpleNamespace(completions=completions)))
        return completions

    return install


def test_request_json_uses_json_mode(install_client):
    completions = install_client(reply('{"domains": []}'))

    content = asyncio.run(gpt_client.request_json("outline please", max_tokens=2000, model="gpt-4o"))

    assert content == '{"domains": []}'
    assert completions.kwargs["model"] == "gpt-4o"
    assert completions.kwargs["max_tokens"] == 2000
    assert completions.kwargs["response_format"] == {"type": "json_object"}
    assert completions.kwargs["messages"][-1] == {"role": "user", "content": "outline please"}


def test_request_json_defaults_to_configured_model(install_client):
    completions = install_client(reply("{}"))
    asyncio.run(gpt_client.request_json("x", max_tokens=10))
    assert completions.kwargs["model"] == gpt_client.GPT_MODEL


def test_api_error_becomes_extraction_error(install_client):
    install_client(OpenAIError("rate limited"))

    with pytest.raises(ExtractionError, match="LLM call failed: rate limited") as excinfo:
        asyncio.run(gpt_client.request_json("x", max_tokens=10))
    assert excinfo.value.status_code == 502


def test_truncated_reply_is_rejected(install_client):
    install_client(reply('{"domains": [', finish_reason="length"))

    with pytest.raises(ExtractionError, match="truncated"):
        asyncio.run(gpt_client.request_json("x", max_tokens=10))


def test_empty_reply_is_rejected(install_client):
    install_client(reply(None))

    with pytest.raises(ExtractionError, match="empty reply"):
        asyncio.run(gpt_client.request_json("x", max_tokens=10))


def test_missing_api_key(monkeypatch):
    monkeypatch.setattr(gpt_client, "_client", None)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(ExtractionError, match="OPENAI_API_KEY"):
        asyncio.run(gpt_client.request_json("x", max_tokens=10))
