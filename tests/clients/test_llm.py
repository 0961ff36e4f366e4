from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from sequence_engine.clients.llm import AnthropicModel, ModelCallError, parse_json_response


def make_client(text="Drafted."):
    client = MagicMock()
    content = [SimpleNamespace(text=text)] if text is not None else []
    client.messages.create = AsyncMock(return_value=SimpleNamespace(content=content))
    return client


@pytest.mark.asyncio
async def test_complete_uses_draft_model():
    client = make_client("  Drafted.  ")
    model = AnthropicModel(model="draft-model", rewrite_model="rewrite-model", client=client)

    assert await model.complete("system", "user") == "Drafted."

    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["model"] == "draft-model"
    assert kwargs["system"] == "system"
    assert kwargs["messages"] == [{"role": "user", "content": "user"}]
    assert "temperature" not in kwargs


@pytest.mark.asyncio
async def test_rewrite_uses_rewrite_model_at_zero_temperature():
    client = make_client()
    model = AnthropicModel(model="draft-model", rewrite_model="rewrite-model", client=client)

    await model.rewrite("instructions", "text")

    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["model"] == "rewrite-model"
    assert kwargs["temperature"] == 0


@pytest.mark.asyncio
async def test_rewrite_model_defaults_to_draft_model():
    client = make_client()
    model = AnthropicModel(model="only-model", client=client)

    await model.rewrite("instructions", "text")

    assert client.messages.create.call_args.kwargs["model"] == "only-model"


@pytest.mark.asyncio
async def test_api_error_becomes_model_call_error():
    client = make_client()
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    client.messages.create.side_effect = anthropic.APIConnectionError(request=request)
    model = AnthropicModel(client=client)

    with pytest.raises(ModelCallError):
        await model.complete("system", "user")


@pytest.mark.asyncio
async def test_empty_content_is_an_error():
    model = AnthropicModel(client=make_client(text=None))

    with pytest.raises(ModelCallError):
        await model.complete("system", "user")


@pytest.mark.asyncio
async def test_blank_text_is_an_error():
    model = AnthropicModel(client=make_client(text="   "))

    with pytest.raises(ModelCallError):
        await model.draft("system", "prompt")


def test_parse_json_plain():
    assert parse_json_response('{"a": 1}') == {"a": 1}


def test_parse_json_fenced():
    assert parse_json_response('```json\n{"a": [1, 2]}\n```') == {"a": [1, 2]}
    assert parse_json_response('```\n{"b": true}\n```') == {"b": True}


def test_parse_json_invalid():
    with pytest.raises(ValueError):
        parse_json_response("not json")
