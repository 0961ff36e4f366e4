"""Tests for the research-brief client."""

import pytest
from unittest.mock import patch, AsyncMock, MagicMock

import httpx

from sequence_engine.clients.research import ResearchError, research_company
from sequence_engine.core.config import ResearchConfig

CONFIG = ResearchConfig(api_key="test-key", base_url="https://research.example/", model="sonar-pro")


def make_response(payload):
    mock_response = MagicMock()
    mock_response.json.return_value = payload
    mock_response.raise_for_status.return_value = None
    return mock_response


@pytest.mark.asyncio
async def test_research_requires_api_key():
    with pytest.raises(ResearchError):
        await research_company("row", ResearchConfig(api_key=""))


@pytest.mark.asyncio
async def test_research_returns_brief(lead_intel):
    """Test the brief is the trimmed message content."""
    mock_response = make_response({"choices": [{"message": {"content": "  Company\nHelix  "}}]})

    with patch("sequence_engine.clients.research.httpx.AsyncClient") as mock_client:
        mock_instance = AsyncMock()
        mock_instance.post.return_value = mock_response
        mock_client.return_value.__aenter__.return_value = mock_instance

        brief = await research_company(lead_intel, CONFIG)

        assert brief == "Company\nHelix"
        args, kwargs = mock_instance.post.call_args
        assert args[0] == "https://research.example/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer test-key"
        assert kwargs["json"]["model"] == "sonar-pro"
        assert kwargs["json"]["messages"][1] == {"role": "user", "content": lead_intel}


@pytest.mark.asyncio
async def test_research_http_error():
    with patch("sequence_engine.clients.research.httpx.AsyncClient") as mock_client:
        mock_instance = AsyncMock()
        mock_instance.post.side_effect = httpx.ConnectError("refused")
        mock_client.return_value.__aenter__.return_value = mock_instance

        with pytest.raises(ResearchError):
            await research_company("row", CONFIG)


@pytest.mark.asyncio
async def test_research_empty_content():
    for payload in ({"choices": [{"message": {"content": ""}}]}, {"choices": []}):
        with patch("sequence_engine.clients.research.httpx.AsyncClient") as mock_client:
            mock_instance = AsyncMock()
            mock_instance.post.return_value = make_response(payload)
            mock_client.return_value.__aenter__.return_value = mock_instance

            with pytest.raises(ResearchError):
                await research_company("row", CONFIG)
