"""Tests for utils.llm: streamed completion and SDK error mapping, with a fake SDK client."""

from unittest.mock import MagicMock

import anthropic
import httpx
import pytest

from config.settings import Settings
from core.errors import TransportError
from utils.llm import CompletionClient

_REQUEST = httpx.Request("POST", "https://api.anthropic.com/v1/messages")


def _fake_sdk(chunks=("{", '"files": []', "}"), stop_reason="end_turn", error=None):
    sdk = MagicMock()
    if error is not None:
        sdk.messages.stream.side_effect = error
        return sdk
    stream = MagicMock()
    stream.text_stream = iter(chunks)
    stream.get_final_message.return_value = MagicMock(stop_reason=stop_reason)
    sdk.messages.stream.return_value.__enter__.return_value = stream
    return sdk


def _complete(client):
    return client.complete("system", "user", max_tokens=100, temperature=0.1, timeout=5)


def test_stream_is_accumulated():
    sdk = _fake_sdk()
    client = CompletionClient(api_key=None, client=sdk)
    assert _complete(client) == '{"files": []}'

    kwargs = sdk.messages.stream.call_args.kwargs
    assert kwargs["system"] == "system"
    assert kwargs["messages"] == [{"role": "user", "content": "user"}]
    assert kwargs["timeout"] == 5
    assert kwargs["model"] == client.model


def test_model_override_per_call():
    sdk = _fake_sdk()
    client = CompletionClient(api_key=None, client=sdk, model="default-model")
    client.complete("s", "u", max_tokens=1, temperature=0, timeout=1, model="other-model")
    assert sdk.messages.stream.call_args.kwargs["model"] == "other-model"


def test_max_tokens_stop_is_logged(caplog):
    client = CompletionClient(api_key=None, client=_fake_sdk(stop_reason="max_tokens"))
    with caplog.at_level("WARNING"):
        _complete(client)
    assert "truncated" in caplog.text


@pytest.mark.parametrize("error, status", [
    (anthropic.APITimeoutError(request=_REQUEST), None),
    (anthropic.APIConnectionError(request=_REQUEST), None),
    (anthropic.APIStatusError(
        "overloaded", response=httpx.Response(529, request=_REQUEST), body=None), 529),
])
def test_sdk_errors_become_transport_errors(error, status):
    client = CompletionClient(api_key=None, client=_fake_sdk(error=error))
    with pytest.raises(TransportError) as exc:
        _complete(client)
    assert exc.value.backend == "anthropic"
    assert exc.value.status == status


def test_missing_key_is_reported():
    with pytest.raises(RuntimeError, match="ANTHROPIC_API_KEY"):
        CompletionClient(api_key="")


def test_from_settings_uses_configured_model_and_base_url():
    settings = Settings.from_env({
        "ANTHROPIC_API_KEY": "sk-test",
        "ANTHROPIC_BASE_URL": "https://proxy.example.com",
        "ANTHROPIC_MODEL": "claude-test",
    })
    client = CompletionClient.from_settings(settings)
    assert client.model == "claude-test"
    assert str(client._client.base_url).startswith("https://proxy.example.com")
    assert client._client.max_retries == 0
