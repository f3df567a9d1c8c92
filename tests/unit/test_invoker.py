import asyncio

import httpx
import openai
import pytest
from langchain_core.messages import AIMessage

from bid_review.config import InvokerConfig
from bid_review.errors import ConfigurationError, TransportError
from bid_review.review.invoker import ModelInvoker

_URL = "https://openrouter.ai/api/v1/chat/completions"


class MockChatModel:
    def __init__(self, reply: object = None, error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.messages: list[object] = []

    async def ainvoke(self, messages):
        self.messages.extend(messages)
        if self.error is not None:
            raise self.error
        return self.reply


class RecordingFactory:
    def __init__(self, model: MockChatModel) -> None:
        self.model = model
        self.calls: list[tuple[str, float, int]] = []

    def __call__(self, model: str, temperature: float, max_output_tokens: int) -> MockChatModel:
        self.calls.append((model, temperature, max_output_tokens))
        return self.model


def test_invoke_returns_message_text() -> None:
    factory = RecordingFactory(MockChatModel(AIMessage(content='{"errors": []}')))
    invoker = ModelInvoker(api_key="sk-test", chat_model_factory=factory)

    text = asyncio.run(invoker.invoke("review this", "gpt5"))

    assert text == '{"errors": []}'
    assert factory.calls == [("openai/gpt-5", 0.3, 8000)]
    assert factory.model.messages[0].content == "review this"


def test_unknown_model_key_uses_default() -> None:
    config = InvokerConfig(model_map={"default": "vendor/a", "fast": "vendor/b"})
    invoker = ModelInvoker(config, api_key="sk-test")

    assert invoker.resolve_model("fast") == "vendor/b"
    assert invoker.resolve_model("missing") == "vendor/a"
    assert invoker.resolve_model(None) == "vendor/a"


def test_overrides_reach_the_chat_model() -> None:
    factory = RecordingFactory(MockChatModel(AIMessage(content="[]")))
    invoker = ModelInvoker(api_key="sk-test", chat_model_factory=factory)

    asyncio.run(invoker.invoke("p", temperature=0.2, max_output_tokens=3500))

    assert factory.calls[0][1:] == (0.2, 3500)


def test_missing_api_key_fails_before_any_request() -> None:
    factory = RecordingFactory(MockChatModel(AIMessage(content="[]")))
    invoker = ModelInvoker(api_key=None, chat_model_factory=factory)

    assert invoker.configured is False
    with pytest.raises(ConfigurationError):
        asyncio.run(invoker.invoke("p"))
    assert factory.calls == []


def test_http_error_status_becomes_transport_error() -> None:
    response = httpx.Response(502, request=httpx.Request("POST", _URL))
    error = openai.APIStatusError("Bad gateway", response=response, body=None)
    invoker = ModelInvoker(
        api_key="sk-test", chat_model_factory=RecordingFactory(MockChatModel(error=error))
    )

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(invoker.invoke("p"))

    assert excinfo.value.status_code == 502
    assert excinfo.value.model == "google/gemini-2.5-flash"


def test_connection_error_becomes_transport_error() -> None:
    error = openai.APIConnectionError(request=httpx.Request("POST", _URL))
    invoker = ModelInvoker(
        api_key="sk-test", chat_model_factory=RecordingFactory(MockChatModel(error=error))
    )

    with pytest.raises(TransportError) as excinfo:
        asyncio.run(invoker.invoke("p"))

    assert excinfo.value.status_code is None


def test_content_parts_are_joined() -> None:
    reply = AIMessage(content=[{"type": "text", "text": '{"errors": '}, "[]}"])
    invoker = ModelInvoker(
        api_key="sk-test", chat_model_factory=RecordingFactory(MockChatModel(reply))
    )

    assert asyncio.run(invoker.invoke("p")) == '{"errors": []}'
