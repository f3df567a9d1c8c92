"""Reasoning-service client: one request per chunk, no retries."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

import openai
from langchain_core.messages import HumanMessage

from bid_review.config import InvokerConfig
from bid_review.errors import ConfigurationError, TransportError

logger = logging.getLogger(__name__)

ChatModelFactory = Callable[[str, float, int], Any]
"""Builds a LangChain chat model from (model id, temperature, max output tokens)."""


class ModelInvoker:
    """Sends one rendered prompt to the reasoning service and returns raw text.

    Each call is independent and carries no state shared with other calls, so
    invocations for different chunks can run concurrently. The chat model is
    built with `max_retries=0`: a failed call surfaces as `TransportError`.
    """

    def __init__(
        self,
        config: InvokerConfig | None = None,
        *,
        api_key: str | None = None,
        chat_model_factory: ChatModelFactory | None = None,
    ) -> None:
        self.config = config or InvokerConfig()
        self._api_key = api_key
        self._chat_model_factory = chat_model_factory or self._openrouter_chat_model

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def ensure_configured(self) -> None:
        if not self._api_key:
            raise ConfigurationError("OPENROUTER_API_KEY is not configured")

    def resolve_model(self, model_key: str | None) -> str:
        """Map a logical model key to a backend model id; unknown keys use the default."""
        model_map = self.config.model_map
        if model_key and model_key in model_map:
            return model_map[model_key]
        return model_map[self.config.default_model_key]

    async def invoke(
        self,
        prompt: str,
        model_key: str | None = "default",
        *,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> str:
        self.ensure_configured()
        model = self.resolve_model(model_key)
        logger.info(f"Calling reasoning service: model={model} key={model_key}")

        chat_model = self._chat_model_factory(
            model,
            self.config.temperature if temperature is None else temperature,
            self.config.max_output_tokens if max_output_tokens is None else max_output_tokens,
        )
        try:
            response = await chat_model.ainvoke([HumanMessage(content=prompt)])
        except openai.APIStatusError as exc:
            logger.error(f"Reasoning service returned {exc.status_code} for model {model}")
            raise TransportError(
                f"Reasoning service error: {exc.status_code} - {exc.message}",
                status_code=exc.status_code,
                model=model,
            ) from exc
        except openai.APIConnectionError as exc:
            logger.error(f"Reasoning service unreachable for model {model}: {exc}")
            raise TransportError(
                f"Reasoning service unreachable: {exc}", model=model
            ) from exc

        return _response_text(response)

    def _openrouter_chat_model(
        self, model: str, temperature: float, max_output_tokens: int
    ) -> Any:
        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=model,
            api_key=self._api_key,
            base_url=self.config.base_url,
            temperature=temperature,
            max_tokens=max_output_tokens,
            max_retries=0,
            default_headers={
                "HTTP-Referer": self.config.referer,
                "X-Title": self.config.app_title,
            },
        )


def _response_text(response: Any) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                parts.append(str(item["text"]))
            elif isinstance(item, str):
                parts.append(item)
        return "".join(parts)
    return "" if content is None else str(content)
