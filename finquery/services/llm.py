# =============================================================================
# LLM Provider Layer — Anthropic or OpenAI-Compatible
# =============================================================================
#
# Both LLM-backed pipeline steps (question → structured query, rows →
# answer) call `complete()` on an LLMProvider. Which vendor sits behind it
# is a config switch:
#   LLM_PROVIDER=anthropic          → AnthropicProvider
#   LLM_PROVIDER=openai_compatible  → OpenAICompatibleProvider
#                                     (OpenAI, or any host set in LLM_BASE_URL)
#
# DESIGN DECISION: Protocol (structural typing). Tests pass an AsyncMock or
# a scripted fake with a `complete()` coroutine; nothing has to inherit.
#
# DESIGN DECISION: Native SDKs, async clients. Each client carries its own
# request timeout (LLM_TIMEOUT_SECONDS) and connection pool. SDK-level
# retries are disabled: a failed step fails the request, the caller decides
# whether to ask again.
# =============================================================================

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from finquery.config import settings

logger = logging.getLogger(__name__)


@dataclass
class LLMResponse:
    """Provider-neutral completion result."""

    content: str
    model: str
    input_tokens: int
    output_tokens: int


class LLMProvider(Protocol):
    """Anything that can turn a prompt into text."""

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """
        Args:
            messages: [{"role": "user" | "assistant", "content": ...}, ...]
            system: System prompt. Anthropic takes it as a top-level kwarg,
                OpenAI as a leading {"role": "system"} message.
            temperature: Overrides settings.llm_temperature.
            max_tokens: Overrides settings.llm_max_tokens.
        """
        ...


class AnthropicProvider:
    """Claude through the native Anthropic SDK."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        from anthropic import AsyncAnthropic

        resolved_key = api_key or settings.llm_api_key or settings.anthropic_api_key
        if not resolved_key:
            raise ValueError(
                "No Anthropic API key configured. Set LLM_API_KEY or "
                "ANTHROPIC_API_KEY in .env"
            )

        self._client = AsyncAnthropic(
            api_key=resolved_key,
            timeout=timeout_seconds or settings.llm_timeout_seconds,
            max_retries=0,
        )
        self._model = model or settings.llm_model
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info("Initialized AnthropicProvider (model=%s)", self._model)

    async def close(self) -> None:
        await self._client.close()

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        kwargs: dict = {
            "model": self._model,
            "messages": messages,
            "max_tokens": max_tokens or self._max_tokens,
            "temperature": (
                self._temperature if temperature is None else temperature
            ),
        }
        if system:
            kwargs["system"] = system

        response = await self._client.messages.create(**kwargs)

        content = ""
        for block in response.content:
            if block.type == "text":
                content = block.text
                break

        return LLMResponse(
            content=content,
            model=response.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )


class OpenAICompatibleProvider:
    """OpenAI, or any API that speaks the OpenAI chat-completions protocol."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        from openai import AsyncOpenAI

        resolved_key = api_key or settings.llm_api_key or settings.openai_api_key
        if not resolved_key:
            raise ValueError(
                "No API key configured for OpenAI-compatible provider. "
                "Set LLM_API_KEY or OPENAI_API_KEY in .env"
            )

        client_kwargs: dict = {
            "api_key": resolved_key,
            "timeout": timeout_seconds or settings.llm_timeout_seconds,
            "max_retries": 0,
        }
        resolved_base_url = base_url or settings.llm_base_url
        if resolved_base_url:
            client_kwargs["base_url"] = resolved_base_url

        self._client = AsyncOpenAI(**client_kwargs)
        self._model = model or settings.llm_model
        self._temperature = settings.llm_temperature
        self._max_tokens = settings.llm_max_tokens

        logger.info(
            "Initialized OpenAICompatibleProvider (model=%s, base_url=%s)",
            self._model,
            resolved_base_url or "https://api.openai.com/v1",
        )

    async def close(self) -> None:
        await self._client.close()

    async def complete(
        self,
        messages: list[dict[str, str]],
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        all_messages: list[dict[str, str]] = []
        if system:
            all_messages.append({"role": "system", "content": system})
        all_messages.extend(messages)

        response = await self._client.chat.completions.create(
            model=self._model,
            messages=all_messages,
            max_tokens=max_tokens or self._max_tokens,
            temperature=(
                self._temperature if temperature is None else temperature
            ),
        )

        content = response.choices[0].message.content or ""
        usage = response.usage

        return LLMResponse(
            content=content,
            model=response.model or self._model,
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
        )


def create_llm_provider() -> AnthropicProvider | OpenAICompatibleProvider:
    """
    Build the provider selected by LLM_PROVIDER.

    The SDK clients pool connections and are safe to share across
    concurrent requests. The application lifespan builds one instance,
    injects it into the orchestrator and closes it at shutdown.
    """
    if settings.llm_provider == "openai_compatible":
        return OpenAICompatibleProvider()
    return AnthropicProvider()
