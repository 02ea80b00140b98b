from __future__ import annotations

import logging
from typing import Optional, Tuple

from google import genai
from semantic_kernel.connectors.ai.open_ai import (
    AzureChatCompletion,
    OpenAIChatPromptExecutionSettings,
)
from semantic_kernel.contents import ChatHistory

from .classifier import to_provider_error
from .config import Settings
from .errors import EmptyGenerationError


logger = logging.getLogger(__name__)


class GenerationProvider:
    """A prompt-in, text-out model backend.

    ``generate`` is the error boundary: anything the backend raises leaves as a
    tagged ``ProviderError`` and blank output is reported as a failure.
    Subclasses implement ``_complete``.
    """

    name: str = "provider"

    def __init__(self, model: str) -> None:
        self.model = model

    async def _complete(self, prompt: str) -> str:
        raise NotImplementedError

    async def generate(self, prompt: str) -> str:
        try:
            text = await self._complete(prompt)
        except Exception as e:
            raise to_provider_error(e, self.name) from e
        if not isinstance(text, str) or not text.strip():
            raise EmptyGenerationError(self.name)
        return text


class GeminiProvider(GenerationProvider):
    name = "gemini"

    def __init__(self, client: genai.Client, model: str) -> None:
        super().__init__(model)
        self._client = client

    async def _complete(self, prompt: str) -> str:
        resp = await self._client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
        )
        if getattr(resp, "text", None):
            return resp.text
        if resp.candidates:
            content = resp.candidates[0].content
            parts = content.parts if content is not None else None
            if parts:
                return parts[0].text or ""
        logger.warning("Empty or filtered Gemini response")
        return ""


class AzureOpenAIProvider(GenerationProvider):
    name = "azure-openai"

    def __init__(
        self,
        service: AzureChatCompletion,
        model: str,
        max_tokens: int = 512,
        temperature: float = 0.2,
        instructions: str = "You are a concise, helpful assistant for a college portal.",
    ) -> None:
        super().__init__(model)
        self._service = service
        self._instructions = instructions
        self._settings = OpenAIChatPromptExecutionSettings(
            max_tokens=max_tokens,
            temperature=temperature,
        )

    async def _complete(self, prompt: str) -> str:
        history = ChatHistory()
        history.add_system_message(self._instructions)
        history.add_user_message(prompt)
        response = await self._service.get_chat_message_content(
            chat_history=history, settings=self._settings
        )
        content = getattr(response, "content", None)
        return content if isinstance(content, str) else ""


def build_providers(
    settings: Settings,
) -> Tuple[Optional[GenerationProvider], Optional[GenerationProvider]]:
    """Construct (primary, secondary) from configuration; either may be None."""
    primary: Optional[GenerationProvider] = None
    secondary: Optional[GenerationProvider] = None

    if settings.primary_configured:
        primary = GeminiProvider(
            genai.Client(api_key=settings.gemini_api_key),
            settings.gemini_model,
        )
        logger.info("Primary provider: gemini (%s)", settings.gemini_model)

    if settings.secondary_configured:
        service = AzureChatCompletion(
            api_key=settings.azure_openai_api_key,
            endpoint=settings.azure_openai_endpoint,
            deployment_name=settings.azure_openai_chat_deployment_name,
            api_version=settings.azure_openai_api_version,
        )
        secondary = AzureOpenAIProvider(
            service,
            settings.azure_openai_chat_deployment_name,
            max_tokens=settings.fallback_max_tokens,
            temperature=settings.fallback_temperature,
        )
        logger.info(
            "Secondary provider: azure-openai (%s)", settings.azure_openai_chat_deployment_name
        )

    if primary is None and secondary is None:
        logger.warning("No generation provider configured; chat endpoints will return 500")
    return primary, secondary
