"""OpenRouter chat-completions adapter.

OpenRouter fronts many providers behind one OpenAI-style endpoint. Requests
carry the system prompt, the most recent transcript turns and the new user
message.
"""

from __future__ import annotations

import logging
from typing import Any

from calassist.errors import ExternalModelError, model_malformed_output
from calassist.fallbacks import EMPTY_CHAT_REPLY
from contracts.llm import ChatMessage, CompletionConfig, Provider
from models.hosted import HostedModelBackend

logger = logging.getLogger(__name__)

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"


class OpenRouterBackend(HostedModelBackend):
    """LanguageModelBackend backed by OpenRouter."""

    provider = Provider.OPENROUTER
    default_history_limit = 10

    def _endpoint(self, model_id: str) -> str:
        return OPENROUTER_URL

    def _headers(self) -> dict[str, str]:
        headers = super()._headers()
        headers.update(
            {
                "Content-Type": "application/json",
                "HTTP-Referer": "CalendarAssistant/1.0",
                "X-Title": "CalendarAssistant",
            }
        )
        return headers

    def _payload(
        self,
        prompt: str,
        config: CompletionConfig,
        history: tuple[ChatMessage, ...],
        model_id: str,
    ) -> dict[str, Any]:
        messages = [{"role": "system", "content": config.system_prompt}]
        messages.extend({"role": m.role, "content": m.content} for m in history)
        messages.append({"role": "user", "content": prompt})
        return {
            "model": model_id,
            "messages": messages,
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
            "top_p": config.top_p,
            "stream": False,
        }

    def _parse(self, data: Any) -> str:
        if not isinstance(data, dict):
            raise model_malformed_output(self.provider.value, "expected a JSON object")

        error = data.get("error")
        if error:
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ExternalModelError(
                f"OpenRouter API error: {message}",
                provider=self.provider.value,
            )

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise model_malformed_output(self.provider.value, "no choices[0].message.content") from e

        text = (content or "").strip()
        if not text:
            logger.info("OpenRouter returned an empty reply")
            return EMPTY_CHAT_REPLY
        return text
