"""Hugging Face Inference API adapter.

The hosted conversational models take a single text input, so the system
prompt and recent transcript are flattened into a "User:/Assistant:"
script ending with an open assistant turn.
"""

from __future__ import annotations

import logging
from typing import Any

from calassist.errors import ExternalModelError, model_malformed_output
from calassist.fallbacks import EMPTY_CHAT_REPLY
from contracts.llm import ChatMessage, CompletionConfig, Provider
from models.hosted import HostedModelBackend

logger = logging.getLogger(__name__)

HUGGINGFACE_URL = "https://api-inference.huggingface.co/models/{model}"

_SPEAKERS = {"user": "User", "assistant": "Assistant"}


def build_transcript(
    prompt: str,
    system_prompt: str,
    history: tuple[ChatMessage, ...] = (),
) -> str:
    """Flatten a conversation into a single generation input."""
    lines = [f"{_SPEAKERS.get(m.role, m.role.title())}: {m.content}" for m in history]
    transcript = system_prompt + "\n\n"
    if lines:
        transcript += "\n".join(lines) + "\n"
    return transcript + f"User: {prompt}\nAssistant:"


class HuggingFaceBackend(HostedModelBackend):
    """LanguageModelBackend backed by the Hugging Face Inference API."""

    provider = Provider.HUGGINGFACE
    default_history_limit = 5

    def _endpoint(self, model_id: str) -> str:
        return HUGGINGFACE_URL.format(model=model_id)

    def _payload(
        self,
        prompt: str,
        config: CompletionConfig,
        history: tuple[ChatMessage, ...],
        model_id: str,
    ) -> dict[str, Any]:
        return {
            "inputs": build_transcript(prompt, config.system_prompt, history),
            "parameters": {
                "max_length": config.max_tokens,
                "temperature": config.temperature,
                "do_sample": True,
                "top_p": config.top_p,
                "return_full_text": False,
            },
            "options": {"wait_for_model": True},
        }

    def _parse(self, data: Any) -> str:
        if isinstance(data, dict) and data.get("error"):
            raise ExternalModelError(
                f"Hugging Face API error: {data['error']}",
                provider=self.provider.value,
            )

        item = data[0] if isinstance(data, list) and data else data
        if not isinstance(item, dict) or "generated_text" not in item:
            raise model_malformed_output(self.provider.value, "no generated_text")

        text = str(item["generated_text"] or "").strip()
        if text.startswith("Assistant:"):
            text = text[len("Assistant:") :].strip()
        if not text:
            logger.info("Hugging Face returned an empty reply")
            return EMPTY_CHAT_REPLY
        return text
