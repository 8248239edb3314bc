from __future__ import annotations

import logging

from taskrouter.errors import InvalidInput, ModelResponseInvalid

from .llm_client import OpenAICompatibleClient

logger = logging.getLogger(__name__)

CHAT_SYSTEM_PROMPT = (
    "You are a helpful multilingual assistant. You can respond in English, "
    "Russian (Русский), and Uzbek (O'zbek). Automatically detect the language of "
    "the user's question and respond in the SAME language. Provide concise, brief, "
    "and direct answers. Keep responses short unless more detail is specifically "
    "requested. If the user writes in English, respond in English. If in Russian, "
    "respond in Russian. If in Uzbek, respond in Uzbek."
)


class ChatAssistant:
    def __init__(
        self,
        llm: OpenAICompatibleClient,
        temperature: float = 0.7,
        max_tokens: int = 200,
    ) -> None:
        self._llm = llm
        self._temperature = temperature
        self._max_tokens = max_tokens

    def reply(self, message: str) -> str:
        text = (message or "").strip()
        if not text:
            raise InvalidInput("Message is required")
        try:
            return self._llm.complete(
                messages=[
                    {"role": "system", "content": CHAT_SYSTEM_PROMPT},
                    {"role": "user", "content": text},
                ],
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            )
        except RuntimeError as exc:
            logger.error("Chat completion failed: %s", exc)
            raise ModelResponseInvalid("Error communicating with AI") from exc
