"""Turn free text into a routed-task intent.

Two interchangeable extractors share the :class:`IntentExtractor` contract:

- :class:`LlmIntentExtractor` asks a chat-completion model for a strict JSON
  object and validates it with :func:`parse_intent_response`.
- :class:`KeywordIntentExtractor` looks for department names directly in the
  text. It is deterministic, so it backs tests and deployments without an
  LLM key.

Both raise only :class:`InvalidInput`, :class:`ModelResponseInvalid`,
:class:`IntentNotFound` or :class:`IntentIncomplete`.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from taskrouter.errors import (
    IntentIncomplete,
    IntentNotFound,
    InvalidInput,
    ModelResponseInvalid,
)
from taskrouter.services.departments import DepartmentDirectory
from taskrouter.services.llm_client import OpenAICompatibleClient

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "Could not determine the department or task."
INCOMPLETE_MESSAGE = "Could not extract task information from the text."

_SYSTEM_PROMPT_TEMPLATE = """You are a highly specialized AI agent. Your ONLY purpose is to analyze the user's text and extract structured data from it. You MUST NOT provide explanations, advice, or any conversational text. You MUST ONLY respond with a JSON object.

The JSON object must have one of two formats:

1. If you successfully identify the department and the task, respond with:
{{
  "department_keyword": "a_single_lowercase_keyword_for_the_department",
  "task_description": "the_clear_and_concise_task"
}}

2. If you CANNOT clearly identify the department or the task from the text, respond with:
{{
  "error": "Could not determine the department or task."
}}

Here is the user's text:
"{text}\""""


@dataclass(frozen=True)
class ExtractedIntent:
    department_keyword: str
    task_description: str


class IntentExtractor(ABC):
    @abstractmethod
    def extract(self, text: str) -> ExtractedIntent:
        raise NotImplementedError


def build_extraction_prompt(text: str) -> str:
    return _SYSTEM_PROMPT_TEMPLATE.format(text=text)


def parse_intent_response(raw: str) -> ExtractedIntent:
    try:
        parsed = json.loads((raw or "").strip())
    except json.JSONDecodeError as exc:
        raise ModelResponseInvalid("Model returned a response that is not valid JSON.") from exc
    if not isinstance(parsed, dict):
        raise ModelResponseInvalid("Model response must be a JSON object.")

    reported_error = parsed.get("error")
    if reported_error:
        message = str(reported_error).strip() or NOT_FOUND_MESSAGE
        raise IntentNotFound(message)

    keyword = parsed.get("department_keyword")
    task = parsed.get("task_description")
    if not isinstance(keyword, str) or not keyword.strip():
        raise IntentIncomplete(INCOMPLETE_MESSAGE)
    if not isinstance(task, str) or not task.strip():
        raise IntentIncomplete(INCOMPLETE_MESSAGE)
    return ExtractedIntent(
        department_keyword=keyword.strip().lower(),
        task_description=task.strip(),
    )


class LlmIntentExtractor(IntentExtractor):
    def __init__(self, llm: OpenAICompatibleClient, temperature: float = 0.2) -> None:
        self._llm = llm
        self._temperature = temperature

    def extract(self, text: str) -> ExtractedIntent:
        cleaned = (text or "").strip()
        if not cleaned:
            raise InvalidInput("Text is required")
        try:
            raw = self._llm.complete(
                messages=[{"role": "system", "content": build_extraction_prompt(cleaned)}],
                temperature=self._temperature,
                json_mode=True,
            )
        except RuntimeError as exc:
            logger.error("Intent extraction call failed: %s", exc)
            raise ModelResponseInvalid(f"Error parsing task with AI: {exc}") from exc
        intent = parse_intent_response(raw)
        logger.info(
            "Extracted intent for department keyword %r", intent.department_keyword
        )
        return intent


class KeywordIntentExtractor(IntentExtractor):
    _FILLER = r"(?:\s+(?:team|department|dept|group))?(?:\s*[:,\-])?(?:\s+(?:to|should|needs? to|please))?\s+"

    def __init__(self, directory: DepartmentDirectory) -> None:
        self._directory = directory

    def extract(self, text: str) -> ExtractedIntent:
        cleaned = (text or "").strip()
        if not cleaned:
            raise InvalidInput("Text is required")
        lowered = cleaned.lower()
        for department in self._directory.load():
            keyword = department.first_word
            match = re.search(rf"\b{re.escape(keyword)}\b{self._FILLER}", lowered)
            if match is None:
                continue
            task = cleaned[match.end() :].strip().rstrip(".!").strip()
            if not task:
                raise IntentIncomplete(INCOMPLETE_MESSAGE)
            return ExtractedIntent(department_keyword=keyword, task_description=task)
        raise IntentNotFound(NOT_FOUND_MESSAGE)
