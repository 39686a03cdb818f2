"""
Chat-completion backends that propose placements for a batch of tasks.

One request is issued per batch. The response content must be strict JSON in
the shape ``{"suggestions": [{"taskId", "startAt", "endAt", "rationale?",
"confidence?"}]}``; the envelope is validated with pydantic and rejected as
a whole when it does not match.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from pendulum import DateTime
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..domain.exceptions import SuggestionProviderError
from ..domain.models import LlmProvider, Task, UserSchedulingPreferences
from .http_client import HttpClient

logger = logging.getLogger(__name__)


OPENAI_CHAT_URL = "https://api.openai.com/v1/chat/completions"
OPENAI_MODEL = "gpt-4o-mini"
LM_STUDIO_DEFAULT_URL = "http://localhost:1234"
LM_STUDIO_MODEL = "lmstudio-community/Meta-Llama-3-8B-Instruct"

SYSTEM_INSTRUCTION = "You output strict JSON with ISO 8601 timestamps."
TEMPERATURE = 0.2


class RawSuggestion(BaseModel):
    """One entry of the model response, timestamps still unparsed."""
    model_config = ConfigDict(populate_by_name=True)

    task_id: str = Field(alias="taskId", min_length=1)
    start_at: str = Field(alias="startAt", min_length=1)
    end_at: str = Field(alias="endAt", min_length=1)
    rationale: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0, le=1)


class SuggestionEnvelope(BaseModel):
    """Outer shape of the model response."""
    suggestions: List[RawSuggestion]


class SuggestionProvider(Protocol):
    """Protocol describing an external suggestion source."""

    async def fetch_suggestions(
        self,
        tasks: Sequence[Task],
        preferences: UserSchedulingPreferences,
        now: DateTime,
    ) -> List[RawSuggestion]:
        """Return the raw suggestions for the whole batch."""


def build_prompt(
    tasks: Sequence[Task],
    preferences: UserSchedulingPreferences,
    now: DateTime,
) -> str:
    """Render the user message describing the batch and the work window."""
    task_context = [
        {
            "id": task.id,
            "title": task.title,
            "dueAt": task.due_at.to_iso8601_string() if task.due_at else None,
            "effortMinutes": task.effort_minutes or preferences.default_duration_minutes,
            "priority": task.priority.value,
            "notes": task.notes,
        }
        for task in tasks
    ]

    return "\n".join([
        "You are an assistant that schedules student tasks.",
        f"Current time: {now.to_iso8601_string()}.",
        (
            f"The user works between local hours {preferences.day_window_start_hour}:00 "
            f"and {preferences.day_window_end_hour}:00."
        ),
        (
            "Suggest start and end times for each task using ISO 8601 timestamps. "
            "Times should fall within the preferred hours."
        ),
        'Return JSON only in the shape {"suggestions":[{"taskId","startAt","endAt","rationale?","confidence?"}]}.',
        "taskId must match the provided id exactly. Include every task exactly once.",
        f"Tasks: {json.dumps(task_context, indent=2)}",
    ])


def parse_model_response(content: str) -> List[RawSuggestion]:
    """
    Parse and validate the completion content.

    Raises:
        SuggestionProviderError: If the content is not JSON or the envelope
            does not match
    """
    try:
        data = json.loads(content.strip())
    except ValueError as exc:
        raise SuggestionProviderError(f"Model returned invalid JSON: {exc}") from exc

    try:
        envelope = SuggestionEnvelope.model_validate(data)
    except ValidationError as exc:
        raise SuggestionProviderError(f"Invalid model response: {exc}") from exc

    return envelope.suggestions


@dataclass
class ChatCompletionProvider:
    """
    Suggestion source speaking the chat-completions wire format.

    The same class serves OpenAI and LM Studio; they differ only in URL,
    model name and whether a bearer token is sent.
    """
    url: str
    model: str
    http_client: HttpClient
    api_key: Optional[str] = None

    def build_request(
        self,
        tasks: Sequence[Task],
        preferences: UserSchedulingPreferences,
        now: DateTime,
    ) -> tuple[Dict[str, str], Dict[str, Any]]:
        """Return the headers and JSON body for one batch request."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {"role": "user", "content": build_prompt(tasks, preferences, now)},
            ],
            "temperature": TEMPERATURE,
        }
        return headers, payload

    async def fetch_suggestions(
        self,
        tasks: Sequence[Task],
        preferences: UserSchedulingPreferences,
        now: DateTime,
    ) -> List[RawSuggestion]:
        headers, payload = self.build_request(tasks, preferences, now)

        logger.debug("Requesting suggestions for %d task(s) from %s", len(tasks), self.url)
        response = await asyncio.to_thread(
            self.http_client.post_json, self.url, headers, payload
        )

        if not response.ok:
            raise SuggestionProviderError(
                f"Model request failed with status {response.status_code}"
            )

        return parse_model_response(self._extract_content(response.body))

    @staticmethod
    def _extract_content(body: Any) -> str:
        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise SuggestionProviderError("Model returned no content") from exc

        if not isinstance(content, str):
            raise SuggestionProviderError("Model returned no content")
        return content


def create_suggestion_provider(
    preferences: UserSchedulingPreferences,
    http_client: HttpClient,
) -> Optional[SuggestionProvider]:
    """
    Select the backend configured in the user's preferences.

    Returns None when no provider is selected or its credentials are missing.
    """
    if preferences.llm_provider == LlmProvider.OPENAI:
        if not preferences.openai_api_key:
            logger.info("OpenAI selected but no API key configured; skipping suggestions")
            return None
        return ChatCompletionProvider(
            url=OPENAI_CHAT_URL,
            model=OPENAI_MODEL,
            http_client=http_client,
            api_key=preferences.openai_api_key,
        )

    if preferences.llm_provider == LlmProvider.LM_STUDIO:
        base = (preferences.lm_studio_url or "").rstrip("/") or LM_STUDIO_DEFAULT_URL
        return ChatCompletionProvider(
            url=f"{base}/v1/chat/completions",
            model=LM_STUDIO_MODEL,
            http_client=http_client,
        )

    return None
