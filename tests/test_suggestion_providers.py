"""
Tests for the chat-completion suggestion providers.
"""

import asyncio
import json

import pendulum
import pytest

from studyplanner.adapters.http_client import HttpResponse
from studyplanner.adapters.suggestion_providers import (
    LM_STUDIO_MODEL,
    OPENAI_CHAT_URL,
    OPENAI_MODEL,
    ChatCompletionProvider,
    build_prompt,
    create_suggestion_provider,
    parse_model_response,
)
from studyplanner.domain.exceptions import SuggestionProviderError
from studyplanner.domain.models import LlmProvider, UserSchedulingPreferences

from conftest import StubHttpClient, completion_response, make_task

NOW = pendulum.parse("2024-01-01T12:00:00Z")


class TestProviderSelection:
    """Tests for create_suggestion_provider."""

    def test_no_provider(self):
        """Provider 'none' disables the external path."""
        prefs = UserSchedulingPreferences(llm_provider=LlmProvider.NONE)

        assert create_suggestion_provider(prefs, StubHttpClient()) is None

    def test_openai_without_key(self):
        """OpenAI without credentials is treated as unconfigured."""
        prefs = UserSchedulingPreferences(llm_provider=LlmProvider.OPENAI)

        assert create_suggestion_provider(prefs, StubHttpClient()) is None

    def test_openai_with_key(self):
        """OpenAI with a key talks to the public endpoint."""
        prefs = UserSchedulingPreferences(llm_provider=LlmProvider.OPENAI, openai_api_key="sk-test")

        provider = create_suggestion_provider(prefs, StubHttpClient())

        assert isinstance(provider, ChatCompletionProvider)
        assert provider.url == OPENAI_CHAT_URL
        assert provider.model == OPENAI_MODEL
        assert provider.api_key == "sk-test"

    def test_lm_studio_strips_trailing_slash(self):
        """The LM Studio base URL is normalised."""
        prefs = UserSchedulingPreferences(
            llm_provider=LlmProvider.LM_STUDIO,
            lm_studio_url="http://192.168.0.5:5000/",
        )

        provider = create_suggestion_provider(prefs, StubHttpClient())

        assert provider.url == "http://192.168.0.5:5000/v1/chat/completions"
        assert provider.model == LM_STUDIO_MODEL
        assert provider.api_key is None

    def test_lm_studio_default_url(self):
        """Without a URL LM Studio defaults to localhost."""
        prefs = UserSchedulingPreferences(llm_provider=LlmProvider.LM_STUDIO)

        provider = create_suggestion_provider(prefs, StubHttpClient())

        assert provider.url == "http://localhost:1234/v1/chat/completions"


class TestRequest:
    """Tests for the outbound request."""

    def test_openai_request_shape(self):
        """Bearer header, low temperature and both messages are sent."""
        client = StubHttpClient(response=completion_response({"suggestions": []}))
        provider = ChatCompletionProvider(
            url=OPENAI_CHAT_URL, model=OPENAI_MODEL, http_client=client, api_key="sk-test"
        )
        prefs = UserSchedulingPreferences(llm_provider=LlmProvider.OPENAI, openai_api_key="sk-test")

        result = asyncio.run(provider.fetch_suggestions([make_task("a")], prefs, NOW))

        assert result == []
        assert len(client.calls) == 1
        call = client.calls[0]
        assert call["url"] == OPENAI_CHAT_URL
        assert call["headers"]["Authorization"] == "Bearer sk-test"
        assert call["headers"]["Content-Type"] == "application/json"
        assert call["payload"]["model"] == OPENAI_MODEL
        assert call["payload"]["temperature"] == 0.2
        roles = [m["role"] for m in call["payload"]["messages"]]
        assert roles == ["system", "user"]
        assert "strict JSON" in call["payload"]["messages"][0]["content"]

    def test_no_auth_header_without_key(self):
        """LM Studio requests carry no Authorization header."""
        client = StubHttpClient(response=completion_response({"suggestions": []}))
        provider = ChatCompletionProvider(url="http://localhost:1234/v1/chat/completions",
                                          model=LM_STUDIO_MODEL, http_client=client)

        asyncio.run(provider.fetch_suggestions([make_task("a")], UserSchedulingPreferences(), NOW))

        assert "Authorization" not in client.calls[0]["headers"]

    def test_prompt_lists_tasks_and_window(self):
        """The prompt carries every task and the work window."""
        prefs = UserSchedulingPreferences(
            day_window_start_hour=9, day_window_end_hour=17, default_duration_minutes=25
        )
        tasks = [
            make_task("a", due="2024-01-02T16:00:00Z", effort=90, title="Essay"),
            make_task("b", title="Reading"),
        ]

        prompt = build_prompt(tasks, prefs, NOW)

        assert "Current time: 2024-01-01T12:00:00Z." in prompt
        assert "between local hours 9:00 and 17:00" in prompt
        task_json = json.loads(prompt.split("Tasks: ", 1)[1])
        assert [t["id"] for t in task_json] == ["a", "b"]
        assert task_json[0]["dueAt"] == "2024-01-02T16:00:00Z"
        assert task_json[0]["effortMinutes"] == 90
        assert task_json[1]["dueAt"] is None
        assert task_json[1]["effortMinutes"] == 25
        assert task_json[1]["priority"] == "MEDIUM"


class TestResponseHandling:
    """Tests for response validation."""

    def test_non_success_status(self):
        """A non-2xx answer is an error."""
        client = StubHttpClient(response=HttpResponse(status_code=500, body={"error": "boom"}))
        provider = ChatCompletionProvider(url="u", model="m", http_client=client)

        with pytest.raises(SuggestionProviderError, match="status 500"):
            asyncio.run(provider.fetch_suggestions([make_task("a")], UserSchedulingPreferences(), NOW))

    def test_missing_content(self):
        """A response without choices is an error."""
        client = StubHttpClient(response=HttpResponse(status_code=200, body={"choices": []}))
        provider = ChatCompletionProvider(url="u", model="m", http_client=client)

        with pytest.raises(SuggestionProviderError, match="no content"):
            asyncio.run(provider.fetch_suggestions([make_task("a")], UserSchedulingPreferences(), NOW))

    def test_parse_valid_envelope(self):
        """Optional fields are passed through verbatim."""
        content = json.dumps({
            "suggestions": [
                {"taskId": "a", "startAt": "2024-01-01T13:00:00Z", "endAt": "2024-01-01T13:45:00Z",
                 "rationale": "Afternoon focus", "confidence": 0.9},
                {"taskId": "b", "startAt": "2024-01-01T14:00:00Z", "endAt": "2024-01-01T15:00:00Z"},
            ]
        })

        suggestions = parse_model_response(f"  {content}\n")

        assert [s.task_id for s in suggestions] == ["a", "b"]
        assert suggestions[0].rationale == "Afternoon focus"
        assert suggestions[0].confidence == 0.9
        assert suggestions[1].rationale is None

    def test_parse_invalid_json(self):
        """Non-JSON content is rejected."""
        with pytest.raises(SuggestionProviderError):
            parse_model_response("Sure! Here is your schedule:")

    def test_parse_wrong_envelope(self):
        """A payload not shaped like the envelope is rejected as a whole."""
        with pytest.raises(SuggestionProviderError):
            parse_model_response(json.dumps({"items": []}))

    def test_parse_confidence_out_of_range(self):
        """Confidence must lie in [0, 1]."""
        content = json.dumps({
            "suggestions": [
                {"taskId": "a", "startAt": "2024-01-01T13:00:00Z",
                 "endAt": "2024-01-01T13:45:00Z", "confidence": 1.5},
            ]
        })

        with pytest.raises(SuggestionProviderError):
            parse_model_response(content)
