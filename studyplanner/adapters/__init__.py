"""
Adapters layer - External integrations (chat-completion APIs, keyring, JSON files).
"""

from .credential_store import ApiKeyStore
from .http_client import HttpClient, HttpResponse, RequestsHttpClient
from .json_store import JsonEventStore, load_tasks
from .suggestion_providers import (
    ChatCompletionProvider,
    RawSuggestion,
    SuggestionProvider,
    create_suggestion_provider,
)

__all__ = [
    "ApiKeyStore",
    "ChatCompletionProvider",
    "HttpClient",
    "HttpResponse",
    "JsonEventStore",
    "RawSuggestion",
    "RequestsHttpClient",
    "SuggestionProvider",
    "create_suggestion_provider",
    "load_tasks",
]
