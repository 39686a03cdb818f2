"""
Shared test doubles.
"""

import json
from typing import Any, Dict, List, Optional

import pendulum
import pytest

from studyplanner.adapters.http_client import HttpResponse
from studyplanner.domain.models import Task, TaskPriority


class StubHttpClient:
    """Minimal stub matching the HttpClient protocol."""

    def __init__(self, response: Optional[HttpResponse] = None, error: Optional[Exception] = None):
        self.response = response
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def post_json(self, url, headers, payload):
        self.calls.append({"url": url, "headers": headers, "payload": payload})
        if self.error is not None:
            raise self.error
        return self.response


def completion_response(content: Any, status_code: int = 200) -> HttpResponse:
    """Wrap ``content`` the way a chat-completions endpoint answers."""
    if not isinstance(content, str):
        content = json.dumps(content)
    return HttpResponse(
        status_code=status_code,
        body={"choices": [{"message": {"role": "assistant", "content": content}}]},
    )


def make_task(
    task_id: str,
    due: Optional[str] = None,
    priority: TaskPriority = TaskPriority.MEDIUM,
    created: str = "2023-12-31T09:00:00Z",
    effort: Optional[int] = None,
    title: Optional[str] = None,
) -> Task:
    return Task(
        id=task_id,
        title=title or f"Task {task_id}",
        priority=priority,
        created_at=pendulum.parse(created),
        due_at=pendulum.parse(due) if due else None,
        effort_minutes=effort,
    )


@pytest.fixture
def example_tasks():
    """Two tasks due on consecutive days."""
    return [
        make_task("a", due="2024-01-02T16:00:00Z", priority=TaskPriority.HIGH),
        make_task("b", due="2024-01-03T16:00:00Z", priority=TaskPriority.LOW),
    ]
