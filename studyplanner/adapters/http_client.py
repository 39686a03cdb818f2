"""
Injectable HTTP transport for outbound JSON calls.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import requests


@dataclass(frozen=True)
class HttpResponse:
    """Transport-neutral view of an HTTP response."""
    status_code: int
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpClient(Protocol):
    """Protocol describing the HTTP behaviour needed by the suggestion providers."""

    def post_json(
        self,
        url: str,
        headers: Dict[str, str],
        payload: Dict[str, Any],
    ) -> HttpResponse:
        """POST ``payload`` as JSON and return the decoded response."""


class RequestsHttpClient:
    """
    ``HttpClient`` backed by a ``requests.Session``.

    No timeout is applied unless one is configured.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ):
        self._session = session
        self.timeout = timeout

    @property
    def session(self) -> requests.Session:
        """The underlying session, opened on first use."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def post_json(
        self,
        url: str,
        headers: Dict[str, str],
        payload: Dict[str, Any],
    ) -> HttpResponse:
        """
        Send the request and decode the body as JSON when possible.

        Raises:
            requests.exceptions.RequestException: On transport failures
        """
        response = self.session.post(
            url,
            headers=headers,
            json=payload,
            timeout=self.timeout,
        )

        try:
            body = response.json()
        except ValueError:
            body = response.text

        return HttpResponse(status_code=response.status_code, body=body)
