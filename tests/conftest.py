from __future__ import annotations

from collections import defaultdict, deque
import json
from typing import Any

import pytest

from retdec.core.config import Settings
from retdec.services.connection import APIArguments, APIConnection, APIConnectionFactory, APIResponse

API_URL = "https://retdec.com/service/api"


class RecordingConnection(APIConnection):
    """In-memory connection answering from queued responses and recording every request."""

    def __init__(self, api_url: str = API_URL) -> None:
        self._api_url = api_url
        self._responses: dict[tuple[str, str], deque[APIResponse | Exception]] = defaultdict(deque)
        self.requests: list[tuple[str, str, APIArguments | None]] = []
        self.closed = False

    def add_response(self, method: str, url: str, response: APIResponse | Exception) -> None:
        self._responses[(method, url)].append(response)

    def add_json_response(self, method: str, url: str, payload: Any, status_code: int = 200) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.add_response(method, url, APIResponse(status_code=status_code, body=body, url=url))

    def api_url(self) -> str:
        return self._api_url

    def send_get_request(self, url: str) -> APIResponse:
        return self._answer("GET", url, None)

    def send_post_request(self, url: str, args: APIArguments) -> APIResponse:
        return self._answer("POST", url, args)

    def close(self) -> None:
        self.closed = True

    def request_sent(self, method: str, url: str, args: APIArguments | None = None) -> bool:
        return (method, url, args) in self.requests

    def _answer(self, method: str, url: str, args: APIArguments | None) -> APIResponse:
        self.requests.append((method, url, args))
        queued = self._responses[(method, url)]
        if not queued:
            raise AssertionError(f"unexpected request {method} {url}")
        # The last queued answer keeps being returned once the others are used up.
        answer = queued.popleft() if len(queued) > 1 else queued[0]
        if isinstance(answer, Exception):
            raise answer
        return answer


class RecordingConnectionFactory(APIConnectionFactory):
    def __init__(self, conn: RecordingConnection) -> None:
        self.conn = conn
        self.created = 0

    def new_connection(self) -> APIConnection:
        self.created += 1
        return self.conn


@pytest.fixture
def settings() -> Settings:
    # Pin the URL so that RETDEC_API_URL in the environment cannot override it.
    return Settings(api_key="test", api_url=API_URL, poll_interval_seconds=0.25)


@pytest.fixture
def conn() -> RecordingConnection:
    return RecordingConnection()


@pytest.fixture
def sleeps(monkeypatch) -> list[float]:
    recorded: list[float] = []
    monkeypatch.setattr("retdec.jobs.base.time.sleep", recorded.append)
    return recorded
