from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import json
import logging
from typing import Any, Self

import httpx

from retdec.core.config import Settings
from retdec.core.errors import ConfigurationError, ProtocolError, TransportError
from retdec.core.files import File

logger = logging.getLogger(__name__)


class APIArguments:
    """Named scalar arguments and file attachments of one API request."""

    def __init__(self) -> None:
        self._args: dict[str, str | bool] = {}
        self._files: dict[str, File] = {}

    def add_string_arg(self, name: str, value: str) -> None:
        self._args[name] = value

    def add_opt_string_arg(self, name: str, value: str | None) -> None:
        if value is not None:
            self.add_string_arg(name, value)

    def add_bool_arg(self, name: str, value: bool) -> None:
        self._args[name] = value

    def add_opt_bool_arg(self, name: str, value: bool | None) -> None:
        if value is not None:
            self.add_bool_arg(name, value)

    def add_file(self, name: str, file: File) -> None:
        self._files[name] = file

    def args(self) -> dict[str, str | bool]:
        return dict(self._args)

    def files(self) -> dict[str, File]:
        return dict(self._files)

    def form_data(self) -> dict[str, str]:
        return {name: _serialize_arg(value) for name, value in self._args.items()}

    def multipart_files(self) -> dict[str, tuple[str, bytes]]:
        return {name: (file.name, file.content) for name, file in self._files.items()}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, APIArguments):
            return NotImplemented
        return self._args == other._args and self._files == other._files

    def __repr__(self) -> str:
        files = {name: file.name for name, file in self._files.items()}
        return f"APIArguments(args={self._args!r}, files={files!r})"


def _serialize_arg(value: str | bool) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return value


@dataclass(frozen=True, slots=True)
class APIResponse:
    status_code: int
    body: bytes
    url: str

    @property
    def succeeded(self) -> bool:
        return 200 <= self.status_code < 300

    def body_as_text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def body_as_json(self) -> Any:
        try:
            return json.loads(self.body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ProtocolError(
                self.url,
                f"{self.url} returned invalid JSON response",
                status_code=self.status_code,
            ) from exc

    def json_value_as_string(self, field: str) -> str | None:
        try:
            content = json.loads(self.body)
        except (UnicodeDecodeError, json.JSONDecodeError):
            return None
        if not isinstance(content, dict):
            return None
        value = content.get(field)
        return value if isinstance(value, str) else None


class APIConnection(ABC):
    @abstractmethod
    def api_url(self) -> str: ...

    @abstractmethod
    def send_get_request(self, url: str) -> APIResponse: ...

    @abstractmethod
    def send_post_request(self, url: str, args: APIArguments) -> APIResponse: ...

    def close(self) -> None:
        return None

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class APIConnectionFactory(ABC):
    @abstractmethod
    def new_connection(self) -> APIConnection: ...


class HttpxAPIConnection(APIConnection):
    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        self._api_url = settings.api_url.rstrip("/")
        self._client = httpx.Client(
            auth=(settings.api_key or "", ""),
            headers={"User-Agent": settings.user_agent},
            timeout=settings.request_timeout_seconds,
            transport=transport,
        )

    def api_url(self) -> str:
        return self._api_url

    def send_get_request(self, url: str) -> APIResponse:
        return self._send("GET", url)

    def send_post_request(self, url: str, args: APIArguments) -> APIResponse:
        # Scalar args travel as form fields next to the multipart file parts.
        return self._send("POST", url, data=args.form_data(), files=args.multipart_files())

    def close(self) -> None:
        self._client.close()

    def _send(self, method: str, url: str, **kwargs: Any) -> APIResponse:
        logger.debug("api request method=%s url=%s", method, url)
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise TransportError(url, str(exc) or exc.__class__.__name__) from exc
        except (httpx.RequestError, httpx.InvalidURL) as exc:
            # Undecodable bodies, redirect loops, malformed URLs.
            raise ProtocolError(url, f"{url} could not be exchanged: {exc}") from exc
        logger.debug("api response method=%s url=%s status=%s", method, url, response.status_code)
        return APIResponse(status_code=response.status_code, body=response.content, url=url)


class HttpxAPIConnectionFactory(APIConnectionFactory):
    def __init__(self, settings: Settings, *, transport: httpx.BaseTransport | None = None) -> None:
        if not settings.api_key:
            raise ConfigurationError("no API key given; set api_key or RETDEC_API_KEY")
        self._settings = settings
        self._transport = transport

    def new_connection(self) -> APIConnection:
        return HttpxAPIConnection(self._settings, transport=self._transport)


class ResponseVerifyingAPIConnection(APIConnection):
    """Turns every non-success HTTP status of the wrapped connection into a ProtocolError."""

    def __init__(self, inner: APIConnection) -> None:
        self._inner = inner

    def api_url(self) -> str:
        return self._inner.api_url()

    def send_get_request(self, url: str) -> APIResponse:
        return self._verify(self._inner.send_get_request(url))

    def send_post_request(self, url: str, args: APIArguments) -> APIResponse:
        return self._verify(self._inner.send_post_request(url, args))

    def close(self) -> None:
        self._inner.close()

    def _verify(self, response: APIResponse) -> APIResponse:
        if response.succeeded:
            return response
        raise ProtocolError(
            response.url,
            f"{response.url} returned HTTP {response.status_code}: {_error_reason(response)}",
            status_code=response.status_code,
        )


class ResponseVerifyingAPIConnectionFactory(APIConnectionFactory):
    def __init__(self, inner: APIConnectionFactory) -> None:
        self._inner = inner

    def new_connection(self) -> APIConnection:
        return ResponseVerifyingAPIConnection(self._inner.new_connection())


def _error_reason(response: APIResponse) -> str:
    message = response.json_value_as_string("message")
    description = response.json_value_as_string("description")
    if message and description:
        return f"{message} ({description})"
    if message or description:
        return message or description or ""
    return response.body_as_text().strip() or "no details given"
