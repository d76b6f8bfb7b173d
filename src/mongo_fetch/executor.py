"""
CommandExecutor - the single point of network I/O.

Turns an ``(action, command)`` pair into one POST against the data API,
maps failures to driver-shaped errors and decodes successful responses.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from .codec import EJSON, decode_response, encode_command
from .transport import Transport
from .types import DuplicateKeyError, RemoteCommandError

__all__ = ["CommandExecutor", "parse_error_message"]

logger = logging.getLogger(__name__)

_DUPLICATE_KEY_CODES = frozenset({"E11000", "11000"})


def parse_error_message(text: str) -> tuple[str, str]:
    """
    Split a server error message into ``(code, message)``.

    The data API prefixes its messages with a machine-readable code
    followed by a space, e.g. ``"409 duplicate key"``. A message without
    a space is used as both code and message.
    """
    code, _, message = text.partition(" ")
    return code, message or text


class CommandExecutor:
    """
    Executes data API actions.

    Every call to :meth:`execute` makes exactly one transport call. There
    are no retries and no caching here; see :class:`mongo_fetch.cache.CachingExecutor`.

    Example:
        executor = CommandExecutor("Cluster0", "https://data.example", "key", fetch)
        body = await executor.execute("findOne", {"database": "db", "collection": "c"})
    """

    __slots__ = ("_data_source", "_url", "_api_key", "_fetch", "_encoding", "_timeout")

    def __init__(
        self,
        data_source: str,
        url: str,
        api_key: str,
        fetch: Transport,
        *,
        encoding: str = EJSON,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the executor.

        Args:
            data_source: Data source (cluster) name injected into every command.
            url: Base URL of the data API.
            api_key: API key sent in the ``api-key`` header.
            fetch: Transport used for the request.
            encoding: Request body encoding, ``"ejson"`` or ``"json"``.
            timeout: Default timeout handed to the transport.
        """
        self._data_source = data_source
        self._url = url.rstrip("/")
        self._api_key = api_key
        self._fetch = fetch
        self._encoding = encoding
        self._timeout = timeout

    @property
    def data_source(self) -> str:
        """Get the data source name."""
        return self._data_source

    @property
    def url(self) -> str:
        """Get the base URL."""
        return self._url

    @property
    def encoding(self) -> str:
        """Get the request encoding policy."""
        return self._encoding

    def action_url(self, action: str) -> str:
        """Build the endpoint URL for an action."""
        return f"{self._url}/v1/action/{action}"

    def prepare(self, command: Mapping[str, Any]) -> dict[str, Any]:
        """Return a copy of the command with the data source injected."""
        body = dict(command)
        body["dataSource"] = self._data_source
        return body

    @property
    def headers(self) -> dict[str, str]:
        """Request headers for every action."""
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "api-key": self._api_key,
        }

    async def execute(
        self,
        action: str,
        command: Mapping[str, Any],
        *,
        timeout: float | None = None,
    ) -> Any:
        """
        Run an action against the data API.

        Args:
            action: Action name, e.g. ``"find"`` or ``"insertOne"``.
            command: Command body without the data source.
            timeout: Overrides the default transport timeout for this call.

        Returns:
            The decoded response body.

        Raises:
            RemoteCommandError: If the endpoint answers with a non-2xx status.
            CodecError: If the command cannot be encoded or the response decoded.
        """
        body = encode_command(self.prepare(command), self._encoding)
        url = self.action_url(action)

        logger.debug(f"Dispatching {action} to {url}")
        response = await self._fetch(
            url,
            method="POST",
            headers=self.headers,
            body=body,
            timeout=timeout if timeout is not None else self._timeout,
        )

        if not response.ok:
            raise self._error_from_response(action, response.status, response.text)

        return decode_response(response.content_type, response.text)

    def _error_from_response(self, action: str, status: int, text: str) -> RemoteCommandError:
        """Map a failed response to a RemoteCommandError."""
        details: str | None = None
        try:
            payload = json.loads(text) if text else None
        except ValueError:
            payload = None
        if isinstance(payload, dict) and isinstance(payload.get("error"), str):
            details = payload["error"]

        if details is None:
            code, message, details = str(status), text or f"HTTP {status}", text or f"HTTP {status}"
        else:
            code, message = parse_error_message(details)

        logger.warning(f"Data API {action} failed with status {status}: {details}")

        error_cls = RemoteCommandError
        if code in _DUPLICATE_KEY_CODES or "duplicate key" in details.lower():
            error_cls = DuplicateKeyError
        return error_cls(message, code=code, details=details, status=status)
