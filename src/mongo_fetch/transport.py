"""
Transport - the HTTP capability injected into the client.

The client never looks up an ambient HTTP library. Callers pass any async
callable matching :class:`Transport`; :class:`AiohttpTransport` is provided
for applications that already depend on ``aiohttp``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import TracebackType
from typing import TYPE_CHECKING, Any, Mapping, Protocol, runtime_checkable

from .types import CodecError

if TYPE_CHECKING:
    import aiohttp

__all__ = ["AiohttpTransport", "Transport", "TransportResponse"]


@dataclass
class TransportResponse:
    """
    An HTTP response as seen by the executor.

    Attributes:
        status: HTTP status code.
        headers: Response headers.
        text: Response body.
    """

    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    text: str = ""

    @property
    def ok(self) -> bool:
        """Whether the status is a 2xx success."""
        return 200 <= self.status < 300

    @property
    def content_type(self) -> str | None:
        """Get the Content-Type header, matched case-insensitively."""
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return None


@runtime_checkable
class Transport(Protocol):
    """
    Protocol for the injected ``fetch`` capability.

    Implementations send one request and return the response. Timeouts and
    cancellation are the transport's responsibility; ``timeout`` is passed
    through from the client unchanged.
    """

    async def __call__(
        self,
        url: str,
        *,
        method: str,
        headers: Mapping[str, str],
        body: str,
        timeout: float | None = None,
    ) -> TransportResponse: ...


class AiohttpTransport:
    """
    Transport backed by an ``aiohttp.ClientSession``.

    Example:
        async with AiohttpTransport() as fetch:
            client = MongoClient("Cluster0", url, api_key, fetch=fetch)
            ...
    """

    __slots__ = ("_session", "_owns_session")

    def __init__(self, session: aiohttp.ClientSession | None = None) -> None:
        """
        Initialize the transport.

        Args:
            session: Existing session to reuse. When omitted, a session is
                     created on first use and closed by :meth:`close`.
        """
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        import aiohttp

        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def __call__(
        self,
        url: str,
        *,
        method: str,
        headers: Mapping[str, str],
        body: str,
        timeout: float | None = None,
    ) -> TransportResponse:
        import aiohttp

        options: dict[str, Any] = {"data": body.encode("utf-8"), "headers": dict(headers)}
        if timeout is not None:
            options["timeout"] = aiohttp.ClientTimeout(total=timeout)

        async with self._get_session().request(method, url, **options) as resp:
            try:
                text = await resp.text()
            except UnicodeDecodeError as e:
                raise CodecError(f"Response body from {url} is not valid text: {e}") from e
            return TransportResponse(
                status=resp.status,
                headers=dict(resp.headers),
                text=text,
            )

    async def close(self) -> None:
        """Close the session if this transport created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> AiohttpTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()
