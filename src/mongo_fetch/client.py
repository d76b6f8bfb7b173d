"""
MongoClient - data API client.

Provides a PyMongo-compatible MongoClient interface whose async operations
are sent as commands to a MongoDB data API endpoint over HTTP.
"""

from __future__ import annotations

import os
from types import TracebackType
from typing import Any

from .cache import CachingExecutor
from .codec import EJSON, ENCODINGS
from .database import Database
from .executor import CommandExecutor
from .transport import Transport
from .types import ConfigurationError

__all__ = ["MongoClient"]


class MongoClient:
    """
    Client for a MongoDB data API endpoint.

    Databases can be accessed using either attribute access or subscript
    notation. There is no connection to manage: every operation is a
    single HTTP request made through the injected ``fetch`` transport.

    Example:
        client = MongoClient(
            "Cluster0",
            "https://data.mongodb-api.com/app/data-abcde/endpoint/data",
            api_key,
            fetch=AiohttpTransport(),
        )

        # Access databases
        db = client["myapp"]
        db = client.myapp

        # List databases
        names = await client.list_database_names()

        # Or use as async context manager
        async with MongoClient("Cluster0", url, api_key, fetch=fetch) as client:
            db = client["myapp"]
            ...
    """

    __slots__ = ("_data_source", "_url", "_api_key", "_executor")

    def __init__(
        self,
        data_source: str,
        url: str | None = None,
        api_key: str | None = None,
        *,
        fetch: Transport | None = None,
        request_encoding: str = EJSON,
        cache_ttl: str | int | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            data_source: Data source (cluster) name sent with every command.
            url: Base URL of the data API. If not provided, uses the
                 MONGO_FETCH_URL environment variable.
            api_key: API key. If not provided, uses the MONGO_FETCH_API_KEY
                     environment variable.
            fetch: Transport used for every request.
            request_encoding: ``"ejson"`` (default) or ``"json"``.
            cache_ttl: Enables the read cache with this TTL (e.g. ``"5m"``).
            timeout: Default timeout handed to the transport.

        Raises:
            ConfigurationError: If url, api_key or fetch is missing, or the
                                request encoding is unknown.
            InvalidTtlUnit: If cache_ttl is malformed.
        """
        self._data_source = data_source
        self._url = url or os.environ.get("MONGO_FETCH_URL")
        self._api_key = api_key or os.environ.get("MONGO_FETCH_API_KEY")

        if not self._url:
            raise ConfigurationError("A data API url is required (or set MONGO_FETCH_URL).")
        if not self._api_key:
            raise ConfigurationError("An api_key is required (or set MONGO_FETCH_API_KEY).")
        if fetch is None:
            raise ConfigurationError(
                "A fetch transport is required, e.g. fetch=AiohttpTransport() "
                "(install with: pip install mongo-fetch[aiohttp])"
            )
        if request_encoding not in ENCODINGS:
            raise ConfigurationError(
                f"Unknown request_encoding {request_encoding!r}; expected one of {sorted(ENCODINGS)}"
            )

        executor: Any = CommandExecutor(
            data_source,
            self._url,
            self._api_key,
            fetch,
            encoding=request_encoding,
            timeout=timeout,
        )
        if cache_ttl is not None:
            executor = CachingExecutor(executor, cache_ttl)
        self._executor = executor

    @property
    def data_source(self) -> str:
        """Get the data source name."""
        return self._data_source

    @property
    def url(self) -> str:
        """Get the data API base URL."""
        return self._url  # type: ignore[return-value]

    @property
    def executor(self) -> CommandExecutor | CachingExecutor:
        """Get the executor shared by all handles."""
        return self._executor

    async def connect(self) -> MongoClient:
        """
        No-op kept for driver compatibility.

        Returns:
            Self for chaining.
        """
        return self

    async def close(self) -> None:
        """No-op kept for driver compatibility; the transport is owned by the caller."""

    def __getitem__(self, name: str) -> Database:
        """
        Get a database by name using subscript notation.

        Example:
            db = client["myapp"]
        """
        return Database(self._executor, self, name)

    def __getattr__(self, name: str) -> Database:
        """
        Get a database by name using attribute access.

        Example:
            db = client.myapp
        """
        if name.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{name}'")

        return self[name]

    def get_database(self, name: str) -> Database:
        """
        Get a database by name.

        Args:
            name: Database name.

        Returns:
            Database instance.
        """
        return self[name]

    async def list_databases(self) -> list[dict[str, Any]]:
        """
        List all databases with metadata.

        Returns:
            List of database info dicts.
        """
        response = await self._executor.execute("listDatabases", {})
        databases = response.get("databases") if isinstance(response, dict) else None
        return databases if isinstance(databases, list) else []

    async def list_database_names(self) -> list[str]:
        """
        List all database names.

        Returns:
            List of database names.
        """
        databases = await self.list_databases()
        return [info["name"] for info in databases if isinstance(info, dict) and "name" in info]

    async def __aenter__(self) -> MongoClient:
        """Async context manager entry."""
        return await self.connect()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    def __repr__(self) -> str:
        return f"MongoClient({self._data_source!r}, {self._url!r})"
