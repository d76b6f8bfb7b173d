"""
Database - data API database handle.

Provides a PyMongo-compatible Database interface. Collections can be
accessed using either attribute access or subscript notation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, TypeVar

from .collection import Collection

if TYPE_CHECKING:
    from .client import MongoClient
    from .executor import CommandExecutor
    from .types import Filter

T = TypeVar("T", bound=dict[str, Any])

__all__ = ["Database"]


class Database:
    """
    Handle for a database behind the data API.

    Handles are created on demand and hold no state beyond their name,
    so creating them never touches the network.

    Example:
        db = client["myapp"]

        # Access collections
        users = db.users
        orders = db["orders"]

        # List collections
        names = await db.list_collection_names()
    """

    __slots__ = ("_executor", "_client", "_name")

    def __init__(
        self,
        executor: CommandExecutor,
        client: MongoClient,
        name: str,
    ) -> None:
        """
        Initialize a database.

        Args:
            executor: Executor shared by all handles of the client.
            client: Parent MongoClient instance.
            name: Database name.
        """
        self._executor = executor
        self._client = client
        self._name = name

    @property
    def name(self) -> str:
        """Get the database name."""
        return self._name

    @property
    def client(self) -> MongoClient:
        """Get the parent client."""
        return self._client

    def __getitem__(self, name: str) -> Collection[Any]:
        """
        Get a collection by name using subscript notation.

        Example:
            users = db["users"]
        """
        return Collection(self._executor, self, name)

    def __getattr__(self, name: str) -> Collection[Any]:
        """
        Get a collection by name using attribute access.

        Example:
            users = db.users
        """
        if name.startswith("_"):
            raise AttributeError(f"'{type(self).__name__}' has no attribute '{name}'")

        return self[name]

    def get_collection(
        self,
        name: str,
        document_class: type[T] | None = None,
    ) -> Collection[T]:
        """
        Get a typed collection.

        Args:
            name: Collection name.
            document_class: Optional document type for type hints.

        Returns:
            Typed Collection instance.

        Example:
            class User(TypedDict):
                _id: str
                name: str

            users = db.get_collection("users", User)
        """
        return Collection(self._executor, self, name)  # type: ignore[return-value]

    async def list_collections(self, filter: Filter | None = None) -> list[dict[str, Any]]:
        """
        List the collections in the database with metadata.

        Args:
            filter: Optional filter for collections.

        Returns:
            List of collection info dicts.
        """
        command: dict[str, Any] = {"database": self._name}
        if filter:
            command["filter"] = dict(filter)

        response = await self._executor.execute("listCollections", command)
        collections = response.get("collections") if isinstance(response, dict) else None
        return collections if isinstance(collections, list) else []

    async def list_collection_names(self, filter: Filter | None = None) -> list[str]:
        """
        List all collection names in the database.

        Args:
            filter: Optional filter for collection names.

        Returns:
            List of collection names.
        """
        collections = await self.list_collections(filter)
        return [info["name"] for info in collections if isinstance(info, dict) and "name" in info]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Database):
            return NotImplemented
        return self._client is other._client and self._name == other._name

    def __hash__(self) -> int:
        return hash((id(self._client), self._name))

    def __repr__(self) -> str:
        return f"Database({self._name!r})"
