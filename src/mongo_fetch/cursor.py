"""
Cursor - lazy query builders for find and aggregate.

A cursor accumulates modifiers (sort, limit, skip, projection) without
touching the network. The data API keeps no server-side cursor, so every
materialization replays the full command.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, AsyncIterator, Generic, Mapping, Protocol, TypeVar

if TYPE_CHECKING:
    from .executor import CommandExecutor
    from .types import Filter, Pipeline, Projection, Sort

T = TypeVar("T", bound=dict[str, Any])

__all__ = ["AggregateCursor", "Cursor", "PullStrategy", "RefetchPullStrategy"]


def normalize_sort(key_or_list: Sort, direction: int = 1) -> dict[str, int]:
    """Convert a PyMongo-style sort specification into a sort document."""
    if isinstance(key_or_list, str):
        return {key_or_list: direction}
    if isinstance(key_or_list, Mapping):
        return dict(key_or_list)
    return {key: value for key, value in key_or_list}


def normalize_projection(projection: Projection) -> dict[str, Any] | None:
    """Convert a list of field names or a mapping into a projection document."""
    if projection is None:
        return None
    if isinstance(projection, Mapping):
        return dict(projection)
    return {field: 1 for field in projection}


class PullStrategy(Protocol):
    """How ``next()`` obtains the document at the cursor's position."""

    async def pull(self, cursor: _BaseCursor[Any]) -> Any: ...


class RefetchPullStrategy:
    """
    Re-run the whole command on every pull and index into the result.

    Results are only consistent between pulls if the underlying data does
    not change in the meantime.
    """

    async def pull(self, cursor: _BaseCursor[Any]) -> Any:
        results = await cursor.to_list()
        if cursor._position >= len(results):
            return None
        doc = results[cursor._position]
        cursor._position += 1
        return doc


class _BaseCursor(Generic[T]):
    """Shared materialization logic for find and aggregate cursors."""

    _action = ""

    __slots__ = (
        "_executor",
        "_database",
        "_collection",
        "_options",
        "_modifiers",
        "_position",
        "_exhausted",
        "_strategy",
    )

    def __init__(
        self,
        executor: CommandExecutor,
        database: str,
        collection: str,
        options: Mapping[str, Any] | None = None,
        strategy: PullStrategy | None = None,
    ) -> None:
        self._executor = executor
        self._database = database
        self._collection = collection
        self._options: dict[str, Any] = dict(options or {})
        self._modifiers: dict[str, Any] = {}
        self._position: int = 0
        self._exhausted: bool = False
        self._strategy: PullStrategy = strategy or RefetchPullStrategy()

    def _query(self) -> dict[str, Any]:
        raise NotImplementedError

    def build_command(self) -> dict[str, Any]:
        """
        Compile the command this cursor would send.

        Performs no I/O, so the result can be inspected or compared freely.

        Returns:
            The command body (without the data source).
        """
        command: dict[str, Any] = {
            "database": self._database,
            "collection": self._collection,
            **self._query(),
        }
        if self._options:
            command["options"] = dict(self._options)
        command.update(self._modifiers)
        return command

    async def to_list(self, length: int | None = None) -> list[T]:
        """
        Execute the command and return the matching documents.

        Each call re-executes the command; results are not memoized.

        Args:
            length: Maximum number of documents to return.
                    If None, returns all documents.

        Returns:
            List of documents.
        """
        response = await self._executor.execute(self._action, self.build_command())
        documents = response.get("documents") if isinstance(response, dict) else None
        results: list[T] = documents if isinstance(documents, list) else []
        if length is not None:
            return results[:length]
        return results

    async def to_array(self) -> list[T]:
        """Alias of :meth:`to_list` matching the Node.js driver name."""
        return await self.to_list()

    async def next(self) -> T | None:
        """
        Get the next document.

        Returns:
            The next document, or None once all documents were consumed.
        """
        doc = await self._strategy.pull(self)
        if doc is None:
            self._exhausted = True
        return doc

    def __aiter__(self) -> AsyncIterator[T]:
        """Return async iterator."""
        return self

    async def __anext__(self) -> T:
        """
        Get the next document.

        Raises:
            StopAsyncIteration: When all documents have been iterated.
        """
        doc = await self.next()
        if doc is None:
            raise StopAsyncIteration
        return doc

    @property
    def alive(self) -> bool:
        """Check if the cursor can still yield documents."""
        return not self._exhausted

    @property
    def position(self) -> int:
        """Number of documents consumed through next()."""
        return self._position

    def rewind(self) -> _BaseCursor[T]:
        """
        Rewind the cursor to the beginning.

        Returns:
            Self for chaining.
        """
        self._position = 0
        self._exhausted = False
        return self


class Cursor(_BaseCursor[T]):
    """
    Lazy cursor over the results of a ``find`` action.

    Example:
        docs = await collection.find({"status": "active"}).sort({"i": -1}).limit(10).to_list()

        async for doc in collection.find({}):
            print(doc)
    """

    _action = "find"

    __slots__ = ("_filter",)

    def __init__(
        self,
        executor: CommandExecutor,
        database: str,
        collection: str,
        filter: Filter | None = None,
        projection: Projection = None,
        options: Mapping[str, Any] | None = None,
        strategy: PullStrategy | None = None,
    ) -> None:
        """
        Initialize a cursor.

        Args:
            executor: Executor used to run the command.
            database: Database name.
            collection: Collection name.
            filter: Query filter.
            projection: Fields to include/exclude.
            options: Extra options sent verbatim with the command.
            strategy: How next() pulls documents.
        """
        super().__init__(executor, database, collection, options, strategy)
        self._filter: dict[str, Any] = dict(filter or {})
        if projection is not None:
            self.project(projection)

    def _query(self) -> dict[str, Any]:
        return {"filter": self._filter}

    def sort(self, key_or_list: Sort, direction: int = 1) -> Cursor[T]:
        """
        Sort the results.

        Args:
            key_or_list: Sort document, field name, or list of
                         (field, direction) tuples.
            direction: Sort direction (1 for ascending, -1 for descending).
                       Only used if key_or_list is a string.

        Returns:
            Self for chaining.
        """
        self._modifiers["sort"] = normalize_sort(key_or_list, direction)
        return self

    def limit(self, limit: int) -> Cursor[T]:
        """
        Limit the number of results.

        Returns:
            Self for chaining.
        """
        self._modifiers["limit"] = limit
        return self

    def skip(self, skip: int) -> Cursor[T]:
        """
        Skip the first N results.

        Returns:
            Self for chaining.
        """
        self._modifiers["skip"] = skip
        return self

    def project(self, projection: Projection) -> Cursor[T]:
        """
        Set field projection.

        Args:
            projection: Projection document or list of field names.

        Returns:
            Self for chaining.
        """
        normalized = normalize_projection(projection)
        if normalized is None:
            self._modifiers.pop("projection", None)
        else:
            self._modifiers["projection"] = normalized
        return self

    def clone(self, strategy: PullStrategy | None = None) -> Cursor[T]:
        """
        Clone this cursor.

        Args:
            strategy: Pull strategy for the clone. Defaults to a shallow
                      copy of this cursor's strategy.

        Returns:
            A new unconsumed cursor with the same query and modifiers.
        """
        cursor = Cursor[T](
            self._executor,
            self._database,
            self._collection,
            self._filter,
            options=self._options,
            strategy=strategy if strategy is not None else copy.copy(self._strategy),
        )
        cursor._modifiers = dict(self._modifiers)
        return cursor

    def __repr__(self) -> str:
        return f"Cursor({self._database}.{self._collection}, {self.build_command()!r})"


class AggregateCursor(_BaseCursor[T]):
    """
    Lazy cursor over the results of an ``aggregate`` action.

    Example:
        docs = await collection.aggregate([{"$match": {"i": 2}}]).to_list()
    """

    _action = "aggregate"

    __slots__ = ("_pipeline",)

    def __init__(
        self,
        executor: CommandExecutor,
        database: str,
        collection: str,
        pipeline: Pipeline,
        options: Mapping[str, Any] | None = None,
        strategy: PullStrategy | None = None,
    ) -> None:
        super().__init__(executor, database, collection, options, strategy)
        self._pipeline: list[dict[str, Any]] = [dict(stage) for stage in pipeline]

    def _query(self) -> dict[str, Any]:
        return {"pipeline": self._pipeline}

    def __repr__(self) -> str:
        return f"AggregateCursor({self._database}.{self._collection}, {self._pipeline!r})"
