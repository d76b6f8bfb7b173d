"""
Collection - data API collection operations.

Provides a PyMongo-compatible Collection interface whose async CRUD
operations each map to exactly one data API action.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, Mapping, TypeVar

from .cursor import AggregateCursor, Cursor, normalize_projection
from .types import (
    CodecError,
    DeleteResult,
    InsertManyResult,
    InsertOneResult,
    UpdateResult,
)

if TYPE_CHECKING:
    from .database import Database
    from .executor import CommandExecutor
    from .types import Filter, Pipeline, Projection, Update

T = TypeVar("T", bound=dict[str, Any])

__all__ = ["Collection", "DEFAULT_COUNT_FILTER"]

# Existence filter on _id lets the endpoint count from the _id index.
DEFAULT_COUNT_FILTER: dict[str, Any] = {"_id": {"$exists": True}}


def _acknowledge(response: Any) -> dict[str, Any]:
    """Copy a mutation response and mark it acknowledged."""
    result = dict(response) if isinstance(response, Mapping) else {}
    result["acknowledged"] = True
    return result


def _count(response: Any) -> int:
    if not isinstance(response, Mapping) or "count" not in response:
        raise CodecError(f"Count response has no count field: {response!r}")
    return response["count"]


class Collection(Generic[T]):
    """
    Data API collection with async CRUD operations.

    Example:
        users = db["users"]

        # Insert
        result = await users.insert_one({"name": "Alice"})
        print(result.inserted_id)

        # Find
        user = await users.find_one({"name": "Alice"})
        async for user in users.find({"status": "active"}):
            print(user)

        # Update
        await users.update_one({"name": "Alice"}, {"$set": {"status": "vip"}})

        # Delete
        await users.delete_one({"name": "Alice"})
    """

    __slots__ = ("_executor", "_database", "_name", "_full_name")

    def __init__(
        self,
        executor: CommandExecutor,
        database: Database,
        name: str,
    ) -> None:
        """
        Initialize a collection.

        Args:
            executor: Executor shared by all handles of the client.
            database: Parent database instance.
            name: Collection name.
        """
        self._executor = executor
        self._database = database
        self._name = name
        self._full_name = f"{database.name}.{name}"

    @property
    def name(self) -> str:
        """Get the collection name."""
        return self._name

    @property
    def full_name(self) -> str:
        """Get the full collection name (database.collection)."""
        return self._full_name

    @property
    def database(self) -> Database:
        """Get the parent database."""
        return self._database

    def _command(self, **fields: Any) -> dict[str, Any]:
        command: dict[str, Any] = {
            "database": self._database.name,
            "collection": self._name,
        }
        command.update(fields)
        return command

    async def insert_one(self, document: T) -> InsertOneResult:
        """
        Insert a single document.

        The endpoint assigns an ObjectId when the document has no ``_id``.

        Args:
            document: The document to insert.

        Returns:
            InsertOneResult with the inserted ID.

        Raises:
            DuplicateKeyError: If a document with the same _id exists.
            RemoteCommandError: If the insert fails.
        """
        response = await self._executor.execute(
            "insertOne",
            self._command(document=dict(document)),
        )
        raw = _acknowledge(response)
        return InsertOneResult(inserted_id=raw.get("insertedId"), raw_result=raw)

    async def insert_many(self, documents: list[T]) -> InsertManyResult:
        """
        Insert multiple documents.

        Args:
            documents: List of documents to insert.

        Returns:
            InsertManyResult with the inserted IDs.

        Raises:
            RemoteCommandError: If the insert fails.
        """
        response = await self._executor.execute(
            "insertMany",
            self._command(documents=[dict(doc) for doc in documents]),
        )
        raw = _acknowledge(response)
        return InsertManyResult(inserted_ids=list(raw.get("insertedIds") or []), raw_result=raw)

    async def find_one(
        self,
        filter: Filter | None = None,
        projection: Projection = None,
        options: Mapping[str, Any] | None = None,
    ) -> T | None:
        """
        Find a single document.

        Args:
            filter: Query filter.
            projection: Fields to include/exclude.
            options: Extra options sent verbatim with the command.

        Returns:
            The matching document, or None if not found.
        """
        fields: dict[str, Any] = {"filter": dict(filter or {})}
        normalized = normalize_projection(projection)
        if normalized is not None:
            fields["projection"] = normalized
        if options:
            fields["options"] = dict(options)

        response = await self._executor.execute("findOne", self._command(**fields))
        if not isinstance(response, dict):
            return None
        return response.get("document")  # type: ignore[return-value]

    def find(
        self,
        filter: Filter | None = None,
        projection: Projection = None,
        options: Mapping[str, Any] | None = None,
    ) -> Cursor[T]:
        """
        Find documents matching the filter.

        No request is made until the cursor is materialized.

        Args:
            filter: Query filter.
            projection: Fields to include/exclude.
            options: Extra options sent verbatim with the command.

        Returns:
            Cursor for iterating over results.

        Example:
            docs = await collection.find({}).sort("name").limit(10).to_list()
        """
        return Cursor[T](
            self._executor,
            self._database.name,
            self._name,
            filter,
            projection,
            options,
        )

    def aggregate(
        self,
        pipeline: Pipeline,
        options: Mapping[str, Any] | None = None,
    ) -> AggregateCursor[T]:
        """
        Run an aggregation pipeline.

        Args:
            pipeline: List of aggregation stages.
            options: Extra options sent verbatim with the command.

        Returns:
            AggregateCursor for the pipeline results.
        """
        return AggregateCursor[T](
            self._executor,
            self._database.name,
            self._name,
            pipeline,
            options,
        )

    async def _update(
        self,
        action: str,
        filter: Filter,
        update: Update,
        upsert: bool,
    ) -> UpdateResult:
        fields: dict[str, Any] = {"filter": dict(filter), "update": dict(update)}
        if upsert:
            fields["upsert"] = True

        response = await self._executor.execute(action, self._command(**fields))
        raw = _acknowledge(response)
        return UpdateResult(
            matched_count=raw.get("matchedCount", 0),
            modified_count=raw.get("modifiedCount", 0),
            upserted_id=raw.get("upsertedId"),
            raw_result=raw,
        )

    async def update_one(
        self,
        filter: Filter,
        update: Update,
        upsert: bool = False,
    ) -> UpdateResult:
        """
        Update a single document.

        Args:
            filter: Query filter to match the document.
            update: Update operations ($set, $unset, $inc, etc.).
            upsert: If True, insert if no document matches.

        Returns:
            UpdateResult with match/modify counts.
        """
        return await self._update("updateOne", filter, update, upsert)

    async def update_many(
        self,
        filter: Filter,
        update: Update,
        upsert: bool = False,
    ) -> UpdateResult:
        """
        Update multiple documents.

        Args:
            filter: Query filter to match documents.
            update: Update operations ($set, $unset, $inc, etc.).
            upsert: If True, insert if no document matches.

        Returns:
            UpdateResult with match/modify counts.
        """
        return await self._update("updateMany", filter, update, upsert)

    async def _delete(self, action: str, filter: Filter) -> DeleteResult:
        response = await self._executor.execute(action, self._command(filter=dict(filter)))
        raw = _acknowledge(response)
        return DeleteResult(deleted_count=raw.get("deletedCount", 0), raw_result=raw)

    async def delete_one(self, filter: Filter) -> DeleteResult:
        """
        Delete a single document.

        Args:
            filter: Query filter to match the document.

        Returns:
            DeleteResult with the deleted count.
        """
        return await self._delete("deleteOne", filter)

    async def delete_many(self, filter: Filter) -> DeleteResult:
        """
        Delete multiple documents.

        Args:
            filter: Query filter to match documents.

        Returns:
            DeleteResult with the deleted count.
        """
        return await self._delete("deleteMany", filter)

    async def count_documents(self, filter: Filter | None = None) -> int:
        """
        Count documents matching the filter.

        Args:
            filter: Query filter. Defaults to ``{"_id": {"$exists": True}}``.

        Returns:
            Number of matching documents.

        Raises:
            CodecError: If the response carries no count.
        """
        if filter is None:
            filter = DEFAULT_COUNT_FILTER
        response = await self._executor.execute(
            "countDocuments",
            self._command(filter=dict(filter)),
        )
        return _count(response)

    async def estimated_document_count(self) -> int:
        """
        Get an estimated count of documents in the collection.

        Returns:
            Estimated number of documents.

        Raises:
            CodecError: If the response carries no count.
        """
        response = await self._executor.execute("estimatedDocumentCount", self._command())
        return _count(response)

    def __repr__(self) -> str:
        return f"Collection({self._full_name!r})"
