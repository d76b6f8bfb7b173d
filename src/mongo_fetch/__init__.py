"""
mongo-fetch - PyMongo-shaped async client for the MongoDB data API.

This package lets driver-style code run against a stateless HTTP data API:
- Full CRUD operations (insert, find, update, delete, count)
- Async/await native API
- Lazy cursors with chaining (sort, limit, skip, project)
- Aggregation pipelines
- Extended JSON decoding (ObjectId, datetime, Binary, Int64)

Example usage:
    from mongo_fetch import AiohttpTransport, MongoClient

    async def main():
        async with AiohttpTransport() as fetch:
            client = MongoClient(
                "Cluster0",
                "https://data.mongodb-api.com/app/data-abcde/endpoint/data",
                "my-api-key",
                fetch=fetch,
            )

            users = client["myapp"]["users"]

            # Insert documents
            result = await users.insert_one({"name": "Alice", "email": "alice@example.com"})
            print(result.inserted_id)

            # Find documents
            user = await users.find_one({"email": "alice@example.com"})

            # Iterate over results
            async for user in users.find({"status": "active"}).limit(10):
                print(user["name"])

            # Update and delete
            await users.update_one({"email": "alice@example.com"}, {"$set": {"status": "vip"}})
            await users.delete_one({"email": "alice@example.com"})

    import asyncio
    asyncio.run(main())
"""

from __future__ import annotations

__version__ = "0.1.0"

from .cache import CachingExecutor, response_cache
from .client import MongoClient
from .collection import Collection
from .cursor import AggregateCursor, Cursor, PullStrategy, RefetchPullStrategy
from .database import Database
from .executor import CommandExecutor
from .transport import AiohttpTransport, Transport, TransportResponse
from .ttl import parse_ttl
from .types import (
    CodecError,
    ConfigurationError,
    DeleteResult,
    DuplicateKeyError,
    InsertManyResult,
    InsertOneResult,
    InvalidTtlUnit,
    MongoError,
    OperationFailure,
    RemoteCommandError,
    UpdateResult,
)

__all__ = [
    # Main classes
    "MongoClient",
    "Database",
    "Collection",
    "Cursor",
    "AggregateCursor",
    # Plumbing
    "CommandExecutor",
    "CachingExecutor",
    "response_cache",
    "PullStrategy",
    "RefetchPullStrategy",
    "Transport",
    "TransportResponse",
    "AiohttpTransport",
    "parse_ttl",
    # Result types
    "InsertOneResult",
    "InsertManyResult",
    "UpdateResult",
    "DeleteResult",
    # Exceptions
    "MongoError",
    "ConfigurationError",
    "CodecError",
    "InvalidTtlUnit",
    "RemoteCommandError",
    "OperationFailure",
    "DuplicateKeyError",
    # Version
    "__version__",
]
