"""
Type definitions for mongo-fetch.

Provides result types that mirror PyMongo's result objects for
insert, update, and delete operations, plus the exception hierarchy
raised by the client.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence


@dataclass
class InsertOneResult:
    """
    Result of an insert_one operation.

    Attributes:
        inserted_id: The _id of the inserted document, as assigned by the endpoint.
        acknowledged: Always True once the endpoint answered successfully.
        raw_result: The decoded response body.
    """

    inserted_id: Any
    acknowledged: bool = True
    raw_result: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass
class InsertManyResult:
    """
    Result of an insert_many operation.

    Attributes:
        inserted_ids: List of _ids of the inserted documents.
        acknowledged: Always True once the endpoint answered successfully.
        raw_result: The decoded response body.
    """

    inserted_ids: list[Any] = field(default_factory=list)
    acknowledged: bool = True
    raw_result: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass
class UpdateResult:
    """
    Result of an update_one or update_many operation.

    Attributes:
        matched_count: Number of documents matched.
        modified_count: Number of documents modified.
        upserted_id: The _id of the upserted document (if any).
        acknowledged: Always True once the endpoint answered successfully.
        raw_result: The decoded response body.
    """

    matched_count: int = 0
    modified_count: int = 0
    upserted_id: Any = None
    acknowledged: bool = True
    raw_result: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass
class DeleteResult:
    """
    Result of a delete_one or delete_many operation.

    Attributes:
        deleted_count: Number of documents deleted.
        acknowledged: Always True once the endpoint answered successfully.
        raw_result: The decoded response body.
    """

    deleted_count: int = 0
    acknowledged: bool = True
    raw_result: dict[str, Any] = field(default_factory=dict, repr=False)


# Type aliases for clarity
Document = Mapping[str, Any]
MutableDocument = dict[str, Any]
Filter = Mapping[str, Any]
Update = Mapping[str, Any]
Pipeline = Sequence[Mapping[str, Any]]
Projection = Mapping[str, Any] | Sequence[str] | None
Sort = Mapping[str, int] | Sequence[tuple[str, int]] | str


class MongoError(Exception):
    """Base exception for mongo-fetch operations."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ConfigurationError(MongoError):
    """Error raised when the client is missing required configuration."""

    pass


class CodecError(MongoError):
    """Error raised when a command cannot be encoded or a response decoded."""

    pass


class InvalidTtlUnit(MongoError, ValueError):
    """Error raised when a TTL string uses an unknown unit."""

    def __init__(self, unit: str) -> None:
        super().__init__(f"Invalid TTL unit: {unit}")
        self.unit = unit


class RemoteCommandError(MongoError):
    """
    Error raised when the data API answers with a non-success status.

    Attributes:
        code: Leading token of the server message (e.g. "409").
        message: Server message without the code token.
        details: The full error text as sent by the server.
        status: HTTP status code of the response.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message, code)
        self.details = details if details is not None else message
        self.status = status

    def __str__(self) -> str:
        return self.details


class DuplicateKeyError(RemoteCommandError):
    """Error raised when inserting a document with a duplicate key."""

    pass


# PyMongo name for server-side command failures.
OperationFailure = RemoteCommandError
