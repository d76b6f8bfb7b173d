"""
Pytest fixtures for mongo-fetch tests.

Provides an in-memory fake of the data API, injected as the client's
transport, so tests run without network connections and can inspect
every request the client sends.
"""

from __future__ import annotations

import json
from typing import Any

import pytest
from bson import ObjectId, json_util
from bson.json_util import RELAXED_JSON_OPTIONS

from mongo_fetch import TransportResponse


class FakeDataApi:
    """
    Fake data API endpoint implementing the action vocabulary.

    Calling the instance behaves like a fetch transport. Requests are
    recorded in ``requests`` with the decoded command for assertions.
    """

    def __init__(self, content_type: str = "application/ejson") -> None:
        self._data: dict[str, dict[str, list[dict[str, Any]]]] = {}
        self.content_type = content_type
        self.requests: list[dict[str, Any]] = []
        self.next_error: tuple[int, str] | None = None

    # -- transport -----------------------------------------------------

    async def __call__(
        self,
        url: str,
        *,
        method: str,
        headers: dict[str, str],
        body: str,
        timeout: float | None = None,
    ) -> TransportResponse:
        command = json_util.loads(body)
        action = url.rsplit("/", 1)[-1]
        self.requests.append(
            {
                "url": url,
                "method": method,
                "headers": dict(headers),
                "body": body,
                "command": command,
                "action": action,
                "timeout": timeout,
            }
        )

        if self.next_error is not None:
            status, text = self.next_error
            self.next_error = None
            return TransportResponse(status, {"Content-Type": "application/json"}, text)

        handler = getattr(self, f"_action_{action}", None)
        if handler is None:
            return self._error(404, f"404 unknown action {action}")
        try:
            result = handler(command)
        except _ActionError as e:
            return self._error(e.status, e.text)

        return TransportResponse(
            200,
            {"Content-Type": self.content_type},
            json_util.dumps(result, json_options=RELAXED_JSON_OPTIONS),
        )

    def _error(self, status: int, text: str) -> TransportResponse:
        return TransportResponse(
            status,
            {"Content-Type": "application/json"},
            json.dumps({"error": text}),
        )

    @property
    def last(self) -> dict[str, Any]:
        """Most recent request."""
        return self.requests[-1]

    # -- storage -------------------------------------------------------

    def seed(self, database: str, collection: str, documents: list[dict[str, Any]]) -> None:
        self._get_collection_data(database, collection).extend(dict(d) for d in documents)

    def _get_collection_data(self, database: str, collection: str) -> list[dict[str, Any]]:
        """Get or create collection data."""
        if database not in self._data:
            self._data[database] = {}
        if collection not in self._data[database]:
            self._data[database][collection] = []
        return self._data[database][collection]

    def _collection(self, command: dict[str, Any]) -> list[dict[str, Any]]:
        return self._get_collection_data(command["database"], command["collection"])

    # -- actions -------------------------------------------------------

    def _action_insertOne(self, command: dict[str, Any]) -> dict[str, Any]:
        data = self._collection(command)
        document = dict(command["document"])
        document.setdefault("_id", ObjectId())
        if any(doc.get("_id") == document["_id"] for doc in data):
            raise _ActionError(409, "409 duplicate key")
        data.append(document)
        return {"insertedId": document["_id"]}

    def _action_insertMany(self, command: dict[str, Any]) -> dict[str, Any]:
        data = self._collection(command)
        inserted_ids = []
        for doc in command["documents"]:
            document = dict(doc)
            document.setdefault("_id", ObjectId())
            data.append(document)
            inserted_ids.append(document["_id"])
        return {"insertedIds": inserted_ids}

    def _action_findOne(self, command: dict[str, Any]) -> dict[str, Any]:
        for doc in self._collection(command):
            if self._matches(doc, command.get("filter") or {}):
                return {"document": self._project(doc, command.get("projection"))}
        return {"document": None}

    def _action_find(self, command: dict[str, Any]) -> dict[str, Any]:
        results = [d for d in self._collection(command) if self._matches(d, command.get("filter") or {})]

        sort = command.get("sort")
        if sort:
            for field, direction in reversed(list(sort.items())):
                results.sort(key=lambda x: x.get(field, ""), reverse=(direction == -1))

        skip = command.get("skip", 0)
        if skip:
            results = results[skip:]

        limit = command.get("limit", 0)
        if limit:
            results = results[:limit]

        projection = command.get("projection")
        return {"documents": [self._project(doc, projection) for doc in results]}

    def _action_aggregate(self, command: dict[str, Any]) -> dict[str, Any]:
        """Supports $match, $limit and $count stages."""
        results = list(self._collection(command))
        for stage in command["pipeline"]:
            if "$match" in stage:
                results = [d for d in results if self._matches(d, stage["$match"])]
            elif "$limit" in stage:
                results = results[: stage["$limit"]]
            elif "$count" in stage:
                results = [{stage["$count"]: len(results)}]
        return {"documents": results}

    def _action_updateOne(self, command: dict[str, Any]) -> dict[str, Any]:
        return self._update(command, many=False)

    def _action_updateMany(self, command: dict[str, Any]) -> dict[str, Any]:
        return self._update(command, many=True)

    def _update(self, command: dict[str, Any], many: bool) -> dict[str, Any]:
        data = self._collection(command)
        matched = 0
        modified = 0
        for doc in data:
            if self._matches(doc, command["filter"]):
                matched += 1
                if self._apply_update(doc, command["update"]):
                    modified += 1
                if not many:
                    break

        result: dict[str, Any] = {"matchedCount": matched, "modifiedCount": modified}
        if matched == 0 and command.get("upsert"):
            new_doc = {k: v for k, v in command["filter"].items() if not k.startswith("$")}
            self._apply_update(new_doc, command["update"])
            new_doc.setdefault("_id", ObjectId())
            data.append(new_doc)
            result["upsertedId"] = new_doc["_id"]
        return result

    def _action_deleteOne(self, command: dict[str, Any]) -> dict[str, Any]:
        data = self._collection(command)
        for i, doc in enumerate(data):
            if self._matches(doc, command["filter"]):
                del data[i]
                return {"deletedCount": 1}
        return {"deletedCount": 0}

    def _action_deleteMany(self, command: dict[str, Any]) -> dict[str, Any]:
        data = self._collection(command)
        kept = [doc for doc in data if not self._matches(doc, command["filter"])]
        deleted = len(data) - len(kept)
        data[:] = kept
        return {"deletedCount": deleted}

    def _action_countDocuments(self, command: dict[str, Any]) -> dict[str, Any]:
        data = self._collection(command)
        return {"count": sum(1 for doc in data if self._matches(doc, command.get("filter") or {}))}

    def _action_estimatedDocumentCount(self, command: dict[str, Any]) -> dict[str, Any]:
        return {"count": len(self._collection(command))}

    def _action_listCollections(self, command: dict[str, Any]) -> dict[str, Any]:
        names = self._data.get(command["database"], {})
        collections = [{"name": name, "type": "collection"} for name in names]
        if command.get("filter"):
            collections = [c for c in collections if self._matches(c, command["filter"])]
        return {"collections": collections}

    def _action_listDatabases(self, command: dict[str, Any]) -> dict[str, Any]:
        return {"databases": [{"name": name, "empty": not any(c for c in colls.values())} for name, colls in self._data.items()]}

    # -- query helpers -------------------------------------------------

    def _matches(self, doc: dict[str, Any], filter: dict[str, Any]) -> bool:
        """Check if document matches filter."""
        for key, value in filter.items():
            if key == "$and":
                if not all(self._matches(doc, f) for f in value):
                    return False
                continue
            if key == "$or":
                if not any(self._matches(doc, f) for f in value):
                    return False
                continue

            doc_value = doc.get(key)
            if isinstance(value, dict) and value and all(k.startswith("$") for k in value):
                for op, op_value in value.items():
                    if op == "$eq" and doc_value != op_value:
                        return False
                    if op == "$ne" and doc_value == op_value:
                        return False
                    if op == "$gt" and (doc_value is None or doc_value <= op_value):
                        return False
                    if op == "$gte" and (doc_value is None or doc_value < op_value):
                        return False
                    if op == "$lt" and (doc_value is None or doc_value >= op_value):
                        return False
                    if op == "$in" and doc_value not in op_value:
                        return False
                    if op == "$exists" and (key in doc) != bool(op_value):
                        return False
            elif doc_value != value:
                return False
        return True

    def _apply_update(self, doc: dict[str, Any], update: dict[str, Any]) -> bool:
        """Apply $set, $unset and $inc to a document."""
        modified = False
        for op, fields in update.items():
            if op == "$set":
                for key, value in fields.items():
                    if doc.get(key) != value:
                        doc[key] = value
                        modified = True
            elif op == "$unset":
                for key in fields:
                    if key in doc:
                        del doc[key]
                        modified = True
            elif op == "$inc":
                for key, value in fields.items():
                    doc[key] = doc.get(key, 0) + value
                    modified = True
        return modified

    def _project(self, doc: dict[str, Any], projection: dict[str, int] | None) -> dict[str, Any]:
        """Apply an inclusion or exclusion projection."""
        if not projection:
            return dict(doc)

        if any(v for k, v in projection.items() if k != "_id"):
            result = {k: doc[k] for k, v in projection.items() if v and k in doc}
            if "_id" in doc and projection.get("_id", 1):
                result["_id"] = doc["_id"]
            return result
        return {k: v for k, v in doc.items() if projection.get(k, 1)}


class _ActionError(Exception):
    def __init__(self, status: int, text: str) -> None:
        super().__init__(text)
        self.status = status
        self.text = text


SEED_DATABASE = "test"
SEED_COLLECTION = "mongo-fetch-client"


@pytest.fixture
def api() -> FakeDataApi:
    """Create a fake data API."""
    return FakeDataApi()


@pytest.fixture
def client(api: FakeDataApi):
    """Create a MongoClient backed by the fake data API."""
    from mongo_fetch import MongoClient

    return MongoClient("Cluster0", "https://data.example.test/api", "secret", fetch=api)


@pytest.fixture
def database(client):
    """Create a database handle."""
    return client[SEED_DATABASE]


@pytest.fixture
def collection(database):
    """Create a collection handle."""
    return database[SEED_COLLECTION]


@pytest.fixture
def seeded(api: FakeDataApi, collection):
    """Collection holding five documents ``{_id: "unit-test-find-0N", hello: "world", i: N}``."""
    api.seed(
        SEED_DATABASE,
        SEED_COLLECTION,
        [{"_id": f"unit-test-find-0{i}", "hello": "world", "i": i} for i in range(5)],
    )
    return collection
