"""
Codec - wire encoding for data API commands and responses.

Requests are encoded with a fixed per-client policy, either plain JSON or
relaxed MongoDB Extended JSON. Responses are decoded according to the
content type the endpoint declares.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from bson import json_util
from bson.errors import BSONError
from bson.json_util import RELAXED_JSON_OPTIONS

from .types import CodecError

__all__ = [
    "EJSON",
    "EJSON_CONTENT_TYPE",
    "ENCODINGS",
    "JSON",
    "JSON_CONTENT_TYPE",
    "canonical_command",
    "decode_response",
    "encode_command",
    "media_type",
]

logger = logging.getLogger(__name__)

JSON = "json"
EJSON = "ejson"
ENCODINGS = frozenset({JSON, EJSON})

JSON_CONTENT_TYPE = "application/json"
EJSON_CONTENT_TYPE = "application/ejson"


def encode_command(command: Mapping[str, Any], encoding: str = EJSON) -> str:
    """
    Serialize a command body.

    Args:
        command: The command to serialize.
        encoding: ``"ejson"`` to keep BSON types (ObjectId, datetime, ...)
                  as Extended JSON, ``"json"`` for plain JSON.

    Returns:
        The serialized body.

    Raises:
        CodecError: If the command holds values the encoding cannot represent.
        ValueError: If the encoding is unknown.
    """
    try:
        if encoding == EJSON:
            return json_util.dumps(command, json_options=RELAXED_JSON_OPTIONS)
        if encoding == JSON:
            return json.dumps(command)
    except (TypeError, ValueError) as e:
        raise CodecError(f"Cannot encode command as {encoding}: {e}") from e
    raise ValueError(f"Unknown request encoding: {encoding!r}")


def canonical_command(command: Mapping[str, Any]) -> str:
    """
    Return a stable Extended JSON rendering of a command, for use as a key.

    Only the top-level fields are sorted. Nested documents keep their key
    order because it is significant, e.g. in a sort document.
    """
    try:
        return json_util.dumps(dict(sorted(command.items())), json_options=RELAXED_JSON_OPTIONS)
    except (TypeError, ValueError) as e:
        raise CodecError(f"Cannot canonicalize command: {e}") from e


def media_type(content_type: str | None) -> str:
    """Strip parameters from a Content-Type header and lower-case it."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def _decode_ejson(text: str) -> Any:
    return json_util.loads(text)


def _decode_json(text: str) -> Any:
    return json.loads(text)


def decode_response(content_type: str | None, text: str) -> Any:
    """
    Decode a response body according to its declared content type.

    ``application/ejson`` bodies are decoded as Extended JSON, so
    ``{"$oid": ...}`` comes back as ``bson.ObjectId`` and ``{"$date": ...}``
    as ``datetime``. ``application/json`` and ``+json`` types are decoded as
    plain JSON. Anything else falls back to plain JSON.

    Args:
        content_type: The response's Content-Type header, if any.
        text: The response body.

    Returns:
        The decoded value, or None for an empty body.

    Raises:
        CodecError: If the body does not parse as the selected encoding.
    """
    if not text or not text.strip():
        return None

    kind = media_type(content_type)
    if kind == EJSON_CONTENT_TYPE:
        decoder = _decode_ejson
    elif kind == JSON_CONTENT_TYPE or kind.endswith("+json"):
        decoder = _decode_json
    else:
        logger.debug(f"Unrecognized content type {content_type!r}, decoding as plain JSON")
        decoder = _decode_json

    try:
        return decoder(text)
    except (BSONError, TypeError, ValueError) as e:
        raise CodecError(f"Malformed {kind or 'untyped'} response body: {e}") from e
