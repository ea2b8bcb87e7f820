from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass

import httpx
import pytest

from feedsync.domain.errors import ResponseFormatError
from feedsync.domain.reconciliation import GraphQLResult, normalize_response

_PAYLOAD = {"data": {"products": {"edges": []}}}


@dataclass
class _ResultObject:
    data: object = None
    errors: object = None


class _SyncJson:
    def json(self) -> object:
        return _PAYLOAD


class _AsyncJson:
    async def json(self) -> object:
        return _PAYLOAD


class _TextJson:
    def json(self) -> object:
        return json.dumps(_PAYLOAD)


def _normalize(raw: object) -> GraphQLResult:
    return asyncio.run(normalize_response(raw))


@pytest.mark.parametrize(
    "raw",
    [
        _PAYLOAD,
        json.dumps(_PAYLOAD),
        json.dumps(_PAYLOAD).encode(),
        _ResultObject(data=_PAYLOAD["data"]),
        _SyncJson(),
        _AsyncJson(),
        _TextJson(),
        httpx.Response(200, json=_PAYLOAD),
    ],
    ids=["mapping", "text", "bytes", "attributes", "sync-json", "async-json", "json-text", "httpx"],
)
def test_supported_shapes_normalize_to_the_same_result(raw: object) -> None:
    result = _normalize(raw)

    assert result == GraphQLResult(data={"products": {"edges": []}})
    assert result.ok


def test_errors_are_normalized_to_dicts() -> None:
    result = _normalize({"data": None, "errors": ["Throttled", {"message": "Bad field"}]})

    assert result.data is None
    assert not result.ok
    assert result.error_messages() == ["Throttled", "Bad field"]


def test_single_error_string_becomes_one_entry() -> None:
    result = _normalize(_ResultObject(errors="Access denied"))

    assert result.errors == ({"message": "Access denied"},)


@pytest.mark.parametrize(
    "raw",
    [
        None,
        42,
        "not json",
        b"\xff\xfe",
        "[1, 2]",
        {"something": "else"},
        {"data": ["not", "an", "object"]},
        {"data": {}, "errors": 3},
        httpx.Response(200, content=b"<html>oops</html>"),
    ],
    ids=["none", "int", "bad-json", "bad-bytes", "json-array", "no-keys", "list-data", "int-errors", "html"],
)
def test_unrecognised_shapes_raise(raw: object) -> None:
    with pytest.raises(ResponseFormatError):
        _normalize(raw)
