"""Normalization of raw catalog responses into one ``{data, errors}`` shape."""

from __future__ import annotations

import inspect
import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import cast

from feedsync.domain.errors import ResponseFormatError

type GraphQLError = dict[str, object]


@dataclass(frozen=True, slots=True)
class GraphQLResult:
    data: dict[str, object] | None
    errors: tuple[GraphQLError, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.errors

    def error_messages(self) -> list[str]:
        return [str(error.get("message") or "unknown error") for error in self.errors]


async def normalize_response(raw: object) -> GraphQLResult:
    """Return a :class:`GraphQLResult` for any supported response shape.

    Supported shapes, checked in order:

    1. ``bytes``/``str`` holding a JSON document,
    2. a mapping with ``data`` and/or ``errors`` keys,
    3. an object exposing ``data``/``errors`` attributes,
    4. an object with a ``json()`` accessor, sync or async.

    Anything else raises :class:`ResponseFormatError`.
    """

    if isinstance(raw, bytes | bytearray):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ResponseFormatError("Response body is not UTF-8") from exc
    if isinstance(raw, str):
        return _from_payload(_loads(raw))
    if isinstance(raw, Mapping):
        return _from_payload(cast("Mapping[str, object]", raw))
    if _exposes_result_attributes(raw):
        return _from_parts(getattr(raw, "data", None), getattr(raw, "errors", None))

    accessor = getattr(raw, "json", None)
    if callable(accessor):
        try:
            payload = accessor()
            if inspect.isawaitable(payload):
                payload = await payload
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError subclass
            raise ResponseFormatError(f"Response body is not valid JSON: {exc}") from exc
        if isinstance(payload, str):
            return _from_payload(_loads(payload))
        if isinstance(payload, Mapping):
            return _from_payload(cast("Mapping[str, object]", payload))
        raise ResponseFormatError(f"json() returned unsupported {type(payload).__name__}")

    raise ResponseFormatError(f"Unrecognised response type {type(raw).__name__}")


def _exposes_result_attributes(raw: object) -> bool:
    for name in ("data", "errors"):
        if hasattr(raw, name) and not callable(getattr(raw, name)):
            return True
    return False


def _loads(text: str) -> Mapping[str, object]:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ResponseFormatError(f"Response body is not valid JSON: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise ResponseFormatError("Response JSON is not an object")
    return cast("Mapping[str, object]", payload)


def _from_payload(payload: Mapping[str, object]) -> GraphQLResult:
    if "data" not in payload and "errors" not in payload:
        raise ResponseFormatError("Response has neither data nor errors")
    return _from_parts(payload.get("data"), payload.get("errors"))


def _from_parts(data: object, errors: object) -> GraphQLResult:
    if data is not None and not isinstance(data, Mapping):
        raise ResponseFormatError(f"Response data is {type(data).__name__}, expected object")
    return GraphQLResult(
        data=dict(cast("Mapping[str, object]", data)) if data is not None else None,
        errors=_normalize_errors(errors),
    )


def _normalize_errors(errors: object) -> tuple[GraphQLError, ...]:
    if errors is None:
        return ()
    if isinstance(errors, str):
        return ({"message": errors},)
    if isinstance(errors, Mapping):
        return (dict(cast("Mapping[str, object]", errors)),)
    if not isinstance(errors, list | tuple):
        raise ResponseFormatError(f"Response errors is {type(errors).__name__}")
    normalized: list[GraphQLError] = []
    for entry in cast("list[object]", errors):
        if isinstance(entry, Mapping):
            normalized.append(dict(cast("Mapping[str, object]", entry)))
        else:
            normalized.append({"message": str(entry)})
    return tuple(normalized)
