"""Error taxonomy for feed reconciliation.

Only :class:`ParseError` and :class:`FeedFetchError` are fatal to a run. Every
other error is caught at the group-task boundary and recorded against the
offending group.
"""

from __future__ import annotations


class FeedSyncError(RuntimeError):
    """Base class for reconciliation errors."""


class ParseError(FeedSyncError):
    """Raised when the feed markup is not well-formed."""


class FeedFetchError(FeedSyncError):
    """Raised when the feed document cannot be downloaded."""


class ResponseFormatError(FeedSyncError):
    """Raised when a remote response has none of the recognised shapes."""


class TransportError(FeedSyncError):
    """Raised when a remote call fails below the application protocol."""


class ValidationError(FeedSyncError):
    """Raised when a group cannot be sent to the remote catalog as-is."""


class MutationError(FeedSyncError):
    """Raised when the remote catalog rejects a mutation with field errors."""

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field
        self.message = message

    @classmethod
    def from_user_errors(cls, errors: list[dict[str, object]]) -> MutationError:
        messages = [str(error.get("message") or "unknown error") for error in errors]
        first_field = errors[0].get("field") if errors else None
        field: str | None
        if isinstance(first_field, list):
            field = ".".join(str(part) for part in first_field)  # pyright: ignore[reportUnknownVariableType, reportUnknownArgumentType]
        elif first_field is None:
            field = None
        else:
            field = str(first_field)
        return cls(", ".join(messages), field=field)

    def __str__(self) -> str:
        if self.field:
            return f"{self.field}: {self.message}"
        return self.message
