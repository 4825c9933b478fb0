from __future__ import annotations
from dataclasses import dataclass
from typing import Any


class StewrdError(RuntimeError):
    """Base error for the library."""


class StreamEndedWithoutResult(StewrdError):
    """
    The event stream closed without ever delivering a ``done`` event.

    Every successful agent run ends with a terminal event, so its absence is a
    protocol violation rather than an empty result.
    """

    def __init__(self, message: str = "Stream ended without a done event") -> None:
        super().__init__(message)


@dataclass(slots=True)
class StewrdAPIError(StewrdError):
    """
    Error returned by the Stewrd API for a non-2xx response.

    The backend answers failures with a JSON body of the form:
    {
        "code": "invalid_api_key" | "rate_limited" | ...,
        "message": "...",
        "docs": "https://docs.stewrd.dev/errors#..."
    }

    Missing fields fall back to ``code="unknown_error"`` and the HTTP reason
    phrase, so the error is always populated.
    """
    status_code: int
    message: str
    code: str = "unknown_error"
    docs: str | None = None
    body: str | None = None

    def __str__(self) -> str:
        parts = [f"StewrdAPIError(status_code={self.status_code}"]
        parts.append(f", code={self.code!r}")
        parts.append(f", message={self.message!r}")
        if self.docs:
            parts.append(f", docs={self.docs!r}")
        if self.body:
            parts.append(f", body={len(self.body)} chars")
        parts.append(")")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Dict form for structured logging."""
        return {
            "status_code": self.status_code,
            "code": self.code,
            "message": self.message,
            "docs": self.docs,
            "body": self.body,
        }

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500

    @property
    def is_server_error(self) -> bool:
        return 500 <= self.status_code < 600

    @property
    def is_auth_error(self) -> bool:
        """True for 401 (bad key) or 403 (plan does not allow the request)."""
        return self.status_code in (401, 403)

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def is_timeout(self) -> bool:
        return self.status_code == 408 and self.code == "request_timeout"
