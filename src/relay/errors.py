"""Domain-specific exceptions for relay operations.

These exceptions are safe to import from API layers without pulling in LLM clients.
"""

from __future__ import annotations


class RelayError(Exception):
    status_code: int = 500
    default_detail: str = "Relay error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class MalformedEventError(RelayError):
    status_code = 400
    default_detail = "Malformed relay event"


class TokenSourceError(RelayError):
    status_code = 503
    default_detail = "Token source failed"


class SignatureValidationError(RelayError):
    status_code = 403
    default_detail = "Invalid signature"


class ServerMisconfiguredError(RelayError):
    status_code = 500
    default_detail = "Server misconfiguration"
