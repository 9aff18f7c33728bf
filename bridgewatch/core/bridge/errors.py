"""
Bridge error types.

Calculator input errors are raised to the caller immediately; status fetch
errors are retryable; the polling scheduler logs and counts them.
"""

from typing import Any, Optional


class BridgeError(Exception):
    """Base class for bridge subsystem errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidAmountError(BridgeError, ValueError):
    """A numeric field could not be parsed as a finite decimal."""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(f"Invalid decimal value for {field}: {value!r}")
        self.field = field
        self.value = value


class StatusFetchError(BridgeError):
    """The bridge status API could not be reached or returned an unusable payload."""

    def __init__(
        self,
        message: str,
        *,
        src_tx_hash: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.src_tx_hash = src_tx_hash
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        # 4xx other than rate limiting means the request itself is wrong
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500
