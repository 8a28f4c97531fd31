"""Error taxonomy for the checker.

Configuration errors are fatal before any check loop starts. Authentication,
API and context errors end up inside a CheckResult and never stop a loop.
"""

from __future__ import annotations


class CheckerError(Exception):
    """Base class for all checker errors."""


class ConfigurationError(CheckerError):
    """Raised for malformed settings, missing credentials or bad check options."""


class OptionTypeError(ConfigurationError):
    """Raised when an option exists but holds a value of the wrong type."""

    def __init__(self, check: str, key: str, expected: str) -> None:
        self.check = check
        self.key = key
        self.expected = expected
        super().__init__(f"{check}/{key} value is not a {expected}")


class AuthenticationError(CheckerError):
    """Raised when an authenticated session cannot be built."""


class ApiError(CheckerError):
    """Raised when the cloud API returns an error status."""

    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"API error {status_code}: {detail}")


class CheckFailed(CheckerError):
    """Raised by a check when the cloud answered but is not healthy."""


class ContextCancelled(CheckerError):
    """Raised when work is abandoned because its context was cancelled."""

    def __init__(self, message: str = "context cancelled") -> None:
        super().__init__(message)


class DeadlineExceeded(ContextCancelled, TimeoutError):
    """Raised when a context's deadline passes before the work completes."""

    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)
