"""Checker subsystem: options cascade, cloud auth, check scheduler."""

from .context import Context
from .errors import (
    ApiError,
    AuthenticationError,
    CheckFailed,
    CheckerError,
    ConfigurationError,
    ContextCancelled,
    DeadlineExceeded,
    OptionTypeError,
)
from .manager import CheckManager, CheckResult, Checker, CheckerFactory
from .options import CloudOptions, SettingsFile, load_settings
