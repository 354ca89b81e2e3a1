"""sshmux middleware components."""

from sshmux.middleware.base import SSHMuxMiddleware
from sshmux.middleware.errors import ErrorHandlingMiddleware
from sshmux.middleware.logging import LoggingMiddleware

__all__ = [
    "ErrorHandlingMiddleware",
    "LoggingMiddleware",
    "SSHMuxMiddleware",
]
