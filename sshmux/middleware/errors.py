"""Error handling middleware for consistent error logging."""

import logging
import traceback
from typing import Any

from fastmcp.server.middleware import MiddlewareContext

from sshmux.exceptions import SSHMuxError
from sshmux.middleware.base import SSHMuxMiddleware


class ErrorHandlingMiddleware(SSHMuxMiddleware):
    """Logs exceptions escaping tool handlers, then re-raises them.

    SSHMuxError subclasses are expected failures (bad target, dead master)
    and are logged as warnings; anything else is logged as an error.

    Example:
        >>> middleware = ErrorHandlingMiddleware(include_traceback=True)
        >>> server.add_middleware(middleware)
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        include_traceback: bool = False,
    ) -> None:
        """Initialize error handling middleware.

        Args:
            logger: Optional custom logger.
            include_traceback: Whether to include full traceback in logs.
        """
        super().__init__(logger=logger)
        self.include_traceback = include_traceback

    async def on_message(
        self,
        context: MiddlewareContext,
        call_next: Any,
    ) -> Any:
        """Log errors raised during request processing.

        Raises:
            Exception: Re-raises the original exception after logging.
        """
        try:
            return await call_next(context)

        except Exception as e:
            error_type = type(e).__name__
            method = context.method

            level = logging.WARNING if isinstance(e, SSHMuxError) else logging.ERROR
            if self.include_traceback:
                self.logger.log(
                    level,
                    "Error in %s: %s: %s\n%s",
                    method,
                    error_type,
                    str(e),
                    traceback.format_exc(),
                )
            else:
                self.logger.log(level, "Error in %s: %s: %s", method, error_type, str(e))

            raise
