"""Control master liveness checks.

Both checks are read-only and return booleans: a missing binary, a timeout,
a non-zero exit or an unparseable target all mean "not alive".
"""

import logging

from sshmux.exceptions import InvalidTargetFormat
from sshmux.models import SSHTarget
from sshmux.services.sockets import ControlSocketStore
from sshmux.services.ssh_client import SSHClient
from sshmux.utils.parser import parse_target

logger = logging.getLogger(__name__)


class HealthChecker:
    """Answers "is the master for this target alive?"."""

    def __init__(
        self,
        store: ControlSocketStore,
        client: SSHClient,
        check_timeout: float = 10,
        fresh_seconds: float = 3600,
    ) -> None:
        """Initialize checker.

        Args:
            store: Control socket directory
            client: ssh wrapper used for ``-O check``
            check_timeout: Upper bound for one probe in seconds
            fresh_seconds: Socket age under which quick_check skips the probe
        """
        self.store = store
        self.client = client
        self.check_timeout = check_timeout
        self.fresh_seconds = fresh_seconds

    @staticmethod
    def _coerce(target: SSHTarget | str) -> SSHTarget | None:
        if isinstance(target, SSHTarget):
            return target
        try:
            return parse_target(target)
        except InvalidTargetFormat as e:
            logger.debug("Health check skipped: %s", e)
            return None

    async def full_check(self, target: SSHTarget | str) -> bool:
        """Probe the master with ``ssh -O check``.

        Returns:
            True iff the socket exists and the probe exits 0 in time
        """
        parsed = self._coerce(target)
        if parsed is None:
            return False

        socket = self.store.path_for(parsed)
        if not socket.exists():
            return False

        try:
            result = await self.client.control(socket, parsed, "check", self.check_timeout)
        except OSError as e:
            logger.warning("Health probe for %s could not run: %s", parsed, e)
            return False

        if result.returncode != 0:
            logger.debug(
                "Health probe for %s failed (exit %d): %s",
                parsed,
                result.returncode,
                result.error.strip(),
            )
            return False
        return True

    async def quick_check(self, target: SSHTarget | str) -> bool:
        """Trust a recently touched socket, otherwise fall back to full_check.

        A socket younger than ``fresh_seconds`` is accepted without a round
        trip. Callers that need certainty should use full_check.
        """
        age = self.store.age(target)
        if age is None:
            return False
        if age < self.fresh_seconds:
            return True
        return await self.full_check(target)
