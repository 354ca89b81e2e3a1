"""Rule-based device type detection.

Probes a connected target with a few read-only commands and maps the output
to a short label (``ubuntu``, ``openwrt``, ``cisco``...). Results other than
``unknown`` are cached with method ``rule``.
"""

import logging
from dataclasses import dataclass

from sshmux.exceptions import InvalidDeviceType
from sshmux.services.cache import DeviceTypeCache
from sshmux.services.lifecycle import ConnectionLifecycleManager
from sshmux.utils.validation import is_valid_device_type, normalize_device_type

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

OS_RELEASE_COMMAND = "cat /etc/os-release 2>/dev/null || cat /etc/openwrt_release 2>/dev/null"

# uname -a substring -> label (Linux handled separately)
UNAME_RULES: list[tuple[tuple[str, ...], str]] = [
    (("FreeBSD",), "freebsd"),
    (("Darwin",), "macos"),
    (("CYGWIN", "MINGW", "MSYS"), "windows"),
]

HOSTNAME_RULES: list[tuple[str, str]] = [
    ("cisco", "cisco"),
    ("huawei", "huawei"),
    ("h3c", "h3c"),
]

SHOW_VERSION_RULES: list[tuple[str, str]] = [
    ("Cisco", "cisco"),
    ("Huawei", "huawei"),
    ("H3C", "h3c"),
    ("Juniper", "juniper"),
    ("Arista", "arista"),
]


@dataclass(frozen=True)
class DetectionResult:
    """Outcome of DeviceDetector.detect()."""

    device_type: str
    method: str
    cached: bool = False


def _os_release_value(text: str, key: str) -> str:
    for line in text.splitlines():
        name, sep, value = line.partition("=")
        if sep and name.strip() == key:
            return value.strip().strip("\"'").lower()
    return ""


def classify_linux(os_release: str) -> str:
    """Map /etc/os-release (or /etc/openwrt_release) content to a label."""
    if "openwrt" in os_release.lower():
        return "openwrt"

    for key in ("ID", "NAME"):
        value = _os_release_value(os_release, key)
        if value and is_valid_device_type(value):
            return value
    return "linux"


def classify_uname(uname: str) -> str | None:
    """Label for non-Linux kernels, or None if uname says nothing useful."""
    for markers, label in UNAME_RULES:
        if any(marker in uname for marker in markers):
            return label
    return None


def classify_hostname(hostname: str) -> str | None:
    lowered = hostname.lower()
    for pattern, label in HOSTNAME_RULES:
        if pattern in lowered:
            return label
    return None


def classify_show_version(banner: str) -> str | None:
    for marker, label in SHOW_VERSION_RULES:
        if marker in banner:
            return label
    return None


class DeviceDetector:
    """Detects and records the device type of connected targets."""

    def __init__(
        self,
        lifecycle: ConnectionLifecycleManager,
        cache: DeviceTypeCache,
        probe_timeout: float = 15,
    ) -> None:
        self.lifecycle = lifecycle
        self.cache = cache
        self.probe_timeout = probe_timeout

    async def detect(self, target: str, force: bool = False) -> DetectionResult:
        """Return the device type of ``target``.

        A valid cached type is returned unless ``force`` is set. Otherwise
        the target is probed over its existing connection.

        Raises:
            ConnectionNotFound: If the target is not connected
            ConnectionUnhealthy: If its master does not answer
        """
        if not force:
            cached = self.cache.get(target)
            if cached is not None:
                return DetectionResult(device_type=cached, method="cache", cached=True)

        device_type = await self._probe(target)
        if device_type != UNKNOWN:
            self.cache.save(target, device_type, method="rule")
        logger.info("Detected %s as %s", target, device_type)
        return DetectionResult(device_type=device_type, method="rule")

    async def _run(self, target: str, command: str) -> str | None:
        result = await self.lifecycle.execute(target, command, timeout=self.probe_timeout)
        if not result.ok:
            return None
        return result.output

    async def _probe(self, target: str) -> str:
        uname = await self._run(target, "uname -a")
        if uname:
            if "Linux" in uname:
                return classify_linux(await self._run(target, OS_RELEASE_COMMAND) or "")
            label = classify_uname(uname)
            if label:
                return label

        hostname = await self._run(target, "hostname")
        if hostname:
            label = classify_hostname(hostname)
            if label:
                return label

        banner = await self._run(target, "show version")
        if banner:
            label = classify_show_version(banner)
            if label:
                return label

        return UNKNOWN

    def set_manual(self, target: str, device_type: str) -> str:
        """Record a user-supplied device type.

        Returns:
            The normalized label that was cached

        Raises:
            InvalidDeviceType: If the label is not 1-50 chars of [a-z0-9._-]
            CacheWriteFailed: If the entry cannot be written
        """
        normalized = normalize_device_type(device_type)
        if not is_valid_device_type(normalized):
            raise InvalidDeviceType(device_type)
        self.cache.save(target, normalized, method="manual")
        logger.info("Device type for %s set to %s", target, normalized)
        return normalized
