"""Dependency injection container for sshmux.

Builds every service once from a Config and hands the same instances to the
tool layer, so nothing is kept in module globals.
"""

import logging
from dataclasses import dataclass

from sshmux.config import Config
from sshmux.services import (
    BackgroundTasks,
    ConnectionLifecycleManager,
    ConnectionPoolManager,
    ConnectionRegistry,
    ControlSocketStore,
    DeviceDetector,
    DeviceTypeCache,
    HealthChecker,
    LastTargetTracker,
    SSHClient,
    StaleConnectionSweeper,
)
from sshmux.utils.fileio import ensure_dir

logger = logging.getLogger(__name__)

SHUTDOWN_DRAIN_SECONDS = 5.0


@dataclass
class Dependencies:
    """Container for sshmux services.

    Example:
        deps = Dependencies.create()
        await deps.startup()
        outcome = await deps.lifecycle.establish("root@192.0.2.10")
    """

    config: Config
    client: SSHClient
    store: ControlSocketStore
    health: HealthChecker
    registry: ConnectionRegistry
    sweeper: StaleConnectionSweeper
    pool: ConnectionPoolManager
    lifecycle: ConnectionLifecycleManager
    cache: DeviceTypeCache
    last_target: LastTargetTracker
    detector: DeviceDetector
    background: BackgroundTasks

    @classmethod
    def create(cls) -> "Dependencies":
        """Create dependencies with configuration from the environment.

        Returns:
            Initialized Dependencies instance
        """
        return cls.from_config(Config.from_env())

    @classmethod
    def from_config(cls, config: Config, client: SSHClient | None = None) -> "Dependencies":
        """Create dependencies with custom configuration.

        Args:
            config: Custom Config instance
            client: ssh wrapper to use instead of one built from config

        Returns:
            Dependencies wired from config
        """
        settings = config.settings
        client = client or SSHClient(
            binary=settings.ssh_binary,
            connect_timeout=settings.connect_timeout,
            control_persist=settings.control_persist,
        )
        store = ControlSocketStore(config.control_dir)
        health = HealthChecker(
            store,
            client,
            check_timeout=settings.check_timeout,
            fresh_seconds=settings.socket_fresh_seconds,
        )
        registry = ConnectionRegistry(config.registry_file, config.registry_lock_file)
        sweeper = StaleConnectionSweeper(store, registry, health, client)
        pool = ConnectionPoolManager(registry, sweeper, max_connections=config.max_connections)
        lifecycle = ConnectionLifecycleManager(
            store,
            client,
            health,
            registry,
            pool=pool,
            establish_attempts=settings.establish_attempts,
            establish_interval=settings.establish_interval,
            command_timeout=config.command_timeout,
        )
        cache = DeviceTypeCache(
            config.cache_dir,
            ttl=config.cache_ttl,
            max_entries=settings.cache_max_entries,
            evict_margin=settings.cache_evict_margin,
        )
        return cls(
            config=config,
            client=client,
            store=store,
            health=health,
            registry=registry,
            sweeper=sweeper,
            pool=pool,
            lifecycle=lifecycle,
            cache=cache,
            last_target=LastTargetTracker(config.last_target_file, registry),
            detector=DeviceDetector(lifecycle, cache),
            background=BackgroundTasks(),
        )

    async def startup(self) -> None:
        """Prepare directories, enforce pool capacity, queue housekeeping.

        Capacity is enforced before returning; the sweep and cache passes
        run in the background.
        """
        self.store.ensure_dir()
        ensure_dir(self.config.cache_dir)

        evicted = await self.pool.enforce_capacity()
        if evicted:
            logger.info("Start-up eviction removed %d connection(s)", len(evicted))

        self.background.spawn("sweep", self.sweeper.sweep())
        self.background.spawn_thread("cache-cleanup", self.cache.cleanup_expired)
        self.background.spawn_thread("cache-size", self.cache.manage_size)
        self.background.spawn_thread(
            "cache-warm", self.cache.warm, self.config.settings.cache_warm_limit
        )

    async def cleanup(self) -> None:
        """Wait briefly for background jobs.

        Control masters are left running for later invocations.
        """
        await self.background.drain(timeout=SHUTDOWN_DRAIN_SECONDS)
