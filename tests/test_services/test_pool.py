"""Tests for connection pool capacity enforcement."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from sshmux.models import RegistryRow
from sshmux.services.pool import ConnectionPoolManager
from sshmux.services.registry import ConnectionRegistry
from sshmux.services.sweeper import StaleConnectionSweeper
from sshmux.utils.keys import connection_id


def _write_rows(path: Path, rows: list[tuple[str, int]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        "".join(
            RegistryRow(connection_id(target), target, ts).to_line() + "\n" for target, ts in rows
        )
    )


@pytest.fixture
def registry(tmp_path: Path) -> ConnectionRegistry:
    return ConnectionRegistry(tmp_path / "ctl" / "connection_registry")


@pytest.fixture
def sweeper() -> MagicMock:
    sweeper = MagicMock(spec=StaleConnectionSweeper)
    sweeper.retire = AsyncMock()
    return sweeper


def test_max_connections_must_be_positive(registry: ConnectionRegistry, sweeper: MagicMock) -> None:
    with pytest.raises(ValueError, match="must be > 0"):
        ConnectionPoolManager(registry, sweeper, max_connections=0)


@pytest.mark.asyncio
async def test_override_must_be_positive(registry: ConnectionRegistry, sweeper: MagicMock) -> None:
    pool = ConnectionPoolManager(registry, sweeper)

    with pytest.raises(ValueError):
        await pool.enforce_capacity(-1)


@pytest.mark.asyncio
async def test_evicts_oldest_rows(registry: ConnectionRegistry, sweeper: MagicMock) -> None:
    """12 rows registered at t=100..111 with max 10: t=100 and t=101 go."""
    rows = [(f"root@host{i}", 100 + i) for i in range(12)]
    _write_rows(registry.path, list(reversed(rows)))
    pool = ConnectionPoolManager(registry, sweeper, max_connections=10)

    evicted = await pool.enforce_capacity()

    assert [r.registered_at for r in evicted] == [100, 101]
    assert registry.count() == 10
    assert {r.registered_at for r in registry.rows()} == set(range(102, 112))
    sweeper.retire.assert_awaited_once_with(evicted)


@pytest.mark.asyncio
async def test_under_capacity_does_nothing(registry: ConnectionRegistry, sweeper: MagicMock) -> None:
    _write_rows(registry.path, [("root@a", 1), ("root@b", 2)])
    pool = ConnectionPoolManager(registry, sweeper, max_connections=10)

    assert await pool.enforce_capacity() == []
    assert registry.count() == 2
    sweeper.retire.assert_not_awaited()


@pytest.mark.asyncio
async def test_explicit_maximum(registry: ConnectionRegistry, sweeper: MagicMock) -> None:
    _write_rows(registry.path, [("root@a", 1), ("root@b", 2), ("root@c", 3)])
    pool = ConnectionPoolManager(registry, sweeper, max_connections=10)

    evicted = await pool.enforce_capacity(1)

    assert [r.target for r in evicted] == ["root@a", "root@b"]
    assert [r.target for r in registry.rows()] == ["root@c"]


@pytest.mark.asyncio
async def test_eviction_stops_evicted_masters(deps, fake_ssh) -> None:
    """End to end: evicted masters get ssh -O exit and lose their sockets."""
    _write_rows(deps.registry.path, [(f"root@h{i}", 100 + i) for i in range(12)])
    for i in range(12):
        fake_ssh.open_master(deps.store.path_for(f"root@h{i}"))

    evicted = await deps.pool.enforce_capacity()

    assert [r.target for r in evicted] == ["root@h0", "root@h1"]
    assert ("exit", "root@h0") in fake_ssh.control_calls
    assert not deps.store.exists("root@h0")
    assert not deps.store.exists("root@h1")
    assert deps.store.exists("root@h2")
    assert deps.registry.count() == 10
