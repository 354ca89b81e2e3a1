"""Tests for durable record models."""

import json
from datetime import datetime

import pytest

from sshmux.models import (
    CACHE_VERSION,
    CacheCounters,
    CacheEntry,
    CacheListing,
    ConnectionInfo,
    ConnectionState,
    RegistryRow,
    SweepReport,
)


class TestRegistryRow:
    """Test registry line (de)serialisation."""

    def test_json_line(self):
        row = RegistryRow(connection_id="abc", target="root@10.0.0.5:2222", registered_at=1700000000)

        assert json.loads(row.to_line()) == {
            "connection_id": "abc",
            "target": "root@10.0.0.5:2222",
            "registered_at": 1700000000,
        }
        assert RegistryRow.from_line(row.to_line()) == row

    def test_legacy_line_with_port(self):
        row = RegistryRow.from_line("abc:root@10.0.0.5:2222:1700000000")

        assert row == RegistryRow(connection_id="abc", target="root@10.0.0.5:2222", registered_at=1700000000)

    def test_legacy_line_without_port(self):
        row = RegistryRow.from_line("abc:root@host:1700000000\n")

        assert row is not None
        assert row.target == "root@host"

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "   ",
            "garbage",
            "abc:root@host:notatime",
            "abc:root@host:\u00b2",
            "abc:root@host:\u0661\u0662",
            "{not json",
            '{"connection_id": "abc"}',
            '{"connection_id": "abc", "target": "", "registered_at": 1}',
            '{"connection_id": "abc", "target": "t", "registered_at": "soon"}',
        ],
    )
    def test_malformed_lines(self, line: str):
        assert RegistryRow.from_line(line) is None


class TestCacheEntry:
    """Test cache file content parsing."""

    def test_json_content(self):
        entry = CacheEntry(
            device_type="linux",
            timestamp=1700000000,
            method="ai",
            version=CACHE_VERSION,
            target="admin@192.0.2.10",
        )

        assert entry.to_text().endswith("\n")
        assert CacheEntry.parse(entry.to_text()) == entry

    def test_legacy_content_keeps_colons_in_target(self):
        entry = CacheEntry.parse("ubuntu:1700000000:manual:1.0:root@10.0.0.5:2222")

        assert entry.device_type == "ubuntu"
        assert entry.version == "1.0"
        assert entry.target == "root@10.0.0.5:2222"

    @pytest.mark.parametrize(
        ("text", "message"),
        [
            ("", "empty"),
            ("\n", "empty"),
            ("{bad", "invalid JSON"),
            ("linux:1:manual", "too few fields"),
            ('{"device_type": "linux", "timestamp": 1, "method": "rule", "version": "2.0"}', "target"),
            ('{"device_type": "", "timestamp": 1, "method": "rule", "version": "2.0", "target": "t"}', "device_type"),
            ('{"device_type": "x", "timestamp": "now", "method": "rule", "version": "2.0", "target": "t"}', "timestamp"),
        ],
    )
    def test_invalid_content(self, text: str, message: str):
        with pytest.raises(ValueError, match=message):
            CacheEntry.parse(text)


def test_cache_counters_hit_rate() -> None:
    counters = CacheCounters()
    assert counters.hit_rate == 0.0

    counters.hits = 3
    counters.misses = 1

    assert counters.requests == 4
    assert counters.hit_rate == 0.75


def test_cache_listing_status() -> None:
    valid = CacheListing(target="t", device_type="linux", method="rule", age=10, expired=False)
    expired = CacheListing(target="t", device_type="linux", method="rule", age=10**6, expired=True)

    assert valid.status == "valid"
    assert expired.status == "expired"


def test_connection_info_display() -> None:
    info = ConnectionInfo(
        target="root@h",
        state=ConnectionState.STALE,
        device_type="unknown",
        registered_at=datetime(2024, 5, 1, 8, 30, 0),
    )

    assert info.registered_at_display == "2024-05-01 08:30:00"
    assert not info.healthy
    assert ConnectionInfo("t", ConnectionState.CONNECTED, "linux", None).registered_at_display == "unknown"


def test_sweep_report_total() -> None:
    assert SweepReport(sockets_removed=2, rows_removed=3).total == 5


def test_state_values_are_strings() -> None:
    assert ConnectionState.CONNECTED == "connected"
    assert ConnectionState("stale") is ConnectionState.STALE
