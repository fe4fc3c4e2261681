"""
Runtime reconfiguration by name.

Hosts wiring the channel to a command line, a REPL or an admin endpoint deal
in strings; this wraps an IOChannel so they never touch token enums:

    reconfig = ChannelReconfig()
    reconfig.mute("debug")
    reconfig.set_verbosity("chatty")
    reconfig.configure_echo("print", "normal", "all")
    recent = reconfig.get_ring_buffer(n=50)
"""

from __future__ import annotations

from typing import Any

from iochannel.core import IOChannel
from iochannel.sinks import RingBufferSink
from iochannel.tokens import Category, EchoMode, Verbosity


class ChannelReconfig:
    """Name-based control surface for an IOChannel."""

    def __init__(self, channel: IOChannel | None = None):
        self._ioc = channel or IOChannel.instance()

    # ── Filtering ─────────────────────────────────────────────

    def mute(self, name: str | int) -> None:
        """Mute a category by name."""
        self._ioc.mute(Category.from_value(name))

    def unmute(self, name: str | int | None = None) -> None:
        """Unmute one category, or everything when no name is given."""
        self._ioc.unmute(None if name is None else Category.from_value(name))

    def set_verbosity(self, name: str | int) -> None:
        """Set the accepted verbosity ceiling."""
        self._ioc.mute(Verbosity.from_value(name))

    def get_verbosity(self) -> str:
        return self._ioc.process_verbosity.name.lower()

    def list_muted(self) -> list[str]:
        return [c.name.lower() for c in self._ioc.muted]

    # ── Echo ──────────────────────────────────────────────────

    def configure_echo(
        self,
        mode: str | int,
        verbosity: str | int = "tmi",
        category: str | int = "all",
    ) -> None:
        self._ioc.configure_echo(
            EchoMode.from_value(mode),
            Verbosity.from_value(verbosity),
            Category.from_value(category),
        )

    # ── Status ────────────────────────────────────────────────

    def status(self) -> dict[str, Any]:
        return self._ioc.status()

    # ── Ring buffer access ────────────────────────────────────

    def _ring(self, name: str) -> RingBufferSink | None:
        sink = self._ioc.get_sink(name)
        return sink if isinstance(sink, RingBufferSink) else None

    def get_ring_buffer(
        self,
        n: int = 100,
        categories: list[str] | None = None,
        name: str = "ring",
    ) -> list[dict[str, Any]]:
        """Recent messages from a ring buffer sink, as plain dicts."""
        ring = self._ring(name)
        if ring is None:
            return []
        wanted = [Category.from_value(c) for c in categories] if categories else None
        return [r.to_dict() for r in ring.get_recent(n, wanted)]

    def clear_ring_buffer(self, name: str = "ring") -> None:
        ring = self._ring(name)
        if ring is not None:
            ring.clear()
