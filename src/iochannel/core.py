"""
IOChannel: categorized, verbosity-filtered output channel.

Values and modifier tokens are pushed in; a flush marker ends the message
and hands it to every matching subscriber, then optionally echoes it:

    ioc = IOChannel.instance()
    ioc.subscribe_all(lambda msg, vrb, cat: print(msg, end=""))
    ioc << TextFG.RED << "err" << Ctrl.END          # "\\033[0;31merr\\033[0m\\n"
    ioc << Base.HEX << NumeralCase.UPPER << 255 << Ctrl.END   # "FF\\n"

Pointers are ctypes objects. Typed pointers (ctypes.pointer, POINTER casts)
can be dereferenced, shown as an address, or dumped as memory; c_void_p can
only be shown as an address or dumped using the current ReadSize.

Single-threaded by contract. Subscribers run inline and must not write back
into the channel that is calling them.
"""

import ctypes
import sys
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

from iochannel.config import ChannelConfig, SinkConfig
from iochannel.onechar import OneChar, nul_terminated
from iochannel.routing import FilterPolicy, SubscriberRegistry, Subscription
from iochannel.sinks import FileSink, RingBufferSink, Sink, TerminalSink
from iochannel.state import FormatState
from iochannel.stdutils import (
    double_to_str,
    int_to_str,
    memdump,
    ptr_to_str,
    read_memory,
)
from iochannel.tokens import (
    Base,
    Category,
    CharValue,
    Ctrl,
    EchoMode,
    MemSep,
    NumeralCase,
    PointerMode,
    Precision,
    ReadSize,
    SciNotation,
    TextAttr,
    TextBG,
    TextFG,
    Verbosity,
)

UNTYPED_VALUE_PLACEHOLDER = "[iochannel cannot interpret value at pointer of this type.]"
ALL_MUTED_WARNING = "WARNING: All message categories have been turned off!"

_CTYPES_UNSIGNED = (
    ctypes.c_ubyte, ctypes.c_ushort, ctypes.c_uint, ctypes.c_ulong,
    ctypes.c_ulonglong, ctypes.c_size_t,
)
_CTYPES_INTS = _CTYPES_UNSIGNED + (
    ctypes.c_byte, ctypes.c_short, ctypes.c_int, ctypes.c_long,
    ctypes.c_longlong, ctypes.c_ssize_t,
)
_CTYPES_FLOATS = (ctypes.c_float, ctypes.c_double, ctypes.c_longdouble)

# Pointees that a VALUE-mode dereference can re-append
_CTYPES_SCALARS = _CTYPES_INTS + _CTYPES_FLOATS + (
    ctypes.c_bool, ctypes.c_char, ctypes.c_char_p, ctypes.c_void_p, ctypes._Pointer,
)

_NEWLINE_MARKERS = {Ctrl.END, Ctrl.END_KEEP, Ctrl.ENDLINE, Ctrl.ENDLINE_KEEP}
_RESET_MARKERS = {Ctrl.END, Ctrl.SEND, Ctrl.ENDLINE}
_KEEP_TRANSMIT_MARKERS = {Ctrl.END_KEEP, Ctrl.SEND, Ctrl.SEND_KEEP}


@dataclass
class EchoPolicy:
    """Echo of transmitted messages to the process's stdout."""
    mode: EchoMode = EchoMode.NONE
    verbosity: Verbosity = Verbosity.TMI
    category: Category = Category.ALL

    def matches(self, verbosity: Verbosity, category: Category) -> bool:
        if self.mode is EchoMode.NONE:
            return False
        return verbosity <= self.verbosity and (
            self.category is Category.ALL or category == self.category
        )

    def describe(self) -> dict:
        return {
            "mode": self.mode.name,
            "verbosity": self.verbosity.name,
            "category": self.category.name,
        }


class IOChannel:
    """
    Message builder and dispatcher.

    Transient state (formatting, current verbosity/category, the message
    buffer) lives until the next resetting flush. Filter thresholds,
    subscribers, sinks and echo configuration live as long as the channel.
    """

    _instance: Optional["IOChannel"] = None
    _lock = threading.Lock()

    def __init__(self) -> None:
        self._msg = bytearray()
        self._state = FormatState()
        self._filter = FilterPolicy()
        self._subscribers = SubscriberRegistry()
        self._echo = EchoPolicy()
        self._sinks: dict[str, tuple[Sink, Subscription]] = {}
        self._vrb: Verbosity = Verbosity.NORMAL
        self._cat: Category = Category.NORMAL

    @classmethod
    def instance(cls) -> "IOChannel":
        """Get or create the process-wide channel."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """
        Drop the process-wide channel, closing its sinks.
        For testing and teardown.
        """
        with cls._lock:
            if cls._instance is not None:
                cls._instance.close()
                cls._instance = None

    # ── Configuration ─────────────────────────────────────────────

    def configure(self, config: dict | ChannelConfig) -> None:
        """
        Apply a configuration (parsed YAML dict or ChannelConfig):

            verbosity: chatty
            muted: [debug]
            echo: {mode: print, verbosity: normal, category: all}
            sinks:
                recent: {type: ring, ring_buffer_size: 500}
                logfile: {type: file, path: logs/app.log, categories: [warning, error]}
        """
        if not isinstance(config, ChannelConfig):
            config = ChannelConfig.from_dict(config)

        self._filter.mute_verbosity(config.verbosity)
        for category in config.muted:
            self.mute(category)

        if config.echo is not None:
            self.configure_echo(
                config.echo.mode, config.echo.verbosity, config.echo.category
            )

        for name, sink_cfg in (config.sinks or {}).items():
            self.add_sink(_build_sink(name, sink_cfg))

    def configure_defaults(self) -> None:
        """Echo everything to stdout with the widest filter."""
        self._filter.unmute()
        self.configure_echo(EchoMode.PRINT, Verbosity.TMI, Category.ALL)

    def configure_echo(
        self,
        mode: EchoMode,
        verbosity: Verbosity = Verbosity.TMI,
        category: Category = Category.ALL,
    ) -> None:
        self._echo = EchoPolicy(
            mode=EchoMode(mode),
            verbosity=Verbosity(verbosity),
            category=Category(category),
        )

    # ── Filtering ─────────────────────────────────────────────────

    def can_parse(self) -> bool:
        """Whether input is processed for the current verbosity and category."""
        return self._filter.accepts(self._vrb, self._cat)

    def mute(self, target: Category | Verbosity) -> None:
        """
        Category: stop accepting that category.
        Verbosity: lower the accepted verbosity ceiling to it.
        """
        if isinstance(target, Verbosity):
            self._filter.mute_verbosity(target)
        elif isinstance(target, Category):
            self._filter.mute_category(target)
            if self._filter.all_muted:
                print(ALL_MUTED_WARNING)
        else:
            raise TypeError(
                f"Expected Category or Verbosity, got {type(target).__name__}"
            )

    def unmute(self, category: Category | None = None) -> None:
        """Re-accept one category, or without one, everything."""
        self._filter.unmute(category)

    # ── Subscribers ───────────────────────────────────────────────

    def subscribe_verbosity(self, level: Verbosity, callback: Callable) -> Subscription:
        """callback(message, category) for every message with verbosity <= level."""
        return self._subscribers.add_verbosity(level, callback)

    def subscribe_category(self, category: Category, callback: Callable) -> Subscription:
        """callback(message, verbosity) for every message of this category."""
        return self._subscribers.add_category(category, callback)

    def subscribe_all(self, callback: Callable) -> Subscription:
        """callback(message, verbosity, category) for every message."""
        return self._subscribers.add_all(callback)

    def unsubscribe(self, subscription: Subscription) -> bool:
        return self._subscribers.remove(subscription)

    # ── Sinks ─────────────────────────────────────────────────────

    def add_sink(self, sink: Sink) -> Subscription:
        """Add or replace a sink by name."""
        self.remove_sink(sink.name)
        subscription = self._subscribers.add_all(sink.receive)
        self._sinks[sink.name] = (sink, subscription)
        return subscription

    def remove_sink(self, name: str) -> Sink | None:
        """Detach a sink by name. Returns it (already closed) or None."""
        entry = self._sinks.pop(name, None)
        if entry is None:
            return None
        sink, subscription = entry
        self._subscribers.remove(subscription)
        sink.close()
        return sink

    def get_sink(self, name: str) -> Sink | None:
        entry = self._sinks.get(name)
        return entry[0] if entry else None

    @property
    def sinks(self) -> dict[str, Sink]:
        return {name: sink for name, (sink, _) in self._sinks.items()}

    # ── Append ────────────────────────────────────────────────────

    def append(self, value: Any) -> "IOChannel":
        """
        Push one value or token.

        Flush markers and verbosity/category tokens always apply; everything
        else is ignored while the filter rejects the current message.
        """
        if isinstance(value, Ctrl):
            self._special(value)
        elif isinstance(value, Verbosity):
            self._vrb = value
        elif isinstance(value, Category):
            self._cat = value
        elif self.can_parse() and not self._apply_modifier(value):
            self._render(value)
        return self

    def __lshift__(self, value: Any) -> "IOChannel":
        return self.append(value)

    def write(self, value: Any) -> int:
        """File-like entry point, so print(..., file=channel) works."""
        self.append(value)
        return len(value) if isinstance(value, (str, bytes, bytearray)) else 0

    def _apply_modifier(self, value: Any) -> bool:
        """Update formatting state from a modifier token. False if not a token."""
        st = self._state
        if isinstance(value, Base):
            st.base = value
        elif isinstance(value, NumeralCase):
            st.numcase = value
        elif isinstance(value, SciNotation):
            st.sci = value
        elif isinstance(value, CharValue):
            st.charval = value
        elif isinstance(value, PointerMode):
            st.ptr = value
        elif isinstance(value, MemSep):
            st.memformat = MemSep.NONE if value == MemSep.NONE else st.memformat | value
        elif isinstance(value, TextFG):
            st.fg = value
            st.dirty = True
        elif isinstance(value, TextBG):
            st.bg = value
            st.dirty = True
        elif isinstance(value, TextAttr):
            st.attr = value
            st.dirty = True
        elif isinstance(value, Precision):
            st.precision = value.digits
        elif isinstance(value, ReadSize):
            st.readsize = value.size
        else:
            return False
        return True

    def _render(self, value: Any) -> None:
        """Append the text form of a data value."""
        if isinstance(value, bool):
            self._inject("TRUE" if value else "FALSE")
        elif isinstance(value, OneChar):
            self._put_char(value)
        elif isinstance(value, ctypes.c_char):
            self._put_char(OneChar.ascii(value.value))
        elif isinstance(value, ctypes.c_bool):
            self._render(bool(value.value))
        elif isinstance(value, int):
            self._put_int(value)
        elif isinstance(value, _CTYPES_INTS):
            self._put_int(
                value.value,
                signed=not isinstance(value, _CTYPES_UNSIGNED),
                width=ctypes.sizeof(value) * 8,
            )
        elif isinstance(value, (float, *_CTYPES_FLOATS)):
            number = value if isinstance(value, float) else value.value
            self._inject(double_to_str(number, self._state.precision, self._state.sci))
        elif isinstance(value, str):
            self._inject(value)
        elif isinstance(value, (bytes, bytearray, ctypes.c_char_p)):
            self._put_cstring(value)
        elif isinstance(value, ctypes._Pointer):
            self._put_pointer(value)
        elif isinstance(value, ctypes.c_void_p):
            self._put_untyped(value)
        else:
            raise TypeError(f"IOChannel cannot append {type(value).__name__}")

    def _put_char(self, ch: OneChar) -> None:
        if self._state.charval is CharValue.AS_INT:
            value = ch.value
            if not ch.is_unicode and value > 0x7F:
                value -= 0x100     # signed char
            self._put_int(value)
        else:
            self._inject(bytes(ch))

    def _put_int(self, value: int, signed: bool = True, width: int = 64) -> None:
        st = self._state
        self._inject(int_to_str(value, st.base, st.numcase, signed, width))

    def _put_cstring(self, value) -> None:
        if isinstance(value, ctypes.c_char_p):
            data = value.value or b""
        else:
            data = nul_terminated(value)

        mode = self._state.ptr
        if mode is PointerMode.VALUE:
            self._inject(data)
        elif mode is PointerMode.ADDRESS:
            self._inject_address(_buffer_address(value))
        else:
            # The terminator is part of the dump
            self._inject_dump(data + b"\0")

    def _put_pointer(self, ptr: ctypes._Pointer) -> None:
        address = ctypes.cast(ptr, ctypes.c_void_p).value
        mode = self._state.ptr
        if mode is PointerMode.VALUE:
            pointee = ptr.contents
            if isinstance(pointee, _CTYPES_SCALARS):
                self._render(pointee)
            else:
                self._inject(UNTYPED_VALUE_PLACEHOLDER)
        elif mode is PointerMode.ADDRESS:
            self._inject_address(address)
        else:
            self._inject_dump(read_memory(address, ctypes.sizeof(ptr._type_)))

    def _put_untyped(self, ptr: ctypes.c_void_p) -> None:
        mode = self._state.ptr
        if mode is PointerMode.VALUE:
            self._inject(UNTYPED_VALUE_PLACEHOLDER)
        elif mode is PointerMode.ADDRESS:
            self._inject_address(ptr.value)
        else:
            self._inject_dump(read_memory(ptr.value, self._state.readsize))

    def _inject_address(self, address: int | None) -> None:
        self._inject(ptr_to_str(address, self._state.numcase))

    def _inject_dump(self, data: bytes) -> None:
        st = self._state
        self._inject(memdump(data, st.numcase, st.memformat))

    def _inject(self, text: str | bytes) -> None:
        """Append to the message, preceded by any pending SGR escape."""
        escape = self._state.take_escape()
        if escape:
            self._msg += escape.encode("ascii")
        if isinstance(text, str):
            text = text.encode("utf-8")
        self._msg += text

    # ── Flush markers and dispatch ────────────────────────────────

    def _special(self, ctrl: Ctrl) -> None:
        if ctrl in _RESET_MARKERS:
            self._state.reset_attributes()

        # Always inject so a pending escape lands in this message, even when
        # the filter rejects the newline
        newline = ctrl in _NEWLINE_MARKERS and self.can_parse()
        self._inject("\n" if newline else "")

        if ctrl is Ctrl.END:
            self._transmit(keep=False)
        elif ctrl in _KEEP_TRANSMIT_MARKERS:
            self._transmit(keep=True)

    def _transmit(self, keep: bool) -> None:
        if not self._msg:
            return

        message = self._msg.decode("utf-8", errors="replace")
        vrb, cat = self._vrb, self._cat

        self._subscribers.dispatch(message, vrb, cat)

        if self._echo.matches(vrb, cat):
            if self._echo.mode is EchoMode.PRINT:
                print(message, end="")
            else:
                sys.stdout.write(message)
                sys.stdout.flush()

        if not keep:
            self._reset_flags()

        self._msg.clear()

    def _reset_flags(self) -> None:
        self._state.reset()
        self._vrb = Verbosity.NORMAL
        self._cat = Category.NORMAL

    # ── Introspection ─────────────────────────────────────────────

    @property
    def message(self) -> str:
        """The message being built, escapes included."""
        return self._msg.decode("utf-8", errors="replace")

    @property
    def state(self) -> FormatState:
        return self._state

    @property
    def verbosity(self) -> Verbosity:
        """Verbosity of the message being built."""
        return self._vrb

    @property
    def category(self) -> Category:
        """Category of the message being built."""
        return self._cat

    @property
    def process_verbosity(self) -> Verbosity:
        return self._filter.verbosity

    @property
    def muted(self) -> list[Category]:
        return self._filter.muted

    @property
    def echo(self) -> EchoPolicy:
        return self._echo

    def status(self) -> dict:
        """Snapshot of the channel's configuration and pending state."""
        return {
            "filter": self._filter.describe(),
            "current": {
                "verbosity": self._vrb.name,
                "category": self._cat.name,
                "pending_bytes": len(self._msg),
            },
            "format": self._state.describe(),
            "echo": self._echo.describe(),
            "subscribers": self._subscribers.describe(),
            "sinks": {name: sink.describe() for name, sink in self.sinks.items()},
        }

    # ── Cleanup ───────────────────────────────────────────────────

    def flush(self) -> None:
        """Flush all sinks. Does not transmit; use a Ctrl marker for that."""
        for sink, _ in self._sinks.values():
            sink.flush()

    def close(self) -> None:
        """Close all sinks. Call during shutdown."""
        for sink, _ in self._sinks.values():
            sink.close()


# ── Helpers ───────────────────────────────────────────────────────────

def _buffer_address(value) -> int:
    """Address of the bytes behind a byte-string input."""
    if isinstance(value, ctypes.c_char_p):
        return ctypes.cast(value, ctypes.c_void_p).value or 0
    if isinstance(value, bytes):
        return ctypes.cast(ctypes.c_char_p(value), ctypes.c_void_p).value or 0
    if not value:
        return 0
    buf = (ctypes.c_char * len(value)).from_buffer(value)
    return ctypes.addressof(buf)


def _build_sink(name: str, cfg: SinkConfig) -> Sink:
    """Build a sink from its config entry."""
    common = {
        "name": name,
        "max_verbosity": cfg.max_verbosity,
        "categories": cfg.categories,
    }
    if cfg.type == "terminal":
        return TerminalSink(color=cfg.color if cfg.color is not None else True, **common)
    elif cfg.type == "file":
        return FileSink(path=cfg.path or "logs/iochannel.log", **common)
    elif cfg.type == "ring":
        return RingBufferSink(ring_buffer_size=cfg.ring_buffer_size or 10000, **common)
    else:
        raise ValueError(f"Unknown sink type '{cfg.type}' for sink '{name}'")
