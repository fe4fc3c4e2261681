"""
Tests for sinks and message records.

Covers:
- Message record
- Terminal, file and ring buffer sinks
- Per-sink verbosity and category filters
- Sink registration on a channel
"""

import io
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from iochannel.core import IOChannel
from iochannel.records import Message
from iochannel.sinks import FileSink, RingBufferSink, TerminalSink
from iochannel.tokens import Category, Ctrl, Verbosity


@pytest.fixture(autouse=True)
def reset_channel():
    IOChannel.reset()
    yield
    IOChannel.reset()


# ═══════════════════════════════════════════════════════════════════
#  Message
# ═══════════════════════════════════════════════════════════════════

class TestMessage:
    def test_create_defaults(self):
        record = Message.create("hello\n")
        assert record.verbosity is Verbosity.NORMAL
        assert record.category is Category.NORMAL
        assert record.timestamp.tzinfo is not None

    def test_create_coerces_ints(self):
        record = Message.create("x", 2, 3)
        assert record.verbosity is Verbosity.CHATTY
        assert record.category is Category.ERROR

    def test_frozen(self):
        record = Message.create("x")
        with pytest.raises(AttributeError):
            record.text = "y"

    def test_line_strips_one_newline(self):
        assert Message.create("a\n\n").line == "a\n"
        assert Message.create("a").line == "a"

    def test_to_dict(self):
        ts = datetime(2026, 1, 15, 10, 0, 0, tzinfo=timezone.utc)
        record = Message(ts, "w\n", Verbosity.QUIET, Category.WARNING)
        assert record.to_dict() == {
            "timestamp": "2026-01-15T10:00:00+00:00",
            "text": "w\n",
            "verbosity": "QUIET",
            "category": "WARNING",
        }


# ═══════════════════════════════════════════════════════════════════
#  Sinks
# ═══════════════════════════════════════════════════════════════════

class TestSinkFilter:
    def test_max_verbosity(self):
        sink = RingBufferSink(max_verbosity=Verbosity.NORMAL)
        assert sink.accepts(Verbosity.QUIET, Category.NORMAL)
        assert sink.accepts(Verbosity.NORMAL, Category.NORMAL)
        assert not sink.accepts(Verbosity.CHATTY, Category.NORMAL)

    def test_categories(self):
        sink = RingBufferSink(categories=[Category.WARNING, Category.ERROR])
        assert sink.accepts(Verbosity.TMI, Category.ERROR)
        assert not sink.accepts(Verbosity.QUIET, Category.DEBUG)

    def test_receive_skips_rejected(self):
        sink = RingBufferSink(categories=[Category.ERROR])
        sink.receive("dropped\n", Verbosity.NORMAL, Category.NORMAL)
        sink.receive("kept\n", Verbosity.NORMAL, Category.ERROR)
        assert [r.text for r in sink.get_recent()] == ["kept\n"]

    def test_describe(self):
        sink = RingBufferSink(max_verbosity=Verbosity.CHATTY, categories=[Category.DEBUG])
        info = sink.describe()
        assert info["type"] == "RingBufferSink"
        assert info["max_verbosity"] == "CHATTY"
        assert info["categories"] == ["DEBUG"]


class TestTerminalSink:
    def test_emit_to_stdout(self, capsys):
        sink = TerminalSink(color=False)
        sink.emit(Message.create("hello terminal\n"))
        assert capsys.readouterr().out == "hello terminal\n"

    def test_error_to_stderr(self, capsys):
        sink = TerminalSink(color=False)
        sink.emit(Message.create("bad thing\n", category=Category.ERROR))
        captured = capsys.readouterr()
        assert captured.err == "bad thing\n"
        assert captured.out == ""

    def test_color_codes_applied(self):
        sink = TerminalSink(color=True)
        record = Message.create("careful\n", category=Category.WARNING)
        with patch("sys.stdout", new_callable=io.StringIO) as mock:
            sink.emit(record)
            assert mock.getvalue() == "\033[0;33mcareful\033[0m\n"

    def test_normal_is_uncolored(self):
        sink = TerminalSink(color=True)
        with patch("sys.stdout", new_callable=io.StringIO) as mock:
            sink.emit(Message.create("plain\n"))
            assert mock.getvalue() == "plain\n"


class TestFileSink:
    def test_writes_to_file(self, tmp_path):
        log_path = tmp_path / "channel.log"
        sink = FileSink(path=log_path)
        sink.emit(Message.create("first\n"))
        sink.emit(Message.create("second\n"))
        sink.close()
        assert log_path.read_text(encoding="utf-8") == "first\nsecond\n"

    def test_appends(self, tmp_path):
        log_path = tmp_path / "channel.log"
        log_path.write_text("old\n", encoding="utf-8")
        sink = FileSink(path=log_path)
        sink.emit(Message.create("new\n"))
        sink.close()
        assert log_path.read_text(encoding="utf-8") == "old\nnew\n"

    def test_creates_directory(self, tmp_path):
        log_path = tmp_path / "nested" / "dir" / "channel.log"
        sink = FileSink(path=log_path)
        sink.emit(Message.create("nested\n"))
        sink.close()
        assert log_path.exists()

    def test_lazy_open(self, tmp_path):
        log_path = tmp_path / "never.log"
        sink = FileSink(path=log_path)
        sink.close()
        assert not log_path.exists()


class TestRingBufferSink:
    def test_bounded(self):
        sink = RingBufferSink(ring_buffer_size=3)
        for i in range(5):
            sink.emit(Message.create(f"{i}\n"))
        assert sink.count == 3
        assert sink.capacity == 3
        assert [r.text for r in sink.get_recent()] == ["2\n", "3\n", "4\n"]

    def test_get_recent_n(self):
        sink = RingBufferSink()
        for i in range(10):
            sink.emit(Message.create(f"{i}\n"))
        assert [r.text for r in sink.get_recent(2)] == ["8\n", "9\n"]

    def test_get_recent_by_category(self):
        sink = RingBufferSink()
        sink.emit(Message.create("n\n"))
        sink.emit(Message.create("w\n", category=Category.WARNING))
        sink.emit(Message.create("e\n", category=Category.ERROR))
        recent = sink.get_recent(categories=[Category.ERROR, Category.WARNING])
        assert [r.text for r in recent] == ["w\n", "e\n"]

    def test_clear(self):
        sink = RingBufferSink()
        sink.emit(Message.create("x\n"))
        sink.clear()
        assert sink.count == 0


# ═══════════════════════════════════════════════════════════════════
#  Sinks on a channel
# ═══════════════════════════════════════════════════════════════════

class TestChannelSinks:
    def test_sink_receives_messages(self):
        ioc = IOChannel.instance()
        ring = RingBufferSink()
        ioc.add_sink(ring)
        ioc << Verbosity.CHATTY << Category.DEBUG << "d" << Ctrl.END
        (record,) = ring.get_recent()
        assert record.text == "d\n"
        assert record.verbosity is Verbosity.CHATTY
        assert record.category is Category.DEBUG

    def test_add_replaces_by_name(self):
        ioc = IOChannel.instance()
        first = RingBufferSink(name="ring")
        second = RingBufferSink(name="ring")
        ioc.add_sink(first)
        ioc.add_sink(second)
        ioc << "x" << Ctrl.END
        assert first.count == 0
        assert second.count == 1
        assert ioc.get_sink("ring") is second

    def test_remove_sink(self, tmp_path):
        ioc = IOChannel.instance()
        ioc.add_sink(FileSink(path=tmp_path / "a.log"))
        removed = ioc.remove_sink("logfile")
        assert isinstance(removed, FileSink)
        assert ioc.sinks == {}
        assert ioc.remove_sink("logfile") is None

    def test_removed_sink_stops_receiving(self):
        ioc = IOChannel.instance()
        ring = RingBufferSink()
        ioc.add_sink(ring)
        ioc.remove_sink("ring")
        ioc << "x" << Ctrl.END
        assert ring.count == 0

    def test_reset_closes_file_sinks(self, tmp_path):
        ioc = IOChannel.instance()
        sink = FileSink(path=tmp_path / "b.log")
        ioc.add_sink(sink)
        ioc << "persisted" << Ctrl.END
        IOChannel.reset()
        assert (tmp_path / "b.log").read_text(encoding="utf-8") == "persisted\n"

    def test_status_lists_sinks(self):
        ioc = IOChannel.instance()
        ioc.add_sink(RingBufferSink(ring_buffer_size=5))
        status = ioc.status()
        assert status["sinks"]["ring"]["capacity"] == 5
        assert status["subscribers"]["all"] == 1
