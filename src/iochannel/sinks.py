"""
Sinks: ready-made subscribers.

One channel, many destinations. A sink registers on the channel's "all"
signal and applies its own verbosity ceiling and category set before
emitting, much like a subscriber that cares about more than one axis.

    ioc.add_sink(TerminalSink(color=True))
    ioc.add_sink(RingBufferSink(name="recent", ring_buffer_size=500))
"""

import sys
from abc import ABC, abstractmethod
from collections import deque
from pathlib import Path
from typing import Iterable

from iochannel.records import Message
from iochannel.state import sgr
from iochannel.tokens import Category, TextAttr, TextFG, Verbosity


class Sink(ABC):
    """Base sink. Receives finished messages that pass its own filter."""

    def __init__(
        self,
        name: str,
        max_verbosity: Verbosity = Verbosity.TMI,
        categories: Iterable[Category] | None = None,
    ):
        self.name = name
        self.max_verbosity = Verbosity(max_verbosity)
        self.categories = (
            frozenset(Category(c) for c in categories) if categories else None
        )

    def accepts(self, verbosity: Verbosity, category: Category) -> bool:
        if verbosity > self.max_verbosity:
            return False
        return self.categories is None or category in self.categories

    def receive(self, message: str, verbosity: Verbosity, category: Category) -> None:
        """Subscriber callback for the channel's "all" signal."""
        if self.accepts(verbosity, category):
            self.emit(Message.create(message, verbosity, category))

    @abstractmethod
    def emit(self, record: Message) -> None:
        """Write one record. Called only after accepts() passed."""
        ...

    def flush(self) -> None:
        """Flush buffered output. Override in buffered sinks."""
        pass

    def close(self) -> None:
        """Cleanup. Override if the sink holds resources."""
        self.flush()

    def describe(self) -> dict:
        return {
            "type": type(self).__name__,
            "max_verbosity": self.max_verbosity.name,
            "categories": sorted(c.name for c in self.categories) if self.categories else "ALL",
        }


class TerminalSink(Sink):
    """
    Writes to stdout with optional color per category.
    ERROR messages go to stderr.
    """

    COLORS = {
        Category.DEBUG: sgr(fg=TextFG.CYAN),
        Category.WARNING: sgr(fg=TextFG.YELLOW),
        Category.ERROR: sgr(TextAttr.BOLD, fg=TextFG.RED),
    }
    RESET = sgr()

    def __init__(
        self,
        name: str = "terminal",
        max_verbosity: Verbosity = Verbosity.TMI,
        categories: Iterable[Category] | None = None,
        color: bool = True,
    ):
        super().__init__(name, max_verbosity, categories)
        self.color = color

    def emit(self, record: Message) -> None:
        text = record.text
        if self.color and record.category in self.COLORS:
            # Reset before the newline so the next line starts clean
            tail = "\n" if text.endswith("\n") else ""
            text = f"{self.COLORS[record.category]}{record.line}{self.RESET}{tail}"
        stream = sys.stderr if record.category is Category.ERROR else sys.stdout
        print(text, end="", file=stream, flush=True)


class FileSink(Sink):
    """Appends message text to a UTF-8 file, creating parent directories."""

    def __init__(
        self,
        name: str = "logfile",
        max_verbosity: Verbosity = Verbosity.TMI,
        categories: Iterable[Category] | None = None,
        path: str | Path = "logs/iochannel.log",
    ):
        super().__init__(name, max_verbosity, categories)
        self.path = Path(path)
        self._file = None

    def _ensure_file(self) -> None:
        if self._file is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.path, "a", encoding="utf-8")

    def emit(self, record: Message) -> None:
        self._ensure_file()
        self._file.write(record.text)

    def flush(self) -> None:
        if self._file:
            self._file.flush()

    def close(self) -> None:
        self.flush()
        if self._file:
            self._file.close()
            self._file = None


class RingBufferSink(Sink):
    """Keeps the last N records in memory. Does not grow unbounded."""

    def __init__(
        self,
        name: str = "ring",
        max_verbosity: Verbosity = Verbosity.TMI,
        categories: Iterable[Category] | None = None,
        ring_buffer_size: int = 10000,
    ):
        super().__init__(name, max_verbosity, categories)
        self._buffer: deque[Message] = deque(maxlen=ring_buffer_size)

    def emit(self, record: Message) -> None:
        self._buffer.append(record)

    def get_recent(
        self, n: int = 100, categories: Iterable[Category] | None = None
    ) -> list[Message]:
        """Most recent records, oldest first, optionally filtered by category."""
        records = list(self._buffer)
        if categories:
            wanted = {Category(c) for c in categories}
            records = [r for r in records if r.category in wanted]
        return records[-n:]

    def clear(self) -> None:
        self._buffer.clear()

    @property
    def count(self) -> int:
        return len(self._buffer)

    @property
    def capacity(self) -> int:
        return self._buffer.maxlen

    def describe(self) -> dict:
        info = super().describe()
        info.update(count=self.count, capacity=self.capacity)
        return info
