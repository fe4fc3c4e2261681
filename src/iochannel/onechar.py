"""
OneChar: one user-perceived character, ASCII or UTF-8.

A OneChar is a tagged value. The tag (CharKind) is fixed when the unit is
constructed and decides the storage shape:

    ASCII    one byte
    UNICODE  a 5-byte slot holding 1-4 UTF-8 bytes and a NUL terminator

Both kinds share one set of operations (subscript, assign, compare, print),
so string containers can walk text as characters instead of raw bytes:

    for ch in iter_chars("naïve ☃".encode()):
        ch.print(sys.stdout.buffer)

UTF-8 validity is not checked; callers hand in well-formed sequences.
"""

from enum import IntEnum
from functools import total_ordering
from typing import Iterator

ASCII_CAPACITY = 1
UNICODE_CAPACITY = 5      # 4 UTF-8 bytes + NUL
MAX_UTF8_BYTES = 4


class CharKind(IntEnum):
    ASCII = 0
    UNICODE = 1


def nul_terminated(value) -> bytes:
    """Bytes of a NUL-terminated sequence, up to (not including) the NUL."""
    if isinstance(value, str):
        value = value.encode("utf-8")
    value = bytes(value)
    nul = value.find(b"\0")
    return value if nul < 0 else value[:nul]


def char_byte(value: int) -> int | None:
    """
    A char value as its unsigned byte. Negative values in [-128, -1] are
    signed chars; anything outside [-128, 255] has no byte and gives None.
    """
    if -0x80 <= value < 0:
        return value & 0xFF
    if 0 <= value <= 0xFF:
        return value
    return None


@total_ordering
class OneChar:
    """A single ASCII or Unicode character with a uniform contract."""

    __slots__ = ("_kind", "_data")

    def __init__(self, kind: CharKind = CharKind.ASCII, value=None) -> None:
        self._kind = CharKind(kind)
        capacity = UNICODE_CAPACITY if self._kind is CharKind.UNICODE else ASCII_CAPACITY
        self._data = bytearray(capacity)
        if value is not None:
            self.assign(value)

    @classmethod
    def ascii(cls, value=0) -> "OneChar":
        return cls(CharKind.ASCII, value)

    @classmethod
    def unicode(cls, value=b"") -> "OneChar":
        return cls(CharKind.UNICODE, value)

    # ── Introspection ─────────────────────────────────────────────

    @property
    def kind(self) -> CharKind:
        return self._kind

    @property
    def is_unicode(self) -> bool:
        return self._kind is CharKind.UNICODE

    @property
    def significant(self) -> bytes:
        """The stored bytes up to the first NUL."""
        return nul_terminated(self._data)

    @property
    def value(self) -> int:
        """
        Integer value: the byte for ASCII, the codepoint for Unicode.
        Sequences that do not decode to one codepoint fall back to the
        big-endian integer of their bytes.
        """
        sig = self.significant
        if self._kind is CharKind.ASCII:
            return self._data[0]
        try:
            text = sig.decode("utf-8")
        except UnicodeDecodeError:
            text = ""
        if len(text) == 1:
            return ord(text)
        return int.from_bytes(sig, "big")

    # ── Raw storage access ────────────────────────────────────────

    def __getitem__(self, pos: int) -> int:
        return self._data[pos]

    def __setitem__(self, pos: int, byte: int) -> None:
        self._data[pos] = byte

    # ── Assignment ────────────────────────────────────────────────

    def assign(self, value) -> "OneChar":
        """
        Replace the content from a byte (int), a NUL-terminated sequence
        (bytes, bytearray, str) or another OneChar.

        Copying from another OneChar takes over its kind as well. The ASCII
        kind leaves itself unchanged when given more than one significant byte.
        """
        if isinstance(value, OneChar):
            self._kind = value._kind
            self._data = bytearray(value._data)
            return self

        if isinstance(value, int) and not isinstance(value, bool):
            byte = char_byte(value)
            if byte is None:
                raise ValueError(f"Character value out of range: {value}")
            self._data[:] = bytes(len(self._data))
            self._data[0] = byte
            return self

        if isinstance(value, (bytes, bytearray, memoryview, str)):
            seq = nul_terminated(value)
            if self._kind is CharKind.ASCII:
                if len(seq) > 1:
                    return self
                self._data[0] = seq[0] if seq else 0
                return self
            seq = seq[:MAX_UTF8_BYTES]
            self._data[:] = seq + bytes(UNICODE_CAPACITY - len(seq))
            return self

        raise TypeError(
            f"Cannot assign {type(value).__name__} to OneChar"
        )

    # ── Comparison ────────────────────────────────────────────────

    @staticmethod
    def _other_bytes(other) -> bytes | None:
        if isinstance(other, OneChar):
            return other.significant
        if isinstance(other, int) and not isinstance(other, bool):
            byte = char_byte(other)
            return None if byte is None else nul_terminated(bytes([byte]))
        if isinstance(other, (bytes, bytearray, memoryview, str)):
            return nul_terminated(other)
        return None

    def __eq__(self, other) -> bool:
        theirs = self._other_bytes(other)
        if theirs is None:
            if isinstance(other, int) and not isinstance(other, bool):
                return False
            return NotImplemented
        return self.significant == theirs

    def __lt__(self, other) -> bool:
        theirs = self._other_bytes(other)
        if theirs is None:
            return NotImplemented
        return self.significant < theirs

    __hash__ = None  # mutable

    # ── Output ────────────────────────────────────────────────────

    def __len__(self) -> int:
        return len(self.significant)

    def __bytes__(self) -> bytes:
        return self.significant

    def __str__(self) -> str:
        return self.significant.decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        name = "UniChar" if self.is_unicode else "AscChar"
        return f"{name}({self.significant!r})"

    def print(self, sink):
        """Write the significant bytes to a byte sink (anything with write())."""
        sink.write(self.significant)
        return sink


# Variant constructors
AscChar = OneChar.ascii
UniChar = OneChar.unicode


def utf8_length(lead: int) -> int:
    """Length of the UTF-8 sequence starting with `lead`. Stray bytes count as 1."""
    if lead < 0x80:
        return 1
    if lead >> 5 == 0b110:
        return 2
    if lead >> 4 == 0b1110:
        return 3
    if lead >> 3 == 0b11110:
        return 4
    return 1


def iter_chars(data: bytes | str) -> Iterator[OneChar]:
    """Split UTF-8 text into character units, ASCII where a byte suffices."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    i = 0
    while i < len(data):
        lead = data[i]
        n = utf8_length(lead)
        chunk = data[i:i + n]
        if n == 1 and lead < 0x80:
            yield OneChar.ascii(lead)
        else:
            yield OneChar.unicode(chunk)
        i += n
