"""
Numeric and memory rendering utilities.

Stateless, pure functions. The channel calls these for every primitive it
renders; they are equally usable on their own.

    int_to_str(255, Base.HEX, NumeralCase.UPPER)   -> "FF"
    double_to_str(0.00001, 14, SciNotation.AUTO)    -> "1e-05"
    memdump(b"\\xde\\xad", separators=MemSep.BYTE)  -> "de ad"
"""

import ctypes
import math
from decimal import Decimal

from iochannel.tokens import MemSep, NumeralCase, SciNotation

_DIGITS_LOWER = "0123456789abcdef"
_DIGITS_UPPER = "0123456789ABCDEF"

# Hex digits needed for a native pointer
POINTER_DIGITS = ctypes.sizeof(ctypes.c_void_p) * 2


def _check_base(base: int) -> int:
    base = int(base)
    if not 2 <= base <= 16:
        raise ValueError(f"Base must be in [2, 16], got {base}")
    return base


def _wrap(value: int, signed: bool, width: int) -> int:
    """Unsigned values wrap modulo 2**width, like a fixed-width integer."""
    if signed:
        return value
    return value % (1 << width)


# ── Integers ──────────────────────────────────────────────────────────

def int_length(value: int, base: int = 10, signed: bool = True, width: int = 64) -> int:
    """Number of characters int_to_str() produces, including any sign."""
    base = _check_base(base)
    value = _wrap(int(value), signed, width)
    length = 1 if value < 0 else 0
    magnitude = abs(value)
    length += 1
    while magnitude >= base:
        magnitude //= base
        length += 1
    return length


def int_to_str(
    value: int,
    base: int = 10,
    numcase: NumeralCase = NumeralCase.LOWER,
    signed: bool = True,
    width: int = 64,
) -> str:
    """
    Render an integer positionally in the given base.

    No prefix is added. Negative signed values get a leading '-'.
    Unsigned rendering of a negative value wraps at `width` bits.
    """
    base = _check_base(base)
    value = _wrap(int(value), signed, width)
    digits = _DIGITS_UPPER if numcase == NumeralCase.UPPER else _DIGITS_LOWER

    negative = value < 0
    magnitude = abs(value)
    out = []
    while True:
        magnitude, rem = divmod(magnitude, base)
        out.append(digits[rem])
        if not magnitude:
            break
    if negative:
        out.append("-")
    return "".join(reversed(out))


# ── Floating point ────────────────────────────────────────────────────

def _strip_fraction(text: str) -> str:
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def double_to_str(
    value: float,
    precision: int = 14,
    sci: SciNotation = SciNotation.AUTO,
) -> str:
    """
    Render a float with at most `precision` significant digits.

    AUTO switches to scientific form when |value| < 1e-4 or
    |value| >= 10**precision (zero always stays fixed). NONE is always
    fixed, SCI always scientific. Non-finite values render as nan/inf.
    """
    value = float(value)
    digits = max(int(precision), 1)

    if not math.isfinite(value):
        return str(value)

    if sci == SciNotation.AUTO:
        return f"{value:.{digits}g}"

    if sci == SciNotation.SCI:
        mantissa, exponent = f"{value:.{digits - 1}e}".split("e")
        return f"{_strip_fraction(mantissa)}e{exponent}"

    # Round to significant digits first, then expand without an exponent
    rounded = Decimal(f"{value:.{digits}g}")
    return _strip_fraction(format(rounded, "f"))


# ── Pointers and memory ───────────────────────────────────────────────

def ptr_to_str(address: int | None, numcase: NumeralCase = NumeralCase.LOWER) -> str:
    """Hex address zero padded to the native pointer width."""
    text = f"{address or 0:0{POINTER_DIGITS}x}"
    return text.upper() if numcase == NumeralCase.UPPER else text


def memdump(
    data: bytes,
    numcase: NumeralCase = NumeralCase.LOWER,
    separators: MemSep = MemSep.NONE,
) -> str:
    """
    Two hex digits per byte.

    BYTE puts a space between adjacent bytes, WORD a '|' between 8-byte
    words. With both, the '|' replaces the space at word boundaries.
    """
    fmt = "02X" if numcase == NumeralCase.UPPER else "02x"
    byte_sep = bool(separators & MemSep.BYTE)
    word_sep = bool(separators & MemSep.WORD)

    parts = []
    for i, byte in enumerate(data):
        if i:
            if word_sep and i % 8 == 0:
                parts.append("|")
            elif byte_sep:
                parts.append(" ")
        parts.append(format(byte, fmt))
    return "".join(parts)


def read_memory(address: int | None, length: int) -> bytes:
    """Copy `length` bytes starting at a raw address."""
    if length <= 0:
        return b""
    if not address:
        raise ValueError("Cannot read memory at a NULL address")
    return ctypes.string_at(address, length)
