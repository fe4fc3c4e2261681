"""
Format modifier tokens, verbosity/category labels and flush markers.

Every token is an opaque value carrying one formatting decision. They are
pushed into an IOChannel exactly like data:

    ioc << Base.HEX << NumeralCase.UPPER << 255 << Ctrl.END

Numeric values of the text attribute and color tokens are ECMA-48 SGR codes.
"""

from dataclasses import dataclass
from enum import IntEnum, IntFlag


class _Token(IntEnum):
    """IntEnum with name/value resolution shared by all token families."""

    @classmethod
    def from_name(cls, name: str):
        """Resolve a token from its name, case-insensitive."""
        key = name.strip().upper().replace("-", "_")
        try:
            return cls[key]
        except KeyError:
            raise ValueError(
                f"Unknown {cls.__name__} '{name}'. "
                f"Valid names: {', '.join(m.name.lower() for m in cls)}"
            )

    @classmethod
    def from_value(cls, value):
        """Resolve a token from an int, a name, or an existing member."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            return cls.from_name(value)
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise ValueError(
                    f"No {cls.__name__} with value {value}. "
                    f"Valid values: {', '.join(f'{m.name}={m.value}' for m in cls)}"
                )
        raise TypeError(f"Expected int or str, got {type(value).__name__}")


class Base(_Token):
    """Positional numeral base used for integer rendering."""
    BIN = 2
    TER = 3
    QUAT = 4
    QUIN = 5
    SEN = 6
    SEPT = 7
    OCT = 8
    NON = 9
    DEC = 10
    UNDEC = 11
    DUODEC = 12
    TRIDEC = 13
    TETRADEC = 14
    PENTADEC = 15
    HEX = 16


class NumeralCase(_Token):
    """Letter case for digits >= 10 (and hex dumps / addresses)."""
    LOWER = 0
    UPPER = 1


class SciNotation(_Token):
    """Scientific notation policy for floating point values."""
    NONE = 0     # always fixed
    SCI = 1      # always scientific
    AUTO = 2


class CharValue(_Token):
    """Whether single characters are written as characters or integers."""
    AS_CHAR = 0
    AS_INT = 1


class PointerMode(_Token):
    """How pointer inputs are interpreted."""
    VALUE = 0
    ADDRESS = 1
    MEMORY = 2


class MemSep(IntFlag):
    """Memory dump separator flags. NONE clears the mask, others OR in."""
    NONE = 0
    BYTE = 1
    WORD = 2


class TextAttr(_Token):
    NONE = 0
    BOLD = 1
    FAINT = 2
    ITALIC = 3
    UNDERLINE = 4
    BLINK = 5
    INVERT = 7
    HIDDEN = 8
    STRIKE = 9


class TextFG(_Token):
    NONE = 0
    BLACK = 30
    RED = 31
    GREEN = 32
    YELLOW = 33
    BLUE = 34
    MAGENTA = 35
    CYAN = 36
    WHITE = 37


class TextBG(_Token):
    NONE = 0
    BLACK = 40
    RED = 41
    GREEN = 42
    YELLOW = 43
    BLUE = 44
    MAGENTA = 45
    CYAN = 46
    WHITE = 47


class Verbosity(_Token):
    """Totally ordered noise level of a message. Lower is more important."""
    QUIET = 0
    NORMAL = 1
    CHATTY = 2
    TMI = 3


class Category(_Token):
    """Kind of message. ALL is a selector, never a per-message signal."""
    NORMAL = 0
    DEBUG = 1
    WARNING = 2
    ERROR = 3
    ALL = 4

    @property
    def mask(self) -> int:
        """Bit of this category in a category mask."""
        if self is Category.ALL:
            return CATEGORY_MASK_ALL
        return 1 << self.value


# Every real category bit set
CATEGORY_MASK_ALL = 0b1111


class Ctrl(_Token):
    """
    Flush markers. Each is a combination of three choices:
    append a newline, transmit the message, reset formatting flags.
    """
    END = 0            # newline, transmit, reset
    END_KEEP = 1       # newline, transmit
    SEND = 2           # transmit (attributes reset first)
    SEND_KEEP = 3      # transmit
    ENDLINE = 4        # newline, attributes reset
    ENDLINE_KEEP = 5   # newline


class EchoMode(_Token):
    """Where transmitted messages are echoed to in the host process."""
    NONE = 0
    PRINT = 1      # print() to stdout
    STREAM = 2     # direct write to sys.stdout


@dataclass(frozen=True)
class Precision:
    """Number of significant digits for floating point values."""
    digits: int = 14

    def __post_init__(self) -> None:
        if self.digits < 0:
            raise ValueError(f"Precision must be non-negative, got {self.digits}")


@dataclass(frozen=True)
class ReadSize:
    """Bytes to dump from an untyped pointer in memory mode."""
    size: int = 1

    def __post_init__(self) -> None:
        if self.size < 0:
            raise ValueError(f"Read size must be non-negative, got {self.size}")
