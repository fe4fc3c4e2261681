"""
Transient formatting state and ANSI SGR rendering.

A FormatState lives from one flush to the next. Color and attribute changes
raise the dirty flag; the channel turns a dirty state into one SGR escape
right before the next piece of content.
"""

from dataclasses import dataclass, field, fields

from iochannel.tokens import (
    Base,
    CharValue,
    MemSep,
    NumeralCase,
    PointerMode,
    SciNotation,
    TextAttr,
    TextBG,
    TextFG,
)

ESC = "\033"
DEFAULT_PRECISION = 14
DEFAULT_READ_SIZE = 1


def sgr(attr: int = 0, bg: int = 0, fg: int = 0) -> str:
    """
    ESC [ attr (; bg)? (; fg)? m

    Colors are only included when set; attr 0 doubles as the reset code.
    """
    parts = [str(int(attr))]
    if bg > 0:
        parts.append(str(int(bg)))
    if fg > 0:
        parts.append(str(int(fg)))
    return f"{ESC}[{';'.join(parts)}m"


@dataclass
class FormatState:
    base: Base = Base.DEC
    numcase: NumeralCase = NumeralCase.LOWER
    sci: SciNotation = SciNotation.AUTO
    precision: int = DEFAULT_PRECISION
    charval: CharValue = CharValue.AS_CHAR
    ptr: PointerMode = PointerMode.VALUE
    readsize: int = DEFAULT_READ_SIZE
    memformat: MemSep = MemSep.NONE
    fg: TextFG = TextFG.NONE
    bg: TextBG = TextBG.NONE
    attr: TextAttr = TextAttr.NONE
    dirty: bool = field(default=False, compare=False)

    @property
    def has_attributes(self) -> bool:
        return self.attr > 0 or self.fg > 0 or self.bg > 0

    def reset_attributes(self) -> None:
        """Back to plain text. Only marks dirty when something was set."""
        if self.has_attributes:
            self.attr = TextAttr.NONE
            self.fg = TextFG.NONE
            self.bg = TextBG.NONE
            self.dirty = True

    def reset(self) -> None:
        """Every field except the dirty flag back to its default."""
        self.reset_attributes()
        defaults = FormatState()
        for f in fields(self):
            if f.name != "dirty":
                setattr(self, f.name, getattr(defaults, f.name))

    def take_escape(self) -> str | None:
        """SGR for the current attributes if dirty, lowering the flag."""
        if not self.dirty:
            return None
        self.dirty = False
        return sgr(self.attr, self.bg, self.fg)

    def describe(self) -> dict:
        return {
            "base": self.base.name,
            "numcase": self.numcase.name,
            "sci": self.sci.name,
            "precision": self.precision,
            "charval": self.charval.name,
            "ptr": self.ptr.name,
            "readsize": self.readsize,
            "memformat": int(self.memformat),
            "fg": self.fg.name,
            "bg": self.bg.name,
            "attr": self.attr.name,
            "dirty": self.dirty,
        }
