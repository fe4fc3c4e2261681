"""
iochannel: categorized, verbosity-filtered output channel with
terminal attribute control, rich primitive formatting and memory
inspection, plus a one-character ASCII/UTF-8 unit.
"""

from iochannel.core import IOChannel, EchoPolicy
from iochannel.onechar import OneChar, CharKind, AscChar, UniChar, iter_chars
from iochannel.records import Message
from iochannel.routing import FilterPolicy, SubscriberRegistry, Subscription
from iochannel.sinks import Sink, TerminalSink, FileSink, RingBufferSink
from iochannel.state import FormatState
from iochannel.tokens import (
    Base,
    NumeralCase,
    SciNotation,
    CharValue,
    PointerMode,
    MemSep,
    TextAttr,
    TextFG,
    TextBG,
    Precision,
    ReadSize,
    Verbosity,
    Category,
    Ctrl,
    EchoMode,
)

__all__ = [
    "IOChannel",
    "EchoPolicy",
    "OneChar",
    "CharKind",
    "AscChar",
    "UniChar",
    "iter_chars",
    "Message",
    "FilterPolicy",
    "SubscriberRegistry",
    "Subscription",
    "Sink",
    "TerminalSink",
    "FileSink",
    "RingBufferSink",
    "FormatState",
    "Base",
    "NumeralCase",
    "SciNotation",
    "CharValue",
    "PointerMode",
    "MemSep",
    "TextAttr",
    "TextFG",
    "TextBG",
    "Precision",
    "ReadSize",
    "Verbosity",
    "Category",
    "Ctrl",
    "EchoMode",
]
