"""
Delivered message records.

Subscribers receive plain text plus the orthogonal axis value. Sinks wrap
each delivery in a Message so they can store, filter and format it later.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

from iochannel.tokens import Category, Verbosity


@dataclass(frozen=True)
class Message:
    """Immutable record of one transmitted message."""
    timestamp: datetime
    text: str
    verbosity: Verbosity
    category: Category

    @classmethod
    def create(
        cls,
        text: str,
        verbosity: Verbosity = Verbosity.NORMAL,
        category: Category = Category.NORMAL,
    ) -> "Message":
        """Factory with auto-timestamp."""
        return cls(
            timestamp=datetime.now(timezone.utc),
            text=text,
            verbosity=Verbosity(verbosity),
            category=Category(category),
        )

    @property
    def line(self) -> str:
        """Text without its trailing newline."""
        return self.text[:-1] if self.text.endswith("\n") else self.text

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "text": self.text,
            "verbosity": self.verbosity.name,
            "category": self.category.name,
        }
