"""
Filtering policy and subscriber registry.

FilterPolicy decides whether the channel processes input at all for the
current (verbosity, category). SubscriberRegistry decides who receives a
finished message:

1. Verbosity subscribers at the message's level and every louder level
   (a subscriber at L sees every message with verbosity <= L)
2. Category subscribers of the message's category only
3. "All" subscribers, unconditionally
"""

import itertools
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from iochannel.tokens import CATEGORY_MASK_ALL, Category, Verbosity


class Axis(str, Enum):
    VERBOSITY = "verbosity"
    CATEGORY = "category"
    ALL = "all"


@dataclass(frozen=True)
class Subscription:
    """Opaque handle returned on registration, used for removal."""
    axis: Axis
    level: int | None
    id: int


@dataclass
class FilterPolicy:
    """Process-wide thresholds. Survive every flush."""
    verbosity: Verbosity = Verbosity.TMI
    category_mask: int = CATEGORY_MASK_ALL

    def accepts(self, verbosity: Verbosity, category: Category) -> bool:
        return verbosity <= self.verbosity and bool(
            self.category_mask & Category(category).mask
        )

    def mute_category(self, category: Category) -> None:
        self.category_mask &= ~Category(category).mask

    def mute_verbosity(self, verbosity: Verbosity) -> None:
        self.verbosity = Verbosity(verbosity)

    def unmute(self, category: Category | None = None) -> None:
        """Without a category, restore the widest setting on both axes."""
        if category is None:
            self.verbosity = Verbosity.TMI
            self.category_mask = CATEGORY_MASK_ALL
        else:
            self.category_mask |= Category(category).mask

    @property
    def all_muted(self) -> bool:
        return self.category_mask == 0

    @property
    def muted(self) -> list[Category]:
        return [
            c for c in Category
            if c is not Category.ALL and not self.category_mask & c.mask
        ]

    def describe(self) -> dict:
        return {
            "verbosity": self.verbosity.name,
            "category_mask": self.category_mask,
            "muted": [c.name for c in self.muted],
        }


class SubscriberRegistry:
    """Map of (axis, level) to callbacks keyed by subscription id."""

    def __init__(self) -> None:
        self._verbosity: dict[Verbosity, dict[int, Callable]] = {
            v: {} for v in Verbosity
        }
        self._category: dict[Category, dict[int, Callable]] = {
            c: {} for c in Category if c is not Category.ALL
        }
        self._all: dict[int, Callable] = {}
        self._ids = itertools.count(1)

    # ── Registration ──────────────────────────────────────────────

    def add_verbosity(self, level: Verbosity, callback: Callable) -> Subscription:
        """callback(message, category)"""
        level = Verbosity(level)
        sub = Subscription(Axis.VERBOSITY, level, next(self._ids))
        self._verbosity[level][sub.id] = callback
        return sub

    def add_category(self, category: Category, callback: Callable) -> Subscription:
        """callback(message, verbosity)"""
        category = Category(category)
        if category is Category.ALL:
            raise ValueError("Category ALL has no per-category signal; use add_all()")
        sub = Subscription(Axis.CATEGORY, category, next(self._ids))
        self._category[category][sub.id] = callback
        return sub

    def add_all(self, callback: Callable) -> Subscription:
        """callback(message, verbosity, category)"""
        sub = Subscription(Axis.ALL, None, next(self._ids))
        self._all[sub.id] = callback
        return sub

    def remove(self, sub: Subscription) -> bool:
        """Remove by handle. Returns True if it was registered."""
        if sub.axis is Axis.VERBOSITY:
            bucket = self._verbosity.get(sub.level, {})
        elif sub.axis is Axis.CATEGORY:
            bucket = self._category.get(sub.level, {})
        else:
            bucket = self._all
        return bucket.pop(sub.id, None) is not None

    # ── Dispatch ──────────────────────────────────────────────────

    def dispatch(self, message: str, verbosity: Verbosity, category: Category) -> None:
        """Invoke every matching subscriber, in registration order per set."""
        for level in Verbosity:
            if level >= verbosity:
                for callback in list(self._verbosity[level].values()):
                    callback(message, category)

        if category in self._category:
            for callback in list(self._category[category].values()):
                callback(message, verbosity)

        for callback in list(self._all.values()):
            callback(message, verbosity, category)

    # ── Introspection ─────────────────────────────────────────────

    def __len__(self) -> int:
        return (
            sum(len(b) for b in self._verbosity.values())
            + sum(len(b) for b in self._category.values())
            + len(self._all)
        )

    def describe(self) -> dict:
        return {
            "verbosity": {v.name: len(b) for v, b in self._verbosity.items()},
            "category": {c.name: len(b) for c, b in self._category.items()},
            "all": len(self._all),
        }
