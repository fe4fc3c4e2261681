"""
Pydantic configuration schemas for iochannel.

Mirrors what IOChannel.configure() applies: filter thresholds, muted
categories, echo and sinks. Token fields accept either names or numeric
values, so a YAML file can stay readable:

    verbosity: chatty
    muted: [debug]
    echo:
      mode: print
      verbosity: normal
      category: all
    sinks:
      recent: {type: ring, ring_buffer_size: 500}
      errors: {type: file, path: logs/errors.log, categories: [warning, error]}

Usage:
    config = ChannelConfig.from_yaml("iochannel.yaml")
    IOChannel.instance().configure(config)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, field_validator

from iochannel.tokens import Category, EchoMode, Verbosity


class EchoConfig(BaseModel):
    mode: EchoMode = EchoMode.NONE
    verbosity: Verbosity = Verbosity.TMI
    category: Category = Category.ALL

    @field_validator("mode", mode="before")
    @classmethod
    def _resolve_mode(cls, value):
        return EchoMode.from_value(value)

    @field_validator("verbosity", mode="before")
    @classmethod
    def _resolve_verbosity(cls, value):
        return Verbosity.from_value(value)

    @field_validator("category", mode="before")
    @classmethod
    def _resolve_category(cls, value):
        return Category.from_value(value)


class SinkConfig(BaseModel):
    type: Literal["terminal", "file", "ring"]
    max_verbosity: Verbosity = Verbosity.TMI
    categories: Optional[list[Category]] = None
    color: Optional[bool] = None              # terminal
    path: Optional[str] = None                # file
    ring_buffer_size: Optional[int] = None    # ring

    @field_validator("max_verbosity", mode="before")
    @classmethod
    def _resolve_verbosity(cls, value):
        return Verbosity.from_value(value)

    @field_validator("categories", mode="before")
    @classmethod
    def _resolve_categories(cls, value):
        if value is None:
            return None
        if isinstance(value, (str, int)):
            value = [value]
        return [Category.from_value(v) for v in value]


class ChannelConfig(BaseModel):
    """Top-level channel configuration. Every field is optional."""

    verbosity: Verbosity = Verbosity.TMI
    muted: list[Category] = []
    echo: Optional[EchoConfig] = None
    sinks: Optional[dict[str, SinkConfig]] = None

    @field_validator("verbosity", mode="before")
    @classmethod
    def _resolve_verbosity(cls, value):
        return Verbosity.from_value(value)

    @field_validator("muted", mode="before")
    @classmethod
    def _resolve_muted(cls, value):
        if value is None:
            return []
        if isinstance(value, (str, int)):
            value = [value]
        return [Category.from_value(v) for v in value]

    @classmethod
    def from_yaml(cls, path: str | Path) -> ChannelConfig:
        """Load and validate from a YAML file."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.from_yaml_string(raw)

    @classmethod
    def from_yaml_string(cls, yaml_string: str) -> ChannelConfig:
        """Load and validate from a YAML string. An empty document is all defaults."""
        data = yaml.safe_load(yaml_string) or {}
        return cls.model_validate(data)

    @classmethod
    def from_dict(cls, data: dict) -> ChannelConfig:
        """Load and validate from a dict."""
        return cls.model_validate(data)

    def to_dict(self, exclude_none: bool = True) -> dict:
        """Export as a plain dict, tokens by name."""
        data = self.model_dump(exclude_none=exclude_none)
        return _names(data)


def _names(value):
    """Replace token enums with their lowercase names, recursively."""
    if isinstance(value, dict):
        return {k: _names(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_names(v) for v in value]
    if isinstance(value, (Verbosity, Category, EchoMode)):
        return value.name.lower()
    return value
