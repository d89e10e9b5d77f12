"""Configuration schema and validation for pagegraph."""

from .schema import ReaderConfig

__all__ = ["ReaderConfig"]
