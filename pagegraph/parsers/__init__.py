"""Readers for on-disk PageGraph recordings."""

from .graphml import GraphMLDocument, GraphMLParser, RawRecord

__all__ = ["GraphMLDocument", "GraphMLParser", "RawRecord"]
