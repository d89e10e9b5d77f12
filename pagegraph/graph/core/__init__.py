"""Core graph storage and query APIs."""

from .backend import GraphBackend, NetworkXBackend
from .graph import Direction, Graph, sequence_key

__all__ = [
    "Direction",
    "Graph",
    "GraphBackend",
    "NetworkXBackend",
    "sequence_key",
]
