"""Public graph API surface."""

from pagegraph.graph.models import (
    EDGE_KINDS,
    NODE_KINDS,
    Edge,
    Node,
    PageGraphDescriptor,
    RequestType,
)
from pagegraph.graph.core import Direction, Graph, GraphBackend, NetworkXBackend
from pagegraph.graph.builder import GraphBuilder
from pagegraph.graph.io import read_from_file, read_from_reader

__all__ = [
    "Direction",
    "EDGE_KINDS",
    "Edge",
    "Graph",
    "GraphBackend",
    "GraphBuilder",
    "NODE_KINDS",
    "NetworkXBackend",
    "Node",
    "PageGraphDescriptor",
    "RequestType",
    "read_from_file",
    "read_from_reader",
]
