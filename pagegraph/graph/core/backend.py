"""Graph backend abstraction layer.

Wraps NetworkX so the structural store behind a Graph can be swapped without
touching the query surface.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable

import networkx as nx

logger = logging.getLogger("pagegraph.graph.core.backend")


class GraphBackend(ABC):
    """Abstract structural store for one recording.

    Nodes are keyed by node id and edges by (source, target, edge id). The
    store carries ids and payload only; ordering by sequence is kept by the
    Graph itself.
    """

    @property
    @abstractmethod
    def native_graph(self) -> Any:
        """Get native graph object for advanced operations."""
        pass

    @abstractmethod
    def add_node(self, node_id: str, **attributes: Any) -> None:
        """Add node to graph."""
        pass

    @abstractmethod
    def add_edge(self, source: str, target: str, key: str, **attributes: Any) -> None:
        """Add edge to graph under the given edge id."""
        pass

    @abstractmethod
    def edge_keys_between(self, source: str, target: str) -> Iterable[str]:
        """Edge ids from source to target, in insertion order."""
        pass

    @abstractmethod
    def node_count(self) -> int:
        """Get number of nodes."""
        pass

    @abstractmethod
    def edge_count(self) -> int:
        """Get number of edges."""
        pass

    @abstractmethod
    def freeze(self) -> None:
        """Reject any further structural change."""
        pass


class NetworkXBackend(GraphBackend):
    """NetworkX-based in-memory graph backend.

    Edges live in a MultiDiGraph keyed by their recording id, so several
    edges between the same pair of nodes stay distinct.
    """

    def __init__(self) -> None:
        """Initialize backend with NetworkX MultiDiGraph."""
        self._graph = nx.MultiDiGraph()
        logger.debug("NetworkXBackend initialized")

    @property
    def native_graph(self) -> nx.MultiDiGraph:
        return self._graph

    def add_node(self, node_id: str, **attributes: Any) -> None:
        self._graph.add_node(node_id, **attributes)

    def add_edge(self, source: str, target: str, key: str, **attributes: Any) -> None:
        self._graph.add_edge(source, target, key=key, **attributes)

    def edge_keys_between(self, source: str, target: str) -> Iterable[str]:
        data = self._graph.get_edge_data(source, target)
        if not data:
            return ()
        return tuple(data)

    def node_count(self) -> int:
        return self._graph.number_of_nodes()

    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def freeze(self) -> None:
        nx.freeze(self._graph)
        logger.debug(
            "Graph backend frozen with %d nodes and %d edges",
            self.node_count(),
            self.edge_count(),
        )
