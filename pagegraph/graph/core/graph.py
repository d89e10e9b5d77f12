"""Immutable PageGraph graph and its query/filter engine."""

from __future__ import annotations

import heapq
import logging
from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import networkx as nx

from pagegraph.errors import NodeNotFoundError
from pagegraph.graph.models.records import Edge, Node, PageGraphDescriptor

from .backend import GraphBackend

logger = logging.getLogger("pagegraph.graph.core.graph")

NodePredicate = Callable[[Node], bool]
EdgePredicate = Callable[[Edge], bool]
SequenceKey = Tuple[bool, Union[int, float], int]


class Direction(str, Enum):
    """Which adjacency list a traversal follows."""

    OUTGOING = "outgoing"
    INCOMING = "incoming"
    BOTH = "both"


def sequence_key(edge: Edge, position: int) -> SequenceKey:
    """Sort key ordering edges by ascending sequence.

    Edges without a sequence sort after sequenced ones; ties fall back to
    ``position`` (the edge's place in the file).
    """
    return (edge.sequence is None, edge.sequence or 0, position)


class Graph:
    """A built PageGraph recording.

    Nodes and edges are held in file order. Adjacency lists hold edge ids per
    node ordered by ascending sequence. No method changes the graph after
    construction, so one instance can be queried from several threads.

    Instances are created by :class:`pagegraph.graph.builder.GraphBuilder`;
    use :func:`pagegraph.read_from_file` rather than calling this directly.
    """

    def __init__(
        self,
        nodes: Dict[str, Node],
        edges: Dict[str, Edge],
        outgoing: Dict[str, Tuple[str, ...]],
        incoming: Dict[str, Tuple[str, ...]],
        backend: GraphBackend,
        descriptor: Optional[PageGraphDescriptor] = None,
    ) -> None:
        self._nodes = MappingProxyType(nodes)
        self._edges = MappingProxyType(edges)
        self._outgoing = MappingProxyType(outgoing)
        self._incoming = MappingProxyType(incoming)
        self._positions = MappingProxyType({edge_id: i for i, edge_id in enumerate(edges)})
        self._backend = backend
        self._descriptor = descriptor

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> Mapping[str, Node]:
        """Read-only node id -> Node mapping in file order."""
        return self._nodes

    @property
    def edges(self) -> Mapping[str, Edge]:
        """Read-only edge id -> Edge mapping in file order."""
        return self._edges

    @property
    def descriptor(self) -> Optional[PageGraphDescriptor]:
        """Recording metadata from ``<desc>``, if the file had one."""
        return self._descriptor

    def node(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def edge(self, edge_id: str) -> Optional[Edge]:
        return self._edges.get(edge_id)

    def node_count(self) -> int:
        return self._backend.node_count()

    def edge_count(self) -> int:
        return self._backend.edge_count()

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Node]:
        return iter(self._nodes.values())

    def __repr__(self) -> str:
        return f"Graph(nodes={len(self._nodes)}, edges={len(self._edges)})"

    def source_node(self, edge: Edge) -> Node:
        """Node an edge starts from; always present in a built graph."""
        return self._nodes[edge.source_id]

    def target_node(self, edge: Edge) -> Node:
        """Node an edge points to; always present in a built graph."""
        return self._nodes[edge.target_id]

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------

    def filter_nodes(self, predicate: NodePredicate) -> List[Node]:
        """Return the nodes matching ``predicate`` in file order.

        The predicate sees every node regardless of kind, so it must
        discriminate on ``node.node_type`` itself, e.g.::

            graph.filter_nodes(
                lambda n: isinstance(n.node_type, HtmlElement)
                and n.node_type.is_deleted
            )
        """
        return [node for node in self._nodes.values() if predicate(node)]

    def filter_edges(self, predicate: EdgePredicate) -> List[Edge]:
        """Return the edges matching ``predicate`` in file order."""
        return [edge for edge in self._edges.values() if predicate(edge)]

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def outgoing_edges(self, node_id: str) -> List[Edge]:
        """Edges leaving ``node_id``, ordered by sequence.

        Raises:
            NodeNotFoundError: If ``node_id`` is not in the graph.
        """
        self._require_node(node_id)
        return [self._edges[edge_id] for edge_id in self._outgoing[node_id]]

    def incoming_edges(self, node_id: str) -> List[Edge]:
        """Edges arriving at ``node_id``, ordered by sequence.

        Raises:
            NodeNotFoundError: If ``node_id`` is not in the graph.
        """
        self._require_node(node_id)
        return [self._edges[edge_id] for edge_id in self._incoming[node_id]]

    def neighbors(
        self,
        node_id: str,
        direction: Union[Direction, str] = Direction.OUTGOING,
    ) -> List[str]:
        """Adjacent node ids ordered by the sequence of the connecting edge.

        A neighbour reached over several edges is listed once, at the position
        of its earliest edge. With ``Direction.BOTH`` the outgoing and incoming
        lists are merged by sequence.

        Args:
            node_id: Node to start from.
            direction: ``outgoing``, ``incoming`` or ``both``.

        Raises:
            NodeNotFoundError: If ``node_id`` is not in the graph.
            ValueError: If ``direction`` is not a known direction.
        """
        direction = Direction(direction)
        self._require_node(node_id)

        if direction is Direction.OUTGOING:
            steps: Iterator[Tuple[str, str]] = (
                (edge_id, self._edges[edge_id].target_id)
                for edge_id in self._outgoing[node_id]
            )
        elif direction is Direction.INCOMING:
            steps = (
                (edge_id, self._edges[edge_id].source_id)
                for edge_id in self._incoming[node_id]
            )
        else:
            steps = self._merged_steps(node_id)

        seen = set()
        result = []
        for _, neighbor_id in steps:
            if neighbor_id not in seen:
                seen.add(neighbor_id)
                result.append(neighbor_id)
        return result

    def edges_between(self, source_id: str, target_id: str) -> List[Edge]:
        """All edges from ``source_id`` to ``target_id``, ordered by sequence.

        Raises:
            NodeNotFoundError: If either id is not in the graph.
        """
        self._require_node(source_id)
        self._require_node(target_id)
        edge_ids = sorted(
            self._backend.edge_keys_between(source_id, target_id),
            key=self._edge_key,
        )
        return [self._edges[edge_id] for edge_id in edge_ids]

    def to_networkx(self) -> nx.MultiDiGraph:
        """Frozen MultiDiGraph view with ``node`` / ``edge`` payload attributes.

        Edges are keyed by edge id.
        """
        return self._backend.native_graph

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_node(self, node_id: str) -> None:
        if node_id not in self._nodes:
            raise NodeNotFoundError(node_id)

    def _edge_key(self, edge_id: str) -> SequenceKey:
        return sequence_key(self._edges[edge_id], self._positions[edge_id])

    def _merged_steps(self, node_id: str) -> Iterator[Tuple[str, str]]:
        outgoing: Sequence[Tuple[SequenceKey, str, str]] = [
            (self._edge_key(e), e, self._edges[e].target_id) for e in self._outgoing[node_id]
        ]
        incoming: Sequence[Tuple[SequenceKey, str, str]] = [
            (self._edge_key(e), e, self._edges[e].source_id) for e in self._incoming[node_id]
        ]
        for _, edge_id, neighbor_id in heapq.merge(outgoing, incoming):
            yield edge_id, neighbor_id
