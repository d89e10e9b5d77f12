"""Resolve raw GraphML records into a typed, indexed Graph.

GraphML does not promise that nodes precede the edges that reference them,
so the builder buffers every record first, resolves nodes, then resolves
edges against the finished node mapping. Any failure aborts the build; a
partially built Graph is never returned.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from pagegraph.config import ReaderConfig
from pagegraph.errors import (
    DanglingEdgeError,
    DecodeError,
    DuplicateEdgeIdError,
    DuplicateNodeIdError,
    MalformedDocumentError,
    MissingAttributeError,
)
from pagegraph.graph.models.attributes import (
    AttributeKeySchema,
    KeySpec,
    decode_numeric,
    decode_value,
)
from pagegraph.graph.models.edges import EDGE_KINDS
from pagegraph.graph.models.identifiers import item_number
from pagegraph.graph.models.nodes import NODE_KINDS
from pagegraph.graph.models.records import Edge, Node, Ordering
from pagegraph.parsers.graphml import EDGE, NODE, GraphMLDocument, RawRecord

from .core.backend import GraphBackend, NetworkXBackend
from .core.graph import Graph, sequence_key

logger = logging.getLogger("pagegraph.graph.builder")

NODE_TYPE_KEY = "node_type"
EDGE_TYPE_KEY = "edge_type"

ID_KEY = "id"
TIMESTAMP_KEY = "timestamp"
SEQUENCE_KEY = "sequence"

NamedAttributes = Dict[str, Tuple[KeySpec, str]]


class GraphBuilder:
    """Two-pass builder from a parsed GraphML document to a Graph."""

    def __init__(self, config: Optional[ReaderConfig] = None) -> None:
        self.config = config or ReaderConfig()

    def build(self, document: GraphMLDocument) -> Graph:
        """Build a Graph from a parsed document.

        Args:
            document: Output of :meth:`GraphMLParser.parse`; its record
                iterator is consumed.

        Returns:
            Graph: The immutable, indexed graph.

        Raises:
            ParseError: Any construction-time error (see ``pagegraph.errors``).
        """
        node_records, edge_records = self._buffer(document.records)
        logger.debug(
            "Buffered %d node and %d edge records",
            len(node_records),
            len(edge_records),
        )

        nodes = self._resolve_nodes(node_records, document.schema)
        edges = self._resolve_edges(edge_records, document.schema, nodes)
        backend, outgoing, incoming = self._index(nodes, edges)

        logger.info("Built graph with %d nodes and %d edges", len(nodes), len(edges))
        return Graph(
            nodes=nodes,
            edges=edges,
            outgoing=outgoing,
            incoming=incoming,
            backend=backend,
            descriptor=document.descriptor,
        )

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    @staticmethod
    def _buffer(records: Iterable[RawRecord]) -> Tuple[List[RawRecord], List[RawRecord]]:
        node_records: List[RawRecord] = []
        edge_records: List[RawRecord] = []
        for record in records:
            if record.tag == NODE:
                node_records.append(record)
            elif record.tag == EDGE:
                edge_records.append(record)
        return node_records, edge_records

    def _resolve_nodes(
        self, records: List[RawRecord], schema: AttributeKeySchema
    ) -> Dict[str, Node]:
        nodes: Dict[str, Node] = {}
        for record in records:
            if record.element_id in nodes:
                raise DuplicateNodeIdError(record.element_id)
            nodes[record.element_id] = self._resolve_node(record, schema)
        return nodes

    def _resolve_edges(
        self,
        records: List[RawRecord],
        schema: AttributeKeySchema,
        nodes: Dict[str, Node],
    ) -> Dict[str, Edge]:
        edges: Dict[str, Edge] = {}
        for record in records:
            if record.element_id in edges:
                raise DuplicateEdgeIdError(record.element_id)
            for endpoint in (record.source, record.target):
                if endpoint not in nodes:
                    raise DanglingEdgeError(record.element_id, endpoint)
            edges[record.element_id] = self._resolve_edge(record, schema)
        return edges

    @staticmethod
    def _index(
        nodes: Dict[str, Node], edges: Dict[str, Edge]
    ) -> Tuple[GraphBackend, Dict[str, Tuple[str, ...]], Dict[str, Tuple[str, ...]]]:
        backend = NetworkXBackend()
        outgoing: Dict[str, List[str]] = {node_id: [] for node_id in nodes}
        incoming: Dict[str, List[str]] = {node_id: [] for node_id in nodes}

        for node_id, node in nodes.items():
            backend.add_node(node_id, node=node)

        # sorted() is stable, and the position term makes ties explicit anyway.
        ordered = sorted(
            enumerate(edges.values()),
            key=lambda item: sequence_key(item[1], item[0]),
        )
        for _, edge in ordered:
            backend.add_edge(edge.source_id, edge.target_id, edge.id, edge=edge)
            outgoing[edge.source_id].append(edge.id)
            incoming[edge.target_id].append(edge.id)

        backend.freeze()
        return (
            backend,
            {node_id: tuple(ids) for node_id, ids in outgoing.items()},
            {node_id: tuple(ids) for node_id, ids in incoming.items()},
        )

    # ------------------------------------------------------------------
    # Per-record resolution
    # ------------------------------------------------------------------

    def _resolve_node(self, record: RawRecord, schema: AttributeKeySchema) -> Node:
        attributes = self._named_attributes(record, schema)
        discriminator = self._pop_discriminator(attributes, NODE_TYPE_KEY, record)
        timestamp, sequence = self._pop_generic(attributes, record)

        if timestamp is None and self.config.require_node_timestamps:
            raise MissingAttributeError(TIMESTAMP_KEY, discriminator, record.element_id)

        node_type = NODE_KINDS.resolve(
            discriminator,
            {name: raw for name, (_, raw) in attributes.items()},
            record.element_id,
            strict=self.config.strict_attributes,
        )
        return Node(
            id=record.element_id,
            node_type=node_type,
            timestamp=timestamp,
            sequence=sequence,
        )

    def _resolve_edge(self, record: RawRecord, schema: AttributeKeySchema) -> Edge:
        attributes = self._named_attributes(record, schema)
        discriminator = self._pop_discriminator(attributes, EDGE_TYPE_KEY, record)
        timestamp, sequence = self._pop_generic(attributes, record)

        edge_type = EDGE_KINDS.resolve(
            discriminator,
            {name: raw for name, (_, raw) in attributes.items()},
            record.element_id,
            strict=self.config.strict_attributes,
        )
        return Edge(
            id=record.element_id,
            source_id=record.source,
            target_id=record.target,
            edge_type=edge_type,
            sequence=sequence if sequence is not None else timestamp,
            timestamp=timestamp,
        )

    @staticmethod
    def _named_attributes(record: RawRecord, schema: AttributeKeySchema) -> NamedAttributes:
        named: NamedAttributes = {}
        for key_id, raw in record.attributes.items():
            spec = schema.get(key_id)
            if spec is None:
                raise MalformedDocumentError(
                    f"{record.tag.capitalize()} {record.element_id} references "
                    f"undeclared key `{key_id}`"
                )
            if spec.name in named:
                raise MalformedDocumentError(
                    f"{record.tag.capitalize()} {record.element_id} sets attribute "
                    f"`{spec.name}` through more than one key"
                )
            # The declared GraphML type binds before any kind-specific decoding.
            decode_value(spec.name, raw, spec.attr_type, element_id=record.element_id)
            named[spec.name] = (spec, raw)
        return named

    @staticmethod
    def _pop_discriminator(attributes: NamedAttributes, key: str, record: RawRecord) -> str:
        entry = attributes.pop(key, None)
        if entry is None:
            raise MissingAttributeError(key, record.tag, record.element_id)
        return entry[1]

    def _pop_generic(
        self, attributes: NamedAttributes, record: RawRecord
    ) -> Tuple[Optional[Ordering], Optional[Ordering]]:
        id_entry = attributes.pop(ID_KEY, None)
        if id_entry is not None:
            self._check_item_id(id_entry, record)

        values = []
        for key in (TIMESTAMP_KEY, SEQUENCE_KEY):
            entry = attributes.pop(key, None)
            if entry is None:
                values.append(None)
                continue
            spec, raw = entry
            values.append(decode_numeric(key, raw, spec.attr_type, element_id=record.element_id))
        return values[0], values[1]

    def _check_item_id(self, entry: Tuple[KeySpec, str], record: RawRecord) -> None:
        spec, raw = entry
        value = decode_numeric(ID_KEY, raw, spec.attr_type, element_id=record.element_id)
        if not self.config.verify_item_ids:
            return
        expected = item_number(record.element_id)
        if expected is not None and value != expected:
            raise DecodeError(
                ID_KEY,
                "int",
                raw,
                element_id=record.element_id,
                reason=f"does not match element id {record.element_id}",
            )
