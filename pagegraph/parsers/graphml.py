"""Streaming GraphML reader.

Produces the attribute key schema declared in the ``<key>`` preamble and a
lazy, single-pass sequence of raw node/edge records in file order. Records
keep attribute values as the original text keyed by key id. Nothing here
knows about PageGraph node or edge kinds; that belongs to the graph builder.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import IO, Dict, Iterator, Optional, Tuple

from pydantic import ValidationError

from pagegraph.errors import DecodeError, MalformedDocumentError
from pagegraph.graph.models.attributes import (
    AttributeKeySchema,
    AttributeType,
    KeyDomain,
    KeySpec,
    canonical_name,
    decode_value,
    parse_graphml_type,
)
from pagegraph.graph.models.records import PageGraphDescriptor, PageGraphTime

logger = logging.getLogger("pagegraph.parsers.graphml")

GRAPHML_NS = "http://graphml.graphdrawing.org/xmlns"

NODE = "node"
EDGE = "edge"

# Element depths below the document root.
_PREAMBLE_DEPTH = 2
_ITEM_DEPTH = 3


def _local_name(tag: str) -> str:
    """Strip an ElementTree ``{namespace}`` prefix."""
    if tag.startswith("{"):
        return tag.rsplit("}", 1)[1]
    return tag


@dataclass(frozen=True)
class RawRecord:
    """An untyped node or edge element.

    Attributes:
        tag: ``node`` or ``edge``.
        element_id: Value of the element's ``id`` XML attribute.
        attributes: Key id -> raw text of each ``<data>`` child, in file order.
        source: Edge source node id (edges only).
        target: Edge target node id (edges only).
    """

    tag: str
    element_id: str
    attributes: Dict[str, str] = field(default_factory=dict)
    source: Optional[str] = None
    target: Optional[str] = None


@dataclass
class GraphMLDocument:
    """Result of reading the preamble; records are consumed lazily."""

    schema: AttributeKeySchema
    descriptor: Optional[PageGraphDescriptor]
    records: Iterator[RawRecord]


class GraphMLParser:
    """Pull parser for the PageGraph flavour of GraphML."""

    def parse(self, stream: IO) -> GraphMLDocument:
        """Read the key preamble and return the document with lazy records.

        The preamble (everything up to the opening ``<graph>`` tag) is read
        eagerly. The returned ``records`` iterator continues from there and
        may raise MalformedDocumentError while being consumed.

        Raises:
            MalformedDocumentError: On non-well-formed XML or a broken key
                contract in the preamble.
        """
        events = self._events(stream)
        state = _ParseState()

        self._read_root(events, state)
        schema, descriptor = self._read_preamble(events, state)
        logger.debug(
            "GraphML preamble read: %d keys, descriptor=%s",
            len(schema),
            descriptor is not None,
        )
        return GraphMLDocument(
            schema=schema,
            descriptor=descriptor,
            records=self._read_records(events, state, schema),
        )

    # ------------------------------------------------------------------
    # Event plumbing
    # ------------------------------------------------------------------

    @staticmethod
    def _events(stream: IO) -> Iterator[Tuple[str, ET.Element]]:
        try:
            yield from ET.iterparse(stream, events=("start", "end"))
        except ET.ParseError as exc:
            line, column = getattr(exc, "position", (None, None))
            raise MalformedDocumentError(
                f"Document is not well-formed XML: {exc}", line, column
            ) from exc

    @staticmethod
    def _read_root(events: Iterator[Tuple[str, ET.Element]], state: "_ParseState") -> None:
        try:
            event, elem = next(events)
        except StopIteration:
            raise MalformedDocumentError("Document is empty") from None
        if _local_name(elem.tag) != "graphml":
            raise MalformedDocumentError(
                f"Expected a graphml root element, found `{_local_name(elem.tag)}`"
            )
        state.depth = 1

    def _read_preamble(
        self,
        events: Iterator[Tuple[str, ET.Element]],
        state: "_ParseState",
    ) -> Tuple[AttributeKeySchema, Optional[PageGraphDescriptor]]:
        schema = AttributeKeySchema()
        descriptor: Optional[PageGraphDescriptor] = None

        for event, elem in events:
            name = _local_name(elem.tag)
            if event == "start":
                state.depth += 1
                if state.depth == _PREAMBLE_DEPTH and name == "graph":
                    state.graph = elem
                    return schema, descriptor
                if state.depth == _PREAMBLE_DEPTH and name in (NODE, EDGE):
                    raise MalformedDocumentError(
                        f"A {name} element appears before the graph element"
                    )
                continue

            if state.depth == _PREAMBLE_DEPTH:
                if name == "key":
                    schema.add(self._build_key(elem))
                elif name == "desc":
                    descriptor = self._build_descriptor(elem)
                else:
                    logger.debug("Unhandled element in graphml preamble: %s", name)
                elem.clear()
            elif state.depth == 1:
                raise MalformedDocumentError("graphml ended without a graph definition")
            state.depth -= 1

        raise MalformedDocumentError("Document ended before a graph definition")

    def _read_records(
        self,
        events: Iterator[Tuple[str, ET.Element]],
        state: "_ParseState",
        schema: AttributeKeySchema,
    ) -> Iterator[RawRecord]:
        graph_closed = False
        count = 0

        for event, elem in events:
            name = _local_name(elem.tag)
            if event == "start":
                state.depth += 1
                if state.depth == _PREAMBLE_DEPTH and name in (NODE, EDGE):
                    raise MalformedDocumentError(
                        f"A {name} element appears outside the graph element"
                    )
                if state.depth == _PREAMBLE_DEPTH and graph_closed:
                    if name == "key":
                        raise MalformedDocumentError("Key declared after the graph element")
                    if name == "graph":
                        raise MalformedDocumentError("More than one graph element is not supported")
                continue

            if state.depth == _ITEM_DEPTH and not graph_closed:
                if name in (NODE, EDGE):
                    count += 1
                    yield self._build_record(name, elem, schema)
                else:
                    logger.debug("Unhandled element in graph: %s", name)
                elem.clear()
                if state.graph is not None:
                    state.graph.clear()
            elif state.depth == _PREAMBLE_DEPTH and name == "graph" and not graph_closed:
                graph_closed = True
                logger.debug("Graph element closed after %d records", count)
            state.depth -= 1

        if not graph_closed:
            raise MalformedDocumentError("Document ended inside the graph element")

    # ------------------------------------------------------------------
    # Element builders
    # ------------------------------------------------------------------

    @staticmethod
    def _build_key(elem: ET.Element) -> KeySpec:
        key_id = elem.get("id")
        if not key_id:
            raise MalformedDocumentError("Key element is missing its id")
        attr_name = elem.get("attr.name")
        if attr_name is None:
            raise MalformedDocumentError(f"Key `{key_id}` is missing its attr.name")
        attr_type = parse_graphml_type(elem.get("attr.type"), key_id)
        raw_domain = elem.get("for", KeyDomain.ALL.value)
        try:
            domain = KeyDomain(raw_domain)
        except ValueError:
            raise MalformedDocumentError(
                f"Key `{key_id}` has unsupported for={raw_domain!r}"
            ) from None
        return KeySpec(
            id=key_id,
            name=canonical_name(attr_name),
            attr_type=attr_type,
            domain=domain,
            raw_name=attr_name,
        )

    @staticmethod
    def _build_record(tag: str, elem: ET.Element, schema: AttributeKeySchema) -> RawRecord:
        element_id = elem.get("id")
        if not element_id:
            raise MalformedDocumentError(f"A {tag} element is missing its id")

        source = target = None
        if tag == EDGE:
            source = elem.get("source")
            target = elem.get("target")
            if not source or not target:
                raise MalformedDocumentError(
                    f"Edge {element_id} is missing its source or target"
                )

        attributes: Dict[str, str] = {}
        for child in elem:
            if _local_name(child.tag) != "data":
                logger.debug("Unhandled element in %s %s: %s", tag, element_id, child.tag)
                continue
            key_id = child.get("key")
            if key_id is None:
                raise MalformedDocumentError(
                    f"Data element on {tag} {element_id} is missing its key"
                )
            spec = schema.get(key_id)
            if spec is None:
                raise MalformedDocumentError(
                    f"{tag.capitalize()} {element_id} references undeclared key `{key_id}`"
                )
            if not spec.domain.applies_to(tag):
                raise MalformedDocumentError(
                    f"Key `{key_id}` is declared for {spec.domain.value} "
                    f"but used on {tag} {element_id}"
                )
            if key_id in attributes:
                raise MalformedDocumentError(
                    f"{tag.capitalize()} {element_id} repeats key `{key_id}`"
                )
            attributes[key_id] = child.text or ""

        return RawRecord(
            tag=tag,
            element_id=element_id,
            attributes=attributes,
            source=source,
            target=target,
        )

    @staticmethod
    def _build_descriptor(elem: ET.Element) -> PageGraphDescriptor:
        values: Dict[str, object] = {}
        time_values: Dict[str, object] = {}

        for child in elem:
            name = _local_name(child.tag)
            text = child.text.strip() if child.text else ""
            if name in ("version", "about", "url", "frame_id"):
                values[name] = text
            elif name == "is_root":
                values["is_root"] = decode_value("is_root", text, AttributeType.BOOLEAN)
            elif name == "time":
                for part in child:
                    part_name = _local_name(part.tag)
                    if part_name in ("start", "end"):
                        time_values[part_name] = decode_value(
                            f"time.{part_name}",
                            (part.text or "").strip(),
                            AttributeType.INT,
                        )
            else:
                logger.debug("Unhandled element in desc: %s", name)

        try:
            return PageGraphDescriptor(time=PageGraphTime(**time_values), **values)
        except ValidationError as exc:
            first = exc.errors()[0]
            key = str(first["loc"][0]) if first.get("loc") else "desc"
            raise DecodeError(
                key, "string", str(values.get(key)), element_id="desc", reason=first.get("msg")
            ) from exc


@dataclass
class _ParseState:
    depth: int = 0
    graph: Optional[ET.Element] = None
