"""Read-only queries over a built Graph.

These answer the questions PageGraph recordings are usually opened for:
which elements were changed, which scripts fetched what, what a given
network request looked like and which document an element or action
belongs to.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Set, Tuple

from pagegraph.errors import EdgeNotFoundError, NodeNotFoundError
from pagegraph.graph.core.graph import Direction, Graph
from pagegraph.graph.models import edges as E
from pagegraph.graph.models import nodes as N
from pagegraph.graph.models.identifiers import frame_of, normalize_frame_id
from pagegraph.graph.models.records import Edge, Node

logger = logging.getLogger("pagegraph.graph.ops.queries")

OTHER_REQUEST_TYPE = "other"


@dataclass(frozen=True)
class RequestInfo:
    """A request joined across its start edge, resource and completion."""

    request_id: int
    request_type: E.RequestType
    url: str
    resource_type: str
    status: str
    value: Optional[str]
    response_hash: Optional[str]
    headers: str
    size: int

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["request_type"] = self.request_type.label
        return data


def _require(graph: Graph, node_id: str) -> Node:
    node = graph.node(node_id)
    if node is None:
        raise NodeNotFoundError(node_id)
    return node


def all_remote_frame_ids(graph: Graph) -> List[str]:
    """Frame ids of every remote frame in the recording, in file order."""
    return [
        node.node_type.frame_id
        for node in graph.filter_nodes(lambda n: isinstance(n.node_type, N.RemoteFrame))
    ]


def html_element_modifications(graph: Graph, node_id: str) -> List[Edge]:
    """Every edge that modified an HTML element, ordered by sequence.

    Structure edges describe the tree rather than an action and are skipped.

    Raises:
        NodeNotFoundError: If ``node_id`` is not in the graph.
        TypeError: If the node is not an HTML element.
    """
    node = _require(graph, node_id)
    if not isinstance(node.node_type, N.HtmlElement):
        raise TypeError(f"{node_id} is a {node.kind} node, not an HTML element")
    return [
        edge
        for edge in graph.incoming_edges(node_id)
        if not isinstance(edge.edge_type, E.Structure)
    ]


def resources_from_script(graph: Graph, node_id: str) -> List[Node]:
    """Resources whose requests were started by a script.

    For a script node these are its direct resource neighbours. For a
    ``<script>`` element they also include resources requested by the
    scripts the element executed.

    Raises:
        NodeNotFoundError: If ``node_id`` is not in the graph.
        TypeError: If the node is neither a script nor a ``<script>`` element.
    """
    node = _require(graph, node_id)
    node_type = node.node_type

    candidates = list(graph.neighbors(node_id, Direction.OUTGOING))
    if isinstance(node_type, N.Script):
        pass
    elif isinstance(node_type, N.HtmlElement) and node_type.tag_name == "script":
        for neighbor_id in graph.neighbors(node_id, Direction.OUTGOING):
            if isinstance(graph.nodes[neighbor_id].node_type, N.Script):
                candidates.extend(graph.neighbors(neighbor_id, Direction.OUTGOING))
    else:
        raise TypeError(
            f"{node_id} is a {node.kind} node, not a script or <script> element"
        )

    seen = set()
    resources = []
    for candidate_id in candidates:
        candidate = graph.nodes[candidate_id]
        if isinstance(candidate.node_type, N.Resource) and candidate_id not in seen:
            seen.add(candidate_id)
            resources.append(candidate)
    return resources


def scripts_that_caused_resource(graph: Graph, node_id: str) -> List[Node]:
    """Nodes with an edge into a resource, i.e. whatever requested it.

    Raises:
        NodeNotFoundError: If ``node_id`` is not in the graph.
        TypeError: If the node is not a resource.
    """
    node = _require(graph, node_id)
    if not isinstance(node.node_type, N.Resource):
        raise TypeError(f"{node_id} is a {node.kind} node, not a resource")
    return [graph.nodes[i] for i in graph.neighbors(node_id, Direction.INCOMING)]


def resource_request_types(graph: Graph, node_id: str) -> List[Tuple[str, Optional[int]]]:
    """Distinct (request type label, response size) pairs for a resource.

    The size comes from the first ``request complete`` edge sharing the
    request id; it is None when there is none or when the recorded size is
    negative (unknown, as for streamed media). A resource that was never
    the target of a ``request start`` yields ``[("other", None)]``.

    Raises:
        NodeNotFoundError: If ``node_id`` is not in the graph.
        TypeError: If the node is not a resource.
    """
    node = _require(graph, node_id)
    if not isinstance(node.node_type, N.Resource):
        raise TypeError(f"{node_id} is a {node.kind} node, not a resource")

    sizes: Dict[int, Optional[int]] = {}
    for edge in graph.edges.values():
        edge_type = edge.edge_type
        if isinstance(edge_type, E.RequestComplete) and edge_type.request_id not in sizes:
            sizes[edge_type.request_id] = edge_type.size if edge_type.size >= 0 else None

    result: List[Tuple[str, Optional[int]]] = []
    for edge in graph.incoming_edges(node_id):
        edge_type = edge.edge_type
        if not isinstance(edge_type, E.RequestStart):
            continue
        entry = (edge_type.request_type.label, sizes.get(edge_type.request_id))
        if entry not in result:
            result.append(entry)

    if not result:
        return [(OTHER_REQUEST_TYPE, None)]
    return result


def request_info(graph: Graph, request_id: int, frame_id: Optional[str] = None) -> RequestInfo:
    """Join the start edge, resource and completion for a request id.

    Request ids are only unique within one frame, so edges are matched in the
    frame named by ``frame_id`` (the root frame when None). Cached resources
    can produce several start/complete pairs for one id; they carry the same
    data, and the first pair in file order is used.

    Raises:
        LookupError: If no start or no completion carries the request id.
        ValueError: If the start and completion refer to different resources.
    """
    if frame_id is not None:
        frame_id = normalize_frame_id(frame_id)

    start: Optional[Edge] = None
    complete: Optional[Edge] = None

    for edge in graph.edges.values():
        if frame_of(edge.id) != frame_id:
            continue
        edge_type = edge.edge_type
        if start is None and isinstance(edge_type, E.RequestStart):
            if edge_type.request_id == request_id:
                start = edge
        elif complete is None and isinstance(edge_type, E.RequestComplete):
            if edge_type.request_id == request_id:
                complete = edge

    if start is None:
        raise LookupError(f"No request start edge for request id {request_id}")
    if complete is None:
        raise LookupError(f"No request complete edge for request id {request_id}")
    if start.target_id != complete.source_id:
        raise ValueError(
            f"Request {request_id} starts at {start.target_id} "
            f"but completes from {complete.source_id}"
        )

    resource = graph.target_node(start)
    if not isinstance(resource.node_type, N.Resource):
        raise ValueError(f"Request {request_id} targets a {resource.kind} node")

    started: E.RequestStart = start.edge_type
    completed: E.RequestComplete = complete.edge_type
    logger.debug("Request %d: %s -> %s", request_id, start.id, complete.id)
    return RequestInfo(
        request_id=request_id,
        request_type=started.request_type,
        url=resource.node_type.url,
        resource_type=completed.resource_type,
        status=completed.status,
        value=completed.value,
        response_hash=completed.response_hash,
        headers=completed.headers,
        size=completed.size,
    )


# ----------------------------------------------------------------------
# Document ownership
# ----------------------------------------------------------------------

# Kinds that can be the parent of an inserted DOM node.
DOM_PARENT_KINDS = (N.HtmlElement, N.DomRoot, N.FrameOwner)
# Kinds that live inside a document and are placed there by insert node.
DOM_CHILD_KINDS = (N.HtmlElement, N.TextNode, N.FrameOwner)


class BlinkIdIndex:
    """Lookup of DOM parent nodes by frame and Blink node id.

    ``insert node`` edges name their parent by Blink id, which is only
    unique within one frame. The index is built with a single scan of the
    graph on first use, so one instance should be shared by every lookup
    made during a traversal.
    """

    def __init__(self, graph: Graph) -> None:
        self.graph = graph
        self._nodes: Optional[Dict[Tuple[Optional[str], int], List[Node]]] = None

    def get(self, blink_id: int, frame_id: Optional[str], *, unique: bool = False) -> Optional[Node]:
        """The DOM node with ``blink_id`` in ``frame_id``, or None.

        Raises:
            ValueError: If ``unique`` is set and several nodes share the id.
        """
        if self._nodes is None:
            self._nodes = self._build()
        matches = self._nodes.get((frame_id, blink_id))
        if not matches:
            return None
        if unique and len(matches) > 1:
            raise ValueError(
                f"Blink id {blink_id} is shared by {', '.join(n.id for n in matches)}"
            )
        return matches[0]

    def _build(self) -> Dict[Tuple[Optional[str], int], List[Node]]:
        nodes: Dict[Tuple[Optional[str], int], List[Node]] = {}
        for node in self.graph.nodes.values():
            if isinstance(node.node_type, DOM_PARENT_KINDS):
                nodes.setdefault((frame_of(node.id), node.node_type.node_id), []).append(node)
        logger.debug("Indexed %d DOM nodes by Blink id", len(nodes))
        return nodes


def root_url(graph: Graph) -> str:
    """URL of the page the recording was made from.

    Raises:
        LookupError: If the document has no ``<desc>`` URL.
    """
    descriptor = graph.descriptor
    if descriptor is None or not descriptor.url:
        raise LookupError("The recording does not name the URL it was made from")
    return descriptor.url


def local_context_root_for_id(graph: Graph, item_id: str) -> Node:
    """Top-level DOM root of the local frame context an item belongs to.

    This is the one DOM root in the item's frame that no ``cross DOM`` edge
    of the same frame points at. It is not necessarily the document the item
    belongs to, but it is first-party to it.

    Raises:
        LookupError: If the frame has no such DOM root.
        ValueError: If it has more than one.
    """
    frame_id = frame_of(item_id)
    roots = [
        node
        for node in graph.nodes.values()
        if isinstance(node.node_type, N.DomRoot)
        and frame_of(node.id) == frame_id
        and not any(
            isinstance(edge.edge_type, E.CrossDom) and frame_of(edge.id) == frame_id
            for edge in graph.incoming_edges(node.id)
        )
    ]
    if not roots:
        raise LookupError(f"No top-level DOM root in the frame context of {item_id}")
    if len(roots) > 1:
        raise ValueError(
            f"{len(roots)} top-level DOM roots in the frame context of {item_id}"
        )
    return roots[0]


def dom_root_for_html_node(
    graph: Graph, node_id: str, dom_index: Optional[BlinkIdIndex] = None
) -> Optional[Node]:
    """The document (DOM root) a DOM node belongs to.

    The node's ``insert node`` parents are followed up to a DOM root. A node
    that was never inserted belongs to the document of the script that
    created it. When that script ran from several documents, the one with
    the alphabetically first URL is used.

    Args:
        graph: Graph to search.
        node_id: An HTML element, text node, frame owner or DOM root.
        dom_index: Index to reuse; one is built on demand otherwise.

    Returns:
        The DOM root node, or None when no document can be attributed.

    Raises:
        NodeNotFoundError: If ``node_id`` is not in the graph.
        TypeError: If the node is not part of a document.
        LookupError: If a parent or creator the node refers to is missing.
        ValueError: If the node was created more than once, or by something
            other than a script.
    """
    node = _require(graph, node_id)
    return _dom_root_of_node(graph, node, dom_index or BlinkIdIndex(graph), set())


def dom_root_for_edge(
    graph: Graph, edge: Edge, dom_index: Optional[BlinkIdIndex] = None
) -> Optional[Node]:
    """The document (DOM root) an action originated from.

    Defined for ``request complete``, ``execute`` and ``cross DOM`` edges.
    Requests made by the parser, such as prefetches and CSS subresources,
    cannot be attributed and give None.

    Raises:
        EdgeNotFoundError: If ``edge`` is not part of ``graph``.
        TypeError: For any other edge kind.
        LookupError: If an element or frame on the way cannot be resolved.
        ValueError: If the edge's source or target is of an unexpected kind.
    """
    if edge.id not in graph.edges:
        raise EdgeNotFoundError(edge.id)
    return _dom_root_of_edge(graph, edge, dom_index or BlinkIdIndex(graph), set())


def _dom_root_of_node(
    graph: Graph, node: Node, index: BlinkIdIndex, running: Set[str]
) -> Optional[Node]:
    if isinstance(node.node_type, N.DomRoot):
        return node
    if not isinstance(node.node_type, DOM_CHILD_KINDS):
        raise TypeError(f"{node.id} is a {node.kind} node, not part of a document")

    frame_id = frame_of(node.id)
    for edge in graph.incoming_edges(node.id):
        if not isinstance(edge.edge_type, E.InsertNode):
            continue
        parent = index.get(edge.edge_type.parent, frame_id, unique=True)
        if parent is None:
            raise LookupError(
                f"{node.id} was inserted under Blink id {edge.edge_type.parent}, "
                "which has no DOM node"
            )
        root = _dom_root_of_node(graph, parent, index, running)
        if root is not None:
            return root

    creators = [
        graph.source_node(edge)
        for edge in graph.incoming_edges(node.id)
        if isinstance(edge.edge_type, E.CreateNode)
    ]
    if not creators:
        raise LookupError(f"{node.id} was neither inserted nor created")
    if len(creators) > 1:
        raise ValueError(f"{node.id} was created {len(creators)} times")
    creator = creators[0]
    if not isinstance(creator.node_type, N.Script):
        raise ValueError(
            f"{node.id} was never inserted and was created by a {creator.kind} node"
        )
    return _dom_root_of_script(graph, creator, creator.id, index, running)


def _dom_root_of_edge(
    graph: Graph, edge: Edge, index: BlinkIdIndex, running: Set[str]
) -> Optional[Node]:
    edge_type = edge.edge_type

    if isinstance(edge_type, E.RequestComplete):
        initiator = graph.target_node(edge)
        if isinstance(initiator.node_type, (N.HtmlElement, N.FrameOwner)):
            return _dom_root_of_node(graph, initiator, index, running)
        if isinstance(initiator.node_type, N.Script):
            return _dom_root_of_script(graph, initiator, edge.id, index, running)
        if isinstance(initiator.node_type, N.Parser):
            return None
        raise ValueError(f"Request {edge.id} was initiated by a {initiator.kind} node")

    if isinstance(edge_type, E.Execute):
        source = graph.source_node(edge)
        source_type = source.node_type
        if isinstance(source_type, N.HtmlElement) and source_type.tag_name == "script":
            return _dom_root_of_node(graph, source, index, running)
        if isinstance(source_type, N.Script):
            # Module graphs can import each other in cycles.
            if source_type.script_type == "module":
                return local_context_root_for_id(graph, edge.id)
            return _dom_root_of_script(graph, source, None, index, running)
        if isinstance(source_type, N.DomRoot):
            return source
        raise ValueError(f"Execute edge {edge.id} comes from a {source.kind} node")

    if isinstance(edge_type, E.CrossDom):
        source = graph.source_node(edge)
        if isinstance(source.node_type, N.RemoteFrame):
            previous = [
                other
                for other in graph.incoming_edges(source.id)
                if isinstance(other.edge_type, E.CrossDom)
            ]
            if len(previous) != 1:
                raise LookupError(
                    f"Remote frame {source.id} has {len(previous)} incoming cross DOM edges"
                )
            return _dom_root_of_edge(graph, previous[0], index, running)
        if isinstance(source.node_type, N.FrameOwner):
            return _dom_root_of_node(graph, source, index, running)
        if isinstance(source.node_type, N.DomRoot):
            return source
        raise ValueError(f"Cross DOM edge {edge.id} comes from a {source.kind} node")

    raise TypeError(f"{edge.id} is a {edge.kind} edge, which has no originating document")


def _dom_root_of_script(
    graph: Graph,
    script: Node,
    fallback_id: Optional[str],
    index: BlinkIdIndex,
    running: Set[str],
) -> Optional[Node]:
    if script.id in running:
        return None
    executions = [
        edge for edge in graph.incoming_edges(script.id) if isinstance(edge.edge_type, E.Execute)
    ]
    if not executions:
        if fallback_id is None:
            raise LookupError(f"Script {script.id} was never executed")
        return local_context_root_for_id(graph, fallback_id)

    running.add(script.id)
    try:
        roots = [_dom_root_of_edge(graph, edge, index, running) for edge in executions]
    finally:
        running.discard(script.id)

    # The same source can run from several documents of one frame context.
    named = sorted(
        (
            root
            for root in roots
            if root is not None
            and isinstance(root.node_type, N.DomRoot)
            and root.node_type.url is not None
        ),
        key=lambda root: root.node_type.url,
    )
    return named[0] if named else None
