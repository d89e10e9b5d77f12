"""Causal downstream-effect traversal.

An edge's downstream effects are the actions that would not have happened
had that edge been left out of the page load: a request start leads to its
completion, a completed script download leads to the script running, a
running script leads to the requests it issues, and so on. Only the causal
links listed in :func:`direct_downstream_effects_of` are modelled; every
other edge kind has no known effects.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from pagegraph.errors import EdgeNotFoundError
from pagegraph.graph.core.graph import Graph
from pagegraph.graph.models import edges as E
from pagegraph.graph.models import nodes as N
from pagegraph.graph.models.identifiers import frame_of
from pagegraph.graph.models.records import Edge, Node

from .queries import BlinkIdIndex

logger = logging.getLogger("pagegraph.graph.ops.effects")

# Elements that start a network request when their src attribute is set.
CAN_HAVE_SRC = frozenset(
    ["audio", "embed", "iframe", "img", "input", "script", "source", "track", "video"]
)

ABOUT_BLANK = "about:blank"


@dataclass
class DownstreamRequests:
    """A request caused by an edge, with the requests it caused in turn."""

    request_id: int
    url: str
    request_type: E.RequestType
    node_id: str
    edge_id: str
    children: List["DownstreamRequests"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "url": self.url,
            "request_type": self.request_type.label,
            "node_id": self.node_id,
            "edge_id": self.edge_id,
            "children": [child.to_dict() for child in self.children],
        }


def direct_downstream_effects_of(
    graph: Graph, edge: Edge, dom_index: Optional[BlinkIdIndex] = None
) -> List[Edge]:
    """Edges caused directly by ``edge``, ordered by sequence.

    Modelled links:

    - ``request start`` -> the matching ``request complete``/``request error``
    - ``request complete`` of a script into a ``<script>`` element -> the
      element's ``execute`` edges
    - ``execute`` -> request starts, executions and attribute sets issued
      by the executed script
    - ``set attribute`` of ``src`` on a src-capable element -> its request
      starts; on a frame owner -> the frames it loads until the next ``src``
    - ``insert node`` of text into a ``<script>`` element -> the element's
      next execution
    - ``cross DOM`` into a remote frame -> the frame's onward ``cross DOM``

    Args:
        graph: Graph the edge belongs to.
        edge: Edge to find the effects of.
        dom_index: Blink id index to reuse across calls; built on demand
            otherwise.

    Raises:
        EdgeNotFoundError: If ``edge`` is not part of ``graph``.
    """
    _require_edge(graph, edge)
    edge_type = edge.edge_type
    target = graph.target_node(edge)

    if isinstance(edge_type, E.RequestStart):
        return [
            out
            for out in graph.outgoing_edges(target.id)
            if isinstance(out.edge_type, (E.RequestComplete, E.RequestError))
            and out.edge_type.request_id == edge_type.request_id
        ]

    if isinstance(edge_type, E.RequestComplete):
        if edge_type.resource_type == "script" and _is_tag(target, "script"):
            return _outgoing_of_kind(graph, target, E.Execute)
        return []

    if isinstance(edge_type, E.Execute):
        return _outgoing_of_kind(graph, target, (E.RequestStart, E.Execute, E.SetAttribute))

    if isinstance(edge_type, E.SetAttribute):
        if edge_type.key != "src":
            return []
        if isinstance(target.node_type, N.HtmlElement):
            if target.node_type.tag_name in CAN_HAVE_SRC:
                return _outgoing_of_kind(graph, target, E.RequestStart)
            return []
        if isinstance(target.node_type, N.FrameOwner):
            if target.node_type.tag_name in CAN_HAVE_SRC:
                return _frames_loaded_by(graph, edge, target)
            return []
        return []

    if isinstance(edge_type, E.InsertNode):
        if isinstance(target.node_type, N.TextNode):
            index = dom_index or BlinkIdIndex(graph)
            return _script_run_by_text(graph, edge, edge_type, index)
        return []

    if isinstance(edge_type, E.CrossDom):
        if isinstance(target.node_type, N.RemoteFrame):
            return _outgoing_of_kind(graph, target, E.CrossDom)
        return []

    return []


def all_downstream_effects_of(graph: Graph, edge: Edge) -> List[Edge]:
    """Every edge transitively caused by ``edge``, excluding ``edge`` itself.

    Each effect is listed once, in the order the traversal reaches it.
    """
    _require_edge(graph, edge)
    dom_index = BlinkIdIndex(graph)
    pending = [edge]
    queued: Set[str] = {edge.id}
    effects: List[Edge] = []

    while pending:
        current = pending.pop()
        if current.id != edge.id:
            effects.append(current)
        for effect in direct_downstream_effects_of(graph, current, dom_index):
            if effect.id not in queued:
                queued.add(effect.id)
                pending.append(effect)

    logger.debug("Edge %s has %d downstream effects", edge.id, len(effects))
    return effects


def all_downstream_requests_nested(
    graph: Graph,
    edge: Edge,
    _visited: Optional[Set[str]] = None,
    _dom_index: Optional[BlinkIdIndex] = None,
) -> List[DownstreamRequests]:
    """Requests caused by ``edge``, each nested with the requests it caused.

    Non-request effects are followed through but not reported.
    """
    if _visited is None:
        _require_edge(graph, edge)
    visited = _visited if _visited is not None else set()
    dom_index = _dom_index or BlinkIdIndex(graph)
    visited.add(edge.id)

    pending = [edge]
    requests: List[DownstreamRequests] = []

    while pending:
        current = pending.pop()
        for effect in direct_downstream_effects_of(graph, current, dom_index):
            if effect.id in visited:
                continue
            visited.add(effect.id)
            effect_type = effect.edge_type
            if isinstance(effect_type, E.RequestStart):
                resource = graph.target_node(effect)
                url = getattr(resource.node_type, "url", None) or ""
                requests.append(
                    DownstreamRequests(
                        request_id=effect_type.request_id,
                        url=url,
                        request_type=effect_type.request_type,
                        node_id=resource.id,
                        edge_id=effect.id,
                        children=all_downstream_requests_nested(
                            graph, effect, visited, dom_index
                        ),
                    )
                )
            else:
                pending.append(effect)

    return requests


# ----------------------------------------------------------------------
# Helpers
# ----------------------------------------------------------------------


def _require_edge(graph: Graph, edge: Edge) -> None:
    if edge.id not in graph.edges:
        raise EdgeNotFoundError(edge.id)


def _is_tag(node: Node, tag_name: str) -> bool:
    return isinstance(node.node_type, N.HtmlElement) and node.node_type.tag_name == tag_name


def _outgoing_of_kind(graph: Graph, node: Node, kinds) -> List[Edge]:
    return [out for out in graph.outgoing_edges(node.id) if isinstance(out.edge_type, kinds)]


def _frames_loaded_by(graph: Graph, edge: Edge, owner: Node) -> List[Edge]:
    if edge.sequence is None:
        return []

    later_sets = sorted(
        other.sequence
        for other in graph.incoming_edges(owner.id)
        if other.id != edge.id
        and isinstance(other.edge_type, E.SetAttribute)
        and other.edge_type.key == "src"
        and other.sequence is not None
        and other.sequence > edge.sequence
    )
    next_set = later_sets[0] if later_sets else None

    loaded = []
    for out in _outgoing_of_kind(graph, owner, E.CrossDom):
        frame = graph.target_node(out).node_type
        if isinstance(frame, N.DomRoot) and frame.url == ABOUT_BLANK:
            continue
        if not isinstance(frame, (N.DomRoot, N.RemoteFrame)):
            continue
        if out.sequence is None or out.sequence < edge.sequence:
            continue
        if next_set is not None and out.sequence >= next_set:
            continue
        loaded.append(out)
    return loaded


def _script_run_by_text(
    graph: Graph, edge: Edge, insert: E.InsertNode, dom_index: BlinkIdIndex
) -> List[Edge]:
    parent = dom_index.get(insert.parent, frame_of(edge.id))
    if parent is None or not _is_tag(parent, "script"):
        return []

    executions = [
        out
        for out in _outgoing_of_kind(graph, parent, E.Execute)
        if edge.sequence is None
        or (out.sequence is not None and out.sequence >= edge.sequence)
    ]
    # Non-executable script blocks such as type="application/json" never run.
    if not executions:
        return []
    return [executions[0]]
