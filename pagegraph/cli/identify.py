"""Identify command implementation."""

import logging
from typing import Optional, Union

from rich.console import Console

from pagegraph.graph.core.graph import Graph
from pagegraph.graph.models.identifiers import ItemIdError, coerce_item_id
from pagegraph.graph.models.records import Edge, Node
from pagegraph.graph.models.registry import GraphKind

logger = logging.getLogger("pagegraph.cli.identify")


def describe_kind(kind: GraphKind) -> str:
    """One-line rendering of a kind: discriminator plus its fields."""
    fields = kind.model_dump(mode="json", exclude_none=True)
    if not fields:
        return kind.kind
    rendered = ", ".join(f"{name}={value!r}" for name, value in fields.items())
    return f"{kind.kind} ({rendered})"


def resolve_item(graph: Graph, item_id: str) -> Optional[Union[Node, Edge]]:
    """Find a node or edge from user input.

    ``n12`` and ``e7`` name a node or an edge; a bare ``12`` is tried as a
    node first, then as an edge. Ids the recording did not number are looked
    up verbatim.
    """
    if item_id in graph.nodes:
        return graph.nodes[item_id]
    if item_id in graph.edges:
        return graph.edges[item_id]

    prefixes = ("n", "e")
    if item_id[:1] in prefixes:
        prefixes = (item_id[0],)
    for prefix in prefixes:
        try:
            candidate = coerce_item_id(item_id, prefix)
        except ItemIdError:
            continue
        found = graph.node(candidate) if prefix == "n" else graph.edge(candidate)
        if found is not None:
            return found
    return None


def _print_edge(console: Console, edge: Edge, indent: str = "  ") -> None:
    console.print(f"{indent}{edge.id}")
    console.print(f"{indent}  Sequence: {edge.sequence}")
    console.print(f"{indent}  Type: {describe_kind(edge.edge_type)}")


def _print_node(console: Console, node: Node, indent: str = "  ") -> None:
    console.print(f"{indent}{node.id}")
    console.print(f"{indent}  Timestamp: {node.timestamp}")
    console.print(f"{indent}  Type: {describe_kind(node.node_type)}")


def identify_command(graph: Graph, args) -> int:
    """Execute identify command.

    Args:
        graph: Graph read from the ``-f`` file.
        args: Parsed command-line arguments containing:
            - id: Node or edge id to describe

    Returns:
        int: Exit code (0 for success, 1 when the id is unknown).
    """
    console = Console(highlight=False, markup=False, soft_wrap=True)
    item = resolve_item(graph, args.id)

    if item is None:
        logger.error("No node or edge with id %s was found in this graph", args.id)
        return 1

    if isinstance(item, Node):
        console.print(f"Node {item.id}")
        console.print(f"Timestamp: {item.timestamp}")
        console.print(f"Type: {describe_kind(item.node_type)}")

        console.print()
        console.print("Incoming edges")
        for edge in graph.incoming_edges(item.id):
            _print_edge(console, edge)

        console.print()
        console.print("Outgoing edges")
        for edge in graph.outgoing_edges(item.id):
            _print_edge(console, edge)
        return 0

    console.print(f"Edge {item.id}")
    console.print(f"Sequence: {item.sequence}")
    console.print(f"Type: {describe_kind(item.edge_type)}")

    console.print()
    console.print("Source node")
    _print_node(console, graph.source_node(item))

    console.print()
    console.print("Target node")
    _print_node(console, graph.target_node(item))
    return 0
