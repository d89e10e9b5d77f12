"""Query command implementation.

Runs one of the built-in named queries and writes the matching nodes as
JSON or CSV to standard output.
"""

import csv
import json
import logging
import sys
from typing import Any, Callable, Dict, List, TextIO

from pagegraph.graph.core.graph import Graph
from pagegraph.graph.models import nodes as N
from pagegraph.graph.models.records import Node
from pagegraph.graph.ops import html_element_modifications

logger = logging.getLogger("pagegraph.cli.query")

OUTPUT_FORMATS = ("json", "csv")
BASE_FIELDS = ["id", "kind", "timestamp"]

Row = Dict[str, Any]


def node_row(node: Node) -> Row:
    """Flatten a node into a row of JSON-compatible values."""
    row: Row = {"id": node.id, "kind": node.kind, "timestamp": node.timestamp}
    row.update(node.node_type.model_dump(mode="json"))
    return row


def deleted_elements(graph: Graph, args) -> List[Row]:
    """HTML elements flagged as deleted, optionally limited to one tag."""
    tag = getattr(args, "tag", None)
    matches = graph.filter_nodes(
        lambda n: isinstance(n.node_type, N.HtmlElement)
        and n.node_type.is_deleted
        and (tag is None or n.node_type.tag_name == tag)
    )
    return [node_row(node) for node in matches]


def scripts(graph: Graph, args) -> List[Row]:
    return [node_row(n) for n in graph.filter_nodes(lambda n: isinstance(n.node_type, N.Script))]


def resources(graph: Graph, args) -> List[Row]:
    return [
        node_row(n) for n in graph.filter_nodes(lambda n: isinstance(n.node_type, N.Resource))
    ]


def modified_elements(graph: Graph, args) -> List[Row]:
    """HTML elements modified at least ``--min-modifications`` times, most first."""
    threshold = getattr(args, "min_modifications", 4)
    counted = []
    for node in graph.filter_nodes(lambda n: isinstance(n.node_type, N.HtmlElement)):
        count = len(html_element_modifications(graph, node.id))
        if count >= threshold:
            counted.append((node, count))

    # sorted() is stable, so equal counts stay in file order.
    counted = sorted(counted, key=lambda item: item[1], reverse=True)
    rows = []
    for node, count in counted:
        row = node_row(node)
        row["modifications"] = count
        rows.append(row)
    return rows


NAMED_QUERIES: Dict[str, Callable[[Graph, Any], List[Row]]] = {
    "deleted_elements": deleted_elements,
    "scripts": scripts,
    "resources": resources,
    "modified_elements": modified_elements,
}


def write_rows(rows: List[Row], output_format: str, out: TextIO) -> None:
    """Serialize rows as a JSON array or as CSV with a header line."""
    if output_format == "json":
        json.dump(rows, out, indent=2, ensure_ascii=False)
        out.write("\n")
        return

    fieldnames = list(BASE_FIELDS)
    for row in rows:
        for name in row:
            if name not in fieldnames:
                fieldnames.append(name)
    writer = csv.DictWriter(out, fieldnames=fieldnames, restval="", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({k: "" if v is None else v for k, v in row.items()})


def query_command(graph: Graph, args) -> int:
    """Execute query command.

    Args:
        graph: Graph read from the ``-f`` file.
        args: Parsed command-line arguments containing:
            - name: Named query to run
            - format: json or csv
            - tag / min_modifications: Query-specific options

    Returns:
        int: Exit code (0 for success, non-zero for failure).
    """
    query = NAMED_QUERIES.get(args.name)
    if query is None:
        logger.error("Unknown query: %s", args.name)
        return 1

    output_format = getattr(args, "format", "json")
    if output_format not in OUTPUT_FORMATS:
        logger.error("Unsupported output format: %s", output_format)
        return 1

    rows = query(graph, args)
    logger.info("Query %s matched %d nodes", args.name, len(rows))
    write_rows(rows, output_format, sys.stdout)
    return 0
