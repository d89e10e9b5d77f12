"""adblock_rules command: resources matching adblock filter rules."""

import logging
import sys

from pagegraph.cli.query import node_row, write_rows
from pagegraph.graph.core.graph import Graph
from pagegraph.graph.ops import resources_matching_filters

logger = logging.getLogger("pagegraph.cli.adblock_rules")


def adblock_rules_command(graph: Graph, args) -> int:
    """Execute adblock_rules command.

    Args:
        graph: Graph to search.
        args: Parsed arguments containing:
            - rules: One or more Adblock Plus filter rules
            - exceptions: Report resources matched by exception rules
            - format: json or csv

    Returns:
        int: Exit code (0 for success, 1 when the recording has no usable
        root URL).
    """
    try:
        matches = resources_matching_filters(
            graph, args.rules, only_exceptions=getattr(args, "exceptions", False)
        )
    except (LookupError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    rows = [node_row(node) for node in matches]
    write_rows(rows, getattr(args, "format", "json"), sys.stdout)
    return 0
