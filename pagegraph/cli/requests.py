"""Network request commands: downstream_requests and request_id_info."""

import json
import logging
import sys

from pagegraph.graph.core.graph import Graph
from pagegraph.graph.models import edges as E
from pagegraph.graph.models.identifiers import ItemIdError, coerce_item_id
from pagegraph.graph.ops import (
    all_downstream_effects_of,
    all_downstream_requests_nested,
    request_info,
)

logger = logging.getLogger("pagegraph.cli.requests")


def downstream_requests_command(graph: Graph, args) -> int:
    """Execute downstream_requests command.

    Prints a JSON array of ``[request_id, edge_id]`` pairs for every request
    start caused by the edge, or with ``--nested`` the request tree.

    Returns:
        int: Exit code (0 for success, 1 when the edge is unknown).
    """
    edge = graph.edge(args.edge_id)
    if edge is None:
        try:
            edge = graph.edge(coerce_item_id(args.edge_id, "e"))
        except ItemIdError as exc:
            logger.error("Invalid edge id %s: %s", args.edge_id, exc)
            return 1
    if edge is None:
        logger.error("No edge with id %s was found in this graph", args.edge_id)
        return 1

    if getattr(args, "nested", False):
        payload = [req.to_dict() for req in all_downstream_requests_nested(graph, edge)]
    else:
        payload = [
            [effect.edge_type.request_id, effect.id]
            for effect in all_downstream_effects_of(graph, edge)
            if isinstance(effect.edge_type, E.RequestStart)
        ]

    json.dump(payload, sys.stdout)
    sys.stdout.write("\n")
    return 0


def request_id_info_command(graph: Graph, args) -> int:
    """Execute request_id_info command.

    Prints one JSON object joining the request's start, resource and
    completion.

    Returns:
        int: Exit code (0 for success, 1 when the request cannot be joined).
    """
    try:
        info = request_info(graph, args.request_id, getattr(args, "frame_id", None))
    except (LookupError, ValueError) as exc:
        logger.error("%s", exc)
        return 1

    json.dump(info.to_dict(), sys.stdout)
    sys.stdout.write("\n")
    return 0
