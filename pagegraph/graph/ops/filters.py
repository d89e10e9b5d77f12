"""Match recorded resources against adblock filter rules.

Rules use Adblock Plus network filter syntax and are evaluated with the
``adblock`` package (Brave's adblock-rust engine). Every request is checked
as if it were made from the recording's root URL.
"""

from __future__ import annotations

import logging
from typing import Iterable, List
from urllib.parse import urlsplit

import adblock

from pagegraph.graph.core.graph import Graph
from pagegraph.graph.models import nodes as N
from pagegraph.graph.models.records import Node

from .queries import resource_request_types, root_url

logger = logging.getLogger("pagegraph.graph.ops.filters")


def build_engine(rules: Iterable[str]) -> adblock.Engine:
    """Compile filter rules into a blocking engine."""
    filter_set = adblock.FilterSet(debug=True)
    filter_set.add_filters(list(rules))
    return adblock.Engine(filter_set, optimize=False)


def resources_matching_filters(
    graph: Graph, rules: Iterable[str], only_exceptions: bool = False
) -> List[Node]:
    """Resource nodes requested in a way the filter rules match.

    A resource is checked once per distinct request type it was fetched as
    and is reported when any of those checks matches. Resources whose URL
    has no host (``data:`` URLs, for example) are never reported.

    Args:
        graph: Graph to search.
        rules: Adblock Plus filter rules.
        only_exceptions: Report resources an exception (``@@``) rule applies
            to instead of resources a blocking rule matches. The engine only
            consults exceptions for requests a blocking rule also matches.

    Returns:
        List[Node]: Matching resources, in file order.

    Raises:
        LookupError: If the recording does not name its root URL.
        ValueError: If the root URL has no host.
    """
    source_url = root_url(graph)
    if not urlsplit(source_url).hostname:
        raise ValueError(f"Root URL {source_url!r} has no host")
    engine = build_engine(rules)

    matched: List[Node] = []
    for node in graph.filter_nodes(lambda n: isinstance(n.node_type, N.Resource)):
        url = node.node_type.url
        if not urlsplit(url).hostname:
            continue
        for request_type, _ in resource_request_types(graph, node.id):
            result = engine.check_network_urls(url, source_url, request_type)
            if result.exception is not None if only_exceptions else result.matched:
                matched.append(node)
                break

    logger.debug("%d resources match %s filter rules", len(matched), source_url)
    return matched


def resources_matching_filter(
    graph: Graph, rule: str, only_exceptions: bool = False
) -> List[Node]:
    """Single-rule form of :func:`resources_matching_filters`."""
    return resources_matching_filters(graph, [rule], only_exceptions)
