"""Read and query PageGraph recordings.

PageGraph records everything that happened while a browser loaded a page
(DOM changes, script execution, network requests, storage access) as a
directed graph serialized to GraphML. This package reads those files into an
immutable, typed graph and offers filtering and traversal over it::

    from pagegraph import read_from_file
    from pagegraph.graph.models.nodes import HtmlElement

    graph = read_from_file("page_graph.graphml")
    deleted_divs = graph.filter_nodes(
        lambda n: isinstance(n.node_type, HtmlElement)
        and n.node_type.is_deleted
        and n.node_type.tag_name == "div"
    )
"""

from pagegraph.config import ReaderConfig
from pagegraph.errors import (
    DanglingEdgeError,
    DecodeError,
    DuplicateEdgeIdError,
    DuplicateNodeIdError,
    EdgeNotFoundError,
    MalformedDocumentError,
    MissingAttributeError,
    NodeNotFoundError,
    PageGraphError,
    ParseError,
    UnexpectedAttributeError,
    UnknownKindError,
)
from pagegraph.graph import (
    Direction,
    Edge,
    Graph,
    Node,
    PageGraphDescriptor,
    read_from_file,
    read_from_reader,
)
from pagegraph.graph.models import edges, nodes

__version__ = "0.1.0"

__all__ = [
    "DanglingEdgeError",
    "DecodeError",
    "Direction",
    "DuplicateEdgeIdError",
    "DuplicateNodeIdError",
    "Edge",
    "EdgeNotFoundError",
    "Graph",
    "MalformedDocumentError",
    "MissingAttributeError",
    "Node",
    "NodeNotFoundError",
    "PageGraphDescriptor",
    "PageGraphError",
    "ParseError",
    "ReaderConfig",
    "UnexpectedAttributeError",
    "UnknownKindError",
    "__version__",
    "edges",
    "nodes",
    "read_from_file",
    "read_from_reader",
]
