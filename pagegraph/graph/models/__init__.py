"""Data models, kind registries and identifiers used by the graph package.

Node and edge kinds live in the ``nodes`` and ``edges`` modules; a few names
(``Binding``, ``BindingEvent``) exist in both, so import kinds through the
module when in doubt.
"""

from . import edges, nodes
from .attributes import (
    AttributeKeySchema,
    AttributeType,
    KeyDomain,
    KeySpec,
    canonical_name,
    decode_numeric,
    decode_value,
)
from .edges import EDGE_KINDS, EdgeType, RequestType
from .identifiers import (
    ItemIdError,
    coerce_item_id,
    format_item_id,
    frame_of,
    item_number,
    normalize_frame_id,
    parse_edge_id,
    parse_node_id,
)
from .nodes import DOM_NODE_KINDS, NODE_KINDS, NodeType
from .records import Edge, Node, PageGraphDescriptor, PageGraphTime
from .registry import Attr, AttributeField, EdgeKind, GraphKind, KindRegistry, NodeKind

__all__ = [
    "Attr",
    "AttributeField",
    "AttributeKeySchema",
    "AttributeType",
    "DOM_NODE_KINDS",
    "EDGE_KINDS",
    "Edge",
    "EdgeKind",
    "EdgeType",
    "GraphKind",
    "ItemIdError",
    "KeyDomain",
    "KeySpec",
    "KindRegistry",
    "NODE_KINDS",
    "Node",
    "NodeKind",
    "NodeType",
    "PageGraphDescriptor",
    "PageGraphTime",
    "RequestType",
    "canonical_name",
    "coerce_item_id",
    "decode_numeric",
    "decode_value",
    "edges",
    "format_item_id",
    "frame_of",
    "item_number",
    "nodes",
    "normalize_frame_id",
    "parse_edge_id",
    "parse_node_id",
]
