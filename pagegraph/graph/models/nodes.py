"""Node kinds recorded by PageGraph.

Nodes are mostly actors (things that do things: scripts, the parser) or
actees (things that have things done to them: DOM nodes, resources, storage).
If a script creates an element and inserts it into the document, the graph
holds three nodes: the script, the created element, and the existing element
it was inserted under.
"""

from typing import Annotated, Optional, Union

from pydantic import field_validator

from .attributes import AttributeType
from .identifiers import normalize_frame_id
from .registry import Attr, KindRegistry, NodeKind

NODE_KINDS = KindRegistry("node")

_BOOL = AttributeType.BOOLEAN
_UINT = AttributeType.UINT


# =============================================================================
# Network
# =============================================================================


@NODE_KINDS.register
class Resource(NodeKind):
    """A URL requested from the network.

    Each request is a `request start` edge into this node; each response is a
    `request complete` or `request error` edge out of it.
    """

    discriminator = "resource"

    url: Annotated[str, Attr("url")]


# =============================================================================
# JavaScript surface
# =============================================================================


@NODE_KINDS.register
class WebApi(NodeKind):
    """A browser-provided Web API callable from script (one node per API)."""

    discriminator = "web API"

    method: Annotated[str, Attr("method")]


@NODE_KINDS.register
class JsBuiltin(NodeKind):
    """A JavaScript language builtin, e.g. ``JSON.parse``."""

    discriminator = "JS builtin"

    method: Annotated[str, Attr("method")]


@NODE_KINDS.register
class Script(NodeKind):
    """A unit of JavaScript compiled and run by the page."""

    discriminator = "script"

    url: Annotated[Optional[str], Attr("url")] = None
    script_type: Annotated[str, Attr("script_type")]
    script_id: Annotated[int, Attr("script_id", _UINT)]
    source: Annotated[Optional[str], Attr("source")] = None


@NODE_KINDS.register
class Binding(NodeKind):
    """A Blink binding exposed to script."""

    discriminator = "binding"

    binding: Annotated[str, Attr("binding")]
    binding_type: Annotated[str, Attr("binding_type")]


@NODE_KINDS.register
class BindingEvent(NodeKind):
    discriminator = "binding event"

    binding_event: Annotated[str, Attr("binding_event")]


# =============================================================================
# DOM
# =============================================================================
# node_id is Blink's internal id for the DOM node. It is unique and increasing
# across every document in the same renderer process, and shared between
# elements, text nodes and whitespace nodes.


@NODE_KINDS.register
class HtmlElement(NodeKind):
    """An HTML element, whether parsed from markup or created by script."""

    discriminator = "HTML element"

    tag_name: Annotated[str, Attr("tag_name")]
    is_deleted: Annotated[bool, Attr("is_deleted", _BOOL)]
    node_id: Annotated[int, Attr("node_id", _UINT)]


@NODE_KINDS.register
class TextNode(NodeKind):
    discriminator = "text node"

    text: Annotated[Optional[str], Attr("text")] = None
    is_deleted: Annotated[bool, Attr("is_deleted", _BOOL)]
    node_id: Annotated[int, Attr("node_id", _UINT)]


@NODE_KINDS.register
class DomRoot(NodeKind):
    """The document node of a local frame."""

    discriminator = "DOM root"

    url: Annotated[Optional[str], Attr("url")] = None
    tag_name: Annotated[str, Attr("tag_name")]
    is_deleted: Annotated[bool, Attr("is_deleted", _BOOL)]
    node_id: Annotated[int, Attr("node_id", _UINT)]


@NODE_KINDS.register
class FrameOwner(NodeKind):
    """An element that hosts a child frame (``iframe``, ``object``...)."""

    discriminator = "frame owner"

    tag_name: Annotated[str, Attr("tag_name")]
    is_deleted: Annotated[bool, Attr("is_deleted", _BOOL)]
    node_id: Annotated[int, Attr("node_id", _UINT)]


@NODE_KINDS.register
class Parser(NodeKind):
    """The HTML parser; the creator of every markup-defined DOM node."""

    discriminator = "parser"


@NODE_KINDS.register
class RemoteFrame(NodeKind):
    """A frame rendered out of process, recorded in its own graph file."""

    discriminator = "remote frame"

    frame_id: Annotated[str, Attr("frame_id")]

    @field_validator("frame_id")
    @classmethod
    def _check_frame_id(cls, value: str) -> str:
        return normalize_frame_id(value)


# =============================================================================
# Storage
# =============================================================================


@NODE_KINDS.register
class Storage(NodeKind):
    """Parent of the individual storage areas."""

    discriminator = "storage"


@NODE_KINDS.register
class LocalStorage(NodeKind):
    discriminator = "local storage"


@NODE_KINDS.register
class SessionStorage(NodeKind):
    discriminator = "session storage"


@NODE_KINDS.register
class CookieJar(NodeKind):
    discriminator = "cookie jar"


# =============================================================================
# Brave Shields and filters
# =============================================================================


@NODE_KINDS.register
class BraveShields(NodeKind):
    discriminator = "Brave Shields"


@NODE_KINDS.register
class AdsShield(NodeKind):
    discriminator = "ads shield"
    # Older recorders wrote this misspelled variant.
    aliases = ("shieldsAds shield",)


@NODE_KINDS.register
class TrackersShield(NodeKind):
    discriminator = "trackers shield"


@NODE_KINDS.register
class JavascriptShield(NodeKind):
    discriminator = "javascript shield"


@NODE_KINDS.register
class FingerprintingShield(NodeKind):
    discriminator = "fingerprinting shield"


@NODE_KINDS.register
class FingerprintingV2Shield(NodeKind):
    discriminator = "fingerprintingV2 shield"


@NODE_KINDS.register
class AdFilter(NodeKind):
    """An adblock rule that matched a request."""

    discriminator = "ad filter"

    rule: Annotated[str, Attr("rule")]


@NODE_KINDS.register
class TrackerFilter(NodeKind):
    discriminator = "tracker filter"


@NODE_KINDS.register
class FingerprintingFilter(NodeKind):
    discriminator = "fingerprinting filter"


@NODE_KINDS.register
class Extensions(NodeKind):
    """Browser extensions acting on the page."""

    discriminator = "extensions"


NodeType = Union[
    Resource,
    WebApi,
    JsBuiltin,
    Script,
    Binding,
    BindingEvent,
    HtmlElement,
    TextNode,
    DomRoot,
    FrameOwner,
    Parser,
    RemoteFrame,
    Storage,
    LocalStorage,
    SessionStorage,
    CookieJar,
    BraveShields,
    AdsShield,
    TrackersShield,
    JavascriptShield,
    FingerprintingShield,
    FingerprintingV2Shield,
    AdFilter,
    TrackerFilter,
    FingerprintingFilter,
    Extensions,
]

# Kinds that wrap a Blink DOM node and carry node_id / is_deleted.
DOM_NODE_KINDS = (HtmlElement, TextNode, DomRoot, FrameOwner)
