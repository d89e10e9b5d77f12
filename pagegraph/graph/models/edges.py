"""Edge kinds recorded by PageGraph.

Edges are actions taken during the page load, directed from the actor to the
thing acted upon (a script `execute`s nothing; an element `execute`s the
script it holds; a script `request start`s a resource).
"""

from enum import Enum
from typing import Annotated, Optional, Union

from .attributes import AttributeType
from .registry import Attr, EdgeKind, KindRegistry

EDGE_KINDS = KindRegistry("edge")

_BOOL = AttributeType.BOOLEAN
_INT = AttributeType.INT
_UINT = AttributeType.UINT


class RequestType(str, Enum):
    """Blink resource type recorded on `request start` edges."""

    IMAGE = "Image"
    SCRIPT = "Script"
    CSS = "CSS"
    AJAX = "AJAX"
    UNKNOWN = "Unknown"

    @classmethod
    def _missing_(cls, value: object) -> Optional["RequestType"]:
        # Recordings made before the Script rename.
        if value == "ScriptClassic":
            return cls.SCRIPT
        return None

    @property
    def label(self) -> str:
        """Short, request-initiator style name (``xhr``, ``stylesheet``...)."""
        return _REQUEST_TYPE_LABELS[self]


_REQUEST_TYPE_LABELS = {
    RequestType.IMAGE: "image",
    RequestType.SCRIPT: "script",
    RequestType.CSS: "stylesheet",
    RequestType.AJAX: "xhr",
    RequestType.UNKNOWN: "unknown",
}


# =============================================================================
# Structure and DOM mutation
# =============================================================================


@EDGE_KINDS.register
class Structure(EdgeKind):
    """Static parent/child relation, not an action in time."""

    discriminator = "structure"


@EDGE_KINDS.register
class CrossDom(EdgeKind):
    """Links a frame owner or remote frame to the frame's DOM root/parser."""

    discriminator = "cross DOM"


@EDGE_KINDS.register
class CreateNode(EdgeKind):
    discriminator = "create node"


@EDGE_KINDS.register
class InsertNode(EdgeKind):
    """The target DOM node was inserted under ``parent`` (a Blink node id)."""

    discriminator = "insert node"

    parent: Annotated[int, Attr("parent", _UINT)]
    before: Annotated[Optional[int], Attr("before", _UINT)] = None


@EDGE_KINDS.register
class RemoveNode(EdgeKind):
    """Detached from the document; the node may be inserted again."""

    discriminator = "remove node"


@EDGE_KINDS.register
class DeleteNode(EdgeKind):
    discriminator = "delete node"


@EDGE_KINDS.register
class TextChange(EdgeKind):
    discriminator = "text change"


@EDGE_KINDS.register
class SetAttribute(EdgeKind):
    discriminator = "set attribute"

    key: Annotated[str, Attr("key")]
    value: Annotated[Optional[str], Attr("value")] = None
    is_style: Annotated[bool, Attr("is_style", _BOOL)]


@EDGE_KINDS.register
class DeleteAttribute(EdgeKind):
    discriminator = "delete attribute"

    key: Annotated[str, Attr("key")]
    is_style: Annotated[bool, Attr("is_style", _BOOL)]


# =============================================================================
# Script execution
# =============================================================================


@EDGE_KINDS.register
class Execute(EdgeKind):
    discriminator = "execute"


@EDGE_KINDS.register
class ExecuteFromAttribute(EdgeKind):
    """Script run from an inline handler attribute such as ``onclick``."""

    discriminator = "execute from attribute"

    attr_name: Annotated[str, Attr("attr_name")]


@EDGE_KINDS.register
class JsCall(EdgeKind):
    discriminator = "js call"

    args: Annotated[Optional[str], Attr("args")] = None
    script_position: Annotated[Optional[int], Attr("script_position", _UINT)] = None


@EDGE_KINDS.register
class JsResult(EdgeKind):
    discriminator = "js result"

    value: Annotated[Optional[str], Attr("value")] = None


@EDGE_KINDS.register
class Binding(EdgeKind):
    discriminator = "binding"


@EDGE_KINDS.register
class BindingEvent(EdgeKind):
    discriminator = "binding event"

    script_position: Annotated[int, Attr("script_position", _UINT)]


# =============================================================================
# Events
# =============================================================================


@EDGE_KINDS.register
class AddEventListener(EdgeKind):
    discriminator = "add event listener"

    key: Annotated[str, Attr("key")]
    event_listener_id: Annotated[int, Attr("event_listener_id", _UINT)]
    script_id: Annotated[int, Attr("script_id", _UINT)]


@EDGE_KINDS.register
class RemoveEventListener(EdgeKind):
    discriminator = "remove event listener"

    key: Annotated[str, Attr("key")]
    event_listener_id: Annotated[int, Attr("event_listener_id", _UINT)]
    script_id: Annotated[int, Attr("script_id", _UINT)]


@EDGE_KINDS.register
class EventListener(EdgeKind):
    discriminator = "event listener"

    key: Annotated[str, Attr("key")]
    event_listener_id: Annotated[int, Attr("event_listener_id", _UINT)]


# =============================================================================
# Network
# =============================================================================
# A request is a `request start` into a resource node followed by a
# `request complete` or `request error` out of it; the pair shares request_id.


@EDGE_KINDS.register
class RequestStart(EdgeKind):
    discriminator = "request start"

    request_type: Annotated[
        RequestType, Attr("request_type", AttributeType.ENUM, RequestType)
    ]
    status: Annotated[str, Attr("status")]
    request_id: Annotated[int, Attr("request_id", _UINT)]


@EDGE_KINDS.register
class RequestComplete(EdgeKind):
    discriminator = "request complete"

    resource_type: Annotated[str, Attr("resource_type")]
    status: Annotated[str, Attr("status")]
    value: Annotated[Optional[str], Attr("value")] = None
    response_hash: Annotated[Optional[str], Attr("response_hash")] = None
    request_id: Annotated[int, Attr("request_id", _UINT)]
    headers: Annotated[str, Attr("headers")]
    # -1 when the size is unknown (streamed or failed responses).
    size: Annotated[int, Attr("size", _INT)]


@EDGE_KINDS.register
class RequestError(EdgeKind):
    discriminator = "request error"

    status: Annotated[str, Attr("status")]
    request_id: Annotated[int, Attr("request_id", _UINT)]
    value: Annotated[Optional[str], Attr("value")] = None
    headers: Annotated[str, Attr("headers")]
    size: Annotated[int, Attr("size", _INT)]


@EDGE_KINDS.register
class RequestResponse(EdgeKind):
    discriminator = "request response"


@EDGE_KINDS.register
class ResourceBlock(EdgeKind):
    discriminator = "resource block"


@EDGE_KINDS.register
class Filter(EdgeKind):
    discriminator = "filter"


@EDGE_KINDS.register
class Shield(EdgeKind):
    discriminator = "shield"


# =============================================================================
# Storage
# =============================================================================


@EDGE_KINDS.register
class StorageSet(EdgeKind):
    discriminator = "storage set"

    key: Annotated[str, Attr("key")]
    value: Annotated[Optional[str], Attr("value")] = None


@EDGE_KINDS.register
class StorageReadResult(EdgeKind):
    discriminator = "storage read result"

    key: Annotated[str, Attr("key")]
    value: Annotated[Optional[str], Attr("value")] = None


@EDGE_KINDS.register
class ReadStorageCall(EdgeKind):
    discriminator = "read storage call"

    key: Annotated[str, Attr("key")]


@EDGE_KINDS.register
class DeleteStorage(EdgeKind):
    discriminator = "delete storage"

    key: Annotated[str, Attr("key")]


@EDGE_KINDS.register
class ClearStorage(EdgeKind):
    discriminator = "clear storage"

    key: Annotated[Optional[str], Attr("key")] = None


@EDGE_KINDS.register
class StorageBucket(EdgeKind):
    discriminator = "storage bucket"


EdgeType = Union[
    Structure,
    CrossDom,
    CreateNode,
    InsertNode,
    RemoveNode,
    DeleteNode,
    TextChange,
    SetAttribute,
    DeleteAttribute,
    Execute,
    ExecuteFromAttribute,
    JsCall,
    JsResult,
    Binding,
    BindingEvent,
    AddEventListener,
    RemoveEventListener,
    EventListener,
    RequestStart,
    RequestComplete,
    RequestError,
    RequestResponse,
    ResourceBlock,
    Filter,
    Shield,
    StorageSet,
    StorageReadResult,
    ReadStorageCall,
    DeleteStorage,
    ClearStorage,
    StorageBucket,
]
