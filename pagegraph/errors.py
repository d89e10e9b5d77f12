"""Exception hierarchy for reading and querying PageGraph recordings.

Construction-time errors derive from ParseError and abort the whole read:
no partially built graph is ever returned. Query-time errors are scoped to
the failing call and leave the Graph usable.
"""

from typing import Iterable, Optional


class PageGraphError(Exception):
    """Base class for every error raised by the pagegraph package."""


# =============================================================================
# Construction-time errors
# =============================================================================


class ParseError(PageGraphError):
    """A recording could not be turned into a Graph."""


class MalformedDocumentError(ParseError):
    """Input is not well-formed XML or breaks the GraphML key contract.

    Attributes:
        line: 1-based line of the failure, when the XML parser reports one.
        column: 0-based column of the failure, when reported.
    """

    def __init__(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> None:
        self.message = message
        self.line = line
        self.column = column
        if line is not None:
            message = f"{message} (line {line}, column {column})"
        super().__init__(message)


class DecodeError(ParseError):
    """An attribute's raw text does not match its declared type."""

    def __init__(
        self,
        key: str,
        expected_type: str,
        raw: Optional[str],
        element_id: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        self.key = key
        self.expected_type = expected_type
        self.raw = raw
        self.element_id = element_id
        self.reason = reason
        message = f"Cannot decode attribute `{key}` as {expected_type}: {raw!r}"
        if element_id is not None:
            message += f" on element {element_id}"
        if reason:
            message += f" ({reason})"
        super().__init__(message)


class MissingAttributeError(ParseError):
    """A node or edge lacks an attribute its kind requires."""

    def __init__(self, key: str, kind: str, element_id: Optional[str] = None) -> None:
        self.key = key
        self.kind = kind
        self.element_id = element_id
        super().__init__(
            f"Attribute `{key}` is required by kind `{kind}` "
            f"but missing on element {element_id}"
        )


class UnexpectedAttributeError(ParseError):
    """A node or edge carries attributes outside its kind's contract."""

    def __init__(self, keys: Iterable[str], kind: str, element_id: Optional[str] = None) -> None:
        self.keys = sorted(keys)
        self.kind = kind
        self.element_id = element_id
        super().__init__(
            f"Element {element_id} of kind `{kind}` carries unexpected "
            f"attributes: {', '.join(self.keys)}"
        )


class UnknownKindError(ParseError):
    """A node/edge discriminator is not part of the known taxonomy."""

    def __init__(self, discriminator: str, element_id: Optional[str] = None) -> None:
        self.discriminator = discriminator
        self.element_id = element_id
        super().__init__(f"Unknown kind `{discriminator}` on element {element_id}")


class DuplicateNodeIdError(ParseError):
    """Two node elements share the same id."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Duplicate node id: {node_id}")


class DuplicateEdgeIdError(ParseError):
    """Two edge elements share the same id."""

    def __init__(self, edge_id: str) -> None:
        self.edge_id = edge_id
        super().__init__(f"Duplicate edge id: {edge_id}")


class DanglingEdgeError(ParseError):
    """An edge endpoint does not name any node in the document."""

    def __init__(self, edge_id: str, missing_id: str) -> None:
        self.edge_id = edge_id
        self.missing_id = missing_id
        super().__init__(f"Edge {edge_id} references missing node {missing_id}")


# =============================================================================
# Query-time errors
# =============================================================================


class NodeNotFoundError(PageGraphError, KeyError):
    """A lookup named a node id that is not in the graph."""

    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")

    def __str__(self) -> str:
        return str(self.args[0])


class EdgeNotFoundError(PageGraphError, KeyError):
    """A lookup named an edge id that is not in the graph."""

    def __init__(self, edge_id: str) -> None:
        self.edge_id = edge_id
        super().__init__(f"Edge not found: {edge_id}")

    def __str__(self) -> str:
        return str(self.args[0])
