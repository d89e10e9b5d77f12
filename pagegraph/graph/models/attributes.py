"""Attribute key schema and scalar decoding.

GraphML transports every attribute as text. The key preamble declares, per
short key id, the semantic attribute name, its scalar type and the element
class it applies to. This module holds that schema and turns raw text into
typed values, strictly: anything that does not match the declared type is a
DecodeError, never a silent default.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, Optional, Type, Union

from pagegraph.errors import DecodeError, MalformedDocumentError

logger = logging.getLogger("pagegraph.graph.models.attributes")

Scalar = Union[str, bool, int, float, Enum]

_INT_RE = re.compile(r"[+-]?[0-9]+")
_SPACES_RE = re.compile(r"\s+")


class AttributeType(str, Enum):
    """Scalar types an attribute can decode to."""

    STRING = "string"
    BOOLEAN = "boolean"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    ENUM = "enum"


class KeyDomain(str, Enum):
    """Element class a GraphML key applies to (the `for` attribute)."""

    NODE = "node"
    EDGE = "edge"
    GRAPH = "graph"
    ALL = "all"

    def applies_to(self, tag: str) -> bool:
        return self is KeyDomain.ALL or self.value == tag


# GraphML `attr.type` spellings -> decoder types.
GRAPHML_TYPES: Dict[str, AttributeType] = {
    "string": AttributeType.STRING,
    "boolean": AttributeType.BOOLEAN,
    "int": AttributeType.INT,
    "long": AttributeType.INT,
    "float": AttributeType.FLOAT,
    "double": AttributeType.FLOAT,
}


def canonical_name(name: str) -> str:
    """Normalize a semantic attribute name (`tag name` -> `tag_name`)."""
    return _SPACES_RE.sub("_", name.strip())


@dataclass(frozen=True)
class KeySpec:
    """One `<key>` declaration from the GraphML preamble."""

    id: str
    name: str
    attr_type: AttributeType
    domain: KeyDomain = KeyDomain.ALL
    raw_name: str = ""


@dataclass
class AttributeKeySchema:
    """Mapping from short key ids to their declarations.

    Built once per parse and discarded after the graph is built.
    """

    keys: Dict[str, KeySpec] = field(default_factory=dict)

    def add(self, spec: KeySpec) -> None:
        if spec.id in self.keys:
            raise MalformedDocumentError(f"Key id `{spec.id}` is declared twice")
        self.keys[spec.id] = spec
        logger.debug(
            "Registered key %s -> %s (%s, for=%s)",
            spec.id,
            spec.name,
            spec.attr_type.value,
            spec.domain.value,
        )

    def get(self, key_id: str) -> Optional[KeySpec]:
        return self.keys.get(key_id)

    def __contains__(self, key_id: object) -> bool:
        return key_id in self.keys

    def __iter__(self) -> Iterator[KeySpec]:
        return iter(self.keys.values())

    def __len__(self) -> int:
        return len(self.keys)


def parse_graphml_type(raw: Optional[str], key_id: str) -> AttributeType:
    """Map a GraphML `attr.type` spelling to an AttributeType."""
    if raw is None:
        raise MalformedDocumentError(f"Key `{key_id}` is missing its attr.type")
    try:
        return GRAPHML_TYPES[raw.strip()]
    except KeyError:
        raise MalformedDocumentError(
            f"Key `{key_id}` declares unsupported attr.type {raw!r}"
        ) from None


def decode_value(
    key: str,
    raw: Optional[str],
    attr_type: AttributeType,
    *,
    element_id: Optional[str] = None,
    enum_type: Optional[Type[Enum]] = None,
) -> Optional[Scalar]:
    """Decode raw attribute text into a typed scalar.

    An absent attribute (``raw is None``) decodes to None for every type so
    callers can tell "not present" apart from false or zero.

    Args:
        key: Semantic attribute name, used for error context.
        raw: Raw text from the document, or None when absent.
        attr_type: Declared type to decode against.
        element_id: Id of the owning node/edge, used for error context.
        enum_type: Enumeration to validate against when attr_type is ENUM.

    Returns:
        The decoded value, or None when raw is None.

    Raises:
        DecodeError: If raw does not match the declared type.
    """
    if raw is None:
        return None

    def fail(reason: Optional[str] = None) -> DecodeError:
        expected = attr_type.value
        if attr_type is AttributeType.ENUM and enum_type is not None:
            expected = f"enum {enum_type.__name__}"
        return DecodeError(key, expected, raw, element_id=element_id, reason=reason)

    if attr_type is AttributeType.STRING:
        return raw

    if attr_type is AttributeType.BOOLEAN:
        # Case-sensitive on purpose: "True", "1" and "yes" are all rejected.
        if raw == "true":
            return True
        if raw == "false":
            return False
        raise fail()

    if attr_type in (AttributeType.INT, AttributeType.UINT):
        text = raw.strip()
        if not _INT_RE.fullmatch(text):
            raise fail()
        value = int(text)
        if attr_type is AttributeType.UINT and value < 0:
            raise fail("negative value")
        return value

    if attr_type is AttributeType.FLOAT:
        try:
            value = float(raw.strip())
        except ValueError:
            raise fail() from None
        if math.isnan(value) or math.isinf(value):
            raise fail("not a finite number")
        return value

    if attr_type is AttributeType.ENUM:
        if enum_type is None:
            raise ValueError(f"Attribute `{key}` is an enum but no enum type was given")
        try:
            return enum_type(raw)
        except ValueError:
            raise fail(
                "expected one of " + ", ".join(repr(m.value) for m in enum_type)
            ) from None

    raise ValueError(f"Unsupported attribute type: {attr_type!r}")


def decode_numeric(
    key: str,
    raw: Optional[str],
    declared: AttributeType,
    *,
    element_id: Optional[str] = None,
) -> Optional[Union[int, float]]:
    """Decode an ordering value (timestamp/sequence).

    Numeric declarations decode as declared. String declarations are tried as
    integer first, then float.
    """
    if declared in (AttributeType.INT, AttributeType.UINT, AttributeType.FLOAT):
        return decode_value(key, raw, declared, element_id=element_id)
    if declared is not AttributeType.STRING:
        raise DecodeError(key, "number", raw, element_id=element_id,
                          reason=f"declared as {declared.value}")
    try:
        return decode_value(key, raw, AttributeType.INT, element_id=element_id)
    except DecodeError:
        pass
    try:
        return decode_value(key, raw, AttributeType.FLOAT, element_id=element_id)
    except DecodeError:
        raise DecodeError(key, "number", raw, element_id=element_id) from None
