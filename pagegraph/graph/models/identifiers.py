"""Identifier helpers for PageGraph nodes, edges and frames.

Recordings name nodes ``n<number>`` and edges ``e<number>``. Identifiers
coming from a child frame may carry a ``:<frame id>`` suffix, where the frame
id is Chromium's 128-bit frame token printed as 32 hexadecimal characters.
"""

import re
from typing import Optional, Tuple

_DIGITS_RE = re.compile(r"[0-9]+")
_HEX_RE = re.compile(r"[0-9a-fA-F]+")

FRAME_ID_LENGTH = 32


class ItemIdError(ValueError):
    """Raised when an identifier string cannot be parsed."""


def normalize_frame_id(value: str) -> str:
    """Validate a frame token and return it in canonical upper-case form.

    Raises:
        ItemIdError: If the value is not exactly 32 hexadecimal characters.
    """
    if len(value) != FRAME_ID_LENGTH:
        raise ItemIdError(
            f"Frame id must be {FRAME_ID_LENGTH} characters, got {len(value)}: {value!r}"
        )
    if not _HEX_RE.fullmatch(value):
        raise ItemIdError(f"Frame id is not hexadecimal: {value!r}")
    return value.upper()


def parse_item_id(value: str) -> Tuple[int, Optional[str]]:
    """Parse ``<number>`` or ``<number>:<frame id>`` without a prefix."""
    number, sep, frame = value.partition(":")
    if not _DIGITS_RE.fullmatch(number):
        raise ItemIdError(f"Invalid item number in {value!r}")
    if not sep:
        return int(number), None
    return int(number), normalize_frame_id(frame)


def _parse_prefixed(value: str, prefix: str) -> Tuple[int, Optional[str]]:
    if not value.startswith(prefix):
        raise ItemIdError(f"Identifier {value!r} is missing the `{prefix}` prefix")
    return parse_item_id(value[len(prefix):])


def parse_node_id(value: str) -> Tuple[int, Optional[str]]:
    """Parse a node identifier such as ``n12`` or ``n12:<frame id>``."""
    return _parse_prefixed(value, "n")


def parse_edge_id(value: str) -> Tuple[int, Optional[str]]:
    """Parse an edge identifier such as ``e7`` or ``e7:<frame id>``."""
    return _parse_prefixed(value, "e")


def format_item_id(prefix: str, number: int, frame_id: Optional[str] = None) -> str:
    """Inverse of the parse helpers."""
    if frame_id:
        return f"{prefix}{number}:{normalize_frame_id(frame_id)}"
    return f"{prefix}{number}"


def coerce_item_id(value: str, prefix: str) -> str:
    """Accept either a bare number or a prefixed id and return the prefixed form.

    Command-line users tend to type ``12`` where the recording says ``n12``.
    """
    if value.startswith(prefix):
        number, frame = _parse_prefixed(value, prefix)
    else:
        number, frame = parse_item_id(value)
    return format_item_id(prefix, number, frame)


def item_number(element_id: str) -> Optional[int]:
    """Return the numeric part of ``n12``/``e7`` style ids, or None if opaque."""
    stripped = element_id.lstrip("ne")
    number = stripped.partition(":")[0]
    if _DIGITS_RE.fullmatch(number):
        return int(number)
    return None


def frame_of(element_id: str) -> Optional[str]:
    """Frame id suffix of an item id, or None for the root frame.

    Returns None as well for suffixes that are not valid frame ids.
    """
    _, sep, frame = element_id.partition(":")
    if not sep:
        return None
    try:
        return normalize_frame_id(frame)
    except ItemIdError:
        return None
