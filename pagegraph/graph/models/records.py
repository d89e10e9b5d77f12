"""Typed node, edge and recording-metadata models."""

from __future__ import annotations

from typing import Annotated, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .edges import EdgeType
from .identifiers import normalize_frame_id
from .nodes import NodeType

Ordering = Union[int, float]


class Node(BaseModel):
    """One entity observed during the recording."""

    model_config = ConfigDict(frozen=True)

    id: Annotated[str, Field(..., description="Recording-assigned node id, e.g. n12")]
    node_type: Annotated[NodeType, Field(..., description="Kind-specific variant")]
    timestamp: Annotated[
        Optional[Ordering],
        Field(default=None, description="Recording timestamp, when provided"),
    ]
    sequence: Annotated[
        Optional[Ordering],
        Field(default=None, description="Explicit sequence number, when provided"),
    ]

    @property
    def kind(self) -> str:
        return self.node_type.discriminator


class Edge(BaseModel):
    """A directed, typed action between two nodes."""

    model_config = ConfigDict(frozen=True)

    id: Annotated[str, Field(..., description="Recording-assigned edge id, e.g. e7")]
    source_id: Annotated[str, Field(..., description="Acting node id")]
    target_id: Annotated[str, Field(..., description="Acted-upon node id")]
    edge_type: Annotated[EdgeType, Field(..., description="Kind-specific variant")]
    sequence: Annotated[
        Optional[Ordering],
        Field(
            default=None,
            description="Causal ordering value: `sequence`, else `timestamp`",
        ),
    ]
    timestamp: Annotated[
        Optional[Ordering],
        Field(default=None, description="Recording timestamp, when provided"),
    ]

    @property
    def kind(self) -> str:
        return self.edge_type.discriminator


class PageGraphTime(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: Optional[int] = None
    end: Optional[int] = None


class PageGraphDescriptor(BaseModel):
    """Recording metadata from the GraphML ``<desc>`` block."""

    model_config = ConfigDict(frozen=True)

    version: Optional[str] = None
    about: Optional[str] = None
    url: Optional[str] = None
    is_root: Optional[bool] = None
    frame_id: Optional[str] = None
    time: PageGraphTime = Field(default_factory=PageGraphTime)

    @field_validator("frame_id")
    @classmethod
    def _check_frame_id(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return normalize_frame_id(value)
