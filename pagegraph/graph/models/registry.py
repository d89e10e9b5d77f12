"""Registry of node and edge kinds.

Each kind is a frozen pydantic model. Fields that come from recording
attributes are annotated with :class:`Attr`, which names the attribute and
its scalar type; the registry derives each kind's required/optional attribute
contract from those annotations. Adding a newly recorded browser behaviour
means adding one model class; neither the parser nor the builder changes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, ClassVar, Dict, Iterator, Mapping, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from pagegraph.errors import (
    DecodeError,
    MissingAttributeError,
    UnexpectedAttributeError,
    UnknownKindError,
)

from .attributes import AttributeType, decode_value

logger = logging.getLogger("pagegraph.graph.models.registry")


@dataclass(frozen=True)
class Attr:
    """Annotation metadata binding a model field to a recording attribute.

    Attributes:
        key: Canonical attribute name in the recording (e.g. ``tag_name``).
        attr_type: Scalar type the raw text must decode to.
        enum_type: Enumeration for ``AttributeType.ENUM`` fields.
    """

    key: str
    attr_type: AttributeType = AttributeType.STRING
    enum_type: Optional[Type[Enum]] = None


@dataclass(frozen=True)
class AttributeField:
    """One entry of a kind's attribute contract."""

    field_name: str
    key: str
    attr_type: AttributeType
    enum_type: Optional[Type[Enum]]
    required: bool


class GraphKind(BaseModel):
    """Base for all node and edge kinds."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    discriminator: ClassVar[str] = ""
    aliases: ClassVar[Tuple[str, ...]] = ()

    @property
    def kind(self) -> str:
        """Discriminator string naming this variant in the recording."""
        return self.discriminator

    @classmethod
    def attribute_contract(cls) -> Tuple[AttributeField, ...]:
        """Derive the attribute contract from the model's annotated fields."""
        contract = []
        for field_name, info in cls.model_fields.items():
            attr = next((m for m in info.metadata if isinstance(m, Attr)), None)
            if attr is None:
                continue
            contract.append(
                AttributeField(
                    field_name=field_name,
                    key=attr.key,
                    attr_type=attr.attr_type,
                    enum_type=attr.enum_type,
                    required=info.is_required(),
                )
            )
        return tuple(contract)

    @classmethod
    def required_keys(cls) -> Tuple[str, ...]:
        return tuple(f.key for f in cls.attribute_contract() if f.required)

    @classmethod
    def optional_keys(cls) -> Tuple[str, ...]:
        return tuple(f.key for f in cls.attribute_contract() if not f.required)


class NodeKind(GraphKind):
    """Base for node variants."""


class EdgeKind(GraphKind):
    """Base for edge variants."""


K = TypeVar("K", bound=GraphKind)


class KindRegistry:
    """Closed set of kinds for one element class (nodes or edges).

    Resolution is by discriminator string. Unknown discriminators fail with
    UnknownKindError; there is no catch-all variant.
    """

    def __init__(self, element: str) -> None:
        self.element = element
        self._kinds: Dict[str, Type[GraphKind]] = {}
        self._contracts: Dict[Type[GraphKind], Tuple[AttributeField, ...]] = {}

    def register(self, kind_class: Type[K]) -> Type[K]:
        """Register a kind class under its discriminator and aliases.

        Usable as a class decorator.
        """
        if not kind_class.discriminator:
            raise ValueError(f"{kind_class.__name__} does not declare a discriminator")
        for name in (kind_class.discriminator, *kind_class.aliases):
            if name in self._kinds:
                raise ValueError(
                    f"{self.element} kind `{name}` already registered by "
                    f"{self._kinds[name].__name__}"
                )
            self._kinds[name] = kind_class
        self._contracts[kind_class] = kind_class.attribute_contract()
        logger.debug(
            "Registered %s kind `%s`: %s",
            self.element,
            kind_class.discriminator,
            kind_class.__name__,
        )
        return kind_class

    def get(self, discriminator: str) -> Optional[Type[GraphKind]]:
        return self._kinds.get(discriminator)

    def __contains__(self, discriminator: object) -> bool:
        return discriminator in self._kinds

    def kinds(self) -> Tuple[Type[GraphKind], ...]:
        """All registered classes, once each, in registration order."""
        return tuple(self._contracts)

    def discriminators(self) -> Iterator[str]:
        return iter(self._kinds)

    def contract(self, kind_class: Type[GraphKind]) -> Tuple[AttributeField, ...]:
        return self._contracts[kind_class]

    def resolve(
        self,
        discriminator: str,
        attributes: Mapping[str, str],
        element_id: Optional[str] = None,
        *,
        strict: bool = True,
        on_extra: Optional[Callable[[str, str], None]] = None,
    ) -> GraphKind:
        """Build the typed variant named by ``discriminator``.

        Args:
            discriminator: Kind string from the recording (e.g. ``HTML element``).
            attributes: Canonical attribute name -> raw text, excluding the
                discriminator and generic attributes.
            element_id: Id of the element being resolved, for error context.
            strict: Fail on attributes outside the kind's contract.
            on_extra: Called with (key, raw) for each ignored extra attribute
                when not strict.

        Raises:
            UnknownKindError: Discriminator not registered.
            MissingAttributeError: A required attribute is absent.
            DecodeError: An attribute does not match its declared type.
            UnexpectedAttributeError: Extra attributes while strict.
        """
        kind_class = self._kinds.get(discriminator)
        if kind_class is None:
            raise UnknownKindError(discriminator, element_id)

        remaining = dict(attributes)
        values: Dict[str, object] = {}
        for field in self._contracts[kind_class]:
            raw = remaining.pop(field.key, None)
            if raw is None:
                if field.required:
                    raise MissingAttributeError(field.key, discriminator, element_id)
                continue
            values[field.field_name] = decode_value(
                field.key,
                raw,
                field.attr_type,
                element_id=element_id,
                enum_type=field.enum_type,
            )

        if remaining:
            if strict:
                raise UnexpectedAttributeError(remaining, discriminator, element_id)
            for key, raw in remaining.items():
                if on_extra is not None:
                    on_extra(key, raw)
                logger.debug(
                    "Ignoring attribute `%s` on %s (%s)", key, element_id, discriminator
                )

        try:
            return kind_class(**values)
        except ValidationError as exc:
            raise self._to_decode_error(kind_class, exc, attributes, element_id) from exc

    def _to_decode_error(
        self,
        kind_class: Type[GraphKind],
        exc: ValidationError,
        attributes: Mapping[str, str],
        element_id: Optional[str],
    ) -> DecodeError:
        first = exc.errors()[0]
        field_name = str(first["loc"][0]) if first.get("loc") else ""
        field = next(
            (f for f in self._contracts[kind_class] if f.field_name == field_name),
            None,
        )
        key = field.key if field else field_name
        expected = field.attr_type.value if field else "value"
        return DecodeError(
            key,
            expected,
            attributes.get(key),
            element_id=element_id,
            reason=first.get("msg"),
        )
