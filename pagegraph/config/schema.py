"""Configuration schema for reading PageGraph recordings."""

from typing import Any, Dict

from pydantic import BaseModel


class ReaderConfig(BaseModel):
    """Options controlling how strictly a recording is resolved.

    Attributes:
        strict_attributes: Fail when an element carries attributes outside
            its kind's contract. When False they are logged and dropped.
        verify_item_ids: Check that an element's ``id`` data item matches
            the number in its XML ``id`` attribute (``n12`` <-> ``12``).
        require_node_timestamps: Require a ``timestamp`` on every node.
    """

    strict_attributes: bool = True
    verify_item_ids: bool = True
    require_node_timestamps: bool = False

    model_config = {"extra": "forbid", "frozen": True}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ReaderConfig":
        """Create configuration from dictionary.

        Raises:
            ValidationError: If configuration is invalid.
        """
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()
