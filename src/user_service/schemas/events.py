"""
User change events published to the event bus.

Every mutation of a user record is republished as a ``UserEvent`` carrying
the record's state before and after the change.
"""
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import ConfigDict, Field

from .base import BaseDTO
from .user import User


class OperationType(str, Enum):
    """Kind of mutation a ``UserEvent`` describes."""
    UNSPECIFIED = "OPERATION_UNSPECIFIED"
    CREATE = "OPERATION_CREATE"
    UPDATE = "OPERATION_UPDATE"
    DELETE = "OPERATION_DELETE"

    @property
    def number(self) -> int:
        """Protobuf-style ordinal: UNSPECIFIED=0, CREATE=1, UPDATE=2, DELETE=3."""
        return list(OperationType).index(self)


_OPERATION_TAGS = {
    "insert": OperationType.CREATE,
    "update": OperationType.UPDATE,
    "delete": OperationType.DELETE,
}


def operation_to_enum(operation_type: Optional[str]) -> OperationType:
    """
    Map a change feed operation tag to an ``OperationType``.

    Unknown or missing tags map to ``OperationType.UNSPECIFIED``; this never raises.
    """
    if not isinstance(operation_type, str):
        return OperationType.UNSPECIFIED
    return _OPERATION_TAGS.get(operation_type, OperationType.UNSPECIFIED)


class UserEvent(BaseDTO):
    """
    A single user mutation, as published to the event bus.

    Fields:
        id: Unique identifier of this event (fresh UUID, not derived from the store)
        user_id: Identifier of the user the mutation applies to
        before_change: User snapshot before the mutation, when available
        after_change: User snapshot after the mutation, when available
        operation_type: Kind of mutation
    """
    model_config = ConfigDict(frozen=True)

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique identifier for this event (UUID)"
    )
    user_id: str = Field(..., description="Identifier of the mutated user")
    before_change: Optional[User] = Field(
        default=None,
        description="User state before the mutation"
    )
    after_change: Optional[User] = Field(
        default=None,
        description="User state after the mutation"
    )
    operation_type: OperationType = Field(
        default=OperationType.UNSPECIFIED,
        description="Kind of mutation"
    )

    def to_message(self) -> bytes:
        """Serialize to the JSON wire format (camelCase keys, UTF-8)."""
        return self.model_dump_json(by_alias=True).encode("utf-8")
