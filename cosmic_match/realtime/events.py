from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

ChangeType = Literal["INSERT", "UPDATE", "DELETE"]


class ChangeEvent(BaseModel):
    """A row-level change announced on the realtime feed."""

    table: str
    type: ChangeType
    record: Dict[str, Any] = Field(default_factory=dict)
    old_record: Optional[Dict[str, Any]] = None
    participants: List[str] = Field(default_factory=list)


class ChangeFilter(BaseModel):
    """Subscription scope: column equality or membership of the participants list."""

    column: Optional[str] = None
    value: Optional[Any] = None
    participant: Optional[str] = None

    @classmethod
    def eq(cls, column: str, value: Any) -> "ChangeFilter":
        return cls(column=column, value=value)

    @classmethod
    def involving(cls, user_id: str) -> "ChangeFilter":
        return cls(participant=user_id)

    def matches(self, event: ChangeEvent) -> bool:
        if self.participant is not None and self.participant not in event.participants:
            return False
        if self.column is not None:
            row = event.record or event.old_record or {}
            if row.get(self.column) != self.value:
                return False
        return True


__all__ = ["ChangeEvent", "ChangeFilter", "ChangeType"]
