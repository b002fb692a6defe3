"""Change notification schemas."""
from typing import Any, Dict, Literal

from pydantic import BaseModel, ConfigDict, Field

EventType = Literal["INSERT", "UPDATE", "DELETE"]
EventFilter = Literal["INSERT", "UPDATE", "DELETE", "*"]


class ChangeEvent(BaseModel):
    """One row change as published by the crm.notify_row_change() trigger."""

    model_config = ConfigDict(populate_by_name=True)

    schema_name: str = Field(alias="schema")
    table: str
    event_type: EventType = Field(alias="eventType")
    new: Dict[str, Any] = Field(default_factory=dict)
    old: Dict[str, Any] = Field(default_factory=dict)
