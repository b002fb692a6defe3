from .lead import (
    LeadRow,
    ContactEntityRow,
    Lead,
    Caller,
    LeadsSnapshot,
    Notification,
)
from .realtime import ChangeEvent, EventFilter, EventType

__all__ = [
    "LeadRow", "ContactEntityRow", "Lead", "Caller", "LeadsSnapshot", "Notification",
    "ChangeEvent", "EventFilter", "EventType",
]
