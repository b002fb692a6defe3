"""Real-time lead synchronization core.

Keeps an in-memory list of composite leads (crm.leads joined with
crm.contact_entities) consistent with the database under concurrent writes,
using PostgreSQL change notifications.
"""
from sync.binder import Binding, SubscriptionBinder
from sync.channel import ChangeChannelAdapter, ChannelHandle, ChannelHandlers, ChannelStatus
from sync.config import SyncSettings
from sync.errors import AccessError, ChannelError, FetchError, LeadSyncError, TransportError
from sync.live import LiveLeads
from sync.pipeline import LeadPipeline
from sync.store import LeadStore

__all__ = [
    "Binding", "SubscriptionBinder",
    "ChangeChannelAdapter", "ChannelHandle", "ChannelHandlers", "ChannelStatus",
    "SyncSettings",
    "AccessError", "ChannelError", "FetchError", "LeadSyncError", "TransportError",
    "LiveLeads", "LeadPipeline", "LeadStore",
]
