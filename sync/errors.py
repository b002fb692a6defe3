"""Failure taxonomy for lead fetching and change channels.

An empty result is not an error; the store treats it as a hint to retry once.
"""
from typing import Optional


class LeadSyncError(Exception):
    """Base class for lead synchronization failures."""


class AccessError(LeadSyncError):
    """The privileged read was rejected. Triggers the direct-read fallback."""


class TransportError(LeadSyncError):
    """A direct table read failed."""


class FetchError(LeadSyncError):
    """Every access path for the primary collection failed."""

    def __init__(self, stage: str, cause: BaseException, privileged_error: Optional[BaseException] = None):
        super().__init__(f"Lead fetch failed at {stage} stage: {cause}")
        self.stage = stage
        self.cause = cause
        self.privileged_error = privileged_error


class ChannelError(LeadSyncError):
    """A change channel could not be opened or lost its transport. Reported, never raised to consumers."""

    def __init__(self, channel_id: str, cause: BaseException):
        super().__init__(f"Channel {channel_id} unavailable: {cause}")
        self.channel_id = channel_id
        self.cause = cause
