"""LiveLeads — one mounted lead view: bound channels plus an initial load."""
import logging
from typing import Optional

from schemas.lead import Caller, LeadsSnapshot
from sync.binder import Binding, SubscriptionBinder
from sync.store import LeadStore

logger = logging.getLogger(__name__)


class LiveLeads:
    """Async context manager owning a store's subscriptions for its lifetime.

    Usage:
        async with LiveLeads(store, binder) as live:
            live.store.subscribe(render)
            ...
    """

    def __init__(self, store: LeadStore, binder: SubscriptionBinder):
        self.store = store
        self._binder = binder
        self._binding: Optional[Binding] = None

    @property
    def binding(self) -> Optional[Binding]:
        return self._binding

    def snapshot(self) -> LeadsSnapshot:
        return self.store.snapshot()

    async def __aenter__(self) -> "LiveLeads":
        self._binding = await self._binder.bind(self.store)
        try:
            await self.store.refetch()
        except BaseException:
            await self._binder.unbind(self._binding)
            self._binding = None
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._binding is not None:
            await self._binder.unbind(self._binding)
            self._binding = None
        self.store.clear()

    async def set_caller(self, caller: Optional[Caller]) -> None:
        """Switch caller; channels are rebound and data reloaded only on a real change."""
        if not self.store.set_caller(caller):
            return
        if self._binding is not None:
            self._binding = await self._binder.rebind(self._binding, self.store)
        await self.store.refetch()
