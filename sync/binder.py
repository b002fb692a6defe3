"""Subscription binder — wires a LeadStore to the leads and contact entity channels.

  crm.leads             any change -> silent refetch (deletes are also removed at once)
  crm.contact_entities  updates    -> local patch of every lead referencing the entity

bind() returns a Binding that owns both channel handles; pass it back to
unbind() or rebind(). Nothing is registered globally.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from schemas.realtime import ChangeEvent
from sync.channel import ChangeChannelAdapter, ChannelHandle, ChannelHandlers
from sync.store import LeadStore

logger = logging.getLogger(__name__)

LEADS_RESOURCE = "leads"
CONTACT_ENTITIES_RESOURCE = "contact_entities"


@dataclass
class Binding:
    scope: Optional[UUID]
    leads: ChannelHandle
    contact_entities: ChannelHandle

    @property
    def is_connected(self) -> bool:
        return self.leads.is_connected and self.contact_entities.is_connected


def _scope_of(store: LeadStore) -> Optional[UUID]:
    return store.caller.user_id if store.caller is not None else None


def lead_handlers(store: LeadStore) -> ChannelHandlers:
    def on_delete(event: ChangeEvent) -> None:
        store.remove_by_id(event.old.get("id"))

    def on_change(event: ChangeEvent) -> None:
        store.request_silent_refetch()

    return ChannelHandlers(on_delete=on_delete, on_change=on_change)


def contact_entity_handlers(store: LeadStore) -> ChannelHandlers:
    def on_update(event: ChangeEvent) -> None:
        patched = store.apply_contact_update(event.new)
        logger.debug("Contact entity %s update patched %d leads", event.new.get("id"), patched)

    return ChannelHandlers(on_update=on_update)


class SubscriptionBinder:
    def __init__(self, adapter: ChangeChannelAdapter):
        self._adapter = adapter

    async def bind(self, store: LeadStore) -> Binding:
        leads = await self._adapter.open(LEADS_RESOURCE, "*", lead_handlers(store))
        contact_entities = await self._adapter.open(
            CONTACT_ENTITIES_RESOURCE, "UPDATE", contact_entity_handlers(store)
        )
        return Binding(scope=_scope_of(store), leads=leads, contact_entities=contact_entities)

    async def unbind(self, binding: Binding) -> None:
        await self._adapter.close(binding.leads)
        await self._adapter.close(binding.contact_entities)

    async def rebind(self, binding: Binding, store: LeadStore) -> Binding:
        """Keep binding while the caller scope is unchanged, otherwise reopen both channels."""
        scope = _scope_of(store)
        if binding.scope == scope:
            binding.leads.set_handlers(lead_handlers(store))
            binding.contact_entities.set_handlers(contact_entity_handlers(store))
            return binding
        logger.info("Caller scope changed (%s -> %s), rebinding lead channels", binding.scope, scope)
        await self.unbind(binding)
        return await self.bind(store)
