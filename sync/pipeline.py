"""Fetch pipeline — resolve the caller's leads and join their contact entities.

Access paths, in order:
  1. crm.get_accessible_leads(): privileged, evaluates role grants server-side.
     Unordered, so results are sorted newest first here.
  2. Direct SELECT on crm.leads: filtered to the caller's own rows unless the
     caller holds an elevated role. Failure here is fatal.

The second stage only runs when the first raises; an empty privileged result
is returned as-is. Contact entities are then fetched in one batched query and
joined by leads.contact_entity_id. The join follows the path the leads came
from: privileged leads read their contacts through
crm.get_accessible_contact_entities(), since the contact_entities row policy
only covers the caller's own rows. A failed or partial join never drops a lead.
"""
import logging
from typing import AsyncContextManager, Callable, Iterable, Optional
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

import db.repositories.contact_entities as contacts_repo
import db.repositories.leads as leads_repo
from schemas.lead import Caller, ContactEntityRow, Lead, LeadRow
from sync.composition import compose_lead
from sync.config import SyncSettings
from sync.errors import AccessError, FetchError, TransportError

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncContextManager[AsyncSession]]

_READ_ERRORS = (SQLAlchemyError, OSError, ValidationError)


class LeadPipeline:
    def __init__(self, session_factory: SessionFactory, settings: Optional[SyncSettings] = None):
        self._session_factory = session_factory
        self._settings = settings or SyncSettings()

    async def load_composite(self, caller: Caller) -> list[Lead]:
        """Return the caller's composite leads, newest first.

        Raises FetchError when neither access path could read crm.leads.
        """
        rows, privileged = await self._load_primary(caller)
        contacts = await self._load_contacts(
            caller,
            (r.contact_entity_id for r in rows if r.contact_entity_id is not None),
            privileged,
        )
        return [
            compose_lead(row, contacts.get(row.contact_entity_id) if row.contact_entity_id else None)
            for row in rows
        ]

    async def _load_primary(self, caller: Caller) -> tuple[list[LeadRow], bool]:
        try:
            return await self._read_privileged(caller), True
        except AccessError as exc:
            logger.warning(
                "Privileged lead read failed for user %s, falling back to direct read: %s",
                caller.user_id, exc,
            )
            privileged_error = exc

        try:
            return await self._read_direct(caller), False
        except TransportError as exc:
            raise FetchError("direct", exc, privileged_error=privileged_error) from exc

    async def _read_privileged(self, caller: Caller) -> list[LeadRow]:
        try:
            async with self._session_factory() as session:
                await leads_repo.set_caller(session, caller.user_id)
                rows = await leads_repo.get_accessible(session)
            records = [LeadRow.model_validate(r, from_attributes=True) for r in rows or []]
        except _READ_ERRORS as exc:
            raise AccessError(str(exc)) from exc

        records.sort(key=lambda r: r.created_at, reverse=True)
        logger.debug("Privileged read returned %d leads for user %s", len(records), caller.user_id)
        return records

    async def _read_direct(self, caller: Caller) -> list[LeadRow]:
        elevated = bool(caller.roles & self._settings.elevated_roles)
        owner_id = None if elevated else caller.user_id
        try:
            async with self._session_factory() as session:
                await leads_repo.set_caller(session, caller.user_id)
                rows = await leads_repo.list_leads(session, owner_id=owner_id)
            records = [LeadRow.model_validate(r, from_attributes=True) for r in rows]
        except _READ_ERRORS as exc:
            raise TransportError(str(exc)) from exc

        logger.debug(
            "Direct read returned %d leads for user %s (elevated=%s)",
            len(records), caller.user_id, elevated,
        )
        return records

    async def _load_contacts(
        self, caller: Caller, contact_ids: Iterable[UUID], privileged: bool
    ) -> dict[UUID, ContactEntityRow]:
        ids = list(dict.fromkeys(contact_ids))
        if not ids:
            return {}
        read = contacts_repo.get_accessible_by_ids if privileged else contacts_repo.get_by_ids
        try:
            async with self._session_factory() as session:
                await leads_repo.set_caller(session, caller.user_id)
                rows = await read(session, ids)
            found = [ContactEntityRow.model_validate(row, from_attributes=True) for row in rows]
        except _READ_ERRORS as exc:
            logger.warning(
                "Contact entity join failed for %d ids, composing leads without detail: %s",
                len(ids), exc,
            )
            return {}

        contacts = {contact.id: contact for contact in found}
        missing = len(ids) - len(contacts)
        if missing:
            logger.info("%d referenced contact entities not visible; leads keep blank detail", missing)
        return contacts
