"""Contact entity repository — batched detail lookups for leads."""
import logging
from typing import Iterable
from uuid import UUID

from sqlalchemy import bindparam, select, text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import ContactEntity

logger = logging.getLogger(__name__)

ACCESSIBLE_CONTACTS_FUNCTION = "crm.get_accessible_contact_entities"


async def get_by_ids(session: AsyncSession, ids: Iterable[UUID]) -> list[ContactEntity]:
    """Return all contact entities whose id is in ids, in a single query.

    Subject to the contact_entities row policy: only entities the caller owns,
    or that back a lead the caller owns.
    """
    ids = list(ids)
    if not ids:
        return []
    result = await session.execute(
        select(ContactEntity).where(ContactEntity.id.in_(ids))
    )
    return list(result.scalars().all())


async def get_accessible_by_ids(session: AsyncSession, ids: Iterable[UUID]) -> list[ContactEntity]:
    """Like get_by_ids, but through the SECURITY DEFINER function.

    Returns the entities behind every lead crm.get_accessible_leads() would
    return to the caller, so assignees and elevated roles get full detail.
    """
    ids = list(ids)
    if not ids:
        return []
    stmt = select(ContactEntity).from_statement(
        text(f"SELECT * FROM {ACCESSIBLE_CONTACTS_FUNCTION}(:ids)").bindparams(
            bindparam("ids", type_=ARRAY(PG_UUID(as_uuid=True)))
        )
    )
    result = await session.execute(stmt, {"ids": ids})
    return list(result.scalars().all())
