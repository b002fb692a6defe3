"""Lead repository — privileged and direct reads of crm.leads."""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Lead

logger = logging.getLogger(__name__)

ACCESSIBLE_LEADS_FUNCTION = "crm.get_accessible_leads"


async def set_caller(session: AsyncSession, user_id: UUID) -> None:
    """Expose the caller to row-level policies for the rest of the transaction."""
    await session.execute(
        text("SELECT set_config('app.current_user_id', :uid, true)"),
        {"uid": str(user_id)},
    )


async def get_accessible(session: AsyncSession) -> list[Lead]:
    """Return every lead the caller may see, via the SECURITY DEFINER function.

    The function evaluates role grants server-side, so it can return rows that
    row-level policies on a plain SELECT would hide. Row order is not defined.
    """
    stmt = select(Lead).from_statement(
        text(f"SELECT * FROM {ACCESSIBLE_LEADS_FUNCTION}()")
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_leads(session: AsyncSession, owner_id: Optional[UUID] = None) -> list[Lead]:
    """Read crm.leads directly, newest first.

    owner_id=None omits the owner filter entirely (elevated roles).
    """
    stmt = select(Lead).order_by(Lead.created_at.desc())
    if owner_id is not None:
        stmt = stmt.where(Lead.user_id == owner_id)
    result = await session.execute(stmt)
    return list(result.scalars().all())
