"""User role repository — active role grants for a caller."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import UserRole

logger = logging.getLogger(__name__)


async def get_active_roles(session: AsyncSession, user_id: UUID) -> set[str]:
    """Return the names of all active roles granted to user_id."""
    result = await session.execute(
        select(UserRole.role).where(
            UserRole.user_id == user_id,
            UserRole.is_active.is_(True),
        )
    )
    return {row[0] for row in result.all()}
