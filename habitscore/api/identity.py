"""Maps the authenticated principal to an internal owner id."""

import structlog
from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from habitscore.config import settings
from habitscore.db.database import dialect_insert, get_session
from habitscore.db.models import User

logger = structlog.get_logger()


async def resolve_owner(session: AsyncSession, external_id: str) -> int:
    """Return the owner id for ``external_id``, registering the principal on first sight."""
    owner_id = (
        await session.execute(select(User.id).where(User.external_id == external_id))
    ).scalar_one_or_none()
    if owner_id is not None:
        return owner_id

    insert = dialect_insert(session)
    await session.execute(
        insert(User)
        .values(external_id=external_id)
        .on_conflict_do_nothing(index_elements=["external_id"])
    )
    owner_id = (
        await session.execute(select(User.id).where(User.external_id == external_id))
    ).scalar_one()
    logger.info("user_registered", owner_id=owner_id)
    return owner_id


async def get_owner_id(
    request: Request,
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> int:
    external_id = request.headers.get(settings.principal_header, "").strip()
    if not external_id:
        raise HTTPException(status_code=401, detail="Unauthorized")

    owner_id = await resolve_owner(session, external_id)
    # Release the implicit transaction so routes can open their own unit of work
    await session.commit()
    return owner_id
