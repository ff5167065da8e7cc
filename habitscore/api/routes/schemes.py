"""Scoring scheme and scored-habit rule endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from habitscore.api.identity import get_owner_id
from habitscore.db.database import get_session, transaction
from habitscore.domains.schemes.models import (
    RuleCreateRequest,
    RuleUpdateRequest,
    RuleView,
    SchemeCreateRequest,
    SchemeView,
)
from habitscore.domains.schemes.service import SchemeService
from habitscore.domains.weekly.aggregates import WeeklyAggregateManager

router = APIRouter(prefix="/api/v1/schemes", tags=["schemes"])

_schemes = SchemeService()
_aggregates = WeeklyAggregateManager(schemes=_schemes)


def _scheme(scheme) -> dict:
    return SchemeView.model_validate(scheme).model_dump(mode="json")


@router.get("")
async def list_schemes(
    owner_id: int = Depends(get_owner_id),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    async with transaction(session):
        schemes = await _schemes.list_for_owner(session, owner_id)
    return {"items": [_scheme(s) for s in schemes], "total": len(schemes)}


@router.post("", status_code=201)
async def create_scheme(
    request: SchemeCreateRequest,
    owner_id: int = Depends(get_owner_id),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    async with transaction(session):
        scheme = await _schemes.create(session, owner_id, request)
    return _scheme(scheme)


@router.post("/{scheme_id}/activate")
async def activate_scheme(
    scheme_id: int,
    owner_id: int = Depends(get_owner_id),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    """Make this the owner's active scheme, clearing the marker on all others."""
    async with transaction(session):
        scheme = await _schemes.set_active(session, owner_id, scheme_id)
    return _scheme(scheme)


@router.delete("/{scheme_id}")
async def delete_scheme(
    scheme_id: int,
    owner_id: int = Depends(get_owner_id),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    async with transaction(session):
        await _schemes.delete(session, owner_id, scheme_id)
    return {"deleted": True, "scheme_id": scheme_id}


@router.post("/{scheme_id}/rules", status_code=201)
async def add_rule(
    scheme_id: int,
    request: RuleCreateRequest,
    owner_id: int = Depends(get_owner_id),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    async with transaction(session):
        rule = await _schemes.add_rule(session, owner_id, scheme_id, request)
        rescored = await _aggregates.recompute_for_scheme(session, scheme_id)
    return {**RuleView.model_validate(rule).model_dump(mode="json"), "rescored_weeks": rescored}


@router.patch("/{scheme_id}/rules/{rule_id}")
async def update_rule(
    scheme_id: int,
    rule_id: int,
    request: RuleUpdateRequest,
    owner_id: int = Depends(get_owner_id),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    async with transaction(session):
        rule = await _schemes.update_rule(session, owner_id, scheme_id, rule_id, request)
        rescored = await _aggregates.recompute_for_scheme(session, scheme_id)
    return {**RuleView.model_validate(rule).model_dump(mode="json"), "rescored_weeks": rescored}


@router.delete("/{scheme_id}/rules/{rule_id}")
async def remove_rule(
    scheme_id: int,
    rule_id: int,
    owner_id: int = Depends(get_owner_id),  # noqa: B008
    session: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict:
    async with transaction(session):
        await _schemes.remove_rule(session, owner_id, scheme_id, rule_id)
        rescored = await _aggregates.recompute_for_scheme(session, scheme_id)
    return {"deleted": True, "rule_id": rule_id, "rescored_weeks": rescored}
