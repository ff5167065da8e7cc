"""Tests for scoring scheme management."""

import pytest
from sqlalchemy import select
from structlog.testing import capture_logs

from habitscore.db.models import ScoringScheme
from habitscore.domains.schemes import (
    RuleCreateRequest,
    RuleUpdateRequest,
    SchemeCreateRequest,
    SchemeService,
)
from habitscore.domains.weekly import WeeklyAggregateManager
from habitscore.shared.errors import ConflictError, NotFoundError
from tests.conftest import WEEK_START, add_habit, add_user


@pytest.fixture
def schemes() -> SchemeService:
    return SchemeService()


async def _active_ids(session, owner_id: int) -> list[int]:
    stmt = select(ScoringScheme.id).where(
        ScoringScheme.owner_id == owner_id, ScoringScheme.is_active.is_(True)
    )
    return list((await session.execute(stmt)).scalars().all())


class TestActivation:
    async def test_set_active_clears_others(self, session, seeded, schemes):
        scheme = await schemes.set_active(session, seeded["owner_id"], seeded["alternate"])

        assert scheme.is_active is True
        assert await _active_ids(session, seeded["owner_id"]) == [seeded["alternate"]]

    async def test_create_active_replaces_marker(self, session, seeded, schemes):
        created = await schemes.create(
            session, seeded["owner_id"], SchemeCreateRequest(name="new", is_active=True)
        )
        assert await _active_ids(session, seeded["owner_id"]) == [created.id]

    async def test_other_owners_untouched(self, session, seeded, schemes):
        other = await add_user(session, "user-2")
        other_scheme = await schemes.create(
            session, other.id, SchemeCreateRequest(name="mine", is_active=True)
        )
        await schemes.set_active(session, seeded["owner_id"], seeded["alternate"])
        assert await _active_ids(session, other.id) == [other_scheme.id]

    async def test_cannot_activate_foreign_scheme(self, session, seeded, schemes):
        other = await add_user(session, "user-2")
        with pytest.raises(NotFoundError):
            await schemes.set_active(session, other.id, seeded["scheme"])


class TestResolveSeed:
    async def test_prefers_active(self, session, seeded, schemes):
        seed = await schemes.resolve_seed(session, seeded["owner_id"])
        assert seed.id == seeded["scheme"]

    async def test_falls_back_to_newest(self, session, schemes):
        user = await add_user(session, "user-2")
        await schemes.create(session, user.id, SchemeCreateRequest(name="old"))
        newest = await schemes.create(session, user.id, SchemeCreateRequest(name="new"))
        seed = await schemes.resolve_seed(session, user.id)
        assert seed.id == newest.id

    async def test_no_schemes(self, session, schemes):
        user = await add_user(session, "user-2")
        with pytest.raises(NotFoundError):
            await schemes.resolve_seed(session, user.id)


class TestDelete:
    async def test_active_scheme_protected(self, session, seeded, schemes):
        with pytest.raises(ConflictError) as exc_info:
            await schemes.delete(session, seeded["owner_id"], seeded["scheme"])
        assert exc_info.value.code == "SCHEME_ACTIVE"

    async def test_bound_scheme_protected(self, session, seeded, schemes):
        await WeeklyAggregateManager().ensure(
            session, seeded["owner_id"], WEEK_START, seeded["alternate"]
        )
        with pytest.raises(ConflictError) as exc_info:
            await schemes.delete(session, seeded["owner_id"], seeded["alternate"])
        assert exc_info.value.code == "SCHEME_IN_USE"

    async def test_delete_unused(self, session, seeded, schemes):
        await schemes.delete(session, seeded["owner_id"], seeded["alternate"])
        with pytest.raises(NotFoundError):
            await schemes.get_owned(session, seeded["owner_id"], seeded["alternate"])


class TestRules:
    async def test_add_rule(self, session, seeded, schemes):
        habit = await add_habit(session, seeded["owner_id"], "stretching")
        rule = await schemes.add_rule(
            session,
            seeded["owner_id"],
            seeded["alternate"],
            RuleCreateRequest(habit_id=habit.id, weight=2, target_frequency=4),
        )
        assert rule.habit.name == "stretching"
        scheme = await schemes.get_owned(
            session, seeded["owner_id"], seeded["alternate"], with_rules=True
        )
        assert len(scheme.rules) == 2

    async def test_duplicate_habit_rejected(self, session, seeded, schemes):
        with pytest.raises(ConflictError) as exc_info:
            await schemes.add_rule(
                session,
                seeded["owner_id"],
                seeded["scheme"],
                RuleCreateRequest(habit_id=seeded["reading"], weight=1),
            )
        assert exc_info.value.code == "RULE_EXISTS"

    async def test_foreign_habit_rejected(self, session, seeded, schemes):
        other = await add_user(session, "user-2")
        habit = await add_habit(session, other.id, "theirs")
        with pytest.raises(NotFoundError):
            await schemes.add_rule(
                session,
                seeded["owner_id"],
                seeded["alternate"],
                RuleCreateRequest(habit_id=habit.id, weight=1),
            )

    async def test_update_and_remove_rule(self, session, seeded, schemes):
        scheme = await schemes.get_owned(
            session, seeded["owner_id"], seeded["alternate"], with_rules=True
        )
        rule_id = scheme.rules[0].id

        updated = await schemes.update_rule(
            session,
            seeded["owner_id"],
            seeded["alternate"],
            rule_id,
            RuleUpdateRequest(weight=5, target_frequency=3),
        )
        assert updated.weight == 5
        assert updated.target_frequency == 3

        await schemes.remove_rule(session, seeded["owner_id"], seeded["alternate"], rule_id)
        with pytest.raises(NotFoundError):
            await schemes.remove_rule(session, seeded["owner_id"], seeded["alternate"], rule_id)

    async def test_rule_update_is_logged(self, session, seeded, schemes):
        scheme = await schemes.get_owned(
            session, seeded["owner_id"], seeded["scheme"], with_rules=True
        )
        rule = next(r for r in scheme.rules if r.habit_id == seeded["running"])

        with capture_logs() as logs:
            await schemes.update_rule(
                session,
                seeded["owner_id"],
                seeded["scheme"],
                rule.id,
                RuleUpdateRequest(weight=40),
            )

        events = [e for e in logs if e["event"] == "scored_habit_rule_updated"]
        assert len(events) == 1
        assert events[0]["rule_id"] == rule.id
        assert events[0]["habit_id"] == seeded["running"]
        assert events[0]["weight"] == 40
        assert events[0]["target_frequency"] == 7

    async def test_rule_models_reject_bad_values(self):
        from pydantic import ValidationError

        with pytest.raises(ValidationError):
            RuleCreateRequest(habit_id=1, weight=0)
        with pytest.raises(ValidationError):
            RuleCreateRequest(habit_id=1, weight=1, target_frequency=0)
