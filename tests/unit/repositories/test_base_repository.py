"""Unit tests for the shared repository error handling."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from hera.core.exceptions import DatabaseError
from hera.repositories.clinic_repository import ClinicRepository


def failed_query():
    return OperationalError("SELECT", {}, Exception("current transaction is aborted"))


def result_of(value):
    result = MagicMock()
    result.scalars.return_value.first.return_value = value
    result.scalars.return_value.all.return_value = [value]
    result.scalar_one.return_value = 1
    return result


@pytest.fixture
def session():
    return AsyncMock()


class TestBaseRepository:
    @pytest.mark.asyncio
    async def test_failed_lookup_rolls_back_and_session_stays_usable(self, session):
        existing = MagicMock(name="clinic")
        session.execute.side_effect = [failed_query(), result_of(existing)]
        repository = ClinicRepository(session)

        with pytest.raises(DatabaseError):
            await repository.find_first({"name": "Downtown Health"})
        session.rollback.assert_awaited_once()

        assert await repository.find_first({"name": "Uptown Health"}) is existing

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "call",
        [
            lambda repository: repository.find_many({"state": "Ohio"}),
            lambda repository: repository.count({"state": "Ohio"}),
        ],
        ids=["find_many", "count"],
    )
    async def test_failed_read_rolls_back(self, session, call):
        session.execute.side_effect = failed_query()

        with pytest.raises(DatabaseError):
            await call(ClinicRepository(session))

        session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_filter_field_is_rejected(self, session):
        with pytest.raises(ValueError):
            await ClinicRepository(session).find_first({"nickname": "x"})

        session.execute.assert_not_awaited()
