"""Unit tests for the naive-UTC timestamp convention."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from baydigital.models.base import UTCDateTime, as_naive_utc

PLUS_TWO = timezone(timedelta(hours=2))


@pytest.mark.unit
class TestUTCDateTime:
    """Unit tests for the timestamptz column type."""

    def test_naive_values_are_sent_as_utc(self) -> None:
        bound = UTCDateTime().process_bind_param(datetime(2026, 3, 1, 9, 30), None)

        assert bound == datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)
        assert bound.utcoffset() == timedelta(0)

    def test_aware_values_are_converted_to_utc(self) -> None:
        bound = UTCDateTime().process_bind_param(datetime(2026, 3, 1, 12, 0, tzinfo=PLUS_TWO), None)

        assert bound == datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
        assert bound.tzinfo == timezone.utc

    def test_loaded_values_are_naive_utc(self) -> None:
        column = UTCDateTime()

        assert column.process_result_value(datetime(2026, 3, 1, 12, 0, tzinfo=PLUS_TWO), None) == datetime(
            2026, 3, 1, 10, 0
        )
        assert column.process_result_value(datetime(2026, 3, 1, 10, 0), None) == datetime(2026, 3, 1, 10, 0)
        assert column.process_result_value(None, None) is None
        assert column.process_bind_param(None, None) is None

    def test_as_naive_utc(self) -> None:
        assert as_naive_utc(datetime(2026, 1, 1, 1, 0, tzinfo=PLUS_TWO)) == datetime(2025, 12, 31, 23, 0)
        assert as_naive_utc(None) is None

    @pytest.mark.asyncio
    async def test_round_trip_through_database(self, async_db_session: AsyncSession, create_user) -> None:
        """Test that an offset timestamp is stored and reloaded as the same UTC instant."""
        user = await create_user(freepik_period_start=datetime(2026, 3, 1, 12, 0, tzinfo=PLUS_TWO))

        await async_db_session.refresh(user)

        assert user.freepik_period_start == datetime(2026, 3, 1, 10, 0)
        assert user.freepik_period_start.tzinfo is None
