"""
Unit tests for the compare-and-swap loop behind like toggling.

The database session is mocked so each attempt's outcome can be scripted.
"""
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from prodspark.services.product_store import LikeConflictError, ProductNotFoundError, toggle_like


def _read(likes, version):
    result = MagicMock()
    result.one_or_none.return_value = SimpleNamespace(likes=likes, likes_version=version)
    return result


def _write(rowcount):
    return MagicMock(rowcount=rowcount)


class TestToggleLike:

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_adds_missing_user(self, mock_db_session):
        mock_db_session.execute = AsyncMock(side_effect=[_read(["u1"], 4), _write(1)])

        liked, likes = await toggle_like(mock_db_session, "p1", "u2")

        assert liked is True
        assert likes == ["u1", "u2"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_removes_present_user(self, mock_db_session):
        mock_db_session.execute = AsyncMock(side_effect=[_read(["u1", "u2"], 4), _write(1)])

        liked, likes = await toggle_like(mock_db_session, "p1", "u1")

        assert liked is False
        assert likes == ["u2"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_lost_race_rereads_and_retries(self, mock_db_session):
        mock_db_session.execute = AsyncMock(side_effect=[
            _read([], 0),
            _write(0),              # someone else wrote in between
            _read(["u9"], 1),
            _write(1),
        ])

        liked, likes = await toggle_like(mock_db_session, "p1", "u2", max_retries=3)

        assert liked is True
        assert likes == ["u9", "u2"]  # the concurrent like survives
        assert mock_db_session.execute.await_count == 4

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self, mock_db_session):
        mock_db_session.execute = AsyncMock(side_effect=[
            _read([], 0), _write(0),
            _read([], 1), _write(0),
        ])

        with pytest.raises(LikeConflictError):
            await toggle_like(mock_db_session, "p1", "u2", max_retries=1)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unknown_product(self, mock_db_session):
        missing = MagicMock()
        missing.one_or_none.return_value = None
        mock_db_session.execute = AsyncMock(return_value=missing)

        with pytest.raises(ProductNotFoundError):
            await toggle_like(mock_db_session, "nope", "u1")
