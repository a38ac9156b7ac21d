"""
Tests for FedexRecordStore against a mocked async session.
"""
from contextlib import asynccontextmanager
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import ConflictError, ErrorMessages, NotFoundError, ValidationError
from app.services.fedex_record_store import FedexRecordStore


def make_session():
    session = MagicMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.delete = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.scalar = AsyncMock()
    return session


def store_for(session):
    @asynccontextmanager
    async def factory():
        yield session

    return FedexRecordStore(factory)


class TestCreate:
    """Test single and bulk record creation."""

    @pytest.mark.asyncio
    async def test_create_many_defaults(self):
        session = make_session()

        rows = await store_for(session).create_many([
            {"tracking_no": "T1", "fedex_json": {"status": "DL"}},
            {"tracking_no": "T2"},
        ])

        assert [r.tracking_no for r in rows] == ["T1", "T2"]
        assert rows[0].fedex_json == {"status": "DL"}
        assert rows[1].fedex_json == {}
        assert rows[1].upload_array == []
        session.add_all.assert_called_once()
        assert session.refresh.await_count == 2

    @pytest.mark.asyncio
    async def test_duplicate_tracking_number_is_conflict(self):
        session = make_session()
        session.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))

        with pytest.raises(ConflictError) as exc_info:
            await store_for(session).create_many([{"tracking_no": "T1"}])

        assert exc_info.value.status_code == 409
        assert "T1" in exc_info.value.message
        session.rollback.assert_awaited_once()
        session.refresh.assert_not_awaited()


class TestReadDelete:
    """Test lookup, listing and deletion."""

    @pytest.mark.asyncio
    async def test_get_missing(self):
        session = make_session()
        session.get.return_value = None
        with pytest.raises(NotFoundError) as exc_info:
            await store_for(session).get(5)
        assert exc_info.value.message == ErrorMessages.FEDEX_RECORD_NOT_FOUND

    @pytest.mark.asyncio
    async def test_delete_returns_record(self):
        session = make_session()
        record = SimpleNamespace(id=3, tracking_no="T3")
        session.get.return_value = record

        deleted = await store_for(session).delete(3)

        assert deleted is record
        session.delete.assert_awaited_once_with(record)
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_missing(self):
        session = make_session()
        session.get.return_value = None
        with pytest.raises(NotFoundError):
            await store_for(session).delete(3)
        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_filters_by_tracking_substring(self):
        session = make_session()
        session.scalar.return_value = 0
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        session.execute.return_value = result

        records, total, limit = await store_for(session).list_records(tracking_no="7231", limit=500)

        assert records == []
        assert total == 0
        assert limit == 100
        stmt = session.execute.call_args.args[0]
        assert "lower(logistics_3pl_giga_fedex.tracking_no) LIKE lower(" in str(stmt)

    @pytest.mark.asyncio
    async def test_delete_by_date_range(self):
        session = make_session()
        session.execute.return_value = SimpleNamespace(rowcount=3)

        deleted = await store_for(session).delete_by_date_range(date(2025, 3, 1), date(2025, 3, 1))

        assert deleted == 3
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_by_inverted_range(self):
        session = make_session()
        with pytest.raises(ValidationError):
            await store_for(session).delete_by_date_range(date(2025, 3, 2), date(2025, 3, 1))
        session.execute.assert_not_awaited()
