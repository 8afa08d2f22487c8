"""Unit tests for ConnectionRepository."""

from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from thingstore.repositories.connections import ConnectionRepository
from thingstore.repositories.errors import (
    ConflictError,
    MalformedEntityError,
    NotFoundError,
    RetrieveEntityError,
)
from thingstore.schemas.common import PageMetadata

from .conftest import compile_sql, executed, make_result
from .test_errors import FakeDriverError

CHANNEL_ID = "5e4d3c2b-1a09-4f8e-8d7c-6b5a49382716"


class TestConnect:
    @pytest.mark.asyncio
    async def test_inserts_each_pair_in_one_transaction(self, mock_session):
        things = [str(uuid4()), str(uuid4()), str(uuid4())]

        await ConnectionRepository(mock_session).connect(CHANNEL_ID, *things)

        assert mock_session.execute.await_count == 3
        assert compile_sql(executed(mock_session)).startswith("INSERT INTO connections")
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_duplicate_pair_is_conflict(self, mock_session):
        mock_session.execute.side_effect = [
            make_result(),
            IntegrityError("INSERT", {}, FakeDriverError("23505")),
        ]
        with pytest.raises(ConflictError):
            await ConnectionRepository(mock_session).connect(CHANNEL_ID, str(uuid4()), str(uuid4()))
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_thing_is_not_found(self, mock_session):
        mock_session.execute.side_effect = IntegrityError("INSERT", {}, FakeDriverError("23503"))
        with pytest.raises(NotFoundError):
            await ConnectionRepository(mock_session).connect(CHANNEL_ID, str(uuid4()))

    @pytest.mark.asyncio
    async def test_malformed_thing_id(self, mock_session):
        with pytest.raises(MalformedEntityError):
            await ConnectionRepository(mock_session).connect(CHANNEL_ID, "thing-1")
        mock_session.execute.assert_not_awaited()


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_removes_pairs(self, mock_session):
        await ConnectionRepository(mock_session).disconnect(CHANNEL_ID, str(uuid4()))
        assert compile_sql(executed(mock_session)).startswith("DELETE FROM connections")
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_pair_is_not_found_and_rolls_back(self, mock_session):
        mock_session.execute.side_effect = [make_result(rowcount=1), make_result(rowcount=0)]
        with pytest.raises(NotFoundError):
            await ConnectionRepository(mock_session).disconnect(CHANNEL_ID, str(uuid4()), str(uuid4()))
        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()


class TestRetrieve:
    @pytest.mark.asyncio
    async def test_things_on_channel(self, mock_session):
        row = {
            "id": str(uuid4()),
            "group_id": str(uuid4()),
            "profile_id": str(uuid4()),
            "name": "lamp",
            "key": "k",
            "external_key": None,
            "metadata": None,
        }
        mock_session.execute.side_effect = [make_result(rows=[row]), make_result(scalar=1)]

        page = await ConnectionRepository(mock_session).retrieve_by_channel(CHANNEL_ID, PageMetadata(limit=5))

        assert page.total == 1
        assert page.items[0].name == "lamp"
        sql = compile_sql(executed(mock_session))
        assert "JOIN connections ON connections.thing_id = things.id" in sql
        assert "connections.channel_id =" in sql
        count_sql = compile_sql(executed(mock_session, 1))
        assert "JOIN connections" in count_sql

    @pytest.mark.asyncio
    async def test_channels_of_thing(self, mock_session):
        mock_session.execute.side_effect = [make_result(rows=[]), make_result(scalar=0)]

        page = await ConnectionRepository(mock_session).retrieve_by_thing(str(uuid4()), PageMetadata())

        assert page.items == []
        sql = compile_sql(executed(mock_session))
        assert "FROM profiles JOIN connections ON connections.channel_id = profiles.id" in sql

    @pytest.mark.asyncio
    async def test_malformed_channel_is_not_found(self, mock_session):
        with pytest.raises(NotFoundError):
            await ConnectionRepository(mock_session).retrieve_by_channel("c", PageMetadata())

    @pytest.mark.asyncio
    async def test_retrieve_by_thing_key(self, mock_session):
        thing_id = str(uuid4())
        mock_session.execute.return_value = make_result(rows=[{"channel_id": CHANNEL_ID, "thing_id": thing_id}])

        connections = await ConnectionRepository(mock_session).retrieve_by_thing_key("k-1")

        assert connections[0].channel_id == CHANNEL_ID
        assert connections[0].thing_id == thing_id
        assert "things.key =" in compile_sql(executed(mock_session))


class TestFailedRead:
    @pytest.mark.asyncio
    async def test_failed_listing_rolls_back(self, mock_session):
        mock_session.execute.side_effect = OperationalError("SELECT", {}, Exception("timeout"))
        with pytest.raises(RetrieveEntityError):
            await ConnectionRepository(mock_session).retrieve_all()
        mock_session.rollback.assert_awaited_once()
