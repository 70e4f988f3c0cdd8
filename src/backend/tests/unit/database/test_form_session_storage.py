"""
Unit tests for draft session storage

Redis-backed storage runs against fakeredis; the in-memory fallback is
tested directly, including its TTL cleanup.
"""

import json
import uuid
from datetime import timedelta

import pytest

from formation_suite.database import form_session_storage
from formation_suite.database.form_session_storage import (
    InMemoryFormSessionStorage,
    RedisFormSessionStorage,
    get_form_session_storage,
    init_form_session_storage,
)
from formation_suite.models.applications import FormKind
from formation_suite.models.form_session import SESSION_SCHEMA_VERSION


def _new_id() -> str:
    return str(uuid.uuid4())


@pytest.mark.unit
class TestRedisFormSessionStorage:
    @pytest.mark.asyncio
    async def test_save_and_retrieve(self, redis_storage, make_session):
        session = make_session(FormKind.LLC, owner_user_id="owner-1", metadata={"source": "dashboard"})
        session.record.llc_name = "Harbor Coffee LLC"

        await redis_storage.save_session(session)
        restored = await redis_storage.get_session(session.session_id)

        assert restored is not None
        assert restored.form_kind == FormKind.LLC
        assert restored.record.llc_name == "Harbor Coffee LLC"
        assert restored.record.member_names == [""]
        assert restored.owner_user_id == "owner-1"
        assert restored.metadata["source"] == "dashboard"

        assert session.session_id in await redis_storage.get_sessions_for_user("owner-1")
        assert session.session_id in await redis_storage.get_all_session_ids()

    @pytest.mark.asyncio
    async def test_hash_layout(self, redis_storage, fake_redis_client, make_session):
        session = make_session(FormKind.BANKING, owner_user_id="owner-2")

        await redis_storage.save_session(session)
        stored = await fake_redis_client.hgetall(f"formation:sessions:{session.session_id}")

        assert stored["formKind"] == "banking"
        assert stored["ownerUserId"] == "owner-2"
        assert stored["schemaVersion"] == str(SESSION_SCHEMA_VERSION)
        assert json.loads(stored["state"])["session_id"] == session.session_id
        assert 0 < await fake_redis_client.ttl(f"formation:sessions:{session.session_id}") <= 120

    @pytest.mark.asyncio
    async def test_metadata_patch_is_merged(self, redis_storage, make_session):
        session = make_session(FormKind.EIN, metadata={"a": 1})

        await redis_storage.save_session(session, metadata={"b": 2})
        restored = await redis_storage.get_session(session.session_id)

        assert restored.metadata == {"a": 1, "b": 2}

    @pytest.mark.asyncio
    async def test_owner_change_moves_user_index(self, redis_storage, make_session):
        session = make_session(FormKind.EIN, owner_user_id="first-owner")
        await redis_storage.save_session(session)

        session.owner_user_id = "second-owner"
        await redis_storage.save_session(session)

        assert await redis_storage.get_sessions_for_user("first-owner") == []
        assert await redis_storage.get_sessions_for_user("second-owner") == [session.session_id]

    @pytest.mark.asyncio
    async def test_delete(self, redis_storage, make_session):
        session = make_session(FormKind.LICENSES, owner_user_id="owner-3")
        await redis_storage.save_session(session)

        await redis_storage.delete_session(session.session_id)

        assert await redis_storage.get_session(session.session_id) is None
        assert not await redis_storage.session_exists(session.session_id)
        assert await redis_storage.get_sessions_for_user("owner-3") == []
        assert session.session_id not in await redis_storage.get_all_session_ids()

    @pytest.mark.asyncio
    async def test_missing_session(self, redis_storage):
        assert await redis_storage.get_session(_new_id()) is None

    @pytest.mark.asyncio
    async def test_invalid_session_id(self, redis_storage, make_session):
        session = make_session(FormKind.EIN)
        session.session_id = "not a valid id!"

        with pytest.raises(ValueError):
            await redis_storage.save_session(session)
        assert await redis_storage.get_session("../../etc") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("owner", ["jane.doe@example.com", "user:with:colons", "auth0|5f7c 9e"])
    async def test_any_owner_id_is_indexed(self, redis_storage, fake_redis_client, make_session, owner):
        session = make_session(FormKind.EIN, owner_user_id=owner)

        await redis_storage.save_session(session)

        assert await redis_storage.get_sessions_for_user(owner) == [session.session_id]
        user_keys = await fake_redis_client.keys("formation:sessions:user:*")
        assert len(user_keys) == 1
        assert owner not in user_keys[0]

        await redis_storage.delete_session(session.session_id)
        assert await redis_storage.get_sessions_for_user(owner) == []

    @pytest.mark.asyncio
    async def test_batch_retrieval(self, redis_storage, make_session):
        first = make_session(FormKind.EIN)
        second = make_session(FormKind.BANKING)
        await redis_storage.save_session(first)
        await redis_storage.save_session(second)
        missing = _new_id()

        sessions = await redis_storage.get_sessions_batch([first.session_id, second.session_id, missing])

        assert sessions[first.session_id].form_kind == FormKind.EIN
        assert sessions[second.session_id].form_kind == FormKind.BANKING
        assert sessions[missing] is None
        assert await redis_storage.get_sessions_batch([]) == {}

    @pytest.mark.asyncio
    async def test_extend_ttl(self, redis_storage, fake_redis_client, make_session):
        session = make_session(FormKind.EIN)
        await redis_storage.save_session(session)

        await redis_storage.extend_ttl(session.session_id, ttl=900)

        assert await fake_redis_client.ttl(f"formation:sessions:{session.session_id}") > 120

    @pytest.mark.asyncio
    async def test_link_and_unlink_user(self, redis_storage):
        session_id = _new_id()

        await redis_storage.link_user_session("user-9", session_id)
        assert await redis_storage.get_sessions_for_user("user-9") == [session_id]

        await redis_storage.unlink_user_session("user-9", session_id)
        assert await redis_storage.get_sessions_for_user("user-9") == []

    @pytest.mark.asyncio
    async def test_migrates_version_zero_payload(self, redis_storage, fake_redis_client):
        session_id = _new_id()
        key = f"formation:sessions:{session_id}"
        legacy_state = {
            "session_id": session_id,
            "form_kind": "llc",
            "record": {"llc_name": "Legacy LLC", "member_names": ["Dana"]},
        }
        await fake_redis_client.hset(key, mapping={"formKind": "llc", "state": json.dumps(legacy_state)})

        restored = await redis_storage.get_session(session_id)

        assert restored is not None
        assert restored.record.llc_name == "Legacy LLC"
        assert restored.notifications == []
        assert restored.schema_version == SESSION_SCHEMA_VERSION
        assert await fake_redis_client.hget(key, "schemaVersion") == str(SESSION_SCHEMA_VERSION)

    @pytest.mark.asyncio
    async def test_custom_namespace(self, fake_redis_client, make_session):
        storage = RedisFormSessionStorage(fake_redis_client, ttl=60, namespace="tenant-a:drafts:")
        session = make_session(FormKind.EIN)

        await storage.save_session(session)

        assert await fake_redis_client.exists(f"tenant-a:drafts:{session.session_id}")


@pytest.mark.unit
class TestInMemoryFormSessionStorage:
    @pytest.mark.asyncio
    async def test_stores_copies(self, make_session):
        storage = InMemoryFormSessionStorage(ttl=60)
        session = make_session(FormKind.EIN, owner_user_id="user-1")
        await storage.save_session(session)

        session.record.business_name = "Changed after save"
        restored = await storage.get_session(session.session_id)
        restored.record.business_name = "Changed after read"

        assert (await storage.get_session(session.session_id)).record.business_name == ""
        assert await storage.get_sessions_for_user("user-1") == [session.session_id]

    @pytest.mark.asyncio
    async def test_delete_unlinks_owner(self, make_session):
        storage = InMemoryFormSessionStorage(ttl=60)
        session = make_session(FormKind.LLC, owner_user_id="user-2")
        await storage.save_session(session)

        await storage.delete_session(session.session_id)

        assert not await storage.session_exists(session.session_id)
        assert await storage.get_sessions_for_user("user-2") == []

    @pytest.mark.asyncio
    async def test_cleanup_removes_idle_sessions(self, make_session):
        storage = InMemoryFormSessionStorage(ttl=60)
        idle = make_session(FormKind.EIN)
        active = make_session(FormKind.EIN)
        await storage.save_session(idle)
        await storage.save_session(active)

        metadata = storage._session_metadata[idle.session_id]
        metadata["last_updated"] = metadata["last_updated"] - timedelta(seconds=120)

        expired = await storage.cleanup_expired_sessions()

        assert expired == [idle.session_id]
        assert await storage.get_all_session_ids() == [active.session_id]

    @pytest.mark.asyncio
    async def test_cleanup_loop_start_and_stop(self):
        storage = InMemoryFormSessionStorage(ttl=60, cleanup_interval=3600)

        storage.start_cleanup_loop()
        assert storage._cleanup_task is not None
        assert not storage._cleanup_task.done()

        await storage.stop_cleanup_loop()
        assert storage._cleanup_task.done()


@pytest.mark.unit
class TestStorageSelection:
    def test_in_memory_when_no_client(self):
        storage = init_form_session_storage(None, ttl=300)

        assert isinstance(storage, InMemoryFormSessionStorage)
        assert storage.ttl == 300
        assert get_form_session_storage() is storage

    @pytest.mark.asyncio
    async def test_in_memory_when_redis_disabled(self, fake_redis_client, monkeypatch):
        monkeypatch.setenv("ENABLE_REDIS_SESSIONS", "false")

        storage = init_form_session_storage(fake_redis_client)

        assert isinstance(storage, InMemoryFormSessionStorage)

    @pytest.mark.asyncio
    async def test_redis_when_enabled(self, fake_redis_client, monkeypatch):
        monkeypatch.setenv("ENABLE_REDIS_CACHING", "true")

        storage = init_form_session_storage(fake_redis_client, ttl=90, namespace="formation:sessions")

        assert isinstance(storage, RedisFormSessionStorage)
        assert get_form_session_storage() is storage
        assert form_session_storage._redis_session_storage is storage
