"""
Draft Form Session Storage with user mapping.

Holds in-progress worksheets between requests with:
- Hash-based session payload storage
- User→session indexing
- Active-session sorted set for lifecycle management
- TTL refresh and optimistic-lock safeguards
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Union

from redis.asyncio import Redis
from redis.exceptions import WatchError

from ..models.form_session import FormSession, SESSION_SCHEMA_VERSION

logger = logging.getLogger(__name__)

_SESSION_ID_PATTERN = re.compile(r"^[a-fA-F0-9-]{8,50}$")  # UUID-like format


def _user_key_token(user_id: str) -> str:
    """
    Key-safe token for a user identifier.

    User ids come from the auth provider and may contain any characters
    (emails, colons), so user index keys use their sha256 hex digest.

    Raises:
        ValueError: If the user id is empty or not a string
    """
    if not isinstance(user_id, str):
        raise ValueError(f"user_id must be a string, got {type(user_id).__name__}")

    if not user_id:
        raise ValueError("user_id cannot be empty")

    return hashlib.sha256(user_id.encode("utf-8")).hexdigest()


def _validate_session_id(session_id: str) -> str:
    """
    Validate session ID format.

    Raises:
        ValueError: If session ID is invalid
    """
    if not session_id:
        raise ValueError("session_id cannot be empty")

    if not isinstance(session_id, str):
        raise ValueError(f"session_id must be a string, got {type(session_id).__name__}")

    if not _SESSION_ID_PATTERN.match(session_id):
        raise ValueError(
            "session_id must be a valid UUID-like format (hex digits and hyphens, 8-50 chars)"
        )

    return session_id


def _utc_now() -> datetime:
    """Return timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


class InMemoryFormSessionStorage:
    """
    In-memory fallback for draft storage when Redis is unavailable or disabled.

    Mimics the Redis-backed behaviour to keep API paths consistent.
    TTL is enforced by a background cleanup loop started with start_cleanup_loop().
    """

    def __init__(self, ttl: int = 3600, cleanup_interval: int = 60):
        self._sessions: Dict[str, FormSession] = {}
        self._user_sessions: Dict[str, Set[str]] = {}
        self._session_metadata: Dict[str, Dict[str, Any]] = {}
        self.ttl = ttl
        self.cleanup_interval = cleanup_interval
        self._cleanup_task: Optional[asyncio.Task] = None
        self._shutdown = False

    async def save_session(self, form_session: FormSession, *, metadata: Optional[Dict[str, Any]] = None):
        """Store a draft in memory."""
        session_id = form_session.session_id

        if metadata:
            form_session.metadata.update(metadata)

        form_session.last_updated = _utc_now()
        form_session.schema_version = SESSION_SCHEMA_VERSION

        # Stored as a copy so callers mutating their instance do not bypass save
        self._sessions[session_id] = form_session.model_copy(deep=True)

        entry = self._session_metadata.setdefault(session_id, {"created_at": _utc_now()})
        entry["last_updated"] = _utc_now()

        if form_session.owner_user_id:
            self._user_sessions.setdefault(form_session.owner_user_id, set()).add(session_id)

        logger.debug("Saved session %s to in-memory storage", session_id)

    async def get_session(self, session_id: str) -> Optional[FormSession]:
        """Retrieve a draft from memory."""
        session = self._sessions.get(session_id)
        if session is None:
            return None
        logger.debug("Retrieved session %s from in-memory storage", session_id)
        return session.model_copy(deep=True)

    async def delete_session(self, session_id: str):
        """Delete a draft from memory."""
        form_session = self._sessions.pop(session_id, None)
        self._session_metadata.pop(session_id, None)
        if form_session and form_session.owner_user_id:
            await self.unlink_user_session(form_session.owner_user_id, session_id)
        logger.debug("Deleted session %s from in-memory storage", session_id)

    async def extend_ttl(self, session_id: str, ttl: Optional[int] = None):
        """Refresh the last-access time (age is measured from the last access)."""
        await self.touch_session(session_id)

    async def touch_session(self, session_id: str):
        if session_id in self._session_metadata:
            self._session_metadata[session_id]["last_updated"] = _utc_now()

    async def session_exists(self, session_id: str) -> bool:
        return session_id in self._sessions

    async def get_all_session_ids(self) -> List[str]:
        return sorted(self._sessions.keys())

    async def get_sessions_for_user(self, user_id: str) -> List[str]:
        """Return all session IDs for a user."""
        return sorted(self._user_sessions.get(user_id, set()))

    async def get_sessions_batch(self, session_ids: List[str]) -> Dict[str, Optional[FormSession]]:
        """Retrieve multiple drafts in one call (parity with Redis)."""
        return {session_id: await self.get_session(session_id) for session_id in session_ids}

    async def link_user_session(self, user_id: str, session_id: str):
        self._user_sessions.setdefault(user_id, set()).add(session_id)

    async def unlink_user_session(self, user_id: str, session_id: str):
        sessions = self._user_sessions.get(user_id)
        if not sessions:
            return
        sessions.discard(session_id)
        if not sessions:
            self._user_sessions.pop(user_id, None)

    def start_cleanup_loop(self):
        """Start the TTL cleanup task on the running event loop."""
        if self.ttl <= 0 or (self._cleanup_task and not self._cleanup_task.done()):
            return
        self._shutdown = False
        self._cleanup_task = asyncio.get_running_loop().create_task(self._cleanup_loop())
        logger.info(f"Started in-memory session cleanup task (TTL: {self.ttl}s)")

    async def _cleanup_loop(self):
        """Background task to periodically clean up expired drafts."""
        try:
            while not self._shutdown:
                await asyncio.sleep(self.cleanup_interval)
                if self._shutdown:
                    break
                await self.cleanup_expired_sessions()
        except asyncio.CancelledError:
            logger.info("Session cleanup loop cancelled")

    async def cleanup_expired_sessions(self) -> List[str]:
        """Remove drafts idle for longer than the TTL and return their IDs."""
        now = _utc_now()
        expired_sessions = [
            session_id
            for session_id, entry in self._session_metadata.items()
            if (now - entry.get("last_updated", entry["created_at"])).total_seconds() > self.ttl
        ]

        if expired_sessions:
            logger.info(f"Cleaning up {len(expired_sessions)} expired sessions")
            for session_id in expired_sessions:
                await self.delete_session(session_id)

        return expired_sessions

    async def stop_cleanup_loop(self):
        """Stop the background cleanup task gracefully."""
        self._shutdown = True
        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            logger.info("In-memory session cleanup task stopped")


class RedisFormSessionStorage:
    """
    Redis-backed draft storage.

    Features:
    - Draft caching with configurable TTL
    - Hash-based payload storage with schema versioning
    - Session lifecycle management and user mapping
    """

    def __init__(
        self,
        redis_client: Redis,
        ttl: int = 3600,
        *,
        namespace: str = "formation:sessions",
    ):
        """
        Initialize Redis draft storage.

        Args:
            redis_client: Redis async client
            ttl: Time-to-live for drafts in seconds (default: 3600 = 1 hour)
            namespace: Base key namespace
        """
        self.redis = redis_client
        self.ttl = ttl
        self.namespace = namespace.rstrip(":")
        self.user_namespace = f"{self.namespace}:user"
        self.active_sessions_key = f"{self.namespace}:active"
        self.schema_version = SESSION_SCHEMA_VERSION

    def _session_key(self, session_id: str) -> str:
        """Generate Redis key for session ID."""
        return f"{self.namespace}:{_validate_session_id(session_id)}"

    def _user_sessions_key(self, user_id: str) -> str:
        """Generate Redis key for user-session mapping set."""
        return f"{self.user_namespace}:{_user_key_token(user_id)}"

    def _migrate_session_schema(self, payload: Dict[str, Any], session_id: str) -> bool:
        """
        Migrate a stored payload to the current schema in place.

        Returns:
            True if migration was performed, False otherwise
        """
        stored_version = payload.get("schema_version", 0)

        if stored_version == self.schema_version:
            return False

        logger.info(
            "Migrating session %s from schema v%d to v%d",
            session_id,
            stored_version,
            self.schema_version,
        )

        # v0 drafts predate notifications and metadata
        if stored_version == 0:
            payload.setdefault("notifications", [])
            payload.setdefault("metadata", {})
            payload.setdefault("owner_user_id", None)
            payload["schema_version"] = 1

        return True

    async def save_session(self, form_session: FormSession, *, metadata: Optional[Dict[str, Any]] = None):
        """
        Save a draft to Redis with TTL and user mapping.

        Args:
            form_session: Draft to save
            metadata: Optional metadata patch merged into the draft metadata

        Raises:
            ValueError: If the session ID is unsafe for a Redis key
        """
        session_key = self._session_key(form_session.session_id)
        now = _utc_now()

        owner = form_session.owner_user_id

        form_session.last_updated = now
        form_session.schema_version = self.schema_version
        if metadata:
            form_session.metadata.update(metadata)

        state_json = form_session.model_dump_json()
        session_hash = {
            "formKind": form_session.form_kind.value,
            "state": state_json,
            "lastTouched": now.isoformat(),
            "schemaVersion": str(self.schema_version),
            "ownerUserId": owner or "",
        }

        while True:
            try:
                async with self.redis.pipeline(transaction=True) as pipe:
                    await pipe.watch(session_key)
                    previous_owner = await pipe.hget(session_key, "ownerUserId")

                    pipe.multi()
                    pipe.hset(session_key, mapping=session_hash)
                    pipe.expire(session_key, self.ttl)
                    pipe.zadd(self.active_sessions_key, {form_session.session_id: now.timestamp()})
                    pipe.expire(self.active_sessions_key, 2 * self.ttl)

                    if owner:
                        user_key = self._user_sessions_key(owner)
                        pipe.sadd(user_key, form_session.session_id)
                        pipe.expire(user_key, self.ttl)
                    if previous_owner and previous_owner != owner:
                        pipe.srem(self._user_sessions_key(previous_owner), form_session.session_id)

                    await pipe.execute()

                logger.info("Saved session %s to Redis (TTL: %ss)", form_session.session_id, self.ttl)
                break

            except WatchError:
                logger.debug("Watch conflict while saving session %s, retrying", form_session.session_id)
                continue
            except Exception as exc:
                logger.error("Failed to save session %s to Redis: %s", form_session.session_id, exc)
                raise

    def _parse_payload(self, session_id: str, session_hash: Dict[str, str]) -> Optional[tuple]:
        state_json = session_hash.get("state")
        if not state_json:
            logger.warning("Session %s missing state payload", session_id)
            return None

        payload: Dict[str, Any] = json.loads(state_json)
        migrated = self._migrate_session_schema(payload, session_id)
        return FormSession.model_validate(payload), migrated

    async def get_session(self, session_id: str) -> Optional[FormSession]:
        """
        Retrieve a draft from Redis.

        Returns:
            FormSession or None if not found or unreadable
        """
        try:
            session_key = self._session_key(session_id)
            session_hash = await self.redis.hgetall(session_key)
            if not session_hash:
                logger.debug("Session %s not found in Redis", session_id)
                return None

            parsed = self._parse_payload(session_id, session_hash)
            if parsed is None:
                return None
            session, migrated = parsed

            if migrated:
                logger.info("Migrated session %s to schema v%d", session_id, self.schema_version)
                await self.save_session(session)
            else:
                await self.touch_session(session_id)

            logger.info("Retrieved session %s from Redis", session_id)
            return session

        except Exception as exc:
            logger.error("Failed to retrieve session %s from Redis: %s", session_id, exc)
            return None

    async def get_sessions_batch(self, session_ids: List[str]) -> Dict[str, Optional[FormSession]]:
        """
        Retrieve multiple drafts in a single round-trip.

        Returns:
            Dict mapping session_id to FormSession (or None if not found)
        """
        if not session_ids:
            return {}

        results: Dict[str, Optional[FormSession]] = {}

        try:
            async with self.redis.pipeline(transaction=False) as pipe:
                for session_id in session_ids:
                    pipe.hgetall(self._session_key(session_id))
                session_hashes = await pipe.execute()

            for session_id, session_hash in zip(session_ids, session_hashes):
                if not session_hash:
                    results[session_id] = None
                    continue
                try:
                    parsed = self._parse_payload(session_id, session_hash)
                    results[session_id] = parsed[0] if parsed else None
                except Exception as parse_exc:
                    logger.error("Failed to parse session %s: %s", session_id, parse_exc)
                    results[session_id] = None

            return results

        except Exception as exc:
            logger.error("Failed to retrieve sessions in batch: %s", exc)
            return {sid: None for sid in session_ids}

    async def delete_session(self, session_id: str):
        """Delete a draft and its user mapping from Redis."""
        session_key = self._session_key(session_id)
        while True:
            try:
                async with self.redis.pipeline(transaction=True) as pipe:
                    await pipe.watch(session_key)
                    owner = await pipe.hget(session_key, "ownerUserId")

                    pipe.multi()
                    pipe.delete(session_key)
                    pipe.zrem(self.active_sessions_key, session_id)
                    if owner:
                        pipe.srem(self._user_sessions_key(owner), session_id)
                    await pipe.execute()
                    logger.info("Deleted session %s from Redis", session_id)
                    break
            except WatchError:
                logger.debug("Watch conflict while deleting session %s, retrying", session_id)
                continue
            except Exception as exc:
                logger.error("Failed to delete session %s from Redis: %s", session_id, exc)
                raise

    async def extend_ttl(self, session_id: str, ttl: Optional[int] = None):
        """Extend TTL for an existing draft and refresh activity markers."""
        session_key = self._session_key(session_id)
        new_ttl = ttl or self.ttl
        now = _utc_now()
        try:
            async with self.redis.pipeline(transaction=False) as pipe:
                pipe.expire(session_key, new_ttl)
                pipe.hset(session_key, mapping={"lastTouched": now.isoformat()})
                pipe.zadd(self.active_sessions_key, {session_id: now.timestamp()})
                await pipe.execute()
        except Exception as exc:
            logger.error("Failed to extend TTL for session %s: %s", session_id, exc)

    async def touch_session(self, session_id: str):
        """Refresh TTL and activity timestamp without altering payload."""
        await self.extend_ttl(session_id)

    async def session_exists(self, session_id: str) -> bool:
        try:
            return bool(await self.redis.exists(self._session_key(session_id)))
        except Exception as exc:
            logger.error("Failed to check session existence for %s: %s", session_id, exc)
            return False

    async def get_all_session_ids(self) -> List[str]:
        """Get all active draft IDs from Redis."""
        try:
            session_ids = await self.redis.zrange(self.active_sessions_key, 0, -1)
            return [sid for sid in session_ids if sid]
        except Exception as exc:
            logger.error("Failed to get all session IDs: %s", exc)
            return []

    async def get_sessions_for_user(self, user_id: str) -> List[str]:
        """Return all active draft IDs for a user."""
        try:
            session_ids = await self.redis.smembers(self._user_sessions_key(user_id))
            return sorted(session_ids)
        except Exception as exc:
            logger.error("Failed to fetch sessions for user %s: %s", user_id, exc)
            return []

    async def link_user_session(self, user_id: str, session_id: str):
        user_key = self._user_sessions_key(user_id)
        async with self.redis.pipeline(transaction=False) as pipe:
            pipe.sadd(user_key, session_id)
            pipe.expire(user_key, self.ttl)
            await pipe.execute()

    async def unlink_user_session(self, user_id: str, session_id: str):
        await self.redis.srem(self._user_sessions_key(user_id), session_id)


FormSessionStorage = Union[RedisFormSessionStorage, InMemoryFormSessionStorage]

# Global storage instances (initialized in main.py)
_redis_session_storage: Optional[RedisFormSessionStorage] = None
_in_memory_session_storage: Optional[InMemoryFormSessionStorage] = None
_fallback_warning_logged: bool = False


def _redis_disabled() -> bool:
    """Check if Redis caching has been explicitly disabled."""
    caching_disabled = os.getenv("ENABLE_REDIS_CACHING", "true").lower() == "false"
    sessions_disabled = os.getenv("ENABLE_REDIS_SESSIONS", "true").lower() == "false"
    return caching_disabled or sessions_disabled


def _get_in_memory_session_storage(ttl: int = 3600) -> InMemoryFormSessionStorage:
    """Lazily initialize and return the in-memory storage."""
    global _in_memory_session_storage

    if _in_memory_session_storage is None:
        _in_memory_session_storage = InMemoryFormSessionStorage(ttl=ttl)
        logger.info("Initialized in-memory session storage fallback")

    return _in_memory_session_storage


def get_form_session_storage() -> FormSessionStorage:
    """
    Get draft storage instance.

    Returns Redis-backed storage when available, otherwise falls back to
    in-memory storage if Redis is disabled or not initialized.
    """
    global _fallback_warning_logged

    if _redis_session_storage is not None:
        return _redis_session_storage

    if not _redis_disabled() and not _fallback_warning_logged:
        logger.warning(
            "Redis session storage requested before initialization. Falling back to in-memory storage."
        )
        _fallback_warning_logged = True

    return _get_in_memory_session_storage()


def init_form_session_storage(
    redis_client: Optional[Redis],
    ttl: int = 3600,
    namespace: str = "formation:sessions",
) -> FormSessionStorage:
    """Initialize global draft storage instance."""
    global _redis_session_storage, _fallback_warning_logged

    _fallback_warning_logged = False

    if redis_client is None or _redis_disabled():
        _redis_session_storage = None
        logger.info("Redis client unavailable or sessions disabled; using in-memory session storage")
        return _get_in_memory_session_storage(ttl=ttl)

    _redis_session_storage = RedisFormSessionStorage(redis_client, ttl, namespace=namespace)
    logger.info("Redis session storage initialized (TTL: %ss)", ttl)
    return _redis_session_storage


def reset_form_session_storage():
    """Drop the global storage instances (tests and shutdown)."""
    global _redis_session_storage, _in_memory_session_storage, _fallback_warning_logged
    _redis_session_storage = None
    _in_memory_session_storage = None
    _fallback_warning_logged = False
