"""
Cart snapshot persistence.

Snapshots are a JSON array of lines stored under one key per shopper
session. ``save`` is fire-and-forget: it schedules the write on the running
event loop and returns immediately. ``load`` never raises; anything
unreadable is logged and treated as an empty cart.
"""
import asyncio
import json
from typing import Optional

from plancart.db import RedisKeys, TTL, get_redis
from plancart.logging import get_logger, sanitize_id_for_logging
from .models import CartState

logger = get_logger(__name__)


class CartStorage:
    """Base persistence adapter; subclasses implement ``_read`` / ``_write``."""

    def __init__(self):
        self._pending: set[asyncio.Task] = set()
        self._tails: dict[str, asyncio.Task] = {}
        self._latest: dict[str, int] = {}
        self._sequence = 0

    async def _read(self, session_id: str) -> Optional[str]:
        raise NotImplementedError

    async def _write(self, session_id: str, snapshot: str) -> None:
        raise NotImplementedError

    def save(self, session_id: str, state: CartState) -> None:
        """Schedule a snapshot write. Never blocks, never raises."""
        try:
            snapshot = json.dumps(state.to_list())
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(
                "No running event loop, cart %s not persisted",
                sanitize_id_for_logging(session_id),
            )
            return
        except (TypeError, ValueError) as e:
            logger.error("Failed to serialize cart %s: %s", sanitize_id_for_logging(session_id), e)
            return

        self._sequence += 1
        self._latest[session_id] = self._sequence
        previous = self._tails.get(session_id)
        if previous is not None and previous.done():
            previous = None

        task = loop.create_task(self._persist(session_id, snapshot, self._sequence, previous))
        self._tails[session_id] = task
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _persist(
        self,
        session_id: str,
        snapshot: str,
        sequence: int,
        previous: Optional[asyncio.Task],
    ) -> None:
        # Writes for one session land in call order
        if previous is not None:
            await asyncio.gather(previous, return_exceptions=True)

        # A newer snapshot for this session is queued behind us
        if self._latest.get(session_id) != sequence:
            return
        try:
            await self._write(session_id, snapshot)
        except Exception as e:
            logger.error(
                "Failed to persist cart %s: %s",
                sanitize_id_for_logging(session_id),
                e,
            )
        finally:
            if self._tails.get(session_id) is asyncio.current_task():
                del self._tails[session_id]

    async def flush(self) -> None:
        """Wait for scheduled writes to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def load(self, session_id: str) -> CartState:
        """Return the last snapshot, or an empty cart if absent or unreadable."""
        try:
            raw = await self._read(session_id)
        except Exception as e:
            logger.error("Failed to read cart %s: %s", sanitize_id_for_logging(session_id), e)
            return CartState()

        if not raw:
            return CartState()

        try:
            return CartState.from_list(json.loads(raw))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                "Corrupted cart data for session %s: %s",
                sanitize_id_for_logging(session_id),
                e,
            )
            return CartState()


class RedisCartStorage(CartStorage):
    """Snapshots in Upstash Redis under ``cart:{session_id}``."""

    def __init__(self, redis=None, ttl: int = TTL.CART):
        super().__init__()
        self._redis = redis
        self.ttl = ttl

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            try:
                self._redis = get_redis()
            except ValueError as e:
                raise ValueError(
                    f"Redis not available: {e}. Check UPSTASH_REDIS_REST_URL and "
                    "UPSTASH_REDIS_REST_TOKEN environment variables."
                )
        return self._redis

    async def _read(self, session_id: str) -> Optional[str]:
        return await self.redis.get(RedisKeys.cart_key(session_id))

    async def _write(self, session_id: str, snapshot: str) -> None:
        await self.redis.set(RedisKeys.cart_key(session_id), snapshot, ex=self.ttl)


class MemoryCartStorage(CartStorage):
    """Process-local snapshots, for local development and tests."""

    def __init__(self):
        super().__init__()
        self.snapshots: dict[str, str] = {}

    async def _read(self, session_id: str) -> Optional[str]:
        return self.snapshots.get(session_id)

    async def _write(self, session_id: str, snapshot: str) -> None:
        self.snapshots[session_id] = snapshot
