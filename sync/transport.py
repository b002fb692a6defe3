"""PostgreSQL LISTEN/NOTIFY transport for change channels.

Row triggers publish JSON change payloads on a single NOTIFY channel
(realtime_changes by default). This transport keeps one dedicated asyncpg
connection, LISTENs once, and fans each notification out to the
subscriptions whose schema/table/event filter matches.

If that connection terminates underneath us, every subscription is dropped
and its on_lost callback fired; the next subscribe() connects afresh.
"""
import asyncio
import logging
from typing import Awaitable, Callable, NamedTuple, Optional

import asyncpg
from pydantic import ValidationError

from schemas.realtime import ChangeEvent
from sync.channel import EventHandler, SubscriptionSpec

logger = logging.getLogger(__name__)

Connector = Callable[[], Awaitable[asyncpg.Connection]]


class _Subscription(NamedTuple):
    spec: SubscriptionSpec
    callback: EventHandler
    on_lost: Optional[Callable[[], None]]


class PostgresChangeTransport:
    def __init__(self, connect: Connector, notify_channel: str = "realtime_changes"):
        self._connect = connect
        self.notify_channel = notify_channel
        self._conn: Optional[asyncpg.Connection] = None
        self._subscriptions: dict[str, _Subscription] = {}
        self._lock = asyncio.Lock()

    async def subscribe(
        self,
        channel_id: str,
        spec: SubscriptionSpec,
        callback: EventHandler,
        on_lost: Optional[Callable[[], None]] = None,
    ) -> None:
        async with self._lock:
            if self._conn is None:
                conn = await self._connect()
                try:
                    await conn.add_listener(self.notify_channel, self._on_notify)
                except BaseException:
                    await conn.close()
                    raise
                conn.add_termination_listener(self._on_terminated)
                self._conn = conn
                logger.info("Listening for row changes on %s", self.notify_channel)
            self._subscriptions[channel_id] = _Subscription(spec, callback, on_lost)

    async def unsubscribe(self, channel_id: str) -> None:
        async with self._lock:
            if self._subscriptions.pop(channel_id, None) is None:
                return
            if not self._subscriptions:
                await self._release()

    async def close(self) -> None:
        async with self._lock:
            self._subscriptions.clear()
            await self._release()

    async def _release(self) -> None:
        conn, self._conn = self._conn, None
        if conn is None:
            return
        conn.remove_termination_listener(self._on_terminated)
        try:
            await conn.remove_listener(self.notify_channel, self._on_notify)
        finally:
            await conn.close()
        logger.info("Stopped listening on %s", self.notify_channel)

    def _on_terminated(self, connection) -> None:
        if connection is not self._conn:
            return
        self._conn = None
        lost, self._subscriptions = self._subscriptions, {}
        logger.warning(
            "Listener connection for %s terminated; dropping %d subscriptions",
            self.notify_channel, len(lost),
        )
        for channel_id, subscription in lost.items():
            if subscription.on_lost is None:
                continue
            try:
                subscription.on_lost()
            except Exception:
                logger.exception("on_lost callback failed for %s", channel_id)

    def _on_notify(self, connection, pid: int, channel: str, payload: str) -> None:
        try:
            event = ChangeEvent.model_validate_json(payload)
        except ValidationError as exc:
            logger.warning("Ignoring malformed change payload on %s: %s", channel, exc)
            return
        for subscription in list(self._subscriptions.values()):
            if subscription.spec.matches(event):
                subscription.callback(event)
