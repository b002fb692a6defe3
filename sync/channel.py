"""Change channel adapter — typed insert/update/delete callbacks over a change transport.

A channel is identified by "realtime-<namespace>-<resource>". Opening an id
that is already live closes the old handle first, so one adapter never holds
two transport subscriptions for the same id.

Handlers are read from the handle at dispatch time: swapping them with
ChannelHandle.set_handlers() takes effect on the next event without touching
the subscription. Only a different resource, filter or namespace needs a
reopen (see ChangeChannelAdapter.ensure).

Open failures are logged and reported through the status callback; the handle
is returned in CHANNEL_ERROR state and simply never delivers events. A
subscription the transport loses later (listener connection dropped) moves
to CHANNEL_ERROR the same way; ensure() reopens it.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol

from schemas.realtime import ChangeEvent, EventFilter
from sync.errors import ChannelError

logger = logging.getLogger(__name__)

EventHandler = Callable[[ChangeEvent], None]


class ChannelStatus(str, Enum):
    CONNECTING = "CONNECTING"
    SUBSCRIBED = "SUBSCRIBED"
    CHANNEL_ERROR = "CHANNEL_ERROR"
    CLOSED = "CLOSED"


StatusCallback = Callable[[str, ChannelStatus, Optional[ChannelError]], None]


@dataclass(frozen=True)
class SubscriptionSpec:
    schema: str
    table: str
    event: EventFilter = "*"

    def matches(self, event: ChangeEvent) -> bool:
        return (
            event.schema_name == self.schema
            and event.table == self.table
            and self.event in ("*", event.event_type)
        )


class ChangeTransport(Protocol):
    async def subscribe(
        self,
        channel_id: str,
        spec: SubscriptionSpec,
        callback: EventHandler,
        on_lost: Optional[Callable[[], None]] = None,
    ) -> None:
        """on_lost is called once if the subscription dies without unsubscribe()."""
        ...

    async def unsubscribe(self, channel_id: str) -> None:
        """Idempotent."""
        ...


@dataclass
class ChannelHandlers:
    on_insert: Optional[EventHandler] = None
    on_update: Optional[EventHandler] = None
    on_delete: Optional[EventHandler] = None
    on_change: Optional[EventHandler] = None


class ChannelHandle:
    """A live (or failed) subscription returned by ChangeChannelAdapter.open()."""

    def __init__(self, channel_id: str, spec: SubscriptionSpec, handlers: ChannelHandlers):
        self.channel_id = channel_id
        self.spec = spec
        self.status = ChannelStatus.CONNECTING
        self._handlers = handlers

    @property
    def handlers(self) -> ChannelHandlers:
        return self._handlers

    def set_handlers(self, handlers: ChannelHandlers) -> None:
        self._handlers = handlers

    @property
    def is_connected(self) -> bool:
        return self.status is ChannelStatus.SUBSCRIBED

    def dispatch(self, event: ChangeEvent) -> None:
        """Route one event to its typed handler, then to on_change."""
        if self.status is ChannelStatus.CLOSED:
            return
        logger.debug("Change %s on %s.%s via %s", event.event_type, event.schema_name, event.table, self.channel_id)
        handlers = self._handlers
        typed = {
            "INSERT": handlers.on_insert,
            "UPDATE": handlers.on_update,
            "DELETE": handlers.on_delete,
        }[event.event_type]
        for handler in (typed, handlers.on_change):
            if handler is None:
                continue
            try:
                handler(event)
            except Exception:
                logger.exception("Change handler failed on %s for %s event", self.channel_id, event.event_type)


class ChangeChannelAdapter:
    def __init__(
        self,
        transport: ChangeTransport,
        namespace: str = "crm",
        on_status: Optional[StatusCallback] = None,
    ):
        self._transport = transport
        self.namespace = namespace
        self._on_status = on_status
        self._live: dict[str, ChannelHandle] = {}

    def channel_id(self, resource: str) -> str:
        return f"realtime-{self.namespace}-{resource}"

    async def open(
        self,
        resource: str,
        event_filter: EventFilter = "*",
        handlers: Optional[ChannelHandlers] = None,
    ) -> ChannelHandle:
        channel_id = self.channel_id(resource)
        previous = self._live.get(channel_id)
        if previous is not None:
            await self.close(previous)

        handle = ChannelHandle(
            channel_id,
            SubscriptionSpec(self.namespace, resource, event_filter),
            handlers or ChannelHandlers(),
        )
        self._live[channel_id] = handle
        self._set_status(handle, ChannelStatus.CONNECTING)
        try:
            await self._transport.subscribe(
                channel_id, handle.spec, handle.dispatch, on_lost=lambda: self._lost(handle)
            )
        except Exception as exc:
            error = ChannelError(channel_id, exc)
            logger.warning("%s; continuing without live updates", error)
            self._set_status(handle, ChannelStatus.CHANNEL_ERROR, error)
            return handle
        self._set_status(handle, ChannelStatus.SUBSCRIBED)
        return handle

    async def ensure(
        self,
        handle: ChannelHandle,
        resource: str,
        event_filter: EventFilter = "*",
        handlers: Optional[ChannelHandlers] = None,
    ) -> ChannelHandle:
        """Reuse a live handle when only the handlers differ, otherwise reopen."""
        spec = SubscriptionSpec(self.namespace, resource, event_filter)
        if handle.spec == spec and handle.is_connected:
            if handlers is not None:
                handle.set_handlers(handlers)
            return handle
        await self.close(handle)
        return await self.open(resource, event_filter, handlers or handle.handlers)

    async def close(self, handle: ChannelHandle) -> None:
        if handle.status is ChannelStatus.CLOSED:
            return
        if self._live.get(handle.channel_id) is handle:
            del self._live[handle.channel_id]
        logger.info("Closing change channel %s", handle.channel_id)
        try:
            await self._transport.unsubscribe(handle.channel_id)
        except Exception as exc:
            logger.warning("Unsubscribe from %s failed: %s", handle.channel_id, exc)
        self._set_status(handle, ChannelStatus.CLOSED)

    def _lost(self, handle: ChannelHandle) -> None:
        if handle.status is not ChannelStatus.SUBSCRIBED:
            return
        error = ChannelError(handle.channel_id, ConnectionError("listener connection lost"))
        logger.warning("%s; live updates stopped", error)
        self._set_status(handle, ChannelStatus.CHANNEL_ERROR, error)

    def _set_status(
        self, handle: ChannelHandle, status: ChannelStatus, error: Optional[ChannelError] = None
    ) -> None:
        handle.status = status
        logger.info("Change channel %s status: %s", handle.channel_id, status.value)
        if self._on_status is not None:
            self._on_status(handle.channel_id, status, error)
