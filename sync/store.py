"""Synchronization store — the in-memory composite lead list for one UI scope.

Fetch entry points:
  refetch()          visible: toggles loading, surfaces failures as a toast
  refetch_silent()   background: no loading state, failures are only logged

At most one fetch runs at a time. A fetch requested while another is in
flight is dropped; the running one already covers it.

If the first successful fetch for a caller returns nothing, one more silent
fetch is scheduled after SyncSettings.empty_retry_delay. A freshly
provisioned caller's role grant may not be visible yet on the first read.

Deletes win over anything already in flight: an id deleted while a fetch is
running is filtered out of that fetch's result and never patched back in.
Tombstones only live until that fetch settles; a fetch started after the
delete already reflects it.
"""
import asyncio
import logging
from typing import Any, Callable, Coroutine, Mapping, Optional
from uuid import UUID

from schemas.lead import Caller, Lead, LeadsSnapshot, Notification
from sync.composition import patch_lead
from sync.config import SyncSettings
from sync.errors import FetchError
from sync.pipeline import LeadPipeline

logger = logging.getLogger(__name__)

Listener = Callable[[LeadsSnapshot], None]
Notifier = Callable[[Notification], None]


def log_notification(notification: Notification) -> None:
    logger.info("[%s] %s: %s", notification.variant, notification.title, notification.description)


class LeadStore:
    def __init__(
        self,
        pipeline: LeadPipeline,
        settings: Optional[SyncSettings] = None,
        notify: Optional[Notifier] = None,
        caller: Optional[Caller] = None,
    ):
        self._pipeline = pipeline
        self._settings = settings or SyncSettings()
        self._notify = notify or log_notification
        self._caller = caller
        self._records: list[Lead] = []
        self._loading = False
        self._error: Optional[str] = None
        self._listeners: list[Listener] = []
        self._tasks: set[asyncio.Task] = set()
        self._deleted: set[UUID] = set()
        # bumped on every scope change; results from an older scope are discarded
        self._generation = 0
        self._in_flight: Optional[int] = None
        self._had_success = False
        self._empty_retry_scheduled = False

    # ------------------------------------------------------------------
    # Consumer surface
    # ------------------------------------------------------------------

    @property
    def caller(self) -> Optional[Caller]:
        return self._caller

    @property
    def records(self) -> list[Lead]:
        return list(self._records)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    def snapshot(self) -> LeadsSnapshot:
        return LeadsSnapshot(records=list(self._records), loading=self._loading, error=self._error)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call listener after every state change. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_caller(self, caller: Optional[Caller]) -> bool:
        """Switch the scope to caller. Returns True when the scope actually changed."""
        if caller == self._caller:
            return False
        self._caller = caller
        self._reset()
        self._emit()
        return True

    def clear(self) -> None:
        """Drop all records and per-scope state (component teardown)."""
        self._reset()
        self._emit()

    async def refetch(self) -> None:
        await self._fetch(silent=False)

    async def refetch_silent(self) -> None:
        await self._fetch(silent=True)

    def request_silent_refetch(self) -> None:
        """Schedule refetch_silent() from a synchronous event handler."""
        self._spawn(self.refetch_silent())

    async def drain(self) -> None:
        """Wait until every scheduled background fetch has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ------------------------------------------------------------------
    # Local mutations (change events)
    # ------------------------------------------------------------------

    def remove_by_id(self, primary_id: Any) -> bool:
        if primary_id is None:
            return False
        key = UUID(str(primary_id))
        if self._in_flight == self._generation:
            self._deleted.add(key)
        before = len(self._records)
        self._records = [lead for lead in self._records if lead.id != key]
        if len(self._records) == before:
            return False
        self._emit()
        self._notify(Notification(
            title="Lead Deleted",
            description="Lead has been removed",
            variant="destructive",
        ))
        return True

    def apply_patch(self, primary_id: Any, partial_fields: Mapping[str, Any]) -> bool:
        """Merge changed contact entity fields into one lead without a round trip."""
        key = UUID(str(primary_id))
        if key in self._deleted:
            logger.debug("Ignoring patch for deleted lead %s", key)
            return False
        for i, lead in enumerate(self._records):
            if lead.id == key:
                self._records[i] = patch_lead(lead, partial_fields)
                self._emit()
                return True
        return False

    def apply_contact_update(self, contact_fields: Mapping[str, Any]) -> int:
        """Patch every lead whose contact_entity_id matches contact_fields["id"].

        Oversized rows are published with their id only; those fall back to a
        silent refetch since there is nothing to merge.
        """
        contact_id = contact_fields.get("id")
        if contact_id is None:
            return 0
        key = UUID(str(contact_id))
        if set(contact_fields) == {"id"}:
            if any(lead.contact_entity_id == key for lead in self._records):
                logger.debug("Contact entity %s update carried no fields, refetching", key)
                self.request_silent_refetch()
            return 0
        matched = [lead.id for lead in self._records if lead.contact_entity_id == key]
        return sum(1 for lead_id in matched if self.apply_patch(lead_id, contact_fields))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _fetch(self, silent: bool) -> None:
        kind = "silent" if silent else "visible"
        caller = self._caller
        if caller is None:
            logger.debug("No authenticated caller, skipping %s lead fetch", kind)
            self._records = []
            self._loading = False
            self._error = None
            self._emit()
            return

        generation = self._generation
        if self._in_flight == generation:
            logger.debug("Lead fetch already in flight, dropping %s request", kind)
            return
        self._in_flight = generation
        if not silent:
            self._loading = True
            self._error = None
            self._emit()

        try:
            leads = await self._pipeline.load_composite(caller)
        except FetchError as exc:
            if generation == self._generation:
                self._fetch_failed(exc, silent)
        else:
            if generation == self._generation:
                self._fetch_succeeded(leads)
            else:
                logger.debug("Discarding %s lead fetch for a previous scope", kind)
        finally:
            if self._in_flight == generation:
                self._in_flight = None
            if generation == self._generation:
                self._deleted.clear()
                if not silent:
                    self._loading = False
                self._emit()

    def _fetch_succeeded(self, leads: list[Lead]) -> None:
        unique: dict[UUID, Lead] = {}
        for lead in leads:
            if lead.id not in self._deleted and lead.id not in unique:
                unique[lead.id] = lead
        self._records = list(unique.values())
        self._error = None
        logger.info("Loaded %d leads", len(self._records))

        first = not self._had_success
        self._had_success = True
        if first and not leads and not self._empty_retry_scheduled:
            self._empty_retry_scheduled = True
            delay = self._settings.empty_retry_delay
            logger.info("First lead fetch returned no rows, retrying once in %.1fs", delay)
            self._spawn(self._retry_after(delay, self._generation))

    def _fetch_failed(self, exc: FetchError, silent: bool) -> None:
        if silent:
            logger.warning("Background lead refetch failed: %s", exc)
            return
        logger.error("Lead fetch failed: %s", exc, exc_info=exc)
        message = str(exc.cause) or "Failed to load leads"
        self._error = message
        self._records = []
        self._notify(Notification(
            title="Failed to load leads",
            description=message,
            variant="destructive",
        ))

    async def _retry_after(self, delay: float, generation: int) -> None:
        await asyncio.sleep(delay)
        if generation != self._generation:
            return
        await self.refetch_silent()

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _reset(self) -> None:
        self._generation += 1
        self._records = []
        self._loading = False
        self._error = None
        self._deleted.clear()
        self._had_success = False
        self._empty_retry_scheduled = False

    def _emit(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
