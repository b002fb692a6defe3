"""Unit tests for the PostgreSQL LISTEN/NOTIFY transport with a fake asyncpg connection."""
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from sync.channel import ChangeChannelAdapter, ChannelStatus, SubscriptionSpec
from sync.transport import PostgresChangeTransport


def _payload(table="leads", event_type="INSERT", new=None, old=None):
    return json.dumps({
        "schema": "crm",
        "table": table,
        "eventType": event_type,
        "new": new or {},
        "old": old or {},
    })


@pytest.fixture
def conn():
    connection = MagicMock()
    connection.add_listener = AsyncMock()
    connection.remove_listener = AsyncMock()
    connection.close = AsyncMock()
    return connection


@pytest.fixture
def connect(conn):
    return AsyncMock(return_value=conn)


class TestSubscribe:
    @pytest.mark.asyncio
    async def test_listens_once_for_many_subscriptions(self, connect, conn):
        transport = PostgresChangeTransport(connect, notify_channel="realtime_changes")

        await transport.subscribe("realtime-crm-leads", SubscriptionSpec("crm", "leads"), MagicMock())
        await transport.subscribe(
            "realtime-crm-contact_entities", SubscriptionSpec("crm", "contact_entities", "UPDATE"), MagicMock()
        )

        connect.assert_awaited_once()
        conn.add_listener.assert_awaited_once()
        assert conn.add_listener.call_args.args[0] == "realtime_changes"

    @pytest.mark.asyncio
    async def test_last_unsubscribe_releases_connection(self, connect, conn):
        transport = PostgresChangeTransport(connect)
        await transport.subscribe("a", SubscriptionSpec("crm", "leads"), MagicMock())
        await transport.subscribe("b", SubscriptionSpec("crm", "contact_entities"), MagicMock())

        await transport.unsubscribe("a")
        conn.close.assert_not_awaited()
        await transport.unsubscribe("b")
        await transport.unsubscribe("b")

        conn.remove_listener.assert_awaited_once()
        conn.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_listener_failure_closes_connection(self, connect, conn):
        conn.add_listener.side_effect = OSError("connection lost")
        transport = PostgresChangeTransport(connect)

        with pytest.raises(OSError):
            await transport.subscribe("a", SubscriptionSpec("crm", "leads"), MagicMock())

        conn.close.assert_awaited_once()


class TestNotify:
    @pytest.mark.asyncio
    async def test_routes_payload_to_matching_subscriptions(self, connect, conn):
        transport = PostgresChangeTransport(connect)
        leads_cb, contacts_cb = MagicMock(), MagicMock()
        await transport.subscribe("l", SubscriptionSpec("crm", "leads"), leads_cb)
        await transport.subscribe("c", SubscriptionSpec("crm", "contact_entities", "UPDATE"), contacts_cb)
        listener = conn.add_listener.call_args.args[1]

        listener(conn, 4242, "realtime_changes", _payload("leads", "DELETE", old={"id": "abc"}))
        listener(conn, 4242, "realtime_changes", _payload("contact_entities", "INSERT"))
        listener(conn, 4242, "realtime_changes", _payload("contact_entities", "UPDATE", new={"id": "s2"}))

        leads_cb.assert_called_once()
        assert leads_cb.call_args.args[0].old == {"id": "abc"}
        contacts_cb.assert_called_once()
        assert contacts_cb.call_args.args[0].new == {"id": "s2"}

    @pytest.mark.asyncio
    async def test_malformed_payload_is_ignored(self, connect, conn):
        transport = PostgresChangeTransport(connect)
        callback = MagicMock()
        await transport.subscribe("l", SubscriptionSpec("crm", "leads"), callback)
        listener = conn.add_listener.call_args.args[1]

        listener(conn, 1, "realtime_changes", "not json")
        listener(conn, 1, "realtime_changes", json.dumps({"table": "leads"}))

        callback.assert_not_called()


class TestTermination:
    @pytest.mark.asyncio
    async def test_registers_termination_listener(self, connect, conn):
        transport = PostgresChangeTransport(connect)

        await transport.subscribe("l", SubscriptionSpec("crm", "leads"), MagicMock())

        conn.add_termination_listener.assert_called_once()

    @pytest.mark.asyncio
    async def test_termination_reports_loss_and_reconnects(self, connect, conn):
        transport = PostgresChangeTransport(connect)
        lost_leads, lost_contacts = MagicMock(), MagicMock()
        await transport.subscribe("l", SubscriptionSpec("crm", "leads"), MagicMock(), on_lost=lost_leads)
        await transport.subscribe(
            "c", SubscriptionSpec("crm", "contact_entities"), MagicMock(), on_lost=lost_contacts
        )
        terminated = conn.add_termination_listener.call_args.args[0]

        terminated(conn)

        lost_leads.assert_called_once_with()
        lost_contacts.assert_called_once_with()
        await transport.subscribe("l", SubscriptionSpec("crm", "leads"), MagicMock())
        assert connect.await_count == 2

    @pytest.mark.asyncio
    async def test_deliberate_close_is_not_a_loss(self, connect, conn):
        transport = PostgresChangeTransport(connect)
        on_lost = MagicMock()
        await transport.subscribe("l", SubscriptionSpec("crm", "leads"), MagicMock(), on_lost=on_lost)
        terminated = conn.add_termination_listener.call_args.args[0]

        await transport.close()
        terminated(conn)

        conn.remove_termination_listener.assert_called_once_with(terminated)
        on_lost.assert_not_called()


@pytest.mark.asyncio
async def test_adapter_channels_go_to_error_when_listener_dies(connect, conn):
    on_status = MagicMock()
    transport = PostgresChangeTransport(connect)
    adapter = ChangeChannelAdapter(transport, on_status=on_status)
    handle = await adapter.open("leads", "*")

    conn.add_termination_listener.call_args.args[0](conn)

    assert handle.status is ChannelStatus.CHANNEL_ERROR
    assert on_status.call_args.args[1] is ChannelStatus.CHANNEL_ERROR
