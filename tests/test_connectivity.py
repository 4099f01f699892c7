"""Tests for connectivity observers."""

import asyncio

import httpx
import pytest

from shopsync.connectivity import (
    ConnectivityObserver,
    HttpConnectivityProbe,
    ManualConnectivity,
)


class TestManualConnectivity:
    def test_protocol(self):
        assert isinstance(ManualConnectivity(), ConnectivityObserver)

    def test_notifies_on_transitions_only(self):
        conn = ManualConnectivity(online=False)
        events = []
        conn.subscribe(events.append)

        conn.set_online(False)
        conn.set_online(True)
        conn.set_online(True)
        conn.set_online(False)

        assert events == [True, False]
        assert conn.is_online() is False

    def test_unsubscribe(self):
        conn = ManualConnectivity()
        events = []
        unsubscribe = conn.subscribe(events.append)

        unsubscribe()
        unsubscribe()
        conn.set_online(True)

        assert events == []

    def test_failing_callback_does_not_block_others(self, caplog):
        conn = ManualConnectivity()
        events = []

        def broken(online):
            raise RuntimeError("boom")

        conn.subscribe(broken)
        conn.subscribe(events.append)
        conn.set_online(True)

        assert events == [True]
        assert "Connectivity callback failed: boom" in caplog.text


def probe_with(handler):
    return HttpConnectivityProbe(
        "https://example.supabase.co/rest/v1/",
        transport=httpx.MockTransport(handler),
    )


class TestHttpConnectivityProbe:
    @pytest.mark.asyncio
    async def test_ok_response_is_online(self):
        probe = probe_with(lambda request: httpx.Response(200))
        events = []
        probe.subscribe(events.append)

        assert await probe.check() is True
        assert probe.is_online() is True
        assert events == [True]

    @pytest.mark.asyncio
    async def test_client_error_still_online(self):
        probe = probe_with(lambda request: httpx.Response(401))

        assert await probe.check() is True

    @pytest.mark.asyncio
    async def test_server_error_is_offline(self):
        probe = probe_with(lambda request: httpx.Response(503))

        assert await probe.check() is False

    @pytest.mark.asyncio
    async def test_transport_error_is_offline(self):
        def handler(request):
            raise httpx.ConnectError("no route to host")

        probe = probe_with(handler)
        events = []
        probe.subscribe(events.append)

        assert await probe.check() is False
        assert events == []

    @pytest.mark.asyncio
    async def test_sends_headers(self):
        seen = {}

        def handler(request):
            seen.update(request.headers)
            return httpx.Response(200)

        probe = HttpConnectivityProbe(
            "https://example.supabase.co/rest/v1/",
            headers={"apikey": "anon"},
            transport=httpx.MockTransport(handler),
        )
        await probe.check()

        assert seen["apikey"] == "anon"

    @pytest.mark.asyncio
    async def test_start_and_stop_polling(self):
        calls = []

        def handler(request):
            calls.append(request.url)
            return httpx.Response(200)

        probe = HttpConnectivityProbe(
            "https://example.supabase.co/rest/v1/",
            interval=60,
            transport=httpx.MockTransport(handler),
        )
        came_online = asyncio.Event()
        probe.subscribe(lambda online: came_online.set())

        probe.start()
        await asyncio.wait_for(came_online.wait(), timeout=5)
        await probe.stop()

        assert len(calls) == 1
        assert probe.is_online() is True
