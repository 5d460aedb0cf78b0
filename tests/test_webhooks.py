"""
Tests for Webhook Delivery
"""

import asyncio
import json
import logging

import httpx
import pytest

from orange_cli.webhooks import DispatchOutcome, WebhookDispatcher

from conftest import wait_until

PAYLOAD = {"type": "payment_received", "timestamp": 1, "amount_sats": 5}


def make_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestDispatchOutcome:
    """Tests for DispatchOutcome."""

    def test_success_status(self):
        assert DispatchOutcome(url="u", status_code=204).ok is True

    def test_error_status(self):
        assert DispatchOutcome(url="u", status_code=500).ok is False

    def test_transport_error(self):
        assert DispatchOutcome(url="u", error="boom").ok is False


class TestWebhookDispatcher:
    """Tests for WebhookDispatcher."""

    @pytest.mark.asyncio
    async def test_deliver_posts_json(self):
        """Test delivery POSTs the payload as a JSON body."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        async with make_client(handler) as client:
            dispatcher = WebhookDispatcher(["https://hooks.example.com/a"], client=client)
            outcome = await dispatcher.deliver("https://hooks.example.com/a", PAYLOAD)

        assert outcome.ok
        assert seen[0].method == "POST"
        assert str(seen[0].url) == "https://hooks.example.com/a"
        assert json.loads(seen[0].content) == PAYLOAD

    @pytest.mark.asyncio
    async def test_non_success_status_logged(self, caplog):
        """Test a non-2xx response is logged, not raised."""
        async with make_client(lambda request: httpx.Response(503)) as client:
            dispatcher = WebhookDispatcher(["https://hooks.example.com/a"], client=client)
            with caplog.at_level(logging.WARNING, logger="orange-cli.webhooks"):
                outcome = await dispatcher.deliver("https://hooks.example.com/a", PAYLOAD)

        assert outcome.status_code == 503
        assert not outcome.ok
        assert "Webhook https://hooks.example.com/a returned 503" in caplog.text

    @pytest.mark.asyncio
    async def test_transport_failure_logged(self, caplog):
        """Test a connection error is logged, not raised."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            dispatcher = WebhookDispatcher(["https://hooks.example.com/a"], client=client)
            with caplog.at_level(logging.WARNING, logger="orange-cli.webhooks"):
                outcome = await dispatcher.deliver("https://hooks.example.com/a", PAYLOAD)

        assert outcome.status_code is None
        assert "connection refused" in outcome.error
        assert "Webhook https://hooks.example.com/a failed" in caplog.text

    @pytest.mark.asyncio
    async def test_dispatch_one_task_per_url(self):
        """Test dispatch fans out to every URL exactly once."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200)

        urls = ["https://a.example.com/", "https://b.example.com/", "https://c.example.com/"]
        async with make_client(handler) as client:
            dispatcher = WebhookDispatcher(urls, client=client)
            tasks = dispatcher.dispatch(PAYLOAD)
            outcomes = await asyncio.gather(*tasks)

        assert len(tasks) == 3
        assert sorted(seen) == sorted(urls)
        assert all(o.ok for o in outcomes)

    @pytest.mark.asyncio
    async def test_dispatch_returns_before_delivery(self):
        """Test dispatch does not wait for slow endpoints."""
        gate = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            await gate.wait()
            return httpx.Response(200)

        async with make_client(handler) as client:
            dispatcher = WebhookDispatcher(["https://slow.example.com/"], client=client)
            tasks = dispatcher.dispatch(PAYLOAD)

            assert dispatcher.pending == 1
            assert not tasks[0].done()

            gate.set()
            await wait_until(lambda: dispatcher.pending == 0)

        assert tasks[0].result().ok

    @pytest.mark.asyncio
    async def test_dispatch_with_no_urls(self):
        """Test dispatch with no targets is a no-op."""
        async with make_client(lambda request: httpx.Response(200)) as client:
            dispatcher = WebhookDispatcher([], client=client)

            assert dispatcher.dispatch(PAYLOAD) == []
            assert dispatcher.pending == 0

    @pytest.mark.asyncio
    async def test_aclose_cancels_in_flight(self):
        """Test closing cancels deliveries that have not finished."""

        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.Event().wait()
            return httpx.Response(200)

        async with make_client(handler) as client:
            dispatcher = WebhookDispatcher(["https://hang.example.com/"], client=client)
            tasks = dispatcher.dispatch(PAYLOAD)
            await asyncio.sleep(0)

            await dispatcher.aclose()

            assert tasks[0].cancelled()
            assert dispatcher.pending == 0
            assert not client.is_closed

    @pytest.mark.asyncio
    async def test_malformed_url_logged(self, caplog):
        """Test an unparseable webhook URL is logged like any other delivery failure."""
        url = "http://[::1/hook"
        async with make_client(lambda request: httpx.Response(200)) as client:
            dispatcher = WebhookDispatcher([url], client=client)
            with caplog.at_level(logging.WARNING, logger="orange-cli.webhooks"):
                outcomes = await asyncio.gather(*dispatcher.dispatch(PAYLOAD))

        assert isinstance(outcomes[0], DispatchOutcome)
        assert outcomes[0].status_code is None
        assert not outcomes[0].ok
        assert f"Webhook {url} failed" in caplog.text
