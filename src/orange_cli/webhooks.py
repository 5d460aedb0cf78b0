"""
Webhook Delivery

POSTs event documents to the configured webhook URLs. Each delivery runs
as its own detached task: the caller never waits for it, and a failed
delivery is logged and dropped.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

logger = logging.getLogger("orange-cli.webhooks")


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of a single delivery attempt. Only used for logging."""

    url: str
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        """Whether the endpoint answered with a 2xx status."""
        return self.error is None and self.status_code is not None and 200 <= self.status_code < 300


class WebhookDispatcher:
    """Fire-and-forget fan-out of JSON payloads to a fixed set of URLs."""

    def __init__(
        self,
        urls: list[str] | tuple[str, ...],
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        """
        Initialize the dispatcher.

        Args:
            urls: Webhook targets. Fixed for the dispatcher's lifetime.
            client: HTTP client to use (a new one is created if omitted)
            timeout: Per-delivery timeout in seconds, None for no timeout
        """
        self.urls: tuple[str, ...] = tuple(urls)
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": "orange-cli/0.1"},
        )
        self._owns_client = client is None
        self._tasks: set[asyncio.Task[DispatchOutcome]] = set()

    @property
    def pending(self) -> int:
        """Number of deliveries still in flight."""
        return len(self._tasks)

    def dispatch(self, payload: dict[str, Any]) -> list[asyncio.Task[DispatchOutcome]]:
        """
        Start one delivery per configured URL and return immediately.

        Args:
            payload: JSON document to POST

        Returns:
            The spawned tasks. Callers are not expected to await them.
        """
        tasks = []
        for url in self.urls:
            task = asyncio.create_task(self.deliver(url, dict(payload)))
            # Hold a reference so the task is not garbage collected mid-flight
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            tasks.append(task)
        return tasks

    async def deliver(self, url: str, payload: dict[str, Any]) -> DispatchOutcome:
        """
        POST a payload to one URL.

        Never raises for HTTP or transport failures; those are logged and
        reported in the returned outcome.

        Args:
            url: Webhook target
            payload: JSON document to POST

        Returns:
            DispatchOutcome describing what happened
        """
        try:
            response = await self._client.post(url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Webhook {url} failed: {e!s}")
            return DispatchOutcome(url=url, error=str(e) or type(e).__name__)

        outcome = DispatchOutcome(url=url, status_code=response.status_code)
        if not outcome.ok:
            logger.warning(f"Webhook {url} returned {response.status_code}")
        else:
            logger.debug(f"Webhook {url} returned {response.status_code}")
        return outcome

    async def aclose(self) -> None:
        """Cancel deliveries still in flight and close the HTTP client."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        if self._owns_client:
            await self._client.aclose()
