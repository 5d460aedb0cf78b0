"""
Event Daemon

Long-running consumer of the wallet event queue. Each event is serialized,
fanned out to every webhook without waiting for delivery, logged, and,
when at least one webhook is configured, acknowledged. A SIGINT stops the
loop and the wallet.
"""

import asyncio
import logging
import signal
from typing import TYPE_CHECKING, Any, Callable, Optional

from .events import current_timestamp, serialize_event
from .webhooks import WebhookDispatcher

if TYPE_CHECKING:
    from .wallet import WalletFacade

logger = logging.getLogger("orange-cli.daemon")


class EventDaemon:
    """
    Drains wallet events into webhooks until told to stop.

    The loop has two states. While running it races the wallet's next event
    against the shutdown signal; the first to resolve decides what happens.
    Once shut down it stops the wallet exactly once and returns.
    """

    def __init__(
        self,
        wallet: "WalletFacade",
        dispatcher: WebhookDispatcher,
        clock: Callable[[], int] = current_timestamp,
    ) -> None:
        """
        Initialize the daemon.

        Args:
            wallet: Live wallet facade. The daemon is its only caller.
            dispatcher: Webhook fan-out for the configured URLs
            clock: Source of capture timestamps (seconds since epoch)
        """
        self.wallet = wallet
        self.dispatcher = dispatcher
        self._clock = clock
        self._shutdown = asyncio.Event()
        self._parked = False
        self.events_processed = 0

    @property
    def has_webhooks(self) -> bool:
        return bool(self.dispatcher.urls)

    def request_shutdown(self) -> None:
        """Ask the loop to stop. Safe to call more than once."""
        self._shutdown.set()

    def install_signal_handler(self, sig: int = signal.SIGINT) -> None:
        """
        Route ``sig`` to ``request_shutdown``.

        The handler fires once and then uninstalls itself, so a second
        Ctrl+C falls back to the default behaviour.
        """
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            loop.remove_signal_handler(sig)
            self.request_shutdown()

        try:
            loop.add_signal_handler(sig, _on_signal)
        except NotImplementedError:
            # Windows event loops have no add_signal_handler
            def _fallback(signum: int, frame: Any) -> None:
                signal.signal(sig, signal.SIG_DFL)
                loop.call_soon_threadsafe(self.request_shutdown)

            signal.signal(sig, _fallback)

    def _log_startup(self) -> None:
        logger.info("Daemon started")
        if self.has_webhooks:
            for url in self.dispatcher.urls:
                logger.info(f"Webhook: {url}")
        else:
            logger.info(
                "No webhooks configured, events will queue until consumed via "
                "get-event/event-handled"
            )
        logger.info("Press Ctrl+C to stop")

    async def _next_event_or_shutdown(self) -> Optional[Any]:
        """
        Wait for whichever comes first: an event or the shutdown signal.

        Returns:
            The event, or None if shutdown won the race
        """
        if self._shutdown.is_set():
            return None

        if self._parked:
            # The un-acknowledged event still heads the queue; nothing new
            # can arrive until it is handled, so only shutdown is awaited
            await self._shutdown.wait()
            return None

        event_task = asyncio.create_task(self.wallet.next_event_async())
        shutdown_task = asyncio.create_task(self._shutdown.wait())
        try:
            done, _ = await asyncio.wait(
                {event_task, shutdown_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (event_task, shutdown_task):
                if not task.done():
                    task.cancel()

        if shutdown_task in done:
            # An event that arrived at the same instant stays queued
            return None
        return event_task.result()

    def handle_event(self, event: Any) -> dict[str, Any]:
        """
        Process one event: serialize, fan out, log, maybe acknowledge.

        Deliveries are started but not awaited.

        Args:
            event: Event taken from the head of the wallet queue

        Returns:
            The canonical event document that was dispatched
        """
        timestamp = self._clock()
        document = serialize_event(event, timestamp)

        self.dispatcher.dispatch(document)

        logger.info(f"[{timestamp}] {document['type']}")

        # With no webhooks the event stays queued for get-event/event-handled
        if self.has_webhooks:
            try:
                self.wallet.event_handled()
            except Exception as e:
                logger.warning(f"Failed to mark event as handled: {e!s}")
        else:
            self._parked = True
            logger.debug("Event left queued; waiting for shutdown")

        self.events_processed += 1
        return document

    async def run(self) -> None:
        """
        Run until shutdown is requested, then stop the wallet.

        Webhook deliveries still in flight are left running; the loop does
        not drain or wait for them.
        """
        self._log_startup()
        try:
            while True:
                event = await self._next_event_or_shutdown()
                if event is None:
                    logger.info("Shutting down...")
                    break
                self.handle_event(event)
        except Exception:
            logger.exception("Daemon loop failed")
            raise
        finally:
            await self.wallet.stop()
