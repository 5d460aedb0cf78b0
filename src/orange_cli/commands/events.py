"""
Event Queue Commands

Manual access to the wallet event queue, for setups that run without
webhooks. ``get_event`` only peeks; ``event_handled`` removes the head.
"""

import logging
from typing import TYPE_CHECKING, Any

from ..events import current_timestamp, serialize_event
from .base import CommandError

if TYPE_CHECKING:
    from ..wallet import WalletFacade

logger = logging.getLogger("orange-cli.commands.events")


async def get_event(wallet: "WalletFacade") -> dict[str, Any]:
    """
    Get the next pending event without acknowledging it.

    Returns:
        The canonical event document, or ``{"event": None}`` if the queue
        is empty
    """
    event = wallet.next_event()
    if event is None:
        return {"event": None}
    return serialize_event(event, current_timestamp())


async def event_handled(wallet: "WalletFacade") -> dict[str, Any]:
    """Mark the current event as handled, removing it from the queue."""
    try:
        wallet.event_handled()
    except Exception as e:
        logger.debug(f"event_handled failed: {e!r}")
        raise CommandError("Failed to mark event as handled") from e

    return {"ok": True}
