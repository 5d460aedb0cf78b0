"""
Lightning Address Commands
"""

import logging
from typing import TYPE_CHECKING, Any

from .base import CommandError, describe_error

if TYPE_CHECKING:
    from ..wallet import WalletFacade

logger = logging.getLogger("orange-cli.commands.lightning_address")


async def get_lightning_address(wallet: "WalletFacade") -> dict[str, Any]:
    """Get the wallet's lightning address, or None if none is registered."""
    try:
        address = await wallet.get_lightning_address()
    except Exception as e:
        raise CommandError(f"Failed to get lightning address: {describe_error(e)}") from e

    return {"lightning_address": address}


async def register_lightning_address(wallet: "WalletFacade", name: str) -> dict[str, Any]:
    """
    Register a lightning address for this wallet.

    Args:
        wallet: Wallet facade
        name: Username part, e.g. "alice" for alice@breez.tips

    Returns:
        Dict with the address the wallet reports after registering
    """
    try:
        await wallet.register_lightning_address(name)
    except Exception as e:
        raise CommandError(f"Failed to register lightning address: {describe_error(e)}") from e

    logger.info(f"Registered lightning address {name}")

    try:
        address = await wallet.get_lightning_address()
    except Exception as e:
        raise CommandError(f"Failed to get lightning address: {describe_error(e)}") from e

    return {
        "registered": True,
        "lightning_address": address,
    }
