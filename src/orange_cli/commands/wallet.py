"""
Wallet Commands

Balance, node info, channels and transaction history.
"""

import logging
from typing import TYPE_CHECKING, Any

from .base import CommandError, describe_error, sats_or_none

if TYPE_CHECKING:
    from ..wallet import WalletFacade

logger = logging.getLogger("orange-cli.commands.wallet")


async def balance(wallet: "WalletFacade") -> dict[str, Any]:
    """
    Get the wallet balance.

    Returns:
        Dict with trusted, lightning, pending and available balances in sats
    """
    try:
        result = await wallet.get_balance()
    except Exception as e:
        raise CommandError(f"Failed to get balance: {describe_error(e)}") from e

    return {
        "trusted_sats": result.trusted.sats_rounding_up(),
        "lightning_sats": result.lightning.sats_rounding_up(),
        "pending_sats": result.pending_balance.sats_rounding_up(),
        "available_sats": result.available_balance().sats_rounding_up(),
    }


async def transactions(wallet: "WalletFacade") -> dict[str, Any]:
    """List the wallet's transaction history."""
    try:
        history = await wallet.list_transactions()
    except Exception as e:
        raise CommandError(f"Failed to list transactions: {describe_error(e)}") from e

    txs = [
        {
            "id": str(tx.id),
            "status": str(tx.status),
            "outbound": tx.outbound,
            "amount_sats": sats_or_none(tx.amount),
            "fee_sats": sats_or_none(tx.fee),
            "payment_type": str(tx.payment_type),
            "timestamp": tx.time_since_epoch_secs,
        }
        for tx in history
    ]
    return {
        "count": len(txs),
        "transactions": txs,
    }


async def channels(wallet: "WalletFacade") -> dict[str, Any]:
    """List Lightning channels. Capacities are floored from msat to sat."""
    try:
        details = wallet.channels()
    except Exception as e:
        raise CommandError(f"Failed to list channels: {describe_error(e)}") from e

    chans = [
        {
            "channel_id": str(ch.channel_id),
            "counterparty_node_id": str(ch.counterparty_node_id),
            "funding_txo": str(ch.funding_txo) if ch.funding_txo is not None else None,
            "is_channel_ready": ch.is_channel_ready,
            "is_usable": ch.is_usable,
            "inbound_capacity_sats": ch.inbound_capacity_msat // 1000,
            "outbound_capacity_sats": ch.outbound_capacity_msat // 1000,
            "channel_value_sats": ch.channel_value_sats,
        }
        for ch in details
    ]
    return {
        "count": len(chans),
        "channels": chans,
    }


async def info(wallet: "WalletFacade") -> dict[str, Any]:
    """Get node id, LSP connectivity and tunables."""
    try:
        node_id = wallet.node_id()
        lsp_connected = wallet.is_connected_to_lsp()
        tunables = wallet.get_tunables()
    except Exception as e:
        raise CommandError(f"Failed to get node info: {describe_error(e)}") from e

    return {
        "node_id": str(node_id),
        "lsp_connected": lsp_connected,
        "tunables": {
            "trusted_balance_limit_sats": tunables.trusted_balance_limit_sats,
            "rebalance_min_sats": tunables.rebalance_min_sats,
            "onchain_receive_threshold_sats": tunables.onchain_receive_threshold_sats,
            "enable_amountless_receive_on_chain": tunables.enable_amountless_receive_on_chain,
        },
    }
