"""
Payment Commands

Receive, send, and the two read-only previews (parse and fee estimate).
Payment strings are opaque here: the wallet parses them.
"""

import logging
from typing import TYPE_CHECKING, Any, Optional

from .base import CommandError, amount_from_sats, describe_error, sats_or_none

if TYPE_CHECKING:
    from ..wallet import WalletFacade

logger = logging.getLogger("orange-cli.commands.payments")


async def receive(wallet: "WalletFacade", amount_sats: Optional[int] = None) -> dict[str, Any]:
    """
    Generate a single-use BIP21 receive URI.

    Args:
        wallet: Wallet facade
        amount_sats: Requested amount, or None for an amountless URI

    Returns:
        Dict with invoice, fallback address, amount and the full URI
    """
    amount = amount_from_sats(amount_sats)

    try:
        uri = await wallet.get_single_use_receive_uri(amount)
    except Exception as e:
        raise CommandError(f"Failed to generate receive URI: {describe_error(e)}") from e

    return {
        "invoice": str(uri.invoice),
        "address": str(uri.address) if uri.address is not None else None,
        "amount_sats": sats_or_none(uri.amount),
        "full_uri": str(uri),
        "from_trusted": uri.from_trusted,
    }


async def receive_offer(wallet: "WalletFacade") -> dict[str, Any]:
    """Get the wallet's reusable BOLT12 offer."""
    try:
        offer = await wallet.get_reusable_receive_uri()
    except Exception as e:
        raise CommandError(f"Failed to get reusable URI: {describe_error(e)}") from e

    return {"offer": offer}


async def send(
    wallet: "WalletFacade",
    payment: str,
    amount_sats: Optional[int] = None,
) -> dict[str, Any]:
    """
    Send a payment.

    Args:
        wallet: Wallet facade
        payment: Invoice, offer, on-chain address or BIP21 URI
        amount_sats: Required for addresses and amountless offers

    Returns:
        Dict with payment id and amount. The payment is only initiated;
        its outcome arrives later as a payment event.
    """
    amount = amount_from_sats(amount_sats)

    try:
        instructions = await wallet.parse_payment_instructions(payment)
    except Exception as e:
        raise CommandError(f"Failed to parse payment: {describe_error(e)}") from e

    try:
        payment_info = wallet.build_payment_info(instructions, amount)
    except Exception as e:
        raise CommandError(f"Failed to build payment info: {describe_error(e)}") from e

    logger.info(f"Sending payment of {payment_info.amount.sats_rounding_up()} sats")
    try:
        payment_id = await wallet.pay(payment_info)
    except Exception as e:
        raise CommandError(f"Failed to send payment: {describe_error(e)}") from e

    return {
        "payment_id": str(payment_id),
        "amount_sats": payment_info.amount.sats_rounding_up(),
        "status": "initiated",
    }


async def parse_payment(wallet: "WalletFacade", payment: str) -> dict[str, Any]:
    """Parse a payment string without paying it."""
    try:
        instructions = await wallet.parse_payment_instructions(payment)
    except Exception as e:
        raise CommandError(f"Failed to parse payment: {describe_error(e)}") from e

    return {"parsed": repr(instructions)}


async def estimate_fee(wallet: "WalletFacade", payment: str) -> dict[str, Any]:
    """Estimate the fee to pay a payment string, without paying it."""
    try:
        instructions = await wallet.parse_payment_instructions(payment)
    except Exception as e:
        raise CommandError(
            f"Failed to parse payment for fee estimation: {describe_error(e)}"
        ) from e

    try:
        fee = await wallet.estimate_fee(instructions)
    except Exception as e:
        raise CommandError(f"Failed to estimate fee: {describe_error(e)}") from e

    return {"estimated_fee_sats": fee.sats_rounding_up()}
