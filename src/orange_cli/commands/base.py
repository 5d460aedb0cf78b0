"""
Shared command plumbing.
"""

from typing import Optional

from ..wallet import Amount


class CommandError(Exception):
    """Exception for a failed command. The message is shown to the operator."""

    pass


def describe_error(e: BaseException) -> str:
    """Render a facade exception for an error message."""
    text = str(e)
    return f"{type(e).__name__}: {text}" if text else type(e).__name__


def amount_from_sats(sats: Optional[int]) -> Optional[Amount]:
    """
    Convert an optional satoshi count from the command line.

    Raises:
        CommandError: If the value is not a valid bitcoin amount
    """
    if sats is None:
        return None
    try:
        return Amount.from_sats(sats)
    except ValueError:
        raise CommandError("Invalid amount") from None


def sats_or_none(amount: Optional[Amount]) -> Optional[int]:
    return amount.sats_rounding_up() if amount is not None else None
