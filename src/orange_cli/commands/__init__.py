"""
Orange CLI Commands

One-shot operations against the wallet facade. Each command makes one
logical wallet call and returns a flat JSON-ready dict, with amounts in
whole satoshis. Failures raise CommandError carrying the message shown
to the operator.
"""

from .base import CommandError
from .events import event_handled, get_event
from .lightning_address import get_lightning_address, register_lightning_address
from .payments import estimate_fee, parse_payment, receive, receive_offer, send
from .wallet import balance, channels, info, transactions

__all__ = [
    "CommandError",
    "balance",
    "channels",
    "info",
    "transactions",
    "receive",
    "receive_offer",
    "send",
    "parse_payment",
    "estimate_fee",
    "get_lightning_address",
    "register_lightning_address",
    "get_event",
    "event_handled",
]
