"""
Wallet Events

The closed set of events a wallet emits, and their canonical JSON document.
The same document is printed by ``get-event`` and POSTed to webhooks.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional, Union

logger = logging.getLogger("orange-cli.events")


@dataclass(frozen=True)
class PaymentSuccessful:
    """An outbound payment completed."""

    payment_id: str
    payment_hash: str
    payment_preimage: str
    fee_paid_msat: Optional[int] = None

    TYPE = "payment_successful"

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "payment_hash": self.payment_hash,
            "payment_preimage": self.payment_preimage,
            "fee_paid_msat": self.fee_paid_msat,
        }


@dataclass(frozen=True)
class PaymentFailed:
    """An outbound payment gave up."""

    payment_id: str
    payment_hash: Optional[str] = None
    reason: Optional[str] = None

    TYPE = "payment_failed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "payment_hash": self.payment_hash,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class PaymentReceived:
    """An inbound Lightning payment was claimed."""

    payment_id: str
    payment_hash: str
    amount_msat: int
    custom_records: list[Any] = field(default_factory=list)
    lsp_fee_msats: Optional[int] = None

    TYPE = "payment_received"

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "payment_hash": self.payment_hash,
            "amount_msat": self.amount_msat,
            "amount_sats": self.amount_msat // 1000,
            "custom_records_count": len(self.custom_records),
            "lsp_fee_msats": self.lsp_fee_msats,
        }


@dataclass(frozen=True)
class OnchainPaymentReceived:
    """An on-chain payment to the wallet was seen."""

    payment_id: str
    txid: str
    amount_sat: int
    status: str

    TYPE = "onchain_payment_received"

    def to_dict(self) -> dict[str, Any]:
        return {
            "payment_id": self.payment_id,
            "txid": self.txid,
            "amount_sat": self.amount_sat,
            "status": self.status,
        }


@dataclass(frozen=True)
class ChannelOpened:
    """A channel finished opening and is ready to use."""

    channel_id: str
    user_channel_id: str
    counterparty_node_id: str
    funding_txo: str

    TYPE = "channel_opened"

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel_id": self.channel_id,
            "user_channel_id": str(self.user_channel_id),
            "counterparty_node_id": self.counterparty_node_id,
            "funding_txo": self.funding_txo,
        }


@dataclass(frozen=True)
class ChannelClosed:
    """A channel was closed."""

    channel_id: str
    user_channel_id: str
    counterparty_node_id: str
    reason: Optional[str] = None

    TYPE = "channel_closed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel_id": self.channel_id,
            "user_channel_id": str(self.user_channel_id),
            "counterparty_node_id": self.counterparty_node_id,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class RebalanceInitiated:
    """Funds started moving from the trusted wallet into Lightning."""

    trigger_payment_id: str
    trusted_rebalance_payment_id: bytes
    amount_msat: int

    TYPE = "rebalance_initiated"

    def to_dict(self) -> dict[str, Any]:
        return {
            "trigger_payment_id": self.trigger_payment_id,
            "trusted_rebalance_payment_id": self.trusted_rebalance_payment_id.hex(),
            "amount_msat": self.amount_msat,
        }


@dataclass(frozen=True)
class RebalanceSuccessful:
    """A trusted-to-Lightning rebalance completed."""

    trigger_payment_id: str
    trusted_rebalance_payment_id: bytes
    ln_rebalance_payment_id: bytes
    amount_msat: int
    fee_msat: int

    TYPE = "rebalance_successful"

    def to_dict(self) -> dict[str, Any]:
        return {
            "trigger_payment_id": self.trigger_payment_id,
            "trusted_rebalance_payment_id": self.trusted_rebalance_payment_id.hex(),
            "ln_rebalance_payment_id": self.ln_rebalance_payment_id.hex(),
            "amount_msat": self.amount_msat,
            "fee_msat": self.fee_msat,
        }


@dataclass(frozen=True)
class SplicePending:
    """A splice transaction was broadcast for an existing channel."""

    channel_id: str
    user_channel_id: str
    counterparty_node_id: str
    new_funding_txo: str

    TYPE = "splice_pending"

    def to_dict(self) -> dict[str, Any]:
        return {
            "channel_id": self.channel_id,
            "user_channel_id": str(self.user_channel_id),
            "counterparty_node_id": self.counterparty_node_id,
            "new_funding_txo": self.new_funding_txo,
        }


WalletEvent = Union[
    PaymentSuccessful,
    PaymentFailed,
    PaymentReceived,
    OnchainPaymentReceived,
    ChannelOpened,
    ChannelClosed,
    RebalanceInitiated,
    RebalanceSuccessful,
    SplicePending,
]

EVENT_TYPES: tuple[type, ...] = (
    PaymentSuccessful,
    PaymentFailed,
    PaymentReceived,
    OnchainPaymentReceived,
    ChannelOpened,
    ChannelClosed,
    RebalanceInitiated,
    RebalanceSuccessful,
    SplicePending,
)


def current_timestamp() -> int:
    """Wall-clock seconds since the Unix epoch."""
    return int(time.time())


def serialize_event(event: WalletEvent, timestamp: int) -> dict[str, Any]:
    """
    Build the canonical event document.

    Args:
        event: Event taken from the wallet queue
        timestamp: Capture time in seconds since the epoch

    Returns:
        Dict with ``type``, ``timestamp`` and the variant's fields. Absent
        optional fields are present as None.

    Raises:
        TypeError: If ``event`` is not one of the known variants
    """
    if not isinstance(event, EVENT_TYPES):
        raise TypeError(f"Unknown wallet event: {type(event).__name__}")

    return {
        "type": event.TYPE,
        "timestamp": timestamp,
        **event.to_dict(),
    }
