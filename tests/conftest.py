"""
Shared fixtures: an in-memory wallet facade and config documents.
"""

import asyncio
import os
import signal
import textwrap
from typing import Any, Optional

import pytest

from orange_cli.config import Tunables
from orange_cli.wallet import (
    Amount,
    Balance,
    ChannelDetails,
    PaymentInfo,
    ReceiveUri,
    Transaction,
    WalletError,
)

VALID_MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)

# secp256k1 generator point, compressed
VALID_NODE_ID = "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"


class FakeWallet:
    """In-memory wallet facade with a peekable event queue."""

    def __init__(self, events: Optional[list[Any]] = None) -> None:
        self.queue: list[Any] = list(events or [])
        self._changed = asyncio.Event()
        self.handled = 0
        self.stop_calls = 0
        self.paid: list[PaymentInfo] = []
        self.lightning_address: Optional[str] = None
        self.fail_with: dict[str, Exception] = {}
        self.calls: list[str] = []

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if name in self.fail_with:
            raise self.fail_with[name]

    def push(self, event: Any) -> None:
        self.queue.append(event)
        self._changed.set()

    async def get_balance(self) -> Balance:
        self._check("get_balance")
        return Balance(
            trusted=Amount.from_msats(1_500_500),
            lightning=Amount.from_sats(20_000),
            pending_balance=Amount.from_sats(0),
        )

    async def get_single_use_receive_uri(self, amount: Optional[Amount]) -> ReceiveUri:
        self._check("get_single_use_receive_uri")
        return ReceiveUri(
            invoice="lnbc1fakeinvoice",
            address="bc1qfakeaddress",
            amount=amount,
            from_trusted=False,
            uri="bitcoin:BC1QFAKEADDRESS?lightning=LNBC1FAKEINVOICE",
        )

    async def get_reusable_receive_uri(self) -> str:
        self._check("get_reusable_receive_uri")
        return "lno1fakeoffer"

    async def parse_payment_instructions(self, payment: str) -> Any:
        self._check("parse_payment_instructions")
        return {"payment": payment}

    def build_payment_info(self, instructions: Any, amount: Optional[Amount]) -> PaymentInfo:
        self._check("build_payment_info")
        if amount is None:
            raise WalletError("amount required")
        return PaymentInfo(instructions=instructions, amount=amount)

    async def pay(self, payment_info: PaymentInfo) -> str:
        self._check("pay")
        self.paid.append(payment_info)
        return "payment-1"

    async def estimate_fee(self, instructions: Any) -> Amount:
        self._check("estimate_fee")
        return Amount.from_msats(2_001)

    async def list_transactions(self) -> list[Transaction]:
        self._check("list_transactions")
        return [
            Transaction(
                id="tx-1",
                status="Completed",
                outbound=True,
                amount=Amount.from_sats(1_000),
                fee=Amount.from_msats(1_500),
                payment_type="OutgoingLightningBolt11",
                time_since_epoch_secs=1_700_000_000,
            ),
            Transaction(
                id="tx-2",
                status="Pending",
                outbound=False,
                amount=None,
                fee=None,
                payment_type="IncomingOnChain",
                time_since_epoch_secs=1_700_000_100,
            ),
        ]

    def channels(self) -> list[ChannelDetails]:
        self._check("channels")
        return [
            ChannelDetails(
                channel_id="chan-1",
                counterparty_node_id=VALID_NODE_ID,
                funding_txo=None,
                is_channel_ready=True,
                is_usable=True,
                inbound_capacity_msat=1_999_999,
                outbound_capacity_msat=500_000,
                channel_value_sats=3_000,
            )
        ]

    def node_id(self) -> str:
        self._check("node_id")
        return VALID_NODE_ID

    def is_connected_to_lsp(self) -> bool:
        return True

    def get_tunables(self) -> Tunables:
        return Tunables()

    async def get_lightning_address(self) -> Optional[str]:
        self._check("get_lightning_address")
        return self.lightning_address

    async def register_lightning_address(self, name: str) -> None:
        self._check("register_lightning_address")
        self.lightning_address = f"{name}@breez.tips"

    def next_event(self) -> Optional[Any]:
        self._check("next_event")
        return self.queue[0] if self.queue else None

    async def next_event_async(self) -> Any:
        self._check("next_event_async")
        while not self.queue:
            self._changed.clear()
            await self._changed.wait()
        return self.queue[0]

    def event_handled(self) -> None:
        self._check("event_handled")
        if not self.queue:
            raise WalletError("no event to mark as handled")
        self.queue.pop(0)
        self.handled += 1

    async def stop(self) -> None:
        self.stop_calls += 1


OPENED_WALLETS: list[FakeWallet] = []


async def open_fake_wallet(descriptor: Any) -> FakeWallet:
    """Wallet backend factory, importable as ``conftest:open_fake_wallet``."""
    wallet = FakeWallet()
    wallet.descriptor = descriptor
    OPENED_WALLETS.append(wallet)
    return wallet


async def open_fake_wallet_then_interrupt(descriptor: Any) -> FakeWallet:
    """Backend factory that sends SIGINT to this process shortly after opening."""
    wallet = await open_fake_wallet(descriptor)
    asyncio.get_running_loop().call_later(0.05, os.kill, os.getpid(), signal.SIGINT)
    return wallet


async def wait_until(predicate, timeout: float = 1.0) -> None:
    """Yield to the event loop until ``predicate()`` is true."""
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def fake_wallet() -> FakeWallet:
    return FakeWallet()


def make_config_dict(**overrides: Any) -> dict:
    """A structurally and semantically valid config dict."""
    data = {
        "network": "regtest",
        "storage_path": "/var/lib/orange",
        "mnemonic": VALID_MNEMONIC,
        "chain_source": {"type": "esplora", "url": "http://localhost:3002"},
        "lsp": {"address": "127.0.0.1:9735", "node_id": VALID_NODE_ID},
    }
    data.update(overrides)
    return data


VALID_CONFIG_TOML = textwrap.dedent(
    f"""
    network = "regtest"
    storage_path = "/var/lib/orange"
    mnemonic = "{VALID_MNEMONIC}"

    [chain_source]
    type = "esplora"
    url = "http://localhost:3002"

    [lsp]
    address = "127.0.0.1:9735"
    node_id = "{VALID_NODE_ID}"
    token = "secret-token"

    [spark]
    sync_interval_secs = 30
    """
)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(VALID_CONFIG_TOML)
    return path
