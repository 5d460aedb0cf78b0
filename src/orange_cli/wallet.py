"""
Wallet Facade

The wallet engine (balances, payments, channels, chain sync) lives outside
this package. This module declares the surface the CLI and daemon use,
the result types that cross it, and how a concrete backend is found.
"""

import importlib
import inspect
import logging
import os
from dataclasses import dataclass
from importlib.metadata import entry_points
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Protocol, runtime_checkable

from .config import Tunables

if TYPE_CHECKING:
    from .config import SessionDescriptor
    from .events import WalletEvent

logger = logging.getLogger("orange-cli.wallet")

BACKEND_ENV_VAR = "ORANGE_WALLET_BACKEND"

ENTRY_POINT_GROUP = "orange_cli.wallets"

MSATS_PER_SAT = 1000

# 21M BTC in millisatoshis
MAX_MONEY_MSATS = 21_000_000 * 100_000_000 * MSATS_PER_SAT


class WalletError(Exception):
    """Exception raised by wallet backends for failed operations."""

    pass


class WalletBackendError(WalletError):
    """Exception when no usable wallet backend can be loaded."""

    pass


@dataclass(frozen=True, order=True)
class Amount:
    """A bitcoin amount held in millisatoshis."""

    msats: int

    def __post_init__(self) -> None:
        if not 0 <= self.msats <= MAX_MONEY_MSATS:
            raise ValueError(f"amount out of range: {self.msats} msat")

    @classmethod
    def from_sats(cls, sats: int) -> "Amount":
        """
        Build an Amount from whole satoshis.

        Raises:
            ValueError: If the amount is negative or above 21M BTC
        """
        return cls(msats=sats * MSATS_PER_SAT)

    @classmethod
    def from_msats(cls, msats: int) -> "Amount":
        return cls(msats=msats)

    def sats_rounding_up(self) -> int:
        """Whole satoshis, rounding any sub-satoshi remainder up."""
        return (self.msats + MSATS_PER_SAT - 1) // MSATS_PER_SAT

    def __add__(self, other: "Amount") -> "Amount":
        return Amount(msats=self.msats + other.msats)


@dataclass(frozen=True)
class Balance:
    """Wallet balance split by where the funds sit."""

    trusted: Amount
    """Funds held in the trusted (Spark) wallet."""

    lightning: Amount
    """Funds spendable from Lightning channels."""

    pending_balance: Amount
    """Funds not yet spendable (e.g. unconfirmed or closing)."""

    def available_balance(self) -> Amount:
        """Trusted plus Lightning balance."""
        return self.trusted + self.lightning


@dataclass(frozen=True)
class ReceiveUri:
    """A single-use BIP21 receive URI."""

    invoice: str
    address: Optional[str]
    amount: Optional[Amount]
    from_trusted: bool
    uri: str

    def __str__(self) -> str:
        return self.uri


@dataclass(frozen=True)
class PaymentInfo:
    """Parsed payment instructions bound to a concrete amount."""

    instructions: Any
    amount: Amount


@dataclass(frozen=True)
class Transaction:
    """One entry of the wallet's transaction history."""

    id: str
    status: str
    outbound: bool
    amount: Optional[Amount]
    fee: Optional[Amount]
    payment_type: str
    time_since_epoch_secs: int


@dataclass(frozen=True)
class ChannelDetails:
    """A Lightning channel as reported by the node."""

    channel_id: str
    counterparty_node_id: str
    funding_txo: Optional[str]
    is_channel_ready: bool
    is_usable: bool
    inbound_capacity_msat: int
    outbound_capacity_msat: int
    channel_value_sats: int


@runtime_checkable
class WalletFacade(Protocol):
    """
    Operations the CLI and daemon need from a wallet backend.

    Coroutine methods may perform I/O. The plain methods answer from
    in-memory state and must not block. ``next_event`` / ``next_event_async``
    peek at the head of the event queue; only ``event_handled`` removes it.
    """

    async def get_balance(self) -> Balance: ...

    async def get_single_use_receive_uri(self, amount: Optional[Amount]) -> ReceiveUri: ...

    async def get_reusable_receive_uri(self) -> str: ...

    async def parse_payment_instructions(self, payment: str) -> Any: ...

    def build_payment_info(self, instructions: Any, amount: Optional[Amount]) -> PaymentInfo: ...

    async def pay(self, payment_info: PaymentInfo) -> str: ...

    async def estimate_fee(self, instructions: Any) -> Amount: ...

    async def list_transactions(self) -> list[Transaction]: ...

    def channels(self) -> list[ChannelDetails]: ...

    def node_id(self) -> str: ...

    def is_connected_to_lsp(self) -> bool: ...

    def get_tunables(self) -> Tunables: ...

    async def get_lightning_address(self) -> Optional[str]: ...

    async def register_lightning_address(self, name: str) -> None: ...

    def next_event(self) -> "Optional[WalletEvent]": ...

    async def next_event_async(self) -> "WalletEvent": ...

    def event_handled(self) -> None: ...

    async def stop(self) -> None: ...


WalletFactory = Callable[["SessionDescriptor"], Awaitable[WalletFacade]]


def _import_factory(reference: str) -> WalletFactory:
    """Import a ``module:attribute`` reference."""
    module_name, sep, attr = reference.partition(":")
    if not sep or not module_name or not attr:
        raise WalletBackendError(
            f"{BACKEND_ENV_VAR} must look like 'package.module:factory', got {reference!r}"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise WalletBackendError(f"Cannot import wallet backend {module_name}: {e}") from e
    try:
        return getattr(module, attr)
    except AttributeError as e:
        raise WalletBackendError(f"Wallet backend {module_name} has no attribute {attr}") from e


def resolve_backend(reference: Optional[str] = None) -> WalletFactory:
    """
    Find the wallet backend factory.

    Lookup order:
    1. ``reference`` argument, if given
    2. ORANGE_WALLET_BACKEND environment variable
    3. The single installed ``orange_cli.wallets`` entry point

    Args:
        reference: Optional ``module:attribute`` reference

    Returns:
        Async factory that opens a wallet from a SessionDescriptor

    Raises:
        WalletBackendError: If nothing (or more than one entry point) is found
    """
    reference = reference or os.getenv(BACKEND_ENV_VAR)
    if reference:
        logger.debug(f"Using wallet backend {reference}")
        return _import_factory(reference)

    found = list(entry_points(group=ENTRY_POINT_GROUP))
    if not found:
        raise WalletBackendError(
            f"No wallet backend installed. Install one that registers an "
            f"'{ENTRY_POINT_GROUP}' entry point, or set {BACKEND_ENV_VAR}."
        )
    if len(found) > 1:
        names = ", ".join(sorted(ep.name for ep in found))
        raise WalletBackendError(
            f"Multiple wallet backends installed ({names}). Set {BACKEND_ENV_VAR} to choose one."
        )

    logger.debug(f"Using wallet backend entry point {found[0].name}")
    return found[0].load()


async def open_wallet(
    descriptor: "SessionDescriptor",
    backend: Optional[str] = None,
) -> WalletFacade:
    """
    Open a wallet session for a validated descriptor.

    Args:
        descriptor: Validated session settings
        backend: Optional ``module:attribute`` backend reference

    Returns:
        A live wallet facade. Callers must ``await wallet.stop()`` when done.

    Raises:
        WalletBackendError: If no backend is available
        Exception: Whatever the backend raises while starting
    """
    factory = resolve_backend(backend)
    wallet = factory(descriptor)
    if inspect.isawaitable(wallet):
        wallet = await wallet
    logger.info(f"Wallet opened on {descriptor.network.value}")
    return wallet
