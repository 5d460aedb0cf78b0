"""
Orange CLI

Command-line front end for an Orange Lightning wallet: validates a TOML
config into a wallet session, runs one-shot wallet commands, and runs a
daemon that forwards wallet events to HTTP webhooks.

Available commands:
- balance, info, channels, transactions - Inspect the wallet
- receive, receive-offer - Get a receive URI or reusable offer
- send, parse, estimate-fee - Pay, or preview a payment
- lightning-address, register-lightning-address - Manage the lightning address
- get-event, event-handled - Consume the event queue by hand
- daemon - Forward events to webhooks until Ctrl+C
- validate-config - Check config.toml without opening the wallet
"""

__version__ = "0.1.0"

from .config import (
    ConfigError,
    ConfigLoadError,
    InvalidLspAddressError,
    InvalidLspNodeIdError,
    InvalidMnemonicError,
    InvalidNetworkError,
    MissingChainSourceFieldError,
    Network,
    RawConfig,
    SessionDescriptor,
    UnknownChainSourceTypeError,
    load_session_descriptor,
    validate_and_translate,
)
from .daemon import EventDaemon
from .events import WalletEvent, serialize_event
from .wallet import Amount, WalletError, WalletFacade, open_wallet
from .webhooks import DispatchOutcome, WebhookDispatcher

__all__ = [
    # Configuration
    "ConfigError",
    "ConfigLoadError",
    "InvalidLspAddressError",
    "InvalidLspNodeIdError",
    "InvalidMnemonicError",
    "InvalidNetworkError",
    "MissingChainSourceFieldError",
    "Network",
    "RawConfig",
    "SessionDescriptor",
    "UnknownChainSourceTypeError",
    "load_session_descriptor",
    "validate_and_translate",
    # Wallet
    "Amount",
    "WalletError",
    "WalletFacade",
    "open_wallet",
    # Events
    "WalletEvent",
    "serialize_event",
    # Daemon
    "EventDaemon",
    "DispatchOutcome",
    "WebhookDispatcher",
    # Version
    "__version__",
]
