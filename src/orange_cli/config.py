"""
Configuration Translation

Loads the wallet configuration from a TOML file and turns it into a
validated SessionDescriptor. Construction of the descriptor is the single
validation gate: nothing downstream re-checks these values.
"""

import logging
import tomllib
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

from .net_address import SocketAddress, parse_node_id

logger = logging.getLogger("orange-cli.config")

DEFAULT_CONFIG_PATH = "config.toml"

LOG_FILE_NAME = "wallet.log"

DEFAULT_SYNC_INTERVAL_SECS = 60

MAX_SYNC_INTERVAL_SECS = 2**32 - 1

BIP39_WORD_COUNTS = (12, 15, 18, 21, 24)

REDACTED = "********"


class ConfigError(Exception):
    """Base exception for configuration failures."""

    pass


class ConfigLoadError(ConfigError):
    """Exception when the config file cannot be read or parsed."""

    pass


class InvalidNetworkError(ConfigError):
    """Exception for an unsupported network identifier."""

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"Invalid network: {value}")


class MissingChainSourceFieldError(ConfigError):
    """Exception when the selected chain source lacks a required field."""

    def __init__(self, source_type: str, field_name: str) -> None:
        self.source_type = source_type
        self.field_name = field_name
        super().__init__(f"{source_type} chain_source requires '{field_name}'")


class UnknownChainSourceTypeError(ConfigError):
    """Exception for a chain_source.type outside the supported set."""

    def __init__(self, tag: str) -> None:
        self.tag = tag
        super().__init__(f"Unknown chain_source type: {tag}")


class InvalidLspAddressError(ConfigError):
    """Exception when lsp.address is not a valid socket address."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid LSP address: {value}")


class InvalidLspNodeIdError(ConfigError):
    """Exception when lsp.node_id is not a valid public key."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Invalid LSP node_id: {detail}")


class InvalidMnemonicError(ConfigError):
    """Exception when the seed phrase is not a valid BIP39 mnemonic."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Invalid mnemonic: {detail}")


class Network(Enum):
    """Bitcoin networks the wallet can run on."""

    BITCOIN = "bitcoin"
    TESTNET = "testnet"
    TESTNET4 = "testnet4"
    SIGNET = "signet"
    REGTEST = "regtest"


# ---------------------------------------------------------------------------
# Raw (unvalidated) configuration, as found in config.toml
# ---------------------------------------------------------------------------


def _require(data: dict, key: str, kind: type, section: str = "") -> Any:
    """Fetch a required key of the given type or raise ConfigLoadError."""
    name = f"{section}.{key}" if section else key
    if key not in data:
        raise ConfigLoadError(f"Failed to parse config: missing field `{name}`")
    return _check_type(data[key], kind, name)


def _optional(data: dict, key: str, kind: type, section: str = "") -> Any:
    """Fetch an optional key, checking its type when present."""
    value = data.get(key)
    if value is None:
        return None
    return _check_type(value, kind, f"{section}.{key}" if section else key)


def _check_type(value: Any, kind: type, name: str) -> Any:
    # bool is a subclass of int; TOML keeps them distinct
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ConfigLoadError(
            f"Failed to parse config: invalid type for `{name}`, expected {kind.__name__}"
        )
    return value


@dataclass(frozen=True)
class ChainSourceConfig:
    """Raw chain_source table. Which fields matter depends on ``source_type``."""

    source_type: str
    url: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    username: Optional[str] = None
    password: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ChainSourceConfig":
        """Create ChainSourceConfig from a dictionary."""
        port = _optional(data, "port", int, "chain_source")
        if port is not None and not 0 <= port <= 65535:
            raise ConfigLoadError(
                f"Failed to parse config: `chain_source.port` out of range: {port}"
            )
        return cls(
            source_type=_require(data, "type", str, "chain_source"),
            url=_optional(data, "url", str, "chain_source"),
            host=_optional(data, "host", str, "chain_source"),
            port=port,
            username=_optional(data, "username", str, "chain_source"),
            password=_optional(data, "password", str, "chain_source"),
        )


@dataclass(frozen=True)
class LspConfig:
    """Raw lsp table."""

    address: str
    node_id: str
    token: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "LspConfig":
        """Create LspConfig from a dictionary."""
        return cls(
            address=_require(data, "address", str, "lsp"),
            node_id=_require(data, "node_id", str, "lsp"),
            token=_optional(data, "token", str, "lsp"),
        )


@dataclass(frozen=True)
class SparkConfig:
    """Raw spark table. Every field has a default."""

    sync_interval_secs: int = DEFAULT_SYNC_INTERVAL_SECS
    """How often the Spark wallet syncs, in seconds."""

    prefer_spark_over_lightning: bool = False
    """Route payments through Spark when both Spark and Lightning can pay."""

    @classmethod
    def from_dict(cls, data: dict) -> "SparkConfig":
        """Create SparkConfig from a dictionary."""
        interval = _optional(data, "sync_interval_secs", int, "spark")
        if interval is None:
            interval = DEFAULT_SYNC_INTERVAL_SECS
        if not 0 <= interval <= MAX_SYNC_INTERVAL_SECS:
            raise ConfigLoadError(
                f"Failed to parse config: `spark.sync_interval_secs` out of range: {interval}"
            )
        prefer = _optional(data, "prefer_spark_over_lightning", bool, "spark")
        return cls(
            sync_interval_secs=interval,
            prefer_spark_over_lightning=bool(prefer),
        )


@dataclass(frozen=True)
class RawConfig:
    """
    The configuration document exactly as written by the operator.

    Only structural checks (required keys, value types) happen here;
    semantic validation is done by ``into_session_descriptor``.
    """

    network: str
    storage_path: str
    mnemonic: str
    chain_source: ChainSourceConfig
    lsp: LspConfig
    spark: SparkConfig = field(default_factory=SparkConfig)

    @classmethod
    def from_dict(cls, data: dict) -> "RawConfig":
        """Create RawConfig from a dictionary."""
        spark = _optional(data, "spark", dict)
        return cls(
            network=_require(data, "network", str),
            storage_path=_require(data, "storage_path", str),
            mnemonic=_require(data, "mnemonic", str),
            chain_source=ChainSourceConfig.from_dict(_require(data, "chain_source", dict)),
            lsp=LspConfig.from_dict(_require(data, "lsp", dict)),
            spark=SparkConfig.from_dict(spark) if spark is not None else SparkConfig(),
        )

    @classmethod
    def load(cls, path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> "RawConfig":
        """
        Read and parse a TOML configuration file.

        Args:
            path: Location of config.toml

        Returns:
            Parsed RawConfig

        Raises:
            ConfigLoadError: If the file is unreadable, not TOML, or
                structurally incomplete
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except OSError as e:
            raise ConfigLoadError(f"Failed to read config: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ConfigLoadError(f"Failed to parse config: {e}") from e

        logger.debug(f"Loaded config from {path}")
        return cls.from_dict(data)

    def into_session_descriptor(self) -> "SessionDescriptor":
        """Validate this config. See ``validate_and_translate``."""
        return validate_and_translate(self)


# ---------------------------------------------------------------------------
# Validated session descriptor
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EsploraChainSource:
    """Esplora HTTP API, optionally behind basic auth."""

    url: str
    username: Optional[str] = None
    password: Optional[str] = None


@dataclass(frozen=True)
class ElectrumChainSource:
    """Electrum server."""

    url: str


@dataclass(frozen=True)
class BitcoindRpcChainSource:
    """Bitcoin Core JSON-RPC."""

    host: str
    port: int
    username: str
    password: str


ChainSource = Union[EsploraChainSource, ElectrumChainSource, BitcoindRpcChainSource]


@dataclass(frozen=True)
class LspConnection:
    """Where the LSP lives and how to authenticate to it."""

    address: SocketAddress
    node_id: str
    token: Optional[str] = None


@dataclass(frozen=True)
class Seed:
    """Seed material. The passphrase is never read from config."""

    mnemonic: str
    passphrase: Optional[str] = None


@dataclass(frozen=True)
class Tunables:
    """
    Wallet tuning parameters. The config file does not expose these, so
    every session starts from the defaults.
    """

    trusted_balance_limit_sats: int = 100_000
    """Above this, funds in the trusted wallet are moved into a channel."""

    rebalance_min_sats: int = 5_000
    """Smallest amount worth rebalancing from trusted to Lightning."""

    onchain_receive_threshold_sats: int = 10_000
    """Receives at or above this include an on-chain address."""

    enable_amountless_receive_on_chain: bool = True
    """Include an on-chain address in receive URIs with no amount."""


@dataclass(frozen=True)
class SparkSettings:
    """Spark trusted-wallet settings."""

    sync_interval_secs: int = DEFAULT_SYNC_INTERVAL_SECS
    prefer_spark_over_lightning: bool = False


@dataclass(frozen=True)
class SessionDescriptor:
    """
    Everything needed to open a wallet session, already validated.

    Note: This dataclass is frozen (immutable). Once constructed every
    field is known to be semantically valid.
    """

    network: Network
    storage_path: Path
    log_path: Path
    seed: Seed
    chain_source: ChainSource
    lsp: LspConnection
    tunables: Tunables = field(default_factory=Tunables)
    spark: SparkSettings = field(default_factory=SparkSettings)
    scorer_url: Optional[str] = None
    rgs_url: Optional[str] = None

    def to_dict(self) -> dict:
        """Convert to a dictionary with secrets masked, for display."""
        source = self.chain_source
        if isinstance(source, EsploraChainSource):
            chain_source = {
                "type": "esplora",
                "url": source.url,
                "username": source.username,
                "password": REDACTED if source.password else None,
            }
        elif isinstance(source, ElectrumChainSource):
            chain_source = {"type": "electrum", "url": source.url}
        else:
            chain_source = {
                "type": "bitcoind_rpc",
                "host": source.host,
                "port": source.port,
                "username": source.username,
                "password": REDACTED,
            }

        return {
            "network": self.network.value,
            "storage_path": str(self.storage_path),
            "log_path": str(self.log_path),
            "mnemonic": REDACTED,
            "chain_source": chain_source,
            "lsp": {
                "address": str(self.lsp.address),
                "node_id": self.lsp.node_id,
                "token": REDACTED if self.lsp.token else None,
            },
            "tunables": {
                "trusted_balance_limit_sats": self.tunables.trusted_balance_limit_sats,
                "rebalance_min_sats": self.tunables.rebalance_min_sats,
                "onchain_receive_threshold_sats": self.tunables.onchain_receive_threshold_sats,
                "enable_amountless_receive_on_chain": self.tunables.enable_amountless_receive_on_chain,
            },
            "spark": {
                "sync_interval_secs": self.spark.sync_interval_secs,
                "prefer_spark_over_lightning": self.spark.prefer_spark_over_lightning,
            },
        }


def _parse_network(value: str) -> Network:
    try:
        return Network(value)
    except ValueError:
        raise InvalidNetworkError(value) from None


def _parse_chain_source(raw: ChainSourceConfig) -> ChainSource:
    """Dispatch on chain_source.type and check that variant's required fields."""
    source_type = raw.source_type

    def required(name: str) -> Any:
        value = getattr(raw, name)
        if value is None:
            raise MissingChainSourceFieldError(source_type, name)
        return value

    if source_type == "esplora":
        return EsploraChainSource(
            url=required("url"),
            username=raw.username,
            password=raw.password,
        )
    if source_type == "electrum":
        return ElectrumChainSource(url=required("url"))
    if source_type == "bitcoind_rpc":
        # Checked in this order so the first missing field is reported
        host = required("host")
        port = required("port")
        username = required("username")
        password = required("password")
        return BitcoindRpcChainSource(
            host=host, port=port, username=username, password=password
        )
    raise UnknownChainSourceTypeError(source_type)


def _parse_mnemonic(phrase: str) -> str:
    """Check a BIP39 English mnemonic and return it unchanged."""
    from mnemonic import Mnemonic

    words = phrase.split()
    if len(words) not in BIP39_WORD_COUNTS:
        raise InvalidMnemonicError(
            f"mnemonic has an invalid word count: {len(words)}. "
            "Word count must be 12, 15, 18, 21, or 24"
        )

    m = Mnemonic("english")
    wordlist = set(m.wordlist)
    for index, word in enumerate(words):
        if word not in wordlist:
            raise InvalidMnemonicError(f"mnemonic contains an unknown word (word {index})")

    if not m.check(" ".join(words)):
        raise InvalidMnemonicError("the mnemonic has an invalid checksum")

    return phrase


def validate_and_translate(raw: RawConfig) -> SessionDescriptor:
    """
    Turn a raw config into a SessionDescriptor.

    Checks run in a fixed order (network, chain source, LSP address, LSP
    node id, mnemonic) and the first failure aborts the translation; no
    partially-built descriptor is ever returned.

    Args:
        raw: Structurally valid configuration

    Returns:
        Validated SessionDescriptor

    Raises:
        ConfigError: Subclass naming the first invalid value
    """
    network = _parse_network(raw.network)
    chain_source = _parse_chain_source(raw.chain_source)

    try:
        lsp_address = SocketAddress.parse(raw.lsp.address)
    except ValueError:
        raise InvalidLspAddressError(raw.lsp.address) from None

    try:
        lsp_node_id = parse_node_id(raw.lsp.node_id)
    except ValueError as e:
        raise InvalidLspNodeIdError(str(e)) from e

    mnemonic = _parse_mnemonic(raw.mnemonic)

    storage_path = Path(raw.storage_path)
    descriptor = SessionDescriptor(
        network=network,
        storage_path=storage_path,
        log_path=storage_path / LOG_FILE_NAME,
        seed=Seed(mnemonic=mnemonic),
        chain_source=chain_source,
        lsp=LspConnection(address=lsp_address, node_id=lsp_node_id, token=raw.lsp.token),
        spark=SparkSettings(
            sync_interval_secs=raw.spark.sync_interval_secs,
            prefer_spark_over_lightning=raw.spark.prefer_spark_over_lightning,
        ),
    )
    logger.debug(
        f"Validated config: network={network.value}, "
        f"chain_source={type(chain_source).__name__}, lsp={lsp_address}"
    )
    return descriptor


def load_session_descriptor(path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> SessionDescriptor:
    """
    Load a config file and validate it in one step.

    Args:
        path: Location of config.toml

    Returns:
        Validated SessionDescriptor

    Raises:
        ConfigError: On any load or validation failure
    """
    return validate_and_translate(RawConfig.load(path))
