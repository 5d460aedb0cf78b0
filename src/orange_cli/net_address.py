"""
Network Address Parsing

Typed forms for the LSP connection settings: the socket address the
wallet dials and the node id it expects to find there.
"""

import ipaddress
import logging
import re
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger("orange-cli.net_address")

# Tor v3 onion service hostnames are 56 base32 characters
ONION_V3_PATTERN = re.compile(r"^[a-z2-7]{56}\.onion$")

HOSTNAME_LABEL_PATTERN = re.compile(r"^[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?$")

# Compressed secp256k1 public key: 33 bytes, 66 hex chars
NODE_ID_HEX_LENGTH = 66


class AddressKind(Enum):
    """Kind of host in a socket address."""

    IPV4 = "ipv4"
    IPV6 = "ipv6"
    HOSTNAME = "hostname"
    ONION_V3 = "onion_v3"


@dataclass(frozen=True)
class SocketAddress:
    """A parsed host/port pair the wallet can connect to."""

    host: str
    port: int
    kind: AddressKind

    @classmethod
    def parse(cls, value: str) -> "SocketAddress":
        """
        Parse a ``host:port`` string.

        Accepted hosts are IPv4 literals, bracketed IPv6 literals
        (``[::1]:9735``), DNS hostnames and Tor v3 ``.onion`` names.

        Args:
            value: Address string from the configuration file

        Returns:
            Parsed SocketAddress

        Raises:
            ValueError: If the host or port is malformed
        """
        if not isinstance(value, str) or not value:
            raise ValueError("address is empty")

        if value.startswith("["):
            end = value.find("]")
            if end == -1 or value[end + 1 : end + 2] != ":":
                raise ValueError(f"malformed IPv6 address: {value}")
            host = value[1:end]
            port_str = value[end + 2 :]
        else:
            host, sep, port_str = value.rpartition(":")
            if not sep or not host:
                raise ValueError(f"missing port: {value}")

        port = _parse_port(port_str)
        kind = _classify_host(host, bracketed=value.startswith("["))
        return cls(host=host, port=port, kind=kind)

    def __str__(self) -> str:
        if self.kind == AddressKind.IPV6:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def _parse_port(port_str: str) -> int:
    """Parse a decimal TCP port."""
    if not port_str.isdigit():
        raise ValueError(f"invalid port: {port_str!r}")
    port = int(port_str)
    if port > 65535:
        raise ValueError(f"port out of range: {port}")
    return port


def _classify_host(host: str, bracketed: bool) -> AddressKind:
    """Work out which kind of host a string is, or raise ValueError."""
    if bracketed:
        try:
            ipaddress.IPv6Address(host)
        except ValueError as e:
            raise ValueError(f"invalid IPv6 address: {host}") from e
        return AddressKind.IPV6

    try:
        ipaddress.IPv4Address(host)
        return AddressKind.IPV4
    except ValueError:
        pass

    if ":" in host:
        raise ValueError(f"IPv6 addresses must be bracketed: {host}")

    lowered = host.lower()
    if lowered.endswith(".onion"):
        if not ONION_V3_PATTERN.match(lowered):
            raise ValueError(f"invalid onion address: {host}")
        return AddressKind.ONION_V3

    if len(host) > 255 or not host.isascii():
        raise ValueError(f"invalid hostname: {host}")
    labels = host.rstrip(".").split(".")
    if not all(HOSTNAME_LABEL_PATTERN.match(label) for label in labels):
        raise ValueError(f"invalid hostname: {host}")
    return AddressKind.HOSTNAME


def parse_node_id(value: str) -> str:
    """
    Validate an LSP node id.

    The node id must be a hex-encoded compressed secp256k1 public key that
    lies on the curve.

    Args:
        value: Hex string from the configuration file

    Returns:
        The node id normalized to lowercase hex

    Raises:
        ValueError: With a short description of what is wrong
    """
    if not isinstance(value, str):
        raise ValueError("node id must be a string")
    if len(value) != NODE_ID_HEX_LENGTH:
        raise ValueError(
            f"expected {NODE_ID_HEX_LENGTH} hex characters, got {len(value)}"
        )
    try:
        raw = bytes.fromhex(value)
    except ValueError as e:
        raise ValueError("node id is not valid hex") from e

    # Lightning node ids are always compressed; 65-byte keys are refused
    if raw[0] not in (0x02, 0x03):
        raise ValueError("node id is not a compressed public key")

    from secp256k1 import PublicKey

    try:
        PublicKey(raw, raw=True)
    except Exception as e:
        raise ValueError(f"malformed public key: {e}") from e

    return raw.hex()
