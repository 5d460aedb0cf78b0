"""
Orange CLI

Command-line entry point. Every one-shot command prints a JSON document to
stdout and exits 0, or prints ``{"error": "..."}`` and exits 1. The
``daemon`` command runs until Ctrl+C. Logs go to stderr.
"""

import asyncio
import json
import logging
import sys
from typing import Any, Awaitable, Callable, NoReturn, Optional

import click

from . import __version__
from .commands import (
    CommandError,
    balance,
    channels,
    estimate_fee,
    event_handled,
    get_event,
    get_lightning_address,
    info,
    parse_payment,
    receive,
    receive_offer,
    register_lightning_address,
    send,
    transactions,
)
from .commands.base import describe_error
from .config import DEFAULT_CONFIG_PATH, ConfigError, SessionDescriptor, load_session_descriptor
from .daemon import EventDaemon
from .wallet import WalletFacade, open_wallet
from .webhooks import WebhookDispatcher

logger = logging.getLogger("orange-cli")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

CommandFunc = Callable[..., Awaitable[dict[str, Any]]]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )


def _print_json(value: Any) -> None:
    click.echo(json.dumps(value, indent=2))


def _fail(message: str) -> NoReturn:
    """Print an error document and exit 1."""
    _print_json({"error": message})
    sys.exit(1)


def _load_descriptor(ctx: click.Context) -> SessionDescriptor:
    """Load and validate the config, exiting on any validation error."""
    config_path = ctx.obj["config_path"]
    try:
        return load_session_descriptor(config_path)
    except ConfigError as e:
        logger.debug(f"Config validation failed for {config_path}: {e!s}")
        _fail(str(e))


async def _open(descriptor: SessionDescriptor, backend: Optional[str]) -> WalletFacade:
    try:
        return await open_wallet(descriptor, backend)
    except Exception as e:
        logger.debug("Wallet initialization failed", exc_info=True)
        raise CommandError(f"Failed to initialize wallet: {describe_error(e)}") from e


async def _execute(
    descriptor: SessionDescriptor,
    backend: Optional[str],
    command: CommandFunc,
    *args: Any,
) -> dict[str, Any]:
    """Open the wallet, run one command, and stop the wallet again."""
    wallet = await _open(descriptor, backend)
    try:
        return await command(wallet, *args)
    finally:
        await wallet.stop()


def _run_command(ctx: click.Context, command: CommandFunc, *args: Any) -> None:
    """Run a one-shot command end to end and print its result."""
    descriptor = _load_descriptor(ctx)
    try:
        result = asyncio.run(_execute(descriptor, ctx.obj["backend"], command, *args))
    except CommandError as e:
        _fail(str(e))
    except Exception as e:
        logger.exception(f"Unexpected error in {command.__name__}")
        _fail(describe_error(e))
    _print_json(result)


@click.group()
@click.option(
    "--config",
    "config_path",
    default=DEFAULT_CONFIG_PATH,
    show_default=True,
    envvar="ORANGE_CONFIG",
    help="Path to config.toml.",
)
@click.option(
    "--backend",
    default=None,
    help="Wallet backend as 'package.module:factory' (overrides ORANGE_WALLET_BACKEND).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.version_option(__version__, prog_name="orange")
@click.pass_context
def cli(ctx: click.Context, config_path: str, backend: Optional[str], verbose: bool) -> None:
    """Orange Lightning wallet CLI."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["backend"] = backend


@cli.command("balance")
@click.pass_context
def balance_cmd(ctx: click.Context) -> None:
    """Get wallet balance."""
    _run_command(ctx, balance)


@cli.command("receive")
@click.option("--amount", type=int, default=None, help="Amount in satoshis.")
@click.pass_context
def receive_cmd(ctx: click.Context, amount: Optional[int]) -> None:
    """Generate single-use BIP21 receive URI."""
    _run_command(ctx, receive, amount)


@cli.command("receive-offer")
@click.pass_context
def receive_offer_cmd(ctx: click.Context) -> None:
    """Get reusable BOLT12 offer."""
    _run_command(ctx, receive_offer)


@cli.command("send")
@click.argument("payment")
@click.option(
    "--amount",
    type=int,
    default=None,
    help="Amount in satoshis (required for addresses and amountless offers).",
)
@click.pass_context
def send_cmd(ctx: click.Context, payment: str, amount: Optional[int]) -> None:
    """Send a payment to an invoice, address, offer, or BIP21 URI."""
    _run_command(ctx, send, payment, amount)


@cli.command("parse")
@click.argument("payment")
@click.pass_context
def parse_cmd(ctx: click.Context, payment: str) -> None:
    """Parse a payment string."""
    _run_command(ctx, parse_payment, payment)


@cli.command("transactions")
@click.pass_context
def transactions_cmd(ctx: click.Context) -> None:
    """List transaction history."""
    _run_command(ctx, transactions)


@cli.command("channels")
@click.pass_context
def channels_cmd(ctx: click.Context) -> None:
    """List lightning channels."""
    _run_command(ctx, channels)


@cli.command("info")
@click.pass_context
def info_cmd(ctx: click.Context) -> None:
    """Get wallet/node information."""
    _run_command(ctx, info)


@cli.command("estimate-fee")
@click.argument("payment")
@click.pass_context
def estimate_fee_cmd(ctx: click.Context, payment: str) -> None:
    """Estimate fee for a payment."""
    _run_command(ctx, estimate_fee, payment)


@cli.command("lightning-address")
@click.pass_context
def lightning_address_cmd(ctx: click.Context) -> None:
    """Get the wallet's lightning address."""
    _run_command(ctx, get_lightning_address)


@cli.command("register-lightning-address")
@click.argument("name")
@click.pass_context
def register_lightning_address_cmd(ctx: click.Context, name: str) -> None:
    """Register a lightning address for this wallet."""
    _run_command(ctx, register_lightning_address, name)


@cli.command("get-event")
@click.pass_context
def get_event_cmd(ctx: click.Context) -> None:
    """Get the next pending event from the wallet event queue."""
    _run_command(ctx, get_event)


@cli.command("event-handled")
@click.pass_context
def event_handled_cmd(ctx: click.Context) -> None:
    """Mark the current event as handled, removing it from the queue."""
    _run_command(ctx, event_handled)


@cli.command("validate-config")
@click.pass_context
def validate_config_cmd(ctx: click.Context) -> None:
    """Validate config.toml without opening the wallet."""
    descriptor = _load_descriptor(ctx)
    _print_json({"valid": True, "config": descriptor.to_dict()})


async def _run_daemon(
    descriptor: SessionDescriptor,
    backend: Optional[str],
    webhooks: tuple[str, ...],
    webhook_timeout: Optional[float],
) -> None:
    wallet = await _open(descriptor, backend)
    dispatcher = WebhookDispatcher(webhooks, timeout=webhook_timeout)
    daemon = EventDaemon(wallet, dispatcher)
    daemon.install_signal_handler()
    try:
        await daemon.run()
    finally:
        await dispatcher.aclose()


@cli.command("daemon")
@click.option(
    "--webhook",
    "webhooks",
    multiple=True,
    help="URL to POST event JSON to (can be specified multiple times).",
)
@click.option(
    "--webhook-timeout",
    type=float,
    default=None,
    help="Seconds before a webhook delivery is abandoned. Default: no timeout.",
)
@click.pass_context
def daemon_cmd(
    ctx: click.Context,
    webhooks: tuple[str, ...],
    webhook_timeout: Optional[float],
) -> None:
    """Run as a long-lived daemon, listening for wallet events."""
    descriptor = _load_descriptor(ctx)
    try:
        asyncio.run(_run_daemon(descriptor, ctx.obj["backend"], webhooks, webhook_timeout))
    except CommandError as e:
        _fail(str(e))
    except Exception as e:
        _fail(describe_error(e))


def main() -> None:
    """Entry point for the orange command."""
    cli(prog_name="orange")


if __name__ == "__main__":
    main()
