"""Command-line interface for the LTV watcher."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .addresses import detect_protocol
from .app import App, build_app
from .config import load_config
from .errors import LtvWatchError
from .logging_setup import configure_logging
from .models import LendingProtocol
from .services.messages import error_reply, to_plain_text, wallet_block

_PROTOCOLS = [p.value for p in LendingProtocol]


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="ltv-watch",
        description="Health Factor monitor for Kamino and Aave V3 borrow positions",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    run_parser = sub.add_parser("run", help="Continuous monitoring loop")
    run_parser.add_argument(
        "interval",
        nargs="?",
        type=int,
        default=None,
        help="Check interval in minutes (overrides config)",
    )
    sub.add_parser("sweep", help="Check every stored wallet once and send alerts")
    sub.add_parser("markets", help="Refresh and list the known markets")

    scan_parser = sub.add_parser("scan", help="Scan a wallet without storing it")
    scan_parser.add_argument("address")

    add_parser = sub.add_parser("add-wallet", help="Start watching a wallet")
    add_parser.add_argument("chat_id")
    add_parser.add_argument("address")

    remove_parser = sub.add_parser("remove-wallet", help="Stop watching a wallet")
    remove_parser.add_argument("chat_id")
    remove_parser.add_argument("address")

    wallets_parser = sub.add_parser("wallets", help="List the chat's watched wallets")
    wallets_parser.add_argument("chat_id")

    for name, help_text in (
        ("check", "Check the chat's wallets now"),
        ("refresh", "Reload markets and rediscover the chat's active markets"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("chat_id")
        p.add_argument("--protocol", choices=_PROTOCOLS, default=None)

    threshold_parser = sub.add_parser(
        "set-threshold", help="Set a Health Factor threshold"
    )
    threshold_parser.add_argument("chat_id")
    threshold_parser.add_argument("protocol", choices=_PROTOCOLS)
    threshold_parser.add_argument("kind", choices=["warning", "danger"])
    threshold_parser.add_argument("value")

    settings_parser = sub.add_parser("settings", help="Show the chat's thresholds")
    settings_parser.add_argument("chat_id")

    forget_parser = sub.add_parser("forget", help="Delete everything stored for a chat")
    forget_parser.add_argument("chat_id")

    return parser


def _print_progress(current: int, total: int) -> None:
    print(f"\rScanned {current}/{total}", end="", file=sys.stderr, flush=True)
    if current == total:
        print(file=sys.stderr)


async def _scan(app: App, address: str) -> str:
    try:
        protocol = detect_protocol(address)
        positions = await app.scanners[protocol].full_scan(address, _print_progress)
    except LtvWatchError as e:
        return error_reply(e)
    if not positions:
        return wallet_block(protocol, address, "No borrow positions found.")
    thresholds = app.evaluator.defaults(protocol)
    return wallet_block(protocol, address, app.evaluator.render_all(positions, thresholds))


async def _markets(app: App) -> str:
    await app.catalog.refresh_all()
    lines = []
    for key in app.catalog.keys():
        markets = app.catalog.get(key)
        names = ", ".join(m.name for m in markets)
        lines.append(f"{key} ({len(markets)}): {names or 'not loaded'}")
    return "\n".join(lines)


async def _dispatch(app: App, args: argparse.Namespace) -> str | None:
    wallets = app.wallets
    if args.command == "run":
        await app.monitor.run_continuous(args.interval)
        return None
    if args.command == "sweep":
        await app.catalog.refresh_all()
        sent = await app.monitor.sweep()
        return f"Sweep finished, {sent} alerts sent."
    if args.command == "markets":
        return await _markets(app)
    if args.command == "scan":
        return await _scan(app, args.address)
    if args.command == "add-wallet":
        return await wallets.add_wallet(args.chat_id, args.address, _print_progress)
    if args.command == "remove-wallet":
        return await wallets.remove_wallet(args.chat_id, args.address)
    if args.command == "wallets":
        return await wallets.list_wallets(args.chat_id)
    if args.command == "check":
        return await wallets.check(args.chat_id, args.protocol)
    if args.command == "refresh":
        return await wallets.refresh(args.chat_id, args.protocol, _print_progress)
    if args.command == "set-threshold":
        return await wallets.set_threshold(
            args.chat_id, args.protocol, args.kind, args.value
        )
    if args.command == "settings":
        return await wallets.settings(args.chat_id)
    if args.command == "forget":
        return await wallets.forget(args.chat_id)
    raise ValueError(f"Unknown command: {args.command}")


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    app = build_app(config)

    reply = await _dispatch(app, args)
    if reply is not None:
        print(to_plain_text(reply))


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    asyncio.run(_run(args))
