"""Command-line interface for the confidential lending protocol."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import load_config
from .logging_setup import configure_logging
from .oracle import PRICE_PRECISION
from .services import ProtocolStack, build_protocol, load_scenario, run_scenario


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="cipherlend",
        description="Confidential lending protocol with encrypted balances",
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

    sub.add_parser("reserves", help="List reserves and their public totals")
    sub.add_parser("prices", help="Refresh and show oracle prices")

    simulate_parser = sub.add_parser("simulate", help="Run a scenario file")
    simulate_parser.add_argument("scenario", help="Path to a scenario YAML file")
    simulate_parser.add_argument(
        "--live-prices",
        action="store_true",
        help="Refresh prices from the configured feed before running",
    )

    return parser


def _print_reserves(stack: ProtocolStack) -> None:
    pool, fhe = stack.pool, stack.fhe
    print(
        f"{'SYMBOL':<8} {'ACTIVE':<7} {'BORROW':<7} {'COLL':<5} {'CF':>6} "
        f"{'PAUSED':<7} {'SUPPLIED':>16} {'BORROWED':>16} {'LIQUIDITY':>16}"
    )
    for asset in pool.get_reserve_list():
        data = pool.get_reserve_data(asset)
        symbol = pool.settlement_token(asset).symbol
        print(
            f"{symbol:<8} {str(data.active):<7} {str(data.borrowing_enabled):<7} "
            f"{str(data.is_collateral):<5} {data.collateral_factor:>6} {str(data.paused):<7} "
            f"{fhe.public_decrypt(data.total_supplied):>16,} "
            f"{fhe.public_decrypt(data.total_borrowed):>16,} "
            f"{fhe.public_decrypt(data.available_liquidity):>16,}"
        )


def _print_prices(stack: ProtocolStack) -> None:
    for symbol, token in sorted(stack.tokens.items()):
        price = stack.oracle.get_price(token.address)
        shown = f"${price / PRICE_PRECISION:,.4f}" if price else "unset"
        print(f"{symbol:<8} {shown}")


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    stack = build_protocol(config)

    if args.command == "reserves":
        _print_reserves(stack)
    elif args.command == "prices":
        await stack.refresh_prices()
        _print_prices(stack)
    elif args.command == "simulate":
        scenario = load_scenario(args.scenario)
        if args.live_prices:
            await stack.refresh_prices()
        report = run_scenario(stack, scenario)
        print(report.format())
        if not report.succeeded:
            sys.exit(1)
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    asyncio.run(_run(args))
