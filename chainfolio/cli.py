"""Command-line interface for the multi-chain portfolio engine."""
from __future__ import annotations

import argparse
import asyncio
import json
import sys

from .chains.registry import ChainRegistry
from .config import AppConfig, load_config
from .errors import ChainfolioError, RpcError
from .logging_setup import configure_logging
from .models import HealthAssessment, PortfolioSnapshot, RiskProfile
from .rpc.gateway import RpcGateway
from .server import run_server
from .services import InsightOrchestrator

NETWORK_CHOICES = ["mainnet", "testnet", "all"]


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="chainfolio",
        description="Multi-chain wallet balances, prices and health score",
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

    portfolio_parser = sub.add_parser(
        "portfolio", help="Aggregate balances and score a wallet"
    )
    portfolio_parser.add_argument("address", help="0x-prefixed wallet address")
    portfolio_parser.add_argument(
        "--chains",
        type=int,
        nargs="+",
        default=None,
        help="Chain ids to query (default: every chain of --network)",
    )
    portfolio_parser.add_argument(
        "--network", choices=NETWORK_CHOICES, default="mainnet"
    )
    portfolio_parser.add_argument(
        "--risk",
        choices=[p.value for p in RiskProfile],
        default=RiskProfile.BALANCED.value,
        help="Risk profile used for the health score",
    )
    portfolio_parser.add_argument(
        "--json", action="store_true", help="Print machine-readable JSON"
    )

    chains_parser = sub.add_parser("chains", help="List supported chains")
    chains_parser.add_argument("--network", choices=NETWORK_CHOICES, default="all")

    probe_parser = sub.add_parser(
        "probe", help="Query the latest block number on every chain"
    )
    probe_parser.add_argument("--network", choices=NETWORK_CHOICES, default="all")

    serve_parser = sub.add_parser("serve", help="Run the HTTP server")
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")

    return parser


def _print_portfolio(snapshot: PortfolioSnapshot, health: HealthAssessment) -> None:
    print(f"Wallet: {snapshot.wallet_address}")
    for line in snapshot.asset_lines:
        if line.fetch_error:
            print(f"  [{line.chain_id}] {line.symbol}: error ({line.fetch_error})")
            continue
        value = f"${line.usd_value:,.2f}" if line.usd_value is not None else "n/a"
        print(f"  [{line.chain_id}] {line.symbol}: {line.amount:f} ({value})")
    print(f"Total value: ${snapshot.total_usd_value:,.2f}")
    print(f"Connected chains: {snapshot.connected_chain_count}")
    print(f"Health score: {health.score}/100 - {health.explanation}")


async def _portfolio(config: AppConfig, args: argparse.Namespace) -> None:
    orchestrator = InsightOrchestrator.from_config(config)
    snapshot = await orchestrator.get_portfolio(
        args.address, args.chains, network=args.network
    )
    health = orchestrator.score_health(snapshot, args.risk)
    if args.json:
        print(
            json.dumps(
                {"portfolio": snapshot.to_dict(), "health": health.to_dict()}, indent=2
            )
        )
    else:
        _print_portfolio(snapshot, health)


async def _probe(config: AppConfig, network: str) -> None:
    registry = ChainRegistry.from_config(config.chains)
    gateway = RpcGateway.from_config(config)
    descriptors = [registry.describe(c) for c in registry.chain_ids(network)]

    async def _block(chain_id: int) -> str:
        try:
            result = await gateway.call(chain_id, "eth_blockNumber", [])
            return f"block {int(result, 16)}"
        except (RpcError, TypeError, ValueError) as e:
            return f"FAILED ({e})"

    results = await asyncio.gather(*(_block(d.chain_id) for d in descriptors))
    for descriptor, outcome in zip(descriptors, results):
        print(f"{descriptor.name} ({descriptor.chain_id}): {outcome}")


def _list_chains(config: AppConfig, network: str) -> None:
    registry = ChainRegistry.from_config(config.chains)
    for chain_id in registry.chain_ids(network):
        d = registry.describe(chain_id)
        print(f"{d.chain_id:>9}  {d.name:<18} {d.native_symbol:<6} {d.network_class.value}")


async def _run(config: AppConfig, args: argparse.Namespace) -> None:
    """Execute the selected async command."""
    if args.command == "portfolio":
        await _portfolio(config, args)
    elif args.command == "probe":
        await _probe(config, args.network)
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

    configure_logging(args.log_level)
    config = load_config(args.config)

    try:
        if args.command == "serve":
            run_server(config, host=args.host, port=args.port)
        elif args.command == "chains":
            _list_chains(config, args.network)
        else:
            asyncio.run(_run(config, args))
    except ChainfolioError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
