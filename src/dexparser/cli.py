"""
CLI entry point for the Solana DEX parser.

Usage:
    dexparser parse 5h3k...Sig
    dexparser parse-file tx.json --json
    dexparser programs --tag amm
    dexparser tokens
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import RPC_URL_ENV, ParseConfig, ParseType, RpcConfig
from .constants import DEX_PROGRAMS, TOKEN_REGISTRY, resolve_token
from .dex_parser import DexParser
from .fetchers import FetchFilter, RpcClient
from .models import ParseResult, TokenInfo

console = Console()


def load_env():
    """Load .env file from parent directories."""
    current = Path.cwd()
    for _ in range(5):
        env_file = current / ".env"
        if env_file.exists():
            with open(env_file) as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith("#") and "=" in line:
                        key, value = line.split("=", 1)
                        os.environ.setdefault(key.strip(), value.strip())
            break
        current = current.parent


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _symbol(mint: str) -> str:
    meta = resolve_token(mint) if mint else None
    if meta is not None:
        return meta.symbol
    return f"{mint[:6]}...{mint[-4:]}" if len(mint) > 12 else mint


def _token_cell(token: Optional[TokenInfo]) -> str:
    if token is None:
        return "-"
    return f"{token.amount:.6f} {_symbol(token.mint)}"


def render_result(result: ParseResult) -> None:
    status = "[green]ok[/green]" if result.state else f"[red]{result.msg}[/red]"
    console.print(Panel(
        f"[bold cyan]{result.signature or '-'}[/bold cyan]\n\n"
        f"[dim]Slot: {result.slot} | Status: {result.tx_status.value} | "
        f"Fee: {result.fee.ui_amount} SOL | CU: {result.compute_units}[/dim]\n"
        f"Parse: {status}",
        title="[bold]Transaction[/bold]",
    ))

    if result.aggregate_trade is not None:
        trade = result.aggregate_trade
        console.print(
            f"[bold]{trade.type.value}[/bold] {_token_cell(trade.input_token)} -> "
            f"{_token_cell(trade.output_token)} [dim]via {trade.route or trade.amm}[/dim]"
        )

    if result.trades:
        table = Table(title="Trades")
        table.add_column("Idx", style="dim")
        table.add_column("Type", style="cyan")
        table.add_column("Input", justify="right")
        table.add_column("Output", justify="right")
        table.add_column("AMM")
        table.add_column("Pool", style="dim")
        for trade in result.trades:
            table.add_row(
                trade.idx,
                trade.type.value,
                _token_cell(trade.input_token),
                _token_cell(trade.output_token),
                trade.amm,
                trade.pool[0][:16] + "..." if trade.pool else "-",
            )
        console.print(table)

    if result.liquidities:
        table = Table(title="Liquidity")
        table.add_column("Idx", style="dim")
        table.add_column("Type", style="cyan")
        table.add_column("AMM")
        table.add_column("Token 0", justify="right")
        table.add_column("Token 1", justify="right")
        for pool in result.liquidities:
            table.add_row(
                pool.idx,
                pool.type.value,
                pool.amm,
                f"{pool.token0_amount or 0:.6f} {_symbol(pool.token0_mint or '')}",
                f"{pool.token1_amount or 0:.6f} {_symbol(pool.token1_mint or '')}",
            )
        console.print(table)

    if result.transfers:
        table = Table(title="Transfers")
        table.add_column("Idx", style="dim")
        table.add_column("Type", style="cyan")
        table.add_column("Amount", justify="right")
        table.add_column("Source", style="dim")
        table.add_column("Destination", style="dim")
        for transfer in result.transfers:
            info = transfer.info
            table.add_row(
                transfer.idx,
                transfer.type,
                f"{info.token_amount.ui_amount or 0:.6f} {_symbol(info.mint)}",
                info.source[:16] + "..." if info.source else "-",
                info.destination[:16] + "..." if info.destination else "-",
            )
        console.print(table)

    changes = Table(title="Signer Balance Changes")
    changes.add_column("Token", style="cyan")
    changes.add_column("Before", justify="right")
    changes.add_column("After", justify="right")
    changes.add_column("Change", justify="right")
    if result.sol_balance_change is not None:
        sol = result.sol_balance_change
        changes.add_row("SOL", str(sol.pre.ui_amount), str(sol.post.ui_amount), str(sol.change.ui_amount))
    for mint, change in (result.token_balance_change or {}).items():
        changes.add_row(_symbol(mint), str(change.pre.ui_amount), str(change.post.ui_amount),
                        str(change.change.ui_amount))
    if changes.row_count:
        console.print(changes)

    for event in result.meme_events:
        console.print(f"[yellow]{event.type.value}[/yellow] {_symbol(event.base_mint)} by {event.user}")
    for event in result.alt_events:
        console.print(f"[magenta]{event.type}[/magenta] {event.alt_account}")


def _emit(result: ParseResult, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        render_result(result)


def _build_config(args: argparse.Namespace, client: Optional[RpcClient] = None) -> ParseConfig:
    options = dict(
        program_ids=args.program or [],
        ignore_program_ids=args.ignore_program or [],
        aggregate_trades=not args.hops,
    )
    config = ParseConfig.trades_only(**options) if args.trades_only else ParseConfig(**options)
    if args.liquidity_only:
        config.parse_type = ParseType.parse_liquidity_only()
    elif args.hops:
        # the parse-type presets also request the aggregate, so drop that flag too
        config.parse_type.aggregate_trade = False
    if client is not None:
        config.alts_fetcher = client.alts_fetcher(FetchFilter.ALL)
    return config


def parse_signature(args: argparse.Namespace) -> int:
    """Fetch a transaction over RPC and parse it."""
    load_env()
    rpc_config = RpcConfig(rpc_url=args.rpc_url or os.environ.get(RPC_URL_ENV))

    try:
        with RpcClient(rpc_config) as client:
            tx = client.get_transaction(args.signature)
            if tx is None:
                console.print(f"[red]Transaction not found: {args.signature}[/red]")
                return 1
            result = DexParser().parse_all(tx, _build_config(args, client))
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    _emit(result, args.json)
    return 0 if result.state else 1


def parse_file(args: argparse.Namespace) -> int:
    """Parse a saved getTransaction result."""
    path = Path(args.path)
    if not path.exists():
        console.print(f"[red]Error: file not found: {path}[/red]")
        return 1
    try:
        payload: Dict[str, Any] = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        console.print(f"[red]Error: invalid JSON: {e}[/red]")
        return 1

    # Accept a raw JSON-RPC response as well as its result
    if "result" in payload and "jsonrpc" in payload:
        payload = payload["result"]

    result = DexParser().parse_all(payload, _build_config(args))
    _emit(result, args.json)
    return 0 if result.state else 1


def list_programs(args: argparse.Namespace) -> int:
    """List known programs."""
    table = Table(title="Known Programs")
    table.add_column("Name", style="cyan")
    table.add_column("Tags")
    table.add_column("Program ID", style="dim")

    for program in DEX_PROGRAMS.all():
        if args.tag and args.tag not in program.tags:
            continue
        table.add_row(program.name, ", ".join(program.tags), program.id)

    console.print(table)
    return 0


def list_tokens(args: argparse.Namespace) -> int:
    """List known tokens."""
    table = Table(title="Known Tokens")
    table.add_column("Symbol", style="cyan")
    table.add_column("Name")
    table.add_column("Decimals", justify="right")
    table.add_column("Mint", style="dim")

    for info in TOKEN_REGISTRY.values():
        table.add_row(info.symbol, info.name, str(info.decimals), info.mint)

    console.print(table)
    return 0


def _add_parse_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    parser.add_argument(
        "--program", "-p",
        action="append",
        help="Only parse transactions touching this program id (repeatable)"
    )
    parser.add_argument(
        "--ignore-program",
        action="append",
        help="Skip this program id when decoding (repeatable)"
    )
    parser.add_argument("--hops", action="store_true", help="Report every hop instead of the merged route")
    scope = parser.add_mutually_exclusive_group()
    scope.add_argument("--trades-only", action="store_true", help="Only decode trades")
    scope.add_argument("--liquidity-only", action="store_true", help="Only decode liquidity events")


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="dexparser",
        description="Parse DEX trades, liquidity events and transfers from Solana transactions",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parse_parser = subparsers.add_parser("parse", help="Fetch a transaction by signature and parse it")
    parse_parser.add_argument("signature", type=str, help="Transaction signature")
    parse_parser.add_argument(
        "--rpc-url",
        type=str,
        help=f"RPC endpoint (default: ${RPC_URL_ENV} or mainnet-beta)"
    )
    _add_parse_options(parse_parser)

    file_parser = subparsers.add_parser("parse-file", help="Parse a getTransaction JSON file")
    file_parser.add_argument("path", type=str, help="Path to the JSON file")
    _add_parse_options(file_parser)

    programs_parser = subparsers.add_parser("programs", help="List known programs")
    programs_parser.add_argument("--tag", type=str, help="Only programs with this tag (amm, route, bot...)")

    subparsers.add_parser("tokens", help="List known tokens")

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    if args.command == "parse":
        return parse_signature(args)
    elif args.command == "parse-file":
        return parse_file(args)
    elif args.command == "programs":
        return list_programs(args)
    elif args.command == "tokens":
        return list_tokens(args)
    else:
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
