"""
explorer/cli.py - Command-line access to the explorer data layer.

Usage:
    explorer latest-blocks --limit 10
    explorer blocks --cursor 20
    explorer block 12345
    explorer --backend mock tx <hash>

Results are printed as JSON using the presentation field names.
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional

import click

from core.constants import BackendKind
from core.exceptions import ExplorerError
from core.logging import get_logger, set_global_context, setup_logging
from config import load_settings
from explorer.provider import ExplorerProvider

logger = get_logger("explorer.cli")


def _render(result: Any) -> Any:
    if result is None:
        return None
    if isinstance(result, list):
        return [item.to_dict() for item in result]
    return result.to_dict()


def _execute(ctx: click.Context, call: Callable[[ExplorerProvider], Awaitable[Any]]) -> None:
    """Build a provider, run one operation, print the JSON result."""
    opts = ctx.obj

    async def runner() -> Any:
        async with ExplorerProvider(load_settings(), backend=opts["backend"]) as provider:
            return await call(provider)

    try:
        result = asyncio.run(runner())
    except ExplorerError as e:
        logger.error(
            "Explorer query failed",
            extra={"context": {"code": e.code.value, "error": e.message, **e.details}},
        )
        click.echo(str(e), err=True)
        ctx.exit(1)

    click.echo(json.dumps(_render(result), indent=opts["indent"]))


@click.group()
@click.option(
    "--backend",
    "-b",
    default=BackendKind.AUTO.value,
    type=click.Choice([k.value for k in BackendKind]),
    help="Force a backend instead of configuration precedence",
)
@click.option(
    "--deadline",
    "-d",
    default=None,
    type=float,
    help="Per-operation deadline in seconds",
)
@click.option(
    "--log-level",
    "-l",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=False,
    help="Use JSON log format",
)
@click.option("--compact", is_flag=True, help="Print JSON on a single line")
@click.pass_context
def cli(
    ctx: click.Context,
    backend: str,
    deadline: Optional[float],
    log_level: str,
    json_logs: bool,
    compact: bool,
) -> None:
    """Chain explorer data access."""
    setup_logging(level=log_level, json_output=json_logs)
    set_global_context(service="explorer-cli")
    ctx.ensure_object(dict)
    ctx.obj.update({
        "backend": backend,
        "deadline": deadline,
        "indent": None if compact else 2,
    })


@cli.command("latest-blocks")
@click.option("--limit", "-n", default=10, show_default=True, help="Number of blocks")
@click.pass_context
def latest_blocks(ctx: click.Context, limit: int) -> None:
    """Most recent blocks, newest first."""
    deadline = ctx.obj["deadline"]
    _execute(ctx, lambda p: p.get_latest_blocks(limit, deadline_s=deadline))


@cli.command("latest-txs")
@click.option("--limit", "-n", default=10, show_default=True, help="Number of transactions")
@click.pass_context
def latest_txs(ctx: click.Context, limit: int) -> None:
    """Most recent transactions, newest first."""
    deadline = ctx.obj["deadline"]
    _execute(ctx, lambda p: p.get_latest_transactions(limit, deadline_s=deadline))


@cli.command("blocks")
@click.option("--cursor", "-c", default=None, help="Cursor from a previous page")
@click.pass_context
def blocks(ctx: click.Context, cursor: Optional[str]) -> None:
    """One page of blocks."""
    deadline = ctx.obj["deadline"]
    _execute(ctx, lambda p: p.get_blocks_page(cursor, deadline_s=deadline))


@cli.command("block")
@click.argument("identifier")
@click.pass_context
def block(ctx: click.Context, identifier: str) -> None:
    """Block by height or hash."""
    deadline = ctx.obj["deadline"]
    _execute(ctx, lambda p: p.get_block_by_hash_or_height(identifier, deadline_s=deadline))


@cli.command("txs")
@click.option("--cursor", "-c", default=None, help="Cursor from a previous page")
@click.pass_context
def txs(ctx: click.Context, cursor: Optional[str]) -> None:
    """One page of transactions."""
    deadline = ctx.obj["deadline"]
    _execute(ctx, lambda p: p.get_transactions_page(cursor, deadline_s=deadline))


@cli.command("tx")
@click.argument("tx_hash")
@click.pass_context
def tx(ctx: click.Context, tx_hash: str) -> None:
    """Transaction by hash."""
    deadline = ctx.obj["deadline"]
    _execute(ctx, lambda p: p.get_transaction_by_hash(tx_hash, deadline_s=deadline))


@cli.command("address")
@click.argument("address")
@click.pass_context
def address(ctx: click.Context, address: str) -> None:
    """Address summary."""
    deadline = ctx.obj["deadline"]
    _execute(ctx, lambda p: p.get_address_summary(address, deadline_s=deadline))


@cli.command("block-txs")
@click.argument("identifier")
@click.option("--cursor", "-c", default=None, help="Cursor from a previous page")
@click.pass_context
def block_txs(ctx: click.Context, identifier: str, cursor: Optional[str]) -> None:
    """One page of a block's transactions."""
    deadline = ctx.obj["deadline"]
    _execute(
        ctx,
        lambda p: p.get_block_transactions(identifier, cursor, deadline_s=deadline),
    )


def main() -> None:
    """Console entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
