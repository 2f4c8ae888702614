"""
croupier CLI

Commands:
  deploy    - Deploy every game contract and write the artifacts
  addresses - Show stored contract addresses
  status    - Check which stored contracts have code on chain
  whoami    - Show the configured wallet address
  balance   - Show wallet and in-game balances
  bet       - Place a bet on a game contract
  cashout   - Cash out winnings from a game contract

Configuration comes from the environment or a .env file: PRIVATE_KEY,
MONAD_NETWORK, MONAD_RPC_URL, CROUPIER_ARTIFACTS_DIR, CROUPIER_BUILD_DIR,
CROUPIER_RECORD_PATH, CROUPIER_SUMMARY_PATH.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Optional

import click

from .chain.keys import get_account, load_private_key
from .chain.wallet import LocalWallet
from .config import Settings, load_settings
from .deploy.artifacts import ArtifactStore
from .deploy.orchestrator import DeploymentOrchestrator, DeploymentResult
from .client.session import GameSession
from .constants import DEFAULT_MAX_BET, DEPLOY_CONFIRMATION_TIMEOUT
from .errors import CroupierError

VERSION = "0.1.0"


def _make_wallet(settings: Settings, private_key: str, approve: Any = None) -> LocalWallet:
    return LocalWallet.for_network(
        settings.network,
        get_account(private_key),
        rpc_url=settings.rpc_url,
        approve=approve,
    )


def _settings(ctx: click.Context) -> Settings:
    """Load settings, or exit 1."""
    try:
        return load_settings(ctx.obj.get("env_file"))
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)


def _setup(ctx: click.Context) -> tuple[Settings, str]:
    """Load settings and the private key, or exit 1."""
    settings = _settings(ctx)
    try:
        private_key = load_private_key(ctx.obj.get("env_file"))
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)
    return settings, private_key


def _fail(exc: Exception) -> None:
    code = exc.exit_code if isinstance(exc, CroupierError) else 1
    click.secho(f"ERROR: {exc}", fg="red")
    sys.exit(code)


# ============ Main CLI Group ============


@click.group()
@click.version_option(version=VERSION, prog_name="croupier")
@click.option("--env-file", type=click.Path(path_type=Path), default=None, help="Path to .env file")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx: click.Context, env_file: Optional[Path], verbose: bool) -> None:
    """croupier: Monad game contract deployment and client."""
    ctx.ensure_object(dict)
    ctx.obj["env_file"] = env_file
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s" if not verbose else "%(levelname)s %(name)s: %(message)s",
    )


# ============ Deploy ============


@cli.command()
@click.option("--only-missing", is_flag=True, help="Keep contracts that are still deployed")
@click.option(
    "--timeout",
    default=DEPLOY_CONFIRMATION_TIMEOUT,
    type=float,
    show_default=True,
    help="Seconds to wait for each deployment to be mined",
)
@click.pass_context
def deploy(ctx: click.Context, only_missing: bool, timeout: float) -> None:
    """Deploy all game contracts to the configured Monad network."""
    click.echo("=== Monad Network Deployment ===")
    click.echo("")

    settings, private_key = _setup(ctx)
    wallet = _make_wallet(settings, private_key)
    orchestrator = DeploymentOrchestrator(
        wallet,
        ArtifactStore(settings.artifacts_dir),
        settings.build_dir,
        settings.record_path,
        summary_path=settings.summary_path,
        explorer_url=settings.network.block_explorer_url,
        confirmation_timeout=timeout,
        only_missing=only_missing,
    )

    async def _run() -> DeploymentResult:
        try:
            return await orchestrator.run()
        finally:
            await wallet.aclose()

    try:
        result = asyncio.run(_run())
    except Exception as exc:
        click.secho(f"Deployment failed: {exc}", fg="red")
        sys.exit(1)

    click.echo("")
    click.echo("Deployed contracts:")
    for name, address in result.record.contracts.items():
        suffix = " (kept)" if name in result.kept else ""
        click.echo(f"  {name}: {address}{suffix}")

    if result.failures:
        click.echo("")
        click.secho("Failed contracts:", fg="yellow", bold=True)
        for name, reason in result.failures.items():
            click.secho(f"  {name}: {reason}", fg="yellow")

    click.echo("")
    click.echo(f"Deployment record: {settings.record_path}")
    click.echo(f"Summary: {settings.summary_path}")
    click.echo(f"Explorer: {settings.network.block_explorer_url}")
    click.echo("")
    if result.complete:
        click.secho("Deployment completed!", fg="green")
    else:
        click.secho(
            f"Deployment completed with {len(result.failures)} failure(s).", fg="yellow"
        )


# ============ Inspection ============


@cli.command()
@click.pass_context
def addresses(ctx: click.Context) -> None:
    """Show stored contract addresses."""
    settings = _settings(ctx)
    session = GameSession(None, ArtifactStore(settings.artifacts_dir), network=settings.network)
    for name, address in session.get_contract_addresses().items():
        click.echo(f"  {name}: {address or '(not deployed)'}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Check which stored contracts have code on chain."""
    settings, private_key = _setup(ctx)
    wallet = _make_wallet(settings, private_key)
    session = GameSession(wallet, ArtifactStore(settings.artifacts_dir), network=settings.network)

    async def _run() -> dict[str, bool]:
        try:
            return {
                name: await session.is_contract_deployed(name)
                for name in session.registry.contract_names
            }
        finally:
            await wallet.aclose()

    for name, deployed in asyncio.run(_run()).items():
        if deployed:
            click.secho(f"  {name}: deployed", fg="green")
        else:
            click.secho(f"  {name}: missing", fg="red")


@cli.command()
@click.pass_context
def whoami(ctx: click.Context) -> None:
    """Show the configured wallet address."""
    _, private_key = _setup(ctx)
    click.echo(f"Address: {get_account(private_key).address}")


@cli.command()
@click.argument("contract", required=False)
@click.pass_context
def balance(ctx: click.Context, contract: Optional[str]) -> None:
    """Show wallet balance, and the in-game balance for CONTRACT."""
    settings, private_key = _setup(ctx)
    wallet = _make_wallet(settings, private_key)
    session = GameSession(wallet, ArtifactStore(settings.artifacts_dir), network=settings.network)

    async def _run() -> tuple[str, str, Optional[str]]:
        try:
            info = await session.initialize_web3()
            wallet_balance = await session.get_balance(info.account)
            game_balance = (
                await session.get_player_balance(contract, info.account) if contract else None
            )
            return info.account, wallet_balance, game_balance
        finally:
            await session.aclose()
            await wallet.aclose()

    try:
        account, wallet_balance, game_balance = asyncio.run(_run())
    except CroupierError as exc:
        _fail(exc)
        return

    symbol = settings.network.currency_symbol
    click.echo(f"  Account: {account}")
    click.echo(f"  Wallet:  {wallet_balance} {symbol}")
    if contract:
        click.echo(f"  {contract}: {game_balance} {symbol}")


# ============ Transactions ============


def _approval(yes: bool) -> Any:
    if yes:
        return None

    def approve(tx: dict[str, Any]) -> bool:
        value = int(tx.get("value", "0x0"), 16)
        return click.confirm(f"Send transaction to {tx.get('to')} with value {value} wei?")

    return approve


@cli.command()
@click.argument("contract")
@click.argument("amount")
@click.option("--max-bet", default=str(DEFAULT_MAX_BET), show_default=True, help="Maximum bet")
@click.option("--yes", "-y", is_flag=True, help="Sign without asking")
@click.pass_context
def bet(ctx: click.Context, contract: str, amount: str, max_bet: str, yes: bool) -> None:
    """Place a bet of AMOUNT on CONTRACT."""
    settings, private_key = _setup(ctx)
    wallet = _make_wallet(settings, private_key, approve=_approval(yes))
    session = GameSession(
        wallet, ArtifactStore(settings.artifacts_dir), network=settings.network, max_bet=max_bet
    )

    async def _run():
        try:
            await session.initialize_web3()
            return await session.place_bet(contract, amount)
        finally:
            await session.aclose()
            await wallet.aclose()

    try:
        outcome = asyncio.run(_run())
    except CroupierError as exc:
        _fail(exc)
        return

    click.secho("SUCCESS: Bet placed!", fg="green")
    click.echo(f"  TX: {outcome.tx_hash}")


@cli.command()
@click.argument("contract")
@click.option("--yes", "-y", is_flag=True, help="Sign without asking")
@click.pass_context
def cashout(ctx: click.Context, contract: str, yes: bool) -> None:
    """Cash out winnings from CONTRACT."""
    settings, private_key = _setup(ctx)
    wallet = _make_wallet(settings, private_key, approve=_approval(yes))
    session = GameSession(wallet, ArtifactStore(settings.artifacts_dir), network=settings.network)

    async def _run():
        try:
            await session.initialize_web3()
            return await session.cash_out(contract)
        finally:
            await session.aclose()
            await wallet.aclose()

    try:
        outcome = asyncio.run(_run())
    except CroupierError as exc:
        _fail(exc)
        return

    click.secho("SUCCESS: Cashout confirmed!", fg="green")
    click.echo(f"  TX: {outcome.tx_hash}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
