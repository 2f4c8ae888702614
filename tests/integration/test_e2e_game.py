"""
End-to-end: deploy the game suite, bind a session and play.

  deploy -> record + artifacts -> initialize -> bet -> events -> cash out

Runs entirely against the in-memory chain.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from croupier.client.events import ContractEvent
from croupier.client.session import GameSession
from croupier.constants import GAME_CONTRACTS
from croupier.deploy.artifacts import ArtifactStore
from croupier.deploy.orchestrator import DeploymentOrchestrator

from fakes import DEPLOYER, PLAYER, FakeChain, FakeWallet


def test_deploy_then_play(
    orchestrator: DeploymentOrchestrator,
    wallet: FakeWallet,
    chain: FakeChain,
    store: ArtifactStore,
    tmp_path: Path,
) -> None:
    result = asyncio.run(orchestrator.run())

    record = json.loads((tmp_path / "deployment-summary.json").read_text())
    assert len(record["contracts"]) == 5
    assert sorted(p.name for p in (tmp_path / "contract_data").iterdir()) == sorted(
        [f"{n}.json" for n in GAME_CONTRACTS] + [f"{n}-address.json" for n in GAME_CONTRACTS]
    )

    session = GameSession(wallet, store, poll_interval=0.01, event_poll_interval=0.01)
    events: list[ContractEvent] = []

    async def play():
        info = await session.initialize_web3()
        assert info.contracts == GAME_CONTRACTS

        sub = await session.listen_to_contract_events("DiceRoll", "BetPlaced", events.append)
        bet = await session.place_bet("DiceRoll", 0.05)
        for poller in session.pollers():
            await poller.poll_once()
        await sub.drain()

        in_game = await session.get_player_balance("DiceRoll", DEPLOYER)
        cash_out = await session.cash_out("DiceRoll")
        after = await session.get_player_balance("DiceRoll", DEPLOYER)
        await session.aclose()
        return bet, in_game, cash_out, after

    bet, in_game, cash_out, after = asyncio.run(play())

    assert bet.settled
    assert bet.tx_hash.startswith("0x")
    assert bet.receipt["to"] == result.record.contracts["DiceRoll"]
    assert in_game == "0.05"
    assert cash_out.settled
    assert after == "0.0"
    assert [e.args["amount"] for e in events] == [5 * 10**16]


def test_player_on_wrong_network_is_switched(
    deployed, chain: FakeChain, store: ArtifactStore
) -> None:
    chain.fund(PLAYER, 5 * 10**18)
    player = FakeWallet(chain, address=PLAYER, chain_id=143)
    session = GameSession(player, store, poll_interval=0.01)

    async def play():
        await session.initialize_web3()
        return await session.place_bet("HighLow", "1")

    outcome = asyncio.run(play())
    assert outcome.settled
    assert player.chain_id == 10143
    assert chain.games[deployed.record.contracts["HighLow"]][PLAYER.lower()] == 10**18
