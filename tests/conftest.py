"""Shared fixtures: a fake chain, compiled game artifacts, a deployed set."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from croupier.client.session import GameSession
from croupier.deploy.artifacts import ArtifactStore
from croupier.deploy.orchestrator import DeploymentOrchestrator

from fakes import DEPLOYER, FakeChain, FakeWallet, write_build_dir


@pytest.fixture()
def chain() -> FakeChain:
    chain = FakeChain()
    chain.fund(DEPLOYER, 100 * 10**18)
    return chain


@pytest.fixture()
def wallet(chain: FakeChain) -> FakeWallet:
    return FakeWallet(chain)


@pytest.fixture()
def build_dir(tmp_path: Path) -> Path:
    return write_build_dir(tmp_path / "artifacts")


@pytest.fixture()
def store(tmp_path: Path) -> ArtifactStore:
    return ArtifactStore(tmp_path / "contract_data")


@pytest.fixture()
def orchestrator(
    wallet: FakeWallet, store: ArtifactStore, build_dir: Path, tmp_path: Path
) -> DeploymentOrchestrator:
    return DeploymentOrchestrator(
        wallet,
        store,
        build_dir,
        tmp_path / "deployment-summary.json",
        summary_path=tmp_path / "DEPLOYMENT_SUMMARY.md",
        explorer_url="https://testnet.monadexplorer.com",
        poll_interval=0.01,
    )


@pytest.fixture()
def deployed(orchestrator: DeploymentOrchestrator):
    """Run a full deployment against the fake chain."""
    return asyncio.run(orchestrator.run())


@pytest.fixture()
def session(wallet: FakeWallet, store: ArtifactStore, deployed) -> GameSession:
    return GameSession(
        wallet,
        store,
        poll_interval=0.01,
        event_poll_interval=0.01,
    )
