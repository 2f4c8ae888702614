"""
Deployment orchestrator.

Deploys each listed contract in order, one at a time. A contract that
fails to deploy, confirm or verify is logged and left out of the record;
the run carries on with the next name. Only a missing identity or a zero
deployer balance stops the run before anything is deployed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Sequence

from ..chain.abi import artifact_bytecode, load_compiled_artifact
from ..chain.tx import deploy_contract, has_code
from ..chain.wallet import WalletProvider
from ..client.guard import NetworkGuard, SigningIdentity
from ..constants import (
    DEPLOY_CONFIRMATION_TIMEOUT,
    DEPLOY_GAS_LIMIT,
    GAME_CONTRACTS,
    RECEIPT_POLL_INTERVAL,
)
from ..errors import ArtifactError, DeploymentVerificationError
from ..utils import utc_now_iso
from .artifacts import ArtifactStore, ContractDescriptor, DeploymentRecord
from .summary import render_summary, write_summary

logger = logging.getLogger(__name__)


@dataclass
class DeploymentResult:
    record: DeploymentRecord
    deployed: dict[str, ContractDescriptor] = field(default_factory=dict)
    kept: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    summary: str = ""

    @property
    def complete(self) -> bool:
        return not self.failures


class DeploymentOrchestrator:
    """
    Args:
        provider: Wallet that signs the creation transactions
        store: Where artifact pairs are written
        build_dir: Compiled contract output (Hardhat or Foundry layout)
        record_path: JSON deployment record, replaced every run
        summary_path: Markdown summary; None skips it
        contract_names: Contracts to deploy, in order
        only_missing: Keep contracts whose stored address still has code
            on the target chain instead of redeploying them
    """

    def __init__(
        self,
        provider: Optional[WalletProvider],
        store: ArtifactStore,
        build_dir: Path,
        record_path: Path,
        *,
        summary_path: Optional[Path] = None,
        contract_names: Sequence[str] = GAME_CONTRACTS,
        explorer_url: Optional[str] = None,
        gas_limit: int = DEPLOY_GAS_LIMIT,
        confirmation_timeout: Optional[float] = DEPLOY_CONFIRMATION_TIMEOUT,
        poll_interval: float = RECEIPT_POLL_INTERVAL,
        only_missing: bool = False,
    ) -> None:
        self.provider = provider
        self.store = store
        self.build_dir = Path(build_dir)
        self.record_path = Path(record_path)
        self.summary_path = Path(summary_path) if summary_path else None
        self.contract_names = tuple(contract_names)
        self.explorer_url = explorer_url
        self.gas_limit = gas_limit
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        self.only_missing = only_missing
        self.guard = NetworkGuard(provider)

    async def run(self) -> DeploymentResult:
        """
        Deploy every listed contract.

        Raises:
            NoWalletError / NotConnectedError: No deployer identity
            InsufficientBalanceError: Deployer balance is zero
        """
        identity = await self.guard.resolve_identity()
        logger.info(
            "Deploying to network: %s (Chain ID: %d)",
            identity.network.name,
            identity.network.chain_id,
        )
        logger.info("Deploying from address: %s", identity.address)
        await self.guard.ensure_funded(identity)

        deployed: dict[str, ContractDescriptor] = {}
        kept: list[str] = []
        failures: dict[str, str] = {}

        for name in self.contract_names:
            try:
                existing = await self._still_deployed(name) if self.only_missing else None
                if existing is not None:
                    logger.info("%s already deployed, keeping it", name)
                    deployed[name] = existing
                    kept.append(name)
                    continue

                logger.info("Deploying %s contract...", name)
                deployed[name] = await self.deploy_one(name, identity)
            except Exception as exc:
                logger.error("Failed to deploy %s: %s", name, exc)
                logger.debug("Full error for %s", name, exc_info=True)
                failures[name] = str(exc)

        record = DeploymentRecord(
            network=identity.network.name,
            chain_id=identity.network.chain_id,
            deployer=identity.address,
            timestamp=utc_now_iso(),
            contracts={name: d.address for name, d in deployed.items()},
        )
        self.store.save_record(record, self.record_path)
        logger.info("Deployment summary saved to: %s", self.record_path)

        summary = render_summary(record, failures, self.explorer_url)
        if self.summary_path is not None:
            write_summary(self.summary_path, summary)

        return DeploymentResult(
            record=record,
            deployed=deployed,
            kept=kept,
            failures=failures,
            summary=summary,
        )

    async def deploy_one(self, name: str, identity: SigningIdentity) -> ContractDescriptor:
        """
        Deploy, confirm and verify one contract, then persist its artifacts.

        Raises:
            DeploymentVerificationError: No code at the deployed address
        """
        artifact = load_compiled_artifact(name, self.build_dir)
        bytecode = artifact_bytecode(artifact)

        logger.info("Waiting for %s deployment confirmation...", name)
        result = await deploy_contract(
            self.provider,
            identity.address,
            bytecode,
            gas_limit=self.gas_limit,
            timeout=self.confirmation_timeout,
            poll_interval=self.poll_interval,
        )
        address = result["contract_address"]
        logger.info("%s deployed to: %s", name, address)

        if not await has_code(self.provider, address):
            raise DeploymentVerificationError(
                f"Contract deployment verification failed - no code at {address}",
                operation="deploy",
                contract=name,
            )
        logger.info("%s deployment verified", name)

        return self.store.save(name, address, artifact)

    async def _still_deployed(self, name: str) -> Optional[ContractDescriptor]:
        """Stored descriptor for ``name`` if its address still has code, else None."""
        if not self.store.has(name):
            return None
        try:
            descriptor = self.store.load(name)
        except ArtifactError as exc:
            logger.warning("Ignoring stored artifact for %s: %s", name, exc)
            return None
        if await has_code(self.provider, descriptor.address):
            return descriptor
        return None
