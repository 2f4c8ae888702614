"""
Artifact store and deployment records.

Each deployed contract leaves two documents in the artifacts directory:
``<Name>-address.json`` (``{"address": ...}``) and ``<Name>.json`` (the
full compiled artifact, including its ABI). The client binds handles from
these. One deployment record per run summarises what was deployed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Optional

from ..errors import ArtifactError
from ..spec.schemas import (
    ADDRESS_SCHEMA,
    DESCRIPTOR_SCHEMA,
    RECORD_SCHEMA,
    DocumentSchemas,
    SchemaValidationError,
    read_json,
    write_json_atomic,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContractDescriptor:
    """A deployed, verified contract: name, address and interface."""

    name: str
    address: str
    descriptor: dict[str, Any]

    @property
    def abi(self) -> list[dict[str, Any]]:
        return self.descriptor["abi"]


@dataclass(frozen=True)
class DeploymentRecord:
    """One deployment run. ``contracts`` only lists verified deployments."""

    network: str
    chain_id: int
    deployer: str
    timestamp: str
    contracts: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "network": self.network,
            "chainId": self.chain_id,
            "deployer": self.deployer,
            "timestamp": self.timestamp,
            "contracts": dict(self.contracts),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeploymentRecord":
        return cls(
            network=data["network"],
            chain_id=int(data["chainId"]),
            deployer=data["deployer"],
            timestamp=data["timestamp"],
            contracts=dict(data.get("contracts", {})),
        )


class ArtifactStore:
    """Name -> {address, interface descriptor} persistence on disk."""

    def __init__(self, root: Path, schemas: Optional[DocumentSchemas] = None) -> None:
        self.root = Path(root)
        self._schemas = schemas or DocumentSchemas()

    def address_path(self, name: str) -> Path:
        return self.root / f"{name}-address.json"

    def descriptor_path(self, name: str) -> Path:
        return self.root / f"{name}.json"

    def has(self, name: str) -> bool:
        return self.address_path(name).is_file() and self.descriptor_path(name).is_file()

    def save(self, name: str, address: str, descriptor: dict[str, Any]) -> ContractDescriptor:
        """
        Persist the artifact pair for a deployed contract.

        Raises:
            ArtifactError: If the descriptor has no usable ABI
        """
        try:
            self._schemas.check({"address": address}, ADDRESS_SCHEMA)
            self._schemas.check(descriptor, DESCRIPTOR_SCHEMA)
        except SchemaValidationError as exc:
            raise ArtifactError(str(exc), operation="save artifact", contract=name) from exc

        # Descriptor first: an address file without its ABI is unusable.
        write_json_atomic(self.descriptor_path(name), descriptor)
        write_json_atomic(self.address_path(name), {"address": address})
        logger.info("Contract artifacts for %s saved to %s", name, self.root)
        return ContractDescriptor(name=name, address=address, descriptor=descriptor)

    def load(self, name: str) -> ContractDescriptor:
        """
        Read and validate the artifact pair for ``name``.

        Raises:
            ArtifactError: If either file is missing, unreadable or malformed
        """
        try:
            address_doc = read_json(self.address_path(name))
            descriptor = read_json(self.descriptor_path(name))
            self._schemas.check(address_doc, ADDRESS_SCHEMA)
            self._schemas.check(descriptor, DESCRIPTOR_SCHEMA)
        except FileNotFoundError as exc:
            raise ArtifactError(
                f"artifact file {exc.filename} not found", operation="load artifact", contract=name
            ) from exc
        except (ValueError, OSError) as exc:
            raise ArtifactError(str(exc), operation="load artifact", contract=name) from exc

        return ContractDescriptor(name=name, address=address_doc["address"], descriptor=descriptor)

    def addresses(self, names: Iterable[str]) -> dict[str, Optional[str]]:
        """Address per name; None where no valid address file exists."""
        result: dict[str, Optional[str]] = {}
        for name in names:
            try:
                doc = read_json(self.address_path(name))
            except (ValueError, OSError):
                doc = None
            valid = doc is not None and self._schemas.is_valid(doc, ADDRESS_SCHEMA)
            result[name] = doc["address"] if valid else None
        return result

    # ---- Deployment records ----

    def save_record(self, record: DeploymentRecord, path: Path) -> None:
        """Write the run record, replacing any previous one at ``path``."""
        payload = record.to_dict()
        self._schemas.check(payload, RECORD_SCHEMA)
        write_json_atomic(path, payload)

    def load_record(self, path: Path) -> DeploymentRecord:
        payload = read_json(path)
        self._schemas.check(payload, RECORD_SCHEMA)
        return DeploymentRecord.from_dict(payload)
