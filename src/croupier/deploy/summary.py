"""Human-readable deployment summary (Markdown)."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Optional

from .artifacts import DeploymentRecord


def render_summary(
    record: DeploymentRecord,
    failures: Mapping[str, str],
    explorer_url: Optional[str] = None,
) -> str:
    lines = [
        "# Deployment Summary",
        "",
        "## Network Information",
        f"- **Network**: {record.network}",
        f"- **Chain ID**: {record.chain_id}",
        f"- **Deployer**: {record.deployer}",
        f"- **Timestamp**: {record.timestamp}",
        "",
        "## Deployed Contracts",
        "",
    ]
    if record.contracts:
        lines += [f"- **{name}**: `{address}`" for name, address in record.contracts.items()]
    else:
        lines.append("_None_")

    if failures:
        lines += ["", "## Failed Contracts", ""]
        lines += [f"- **{name}**: {reason}" for name, reason in failures.items()]

    lines += [
        "",
        "## Next Steps",
        "1. Point the client at the artifacts directory",
        "2. Test the contracts on the target network",
        "3. Verify contracts on the block explorer if needed",
        "",
        "## Contract Addresses",
        "```python",
        "CONTRACT_ADDRESSES = {",
    ]
    lines += [f'    "{name}": "{address}",' for name, address in record.contracts.items()]
    lines += ["}", "```"]

    if explorer_url:
        lines += ["", f"Explorer: {explorer_url}"]

    return "\n".join(lines) + "\n"


def write_summary(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
