"""Detection of host resources that the manifest does not declare."""

import json
import logging
from typing import List

from pvedsc.errors import DscError
from pvedsc.engine.context import RunContext
from pvedsc.models.resource import AuditFinding, ManagedResource
from pvedsc.providers.base import BaseProvider
from pvedsc.providers.registry import ProviderRegistry
from pvedsc.utils.templates import render_template


logger = logging.getLogger(__name__)

ADOPTION_TEMPLATE = """\
To adopt {{ label }} {{ vmid }} ({{ hostname }}), add this entry to {{ manifest }}:
{{ entry }}"""


class ForeignWorkloadAuditor:
    """Reports undeclared resources with a suggested manifest entry.

    Read-only: nothing found here is ever changed or removed.
    """

    def __init__(self, manifest_path: str = "the manifest"):
        self.manifest_path = manifest_path

    async def audit(self, ctx: RunContext, registry: ProviderRegistry) -> List[AuditFinding]:
        findings: List[AuditFinding] = []

        for provider in registry.providers():
            host_ids = await provider.list_ids()
            for vmid in sorted(host_ids - ctx.declared_ids):
                findings.append(await self._inspect(provider, vmid))

        for vmid in sorted(ctx.unprovisioned_ids):
            logger.warning(
                f"Declared id {vmid} has no resource on the host yet; "
                "it is excluded from the foreign workload audit"
            )

        if not findings:
            logger.info("No foreign workloads found")
        return findings

    async def _inspect(self, provider: BaseProvider, vmid: int) -> AuditFinding:
        try:
            resource = await provider.snapshot(vmid)
        except DscError as e:
            logger.warning(f"Could not inspect {provider.label} {vmid}, suggesting defaults: {e}")
            resource = ManagedResource(id=vmid, kind=provider.kind)

        suggestion = provider.suggest_entry(resource)
        logger.warning(f"FOREIGN {provider.label} DETECTED: id {vmid}")
        logger.warning(render_template(
            ADOPTION_TEMPLATE,
            label=provider.label,
            vmid=vmid,
            hostname=suggestion.hostname,
            manifest=self.manifest_path,
            entry=json.dumps(suggestion.to_manifest(), indent=2),
        ))
        return AuditFinding(id=vmid, kind=provider.kind, resource=resource, suggestion=suggestion)
