"""Configuration drift detection."""

import logging
from typing import Dict, List

from pvedsc.models.manifest import ManifestEntry
from pvedsc.models.resource import ReconciliationAction
from pvedsc.providers.base import BaseProvider


logger = logging.getLogger(__name__)


def detect_drift(
    entry: ManifestEntry,
    provider: BaseProvider,
    config: Dict[str, str],
) -> List[ReconciliationAction]:
    """Compare an entry with a resource's current configuration.

    Walks the provider's attribute table; every mismatching attribute yields
    one action, independently of the others. Attributes the entry leaves
    undeclared are not compared.
    """
    actions: List[ReconciliationAction] = []

    for attr in provider.attributes:
        declared = attr.declared(entry)
        if declared is None:
            continue
        observed = attr.observe(config)
        if not attr.drifted(declared, observed):
            continue
        actions.append(ReconciliationAction(
            target_id=entry.id,
            kind=provider.kind,
            attribute=attr.name,
            old=observed,
            new=declared,
            cold=attr.cold,
            verb=attr.verb,
            args=attr.args(declared),
        ))

    actions.extend(provider.detect_extra(entry, config))

    for action in actions:
        logger.info(f"Drift {entry.id}: {action.describe()}")
    return actions


class DriftDetector:
    """Reads live configuration and produces corrective actions."""

    async def detect(self, entry: ManifestEntry, provider: BaseProvider) -> List[ReconciliationAction]:
        config = await provider.read_config(entry.id)
        return detect_drift(entry, provider, config)
