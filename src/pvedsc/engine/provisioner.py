"""Creation of declared resources that do not exist yet."""

import logging

from pvedsc.errors import CommandFailure, ProvisioningError
from pvedsc.models.manifest import ManifestEntry
from pvedsc.providers.base import BaseProvider


logger = logging.getLogger(__name__)


class CreationProvisioner:
    """Creates missing resources, cloning VMs when the template is an id."""

    async def provision(self, entry: ManifestEntry, provider: BaseProvider) -> None:
        if not entry.template:
            raise ProvisioningError(
                f"{provider.label} {entry.id}: missing, and no template declared to create it from"
            )

        source = entry.clone_source
        try:
            if source is not None and not entry.is_container:
                logger.info(f"Cloning VM {source} into {entry.id} ({entry.hostname})")
                await provider.clone(entry)
            else:
                logger.info(f"Creating {provider.label} {entry.id} ({entry.hostname}) from {entry.template}")
                await provider.create(entry)
        except CommandFailure as e:
            raise ProvisioningError(f"{provider.label} {entry.id}: creation failed: {e}") from e
