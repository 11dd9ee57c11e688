"""Provider registry for managing resource providers."""

import logging
from typing import Dict, List, Type

from pvedsc.models.config import DscConfig
from pvedsc.models.resource import ResourceKind
from pvedsc.providers.base import BaseProvider
from pvedsc.providers.container import ContainerProvider
from pvedsc.providers.vm import VmProvider
from pvedsc.utils.commands import CommandExecutor


logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Registry for managing providers."""

    def __init__(self):
        """Initialize provider registry."""
        self._providers: Dict[str, BaseProvider] = {}
        self._provider_classes: Dict[str, Type[BaseProvider]] = {
            ResourceKind.CONTAINER.value: ContainerProvider,
            ResourceKind.VM.value: VmProvider,
        }

    async def initialize(self, config: DscConfig, executor: CommandExecutor):
        """Instantiate every provider and hand it the shared executor."""
        for name, provider_class in self._provider_classes.items():
            try:
                provider = provider_class()
                await provider.initialize(config, executor)
            except Exception as e:
                logger.error(f"Failed to initialize provider {name}: {e}")
                raise
            self._providers[name] = provider
            logger.debug(f"Initialized provider: {name}")

    def for_kind(self, kind: ResourceKind) -> BaseProvider:
        """Provider responsible for a resource kind."""
        provider = self._providers.get(ResourceKind(kind).value)
        if provider is None:
            raise KeyError(f"No provider registered for {kind}")
        return provider

    def providers(self) -> List[BaseProvider]:
        return list(self._providers.values())
