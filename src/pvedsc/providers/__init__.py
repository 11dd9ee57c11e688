"""Resource providers for pvedsc."""

from pvedsc.providers.base import BaseProvider
from pvedsc.providers.container import ContainerProvider
from pvedsc.providers.registry import ProviderRegistry
from pvedsc.providers.vm import VmProvider

__all__ = [
    "BaseProvider",
    "ContainerProvider",
    "ProviderRegistry",
    "VmProvider",
]
