"""Metadata provider interface and the solver-facing request broker.

Submodules:
    base    -- VersionMetadata, MetadataProvider ABC and provider errors
    memory  -- InMemoryProvider (mapping or YAML index file)
    broker  -- VersionsRequest / MetadataRequest and MetadataBroker
"""

from versolve.core.provider.base import (
    IndexUnreachable,
    MalformedMetadata,
    MetadataProvider,
    PackageNotFound,
    ProviderError,
    VersionMetadata,
)
from versolve.core.provider.broker import (
    MetadataBroker,
    MetadataRequest,
    VersionsRequest,
)
from versolve.core.provider.memory import InMemoryProvider

__all__ = [
    "InMemoryProvider",
    "IndexUnreachable",
    "MalformedMetadata",
    "MetadataBroker",
    "MetadataProvider",
    "MetadataRequest",
    "PackageNotFound",
    "ProviderError",
    "VersionMetadata",
    "VersionsRequest",
]
