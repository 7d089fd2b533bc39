"""Lockfile: reproducible record of a resolution.

The package is split into focused submodules:

- ``models``: Data classes (``LockedDependency``, ``LockedPackage``,
  ``LockfileMetadata``).
- ``lockfile``: The ``Lockfile`` class with package management,
  content hashing, serialization and lockfile preferences.
- ``operations``: Deserialization (``from_dict``, ``from_json``, ``read``),
  validation, and diffing.
- ``factory``: The ``from_graph`` factory method for constructing
  lockfiles from resolved graphs.

All public names are re-exported here.
"""

from versolve.core.lockfile.models import (
    LockedDependency,
    LockedPackage,
    LockfileMetadata,
)

from versolve.core.lockfile.lockfile import Lockfile

# Attach operations to Lockfile as methods/classmethods
from versolve.core.lockfile import operations as _ops
from versolve.core.lockfile import factory as _factory

Lockfile.from_dict = classmethod(_ops._from_dict)
Lockfile.from_json = classmethod(_ops._from_json)
Lockfile.read = classmethod(_ops._read)
Lockfile.validate = _ops._validate
Lockfile.diff = _ops._diff
Lockfile.from_graph = classmethod(_factory._from_graph)

__all__ = [
    "LockedDependency",
    "LockedPackage",
    "Lockfile",
    "LockfileMetadata",
]
