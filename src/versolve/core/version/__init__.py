"""Version and range model.

Versions are ``packaging.version.Version`` values (PEP 440 ordering and
normalization). Ranges are immutable canonical unions of intervals with
closed intersection, union and complement.

Submodules:
    ranges      -- Interval, PostReleaseCeiling and VersionRange
    specifiers  -- PEP 440 specifier to range conversion, PrereleaseMode
"""

from packaging.version import Version

from versolve.core.version.ranges import (
    Interval,
    PostReleaseCeiling,
    VersionRange,
    local_ceiling,
)
from versolve.core.version.specifiers import (
    PrereleaseMode,
    mentions_prerelease,
    parse_specifier,
    parse_version,
    range_from_specifier,
)

__all__ = [
    "Interval",
    "PostReleaseCeiling",
    "PrereleaseMode",
    "Version",
    "VersionRange",
    "local_ceiling",
    "mentions_prerelease",
    "parse_specifier",
    "parse_version",
    "range_from_specifier",
]
