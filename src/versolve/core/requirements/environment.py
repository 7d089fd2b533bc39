"""Target environment descriptor used for marker evaluation.

The environment is an opaque mapping of PEP 508 marker variables
(``python_version``, ``sys_platform``, ``platform_machine``, ...). It is
also the input to the cache fingerprint: two environments with the same
markers and index revision share cached artifacts.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from typing import Mapping

from packaging.markers import (
    InvalidMarker,
    Marker,
    UndefinedComparison,
    UndefinedEnvironmentName,
    default_environment,
)
from packaging.version import InvalidVersion, Version

from versolve.exceptions import RequirementError


@dataclass
class Environment:
    """Marker-evaluation context for one resolution target.

    Attributes:
        markers: Marker variable name -> value. Missing names fall back to
            the running interpreter's values when a marker is evaluated.
    """

    markers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def current(cls) -> Environment:
        """Describe the running interpreter and platform."""
        return cls(dict(default_environment()))

    @classmethod
    def from_mapping(cls, overrides: Mapping[str, str]) -> Environment:
        """Start from the running interpreter and apply ``overrides``.

        Setting ``python_version`` alone also sets ``python_full_version``
        so that both spellings of the interpreter version agree.
        """
        markers = dict(default_environment())
        for key, value in overrides.items():
            markers[str(key)] = str(value)
        if "python_version" in overrides and "python_full_version" not in overrides:
            markers["python_full_version"] = str(overrides["python_version"])
        return cls(markers)

    @property
    def python_version(self) -> Version | None:
        """The interpreter version, or None if it is not known."""
        raw = self.markers.get("python_full_version") or self.markers.get(
            "python_version"
        )
        if not raw:
            return None
        try:
            return Version(raw)
        except InvalidVersion:
            return None

    def evaluate(self, marker: Marker | str, extra: str | None = None) -> bool:
        """Evaluate ``marker`` with ``extra`` bound ("" when None).

        Raises:
            RequirementError: If the marker is malformed or compares
                values that cannot be compared.
        """
        try:
            if isinstance(marker, str):
                marker = Marker(marker)
            env = dict(self.markers)
            env["extra"] = extra or ""
            return marker.evaluate(env)
        except (InvalidMarker, UndefinedComparison, UndefinedEnvironmentName) as exc:
            raise RequirementError(f"Cannot evaluate marker {str(marker)!r}: {exc}") from exc

    def fingerprint(self, index_revision: str = "") -> str:
        """Stable SHA-256 over the marker values and the index revision."""
        payload = json.dumps(
            {"markers": dict(sorted(self.markers.items())), "index": index_revision},
            sort_keys=True,
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()
