"""Shared fixtures for lockfile tests."""

from __future__ import annotations

from typing import Callable

import pytest

from versolve.core.lockfile import LockedDependency, LockedPackage, Lockfile


def make_locked_package(
    name: str = "pkg",
    version: str = "1.0.0",
    dependencies: dict[str, str] | None = None,
    extras: list[str] | None = None,
    artifact: str = "wheel",
) -> LockedPackage:
    """LockedPackage with ``{name: specifier}`` dependency edges."""
    return LockedPackage(
        name=name,
        version=version,
        extras=extras or [],
        dependencies=[
            LockedDependency(name=dep, specifier=spec)
            for dep, spec in (dependencies or {}).items()
        ],
        artifact=artifact,
    )


@pytest.fixture
def locked() -> Callable[..., LockedPackage]:
    return make_locked_package


@pytest.fixture
def lockfile_of() -> Callable[..., Lockfile]:
    """Build a Lockfile from packages, requiring each top-level ``roots`` name."""

    def _build(*packages: LockedPackage, roots: tuple[str, ...] = ()) -> Lockfile:
        lf = Lockfile()
        for package in packages:
            lf.add_package(package)
        for name in roots:
            lf.add_requirement(LockedDependency(name=name))
        return lf

    return _build
