"""PEP 508 requirement parsing and marker-gated expansion into dependencies.

Requirement strings are parsed with ``packaging.requirements.Requirement``.
Expansion evaluates the requirement's marker against the target
``Environment`` and, when it applies, yields one ``Dependency`` for the
base subject plus one per requested extra.
"""

from __future__ import annotations

from typing import Iterable

from packaging.requirements import InvalidRequirement, Requirement

from versolve.core.requirements.environment import Environment
from versolve.core.requirements.subject import Dependency, Subject
from versolve.core.version import range_from_specifier
from versolve.exceptions import RequirementError


def parse_requirement(text: str) -> Requirement:
    """Parse one requirement line.

    Raises:
        RequirementError: If the line is not a valid PEP 508 requirement or
            names a direct URL (only index requirements are resolvable).
    """
    try:
        requirement = Requirement(text.strip())
    except InvalidRequirement as exc:
        raise RequirementError(f"Invalid requirement {text.strip()!r}: {exc}") from exc
    if requirement.url:
        raise RequirementError(
            f"Direct URL requirements are not supported: {text.strip()!r}"
        )
    return requirement


def parse_requirements(lines: Iterable[str]) -> list[Requirement]:
    """Parse requirement lines, skipping blanks and ``#`` comments.

    Inline comments (`` # ...``) are stripped before parsing.
    """
    requirements: list[Requirement] = []
    for line in lines:
        stripped = line.split(" #", 1)[0].strip()
        if not stripped or stripped.startswith("#"):
            continue
        requirements.append(parse_requirement(stripped))
    return requirements


def _marker_applies(
    requirement: Requirement, environment: Environment, extra: str | None
) -> bool:
    if requirement.marker is None:
        return extra is None
    return environment.evaluate(requirement.marker, extra)


def to_dependencies(requirement: Requirement) -> list[Dependency]:
    """Turn a requirement into its base and extra dependencies, ignoring markers."""
    rng = range_from_specifier(requirement.specifier)
    specifier = str(requirement.specifier)
    marker = str(requirement.marker) if requirement.marker is not None else None

    subjects = [Subject.of(requirement.name)]
    subjects.extend(
        Subject.of(requirement.name, extra) for extra in sorted(requirement.extras)
    )
    return [
        Dependency(
            subject=subject,
            range=rng,
            specifier=specifier,
            marker=marker,
        )
        for subject in subjects
    ]


def expand(
    requirement: Requirement,
    environment: Environment,
    extra: str | None = None,
) -> list[Dependency]:
    """Return the dependencies ``requirement`` contributes in ``environment``.

    With ``extra`` None the requirement applies when it has no marker or
    its marker holds with ``extra == ""``. With an extra it applies only
    when the marker holds with the extra bound and does not hold without
    it, i.e. when the extra is what activates it.

    Raises:
        RequirementError: If the marker cannot be evaluated.
    """
    if extra is None:
        applies = requirement.marker is None or environment.evaluate(
            requirement.marker, None
        )
    else:
        applies = (
            requirement.marker is not None
            and _marker_applies(requirement, environment, extra)
            and not _marker_applies(requirement, environment, None)
        )
    return to_dependencies(requirement) if applies else []


def dependencies_for(
    requirements: Iterable[Requirement],
    environment: Environment,
    extra: str | None = None,
) -> list[Dependency]:
    """Expand every requirement in ``requirements``; see ``expand``."""
    dependencies: list[Dependency] = []
    for requirement in requirements:
        dependencies.extend(expand(requirement, environment, extra))
    return dependencies
