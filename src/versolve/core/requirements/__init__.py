"""Requirement and package graph model.

Submodules:
    subject      -- Subject (name + extra) and Dependency edges
    environment  -- Environment marker context and fingerprint
    requirement  -- PEP 508 parsing and marker-gated expansion
"""

from versolve.core.requirements.environment import Environment
from versolve.core.requirements.requirement import (
    dependencies_for,
    expand,
    parse_requirement,
    parse_requirements,
    to_dependencies,
)
from versolve.core.requirements.subject import ROOT_NAME, Dependency, Subject

__all__ = [
    "Dependency",
    "Environment",
    "ROOT_NAME",
    "Subject",
    "dependencies_for",
    "expand",
    "parse_requirement",
    "parse_requirements",
    "to_dependencies",
]
