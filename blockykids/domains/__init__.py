"""
Domains - The learning worlds and the process-wide domain registry.

The registry is built once (default_registry()) and passed by
reference to the compilers, the session manager and the API.
"""

from __future__ import annotations
from functools import lru_cache
from typing import Iterator

from .base import Domain


class DomainRegistry:
    """
    Name -> Domain table.

    Usage:
        registry = DomainRegistry()
        registry.register(ROBOT)
        robot = registry.get("robot")
    """

    def __init__(self):
        self._domains: dict[str, Domain] = {}

    def register(self, domain: Domain) -> None:
        if domain.name in self._domains:
            raise ValueError(f"Domain '{domain.name}' is already registered")
        self._domains[domain.name] = domain

    def get(self, name: str) -> Domain:
        """Raises KeyError for unknown domains."""
        try:
            return self._domains[name]
        except KeyError:
            raise KeyError(f"Unknown domain '{name}'") from None

    def names(self) -> list[str]:
        return list(self._domains)

    def __contains__(self, name: object) -> bool:
        return name in self._domains

    def __iter__(self) -> Iterator[Domain]:
        return iter(self._domains.values())

    def __len__(self) -> int:
        return len(self._domains)


def build_default_registry() -> DomainRegistry:
    """Registry with every built-in domain."""
    from .robot import ROBOT
    from .building import BUILDING
    from .sorting import SORTING
    from .combat import COMBAT
    from .music import MUSIC
    from .sprite import SPRITE
    from .pixel import PIXEL
    from .arithmetic import MATH

    registry = DomainRegistry()
    for domain in (ROBOT, BUILDING, SORTING, COMBAT, MUSIC, SPRITE, PIXEL, MATH):
        registry.register(domain)
    return registry


@lru_cache(maxsize=1)
def default_registry() -> DomainRegistry:
    """The shared registry, built on first use."""
    return build_default_registry()


__all__ = [
    "Domain",
    "DomainRegistry",
    "build_default_registry",
    "default_registry",
]
