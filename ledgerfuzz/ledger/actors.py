"""Test identities used to sign contract actions."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, Iterable

from ledgerfuzz.core.config import ActorRole, ActorSpec


@dataclass(frozen=True)
class Actor:
    name: str
    role: ActorRole
    seed: str = ""
    address: str = ""

    @classmethod
    def from_spec(cls, spec: ActorSpec) -> Actor:
        return cls(name=spec.name, role=spec.role, seed=spec.seed, address=spec.address)

    @property
    def can_sign(self) -> bool:
        return bool(self.seed)

    def __str__(self) -> str:
        return f"{self.name}({self.address or '?'})"


class ActorRegistry:
    """Immutable set of configured actors.

    Address derivation from seeds is a transport concern; callers resolve
    addresses once with ``with_addresses`` and keep the returned registry.
    """

    def __init__(self, actors: Iterable[Actor]) -> None:
        self._actors: tuple[Actor, ...] = tuple(actors)
        names = [a.name for a in self._actors]
        if len(set(names)) != len(names):
            raise ValueError("Actor names must be unique")

    @classmethod
    def from_specs(cls, specs: Iterable[ActorSpec]) -> ActorRegistry:
        return cls(Actor.from_spec(s) for s in specs)

    def with_addresses(self, derive: Callable[[str], str]) -> ActorRegistry:
        """Return a registry where every seeded actor has an address."""
        return ActorRegistry(
            replace(a, address=derive(a.seed)) if a.seed and not a.address else a
            for a in self._actors
        )

    def __iter__(self):
        return iter(self._actors)

    def __len__(self) -> int:
        return len(self._actors)

    def by_name(self, name: str) -> Actor:
        for a in self._actors:
            if a.name == name:
                return a
        raise KeyError(name)

    def with_roles(self, *roles: ActorRole) -> list[Actor]:
        return [a for a in self._actors if a.role in roles]

    def find(self, address: str, role: ActorRole) -> Actor | None:
        for a in self._actors:
            if a.address == address and a.role == role:
                return a
        return None

    def addresses(self, *roles: ActorRole) -> list[str]:
        return [a.address for a in self.with_roles(*roles) if a.address]
