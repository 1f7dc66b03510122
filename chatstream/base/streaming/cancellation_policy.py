"""Provider cancellation support policy.

Dropping a stream always stops local consumption, but only some upstream
providers also stop generating (and billing) when the connection goes away.
The list changes independently of the code, so it is data injected into the
stream controller and clients rather than a module constant they consult.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Iterable

from ...config.defaults import DEFAULT_CANCELLATION_PROVIDERS


def _normalize(name: str) -> str:
    return name.strip().lower()


@dataclass(frozen=True)
class CancellationPolicy:
    """Set of provider slugs known to honor stream cancellation."""

    providers: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "CancellationPolicy":
        return cls(frozenset(_normalize(n) for n in names if n and n.strip()))

    def supports(self, provider: str | None) -> bool:
        """Whether cancelling a stream served by ``provider`` stops it upstream."""
        if not provider:
            return False
        return _normalize(provider) in self.providers

    def with_providers(self, *names: str) -> "CancellationPolicy":
        return CancellationPolicy(self.providers | {_normalize(n) for n in names})

    def without_providers(self, *names: str) -> "CancellationPolicy":
        return CancellationPolicy(self.providers - {_normalize(n) for n in names})


def default_cancellation_policy() -> CancellationPolicy:
    return CancellationPolicy.from_names(DEFAULT_CANCELLATION_PROVIDERS)


__all__ = ["CancellationPolicy", "default_cancellation_policy"]
