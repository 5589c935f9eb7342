"""Minimal inversion-of-control container.

Providers are callables (functions or classes) registered once, keyed by the
type they produce. The container resolves a type by first resolving the types
its provider depends on, building every type at most once and caching it for
the life of the container.

Exports:
- `Container`: provider registry, memoizing resolver and lifecycle manager.
- `must_new`: build a `Container`, ending the process on an invalid provider.
- `Ref`: settable destination for `Container.inject`.
- `Closable` / `Destination`: protocols recognised by `close()` and `inject()`.
- `Provider`: descriptor built from a provider's signature.
- error classes, all derived from `TypewireError`.
"""

from ._container import Closable, Container, Destination, Ref, must_new
from ._errors import (
    CloseError,
    ConstructionError,
    ContainerClosedError,
    CyclicDependencyError,
    DuplicateProviderError,
    InvalidConsumerError,
    RegistrationError,
    TypewireError,
    UnresolvedDependencyError,
)
from ._provider import Provider


__all__ = [
    "Closable",
    "CloseError",
    "ConstructionError",
    "Container",
    "ContainerClosedError",
    "CyclicDependencyError",
    "Destination",
    "DuplicateProviderError",
    "InvalidConsumerError",
    "Provider",
    "Ref",
    "RegistrationError",
    "TypewireError",
    "UnresolvedDependencyError",
    "must_new",
]
