from __future__ import annotations

from ._types import TypeKey, type_name


class TypewireError(RuntimeError):
    """Base class for every error raised by the container."""


class RegistrationError(TypewireError):
    """A provider could not be registered (bad shape or duplicate type)."""


class DuplicateProviderError(RegistrationError):
    def __init__(self, key: TypeKey) -> None:
        self.key = key
        super().__init__(f"Duplicated provider: {type_name(key)}")


class UnresolvedDependencyError(TypewireError):
    def __init__(self, key: TypeKey) -> None:
        self.key = key
        super().__init__(f"Not provided: {type_name(key)}")


class ConstructionError(TypewireError):
    """A provider raised, or returned an error alongside its value.

    The underlying error is kept on ``error`` (and as ``__cause__`` once raised).
    """

    def __init__(self, key: TypeKey, error: BaseException) -> None:
        self.key = key
        self.error = error
        super().__init__(f"Failed to construct {type_name(key)}: {error}")


class CyclicDependencyError(TypewireError):
    def __init__(self, chain: list[TypeKey]) -> None:
        self.chain = tuple(chain)
        super().__init__("Cyclic dependency: " + " -> ".join(type_name(key) for key in chain))


class InvalidConsumerError(TypewireError):
    """Target of consume()/inject() has the wrong shape."""


class ContainerClosedError(TypewireError):
    pass


class CloseError(TypewireError):
    """One or more instances failed to close.

    Every failure is collected in ``errors``; order is not guaranteed.
    """

    def __init__(self, errors: list[Exception]) -> None:
        self.errors = list(errors)
        super().__init__(f"[{', '.join(str(e) for e in self.errors)}]")
