from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Any,
    Generic,
    NoReturn,
    Protocol,
    TypeVar,
    overload,
    runtime_checkable,
)

from ._errors import (
    CloseError,
    ConstructionError,
    ContainerClosedError,
    CyclicDependencyError,
    DuplicateProviderError,
    InvalidConsumerError,
    TypewireError,
    UnresolvedDependencyError,
)
from ._provider import Provider, bind_arguments, inspect_consumer
from ._types import TypeKey, type_name


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    import types
    from collections.abc import Callable, Sequence

T = TypeVar("T")


@runtime_checkable
class Closable(Protocol):
    """Instances exposing ``close()`` are released by `Container.close`."""

    def close(self) -> object: ...


@runtime_checkable
class Destination(Protocol):
    """Settable location for a single resolved type, used by `Container.inject`."""

    key: Any

    def set(self, value: Any) -> None: ...


_UNSET: Any = object()


class Ref(Generic[T]):
    """Destination holding one resolved value.

    Example:
      ref = Ref(Database)
      container.inject(ref)
      db = ref.get()

    """

    def __init__(self, key: type[T]) -> None:
        self.key = key
        self._value: T = _UNSET

    def set(self, value: T) -> None:
        self._value = value

    def get(self) -> T:
        if self._value is _UNSET:
            msg = f"{self!r} has not been injected"
            raise LookupError(msg)
        return self._value

    @property
    def is_set(self) -> bool:
        return self._value is not _UNSET

    def __repr__(self) -> str:
        return f"Ref({type_name(self.key)})"


@dataclass
class Instance:
    value: object
    error: ConstructionError | None = None

    def unwrap(self) -> object:
        if self.error is not None:
            # a fresh error per replay keeps tracebacks from accumulating
            raise ConstructionError(self.error.key, self.error.error) from self.error.error
        return self.value


class Container:
    """Minimal IoC container.

    - providers are registered once, at construction, keyed by produced type
    - every type is built at most once and cached for the life of the container
    - instances are released by an explicit `close()`.
    """

    def __init__(self, *providers: object) -> None:
        self._providers: dict[TypeKey, Provider] = {}
        self._instances: dict[TypeKey, Instance] = {}
        self._resolving: list[TypeKey] = []
        self._closed = False

        for provider in providers:
            self._provide(provider)

    def _provide(self, provider: object) -> None:
        descriptor = Provider.inspect(provider)
        if descriptor.provides in self._providers:
            raise DuplicateProviderError(descriptor.provides)

        self._providers[descriptor.provides] = descriptor
        logger.debug(
            "Registered provider for %s (%d dependencies)", type_name(descriptor.provides), len(descriptor.params)
        )

    @property
    def provided_types(self) -> frozenset[TypeKey]:
        return frozenset(self._providers)

    @property
    def resolved_types(self) -> frozenset[TypeKey]:
        return frozenset(self._instances)

    @property
    def closed(self) -> bool:
        return self._closed

    def __contains__(self, key: object) -> bool:
        return key in self._providers

    def __repr__(self) -> str:
        state = "closed" if self._closed else "built"
        return f"<Container {state} providers={len(self._providers)} instances={len(self._instances)}>"

    @overload
    def resolve(self, key: type[T]) -> T: ...

    @overload
    def resolve(self, key: Any) -> Any: ...

    def resolve(self, key: Any) -> Any:
        """Resolve the type to its single cached instance, building it on first demand.

        Raises:
          UnresolvedDependencyError: no provider for `key` or one of its dependencies.
          ConstructionError: the provider (now or on an earlier call) failed.
          CyclicDependencyError: `key` depends on itself through its providers.
          ContainerClosedError: the container was closed.

        """
        self._ensure_open()
        return self._instance(key)

    def consume(self, callback: Callable[..., None]) -> None:
        """Call `callback` with every annotated parameter resolved by type.

        The callback is not invoked when any parameter fails to resolve.
        """
        self._ensure_open()
        params = inspect_consumer(callback)
        values = [self._instance(p.key) for p in params]
        args, kwargs = bind_arguments(params, values)
        callback(*args, **kwargs)

    def inject(self, destination: Destination) -> None:
        """Resolve `destination.key` and store it with `destination.set()`.

        On failure the destination is left untouched.
        """
        self._ensure_open()
        if inspect.isclass(destination) or not isinstance(destination, Destination):
            msg = f"Not a settable destination: {destination!r}"
            raise InvalidConsumerError(msg)

        try:
            hash(destination.key)
        except TypeError as exc:
            msg = f"Destination {destination!r} does not name a single type: {destination.key!r}"
            raise InvalidConsumerError(msg) from exc

        value = self._instance(destination.key)
        destination.set(value)

    def close(self) -> None:
        """Close every cached instance that exposes ``close()``.

        All instances are attempted even when some fail; failures are collected
        into one `CloseError`. The container rejects resolution afterwards.
        """
        errors: list[Exception] = []
        entries = list(self._instances.items())
        # closed first: close() methods that call back into the container fail cleanly
        self._closed = True

        for key, entry in entries:
            value = entry.value
            if value is None or inspect.isclass(value) or not isinstance(value, Closable):
                continue

            try:
                value.close()
            except Exception as exc:  # noqa: BLE001
                logger.warning("Failed to close %s: %s", type_name(key), exc)
                errors.append(exc)

        logger.debug("Closed container with %d instances", len(entries))
        self._instances.clear()

        if errors:
            raise CloseError(errors)

    def must_consume(self, callback: Callable[..., None]) -> None:
        try:
            self.consume(callback)
        except TypewireError as exc:
            _abort(exc)

    def must_inject(self, destination: Destination) -> None:
        try:
            self.inject(destination)
        except TypewireError as exc:
            _abort(exc)

    def must_close(self) -> None:
        try:
            self.close()
        except TypewireError as exc:
            _abort(exc)

    def __enter__(self) -> Container:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        if not self._closed:
            self.close()

    def _ensure_open(self) -> None:
        if self._closed:
            msg = "Container is closed"
            raise ContainerClosedError(msg)

    def _instance(self, key: TypeKey) -> object:
        entry = self._instances.get(key)
        if entry is not None:
            return entry.unwrap()

        if key in self._resolving:
            chain = self._resolving[self._resolving.index(key) :]
            raise CyclicDependencyError([*chain, key])

        provider = self._providers.get(key)
        if provider is None:
            raise UnresolvedDependencyError(key)

        self._resolving.append(key)
        try:
            values = [self._instance(p.key) for p in provider.params]
            entry = self._construct(key, provider, values)
        finally:
            self._resolving.pop()

        # failures are cached too: a provider is never invoked twice
        self._instances[key] = entry
        return entry.unwrap()

    def _construct(self, key: TypeKey, provider: Provider, values: Sequence[object]) -> Instance:
        try:
            value, error = provider.invoke(values)
        except Exception as exc:  # noqa: BLE001
            value, error = None, exc

        if error is None:
            logger.debug("Constructed %s", type_name(key))
            return Instance(value=value)

        logger.warning("Failed to construct %s: %s", type_name(key), error)
        return Instance(value=value, error=ConstructionError(key, error))


def must_new(*providers: object) -> Container:
    """Build a `Container`, ending the process when any provider is invalid."""
    try:
        return Container(*providers)
    except TypewireError as exc:
        _abort(exc)


def _abort(exc: TypewireError) -> NoReturn:
    logger.critical("%s", exc)
    raise SystemExit(1) from exc
