from __future__ import annotations

import inspect
import types
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union, get_args, get_origin, get_type_hints

from ._errors import InvalidConsumerError, RegistrationError, TypewireError
from ._types import TypeKey, type_name


if TYPE_CHECKING:
    from collections.abc import Callable, Sequence


_NONE_TYPE = type(None)
_UNION_TYPES: tuple[Any, ...] = (Union, types.UnionType)
_VARIADIC = (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD)


@dataclass(frozen=True)
class Param:
    name: str
    key: TypeKey
    keyword_only: bool = False


@dataclass(frozen=True)
class Provider:
    """Descriptor of a registered provider.

    - `provides`: type identity of the produced value
    - `call`: the provider callable itself
    - `params`: dependencies, in declaration order
    - `yields_error`: the provider returns ``(value, error)`` instead of a bare value.
    """

    provides: TypeKey
    call: Callable[..., Any]
    params: tuple[Param, ...]
    yields_error: bool = False

    @classmethod
    def inspect(cls, provider: object) -> Provider:
        """Build a descriptor from a provider's signature and type hints.

        A class provides itself and depends on its ``__init__`` parameters.
        A function provides its return annotation; ``tuple[T, E]`` with an
        exception type ``E`` (optionally ``E | None``) provides ``T`` and may
        yield an error.
        """
        if not callable(provider):
            msg = f"Not a provider function: {provider!r}"
            raise RegistrationError(msg)

        if inspect.isclass(provider):
            if not inspect.isfunction(inspect.getattr_static(provider, "__init__")):
                # object.__init__ or a builtin base such as dict.__init__
                return cls(provides=provider, call=provider, params=())

            sig = _signature(provider, RegistrationError)
            hints = _init_type_hints(provider)
            params = _parameters(provider, sig, hints, RegistrationError)
            return cls(provides=provider, call=provider, params=params)

        sig = _signature(provider, RegistrationError)
        hints = _type_hints(provider, RegistrationError)
        params = _parameters(provider, sig, hints, RegistrationError)
        provides, yields_error = _outputs(provider, hints)
        return cls(provides=provides, call=provider, params=params, yields_error=yields_error)

    def invoke(self, values: Sequence[object]) -> tuple[object, BaseException | None]:
        """Call the provider with resolved dependency values.

        Returns ``(value, error)``; exceptions raised by the provider propagate.
        """
        args, kwargs = bind_arguments(self.params, values)
        result = self.call(*args, **kwargs)
        if not self.yields_error:
            return result, None

        value, error = result
        if error is not None and not isinstance(error, BaseException):
            msg = f"Provider for {type_name(self.provides)} yielded a non-exception error: {error!r}"
            raise TypeError(msg)
        return value, error


def inspect_consumer(callback: object) -> tuple[Param, ...]:
    """Validate a consume() callback and return the parameters to resolve."""
    if not callable(callback) or inspect.isclass(callback):
        msg = f"Not a consumer function: {callback!r}"
        raise InvalidConsumerError(msg)

    sig = _signature(callback, InvalidConsumerError)
    hints = _type_hints(callback, InvalidConsumerError)

    ret = hints.get("return", _NONE_TYPE)
    if ret is not _NONE_TYPE:
        msg = f"Not a consumer function with 0 results: {callback!r} returns {type_name(ret)}"
        raise InvalidConsumerError(msg)

    return _parameters(callback, sig, hints, InvalidConsumerError)


def bind_arguments(params: Sequence[Param], values: Sequence[object]) -> tuple[list[object], dict[str, object]]:
    args: list[object] = []
    kwargs: dict[str, object] = {}
    for param, value in zip(params, values, strict=True):
        if param.keyword_only:
            kwargs[param.name] = value
        else:
            args.append(value)
    return args, kwargs


def _outputs(provider: object, hints: dict[str, Any]) -> tuple[TypeKey, bool]:
    if "return" not in hints or hints["return"] is _NONE_TYPE:
        msg = f"Not a provider function: {provider!r} declares no result"
        raise RegistrationError(msg)

    ret = hints["return"]
    if get_origin(ret) is not tuple:
        return ret, False

    items = get_args(ret)
    if len(items) < 2 or items[1] is Ellipsis:  # noqa: PLR2004
        # tuple[X, ...] and tuple[X] are plain produced types
        return ret, False

    if len(items) > 2:  # noqa: PLR2004
        msg = f"Not a provider function: {provider!r} declares {len(items)} results"
        raise RegistrationError(msg)

    value, error = items
    if not _is_error_type(error):
        msg = f"Not a provider function with error: {provider!r}, {type_name(error)}"
        raise RegistrationError(msg)

    return value, True


def _is_error_type(tp: object) -> bool:
    if get_origin(tp) in _UNION_TYPES:
        members = [m for m in get_args(tp) if m is not _NONE_TYPE]
        return bool(members) and all(_is_error_type(m) for m in members)
    return inspect.isclass(tp) and issubclass(tp, BaseException)


def _parameters(
    owner: object,
    sig: inspect.Signature,
    hints: dict[str, Any],
    error: type[TypewireError],
) -> tuple[Param, ...]:
    params: list[Param] = []
    for name, p in sig.parameters.items():
        if p.kind in _VARIADIC:
            msg = f"Variadic parameter '{name}' of {owner!r} cannot be resolved"
            raise error(msg)

        if name not in hints:
            msg = f"Parameter '{name}' of {owner!r} has no type annotation"
            raise error(msg)

        params.append(Param(name=name, key=hints[name], keyword_only=p.kind is p.KEYWORD_ONLY))

    return tuple(params)


def _signature(obj: object, error: type[TypewireError]) -> inspect.Signature:
    try:
        return inspect.signature(obj)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        msg = f"Cannot inspect signature of {obj!r}: {exc}"
        raise error(msg) from exc


def _type_hints(obj: object, error: type[TypewireError]) -> dict[str, Any]:
    target = obj
    if not inspect.isroutine(obj):
        # callable instances keep their annotations on __call__
        target = getattr(type(obj), "__call__", obj)  # noqa: B004

    try:
        return get_type_hints(target)
    except TypeError:
        return {}
    except NameError as exc:
        msg = f"'{exc.name}' name error retrieving {obj!r} type hints"
        raise error(msg) from exc


def _init_type_hints(cls: type) -> dict[str, Any]:
    try:
        init = inspect.getattr_static(cls, "__init__")
        hints = get_type_hints(init)
    except TypeError:
        # object.__init__ and other slot wrappers carry no annotations
        hints = {}
    except NameError as exc:
        msg = f"'{exc.name}' name error retrieving {cls.__name__} ({cls.__qualname__}) type hints"
        raise RegistrationError(msg) from exc

    hints.pop("return", None)
    return hints
