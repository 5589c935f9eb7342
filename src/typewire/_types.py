from __future__ import annotations

from typing import Any


# A type identity is the evaluated annotation itself: a class, or any hashable
# typing construct such as ``list[int]``.
TypeKey = Any


def type_name(key: TypeKey) -> str:
    """Human readable name of a type identity, for error messages and logs."""
    if isinstance(key, type):
        if key.__module__ == "builtins":
            return key.__qualname__
        return f"{key.__module__}.{key.__qualname__}"
    return repr(key)
