"""
Argweave named enumerations: string display names for caller-defined types.

A slot may be bound to any type whose values carry one or more display names.
The mapping name -> value is found through, in order:

1. the registration table, filled by register_enumeration_names(); meant for
   types the caller does not own and cannot extend;
2. the type's own __enumeration_names__() classmethod;
3. for enum.Enum subclasses, the member names (aliases included).

Several names may map to the same value. All of them parse; the first one
registered is the display name used in help pages and rendered defaults.

Example
    >>> class Level(enum.Enum):
    ...     LOW = 1
    ...     HIGH = 2
    ...     @classmethod
    ...     def __enumeration_names__(cls):
    ...         return {"low": cls.LOW, "high": cls.HIGH}
    >>> enumeration_names(Level)["high"]
    <Level.HIGH: 2>
"""
import builtins
import enum
from collections.abc import Mapping, Iterable
from types import MappingProxyType

_registry = {}


def register_enumeration_names(type, names, /):
    """
    Register the display names of an externally-owned type.

    Parameters
    - type: the type whose values are named.
    - names: Mapping[str, value] or Iterable[tuple[str, value]]; order is kept.

    Raises
    - TypeError: when type is not a class or names is not a mapping/iterable
      of (str, value) pairs.
    - ValueError: when names is empty or a name is empty.

    Registering the same type twice replaces the previous table.
    """
    if not isinstance(type, builtins.type):
        raise TypeError("register_enumeration_names() first argument must be a type")
    if isinstance(names, Mapping):
        names = names.items()
    elif not isinstance(names, Iterable) or isinstance(names, str):
        raise TypeError("register_enumeration_names() second argument must be a mapping or an iterable of pairs")

    table = {}
    for pair in names:
        try:
            name, value = pair
        except (TypeError, ValueError):
            raise TypeError("register_enumeration_names() entries must be (name, value) pairs") from None
        if not isinstance(name, str):
            raise TypeError("register_enumeration_names() names must be strings")
        elif not name:
            raise ValueError("register_enumeration_names() names cannot be empty")
        table.setdefault(name, value)

    if not table:
        raise ValueError("register_enumeration_names() requires at least one name")
    _registry[type] = MappingProxyType(table)


def _lookup(type):
    try:
        return _registry[type]
    except KeyError:
        pass

    if callable(trait := getattr(type, "__enumeration_names__", None)):
        names = trait()
        if not isinstance(names, Mapping):
            raise TypeError("__enumeration_names__() must return a mapping")
        return MappingProxyType(dict(names))

    if isinstance(type, builtins.type) and issubclass(type, enum.Enum):
        return MappingProxyType(dict(type.__members__))

    return None


def is_enumeration(type, /):
    """True when a name -> value mapping can be found for type."""
    return _lookup(type) is not None


def enumeration_names(type, /):
    """
    Return the read-only name -> value mapping for type, in registration order.

    Raises
    - TypeError: when no mapping can be found.
    """
    if (names := _lookup(type)) is None:
        raise TypeError(f"type {getattr(type, '__name__', type)!r} has no enumeration names")
    return names


def display_name(value, /):
    """Return the first registered name of value (falls back to str())."""
    for name, candidate in enumeration_names(builtins.type(value)).items():
        if candidate == value:
            return name
    return str(value)


__all__ = (
    "register_enumeration_names",
    "enumeration_names",
    "is_enumeration",
    "display_name",
)
