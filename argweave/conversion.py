r"""
Argweave value conversion: command-line tokens to typed values and back.

Supported semantic types (closed set)
- bool: exactly "1", "true", "0" or "false".
- int: unbounded signed integer.
- Int8/UInt8/Int16/UInt16/Int32/UInt32/Int64/UInt64: fixed width integers;
  out-of-range tokens are rejected instead of wrapped.
- float: a double; decimal or scientific notation, plus inf/infinity/nan.
- str: taken verbatim.
- pathlib paths (any PurePath subclass): built from the token.
- named enumerations: see argweave.enumerations.

Integer tokens must match r"-?[0-9]+" as a whole: no sign '+', no blanks, no
underscores and no trailing garbage ("2abc" and "3.12" are both rejected).

Functions
- typename(type): the name used in messages and help ("unsigned 8 bit integer").
- converter(type): token -> value callable raising ConversionError.
- render(value): canonical string form; converting it back yields the value.
"""
import builtins
import functools
import pathlib
import re

from .enumerations import enumeration_names, display_name, is_enumeration
from .utils import *

_INTEGER = re.compile(r"-?[0-9]+")
_FLOAT = re.compile(
    r"[-+]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][-+]?[0-9]+)?|[-+]?(?:inf|infinity|nan)",
    re.IGNORECASE
)


class ConversionError(ValueError):
    """a token could not be converted; str() carries the complete reason."""


class Integer(int):
    """
    Base of the fixed width integer types.

    Subclasses declare their width and signedness as class keywords and get
    their inclusive bounds computed once:

        class Int8(Integer, bits=8, signed=True): ...

    Instances are plain ints for every purpose (arithmetic, equality, str()),
    constructing one outside the bounds raises OverflowError.
    """
    __bits__ = Unset
    __signed__ = True
    __minimum__ = Unset
    __maximum__ = Unset

    def __init_subclass__(cls, *, bits, signed, **options):
        super().__init_subclass__(**options)
        cls.__bits__ = bits
        cls.__signed__ = signed
        cls.__minimum__ = -(1 << (bits - 1)) if signed else 0
        cls.__maximum__ = (1 << (bits - 1)) - 1 if signed else (1 << bits) - 1

    def __new__(cls, value=0, /):
        self = super().__new__(cls, value)
        if cls.__bits__ and not cls.__minimum__ <= self <= cls.__maximum__:
            raise OverflowError(f"{int(self)} is out of range for {typename(cls)}")
        return self


class Int8(Integer, bits=8, signed=True): ...
class UInt8(Integer, bits=8, signed=False): ...
class Int16(Integer, bits=16, signed=True): ...
class UInt16(Integer, bits=16, signed=False): ...
class Int32(Integer, bits=32, signed=True): ...
class UInt32(Integer, bits=32, signed=False): ...
class Int64(Integer, bits=64, signed=True): ...
class UInt64(Integer, bits=64, signed=False): ...


def _is_integer(type):
    return type is int or isinstance(type, builtins.type) and issubclass(type, Integer)


def _is_path(type):
    return isinstance(type, builtins.type) and issubclass(type, pathlib.PurePath)


def typename(type, /):
    """
    Return the human-readable name of a supported type.

    Raises
    - TypeError: for types outside the supported set.
    """
    if type is bool:
        return "bool"
    elif _is_integer(type):
        if type is int or not type.__bits__:
            return "signed integer"
        return f"{'signed' if type.__signed__ else 'unsigned'} {type.__bits__} bit integer"
    elif type is float:
        return "double"
    elif type is str:
        return "string"
    elif _is_path(type):
        return "path"
    elif is_enumeration(type):
        return type.__name__
    raise TypeError(f"type {getattr(type, '__name__', type)!r} is not a supported value type")


def _failure(token, type):
    return ConversionError(f"Argument {token} could not be parsed as type {typename(type)}.")


def _to_bool(token):
    match token:
        case "1" | "true":
            return True
        case "0" | "false":
            return False
    raise _failure(token, bool)


def _to_integer(type, token):
    if not _INTEGER.fullmatch(token):
        raise _failure(token, type)
    value = int(token)
    if type is not int and type.__bits__ and not type.__minimum__ <= value <= type.__maximum__:
        raise _failure(token, type)
    return type(value)


def _to_float(token):
    if not _FLOAT.fullmatch(token):
        raise _failure(token, float)
    return float(token)


def _to_path(type, token):
    return type(token)


def _to_enumeration(type, token):
    names = enumeration_names(type)
    try:
        return names[token]
    except KeyError:
        raise ConversionError(
            f"You have chosen an invalid input value: {token}. Please use one of: [{', '.join(names)}]"
        ) from None


def converter(type, /):
    """
    Return the token -> value converter of a supported type.

    The converter raises ConversionError on bad input. Enumeration mappings are
    looked up at conversion time, so registrations made after a slot was
    declared still apply.

    Raises
    - TypeError: for types outside the supported set.
    """
    if type is bool:
        return _to_bool
    elif _is_integer(type):
        return functools.partial(_to_integer, type)
    elif type is float:
        return _to_float
    elif type is str:
        return str
    elif _is_path(type):
        return functools.partial(_to_path, type)
    elif is_enumeration(type):
        return functools.partial(_to_enumeration, type)
    raise TypeError(f"type {getattr(type, '__name__', type)!r} is not a supported value type")


def render(value, /):
    """
    Return the canonical string form of a value.

    - bool: "true" / "false"
    - list/tuple: "[a, b]" with each element rendered
    - enumeration values: their display name
    - float: repr() (shortest round-tripping form)
    - anything else: str()
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    elif isinstance(value, list | tuple):
        return "[" + ", ".join(map(render, value)) + "]"
    elif is_enumeration(type(value)):
        return display_name(value)
    elif isinstance(value, float):
        return repr(value)
    return str(value)


__all__ = (
    "ConversionError",
    "Integer",
    "Int8",
    "UInt8",
    "Int16",
    "UInt16",
    "Int32",
    "UInt32",
    "Int64",
    "UInt64",
    "typename",
    "converter",
    "render",
)
