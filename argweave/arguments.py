r"""
Argweave argument model: identities, configurations, slots and bindings.

Overview
- Config: what the developer says about one argument (ids, description,
  required/advanced/hidden, default message, validator).
- Slot[_T]: the typed variable an argument binds to. The caller keeps the
  slot and reads slot.value after parsing.
- Identity: the (short, long) pair naming an option or a flag. Two identities
  are equal when either non-empty component matches.
- Bindings: Option, Flag and Positional are the typed commands stored by the
  parser at registration and executed by the engine during parse().

Identifier rules (checked at registration, see sanitize_identity)
- at least one of short/long must be given;
- short: exactly one character out of [A-Za-z0-9_@];
- long: empty or at least two characters out of [A-Za-z0-9_@-], not starting
  with '-'.

Introspection & representation
- ArgumentType gives every class a __typename__ (camel-case split with
  hyphens), read-only properties for __introspectable__ and stable
  __repr__/__rich_repr__ implementations.

Quick example
    >>> threads = Slot(UInt8, 1)
    >>> parser.add_option(threads, Config(short_id="t", long_id="threads", description="Worker count."))
    >>> files = Slot(list[pathlib.Path])
    >>> parser.add_positional_option(files, Config(description="Input files."))
"""
import functools
import operator
import re
import typing

from rich.text import Text

from .conversion import Integer, _is_integer, converter, typename, render
from .faults import DesignError
from .utils import *
from .validators import as_validator

_SHORT = re.compile(r"[A-Za-z0-9_@]")
_LONG = re.compile(r"[A-Za-z0-9_@-]+")


class ArgumentType(type):
    """
    Metaclass providing introspection plumbing to the argument model.

    Responsibilities
    - Derive __typename__ from the class name, used in messages.
    - Expose selected fields as read-only properties using mirror() for all
      names listed in __introspectable__.
    - Provide stable, readable __repr__/__rich_repr__ implementations.

    Conventions
    - __displayable__ (if set) narrows which properties are shown by
      __rich_repr__; otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
            **options
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - config(short_id='t', long_id='threads', ...)
            """
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate the Python-level types of Config metadata.

    - short_id/long_id: Unset or str (semantics are checked at registration).
    - description/default_message: Unset, str or rich Text; descriptions are
      trimmed, Unset becomes "" (no description).
    - validator: Unset, a Validator or a callable (see as_validator).
    - advanced/hidden/required: coerced to bool.

    Raises
    - TypeError: on a wrong type.
    - ValueError: when default_message is an empty string.
    """
    for name in ("short_id", "long_id"):
        if not isinstance(metadata[name], str | Unset):
            raise TypeError(f"{cls.__typename__} {name!r} must be a string")
        metadata[name] = coalesce(metadata[name], "")

    if not isinstance(description := metadata["description"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'description' must be a string")
    metadata["description"] = str(coalesce(description, "")).strip()

    if not isinstance(default := metadata["default_message"], str | Text | Unset):
        raise TypeError(f"{cls.__typename__} 'default_message' must be a string")
    elif isinstance(default, str | Text) and not str(default).strip():
        raise ValueError(f"{cls.__typename__} 'default_message' cannot be empty")
    metadata["default_message"] = coalesce(default) and str(default).strip()

    metadata["validator"] = as_validator(metadata["validator"])


class Config(metaclass=ArgumentType):
    """
    Developer-facing configuration of one option, flag or positional.

    Parameters (keyword-only)
    - short_id: one character, e.g. "t" for -t.
    - long_id: the long name without dashes, e.g. "threads" for --threads.
    - description: help text.
    - default_message: text shown instead of the slot's default on help pages.
    - advanced: only listed on the advanced help page (-hh).
    - hidden: never listed on help pages.
    - required: the option must be given on the command line.
    - validator: Validator (or plain callable) run on every converted value.

    Positionals take neither ids nor advanced/hidden/default_message; this is
    enforced when the config is registered.
    """

    __introspectable__ = (
        "short_id",
        "long_id",
        "description",
        "default_message",
        "advanced",
        "hidden",
        "required",
        "validator",
    )

    def __init__(
            self,
            *,
            short_id=Unset,
            long_id=Unset,
            description=Unset,
            default_message=Unset,
            advanced=False,
            hidden=False,
            required=False,
            validator=Unset,
    ):
        metadata = {
            "short_id": short_id,
            "long_id": long_id,
            "description": description,
            "default_message": default_message,
            "advanced": bool(advanced),
            "hidden": bool(hidden),
            "required": bool(required),
            "validator": validator,
        }
        _sanitize_metadata(type(self), metadata)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)


class Identity(metaclass=ArgumentType):
    """
    Short/long identifier pair of an option or a flag.

    Equality holds when either non-empty component matches, which is exactly
    the "same option" test used for collision and duplicate-use detection.
    Identities are therefore not hashable.
    """
    __introspectable__ = ("short", "long")
    __hash__ = None

    def __init__(self, short="", long=""):
        self._short = short
        self._long = long

    def __eq__(self, other):
        if not isinstance(other, Identity):
            return NotImplemented
        return bool(self._short and self._short == other._short or self._long and self._long == other._long)

    def __bool__(self):
        return bool(self._short or self._long)

    def names(self):
        """Return the command-line spellings, short first ("-t", "--threads")."""
        return tuple(name for name in ("-" + self._short if self._short else "", "--" + self._long if self._long else "") if name)

    @property
    def display(self):
        """The combined spelling used in messages ("-t/--threads")."""
        return "/".join(self.names())


def sanitize_identity(short, long, /):
    """
    Check identifier rules and build the Identity.

    Raises
    - DesignError: with a message naming the broken rule.
    """
    if not short and not long:
        raise DesignError("Option Identifiers cannot both be empty.")
    if short and len(short) != 1:
        raise DesignError(f"Short IDs must be a single character, got '{short}'.")
    if short and not _SHORT.fullmatch(short):
        raise DesignError(f"Option identifiers may only contain alphanumeric characters, '_', '-', or '@'. Got '{short}'.")
    if long and len(long) == 1:
        raise DesignError("Long IDs must be either empty, or longer than one character.")
    if long and not _LONG.fullmatch(long):
        raise DesignError(f"Option identifiers may only contain alphanumeric characters, '_', '-', or '@'. Got '{long}'.")
    if long.startswith("-"):
        raise DesignError("First character of long ID cannot be '-'.")
    return Identity(short, long)


class Slot[_T](metaclass=ArgumentType):
    """
    Typed variable an argument binds to.

    Parameters
    - type: a supported value type (see argweave.conversion) or list[T] for a
      list-valued argument.
    - default: initial value. Unset means [] for lists, False for bool and
      None for anything else.

    The element converter is resolved immediately, so unsupported types fail
    at declaration time with TypeError; a fixed width default outside its
    range fails with OverflowError. The parser only writes .value during
    parse(); reading it afterwards gives the bound result.
    """
    __introspectable__ = ("type",)
    __displayable__ = ("type", "value")

    def __init__(self, type, default=Unset):
        if typing.get_origin(type) is list:
            arguments = typing.get_args(type)
            if len(arguments) != 1:
                raise TypeError(f"{Slot.__typename__} list type must have exactly one element type")
            self._element = arguments[0]
            self._multiple = True
            default = list(coalesce(default, []))
        else:
            self._element = type
            self._multiple = False
            default = coalesce(default, False if type is bool else None)
        self._convert = converter(self._element)
        if _is_integer(self._element) and issubclass(self._element, Integer):
            # out of range defaults raise OverflowError here
            if self._multiple:
                default = list(map(self._element, default))
            elif default is not None:
                default = self._element(default)
        self._type = type
        self.value = default

    @property
    def element(self):
        """The scalar type of each converted token."""
        return self._element

    @property
    def multiple(self):
        """True for list-valued slots."""
        return self._multiple

    def convert(self, token):
        """Convert one token to the element type (raises ConversionError)."""
        return self._convert(token)

    def typename(self):
        """Type description for help pages ("List of signed 32 bit integer")."""
        if self._multiple:
            return f"List of {typename(self._element)}"
        return typename(self._element)

    def render(self):
        return render(self.value)


class Binding(metaclass=ArgumentType):
    """
    Registered argument: the slot to write, its config and its identity.

    The parser keeps bindings in registration order; the engine dispatches on
    the concrete subclass.
    """
    __introspectable__ = ("slot", "config", "identity")

    def __init__(self, slot, config, identity=Unset):
        self._slot = slot
        self._config = config
        self._identity = coalesce(identity, Identity())

    @property
    def display(self):
        return self._identity.display


class Option(Binding):
    """A value-taking named argument (-t 4, --threads=4)."""


class Flag(Binding):
    """A presence-only named argument (-v, --verbose)."""


class Positional(Binding):
    """An argument identified by its position."""


__all__ = (
    "Config",
    "Identity",
    "Slot",
    "Binding",
    "Option",
    "Flag",
    "Positional",
    "sanitize_identity",
)
