"""
Argweave validators: composable predicates over converted values.

Overview
- Validator: base class. Calling a validator with a value either returns
  None (accepted) or raises ValidationError (rejected). help_message()
  returns the sentence shown on help pages. "a | b" chains validators.
- DefaultValidator: accepts everything, empty help message.
- FunctionValidator: adapts a plain callable (raising ValidationError).
- ChainedValidator: runs its components in order and stops at the first
  failure; help messages are joined by a single space. Chaining is flat,
  so (a | b) | c and a | (b | c) are the same validator.
- ArithmeticRangeValidator, ValueListValidator, RegexValidator.
- InputFileValidator, OutputFileValidator, InputDirectoryValidator,
  OutputDirectoryValidator: path policies answered through a probe
  (see argweave.probes).

Messages
- Help messages are full sentences ("Value must be in range [1,10].").
- Failure messages name the offending value ("Value 12 is not in range [1,10].").
  The parser prefixes them with the option that carried the value.

Quick example
    >>> check = ArithmeticRangeValidator(0, 20) | ValueListValidator([2, 4, 6, 8])
    >>> check(4)
    >>> check.help_message()
    'Value must be in range [0,20]. Value must be one of [2, 4, 6, 8].'
"""
import enum
import functools
import numbers
import operator
import pathlib
import re
from collections.abc import Iterable, Set

from .conversion import render
from .faults import ValidationError
from .probes import probe as _probe
from .utils import *


class ValidatorType(type):
    """
    Metaclass giving validators a stable typename and readable repr.

    - __typename__ is derived from the class name (camel-case split with hyphens).
    - Every name in __introspectable__ becomes a read-only property mirroring
      the private "_<name>" field.
    """
    __introspectable__ = ()

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
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


class Validator(metaclass=ValidatorType):
    """
    Base validator: accepts everything and documents nothing.

    Subclasses override __call__ (raise ValidationError on rejection) and
    help_message().
    """

    def __call__(self, value, /):
        return None

    def help_message(self):
        return ""

    def __or__(self, other, /):
        if not isinstance(other, Validator):
            if not callable(other):
                return NotImplemented
            other = FunctionValidator(other)
        return ChainedValidator(self, other)

    def __ror__(self, other, /):
        if not callable(other):
            return NotImplemented
        return ChainedValidator(FunctionValidator(other), self)


class DefaultValidator(Validator):
    """The no-op validator every option gets unless another one is configured."""


class FunctionValidator(Validator):
    """
    Adapt a plain callable into a validator.

    The callable receives the converted value and rejects it by raising
    ValidationError; its return value is ignored.
    """
    __introspectable__ = ("function", "help")

    def __init__(self, function, /, help=""):
        if not callable(function):
            raise TypeError(f"{type(self).__typename__} 'function' must be callable")
        if not isinstance(help, str):
            raise TypeError(f"{type(self).__typename__} 'help' must be a string")
        self._function = function
        self._help = help

    def __call__(self, value, /):
        self._function(value)

    def help_message(self):
        return self._help


class ChainedValidator(Validator):
    """Logical AND of validators, evaluated left to right."""
    __introspectable__ = ("validators",)

    def __init__(self, *validators):
        flattened = []
        for validator in validators:
            if not isinstance(validator, Validator):
                raise TypeError(f"{type(self).__typename__} components must be validators")
            if isinstance(validator, ChainedValidator):
                flattened.extend(validator._validators)
            else:
                flattened.append(validator)
        self._validators = tuple(flattened)

    def __call__(self, value, /):
        for validator in self._validators:
            validator(value)

    def help_message(self):
        return " ".join(message for validator in self._validators if (message := validator.help_message()))


class ArithmeticRangeValidator(Validator):
    """Accept numbers within the inclusive range [minimum, maximum]."""
    __introspectable__ = ("minimum", "maximum")

    def __init__(self, minimum, maximum, /):
        for bound in (minimum, maximum):
            if isinstance(bound, bool) or not isinstance(bound, numbers.Real):
                raise TypeError(f"{type(self).__typename__} bounds must be numbers")
        if minimum > maximum:
            raise ValueError(f"{type(self).__typename__} 'minimum' cannot be greater than 'maximum'")
        self._minimum = minimum
        self._maximum = maximum

    def __call__(self, value, /):
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise TypeError(f"{type(self).__typename__} can only validate numbers")
        if not self._minimum <= value <= self._maximum:
            raise ValidationError(f"Value {render(value)} is not in range [{render(self._minimum)},{render(self._maximum)}].")

    def help_message(self):
        return f"Value must be in range [{render(self._minimum)},{render(self._maximum)}]."


class ValueListValidator(Validator):
    """Accept values that compare equal to one of a finite list (sets are listed sorted)."""
    __introspectable__ = ("values",)

    def __init__(self, values, /):
        if isinstance(values, str) or not isinstance(values, Iterable):
            raise TypeError(f"{type(self).__typename__} 'values' must be a non-string iterable")
        self._values = tuple(sorted(values) if isinstance(values, Set) else values)
        if not self._values:
            raise ValueError(f"{type(self).__typename__} 'values' cannot be empty")

    def _listing(self):
        return "[" + ", ".join(map(render, self._values)) + "]"

    def __call__(self, value, /):
        if value not in self._values:
            raise ValidationError(f"Value {render(value)} is not one of {self._listing()}.")

    def help_message(self):
        return f"Value must be one of {self._listing()}."


class RegexValidator(Validator):
    """Accept values whose string form fully matches a regular expression."""
    __introspectable__ = ("pattern",)

    def __init__(self, pattern, /):
        if not isinstance(pattern, str):
            raise TypeError(f"{type(self).__typename__} 'pattern' must be a string")
        try:
            self._regex = re.compile(pattern)
        except re.error as error:
            raise ValueError(f"{type(self).__typename__} 'pattern' is not a valid regular expression: {error}") from None
        self._pattern = pattern

    def __call__(self, value, /):
        if not self._regex.fullmatch(text := render(value)):
            raise ValidationError(f"Value {text} did not match the pattern {self._pattern}.")

    def help_message(self):
        return f"Value must match the pattern '{self._pattern}'."


def _sanitize_extensions(cls, extensions):
    """
    Normalize the accepted extensions of a file validator.

    - A class (or object) exposing 'file_extensions' contributes that list.
    - Leading dots are dropped; entries must be non-empty strings.
    """
    extensions = getattr(extensions, "file_extensions", extensions)
    if isinstance(extensions, str) or not isinstance(extensions, Iterable):
        raise TypeError(f"{cls.__typename__} 'extensions' must be a non-string iterable")
    sanitized = []
    for extension in extensions:
        if not isinstance(extension, str):
            raise TypeError(f"{cls.__typename__} extensions must be strings")
        elif not (extension := extension.strip().lstrip(".")):
            raise ValueError(f"{cls.__typename__} extensions cannot be empty")
        sanitized.append(extension)
    return tuple(sanitized)


class _PathValidator(Validator):
    """Shared plumbing of the path validators: probe, extensions and messages."""
    __introspectable__ = ("extensions",)

    def __init__(self, extensions=(), probe=Unset):
        self._extensions = _sanitize_extensions(type(self), extensions)
        self._probe = coalesce(probe, _probe)

    def _listing(self):
        return "[" + ", ".join(self._extensions) + "]"

    def _extension_help(self):
        return f" Valid file extensions are: {self._listing()}." if self._extensions else ""

    def _validate_extension(self, path):
        if not self._extensions:
            return
        name = path.name
        if not path.suffix:
            raise ValidationError(
                f"The given filename {name} has no extension. "
                f"Expected one of the following valid extensions: {self._listing()}!"
            )
        if not any(name.lower().endswith("." + extension.lower()) for extension in self._extensions):
            raise ValidationError(
                f"Expected one of the following valid extensions: {self._listing()}! Got {path.suffix[1:]} instead!"
            )


class InputFileValidator(_PathValidator):
    """Accept existing, readable regular files with an accepted extension."""

    def __call__(self, value, /):
        path = pathlib.Path(value)
        if not self._probe.exists(path):
            raise ValidationError(f"The file {path} does not exist!")
        if not self._probe.is_file(path):
            raise ValidationError(f"Expected a regular file {path}!")
        if not self._probe.readable(path):
            raise ValidationError(f"Cannot read the file {path}!")
        self._validate_extension(path)

    def help_message(self):
        return "The input file must exist and read permissions must be granted." + self._extension_help()


class OutputFileOpenOptions(enum.Enum):
    """Overwrite policy of OutputFileValidator."""
    CREATE_NEW = "create_new"
    OPEN_OR_CREATE = "open_or_create"


class OutputFileValidator(_PathValidator):
    """
    Accept writable output file paths with an accepted extension.

    mode
    - CREATE_NEW (default): the file must not exist yet.
    - OPEN_OR_CREATE: an existing file may be overwritten.
    """
    __introspectable__ = ("mode", "extensions")

    def __init__(self, mode=OutputFileOpenOptions.CREATE_NEW, extensions=(), probe=Unset):
        if not isinstance(mode, OutputFileOpenOptions):
            raise TypeError(f"{type(self).__typename__} 'mode' must be an output-file open option")
        super().__init__(extensions, probe)
        self._mode = mode

    def __call__(self, value, /):
        path = pathlib.Path(value)
        if self._mode is OutputFileOpenOptions.CREATE_NEW and self._probe.exists(path):
            raise ValidationError(f"The file {path} already exists!")
        if self._probe.is_dir(path):
            raise ValidationError(f"Expected a file but {path} is a directory!")
        if not self._probe.writable(path):
            raise ValidationError(f"Cannot write {path}!")
        self._validate_extension(path)

    def help_message(self):
        if self._mode is OutputFileOpenOptions.CREATE_NEW:
            message = "The output file must not exist already and write permissions must be granted."
        else:
            message = "Write permissions must be granted."
        return message + self._extension_help()


class InputDirectoryValidator(Validator):
    """Accept existing, readable directories."""

    def __init__(self, probe=Unset):
        self._probe = coalesce(probe, _probe)

    def __call__(self, value, /):
        path = pathlib.Path(value)
        if not self._probe.exists(path):
            raise ValidationError(f"The directory {path} does not exist!")
        if not self._probe.is_dir(path):
            raise ValidationError(f"The path {path} is not a directory!")
        if not self._probe.readable(path):
            raise ValidationError(f"Cannot read the directory {path}!")

    def help_message(self):
        return "An existing, readable path for the input directory."


class OutputDirectoryValidator(Validator):
    """Accept writable directories, existing or creatable."""

    def __init__(self, probe=Unset):
        self._probe = coalesce(probe, _probe)

    def __call__(self, value, /):
        path = pathlib.Path(value)
        if self._probe.exists(path) and not self._probe.is_dir(path):
            raise ValidationError(f"The path {path} is not a directory!")
        if not self._probe.writable(path):
            raise ValidationError(f"Cannot write {path}!")

    def help_message(self):
        return "A valid path for the output directory."


def as_validator(object, /):
    """
    Coerce a configured validator: Unset -> DefaultValidator, a Validator as-is,
    any other callable -> FunctionValidator.
    """
    if object is Unset:
        return DefaultValidator()
    if isinstance(object, Validator):
        return object
    if callable(object):
        return FunctionValidator(object)
    raise TypeError("validator must be a validator or a callable")


__all__ = (
    "Validator",
    "DefaultValidator",
    "FunctionValidator",
    "ChainedValidator",
    "ArithmeticRangeValidator",
    "ValueListValidator",
    "RegexValidator",
    "InputFileValidator",
    "OutputFileOpenOptions",
    "OutputFileValidator",
    "InputDirectoryValidator",
    "OutputDirectoryValidator",
    "as_validator",
)
