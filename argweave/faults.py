"""
Argweave faults (errors) and rendering.

Scope
- FaultCode: stable numeric identifiers for every error kind, grouped by domain
  so logs and searches stay predictable.
- ParserError: base type carrying message + options that knows how to render
  itself with rich and how to surface itself (raise or print-and-exit).
- DesignError: developer mistakes (bad registration, parse misuse).
- UsageError and its subclasses: end-user mistakes, one class per failure mode.
- trigger(): central entry point to surface a fault with runtime options.
- getdoc(): optional description lookup for a code from the host application.

Two disjoint families
- DesignError is raised directly where the mistake is detected; it is meant to
  fail loudly while the integrating application is being written.
- UsageError subclasses go through trigger(); by default they are raised, and
  in shell mode they are printed to stderr and the process exits with status 1.

Integration
- The parser calls trigger(fault, tool=..., shell=..., code=..., title=..., hint=...).
- Hosts can restyle rendering through __styles__ and relabel codes through
  __codes__, both looked up in __main__.
"""
import copy
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes (stable identifiers).

    grouping (by high-level domain)
    - design (101xx)
      • DESIGN_ERROR
    - routing (1110x)
      • UNKNOWN_SUBCOMMAND
    - grammar (1111x/1112x)
      • UNKNOWN_OPTION, OPTION_DECLARED_MULTIPLE_TIMES, TOO_MANY_ARGUMENTS,
        TOO_FEW_ARGUMENTS, REQUIRED_OPTION_MISSING
    - values (1113x)
      • USER_INPUT_ERROR, VALIDATION_ERROR

    normalize() lets the host remap codes to its own labels.
    """
    # --- design errors (10xxx) ---
    DESIGN_ERROR                   = 10101

    # --- routing errors (11xxx) ---
    UNKNOWN_SUBCOMMAND             = 11102

    # --- grammar errors (11xxx) ---
    UNKNOWN_OPTION                 = 11112
    OPTION_DECLARED_MULTIPLE_TIMES = 11115
    TOO_MANY_ARGUMENTS             = 11121
    TOO_FEW_ARGUMENTS              = 11122
    REQUIRED_OPTION_MISSING        = 11125

    # --- value errors (11xxx) ---
    USER_INPUT_ERROR               = 11131
    VALIDATION_ERROR               = 11132

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class ParserError(Exception):
    """
    root of every error raised by the parser.

    attributes
    - message: the human-readable message (also the str() of the exception).
    - options: read-only mapping of rendering/runtime context
      (tool, shell, colorful, code, title, hint, and free-form extras).
    """
    __code__ = FaultCode.DESIGN_ERROR

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(*(() if message is Unset else (message,)))
        self.message = message
        self.options = MappingProxyType(options)

    def __str__(self):
        return self.message if self.message is not Unset else ""

    def __rich__(self):
        main = __import__("__main__")

        styles = defaultdict(str, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        } | getattr(main, "__styles__", {}))

        colorful = self.options.get("colorful", False)

        def styler(style):
            return styles[style] if colorful else ""

        def text(fragment, style=""):
            if not fragment:
                return Text("")
            if not colorful:
                return Text(str(fragment))
            if isinstance(fragment, Text):
                return fragment
            return Text(str(fragment), style)

        tool = self.options.get("tool")
        prog = text(getattr(main, "__prog__", getattr(tool, "app_name", "")), styler("prog-name"))
        code = self.options.get("code", type(self).__code__)

        header = Text.assemble(
            "[ ",
            prog,
            " | " if prog else "",
            text(code.normalize(), styler("code")),
            " | ",
            text(str(self.options.get("title", "error")).title(), styler("error-title")),
            " ]"
        )
        renders = [header, text(self.message, styler("error-message"))]
        if hint := self.options.get("hint"):
            renders.append(Text.assemble(text(" → ", styler("hint-arrow")), text(hint, styler("hint"))))
        return Group(*renders)

    def __trigger__(self):
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class DesignError(ParserError):
    """a developer mistake: bad registration, bad identifier, or parse misuse."""


class UsageError(ParserError):
    """root of the end-user error family (bad invocation)."""


class UnknownOptionError(UsageError):
    __code__ = FaultCode.UNKNOWN_OPTION
class TooManyArgumentsError(UsageError):
    __code__ = FaultCode.TOO_MANY_ARGUMENTS
class TooFewArgumentsError(UsageError):
    __code__ = FaultCode.TOO_FEW_ARGUMENTS
class RequiredOptionMissingError(UsageError):
    __code__ = FaultCode.REQUIRED_OPTION_MISSING
class OptionDeclaredMultipleTimesError(UsageError):
    __code__ = FaultCode.OPTION_DECLARED_MULTIPLE_TIMES
class UserInputError(UsageError):
    __code__ = FaultCode.USER_INPUT_ERROR
class ValidationError(UsageError):
    __code__ = FaultCode.VALIDATION_ERROR
class UnknownSubcommandError(UserInputError):
    __code__ = FaultCode.UNKNOWN_SUBCOMMAND


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see ParserError).
    - options are merged into the fault via copy.replace() before triggering.
    - in shell mode, rendering happens via the rich stderr console and the
      process exits; otherwise the fault is raised.

    this function never returns normally.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "ParserError",
    "DesignError",
    "UsageError",
    "UnknownOptionError",
    "TooManyArgumentsError",
    "TooFewArgumentsError",
    "RequiredOptionMissingError",
    "OptionDeclaredMultipleTimesError",
    "UserInputError",
    "ValidationError",
    "UnknownSubcommandError",
    "FaultCode",
    "trigger",
    "getdoc",
)
