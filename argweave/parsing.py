"""
Argweave parsing engine: match argument tokens to bindings and bind values.

Grammar (first matching rule wins, scanning left to right)
1. "--" ends options; every later token is positional.
2. "--name" / "--name=value": a long option or flag, matched exactly (a
   registered "--foo" never matches "--foobar" or "--foo-bar").
3. "-abc" / "-ovalue" / "-o=value" / "-o value": short syntax. Letters are
   read one by one: flags are set, the first value-taking letter takes the
   rest of the token (after an optional '=') or, if nothing is left, the next
   token, whatever it looks like.
4. anything else (including "-") is positional.

Phases
- scan: options and flags are bound the moment they are recognized; their
  tokens are converted, validated and written to the slot right away.
- positionals: the leftover tokens are assigned in registration order; a
  trailing list positional takes everything that is left.
- required: missing required options are reported once the scan is over.

Every failure goes through the parser's trigger() and aborts the parse.
"""
import difflib
import logging as logmod
from collections import deque

from .arguments import Option, Flag, Positional
from .conversion import ConversionError
from .faults import *
from .utils import *

logging = logmod.getLogger(__name__)


class ParseFormat:
    """
    The ordinary parse strategy, selected when no terminal format applies.

    Parameters
    - arguments: the tokens to match (program name excluded, reserved
      --version-check tokens already removed).

    Calling the format with a parser runs the three phases and returns the
    list of bindings that appeared on the command line.
    """

    def __init__(self, arguments, /):
        self._arguments = tuple(arguments)
        self._parser = Unset
        self._shorts = {}
        self._longs = {}
        self._seen = {}

    def __repr__(self):
        return f"parse-format(arguments={list(self._arguments)!r})"

    @property
    def arguments(self):
        return self._arguments

    def __call__(self, parser, /):
        self._parser = parser
        self._seen = {}
        named = [binding for binding in parser._bindings if isinstance(binding, Option | Flag)]
        self._shorts = {binding.identity.short: binding for binding in named if binding.identity.short}
        self._longs = {binding.identity.long: binding for binding in named if binding.identity.long}

        tokens = deque(self._arguments)
        leftovers = []
        terminated = False
        while tokens:
            token = tokens.popleft()
            if terminated:
                leftovers.append(token)
            elif token == "--":
                terminated = True
            elif token.startswith("--"):
                self._parse_long(token, tokens)
            elif token.startswith("-") and token != "-":
                self._parse_short(token, tokens)
            else:
                leftovers.append(token)

        self._assign_positionals(
            [binding for binding in parser._bindings if isinstance(binding, Positional)],
            leftovers
        )
        self._check_required(named)
        logging.debug("%s: %d of %d arguments seen", parser.app_name, len(self._seen), len(parser._bindings))
        return list(self._seen)

    def _trigger(self, fault, /, **options):
        self._parser.trigger(fault, **options)

    def _unknown(self, name):
        suggestions = difflib.get_close_matches(name, [
            spelling for binding in {*self._shorts.values(), *self._longs.values()}
            for spelling in binding.identity.names()
        ], 3)
        try:
            hint = "did you mean %r? run '%s --help' to see all options" % (
                suggestions[0], " ".join(self._parser.executable_name)
            )
        except IndexError:
            hint = "run '%s --help' to see all options" % " ".join(self._parser.executable_name)
        self._trigger(UnknownOptionError(
            f"Unknown option {name}. In case this is meant to be a non-option/argument/parameter, please specify "
            f"the start of non-options with '--'. See -h/--help for program information."),
            title="unknown option",
            code=FaultCode.UNKNOWN_OPTION,
            hint=hint,
            input=name,
            suggestions=suggestions,
        )

    def _missing(self, name):
        self._trigger(TooFewArgumentsError(f"Missing value for option {name}."),
            title="missing value",
            code=FaultCode.TOO_FEW_ARGUMENTS,
            hint="pass a value after %s (for example: %s <value> or %s=<value>)" % (name, name, name),
            input=name,
        )

    def _parse_long(self, token, tokens):
        name, assigned, value = token[2:].partition("=")
        try:
            binding = self._longs[name]
        except KeyError:
            return self._unknown("--" + name)

        if isinstance(binding, Flag):
            if assigned:
                self._trigger(UserInputError(f"Flag --{name} cannot be given a value."),
                    title="flag cannot take a value",
                    code=FaultCode.USER_INPUT_ERROR,
                    hint="remove everything from '=' (for example: --%s)" % name,
                    input="--" + name,
                )
            return self._set_flag(binding)

        if not assigned:
            value = tokens.popleft() if tokens else self._missing("--" + name)
        elif not value:
            self._missing("--" + name)
        self._bind(binding, "--" + name, value)

    def _parse_short(self, token, tokens):
        letters = token[1:]
        for index, letter in enumerate(letters):
            if (binding := self._shorts.get(letter)) is None:
                return self._unknown(token)
            if isinstance(binding, Flag):
                self._set_flag(binding)
                continue

            value = letters[index + 1:]
            if value.startswith("="):
                if not (value := value[1:]):
                    self._missing("-" + letter)
            elif not value:
                value = tokens.popleft() if tokens else self._missing("-" + letter)
            return self._bind(binding, "-" + letter, value)

    def _mark(self, binding):
        if binding in self._seen and not binding.slot.multiple:
            self._trigger(OptionDeclaredMultipleTimesError(
                f"Option {binding.display} is no list/container type but specified multiple times."),
                title="option specified multiple times",
                code=FaultCode.OPTION_DECLARED_MULTIPLE_TIMES,
                hint="pass %s only once" % binding.display,
                argument=binding,
            )
        first = binding not in self._seen
        self._seen[binding] = True
        return first

    def _set_flag(self, binding):
        self._mark(binding)
        binding.slot.value = True

    def _convert(self, binding, name, token):
        try:
            value = binding.slot.convert(token)
        except ConversionError as error:
            self._trigger(UserInputError(f"Value parse failed for {name}: {error}"),
                title="invalid value",
                code=FaultCode.USER_INPUT_ERROR,
                hint="pass a value of type %s" % binding.slot.typename(),
                input=token,
                argument=binding,
            )
        try:
            binding.config.validator(value)
        except ValidationError as error:
            prefix = name if isinstance(binding, Positional) else f"option {name}"
            self._trigger(ValidationError(f"Validation failed for {prefix}: {error}"),
                title="validation failed",
                code=FaultCode.VALIDATION_ERROR,
                hint=binding.config.validator.help_message() or "check the value of %s" % name,
                input=token,
                argument=binding,
            )
        return value

    def _bind(self, binding, name, token):
        first = self._mark(binding)
        value = self._convert(binding, name, token)
        if not binding.slot.multiple:
            binding.slot.value = value
        elif first:
            binding.slot.value = [value]
        else:
            binding.slot.value.append(value)

    def _assign_positionals(self, positionals, leftovers):
        leftovers = deque(leftovers)
        needed = sum(not binding.slot.multiple for binding in positionals)
        for index, binding in enumerate(positionals, 1):
            name = f"positional option {index}"
            if binding.slot.multiple:
                if leftovers:
                    binding.slot.value = [self._convert(binding, name, token) for token in leftovers]
                    leftovers.clear()
                self._seen[binding] = True
                continue
            if not leftovers:
                self._trigger(TooFewArgumentsError(
                    f"Not enough positional arguments provided (Need at least {needed}). "
                    f"See -h/--help for more information."),
                    title="not enough arguments",
                    code=FaultCode.TOO_FEW_ARGUMENTS,
                    hint="run '%s --help' to see the expected arguments" % " ".join(self._parser.executable_name),
                )
            binding.slot.value = self._convert(binding, name, leftovers.popleft())
            self._seen[binding] = True

        if leftovers:
            self._trigger(TooManyArgumentsError("Too many arguments provided. Please see -h/--help for more information."),
                title="too many arguments",
                code=FaultCode.TOO_MANY_ARGUMENTS,
                hint="unexpected %r; separate values starting with '-' by '--' if they are meant as arguments" % leftovers[0],
                input=leftovers[0],
            )

    def _check_required(self, named):
        for binding in named:
            if binding.config.required and binding not in self._seen:
                self._trigger(RequiredOptionMissingError(f"Option {binding.display} is required but not set."),
                    title="required option missing",
                    code=FaultCode.REQUIRED_OPTION_MISSING,
                    hint="pass %s on the command line" % binding.display,
                    argument=binding,
                )


__all__ = (
    "ParseFormat",
)
