"""
Argweave parser facade: registration, format selection, subcommands and version check.

Lifecycle
1. Parser(app_name, argv, ...) records the invocation. When subcommand keywords
   are declared, the first non-dash token decides which child parser receives
   the rest of the command line.
2. add_option/add_flag/add_positional_option register bindings (checked right
   away, DesignError on a developer mistake); add_section/add_subsection/
   add_line/add_list_item add structure to the help page.
3. parse() runs once. It selects a format:
   - -h/--help, -hh/--advanced-help, --version, --copyright,
     --export-help html|man|ctd|cwl: a terminal format that prints and exits 0;
   - no argument at all (or only --version-check <value>): the short help;
   - anything else: the ordinary parse (see argweave.parsing).
4. is_option_set(id) and get_sub_parser() answer questions afterwards.

Configuration
- shell: print user errors with rich and exit 1 instead of raising.
- colorful: style help pages and errors (see __styles__ in argweave.formats).
- width: fixed terminal width for help pages (None/Unset: detect).
- version_updates/version_checker: the version check runs only when
  notifications are ON, ARGWEAVE_NO_VERSION_CHECK is not set and the user
  passed --version-check true. The injected checker gets the parser metadata
  and runs on a daemon thread joined at exit for up to 3 seconds.

Example
    >>> parser = Parser("cooltool", sys.argv)
    >>> parser.info.version = "2.1.0"
    >>> threads = Slot(UInt8, 1)
    >>> parser.add_option(threads, Config(short_id="t", long_id="threads", description="Worker count."))
    >>> parser.parse()
"""
import atexit
import enum
import logging as logmod
import os
import re
import threading
from collections import deque

from rich.text import Text

from .arguments import *
from .arguments import ArgumentType
from .faults import *
from .formats import *
from .formats import Section, Subsection, Line, ListItem
from .parsing import ParseFormat
from .utils import *

logging = logmod.getLogger(__name__)

ENVIRONMENT_VARIABLE = "ARGWEAVE_NO_VERSION_CHECK"

_NAME = re.compile(r"[a-zA-Z0-9_-]+")
_RESERVED = ("h", "hh", "help", "advanced-help", "export-help", "version", "copyright")


class UpdateNotifications(enum.Enum):
    """Whether the developer allows the version check (and --version-check) at all."""
    ON = "on"
    OFF = "off"

    def __bool__(self):
        return self is UpdateNotifications.ON


class MetaData:
    """
    Descriptive information shown on help, version, copyright and export pages.

    Every field is a plain attribute and may be set after construction:
    app_name, version, short_description, author, email, date, url,
    short_copyright, long_copyright, citation, man_page_title,
    man_page_section (default 1), and the lists description, synopsis and
    examples (one entry per paragraph/line).
    """

    def __init__(self, app_name="", **fields):
        self.app_name = app_name
        self.version = ""
        self.short_description = ""
        self.author = ""
        self.email = ""
        self.date = ""
        self.url = ""
        self.short_copyright = ""
        self.long_copyright = ""
        self.citation = ""
        self.man_page_title = ""
        self.man_page_section = 1
        self.description = []
        self.synopsis = []
        self.examples = []
        for name, value in fields.items():
            if not hasattr(self, name):
                raise TypeError(f"meta-data got an unexpected field {name!r}")
            setattr(self, name, value)

    def __repr__(self):
        return f"meta-data(app_name={self.app_name!r}, version={self.version!r})"


def _sanitize_name(name, kind):
    if not isinstance(name, str):
        raise TypeError(f"parser {kind} must be a string")
    if not _NAME.fullmatch(name):
        raise DesignError(
            f"The {kind} must only contain alpha-numeric characters or '_' and '-' "
            f"(regex: \"^[a-zA-Z0-9_-]+$\"), got '{name}'."
        )
    return name


def _sanitize_text(operation, name, value):
    if not isinstance(value, str | Text):
        raise TypeError(f"{operation}() {name!r} must be a string")
    return str(value)


class Parser(metaclass=ArgumentType):
    """
    Command line parser of one (sub)program.

    Parameters
    - app_name: program name, [a-zA-Z0-9_-]+.
    - argv: the full argument vector, program name first.
    - version_updates: UpdateNotifications.ON (default) or OFF.
    - subcommands: legal subcommand keywords, [a-zA-Z0-9_-]+ each.
    - shell, colorful, width, version_checker: keyword-only, see module docs.
    """
    __introspectable__ = ("subcommands", "version_updates", "shell", "colorful", "width")
    __displayable__ = ("app_name", "subcommands")

    def __init__(
            self,
            app_name,
            argv,
            version_updates=UpdateNotifications.ON,
            subcommands=(),
            *,
            shell=False,
            colorful=False,
            width=Unset,
            version_checker=Unset,
    ):
        _sanitize_name(app_name, "application name")
        argv = list(argv)
        if not all(isinstance(token, str) for token in argv):
            raise TypeError("parser 'argv' must be an iterable of strings")
        if not isinstance(version_updates, UpdateNotifications):
            raise TypeError("parser 'version_updates' must be an update-notifications member")
        if width is not Unset and width is not None and (not isinstance(width, int) or isinstance(width, bool) or width < 1):
            raise ValueError("parser 'width' must be a positive integer")
        if version_checker is not Unset and not callable(version_checker):
            raise TypeError("parser 'version_checker' must be callable")

        self._info = MetaData(app_name)
        self._version_updates = version_updates
        self._subcommands = ()
        self._shell = bool(shell)
        self._colorful = bool(colorful)
        self._width = width
        self._version_checker = version_checker

        self._executable_name = [argv[0] if argv else app_name]
        self._original = argv[1:]
        self._arguments = list(self._original)
        self._bindings = []
        self._entries = []
        self._seen = []
        self._reserved_seen = set()
        self._user_check = Unset
        self._parsed = False
        self._child = Unset
        self._unknown = Unset

        if subcommands:
            self.add_subcommands(subcommands)

    # ── introspection ───────────────────────────────────────────────────────
    @property
    def info(self):
        """The MetaData shown on help pages; mutate it before parse()."""
        return self._info

    @property
    def app_name(self):
        return self._info.app_name

    @property
    def executable_name(self):
        """Program name followed by the subcommand keywords leading to this parser."""
        return tuple(self._executable_name)

    @property
    def version_check(self):
        """Whether the version check is (or would be) performed for this invocation."""
        if not self._version_updates:
            return False
        if ENVIRONMENT_VARIABLE in os.environ:
            return False
        return coalesce(self._user_check, False)

    # ── registration ────────────────────────────────────────────────────────
    def _verify_before_parse(self, operation):
        if self._parsed:
            raise DesignError(f"{operation}() may only be used before calling parse().")

    def _reserved(self):
        return _RESERVED + (("version-check",) if self._version_updates else ())

    def _verify_identity(self, config):
        identity = sanitize_identity(config.short_id, config.long_id)
        for id in (identity.short, identity.long):
            if id and id in self._reserved():
                raise DesignError(f"Option Identifier '{id}' was already used before.")
        for binding in self._bindings:
            if binding.identity == identity:
                id = identity.short if identity.short == binding.identity.short else identity.long
                raise DesignError(f"Option Identifier '{id}' was already used before.")
        return identity

    @staticmethod
    def _verify_types(operation, slot, config):
        if not isinstance(slot, Slot):
            raise TypeError(f"{operation}() 'slot' must be a slot")
        if not isinstance(config, Config):
            raise TypeError(f"{operation}() 'config' must be a config")

    def add_subcommands(self, subcommands, /):
        """
        Declare (more) subcommand keywords and pick the child parser.

        This is how nested command trees are built: declare keywords on the
        parser returned by get_sub_parser().
        """
        self._verify_before_parse("add_subcommands")
        if isinstance(subcommands, str):
            raise TypeError("add_subcommands() argument must be an iterable of strings")
        subcommands = tuple(_sanitize_name(keyword, "subcommand key word") for keyword in subcommands)
        if any(isinstance(binding, Option | Positional) for binding in self._bindings):
            raise DesignError("You may only specify flags for the top-level parser.")
        self._subcommands = tuple(dict.fromkeys(self._subcommands + subcommands))
        self._dispatch()

    def _dispatch(self):
        self._arguments = list(self._original)
        self._child = Unset
        self._unknown = Unset
        tokens = self._original
        index = 0
        while index < len(tokens):
            token = tokens[index]
            if token == "--":
                return
            if token in ("--export-help", "--version-check"):
                index += 2
                continue
            if not token.startswith("-"):
                break
            index += 1
        else:
            return

        if token in self._subcommands:
            self._child = Parser(
                f"{self.app_name}-{token}",
                [token, *tokens[index + 1:]],
                UpdateNotifications.OFF,
                shell=self._shell,
                colorful=self._colorful,
                width=self._width,
            )
            self._child._executable_name = [*self._executable_name, token]
            logging.debug("%s: dispatching %r to %s", self.app_name, token, self._child.app_name)
        else:
            self._unknown = token
        self._arguments = list(tokens[:index])

    def add_option(self, slot, config, /):
        """
        Register a value-taking option (-t 4, --threads=4).

        Raises
        - DesignError: after parse(), with subcommands declared, on a bad or
          already used identifier, or a required option with a default message.
        """
        self._verify_before_parse("add_option")
        self._verify_types("add_option", slot, config)
        if self._subcommands:
            raise DesignError("You may only specify flags for the top-level parser.")
        identity = self._verify_identity(config)
        if config.required and config.default_message:
            raise DesignError("A required option cannot have a default message.")
        binding = Option(slot, config, identity)
        self._bindings.append(binding)
        self._entries.append(binding)

    def add_flag(self, slot, config, /):
        """
        Register a flag (-v, --verbose); its slot must hold a bool that starts False.
        """
        self._verify_before_parse("add_flag")
        self._verify_types("add_flag", slot, config)
        identity = self._verify_identity(config)
        if slot.element is not bool or slot.multiple:
            raise DesignError("A flag can only be bound to a bool slot.")
        if slot.value is not False:
            raise DesignError("A flag's default value must be false.")
        if config.default_message:
            raise DesignError("A flag may not have a default message because the default is always `false`.")
        binding = Flag(slot, config, identity)
        self._bindings.append(binding)
        self._entries.append(binding)

    def add_positional_option(self, slot, config, /):
        """
        Register the next positional argument.

        Positionals take no ids, are never advanced or hidden and take no
        default message. A list positional swallows the remaining tokens and
        must therefore be the last one.
        """
        self._verify_before_parse("add_positional_option")
        self._verify_types("add_positional_option", slot, config)
        if self._subcommands:
            raise DesignError("You may only specify flags for the top-level parser.")
        if config.short_id or config.long_id:
            raise DesignError(
                "Positional options are identified by their position on the command line. "
                "Short or long ids are not permitted!"
            )
        if config.advanced or config.hidden:
            raise DesignError("Positional options are always required and therefore cannot be advanced nor hidden!")
        if config.default_message:
            raise DesignError("A positional option may not have a default message because it is always required.")
        if any(isinstance(binding, Positional) and binding.slot.multiple for binding in self._bindings):
            raise DesignError(
                "You added a positional option with a list value before so you cannot add "
                "any other positional options."
            )
        self._bindings.append(Positional(slot, config))

    def add_section(self, title, /, advanced_only=False):
        """Start a help page section (upper-cased when rendered)."""
        self._verify_before_parse("add_section")
        self._entries.append(Section(_sanitize_text("add_section", "title", title), bool(advanced_only)))

    def add_subsection(self, title, /, advanced_only=False):
        self._verify_before_parse("add_subsection")
        self._entries.append(Subsection(_sanitize_text("add_subsection", "title", title), bool(advanced_only)))

    def add_line(self, text, /, paragraph=False, advanced_only=False):
        """Add a line of text; a paragraph is followed by a blank line."""
        self._verify_before_parse("add_line")
        self._entries.append(Line(_sanitize_text("add_line", "text", text), bool(paragraph), bool(advanced_only)))

    def add_list_item(self, key, description, /, advanced_only=False):
        self._verify_before_parse("add_list_item")
        self._entries.append(ListItem(
            _sanitize_text("add_list_item", "key", key),
            _sanitize_text("add_list_item", "description", description),
            bool(advanced_only),
        ))

    # ── parsing ─────────────────────────────────────────────────────────────
    def trigger(self, fault, /, **options):
        logging.debug("%s: %s", self.app_name, type(fault).__name__)
        trigger(fault, **options, tool=self, shell=self._shell, colorful=self._colorful)

    def _takes_value(self, token):
        """True when token is a registered option whose value is the next token."""
        if not token.startswith("-") or token == "-":
            return False
        if token.startswith("--"):
            if "=" in token:
                return False
            return any(isinstance(binding, Option) and binding.identity.long == token[2:] for binding in self._bindings)
        shorts = {binding.identity.short: binding for binding in self._bindings if isinstance(binding, Option | Flag)}
        for index, letter in enumerate(token[1:], 2):
            binding = shorts.get(letter)
            if not isinstance(binding, Flag):
                return isinstance(binding, Option) and index == len(token)
        return False

    def _export(self, value):
        if value not in EXPORT_FORMATS:
            self.trigger(ValidationError(
                f"Validation failed for option --export-help: Value must be one of [{', '.join(EXPORT_FORMATS)}]."),
                title="invalid export format",
                code=FaultCode.VALIDATION_ERROR,
                hint="pick one of %s" % ", ".join(EXPORT_FORMATS),
                input=value,
            )
        return EXPORT_FORMATS[value]()

    def _version_check_value(self, value):
        if value not in ("1", "true", "0", "false"):
            self.trigger(ValidationError("Value for option --version-check must be true (1) or false (0)."),
                title="invalid value",
                code=FaultCode.VALIDATION_ERROR,
                hint="pass --version-check true or --version-check false",
                input=value,
            )
        return value in ("1", "true")

    def _missing(self, name):
        self.trigger(TooFewArgumentsError(f"Option {name} must be followed by a value."),
            title="missing value",
            code=FaultCode.TOO_FEW_ARGUMENTS,
            hint="pass a value after %s" % name,
            input=name,
        )

    def _determine_format(self):
        if not self._original:
            return ShortHelpFormat()

        format = Unset
        kept = []
        tokens = deque(self._arguments)
        while tokens:
            token = tokens.popleft()
            match token:
                case "--":
                    kept.append(token)
                    kept.extend(tokens)
                    break
                case "-h" | "--help":
                    format = HelpFormat()
                case "-hh" | "--advanced-help":
                    format = HelpFormat(advanced=True)
                case "--version":
                    format = VersionFormat()
                case "--copyright":
                    format = CopyrightFormat()
                case "--export-help":
                    format = self._export(tokens.popleft() if tokens else self._missing(token))
                case _ if token.startswith("--export-help="):
                    format = self._export(token.partition("=")[2])
                case "--version-check" if self._version_updates:
                    self._user_check = self._version_check_value(tokens.popleft() if tokens else self._missing(token))
                    self._reserved_seen.add("version-check")
                case _ if token.startswith("--version-check=") and self._version_updates:
                    self._user_check = self._version_check_value(token.partition("=")[2])
                    self._reserved_seen.add("version-check")
                case _ if self._takes_value(token) and tokens:
                    kept.append(token)
                    kept.append(tokens.popleft())
                case _:
                    kept.append(token)

        self._arguments = kept
        if not format and not kept and not self._child and not self._unknown:
            # only reserved tokens were given
            return ShortHelpFormat()
        return format or ParseFormat(kept)

    def _verify_subcommand(self):
        if not self._subcommands or self._child:
            return
        keywords = ", ".join(self._subcommands)
        if self._unknown:
            message = (
                f"You specified an unknown subcommand! Available subcommands are: [{keywords}]. "
                f"Use -h/--help for more information."
            )
        else:
            message = (
                f"Please specify which sub-program you want to use: one of [{keywords}]. "
                f"Use -h/--help for more information."
            )
        self.trigger(UnknownSubcommandError(message),
            title="unknown subcommand",
            code=FaultCode.UNKNOWN_SUBCOMMAND,
            hint="run '%s --help' to list the subcommands" % " ".join(self._executable_name),
            input=coalesce(self._unknown, ""),
            subcommands=self._subcommands,
        )

    def _start_version_check(self):
        decision = self.version_check
        logging.debug("%s: version check %s", self.app_name, "enabled" if decision else "disabled")
        if not decision or not self._version_checker:
            return
        thread = threading.Thread(
            target=self._version_checker,
            args=(self._info,),
            name=f"{self.app_name}-version-check",
            daemon=True,
        )
        thread.start()
        atexit.register(thread.join, 3.0)

    def parse(self):
        """
        Parse the command line once.

        Terminal formats print their page and exit with status 0. Otherwise
        every registered slot receives its value; user errors are raised (or
        printed and exit 1 in shell mode).

        Raises
        - DesignError: when called a second time (even after a failed parse).
        - UsageError subclasses: on a bad invocation.
        """
        if self._parsed:
            raise DesignError("The function parse() must only be called once!")
        self._parsed = True

        format = self._determine_format()
        logging.debug("%s: selected %r", self.app_name, format)
        self._start_version_check()

        if isinstance(format, ParseFormat):
            self._verify_subcommand()
            self._seen = format(self)
        else:
            format(self)

    # ── queries ─────────────────────────────────────────────────────────────
    def is_option_set(self, id, /):
        """
        Whether the option/flag named id appeared on the command line.

        A one-character id is looked up as a short id, anything longer as a
        long id. Reserved ids (e.g. "version-check") are answered as well.
        """
        if not self._parsed:
            raise DesignError("You can only ask which options have been set after calling the function parse().")
        if not isinstance(id, str):
            raise TypeError("is_option_set() argument must be a string")
        identity = sanitize_identity(*((id, "") if len(id) == 1 else ("", id)))
        for binding in self._bindings:
            if isinstance(binding, Option | Flag) and binding.identity == identity:
                return binding in self._seen
        if id in self._reserved():
            return id in self._reserved_seen
        raise DesignError(f"You can only ask for option identifiers that you added with add_option() before: '{id}'.")

    def get_sub_parser(self):
        """Return the child parser chosen by the subcommand keyword."""
        if not self._subcommands:
            raise DesignError("No subcommands were declared for this parser.")
        if not self._child:
            raise DesignError("No subcommand was given on the command line.")
        return self._child


__all__ = (
    "ENVIRONMENT_VARIABLE",
    "UpdateNotifications",
    "MetaData",
    "Parser",
)
