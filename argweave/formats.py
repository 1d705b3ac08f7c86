"""
Argweave terminal formats: help pages, version/copyright screens and exports.

A terminal format is selected by parse() when the command line asks for it
(-h, -hh, --version, --copyright, --export-help <fmt>, or no arguments at
all). Calling the format with the parser writes the page to stdout and exits
the process with status 0; none of them touches the bound slots.

Formats
- HelpFormat(advanced=False): the rich help page (-h / -hh).
- ShortHelpFormat: header, synopsis and a pointer to --help.
- VersionFormat, CopyrightFormat.
- HtmlFormat, ManFormat, CtdFormat, CwlFormat: --export-help html|man|ctd|cwl.

Page layout (help, html, man)
- header, synopsis, description, subcommands, positional arguments,
  options (developer entries in registration order), common options,
  examples, version block, legal block.

Styling
- Palette keys: title, rule, section, subsection, key, description, line.
- Define a mapping named __styles__ in __main__ to override any entry; styles
  are only applied when the parser was built with colorful=True.
"""
import io
import json
import pathlib
import sys
import xml.etree.ElementTree as ElementTree
from collections import defaultdict, namedtuple

from rich.console import Console, Group
from rich.padding import Padding
from rich.text import Text

from .arguments import Option, Flag, Positional
from .conversion import Integer, render
from .enumerations import enumeration_names, is_enumeration
from .utils import *
from .validators import (
    InputFileValidator,
    OutputFileValidator,
    InputDirectoryValidator,
    OutputDirectoryValidator,
    ChainedValidator,
)

Section = namedtuple("Section", ("title", "advanced"))
Subsection = namedtuple("Subsection", ("title", "advanced"))
Line = namedtuple("Line", ("text", "paragraph", "advanced"))
ListItem = namedtuple("ListItem", ("key", "description", "advanced"))

_COMMON_OPTIONS = (
    ("-h, --help", "Prints the help page."),
    ("-hh, --advanced-help", "Prints the help page including advanced options."),
    ("--version", "Prints the version information."),
    ("--copyright", "Prints the copyright/license information."),
    ("--export-help (string)", "Export the help page information. Value must be one of [html, man, ctd, cwl]."),
)


def _visible(entry, advanced):
    if isinstance(entry, Option | Flag | Positional):
        return not entry.config.hidden and (advanced or not entry.config.advanced)
    return advanced or not entry.advanced


def describe(binding, index=Unset, /):
    """
    Return the (key, description) pair listing a binding on a help page.

    - options: "-t, --threads (unsigned 8 bit integer)" and the description
      followed by "Default: ..." (unless required) and the validator help.
    - flags: the spellings only.
    - positionals: "ARGUMENT-<index> (type)"; only list positionals show a
      default, since the others are always given.
    """
    config, slot = binding.config, binding.slot
    parts = [config.description] if config.description else []

    if isinstance(binding, Flag):
        return ", ".join(binding.identity.names()), " ".join(parts)

    if isinstance(binding, Positional):
        key = f"ARGUMENT-{index} ({slot.typename()})"
        if slot.multiple:
            parts.append(f"Default: {slot.render()}.")
    else:
        key = f"{', '.join(binding.identity.names())} ({slot.typename()})"
        if config.default_message:
            parts.append(f"Default: {config.default_message}.")
        elif not config.required and slot.value is not None:
            parts.append(f"Default: {slot.render()}.")

    if help := config.validator.help_message():
        parts.append(help)
    return key, " ".join(parts)


class HelpFormat:
    """
    Rich help page.

    The page is assembled through a small set of hooks (_header, _section,
    _subsection, _line, _item, _flush) so other page formats (html, man) can
    share the layout and only change how each element is written.
    """

    def __init__(self, advanced=False):
        self._advanced = bool(advanced)
        self._parser = Unset
        self._renders = []

    def __repr__(self):
        return f"{type(self).__name__.lower()}(advanced={self._advanced!r})"

    @property
    def advanced(self):
        return self._advanced

    def __call__(self, parser, /):
        self._parser = parser
        self._renders = []
        self._document()
        self._flush()
        sys.exit(0)

    # ── layout ──────────────────────────────────────────────────────────────
    def _document(self):
        parser = self._parser
        meta = parser.info

        self._header()

        if meta.synopsis:
            self._section("Synopsis")
            for synopsis in meta.synopsis:
                self._line(synopsis, False)

        if meta.description:
            self._section("Description")
            for description in meta.description:
                self._line(description, True)

        if parser.subcommands:
            self._section("Subcommands")
            self._line("This program must be invoked with one of the following subcommands:", False)
            for name in parser.subcommands:
                self._line(f"- {name}", False)
            self._line(
                f"See the respective help page for further details "
                f"(e.g. by calling {meta.app_name} {parser.subcommands[0]} -h).", True
            )
            self._line(
                "The following options below belong to the top-level parser and need to be specified before "
                "the subcommand key word. Every argument after the subcommand key word is passed on to the "
                "corresponding sub-parser.", True
            )

        positionals = [binding for binding in parser._bindings if isinstance(binding, Positional)]
        if positionals:
            self._section("Positional Arguments")
            for index, binding in enumerate(positionals, 1):
                self._item(*describe(binding, index))

        self._section("Options")
        for entry in filter(lambda x: _visible(x, self._advanced), parser._entries):
            match entry:
                case Section(title=title):
                    self._section(title)
                case Subsection(title=title):
                    self._subsection(title)
                case Line(text=text, paragraph=paragraph):
                    self._line(text, paragraph)
                case ListItem(key=key, description=description):
                    self._item(key, description)
                case _:
                    self._item(*describe(entry))

        self._subsection("Common options")
        for key, description in _COMMON_OPTIONS:
            self._item(key, description)
        if parser.version_updates:
            self._item("--version-check (bool)", "Whether to check for the newest app version. Default: false.")

        if meta.examples:
            self._section("Examples")
            for example in meta.examples:
                self._line(example, True)

        self._version()
        self._legal()

    def _version(self):
        meta = self._parser.info
        self._section("Version")
        if meta.date:
            self._line(f"Last update: {meta.date}", False)
        self._line(f"{meta.app_name} version: {meta.version or 'unknown'}", False)
        self._line(f"Argweave version: {__import__('argweave').__version__}", False)

    def _legal(self):
        meta = self._parser.info
        if not any((meta.short_copyright, meta.long_copyright, meta.author, meta.email, meta.url, meta.citation)):
            return
        self._section("Legal")
        if meta.short_copyright:
            self._line(f"{meta.app_name} Copyright: {meta.short_copyright}", False)
        if meta.author:
            self._line(f"Author: {meta.author}", False)
        if meta.email:
            self._line(f"Contact: {meta.email}", False)
        if meta.url:
            self._line(f"Homepage: {meta.url}", False)
        if meta.citation:
            self._line(f"In your academic works please cite: {meta.citation}", False)
        if meta.long_copyright:
            self._line("For full copyright and/or warranty information see --copyright.", False)

    # ── hooks ───────────────────────────────────────────────────────────────
    def _styler(self):
        styles = defaultdict(str, {
            "title": "bold #FF4D94",  # magenta-pink brand pop
            "rule": "#4B5563",  # slate underline
            "section": "bold #FFFFFF",  # white headers
            "subsection": "bold #36C5F0",  # sky-blue subsections
            "key": "bold #00E6FF",  # cyan option spellings
            "description": "#9CA3AF",  # muted gray
            "line": "",
        } | getattr(__import__("__main__"), "__styles__", {}))

        def styler(style):
            return styles[style] if self._parser.colorful else ""
        return styler

    def _header(self):
        meta = self._parser.info
        styler = self._styler()
        title = meta.app_name + (f" - {meta.short_description}" if meta.short_description else "")
        self._renders.append(Text(title, styler("title")))
        self._renders.append(Text("=" * len(title), styler("rule")))

    def _section(self, title):
        self._renders.append(Text(""))
        self._renders.append(Text(title.upper(), self._styler()("section")))

    def _subsection(self, title):
        self._renders.append(Text(""))
        self._renders.append(Padding(Text(title, self._styler()("subsection")), (0, 0, 0, 2)))

    def _line(self, text, paragraph):
        self._renders.append(Padding(Text(text, self._styler()("line")), (0, 0, int(paragraph), 4)))

    def _item(self, key, description):
        styler = self._styler()
        self._renders.append(Padding(Text(key, styler("key")), (0, 0, 0, 4)))
        if description:
            self._renders.append(Padding(Text(description, styler("description")), (0, 0, 0, 8)))

    def _console(self, **options):
        return Console(width=coalesce(self._parser.width, None), highlight=False, **options)

    def _flush(self):
        self._console().print(Group(*self._renders))


class ShortHelpFormat(HelpFormat):
    """Header, synopsis and a pointer to the full help; shown when no argument is given."""

    def __init__(self):
        super().__init__(advanced=False)

    def __repr__(self):
        return "shorthelpformat()"

    def _document(self):
        meta = self._parser.info
        self._header()
        for synopsis in meta.synopsis or [f"{meta.app_name} [OPTIONS]"]:
            self._line(synopsis, False)
        self._renders.append(Text(""))
        self._line("Try -h or --help for more information.", False)


class VersionFormat(HelpFormat):
    """Header and version block (--version)."""

    def __init__(self):
        super().__init__(advanced=False)

    def __repr__(self):
        return "versionformat()"

    def _document(self):
        self._header()
        self._version()


class CopyrightFormat(HelpFormat):
    """Copyright and license information (--copyright)."""

    def __init__(self):
        super().__init__(advanced=False)

    def __repr__(self):
        return "copyrightformat()"

    def _document(self):
        meta = self._parser.info
        self._header()
        self._section("Copyright")
        if meta.long_copyright or meta.short_copyright:
            for line in (meta.long_copyright or meta.short_copyright).splitlines():
                self._line(line, False)
        else:
            self._line(f"{meta.app_name} copyright information not available.", False)
        self._renders.append(Text(""))
        self._line(f"This program uses Argweave, licensed under the {__import__('argweave').__license__} license.", False)


class HtmlFormat(HelpFormat):
    """The help page recorded by rich and exported as a standalone HTML document."""

    def __init__(self):
        super().__init__(advanced=False)

    def __repr__(self):
        return "htmlformat()"

    def _flush(self):
        console = self._console(record=True, file=io.StringIO())
        console.print(Group(*self._renders))
        sys.stdout.write(console.export_html(inline_styles=True))


def _troff(text):
    """Escape text for troff: backslashes, dashes and leading control characters."""
    text = text.replace("\\", "\\e").replace("-", "\\-")
    return "\\&" + text if text.startswith((".", "'")) else text


class ManFormat(HelpFormat):
    """The help page as a troff man page."""

    def __init__(self):
        super().__init__(advanced=False)

    def __repr__(self):
        return "manformat()"

    def _header(self):
        meta = self._parser.info
        self._renders.append('.TH {} {} "{}" "{} {}" "{}"'.format(
            _troff(meta.man_page_title or meta.app_name.upper()),
            meta.man_page_section,
            meta.date,
            _troff(meta.app_name),
            meta.version,
            _troff(meta.short_description),
        ))
        self._renders.append(".SH NAME")
        self._renders.append(_troff(meta.app_name + (f" - {meta.short_description}" if meta.short_description else "")))

    def _section(self, title):
        self._renders.append(f".SH {_troff(title.upper())}")

    def _subsection(self, title):
        self._renders.append(f".SS {_troff(title)}")

    def _line(self, text, paragraph):
        self._renders.append(_troff(text))
        self._renders.append(".sp" if paragraph else ".br")

    def _item(self, key, description):
        self._renders.append(".TP")
        self._renders.append(f"\\fB{_troff(key)}\\fP")
        self._renders.append(_troff(description))

    def _flush(self):
        sys.stdout.write("\n".join(self._renders) + "\n")


def _identifier(binding, index):
    return binding.identity.long or binding.identity.short or f"argument-{index}"


def _components(validator):
    if isinstance(validator, ChainedValidator):
        return validator.validators
    return (validator,)


class CtdFormat(HelpFormat):
    """Common Tool Descriptor (XML) export of the registered arguments."""

    def __init__(self):
        super().__init__(advanced=False)

    def __repr__(self):
        return "ctdformat()"

    @staticmethod
    def _type(binding):
        element = binding.slot.element
        if isinstance(binding, Flag) or element is bool:
            return "bool"
        if element is int or isinstance(element, type) and issubclass(element, Integer):
            return "int"
        if element is float:
            return "double"
        for validator in _components(binding.config.validator):
            match validator:
                case InputFileValidator():
                    return "input-file"
                case OutputFileValidator():
                    return "output-file"
                case InputDirectoryValidator():
                    return "input-prefix"
                case OutputDirectoryValidator():
                    return "output-prefix"
        return "string"

    def _document(self):
        parser = self._parser
        meta = parser.info
        tool = ElementTree.Element("tool", {
            "ctdVersion": "1.7",
            "version": meta.version,
            "name": meta.app_name,
            "docurl": meta.url,
        })
        ElementTree.SubElement(tool, "description").text = meta.short_description
        ElementTree.SubElement(tool, "manual").text = "\n".join(meta.description)
        cli = ElementTree.SubElement(tool, "cli")
        parameters = ElementTree.SubElement(tool, "PARAMETERS", {"version": "1.7.0"})
        node = ElementTree.SubElement(parameters, "NODE", {"name": meta.app_name, "description": meta.short_description})

        positionals = 0
        for binding in parser._bindings:
            if isinstance(binding, Positional):
                positionals += 1
            name = _identifier(binding, positionals)
            spelling = "" if isinstance(binding, Positional) else binding.identity.names()[-1]
            clielement = ElementTree.SubElement(cli, "clielement", {
                "optionIdentifier": spelling,
                "isList": "true" if binding.slot.multiple else "false",
            })
            ElementTree.SubElement(clielement, "mapping", {"referenceName": f"{meta.app_name}.{name}"})

            attributes = {
                "name": name,
                "type": self._type(binding),
                "description": binding.config.description,
                "required": "true" if binding.config.required or isinstance(binding, Positional) and not binding.slot.multiple else "false",
                "advanced": "true" if binding.config.advanced else "false",
            }
            if is_enumeration(binding.slot.element):
                attributes["restrictions"] = ",".join(enumeration_names(binding.slot.element))
            if binding.slot.multiple:
                itemlist = ElementTree.SubElement(node, "ITEMLIST", attributes)
                for value in binding.slot.value:
                    ElementTree.SubElement(itemlist, "LISTITEM", {"value": render(value)})
            else:
                value = binding.slot.value
                ElementTree.SubElement(node, "ITEM", attributes | {"value": "" if value is None else render(value)})

        ElementTree.indent(tool)
        self._renders.append('<?xml version="1.0" encoding="UTF-8"?>')
        self._renders.append(ElementTree.tostring(tool, encoding="unicode"))

    def _flush(self):
        sys.stdout.write("\n".join(self._renders) + "\n")


class CwlFormat(HelpFormat):
    """Common Workflow Language CommandLineTool export (JSON, a subset of YAML)."""

    def __init__(self):
        super().__init__(advanced=False)

    def __repr__(self):
        return "cwlformat()"

    @staticmethod
    def _type(binding):
        element = binding.slot.element
        if is_enumeration(element):
            kind = {"type": "enum", "symbols": list(enumeration_names(element))}
        elif isinstance(binding, Flag) or element is bool:
            kind = "boolean"
        elif element is int or isinstance(element, type) and issubclass(element, Integer):
            kind = "int" if isinstance(element, type) and issubclass(element, Integer) and element.__bits__ <= 32 else "long"
        elif element is float:
            kind = "double"
        else:
            kind = "string"
            for validator in _components(binding.config.validator):
                match validator:
                    case InputFileValidator():
                        kind = "File"
                    case InputDirectoryValidator():
                        kind = "Directory"
        if binding.slot.multiple:
            kind = {"type": "array", "items": kind}
        return kind

    def _document(self):
        parser = self._parser
        meta = parser.info
        executable = list(parser.executable_name)
        inputs = {}
        positionals = 0
        for binding in parser._bindings:
            entry = {"type": self._type(binding)}
            if binding.config.description:
                entry["doc"] = binding.config.description
            if isinstance(binding, Positional):
                positionals += 1
                entry["inputBinding"] = {"position": positionals}
            else:
                entry["inputBinding"] = {"prefix": binding.identity.names()[-1]}
                if not binding.config.required:
                    entry["type"] = ["null", entry["type"]]
            inputs[_identifier(binding, positionals).replace("-", "_")] = entry

        document = {
            "cwlVersion": "v1.2",
            "class": "CommandLineTool",
            "baseCommand": [pathlib.PurePath(executable[0]).name, *executable[1:]],
            "label": meta.short_description,
            "doc": "\n".join(meta.description),
            "inputs": inputs,
            "outputs": {},
        }
        self._renders.append(json.dumps(document, indent=2))

    def _flush(self):
        sys.stdout.write("\n".join(self._renders) + "\n")


EXPORT_FORMATS = {
    "html": HtmlFormat,
    "man": ManFormat,
    "ctd": CtdFormat,
    "cwl": CwlFormat,
}


__all__ = (
    "HelpFormat",
    "ShortHelpFormat",
    "VersionFormat",
    "CopyrightFormat",
    "HtmlFormat",
    "ManFormat",
    "CtdFormat",
    "CwlFormat",
    "EXPORT_FORMATS",
    "describe",
)
