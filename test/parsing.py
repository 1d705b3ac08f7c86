# python
"""
Parser and parsing engine behavioral tests.

Scope
- Validate the token grammar: long/short spellings, clusters, '--', exact
  long-name matching, list accumulation.
- Validate user errors and their messages (unknown option, missing value,
  repeated option, conversion, validation, positional counts, required).
- Validate registration design errors and the single-shot parse lifecycle.
- Validate is_option_set() and the version-check decision.
- Validate that binding does not depend on registration or argv order.

Conventions
- Test method names follow CamelCase per project convention.
- Parsers are built through make() with update notifications off unless a
  test is about the version check.
"""

from __future__ import annotations

import contextlib
import enum
import io
import itertools
import os
import threading
import unittest
from unittest import TestCase, mock

from argweave import (
    Parser,
    UpdateNotifications,
    ENVIRONMENT_VARIABLE,
    Config,
    Slot,
    UInt8,
    ArithmeticRangeValidator,
    DesignError,
    UnknownOptionError,
    TooManyArgumentsError,
    TooFewArgumentsError,
    RequiredOptionMissingError,
    OptionDeclaredMultipleTimesError,
    UserInputError,
    ValidationError,
    UsageError,
)


def make(*tokens, **options):
    return Parser("tool", ["./tool", *tokens], UpdateNotifications.OFF, **options)


class Speed(enum.Enum):
    SLOW = 1
    FAST = 2

    @classmethod
    def __enumeration_names__(cls):
        return {"slow": cls.SLOW, "fast": cls.FAST}


class TestGrammar(TestCase):
    """Behavioral tests for recognizing options, flags and positionals."""

    def testOptionSpellingsBindIdentically(self):
        for tokens in (
                ["--opt", "value"],
                ["--opt=value"],
                ["-o", "value"],
                ["-ovalue"],
                ["-o=value"],
        ):
            with self.subTest(tokens=tokens):
                parser = make(*tokens)
                slot = Slot(str)
                parser.add_option(slot, Config(short_id="o", long_id="opt"))
                parser.parse()
                self.assertEqual(slot.value, "value")

    def testFlagCluster(self):
        for tokens in (["-fbc"], ["-f", "-b", "-c"], ["-fb", "--cc"]):
            with self.subTest(tokens=tokens):
                parser = make(*tokens)
                slots = [Slot(bool) for _ in range(3)]
                for slot, (short, long) in zip(slots, (("f", "ff"), ("b", "bb"), ("c", "cc"))):
                    parser.add_flag(slot, Config(short_id=short, long_id=long))
                parser.parse()
                self.assertEqual([slot.value for slot in slots], [True, True, True])

    def testClusterEndingInOption(self):
        parser = make("-vn", "5")
        verbose, number = Slot(bool), Slot(int)
        parser.add_flag(verbose, Config(short_id="v"))
        parser.add_option(number, Config(short_id="n"))
        parser.parse()
        self.assertTrue(verbose.value)
        self.assertEqual(number.value, 5)

    def testClusterWithAttachedValue(self):
        parser = make("-vn5")
        verbose, number = Slot(bool), Slot(int)
        parser.add_flag(verbose, Config(short_id="v"))
        parser.add_option(number, Config(short_id="n"))
        parser.parse()
        self.assertTrue(verbose.value)
        self.assertEqual(number.value, 5)

    def testDoubleDashEndsOptions(self):
        parser = make("--", "-120")
        value = Slot(int)
        parser.add_positional_option(value, Config())
        parser.parse()
        self.assertEqual(value.value, -120)

    def testDoubleDashKeepsStrings(self):
        parser = make("--", "-120", "--flag")
        values = Slot(list[str])
        parser.add_positional_option(values, Config())
        parser.parse()
        self.assertEqual(values.value, ["-120", "--flag"])

    def testSingleDashIsPositional(self):
        parser = make("-")
        value = Slot(str)
        parser.add_positional_option(value, Config())
        parser.parse()
        self.assertEqual(value.value, "-")

    def testOptionValueMayStartWithDash(self):
        parser = make("--name", "-x")
        name = Slot(str)
        parser.add_option(name, Config(long_id="name"))
        parser.parse()
        self.assertEqual(name.value, "-x")

    def testHelpTokenAsOptionValueIsNotHelp(self):
        parser = make("--name", "-h")
        name = Slot(str)
        parser.add_option(name, Config(long_id="name"))
        parser.parse()
        self.assertEqual(name.value, "-h")

    def testLongPrefixDoesNotMatch(self):
        parser = make("--foo", "1")
        parser.add_option(Slot(int), Config(long_id="foo-bar"))
        with self.assertRaises(UnknownOptionError):
            parser.parse()

    def testLongExactMatchAmongPrefixes(self):
        parser = make("--foo", "1", "--foobar", "2")
        foo, foobar = Slot(int), Slot(int)
        parser.add_option(foo, Config(long_id="foo"))
        parser.add_option(foobar, Config(long_id="foobar"))
        parser.parse()
        self.assertEqual((foo.value, foobar.value), (1, 2))

    def testListOptionAccumulatesAndReplacesDefault(self):
        parser = make("-n", "1", "--number", "2", "-n3")
        numbers = Slot(list[int], [9])
        parser.add_option(numbers, Config(short_id="n", long_id="number"))
        parser.parse()
        self.assertEqual(numbers.value, [1, 2, 3])

    def testListOptionKeepsDefaultWhenAbsent(self):
        parser = make("x")
        numbers = Slot(list[int], [9])
        parser.add_option(numbers, Config(short_id="n"))
        parser.add_positional_option(Slot(str), Config())
        parser.parse()
        self.assertEqual(numbers.value, [9])

    def testPositionalsInOrderWithTrailingList(self):
        parser = make("a", "1", "2", "3")
        first, rest = Slot(str), Slot(list[int])
        parser.add_positional_option(first, Config())
        parser.add_positional_option(rest, Config())
        parser.parse()
        self.assertEqual(first.value, "a")
        self.assertEqual(rest.value, [1, 2, 3])

    def testTrailingListMayBeEmpty(self):
        parser = make("a")
        first, rest = Slot(str), Slot(list[int], [7])
        parser.add_positional_option(first, Config())
        parser.add_positional_option(rest, Config())
        parser.parse()
        self.assertEqual(rest.value, [7])

    def testEnumerationOption(self):
        parser = make("--speed", "fast")
        speed = Slot(Speed, Speed.SLOW)
        parser.add_option(speed, Config(long_id="speed"))
        parser.parse()
        self.assertIs(speed.value, Speed.FAST)


class TestUserErrors(TestCase):
    """Behavioral tests for user errors raised by parse()."""

    def assertFault(self, fault, parser, message=None):
        with self.assertRaises(fault) as context:
            parser.parse()
        self.assertIsInstance(context.exception, UsageError)
        if message is not None:
            self.assertEqual(str(context.exception), message)
        return context.exception

    def testUnknownLongOption(self):
        parser = make("--bogus")
        parser.add_flag(Slot(bool), Config(long_id="verbose"))
        self.assertFault(UnknownOptionError, parser, (
            "Unknown option --bogus. In case this is meant to be a non-option/argument/parameter, please specify "
            "the start of non-options with '--'. See -h/--help for program information."
        ))

    def testUnknownOptionSuggestsClosestName(self):
        parser = make("--verbos")
        parser.add_flag(Slot(bool), Config(long_id="verbose"))
        fault = self.assertFault(UnknownOptionError, parser)
        self.assertEqual(fault.options["suggestions"], ["--verbose"])

    def testUnknownShortOption(self):
        parser = make("-x")
        parser.add_flag(Slot(bool), Config(short_id="v"))
        self.assertFault(UnknownOptionError, parser)

    def testUnknownLetterInCluster(self):
        parser = make("-vx")
        parser.add_flag(Slot(bool), Config(short_id="v"))
        self.assertFault(UnknownOptionError, parser)

    def testVersionCheckUnknownWhenNotificationsOff(self):
        parser = make("--version-check", "true")
        self.assertFault(UnknownOptionError, parser)

    def testMissingValue(self):
        parser = make("--number")
        parser.add_option(Slot(int), Config(long_id="number"))
        self.assertFault(TooFewArgumentsError, parser, "Missing value for option --number.")

    def testMissingShortValue(self):
        parser = make("-n")
        parser.add_option(Slot(int), Config(short_id="n"))
        self.assertFault(TooFewArgumentsError, parser, "Missing value for option -n.")

    def testEmptyAssignedValue(self):
        parser = make("--number=")
        parser.add_option(Slot(int), Config(long_id="number"))
        self.assertFault(TooFewArgumentsError, parser)

    def testRepeatedOption(self):
        parser = make("-n", "1", "--number", "2")
        parser.add_option(Slot(int), Config(short_id="n", long_id="number"))
        self.assertFault(OptionDeclaredMultipleTimesError, parser,
                         "Option -n/--number is no list/container type but specified multiple times.")

    def testRepeatedFlag(self):
        parser = make("-v", "-v")
        parser.add_flag(Slot(bool), Config(short_id="v"))
        self.assertFault(OptionDeclaredMultipleTimesError, parser)

    def testFlagGivenValue(self):
        parser = make("--verbose=1")
        parser.add_flag(Slot(bool), Config(long_id="verbose"))
        self.assertFault(UserInputError, parser, "Flag --verbose cannot be given a value.")

    def testConversionFailure(self):
        parser = make("-i", "5a")
        parser.add_option(Slot(int), Config(short_id="i"))
        self.assertFault(UserInputError, parser,
                         "Value parse failed for -i: Argument 5a could not be parsed as type signed integer.")

    def testFixedWidthOverflow(self):
        parser = make("--threads", "300")
        parser.add_option(Slot(UInt8), Config(long_id="threads"))
        self.assertFault(UserInputError, parser,
                         "Value parse failed for --threads: Argument 300 could not be parsed as type unsigned 8 bit integer.")

    def testEnumerationFailureListsNames(self):
        parser = make("--speed", "warp")
        parser.add_option(Slot(Speed), Config(long_id="speed"))
        fault = self.assertFault(UserInputError, parser)
        self.assertIn("Please use one of: [slow, fast]", str(fault))

    def testValidationFailure(self):
        parser = make("--number", "12")
        parser.add_option(Slot(int), Config(long_id="number", validator=ArithmeticRangeValidator(1, 10)))
        self.assertFault(ValidationError, parser,
                         "Validation failed for option --number: Value 12 is not in range [1,10].")

    def testValidationRunsPerListElement(self):
        parser = make("-n", "1", "-n", "11")
        parser.add_option(Slot(list[int]), Config(short_id="n", validator=ArithmeticRangeValidator(1, 10)))
        self.assertFault(ValidationError, parser)

    def testPositionalValidationFailure(self):
        parser = make("12")
        parser.add_positional_option(Slot(int), Config(validator=ArithmeticRangeValidator(1, 10)))
        self.assertFault(ValidationError, parser,
                         "Validation failed for positional option 1: Value 12 is not in range [1,10].")

    def testTooFewPositionals(self):
        parser = make("a")
        parser.add_positional_option(Slot(str), Config())
        parser.add_positional_option(Slot(str), Config())
        self.assertFault(TooFewArgumentsError, parser,
                         "Not enough positional arguments provided (Need at least 2). See -h/--help for more information.")

    def testTooManyPositionals(self):
        parser = make("a", "b")
        parser.add_positional_option(Slot(str), Config())
        self.assertFault(TooManyArgumentsError, parser,
                         "Too many arguments provided. Please see -h/--help for more information.")

    def testRequiredOptionMissing(self):
        parser = make("-v", "file.txt")
        verbose, path = Slot(bool), Slot(str)
        parser.add_option(Slot(int), Config(short_id="n", long_id="number", required=True))
        parser.add_flag(verbose, Config(short_id="v"))
        parser.add_positional_option(path, Config())
        self.assertFault(RequiredOptionMissingError, parser, "Option -n/--number is required but not set.")
        self.assertTrue(verbose.value)
        self.assertEqual(path.value, "file.txt")


class TestRegistration(TestCase):
    """Behavioral tests for registration design errors."""

    def testDuplicateShortId(self):
        parser = make("x")
        parser.add_option(Slot(int), Config(short_id="i", long_id="int"))
        with self.assertRaises(DesignError) as context:
            parser.add_option(Slot(int), Config(short_id="i", long_id="other"))
        self.assertEqual(str(context.exception), "Option Identifier 'i' was already used before.")

    def testDuplicateLongIdAcrossKinds(self):
        parser = make("x")
        parser.add_flag(Slot(bool), Config(long_id="verbose"))
        with self.assertRaises(DesignError):
            parser.add_option(Slot(int), Config(long_id="verbose"))

    def testReservedIds(self):
        for short, long in (("h", ""), ("", "help"), ("", "hh"), ("", "advanced-help"),
                            ("", "version"), ("", "copyright"), ("", "export-help")):
            with self.subTest(short=short, long=long), self.assertRaises(DesignError):
                make("x").add_option(Slot(int), Config(short_id=short, long_id=long))

    def testVersionCheckReservedOnlyWhenNotificationsOn(self):
        make("x").add_flag(Slot(bool), Config(long_id="version-check"))
        parser = Parser("tool", ["./tool", "x"])
        with self.assertRaises(DesignError):
            parser.add_flag(Slot(bool), Config(long_id="version-check"))

    def testMalformedIdBeforeCollision(self):
        parser = make("x")
        parser.add_option(Slot(int), Config(short_id="i"))
        with self.assertRaises(DesignError) as context:
            parser.add_option(Slot(int), Config(short_id="i", long_id="a"))
        self.assertEqual(str(context.exception), "Long IDs must be either empty, or longer than one character.")

    def testRequiredWithDefaultMessage(self):
        with self.assertRaises(DesignError):
            make("x").add_option(Slot(int), Config(short_id="i", required=True, default_message="all"))

    def testFlagMustBeBool(self):
        with self.assertRaises(DesignError):
            make("x").add_flag(Slot(int), Config(short_id="v"))

    def testFlagDefaultMustBeFalse(self):
        with self.assertRaises(DesignError) as context:
            make("x").add_flag(Slot(bool, True), Config(short_id="v"))
        self.assertEqual(str(context.exception), "A flag's default value must be false.")

    def testFlagDefaultMessageRejected(self):
        with self.assertRaises(DesignError):
            make("x").add_flag(Slot(bool), Config(short_id="v", default_message="off"))

    def testPositionalWithIds(self):
        with self.assertRaises(DesignError):
            make("x").add_positional_option(Slot(str), Config(short_id="p"))

    def testPositionalAdvancedOrHidden(self):
        with self.assertRaises(DesignError):
            make("x").add_positional_option(Slot(str), Config(advanced=True))
        with self.assertRaises(DesignError):
            make("x").add_positional_option(Slot(str), Config(hidden=True))

    def testPositionalDefaultMessage(self):
        with self.assertRaises(DesignError):
            make("x").add_positional_option(Slot(str), Config(default_message="none"))

    def testNothingAfterListPositional(self):
        parser = make("x")
        parser.add_positional_option(Slot(list[str]), Config())
        with self.assertRaises(DesignError):
            parser.add_positional_option(Slot(str), Config())

    def testWrongArgumentTypes(self):
        with self.assertRaises(TypeError):
            make("x").add_option(str, Config(short_id="i"))
        with self.assertRaises(TypeError):
            make("x").add_option(Slot(str), {"short_id": "i"})

    def testBadAppName(self):
        with self.assertRaises(DesignError):
            Parser("my tool", ["./tool"])

    def testParseIsSingleShot(self):
        parser = make("x")
        parser.add_positional_option(Slot(str), Config())
        parser.parse()
        with self.assertRaises(DesignError) as context:
            parser.parse()
        self.assertEqual(str(context.exception), "The function parse() must only be called once!")

    def testParseIsSingleShotAfterFailure(self):
        parser = make("--bogus")
        with self.assertRaises(UnknownOptionError):
            parser.parse()
        with self.assertRaises(DesignError):
            parser.parse()

    def testRegistrationAfterParse(self):
        parser = make("x")
        parser.add_positional_option(Slot(str), Config())
        parser.parse()
        with self.assertRaises(DesignError) as context:
            parser.add_option(Slot(int), Config(short_id="i"))
        self.assertEqual(str(context.exception), "add_option() may only be used before calling parse().")
        with self.assertRaises(DesignError):
            parser.add_section("More")


class TestIsOptionSet(TestCase):
    """Behavioral tests for is_option_set()."""

    def setUp(self):
        self.parser = make("-n", "3")
        self.parser.add_option(Slot(int), Config(short_id="n", long_id="number"))
        self.parser.add_flag(Slot(bool), Config(short_id="v", long_id="verbose"))

    def testBeforeParse(self):
        with self.assertRaises(DesignError):
            self.parser.is_option_set("n")

    def testAfterParse(self):
        self.parser.parse()
        self.assertTrue(self.parser.is_option_set("n"))
        self.assertTrue(self.parser.is_option_set("number"))
        self.assertFalse(self.parser.is_option_set("v"))
        self.assertFalse(self.parser.is_option_set("verbose"))

    def testUnregisteredId(self):
        self.parser.parse()
        with self.assertRaises(DesignError):
            self.parser.is_option_set("threads")

    def testMalformedId(self):
        self.parser.parse()
        with self.assertRaises(DesignError):
            self.parser.is_option_set("-n")
        with self.assertRaises(DesignError):
            self.parser.is_option_set("")

    def testReservedId(self):
        self.parser.parse()
        self.assertFalse(self.parser.is_option_set("h"))


class TestVersionCheck(TestCase):
    """Behavioral tests for the version-check decision."""

    def setUp(self):
        patcher = mock.patch.dict(os.environ)
        patcher.start()
        self.addCleanup(patcher.stop)
        os.environ.pop(ENVIRONMENT_VARIABLE, None)

    def testDefaultIsNoCheck(self):
        parser = Parser("tool", ["./tool", "x"])
        parser.add_positional_option(Slot(str), Config())
        parser.parse()
        self.assertFalse(parser.version_check)

    def testUserOptIn(self):
        called = threading.Event()
        parser = Parser("tool", ["./tool", "--version-check", "true", "x"], version_checker=lambda info: called.set())
        value = Slot(str)
        parser.add_positional_option(value, Config())
        parser.parse()
        self.assertTrue(parser.version_check)
        self.assertTrue(parser.is_option_set("version-check"))
        self.assertEqual(value.value, "x")
        self.assertTrue(called.wait(3.0))

    def parseToShortHelp(self, parser):
        with contextlib.redirect_stdout(io.StringIO()) as stdout, self.assertRaises(SystemExit) as context:
            parser.parse()
        self.assertEqual(context.exception.code, 0)
        return stdout.getvalue()

    def testUserOptOut(self):
        parser = Parser("tool", ["./tool", "--version-check=0", "x"])
        parser.add_positional_option(Slot(str), Config())
        parser.parse()
        self.assertFalse(parser.version_check)
        self.assertTrue(parser.is_option_set("version-check"))

    def testOnlyVersionCheckShowsShortHelp(self):
        parser = Parser("tool", ["./tool", "--version-check", "false"])
        parser.add_positional_option(Slot(str), Config())
        output = self.parseToShortHelp(parser)
        self.assertIn("Try -h or --help for more information.", output)
        self.assertFalse(parser.version_check)
        self.assertTrue(parser.is_option_set("version-check"))

    def testEnvironmentDisables(self):
        os.environ[ENVIRONMENT_VARIABLE] = "1"
        parser = Parser("tool", ["./tool", "--version-check", "1"])
        self.parseToShortHelp(parser)
        self.assertFalse(parser.version_check)

    def testNotificationsOffDisables(self):
        parser = make("x")
        parser.add_positional_option(Slot(str), Config())
        parser.parse()
        self.assertFalse(parser.version_check)

    def testBadValue(self):
        parser = Parser("tool", ["./tool", "--version-check", "maybe"])
        with self.assertRaises(ValidationError) as context:
            parser.parse()
        self.assertEqual(str(context.exception), "Value for option --version-check must be true (1) or false (0).")

    def testMissingValue(self):
        parser = Parser("tool", ["./tool", "--version-check"])
        with self.assertRaises(TooFewArgumentsError):
            parser.parse()


class TestOrderIndependence(TestCase):
    """Bound values do not depend on registration order or argv order."""

    def testAllRegistrationAndArgvOrders(self):
        registrations = (
            lambda parser, slots: parser.add_option(slots["i"], Config(short_id="i")),
            lambda parser, slots: parser.add_flag(slots["b"], Config(short_id="b")),
            lambda parser, slots: parser.add_positional_option(slots["arg"], Config()),
        )
        argvs = (
            ["-i", "2", "-b", "arg"],
            ["-b", "-i", "2", "arg"],
            ["-i", "2", "arg", "-b"],
            ["arg", "-b", "-i", "2"],
            ["-b", "arg", "-i2"],
        )
        for order in itertools.permutations(registrations):
            for argv in argvs:
                with self.subTest(argv=argv):
                    slots = {"i": Slot(int), "b": Slot(bool), "arg": Slot(str)}
                    parser = make(*argv)
                    for register in order:
                        register(parser, slots)
                    parser.parse()
                    self.assertEqual((slots["i"].value, slots["b"].value, slots["arg"].value), (2, True, "arg"))


if __name__ == "__main__":
    unittest.main()
