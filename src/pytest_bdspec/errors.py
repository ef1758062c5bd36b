"""Core exception hierarchy.

This module defines base error and warning types used across the library
to report structural declaration mistakes, World misuse, and failures
raised by step callbacks in a structured and extensible way.
"""

from os import linesep
from typing import TYPE_CHECKING, Any, TypedDict

from yaml import dump

if TYPE_CHECKING:
    from typing import Self

if TYPE_CHECKING:
    from pytest_bdspec.steps import Step

SNIPPET_ELLIPSIS = f' ...{linesep}'
SNIPPET_INDENT = 2

FORMAT_REPLACER = '<runtime object>'
FORMAT_FILENAME = '<unknown source>'
FORMAT_INDENT = 4

SCALARS = (str, bytes, int, float, bool)
MAPPINGS = (dict,)
SEQUENCES = (list, tuple, set)


class ErrorContext(TypedDict, total=False):
    """Container describing contextual information for error formatting.

    This structure aggregates optional metadata that may be available
    at different stages of declaration or replay.

    All fields are optional; the formatter adapts output based on
    provided values.
    """

    #: Name of the source file where the failing block was declared.
    filename: str | None
    #: Line number in the source file.
    line_num: int | None

    #: Title of the suite being replayed.
    suite: str | None
    #: Ordinal of the step within the suite.
    step_num: int | None

    #: Underlying exception that triggered formatting.
    error: BaseException | None

    #: World values available at the moment of failure.
    context: dict[str, Any] | None


class ErrorFormatter:
    """Utility class for formatting engine errors.

    This formatter is responsible for producing human-readable
    error messages with optional source location and a YAML snapshot
    of the World values.
    """

    @classmethod
    def format(cls, message: str, context: ErrorContext | None = None) -> str:
        """Format an error message using contextual information.

        Args:
            message: Base human-readable error message.
            context: Optional error context with location and data.

        Returns:
            A fully formatted error message suitable for display.
        """
        if not context:
            return message

        location = cls.get_location_string(context, indent=FORMAT_INDENT)
        snippet = cls.get_snippet_string(context, indent=FORMAT_INDENT * 2)
        if location or snippet:
            message += linesep + location + snippet

        return message

    @classmethod
    def get_location_string(cls, context: ErrorContext, *,
                            indent: str | int | None = None) -> str:
        """Format source and replay location information.

        Args:
            context: Error context containing location metadata.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted location string including filename, line,
            suite title and step number when available.
        """
        indent = cls._ensure_indent(indent)

        message = ''
        if (filename := context.get('filename')) or context.get('line_num') is not None:
            message += f'{indent}in "{filename or FORMAT_FILENAME}"'
            if (line_num := context.get('line_num')) is not None:
                message += f', line {line_num}'
            message += linesep

        if (step_num := context.get('step_num')) is not None:
            message += f'{indent}on step {step_num + 1}'
            if suite := context.get('suite'):
                message += f' of "{suite}"'
            message += linesep

        return message

    @classmethod
    def get_snippet_string(cls, context: ErrorContext, *,
                           indent: str | int | None = None) -> str:
        """Generate a YAML snippet of the World values.

        Args:
            context: Error context containing World values.
            indent: Optional indentation (string or number of spaces).

        Returns:
            A formatted multi-line snippet string, or an empty string
            if no values are available.
        """
        indent = cls._ensure_indent(indent)

        if not (values := context.get('context')):
            return ''

        snippet = f'{indent}{SNIPPET_ELLIPSIS}'
        snippet += cls._make_yaml({'world': {**values}}, indent)
        snippet += linesep

        return snippet

    @classmethod
    def _filter_unsafe(cls, value: Any) -> Any:  # noqa: ANN401
        """Recursively sanitize values for safe YAML serialization.

        Non-scalar and non-container objects are replaced with
        a placeholder to prevent leaking opaque data.

        Args:
            value: Arbitrary value to sanitize.

        Returns:
            A YAML-safe representation of the value.
        """
        if value is None or isinstance(value, SCALARS):
            return value

        if isinstance(value, MAPPINGS):
            return {
                f'{key}': cls._filter_unsafe(item)
                for key, item in value.items()
            }

        if isinstance(value, SEQUENCES):
            return [
                cls._filter_unsafe(item)
                for item in value
            ]

        return FORMAT_REPLACER

    @classmethod
    def _make_yaml(cls, value: Any, indent: str = '') -> str:  # noqa: ANN401
        """Serialize a value to a YAML-formatted string.

        Args:
            value: Arbitrary value to serialize.
            indent: Optional indentation prefix.

        Returns:
            A YAML-formatted string representation of the value.
        """
        data = dump(
            cls._filter_unsafe(value),
            indent=SNIPPET_INDENT,
            sort_keys=False,
            allow_unicode=True,
        )

        return cls._make_indent(data, indent)

    @staticmethod
    def _make_indent(value: str, indent: str) -> str:
        """Apply indentation to a multi-line string.

        Empty or whitespace-only lines are omitted.

        Args:
            value: Original multi-line string.
            indent: Indentation prefix.

        Returns:
            Indented string.
        """
        if not indent:
            return value

        return linesep.join(
            f'{indent}{line}'
            for line in value.splitlines()
            if line.strip()
        )

    @staticmethod
    def _ensure_indent(indent: str | int | None = None) -> str:
        """Normalize indentation input.

        Args:
            indent: Indentation as string or number of spaces.

        Returns:
            A string consisting of spaces or the provided string.
        """
        if isinstance(indent, int) and indent > 0:
            return ' ' * indent

        if isinstance(indent, str):
            return indent

        return ''


class SharedStateWarning(UserWarning):
    """Warning emitted when a parallel step does not accept the World.

    Such a step can only exchange state through captured variables,
    which are shared between concurrently replayed suites.
    """


class SpecError(Exception, ErrorFormatter):
    """Base exception for all pytest-bdspec errors.

    All custom exceptions raised by the library should inherit from
    this class to allow unified error handling by callers.
    """

    def __init__(self, message: str, *,
                 context: ErrorContext | None = None) -> None:
        """Initialize an error.

        Args:
            message: Human-readable error description.
            context: Error context containing optional runtime values.
        """
        self.message = message
        self.context = context

        super().__init__(message)

    def __str__(self) -> str:
        """String represenatation."""
        return self.format(self.message, self.context)


class DeclarationError(SpecError):
    """Error raised for a block declared in a disallowed position.

    Also used for inconsistencies of the declaration stack, which
    indicate a declaration that escaped its enclosing group.
    """

    @classmethod
    def at(cls, message: str, filename: str | None,
           line_num: int | None) -> 'Self':
        """Create an error pointing at a declaration site.

        Args:
            message: Human-readable error message.
            filename: Source file of the declaration.
            line_num: Source line of the declaration.

        Returns:
            An initialized DeclarationError with location context.
        """
        return cls(message, context=ErrorContext(
            filename=filename,
            line_num=line_num,
        ))


class CallbackError(DeclarationError):
    """Error raised when a callback has an unsupported signature."""


class StateError(SpecError):
    """Error reported when a World key is used before being set."""


class StepError(SpecError):
    """Error reported when a step callback fails during replay.

    Wraps assertion failures and unexpected exceptions with the
    location of the step, its position in the suite, and the World
    values at the moment of failure.
    """

    @classmethod
    def from_step(cls, step: 'Step', error: BaseException, *,
                  suite: str | None = None,
                  step_num: int | None = None,
                  context: dict[str, Any] | None = None) -> 'Self':
        """Create a step error from a raised exception.

        Args:
            step: The step whose callback raised.
            error: The raised exception.
            suite: Title of the replayed suite.
            step_num: Position of the step within the suite.
            context: World values at failure time.

        Returns:
            StepError describing the failure.
        """
        error_context = ErrorContext(
            filename=step.node.location.filename,
            line_num=step.node.location.line,
            suite=suite,
            step_num=step_num,
            error=error,
            context=context,
        )

        message = f'{step.keyword or "Step"} failed'
        if step.title:
            message += f': {step.title}'

        # pytest outcomes and assertions carry a ready message
        details = f'{error!r}'
        if isinstance(error, AssertionError) or not isinstance(error, Exception):
            details = f'{error}'
        if details:
            message += f'{linesep}{" " * FORMAT_INDENT}{details}'

        return cls(message, context=error_context)
