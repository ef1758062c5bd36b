"""Suite configuration options.

A suite is configured once, at construction time, with any number of
`Output` options (one per report destination) and an optional
`Parallel` switch. Defaults for anything not given explicitly come from
`SuiteSettings`, which reads `BDSPEC_*` environment variables.
"""

import sys
from collections.abc import Callable
from typing import Any

from pydantic import Field, PositiveFloat, PositiveInt, field_validator
from pydantic_settings import SettingsConfigDict

from pytest_bdspec.models import SchemaModel, SettingsModel
from pytest_bdspec.names import TWO_SPACES, Indent


class Output(SchemaModel):
    """Report destination and its decorations.

    Several outputs may be given to the same suite, for example the
    terminal with colors and a file without them. Each output renders
    the same tree with its own decorations.
    """

    stream: Any = Field(
        title='Output stream',
        description='Object with a `write(str)` method receiving the report.',
    )

    colorful: bool = Field(
        default=False,
        title='Colors',
        description='Decorate the report with ANSI colors.',
    )

    durations: bool = Field(
        default=False,
        title='Durations',
        description=(
            'Append the elapsed time of each leaf in milliseconds. '
            'Durations are only tracked by sequential runs.'
        ),
    )

    filenames: bool = Field(
        default=False,
        title='Source locations',
        description='Append the `file:line` of each declaration.',
    )

    indent: Indent = TWO_SPACES

    def __init__(self, stream: Any = None, /, **data: Any) -> None:  # noqa: ANN401
        """Initialize an output option.

        Args:
            stream: Object with a `write(str)` method.
            **data: Decoration flags.
        """
        if stream is not None:
            data['stream'] = stream

        super().__init__(**data)

    @field_validator('stream')
    @classmethod
    def validate_stream(cls, value: Any) -> Any:  # noqa: ANN401
        """Ensure the stream can receive text."""
        if not callable(getattr(value, 'write', None)):
            raise ValueError(f'{value!r} has no write method')

        return value

    def write(self, data: str) -> None:
        """Write a rendered report chunk to the stream."""
        self.stream.write(data)
        if callable(flush := getattr(self.stream, 'flush', None)):
            flush()


class Parallel(SchemaModel):
    """Switch enabling concurrent replay of suites.

    Every suite replays on its own worker with its own `World`. The
    report is rendered once all suites completed, and `done` is called
    right after it.
    """

    done: Callable[[], Any] | None = Field(
        default=None,
        title='Completion callback',
        description='Called once every dispatched suite has completed.',
    )

    workers: PositiveInt | None = Field(
        default=None,
        title='Workers',
        description='Maximum number of suites replayed at the same time.',
    )

    def __init__(self, done: Callable[[], Any] | None = None, /, **data: Any) -> None:  # noqa: ANN401
        """Initialize a parallel switch.

        Args:
            done: Optional completion callback.
            **data: Remaining fields.
        """
        if done is not None:
            data['done'] = done

        super().__init__(**data)


class SuiteSettings(SettingsModel):
    """Default configuration of suites.

    Resolved from `BDSPEC_*` environment variables and overridden by
    the pytest command-line options.
    """

    model_config = SettingsConfigDict(
        env_prefix='BDSPEC_',
    )

    colorful: bool = True
    durations: bool = True
    filenames: bool = False
    indent: Indent = TWO_SPACES

    timeout: PositiveFloat = Field(
        default=30.0,
        title='Parallel timeout',
        description='Seconds to wait for parallel suites to complete.',
    )

    workers: PositiveInt | None = None

    def output(self, stream: Any = None) -> Output:  # noqa: ANN401
        """Build the default output described by these settings.

        Args:
            stream: Destination; the current `sys.stdout` when omitted.

        Returns:
            Output option carrying the configured decorations.
        """
        return Output(
            stream if stream is not None else sys.stdout,
            colorful=self.colorful,
            durations=self.durations,
            filenames=self.filenames,
            indent=self.indent,
        )
