"""Tests configurations and fixtures."""

from io import StringIO
from typing import TYPE_CHECKING

import pytest

from pytest_bdspec.harness import Harness
from pytest_bdspec.options import Output

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

pytest_plugins = ['pytester']


@pytest.fixture
def harness() -> 'Iterator[Harness]':
    """Provide a detached root harness.

    Suites under test report to this harness instead of the harness of
    the running pytest item, so failing suites can be asserted on
    without failing the test itself.
    """
    harness = Harness('test')
    yield harness
    harness.shutdown()


@pytest.fixture
def stream() -> StringIO:
    """Provide an in-memory report destination."""
    return StringIO()


@pytest.fixture
def plain(stream: StringIO) -> Output:
    """Provide an undecorated output writing to `stream`."""
    return Output(stream)


@pytest.fixture
def record() -> 'Callable[..., Callable[..., None]]':
    """Provide a factory of callbacks appending to a shared call log.

    The log is available as the `calls` attribute of the factory.
    """
    calls: list = []

    def factory(value: object) -> 'Callable[[], None]':
        def callback() -> None:
            calls.append(value)

        return callback

    factory.calls = calls  # type: ignore[attr-defined]
    return factory
