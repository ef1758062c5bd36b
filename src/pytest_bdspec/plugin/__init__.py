"""Pytest plugin exposing behavior-driven suites to test functions.

This module integrates `pytest-bdspec` with pytest by:
- registering command-line options overriding the suite defaults;
- resolving a shared `SuiteSettings` instance at configuration time;
- providing the `spec_suite` and `feature_suite` factory fixtures;
- failing the test item when any of its suites failed.

Suites are closed, and parallel suites waited for, right after the test
function returns.
"""

from typing import TYPE_CHECKING, Any

import pytest

from pytest_bdspec.names import INDENT_ALIASES
from pytest_bdspec.options import SuiteSettings

from .run import TestRun

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

if TYPE_CHECKING:
    from _pytest.config import Config
    from _pytest.config.argparsing import Parser
    from _pytest.fixtures import FixtureRequest

    from pytest_bdspec.suites import FeatureSuite, SpecSuite

#: Stash key of the test run bound to an item.
RUN_KEY = pytest.StashKey[TestRun]()


def pytest_addoption(parser: 'Parser') -> None:
    """Register pytest command-line options for pytest-bdspec.

    Args:
        parser: Pytest argument parser.
    """
    group = parser.getgroup('bdspec', 'behavior-driven suites')
    group.addoption(
        '--bdspec-no-color',
        action='store_false',
        dest='bdspec_colorful',
        default=None,
        help='Render suite reports without ANSI colors.',
    )
    group.addoption(
        '--bdspec-no-durations',
        action='store_false',
        dest='bdspec_durations',
        default=None,
        help='Do not append elapsed times to the leaves of suite reports.',
    )
    group.addoption(
        '--bdspec-filenames',
        action='store_true',
        dest='bdspec_filenames',
        default=None,
        help=(
            'Append the source location of every block to suite reports, '
            'relative to the pytest root directory.'
        ),
    )
    group.addoption(
        '--bdspec-indent',
        choices=sorted(INDENT_ALIASES),
        dest='bdspec_indent',
        default=None,
        help='Indentation unit of suite reports: two spaces, four spaces or a tab.',
    )
    group.addoption(
        '--bdspec-timeout',
        type=float,
        dest='bdspec_timeout',
        default=None,
        help='Seconds to wait for parallel suites to complete.',
    )
    group.addoption(
        '--bdspec-workers',
        type=int,
        dest='bdspec_workers',
        default=None,
        help='Maximum number of parallel suites replayed at the same time.',
    )


def pytest_configure(config: 'Config') -> None:
    """Configure pytest-bdspec integration.

    This hook resolves the suite defaults from `BDSPEC_*` environment
    variables and the command-line options, and attaches them to the
    pytest configuration object as `config.bdspec_settings`.

    Args:
        config: Pytest configuration object.
    """
    overrides: dict[str, Any] = {}
    for name in ('colorful', 'durations', 'filenames', 'timeout', 'workers'):
        value = config.getoption(f'bdspec_{name}', default=None)
        if value is not None:
            overrides[name] = value

    if (indent := config.getoption('bdspec_indent', default=None)) is not None:
        overrides['indent'] = INDENT_ALIASES[indent]

    config.bdspec_settings = SuiteSettings(**overrides)  # type: ignore[attr-defined]


@pytest.hookimpl(wrapper=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> 'Generator[None, object, object]':
    """Settle the suites of a test function once it returned.

    Args:
        pyfuncitem: The test function item.
    """
    try:
        result = yield
    except BaseException:
        if (run := pyfuncitem.stash.get(RUN_KEY, None)) is not None:
            run.abort()
        raise

    if (run := pyfuncitem.stash.get(RUN_KEY, None)) is not None:
        run.finish()

    return result


@pytest.fixture
def bdspec_run(request: 'FixtureRequest') -> TestRun:
    """Provide the test run bound to the current test item."""
    item = request.node
    if (run := item.stash.get(RUN_KEY, None)) is not None:
        return run

    run = TestRun(
        item.name,
        request.config.bdspec_settings,  # type: ignore[attr-defined]
        base_path=request.config.rootpath,
    )
    item.stash[RUN_KEY] = run

    return run


@pytest.fixture
def spec_suite(bdspec_run: TestRun) -> 'Callable[..., SpecSuite]':
    """Provide a factory of describe/it suites.

    Example:
        def test_calculator(spec_suite):
            describe, before_each, it = spec_suite().api()
            ...
    """
    return bdspec_run.spec_suite


@pytest.fixture
def feature_suite(bdspec_run: TestRun) -> 'Callable[..., FeatureSuite]':
    """Provide a factory of feature/scenario suites."""
    return bdspec_run.feature_suite
