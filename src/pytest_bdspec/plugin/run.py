"""Per-item binding of suites to a harness.

Every pytest item using the suite fixtures gets one `TestRun`. It owns
the root harness the suites report to, and turns the outcome of that
harness into the outcome of the item once the test function returned.
"""

from typing import TYPE_CHECKING, Any, TypeVar

import pytest

from pytest_bdspec.harness import Harness
from pytest_bdspec.suites import FeatureSuite, SpecSuite

if TYPE_CHECKING:
    from pathlib import Path

if TYPE_CHECKING:
    from pytest_bdspec.options import Output, Parallel, SuiteSettings
    from pytest_bdspec.suites import BaseSuite

S = TypeVar('S', bound='BaseSuite')


class TestRun:
    """Suites declared by one pytest item and their shared harness."""

    __test__ = False

    def __init__(self, name: str, settings: 'SuiteSettings', *,
                 base_path: 'Path | None' = None) -> None:
        """Initialize a test run.

        Args:
            name: Name of the pytest item.
            settings: Resolved suite defaults.
            base_path: Directory source locations are shown relative to.
        """
        self.settings = settings
        self.base_path = base_path

        self.harness = Harness(name, workers=settings.workers)
        self.suites: list[BaseSuite] = []

    def spec_suite(self, *options: 'Output | Parallel', **kwargs: Any) -> SpecSuite:  # noqa: ANN401
        """Create a describe/it suite bound to this run."""
        return self._track(SpecSuite(
            self.harness,
            *options,
            **self._defaults(kwargs),
        ))

    def feature_suite(self, *options: 'Output | Parallel', **kwargs: Any) -> FeatureSuite:  # noqa: ANN401
        """Create a feature/scenario suite bound to this run."""
        return self._track(FeatureSuite(
            self.harness,
            *options,
            **self._defaults(kwargs),
        ))

    def finish(self) -> None:
        """Close every suite, wait for parallel replays and report.

        Raises:
            pytest.fail.Exception: If any suite failed, or parallel
                suites did not complete in time.
        """
        for suite in self.suites:
            suite.close()

        timeout = self.settings.timeout
        completed = self.harness.wait(timeout)
        if not completed:
            self.harness.error(f'Parallel suites did not complete within {timeout}s')

        self.harness.shutdown(wait=completed)

        if self.harness.failed:
            pytest.fail(self.harness.summary(), pytrace=False)

    def abort(self) -> None:
        """Release the worker pool after the test function raised."""
        for suite in self.suites:
            suite.close()

        self.harness.shutdown(wait=False)

    def _defaults(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        kwargs.setdefault('base_path', self.base_path)
        kwargs.setdefault('settings', self.settings)

        return kwargs

    def _track(self, suite: S) -> S:
        self.suites.append(suite)
        return suite
