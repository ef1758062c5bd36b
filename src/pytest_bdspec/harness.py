"""Named sub-test runner.

The engine does not talk to pytest directly. It consumes a small harness
interface: report a non-fatal error, skip from here, ask whether a test
failed, and run a named child either blocking or on a worker. `Harness`
implements that interface in process; the pytest plugin binds one root
harness to every test item and turns its failures into a test failure.
"""

from concurrent.futures import Future, ThreadPoolExecutor, wait
from os import linesep
from threading import RLock
from time import monotonic
from typing import TYPE_CHECKING, Any, NoReturn

import pytest

from pytest_bdspec.expect import Expectation
from pytest_bdspec.names import TITLE_SEPARATOR

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

SUMMARY_INDENT = '    '


class Harness:
    """In-process test harness with named children.

    A harness fails when it recorded an error itself or when any of its
    children failed. Children run either synchronously (`run`) or on a
    thread pool shared by the whole harness tree (`spawn`).
    """

    def __init__(self, name: str = '', *,
                 parent: 'Harness | None' = None,
                 workers: int | None = None) -> None:
        """Initialize a harness.

        Args:
            name: Name of this (sub-)test.
            parent: Parent harness for children.
            workers: Pool size used by `spawn` on a root harness.
        """
        self.name = name
        self.parent = parent

        self.errors: list[str] = []
        self.children: list[Harness] = []

        self.skipped = False
        self.skip_reason: str | None = None

        self._lock = RLock()
        self._workers = workers
        self._executor: ThreadPoolExecutor | None = None
        self._futures: list[Future[None]] = []

    def __repr__(self) -> str:
        return f'Harness({self.full_name!r})'

    @property
    def root(self) -> 'Harness':
        """The top-most harness owning the worker pool."""
        return self.parent.root if self.parent else self

    @property
    def full_name(self) -> str:
        """Slash-separated names from the root down to this harness."""
        if self.parent and self.parent.full_name:
            return f'{self.parent.full_name}{TITLE_SEPARATOR}{self.name}'

        return self.name

    @property
    def failed(self) -> bool:
        """Whether this harness or any of its children failed."""
        with self._lock:
            children = list(self.children)
            if self.errors:
                return True

        return any(child.failed for child in children)

    @property
    def failures(self) -> int:
        """Number of own errors plus the number of failed children."""
        with self._lock:
            children = list(self.children)
            count = len(self.errors)

        return count + sum(1 for child in children if child.failed)

    def error(self, message: str | BaseException) -> None:
        """Record a non-fatal error and mark this harness failed."""
        with self._lock:
            self.errors.append(f'{message}')

    def skip(self, reason: str = '') -> NoReturn:
        """Stop the current (sub-)test and mark it skipped."""
        pytest.skip(reason)

    def expect(self, value: Any) -> Expectation:  # noqa: ANN401
        """Start an expectation reporting to this harness."""
        return Expectation(value, self)

    def run(self, name: str, test: 'Callable[[Harness], Any]') -> bool:
        """Run a named child test and wait for it.

        Args:
            name: Name of the child.
            test: Callable receiving the child harness.

        Returns:
            Whether the child passed.
        """
        child = self._child(name)
        child.invoke(test)

        return not child.failed

    def spawn(self, name: str, test: 'Callable[[Harness], Any]') -> Future[None]:
        """Run a named child test on the worker pool without waiting.

        Args:
            name: Name of the child.
            test: Callable receiving the child harness.

        Returns:
            Future completed once the child finished.
        """
        child = self._child(name)

        root = self.root
        with root._lock:  # noqa: SLF001
            if root._executor is None:  # noqa: SLF001
                root._executor = ThreadPoolExecutor(  # noqa: SLF001
                    max_workers=root._workers,  # noqa: SLF001
                    thread_name_prefix='bdspec',
                )
            future = root._executor.submit(child.invoke, test)  # noqa: SLF001
            root._futures.append(future)  # noqa: SLF001

        return future

    def invoke(self, test: 'Callable[[Harness], Any]') -> None:
        """Call `test` with this harness, recording its outcome.

        Skips mark the harness skipped; assertion failures and
        unexpected exceptions are recorded as errors.
        """
        try:
            test(self)

        except pytest.skip.Exception as outcome:
            self.skipped = True
            self.skip_reason = outcome.msg

        except (AssertionError, pytest.fail.Exception) as failure:
            self.error(failure)

        except Exception as error:  # noqa: BLE001
            self.error(f'{error!r}')

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for every spawned child of the harness tree.

        Children spawned while waiting are waited for as well.

        Args:
            timeout: Seconds to wait overall; forever when `None`.

        Returns:
            Whether all children completed in time.
        """
        root = self.root
        deadline = None if timeout is None else monotonic() + timeout

        while True:
            with root._lock:  # noqa: SLF001
                pending = [item for item in root._futures if not item.done()]  # noqa: SLF001
            if not pending:
                return True

            remaining = None if deadline is None else max(deadline - monotonic(), 0)
            _, not_done = wait(pending, timeout=remaining)
            if not_done and deadline is not None and monotonic() >= deadline:
                return False

    def shutdown(self, *, wait: bool = True) -> None:
        """Release the worker pool of the harness tree."""
        root = self.root
        with root._lock:  # noqa: SLF001
            executor, root._executor = root._executor, None  # noqa: SLF001

        if executor is not None:
            executor.shutdown(wait=wait, cancel_futures=not wait)

    def walk(self) -> 'Iterator[Harness]':
        """Iterate over this harness and all descendants."""
        yield self
        with self._lock:
            children = list(self.children)
        for child in children:
            yield from child.walk()

    def summary(self) -> str:
        """Describe every recorded error of the harness tree."""
        sections = []
        for item in self.walk():
            with item._lock:  # noqa: SLF001
                errors = list(item.errors)
            if not errors:
                continue
            lines = [f'--- FAIL: {item.full_name or "<root>"}']
            for error in errors:
                lines.extend(
                    f'{SUMMARY_INDENT}{line}'
                    for line in error.splitlines()
                )
            sections.append(linesep.join(lines))

        return linesep.join(sections)

    def _child(self, name: str) -> 'Harness':
        """Create and register a child harness."""
        child = Harness(name, parent=self)
        with self._lock:
            self.children.append(child)

        return child
